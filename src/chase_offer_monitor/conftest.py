from datetime import date

import pytest

from chase_offer_monitor.models import Amount, Offer, OfferStatus
from chase_offer_monitor.normalize import make_identity_key


def make_offer(
    merchant: str = "Target",
    deal: str = "$5 back",
    expiration_date: str = "2024-06-01",
    status: OfferStatus = OfferStatus.ELIGIBLE,
    days_left: int | None = 5,
    maximum: Amount | None = None,
    minimum_purchase: Amount | None = None,
) -> Offer:
    """Build a normalized offer directly, without going through the normalizer."""
    return Offer(
        merchant=merchant,
        deal=deal,
        raw_expiration_text=f"{days_left} days left" if days_left is not None else expiration_date,
        status=status,
        days_left=days_left,
        expiration_date=expiration_date,
        maximum=maximum if maximum is not None else Amount.unknown(),
        minimum_purchase=minimum_purchase if minimum_purchase is not None else Amount.unknown(),
        identity_key=make_identity_key(merchant, deal, expiration_date),
    )


@pytest.fixture
def today() -> date:
    return date(2024, 5, 27)


@pytest.fixture
def offer_factory():
    return make_offer
