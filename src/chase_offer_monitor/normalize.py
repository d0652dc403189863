"""
Offer normalization.

Turns raw captured offers into Offer records with a computed expiration date
and identity key. Everything here is a pure function of its inputs; the
current date is always passed in by the caller.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, timedelta
from typing import Any

from .models import Amount, Offer, OfferStatus, RawOffer, Snapshot

logger = logging.getLogger(__name__)

KEY_SEPARATOR = " | "

_DAYS_LEFT_RE = re.compile(r"(\d+) days? left")
_LAST_DAY_RE = re.compile(r"Last day")
_MAXIMUM_RE = re.compile(r"\$([\d.]+) back")
_MINIMUM_RE = re.compile(r"\$([\d.]+) or more")


def parse_days_left(text: str) -> int | None:
    """Return the number of days left from text like "12 days left", or None if it can't be parsed."""
    match = _DAYS_LEFT_RE.search(text)
    if match:
        return int(match.group(1))
    if _LAST_DAY_RE.search(text):
        return 0
    return None


def expiration_for(days_left: int | None, raw_text: str, current_date: date) -> str:
    """Expiration as YYYY-MM-DD, falling back to the raw text when days_left is unknown."""
    if days_left is None:
        return raw_text
    return (current_date + timedelta(days=days_left)).isoformat()


def make_identity_key(merchant: str, deal: str, expiration_date: str) -> str:
    return KEY_SEPARATOR.join((merchant, deal, expiration_date))


def _parse_amount(pattern: re.Pattern[str], text: str) -> Amount:
    match = pattern.search(text)
    if not match:
        return Amount.unknown()
    try:
        return Amount.known(float(match.group(1)))
    except ValueError:
        # "$1.2.3 back" matches the character class but isn't a number
        return Amount.unknown()


def parse_deal_maximum(deal: str) -> Amount:
    """Maximum cash back from deal text like "$5 back"."""
    return _parse_amount(_MAXIMUM_RE, deal)


def parse_offer_details(details: str) -> tuple[Amount, Amount]:
    """
    Parse the offer details flyout text.

    Returns:
        (maximum, minimum_purchase); either is Amount.unknown() when not present.
    """
    return _parse_amount(_MAXIMUM_RE, details), _parse_amount(_MINIMUM_RE, details)


def normalize_offer(raw: RawOffer, current_date: date) -> Offer:
    """Build a normalized Offer from a raw captured offer."""
    days_left = parse_days_left(raw.raw_expiration_text)
    expiration_date = expiration_for(days_left, raw.raw_expiration_text, current_date)

    # A maximum from the detail fetch (or a recorded fetch failure) wins over the deal text
    maximum = raw.maximum
    if maximum == Amount.unknown():
        maximum = parse_deal_maximum(raw.deal)

    return Offer(
        merchant=raw.merchant,
        deal=raw.deal,
        raw_expiration_text=raw.raw_expiration_text,
        status=OfferStatus(raw.status),
        days_left=days_left,
        expiration_date=expiration_date,
        maximum=maximum,
        minimum_purchase=raw.minimum_purchase,
        identity_key=make_identity_key(raw.merchant, raw.deal, expiration_date),
    )


def normalize_snapshot(
    raw_snapshot: Mapping[str, Any],
    current_date: date,
    logger: logging.Logger = logger,
) -> Snapshot:
    """Normalize every card's raw offers. Cards whose value is not a list get no offers."""
    snapshot: Snapshot = {}
    for card, raw_offers in raw_snapshot.items():
        if not isinstance(raw_offers, list):
            logger.warning(f"Offers for card {card!r} are not a list, treating as empty")
            snapshot[card] = []
            continue
        snapshot[card] = [normalize_offer(raw, current_date) for raw in raw_offers]
        logger.debug(f"Normalized {len(snapshot[card])} offers for {card}")
    return snapshot
