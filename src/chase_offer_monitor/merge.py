import logging
from collections.abc import Mapping
from typing import Any

from .models import MergedOffer, Offer

logger = logging.getLogger(__name__)

ADDED_PREFIX = "(Added) "


def display_name(card: str, offer: Offer) -> str:
    """Card name as shown next to an offer, marked when the card is enrolled."""
    return ADDED_PREFIX + card if offer.is_enrolled else card


def sort_key(offer: MergedOffer) -> tuple[str, str, tuple[int, int], str]:
    # Text compares case-insensitively; unknown days_left sorts after every known value
    days = (0, offer.days_left) if offer.days_left is not None else (1, 0)
    return offer.merchant.casefold(), offer.deal.casefold(), days, offer.expiration_date.casefold()


def key_by_offer(offers_by_card: Mapping[str, Any], logger: logging.Logger = logger) -> list[MergedOffer]:
    """
    Collapse offers sharing an identity key across cards.

    Args:
        offers_by_card: Card name -> list of offers. Values that aren't lists are skipped.
        logger: Debug sink

    Returns:
        One MergedOffer per distinct identity key, sorted by merchant, deal,
        days left and expiration.
    """
    merged: dict[str, MergedOffer] = {}
    for card, offers in offers_by_card.items():
        if not isinstance(offers, list):
            continue
        for offer in offers:
            name = display_name(card, offer)
            existing = merged.get(offer.identity_key)
            if existing is None:
                merged[offer.identity_key] = MergedOffer(
                    merchant=offer.merchant,
                    deal=offer.deal,
                    raw_expiration_text=offer.raw_expiration_text,
                    days_left=offer.days_left,
                    expiration_date=offer.expiration_date,
                    maximum=offer.maximum,
                    minimum_purchase=offer.minimum_purchase,
                    identity_key=offer.identity_key,
                    accounts=[name],
                    any_added=offer.is_enrolled,
                )
                continue

            existing.accounts.append(name)
            existing.any_added = existing.any_added or offer.is_enrolled
            # First known value wins
            if not existing.maximum.is_known and offer.maximum.is_known:
                existing.maximum = offer.maximum
            if not existing.minimum_purchase.is_known and offer.minimum_purchase.is_known:
                existing.minimum_purchase = offer.minimum_purchase

    result = sorted(merged.values(), key=sort_key)
    logger.debug(f"key_by_offer: {sum(len(o.accounts) for o in result)} offers merged into {len(result)}")
    return result
