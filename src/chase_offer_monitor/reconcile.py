"""
Snapshot reconciliation.

Compares the previously stored snapshot against a fresh one and classifies
each card's offers as added, extended, removed or unchanged.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .models import Offer

logger = logging.getLogger(__name__)


@dataclass
class AccountChanges:
    """Offer changes for a single card."""

    added: list[Offer] = field(default_factory=list)
    extended: list[Offer] = field(default_factory=list)
    removed: list[Offer] = field(default_factory=list)
    unchanged: list[Offer] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.extended or self.removed)


@dataclass
class Reconciliation:
    """Result of comparing an old snapshot with a new one."""

    accounts_added: list[str] = field(default_factory=list)
    accounts_removed: list[str] = field(default_factory=list)
    changes: dict[str, AccountChanges] = field(default_factory=dict)

    @property
    def added(self) -> dict[str, list[Offer]]:
        return {card: c.added for card, c in self.changes.items()}

    @property
    def extended(self) -> dict[str, list[Offer]]:
        return {card: c.extended for card, c in self.changes.items()}

    @property
    def removed(self) -> dict[str, list[Offer]]:
        return {card: c.removed for card, c in self.changes.items()}


def offers_for(snapshot: Mapping[str, Any], card: str) -> list[Offer]:
    """A card's offers, or an empty list when the stored value is missing or not a list."""
    offers = snapshot.get(card)
    return offers if isinstance(offers, list) else []


def _find_match(new_offer: Offer, old_offers: Sequence[Offer], consumed: set[int]) -> tuple[int, bool] | None:
    """
    Find the old offer a new offer continues.

    Returns:
        (index into old_offers, True if the expiration moved), or None if nothing matches.
        An exact identity key match anywhere in the list is preferred over a merchant/deal match.
    """
    for j, old in enumerate(old_offers):
        if j not in consumed and old.identity_key == new_offer.identity_key:
            return j, False
    for j, old in enumerate(old_offers):
        if j not in consumed and old.merchant == new_offer.merchant and old.deal == new_offer.deal:
            return j, True
    return None


def reconcile_account(old_offers: Sequence[Offer], new_offers: Sequence[Offer]) -> AccountChanges:
    """Classify one card's offers. Each old offer is matched at most once; neither input is modified."""
    changes = AccountChanges()
    consumed: set[int] = set()

    for offer in new_offers:
        match = _find_match(offer, old_offers, consumed)
        if match is None:
            changes.added.append(offer)
            continue
        index, extended = match
        consumed.add(index)
        if extended:
            changes.extended.append(offer)
        else:
            changes.unchanged.append(offer)

    changes.removed = [old for j, old in enumerate(old_offers) if j not in consumed]
    return changes


def reconcile(
    old: Mapping[str, Any] | None,
    new: Mapping[str, Any],
    logger: logging.Logger = logger,
) -> Reconciliation:
    """
    Compare two snapshots.

    Args:
        old: Previously stored snapshot; None or empty on the first run
        new: Freshly captured snapshot
        logger: Where to log the computed deltas

    Returns:
        Reconciliation with a changes entry for every card in new
    """
    old = old or {}
    result = Reconciliation()

    result.accounts_removed = [card for card in old if card not in new]

    for card in new:
        new_offers = offers_for(new, card)
        if card not in old:
            result.accounts_added.append(card)
            result.changes[card] = AccountChanges(added=list(new_offers))
            continue
        result.changes[card] = reconcile_account(offers_for(old, card), new_offers)

    logger.info(f"Cards added: {result.accounts_added}")
    logger.info(f"Cards removed: {result.accounts_removed}")
    for card, changes in result.changes.items():
        logger.info(
            f"{card}: {len(changes.added)} added, {len(changes.extended)} extended, "
            f"{len(changes.removed)} removed, {len(changes.unchanged)} unchanged"
        )
    return result
