"""
Report composition.

Builds the ordered list of report sections from a reconciliation and the
current snapshot, and decides whether the report is worth sending. Rendering
to HTML or text lives in render.py.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import NotificationConfig
from .merge import key_by_offer
from .models import MergedOffer, Offer, OfferStatus
from .reconcile import Reconciliation, offers_for

logger = logging.getLogger(__name__)


@dataclass
class AccountSummary:
    account: str
    eligible: int
    enrolled: int


@dataclass
class AccountListSection:
    title: str
    accounts: list[str] = field(default_factory=list)


@dataclass
class OfferTableSection:
    title: str
    offers: list[MergedOffer] = field(default_factory=list)


@dataclass
class SummarySection:
    title: str
    rows: list[AccountSummary] = field(default_factory=list)


Section = AccountListSection | OfferTableSection | SummarySection


@dataclass
class Report:
    sections: list[Section] = field(default_factory=list)
    send_message: bool = False

    @property
    def titles(self) -> list[str]:
        return [s.title for s in self.sections]


def offers_with_status(snapshot: Mapping[str, Any], status: OfferStatus) -> dict[str, list[Offer]]:
    return {card: [o for o in offers_for(snapshot, card) if o.status is status] for card in snapshot}


def expiring_offers(snapshot: Mapping[str, Any], status: OfferStatus, threshold: int) -> dict[str, list[Offer]]:
    """Offers with the given status expiring within threshold days. Unknown expirations never qualify."""
    return {
        card: [
            o
            for o in offers_for(snapshot, card)
            if o.status is status and o.days_left is not None and o.days_left <= threshold
        ]
        for card in snapshot
    }


def summarize_accounts(snapshot: Mapping[str, Any]) -> list[AccountSummary]:
    rows = []
    for card in snapshot:
        offers = offers_for(snapshot, card)
        rows.append(
            AccountSummary(
                account=card,
                eligible=sum(1 for o in offers if o.status is OfferStatus.ELIGIBLE),
                enrolled=sum(1 for o in offers if o.status is OfferStatus.ENROLLED),
            )
        )
    return rows


def _any_offers(offers_by_card: Mapping[str, list[Offer]]) -> bool:
    return any(offers for offers in offers_by_card.values())


def compose_report(
    reconciliation: Reconciliation,
    new_snapshot: Mapping[str, Any],
    config: NotificationConfig,
    logger: logging.Logger = logger,
) -> Report:
    """
    Assemble the change report.

    A section is included only when it is enabled and has content. Card
    additions and removals are always included when present. Any included
    section other than the summary table marks the report as worth sending.
    """
    report = Report()

    def add_offers(title: str, offers_by_card: Mapping[str, list[Offer]]) -> None:
        if not _any_offers(offers_by_card):
            logger.debug(f"Skipping empty section: {title}")
            return
        report.sections.append(OfferTableSection(title, key_by_offer(offers_by_card, logger=logger)))
        report.send_message = True

    if reconciliation.accounts_added:
        report.sections.append(AccountListSection("New Cards Found", list(reconciliation.accounts_added)))
        report.send_message = True
    if reconciliation.accounts_removed:
        report.sections.append(AccountListSection("Old Cards Not Found", list(reconciliation.accounts_removed)))
        report.send_message = True

    if config.notify_new:
        add_offers("New Offers Found", reconciliation.added)
    if config.notify_extended:
        add_offers("Extended Offers", reconciliation.extended)
    if config.notify_removed:
        add_offers("Old Offers Removed", reconciliation.removed)

    if config.notify_enrolled_expiration:
        add_offers(
            f"Enrolled Offers Expiring Within {config.notify_enrolled_expiration_days} Days",
            expiring_offers(new_snapshot, OfferStatus.ENROLLED, config.notify_enrolled_expiration_days),
        )
    if config.notify_eligible_expiration:
        add_offers(
            f"Eligible Offers Expiring Within {config.notify_eligible_expiration_days} Days",
            expiring_offers(new_snapshot, OfferStatus.ELIGIBLE, config.notify_eligible_expiration_days),
        )

    if config.notify_summary_table:
        rows = summarize_accounts(new_snapshot)
        if rows:
            report.sections.append(SummarySection("Count of All Offers for Cards", rows))

    if config.notify_all_enrolled:
        add_offers("Summary of All Current Enrolled Offers", offers_with_status(new_snapshot, OfferStatus.ENROLLED))
    if config.notify_all_eligible:
        add_offers("Summary of All Current Eligible Offers", offers_with_status(new_snapshot, OfferStatus.ELIGIBLE))

    logger.info(f"Report sections: {report.titles} (send_message={report.send_message})")
    return report
