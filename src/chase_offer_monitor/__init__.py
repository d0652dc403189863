"""
Chase Offer Monitor - Track Chase card offers and report what changed.

This package provides tools to:
- Capture offers for every card via headless browser (Playwright/Firefox)
- Compare the capture against the previous run (added, extended, removed offers)
- Merge offers shared across cards into one report row
- Send an HTML email report of the changes
"""

from .config import NotificationConfig, Settings, load_settings
from .merge import key_by_offer
from .models import Amount, MergedOffer, Offer, OfferStatus, RawOffer, Snapshot
from .normalize import normalize_offer, normalize_snapshot
from .reconcile import AccountChanges, Reconciliation, reconcile
from .report import Report, compose_report

__all__ = [
    "AccountChanges",
    "Amount",
    "MergedOffer",
    "NotificationConfig",
    "Offer",
    "OfferStatus",
    "RawOffer",
    "Reconciliation",
    "Report",
    "Settings",
    "Snapshot",
    "compose_report",
    "key_by_offer",
    "load_settings",
    "normalize_offer",
    "normalize_snapshot",
    "reconcile",
]
