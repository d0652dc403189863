"""
Integration tests for the Chase offer monitor.

These tests hit the real website and require valid credentials in .env.
Run with: pytest -m integration
"""

import logging
from datetime import date

import pytest

from chase_offer_monitor.browser import capture_offers
from chase_offer_monitor.config import NotificationConfig, load_settings
from chase_offer_monitor.models import OfferStatus, RawOffer
from chase_offer_monitor.normalize import normalize_snapshot
from chase_offer_monitor.reconcile import reconcile
from chase_offer_monitor.render import render_html
from chase_offer_monitor.report import compose_report
from chase_offer_monitor.storage import load_snapshot, save_snapshot

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture(scope="module")
def captured() -> dict[str, list[RawOffer]]:
    """Log in once and reuse the capture across tests in this module."""
    settings = load_settings()
    logger.info("Capturing offers (headless, first card only)...")
    raw = capture_offers(settings.username, settings.password, headless=True, max_cards=1)
    logger.info(f"Captured cards: {list(raw)}")
    return raw


@pytest.mark.integration
@pytest.mark.slow
class TestCapture:
    def test_capture_returns_one_card(self, captured: dict[str, list[RawOffer]]):
        assert len(captured) == 1

    def test_offers_have_expected_fields(self, captured: dict[str, list[RawOffer]]):
        for offers in captured.values():
            for offer in offers[:5]:
                assert offer.merchant, "Offer should have a merchant"
                assert isinstance(offer.deal, str)
                assert isinstance(offer.raw_expiration_text, str)
                assert offer.status in (OfferStatus.ELIGIBLE, OfferStatus.ENROLLED)


@pytest.mark.integration
@pytest.mark.slow
class TestFullFlow:
    def test_full_flow(self, captured: dict[str, list[RawOffer]], tmp_path):
        """Run capture -> normalize -> save -> reload -> reconcile -> report."""
        history = tmp_path / "history.json"
        snapshot = normalize_snapshot(captured, date.today())
        save_snapshot(history, snapshot)

        reloaded = load_snapshot(history)
        assert reloaded == snapshot

        reconciliation = reconcile(reloaded, snapshot)
        assert reconciliation.accounts_added == []
        assert all(not c.has_changes for c in reconciliation.changes.values())

        report = compose_report(reconciliation, snapshot, NotificationConfig(notify_all_enrolled=True))
        html = render_html(report)
        assert html.startswith("<html><body>")
        logger.info(f"Report sections: {report.titles}")
