"""
Unit tests for email delivery.

These tests mock sendmail and don't send anything.
Run with: pytest -m unit_build
"""

import logging
from unittest.mock import Mock, patch

import pytest

from chase_offer_monitor.email import build_message, log_report, send_report

SENDER = "monitor@example.com"
RECIPIENT = "me@example.com"


def fake_popen(returncode: int = 0) -> Mock:
    process = Mock()
    process.returncode = returncode
    process.communicate = Mock(return_value=(None, None))
    return Mock(return_value=process)


@pytest.mark.unit_build
class TestBuildMessage:
    def test_headers(self) -> None:
        msg = build_message("<p>hi</p>", "hi", SENDER, RECIPIENT, "Chase Offer Update : Oct 19th, 7:05 am")
        assert msg["To"] == RECIPIENT
        assert SENDER in msg["From"]
        assert msg["Subject"] == "Chase Offer Update : Oct 19th, 7:05 am"

    def test_has_text_and_html_parts(self) -> None:
        msg = build_message("<p>hi</p>", "hi", SENDER, RECIPIENT, "s")
        types = [part.get_content_type() for part in msg.iter_parts()]
        assert types == ["text/plain", "text/html"]
        assert "<p>hi</p>" in msg.get_body(preferencelist=("html",)).get_content()


@pytest.mark.unit_build
class TestSendReport:
    def test_pipes_message_to_sendmail(self) -> None:
        popen = fake_popen()
        with patch("chase_offer_monitor.email.subprocess.Popen", popen):
            result = send_report(
                "<p>hi</p>", "hi", SENDER, RECIPIENT, "Chase Offer Update", "Oct 19th, 7:05 am", "/bin/sendmail"
            )

        assert result is True
        args = popen.call_args[0][0]
        assert args == ["/bin/sendmail", "-f", SENDER, "-t"]
        payload = popen.return_value.communicate.call_args[0][0]
        assert b"Subject: Chase Offer Update : Oct 19th, 7:05 am" in payload

    def test_nonzero_exit_returns_false(self) -> None:
        with patch("chase_offer_monitor.email.subprocess.Popen", fake_popen(returncode=75)):
            assert send_report("h", "t", SENDER, RECIPIENT, "s", "now") is False

    def test_missing_sendmail_returns_false(self, caplog: pytest.LogCaptureFixture) -> None:
        with patch("chase_offer_monitor.email.subprocess.Popen", side_effect=FileNotFoundError):
            with caplog.at_level(logging.ERROR):
                assert send_report("h", "t", SENDER, RECIPIENT, "s", "now", "/nope/sendmail") is False
        assert "/nope/sendmail" in caplog.text


@pytest.mark.unit_build
def test_log_report_goes_to_report_logger(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="chase_offer_monitor.reports"):
        log_report("Chase Offers Report")
    assert any(r.name == "chase_offer_monitor.reports" for r in caplog.records)
