import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from .browser import capture_offers
from .config import ConfigError, load_settings
from .email import log_report, send_report
from .normalize import normalize_snapshot
from .reconcile import reconcile
from .render import render_html, render_text
from .report import compose_report
from .storage import load_raw_snapshot, load_snapshot, save_snapshot, write_result

logger = logging.getLogger(__name__)

# Log directory - can be overridden via CHASE_LOG_DIR env var
LOG_DIR = Path(os.environ.get("CHASE_LOG_DIR", "logs"))

# Offer expirations on the site are "days left" counted in Eastern time
TIMEZONE = ZoneInfo("America/New_York")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with console and file handlers."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(LOG_DIR / "chase_offer_monitor.log")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Report logger with its own file
    report_logger = logging.getLogger("chase_offer_monitor.reports")
    report_handler = logging.FileHandler(LOG_DIR / "reports.log")
    report_handler.setLevel(logging.INFO)
    report_handler.setFormatter(logging.Formatter("%(asctime)s\n%(message)s\n"))
    report_logger.addHandler(report_handler)


def format_timestamp(now: datetime) -> str:
    """Format like "Oct 19th, 7:05 am"."""
    day = now.day
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    hour = now.hour % 12 or 12
    return f"{now:%b} {day}{suffix}, {hour}:{now:%M} {'am' if now.hour < 12 else 'pm'}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chase offer monitor")
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Run browser in headless mode (default: headless)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Don't send email or update history, just print report",
    )
    parser.add_argument(
        "--no-mail",
        action="store_true",
        help="Don't send email, and leave the history file untouched",
    )
    parser.add_argument(
        "--fake-data",
        type=Path,
        metavar="PATH",
        help="Load captured offers from a JSON file instead of the website",
    )
    parser.add_argument(
        "--max-cards",
        type=int,
        metavar="N",
        help="Only look at the first N cards",
    )
    parser.add_argument(
        "--no-cred",
        action="store_true",
        help="Type credentials into the browser window by hand instead of reading them from .env",
    )
    parser.add_argument(
        "--leave-open",
        action="store_true",
        help="Keep the browser window open after capturing offers",
    )
    parser.add_argument("--history-file", type=Path, help="Override CHASE_HISTORY_FILE")
    parser.add_argument("--result-file", type=Path, help="Override CHASE_RESULT_FILE")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)
    logger.info("Starting execution of chase-offer-monitor")

    try:
        settings = load_settings(require_credentials=not (args.no_cred or args.fake_data))
    except ConfigError as e:
        logger.error(str(e))
        return 1
    if args.history_file:
        settings.history_file = args.history_file
    if args.result_file:
        settings.result_file = args.result_file

    now = datetime.now(TIMEZONE)

    try:
        old_snapshot = load_snapshot(settings.history_file, backup=not args.dry_run)

        if args.fake_data:
            logger.info(f"Loading fake offer data from {args.fake_data}")
            raw_snapshot = load_raw_snapshot(args.fake_data)
        else:
            username, password = (None, None) if args.no_cred else (settings.username, settings.password)
            raw_snapshot = capture_offers(
                username,
                password,
                headless=args.headless,
                max_cards=args.max_cards,
                leave_open=args.leave_open,
            )

        new_snapshot = normalize_snapshot(raw_snapshot, now.date())
        total = sum(len(offers) for offers in new_snapshot.values())
        logger.info(f"Found {total} offers across {len(new_snapshot)} cards")

        reconciliation = reconcile(old_snapshot, new_snapshot)
        report = compose_report(reconciliation, new_snapshot, settings.notifications)
        html = render_html(report)
        text = render_text(report)

        # Always log the report to file
        log_report(text)

        if args.dry_run:
            print("[DRY RUN] Would send email report:" if report.send_message else "[DRY RUN] Nothing to send")
            print("=" * 40)
            print(text)
            print("=" * 40)
            return 0

        exit_code = 0
        if args.no_mail:
            logger.info("Email disabled with --no-mail")
        elif not report.send_message:
            logger.info("Script ran successfully but didn't find any reason to send an email, so nothing sent")
        elif settings.email_enabled:
            sent = send_report(
                html,
                text,
                sender=settings.email_sender,
                recipient=settings.email_recipient,
                subject=settings.email_subject,
                timestamp=format_timestamp(now),
                sendmail_path=settings.sendmail_path,
            )
            if not sent:
                exit_code = 1
        else:
            logger.warning(
                "Email not sent: CHASE_EMAIL_SENDER and CHASE_EMAIL_RECIPIENT "
                "environment variables not set. Report logged to logs/reports.log"
            )

        # Keep the old history when the email failed so the same changes are reported next run
        if not args.fake_data and not args.no_mail and exit_code == 0:
            save_snapshot(settings.history_file, new_snapshot)
        write_result(settings.result_file, html)
        return exit_code

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
