import logging
import subprocess
from email.message import EmailMessage

logger = logging.getLogger(__name__)
# Separate logger for reports - can be configured with its own file handler
report_logger = logging.getLogger("chase_offer_monitor.reports")


def log_report(text: str) -> None:
    """Log the rendered text report to the report logger."""
    report_logger.info("\n" + text)


def build_message(
    html: str,
    text: str,
    sender: str,
    recipient: str,
    subject: str,
) -> EmailMessage:
    """Build a multipart message with a plain text body and an HTML alternative."""
    msg = EmailMessage()
    msg["To"] = recipient
    msg["From"] = f'"Chase Offer Monitor" <{sender}>'
    msg["Subject"] = subject
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")
    return msg


def send_report(
    html: str,
    text: str,
    sender: str,
    recipient: str,
    subject: str,
    timestamp: str,
    sendmail_path: str = "/usr/sbin/sendmail",
) -> bool:
    """
    Send the offer report.

    Args:
        html: Rendered HTML report
        text: Rendered plain text report
        sender: Email sender address (required)
        recipient: Email recipient address (required)
        subject: Subject prefix, the timestamp is appended
        timestamp: Human readable run time, e.g. "Oct 19th, 7:05 am"
        sendmail_path: Path to sendmail binary

    Returns:
        True if email was sent successfully, False otherwise
    """
    msg = build_message(html, text, sender, recipient, f"{subject} : {timestamp}")

    logger.info(f"Sending email to {recipient}")
    logger.debug(f"Email body:\n{text}")

    return _sendmail(sendmail_path, sender, msg)


def _sendmail(sendmail_path: str, sender: str, msg: EmailMessage) -> bool:
    """Send email using sendmail."""
    try:
        p = subprocess.Popen(
            [sendmail_path, "-f", sender, "-t"],
            stdin=subprocess.PIPE,
        )
        p.communicate(msg.as_bytes())
        if p.returncode != 0:
            logger.error(f"sendmail exited with code {p.returncode}")
            return False
        logger.info("Email sent successfully")
        return True
    except FileNotFoundError:
        logger.error(f"sendmail not found at {sendmail_path}")
        return False
    except OSError as e:
        logger.error(f"Failed to send email: {e}")
        return False
