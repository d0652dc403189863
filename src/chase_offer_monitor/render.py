from html import escape

from .models import MergedOffer
from .report import AccountListSection, OfferTableSection, Report, Section, SummarySection


def format_deal(offer: MergedOffer) -> str:
    """Deal text with its maximum, e.g. "$5 back up to $5.00"."""
    if not offer.maximum.is_known:
        return f"{offer.deal}, unknown max"
    return f"{offer.deal} up to ${offer.maximum.value:.2f}"


def format_minimum(offer: MergedOffer) -> str:
    if offer.minimum_purchase.is_known:
        return f"${offer.minimum_purchase.value:.2f} minimum"
    # Enrolled offers have had their details read, so a missing minimum means there isn't one
    return "No minimum" if offer.any_added else "Unknown min"


def offer_row(offer: MergedOffer) -> list[str]:
    return [format_deal(offer), offer.merchant, offer.expiration_date, format_minimum(offer)]


def _html_section(section: Section) -> str:
    heading = f"<h2>{escape(section.title)}</h2>\n"
    if isinstance(section, AccountListSection):
        return heading + "<br>".join(escape(a) for a in section.accounts) + "<br><br>\n"

    html = [heading, "<table border='1'>\n"]
    if isinstance(section, SummarySection):
        html.append("<tr><td>Card<td># Eligible<td># Enrolled</tr>\n")
        for row in section.rows:
            html.append(f"<tr><td>{escape(row.account)}<td>{row.eligible}<td>{row.enrolled}</tr>\n")
    elif isinstance(section, OfferTableSection):
        for offer in section.offers:
            cells = "".join(f"<td>{escape(cell)}" for cell in offer_row(offer))
            accounts = "<br>".join(escape(a) for a in offer.accounts)
            html.append(f"<tr>{cells}<td>{accounts}</tr>\n")
    html.append("</table>\n")
    return "".join(html)


def render_html(report: Report) -> str:
    """Render the report as the HTML email body."""
    body = "".join(_html_section(section) for section in report.sections)
    return f"<html><body>\n{body}</body></html>\n"


def render_text(report: Report) -> str:
    """Render the report as plain text, for logs, dry runs and the text part of the email."""
    lines = [
        "Chase Offers Report",
        "=" * 40,
        "",
    ]
    if not report.sections:
        lines.append("No changes found.")

    for section in report.sections:
        lines.append(f"{section.title}:")
        lines.append("-" * 20)
        if isinstance(section, AccountListSection):
            lines.extend(f"  - {account}" for account in section.accounts)
        elif isinstance(section, SummarySection):
            for row in section.rows:
                lines.append(f"  - {row.account}: {row.eligible} eligible, {row.enrolled} enrolled")
        elif isinstance(section, OfferTableSection):
            for offer in section.offers:
                deal, merchant, expiration, minimum = offer_row(offer)
                lines.append(f"  - {merchant}: {deal} (expires {expiration}, {minimum})")
                lines.append(f"    {', '.join(offer.accounts)}")
        lines.append("")

    return "\n".join(lines)
