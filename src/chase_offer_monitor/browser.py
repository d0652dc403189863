import logging
import random

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from .models import Amount, OfferStatus, RawOffer
from .normalize import parse_offer_details

logger = logging.getLogger(__name__)

START_URL = "https://www.chase.com"
# The legacy logon page has the login form in the page itself rather than in an iframe
LOGIN_URL = "https://secure05a.chase.com/web/auth/#/logon/logon/chaseOnline?lang=en"

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

SEE_ALL_OFFERS = 'a[id*="cardlyticsSeeAllOffers"]'
# Personal cards use "mds-select-option--cpo", business cards "mds-select-option--bcb"
CARD_OPTION = 'mds-select-option[class*="mds-select-option--"]'
OFFER_CONTAINER = 'div[class="sixersoffers__container"]'
OFFER_BUTTON = 'a[class^="sixersoffers__cta"]'
OFFER_DEAL = 'div[class*="sixerscontent-one"]'
OFFER_EXPIRATION = 'div[class*="sixerscontent-two"]'
OFFER_LIST = 'ul[class*="offerList"]'
MORE_OFFERS = 'a[blue-click*="requestMoreOffers"]'
OFFER_DETAILS = 'div[class~="offerdetails__content"]'
FLYOUT_CLOSE = 'a[id="flyoutClose"]'

ADD_SUFFIX = " Add to card"
ADDED_SUFFIX = " Added to card"


class AcquisitionError(RuntimeError):
    """Raised when offers can't be captured from the site."""


def card_selector(card_name: str = "") -> str:
    return CARD_OPTION + (f'[label="{card_name}"]' if card_name else "")


def offer_selector(merchant: str = "") -> str:
    return OFFER_BUTTON + (f'[aria-label^="{merchant}"]' if merchant else "")


def parse_offer_label(label: str | None) -> tuple[str, OfferStatus]:
    """Split an offer button's aria-label into merchant name and status."""
    if not label:
        return "unknown", OfferStatus.ELIGIBLE
    if label.endswith(ADDED_SUFFIX):
        return label[: -len(ADDED_SUFFIX)], OfferStatus.ENROLLED
    if label.endswith(ADD_SUFFIX):
        return label[: -len(ADD_SUFFIX)], OfferStatus.ELIGIBLE
    return label, OfferStatus.ELIGIBLE


def _pause(page: Page, low_ms: int, high_ms: int) -> None:
    page.wait_for_timeout(random.randint(low_ms, high_ms))


def login(page: Page, username: str | None, password: str | None) -> None:
    """
    Log in and open the offers page.

    With no credentials the regular site is opened and the user is expected to
    log in by hand in the (visible) browser window.
    """
    logger.info("Logging into chase.com")
    if username and password:
        page.goto(LOGIN_URL, timeout=60000)
        user_input = page.locator('input[name="userId"]')
        user_input.wait_for(state="visible", timeout=30000)
        user_input.fill(username)
        page.locator('input[name="password"]').fill(password)
        page.locator('button[id*="signin-button"]').click()
    else:
        page.goto(START_URL, timeout=60000)
        logger.info("Waiting for manual login")

    see_all = page.locator(SEE_ALL_OFFERS).first
    see_all.wait_for(state="visible", timeout=180000)
    see_all.click()
    page.wait_for_timeout(2000)
    logger.info("Logged in and ready")


def get_card_names(page: Page) -> list[str]:
    logger.info("Getting list of card names")
    names = [n for n in page.locator(card_selector()).evaluate_all("els => els.map(e => e.getAttribute('label'))") if n]
    if not names:
        raise AcquisitionError("Failed to get card list. The offers page layout has probably changed.")
    logger.debug(f"Card names: {names}")
    return names


def choose_card(page: Page, card_name: str) -> None:
    logger.info(f'Choosing card "{card_name}"')
    options = page.locator(card_selector(card_name))
    if options.count() == 0:
        raise AcquisitionError(f'Failed to choose card "{card_name}". The offers page layout has probably changed.')
    options.first.click()
    page.wait_for_timeout(2000)


def expand_offer_list(page: Page) -> None:
    """Click "See more offers" until every offer is shown."""
    more = page.locator(MORE_OFFERS)
    while more.count() > 0:
        more.first.click()
        page.wait_for_timeout(3000)


def close_flyout(page: Page) -> None:
    close = page.locator(FLYOUT_CLOSE)
    while close.count() > 0 and close.first.is_visible():
        close.first.click()
        page.wait_for_timeout(3000)


def _read_offer(container) -> RawOffer:
    merchant, status = parse_offer_label(container.locator(OFFER_BUTTON).first.get_attribute("aria-label"))
    return RawOffer(
        merchant=merchant,
        deal=container.locator(OFFER_DEAL).first.inner_text().strip(),
        raw_expiration_text=container.locator(OFFER_EXPIRATION).first.inner_text().strip(),
        status=status,
    )


def fetch_offer_details(page: Page, offer: RawOffer) -> None:
    """Open an offer's detail flyout and record its maximum and minimum purchase."""
    logger.info(f"Getting max for {offer.merchant}")
    try:
        expand_offer_list(page)
        button = page.locator(offer_selector(offer.merchant)).first
        button.wait_for(state="visible", timeout=15000)
        _pause(page, 500, 750)
        button.click()
        _pause(page, 2500, 3100)
        details = page.locator(OFFER_DETAILS)
        if details.count() > 0:
            maximum, minimum = parse_offer_details(details.first.inner_text())
            if maximum.is_known:
                offer.maximum = maximum
            offer.minimum_purchase = minimum
    except PlaywrightError as e:
        logger.warning(f"Failed to get maximum for {offer.merchant}: {e}")
        offer.maximum = Amount.fetch_failed()
        offer.minimum_purchase = Amount.fetch_failed()
    close_flyout(page)


def get_offers(page: Page) -> list[RawOffer]:
    """Capture every offer for the currently selected card."""
    logger.info("Now getting offers")
    expand_offer_list(page)
    try:
        page.locator(OFFER_LIST).first.wait_for(timeout=15000)
    except PlaywrightError:
        # Cards with no offers have no offer list at all
        logger.info("No offer list found, card has no offers")
        return []
    _pause(page, 2500, 3100)

    offers = [_read_offer(c) for c in page.locator(OFFER_CONTAINER).all()]
    for offer in offers:
        if offer.status is OfferStatus.ENROLLED:
            fetch_offer_details(page, offer)

    logger.info(f"Found {len(offers)} offers")
    return offers


def capture_offers(
    username: str | None,
    password: str | None,
    headless: bool = True,
    max_cards: int | None = None,
    leave_open: bool = False,
) -> dict[str, list[RawOffer]]:
    """
    Log in and capture the raw offers for every card.

    Args:
        username: Chase user id; None to log in by hand
        password: Chase password; None to log in by hand
        headless: Run browser without UI (forced off for manual login)
        max_cards: Only look at the first N cards
        leave_open: Wait for the browser window to be closed by hand when done
    """
    # Manual login needs a visible window
    headless = headless and bool(username and password)
    captured: dict[str, list[RawOffer]] = {}

    with sync_playwright() as p:
        browser = p.firefox.launch(headless=headless)
        context = browser.new_context(user_agent=USER_AGENT)
        page = context.new_page()
        try:
            login(page, username, password)
            card_names = get_card_names(page)
            if max_cards is not None:
                card_names = card_names[:max_cards]
            for card_name in card_names:
                choose_card(page, card_name)
                captured[card_name] = get_offers(page)
        except PlaywrightError as e:
            raise AcquisitionError(f"Browser automation failed: {e}") from e
        finally:
            if leave_open and not headless:
                logger.info("Leaving browser open, close the window to continue")
                page.wait_for_event("close", timeout=0)
            browser.close()

    logger.info(f"Captured offers for {len(captured)} cards")
    return captured
