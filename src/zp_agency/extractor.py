"""Fetch one listing page and turn it into a NormalizedRecord."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup

from zp_agency.browser import SelectorTimeout
from zp_agency.models import (
    DomFragment,
    FEATURE_ICONS,
    NormalizedRecord,
    StateFragment,
    pick_posting,
)
from zp_agency.reconciler import reconcile

if TYPE_CHECKING:
    from zp_agency.browser import Browser

logger = logging.getLogger(__name__)

CONTENT_SELECTOR = ".price-value, .icon-feature"
PRICE_SELECTOR = ".price-value"
OPERATION_SELECTOR = ".price-value span"
EXPENSES_SELECTOR = ".price-expenses"
ADDRESS_SELECTORS = (".section-location-property", ".title-address")

STATE_SCRIPT = """() => {
    if (window.__INITIAL_STATE__) return window.__INITIAL_STATE__;
    const next = window.__NEXT_DATA__;
    return (next && next.props && next.props.pageProps) || null;
}"""


def _state_from_html(html: str) -> dict | None:
    """Read props.pageProps from a __NEXT_DATA__ script tag."""
    soup = BeautifulSoup(html, "html.parser")
    tag = soup.find("script", id="__NEXT_DATA__")
    if tag is None or not tag.string:
        return None
    try:
        data = json.loads(tag.string)
    except ValueError as e:
        logger.debug("Unparseable __NEXT_DATA__: %s", e)
        return None
    props = data.get("props") if isinstance(data, dict) else None
    return props.get("pageProps") if isinstance(props, dict) else None


def read_state_fragment(browser: Browser) -> StateFragment | None:
    """Read the structured listing state, or None when the page has none."""
    try:
        state = browser.evaluate(STATE_SCRIPT)
    except Exception as e:
        logger.debug("State script failed: %s", e)
        state = None

    posting = pick_posting(state)
    if posting is None:
        try:
            posting = pick_posting(_state_from_html(browser.content()))
        except Exception as e:
            logger.debug("Could not read page HTML: %s", e)
    return StateFragment.from_raw(posting)


def feature_selector(icon_class: str) -> str:
    return f".icon-feature:has(i.{icon_class}), .icon-feature:has(.{icon_class})"


def read_dom_fragment(browser: Browser) -> DomFragment:
    address = ""
    for selector in ADDRESS_SELECTORS:
        address = browser.inner_text(selector)
        if address:
            break

    return DomFragment(
        price_text=browser.inner_text(PRICE_SELECTOR),
        operation_text=browser.inner_text(OPERATION_SELECTOR),
        expenses_text=browser.inner_text(EXPENSES_SELECTOR),
        address_text=address,
        features={
            name: browser.inner_text(feature_selector(icon))
            for name, icon in FEATURE_ICONS.items()
        },
    )


def extract_listing(
    browser: Browser,
    url: str,
    *,
    timeout: float = 40,
    selector_timeout: float = 15,
) -> NormalizedRecord | None:
    """Visit url and reconcile its page state with its rendered text.

    Returns None when the listing could not be processed; the error is logged.
    """
    logger.info("Scraping detail: %s", url)
    try:
        browser.goto(url, timeout=timeout)

        try:
            browser.wait_for_selector(CONTENT_SELECTOR, timeout=selector_timeout)
        except SelectorTimeout as e:
            logger.debug("Continuing without rendered features for %s: %s", url, e)

        state = read_state_fragment(browser)
        if state is None:
            logger.debug("No structured state for %s, using page text only", url)
        dom = read_dom_fragment(browser)
        return reconcile(url, state, dom)
    except Exception as e:
        logger.error("Failed to extract %s: %s", url, e)
        return None
