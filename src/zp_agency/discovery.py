"""Enumerate an agency's listing URLs from its paginated index."""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin, urlsplit

from zp_agency.browser import Browser, NavigationError
from zp_agency.models import ListingReference, normalize_url
from zp_agency.throttle import Throttle

logger = logging.getLogger(__name__)

BASE_URL = "https://www.zonaprop.com.ar"
LINK_SELECTOR = "a[data-to-posting], a[href*='/propiedades/']"
DETAIL_MARKER = "/propiedades/"
DETAIL_SUFFIX = ".html"
INDEX_MARKER = "inmobiliarias"
DEFAULT_MAX_PAGES = 20


def site_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def build_page_url(agency_url: str, page_num: int) -> str:
    """Page 1 is the agency URL itself; page n appends -pagina-n."""
    if page_num <= 1:
        return agency_url
    return re.sub(r"\.html$", f"-pagina-{page_num}.html", agency_url)


def is_listing_link(href: str | None) -> bool:
    if not href or INDEX_MARKER in href:
        return False
    path = urlsplit(href).path
    return DETAIL_MARKER in path and path.endswith(DETAIL_SUFFIX)


def collect_links(
    hrefs, found: dict[str, ListingReference], base_url: str = BASE_URL
) -> int:
    """Add listing links to found; returns how many were not seen before."""
    new_count = 0
    for href in hrefs:
        if not is_listing_link(href):
            continue
        url = normalize_url(urljoin(base_url + "/", href.strip()))
        if url not in found:
            found[url] = ListingReference(url)
            new_count += 1
    return new_count


def discover(
    browser: Browser,
    agency_url: str,
    *,
    base_url: str | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    timeout: float = 60,
    settle: float = 4,
    throttle: Throttle | None = None,
    found: dict[str, ListingReference] | None = None,
) -> dict[str, ListingReference]:
    """Walk the agency's result pages and return listing references by URL.

    Stops at the first page that contributes no new URL, after max_pages, or
    when a page fails to load or its links cannot be read. Whatever was
    collected before a failure is returned.
    """
    found = {} if found is None else found
    base_url = base_url or site_origin(agency_url)
    throttle = throttle or Throttle.disabled()

    logger.info("Collecting listing URLs for %s", agency_url)
    for page_num in range(1, max_pages + 1):
        page_url = build_page_url(agency_url, page_num)
        logger.info("Fetching index page %d: %s", page_num, page_url)

        try:
            browser.goto(page_url, timeout=timeout)
            browser.pause(settle)
            hrefs = browser.query_all_attr(LINK_SELECTOR, "href")
        except NavigationError as e:
            logger.error("Failed to load index page %d: %s", page_num, e)
            break
        except Exception as e:
            logger.error("Failed to read links on index page %d: %s", page_num, e)
            break

        new_count = collect_links(hrefs, found, base_url)
        logger.info(
            "Page %d: %d new URLs (total: %d)", page_num, new_count, len(found)
        )

        if new_count == 0:
            logger.info("No new listings on page %d, stopping", page_num)
            break

        if page_num < max_pages:
            throttle.wait()
    else:
        logger.warning("Reached page limit (%d)", max_pages)

    logger.info("Discovered %d listings", len(found))
    return found
