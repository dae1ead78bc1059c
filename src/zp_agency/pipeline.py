"""Full run: discover an agency's listings, extract each one, hand records to a sink."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from zp_agency.browser import Browser, PlaywrightBrowser
from zp_agency.config import Config
from zp_agency.discovery import discover
from zp_agency.extractor import extract_listing
from zp_agency.models import NormalizedRecord
from zp_agency.storage import Sink
from zp_agency.throttle import Throttle

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    records: list[NormalizedRecord] = field(default_factory=list)
    discovered: int = 0
    skipped_existing: int = 0
    failed: int = 0
    save_failed: int = 0

    @property
    def extracted(self) -> int:
        return len(self.records)


def default_browser_factory(config: Config) -> Callable[[], PlaywrightBrowser]:
    return lambda: PlaywrightBrowser(headless=config.scraper.headless)


def _exists(sink: Sink, listing_id: str) -> bool:
    """An unreadable sink reports the listing as missing so it gets extracted."""
    try:
        return sink.exists(listing_id)
    except Exception:
        logger.exception("Sink failed to look up listing %s", listing_id)
        return False


def _save(sink: Sink, record: NormalizedRecord) -> bool:
    try:
        return sink.save(record)
    except Exception:
        logger.exception("Sink failed to store listing %s", record.id)
        return False


def run_pipeline(
    config: Config,
    sink: Sink | None = None,
    *,
    browser_factory: Callable[[], Browser] | None = None,
    page_throttle: Throttle | None = None,
    listing_throttle: Throttle | None = None,
) -> PipelineResult:
    """Run discovery and extraction for the configured agency.

    Listings whose id the sink already holds are skipped. A listing that
    fails is logged and skipped; only failing to start the browser session
    (SessionError) propagates.
    """
    scraper = config.scraper
    factory = browser_factory or default_browser_factory(config)
    if page_throttle is None:
        page_throttle = Throttle(scraper.page_delay)
    if listing_throttle is None:
        listing_throttle = Throttle(scraper.listing_delay_min, scraper.listing_delay_max)

    result = PipelineResult()
    with factory() as browser:
        found = discover(
            browser,
            config.agency.url,
            base_url=config.agency.base_url,
            max_pages=scraper.max_pages,
            timeout=scraper.list_timeout,
            settle=scraper.page_settle,
            throttle=page_throttle,
        )
        refs = list(found.values())
        result.discovered = len(refs)

        for i, ref in enumerate(refs, start=1):
            if not ref.id:
                logger.warning("[%d/%d] No listing id in %s", i, len(refs), ref.url)
            elif sink is not None and _exists(sink, ref.id):
                logger.info("[%d/%d] Already stored: %s", i, len(refs), ref.id)
                result.skipped_existing += 1
                continue

            record = extract_listing(
                browser,
                ref.url,
                timeout=scraper.detail_timeout,
                selector_timeout=scraper.selector_timeout,
            )
            if record is None:
                result.failed += 1
            else:
                result.records.append(record)
                logger.info(
                    "[%d/%d] %s %s - %s",
                    i, len(refs), record.precio, record.moneda, record.operacion,
                )
                if sink is not None and not _save(sink, record):
                    result.save_failed += 1

            if i < len(refs):
                listing_throttle.wait()

    logger.info(
        "Run complete: discovered=%d extracted=%d skipped_existing=%d failed=%d save_failed=%d",
        result.discovered,
        result.extracted,
        result.skipped_existing,
        result.failed,
        result.save_failed,
    )
    return result
