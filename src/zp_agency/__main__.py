"""Entry point for zp_agency: scrape one agency's Zonaprop listings."""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from zp_agency.browser import PlaywrightBrowser, SessionError
from zp_agency.config import load_config, parse_config
from zp_agency.discovery import discover
from zp_agency.extractor import extract_listing
from zp_agency.log import setup_logging
from zp_agency.pipeline import run_pipeline
from zp_agency.spreadsheet import SpreadsheetSink, export_records
from zp_agency.storage import MultiSink, Storage
from zp_agency.throttle import Throttle

logger = logging.getLogger("zp_agency")


def _build_sink(config, xlsx_path: str | None, use_db: bool):
    sinks = []
    if use_db:
        sinks.append(Storage(config.database_path))
    xlsx_path = xlsx_path or config.export_path
    if xlsx_path:
        sinks.append(SpreadsheetSink(xlsx_path))
    if not sinks:
        return None
    return sinks[0] if len(sinks) == 1 else MultiSink(sinks)


def cmd_run(config, xlsx_path: str | None = None, use_db: bool = True) -> int:
    """Full pipeline: discover → extract → store."""
    sink = _build_sink(config, xlsx_path, use_db)
    try:
        result = run_pipeline(config, sink)
    except SessionError as e:
        logger.error("Could not start browser session: %s", e)
        return 1
    finally:
        if sink is not None:
            sink.close()
    if sink is None:
        logger.info("Extracted %d listings (nothing stored)", result.extracted)
    else:
        logger.info("Stored %d new listings", result.extracted - result.save_failed)
    return 0


def cmd_discover(config) -> int:
    """Print the listing URLs found for the agency."""
    with PlaywrightBrowser(headless=config.scraper.headless) as browser:
        found = discover(
            browser,
            config.agency.url,
            base_url=config.agency.base_url,
            max_pages=config.scraper.max_pages,
            timeout=config.scraper.list_timeout,
            settle=config.scraper.page_settle,
            throttle=Throttle(config.scraper.page_delay),
        )
    for url in found:
        print(url)
    return 0


def cmd_extract(config, url: str) -> int:
    """Extract a single listing and print it as JSON."""
    with PlaywrightBrowser(headless=config.scraper.headless) as browser:
        record = extract_listing(
            browser,
            url,
            timeout=config.scraper.detail_timeout,
            selector_timeout=config.scraper.selector_timeout,
        )
    if record is None:
        return 1
    print(json.dumps(record.as_dict(), ensure_ascii=False, indent=2))
    return 0


def cmd_export(config, path: str) -> int:
    """Write every stored listing to an Excel workbook."""
    storage = Storage(config.database_path)
    try:
        rows = export_records(storage.get_all_records(), path)
    finally:
        storage.close()
    logger.info("Exported %d listings to %s", rows, path)
    return 0


def _load(args):
    """Config from file, or from --agency-url alone when there is no file."""
    if args.agency_url and not Path(args.config).exists():
        return parse_config({}, agency_url=args.agency_url)
    return load_config(args.config, agency_url=args.agency_url)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zp_agency",
        description="Collect every listing of a Zonaprop real-estate agency",
    )
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument("--agency-url", default=None, help="Agency listing index URL")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-dir", default="logs", help="Directory for the rotating log file")

    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Discover, extract and store listings")
    run_parser.add_argument("--xlsx", default=None, help="Also write records to this workbook")
    run_parser.add_argument("--no-db", action="store_true", help="Do not use the SQLite store")
    subparsers.add_parser("discover", help="List the agency's listing URLs only")
    extract_parser = subparsers.add_parser("extract", help="Extract one listing URL")
    extract_parser.add_argument("url")
    export_parser = subparsers.add_parser("export", help="Export stored listings to xlsx")
    export_parser.add_argument("path")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_dir=args.log_dir)

    try:
        config = _load(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)

    if args.command == "run":
        result = cmd_run(config, xlsx_path=args.xlsx, use_db=not args.no_db)
    elif args.command == "discover":
        result = cmd_discover(config)
    elif args.command == "extract":
        result = cmd_extract(config, args.url)
    else:
        result = cmd_export(config, args.path)

    if result != 0:
        sys.exit(result)


if __name__ == "__main__":
    main()
