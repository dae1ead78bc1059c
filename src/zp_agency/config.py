"""Configuration loader and validator."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

import yaml

REQUIRED_FIELDS = {
    "agency.url": str,
}

DEFAULTS = {
    "agency.base_url": None,
    "scraper.max_pages": 20,
    "scraper.page_delay": 2,
    "scraper.listing_delay_min": 2,
    "scraper.listing_delay_max": 3,
    "scraper.page_settle": 4,
    "scraper.list_timeout": 60,
    "scraper.detail_timeout": 40,
    "scraper.selector_timeout": 15,
    "scraper.headless": True,
    "database.path": "data/listings.db",
    "export.path": None,
}

NON_NEGATIVE = (
    "scraper.page_delay",
    "scraper.listing_delay_min",
    "scraper.listing_delay_max",
    "scraper.page_settle",
    "scraper.list_timeout",
    "scraper.detail_timeout",
    "scraper.selector_timeout",
)


@dataclass
class AgencyConfig:
    url: str
    base_url: str


@dataclass
class ScraperConfig:
    max_pages: int = 20
    page_delay: float = 2
    listing_delay_min: float = 2
    listing_delay_max: float = 3
    page_settle: float = 4
    list_timeout: float = 60
    detail_timeout: float = 40
    selector_timeout: float = 15
    headless: bool = True


@dataclass
class Config:
    agency: AgencyConfig
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    database_path: str = "data/listings.db"
    export_path: str | None = None


def _get_nested(data: dict, dotted_key: str):
    """Get a value from nested dict using dotted key notation."""
    keys = dotted_key.split(".")
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _setting(raw: dict, dotted_key: str):
    value = _get_nested(raw, dotted_key)
    return DEFAULTS[dotted_key] if value is None else value


def _validate(raw: dict) -> list[str]:
    """Validate required fields and value ranges. Returns list of error messages."""
    errors = []
    for dotted_key, expected_type in REQUIRED_FIELDS.items():
        value = _get_nested(raw, dotted_key)
        if value is None:
            errors.append(f"Missing required field: {dotted_key}")
        elif not isinstance(value, expected_type):
            errors.append(
                f"Invalid type for {dotted_key}: expected {expected_type.__name__}, got {type(value).__name__}"
            )

    url = _get_nested(raw, "agency.url")
    if isinstance(url, str):
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            errors.append(f"agency.url must be an http(s) URL, got {url!r}")
        elif not parts.path.endswith(".html"):
            errors.append("agency.url must point to the agency's .html listing index")

    max_pages = _setting(raw, "scraper.max_pages")
    if not isinstance(max_pages, int) or isinstance(max_pages, bool) or max_pages < 1:
        errors.append("scraper.max_pages must be an integer >= 1")

    for dotted_key in NON_NEGATIVE:
        value = _setting(raw, dotted_key)
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
            errors.append(f"{dotted_key} must be a non-negative number")

    delay_min = _setting(raw, "scraper.listing_delay_min")
    delay_max = _setting(raw, "scraper.listing_delay_max")
    if (
        isinstance(delay_min, (int, float))
        and isinstance(delay_max, (int, float))
        and delay_min > delay_max
    ):
        errors.append("scraper.listing_delay_min must be <= scraper.listing_delay_max")

    return errors


def _apply_overrides(raw: dict, agency_url: str | None = None) -> dict:
    """Apply env overrides (AGENCY_URL, DATABASE_PATH), then an explicit agency URL."""
    raw = {key: dict(value) if isinstance(value, dict) else value for key, value in raw.items()}
    if os.environ.get("AGENCY_URL"):
        raw.setdefault("agency", {})["url"] = os.environ["AGENCY_URL"]
    if os.environ.get("DATABASE_PATH"):
        raw.setdefault("database", {})["path"] = os.environ["DATABASE_PATH"]
    if agency_url:
        raw.setdefault("agency", {})["url"] = agency_url
    return raw


def parse_config(raw: dict, agency_url: str | None = None) -> Config:
    """Validate a config mapping and build a Config."""
    raw = _apply_overrides(raw, agency_url)
    errors = _validate(raw)
    if errors:
        raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    url = raw["agency"]["url"]
    parts = urlsplit(url)
    base_url = _setting(raw, "agency.base_url") or f"{parts.scheme}://{parts.netloc}"

    return Config(
        agency=AgencyConfig(url=url, base_url=base_url.rstrip("/")),
        scraper=ScraperConfig(
            max_pages=_setting(raw, "scraper.max_pages"),
            page_delay=_setting(raw, "scraper.page_delay"),
            listing_delay_min=_setting(raw, "scraper.listing_delay_min"),
            listing_delay_max=_setting(raw, "scraper.listing_delay_max"),
            page_settle=_setting(raw, "scraper.page_settle"),
            list_timeout=_setting(raw, "scraper.list_timeout"),
            detail_timeout=_setting(raw, "scraper.detail_timeout"),
            selector_timeout=_setting(raw, "scraper.selector_timeout"),
            headless=bool(_setting(raw, "scraper.headless")),
        ),
        database_path=str(_setting(raw, "database.path")),
        export_path=_setting(raw, "export.path"),
    )


def load_config(path: str | Path = "config.yaml", agency_url: str | None = None) -> Config:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}. "
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config format: expected a YAML mapping, got {type(raw).__name__}")

    return parse_config(raw, agency_url)
