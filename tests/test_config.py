"""Tests for config loader."""

import pytest
import yaml

from zp_agency.config import Config, load_config, parse_config

AGENCY = "https://www.zonaprop.com.ar/inmobiliarias/gimenez-inmuebles_17062722-inmuebles.html"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("AGENCY_URL", raising=False)
    monkeypatch.delenv("DATABASE_PATH", raising=False)


@pytest.fixture
def valid_config_data():
    return {
        "agency": {"url": AGENCY},
        "scraper": {
            "max_pages": 5,
            "page_delay": 1,
            "listing_delay_min": 2,
            "listing_delay_max": 4,
            "headless": False,
        },
        "database": {"path": "data/test.db"},
        "export": {"path": "out/propiedades.xlsx"},
    }


@pytest.fixture
def config_file(tmp_path, valid_config_data):
    p = tmp_path / "config.yaml"
    p.write_text(yaml.dump(valid_config_data))
    return p


def test_load_valid_config(config_file):
    cfg = load_config(config_file)
    assert isinstance(cfg, Config)
    assert cfg.agency.url == AGENCY
    assert cfg.agency.base_url == "https://www.zonaprop.com.ar"
    assert cfg.scraper.max_pages == 5
    assert cfg.scraper.listing_delay_max == 4
    assert cfg.scraper.headless is False
    assert cfg.database_path == "data/test.db"
    assert cfg.export_path == "out/propiedades.xlsx"


def test_defaults_applied():
    cfg = parse_config({"agency": {"url": AGENCY}})
    assert cfg.scraper.max_pages == 20
    assert cfg.scraper.page_delay == 2
    assert cfg.scraper.listing_delay_min == 2
    assert cfg.scraper.listing_delay_max == 3
    assert cfg.scraper.page_settle == 4
    assert cfg.scraper.list_timeout == 60
    assert cfg.scraper.detail_timeout == 40
    assert cfg.scraper.selector_timeout == 15
    assert cfg.scraper.headless is True
    assert cfg.database_path == "data/listings.db"
    assert cfg.export_path is None


def test_explicit_base_url(valid_config_data):
    valid_config_data["agency"]["base_url"] = "https://www.zonaprop.com.ar/"
    cfg = parse_config(valid_config_data)
    assert cfg.agency.base_url == "https://www.zonaprop.com.ar"


def test_config_file_not_found():
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        load_config("/nonexistent/config.yaml")


def test_invalid_yaml(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text(": invalid: yaml: {{{{")
    with pytest.raises(Exception):
        load_config(p)


def test_non_mapping_yaml(tmp_path):
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="expected a YAML mapping"):
        load_config(p)


def test_missing_agency_url():
    with pytest.raises(ValueError, match="Missing required field.*agency.url"):
        parse_config({"scraper": {}})


def test_agency_url_must_be_http():
    with pytest.raises(ValueError, match="http\\(s\\) URL"):
        parse_config({"agency": {"url": "ftp://example.com/x.html"}})


def test_agency_url_must_be_html_index():
    with pytest.raises(ValueError, match=".html listing index"):
        parse_config({"agency": {"url": "https://www.zonaprop.com.ar/inmobiliarias/x"}})


def test_invalid_ranges_reported_together(valid_config_data):
    valid_config_data["scraper"].update(
        {"max_pages": 0, "page_delay": -1, "listing_delay_min": 5, "listing_delay_max": 1}
    )
    with pytest.raises(ValueError) as excinfo:
        parse_config(valid_config_data)
    message = str(excinfo.value)
    assert "scraper.max_pages" in message
    assert "scraper.page_delay" in message
    assert "listing_delay_min must be <=" in message


def test_env_overrides(monkeypatch, config_file):
    other = "https://www.zonaprop.com.ar/inmobiliarias/century-21-billion_30409994-inmuebles.html"
    monkeypatch.setenv("AGENCY_URL", other)
    monkeypatch.setenv("DATABASE_PATH", "/tmp/env.db")
    cfg = load_config(config_file)
    assert cfg.agency.url == other
    assert cfg.database_path == "/tmp/env.db"


def test_explicit_agency_url_beats_env(monkeypatch, config_file):
    monkeypatch.setenv("AGENCY_URL", "https://www.zonaprop.com.ar/inmobiliarias/env-1-inmuebles.html")
    cli_url = "https://www.zonaprop.com.ar/inmobiliarias/cli-2-inmuebles.html"
    cfg = load_config(config_file, agency_url=cli_url)
    assert cfg.agency.url == cli_url


def test_parse_config_does_not_mutate_input(valid_config_data):
    parse_config(valid_config_data, agency_url="https://www.zonaprop.com.ar/inmobiliarias/z-inmuebles.html")
    assert valid_config_data["agency"]["url"] == AGENCY
