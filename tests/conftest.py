"""Shared test helpers: an in-memory browser that serves canned pages."""

from zp_agency.browser import NavigationError, SelectorTimeout
from zp_agency.extractor import feature_selector
from zp_agency.models import FEATURE_ICONS


class FakeBrowser:
    """Serves canned pages keyed by URL.

    A page is a dict with optional keys:
      hrefs: list of link hrefs returned by query_all_attr
      texts: selector -> rendered text
      state: value returned by evaluate()
      html: value returned by content()
      rendered: False makes wait_for_selector time out
    URLs in fail raise NavigationError; unknown URLs serve an empty page.
    """

    def __init__(self, pages=None, fail=()):
        self.pages = pages or {}
        self.fail = set(fail)
        self.visited = []
        self.paused = []
        self.current = {}
        self.entered = False
        self.closed = False

    def __enter__(self):
        self.entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True

    def goto(self, url, *, timeout, wait_until="domcontentloaded"):
        self.visited.append(url)
        if url in self.fail:
            raise NavigationError(f"Timeout loading {url}")
        self.current = self.pages.get(url, {})

    def wait_for_selector(self, selector, *, timeout):
        if not self.current.get("rendered", True):
            raise SelectorTimeout(f"{selector} not found")

    def evaluate(self, script):
        state = self.current.get("state")
        if isinstance(state, Exception):
            raise state
        return state

    def query_all_attr(self, selector, attr):
        return list(self.current.get("hrefs", []))

    def inner_text(self, selector):
        return self.current.get("texts", {}).get(selector, "")

    def content(self):
        return self.current.get("html", "<html><body></body></html>")

    def pause(self, seconds):
        self.paused.append(seconds)


def detail_texts(price="", operation="", expenses="", address="", **features):
    """Build a texts mapping for a detail page.

    Feature keyword arguments use record field names, e.g. m2T="45 m² tot.".
    """
    texts = {
        ".price-value": price,
        ".price-value span": operation,
        ".price-expenses": expenses,
        ".section-location-property": address,
    }
    for name, text in features.items():
        texts[feature_selector(FEATURE_ICONS[name])] = text
    return texts


def posting_state(**overrides):
    """A __INITIAL_STATE__-shaped blob with one posting."""
    posting = {
        "operationType": {"name": "Venta"},
        "price": {"amount": 120000, "currency": "USD", "expenses": 45000},
        "location": {
            "address": {
                "street": "Av. Corrientes",
                "number": "3200",
                "neighborhood": "Almagro",
                "city": "Capital Federal",
            }
        },
        "mainFeatures": {
            "totalArea": {"value": "70"},
            "coveredArea": {"value": "62"},
            "rooms": {"value": "3"},
            "bedrooms": {"value": "2"},
            "bathrooms": {"value": "1"},
            "parkingLots": {"value": "1"},
            "age": {"value": "15"},
        },
    }
    posting.update(overrides)
    return {"posting": {"posting": posting}}
