"""Listing references, source fragments and the normalized record."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from urllib.parse import urlsplit, urlunsplit

from zp_agency.normalizer import as_text, detect_currency, listing_id_from_url

# Paths tried in order to find the listing object inside the page state.
POSTING_PATHS = (
    ("posting", "posting"),
    ("postingData",),
    ("post", "posting"),
    ("posting",),
    ("project",),
)

# Record field -> icon class of its feature block on the detail page.
FEATURE_ICONS = {
    "m2T": "icon-stotal",
    "m2C": "icon-scubierta",
    "ambientes": "icon-ambiente",
    "dormitorios": "icon-dormitorio",
    "banios": "icon-bano",
    "cocheras": "icon-cochera",
    "antiguedad": "icon-antiguedad",
}


def normalize_url(url: str) -> str:
    """Drop query string and fragment so one listing has one identity."""
    parts = urlsplit(url.strip())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def _dig(data, *keys):
    """Follow keys through nested dicts; None as soon as a step is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def pick_posting(state) -> dict | None:
    """Return the listing object inside a page state blob, if any."""
    if not isinstance(state, dict):
        return None
    for path in POSTING_PATHS:
        candidate = _dig(state, *path)
        if isinstance(candidate, dict) and candidate:
            return candidate
    return None


@dataclass(frozen=True)
class ListingReference:
    url: str

    @property
    def id(self) -> str:
        return listing_id_from_url(self.url)


@dataclass(frozen=True)
class StateFragment:
    """Listing data read from the server-rendered page state (source A)."""

    operation: str = ""
    price: str = ""
    currency: str = ""
    expenses: str = ""
    street: str = ""
    number: str = ""
    neighborhood: str = ""
    city: str = ""
    total_area: str = ""
    covered_area: str = ""
    rooms: str = ""
    bedrooms: str = ""
    bathrooms: str = ""
    parking: str = ""
    age: str = ""

    @classmethod
    def from_raw(cls, posting) -> StateFragment | None:
        if not isinstance(posting, dict) or not posting:
            return None

        expenses = _dig(posting, "price", "expenses")
        if isinstance(expenses, dict):
            expenses = expenses.get("amount")

        def feature(key: str) -> str:
            return as_text(_dig(posting, "mainFeatures", key, "value"))

        address = _dig(posting, "location", "address")
        return cls(
            operation=as_text(_dig(posting, "operationType", "name")),
            price=as_text(_dig(posting, "price", "amount")),
            currency=as_text(_dig(posting, "price", "currency")),
            expenses=as_text(expenses),
            street=as_text(_dig(address, "street")),
            number=as_text(_dig(address, "number")),
            neighborhood=as_text(_dig(address, "neighborhood")),
            city=as_text(_dig(address, "city"))
            or as_text(_dig(posting, "location", "city", "name")),
            total_area=feature("totalArea"),
            covered_area=feature("coveredArea"),
            rooms=feature("rooms"),
            bedrooms=feature("bedrooms"),
            bathrooms=feature("bathrooms"),
            parking=feature("parkingLots"),
            age=feature("age"),
        )

    def features(self) -> dict[str, str]:
        """Feature values keyed by record field name."""
        return {
            "m2T": self.total_area,
            "m2C": self.covered_area,
            "ambientes": self.rooms,
            "dormitorios": self.bedrooms,
            "banios": self.bathrooms,
            "cocheras": self.parking,
            "antiguedad": self.age,
        }


@dataclass(frozen=True)
class DomFragment:
    """Free text scraped from the rendered detail page (source B)."""

    price_text: str = ""
    operation_text: str = ""
    expenses_text: str = ""
    address_text: str = ""
    features: dict[str, str] = field(default_factory=dict)

    @property
    def currency(self) -> str:
        return detect_currency(self.price_text)

    def feature(self, name: str) -> str:
        return self.features.get(name) or ""


@dataclass(frozen=True)
class NormalizedRecord:
    id: str = ""
    url: str = ""
    operacion: str = ""
    precio: str = ""
    moneda: str = ""
    expensas: str = ""
    calle: str = ""
    altura: str = ""
    barrio: str = ""
    localidad: str = ""
    m2T: str = ""
    m2C: str = ""
    ambientes: str = ""
    dormitorios: str = ""
    banios: str = ""
    cocheras: str = ""
    antiguedad: str = ""

    def as_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: dict) -> NormalizedRecord:
        """Build a record from a stored row, ignoring unknown keys."""
        return cls(**{name: as_text(data.get(name)) for name in FIELDS})


FIELDS = tuple(f.name for f in fields(NormalizedRecord))
