"""Normalize raw Zonaprop text and values to record field strings."""

import re

LISTING_ID_RE = re.compile(r"(\d+)\.html")
OPERATION_SPLIT_RE = re.compile(r"USD|U\$S|\$|\d", re.IGNORECASE)
FIRST_NUMBER_RE = re.compile(r"\d+")

LOCAL_CURRENCY = "ARS"
FOREIGN_CURRENCY = "USD"

CURRENCY_ALIASES = {
    "USD": FOREIGN_CURRENCY,
    "U$S": FOREIGN_CURRENCY,
    "$": LOCAL_CURRENCY,
    "ARS": LOCAL_CURRENCY,
}


def as_text(value) -> str:
    """Render a loosely-typed scalar as a field string.

    Missing and falsy values (None, "", 0, False) become "". Integral floats
    drop the decimal part so 150000.0 renders as "150000".
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        if value == 0:
            return ""
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
    return str(value).strip()


def digits_only(value) -> str:
    """Keep only the digits of a price-like value.

    Handles: 150000, 150000.0, "150.000", "$ 150.000", "USD 200.000".
    """
    return re.sub(r"[^\d]", "", as_text(value))


def first_number(text: str | None) -> str:
    """Return the first digit run in text, e.g. "45 m² tot." -> "45"."""
    if not text:
        return ""
    match = FIRST_NUMBER_RE.search(text)
    return match.group(0) if match else ""


def normalize_currency(raw: str | None) -> str:
    """Map a structured currency code to "ARS", "USD" or ""."""
    if not raw:
        return ""
    return CURRENCY_ALIASES.get(str(raw).strip().upper(), "")


def detect_currency(price_text: str | None) -> str:
    """Classify rendered price text by its currency marker.

    Explicit foreign markers win; any other rendered price is local.
    """
    if not price_text:
        return ""
    if "USD" in price_text or "U$S" in price_text:
        return FOREIGN_CURRENCY
    return LOCAL_CURRENCY


def strip_operation(label: str | None) -> str:
    """Cut an operation label at its first currency marker or digit."""
    if not label:
        return ""
    return OPERATION_SPLIT_RE.split(label, maxsplit=1)[0].strip()


def split_address(text: str | None) -> dict[str, str]:
    """Split "Street 1234, Neighborhood, City" into address fields.

    Only segments present in the text appear in the result.
    """
    if not text:
        return {}
    parts = [p.strip() for p in text.split(",")]
    result = {
        "calle": re.sub(r"\d+.*", "", parts[0], flags=re.DOTALL).strip(),
        "altura": first_number(parts[0]),
    }
    if len(parts) > 1:
        result["barrio"] = parts[1]
    if len(parts) > 2:
        result["localidad"] = parts[2]
    return result


def listing_id_from_url(url: str | None) -> str:
    """Extract the numeric listing id preceding ".html", or ""."""
    if not url:
        return ""
    match = LISTING_ID_RE.search(url)
    return match.group(1) if match else ""
