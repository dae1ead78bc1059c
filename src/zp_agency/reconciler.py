"""Merge structured page state and rendered DOM text into one record.

The structured state (source A) is preferred field by field. The DOM fragment
(source B) fills whatever A left empty, and overrides the currency when A
reports the local default: the state blob often says ARS for prices that the
page renders in dollars.
"""

from __future__ import annotations

from zp_agency.models import DomFragment, FEATURE_ICONS, NormalizedRecord, StateFragment
from zp_agency.normalizer import (
    LOCAL_CURRENCY,
    digits_only,
    first_number,
    listing_id_from_url,
    normalize_currency,
    split_address,
    strip_operation,
)


def _reconcile_currency(state: StateFragment, dom: DomFragment) -> str:
    currency = normalize_currency(state.currency)
    if not currency or currency == LOCAL_CURRENCY:
        return dom.currency or currency
    return currency


def _reconcile_address(state: StateFragment, dom: DomFragment) -> dict[str, str]:
    address = {
        "calle": state.street,
        "altura": state.number,
        "barrio": state.neighborhood,
        "localidad": state.city,
    }
    if not address["calle"] and dom.address_text:
        address.update(split_address(dom.address_text))
    return address


def _reconcile_features(state: StateFragment, dom: DomFragment) -> dict[str, str]:
    resolved = {}
    structured = state.features()
    for name in FEATURE_ICONS:
        if structured[name]:
            resolved[name] = structured[name]
        elif name == "antiguedad":
            # Age can be descriptive ("A estrenar"), keep the text as rendered.
            resolved[name] = dom.feature(name)
        else:
            resolved[name] = first_number(dom.feature(name))
    return resolved


def reconcile(url: str, state: StateFragment | None, dom: DomFragment) -> NormalizedRecord:
    """Build the normalized record for url from both sources."""
    if state is None:
        state = StateFragment()

    return NormalizedRecord(
        id=listing_id_from_url(url),
        url=url,
        operacion=strip_operation(state.operation or dom.operation_text),
        precio=digits_only(state.price) or digits_only(dom.price_text),
        moneda=_reconcile_currency(state, dom),
        expensas=digits_only(state.expenses) or digits_only(dom.expenses_text),
        **_reconcile_address(state, dom),
        **_reconcile_features(state, dom),
    )
