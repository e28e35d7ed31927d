# Overview: Completion progress derived from the count ledger.

"""
Progress = share of known origins per category with at least one count.

An origin counts once no matter how many asset types or repeat entries it
has. Raw rows from older data may name the origin with a legacy field, so
reads go through resolve_origin().
"""
from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from stockcycle.extensions import db
from stockcycle.models import CountEntry, Inventory
from stockcycle.reference_data import DEFAULT_REFERENCE, ReferenceData
from stockcycle.errors import NotFoundError
from stockcycle.services.concurrency import storage_guard


# Canonical first, then legacy aliases in priority order.
ORIGIN_FIELD_ALIASES = ("origin", "loja", "setor_cd", "setorCd", "fornecedor", "cd_origem", "cdOrigem")
CATEGORY_FIELD_ALIASES = ("category", "tipo")

LEGACY_CATEGORY_VALUES = {
    "loja": "store",
    "setor": "sector",
    "fornecedor": "supplier",
}


def _read_field(row: Any, name: str):
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def resolve_origin(row: Any) -> str | None:
    """First non-blank value among the origin aliases, or None."""
    for name in ORIGIN_FIELD_ALIASES:
        value = _read_field(row, name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def resolve_category(row: Any) -> str | None:
    for name in CATEGORY_FIELD_ALIASES:
        value = _read_field(row, name)
        if value:
            return LEGACY_CATEGORY_VALUES.get(value, value)
    return None


def percentage(part: int, whole: int) -> int:
    """round(part / whole * 100) half-up, clamped to [0, 100]; 0 for an empty whole."""
    if whole <= 0:
        return 0
    pct = (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, min(100, int(pct)))


def distinct_origins(entries: Iterable[Any]) -> dict[str, set[str]]:
    """category -> set of origins seen."""
    seen: dict[str, set[str]] = {"store": set(), "sector": set(), "supplier": set()}
    for row in entries:
        category = resolve_category(row)
        origin = resolve_origin(row)
        if category in seen and origin:
            seen[category].add(origin)
    return seen


def compute_progress(entries: Iterable[Any], reference: ReferenceData | None = None) -> dict:
    reference = reference or DEFAULT_REFERENCE
    seen = distinct_origins(entries)
    return {
        "stores": percentage(len(seen["store"]), reference.total_stores),
        "sectors": percentage(len(seen["sector"]), reference.total_sectors),
        "suppliers": percentage(len(seen["supplier"]), reference.supplier_total),
    }


def _entries_for(inventory_id: int) -> list[CountEntry]:
    return db.session.query(CountEntry).filter_by(inventory_id=inventory_id).all()


def get_live_progress(inventory_id: int, reference: ReferenceData | None = None) -> dict:
    """Compute progress on demand without touching the stored snapshot."""
    inventory = db.session.get(Inventory, inventory_id)
    if not inventory:
        raise NotFoundError(f"Inventory {inventory_id} not found")
    return compute_progress(_entries_for(inventory_id), reference)


def refresh_progress(inventory_id: int, reference: ReferenceData | None = None) -> Inventory:
    """
    Recompute and persist the progress snapshot (status is left untouched).

    Flushes only; the caller owns the commit.
    """
    with storage_guard("inventory.refresh_progress", inventory_id):
        inventory = db.session.get(Inventory, inventory_id)
        if not inventory:
            raise NotFoundError(f"Inventory {inventory_id} not found")

        progress = compute_progress(_entries_for(inventory_id), reference)
        inventory.progress_stores = progress["stores"]
        inventory.progress_sectors = progress["sectors"]
        inventory.progress_suppliers = progress["suppliers"]
        db.session.flush()
        return inventory
