# backend/stockcycle/services/count_service.py
"""
Count ledger service.

WHY: Counts are the raw material of progress and of the closing report.
They can only be written while their inventory is active; the inventory row
is re-read (locked) inside every write, never trusted from an earlier read.

RULES:
1. category is one of store / sector / supplier
2. quantity is a positive integer; origin, asset type, responsible non-blank
3. inventory_id, origin and counted_at are fixed at insert
4. bulk inserts are all-or-nothing
5. store counts at a transit-eligible DC alias may carry a companion transit
   payload; a companion without an asset type is dropped, not rejected

Every mutation ends with on_change(inventory_id), which by default refreshes
the inventory's progress snapshot.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping

from stockcycle.extensions import db
from stockcycle.models import CountEntry
from stockcycle.errors import NotFoundError, ValidationError
from stockcycle.reference_data import TRANSIT_ELIGIBLE_ORIGINS
from stockcycle.services.concurrency import run_with_retry, storage_guard
from stockcycle.services.inventory_service import require_active_inventory
from stockcycle.services.progress_service import refresh_progress
from stockcycle.time_utils import utcnow
from stockcycle.validation import (
    ModelValidationPolicy,
    optional_text,
    require_choice,
    require_positive_int,
    require_text,
    validate_patch,
)


logger = logging.getLogger(__name__)

# Count category constants
CATEGORY_STORE = "store"
CATEGORY_SECTOR = "sector"
CATEGORY_SUPPLIER = "supplier"
CATEGORIES = (CATEGORY_STORE, CATEGORY_SECTOR, CATEGORY_SUPPLIER)

COUNT_EDIT_POLICY = ModelValidationPolicy(
    writable_fields={
        "category",
        "destination",
        "asset_type",
        "quantity",
        "responsible",
        "transit_asset_type",
        "transit_quantity",
        "transit_responsible",
    },
    immutable_fields={"id", "inventory_id", "origin", "counted_at"},
)

ProgressHook = Callable[[int], object]

_NO_COMPANION = {
    "transit_asset_type": None,
    "transit_quantity": None,
    "transit_responsible": None,
}


def is_transit_eligible(category: str, origin: str) -> bool:
    return category == CATEGORY_STORE and origin in TRANSIT_ELIGIBLE_ORIGINS


def companion_fields(category: str, origin: str, transit: Mapping | None) -> dict:
    """
    Companion transit columns to persist for a count.

    Returns all-None unless the count is transit eligible and the companion
    names an asset type.
    """
    if not transit or not is_transit_eligible(category, origin):
        return dict(_NO_COMPANION)

    asset_type = optional_text(transit.get("asset_type", transit.get("transit_asset_type")))
    if not asset_type:
        return dict(_NO_COMPANION)

    raw_quantity = transit.get("quantity", transit.get("transit_quantity"))
    quantity = require_positive_int(raw_quantity, "transit_quantity") if raw_quantity is not None else None

    return {
        "transit_asset_type": asset_type,
        "transit_quantity": quantity,
        "transit_responsible": optional_text(transit.get("responsible", transit.get("transit_responsible"))),
    }


def _notify(on_change: ProgressHook | None, inventory_id: int) -> None:
    if on_change is not None:
        on_change(inventory_id)


def add_entry(
    inventory_id: int,
    category: str,
    origin: str,
    asset_type: str,
    quantity: int,
    responsible: str,
    destination: str | None = None,
    transit: Mapping | None = None,
    *,
    on_change: ProgressHook | None = refresh_progress,
) -> CountEntry:
    """
    Record one count.

    Returns:
        CountEntry: The created entry (flushed, not committed)

    Raises:
        ValidationError: bad category / quantity / blank fields
        NotFoundError: inventory does not exist
        StateError: inventory is not active
    """
    require_choice(category, "category", CATEGORIES)
    origin = require_text(origin, "origin")
    asset_type = require_text(asset_type, "asset_type")
    quantity = require_positive_int(quantity, "quantity")
    responsible = require_text(responsible, "responsible")
    destination = optional_text(destination)
    companion = companion_fields(category, origin, transit)

    def _op():
        require_active_inventory(inventory_id, action="add counts")

        entry = CountEntry(
            inventory_id=inventory_id,
            category=category,
            origin=origin,
            destination=destination,
            asset_type=asset_type,
            quantity=quantity,
            responsible=responsible,
            counted_at=utcnow(),
            **companion,
        )
        db.session.add(entry)
        db.session.flush()

        _notify(on_change, inventory_id)
        return entry

    with storage_guard("count.add", inventory_id):
        return run_with_retry(_op)


def add_entries_bulk(
    inventory_id: int,
    category: str,
    origin: str,
    items: Iterable[Mapping],
    responsible: str,
    destination: str | None = None,
    *,
    on_change: ProgressHook | None = refresh_progress,
) -> list[CountEntry]:
    """
    Record several asset counts for one origin, all or nothing.

    Every item is validated before anything is added to the session, so one
    bad item leaves the ledger untouched.
    """
    require_choice(category, "category", CATEGORIES)
    origin = require_text(origin, "origin")
    responsible = require_text(responsible, "responsible")
    destination = optional_text(destination)

    items = list(items or [])
    if not items:
        raise ValidationError("At least one item is required")

    cleaned = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValidationError(f"Item {index} must be an object")
        try:
            cleaned.append((
                require_text(item.get("asset_type"), "asset_type"),
                require_positive_int(item.get("quantity"), "quantity"),
            ))
        except ValidationError as exc:
            raise ValidationError(f"Item {index}: {exc}") from exc

    def _op():
        require_active_inventory(inventory_id, action="add counts")

        now = utcnow()
        entries = [
            CountEntry(
                inventory_id=inventory_id,
                category=category,
                origin=origin,
                destination=destination,
                asset_type=asset_type,
                quantity=quantity,
                responsible=responsible,
                counted_at=now,
            )
            for asset_type, quantity in cleaned
        ]
        db.session.add_all(entries)
        db.session.flush()

        _notify(on_change, inventory_id)
        return entries

    with storage_guard("count.add_bulk", inventory_id):
        return run_with_retry(_op)


def get_entry(entry_id: int) -> CountEntry:
    entry = db.session.get(CountEntry, entry_id)
    if not entry:
        raise NotFoundError(f"Count entry {entry_id} not found")
    return entry


def edit_entry(
    entry_id: int,
    patch: Mapping,
    *,
    on_change: ProgressHook | None = refresh_progress,
) -> CountEntry:
    """
    Update a count in place.

    Raises:
        ValidationError: immutable / unknown field or invalid value
        NotFoundError: entry (or its inventory) does not exist
        StateError: owning inventory is not active
    """
    cleaned = validate_patch(model=CountEntry, payload=dict(patch or {}), policy=COUNT_EDIT_POLICY)
    if "category" in cleaned:
        require_choice(cleaned["category"], "category", CATEGORIES)
    if "quantity" in cleaned:
        cleaned["quantity"] = require_positive_int(cleaned["quantity"], "quantity")
    if cleaned.get("transit_quantity") is not None:
        cleaned["transit_quantity"] = require_positive_int(cleaned["transit_quantity"], "transit_quantity")
    if "destination" in cleaned:
        cleaned["destination"] = optional_text(cleaned["destination"])

    def _op():
        entry = get_entry(entry_id)
        require_active_inventory(entry.inventory_id, action="edit counts")

        for key, value in cleaned.items():
            setattr(entry, key, value)

        companion = companion_fields(
            entry.category,
            entry.origin,
            {
                "asset_type": entry.transit_asset_type,
                "quantity": entry.transit_quantity,
                "responsible": entry.transit_responsible,
            },
        )
        for key, value in companion.items():
            setattr(entry, key, value)

        db.session.flush()
        _notify(on_change, entry.inventory_id)
        return entry

    with storage_guard("count.edit", entry_id):
        return run_with_retry(_op)


def remove_entry(
    entry_id: int,
    *,
    on_change: ProgressHook | None = refresh_progress,
) -> None:
    def _op():
        entry = get_entry(entry_id)
        inventory_id = entry.inventory_id
        require_active_inventory(inventory_id, action="remove counts")

        db.session.delete(entry)
        db.session.flush()
        _notify(on_change, inventory_id)

    with storage_guard("count.remove", entry_id):
        run_with_retry(_op)


def list_entries(inventory_id: int | None = None, category: str | None = None) -> list[CountEntry]:
    """Counts, newest first."""
    query = db.session.query(CountEntry)
    if inventory_id is not None:
        query = query.filter_by(inventory_id=inventory_id)
    if category:
        require_choice(category, "category", CATEGORIES)
        query = query.filter_by(category=category)
    return query.order_by(CountEntry.counted_at.desc(), CountEntry.id.desc()).all()
