# backend/stockcycle/services/transit_service.py
"""
Transit ledger service: shipments between distribution centers.

STATUS:
    sent, received, pending (free transitions between the three)

RECEIPT RULE:
    received_at is stamped with the current time whenever status becomes
    "received" and cleared whenever it becomes anything else, so
    status == "received" <=> received_at is not None.

Writes are gated on the owning inventory being active, like counts.
"""
from __future__ import annotations

from typing import Iterable, Mapping

from stockcycle.extensions import db
from stockcycle.models import TransitRecord
from stockcycle.errors import NotFoundError, ValidationError
from stockcycle.services.concurrency import run_with_retry, storage_guard
from stockcycle.services.inventory_service import require_active_inventory
from stockcycle.time_utils import utcnow
from stockcycle.validation import (
    ModelValidationPolicy,
    require_choice,
    require_positive_int,
    require_text,
    validate_patch,
)


# Transit status constants
TRANSIT_STATUS_SENT = "sent"
TRANSIT_STATUS_RECEIVED = "received"
TRANSIT_STATUS_PENDING = "pending"
TRANSIT_STATUSES = (TRANSIT_STATUS_SENT, TRANSIT_STATUS_RECEIVED, TRANSIT_STATUS_PENDING)

TRANSIT_EDIT_POLICY = ModelValidationPolicy(
    writable_fields={"origin", "destination", "asset_type", "quantity", "status"},
    immutable_fields={"id", "inventory_id", "sent_at", "received_at"},
)


def _check_endpoints(origin: str, destination: str) -> None:
    if origin == destination:
        raise ValidationError("Origin and destination cannot be equal")


def _apply_status(record: TransitRecord, status: str) -> None:
    record.status = status
    record.received_at = utcnow() if status == TRANSIT_STATUS_RECEIVED else None


def add_entry(
    inventory_id: int,
    origin: str,
    destination: str,
    asset_type: str,
    quantity: int,
    status: str = TRANSIT_STATUS_SENT,
) -> TransitRecord:
    """
    Record one shipment.

    Raises:
        ValidationError: origin == destination, quantity <= 0, blank fields,
            unknown status
        NotFoundError: inventory does not exist
        StateError: inventory is not active
    """
    origin = require_text(origin, "origin")
    destination = require_text(destination, "destination")
    _check_endpoints(origin, destination)
    asset_type = require_text(asset_type, "asset_type")
    quantity = require_positive_int(quantity, "quantity")
    require_choice(status, "status", TRANSIT_STATUSES)

    def _op():
        require_active_inventory(inventory_id, action="add transit records")

        record = TransitRecord(
            inventory_id=inventory_id,
            origin=origin,
            destination=destination,
            asset_type=asset_type,
            quantity=quantity,
            sent_at=utcnow(),
        )
        _apply_status(record, status)
        db.session.add(record)
        db.session.flush()
        return record

    with storage_guard("transit.add", inventory_id):
        return run_with_retry(_op)


def add_entries_bulk(
    inventory_id: int,
    origin: str,
    destination: str,
    items: Iterable[Mapping],
    status: str = TRANSIT_STATUS_SENT,
) -> list[TransitRecord]:
    """Several assets on the same origin -> destination leg, all or nothing."""
    origin = require_text(origin, "origin")
    destination = require_text(destination, "destination")
    _check_endpoints(origin, destination)
    require_choice(status, "status", TRANSIT_STATUSES)

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
        require_active_inventory(inventory_id, action="add transit records")

        now = utcnow()
        records = []
        for asset_type, quantity in cleaned:
            record = TransitRecord(
                inventory_id=inventory_id,
                origin=origin,
                destination=destination,
                asset_type=asset_type,
                quantity=quantity,
                sent_at=now,
            )
            _apply_status(record, status)
            records.append(record)

        db.session.add_all(records)
        db.session.flush()
        return records

    with storage_guard("transit.add_bulk", inventory_id):
        return run_with_retry(_op)


def get_entry(record_id: int) -> TransitRecord:
    record = db.session.get(TransitRecord, record_id)
    if not record:
        raise NotFoundError(f"Transit record {record_id} not found")
    return record


def update_status(record_id: int, new_status: str) -> TransitRecord:
    require_choice(new_status, "status", TRANSIT_STATUSES)

    def _op():
        record = get_entry(record_id)
        require_active_inventory(record.inventory_id, action="update transit records")
        _apply_status(record, new_status)
        db.session.flush()
        return record

    with storage_guard("transit.update_status", record_id):
        return run_with_retry(_op)


def edit_entry(record_id: int, patch: Mapping) -> TransitRecord:
    """
    Update a shipment in place.

    Timestamps are not writable; a status in the patch goes through the
    receipt rule. Origin and destination are re-checked as a pair.
    """
    cleaned = validate_patch(model=TransitRecord, payload=dict(patch or {}), policy=TRANSIT_EDIT_POLICY)
    if "quantity" in cleaned:
        cleaned["quantity"] = require_positive_int(cleaned["quantity"], "quantity")
    if "status" in cleaned:
        require_choice(cleaned["status"], "status", TRANSIT_STATUSES)

    def _op():
        record = get_entry(record_id)
        require_active_inventory(record.inventory_id, action="edit transit records")

        _check_endpoints(
            cleaned.get("origin", record.origin),
            cleaned.get("destination", record.destination),
        )

        status = cleaned.pop("status", None)
        for key, value in cleaned.items():
            setattr(record, key, value)
        if status is not None:
            _apply_status(record, status)

        db.session.flush()
        return record

    with storage_guard("transit.edit", record_id):
        return run_with_retry(_op)


def remove_entry(record_id: int) -> None:
    def _op():
        record = get_entry(record_id)
        require_active_inventory(record.inventory_id, action="remove transit records")
        db.session.delete(record)
        db.session.flush()

    with storage_guard("transit.remove", record_id):
        run_with_retry(_op)


def list_entries(inventory_id: int | None = None, status: str | None = None) -> list[TransitRecord]:
    """Shipments, most recently sent first."""
    query = db.session.query(TransitRecord)
    if inventory_id is not None:
        query = query.filter_by(inventory_id=inventory_id)
    if status:
        require_choice(status, "status", TRANSIT_STATUSES)
        query = query.filter_by(status=status)
    return query.order_by(TransitRecord.sent_at.desc(), TransitRecord.id.desc()).all()
