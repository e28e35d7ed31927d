# backend/stockcycle/services/inventory_service.py
"""
Inventory lifecycle service.

WHY: Exactly one counting campaign may be open at a time. Every count and
transit write is gated on its inventory still being active.

LIFECYCLE:
1. active: created by start_inventory(), accepts ledger writes
2. finalized: set by the finalization gate together with report approval

Inventories are never deleted.
"""
from __future__ import annotations

import logging
import random

from sqlalchemy.exc import IntegrityError

from stockcycle.extensions import db
from stockcycle.models import Inventory, FinalizationReport
from stockcycle.errors import ConflictError, NotFoundError, StateError, ValidationError
from stockcycle.services import finalization_service
from stockcycle.services.concurrency import lock_for_update, run_with_retry, storage_guard
from stockcycle.time_utils import month_abbreviation, utcnow
from stockcycle.validation import require_choice, require_text


logger = logging.getLogger(__name__)

# Inventory status constants
INVENTORY_STATUS_ACTIVE = "active"
INVENTORY_STATUS_FINALIZED = "finalized"
INVENTORY_STATUSES = (INVENTORY_STATUS_ACTIVE, INVENTORY_STATUS_FINALIZED)


def generate_inventory_code(now=None, rng: random.Random | None = None) -> str:
    """
    INV-{MON}-{YYYY}{MM}{DD}-{NNNNN}, e.g. INV-OUT-20261019-48213.

    The 5-digit suffix is random and not checked against existing codes.
    """
    now = now or utcnow()
    rng = rng or random
    suffix = rng.randint(10000, 99999)
    return f"INV-{month_abbreviation(now)}-{now:%Y%m%d}-{suffix}"


def get_active_inventory() -> Inventory | None:
    """Queried on every call; never cached."""
    return db.session.query(Inventory).filter_by(status=INVENTORY_STATUS_ACTIVE).first()


def get_inventory(inventory_id: int) -> Inventory:
    inventory = db.session.get(Inventory, inventory_id)
    if not inventory:
        raise NotFoundError(f"Inventory {inventory_id} not found")
    return inventory


def list_inventories(status: str | None = None) -> list[Inventory]:
    query = db.session.query(Inventory)
    if status:
        require_choice(status, "status", INVENTORY_STATUSES)
        query = query.filter_by(status=status)
    return query.order_by(Inventory.started_at.desc(), Inventory.id.desc()).all()


def require_active_inventory(inventory_id: int, *, action: str) -> Inventory:
    """
    Re-read the inventory with a row lock and check it is still active.

    Called inside every ledger write so a finalize that landed between the
    caller's read and this write is seen.

    Raises:
        NotFoundError: inventory does not exist
        StateError: inventory is not active
    """
    inventory = lock_for_update(db.session.query(Inventory).filter_by(id=inventory_id)).first()
    if not inventory:
        raise NotFoundError(f"Inventory {inventory_id} not found")
    if inventory.status != INVENTORY_STATUS_ACTIVE:
        raise StateError(f"Cannot {action}: inventory {inventory.code} is {inventory.status}")
    return inventory


def start_inventory(responsible: str, *, rng: random.Random | None = None) -> Inventory:
    """
    Open a new inventory cycle (status: active, progress 0/0/0).

    Args:
        responsible: Person running the campaign

    Returns:
        Inventory: The created inventory (flushed, not committed)

    Raises:
        ValidationError: responsible is blank
        ConflictError: another inventory is already active
    """
    responsible = require_text(responsible, "responsible")

    def _op():
        existing = get_active_inventory()
        if existing:
            raise ConflictError(
                f"Inventory {existing.code} is already active. Finalize it before starting a new one."
            )

        inventory = Inventory(
            code=generate_inventory_code(rng=rng),
            responsible=responsible,
            status=INVENTORY_STATUS_ACTIVE,
            started_at=utcnow(),
            progress_stores=0,
            progress_sectors=0,
            progress_suppliers=0,
        )
        db.session.add(inventory)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the race to a concurrent start; the partial unique index refused us.
            db.session.rollback()
            raise ConflictError("Another inventory was started concurrently")

        logger.info("Started inventory %s (responsible=%s)", inventory.code, responsible)
        return inventory

    with storage_guard("inventory.start"):
        return run_with_retry(_op)


def request_finalization(inventory_id: int, report_id: int, approver_name: str, *, require_complete: bool = True):
    """
    Close an inventory by approving its report.

    Returns:
        tuple[Inventory, FinalizationReport]

    Raises:
        ValidationError: approver or report id missing
        NotFoundError: inventory or report missing
        StateError: inventory not active, report not draft / not for this
            inventory, or report incomplete while require_complete is set
        StorageError / FinalizationRolledBackError: see finalization_service
    """
    approver_name = require_text(approver_name, "approver_name")
    if report_id is None:
        raise ValidationError("report_id is required")

    inventory = db.session.get(Inventory, inventory_id)
    if not inventory:
        raise NotFoundError(f"Inventory {inventory_id} not found")

    report = db.session.get(FinalizationReport, report_id)
    if not report:
        raise NotFoundError(f"Report {report_id} not found")

    if inventory.status != INVENTORY_STATUS_ACTIVE:
        raise StateError(f"Only active inventories can be finalized (inventory {inventory.code} is {inventory.status})")

    return finalization_service.finalize(
        inventory,
        report,
        approver_name,
        require_complete=require_complete,
    )
