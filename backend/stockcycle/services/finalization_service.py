# backend/stockcycle/services/finalization_service.py
"""
Finalization gate: inventory -> finalized and report -> approved, jointly.

The draft is rebuilt from the live ledger before the completeness checks, so
the approved report always matches the counts and transits it closes.

The two writes are committed one after the other, with an explicit
compensating write instead of a shared transaction:

    1. inventory.status = finalized, ended_at = now        (commit)
       failure -> StorageError, nothing else happens
    2. report.status = approved, approved_by, approved_at  (commit)
       failure -> revert inventory to active / ended_at NULL (commit)
                  and raise FinalizationRolledBackError
                  if the revert fails too -> StorageError (state uncertain)

Readers can observe a finalized inventory with a draft report only for the
duration of the compensating write.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from stockcycle.extensions import db
from stockcycle.models import REPORT_STATUS_APPROVED, REPORT_STATUS_DRAFT, Inventory, FinalizationReport
from stockcycle.errors import OUTCOME_NOTHING_CHANGED, FinalizationRolledBackError, StateError, StorageError
from stockcycle.services import report_service
from stockcycle.time_utils import utcnow


logger = logging.getLogger(__name__)


def incomplete_checks(report: FinalizationReport) -> list[str]:
    """Names of the closing checks a report does not pass."""
    failed = []
    if not report.all_stores_counted:
        pending = sum(len(stores) for stores in (report.pending_stores or {}).values())
        failed.append(f"{pending} store(s) without counts")
    if report.suppliers_missing:
        failed.append("no supplier counts")
    if not report.has_transit:
        failed.append("no transit records")
    return failed


def _mark_inventory_finalized(inventory: Inventory, now) -> None:
    inventory.status = "finalized"
    inventory.ended_at = now
    db.session.commit()


def _approve_report(report: FinalizationReport, approver_name: str, now) -> None:
    report.status = REPORT_STATUS_APPROVED
    report.approved_by = approver_name
    report.approved_at = now
    db.session.commit()


def _revert_inventory(inventory_id: int) -> Inventory:
    inventory = db.session.get(Inventory, inventory_id)
    inventory.status = "active"
    inventory.ended_at = None
    db.session.commit()
    return inventory


def finalize(
    inventory: Inventory,
    report: FinalizationReport,
    approver_name: str,
    *,
    require_complete: bool = True,
) -> tuple[Inventory, FinalizationReport]:
    if report.inventory_id != inventory.id:
        raise StateError(f"Report {report.id} does not belong to inventory {inventory.id}")
    if report.status != REPORT_STATUS_DRAFT:
        raise StateError(f"Report {report.id} is already {report.status}")

    # Counts or transits may have changed since the draft was generated.
    report, _ = report_service.generate_report(inventory.id)

    if require_complete:
        failed = incomplete_checks(report)
        if failed:
            raise StateError("Report is incomplete: " + "; ".join(failed))

    inventory_id = inventory.id
    report_id = report.id
    now = utcnow()

    # Step 1
    try:
        _mark_inventory_finalized(inventory, now)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Finalizing inventory %s failed: %s", inventory_id, exc)
        raise StorageError(
            "Could not finalize inventory",
            operation="inventory.finalize",
            entity_id=inventory_id,
            outcome=OUTCOME_NOTHING_CHANGED,
        ) from exc

    # Step 2, compensating step 1 on failure
    try:
        _approve_report(report, approver_name, now)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.warning(
            "Approving report %s failed, reverting inventory %s to active: %s",
            report_id, inventory_id, exc,
        )
        try:
            _revert_inventory(inventory_id)
        except SQLAlchemyError as revert_exc:
            db.session.rollback()
            logger.critical(
                "Compensation failed: inventory %s left finalized without an approved report: %s",
                inventory_id, revert_exc,
            )
            raise StorageError(
                "Report approval failed and the inventory could not be reverted; verify state manually",
                operation="inventory.finalize.compensate",
                entity_id=inventory_id,
            ) from revert_exc
        raise FinalizationRolledBackError(
            "Report approval failed; inventory finalization was rolled back",
            operation="report.approve",
            entity_id=report_id,
        ) from exc

    logger.info("Inventory %s finalized, report %s approved by %s", inventory_id, report_id, approver_name)
    return inventory, report
