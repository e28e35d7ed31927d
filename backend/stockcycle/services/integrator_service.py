# Overview: Best-effort ingestion of store counts captured by an external counting app.

"""
Records arrive in the external system's shape (loja_nome / ativo_nome /
quantidade, or the canonical names). Each one is written inside its own
SAVEPOINT so a bad record is reported and skipped without losing the rest.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from stockcycle.extensions import db
from stockcycle.models import CountEntry
from stockcycle.errors import PartialFailure, ValidationError
from stockcycle.services.concurrency import storage_guard
from stockcycle.services.count_service import CATEGORY_STORE
from stockcycle.services.inventory_service import require_active_inventory
from stockcycle.services.progress_service import refresh_progress, resolve_origin
from stockcycle.time_utils import utcnow
from stockcycle.validation import require_positive_int, require_text


logger = logging.getLogger(__name__)

INTEGRATOR_RESPONSIBLE = "integrador"

ASSET_FIELD_ALIASES = ("asset_type", "ativo", "ativo_nome")
QUANTITY_FIELD_ALIASES = ("quantity", "quantidade")


def _first_present(record: Mapping, names: tuple[str, ...]):
    for name in names:
        value = record.get(name)
        if value is not None and str(value).strip():
            return value
    return None


def parse_record(record) -> tuple[str, str, int]:
    """(origin, asset_type, quantity) from an external record."""
    if not isinstance(record, Mapping):
        raise ValidationError("Record must be an object")
    origin = resolve_origin(record) or _first_present(record, ("loja_nome",))
    return (
        require_text(origin, "origin"),
        require_text(_first_present(record, ASSET_FIELD_ALIASES), "asset_type"),
        require_positive_int(_first_present(record, QUANTITY_FIELD_ALIASES), "quantity"),
    )


def ingest_counts(
    inventory_id: int,
    records: Iterable,
    responsible: str = INTEGRATOR_RESPONSIBLE,
) -> tuple[list[CountEntry], list[PartialFailure]]:
    """
    Store each external record as a store count on an active inventory.

    Returns:
        (created entries, failures); flushed, not committed

    Raises:
        NotFoundError / StateError: inventory missing or not active
            (nothing is written)
    """
    responsible = require_text(responsible, "responsible")
    records = list(records or [])

    with storage_guard("integrator.ingest", inventory_id):
        require_active_inventory(inventory_id, action="ingest counts")

        created: list[CountEntry] = []
        failures: list[PartialFailure] = []
        for index, record in enumerate(records):
            try:
                origin, asset_type, quantity = parse_record(record)
            except ValidationError as exc:
                failures.append(PartialFailure(index, exc))
                continue

            savepoint = db.session.begin_nested()
            try:
                entry = CountEntry(
                    inventory_id=inventory_id,
                    category=CATEGORY_STORE,
                    origin=origin,
                    asset_type=asset_type,
                    quantity=quantity,
                    responsible=responsible,
                    counted_at=utcnow(),
                )
                db.session.add(entry)
                db.session.flush()
                savepoint.commit()
                created.append(entry)
            except SQLAlchemyError as exc:
                savepoint.rollback()
                failures.append(PartialFailure(index, exc))

        for failure in failures:
            logger.warning("Integrator record %d rejected: %s", failure.index, failure.cause)

        if created:
            refresh_progress(inventory_id)

    logger.info(
        "Integrator ingested %d/%d record(s) into inventory %s",
        len(created), len(records), inventory_id,
    )
    return created, failures
