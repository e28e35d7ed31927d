# Overview: Domain error taxonomy shared by services, routes and the CLI.

"""
Every error raised by the core carries an ``outcome`` so callers can tell
apart three situations:

- ``nothing_changed``: the request was rejected before any write
  (validation, conflict, state, not-found).
- ``rolled_back``: a multi-step write failed part way and was compensated.
- ``uncertain``: the storage backend failed and the persisted state must be
  verified manually.
"""
from __future__ import annotations


OUTCOME_NOTHING_CHANGED = "nothing_changed"
OUTCOME_ROLLED_BACK = "rolled_back"
OUTCOME_UNCERTAIN = "uncertain"


class InventoryError(Exception):
    """Base class for inventory domain errors."""

    outcome = OUTCOME_NOTHING_CHANGED


class ValidationError(InventoryError, ValueError):
    """400-level input problem (blank names, bad quantities, bad enums)."""


class ConflictError(InventoryError, ValueError):
    """409-level uniqueness violation (a second active inventory)."""


class StateError(InventoryError):
    """Operation attempted against an inventory or report in the wrong state."""


class NotFoundError(InventoryError, LookupError):
    """Referenced inventory, entry or report does not exist."""


class StorageError(InventoryError):
    """
    Underlying backend failure. Not retried by the core.

    ``operation`` and ``entity_id`` identify what was being written so the
    caller can decide whether to retry.
    """

    outcome = OUTCOME_UNCERTAIN

    def __init__(self, message: str, *, operation: str | None = None, entity_id=None, outcome: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.entity_id = entity_id
        if outcome is not None:
            self.outcome = outcome


class FinalizationRolledBackError(StorageError):
    """Report approval failed after the inventory was finalized; the inventory was restored."""

    outcome = OUTCOME_ROLLED_BACK


class PartialFailure(InventoryError):
    """One record of a best-effort batch failed; the others were kept."""

    def __init__(self, index: int, cause: Exception):
        super().__init__(f"Record {index} failed: {cause}")
        self.index = index
        self.cause = cause

    def to_dict(self) -> dict:
        return {"index": self.index, "error": str(self.cause)}
