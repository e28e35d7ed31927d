# Overview: Shared JSON error mapping and commit helper for the API routes.

from __future__ import annotations

from flask import jsonify

from ..errors import (
    ConflictError,
    InventoryError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ..extensions import db
from ..services.concurrency import storage_guard
from ..validation import coerce_int


def error_response(exc: InventoryError):
    """Map a domain error to (json, status)."""
    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, ConflictError):
        status = 409
    elif isinstance(exc, StorageError):
        status = 500
    else:
        status = 400

    body = {"error": str(exc), "outcome": exc.outcome}
    if isinstance(exc, StorageError):
        body["operation"] = exc.operation
    return jsonify(body), status


def commit(operation: str, entity_id=None) -> None:
    """Commit the request's writes; storage failures surface as StorageError."""
    with storage_guard(f"{operation}.commit", entity_id):
        db.session.commit()


def require_id(data: dict, field: str) -> int:
    value = data.get(field)
    if value is None:
        raise ValidationError(f"{field} is required")
    return coerce_int(value, field)
