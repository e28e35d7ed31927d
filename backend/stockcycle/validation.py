from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer for patch payloads:
    - writable_fields: what clients are allowed to set
    - immutable_fields: known columns that are rejected with a clearer message
    """
    writable_fields: set[str]
    immutable_fields: set[str] = frozenset()  # type: ignore[assignment]


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_text(value: Any, field: str) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} cannot be blank")
    return text


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_positive_int(value: Any, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return number


def require_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(f"Invalid {field} '{value}'. Must be one of: {', '.join(allowed)}")
    return value


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_patch(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
) -> dict:
    """
    Validates + normalizes a partial update against column metadata and policy.

    Returns a cleaned patch dict with only writable fields. Unknown, immutable
    or non-writable keys are rejected rather than ignored.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k in policy.immutable_fields:
            raise ValidationError(f"Field cannot be changed after creation: {k}")
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch
