from __future__ import annotations
from datetime import datetime
from shiftsync.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.scheduling import SHIFT_STATUSES


# Maximum till amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer parsing: rejects bools, floats, decimals and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_cents(value: Any, field: str) -> int:
    """Parse a monetary amount in minor units. Must be a non-negative integer."""
    if value is None:
        raise ValidationError(f"{field} is required")
    cents = parse_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def parse_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 datetime")
        if dt is not None:
            return dt
    raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_coordinates(value: Any, field: str = "coordinates") -> tuple[float, float] | None:
    """
    Parse {"lat": .., "lng": ..} into a (lat, lng) pair. None passes through.
    """
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object with lat and lng")

    lat = value.get("lat")
    lng = value.get("lng")
    for name, raw in (("lat", lat), ("lng", lng)):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ValidationError(f"{field}.{name} must be a number")

    if not -90 <= lat <= 90:
        raise ValidationError(f"{field}.lat must be between -90 and 90")
    if not -180 <= lng <= 180:
        raise ValidationError(f"{field}.lng must be between -180 and 180")

    return float(lat), float(lng)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    if isinstance(coltype, Float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{col.key} must be a number")
        return float(value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        return parse_datetime(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
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

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_shift(patch: dict, *, start_time: datetime | None = None, end_time: datetime | None = None) -> None:
    """
    Shift window must be positive; status must be one of the known values.
    Existing values are passed in for partial updates.
    """
    start = patch.get("start_time", start_time)
    end = patch.get("end_time", end_time)
    if start is not None and end is not None and end <= start:
        raise ValidationError("end_time must be after start_time")

    if "status" in patch and patch["status"] not in SHIFT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SHIFT_STATUSES)}")


def optional_int(value: Any, field: str) -> int | None:
    """Query-string helper: None/"" -> None, otherwise strict int."""
    if value is None or value == "":
        return None
    return parse_int(value, field)


def optional_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    return parse_datetime(value, field)
