from __future__ import annotations
import math
import re

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, Float, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 99,99,99,999.99 (fits Numeric(12, 2))
MAX_AMOUNT = 9_999_999_999.99

GSTIN_LENGTH = 15
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary),
      named by their wire (camelCase) key
    - required_on_create: wire keys required for POST
    - field_aliases: wire key -> column key where they differ
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    field_aliases: dict[str, str] = field(default_factory=dict)

    def column_for(self, key: str) -> str:
        return self.field_aliases.get(key, key)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_number(value: Any, label: str) -> float:
    """
    Accept ints, floats and numeric strings; reject bools, NaN and infinity.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{label} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{label} must be a number")
        try:
            number = float(stripped)
        except ValueError:
            raise ValidationError(f"{label} must be a number")
    else:
        raise ValidationError(f"{label} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{label} must be a finite number")
    return number


def coerce_int(value: Any, label: str) -> int:
    # Integers - strict validation to reject floats and scientific notation
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{label} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{label} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{label} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{label} must be an integer")
    # Whole-number floats come from JSON clients that send 4.0
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, float):
        raise ValidationError(f"{label} must be an integer, not a decimal")
    raise ValidationError(f"{label} must be an integer")


def coerce_bool(value: Any) -> bool:
    """Query-string style booleans: "true"/"1"/"yes" are true."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, label)

    if isinstance(coltype, (Numeric, Float)):
        return round(coerce_number(value, label), 2)

    # Booleans
    if isinstance(coltype, Boolean):
        return coerce_bool(value)

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
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if policy.column_for(k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = policy.column_for(k)
        col = cols[key]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, raw, k)

        # Blank strings on nullable columns are stored as NULL
        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "name" in patch and len(patch["name"]) < 2:
        raise ValidationError("Product name must be at least 2 characters")
    if "category" in patch and len(patch["category"]) < 2:
        raise ValidationError("Category must be at least 2 characters")

    if "price" in patch:
        price = patch["price"]
        if price < 0:
            raise ValidationError("Price must be at least 0")
        if price > MAX_AMOUNT:
            raise ValidationError(f"Price cannot exceed {MAX_AMOUNT:,.2f}")

    for key, label in (("stock", "Stock quantity"), ("min_stock_level", "Minimum stock level")):
        if key in patch and patch[key] < 0:
            raise ValidationError(f"{label} must be at least 0")

    for key in ("cgst", "sgst"):
        if key in patch and not 0 <= patch[key] <= 100:
            raise ValidationError(f"{key.upper()} must be between 0 and 100")


def enforce_rules_contact(patch: dict) -> None:
    if "name" in patch and len(patch["name"]) < 2:
        raise ValidationError("Name must be at least 2 characters")
    if "phone" in patch and len(patch["phone"]) < 10:
        raise ValidationError("Phone number must be at least 10 digits")
    if patch.get("email") and not EMAIL_RE.match(patch["email"]):
        raise ValidationError("Invalid email address")
    if patch.get("gstin") and len(patch["gstin"]) != GSTIN_LENGTH:
        raise ValidationError(f"GSTIN must be {GSTIN_LENGTH} characters")
