# src/daybook/core/fields.py

"""Small coercion helpers shared by the task and habit stores and the codec."""

from __future__ import annotations

from datetime import date, datetime, time
from enum import StrEnum
from typing import TypeVar

from ..errors import ValidationError

E = TypeVar("E", bound=StrEnum)


def parse_enum(enum_cls: type[E], raw: object, field_name: str) -> E:
    """Coerce `raw` into `enum_cls`, raising ValidationError on unknown values."""
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed} (got {raw!r})") from None


def require_text(raw: object, field_name: str) -> str:
    if raw is None or not str(raw).strip():
        raise ValidationError(f"{field_name} is required")
    return str(raw).strip()


def as_day(value: date | datetime) -> date:
    """Calendar day of `value`; time of day is dropped."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"expected a date, got {value!r}")


def as_local_datetime(value: date | datetime) -> datetime:
    """
    Naive local datetime for `value`.

    Aware datetimes are converted to local time; a plain date becomes midnight.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise ValidationError(f"expected a date or datetime, got {value!r}")
