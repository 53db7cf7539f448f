# src/daybook/errors.py

"""
Domain errors raised by the stores and gateways.

Expected conditions (missing ids, bad input) have their own catchable types so
callers can tell them apart from success and from real faults.
"""

from __future__ import annotations


class DaybookError(Exception):
    """Base class for every error raised by daybook."""


class NotFoundError(DaybookError, LookupError):
    def __init__(self, kind: str, entity_id: str | None) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class ValidationError(DaybookError, ValueError):
    """Missing or invalid fields on create/update."""


class PersistenceError(DaybookError):
    """Load or save against a persistence gateway failed."""


class UnexpectedError(DaybookError):
    """Stored data could not be decoded into entities (corruption)."""
