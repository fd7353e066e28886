"""Identifier and timestamp helpers shared by the domain models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def generate_id() -> str:
    """Opaque job/record id: a random UUID4 string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


def isoformat(value: datetime | None) -> str | None:
    """Render *value* as UTC ISO-8601 with a ``Z`` suffix.

    Naive datetimes are taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
