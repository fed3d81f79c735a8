"""
Vero — Common Primitives

Shared base classes, identity helpers, and utilities used across all systems.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel
from ulid import ULID

# The null identity: no holder, no sender. Never a valid admin or recipient.
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def new_id() -> str:
    """Generate a new ULID string. Time-sortable, globally unique."""
    return str(ULID())


def utc_now() -> datetime:
    """Current UTC time, timezone-aware."""
    return datetime.now(timezone.utc)


def is_absent(identity: str | None) -> bool:
    """True for the absent identity: None, empty, or the all-zero address."""
    if identity is None:
        return True
    stripped = identity.strip()
    return stripped == "" or stripped.lower() == ZERO_ADDRESS


# ─── Base Models ──────────────────────────────────────────────────


class VeroBaseModel(BaseModel):
    """Base model for all Vero primitives."""

    model_config = {"populate_by_name": True, "from_attributes": True}
