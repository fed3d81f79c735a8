"""
Vero — Registry Type Definitions

All data types for the verification registry: certificate records, the
verification status lattice, the shared registry state, and the structured
event records every mutating call produces.

Design notes:
- RegistryState is the single explicit state cell. Guards and transitions
  are pure functions over it; nothing lives in module globals.
- CertificateToken owns id and resource_ref. The current holder is owned by
  the Ownership Ledger and is never duplicated here.
- Receipt is what a mutating call hands back: its return value plus the
  events it appended to the registry's log.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import Field

from vero.primitives.common import VeroBaseModel, new_id, utc_now

# ─── Enums ────────────────────────────────────────────────────────


class VeroStatus(int, enum.Enum):
    """Verification status of a certificate. Ordinals are part of the contract."""

    PENDING = 0
    APPROVED = 1
    REJECTED = 2
    REVOKED = 3


class VerificationAction(enum.StrEnum):
    """Admin-only status operations."""

    APPROVE = "approve"
    REJECT = "reject"
    REVOKE = "revoke"


class RegistryEventType(enum.StrEnum):
    """All event types emitted by the registry and its ledger."""

    # Ownership ledger
    TRANSFER = "transfer"
    APPROVAL = "approval"
    APPROVAL_FOR_ALL = "approval_for_all"

    # Verification
    VERO_STATUS_CHANGED = "vero_status_changed"
    VERO_ADMIN_CHANGED = "vero_admin_changed"


# ─── Records ──────────────────────────────────────────────────────


class CertificateToken(VeroBaseModel):
    """One issued certificate. resource_ref is set once at issuance."""

    id: int
    resource_ref: str = Field(frozen=True)
    status: VeroStatus = VeroStatus.PENDING


class RegistryState(VeroBaseModel):
    """
    The registry's whole mutable state, passed explicitly into every guard.

    next_id only ever increases; used_resource_refs only ever grows.
    """

    admin: str
    paused: bool = False
    next_id: int = 1
    used_resource_refs: set[str] = Field(default_factory=set)
    certificates: dict[int, CertificateToken] = Field(default_factory=dict)

    @property
    def issued_count(self) -> int:
        return self.next_id - 1


class RegistryEvent(VeroBaseModel):
    """A structured event appended to the registry's log."""

    id: str = Field(default_factory=new_id)
    event_type: RegistryEventType
    sequence: int = 0
    timestamp: datetime = Field(default_factory=utc_now)
    data: dict[str, Any] = Field(default_factory=dict)


class Receipt(VeroBaseModel):
    """Outcome of a committed mutating call."""

    token_id: int | None = None
    events: list[RegistryEvent] = Field(default_factory=list)

    def of_type(self, event_type: RegistryEventType) -> list[RegistryEvent]:
        return [e for e in self.events if e.event_type == event_type]
