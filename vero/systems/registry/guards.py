"""
Vero — Registry Guards

Three small mechanisms gate every mutating call, each a set of pure
functions over RegistryState:

1. Pause Gate — a single boolean switch checked first by every mutating
   operation. While engaged nothing that writes succeeds, whoever calls.
   Reads are never gated.

2. Admin Role — exactly one admin identity at a time. Privileged guards
   compare the caller against state.admin as it is at call time, so a
   handoff takes effect for the very next call.

3. Uniqueness Index — every resource reference ever issued. Membership
   is permanent: transfers and status changes never release a reference.

Check-only functions raise and never mutate. Mutating functions validate
everything before they touch state.
"""

from __future__ import annotations

import structlog

from vero.primitives.common import is_absent
from vero.systems.registry.errors import (
    AlreadyInRequestedPauseStateError,
    DuplicateResourceError,
    InvalidAdminTargetError,
    SystemPausedError,
    UnauthorizedError,
)
from vero.systems.registry.types import RegistryState

logger = structlog.get_logger("vero.registry.guards")


# ─── Pause Gate ───────────────────────────────────────────────────


def require_unpaused(state: RegistryState) -> None:
    """Raise SystemPausedError if the gate is engaged."""
    if state.paused:
        raise SystemPausedError("registry is paused")


def pause(state: RegistryState, caller: str) -> None:
    require_admin(state, caller)
    if state.paused:
        raise AlreadyInRequestedPauseStateError("registry is already paused")
    state.paused = True
    logger.info("registry_paused", account=caller)


def unpause(state: RegistryState, caller: str) -> None:
    require_admin(state, caller)
    if not state.paused:
        raise AlreadyInRequestedPauseStateError("registry is not paused")
    state.paused = False
    logger.info("registry_unpaused", account=caller)


# ─── Admin Role ───────────────────────────────────────────────────


def is_admin(state: RegistryState, caller: str | None) -> bool:
    return caller is not None and caller == state.admin


def require_admin(state: RegistryState, caller: str | None) -> None:
    if not is_admin(state, caller):
        raise UnauthorizedError(f"caller {caller!r} is not the vero admin")


def validate_admin_target(new_admin: str | None, registry_address: str) -> None:
    """
    An admin is never the absent identity nor the registry itself, and
    carries no surrounding whitespace (callers are compared stripped).
    """
    if new_admin is None or is_absent(new_admin):
        raise InvalidAdminTargetError("new admin must not be the absent identity")
    if new_admin != new_admin.strip():
        raise InvalidAdminTargetError(f"new admin {new_admin!r} has surrounding whitespace")
    if new_admin == registry_address:
        raise InvalidAdminTargetError("new admin must not be the registry itself")


def change_admin(
    state: RegistryState,
    caller: str,
    new_admin: str,
    registry_address: str,
) -> str:
    """
    Hand the admin role to new_admin. Returns the previous admin.

    Caller must be the current admin. The gate is checked by the caller of
    this function, ahead of everything else.
    """
    require_admin(state, caller)
    validate_admin_target(new_admin, registry_address)
    previous = state.admin
    state.admin = new_admin
    logger.info("vero_admin_changed", previous_admin=previous, new_admin=new_admin)
    return previous


# ─── Uniqueness Index ─────────────────────────────────────────────


def require_unused(state: RegistryState, resource_ref: str) -> None:
    if resource_ref in state.used_resource_refs:
        raise DuplicateResourceError(f"resource {resource_ref!r} has already been issued")


def record_resource(state: RegistryState, resource_ref: str) -> None:
    state.used_resource_refs.add(resource_ref)
