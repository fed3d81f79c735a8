"""
Vero — Verification Registry

VeroRegistry is the single-writer facade over the whole system. Every
operation takes the caller's identity explicitly and runs as one atomic
step in a fixed order:

  Pause Gate → Admin Role (privileged ops) → existence / transition /
  uniqueness checks → registry mutation → ledger mutation → events

All guards run before the first write, so a rejected call leaves no trace.
The one call with an external interaction, safe_transfer_from, applies all
of its effects before the recipient's hook runs and restores a snapshot of
registry state, ledger state and event log if the hook refuses.

Each mutating call returns a Receipt holding the events it appended to the
append-only log, including events from reentrant calls made by a hook.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from vero.primitives.common import is_absent
from vero.systems.registry import guards
from vero.systems.registry.errors import (
    InvalidAccountError,
    UnknownCertificateError,
    VeroError,
)
from vero.systems.registry.ledger import LedgerState, OwnershipLedger
from vero.systems.registry.state_machine import next_status
from vero.systems.registry.types import (
    CertificateToken,
    Receipt,
    RegistryEvent,
    RegistryEventType,
    RegistryState,
    VerificationAction,
    VeroStatus,
)

logger = structlog.get_logger("vero.registry")

DEFAULT_NAME = "VERO"
DEFAULT_SYMBOL = "w̥"


def derive_registry_address(deployer: str) -> str:
    """Deterministic registry identity for a deployer (40 hex chars, 0x-prefixed)."""
    digest = hashlib.sha256(f"vero-registry:{deployer}".encode("utf-8")).hexdigest()
    return "0x" + digest[:40]


class VeroRegistry:
    """
    Non-fungible certificate registry with an admin-controlled
    verification lifecycle.

    Thread-safety: NOT thread-safe. Serialise calls externally
    (VeroService holds a lock for this).
    """

    def __init__(
        self,
        deployer: str,
        address: str | None = None,
        name: str = DEFAULT_NAME,
        symbol: str = DEFAULT_SYMBOL,
    ) -> None:
        self._address = address or derive_registry_address(deployer)
        guards.validate_admin_target(deployer, self._address)

        self._name = name
        self._symbol = symbol
        self._state = RegistryState(admin=deployer)
        self._events: list[RegistryEvent] = []
        self._ledger = OwnershipLedger(emit=self._emit)
        self._logger = logger.bind(component="registry", registry=self._address)

    # ─── Properties ──────────────────────────────────────────────────

    @property
    def address(self) -> str:
        """The registry's own identity. Never a valid admin."""
        return self._address

    @property
    def ledger(self) -> OwnershipLedger:
        return self._ledger

    @property
    def paused(self) -> bool:
        return self._state.paused

    def name(self) -> str:
        return self._name

    def symbol(self) -> str:
        return self._symbol

    # ─── Issuance ────────────────────────────────────────────────────

    def create_as_pending(self, caller: str, resource_ref: str) -> Receipt:
        """Issue the next certificate to caller, referencing resource_ref, at PENDING."""
        with self._operation("create_as_pending", caller, resource_ref=resource_ref):
            guards.require_unpaused(self._state)
            guards.require_unused(self._state, resource_ref)
            if is_absent(caller):
                raise InvalidAccountError("cannot issue to the absent identity")

            mark = len(self._events)
            token_id = self._state.next_id
            self._state.next_id += 1
            guards.record_resource(self._state, resource_ref)
            self._state.certificates[token_id] = CertificateToken(
                id=token_id,
                resource_ref=resource_ref,
            )
            self._ledger.mint(caller, token_id)

            self._logger.info(
                "certificate_issued",
                token_id=token_id,
                owner=caller,
                resource_ref=resource_ref,
            )
            return self._receipt(mark, token_id=token_id)

    # ─── Verification ────────────────────────────────────────────────

    def approve_as_vero(self, caller: str, token_id: int) -> Receipt:
        return self._transition(caller, token_id, VerificationAction.APPROVE)

    def reject_as_vero(self, caller: str, token_id: int) -> Receipt:
        return self._transition(caller, token_id, VerificationAction.REJECT)

    def revoke_as_vero(self, caller: str, token_id: int) -> Receipt:
        return self._transition(caller, token_id, VerificationAction.REVOKE)

    def get_vero_status(self, token_id: int) -> VeroStatus:
        return self._require_certificate(token_id).status

    def certificate(self, token_id: int) -> CertificateToken:
        return self._require_certificate(token_id).model_copy()

    def _transition(
        self,
        caller: str,
        token_id: int,
        action: VerificationAction,
    ) -> Receipt:
        with self._operation(f"{action.value}_as_vero", caller, token_id=token_id):
            guards.require_unpaused(self._state)
            guards.require_admin(self._state, caller)
            cert = self._require_certificate(token_id)
            previous = cert.status
            target = next_status(action, previous)

            mark = len(self._events)
            cert.status = target
            self._emit(
                RegistryEventType.VERO_STATUS_CHANGED,
                {
                    "admin": caller,
                    "token_id": token_id,
                    "previous_status": int(previous),
                    "new_status": int(target),
                },
            )
            self._logger.info(
                "vero_status_changed",
                token_id=token_id,
                previous_status=previous.name,
                new_status=target.name,
                admin=caller,
            )
            return self._receipt(mark, token_id=token_id)

    # ─── Admin Role ──────────────────────────────────────────────────

    def get_vero_admin(self) -> str:
        return self._state.admin

    def change_vero_admin(self, caller: str, new_admin: str) -> Receipt:
        with self._operation("change_vero_admin", caller, new_admin=new_admin):
            guards.require_unpaused(self._state)
            mark = len(self._events)
            previous = guards.change_admin(self._state, caller, new_admin, self._address)
            self._emit(
                RegistryEventType.VERO_ADMIN_CHANGED,
                {"previous_admin": previous, "new_admin": new_admin},
            )
            return self._receipt(mark)

    # ─── Pause Gate ──────────────────────────────────────────────────

    def pause(self, caller: str) -> Receipt:
        with self._operation("pause", caller):
            mark = len(self._events)
            guards.pause(self._state, caller)
            return self._receipt(mark)

    def unpause(self, caller: str) -> Receipt:
        with self._operation("unpause", caller):
            mark = len(self._events)
            guards.unpause(self._state, caller)
            return self._receipt(mark)

    # ─── Ownership Ledger (reads) ────────────────────────────────────

    def token_uri(self, token_id: int) -> str:
        return self._require_certificate(token_id).resource_ref

    def total_supply(self) -> int:
        return self._ledger.supply()

    def owner_of(self, token_id: int) -> str:
        return self._ledger.owner_of(token_id)

    def balance_of(self, owner: str) -> int:
        return self._ledger.balance_of(owner)

    def get_approved(self, token_id: int) -> str | None:
        return self._ledger.get_approved(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._ledger.is_approved_for_all(owner, operator)

    def token_by_index(self, index: int) -> int:
        return self._ledger.token_by_index(index)

    def token_of_owner_by_index(self, owner: str, index: int) -> int:
        return self._ledger.token_of_owner_by_index(owner, index)

    def tokens_of_owner(self, owner: str) -> list[int]:
        return self._ledger.tokens_of_owner(owner)

    # ─── Ownership Ledger (writes, gated) ────────────────────────────

    def approve(self, caller: str, spender: str | None, token_id: int) -> Receipt:
        with self._operation("approve", caller, token_id=token_id):
            guards.require_unpaused(self._state)
            mark = len(self._events)
            self._ledger.approve(caller, spender, token_id)
            return self._receipt(mark, token_id=token_id)

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> Receipt:
        with self._operation("set_approval_for_all", caller, operator=operator):
            guards.require_unpaused(self._state)
            mark = len(self._events)
            self._ledger.set_approval_for_all(caller, operator, approved)
            return self._receipt(mark)

    def transfer_from(self, caller: str, from_: str, to: str, token_id: int) -> Receipt:
        with self._operation("transfer_from", caller, token_id=token_id, to=to):
            guards.require_unpaused(self._state)
            mark = len(self._events)
            self._ledger.transfer_from(caller, from_, to, token_id)
            return self._receipt(mark, token_id=token_id)

    def safe_transfer_from(
        self,
        caller: str,
        from_: str,
        to: str,
        token_id: int,
        data: bytes = b"",
    ) -> Receipt:
        with self._operation("safe_transfer_from", caller, token_id=token_id, to=to):
            guards.require_unpaused(self._state)
            mark = len(self._events)
            saved = self._snapshot()
            try:
                self._ledger.safe_transfer_from(caller, from_, to, token_id, data)
            except Exception:
                self._restore(saved, mark)
                raise
            return self._receipt(mark, token_id=token_id)

    # ─── Event Log ───────────────────────────────────────────────────

    def events(self, event_type: RegistryEventType | None = None) -> list[RegistryEvent]:
        """The append-only log, oldest first, optionally filtered by type."""
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e.event_type == event_type]

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "address": self._address,
            "admin": self._state.admin,
            "paused": self._state.paused,
            "issued": self._state.issued_count,
            "total_supply": self._ledger.supply(),
            "events": len(self._events),
            "status_counts": {
                s.name: sum(1 for c in self._state.certificates.values() if c.status is s)
                for s in VeroStatus
            },
        }

    # ─── Internal ────────────────────────────────────────────────────

    def _require_certificate(self, token_id: int) -> CertificateToken:
        cert = self._state.certificates.get(token_id)
        if cert is None:
            raise UnknownCertificateError(f"certificate {token_id} does not exist")
        return cert

    def _emit(self, event_type: RegistryEventType, data: dict[str, Any]) -> None:
        self._events.append(
            RegistryEvent(event_type=event_type, sequence=len(self._events), data=data)
        )

    def _receipt(self, mark: int, token_id: int | None = None) -> Receipt:
        return Receipt(token_id=token_id, events=self._events[mark:])

    def _snapshot(self) -> tuple[RegistryState, LedgerState]:
        return self._state.model_copy(deep=True), self._ledger.snapshot()

    def _restore(self, saved: tuple[RegistryState, LedgerState], mark: int) -> None:
        state, ledger_state = saved
        self._state = state
        self._ledger.restore(ledger_state)
        del self._events[mark:]
        self._logger.info("operation_rolled_back", events_discarded_from=mark)

    @contextmanager
    def _operation(self, name: str, caller: str | None, **context: Any) -> Iterator[None]:
        """Log every rejection with its kind, then let it propagate."""
        try:
            yield
        except VeroError as exc:
            self._logger.warning(
                "operation_rejected",
                operation=name,
                caller=caller,
                error_kind=exc.kind,
                error=str(exc),
                **context,
            )
            raise
