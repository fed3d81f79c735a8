"""
Vero — Ownership Ledger

Standard non-fungible ownership semantics the registry drives and queries:
mint, owner/delegate/operator-authorised transfer, delegate approval,
operator approval, enumeration, and the safe-transfer receiver hook.

The ledger knows nothing about verification status, admins, or the pause
gate. VeroRegistry gates every mutating ledger call behind the Pause Gate
and otherwise defers entirely to the authorisation rules enforced here:
  - owner, approved delegate, or operator may transfer
  - owner or operator may set a delegate approval
  - a transfer clears the token's delegate approval

Every method validates before it mutates. The single exception is
safe_transfer_from: its receiver hook runs after the transfer's effects
are applied (so a reentrant call sees consistent state), and a refusal is
raised after the fact. Callers that need all-or-nothing semantics take a
snapshot() beforehand and restore() it on failure — VeroRegistry does.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

import structlog
from pydantic import Field

from vero.primitives.common import ZERO_ADDRESS, VeroBaseModel, is_absent
from vero.systems.registry.errors import (
    IndexOutOfBoundsError,
    InvalidAccountError,
    TransferRejectedError,
    UnauthorizedError,
    UnknownCertificateError,
    VeroError,
)
from vero.systems.registry.types import RegistryEventType

logger = structlog.get_logger("vero.registry.ledger")

# Sink for ledger events: (event_type, data) -> None
EventSink = Callable[[RegistryEventType, dict[str, Any]], None]


class TokenReceiver(Protocol):
    """
    An account that wants to vet incoming safe transfers.

    Return True to accept. False, or any exception, rejects the transfer.
    """

    def on_token_received(
        self,
        operator: str,
        from_: str,
        token_id: int,
        data: bytes,
    ) -> bool: ...


class LedgerState(VeroBaseModel):
    """All ownership bookkeeping. Copied wholesale by snapshot()."""

    owners: dict[int, str] = Field(default_factory=dict)
    balances: dict[str, int] = Field(default_factory=dict)
    token_approvals: dict[int, str] = Field(default_factory=dict)
    operator_approvals: dict[str, set[str]] = Field(default_factory=dict)
    all_tokens: list[int] = Field(default_factory=list)
    owned_tokens: dict[str, list[int]] = Field(default_factory=dict)


class OwnershipLedger:
    """
    In-memory non-fungible ownership ledger.

    Thread-safety: NOT thread-safe. The owning registry is the single writer.
    """

    def __init__(self, emit: EventSink | None = None) -> None:
        self._state = LedgerState()
        self._emit: EventSink = emit or (lambda _type, _data: None)
        self._receivers: dict[str, TokenReceiver] = {}
        self._logger = logger.bind(component="ownership_ledger")

    # ─── Receivers ───────────────────────────────────────────────────

    def register_receiver(self, address: str, receiver: TokenReceiver) -> None:
        """Mark address as a hooked account; safe transfers to it consult receiver."""
        self._receivers[address] = receiver

    def unregister_receiver(self, address: str) -> None:
        self._receivers.pop(address, None)

    # ─── Snapshots ───────────────────────────────────────────────────

    def snapshot(self) -> LedgerState:
        return self._state.model_copy(deep=True)

    def restore(self, snapshot: LedgerState) -> None:
        self._state = snapshot

    # ─── Reads ───────────────────────────────────────────────────────

    def exists(self, token_id: int) -> bool:
        return token_id in self._state.owners

    def require_exists(self, token_id: int) -> None:
        if token_id not in self._state.owners:
            raise UnknownCertificateError(f"certificate {token_id} does not exist")

    def owner_of(self, token_id: int) -> str:
        self.require_exists(token_id)
        return self._state.owners[token_id]

    def balance_of(self, owner: str) -> int:
        if is_absent(owner):
            raise InvalidAccountError("balance query for the absent identity")
        return self._state.balances.get(owner, 0)

    def supply(self) -> int:
        return len(self._state.all_tokens)

    def token_by_index(self, index: int) -> int:
        if index < 0 or index >= len(self._state.all_tokens):
            raise IndexOutOfBoundsError(f"global index {index} out of bounds")
        return self._state.all_tokens[index]

    def token_of_owner_by_index(self, owner: str, index: int) -> int:
        owned = self._state.owned_tokens.get(owner, [])
        if index < 0 or index >= len(owned):
            raise IndexOutOfBoundsError(f"owner index {index} out of bounds")
        return owned[index]

    def tokens_of_owner(self, owner: str) -> list[int]:
        return list(self._state.owned_tokens.get(owner, []))

    def get_approved(self, token_id: int) -> str | None:
        self.require_exists(token_id)
        return self._state.token_approvals.get(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return operator in self._state.operator_approvals.get(owner, set())

    def is_approved_or_owner(self, spender: str, token_id: int) -> bool:
        owner = self.owner_of(token_id)
        return (
            spender == owner
            or self._state.token_approvals.get(token_id) == spender
            or self.is_approved_for_all(owner, spender)
        )

    # ─── Writes ──────────────────────────────────────────────────────

    def mint(self, to: str, token_id: int) -> None:
        if is_absent(to):
            raise InvalidAccountError("cannot mint to the absent identity")
        if token_id in self._state.owners:
            raise VeroError(f"certificate {token_id} already minted")

        self._add_to_owner(to, token_id)
        self._state.all_tokens.append(token_id)
        self._emit(
            RegistryEventType.TRANSFER,
            {"from": ZERO_ADDRESS, "to": to, "token_id": token_id},
        )

    def approve(self, caller: str, spender: str | None, token_id: int) -> None:
        """Set (or with an absent spender, clear) the delegate for token_id."""
        owner = self.owner_of(token_id)
        if spender == owner:
            raise InvalidAccountError("owner cannot be its own delegate")
        if caller != owner and not self.is_approved_for_all(owner, caller):
            raise UnauthorizedError("caller is neither owner nor operator")

        if spender is None or is_absent(spender):
            self._state.token_approvals.pop(token_id, None)
            spender = ZERO_ADDRESS
        else:
            self._state.token_approvals[token_id] = spender
        self._emit(
            RegistryEventType.APPROVAL,
            {"owner": owner, "approved": spender, "token_id": token_id},
        )

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        if operator == caller:
            raise InvalidAccountError("caller cannot be its own operator")
        if is_absent(operator):
            raise InvalidAccountError("operator must not be the absent identity")

        operators = self._state.operator_approvals.setdefault(caller, set())
        if approved:
            operators.add(operator)
        else:
            operators.discard(operator)
        self._emit(
            RegistryEventType.APPROVAL_FOR_ALL,
            {"owner": caller, "operator": operator, "approved": approved},
        )

    def transfer_from(self, caller: str, from_: str, to: str, token_id: int) -> None:
        owner = self.owner_of(token_id)
        if not self.is_approved_or_owner(caller, token_id):
            raise UnauthorizedError("caller is not owner, delegate, or operator")
        if from_ != owner:
            raise UnauthorizedError(f"certificate {token_id} is not owned by {from_!r}")
        if is_absent(to):
            raise InvalidAccountError("cannot transfer to the absent identity")

        self._state.token_approvals.pop(token_id, None)
        self._remove_from_owner(from_, token_id)
        self._add_to_owner(to, token_id)
        self._emit(RegistryEventType.TRANSFER, {"from": from_, "to": to, "token_id": token_id})

    def safe_transfer_from(
        self,
        caller: str,
        from_: str,
        to: str,
        token_id: int,
        data: bytes = b"",
    ) -> None:
        """
        Transfer, then let a hooked recipient vet the arrival.

        Effects are applied before the hook runs. A refusal raises with the
        transfer still applied; see the module docstring.
        """
        self.transfer_from(caller, from_, to, token_id)

        receiver = self._receivers.get(to)
        if receiver is None:
            return

        try:
            accepted = receiver.on_token_received(caller, from_, token_id, data)
        except VeroError:
            raise
        except Exception as exc:
            self._logger.warning(
                "receiver_hook_failed",
                to=to,
                token_id=token_id,
                error=str(exc),
            )
            raise TransferRejectedError(f"receiver {to!r} failed: {exc}") from exc

        if accepted is not True:
            self._logger.warning("receiver_hook_refused", to=to, token_id=token_id)
            raise TransferRejectedError(f"receiver {to!r} refused certificate {token_id}")

    # ─── Internal ────────────────────────────────────────────────────

    def _add_to_owner(self, owner: str, token_id: int) -> None:
        self._state.owners[token_id] = owner
        self._state.balances[owner] = self._state.balances.get(owner, 0) + 1
        self._state.owned_tokens.setdefault(owner, []).append(token_id)

    def _remove_from_owner(self, owner: str, token_id: int) -> None:
        self._state.balances[owner] -= 1
        self._state.owned_tokens[owner].remove(token_id)
        del self._state.owners[token_id]
