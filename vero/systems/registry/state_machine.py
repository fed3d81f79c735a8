"""
Vero — Verification State Machine

States: PENDING (0), APPROVED (1), REJECTED (2), REVOKED (3).
New certificates start PENDING. There is no terminal state.

Transitions (admin only):
  approve — from any state except APPROVED → APPROVED
  reject  — from PENDING only              → REJECTED
  revoke  — from APPROVED only             → REVOKED

approve accepts REVOKED as a source, so a revoked certificate can be
re-approved.
"""

from __future__ import annotations

from dataclasses import dataclass

from vero.systems.registry.errors import InvalidTransitionError
from vero.systems.registry.types import VerificationAction, VeroStatus


@dataclass(frozen=True)
class TransitionRule:
    allowed_from: frozenset[VeroStatus]
    target: VeroStatus
    refusal: str


TRANSITIONS: dict[VerificationAction, TransitionRule] = {
    VerificationAction.APPROVE: TransitionRule(
        allowed_from=frozenset(s for s in VeroStatus if s is not VeroStatus.APPROVED),
        target=VeroStatus.APPROVED,
        refusal="certificate is already verified",
    ),
    VerificationAction.REJECT: TransitionRule(
        allowed_from=frozenset({VeroStatus.PENDING}),
        target=VeroStatus.REJECTED,
        refusal="only pending certificates can be rejected",
    ),
    VerificationAction.REVOKE: TransitionRule(
        allowed_from=frozenset({VeroStatus.APPROVED}),
        target=VeroStatus.REVOKED,
        refusal="only approved certificates can be revoked",
    ),
}


def can_transition(action: VerificationAction, current: VeroStatus) -> bool:
    return current in TRANSITIONS[action].allowed_from


def next_status(action: VerificationAction, current: VeroStatus) -> VeroStatus:
    """Return the status action leads to from current, or raise InvalidTransitionError."""
    rule = TRANSITIONS[action]
    if current not in rule.allowed_from:
        raise InvalidTransitionError(f"cannot {action.value} from {current.name}: {rule.refusal}")
    return rule.target
