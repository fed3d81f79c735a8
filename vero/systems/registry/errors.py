"""
Vero — Registry Error Hierarchy

All exceptions raised by the verification registry and its ownership ledger.

Every error is a synchronous, local rejection. It is raised before any state
is mutated (or after the pre-call snapshot has been restored), so a caller
that sees one can rely on the registry being exactly as it was before the
call. Nothing here is retried automatically.

Each class carries:
  kind         — stable machine-readable name surfaced to API clients
  http_status  — status code the HTTP layer answers with

Precedence: SystemPausedError beats every other guard.
"""

from __future__ import annotations

from typing import ClassVar


class VeroError(RuntimeError):
    """Base for all registry and ledger rejections."""

    kind: ClassVar[str] = "VeroError"
    http_status: ClassVar[int] = 400


class SystemPausedError(VeroError):
    """A mutating call arrived while the Pause Gate is engaged."""

    kind = "SystemPaused"
    http_status = 423


class UnauthorizedError(VeroError):
    """
    Caller is not the current admin for an admin-only operation, or is
    neither owner, delegate nor operator for a ledger operation.
    """

    kind = "Unauthorized"
    http_status = 403


class DuplicateResourceError(VeroError):
    """The resource reference is already in the Uniqueness Index."""

    kind = "DuplicateResource"
    http_status = 409


class InvalidTransitionError(VeroError):
    """The status change is not permitted from the certificate's current status."""

    kind = "InvalidTransition"
    http_status = 409


class InvalidAdminTargetError(VeroError):
    """Proposed admin is the absent identity or the registry's own identity."""

    kind = "InvalidAdminTarget"
    http_status = 422


class AlreadyInRequestedPauseStateError(VeroError):
    """pause() while paused, or unpause() while unpaused."""

    kind = "AlreadyInRequestedPauseState"
    http_status = 409


class UnknownCertificateError(VeroError):
    """The referenced certificate id was never issued."""

    kind = "UnknownCertificate"
    http_status = 404


class InvalidAccountError(VeroError):
    """
    A counterparty account is unusable: the absent identity as recipient or
    balance subject, the owner as its own delegate, or the caller as its own
    operator.
    """

    kind = "InvalidAccount"
    http_status = 422


class TransferRejectedError(VeroError):
    """A safe-transfer receiver hook refused the certificate or failed."""

    kind = "TransferRejected"
    http_status = 409


class IndexOutOfBoundsError(VeroError):
    """Enumeration index past the end of the requested token list."""

    kind = "IndexOutOfBounds"
    http_status = 404
