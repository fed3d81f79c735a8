"""
Vero — Registry REST Router

Exposes issuance, verification, admin handoff, pause control and the
ownership ledger. The caller's identity travels in the configured header
(X-Vero-Caller by default); every guard runs against that value.

Endpoints:
  POST /api/v1/certificates                   — issue at PENDING
  GET  /api/v1/certificates/{id}              — record, status, owner, delegate
  POST /api/v1/certificates/{id}/approve      — admin: → APPROVED
  POST /api/v1/certificates/{id}/reject       — admin: PENDING → REJECTED
  POST /api/v1/certificates/{id}/revoke       — admin: APPROVED → REVOKED
  POST /api/v1/certificates/{id}/transfer     — owner/delegate/operator transfer
  POST /api/v1/certificates/{id}/delegate     — set or clear delegate approval
  POST /api/v1/operators                      — set operator approval
  GET  /api/v1/admin                          — current admin
  PUT  /api/v1/admin                          — admin handoff
  POST /api/v1/pause | /api/v1/unpause        — admin: pause gate
  GET  /api/v1/accounts/{address}             — balance and held ids
  GET  /api/v1/supply                         — name, symbol, total supply
  GET  /api/v1/events                         — append-only event log

Registry rejections (VeroError) are mapped to error responses by the
handler registered in vero.main.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from vero.systems.registry.service import VeroService
from vero.systems.registry.types import Receipt, RegistryEventType

logger = structlog.get_logger("vero.api.registry")

router = APIRouter(prefix="/api/v1")


# ─── Request Bodies ───────────────────────────────────────────────


class CreateCertificateRequest(BaseModel):
    resource_ref: str


class TransferRequest(BaseModel):
    from_: str = Field(alias="from")
    to: str
    safe: bool = False
    data: str = ""

    model_config = {"populate_by_name": True}


class DelegateRequest(BaseModel):
    spender: str | None = None


class OperatorRequest(BaseModel):
    operator: str
    approved: bool = True


class ChangeAdminRequest(BaseModel):
    new_admin: str


# ─── Helpers ──────────────────────────────────────────────────────


def _service(request: Request) -> VeroService:
    service = getattr(request.app.state, "vero", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Vero not initialized")
    return service


def _caller(request: Request) -> str:
    header = request.app.state.config.server.caller_header
    caller = request.headers.get(header, "").strip()
    if not caller:
        raise HTTPException(status_code=401, detail=f"Missing {header} header")
    return caller


def _ok(receipt: Receipt) -> dict[str, Any]:
    return {"status": "ok", "data": receipt.model_dump(mode="json")}


# ─── Issuance & Verification ─────────────────────────────────────


@router.post("/certificates")
async def create_certificate(request: Request, body: CreateCertificateRequest) -> dict[str, Any]:
    """Issue a new certificate to the caller at PENDING."""
    receipt = await _service(request).create_as_pending(_caller(request), body.resource_ref)
    return _ok(receipt)


@router.get("/certificates/{token_id}")
async def get_certificate(request: Request, token_id: int) -> dict[str, Any]:
    registry = _service(request).registry
    cert = registry.certificate(token_id)
    return {
        "status": "ok",
        "data": {
            "token_id": cert.id,
            "resource_ref": cert.resource_ref,
            "vero_status": cert.status.name,
            "vero_status_code": int(cert.status),
            "owner": registry.owner_of(token_id),
            "approved": registry.get_approved(token_id),
        },
    }


@router.post("/certificates/{token_id}/approve")
async def approve_certificate(request: Request, token_id: int) -> dict[str, Any]:
    return _ok(await _service(request).approve_as_vero(_caller(request), token_id))


@router.post("/certificates/{token_id}/reject")
async def reject_certificate(request: Request, token_id: int) -> dict[str, Any]:
    return _ok(await _service(request).reject_as_vero(_caller(request), token_id))


@router.post("/certificates/{token_id}/revoke")
async def revoke_certificate(request: Request, token_id: int) -> dict[str, Any]:
    return _ok(await _service(request).revoke_as_vero(_caller(request), token_id))


# ─── Ownership Ledger ─────────────────────────────────────────────


@router.post("/certificates/{token_id}/transfer")
async def transfer_certificate(
    request: Request,
    token_id: int,
    body: TransferRequest,
) -> dict[str, Any]:
    service = _service(request)
    caller = _caller(request)
    if body.safe:
        receipt = await service.safe_transfer_from(
            caller, body.from_, body.to, token_id, body.data.encode("utf-8")
        )
    else:
        receipt = await service.transfer_from(caller, body.from_, body.to, token_id)
    return _ok(receipt)


@router.post("/certificates/{token_id}/delegate")
async def delegate_certificate(
    request: Request,
    token_id: int,
    body: DelegateRequest,
) -> dict[str, Any]:
    return _ok(await _service(request).approve(_caller(request), body.spender, token_id))


@router.post("/operators")
async def set_operator(request: Request, body: OperatorRequest) -> dict[str, Any]:
    receipt = await _service(request).set_approval_for_all(
        _caller(request), body.operator, body.approved
    )
    return _ok(receipt)


@router.get("/accounts/{address}")
async def get_account(request: Request, address: str) -> dict[str, Any]:
    registry = _service(request).registry
    return {
        "status": "ok",
        "data": {
            "address": address,
            "balance": registry.balance_of(address),
            "tokens": registry.tokens_of_owner(address),
        },
    }


@router.get("/supply")
async def get_supply(request: Request) -> dict[str, Any]:
    registry = _service(request).registry
    return {
        "status": "ok",
        "data": {
            "name": registry.name(),
            "symbol": registry.symbol(),
            "total_supply": registry.total_supply(),
        },
    }


# ─── Admin & Pause Gate ───────────────────────────────────────────


@router.get("/admin")
async def get_admin(request: Request) -> dict[str, Any]:
    service = _service(request)
    return {
        "status": "ok",
        "data": {"admin": service.get_vero_admin(), "paused": service.registry.paused},
    }


@router.put("/admin")
async def change_admin(request: Request, body: ChangeAdminRequest) -> dict[str, Any]:
    return _ok(await _service(request).change_vero_admin(_caller(request), body.new_admin))


@router.post("/pause")
async def pause(request: Request) -> dict[str, Any]:
    return _ok(await _service(request).pause(_caller(request)))


@router.post("/unpause")
async def unpause(request: Request) -> dict[str, Any]:
    return _ok(await _service(request).unpause(_caller(request)))


# ─── Event Log ────────────────────────────────────────────────────


@router.get("/events")
async def get_events(
    request: Request,
    event_type: RegistryEventType | None = None,
    limit: int = 100,
) -> dict[str, Any]:
    """Most recent committed events, oldest first."""
    events = _service(request).registry.events(event_type)
    if limit >= 0:
        events = events[-limit:] if limit else []
    return {
        "status": "ok",
        "data": [e.model_dump(mode="json") for e in events],
    }
