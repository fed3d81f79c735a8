"""
Tests for the registry REST router.

Runs the full application (lifespan included) through FastAPI's TestClient.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from vero.config import RegistryConfig, VeroConfig
from vero.main import create_app

ADMIN = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
ALICE = "0xFFcf8FDEE72ac11b5c542428B35EEF5769C409f0"
BOB = "0x22d491Bde2303f2f43325b2108D26f1eAbA1e32b"


def as_(caller: str) -> dict[str, str]:
    return {"X-Vero-Caller": caller}


@pytest.fixture
def client():
    config = VeroConfig(registry=RegistryConfig(deployer=ADMIN))
    with TestClient(create_app(config)) as c:
        yield c


# ─── Tests: Issuance & Reads ──────────────────────────────────────


class TestIssuance:
    def test_create_and_read(self, client):
        resp = client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["data"]["token_id"] == 1
        assert body["data"]["events"][0]["event_type"] == "transfer"

        resp = client.get("/api/v1/certificates/1")
        data = resp.json()["data"]
        assert data["resource_ref"] == "u1"
        assert data["vero_status"] == "PENDING"
        assert data["vero_status_code"] == 0
        assert data["owner"] == ALICE
        assert data["approved"] is None

    def test_duplicate_maps_to_409(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        resp = client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(BOB))
        assert resp.status_code == 409
        assert resp.json() == {
            "status": "error",
            "error": {"kind": "DuplicateResource", "message": "resource 'u1' has already been issued"},
        }

    def test_missing_caller_header(self, client):
        resp = client.post("/api/v1/certificates", json={"resource_ref": "u1"})
        assert resp.status_code == 401

    def test_unknown_certificate_is_404(self, client):
        resp = client.get("/api/v1/certificates/5")
        assert resp.status_code == 404
        assert resp.json()["error"]["kind"] == "UnknownCertificate"

    def test_supply_and_account(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        supply = client.get("/api/v1/supply").json()["data"]
        assert supply == {"name": "VERO", "symbol": "w̥", "total_supply": 1}
        account = client.get(f"/api/v1/accounts/{ALICE}").json()["data"]
        assert account["balance"] == 1
        assert account["tokens"] == [1]


# ─── Tests: Verification ──────────────────────────────────────────


class TestVerification:
    def test_lifecycle(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))

        assert client.post("/api/v1/certificates/1/reject", headers=as_(ADMIN)).status_code == 200
        assert client.post("/api/v1/certificates/1/approve", headers=as_(ADMIN)).status_code == 200
        assert client.post("/api/v1/certificates/1/revoke", headers=as_(ADMIN)).status_code == 200

        resp = client.post("/api/v1/certificates/1/reject", headers=as_(ADMIN))
        assert resp.status_code == 409
        assert resp.json()["error"]["kind"] == "InvalidTransition"
        assert client.get("/api/v1/certificates/1").json()["data"]["vero_status"] == "REVOKED"

    def test_non_admin_forbidden(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        resp = client.post("/api/v1/certificates/1/approve", headers=as_(ALICE))
        assert resp.status_code == 403
        assert resp.json()["error"]["kind"] == "Unauthorized"


# ─── Tests: Admin & Pause ─────────────────────────────────────────


class TestAdminAndPause:
    def test_admin_handoff(self, client):
        resp = client.put("/api/v1/admin", json={"new_admin": BOB}, headers=as_(ADMIN))
        assert resp.status_code == 200
        assert client.get("/api/v1/admin").json()["data"] == {"admin": BOB, "paused": False}

    def test_invalid_admin_target(self, client):
        resp = client.put(
            "/api/v1/admin",
            json={"new_admin": "0x0000000000000000000000000000000000000000"},
            headers=as_(ADMIN),
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["kind"] == "InvalidAdminTarget"

    def test_padded_admin_target_rejected(self, client):
        resp = client.put("/api/v1/admin", json={"new_admin": BOB + " "}, headers=as_(ADMIN))
        assert resp.status_code == 422
        assert resp.json()["error"]["kind"] == "InvalidAdminTarget"

        assert client.get("/api/v1/admin").json()["data"]["admin"] == ADMIN
        assert client.post("/api/v1/pause", headers=as_(ADMIN)).status_code == 200
        assert client.post("/api/v1/unpause", headers=as_(ADMIN)).status_code == 200

    def test_pause_blocks_until_unpause(self, client):
        assert client.post("/api/v1/pause", headers=as_(ADMIN)).status_code == 200
        resp = client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        assert resp.status_code == 423
        assert resp.json()["error"]["kind"] == "SystemPaused"

        again = client.post("/api/v1/pause", headers=as_(ADMIN))
        assert again.json()["error"]["kind"] == "AlreadyInRequestedPauseState"

        assert client.post("/api/v1/unpause", headers=as_(ADMIN)).status_code == 200
        resp = client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        assert resp.status_code == 200

    def test_health_reports_pause(self, client):
        assert client.get("/health").json()["status"] == "healthy"
        client.post("/api/v1/pause", headers=as_(ADMIN))
        assert client.get("/health").json()["status"] == "paused"


# ─── Tests: Ledger ────────────────────────────────────────────────


class TestLedger:
    def test_delegate_then_transfer(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        resp = client.post("/api/v1/certificates/1/delegate", json={"spender": BOB}, headers=as_(ALICE))
        assert resp.status_code == 200
        assert client.get("/api/v1/certificates/1").json()["data"]["approved"] == BOB

        resp = client.post(
            "/api/v1/certificates/1/transfer",
            json={"from": ALICE, "to": BOB, "safe": True, "data": "memo"},
            headers=as_(BOB),
        )
        assert resp.status_code == 200
        data = client.get("/api/v1/certificates/1").json()["data"]
        assert data["owner"] == BOB
        assert data["approved"] is None

    def test_unauthorised_transfer(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        resp = client.post(
            "/api/v1/certificates/1/transfer",
            json={"from": ALICE, "to": BOB},
            headers=as_(BOB),
        )
        assert resp.status_code == 403

    def test_operator_approval(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        resp = client.post("/api/v1/operators", json={"operator": BOB}, headers=as_(ALICE))
        assert resp.status_code == 200
        assert resp.json()["data"]["events"][0]["event_type"] == "approval_for_all"

    def test_event_feed(self, client):
        client.post("/api/v1/certificates", json={"resource_ref": "u1"}, headers=as_(ALICE))
        client.post("/api/v1/certificates/1/approve", headers=as_(ADMIN))
        events = client.get("/api/v1/events").json()["data"]
        assert [e["event_type"] for e in events] == ["transfer", "vero_status_changed"]

        filtered = client.get("/api/v1/events", params={"event_type": "vero_status_changed"})
        assert len(filtered.json()["data"]) == 1

        latest = client.get("/api/v1/events", params={"limit": 1}).json()["data"]
        assert [e["event_type"] for e in latest] == ["vero_status_changed"]
