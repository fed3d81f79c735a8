"""Tests for the VeroService orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from vero.config import EventBusConfig, RegistryConfig
from vero.systems.registry.errors import (
    SystemPausedError,
    TransferRejectedError,
    UnauthorizedError,
)
from vero.systems.registry.service import VeroService
from vero.systems.registry.types import RegistryEvent, RegistryEventType, VeroStatus

ADMIN = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
ALICE = "0xFFcf8FDEE72ac11b5c542428B35EEF5769C409f0"
BOB = "0x22d491Bde2303f2f43325b2108D26f1eAbA1e32b"


async def make_service(**registry_kwargs) -> VeroService:
    svc = VeroService()
    await svc.initialize(RegistryConfig(deployer=ADMIN, **registry_kwargs), EventBusConfig())
    return svc


class TestVeroService:
    @pytest.mark.asyncio
    async def test_initialization(self):
        svc = await make_service()
        assert svc._initialized is True
        assert svc.get_vero_admin() == ADMIN

    @pytest.mark.asyncio
    async def test_configured_address_and_symbol(self):
        svc = await make_service(address="0xe78A0F7E598Cc8b0Bb87894B0F60dD2a88d6a8Ab", symbol="VRO")
        assert svc.registry.address == "0xe78A0F7E598Cc8b0Bb87894B0F60dD2a88d6a8Ab"
        assert svc.registry.symbol() == "VRO"

    @pytest.mark.asyncio
    async def test_registry_before_initialize_raises(self):
        svc = VeroService()
        with pytest.raises(RuntimeError, match="not initialized"):
            _ = svc.registry

    @pytest.mark.asyncio
    async def test_operations_publish_events(self):
        svc = await make_service()
        received: list[RegistryEvent] = []

        async def on_event(event: RegistryEvent) -> None:
            received.append(event)

        svc.event_bus.subscribe(on_event)
        receipt = await svc.create_as_pending(ALICE, "u1")
        await svc.approve_as_vero(ADMIN, receipt.token_id)

        assert [e.event_type for e in received] == [
            RegistryEventType.TRANSFER,
            RegistryEventType.VERO_STATUS_CHANGED,
        ]
        assert svc.get_vero_status(1) is VeroStatus.APPROVED

    @pytest.mark.asyncio
    async def test_rejections_publish_nothing(self):
        svc = await make_service()
        received: list[RegistryEvent] = []

        async def on_event(event: RegistryEvent) -> None:
            received.append(event)

        svc.event_bus.subscribe(on_event)
        await svc.create_as_pending(ALICE, "u1")
        received.clear()
        with pytest.raises(UnauthorizedError):
            await svc.approve_as_vero(ALICE, 1)
        assert received == []
        assert svc.stats["calls_rejected"] == 1
        assert svc.stats["calls_committed"] == 1

    @pytest.mark.asyncio
    async def test_rolled_back_transfer_publishes_nothing(self):
        svc = await make_service()
        await svc.create_as_pending(ALICE, "u1")
        transfers: list[RegistryEvent] = []

        async def on_transfer(event: RegistryEvent) -> None:
            transfers.append(event)

        class _Refuses:
            def on_token_received(self, operator, from_, token_id, data):
                return False

        svc.event_bus.subscribe(on_transfer, RegistryEventType.TRANSFER)
        svc.registry.ledger.register_receiver(BOB, _Refuses())
        with pytest.raises(TransferRejectedError):
            await svc.safe_transfer_from(ALICE, ALICE, BOB, 1)

        assert transfers == []
        assert svc.registry.owner_of(1) == ALICE
        assert svc.event_bus.stats["published"] == 1  # only the issuance

    @pytest.mark.asyncio
    async def test_concurrent_issuance_is_serialised(self):
        svc = await make_service()
        receipts = await asyncio.gather(
            *(svc.create_as_pending(ALICE, f"ref-{i}") for i in range(20))
        )
        assert sorted(r.token_id for r in receipts) == list(range(1, 21))
        assert svc.registry.total_supply() == 20

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_only_one_wins(self):
        svc = await make_service()
        results = await asyncio.gather(
            *(svc.create_as_pending(ALICE, "same") for _ in range(5)),
            return_exceptions=True,
        )
        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert svc.registry.total_supply() == 1

    @pytest.mark.asyncio
    async def test_pause_cycle_and_admin_handoff(self):
        svc = await make_service()
        await svc.pause(ADMIN)
        with pytest.raises(SystemPausedError):
            await svc.create_as_pending(ALICE, "u1")
        await svc.unpause(ADMIN)
        await svc.create_as_pending(ALICE, "u1")
        await svc.change_vero_admin(ADMIN, BOB)
        with pytest.raises(UnauthorizedError):
            await svc.reject_as_vero(ADMIN, 1)
        await svc.reject_as_vero(BOB, 1)
        assert svc.get_vero_status(1) is VeroStatus.REJECTED

    @pytest.mark.asyncio
    async def test_ledger_operations(self):
        svc = await make_service()
        await svc.create_as_pending(ALICE, "u1")
        await svc.approve(ALICE, BOB, 1)
        await svc.transfer_from(BOB, ALICE, BOB, 1)
        await svc.set_approval_for_all(BOB, ALICE, True)
        await svc.safe_transfer_from(ALICE, BOB, ALICE, 1, b"")
        assert svc.registry.owner_of(1) == ALICE
        await svc.approve_as_vero(ADMIN, 1)
        await svc.revoke_as_vero(ADMIN, 1)
        assert svc.certificate(1).status is VeroStatus.REVOKED

    @pytest.mark.asyncio
    async def test_health_snapshot(self):
        svc = await make_service()
        health = await svc.health()
        assert health["status"] == "healthy"
        assert health["registry"]["admin"] == ADMIN
        assert "event_bus" in health

        await svc.pause(ADMIN)
        assert (await svc.health())["status"] == "paused"

    @pytest.mark.asyncio
    async def test_shutdown(self):
        svc = await make_service()
        await svc.shutdown()
        assert (await svc.health()) == {"status": "not_initialized"}
