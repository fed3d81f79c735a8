"""
Vero — Registry Service

Async lifecycle wrapper around VeroRegistry for the API process.

  initialize()  — build the registry from RegistryConfig, wire the event bus
  <operation>() — serialised through one asyncio.Lock, then events published
  health()      — snapshot for /health
  shutdown()    — log final counters

The lock makes the service the single logical writer: one mutating call
is applied at a time, start to finish. Reads go straight to the registry.
Receiver hooks run inside the registry call, so a reentrant call from a
hook goes to the registry directly and never waits on this lock. Event bus
subscribers run under the lock too; they must not call mutating service
methods.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from vero.config import EventBusConfig, RegistryConfig
from vero.systems.events.event_bus import EventBus
from vero.systems.registry.registry import VeroRegistry
from vero.systems.registry.types import CertificateToken, Receipt, VeroStatus

logger = structlog.get_logger("vero.registry.service")


class VeroService:
    """
    Owns the registry and its event bus.

    Thread-safety: NOT thread-safe. Single event loop, like the rest of Vero.
    """

    def __init__(self) -> None:
        self._registry: VeroRegistry | None = None
        self._bus: EventBus | None = None
        self._lock = asyncio.Lock()
        self._initialized: bool = False
        self._calls_committed: int = 0
        self._calls_rejected: int = 0
        self._logger = logger.bind(component="vero_service")

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def initialize(
        self,
        config: RegistryConfig,
        bus_config: EventBusConfig | None = None,
    ) -> None:
        self._registry = VeroRegistry(
            deployer=config.deployer,
            address=config.address or None,
            name=config.name,
            symbol=config.symbol,
        )
        bus_config = bus_config or EventBusConfig()
        self._bus = EventBus(callback_timeout_s=bus_config.callback_timeout_s)
        self._initialized = True
        self._logger.info(
            "vero_service_initialized",
            registry=self._registry.address,
            admin=self._registry.get_vero_admin(),
        )

    async def shutdown(self) -> None:
        self._logger.info(
            "vero_service_shutdown",
            committed=self._calls_committed,
            rejected=self._calls_rejected,
        )
        self._initialized = False

    # ─── Properties ──────────────────────────────────────────────────

    @property
    def registry(self) -> VeroRegistry:
        if self._registry is None:
            raise RuntimeError("VeroService not initialized")
        return self._registry

    @property
    def event_bus(self) -> EventBus:
        if self._bus is None:
            raise RuntimeError("VeroService not initialized")
        return self._bus

    # ─── Mutating operations ─────────────────────────────────────────

    async def create_as_pending(self, caller: str, resource_ref: str) -> Receipt:
        return await self._submit(self.registry.create_as_pending, caller, resource_ref)

    async def approve_as_vero(self, caller: str, token_id: int) -> Receipt:
        return await self._submit(self.registry.approve_as_vero, caller, token_id)

    async def reject_as_vero(self, caller: str, token_id: int) -> Receipt:
        return await self._submit(self.registry.reject_as_vero, caller, token_id)

    async def revoke_as_vero(self, caller: str, token_id: int) -> Receipt:
        return await self._submit(self.registry.revoke_as_vero, caller, token_id)

    async def change_vero_admin(self, caller: str, new_admin: str) -> Receipt:
        return await self._submit(self.registry.change_vero_admin, caller, new_admin)

    async def pause(self, caller: str) -> Receipt:
        return await self._submit(self.registry.pause, caller)

    async def unpause(self, caller: str) -> Receipt:
        return await self._submit(self.registry.unpause, caller)

    async def approve(self, caller: str, spender: str | None, token_id: int) -> Receipt:
        return await self._submit(self.registry.approve, caller, spender, token_id)

    async def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> Receipt:
        return await self._submit(self.registry.set_approval_for_all, caller, operator, approved)

    async def transfer_from(self, caller: str, from_: str, to: str, token_id: int) -> Receipt:
        return await self._submit(self.registry.transfer_from, caller, from_, to, token_id)

    async def safe_transfer_from(
        self,
        caller: str,
        from_: str,
        to: str,
        token_id: int,
        data: bytes = b"",
    ) -> Receipt:
        return await self._submit(
            self.registry.safe_transfer_from, caller, from_, to, token_id, data
        )

    # ─── Reads ───────────────────────────────────────────────────────

    def get_vero_status(self, token_id: int) -> VeroStatus:
        return self.registry.get_vero_status(token_id)

    def get_vero_admin(self) -> str:
        return self.registry.get_vero_admin()

    def certificate(self, token_id: int) -> CertificateToken:
        return self.registry.certificate(token_id)

    # ─── Health ──────────────────────────────────────────────────────

    async def health(self) -> dict[str, Any]:
        if not self._initialized or self._registry is None:
            return {"status": "not_initialized"}
        return {
            "status": "paused" if self._registry.paused else "healthy",
            "registry": self._registry.stats,
            "event_bus": self.event_bus.stats,
        }

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "initialized": self._initialized,
            "calls_committed": self._calls_committed,
            "calls_rejected": self._calls_rejected,
        }

    # ─── Internal ────────────────────────────────────────────────────

    async def _submit(self, operation: Any, *args: Any) -> Receipt:
        """Apply one mutating call under the writer lock, then publish its events."""
        async with self._lock:
            try:
                receipt: Receipt = operation(*args)
            except Exception:
                self._calls_rejected += 1
                raise
            self._calls_committed += 1
            # Published under the lock so subscribers see commit order.
            await self.event_bus.publish(receipt.events)
        return receipt
