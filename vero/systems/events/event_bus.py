"""
Vero — Committed Event Fanout

Delivers the events of committed registry calls to in-process listeners
(webhooks, indexers). The registry's own append-only log stays the record
of what happened; the bus is only a notification path.

VeroService publishes a receipt's events after the registry call returns,
so a rolled-back safe transfer never reaches a subscriber. Events go out in
log order; for each event, matching subscribers run in the order they
subscribed, each under a timeout. A failing or slow listener is counted and
logged, and never affects the registry or the other listeners.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from vero.systems.registry.types import RegistryEvent, RegistryEventType

logger = structlog.get_logger("vero.events")

Listener = Callable[["RegistryEvent"], Coroutine[Any, Any, None]]


@dataclass(frozen=True)
class Subscription:
    listener: Listener
    # None means every event type
    event_types: frozenset[RegistryEventType] | None = None

    def wants(self, event: RegistryEvent) -> bool:
        return self.event_types is None or event.event_type in self.event_types


class EventBus:
    def __init__(self, callback_timeout_s: float = 0.1) -> None:
        self._timeout_s = callback_timeout_s
        self._subscriptions: list[Subscription] = []
        self._logger = logger.bind(component="event_bus")

        self._published: int = 0
        self._delivered: int = 0
        self._failed: int = 0
        self._timed_out: int = 0

    # ─── Subscription ────────────────────────────────────────────────

    def subscribe(self, listener: Listener, *event_types: RegistryEventType) -> Subscription:
        """Listen for the given event types, or for everything when none are given."""
        subscription = Subscription(
            listener=listener,
            event_types=frozenset(event_types) if event_types else None,
        )
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    # ─── Publishing ──────────────────────────────────────────────────

    async def publish(self, events: Iterable[RegistryEvent]) -> int:
        """Deliver events in order. Returns the number of successful deliveries."""
        delivered = 0
        for event in events:
            self._published += 1
            for subscription in list(self._subscriptions):
                if subscription.wants(event) and await self._deliver(subscription, event):
                    delivered += 1
        self._delivered += delivered
        return delivered

    async def _deliver(self, subscription: Subscription, event: RegistryEvent) -> bool:
        listener_name = getattr(subscription.listener, "__name__", repr(subscription.listener))
        try:
            await asyncio.wait_for(subscription.listener(event), timeout=self._timeout_s)
        except TimeoutError:
            self._timed_out += 1
            self._logger.warning(
                "listener_timeout",
                event_type=event.event_type.value,
                sequence=event.sequence,
                listener=listener_name,
            )
            return False
        except Exception as exc:
            self._failed += 1
            self._logger.error(
                "listener_failed",
                event_type=event.event_type.value,
                sequence=event.sequence,
                listener=listener_name,
                error=str(exc),
            )
            return False
        return True

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "published": self._published,
            "delivered": self._delivered,
            "failed": self._failed,
            "timed_out": self._timed_out,
            "subscriptions": len(self._subscriptions),
        }
