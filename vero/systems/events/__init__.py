"""Vero — committed-event fanout."""

from vero.systems.events.event_bus import EventBus, Subscription

__all__ = ["EventBus", "Subscription"]
