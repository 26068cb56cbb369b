"""Core building blocks: models, errors and the event bus."""

from critique.core.event_bus import EventBus, EventPayload

__all__ = ["EventBus", "EventPayload"]
