"""
Synchronous event manager for option and capability change notifications.

Why This Module Exists
----------------------
Storage options change at runtime (a new ``pathname``, a different
``namespace_separator``) and several components cache values derived from
them: the total-space cache, the capabilities descriptor, the open dbm
handle. Rather than have the options object know about each of those
components, options publish an ``option`` event naming the changed fields
and each component subscribes a callback for what it must invalidate.

Delivery is synchronous and in subscription order: by the time an option
assignment returns, every subscriber has reacted.

Usage::

    from kvspine.core.events import Event, EventManager

    events = EventManager()

    def on_option(event: Event) -> None:
        if "pathname" in event.params:
            print("pathname changed to", event.params["pathname"])

    sub_id = events.subscribe("option", on_option)
    events.publish(Event("option", params={"pathname": "/tmp/new.db"}))
    events.unsubscribe(sub_id)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from kvspine.core.logging import get_logger

__all__ = [
    "Event",
    "EventHandler",
    "EventManager",
]

logger = get_logger(__name__)


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """Change notification.

    Attributes:
        name: Event name (``option``, ``capability``, or ``*`` patterns on subscribe)
        params: Changed fields mapped to their new values
        target: Object that emitted the event
    """

    name: str
    params: dict[str, Any] = field(default_factory=dict)
    target: Any = None

    def matches(self, pattern: str) -> bool:
        """Check if the event name matches a subscription pattern."""
        if pattern == "*":
            return True
        return self.name == pattern


EventHandler = Callable[[Event], None]


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    pattern: str
    handler: EventHandler


class EventManager:
    """In-process, synchronous event manager.

    Handlers run in the publisher's call stack. A handler may unsubscribe
    itself (or others) while an event is being delivered.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}

    def publish(self, event: Event) -> None:
        """Deliver an event to every matching subscriber.

        Exceptions raised by handlers propagate to the publisher.
        """
        handlers = [
            sub for sub in list(self._subscriptions.values()) if event.matches(sub.pattern)
        ]
        for sub in handlers:
            # skip handlers removed by an earlier handler of this event
            if sub.id not in self._subscriptions:
                continue
            sub.handler(event)

    def trigger(self, name: str, target: Any = None, **params: Any) -> None:
        """Build and publish an event in one call."""
        self.publish(Event(name, params=params, target=target))

    def subscribe(self, pattern: str, handler: EventHandler) -> str:
        """Subscribe to events by name (or ``*`` for all).

        Returns:
            Subscription ID
        """
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[sub_id] = Subscription(id=sub_id, pattern=pattern, handler=handler)
        logger.debug("event_subscribed", pattern=pattern, subscription_id=sub_id)
        return sub_id

    def unsubscribe(self, subscription_id: str | None) -> bool:
        """Remove a subscription. Unknown or ``None`` IDs are ignored."""
        if subscription_id is None:
            return False
        return self._subscriptions.pop(subscription_id, None) is not None

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)
