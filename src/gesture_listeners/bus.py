"""Named multicast channels connecting frame producers, listeners and the UI.

Usage:
    bus = EventBus()
    sub = bus.subscribe(Channels.HIGHLIGHT, lambda event: print(event.payload))
    bus.publish(Channels.HIGHLIGHT, (120.0, 80.0))
    sub.unsubscribe()

Delivery is synchronous and in subscription order. Nothing is buffered: a
handler subscribed after a publish never sees it. A handler must not publish
back onto the channel that is currently notifying it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger("gesture_listeners.bus")


@dataclass(frozen=True)
class GestureEvent:
    """A value published on a channel. Only exists during delivery."""
    channel: str
    payload: Any = None


Handler = Callable[[GestureEvent], None]


class Channels:
    """Standard channel names."""

    LANDMARKS = "landmarks"
    HIGHLIGHT = "highlight"
    SELECTION = "selection"
    PLAYBACK = "playback"
    FORESHADOWING_AREA = "foreshadowing_area"
    EMPHASIS = "emphasis"
    KEYFRAME = "keyframe"


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: EventBus, channel: str, handler: Handler):
        self._bus = bus
        self.channel = channel
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self):
        """Stop receiving events. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)


class EventBus:
    """Registry of named channels, each an ordered list of subscriptions."""

    def __init__(self):
        self._channels: dict[str, list[Subscription]] = {}

    def subscribe(self, channel: str, handler: Handler) -> Subscription:
        subscription = Subscription(self, channel, handler)
        self._channels.setdefault(channel, []).append(subscription)
        logger.debug("Subscribed %r to '%s'", handler, channel)
        return subscription

    def publish(self, channel: str, value: Any = None):
        """Deliver ``value`` to every current subscriber of ``channel``."""
        subscribers = self._channels.get(channel)
        if not subscribers:
            return

        event = GestureEvent(channel=channel, payload=value)
        # Snapshot so handlers may unsubscribe themselves mid-delivery
        for subscription in list(subscribers):
            if not subscription.active:
                continue
            try:
                subscription.handler(event)
            except Exception:
                logger.exception("Handler error on channel '%s'", channel)

    def _remove(self, subscription: Subscription):
        subscribers = self._channels.get(subscription.channel, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self._channels.pop(subscription.channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, []))

    @property
    def channels(self) -> list[str]:
        """Channels that currently have subscribers."""
        return list(self._channels.keys())

    def clear(self, channel: str | None = None):
        """Drop all subscriptions, optionally for one channel only."""
        names = [channel] if channel is not None else list(self._channels)
        for name in names:
            for subscription in list(self._channels.get(name, [])):
                subscription.unsubscribe()
