"""Gesture listener lifecycle: activation, bounds region, trigger + cooldown.

A listener owns the parts every gesture shares and hands the gesture-specific
decisions to a :class:`~gesture_listeners.variants.GestureVariant`:

    INACTIVE --activate()--> ACTIVE_IDLE --trigger--> ACTIVE_COOLDOWN
                                  ^                          |
                                  +---- cooldown elapsed ----+

``deactivate()`` returns to INACTIVE from any state and cancels the cooldown.

Usage:
    listener = GestureListener(
        ListenerConfig(position=(0, 0), dimensions=(200, 200)),
        ContinuousCursorVariant(),
        bus=bus,
        scheduler=scheduler,
    )
    listener.activate()
    bus.publish(Channels.LANDMARKS, frame)
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from gesture_listeners.bus import Channels, EventBus, GestureEvent, Subscription
from gesture_listeners.config import ListenerConfig, ListenerMode
from gesture_listeners.geometry import BoundsRegion, Scale, identity, is_in_bounds
from gesture_listeners.landmarks import HandLandmarkFrame
from gesture_listeners.render import Surface
from gesture_listeners.timers import Scheduler, TimerHandle

if TYPE_CHECKING:
    from gesture_listeners.variants import GestureVariant

logger = logging.getLogger("gesture_listeners.listener")


class ListenerStatus(Enum):
    INACTIVE = "inactive"
    ACTIVE_IDLE = "active_idle"
    ACTIVE_COOLDOWN = "active_cooldown"


@dataclass
class ListenerState:
    """Mutable per-listener state. Only the listener's lifecycle methods touch it."""
    active: bool = False
    cooldown: Optional[TimerHandle] = None
    mode: ListenerMode = ListenerMode.DEFAULT


@dataclass(frozen=True)
class Trigger:
    """Default payload published when a listener triggers."""
    listener: str
    point: tuple[float, float]
    timestamp: float
    mode: str = ListenerMode.DEFAULT.value


class GestureListener:
    """Stateful per-frame listener for one gesture variant."""

    def __init__(
        self,
        config: ListenerConfig,
        variant: GestureVariant,
        bus: EventBus,
        scheduler: Scheduler,
        name: Optional[str] = None,
        landmark_channel: str = Channels.LANDMARKS,
        x_scale: Scale = identity,
        y_scale: Scale = identity,
    ):
        self.config = config
        self.variant = variant
        self.bus = bus
        self.scheduler = scheduler
        self.name = name or variant.name
        self.landmark_channel = landmark_channel
        self.x_scale = x_scale
        self.y_scale = y_scale

        self.state = ListenerState(mode=config.listener_mode)
        self.trigger_count = 0
        self._subscription: Optional[Subscription] = None
        self._destroyed = False

    # --- lifecycle ---

    @property
    def status(self) -> ListenerStatus:
        if not self.state.active:
            return ListenerStatus.INACTIVE
        if self.cooldown_pending:
            return ListenerStatus.ACTIVE_COOLDOWN
        return ListenerStatus.ACTIVE_IDLE

    @property
    def active(self) -> bool:
        return self.state.active

    @property
    def cooldown_pending(self) -> bool:
        return self.state.cooldown is not None and self.state.cooldown.pending

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def activate(self):
        """Start receiving landmark frames. No-op if already active."""
        if self._destroyed:
            raise RuntimeError(f"Listener '{self.name}' has been destroyed")
        if self.state.active:
            return
        self._clear_cooldown()
        self.state.active = True
        self._subscription = self.bus.subscribe(self.landmark_channel, self._on_landmarks)
        logger.info("Listener '%s' activated", self.name)

    def deactivate(self):
        """Stop receiving frames and cancel any pending cooldown. Idempotent."""
        self._clear_cooldown()
        self.variant.on_deactivate(self)
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self.state.active:
            self.state.active = False
            logger.info("Listener '%s' deactivated", self.name)

    def destroy(self):
        """Deactivate for good. The listener cannot be activated again."""
        self.deactivate()
        self._destroyed = True

    def reset(self):
        """Clear the cooldown and any gesture progress held by the variant."""
        self._clear_cooldown()
        self.variant.reset(self)

    def update(self, **changes: Any):
        """Replace config fields (position, dimensions, radius, hands_to_track, ...).

        The new config is validated before it takes effect.
        """
        self.config = dataclasses.replace(self.config, **changes)
        if "listener_mode" in changes:
            self.state.mode = self.config.listener_mode

    def _clear_cooldown(self):
        if self.state.cooldown is not None:
            self.state.cooldown.cancel()
            self.state.cooldown = None

    # --- frame handling ---

    @property
    def region(self) -> BoundsRegion:
        return self.config.region

    @property
    def mode(self) -> ListenerMode:
        return self.state.mode

    def _on_landmarks(self, event: GestureEvent):
        self.handle_frame(event.payload)

    def handle_frame(self, frame: HandLandmarkFrame):
        """Entry point for one landmark frame. Ignored while inactive."""
        if not self.state.active or frame is None:
            return
        # Too few hands for this gesture: skip the frame silently
        if frame.hand_count < self.config.num_hands:
            return
        self.on_frame(frame)

    def on_frame(self, frame: HandLandmarkFrame):
        self.variant.on_frame(self, frame)

    def attempt_trigger(self, frame: HandLandmarkFrame, payload: Any = None) -> bool:
        """Publish on the listener's channel unless cooling down or out of bounds.

        Returns True if an event was published.
        """
        if not self.state.active or self.cooldown_pending:
            return False

        anchor = self.variant.anchor_point(self, frame)
        if anchor is None:
            return False

        region = self.variant.trigger_region(self)
        if not is_in_bounds(anchor, region, self.x_scale, self.y_scale):
            return False

        point = (float(anchor[0]), float(anchor[1]))
        if payload is None:
            payload = self.variant.payload(self, frame, point)

        self.bus.publish(self.config.channel_key, payload)
        self.trigger_count += 1
        logger.debug("Listener '%s' triggered at (%.1f, %.1f)", self.name, *point)
        self.variant.on_trigger(self, frame, point)

        # A subscriber may have deactivated us during delivery
        if self.state.active:
            self.state.cooldown = self.scheduler.call_later(
                self.config.reset_pause_duration, self._end_cooldown
            )
        return True

    def _end_cooldown(self):
        self.state.cooldown = None
        logger.debug("Listener '%s' cooldown elapsed", self.name)

    def make_trigger(self, frame: HandLandmarkFrame, point: tuple[float, float]) -> Trigger:
        return Trigger(
            listener=self.name,
            point=point,
            timestamp=frame.timestamp,
            mode=self.state.mode.value,
        )

    # --- drawing ---

    def render(self, surface: Surface):
        """Draw the bounds region, then whatever the variant adds."""
        surface.draw_region(self.region)
        self.variant.render(self, surface)

    def __repr__(self) -> str:
        return (
            f"GestureListener(name={self.name!r}, variant={self.variant.name!r}, "
            f"status={self.status.value})"
        )
