"""Gesture variants: the gesture-specific half of a listener.

A variant decides, frame by frame, whether its gesture is happening and asks
its listener to trigger. The listener supplies activation, the bounds test and
the cooldown. Each listener gets its own variant instance, so variants may keep
per-gesture state.

Variant interface (override what you need):
    class MyVariant(GestureVariant):
        name = "my_variant"

        def on_frame(self, listener, frame):
            if looks_right(frame):
                listener.attempt_trigger(frame)

Variants are looked up by name through a VariantRegistry:
    registry = VariantRegistry.with_defaults()
    variant = registry.create("thumb_touch", touch_threshold=25)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

import numpy as np

from gesture_listeners.bus import Channels
from gesture_listeners.config import DEFAULT_DISTANCE_THRESHOLD, ListenerMode, landmark_id
from gesture_listeners.errors import ConfigurationError
from gesture_listeners.geometry import (
    BoundsRegion,
    distance,
    distances_between,
    exceeds,
    is_in_bounds,
)
from gesture_listeners.landmarks import HandLandmarkFrame, LandmarkId
from gesture_listeners.render import (
    KEYFRAME_COLOR,
    POSITION_COLOR,
    REFERENCE_COLOR,
    Surface,
)
from gesture_listeners.timers import TimerHandle

if TYPE_CHECKING:
    from gesture_listeners.listener import GestureListener

logger = logging.getLogger("gesture_listeners.variants")


class GestureVariant:
    """Base class for gesture variants. Every hook has a usable default."""

    name: str = "variant"
    description: str = ""

    def on_frame(self, listener: GestureListener, frame: HandLandmarkFrame):
        """Called for every frame while the listener is active."""
        listener.attempt_trigger(frame)

    def anchor_point(self, listener: GestureListener, frame: HandLandmarkFrame) -> Optional[np.ndarray]:
        """Point tested against the trigger region: the first tracked finger
        of the dominant hand."""
        return frame.point(
            listener.config.hands_to_track.dominant,
            listener.config.tracked_fingers[0],
        )

    def trigger_region(self, listener: GestureListener) -> BoundsRegion:
        return listener.region

    def payload(self, listener: GestureListener, frame: HandLandmarkFrame, point: tuple[float, float]) -> Any:
        return listener.make_trigger(frame, point)

    def on_trigger(self, listener: GestureListener, frame: HandLandmarkFrame, point: tuple[float, float]):
        """Called after a successful trigger has been published."""
        pass

    def render(self, listener: GestureListener, surface: Surface):
        pass

    def reset(self, listener: GestureListener):
        """Drop any gesture progress."""
        pass

    def on_deactivate(self, listener: GestureListener):
        """Cancel variant-owned timers. Must be idempotent."""
        pass


class ContinuousCursorVariant(GestureVariant):
    """Streams the dominant fingertip as a cursor and confirms on a hot spot.

    Every active frame with the fingertip inside the listener region publishes
    the position on ``stream_channel`` (no debounce). If ``confirm_region`` is
    set, entering it triggers the listener's debounced confirm event.
    Frames showing both hands are ignored.
    """

    name = "cursor"
    description = "Fingertip cursor with tap-to-confirm region"

    def __init__(
        self,
        stream_channel: str = Channels.HIGHLIGHT,
        confirm_region: Optional[BoundsRegion | dict] = None,
    ):
        if isinstance(confirm_region, dict):
            confirm_region = BoundsRegion.from_dict(confirm_region)
        self.stream_channel = stream_channel
        self.confirm_region = confirm_region
        self.last_position: Optional[tuple[float, float]] = None

    def on_frame(self, listener, frame):
        hands = listener.config.hands_to_track
        if frame.has(hands.non_dominant):
            return

        tip = frame.point(hands.dominant, listener.config.tracked_fingers[0])
        if tip is None:
            return

        if not is_in_bounds(tip, listener.region, listener.x_scale, listener.y_scale):
            self.last_position = None
            return

        position = (float(tip[0]), float(tip[1]))
        listener.bus.publish(self.stream_channel, position)
        self.last_position = position

        if self.confirm_region is not None:
            listener.attempt_trigger(frame)

    def trigger_region(self, listener):
        if self.confirm_region is not None:
            return self.confirm_region
        return listener.region

    def render(self, listener, surface):
        if self.confirm_region is not None:
            surface.draw_region(self.confirm_region)
        if self.last_position is not None:
            x, y = self.last_position
            surface.draw_circle(x, y, 2.5, color=POSITION_COLOR, fill=True)

    def reset(self, listener):
        self.last_position = None
        listener.bus.publish(self.stream_channel, (0.0, 0.0))

    def on_deactivate(self, listener):
        self.last_position = None


@dataclass(frozen=True)
class Keyframe:
    """A timeline marker recorded when a keyframe-mode listener triggers."""
    index: int
    point: tuple[float, float]
    timestamp: float


class TwoHandTouchVariant(GestureVariant):
    """Triggers when the thumbs of both hands touch.

    Both hands must be present. The trigger point is the dominant thumb tip,
    which still has to lie inside the listener region. In keyframe mode each
    trigger also records a :class:`Keyframe`, publishes it on ``keyframe_channel``
    and draws a marker for it.
    """

    name = "thumb_touch"
    description = "Two-hand thumb touch"

    def __init__(
        self,
        touch_threshold: float = DEFAULT_DISTANCE_THRESHOLD,
        landmark: int = LandmarkId.THUMB_TIP,
        keyframe_channel: str = Channels.KEYFRAME,
    ):
        if touch_threshold <= 0:
            raise ConfigurationError(f"touch_threshold must be positive, got {touch_threshold}")
        self.touch_threshold = touch_threshold
        self.landmark = landmark_id(landmark)
        self.keyframe_channel = keyframe_channel
        self.keyframes: list[Keyframe] = []

    def thumbs_touch(self, listener, frame) -> bool:
        hands = listener.config.hands_to_track
        one = frame.point(hands.non_dominant, self.landmark)
        two = frame.point(hands.dominant, self.landmark)
        if one is None or two is None:
            return False
        return distance(one, two).euclidean < self.touch_threshold

    def on_frame(self, listener, frame):
        hands = listener.config.hands_to_track
        if not (frame.has(hands.dominant) and frame.has(hands.non_dominant)):
            return
        if self.thumbs_touch(listener, frame):
            listener.attempt_trigger(frame)

    def anchor_point(self, listener, frame):
        return frame.point(listener.config.hands_to_track.dominant, self.landmark)

    def on_trigger(self, listener, frame, point):
        if listener.mode is not ListenerMode.KEYFRAME:
            return
        keyframe = Keyframe(index=len(self.keyframes), point=point, timestamp=frame.timestamp)
        self.keyframes.append(keyframe)
        logger.debug("Listener '%s' recorded keyframe %d", listener.name, keyframe.index)
        listener.bus.publish(self.keyframe_channel, keyframe)

    def render(self, listener, surface):
        if listener.mode is not ListenerMode.KEYFRAME:
            return
        for keyframe in self.keyframes:
            x, y = keyframe.point
            surface.draw_marker(x, y, label=str(keyframe.index), color=KEYFRAME_COLOR)

    def reset(self, listener):
        self.keyframes.clear()


class PointPoseVariant(GestureVariant):
    """Triggers when the tracked fingers are held still inside the region.

    When the fingers enter the region a reference pose is stored and a hold
    timer of ``trigger_duration`` ms starts. On elapse every tracked finger must
    still be within ``reference_bounds`` of its reference position; then the
    listener triggers. Leaving the region drops the pose.
    """

    name = "point_pose"
    description = "Hold a pointing pose in place"

    def __init__(self, reference_bounds: float = DEFAULT_DISTANCE_THRESHOLD):
        if reference_bounds <= 0:
            raise ConfigurationError(f"reference_bounds must be positive, got {reference_bounds}")
        self.reference_bounds = reference_bounds
        self.pose: Optional[list[tuple[float, float]]] = None
        self.reference: Optional[list[tuple[float, float]]] = None
        self.hold: Optional[TimerHandle] = None
        self._latest: Optional[HandLandmarkFrame] = None

    def _finger_points(self, listener, frame) -> Optional[list[tuple[float, float]]]:
        side = listener.config.hands_to_track.dominant
        points = []
        for finger in listener.config.tracked_fingers:
            p = frame.point(side, finger)
            if p is None:
                return None
            points.append((float(p[0]), float(p[1])))
        return points

    def on_frame(self, listener, frame):
        points = self._finger_points(listener, frame)
        if points is None:
            return
        self._latest = frame

        in_bounds = all(
            is_in_bounds(p, listener.region, listener.x_scale, listener.y_scale)
            for p in points
        )
        if not in_bounds:
            self.pose = None
            self.reference = None
            return

        self.pose = points
        if self.hold_pending or listener.cooldown_pending:
            return

        self.reference = points
        self.hold = listener.scheduler.call_later(
            listener.config.trigger_duration, lambda: self._on_hold_elapsed(listener)
        )

    @property
    def hold_pending(self) -> bool:
        return self.hold is not None and self.hold.pending

    def _on_hold_elapsed(self, listener):
        self.hold = None
        in_place = False
        if self.pose is not None and self.reference is not None:
            diffs = distances_between(self.reference, self.pose)
            in_place = not exceeds(diffs, self.reference_bounds)

        if in_place and self._latest is not None:
            listener.attempt_trigger(self._latest)
        self.pose = None
        self.reference = None

    def render(self, listener, surface):
        for point in self.reference or []:
            surface.draw_circle(point[0], point[1], self.reference_bounds, color=REFERENCE_COLOR)
        for point in self.pose or []:
            surface.draw_circle(point[0], point[1], 5, color=POSITION_COLOR, fill=True)

    def reset(self, listener):
        self.on_deactivate(listener)

    def on_deactivate(self, listener):
        if self.hold is not None:
            self.hold.cancel()
            self.hold = None
        self.pose = None
        self.reference = None
        self._latest = None


VariantFactory = Callable[..., GestureVariant]


class VariantRegistry:
    """Maps variant names to factories."""

    def __init__(self):
        self._factories: dict[str, VariantFactory] = {}

    def register(self, name: str, factory: VariantFactory):
        if name in self._factories:
            logger.warning("Variant '%s' already registered, replacing", name)
        self._factories[name] = factory

    def create(self, name: str, **options: Any) -> GestureVariant:
        """Build a fresh variant instance with the given options."""
        factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(
                f"Unknown variant '{name}' (known: {', '.join(sorted(self._factories))})"
            )
        try:
            return factory(**options)
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Bad options for variant '{name}': {e}") from e

    @property
    def names(self) -> list[str]:
        return list(self._factories.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    @classmethod
    def with_defaults(cls) -> VariantRegistry:
        registry = cls()
        registry.register(ContinuousCursorVariant.name, ContinuousCursorVariant)
        registry.register(TwoHandTouchVariant.name, TwoHandTouchVariant)
        registry.register(PointPoseVariant.name, PointPoseVariant)
        return registry
