"""Tests for the gesture variants and the variant registry."""

import numpy as np
import pytest

from gesture_listeners.bus import Channels, EventBus
from gesture_listeners.config import ListenerConfig, ListenerMode
from gesture_listeners.errors import ConfigurationError
from gesture_listeners.geometry import BoundsRegion
from gesture_listeners.landmarks import HandLandmarkFrame, LandmarkId
from gesture_listeners.listener import GestureListener
from gesture_listeners.render import RecordingSurface
from gesture_listeners.timers import ManualScheduler
from gesture_listeners.variants import (
    ContinuousCursorVariant,
    GestureVariant,
    Keyframe,
    PointPoseVariant,
    TwoHandTouchVariant,
    VariantRegistry,
)


def _make_hand(x: float, y: float, thumb: tuple = None) -> np.ndarray:
    """Hand with every landmark at (x, y), optionally moving the thumb tip."""
    lm = np.zeros((21, 2))
    lm[:, 0] = x
    lm[:, 1] = y
    if thumb is not None:
        lm[LandmarkId.THUMB_TIP] = thumb
    return lm


def _setup(variant, **config_kwargs):
    bus = EventBus()
    scheduler = ManualScheduler()
    config_kwargs.setdefault("position", (0, 0))
    config_kwargs.setdefault("dimensions", (200, 200))
    listener = GestureListener(
        ListenerConfig(**config_kwargs), variant, bus=bus, scheduler=scheduler, name="v",
    )
    listener.activate()
    return listener, bus, scheduler


def _collect(bus, channel):
    received = []
    bus.subscribe(channel, lambda e: received.append(e.payload))
    return received


class TestCursor:
    def test_streams_every_frame(self):
        listener, bus, _ = _setup(ContinuousCursorVariant())
        positions = _collect(bus, Channels.HIGHLIGHT)
        for x in (10, 20, 30):
            listener.handle_frame(HandLandmarkFrame(right=_make_hand(x, 50)))
        assert positions == [(10.0, 50.0), (20.0, 50.0), (30.0, 50.0)]

    def test_out_of_region_not_streamed(self):
        variant = ContinuousCursorVariant()
        listener, bus, _ = _setup(variant)
        positions = _collect(bus, Channels.HIGHLIGHT)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(500, 50)))
        assert positions == []
        assert variant.last_position is None

    def test_two_hands_ignored(self):
        listener, bus, _ = _setup(ContinuousCursorVariant())
        positions = _collect(bus, Channels.HIGHLIGHT)
        listener.handle_frame(
            HandLandmarkFrame(left=_make_hand(10, 10), right=_make_hand(50, 50))
        )
        assert positions == []

    def test_no_confirm_without_region(self):
        listener, bus, _ = _setup(ContinuousCursorVariant())
        selections = _collect(bus, Channels.SELECTION)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        assert selections == []

    def test_confirm_region_triggers_with_cooldown(self):
        variant = ContinuousCursorVariant(
            confirm_region={"position": [150, 0], "dimensions": [50, 50]}
        )
        listener, bus, scheduler = _setup(variant, reset_pause_duration=500)
        positions = _collect(bus, Channels.HIGHLIGHT)
        selections = _collect(bus, Channels.SELECTION)

        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        assert selections == []

        for _ in range(5):
            listener.handle_frame(HandLandmarkFrame(right=_make_hand(175, 25)))
        # Streaming is never debounced, confirmation is
        assert len(positions) == 6
        assert len(selections) == 1
        assert selections[0].point == (175.0, 25.0)

        scheduler.advance(500)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(175, 25)))
        assert len(selections) == 2

    def test_reset_publishes_origin(self):
        listener, bus, _ = _setup(ContinuousCursorVariant())
        positions = _collect(bus, Channels.HIGHLIGHT)
        listener.reset()
        assert positions == [(0.0, 0.0)]

    def test_render_position(self):
        variant = ContinuousCursorVariant(confirm_region=BoundsRegion((150, 0), radius=10))
        listener, _, _ = _setup(variant)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 60)))

        surface = RecordingSurface()
        listener.render(surface)
        circles = surface.commands("circle")
        assert len(circles) == 2
        assert (circles[1].x, circles[1].y, circles[1].fill) == (50.0, 60.0, True)


class TestThumbTouch:
    def _frame(self, left_thumb, right_thumb, t=0.0):
        return HandLandmarkFrame(
            left=_make_hand(20, 20, thumb=left_thumb),
            right=_make_hand(180, 180, thumb=right_thumb),
            timestamp=t,
        )

    def test_triggers_when_thumbs_touch(self):
        listener, bus, _ = _setup(TwoHandTouchVariant(), num_hands=2)
        selections = _collect(bus, Channels.SELECTION)
        listener.handle_frame(self._frame((100, 100), (110, 100)))
        assert len(selections) == 1
        assert selections[0].point == (110.0, 100.0)

    def test_apart_does_not_trigger(self):
        listener, bus, _ = _setup(TwoHandTouchVariant(), num_hands=2)
        selections = _collect(bus, Channels.SELECTION)
        listener.handle_frame(self._frame((100, 100), (130, 100)))
        assert selections == []

    def test_requires_both_hands(self):
        listener, bus, _ = _setup(TwoHandTouchVariant())
        selections = _collect(bus, Channels.SELECTION)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(100, 100)))
        assert selections == []

    def test_dominant_thumb_must_be_in_region(self):
        listener, bus, _ = _setup(TwoHandTouchVariant(), num_hands=2)
        selections = _collect(bus, Channels.SELECTION)
        listener.handle_frame(self._frame((300, 100), (305, 100)))
        assert selections == []

    def test_custom_threshold(self):
        listener, bus, _ = _setup(TwoHandTouchVariant(touch_threshold=5), num_hands=2)
        selections = _collect(bus, Channels.SELECTION)
        listener.handle_frame(self._frame((100, 100), (110, 100)))
        assert selections == []

    def test_keyframe_mode(self):
        variant = TwoHandTouchVariant()
        listener, bus, scheduler = _setup(variant, num_hands=2, listener_mode=ListenerMode.KEYFRAME)
        keyframes = _collect(bus, Channels.KEYFRAME)

        listener.handle_frame(self._frame((100, 100), (105, 100), t=0.5))
        scheduler.advance(1000)
        listener.handle_frame(self._frame((50, 50), (55, 50), t=1.5))

        assert keyframes == [
            Keyframe(index=0, point=(105.0, 100.0), timestamp=0.5),
            Keyframe(index=1, point=(55.0, 50.0), timestamp=1.5),
        ]

        surface = RecordingSurface()
        listener.render(surface)
        assert [c.label for c in surface.commands("marker")] == ["0", "1"]

        listener.reset()
        assert variant.keyframes == []

    def test_default_mode_records_no_keyframes(self):
        variant = TwoHandTouchVariant()
        listener, bus, _ = _setup(variant, num_hands=2)
        keyframes = _collect(bus, Channels.KEYFRAME)
        listener.handle_frame(self._frame((100, 100), (105, 100)))
        assert keyframes == []
        assert variant.keyframes == []

    def test_bad_threshold(self):
        with pytest.raises(ConfigurationError):
            TwoHandTouchVariant(touch_threshold=0)

    def test_bad_landmark(self):
        with pytest.raises(ConfigurationError):
            TwoHandTouchVariant(landmark=25)
        with pytest.raises(ConfigurationError):
            TwoHandTouchVariant(landmark="thumb")
        assert TwoHandTouchVariant(landmark=LandmarkId.INDEX_FINGER_TIP).landmark == 8


class TestPointPose:
    def test_hold_triggers(self):
        listener, bus, scheduler = _setup(PointPoseVariant(), trigger_duration=1000)
        selections = _collect(bus, Channels.SELECTION)

        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        scheduler.advance(500)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(55, 52)))
        assert selections == []

        scheduler.advance(500)
        assert len(selections) == 1

    def test_moved_too_far(self):
        listener, bus, scheduler = _setup(PointPoseVariant())
        selections = _collect(bus, Channels.SELECTION)

        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(120, 50)))
        scheduler.advance(1000)
        assert selections == []

    def test_leaving_region_breaks_hold(self):
        listener, bus, scheduler = _setup(PointPoseVariant())
        selections = _collect(bus, Channels.SELECTION)

        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(500, 50)))
        scheduler.advance(1000)
        assert selections == []

    def test_deactivate_cancels_hold(self):
        variant = PointPoseVariant()
        listener, _, scheduler = _setup(variant)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        assert variant.hold_pending

        listener.deactivate()
        assert not variant.hold_pending
        assert scheduler.pending_count == 0

    def test_render_reference(self):
        variant = PointPoseVariant(reference_bounds=25)
        listener, _, _ = _setup(variant)
        listener.handle_frame(HandLandmarkFrame(right=_make_hand(50, 50)))
        surface = RecordingSurface()
        listener.render(surface)
        assert 25 in [c.radius for c in surface.commands("circle")]


class TestRegistry:
    def test_defaults(self):
        registry = VariantRegistry.with_defaults()
        assert set(registry.names) == {"cursor", "thumb_touch", "point_pose"}
        assert len(registry) == 3
        assert "cursor" in registry

    def test_create_fresh_instances(self):
        registry = VariantRegistry.with_defaults()
        a = registry.create("thumb_touch", touch_threshold=20)
        b = registry.create("thumb_touch")
        assert a is not b
        assert a.touch_threshold == 20

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            VariantRegistry.with_defaults().create("wave")

    def test_bad_options(self):
        with pytest.raises(ConfigurationError):
            VariantRegistry.with_defaults().create("cursor", speed=3)

    def test_bad_option_values(self):
        registry = VariantRegistry.with_defaults()
        with pytest.raises(ConfigurationError):
            registry.create("thumb_touch", landmark=25)
        with pytest.raises(ConfigurationError):
            registry.create("thumb_touch", touch_threshold="close")
        with pytest.raises(ConfigurationError):
            registry.create("point_pose", reference_bounds=-1)

    def test_register_custom(self):
        class Wave(GestureVariant):
            name = "wave"

        registry = VariantRegistry()
        registry.register("wave", Wave)
        assert isinstance(registry.create("wave"), Wave)
