"""GestureSession: one bus, one timer lane, the configured listeners and the
pose-hold recognizers, wired together.

Usage:
    session = GestureSession.from_yaml("session.yaml", ManualScheduler())
    session.bus.subscribe(Channels.SELECTION, on_select)
    for frame in frames:
        session.process_frame(frame)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from gesture_listeners.bus import Channels, EventBus, GestureEvent, Subscription
from gesture_listeners.config import SessionConfig, load_config
from gesture_listeners.geometry import Scale, identity
from gesture_listeners.landmarks import HandLandmarkFrame
from gesture_listeners.listener import GestureListener
from gesture_listeners.recognizers import (
    EmphasisRecognizer,
    ForeshadowingRecognizer,
    PlaybackRecognizer,
    PoseHoldRecognizer,
)
from gesture_listeners.render import Surface
from gesture_listeners.timers import Scheduler
from gesture_listeners.variants import VariantRegistry

logger = logging.getLogger("gesture_listeners.session")


class GestureSession:
    """Builds listeners from a SessionConfig and feeds the recognizers."""

    def __init__(
        self,
        config: SessionConfig,
        scheduler: Scheduler,
        bus: Optional[EventBus] = None,
        registry: Optional[VariantRegistry] = None,
        x_scale: Scale = identity,
        y_scale: Scale = identity,
        recognizers: bool = True,
    ):
        self.config = config
        self.scheduler = scheduler
        self.bus = bus or EventBus()
        self.registry = registry or VariantRegistry.with_defaults()
        self._listeners: dict[str, GestureListener] = {}
        self._subscription: Optional[Subscription] = None

        # Build every listener before activating any, so a bad definition
        # leaves nothing subscribed to the bus.
        for definition in config.listeners:
            variant = self.registry.create(definition.variant, **definition.options)
            self._listeners[definition.name] = GestureListener(
                definition.config,
                variant,
                bus=self.bus,
                scheduler=scheduler,
                name=definition.name,
                x_scale=x_scale,
                y_scale=y_scale,
            )
        for definition in config.listeners:
            if definition.active:
                self._listeners[definition.name].activate()

        self.playback: Optional[PlaybackRecognizer] = None
        self.foreshadowing: Optional[ForeshadowingRecognizer] = None
        self.emphasis: Optional[EmphasisRecognizer] = None
        if recognizers:
            rc = config.recognizers
            self.playback = PlaybackRecognizer(scheduler, rc, on_recognized=self._on_playback)
            self.foreshadowing = ForeshadowingRecognizer(
                scheduler, rc, on_recognized=self._on_foreshadowing
            )
            self.emphasis = EmphasisRecognizer(scheduler, rc, on_recognized=self._on_emphasis)
            self._subscription = self.bus.subscribe(Channels.LANDMARKS, self._feed_recognizers)

        logger.info(
            "Session ready: %d listeners, recognizers %s",
            len(self._listeners), "on" if recognizers else "off",
        )

    @classmethod
    def from_yaml(cls, path: str | Path, scheduler: Scheduler, **kwargs) -> GestureSession:
        return cls(load_config(path), scheduler, **kwargs)

    # --- listeners ---

    @property
    def listeners(self) -> list[GestureListener]:
        return list(self._listeners.values())

    def listener(self, name: str) -> GestureListener:
        try:
            return self._listeners[name]
        except KeyError:
            raise KeyError(f"No listener named '{name}'") from None

    def render(self, surface: Surface):
        for listener in self._listeners.values():
            if listener.active:
                listener.render(surface)

    # --- frames ---

    def process_frame(self, frame: HandLandmarkFrame):
        """Publish a frame on the landmark channel."""
        self.bus.publish(Channels.LANDMARKS, frame)

    @property
    def recognizer_list(self) -> list[PoseHoldRecognizer]:
        return [r for r in (self.playback, self.foreshadowing, self.emphasis) if r is not None]

    def _feed_recognizers(self, event: GestureEvent):
        frame = event.payload
        if frame is None:
            return
        for recognizer in self.recognizer_list:
            recognizer.on_frame(frame)

    def reset_recognizers(self):
        for recognizer in self.recognizer_list:
            recognizer.reset()

    def _on_playback(self, recognizer: PoseHoldRecognizer):
        self.bus.publish(Channels.PLAYBACK, True)

    def _on_foreshadowing(self, recognizer: PoseHoldRecognizer):
        self.bus.publish(Channels.FORESHADOWING_AREA, tuple(recognizer.stack.entries))

    def _on_emphasis(self, recognizer: PoseHoldRecognizer):
        self.bus.publish(Channels.EMPHASIS, recognizer.count)

    def close(self):
        """Destroy every listener and cancel recognizer timers. Idempotent."""
        for listener in self._listeners.values():
            listener.destroy()
        self.reset_recognizers()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        logger.info("Session closed")

    def __enter__(self) -> GestureSession:
        return self

    def __exit__(self, *exc):
        self.close()
