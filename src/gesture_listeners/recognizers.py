"""Temporal pose-hold recognizers.

A recognizer confirms a gesture by checking that a tracked landmark stays near
an anchor position for ``hold_duration`` ms. Progress lives on a bounded
:class:`PoseHoldStack`: every confirmed step pushes a snapshot.

Each recognizer keeps a single "latest frame" slot that is overwritten on
every ``on_frame`` call. When a hold timer elapses it compares the anchor with
whatever frame is in that slot at that moment, not with the frame that started
the timer. Replays of the same frame sequence with different timer timing can
therefore recognize differently.

Usage:
    recognizer = PlaybackRecognizer(scheduler)
    for frame in frames:
        if recognizer.on_frame(frame):
            start_playback()
            recognizer.reset()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from gesture_listeners.config import RecognizerConfig
from gesture_listeners.geometry import VerticalOrder, distance
from gesture_listeners.landmarks import Hand, HandLandmarkFrame, LandmarkId
from gesture_listeners.timers import Scheduler, TimerHandle

logger = logging.getLogger("gesture_listeners.recognizers")


@dataclass(frozen=True, eq=False)
class PoseSnapshot:
    """Landmarks of both hands captured from one frame."""
    left: Optional[np.ndarray]
    right: Optional[np.ndarray]
    timestamp: float = 0.0

    @classmethod
    def from_frame(cls, frame: HandLandmarkFrame) -> PoseSnapshot:
        # Frame arrays are already read-only, so they can be shared
        return cls(left=frame.left, right=frame.right, timestamp=frame.timestamp)

    def hand(self, side: Hand) -> Optional[np.ndarray]:
        return self.left if side is Hand.LEFT else self.right

    def point(self, side: Hand, landmark: int) -> Optional[np.ndarray]:
        hand = self.hand(side)
        if hand is None:
            return None
        return hand[int(landmark), :2]


class PoseHoldStack:
    """Bounded stack of captured poses plus the one outstanding hold timer."""

    def __init__(self, max_depth: int):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self.entries: list[PoseSnapshot] = []
        self.timer: Optional[TimerHandle] = None
        self.active_hand: Optional[Hand] = None

    @property
    def depth(self) -> int:
        return len(self.entries)

    @property
    def terminal(self) -> bool:
        return self.depth >= self.max_depth

    @property
    def timer_pending(self) -> bool:
        return self.timer is not None and self.timer.pending

    def push(self, snapshot: PoseSnapshot):
        if self.terminal:
            raise IndexError(f"Pose stack already at max depth {self.max_depth}")
        self.entries.append(snapshot)

    def cancel_timer(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def truncate(self, depth: int):
        """Drop entries above ``depth`` and cancel the timer."""
        del self.entries[depth:]
        self.cancel_timer()

    def clear(self):
        self.truncate(0)
        self.active_hand = None


class PoseHoldRecognizer:
    """Shared machinery: latest-frame slot, hold timer, reset."""

    name = "pose_hold"
    max_depth = 2

    def __init__(
        self,
        scheduler: Scheduler,
        config: Optional[RecognizerConfig] = None,
        on_recognized: Optional[Callable[[PoseHoldRecognizer], None]] = None,
    ):
        self.scheduler = scheduler
        self.config = config or RecognizerConfig()
        self.on_recognized = on_recognized
        self.stack = PoseHoldStack(self.max_depth)
        self.latest: Optional[HandLandmarkFrame] = None

    @property
    def depth(self) -> int:
        return self.stack.depth

    @property
    def active_hand(self) -> Optional[Hand]:
        return self.stack.active_hand

    @property
    def timer_pending(self) -> bool:
        return self.stack.timer_pending

    def reset(self):
        """Back to depth 0. Safe from any depth, any number of times."""
        self.stack.clear()

    def _start_hold(self, on_elapse: Callable[[], None]):
        if self.stack.timer_pending:
            return
        self.stack.timer = self.scheduler.call_later(self.config.hold_duration, on_elapse)

    def _held(self, anchor_index: int, landmark: Optional[int] = None) -> bool:
        """Compare the anchor at ``anchor_index`` with the latest frame."""
        side = self.stack.active_hand
        landmark = self.config.tracked_landmark if landmark is None else landmark
        if side is None or self.latest is None:
            return False
        before = self.stack.entries[anchor_index].point(side, landmark)
        now = self.latest.point(side, landmark)
        # A hand that left the frame counts as a broken hold
        if before is None or now is None:
            return False
        return distance(before, now).euclidean < self.config.distance_threshold

    def _capture(self):
        self.stack.push(PoseSnapshot.from_frame(self.latest))

    def _recognized(self):
        logger.info("%s gesture recognized", self.name)
        if self.on_recognized is not None:
            self.on_recognized(self)


class PlaybackRecognizer(PoseHoldRecognizer):
    """Left-hand hold that starts playback.

    depth 0: capture anchor (needs the left hand)
    depth 1: start the hold timer; on elapse the latest frame must be within
             the threshold of the anchor, else full reset
    depth 2: recognized; every call returns True until :meth:`reset`
    """

    name = "playback"
    max_depth = 2

    def __init__(self, scheduler, config=None, on_recognized=None):
        super().__init__(scheduler, config, on_recognized)
        self.stack.active_hand = Hand.LEFT

    def on_frame(self, frame: HandLandmarkFrame) -> bool:
        self.latest = frame
        depth = self.stack.depth

        if depth == 0:
            if frame.has(Hand.LEFT):
                self._capture()
        elif depth == 1:
            self._start_hold(self._on_hold_elapsed)
        else:
            return True
        return False

    def _on_hold_elapsed(self):
        self.stack.timer = None
        if self._held(0):
            self._capture()
            self._recognized()
        else:
            logger.debug("playback hold broken, starting over")
            self.reset()

    def reset(self):
        super().reset()
        self.stack.active_hand = Hand.LEFT


class ForeshadowingRecognizer(PoseHoldRecognizer):
    """Two consecutive pointing holds with whichever hand shows up first.

    depth 0: capture anchor and fix the active hand (left before right)
    depth 1: hold timer against the anchor; failure resets fully
    depth 2: capture the next frame unconditionally
    depth 3: hold timer against the depth-2 capture; failure collapses back
             to depth 2, keeping the first confirmed hold
    depth 4: recognized, the stack stays as is until :meth:`reset`
    """

    name = "foreshadowing"
    max_depth = 4

    def on_frame(self, frame: HandLandmarkFrame) -> tuple[PoseSnapshot, ...]:
        self.latest = frame
        depth = self.stack.depth

        if depth == 0:
            if frame.has(Hand.LEFT):
                self.stack.active_hand = Hand.LEFT
            elif frame.has(Hand.RIGHT):
                self.stack.active_hand = Hand.RIGHT
            if self.stack.active_hand is not None:
                self._capture()
        elif depth == 1:
            self._start_hold(self._on_first_hold_elapsed)
        elif depth == 2:
            self.stack.cancel_timer()
            self._capture()
        elif depth == 3:
            self._start_hold(self._on_second_hold_elapsed)

        return tuple(self.stack.entries)

    @property
    def recognized(self) -> bool:
        return self.stack.terminal

    def _on_first_hold_elapsed(self):
        self.stack.timer = None
        if self._held(0):
            self._capture()
        else:
            logger.debug("foreshadowing first hold broken, starting over")
            self.reset()

    def _on_second_hold_elapsed(self):
        self.stack.timer = None
        if self._held(2):
            self._capture()
            self._recognized()
        else:
            logger.debug("foreshadowing second hold broken, back to depth 2")
            self.stack.truncate(2)


@dataclass(frozen=True)
class EmphasisState:
    depth: int
    count: int


class EmphasisRecognizer(PoseHoldRecognizer):
    """Counts downward "beats" of the left hand after a confirmed hold.

    The left middle fingertip is held still for ``hold_duration`` ms. After
    that every dip below the confirmed anchor that turns back up counts one
    beat, up to ``max_count``. A beat is only counted again once the fingertip
    has returned to or above the anchor.
    """

    name = "emphasis"
    max_depth = 2

    def __init__(self, scheduler, config=None, on_recognized=None, max_count: int = 3,
                 landmark: int = LandmarkId.MIDDLE_FINGER_TIP):
        super().__init__(scheduler, config, on_recognized)
        self.max_count = max_count
        self.landmark = LandmarkId(int(landmark))
        self.count = 0
        self._armed = True
        self._previous_dip = 0.0
        self.stack.active_hand = Hand.LEFT

    def on_frame(self, frame: HandLandmarkFrame) -> EmphasisState:
        self.latest = frame
        depth = self.stack.depth

        if depth == 0:
            if frame.has(Hand.LEFT):
                self._capture()
        elif depth == 1:
            self._start_hold(self._on_hold_elapsed)
        else:
            self._track_beat(frame)

        return EmphasisState(depth=self.stack.depth, count=self.count)

    def _on_hold_elapsed(self):
        self.stack.timer = None
        if self._held(0, self.landmark):
            self._capture()
        else:
            self.stack.clear()
            self.stack.active_hand = Hand.LEFT

    def _track_beat(self, frame: HandLandmarkFrame):
        anchor = self.stack.entries[1].point(Hand.LEFT, self.landmark)
        current = frame.point(Hand.LEFT, self.landmark)
        if anchor is None or current is None:
            return

        diff = distance(anchor, current).vertical
        if diff.value > 0 and diff.order is VerticalOrder.ABOVE:
            # Fingertip is below the anchor; a shrinking dip means it turned back up
            if self._previous_dip > diff.value and self._armed:
                if self.count < self.max_count:
                    self.count += 1
                    self._armed = False
                    logger.debug("emphasis beat %d", self.count)
                    self._recognized()
            else:
                self._previous_dip = diff.value
        else:
            self._armed = True
            self._previous_dip = 0.0

    def reset(self):
        super().reset()
        self.stack.active_hand = Hand.LEFT
        self.count = 0
        self._armed = True
        self._previous_dip = 0.0
