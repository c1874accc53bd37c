"""Frame recording and replay: capture landmark frames to disk.

Recordings make listener behavior reproducible without a camera:
- deterministic tests of timing-sensitive gestures
- replaying a session through a different configuration

Format (JSON):
    {"version": 1, "frame_count": N, "duration": seconds,
     "frames": [{"timestamp": s, "left": [[x, y], ...] | null, "right": ...}]}
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

from gesture_listeners.landmarks import HandLandmarkFrame
from gesture_listeners.timers import ManualScheduler

if TYPE_CHECKING:
    from gesture_listeners.session import GestureSession

logger = logging.getLogger("gesture_listeners.recorder")

FORMAT_VERSION = 1


class FrameRecorder:
    """Records landmark frames with timestamps relative to ``start()``.

    Usage:
        recorder = FrameRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add_frame(frame)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[HandLandmarkFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        """Duration of recording in seconds."""
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add_frame(self, frame: HandLandmarkFrame, timestamp: Optional[float] = None):
        """Add a frame, stamped with ``timestamp`` or the time since ``start()``."""
        if not self._recording:
            return
        if timestamp is None:
            timestamp = time.monotonic() - self._start_time
        self._frames.append(
            HandLandmarkFrame(left=frame.left, right=frame.right, timestamp=timestamp)
        )

    def save(self, path: str | Path):
        """Save recording to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [f.to_dict() for f in self._frames],
        }

        with open(path, "w") as f:
            json.dump(data, f)
        logger.info("Saved %d frames to %s", len(self._frames), path)


class FramePlayer:
    """Replays a recorded session.

    Usage:
        player = FramePlayer.load("session.json")
        player.replay(session, scheduler)   # virtual time, no sleeping

        # Or at original speed:
        for frame in player.play_realtime():
            session.process_frame(frame)
    """

    def __init__(self, frames: list[HandLandmarkFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> FramePlayer:
        """Load recording from JSON file."""
        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"{path}: unsupported recording version {version}")

        return cls([HandLandmarkFrame.from_dict(f) for f in data["frames"]])

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def play(self) -> Iterator[HandLandmarkFrame]:
        """Iterate through all frames instantly (no timing)."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[HandLandmarkFrame]:
        """Replay at original timing (or scaled by speed factor).

        Args:
            speed: Playback speed multiplier (2.0 = double speed).
        """
        if not self._frames:
            return

        start = time.monotonic()

        for frame in self._frames:
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def replay(self, session: GestureSession, scheduler: ManualScheduler) -> int:
        """Feed every frame into ``session`` on virtual time.

        Before each frame the scheduler clock is moved to the frame timestamp
        (in ms), so cooldowns and holds elapse exactly where they would have
        live. Returns the number of frames delivered.
        """
        origin = scheduler.now()
        for frame in self._frames:
            target = origin + frame.timestamp * 1000.0
            if target > scheduler.now():
                scheduler.advance_to(target)
            session.process_frame(frame)
        return len(self._frames)
