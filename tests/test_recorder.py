"""Tests for frame recording and replay."""

import json

import numpy as np
import pytest

from gesture_listeners.bus import Channels
from gesture_listeners.config import ListenerConfig, ListenerDefinition, SessionConfig
from gesture_listeners.landmarks import HandLandmarkFrame
from gesture_listeners.recorder import FramePlayer, FrameRecorder
from gesture_listeners.session import GestureSession
from gesture_listeners.timers import ManualScheduler


def _make_hand(x: float, y: float) -> np.ndarray:
    lm = np.zeros((21, 2))
    lm[:, 0] = x
    lm[:, 1] = y
    return lm


def _right(x, y):
    return HandLandmarkFrame(right=_make_hand(x, y))


class TestRecorder:
    def test_record_and_count(self):
        rec = FrameRecorder()
        rec.start()
        for _ in range(10):
            rec.add_frame(_right(1, 1))
        assert rec.stop() == 10
        assert not rec.is_recording

    def test_not_recording_ignores_frames(self):
        rec = FrameRecorder()
        rec.add_frame(_right(1, 1))
        assert rec.frame_count == 0

    def test_explicit_timestamps(self):
        rec = FrameRecorder()
        rec.start()
        rec.add_frame(_right(1, 1), timestamp=0.0)
        rec.add_frame(_right(1, 1), timestamp=2.5)
        assert rec.duration == 2.5

    def test_save_format(self, tmp_path):
        rec = FrameRecorder()
        rec.start()
        rec.add_frame(HandLandmarkFrame(left=_make_hand(1, 2)), timestamp=0.5)
        rec.stop()

        path = tmp_path / "nested" / "rec.json"
        rec.save(path)

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["frame_count"] == 1
        assert data["duration"] == 0.5
        assert data["frames"][0]["right"] is None
        assert data["frames"][0]["left"][0] == [1.0, 2.0]

    def test_save_and_load(self, tmp_path):
        rec = FrameRecorder()
        rec.start()
        rec.add_frame(_right(10, 20), timestamp=0.0)
        rec.add_frame(_right(30, 40), timestamp=0.1)
        rec.stop()
        path = tmp_path / "rec.json"
        rec.save(path)

        player = FramePlayer.load(path)
        assert player.frame_count == 2
        assert player.duration == pytest.approx(0.1)
        frames = list(player.play())
        assert frames[1].right[0].tolist() == [30, 40]

    def test_unsupported_version(self, tmp_path):
        path = tmp_path / "rec.json"
        path.write_text(json.dumps({"version": 9, "frames": []}))
        with pytest.raises(ValueError):
            FramePlayer.load(path)


class TestReplay:
    def _session(self, scheduler):
        config = SessionConfig(listeners=[
            ListenerDefinition(
                name="select",
                variant="point_pose",
                config=ListenerConfig(position=(0, 0), dimensions=(200, 200)),
            ),
        ])
        return GestureSession(config, scheduler, recognizers=False)

    def test_replay_drives_virtual_time(self):
        # Hold still for 1.2 s at 10 fps
        frames = [
            HandLandmarkFrame(right=_make_hand(50, 50), timestamp=i * 0.1) for i in range(13)
        ]
        scheduler = ManualScheduler()
        session = self._session(scheduler)
        selections = []
        session.bus.subscribe(Channels.SELECTION, lambda e: selections.append(e.payload))

        delivered = FramePlayer(frames).replay(session, scheduler)

        assert delivered == 13
        assert len(selections) == 1
        assert scheduler.now() == pytest.approx(1200)

    def test_replay_short_hold(self):
        frames = [
            HandLandmarkFrame(right=_make_hand(50, 50), timestamp=i * 0.1) for i in range(5)
        ]
        scheduler = ManualScheduler()
        session = self._session(scheduler)
        selections = []
        session.bus.subscribe(Channels.SELECTION, lambda e: selections.append(e.payload))

        FramePlayer(frames).replay(session, scheduler)
        assert selections == []
