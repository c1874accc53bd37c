#!/usr/bin/env python3
"""Write a synthetic landmark recording. No camera required.

The hand drifts across the canvas, then rests on the confirm hot spot of
examples/session.yaml so a replay shows both streaming and a confirm event.

Usage:
    python examples/synthetic_recording.py -o recording.json
    gesture-listeners replay recording.json --config examples/session.yaml
"""

from __future__ import annotations

import argparse

import numpy as np

from gesture_listeners import FrameRecorder, HandLandmarkFrame


def synthetic_hand(x: float, y: float, rng: np.random.Generator, jitter: float) -> np.ndarray:
    """21 landmarks around (x, y) with a little per-frame noise."""
    offsets = np.linspace(-20, 20, 21)
    lm = np.zeros((21, 3))
    lm[:, 0] = x + offsets * 0.3
    lm[:, 1] = y + offsets
    lm[8, :2] = [x, y]  # index fingertip sits exactly on the path
    lm[:, :2] += rng.normal(0, jitter, size=(21, 2))
    return lm


def main():
    parser = argparse.ArgumentParser(description="Write a synthetic landmark recording")
    parser.add_argument("-o", "--output", default="recording.json", help="Output file")
    parser.add_argument("--fps", type=float, default=30.0, help="Frames per second")
    parser.add_argument("--seconds", type=float, default=3.0, help="Recording length")
    parser.add_argument("--jitter", type=float, default=1.5, help="Landmark noise (px)")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    n_frames = int(args.fps * args.seconds)
    drift_frames = n_frames // 2

    recorder = FrameRecorder()
    recorder.start()
    for i in range(n_frames):
        if i < drift_frames:
            t = i / max(1, drift_frames - 1)
            x, y = 100 + t * 500, 300 - t * 260
        else:
            x, y = 600, 40
        hand = synthetic_hand(x, y, rng, args.jitter)
        recorder.add_frame(HandLandmarkFrame(right=hand), timestamp=i / args.fps)
    recorder.stop()
    recorder.save(args.output)

    print(f"Wrote {recorder.frame_count} frames ({recorder.duration:.1f}s) to {args.output}")


if __name__ == "__main__":
    main()
