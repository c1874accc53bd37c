"""Hand landmark frames: the input unit of every listener and recognizer.

A frame holds at most one landmark array per hand side. Arrays follow the
MediaPipe 21-point hand skeleton and are already scaled to canvas pixels by
the upstream pose-estimation pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Sequence

import numpy as np

NUM_LANDMARKS = 21


class Hand(Enum):
    LEFT = "left"
    RIGHT = "right"


class LandmarkId(IntEnum):
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


def _freeze(landmarks) -> Optional[np.ndarray]:
    if landmarks is None:
        return None
    arr = np.array(landmarks, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] < 2:
        raise ValueError(
            f"Expected landmarks of shape ({NUM_LANDMARKS}, 2|3), got {arr.shape}"
        )
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class HandLandmarkFrame:
    """Immutable snapshot of both hands for one detection cycle.

    Landmark arrays have shape (21, 2) or (21, 3); only x and y are used.
    A missing hand is ``None``.
    """

    left: Optional[np.ndarray] = None
    right: Optional[np.ndarray] = None
    timestamp: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "left", _freeze(self.left))
        object.__setattr__(self, "right", _freeze(self.right))

    def hand(self, side: Hand) -> Optional[np.ndarray]:
        return self.left if side is Hand.LEFT else self.right

    def has(self, side: Hand) -> bool:
        return self.hand(side) is not None

    @property
    def hand_count(self) -> int:
        return int(self.left is not None) + int(self.right is not None)

    def point(self, side: Hand, landmark: int) -> Optional[np.ndarray]:
        """(x, y) of one landmark, or None if that hand is absent."""
        hand = self.hand(side)
        if hand is None:
            return None
        return hand[int(landmark), :2]

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "left": self.left.tolist() if self.left is not None else None,
            "right": self.right.tolist() if self.right is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> HandLandmarkFrame:
        return cls(
            left=data.get("left"),
            right=data.get("right"),
            timestamp=data.get("timestamp", 0.0),
        )


def mirror_horizontally(width: float, x: float) -> float:
    return width - x


def scale_landmarks_to_canvas(
    landmarks: Sequence[Sequence[float]],
    width: float,
    height: float,
    mirror: bool = True,
) -> np.ndarray:
    """Scale normalized [0, 1] landmarks to canvas pixels.

    The webcam preview is mirrored, so x is flipped by default.
    """
    arr = np.array(landmarks, dtype=np.float64)
    scaled = arr.copy()
    scaled[:, 0] = arr[:, 0] * width
    if mirror:
        scaled[:, 0] = mirror_horizontally(width, scaled[:, 0])
    scaled[:, 1] = arr[:, 1] * height
    return scaled


def frame_from_mediapipe(
    multi_hand_landmarks: Sequence[Sequence[Sequence[float]]],
    handedness_labels: Sequence[str],
    width: float,
    height: float,
    mirror: bool = True,
    timestamp: float = 0.0,
) -> HandLandmarkFrame:
    """Build a frame from raw MediaPipe Hands output.

    MediaPipe labels handedness as seen by the camera; on a mirrored feed its
    "Left" is the user's right hand, so labels are swapped when ``mirror`` is set.
    """
    hands: dict[Hand, np.ndarray] = {}
    for landmarks, label in zip(multi_hand_landmarks, handedness_labels):
        label = label.lower()
        if mirror:
            side = Hand.RIGHT if label == "left" else Hand.LEFT
        else:
            side = Hand.LEFT if label == "left" else Hand.RIGHT
        hands[side] = scale_landmarks_to_canvas(landmarks, width, height, mirror)

    return HandLandmarkFrame(
        left=hands.get(Hand.LEFT),
        right=hands.get(Hand.RIGHT),
        timestamp=timestamp,
    )
