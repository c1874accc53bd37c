"""Listener and recognizer configuration.

Configs are frozen dataclasses validated on construction. A whole session can
be described in YAML:

    listeners:
      - name: confirm
        variant: cursor
        position: [0, 0]
        dimensions: [640, 480]
        channel_key: selection
        reset_pause_duration: 1000
        options:
          confirm_region: {position: [560, 0], dimensions: [80, 80]}
    recognizers:
      hold_duration: 1000
      distance_threshold: 30
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml

from gesture_listeners.bus import Channels
from gesture_listeners.errors import ConfigurationError
from gesture_listeners.geometry import BoundsRegion
from gesture_listeners.landmarks import NUM_LANDMARKS, Hand, LandmarkId

# Milliseconds
DEFAULT_TRIGGER_DURATION = 1000
DEFAULT_RESET_PAUSE_DURATION = 1000
DEFAULT_HOLD_DURATION = 1000
# Canvas pixels
DEFAULT_DISTANCE_THRESHOLD = 30.0


class ListenerMode(Enum):
    DEFAULT = "default"
    KEYFRAME = "keyframe"


def _hand(value) -> Hand:
    if isinstance(value, Hand):
        return value
    try:
        return Hand(str(value).lower())
    except ValueError:
        raise ConfigurationError(f"Unknown hand: {value!r}") from None


def _opposite(hand: Hand) -> Hand:
    return Hand.LEFT if hand is Hand.RIGHT else Hand.RIGHT


def _is_number(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _check_duration(name: str, value: float):
    if not _is_number(value):
        raise ConfigurationError(f"{name} must be a number of milliseconds, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")


def landmark_id(value) -> LandmarkId:
    """Validate a landmark index from config and return it as a LandmarkId."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"Landmark id must be an integer, got {value!r}")
    if not 0 <= value < NUM_LANDMARKS:
        raise ConfigurationError(
            f"Landmark id {value} outside 0..{NUM_LANDMARKS - 1}"
        )
    return LandmarkId(int(value))


def _pair(name: str, value) -> tuple[float, float]:
    if isinstance(value, (str, bytes, dict)) or not hasattr(value, "__len__"):
        raise ConfigurationError(f"{name} must be a pair of numbers, got {value!r}")
    if len(value) != 2 or not all(_is_number(v) for v in value):
        raise ConfigurationError(f"{name} must be a pair of numbers, got {value!r}")
    return tuple(value)


def _mapping(name: str, value) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{name} must be a mapping, got {value!r}")
    return value


@dataclass(frozen=True)
class HandsToTrack:
    """Dominant / non-dominant hand roles. The two must differ.

    Giving only one role assigns the other hand to the other role.
    """
    dominant: Optional[Hand] = None
    non_dominant: Optional[Hand] = None

    def __post_init__(self):
        dominant, non_dominant = self.dominant, self.non_dominant
        if dominant is None and non_dominant is None:
            dominant = Hand.RIGHT
        if dominant is None:
            non_dominant = _hand(non_dominant)
            dominant = _opposite(non_dominant)
        elif non_dominant is None:
            dominant = _hand(dominant)
            non_dominant = _opposite(dominant)
        object.__setattr__(self, "dominant", _hand(dominant))
        object.__setattr__(self, "non_dominant", _hand(non_dominant))
        if self.dominant is self.non_dominant:
            raise ConfigurationError(
                f"Dominant and non-dominant hand must differ (both {self.dominant.value})"
            )

    def to_dict(self) -> dict:
        return {"dominant": self.dominant.value, "non_dominant": self.non_dominant.value}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> HandsToTrack:
        data = _mapping("hands_to_track", data)
        return cls(dominant=data.get("dominant"), non_dominant=data.get("non_dominant"))


@dataclass(frozen=True)
class ListenerConfig:
    """Construction options shared by every listener."""

    position: tuple[float, float] = (0.0, 0.0)
    dimensions: Optional[tuple[float, float]] = None
    radius: Optional[float] = None
    hands_to_track: HandsToTrack = field(default_factory=HandsToTrack)
    tracked_fingers: tuple[int, ...] = (LandmarkId.INDEX_FINGER_TIP,)
    trigger_duration: float = DEFAULT_TRIGGER_DURATION
    reset_pause_duration: float = DEFAULT_RESET_PAUSE_DURATION
    num_hands: int = 1
    channel_key: str = Channels.SELECTION
    listener_mode: ListenerMode = ListenerMode.DEFAULT

    def __post_init__(self):
        object.__setattr__(self, "position", _pair("position", self.position))
        if self.dimensions is not None:
            object.__setattr__(self, "dimensions", _pair("dimensions", self.dimensions))
        if self.radius is not None and not _is_number(self.radius):
            raise ConfigurationError(f"radius must be a number, got {self.radius!r}")
        if not isinstance(self.hands_to_track, HandsToTrack):
            raise ConfigurationError(
                f"hands_to_track must be a HandsToTrack, got {self.hands_to_track!r}"
            )
        if isinstance(self.tracked_fingers, (str, bytes)) or not isinstance(
            self.tracked_fingers, (list, tuple)
        ):
            raise ConfigurationError(
                f"tracked_fingers must be a list of landmark ids, got {self.tracked_fingers!r}"
            )
        if not self.tracked_fingers:
            raise ConfigurationError("At least one tracked finger is required")
        object.__setattr__(
            self, "tracked_fingers", tuple(landmark_id(f) for f in self.tracked_fingers)
        )
        _check_duration("trigger_duration", self.trigger_duration)
        _check_duration("reset_pause_duration", self.reset_pause_duration)
        if isinstance(self.num_hands, bool) or self.num_hands not in (1, 2):
            raise ConfigurationError(f"num_hands must be 1 or 2, got {self.num_hands!r}")
        if not self.channel_key or not isinstance(self.channel_key, str):
            raise ConfigurationError(
                f"channel_key must be a non-empty string, got {self.channel_key!r}"
            )
        if not isinstance(self.listener_mode, ListenerMode):
            try:
                object.__setattr__(self, "listener_mode", ListenerMode(self.listener_mode))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown listener mode: {self.listener_mode!r}"
                ) from None
        # Raises if both dimensions and radius are set
        _ = self.region

    @property
    def region(self) -> BoundsRegion:
        return BoundsRegion(
            position=self.position,
            dimensions=self.dimensions,
            radius=self.radius,
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "position": list(self.position),
            "hands_to_track": self.hands_to_track.to_dict(),
            "tracked_fingers": [int(f) for f in self.tracked_fingers],
            "trigger_duration": self.trigger_duration,
            "reset_pause_duration": self.reset_pause_duration,
            "num_hands": self.num_hands,
            "channel_key": self.channel_key,
            "listener_mode": self.listener_mode.value,
        }
        if self.dimensions is not None:
            data["dimensions"] = list(self.dimensions)
        if self.radius is not None:
            data["radius"] = self.radius
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ListenerConfig:
        data = _mapping("listener entry", data)
        fingers = data.get("tracked_fingers", (LandmarkId.INDEX_FINGER_TIP,))
        return cls(
            position=data.get("position", (0.0, 0.0)),
            dimensions=data.get("dimensions"),
            radius=data.get("radius"),
            hands_to_track=HandsToTrack.from_dict(data.get("hands_to_track")),
            tracked_fingers=tuple(fingers) if isinstance(fingers, list) else fingers,
            trigger_duration=data.get("trigger_duration", DEFAULT_TRIGGER_DURATION),
            reset_pause_duration=data.get(
                "reset_pause_duration", DEFAULT_RESET_PAUSE_DURATION
            ),
            num_hands=data.get("num_hands", 1),
            channel_key=data.get("channel_key", Channels.SELECTION),
            listener_mode=data.get("listener_mode", ListenerMode.DEFAULT.value),
        )


@dataclass(frozen=True)
class RecognizerConfig:
    """Pose-hold recognizer tuning."""

    hold_duration: float = DEFAULT_HOLD_DURATION
    distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD
    tracked_landmark: int = LandmarkId.INDEX_FINGER_TIP

    def __post_init__(self):
        _check_duration("hold_duration", self.hold_duration)
        if not _is_number(self.distance_threshold) or self.distance_threshold <= 0:
            raise ConfigurationError(
                f"distance_threshold must be a positive number, got {self.distance_threshold!r}"
            )
        object.__setattr__(self, "tracked_landmark", landmark_id(self.tracked_landmark))

    def to_dict(self) -> dict:
        return {
            "hold_duration": self.hold_duration,
            "distance_threshold": self.distance_threshold,
            "tracked_landmark": int(self.tracked_landmark),
        }

    @classmethod
    def from_dict(cls, data: dict) -> RecognizerConfig:
        data = _mapping("recognizers", data)
        return cls(
            hold_duration=data.get("hold_duration", DEFAULT_HOLD_DURATION),
            distance_threshold=data.get("distance_threshold", DEFAULT_DISTANCE_THRESHOLD),
            tracked_landmark=data.get("tracked_landmark", LandmarkId.INDEX_FINGER_TIP),
        )


@dataclass
class ListenerDefinition:
    """A named listener entry from a session file."""
    name: str
    variant: str
    config: ListenerConfig
    options: dict[str, Any] = field(default_factory=dict)
    active: bool = True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "variant": self.variant,
            **self.config.to_dict(),
            "options": self.options,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ListenerDefinition:
        data = _mapping("listener entry", data)
        if "name" not in data or "variant" not in data:
            raise ConfigurationError(f"Listener entry needs 'name' and 'variant': {data}")
        if not isinstance(data["name"], str) or not isinstance(data["variant"], str):
            raise ConfigurationError(f"Listener name and variant must be strings: {data}")
        return cls(
            name=data["name"],
            variant=data["variant"],
            config=ListenerConfig.from_dict(data),
            options=dict(_mapping("options", data.get("options"))),
            active=data.get("active", True),
        )


@dataclass
class SessionConfig:
    """Everything a GestureSession is built from."""
    listeners: list[ListenerDefinition] = field(default_factory=list)
    recognizers: RecognizerConfig = field(default_factory=RecognizerConfig)

    def to_dict(self) -> dict:
        return {
            "listeners": [d.to_dict() for d in self.listeners],
            "recognizers": self.recognizers.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionConfig:
        entries = data.get("listeners") or []
        if not isinstance(entries, list):
            raise ConfigurationError(f"listeners must be a list, got {entries!r}")
        listeners = [ListenerDefinition.from_dict(e) for e in entries]
        names = [d.name for d in listeners]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ConfigurationError(f"Duplicate listener names: {sorted(duplicates)}")
        return cls(
            listeners=listeners,
            recognizers=RecognizerConfig.from_dict(data.get("recognizers")),
        )


def load_config(path: str | Path) -> SessionConfig:
    """Load a session config from a YAML file."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"{path}: not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")
    return SessionConfig.from_dict(data)


def save_config(config: SessionConfig, path: str | Path):
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
