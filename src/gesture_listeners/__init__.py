"""gesture_listeners - hand-landmark frames in, discrete gesture events out."""

__version__ = "0.1.0"

from gesture_listeners.errors import ConfigurationError
from gesture_listeners.landmarks import Hand, LandmarkId, HandLandmarkFrame, frame_from_mediapipe
from gesture_listeners.geometry import BoundsRegion, distance, angle_between, is_in_bounds
from gesture_listeners.bus import EventBus, Channels, GestureEvent, Subscription
from gesture_listeners.timers import Scheduler, ManualScheduler, AsyncioScheduler, TimerHandle
from gesture_listeners.config import (
    HandsToTrack,
    ListenerConfig,
    ListenerMode,
    RecognizerConfig,
    SessionConfig,
    load_config,
)
from gesture_listeners.render import RecordingSurface, Surface, DrawCommand
from gesture_listeners.listener import GestureListener, ListenerStatus, Trigger
from gesture_listeners.variants import (
    GestureVariant,
    ContinuousCursorVariant,
    TwoHandTouchVariant,
    PointPoseVariant,
    VariantRegistry,
)
from gesture_listeners.recognizers import (
    PoseHoldStack,
    PlaybackRecognizer,
    ForeshadowingRecognizer,
    EmphasisRecognizer,
)
from gesture_listeners.session import GestureSession
from gesture_listeners.recorder import FrameRecorder, FramePlayer
