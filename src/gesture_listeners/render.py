"""Render target for listener overlays.

Listeners draw through a small surface interface instead of a concrete canvas.
``RecordingSurface`` collects the calls as serializable draw commands so a UI
(or a test) can replay them.

Usage:
    surface = RecordingSurface()
    listener.render(surface)
    for cmd in surface.get_full_state():
        send_to_client(cmd)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from gesture_listeners.geometry import BoundsRegion


@dataclass
class DrawCommand:
    """A single drawing command to send to clients."""
    type: str  # "rect", "circle", "marker", "clear"
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    radius: float = 0.0
    color: str = "#87ceeb"
    fill: bool = False
    label: str = ""

    def to_dict(self) -> dict:
        if self.type == "rect":
            return {
                "type": "rect",
                "x": round(self.x, 1),
                "y": round(self.y, 1),
                "width": round(self.width, 1),
                "height": round(self.height, 1),
                "color": self.color,
                "fill": self.fill,
            }
        elif self.type == "circle":
            return {
                "type": "circle",
                "x": round(self.x, 1),
                "y": round(self.y, 1),
                "radius": round(self.radius, 1),
                "color": self.color,
                "fill": self.fill,
            }
        elif self.type == "marker":
            return {
                "type": "marker",
                "x": round(self.x, 1),
                "y": round(self.y, 1),
                "label": self.label,
                "color": self.color,
            }
        return {"type": self.type}


# Overlay colors
BORDER_COLOR = "#87ceeb"       # skyblue
POSITION_COLOR = "#ffffff"
REFERENCE_COLOR = "#22c55e"    # green
KEYFRAME_COLOR = "#eab308"     # yellow


class Surface(ABC):
    """Drawing interface listeners render onto. Subclass for a real canvas."""

    @abstractmethod
    def draw_rect(self, x: float, y: float, width: float, height: float,
                  color: str = BORDER_COLOR, fill: bool = False):
        ...

    @abstractmethod
    def draw_circle(self, x: float, y: float, radius: float,
                    color: str = BORDER_COLOR, fill: bool = False):
        ...

    @abstractmethod
    def draw_marker(self, x: float, y: float, label: str = "",
                    color: str = KEYFRAME_COLOR):
        ...

    def draw_region(self, region: BoundsRegion, color: str = BORDER_COLOR):
        """Outline a bounds region. Unbounded regions draw nothing."""
        x, y = region.position
        if region.radius is not None:
            self.draw_circle(x, y, region.radius, color=color)
        elif region.dimensions is not None:
            self.draw_rect(x, y, region.dimensions[0], region.dimensions[1], color=color)


class RecordingSurface(Surface):
    """Surface that stores draw commands instead of painting pixels."""

    def __init__(self, max_history: int = 10000):
        self._history: list[DrawCommand] = []
        self._max_history = max_history

    def _add(self, cmd: DrawCommand):
        self._history.append(cmd)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history // 2:]

    def draw_rect(self, x, y, width, height, color=BORDER_COLOR, fill=False):
        self._add(DrawCommand(type="rect", x=x, y=y, width=width, height=height,
                              color=color, fill=fill))

    def draw_circle(self, x, y, radius, color=BORDER_COLOR, fill=False):
        self._add(DrawCommand(type="circle", x=x, y=y, radius=radius,
                              color=color, fill=fill))

    def draw_marker(self, x, y, label="", color=KEYFRAME_COLOR):
        self._add(DrawCommand(type="marker", x=x, y=y, label=label, color=color))

    def clear(self):
        self._history = [DrawCommand(type="clear")]

    def commands(self, type: Optional[str] = None) -> list[DrawCommand]:
        if type is None:
            return list(self._history)
        return [c for c in self._history if c.type == type]

    def get_full_state(self) -> list[dict]:
        """Complete drawing history for new client sync."""
        return [cmd.to_dict() for cmd in self._history]

    @property
    def command_count(self) -> int:
        return len(self._history)
