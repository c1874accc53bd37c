"""Tests for the render surface interface."""

import pytest

from gesture_listeners.geometry import BoundsRegion
from gesture_listeners.render import RecordingSurface, Surface


class TestSurface:
    def test_interface_not_instantiable(self):
        with pytest.raises(TypeError):
            Surface()

    def test_partial_subclass_not_instantiable(self):
        class RectOnly(Surface):
            def draw_rect(self, x, y, width, height, color="", fill=False):
                pass

        with pytest.raises(TypeError):
            RectOnly()

    def test_subclass_gets_draw_region(self):
        calls = []

        class Canvas(Surface):
            def draw_rect(self, x, y, width, height, color="", fill=False):
                calls.append(("rect", x, y, width, height))

            def draw_circle(self, x, y, radius, color="", fill=False):
                calls.append(("circle", x, y, radius))

            def draw_marker(self, x, y, label="", color=""):
                calls.append(("marker", x, y, label))

        canvas = Canvas()
        canvas.draw_region(BoundsRegion(position=(10, 20), dimensions=(30, 40)))
        canvas.draw_region(BoundsRegion(position=(5, 5), radius=8))
        canvas.draw_region(BoundsRegion())

        assert calls == [("rect", 10.0, 20.0, 30.0, 40.0), ("circle", 5.0, 5.0, 8)]


class TestRecordingSurface:
    def test_records_commands(self):
        surface = RecordingSurface()
        surface.draw_region(BoundsRegion(position=(0, 0), dimensions=(100, 50)))
        surface.draw_marker(3, 4, label="k1")

        assert surface.command_count == 2
        assert [c.type for c in surface.commands()] == ["rect", "marker"]
        assert surface.commands("marker")[0].label == "k1"

    def test_clear(self):
        surface = RecordingSurface()
        surface.draw_circle(1, 1, 2)
        surface.clear()
        assert [c["type"] for c in surface.get_full_state()] == ["clear"]
