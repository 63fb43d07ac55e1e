"""Tests for vecedit.path_shapes"""

import pytest

from vecedit.path import VePoint
from vecedit.path_shapes import BEZIER_CIRCLE_KAPPA, PathShapes
from vecedit.path_support import PathCommandProcessor


class TestPathShapes:
    """Shape factories."""

    def test_rectangle(self):
        commands = PathShapes.rectangle(0, 0, 10, 20)
        assert [c.type for c in commands] == ["M", "L", "L", "L", "Z"]
        assert [c.position for c in commands[:4]] == [VePoint(0, 0), VePoint(10, 0), VePoint(10, 20), VePoint(0, 20)]

    def test_square(self):
        commands = PathShapes.square(5, 5, 5)
        assert PathCommandProcessor.commands_to_string(commands) == "M 0 0 L 10 0 L 10 10 L 0 10 Z"

    def test_line(self):
        assert PathCommandProcessor.commands_to_string(PathShapes.line(1, 2, 3, 4)) == "M 1 2 L 3 4"

    def test_diamond(self):
        commands = PathShapes.diamond(10, 10, 5, 8)
        assert [c.position for c in commands[:4]] == [VePoint(10, 2), VePoint(15, 10), VePoint(10, 18), VePoint(5, 10)]
        assert commands[-1].type == "Z"

    def test_triangle(self):
        commands = PathShapes.triangle(5, 0, 10, 10, 0)
        assert PathCommandProcessor.commands_to_string(commands) == "M 5 0 L 10 10 L 0 10 Z"

    def test_circle(self):
        commands = PathShapes.circle(0, 0, 10)
        assert [c.type for c in commands] == ["M", "C", "C", "C", "C", "Z"]
        assert [c.position for c in commands[:5]] == [
            VePoint(-10, 0),
            VePoint(0, -10),
            VePoint(10, 0),
            VePoint(0, 10),
            VePoint(-10, 0),
        ]
        assert commands[1].control_point1 == VePoint(-10, -5.52)
        assert BEZIER_CIRCLE_KAPPA == pytest.approx(0.5523, abs=1e-4)

    def test_coordinates_are_rounded(self):
        commands = PathShapes.line(0.123456, 0, 1, 1)
        assert commands[0].position.x == 0.12
