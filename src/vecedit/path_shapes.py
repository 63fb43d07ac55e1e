"""Factories producing the command lists of the basic shapes."""

from __future__ import annotations

import math
from typing import List

from vecedit.common import format_to_precision
from vecedit.path import PathCommand, VePoint

# Control point distance of a quarter circle relative to its radius
BEZIER_CIRCLE_KAPPA: float = 4.0 * (math.sqrt(2.0) - 1.0) / 3.0


def _pt(x: float, y: float) -> VePoint:
    return VePoint(format_to_precision(x), format_to_precision(y))


class PathShapes:
    """Static factories for shape commands. All coordinates are rounded to path precision."""

    @staticmethod
    def rectangle(start_x: float, start_y: float, end_x: float, end_y: float) -> List[PathCommand]:
        """Closed rectangle spanning the two corner points."""
        return [
            PathCommand("M", position=_pt(start_x, start_y)),
            PathCommand("L", position=_pt(end_x, start_y)),
            PathCommand("L", position=_pt(end_x, end_y)),
            PathCommand("L", position=_pt(start_x, end_y)),
            PathCommand.close(),
        ]

    @staticmethod
    def square(center_x: float, center_y: float, half_size: float) -> List[PathCommand]:
        """Closed square around the center."""
        return PathShapes.rectangle(
            center_x - half_size, center_y - half_size, center_x + half_size, center_y + half_size
        )

    @staticmethod
    def line(start_x: float, start_y: float, end_x: float, end_y: float) -> List[PathCommand]:
        """Open two-point line."""
        return [PathCommand("M", position=_pt(start_x, start_y)), PathCommand("L", position=_pt(end_x, end_y))]

    @staticmethod
    def diamond(center_x: float, center_y: float, half_width: float, half_height: float) -> List[PathCommand]:
        """Closed diamond, starting at the top point and running clockwise."""
        return [
            PathCommand("M", position=_pt(center_x, center_y - half_height)),
            PathCommand("L", position=_pt(center_x + half_width, center_y)),
            PathCommand("L", position=_pt(center_x, center_y + half_height)),
            PathCommand("L", position=_pt(center_x - half_width, center_y)),
            PathCommand.close(),
        ]

    @staticmethod
    def triangle(center_x: float, start_y: float, end_x: float, end_y: float, start_x: float) -> List[PathCommand]:
        """Closed isosceles triangle with its apex at (center_x, start_y)."""
        return [
            PathCommand("M", position=_pt(center_x, start_y)),
            PathCommand("L", position=_pt(end_x, end_y)),
            PathCommand("L", position=_pt(start_x, end_y)),
            PathCommand.close(),
        ]

    @staticmethod
    def circle(center_x: float, center_y: float, radius: float) -> List[PathCommand]:
        """
        Closed circle made of four cubic quarter arcs.

        Starts at the leftmost point and runs through top, right and bottom.
        """
        k = radius * BEZIER_CIRCLE_KAPPA
        cx, cy, r = center_x, center_y, radius
        quarters = [
            ((cx - r, cy - k), (cx - k, cy - r), (cx, cy - r)),
            ((cx + k, cy - r), (cx + r, cy - k), (cx + r, cy)),
            ((cx + r, cy + k), (cx + k, cy + r), (cx, cy + r)),
            ((cx - k, cy + r), (cx - r, cy + k), (cx - r, cy)),
        ]
        return [
            PathCommand("M", position=_pt(cx - r, cy)),
            *(
                PathCommand("C", control_point1=_pt(*c1), control_point2=_pt(*c2), position=_pt(*end))
                for c1, c2, end in quarters
            ),
            PathCommand.close(),
        ]
