"""Handling geometries"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Denominator below which two segments count as parallel
_PARALLEL_EPS: float = 1e-10


###############################################################################
# GeomMath
###############################################################################
class GeomMath:
    """Class to provide various static methods related to geometry handling."""

    @staticmethod
    def transform_point(
        affine_trafo: Sequence[Union[int, float]], point: Sequence[Union[int, float]]
    ) -> Tuple[float, float]:
        """
        Perform an affine transformation on the given 2D point.

        The given _affine_trafo_ is a list of 6 floats, performing an affine transformation.
        The transformation is defined as:
            | x' | = | a00 a01 b0 |   | x |
            | y' | = | a10 a11 b1 | * | y |
            | 1  | = |  0   0  1  |   | 1 |
        with
            affine_trafo = [a00, a01, a10, a11, b0, b1]

        Args:
            affine_trafo (Tuple/List[float]): Affine transformation - [a00, a01, a10, a11, b0, b1]
            point (Tuple/List[float]): 2D point - (x, y)

        Returns:
            Tuple[float, float]: the transformed point
        """
        x_new = float(affine_trafo[0] * point[0] + affine_trafo[1] * point[1] + affine_trafo[4])
        y_new = float(affine_trafo[2] * point[0] + affine_trafo[3] * point[1] + affine_trafo[5])
        return (x_new, y_new)

    @staticmethod
    def rotate_point(
        point: Sequence[float], angle_degrees: float, center: Sequence[float] = (0.0, 0.0)
    ) -> Tuple[float, float]:
        """Rotate _point_ by _angle_degrees_ (clockwise in y-down space) about _center_."""
        rad = math.radians(angle_degrees)
        cos_a = math.cos(rad)
        sin_a = math.sin(rad)
        dx = point[0] - center[0]
        dy = point[1] - center[1]
        return (center[0] + dx * cos_a - dy * sin_a, center[1] + dx * sin_a + dy * cos_a)

    @staticmethod
    def distance(p1: Sequence[float], p2: Sequence[float]) -> float:
        """Euclidean distance between two points."""
        return math.hypot(p2[0] - p1[0], p2[1] - p1[1])

    @staticmethod
    def closest_point_on_segment(
        point: Sequence[float], seg_start: Sequence[float], seg_end: Sequence[float]
    ) -> Tuple[float, float]:
        """Return the point on segment [seg_start, seg_end] closest to _point_."""
        dx = seg_end[0] - seg_start[0]
        dy = seg_end[1] - seg_start[1]
        length_sq = dx * dx + dy * dy
        if length_sq == 0:
            return (float(seg_start[0]), float(seg_start[1]))
        t = ((point[0] - seg_start[0]) * dx + (point[1] - seg_start[1]) * dy) / length_sq
        t = max(0.0, min(1.0, t))
        return (seg_start[0] + t * dx, seg_start[1] + t * dy)

    @staticmethod
    def point_to_segment_distance(
        point: Sequence[float], seg_start: Sequence[float], seg_end: Sequence[float]
    ) -> float:
        """Distance from _point_ to the segment [seg_start, seg_end] (clamped projection)."""
        closest = GeomMath.closest_point_on_segment(point, seg_start, seg_end)
        return GeomMath.distance(point, closest)

    @staticmethod
    def line_segment_intersection(
        p1: Sequence[float], p2: Sequence[float], p3: Sequence[float], p4: Sequence[float]
    ) -> Optional[Tuple[float, float]]:
        """
        Exact parametric intersection of segments [p1, p2] and [p3, p4].

        Returns:
            Optional[Tuple[float, float]]: intersection point, or None if the
            segments are parallel or do not meet within both parameter ranges.
        """
        denom = (p1[0] - p2[0]) * (p3[1] - p4[1]) - (p1[1] - p2[1]) * (p3[0] - p4[0])
        if abs(denom) < _PARALLEL_EPS:
            return None
        t = ((p1[0] - p3[0]) * (p3[1] - p4[1]) - (p1[1] - p3[1]) * (p3[0] - p4[0])) / denom
        u = -((p1[0] - p2[0]) * (p1[1] - p3[1]) - (p1[1] - p2[1]) * (p1[0] - p3[0])) / denom
        if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
            return (p1[0] + t * (p2[0] - p1[0]), p1[1] + t * (p2[1] - p1[1]))
        return None

    @staticmethod
    def points_in_polygon(points: NDArray[np.float64], polygon: NDArray[np.float64]) -> NDArray[np.bool_]:
        """
        Even-odd point-in-polygon test for many points at once.

        Args:
            points (NDArray): shape (N, 2)
            polygon (NDArray): shape (M, 2), implicitly closed

        Returns:
            NDArray[bool]: shape (N,), True where the point lies inside
        """
        px = points[:, 0][:, np.newaxis]
        py = points[:, 1][:, np.newaxis]
        xi = polygon[:, 0]
        yi = polygon[:, 1]
        xj = np.roll(xi, 1)
        yj = np.roll(yi, 1)
        crosses = (yi > py) != (yj > py)
        with np.errstate(divide="ignore", invalid="ignore"):
            x_at = (xj - xi) * (py - yi) / (yj - yi) + xi
        hits = crosses & (px < x_at)
        return (np.count_nonzero(hits, axis=1) % 2) == 1


###############################################################################
# VeBox
###############################################################################
@dataclass
class VeBox:
    """
    Represents a rectangular box with coordinates and dimensions.

    Attributes:
        xmin (float): The minimum x-coordinate.
        ymin (float): The minimum y-coordinate.
        xmax (float): The maximum x-coordinate.
        ymax (float): The maximum y-coordinate.
    """

    _xmin: float
    _ymin: float
    _xmax: float
    _ymax: float

    def __init__(self, xmin: float, ymin: float, xmax: float, ymax: float):
        self._xmin = xmin
        self._ymin = ymin
        self._xmax = xmax
        self._ymax = ymax

        # Normalize coordinates to ensure xmin <= xmax and ymin <= ymax
        if self._xmin > self._xmax:
            self._xmin, self._xmax = self._xmax, self._xmin
        if self._ymin > self._ymax:
            self._ymin, self._ymax = self._ymax, self._ymin

    @property
    def xmin(self) -> float:
        """float: The minimum x-coordinate."""
        return self._xmin

    @property
    def ymin(self) -> float:
        """float: The minimum y-coordinate."""
        return self._ymin

    @property
    def xmax(self) -> float:
        """float: The maximum x-coordinate."""
        return self._xmax

    @property
    def ymax(self) -> float:
        """float: The maximum y-coordinate."""
        return self._ymax

    @property
    def extent(self) -> Tuple[float, float, float, float]:
        """The extent of the box as Tuple (xmin, ymin, xmax, ymax)."""
        return self._xmin, self._ymin, self._xmax, self._ymax

    @property
    def width(self) -> float:
        """float: The width of the box (difference between xmax and xmin)."""
        return self._xmax - self._xmin

    @property
    def height(self) -> float:
        """float: The height of the box (difference between ymax and ymin)."""
        return self._ymax - self._ymin

    @property
    def centroid(self) -> Tuple[float, float]:
        """The center of the box as (x, y)."""
        return (self._xmin + self._xmax) / 2, (self._ymin + self._ymax) / 2

    @property
    def corners(self) -> List[Tuple[float, float]]:
        """Corners in order top-left, top-right, bottom-right, bottom-left (y-down)."""
        return [
            (self._xmin, self._ymin),
            (self._xmax, self._ymin),
            (self._xmax, self._ymax),
            (self._xmin, self._ymax),
        ]

    @property
    def edge_midpoints(self) -> List[Tuple[float, float]]:
        """Midpoints of the top, right, bottom and left edges."""
        cx, cy = self.centroid
        return [(cx, self._ymin), (self._xmax, cy), (cx, self._ymax), (self._xmin, cy)]

    def contains_point(self, point: Sequence[float]) -> bool:
        """True if _point_ lies inside the box or on its border."""
        return self._xmin <= point[0] <= self._xmax and self._ymin <= point[1] <= self._ymax

    def contains_box(self, other: VeBox) -> bool:
        """True if _other_ lies completely inside this box."""
        return (
            self._xmin <= other.xmin
            and self._ymin <= other.ymin
            and other.xmax <= self._xmax
            and other.ymax <= self._ymax
        )

    def intersects(self, other: VeBox) -> bool:
        """True if the boxes overlap or touch."""
        return not (
            other.xmin > self._xmax or other.xmax < self._xmin or other.ymin > self._ymax or other.ymax < self._ymin
        )

    def union(self, other: VeBox) -> VeBox:
        """Smallest box enclosing this box and _other_."""
        return VeBox(
            xmin=min(self._xmin, other.xmin),
            ymin=min(self._ymin, other.ymin),
            xmax=max(self._xmax, other.xmax),
            ymax=max(self._ymax, other.ymax),
        )

    def expand(self, margin: float) -> VeBox:
        """Box grown by _margin_ on every side."""
        return VeBox(
            xmin=self._xmin - margin, ymin=self._ymin - margin, xmax=self._xmax + margin, ymax=self._ymax + margin
        )

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]]) -> Optional[VeBox]:
        """Bounding box of the finite given points, or None if there are none."""
        array = np.array([(p[0], p[1]) for p in points], dtype=np.float64).reshape(-1, 2)
        array = array[np.isfinite(array).all(axis=1)]
        if array.size == 0:
            return None
        mins = array.min(axis=0)
        maxs = array.max(axis=0)
        return cls(xmin=float(mins[0]), ymin=float(mins[1]), xmax=float(maxs[0]), ymax=float(maxs[1]))

    def __str__(self):
        return (
            f"VeBox(xmin={self.xmin}, ymin={self.ymin}, "
            f"xmax={self.xmax}, ymax={self.ymax}, "
            f"width={self.width}, height={self.height})"
        )


###############################################################################
# VeViewport
###############################################################################
@dataclass(frozen=True)
class VeViewport:
    """Viewport descriptor supplied by the coordinate layer."""

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0

    def __post_init__(self) -> None:
        if self.zoom <= 0:
            raise ValueError(f"zoom must be > 0, got {self.zoom}")

    def screen_to_path_distance(self, distance: float) -> float:
        """Convert a screen-pixel distance to path units."""
        return distance / self.zoom

    def screen_to_path(self, x: float, y: float) -> Tuple[float, float]:
        """Convert a screen position to path space."""
        return ((x - self.pan_x) / self.zoom, (y - self.pan_y) / self.zoom)
