"""Cubic Bezier curve utilities used by snapping, hit testing and point insertion."""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Default sampling density for nearest-point searches on a curve
_CLOSEST_POINT_SAMPLES: int = 50
# Newton refinement steps after the coarse sampling
_CLOSEST_POINT_NEWTON_STEPS: int = 5

CubicPoints = Union[Sequence[Tuple[float, float]], NDArray[np.float64]]


class BezierCurve:
    """Class to handle cubic Bezier curve operations.

    All methods take the four control points (start, control1, control2, end)
    either as a sequence of tuples or as a (4, 2) array.
    """

    @classmethod
    def evaluate_cubic(cls, points: CubicPoints, t: float) -> Tuple[float, float]:
        """Evaluate the cubic Bezier curve at parameter _t_ via the Bernstein basis."""
        p = np.asarray(points, dtype=np.float64)
        omt = 1.0 - t
        b0 = omt * omt * omt
        b1 = 3.0 * omt * omt * t
        b2 = 3.0 * omt * t * t
        b3 = t * t * t
        x = b0 * p[0, 0] + b1 * p[1, 0] + b2 * p[2, 0] + b3 * p[3, 0]
        y = b0 * p[0, 1] + b1 * p[1, 1] + b2 * p[2, 1] + b3 * p[3, 1]
        return (float(x), float(y))

    @classmethod
    def derivative_cubic(cls, points: CubicPoints, t: float) -> Tuple[float, float]:
        """First derivative of the cubic Bezier curve at _t_."""
        p = np.asarray(points, dtype=np.float64)
        omt = 1.0 - t
        d = 3.0 * omt * omt * (p[1] - p[0]) + 6.0 * omt * t * (p[2] - p[1]) + 3.0 * t * t * (p[3] - p[2])
        return (float(d[0]), float(d[1]))

    @classmethod
    def second_derivative_cubic(cls, points: CubicPoints, t: float) -> Tuple[float, float]:
        """Second derivative of the cubic Bezier curve at _t_."""
        p = np.asarray(points, dtype=np.float64)
        d = 6.0 * (1.0 - t) * (p[2] - 2.0 * p[1] + p[0]) + 6.0 * t * (p[3] - 2.0 * p[2] + p[1])
        return (float(d[0]), float(d[1]))

    @classmethod
    def polygonize_cubic_curve(cls, points: CubicPoints, steps: int) -> NDArray[np.float64]:
        """
        Polygonize a cubic Bezier curve into line segments.

        Args:
            points: Control points, exactly 4: start, control1, control2, end
            steps: Number of segments to divide the curve into

        Returns:
            NDArray[np.float64] of shape (steps+1, 2) containing the sampled points
        """
        points_array = np.asarray(points, dtype=np.float64)
        t = np.linspace(0, 1, steps + 1, dtype=np.float64)

        # Cubic Bezier basis functions
        omt = 1 - t
        omt2 = omt**2
        omt3 = omt2 * omt
        t2 = t**2
        t3 = t2 * t

        basis = np.stack([omt3, 3 * omt2 * t, 3 * omt * t2, t3], axis=1)
        return basis @ points_array

    @classmethod
    def split_cubic(
        cls, points: CubicPoints, t: float
    ) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Split a cubic curve at _t_ using de Casteljau's algorithm.

        Returns:
            Tuple of two (4, 2) arrays: the left and the right part. The last
            point of the left part equals the first point of the right part.
        """
        p = np.asarray(points, dtype=np.float64)
        p01 = p[0] + (p[1] - p[0]) * t
        p12 = p[1] + (p[2] - p[1]) * t
        p23 = p[2] + (p[3] - p[2]) * t
        p012 = p01 + (p12 - p01) * t
        p123 = p12 + (p23 - p12) * t
        mid = p012 + (p123 - p012) * t
        left = np.array([p[0], p01, p012, mid])
        right = np.array([mid, p123, p23, p[3]])
        return left, right

    @classmethod
    def closest_point_on_cubic(
        cls,
        points: CubicPoints,
        target: Sequence[float],
        samples: int = _CLOSEST_POINT_SAMPLES,
        newton_steps: int = _CLOSEST_POINT_NEWTON_STEPS,
    ) -> Tuple[Tuple[float, float], float, float]:
        """
        Find the point on the curve closest to _target_.

        Coarse search over _samples_ evenly spaced parameters, refined with a
        few Newton iterations on the squared distance.

        Returns:
            Tuple of (closest point, parameter t, distance)
        """
        target_arr = np.asarray(target[:2], dtype=np.float64)
        sampled = cls.polygonize_cubic_curve(points, samples)
        dists = np.linalg.norm(sampled - target_arr, axis=1)
        t = float(np.argmin(dists)) / samples

        for _ in range(newton_steps):
            pt = np.array(cls.evaluate_cubic(points, t))
            d1 = np.array(cls.derivative_cubic(points, t))
            d2 = np.array(cls.second_derivative_cubic(points, t))
            diff = pt - target_arr
            numerator = float(diff @ d1)
            denominator = float(d1 @ d1 + diff @ d2)
            if abs(denominator) < 1e-12:
                break
            t = min(1.0, max(0.0, t - numerator / denominator))

        closest = cls.evaluate_cubic(points, t)
        distance = float(np.hypot(closest[0] - target_arr[0], closest[1] - target_arr[1]))
        return closest, t, distance
