"""Geometric transforms of path commands: scale, rotate, translate, skew and distort."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from vecedit.common import PATH_DECIMAL_PRECISION, format_to_precision
from vecedit.geom import GeomMath, VeBox
from vecedit.path import PathCommand, VePathData, VePoint

logger = logging.getLogger(__name__)

Corner = Tuple[float, float]


@dataclass(frozen=True)
class TransformOptions:
    """Scale about (origin_x, origin_y), then rotate by _rotation_ degrees.

    The rotation center defaults to the scale origin.
    """

    scale_x: float = 1.0
    scale_y: float = 1.0
    origin_x: float = 0.0
    origin_y: float = 0.0
    rotation: float = 0.0
    rotation_center_x: Optional[float] = None
    rotation_center_y: Optional[float] = None

    @property
    def rotation_center(self) -> Tuple[float, float]:
        """Effective rotation center."""
        cx = self.origin_x if self.rotation_center_x is None else self.rotation_center_x
        cy = self.origin_y if self.rotation_center_y is None else self.rotation_center_y
        return (cx, cy)


class TransformEngine:
    """Class to provide static methods transforming command lists.

    Every output coordinate is rounded to path precision so repeated
    transforms do not accumulate floating point drift.
    """

    @staticmethod
    def _round_point(x: float, y: float, precision: int = PATH_DECIMAL_PRECISION) -> VePoint:
        return VePoint(format_to_precision(x, precision), format_to_precision(y, precision))

    @staticmethod
    def map_commands(commands: Sequence[PathCommand], func: Callable[[VePoint], VePoint]) -> List[PathCommand]:
        """Apply _func_ to every point of every command; Z stays untouched."""
        return [command.map_points(func) for command in commands]

    ###########################################################################
    # Affine
    ###########################################################################

    @staticmethod
    def transform_commands(commands: Sequence[PathCommand], options: TransformOptions) -> List[PathCommand]:
        """
        Scale every point about the origin, then rotate it about the rotation center.

        Args:
            commands (Sequence[PathCommand]): commands to transform
            options (TransformOptions): scale, origin and rotation

        Returns:
            List[PathCommand]: the transformed commands
        """
        center = options.rotation_center

        def _apply(point: VePoint) -> VePoint:
            scaled = TransformEngine._round_point(
                options.origin_x + (point.x - options.origin_x) * options.scale_x,
                options.origin_y + (point.y - options.origin_y) * options.scale_y,
            )
            if options.rotation == 0:
                return scaled
            return TransformEngine._round_point(*GeomMath.rotate_point(scaled.as_tuple(), options.rotation, center))

        return TransformEngine.map_commands(commands, _apply)

    @staticmethod
    def calculate_scaled_stroke_width(stroke_width: float, scale_x: float, scale_y: float) -> float:
        """
        Stroke width after scaling, rounded to an integer.

        Uses the smaller absolute scale factor and never drops below 1,
        except that a width of 0 stays 0.
        """
        if stroke_width == 0:
            return 0
        scaled = stroke_width * min(abs(scale_x), abs(scale_y))
        return max(1, math.floor(scaled + 0.5))

    @staticmethod
    def translate_commands(commands: Sequence[PathCommand], dx: float, dy: float) -> List[PathCommand]:
        """Move every point by (dx, dy)."""
        return TransformEngine.map_commands(
            commands, lambda point: TransformEngine._round_point(point.x + dx, point.y + dy)
        )

    @staticmethod
    def scale_commands(
        commands: Sequence[PathCommand], scale_x: float, scale_y: float, origin_x: float = 0.0, origin_y: float = 0.0
    ) -> List[PathCommand]:
        """Scale every point about (origin_x, origin_y)."""
        return TransformEngine.transform_commands(
            commands, TransformOptions(scale_x=scale_x, scale_y=scale_y, origin_x=origin_x, origin_y=origin_y)
        )

    @staticmethod
    def transform_path_data(data: VePathData, options: TransformOptions) -> VePathData:
        """
        Transform all sub paths of _data_.

        The stroke width is rescaled and the cached transform snapshot is dropped.
        """
        sub_paths = [TransformEngine.transform_commands(sub_path, options) for sub_path in data.sub_paths]
        stroke_width = TransformEngine.calculate_scaled_stroke_width(
            data.stroke_width, options.scale_x, options.scale_y
        )
        return replace(data, sub_paths=sub_paths, stroke_width=stroke_width, transform=None)

    ###########################################################################
    # Skew
    ###########################################################################

    @staticmethod
    def apply_affine(commands: Sequence[PathCommand], affine_trafo: Sequence[float]) -> List[PathCommand]:
        """Apply the affine transformation [a00, a01, a10, a11, b0, b1] to every point."""
        return TransformEngine.map_commands(
            commands,
            lambda p: TransformEngine._round_point(*GeomMath.transform_point(affine_trafo, p.as_tuple())),
        )

    @staticmethod
    def apply_skew_x(commands: Sequence[PathCommand], angle_degrees: float, origin_y: float) -> List[PathCommand]:
        """Shear horizontally: x += tan(angle) * (y - origin_y)."""
        factor = math.tan(math.radians(angle_degrees))
        return TransformEngine.apply_affine(commands, [1.0, factor, 0.0, 1.0, -factor * origin_y, 0.0])

    @staticmethod
    def apply_skew_y(commands: Sequence[PathCommand], angle_degrees: float, origin_x: float) -> List[PathCommand]:
        """Shear vertically: y += tan(angle) * (x - origin_x)."""
        factor = math.tan(math.radians(angle_degrees))
        return TransformEngine.apply_affine(commands, [1.0, 0.0, factor, 1.0, 0.0, -factor * origin_x])

    @staticmethod
    def calculate_skew_angle_from_delta(delta: float, perpendicular_distance: float) -> float:
        """Skew angle in degrees for a handle moved by _delta_; 0 for a zero lever."""
        if perpendicular_distance == 0:
            return 0.0
        return math.degrees(math.atan(delta / perpendicular_distance))

    ###########################################################################
    # Distort
    ###########################################################################

    @staticmethod
    def create_perspective_matrix(
        src_corners: Sequence[Corner], dst_corners: Sequence[Corner]
    ) -> NDArray[np.float64]:
        """
        Approximate perspective matrix from corner correspondences.

        Corners are given as (top-left, top-right, bottom-right, bottom-left).
        Only top-left, top-right and bottom-left are used: the result is an
        affine scale/skew fit, not a true projective solve. The last row is
        always [0, 0, 1].

        Raises:
            ValueError: if the source corners span no width or no height
        """
        s_tl, s_tr, _, s_bl = src_corners
        d_tl, d_tr, _, d_bl = dst_corners
        src_width = s_tr[0] - s_tl[0]
        src_height = s_bl[1] - s_tl[1]
        if src_width == 0 or src_height == 0:
            raise ValueError("Source corners must span a non-zero width and height")

        scale_x = (d_tr[0] - d_tl[0]) / src_width
        scale_y = (d_bl[1] - d_tl[1]) / src_height
        skew_x = (d_tr[1] - d_tl[1]) / src_width
        skew_y = (d_bl[0] - d_tl[0]) / src_height

        return np.array(
            [
                [scale_x, skew_y, d_tl[0] - s_tl[0] * scale_x - s_tl[1] * skew_y],
                [skew_x, scale_y, d_tl[1] - s_tl[0] * skew_x - s_tl[1] * scale_y],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )

    @staticmethod
    def apply_matrix(point: VePoint, matrix: NDArray[np.float64]) -> VePoint:
        """Apply a 3x3 matrix with homogeneous divide; w == 0 keeps the point."""
        x, y, w = matrix @ np.array([point.x, point.y, 1.0])
        if w == 0:
            return point
        return TransformEngine._round_point(float(x / w), float(y / w))

    @staticmethod
    def apply_distort_transform(
        commands: Sequence[PathCommand], original_bounds: VeBox, new_corners: Sequence[Corner]
    ) -> List[PathCommand]:
        """
        Map the bounds rectangle onto four new corners.

        Args:
            commands (Sequence[PathCommand]): commands to distort
            original_bounds (VeBox): axis-aligned bounds of the commands
            new_corners (Sequence): destination (top-left, top-right, bottom-right, bottom-left)

        Returns:
            List[PathCommand]: distorted commands, or an unchanged copy for
            degenerate bounds
        """
        if original_bounds.width == 0 or original_bounds.height == 0:
            logger.warning("Distort skipped: degenerate bounds %s", original_bounds)
            return list(commands)

        matrix = TransformEngine.create_perspective_matrix(original_bounds.corners, new_corners)
        return TransformEngine.map_commands(commands, lambda point: TransformEngine.apply_matrix(point, matrix))
