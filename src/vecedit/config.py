"""Tunable constants of the path editing core."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict

from vecedit.common import PATH_DECIMAL_PRECISION


@dataclass(frozen=True)
class EditorSettings:
    """Thresholds and defaults shared by all editing components.

    Attributes:
        precision: Number of decimals coordinates are rounded to.
        point_hit_radius: Max distance for hitting an authored point.
        handle_hit_radius: Max distance for hitting an authored handle.
        double_click_ms: Max time between two clicks of a double click.
        double_click_distance: Max distance between two clicks of a double click.
        curvature_threshold: Min perpendicular offset that turns a segment into a curve.
        curvature_clamp: Max curvature strength as fraction of the segment length.
        handle_offset_ratio: Position of synthesized handles along the segment.
        seam_tolerance: Distance under which two points count as coincident.
        alignment_dot_threshold: Min dot product of opposed handle directions (about 10 degrees).
        mirrored_ratio_threshold: Min length ratio for an aligned pair to count as mirrored.
        snap_threshold: Object snap radius in screen pixels.
        edge_snap_steps: Sampling steps used when snapping onto curve edges.
        drag_throttle_ms: Min interval between two applied drag updates.
        default_stroke_width: Stroke width of newly authored paths.
        default_stroke_color: Stroke color of newly authored paths.
    """

    precision: int = PATH_DECIMAL_PRECISION
    point_hit_radius: float = 10.0
    handle_hit_radius: float = 8.0
    double_click_ms: float = 300.0
    double_click_distance: float = 5.0
    curvature_threshold: float = 5.0
    curvature_clamp: float = 0.5
    handle_offset_ratio: float = 0.3
    seam_tolerance: float = 0.1
    alignment_dot_threshold: float = 0.985
    mirrored_ratio_threshold: float = 0.9
    snap_threshold: float = 8.0
    edge_snap_steps: int = 10
    drag_throttle_ms: float = 16.0
    default_stroke_width: float = 2.0
    default_stroke_color: str = "#000000"

    def __post_init__(self) -> None:
        if self.precision < 0:
            raise ValueError(f"precision must be >= 0, got {self.precision}")
        for name in (
            "point_hit_radius",
            "handle_hit_radius",
            "double_click_ms",
            "double_click_distance",
            "curvature_threshold",
            "seam_tolerance",
            "snap_threshold",
            "drag_throttle_ms",
            "default_stroke_width",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not 0.0 < self.curvature_clamp <= 1.0:
            raise ValueError(f"curvature_clamp must be in (0, 1], got {self.curvature_clamp}")
        if not -1.0 <= self.alignment_dot_threshold <= 1.0:
            raise ValueError(f"alignment_dot_threshold must be in [-1, 1], got {self.alignment_dot_threshold}")
        if self.edge_snap_steps < 1:
            raise ValueError(f"edge_snap_steps must be >= 1, got {self.edge_snap_steps}")

    def with_overrides(self, **overrides: Any) -> EditorSettings:
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the settings to a dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EditorSettings:
        """Create settings from a dictionary; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


DEFAULT_SETTINGS = EditorSettings()
