"""Path data model: points, commands, editable points, path data and elements.

The model carries no editing behavior. Every edit produces new values, so
instances are treated as immutable by all processors.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from vecedit.common import PathCmds

ElementType = Literal["path", "group"]


###############################################################################
# VePoint
###############################################################################


@dataclass(frozen=True)
class VePoint:
    """A position in path space."""

    x: float
    y: float

    def __add__(self, other: VePoint) -> VePoint:
        return VePoint(self.x + other.x, self.y + other.y)

    def __sub__(self, other: VePoint) -> VePoint:
        return VePoint(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> VePoint:
        return VePoint(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    @property
    def length(self) -> float:
        """Length of the vector from the origin to this point."""
        return math.hypot(self.x, self.y)

    def distance_to(self, other: VePoint) -> float:
        """Euclidean distance to _other_."""
        return math.hypot(other.x - self.x, other.y - self.y)

    def dot(self, other: VePoint) -> float:
        """Dot product with _other_ interpreted as vectors."""
        return self.x * other.x + self.y * other.y

    def is_finite(self) -> bool:
        """True if both coordinates are finite numbers."""
        return math.isfinite(self.x) and math.isfinite(self.y)

    def as_tuple(self) -> Tuple[float, float]:
        """The point as (x, y)."""
        return (self.x, self.y)

    @classmethod
    def from_tuple(cls, values: Sequence[float]) -> VePoint:
        """Create a point from an (x, y) sequence."""
        return cls(float(values[0]), float(values[1]))


###############################################################################
# PathCommand
###############################################################################


@dataclass(frozen=True)
class PathCommand:
    """One path instruction.

    ``M`` and ``L`` carry ``position``; ``C`` carries ``control_point1``,
    ``control_point2`` and ``position``; ``Z`` carries nothing.
    """

    type: PathCmds
    position: Optional[VePoint] = None
    control_point1: Optional[VePoint] = None
    control_point2: Optional[VePoint] = None

    def __post_init__(self) -> None:
        if self.type in ("M", "L"):
            if self.position is None:
                raise ValueError(f"{self.type} command requires a position")
            if self.control_point1 is not None or self.control_point2 is not None:
                raise ValueError(f"{self.type} command does not take control points")
        elif self.type == "C":
            if self.position is None or self.control_point1 is None or self.control_point2 is None:
                raise ValueError("C command requires control_point1, control_point2 and position")
        elif self.type == "Z":
            if self.position is not None or self.control_point1 is not None or self.control_point2 is not None:
                raise ValueError("Z command does not take any points")
        else:
            raise ValueError(f"Unknown path command {self.type!r}")

    @classmethod
    def move_to(cls, x: float, y: float) -> PathCommand:
        """Create an M command."""
        return cls("M", position=VePoint(x, y))

    @classmethod
    def line_to(cls, x: float, y: float) -> PathCommand:
        """Create an L command."""
        return cls("L", position=VePoint(x, y))

    @classmethod
    def curve_to(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        x: float,
        y: float,
    ) -> PathCommand:
        """Create a C command."""
        return cls("C", position=VePoint(x, y), control_point1=VePoint(x1, y1), control_point2=VePoint(x2, y2))

    @classmethod
    def close(cls) -> PathCommand:
        """Create a Z command."""
        return cls("Z")

    @property
    def points(self) -> List[VePoint]:
        """Point-bearing fields in address order (point index 0, 1, 2)."""
        if self.type == "C":
            return [self.control_point1, self.control_point2, self.position]  # type: ignore[list-item]
        if self.type == "Z":
            return []
        return [self.position]  # type: ignore[list-item]

    def with_point(self, point_index: int, point: VePoint) -> PathCommand:
        """Return a copy with the point at _point_index_ replaced.

        Out-of-range indices return the command unchanged.
        """
        if self.type == "C":
            if point_index == 0:
                return replace(self, control_point1=point)
            if point_index == 1:
                return replace(self, control_point2=point)
            if point_index == 2:
                return replace(self, position=point)
            return self
        if self.type in ("M", "L") and point_index == 0:
            return replace(self, position=point)
        return self

    def map_points(self, func) -> PathCommand:
        """Return a copy with every point replaced by ``func(point)``."""
        if self.type == "Z":
            return self
        if self.type == "C":
            return replace(
                self,
                control_point1=func(self.control_point1),
                control_point2=func(self.control_point2),
                position=func(self.position),
            )
        return replace(self, position=func(self.position))

    def is_finite(self) -> bool:
        """True if every coordinate of the command is finite."""
        return all(point.is_finite() for point in self.points)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the command to a dictionary."""
        data: Dict[str, Any] = {"type": self.type}
        if self.position is not None:
            data["position"] = {"x": self.position.x, "y": self.position.y}
        if self.control_point1 is not None:
            data["controlPoint1"] = {"x": self.control_point1.x, "y": self.control_point1.y}
        if self.control_point2 is not None:
            data["controlPoint2"] = {"x": self.control_point2.x, "y": self.control_point2.y}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PathCommand:
        """Create a command from a dictionary created by ``to_dict``."""

        def _point(key: str) -> Optional[VePoint]:
            value = data.get(key)
            if value is None:
                return None
            return VePoint(float(value["x"]), float(value["y"]))

        return cls(
            data["type"],
            position=_point("position"),
            control_point1=_point("controlPoint1"),
            control_point2=_point("controlPoint2"),
        )


def split_into_subpaths(commands: Sequence[PathCommand]) -> List[List[PathCommand]]:
    """Split a flat command list at every M after the first command."""
    subpaths: List[List[PathCommand]] = []
    current: List[PathCommand] = []
    for index, command in enumerate(commands):
        if command.type == "M" and index > 0 and current:
            subpaths.append(current)
            current = []
        current.append(command)
    if current:
        subpaths.append(current)
    return subpaths


###############################################################################
# ControlPoint
###############################################################################


@dataclass(frozen=True)
class ControlPoint:
    """An addressable point projected out of a command.

    Attributes:
        x, y: Current position.
        command_index: Index of the owning command.
        point_index: Index of the point inside the command (see ``PathCommand.points``).
        anchor: The geometric point a control handle pivots around.
        is_control: True for the two handles of a C command.
        associated_command_index, associated_point_index: Address of the
            related point (handle <-> end point) if any.
    """

    x: float
    y: float
    command_index: int
    point_index: int
    anchor: VePoint
    is_control: bool = False
    associated_command_index: Optional[int] = None
    associated_point_index: Optional[int] = None

    @property
    def position(self) -> VePoint:
        """Position as VePoint."""
        return VePoint(self.x, self.y)

    @property
    def address(self) -> Tuple[int, int]:
        """Stable (command_index, point_index) identity."""
        return (self.command_index, self.point_index)

    def with_position(self, x: float, y: float) -> ControlPoint:
        """Return a moved copy."""
        return replace(self, x=x, y=y)


###############################################################################
# VePathData
###############################################################################


@dataclass(frozen=True)
class VePathData:
    """Geometry and style of one path element."""

    sub_paths: List[List[PathCommand]] = field(default_factory=list)
    stroke_width: float = 1.0
    stroke_color: str = "#000000"
    stroke_opacity: float = 1.0
    fill_color: str = "none"
    fill_opacity: float = 1.0
    fill_rule: str = "nonzero"
    stroke_linecap: str = "butt"
    stroke_linejoin: str = "miter"
    stroke_dasharray: Optional[str] = None
    # cached affine snapshot [a00, a01, a10, a11, b0, b1]
    transform: Optional[Tuple[float, float, float, float, float, float]] = None

    @property
    def commands(self) -> List[PathCommand]:
        """All commands of all sub paths as one flat list."""
        return [command for sub_path in self.sub_paths for command in sub_path]

    def with_commands(self, commands: Sequence[PathCommand]) -> VePathData:
        """Return a copy whose sub paths are rebuilt from _commands_."""
        return replace(self, sub_paths=split_into_subpaths(commands))

    def to_dict(self) -> Dict[str, Any]:
        """Convert the path data to a dictionary."""
        return {
            "subPaths": [[command.to_dict() for command in sub_path] for sub_path in self.sub_paths],
            "strokeWidth": self.stroke_width,
            "strokeColor": self.stroke_color,
            "strokeOpacity": self.stroke_opacity,
            "fillColor": self.fill_color,
            "fillOpacity": self.fill_opacity,
            "fillRule": self.fill_rule,
            "strokeLinecap": self.stroke_linecap,
            "strokeLinejoin": self.stroke_linejoin,
            "strokeDasharray": self.stroke_dasharray,
            "transform": list(self.transform) if self.transform is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VePathData:
        """Create path data from a dictionary created by ``to_dict``."""
        transform = data.get("transform")
        return cls(
            sub_paths=[[PathCommand.from_dict(c) for c in sub_path] for sub_path in data.get("subPaths", [])],
            stroke_width=data.get("strokeWidth", 1.0),
            stroke_color=data.get("strokeColor", "#000000"),
            stroke_opacity=data.get("strokeOpacity", 1.0),
            fill_color=data.get("fillColor", "none"),
            fill_opacity=data.get("fillOpacity", 1.0),
            fill_rule=data.get("fillRule", "nonzero"),
            stroke_linecap=data.get("strokeLinecap", "butt"),
            stroke_linejoin=data.get("strokeLinejoin", "miter"),
            stroke_dasharray=data.get("strokeDasharray"),
            transform=tuple(transform) if transform is not None else None,  # type: ignore[arg-type]
        )


###############################################################################
# VeElement
###############################################################################


@dataclass(frozen=True)
class VeElement:
    """A document element as seen by the spatial queries.

    Path elements carry ``data``; group elements carry ``child_ids``.
    """

    id: str
    type: ElementType = "path"
    data: Optional[VePathData] = None
    child_ids: Tuple[str, ...] = ()
    parent_id: Optional[str] = None

    @property
    def is_path(self) -> bool:
        """True for path elements with geometry."""
        return self.type == "path" and self.data is not None
