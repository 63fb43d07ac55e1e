"""Supporting utilities for path command processing.

This module contains command metadata and the static processors used by
all editing components: parsing and serialization, editable point
extraction and update, sub path splitting, normalization, simplification
and segment level helpers.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence

from vecedit.bezier import BezierCurve
from vecedit.common import PATH_DECIMAL_PRECISION, PathCmds, format_to_precision
from vecedit.geom import GeomMath
from vecedit.path import ControlPoint, PathCommand, VePoint, split_into_subpaths

logger = logging.getLogger(__name__)

###############################################################################
# PathCommandInfo
###############################################################################


@dataclass(frozen=True)
class PathCommandInfo:
    """Metadata for path commands.

    Attributes:
        consumes_points: Number of points this command consumes
        is_curve: Whether this command represents a curve
        is_drawing: Whether this command draws (vs. move)
    """

    consumes_points: int
    is_curve: bool
    is_drawing: bool = True


# Command registry with metadata
COMMAND_INFO: Dict[str, PathCommandInfo] = {
    "M": PathCommandInfo(1, False, False),  # MoveTo - not drawing
    "L": PathCommandInfo(1, False, True),  # LineTo - drawing
    "C": PathCommandInfo(3, True, True),  # Cubic - curve, drawing
    "Z": PathCommandInfo(0, False, True),  # ClosePath - drawing, no points
}


###############################################################################
# Result types
###############################################################################


@dataclass(frozen=True)
class SubpathInfo:
    """One sub path of a flat command list.

    ``start_index`` and ``end_index`` are inclusive indices into the flat list.
    """

    commands: List[PathCommand]
    text: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class PathSegment:
    """A drawing command together with its resolved start and end points."""

    command_index: int
    command: PathCommand
    start: VePoint
    end: VePoint


@dataclass(frozen=True)
class SegmentHit:
    """Closest point of a path to a query position."""

    command_index: int
    point: VePoint
    t: float
    distance: float


###############################################################################
# PathCommandProcessor
###############################################################################


class PathCommandProcessor:
    """Handles command/point processing operations."""

    # Command letters understood by the parser (absolute and relative spelling)
    PATH_CMDS: str = "MmLlCcZz"
    # Definition of a number:
    PATH_ARGS: str = r"[-+]?[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?"

    @staticmethod
    def get_point_consumption(cmd: str) -> int:
        """Return number of points consumed by command."""
        return COMMAND_INFO[cmd].consumes_points

    @staticmethod
    def is_curve_command(cmd: str) -> bool:
        """Return True if command represents a curve."""
        return COMMAND_INFO[cmd].is_curve

    @staticmethod
    def is_drawing_command(cmd: str) -> bool:
        """Return True if command draws (vs. move)."""
        return COMMAND_INFO[cmd].is_drawing

    ###########################################################################
    # Parsing and serialization
    ###########################################################################

    @staticmethod
    def parse(text: str) -> List[PathCommand]:
        """
        Parse a textual path into commands.

        The tokenizer is tolerant: text before the first command letter,
        unknown letters and non-numeric tokens are skipped. Command letters
        are case-insensitive and all coordinates are read as absolute. Extra
        coordinate pairs after an M or L are ignored. A command missing some
        of its coordinates is produced with NaN coordinates, which
        ``normalize_path_commands`` drops.

        Args:
            text (str): path text like "M 0 0 L 10 0 C 1 2 3 4 5 6 Z"

        Returns:
            List[PathCommand]: the parsed commands
        """
        commands: List[PathCommand] = []
        cmds = PathCommandProcessor.PATH_CMDS
        for chunk in re.findall(f"[{cmds}][^{cmds}]*", text or ""):
            letter: PathCmds = chunk[0].upper()  # type: ignore[assignment]
            values = [float(arg) for arg in re.findall(PathCommandProcessor.PATH_ARGS, chunk[1:])]
            needed = 2 * COMMAND_INFO[letter].consumes_points
            values = values[:needed] + [math.nan] * max(0, needed - len(values))

            if letter == "Z":
                commands.append(PathCommand.close())
            elif letter == "C":
                commands.append(PathCommand.curve_to(*values))
            elif letter == "M":
                commands.append(PathCommand.move_to(*values))
            else:
                commands.append(PathCommand.line_to(*values))
        return commands

    @staticmethod
    def format_number(value: float, precision: int = PATH_DECIMAL_PRECISION) -> str:
        """Fixed-point representation, trailing zeros trimmed, no exponent."""
        text = f"{format_to_precision(value, precision):.{precision}f}"
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        if text in ("-0", ""):
            text = "0"
        return text

    @staticmethod
    def commands_to_string(commands: Sequence[PathCommand], precision: int = PATH_DECIMAL_PRECISION) -> str:
        """Serialize commands to path text, e.g. "M 0 0 L 10 0 Z"."""
        fmt = PathCommandProcessor.format_number
        parts: List[str] = []
        for command in commands:
            if command.type == "Z":
                parts.append("Z")
                continue
            coords = " ".join(f"{fmt(p.x, precision)} {fmt(p.y, precision)}" for p in command.points)
            parts.append(f"{command.type} {coords}")
        return " ".join(parts)

    ###########################################################################
    # Editable points
    ###########################################################################

    @staticmethod
    def get_command_start_point(commands: Sequence[PathCommand], index: int) -> Optional[VePoint]:
        """
        Start point of the command at _index_.

        This is the end position of the previous command, or the position of
        the current sub path's M if the previous command is a Z. For the first
        command the start point is its own position if it is an M.
        """
        if index < 0 or index >= len(commands):
            return None
        if index == 0:
            return commands[0].position if commands[0].type == "M" else None

        previous = commands[index - 1]
        if previous.type == "Z":
            for i in range(index - 1, -1, -1):
                if commands[i].type == "M":
                    return commands[i].position
            return None
        return previous.position

    @staticmethod
    def find_subpath_move(commands: Sequence[PathCommand], index: int) -> Optional[int]:
        """Index of the M that starts the sub path containing _index_."""
        for i in range(min(index, len(commands) - 1), -1, -1):
            if commands[i].type == "M":
                return i
        return None

    @staticmethod
    def extract_editable_points(commands: Sequence[PathCommand]) -> List[ControlPoint]:
        """
        Project every addressable point out of the commands.

        M and L yield their position (point index 0). C yields control1
        (anchored at the segment start), control2 (anchored at the segment end)
        and the end position (point index 2). Z yields nothing.
        """
        points: List[ControlPoint] = []
        for index, command in enumerate(commands):
            if command.type in ("M", "L"):
                pos = command.position
                points.append(ControlPoint(pos.x, pos.y, index, 0, anchor=pos))  # type: ignore[union-attr]
            elif command.type == "C":
                pos = command.position
                start = PathCommandProcessor.get_command_start_point(commands, index) or VePoint(0.0, 0.0)
                cp1 = command.control_point1
                cp2 = command.control_point2
                points.append(
                    ControlPoint(
                        cp1.x,  # type: ignore[union-attr]
                        cp1.y,  # type: ignore[union-attr]
                        index,
                        0,
                        anchor=start,
                        is_control=True,
                        associated_command_index=index,
                        associated_point_index=2,
                    )
                )
                points.append(
                    ControlPoint(
                        cp2.x,  # type: ignore[union-attr]
                        cp2.y,  # type: ignore[union-attr]
                        index,
                        1,
                        anchor=pos,  # type: ignore[arg-type]
                        is_control=True,
                        associated_command_index=index,
                        associated_point_index=2,
                    )
                )
                points.append(
                    ControlPoint(
                        pos.x,  # type: ignore[union-attr]
                        pos.y,  # type: ignore[union-attr]
                        index,
                        2,
                        anchor=pos,  # type: ignore[arg-type]
                        associated_command_index=index,
                        associated_point_index=0,
                    )
                )
        return points

    @staticmethod
    def update_commands(commands: Sequence[PathCommand], updates: Sequence[ControlPoint]) -> List[PathCommand]:
        """
        Apply point updates addressed by (command_index, point_index).

        The input list is never modified. Unaddressed points are left
        untouched; out-of-range addresses are ignored.
        """
        result = list(commands)
        for update in updates:
            if 0 <= update.command_index < len(result):
                command = result[update.command_index]
                result[update.command_index] = command.with_point(update.point_index, VePoint(update.x, update.y))
        return result

    ###########################################################################
    # Sub paths and normalization
    ###########################################################################

    @staticmethod
    def extract_subpaths(commands: Sequence[PathCommand]) -> List[SubpathInfo]:
        """Split commands at every M with index > 0."""
        result: List[SubpathInfo] = []
        start_index = 0
        for sub_path in split_into_subpaths(commands):
            end_index = start_index + len(sub_path) - 1
            result.append(
                SubpathInfo(
                    commands=sub_path,
                    text=PathCommandProcessor.commands_to_string(sub_path),
                    start_index=start_index,
                    end_index=end_index,
                )
            )
            start_index = end_index + 1
        return result

    @staticmethod
    def normalize_path_commands(commands: Sequence[PathCommand]) -> List[PathCommand]:
        """
        Drop commands with non-finite coordinates and redundant Z.

        A Z is kept only after a point-bearing command, so consecutive Zs
        collapse and a result consisting solely of Z becomes empty.
        """
        result: List[PathCommand] = []
        dropped = 0
        for command in commands:
            if command.type == "Z":
                if not result or result[-1].type == "Z":
                    dropped += 1
                    continue
            elif not command.is_finite():
                dropped += 1
                continue
            result.append(command)
        if dropped:
            logger.debug("normalize_path_commands dropped %s command(s)", dropped)
        return result

    ###########################################################################
    # Simplification
    ###########################################################################

    @staticmethod
    def simplify_points(
        points: Sequence[ControlPoint], tolerance: float = 1.0, min_distance: float = 0.1
    ) -> List[ControlPoint]:
        """
        Reduce a point sequence in two passes.

        Pass 1 keeps the first point and every later non-control point whose
        distance to the last kept non-control point is at least
        _min_distance_. Control points always pass through. The last point is
        always kept; a too-close predecessor gives way to it.

        Pass 2 applies Douglas-Peucker with _tolerance_. Control points are
        never used as the farthest point of a run.

        Args:
            points (Sequence[ControlPoint]): points in path order
            tolerance (float, optional): max chord distance. Defaults to 1.0.
            min_distance (float, optional): min spacing of kept points. Defaults to 0.1.

        Returns:
            List[ControlPoint]: the retained points
        """
        if len(points) <= 2:
            return list(points)

        filtered: List[ControlPoint] = [points[0]]
        reference = points[0]
        last_index = len(points) - 1
        for i in range(1, len(points)):
            current = points[i]
            if current.is_control:
                filtered.append(current)
                continue
            if GeomMath.distance(current.position.as_tuple(), reference.position.as_tuple()) >= min_distance:
                filtered.append(current)
                reference = current
            elif i == last_index:
                if len(filtered) > 1 and filtered[-1] is reference:
                    filtered.pop()
                filtered.append(current)

        if len(filtered) <= 2:
            return filtered
        return PathCommandProcessor._simplify_rdp(filtered, tolerance)

    @staticmethod
    def _simplify_rdp(points: List[ControlPoint], tolerance: float) -> List[ControlPoint]:
        if len(points) <= 2:
            return points

        start = points[0].position.as_tuple()
        end = points[-1].position.as_tuple()
        max_distance = 0.0
        max_index = 0
        for i in range(1, len(points) - 1):
            if points[i].is_control:
                continue
            distance = GeomMath.point_to_segment_distance(points[i].position.as_tuple(), start, end)
            if distance > max_distance:
                max_distance = distance
                max_index = i

        if max_distance > tolerance:
            left = PathCommandProcessor._simplify_rdp(points[: max_index + 1], tolerance)
            right = PathCommandProcessor._simplify_rdp(points[max_index:], tolerance)
            return left[:-1] + right
        return [points[0], points[-1]]

    ###########################################################################
    # Segments
    ###########################################################################

    @staticmethod
    def iter_segments(commands: Sequence[PathCommand]) -> Iterator[PathSegment]:
        """
        Yield every drawing segment with resolved start and end points.

        L and C segments end at their position; a Z segment runs from the
        current point back to the sub path start. Zero-length Z segments are
        still yielded.
        """
        subpath_start: Optional[VePoint] = None
        current: Optional[VePoint] = None
        for index, command in enumerate(commands):
            if command.type == "M":
                subpath_start = command.position
                current = command.position
            elif command.type == "Z":
                if current is not None and subpath_start is not None:
                    yield PathSegment(index, command, current, subpath_start)
                current = subpath_start
            else:
                if current is not None:
                    yield PathSegment(index, command, current, command.position)  # type: ignore[arg-type]
                current = command.position

    @staticmethod
    def find_closest_path_segment(
        point: VePoint,
        commands: Sequence[PathCommand],
        threshold: float = 15.0,
        existing_point_threshold: float = 10.0,
    ) -> Optional[SegmentHit]:
        """
        Closest point on any L or C segment within _threshold_.

        Returns None if nothing is close enough, or if _point_ lies within
        _existing_point_threshold_ of an existing point or handle (so adding
        a point never lands on top of one).
        """
        for command in commands:
            for existing in command.points:
                if existing.distance_to(point) < existing_point_threshold:
                    return None

        best: Optional[SegmentHit] = None
        min_distance = threshold
        for segment in PathCommandProcessor.iter_segments(commands):
            command = segment.command
            if command.type == "L":
                closest = GeomMath.closest_point_on_segment(
                    point.as_tuple(), segment.start.as_tuple(), segment.end.as_tuple()
                )
                seg_len_sq = (segment.end.x - segment.start.x) ** 2 + (segment.end.y - segment.start.y) ** 2
                if seg_len_sq > 0:
                    t = math.hypot(closest[0] - segment.start.x, closest[1] - segment.start.y) / math.sqrt(seg_len_sq)
                else:
                    t = 0.0
                distance = GeomMath.distance(point.as_tuple(), closest)
            elif command.type == "C":
                closest, t, distance = BezierCurve.closest_point_on_cubic(
                    [
                        segment.start.as_tuple(),
                        command.control_point1.as_tuple(),  # type: ignore[union-attr]
                        command.control_point2.as_tuple(),  # type: ignore[union-attr]
                        command.position.as_tuple(),  # type: ignore[union-attr]
                    ],
                    point.as_tuple(),
                )
            else:
                continue
            if distance < min_distance:
                min_distance = distance
                best = SegmentHit(segment.command_index, VePoint(closest[0], closest[1]), t, distance)
        return best

    @staticmethod
    def insert_point_on_segment(
        commands: Sequence[PathCommand], command_index: int, t: float, precision: int = PATH_DECIMAL_PRECISION
    ) -> List[PathCommand]:
        """
        Split the L or C command at _command_index_ at parameter _t_.

        A C is split with de Casteljau's algorithm so the geometry is kept;
        an L becomes two Ls. Other commands and invalid indices return an
        unchanged copy.
        """
        result = list(commands)
        if not 0 <= command_index < len(result):
            return result
        command = result[command_index]
        start = PathCommandProcessor.get_command_start_point(result, command_index)
        if start is None or command.type not in ("L", "C"):
            return result

        def _round(x: float, y: float) -> VePoint:
            return VePoint(format_to_precision(x, precision), format_to_precision(y, precision))

        t = min(1.0, max(0.0, t))
        if command.type == "L":
            end = command.position
            mid = _round(start.x + (end.x - start.x) * t, start.y + (end.y - start.y) * t)  # type: ignore[union-attr]
            result[command_index : command_index + 1] = [PathCommand("L", position=mid), command]
            return result

        left, right = BezierCurve.split_cubic(
            [
                start.as_tuple(),
                command.control_point1.as_tuple(),  # type: ignore[union-attr]
                command.control_point2.as_tuple(),  # type: ignore[union-attr]
                command.position.as_tuple(),  # type: ignore[union-attr]
            ],
            t,
        )
        first = PathCommand(
            "C",
            control_point1=_round(*left[1]),
            control_point2=_round(*left[2]),
            position=_round(*left[3]),
        )
        second = PathCommand(
            "C",
            control_point1=_round(*right[1]),
            control_point2=_round(*right[2]),
            position=command.position,
        )
        result[command_index : command_index + 1] = [first, second]
        return result

    @staticmethod
    def reverse_subpath(sub_path: Sequence[PathCommand]) -> List[PathCommand]:
        """
        Reverse the drawing direction of one sub path.

        The new M sits at the old last point, C commands swap their control
        points, and a trailing Z is kept.
        """
        if len(sub_path) <= 1:
            return list(sub_path)

        closed = sub_path[-1].type == "Z"
        commands = list(sub_path[:-1]) if closed else list(sub_path)
        if len(commands) <= 1:
            return commands + [PathCommand.close()] if closed else commands

        reversed_commands = commands[::-1]
        result: List[PathCommand] = [PathCommand("M", position=commands[-1].position)]
        for i in range(len(reversed_commands) - 1):
            command = reversed_commands[i]
            previous_point = reversed_commands[i + 1].position
            if command.type == "C":
                result.append(
                    PathCommand(
                        "C",
                        control_point1=command.control_point2,
                        control_point2=command.control_point1,
                        position=previous_point,
                    )
                )
            elif command.type in ("M", "L"):
                result.append(PathCommand("L", position=previous_point))
        if closed:
            result.append(PathCommand.close())
        return result
