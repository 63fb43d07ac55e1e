"""Control handle pairing and alignment.

Alignment between two handles sharing an anchor is always derived from the
current geometry and never stored on the model.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from vecedit.common import AlignmentType, format_to_precision
from vecedit.config import DEFAULT_SETTINGS, EditorSettings
from vecedit.path import ControlPoint, PathCommand, VePoint
from vecedit.path_support import PathCommandProcessor

logger = logging.getLogger(__name__)

# Default handle length used when a handle sitting on its anchor is made independent
_INDEPENDENT_DEFAULT_OFFSET: float = 20.0
# Default handle length used when the paired handle sits on the anchor
_PAIRED_DEGENERATE_LENGTH: float = 30.0
# Aligned handles: fraction of the paired length, its fallbacks and the min difference
_ALIGNED_RATIO: float = 0.7
_ALIGNED_FALLBACK_RATIO: float = 0.5
_ALIGNED_MIN_LENGTH: float = 15.0
_ALIGNED_MIN_DIFFERENCE: float = 5.0
_ALIGNED_DISTINCT_RATIO: float = 0.6
# Perpendicular nudge used to break an existing alignment
_NUDGE_MIN: float = 10.0
_NUDGE_RATIO: float = 0.2


###############################################################################
# Result types
###############################################################################


@dataclass(frozen=True)
class PairedControlPoint:
    """Address of the handle paired with another handle, plus their shared anchor."""

    command_index: int
    point_index: int
    anchor: VePoint


@dataclass(frozen=True)
class AlignmentInfo:
    """Derived alignment of a handle. Paired indices are None when there is no pair."""

    type: AlignmentType
    anchor: VePoint
    paired_command_index: Optional[int] = None
    paired_point_index: Optional[int] = None


###############################################################################
# ControlPointAligner
###############################################################################


class ControlPointAligner:
    """Finds handle pairs, classifies them and enforces an alignment type."""

    def __init__(self, settings: EditorSettings = DEFAULT_SETTINGS):
        self.settings = settings

    @staticmethod
    def _handle(command: PathCommand, point_index: int) -> Optional[VePoint]:
        if command.type != "C" or point_index not in (0, 1):
            return None
        return command.control_point1 if point_index == 0 else command.control_point2

    def _subpath_range(self, commands: Sequence[PathCommand], index: int) -> Optional[range]:
        """Range of command indices belonging to the sub path containing _index_."""
        m_index = PathCommandProcessor.find_subpath_move(commands, index)
        if m_index is None:
            return None
        end = m_index + 1
        while end < len(commands) and commands[end].type != "M":
            end += 1
        return range(m_index, end)

    ###########################################################################
    # Pairing
    ###########################################################################

    def find_paired_control_point(
        self, commands: Sequence[PathCommand], command_index: int, point_index: int
    ) -> Optional[PairedControlPoint]:
        """
        Find the handle on the other side of the anchor of a handle.

        An incoming handle (point index 1) pairs with the outgoing handle of
        the next C (Z skipped). An outgoing handle (point index 0) pairs with
        the incoming handle of the previous C. Without a neighboring C, the
        closing seam of the sub path is tested: both sides must touch the
        sub path's M within the seam tolerance, and the M becomes the anchor.

        Returns:
            Optional[PairedControlPoint]: the pair, or None for open endpoints
        """
        if not 0 <= command_index < len(commands) or self._handle(commands[command_index], point_index) is None:
            return None
        if point_index == 1:
            return self._find_forward_pair(commands, command_index)
        return self._find_backward_pair(commands, command_index)

    def _find_forward_pair(self, commands: Sequence[PathCommand], command_index: int) -> Optional[PairedControlPoint]:
        tolerance = self.settings.seam_tolerance
        command = commands[command_index]
        j = command_index + 1
        while j < len(commands) and commands[j].type == "Z":
            j += 1
        if j < len(commands) and commands[j].type == "C":
            return PairedControlPoint(j, 0, command.position)  # type: ignore[arg-type]

        sub_range = self._subpath_range(commands, command_index)
        if sub_range is None:
            return None
        m_point = commands[sub_range.start].position
        if command.position.distance_to(m_point) >= tolerance:  # type: ignore[union-attr,arg-type]
            return None

        closed = commands[sub_range.stop - 1].type == "Z"
        for k in range(sub_range.start + 1, sub_range.stop):
            if commands[k].type != "C":
                continue
            if closed:
                start = PathCommandProcessor.get_command_start_point(commands, k)
                if start is None or start.distance_to(m_point) >= tolerance:  # type: ignore[arg-type]
                    return None
            return PairedControlPoint(k, 0, m_point)  # type: ignore[arg-type]
        return None

    def _find_backward_pair(self, commands: Sequence[PathCommand], command_index: int) -> Optional[PairedControlPoint]:
        tolerance = self.settings.seam_tolerance
        start = PathCommandProcessor.get_command_start_point(commands, command_index) or VePoint(0.0, 0.0)
        j = command_index - 1
        while j >= 0 and commands[j].type == "Z":
            j -= 1
        if j >= 0 and commands[j].type == "C":
            return PairedControlPoint(j, 1, start)

        sub_range = self._subpath_range(commands, command_index)
        if sub_range is None:
            return None
        m_point = commands[sub_range.start].position
        if start.distance_to(m_point) >= tolerance:  # type: ignore[arg-type]
            return None

        for k in range(sub_range.stop - 1, sub_range.start, -1):
            if commands[k].type != "C":
                continue
            if commands[k].position.distance_to(m_point) < tolerance:  # type: ignore[union-attr,arg-type]
                return PairedControlPoint(k, 1, m_point)  # type: ignore[arg-type]
            return None
        return None

    ###########################################################################
    # Classification
    ###########################################################################

    def classify_handles(self, point: VePoint, paired: VePoint, anchor: VePoint) -> AlignmentType:
        """Classify two handle positions sharing _anchor_."""
        v1 = point - anchor
        v2 = paired - anchor
        len1 = v1.length
        len2 = v2.length
        if len1 == 0 or len2 == 0:
            return AlignmentType.INDEPENDENT

        dot = (v1.x / len1) * (-v2.x / len2) + (v1.y / len1) * (-v2.y / len2)
        if dot <= self.settings.alignment_dot_threshold:
            return AlignmentType.INDEPENDENT
        if min(len1, len2) / max(len1, len2) > self.settings.mirrored_ratio_threshold:
            return AlignmentType.MIRRORED
        return AlignmentType.ALIGNED

    def determine_control_point_alignment(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        commands: Sequence[PathCommand],
        command_index: int,
        point_index: int,
        paired_command_index: int,
        paired_point_index: int,
        anchor: VePoint,
    ) -> AlignmentType:
        """
        Classify two paired handles as independent, aligned or mirrored.

        Handles are aligned when their directions from the anchor are opposite
        within about 10 degrees, and mirrored when additionally their lengths
        differ by less than 10 percent.
        """
        if not (0 <= command_index < len(commands) and 0 <= paired_command_index < len(commands)):
            return AlignmentType.INDEPENDENT
        point = self._handle(commands[command_index], point_index)
        paired = self._handle(commands[paired_command_index], paired_point_index)
        if point is None or paired is None:
            return AlignmentType.INDEPENDENT
        return self.classify_handles(point, paired, anchor)

    def get_control_point_alignment_info(
        self, commands: Sequence[PathCommand], points: Sequence[ControlPoint], command_index: int, point_index: int
    ) -> Optional[AlignmentInfo]:
        """
        Alignment of the handle at (command_index, point_index).

        Returns None if the address is not a control handle. Handles without a
        pair, or whose pair pivots around a different anchor, are independent.
        """
        point = next(
            (p for p in points if p.command_index == command_index and p.point_index == point_index),
            None,
        )
        if point is None or not point.is_control:
            return None

        paired = self.find_paired_control_point(commands, command_index, point_index)
        if paired is None:
            return AlignmentInfo(AlignmentType.INDEPENDENT, point.anchor)
        if point.anchor.distance_to(paired.anchor) >= self.settings.seam_tolerance:
            return AlignmentInfo(AlignmentType.INDEPENDENT, point.anchor)

        alignment = self.determine_control_point_alignment(
            commands, command_index, point_index, paired.command_index, paired.point_index, paired.anchor
        )
        return AlignmentInfo(alignment, paired.anchor, paired.command_index, paired.point_index)

    ###########################################################################
    # Enforcement
    ###########################################################################

    def adjust_control_point_for_alignment(
        self, point: VePoint, paired: VePoint, anchor: VePoint, target: AlignmentType
    ) -> VePoint:
        """
        New position of _point_ so that it satisfies _target_ relative to _paired_.

        mirrored: opposite direction, same length as the paired handle.
        aligned: opposite direction, 70 percent of the paired length, at least
            15 units and at least 5 units shorter or longer than the paired one.
        independent: unchanged unless currently aligned, in which case the
            handle is nudged perpendicular to the axis.

        Args:
            point (VePoint): current handle position
            paired (VePoint): position of the paired handle
            anchor (VePoint): shared anchor
            target (AlignmentType): requested alignment

        Returns:
            VePoint: the adjusted position, rounded to path precision
        """
        precision = self.settings.precision

        def _round(x: float, y: float) -> VePoint:
            return VePoint(format_to_precision(x, precision), format_to_precision(y, precision))

        current = point - anchor
        current_length = current.length
        paired_vector = paired - anchor
        paired_length = paired_vector.length

        if target == AlignmentType.INDEPENDENT:
            if current_length == 0:
                return _round(anchor.x + _INDEPENDENT_DEFAULT_OFFSET, anchor.y)
            if paired_length > 0:
                ux = current.x / current_length
                uy = current.y / current_length
                dot = ux * (-paired_vector.x / paired_length) + uy * (-paired_vector.y / paired_length)
                if dot > self.settings.alignment_dot_threshold:
                    offset = max(_NUDGE_MIN, current_length * _NUDGE_RATIO)
                    return _round(point.x - uy * offset, point.y + ux * offset)
            return point

        if paired_length == 0:
            length = current_length if current_length > 0 else _PAIRED_DEGENERATE_LENGTH
            return _round(anchor.x + length, anchor.y)

        if target == AlignmentType.MIRRORED:
            length = paired_length
        else:
            length = paired_length * _ALIGNED_RATIO
            if length < _ALIGNED_MIN_LENGTH:
                length = max(paired_length * _ALIGNED_FALLBACK_RATIO, _ALIGNED_MIN_LENGTH)
            if abs(length - paired_length) < _ALIGNED_MIN_DIFFERENCE:
                length = paired_length * _ALIGNED_DISTINCT_RATIO

        ox = -paired_vector.x / paired_length
        oy = -paired_vector.y / paired_length
        return _round(anchor.x + ox * length, anchor.y + oy * length)

    def apply_alignment(
        self, commands: Sequence[PathCommand], command_index: int, point_index: int, target: AlignmentType
    ) -> List[PathCommand]:
        """
        Reposition the handle at (command_index, point_index) to satisfy _target_.

        Missing handles or pairs leave the commands unchanged.
        """
        result = list(commands)
        paired = self.find_paired_control_point(commands, command_index, point_index)
        if paired is None:
            logger.debug("No paired handle for (%s, %s); alignment unchanged", command_index, point_index)
            return result
        point = self._handle(commands[command_index], point_index)
        paired_point = self._handle(commands[paired.command_index], paired.point_index)
        if point is None or paired_point is None:
            return result

        new_point = self.adjust_control_point_for_alignment(point, paired_point, paired.anchor, target)
        result[command_index] = result[command_index].with_point(point_index, new_point)
        return result

    def propagate_drag(
        self, commands: Sequence[PathCommand], command_index: int, point_index: int, new_position: VePoint
    ) -> List[ControlPoint]:
        """
        Updates for dragging one handle while keeping its pair's relationship.

        The classification is taken from _commands_ (the geometry before the
        drag step). Mirrored pairs get the opposite direction and the dragged
        length; aligned pairs get the opposite direction and keep the paired
        handle's own length. Independent handles move alone.

        Returns:
            List[ControlPoint]: the dragged point update, followed by the paired
            handle update if any
        """
        points = PathCommandProcessor.extract_editable_points(commands)
        dragged = next(
            (p for p in points if p.command_index == command_index and p.point_index == point_index),
            None,
        )
        if dragged is None:
            return []
        precision = self.settings.precision
        moved = dragged.with_position(
            format_to_precision(new_position.x, precision), format_to_precision(new_position.y, precision)
        )
        updates = [moved]

        info = self.get_control_point_alignment_info(commands, points, command_index, point_index)
        if info is None or info.type == AlignmentType.INDEPENDENT or info.paired_command_index is None:
            return updates

        paired = next(
            p
            for p in points
            if p.command_index == info.paired_command_index and p.point_index == info.paired_point_index
        )
        vector = moved.position - info.anchor
        length = vector.length
        if length == 0:
            return updates

        if info.type == AlignmentType.MIRRORED:
            paired_length = length
        else:
            paired_length = paired.position.distance_to(info.anchor)
        x = info.anchor.x - vector.x / length * paired_length
        y = info.anchor.y - vector.y / length * paired_length
        if not (math.isfinite(x) and math.isfinite(y)):
            return updates
        updates.append(paired.with_position(format_to_precision(x, precision), format_to_precision(y, precision)))
        return updates
