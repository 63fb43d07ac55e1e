"""Tests for handle pairing, classification and enforcement in vecedit.path_alignment"""

import pytest

from vecedit.common import AlignmentType
from vecedit.path import VePoint
from vecedit.path_alignment import AlignmentInfo, ControlPointAligner, PairedControlPoint
from vecedit.path_support import PathCommandProcessor

PCP = PathCommandProcessor

# Two curves meeting at (0, 0); the handles around the joint have length 20 each
MIRRORED_JOINT = "M -60 0 C -50 0 -20 0 0 0 C 20 0 50 0 60 0"
# Same joint with an incoming handle of length 10 and an outgoing one of length 20
ALIGNED_JOINT = "M -60 0 C -50 0 -10 0 0 0 C 20 0 50 0 60 0"
# Same joint with perpendicular handles
CORNER_JOINT = "M -60 0 C -50 0 0 -20 0 0 C 20 0 50 0 60 0"
# A closed loop whose first and last curves meet at the M point
CLOSED_LOOP = "M 0 0 C 10 -10 20 -10 30 0 C 40 10 -10 10 0 0 Z"
# Ends at the M point, but the first curve starts at the end of a line
SEAM_AFTER_LINE = "M 0 0 L 10 0 C 20 10 30 10 40 0 C 30 -10 -10 -10 0 0"


def _handle(commands, command_index, point_index):
    return commands[command_index].points[point_index]


def _vector(commands, command_index, point_index, anchor=VePoint(0, 0)):
    return _handle(commands, command_index, point_index) - anchor


###############################################################################
# Pairing
###############################################################################


class TestFindPairedControlPoint:
    """Forward/backward neighbor search and closing seams."""

    def setup_method(self):
        self.aligner = ControlPointAligner()

    def test_incoming_pairs_with_next_outgoing(self):
        commands = PCP.parse(MIRRORED_JOINT)
        assert self.aligner.find_paired_control_point(commands, 1, 1) == PairedControlPoint(2, 0, VePoint(0, 0))

    def test_outgoing_pairs_with_previous_incoming(self):
        commands = PCP.parse(MIRRORED_JOINT)
        assert self.aligner.find_paired_control_point(commands, 2, 0) == PairedControlPoint(1, 1, VePoint(0, 0))

    def test_open_endpoints_have_no_pair(self):
        commands = PCP.parse(MIRRORED_JOINT)
        assert self.aligner.find_paired_control_point(commands, 1, 0) is None
        assert self.aligner.find_paired_control_point(commands, 2, 1) is None

    def test_closed_seam(self):
        commands = PCP.parse(CLOSED_LOOP)
        assert self.aligner.find_paired_control_point(commands, 2, 1) == PairedControlPoint(1, 0, VePoint(0, 0))
        assert self.aligner.find_paired_control_point(commands, 1, 0) == PairedControlPoint(2, 1, VePoint(0, 0))

    def test_closed_seam_needs_first_curve_at_start(self):
        """The first C begins after an L, so it does not touch the M."""
        commands = PCP.parse(SEAM_AFTER_LINE + " Z")
        assert self.aligner.find_paired_control_point(commands, 3, 1) is None

    def test_open_path_with_coincident_endpoints_pairs(self):
        commands = PCP.parse(SEAM_AFTER_LINE)
        assert self.aligner.find_paired_control_point(commands, 3, 1) == PairedControlPoint(2, 0, VePoint(0, 0))

    def test_non_handles_have_no_pair(self):
        commands = PCP.parse(MIRRORED_JOINT)
        assert self.aligner.find_paired_control_point(commands, 0, 0) is None
        assert self.aligner.find_paired_control_point(commands, 1, 2) is None
        assert self.aligner.find_paired_control_point(commands, 42, 0) is None


###############################################################################
# Classification
###############################################################################


class TestClassification:
    """Derived alignment of handle pairs."""

    def setup_method(self):
        self.aligner = ControlPointAligner()

    @pytest.mark.parametrize(
        "point, paired, expected",
        [
            ((-20, 0), (20, 0), AlignmentType.MIRRORED),
            ((-19, 0), (20, 0), AlignmentType.MIRRORED),
            ((-10, 0), (20, 0), AlignmentType.ALIGNED),
            ((0, -20), (20, 0), AlignmentType.INDEPENDENT),
            ((-20, 5), (20, 0), AlignmentType.INDEPENDENT),
            ((0, 0), (20, 0), AlignmentType.INDEPENDENT),
        ],
    )
    def test_classify_handles(self, point, paired, expected):
        assert self.aligner.classify_handles(VePoint(*point), VePoint(*paired), VePoint(0, 0)) == expected

    def test_alignment_info(self):
        commands = PCP.parse(ALIGNED_JOINT)
        points = PCP.extract_editable_points(commands)
        info = self.aligner.get_control_point_alignment_info(commands, points, 1, 1)
        assert info == AlignmentInfo(AlignmentType.ALIGNED, VePoint(0, 0), 2, 0)

    def test_alignment_info_without_pair(self):
        commands = PCP.parse(MIRRORED_JOINT)
        points = PCP.extract_editable_points(commands)
        info = self.aligner.get_control_point_alignment_info(commands, points, 1, 0)
        assert info is not None
        assert info.type == AlignmentType.INDEPENDENT
        assert info.anchor == VePoint(-60, 0)
        assert info.paired_command_index is None

    def test_alignment_info_for_non_handle(self):
        commands = PCP.parse(MIRRORED_JOINT)
        points = PCP.extract_editable_points(commands)
        assert self.aligner.get_control_point_alignment_info(commands, points, 1, 2) is None

    def test_determine_alignment_with_bad_indices(self):
        commands = PCP.parse(MIRRORED_JOINT)
        result = self.aligner.determine_control_point_alignment(commands, 1, 1, 9, 0, VePoint(0, 0))
        assert result == AlignmentType.INDEPENDENT


###############################################################################
# Enforcement
###############################################################################


class TestApplyAlignment:
    """Repositioning a handle to satisfy a requested alignment."""

    def setup_method(self):
        self.aligner = ControlPointAligner()

    def test_aligned_from_equal_handles(self):
        """70 percent of 20 is below the 15 unit minimum, so the handle becomes 15 long."""
        commands = self.aligner.apply_alignment(PCP.parse(MIRRORED_JOINT), 1, 1, AlignmentType.ALIGNED)
        assert _handle(commands, 1, 1) == VePoint(-15, 0)
        assert _handle(commands, 2, 0) == VePoint(20, 0)

    def test_aligned_invariant(self):
        commands = PCP.parse("M -60 0 C -50 0 -5 5 0 0 C 30 40 50 0 60 0")
        result = self.aligner.apply_alignment(commands, 1, 1, AlignmentType.ALIGNED)
        v1 = _vector(result, 1, 1)
        v2 = _vector(result, 2, 0)
        assert v2.length == pytest.approx(50.0)
        assert v1.length == pytest.approx(35.0, abs=0.01)
        assert v1.length >= 15.0
        assert abs(v1.length - v2.length) >= 5.0
        assert v1.dot(v2) / (v1.length * v2.length) == pytest.approx(-1.0, abs=1e-3)
        assert self.aligner.classify_handles(_handle(result, 1, 1), _handle(result, 2, 0), VePoint(0, 0)) == (
            AlignmentType.ALIGNED
        )

    def test_mirrored_invariant(self):
        commands = PCP.parse("M -60 0 C -50 0 -5 5 0 0 C 30 40 50 0 60 0")
        result = self.aligner.apply_alignment(commands, 1, 1, AlignmentType.MIRRORED)
        v1 = _vector(result, 1, 1)
        v2 = _vector(result, 2, 0)
        assert v1 == VePoint(-30, -40)
        assert v1.length == pytest.approx(v2.length)
        assert v1 + v2 == VePoint(0, 0)

    def test_independent_breaks_alignment(self):
        commands = self.aligner.apply_alignment(PCP.parse(MIRRORED_JOINT), 1, 1, AlignmentType.INDEPENDENT)
        assert _handle(commands, 1, 1) == VePoint(-20, -10)
        assert self.aligner.classify_handles(_handle(commands, 1, 1), _handle(commands, 2, 0), VePoint(0, 0)) == (
            AlignmentType.INDEPENDENT
        )

    def test_independent_keeps_unaligned_handle(self):
        commands = PCP.parse(CORNER_JOINT)
        assert self.aligner.apply_alignment(commands, 1, 1, AlignmentType.INDEPENDENT) == commands

    def test_handle_on_anchor(self):
        aligner = self.aligner
        anchor = VePoint(0, 0)
        adjust = aligner.adjust_control_point_for_alignment
        assert adjust(anchor, VePoint(20, 0), anchor, AlignmentType.INDEPENDENT) == VePoint(20, 0)
        assert adjust(VePoint(-5, 0), anchor, anchor, AlignmentType.MIRRORED) == VePoint(5, 0)
        assert adjust(anchor, anchor, anchor, AlignmentType.ALIGNED) == VePoint(30, 0)

    def test_missing_pair_is_no_op(self):
        commands = PCP.parse(MIRRORED_JOINT)
        assert self.aligner.apply_alignment(commands, 1, 0, AlignmentType.MIRRORED) == commands


###############################################################################
# Live drag
###############################################################################


class TestPropagateDrag:
    """Keeping the pair relationship while a handle is dragged."""

    def setup_method(self):
        self.aligner = ControlPointAligner()

    def test_mirrored_stays_mirrored(self):
        commands = PCP.parse(MIRRORED_JOINT)
        updates = self.aligner.propagate_drag(commands, 1, 1, VePoint(-10, -10))
        assert [u.address for u in updates] == [(1, 1), (2, 0)]
        assert updates[1].position == VePoint(10, 10)

        result = PCP.update_commands(commands, updates)
        assert self.aligner.classify_handles(_handle(result, 1, 1), _handle(result, 2, 0), VePoint(0, 0)) == (
            AlignmentType.MIRRORED
        )

    def test_aligned_keeps_paired_length(self):
        commands = PCP.parse(ALIGNED_JOINT)
        updates = self.aligner.propagate_drag(commands, 1, 1, VePoint(0, -10))
        assert updates[0].position == VePoint(0, -10)
        assert updates[1].position == VePoint(0, 20)

    def test_independent_moves_alone(self):
        commands = PCP.parse(CORNER_JOINT)
        updates = self.aligner.propagate_drag(commands, 1, 1, VePoint(-3, -7))
        assert len(updates) == 1
        assert updates[0].position == VePoint(-3, -7)

    def test_drag_onto_anchor_moves_alone(self):
        updates = self.aligner.propagate_drag(PCP.parse(MIRRORED_JOINT), 1, 1, VePoint(0, 0))
        assert len(updates) == 1

    def test_unknown_address(self):
        assert not self.aligner.propagate_drag(PCP.parse(MIRRORED_JOINT), 7, 0, VePoint(0, 0))
