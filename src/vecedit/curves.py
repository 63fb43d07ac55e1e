"""Interactive curve authoring (pen tool) state machine.

The controller receives path-space pointer events and produces a finished
path through an injected callback. It never renders anything itself.

Modes:
    inactive -> creating <-> {editing, dragging_point, dragging_handle} -> inactive
"""

from __future__ import annotations

import copy
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

from vecedit.config import DEFAULT_SETTINGS, EditorSettings
from vecedit.path import VePathData, VePoint
from vecedit.path_support import PathCommandProcessor

logger = logging.getLogger(__name__)

CurveMode = Literal["inactive", "creating", "editing", "dragging_point", "dragging_handle"]
CurveDragType = Literal[
    "point", "handle_in", "handle_out", "adjust_curvature", "adjust_last_segment", "adjust_closing_segment"
]
CurvePointType = Literal["corner", "smooth"]


###############################################################################
# State
###############################################################################


@dataclass
class CurvePoint:
    """An authored point with optional incoming and outgoing handles."""

    id: str
    x: float
    y: float
    type: CurvePointType = "corner"
    selected: bool = False
    handle_in: Optional[VePoint] = None
    handle_out: Optional[VePoint] = None

    @property
    def position(self) -> VePoint:
        """Position as VePoint."""
        return VePoint(self.x, self.y)


@dataclass
class CurveDragState:
    """The single drag in flight."""

    point_id: str
    drag_type: CurveDragType
    start_point: VePoint
    start_handle_in: Optional[VePoint] = None
    start_handle_out: Optional[VePoint] = None
    # mode to return to on pointer-up
    origin_mode: CurveMode = "creating"


@dataclass
class CurveState:
    """Complete state of the curve controller."""

    mode: CurveMode = "inactive"
    is_active: bool = False
    points: List[CurvePoint] = field(default_factory=list)
    selected_point_id: Optional[str] = None
    drag_state: Optional[CurveDragState] = None
    preview_point: Optional[VePoint] = None
    is_closing_path: bool = False


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


###############################################################################
# CurvesController
###############################################################################


class CurvesController:
    """Pen tool: click to add points, drag to bend segments, close on the first point.

    Args:
        on_path_finished: receives the finished path data.
        snap: optional modifier applied to every incoming point (e.g. grid snapping).
        clock: returns the current time in milliseconds.
        settings: thresholds and default style.
    """

    def __init__(
        self,
        on_path_finished: Callable[[VePathData], None],
        snap: Optional[Callable[[VePoint], VePoint]] = None,
        clock: Callable[[], float] = _monotonic_ms,
        settings: EditorSettings = DEFAULT_SETTINGS,
    ):
        self._on_path_finished = on_path_finished
        self._snap = snap
        self._clock = clock
        self.settings = settings
        self._state = CurveState()
        self._listeners: List[Callable[[], None]] = []
        self._last_click_time: Optional[float] = None
        self._last_click_point: Optional[VePoint] = None
        self._ids = itertools.count(1)

    ###########################################################################
    # Observation
    ###########################################################################

    def get_state(self) -> CurveState:
        """Deep copy of the current state."""
        return copy.deepcopy(self._state)

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register _listener_; returns a function that removes it again."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Error in curves controller listener")

    ###########################################################################
    # Helpers
    ###########################################################################

    def _snap_point(self, point: VePoint) -> VePoint:
        return self._snap(point) if self._snap is not None else point

    def _is_double_click(self, point: VePoint) -> bool:
        now = self._clock()
        previous_time = self._last_click_time
        previous_point = self._last_click_point
        self._last_click_time = now
        self._last_click_point = point
        if previous_time is None or previous_point is None:
            return False
        return (
            now - previous_time < self.settings.double_click_ms
            and point.distance_to(previous_point) < self.settings.double_click_distance
        )

    def _is_point_at(self, point: VePoint, target: VePoint, threshold: float) -> bool:
        return point.distance_to(target) <= threshold

    def _find_point_at(self, point: VePoint) -> Optional[CurvePoint]:
        for candidate in self._state.points:
            if self._is_point_at(point, candidate.position, self.settings.point_hit_radius):
                return candidate
        return None

    def _find_handle_at(self, point: VePoint) -> Optional[tuple]:
        radius = self.settings.handle_hit_radius
        for candidate in self._state.points:
            if candidate.handle_in is not None and self._is_point_at(point, candidate.handle_in, radius):
                return candidate, "handle_in"
            if candidate.handle_out is not None and self._is_point_at(point, candidate.handle_out, radius):
                return candidate, "handle_out"
        return None

    def _find_by_id(self, point_id: Optional[str]) -> Optional[CurvePoint]:
        return next((p for p in self._state.points if p.id == point_id), None)

    def _index_of(self, point_id: str) -> int:
        return next((i for i, p in enumerate(self._state.points) if p.id == point_id), -1)

    def _reset_transient(self) -> None:
        state = self._state
        state.points = []
        state.selected_point_id = None
        state.drag_state = None
        state.preview_point = None
        state.is_closing_path = False

    ###########################################################################
    # Lifecycle
    ###########################################################################

    def activate(self) -> None:
        """Enter creating mode."""
        self._state.is_active = True
        self._state.mode = "creating"
        self._notify()

    def deactivate(self) -> None:
        """Leave the tool, discarding the unfinished path."""
        self._reset_transient()
        self._state.is_active = False
        self._state.mode = "inactive"
        self._notify()

    def cancel(self) -> None:
        """Discard the unfinished path but stay in creating mode."""
        self._reset_transient()
        self._state.mode = "creating"
        self._notify()

    def cancel_drag(self) -> None:
        """Abort the drag in flight without finishing or reverting anything."""
        state = self._state
        if state.drag_state is None and not state.is_closing_path:
            return
        if state.mode in ("dragging_point", "dragging_handle") and state.drag_state is not None:
            state.mode = state.drag_state.origin_mode
        state.drag_state = None
        state.is_closing_path = False
        self._notify()

    def start_editing(self) -> None:
        """Switch from creating to editing mode (points stay, clicks no longer add points)."""
        if self._state.is_active and self._state.mode == "creating":
            self._state.drag_state = None
            self._state.mode = "editing"
            self._notify()

    def stop_editing(self) -> None:
        """Switch from editing back to creating mode."""
        if self._state.is_active and self._state.mode == "editing":
            self._state.mode = "creating"
            self._notify()

    ###########################################################################
    # Pointer events
    ###########################################################################

    def handle_pointer_down(self, point: VePoint, modifier: bool = False) -> bool:
        """Handle a pointer press; returns True if the event was consumed."""
        if not self._state.is_active:
            return False
        snapped = self._snap_point(point)
        if self._state.mode == "creating":
            return self._creating_pointer_down(snapped, modifier)
        if self._state.mode == "editing":
            return self._editing_pointer_down(snapped)
        return False

    def handle_pointer_move(self, point: VePoint) -> bool:
        """Handle pointer movement; returns True if the state changed."""
        state = self._state
        if not state.is_active:
            return False
        snapped = self._snap_point(point)

        if state.mode == "creating":
            if state.drag_state is not None:
                drag_type = state.drag_state.drag_type
                if drag_type == "adjust_curvature":
                    return self._adjust_curvature(snapped)
                if drag_type == "adjust_last_segment":
                    return self._adjust_last_segment(snapped)
                if drag_type == "adjust_closing_segment":
                    return self._adjust_closing_segment(snapped)
            else:
                state.preview_point = snapped
            self._notify()
            return True

        if state.mode == "dragging_point" and state.drag_state is not None:
            return self._drag_point(snapped)
        if state.mode == "dragging_handle" and state.drag_state is not None:
            return self._drag_handle(snapped)
        return False

    def handle_pointer_up(self) -> bool:
        """Handle pointer release; closes the path if a close was prepared."""
        state = self._state
        if not state.is_active:
            return False
        if state.is_closing_path:
            self.finish_path()
            return True
        if state.drag_state is not None:
            if state.mode in ("dragging_point", "dragging_handle"):
                state.mode = state.drag_state.origin_mode
            state.drag_state = None
            self._notify()
            return True
        return False

    def _start_point_drag(self, target: CurvePoint, origin_mode: CurveMode) -> None:
        state = self._state
        for p in state.points:
            p.selected = False
        target.selected = True
        state.selected_point_id = target.id
        state.drag_state = CurveDragState(
            point_id=target.id,
            drag_type="point",
            start_point=target.position,
            start_handle_in=target.handle_in,
            start_handle_out=target.handle_out,
            origin_mode=origin_mode,
        )
        state.mode = "dragging_point"

    def _start_handle_drag(self, target: CurvePoint, handle_type: str, origin_mode: CurveMode) -> None:
        start = target.handle_in if handle_type == "handle_in" else target.handle_out
        self._state.drag_state = CurveDragState(
            point_id=target.id,
            drag_type=handle_type,  # type: ignore[arg-type]
            start_point=start,  # type: ignore[arg-type]
            origin_mode=origin_mode,
        )
        self._state.mode = "dragging_handle"

    def _creating_pointer_down(self, snapped: VePoint, modifier: bool) -> bool:
        state = self._state
        points = state.points

        if modifier and points:
            hit_point = self._find_point_at(snapped)
            if hit_point is not None:
                self._start_point_drag(hit_point, "creating")
                self._notify()
                return True
            hit_handle = self._find_handle_at(snapped)
            if hit_handle is not None:
                self._start_handle_drag(hit_handle[0], hit_handle[1], "creating")
                self._notify()
                return True

        if self._is_double_click(snapped) and len(points) >= 3:
            self.finish_path()
            return True

        radius = self.settings.point_hit_radius
        if len(points) > 2 and self._is_point_at(snapped, points[0].position, radius):
            state.drag_state = CurveDragState(points[0].id, "adjust_closing_segment", snapped)
            state.is_closing_path = True
            self._notify()
            return True

        if len(points) > 1 and self._is_point_at(snapped, points[-1].position, radius):
            state.drag_state = CurveDragState(points[-1].id, "adjust_last_segment", snapped)
            self._notify()
            return True

        new_point = CurvePoint(id=f"curve-point-{next(self._ids)}", x=snapped.x, y=snapped.y, selected=True)
        for p in points:
            p.selected = False
        points.append(new_point)
        state.selected_point_id = new_point.id
        if len(points) > 1:
            state.drag_state = CurveDragState(new_point.id, "adjust_curvature", snapped)
        self._notify()
        return True

    def _editing_pointer_down(self, snapped: VePoint) -> bool:
        hit_point = self._find_point_at(snapped)
        if hit_point is not None:
            self._start_point_drag(hit_point, "editing")
            self._notify()
            return True
        hit_handle = self._find_handle_at(snapped)
        if hit_handle is not None:
            self._start_handle_drag(hit_handle[0], hit_handle[1], "editing")
            self._notify()
            return True

        for p in self._state.points:
            p.selected = False
        self._state.selected_point_id = None
        self._notify()
        return True

    ###########################################################################
    # Drags
    ###########################################################################

    def _drag_point(self, snapped: VePoint) -> bool:
        drag = self._state.drag_state
        target = self._find_by_id(drag.point_id)  # type: ignore[union-attr]
        if target is None:
            return False
        delta = snapped - drag.start_point  # type: ignore[union-attr]
        target.x = snapped.x
        target.y = snapped.y
        if drag.start_handle_in is not None:  # type: ignore[union-attr]
            target.handle_in = drag.start_handle_in + delta  # type: ignore[union-attr]
        if drag.start_handle_out is not None:  # type: ignore[union-attr]
            target.handle_out = drag.start_handle_out + delta  # type: ignore[union-attr]
        self._notify()
        return True

    def _drag_handle(self, snapped: VePoint) -> bool:
        drag = self._state.drag_state
        target = self._find_by_id(drag.point_id)  # type: ignore[union-attr]
        if target is None:
            return False
        points = self._state.points
        index = self._index_of(target.id)
        # offset that mirrors the dragged handle through its owning point
        mirror = target.position - snapped

        if drag.drag_type == "handle_in":  # type: ignore[union-attr]
            target.handle_in = snapped
            if index > 0 and points[index - 1].handle_out is None:
                points[index - 1].handle_out = points[index - 1].position + mirror
        elif drag.drag_type == "handle_out":  # type: ignore[union-attr]
            target.handle_out = snapped
            if index < len(points) - 1 and points[index + 1].handle_in is None:
                points[index + 1].handle_in = points[index + 1].position + mirror
        self._notify()
        return True

    def _adjust_segment_curvature(self, anchor: CurvePoint, moving: VePoint, reference: CurvePoint) -> None:
        """
        Bend the segment reference -> anchor towards the pointer.

        The pointer offset from the anchor is projected onto the segment
        normal and clamped to half the segment length. Beyond the curvature
        threshold both adjacent handles are synthesized symmetrically and the
        points become smooth; otherwise the handles are removed.
        """
        segment = anchor.position - reference.position
        length = segment.length
        if length == 0:
            return
        normal = VePoint(-segment.y / length, segment.x / length)
        projection = (moving - anchor.position).dot(normal)
        limit = length * self.settings.curvature_clamp
        strength = max(-limit, min(limit, projection))

        if abs(strength) > self.settings.curvature_threshold:
            ratio = self.settings.handle_offset_ratio
            bend = normal * (strength * 0.5)
            reference.handle_out = reference.position + segment * ratio + bend
            anchor.handle_in = anchor.position - segment * ratio + bend
            reference.type = "smooth"
            anchor.type = "smooth"
        else:
            reference.handle_out = None
            anchor.handle_in = None
            reference.type = "corner"
            anchor.type = "corner"

    def _adjust_curvature(self, snapped: VePoint) -> bool:
        current = self._find_by_id(self._state.drag_state.point_id)  # type: ignore[union-attr]
        if current is None:
            return False
        index = self._index_of(current.id)
        if index <= 0:
            return False
        self._adjust_segment_curvature(current, snapped, self._state.points[index - 1])
        self._notify()
        return True

    def _adjust_last_segment(self, snapped: VePoint) -> bool:
        points = self._state.points
        last = self._find_by_id(self._state.drag_state.point_id)  # type: ignore[union-attr]
        if last is None or len(points) < 2:
            return False
        self._adjust_segment_curvature(last, snapped, points[-2])
        self._notify()
        return True

    def _adjust_closing_segment(self, snapped: VePoint) -> bool:
        points = self._state.points
        if len(points) < 3:
            return False
        self._adjust_segment_curvature(points[0], snapped, points[-1])
        self._notify()
        return True

    ###########################################################################
    # Results and point editing
    ###########################################################################

    def generate_path_text(self) -> str:
        """Textual path of the authored points (cubic where both handles exist)."""
        points = self._state.points
        if not points:
            return ""
        fmt = PathCommandProcessor.format_number
        precision = self.settings.precision

        def _xy(p: VePoint) -> str:
            return f"{fmt(p.x, precision)} {fmt(p.y, precision)}"

        def _segment(prev: CurvePoint, cur: CurvePoint) -> str:
            if prev.handle_out is not None and cur.handle_in is not None:
                return f" C {_xy(prev.handle_out)} {_xy(cur.handle_in)} {_xy(cur.position)}"
            return f" L {_xy(cur.position)}"

        text = f"M {_xy(points[0].position)}"
        for prev, cur in zip(points, points[1:]):
            text += _segment(prev, cur)
        if self._state.is_closing_path and len(points) > 2:
            text += _segment(points[-1], points[0])
            text += " Z"
        return text

    def finish_path(self) -> Optional[VePathData]:
        """
        Emit the authored path and reset to creating mode.

        Returns:
            Optional[VePathData]: the emitted path, or None if no point exists
        """
        if not self._state.points:
            return None

        commands = PathCommandProcessor.parse(self.generate_path_text())
        sub_paths = [info.commands for info in PathCommandProcessor.extract_subpaths(commands)]
        data = VePathData(
            sub_paths=sub_paths,
            stroke_width=self.settings.default_stroke_width,
            stroke_color=self.settings.default_stroke_color,
            stroke_opacity=1.0,
            fill_color="none",
            fill_opacity=0.0,
            fill_rule="nonzero",
            stroke_linecap="round",
            stroke_linejoin="round",
        )
        logger.debug("Curve finished with %s point(s)", len(self._state.points))
        self._on_path_finished(data)

        self._reset_transient()
        self._state.mode = "creating"
        self._notify()
        return data

    def delete_selected_point(self) -> None:
        """Remove the selected point and clear the handles that pointed at it."""
        state = self._state
        if state.selected_point_id is None:
            return
        deleted = self._index_of(state.selected_point_id)
        if deleted == -1:
            return

        del state.points[deleted]
        points = state.points
        if points:
            if deleted == 0:
                points[0].handle_in = None
            elif deleted == len(points):
                points[-1].handle_out = None
            else:
                points[deleted - 1].handle_out = None
                points[deleted].handle_in = None
        state.selected_point_id = None
        self._notify()

    def select_point(self, point_id: Optional[str]) -> None:
        """Select the point with _point_id_ (None deselects all)."""
        self._state.selected_point_id = point_id
        for p in self._state.points:
            p.selected = p.id == point_id
        self._notify()

    def set_point_type(self, point_id: str, point_type: CurvePointType) -> None:
        """Mark a point as corner or smooth; unknown ids are ignored."""
        target = self._find_by_id(point_id)
        if target is not None:
            target.type = point_type
            self._notify()
