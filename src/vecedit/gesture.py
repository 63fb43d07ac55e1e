"""Drag gesture session.

At most one gesture is in flight. Pointer moves are throttled, passed
through the drag modifiers (e.g. object snapping) and turned into new path
data that is handed to the injected ``update_element`` callback. A cancelled
gesture stops producing updates and drops its snapshot; reverting already
applied updates is left to the caller's history.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Literal, Optional, Sequence, Tuple, Union

from vecedit.common import format_to_precision
from vecedit.config import DEFAULT_SETTINGS, EditorSettings
from vecedit.curves import CurvesController
from vecedit.path import ControlPoint, VeElement, VePathData, VePoint
from vecedit.path_alignment import ControlPointAligner
from vecedit.path_support import PathCommandProcessor
from vecedit.transform import TransformEngine

logger = logging.getLogger(__name__)

CancelReason = Literal["pointer-cancel", "context-menu", "blur", "visibility-hidden", "unload", "superseded"]
UpdateElement = Callable[[str, VePathData], None]
DragModifier = Callable[[VePoint, Sequence[str]], VePoint]


###############################################################################
# Gesture variants
###############################################################################


@dataclass(frozen=True)
class EditingPointGesture:
    """Dragging one editable point of a path."""

    element_id: str
    command_index: int
    point_index: int
    start: VePoint


@dataclass(frozen=True)
class DraggingSelectionGesture:
    """Dragging whole selected elements."""

    element_ids: Tuple[str, ...]
    start: VePoint


@dataclass(frozen=True)
class DraggingSubpathsGesture:
    """Dragging selected sub paths of one element."""

    element_id: str
    subpath_indices: Tuple[int, ...]
    start: VePoint


@dataclass(frozen=True)
class CurveDragGesture:
    """A drag handled by the curve authoring controller."""

    controller: CurvesController


Gesture = Union[EditingPointGesture, DraggingSelectionGesture, DraggingSubpathsGesture, CurveDragGesture]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


###############################################################################
# GestureSession
###############################################################################


class GestureSession:
    """Holds the single active gesture and turns pointer moves into element updates.

    Args:
        update_element: receives (element id, new path data) for every applied update.
        clear_feedback: clears transient visual feedback on cancellation.
        modifiers: drag modifiers applied in order to every position.
        clock: returns the current time in milliseconds.
        settings: throttle interval and precision.
    """

    def __init__(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        update_element: UpdateElement,
        clear_feedback: Callable[[], None] = lambda: None,
        modifiers: Sequence[DragModifier] = (),
        clock: Callable[[], float] = _monotonic_ms,
        settings: EditorSettings = DEFAULT_SETTINGS,
    ):
        self._update_element = update_element
        self._clear_feedback = clear_feedback
        self._modifiers = list(modifiers)
        self._clock = clock
        self.settings = settings
        self._aligner = ControlPointAligner(settings)
        self.active: Optional[Gesture] = None
        self._snapshot: Dict[str, VePathData] = {}
        self._last_update_ms: Optional[float] = None
        self._pending: Optional[VePoint] = None

    @property
    def snapshot(self) -> Dict[str, VePathData]:
        """Original geometry of the elements touched by the active gesture."""
        return dict(self._snapshot)

    @property
    def is_active(self) -> bool:
        """True while a gesture is in flight."""
        return self.active is not None

    ###########################################################################
    # Begin
    ###########################################################################

    def _begin(self, gesture: Gesture, elements: Sequence[VeElement]) -> None:
        if self.active is not None:
            logger.debug("New gesture supersedes %s", type(self.active).__name__)
            self.cancel("superseded")
        self.active = gesture
        self._snapshot = {element.id: element.data for element in elements if element.data is not None}
        self._last_update_ms = None
        self._pending = None

    def begin_point_edit(self, element: VeElement, command_index: int, point_index: int, start: VePoint) -> None:
        """Start dragging the point at (command_index, point_index) of _element_."""
        self._begin(EditingPointGesture(element.id, command_index, point_index, start), [element])

    def begin_selection_drag(self, elements: Sequence[VeElement], start: VePoint) -> None:
        """Start moving the given elements."""
        self._begin(DraggingSelectionGesture(tuple(e.id for e in elements), start), elements)

    def begin_subpath_drag(self, element: VeElement, subpath_indices: Sequence[int], start: VePoint) -> None:
        """Start moving some sub paths of _element_."""
        self._begin(DraggingSubpathsGesture(element.id, tuple(subpath_indices), start), [element])

    def begin_curve_drag(self, controller: CurvesController) -> None:
        """Route the following pointer moves to the curve controller."""
        self._begin(CurveDragGesture(controller), [])

    ###########################################################################
    # Update / end / cancel
    ###########################################################################

    def _dragged_ids(self) -> List[str]:
        gesture = self.active
        if isinstance(gesture, DraggingSelectionGesture):
            return list(gesture.element_ids)
        if isinstance(gesture, (EditingPointGesture, DraggingSubpathsGesture)):
            return [gesture.element_id]
        return []

    def update(self, point: VePoint, force: bool = False) -> bool:
        """
        Apply a pointer move.

        Moves arriving faster than the throttle interval are held back and
        only the latest one is flushed by ``end``.

        Returns:
            bool: True if an update was applied
        """
        gesture = self.active
        if gesture is None:
            return False
        now = self._clock()
        if (
            not force
            and self._last_update_ms is not None
            and now - self._last_update_ms < self.settings.drag_throttle_ms
        ):
            self._pending = point
            return False

        if isinstance(gesture, CurveDragGesture):
            gesture.controller.handle_pointer_move(point)
        else:
            dragged = self._dragged_ids()
            for modifier in self._modifiers:
                point = modifier(point, dragged)
            precision = self.settings.precision
            point = VePoint(format_to_precision(point.x, precision), format_to_precision(point.y, precision))
            if isinstance(gesture, EditingPointGesture):
                self._apply_point_edit(gesture, point)
            elif isinstance(gesture, DraggingSelectionGesture):
                self._apply_translation(gesture.element_ids, point - gesture.start, None)
            else:
                self._apply_translation((gesture.element_id,), point - gesture.start, gesture.subpath_indices)

        self._last_update_ms = now
        self._pending = None
        return True

    def _apply_point_edit(self, gesture: EditingPointGesture, point: VePoint) -> None:
        original = self._snapshot.get(gesture.element_id)
        if original is None:
            return
        commands = original.commands
        points = PathCommandProcessor.extract_editable_points(commands)
        target = next((p for p in points if p.address == (gesture.command_index, gesture.point_index)), None)
        if target is None:
            return

        if target.is_control:
            updates = self._aligner.propagate_drag(commands, gesture.command_index, gesture.point_index, point)
        else:
            updates = [target.with_position(point.x, point.y)]
            updates.extend(self._anchored_handles(points, target, point - target.position))
        updated = PathCommandProcessor.update_commands(commands, updates)
        self._update_element(gesture.element_id, original.with_commands(updated))

    def _anchored_handles(
        self, points: Sequence[ControlPoint], target: ControlPoint, delta: VePoint
    ) -> List[ControlPoint]:
        """Handles pivoting around _target_, moved by _delta_."""
        precision = self.settings.precision
        moved = []
        for p in points:
            if not p.is_control or p.anchor != target.position:
                continue
            if p.address in ((target.command_index, 1), (target.command_index + 1, 0)):
                moved.append(
                    p.with_position(
                        format_to_precision(p.x + delta.x, precision), format_to_precision(p.y + delta.y, precision)
                    )
                )
        return moved

    def _apply_translation(
        self, element_ids: Sequence[str], delta: VePoint, subpath_indices: Optional[Sequence[int]]
    ) -> None:
        for element_id in element_ids:
            original = self._snapshot.get(element_id)
            if original is None:
                continue
            sub_paths = [
                TransformEngine.translate_commands(sub_path, delta.x, delta.y)
                if subpath_indices is None or index in subpath_indices
                else sub_path
                for index, sub_path in enumerate(original.sub_paths)
            ]
            self._update_element(element_id, replace(original, sub_paths=sub_paths))

    def end(self, point: Optional[VePoint] = None) -> bool:
        """
        Finish the gesture, flushing the final (or last held back) position.

        Returns:
            bool: True if a gesture was active
        """
        gesture = self.active
        if gesture is None:
            return False
        final = point if point is not None else self._pending
        if final is not None:
            self.update(final, force=True)
        if isinstance(gesture, CurveDragGesture):
            gesture.controller.handle_pointer_up()
        self._clear()
        return True

    def cancel(self, reason: CancelReason = "pointer-cancel") -> None:
        """Stop the gesture without further updates and clear all transient state."""
        gesture = self.active
        if gesture is None:
            return
        if isinstance(gesture, CurveDragGesture):
            gesture.controller.cancel_drag()
        logger.debug("Gesture %s cancelled: %s", type(gesture).__name__, reason)
        self._clear()
        self._clear_feedback()

    def _clear(self) -> None:
        self.active = None
        self._snapshot = {}
        self._last_update_ms = None
        self._pending = None
