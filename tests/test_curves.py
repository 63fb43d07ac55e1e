"""Tests for the curve authoring controller in vecedit.curves"""

import pytest

from vecedit.config import EditorSettings
from vecedit.curves import CurvesController
from vecedit.path import VePoint
from vecedit.path_support import PathCommandProcessor


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start=0.0, step=1000.0):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


def _make_controller(clock=None, **kwargs):
    finished = []
    controller = CurvesController(finished.append, clock=clock or FakeClock(), **kwargs)
    controller.activate()
    return controller, finished


def _click(controller, x, y, modifier=False):
    controller.handle_pointer_down(VePoint(x, y), modifier=modifier)
    controller.handle_pointer_up()


###############################################################################
# Lifecycle
###############################################################################


class TestLifecycle:
    """Mode transitions and observation."""

    def test_inactive_ignores_events(self):
        controller = CurvesController(lambda data: None)
        assert not controller.handle_pointer_down(VePoint(0, 0))
        assert not controller.handle_pointer_move(VePoint(0, 0))
        assert not controller.handle_pointer_up()
        assert controller.get_state().mode == "inactive"

    def test_activate_and_deactivate(self):
        controller, _ = _make_controller()
        assert controller.get_state().mode == "creating"
        _click(controller, 0, 0)
        controller.deactivate()
        state = controller.get_state()
        assert state.mode == "inactive"
        assert not state.is_active
        assert state.points == []

    def test_cancel_keeps_tool_active(self):
        controller, finished = _make_controller()
        _click(controller, 0, 0)
        _click(controller, 50, 0)
        controller.cancel()
        state = controller.get_state()
        assert state.mode == "creating"
        assert state.points == []
        assert finished == []

    def test_get_state_is_a_copy(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        state = controller.get_state()
        state.points.clear()
        assert len(controller.get_state().points) == 1

    def test_listeners(self):
        controller, _ = _make_controller()
        calls = []
        remove = controller.add_listener(lambda: calls.append(1))
        _click(controller, 0, 0)
        count = len(calls)
        assert count > 0
        remove()
        _click(controller, 50, 0)
        assert len(calls) == count

    def test_failing_listener_is_logged(self, caplog):
        controller, _ = _make_controller()

        def _boom():
            raise RuntimeError("listener failure")

        controller.add_listener(_boom)
        _click(controller, 0, 0)
        assert "Error in curves controller listener" in caplog.text
        assert len(controller.get_state().points) == 1

    def test_preview_point(self):
        controller, _ = _make_controller()
        controller.handle_pointer_move(VePoint(3, 4))
        assert controller.get_state().preview_point == VePoint(3, 4)


###############################################################################
# Creating
###############################################################################


class TestCreating:
    """Click to add, drag to bend, close or double click to finish."""

    def test_three_clicks_give_a_polyline(self):
        controller, finished = _make_controller()
        _click(controller, 0, 0)
        _click(controller, 50, 0)
        _click(controller, 50, 50)
        assert controller.generate_path_text() == "M 0 0 L 50 0 L 50 50"

        data = controller.finish_path()
        assert finished == [data]
        commands = data.commands
        assert [c.type for c in commands] == ["M", "L", "L"]
        assert [c.position for c in commands] == [VePoint(0, 0), VePoint(50, 0), VePoint(50, 50)]
        assert data.stroke_width == 2.0
        assert data.fill_color == "none"
        assert data.stroke_linecap == "round"
        assert controller.get_state().points == []
        assert controller.get_state().mode == "creating"

    def test_point_ids_are_unique(self):
        controller, _ = _make_controller()
        for x in (0, 50, 100):
            _click(controller, x, 0)
        ids = [p.id for p in controller.get_state().points]
        assert len(set(ids)) == 3
        assert all(i.startswith("curve-point-") for i in ids)

    def test_small_drag_keeps_corner(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        controller.handle_pointer_down(VePoint(100, 0))
        controller.handle_pointer_move(VePoint(100, 4))
        controller.handle_pointer_up()
        points = controller.get_state().points
        assert points[1].handle_in is None
        assert points[0].handle_out is None
        assert points[1].type == "corner"

    def test_drag_bends_segment(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        controller.handle_pointer_down(VePoint(100, 0))
        controller.handle_pointer_move(VePoint(100, 20))
        controller.handle_pointer_up()
        first, second = controller.get_state().points
        assert first.handle_out == VePoint(30, 10)
        assert second.handle_in == VePoint(70, 10)
        assert first.type == second.type == "smooth"
        assert controller.generate_path_text() == "M 0 0 C 30 10 70 10 100 0"

    def test_curvature_is_clamped(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        controller.handle_pointer_down(VePoint(100, 0))
        controller.handle_pointer_move(VePoint(100, 500))
        first, second = controller.get_state().points
        assert first.handle_out == VePoint(30, 25)
        assert second.handle_in == VePoint(70, 25)

    def test_adjust_last_segment(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        _click(controller, 100, 0)
        controller.handle_pointer_down(VePoint(102, 0))
        assert len(controller.get_state().points) == 2
        assert controller.get_state().drag_state.drag_type == "adjust_last_segment"
        controller.handle_pointer_move(VePoint(100, -20))
        controller.handle_pointer_up()
        first, second = controller.get_state().points
        assert first.handle_out == VePoint(30, -10)
        assert second.handle_in == VePoint(70, -10)

    def test_click_on_first_point_closes(self):
        controller, finished = _make_controller()
        _click(controller, 0, 0)
        _click(controller, 50, 0)
        _click(controller, 50, 50)
        controller.handle_pointer_down(VePoint(2, 2))
        assert controller.get_state().is_closing_path
        assert controller.generate_path_text() == "M 0 0 L 50 0 L 50 50 L 0 0 Z"
        controller.handle_pointer_up()
        assert len(finished) == 1
        assert [c.type for c in finished[0].commands] == ["M", "L", "L", "L", "Z"]

    def test_double_click_finishes(self):
        clock = FakeClock(step=100.0)
        controller, finished = _make_controller(clock=clock)
        _click(controller, 0, 0)
        _click(controller, 50, 0)
        _click(controller, 50, 50)
        controller.handle_pointer_down(VePoint(51, 51))
        assert len(finished) == 1
        assert PathCommandProcessor.commands_to_string(finished[0].commands) == "M 0 0 L 50 0 L 50 50"

    def test_slow_second_click_is_not_a_double_click(self):
        controller, finished = _make_controller(clock=FakeClock(step=400.0))
        for x, y in ((0, 0), (50, 0), (50, 50)):
            _click(controller, x, y)
        controller.handle_pointer_down(VePoint(51, 51))
        assert finished == []

    def test_finish_without_points(self):
        controller, finished = _make_controller()
        assert controller.finish_path() is None
        assert finished == []

    def test_snap_modifier_is_applied(self):
        def _grid(point):
            return VePoint(round(point.x / 10) * 10, round(point.y / 10) * 10)

        controller, _ = _make_controller(snap=_grid)
        _click(controller, 3, 4)
        assert controller.get_state().points[0].position == VePoint(0, 0)

    def test_custom_precision(self):
        controller, _ = _make_controller(settings=EditorSettings(precision=1))
        _click(controller, 0.26, 0)
        _click(controller, 50, 0)
        assert controller.generate_path_text() == "M 0.3 0 L 50 0"


###############################################################################
# Editing
###############################################################################


class TestEditing:
    """Dragging points and handles of the authored path."""

    def _bent_controller(self):
        controller, finished = _make_controller()
        _click(controller, 0, 0)
        controller.handle_pointer_down(VePoint(100, 0))
        controller.handle_pointer_move(VePoint(100, 20))
        controller.handle_pointer_up()
        return controller, finished

    def test_drag_point_moves_its_handles(self):
        controller, _ = self._bent_controller()
        controller.start_editing()
        controller.handle_pointer_down(VePoint(100, 0))
        assert controller.get_state().mode == "dragging_point"
        controller.handle_pointer_move(VePoint(110, 10))
        controller.handle_pointer_up()
        state = controller.get_state()
        assert state.mode == "editing"
        second = state.points[1]
        assert second.position == VePoint(110, 10)
        assert second.handle_in == VePoint(80, 20)
        assert state.selected_point_id == second.id

    def test_drag_handle(self):
        controller, _ = self._bent_controller()
        controller.start_editing()
        controller.handle_pointer_down(VePoint(70, 10))
        assert controller.get_state().mode == "dragging_handle"
        controller.handle_pointer_move(VePoint(60, 30))
        controller.handle_pointer_up()
        assert controller.get_state().points[1].handle_in == VePoint(60, 30)
        assert controller.get_state().mode == "editing"

    def test_handle_drag_synthesizes_missing_neighbor_handle(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        _click(controller, 100, 0)
        # a lone incoming handle without its partner on the previous point
        controller._state.points[1].handle_in = VePoint(70, 10)  # pylint: disable=protected-access
        controller.start_editing()
        controller.handle_pointer_down(VePoint(70, 10))
        controller.handle_pointer_move(VePoint(60, 20))
        controller.handle_pointer_up()
        first, second = controller.get_state().points
        assert second.handle_in == VePoint(60, 20)
        assert first.handle_out == VePoint(40, -20)

    def test_click_on_empty_space_deselects(self):
        controller, _ = self._bent_controller()
        controller.start_editing()
        controller.handle_pointer_down(VePoint(500, 500))
        state = controller.get_state()
        assert state.selected_point_id is None
        assert not any(p.selected for p in state.points)
        assert len(state.points) == 2

    def test_cancel_drag_restores_origin_mode(self):
        controller, _ = self._bent_controller()
        controller.start_editing()
        controller.handle_pointer_down(VePoint(100, 0))
        controller.cancel_drag()
        state = controller.get_state()
        assert state.mode == "editing"
        assert state.drag_state is None

    def test_select_and_set_type(self):
        controller, _ = self._bent_controller()
        first_id = controller.get_state().points[0].id
        controller.select_point(first_id)
        controller.set_point_type(first_id, "corner")
        controller.set_point_type("missing", "smooth")
        first = controller.get_state().points[0]
        assert first.selected
        assert first.type == "corner"

    def test_delete_selected_point_clears_dangling_handles(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        controller.handle_pointer_down(VePoint(100, 0))
        controller.handle_pointer_move(VePoint(100, 20))
        controller.handle_pointer_up()
        _click(controller, 200, 0)
        points = controller.get_state().points
        controller.select_point(points[1].id)
        controller.delete_selected_point()
        first, last = controller.get_state().points
        assert first.handle_out is None
        assert last.handle_in is None
        assert controller.get_state().selected_point_id is None

    def test_delete_without_selection(self):
        controller, _ = _make_controller()
        _click(controller, 0, 0)
        controller.select_point(None)
        controller.delete_selected_point()
        assert len(controller.get_state().points) == 1


@pytest.mark.parametrize("origin_mode", ["creating", "editing"])
def test_pointer_up_returns_to_origin_mode(origin_mode):
    controller, _ = _make_controller()
    _click(controller, 0, 0)
    _click(controller, 100, 0)
    if origin_mode == "editing":
        controller.start_editing()
        controller.handle_pointer_down(VePoint(0, 0))
    else:
        controller.handle_pointer_down(VePoint(0, 0), modifier=True)
    assert controller.get_state().mode == "dragging_point"
    controller.handle_pointer_up()
    assert controller.get_state().mode == origin_mode
