"""Tests for rectangle and lasso selection in vecedit.selection"""

import pytest

from vecedit.common import SelectionMode
from vecedit.geom import VeBox
from vecedit.path import VeElement, VePathData, VePoint
from vecedit.path_support import PathCommandProcessor
from vecedit.selection import (
    LassoSelectionStrategy,
    RectangleSelectionStrategy,
    SelectionRegion,
    SelectionResolver,
    merge_selection,
    strategy_for,
)

PCP = PathCommandProcessor


def _path(element_id, text):
    sub_paths = [info.commands for info in PCP.extract_subpaths(PCP.parse(text))]
    return VeElement(element_id, data=VePathData(sub_paths=sub_paths, stroke_width=0.0))


def _square(element_id, x, y, size=10):
    return _path(element_id, f"M {x} {y} L {x + size} {y} L {x + size} {y + size} L {x} {y + size} Z")


TRIANGLE = SelectionRegion.from_lasso([VePoint(0, 0), VePoint(100, 0), VePoint(0, 100)])


###############################################################################
# Region and strategies
###############################################################################


class TestSelectionRegion:
    """Region construction."""

    def test_needs_exactly_one_shape(self):
        with pytest.raises(ValueError):
            SelectionRegion()
        with pytest.raises(ValueError):
            SelectionRegion(rect=VeBox(0, 0, 1, 1), lasso=(VePoint(0, 0),))

    def test_rect_is_normalized(self):
        region = SelectionRegion.from_rect(VePoint(100, 100), VePoint(0, 0))
        assert region.rect.extent == (0, 0, 100, 100)
        assert not region.is_lasso
        assert strategy_for(region) is RectangleSelectionStrategy

    def test_lasso(self):
        assert TRIANGLE.is_lasso
        assert strategy_for(TRIANGLE) is LassoSelectionStrategy


class TestStrategies:
    """Point containment and box overlap."""

    def test_rectangle_contains_border(self):
        region = SelectionRegion.from_rect(VePoint(0, 0), VePoint(10, 10))
        assert RectangleSelectionStrategy.contains_point(VePoint(10, 5), region)
        assert not RectangleSelectionStrategy.contains_point(VePoint(11, 5), region)

    def test_rectangle_intersects(self):
        region = SelectionRegion.from_rect(VePoint(0, 0), VePoint(10, 10))
        assert RectangleSelectionStrategy.intersects_bounds(VeBox(5, 5, 20, 20), region)
        assert not RectangleSelectionStrategy.intersects_bounds(VeBox(11, 11, 20, 20), region)

    def test_lasso_contains(self):
        assert LassoSelectionStrategy.contains_point(VePoint(10, 10), TRIANGLE)
        assert not LassoSelectionStrategy.contains_point(VePoint(80, 80), TRIANGLE)
        assert LassoSelectionStrategy.contains_points([VePoint(10, 10), VePoint(80, 80)], TRIANGLE) == [True, False]

    def test_lasso_overlap_without_contained_corner(self):
        """The box encloses a lasso vertex; no box corner is inside the lasso."""
        assert LassoSelectionStrategy.intersects_bounds(VeBox(98, -5, 120, 5), TRIANGLE)
        assert not LassoSelectionStrategy.intersects_bounds(VeBox(70, 70, 90, 90), TRIANGLE)

    def test_degenerate_lasso_selects_nothing(self):
        region = SelectionRegion.from_lasso([VePoint(0, 0), VePoint(100, 100)])
        assert not LassoSelectionStrategy.contains_point(VePoint(50, 50), region)
        assert not LassoSelectionStrategy.intersects_bounds(VeBox(0, 0, 100, 100), region)
        assert LassoSelectionStrategy.contains_points([], TRIANGLE) == []

    def test_merge_selection(self):
        assert merge_selection(["a", "b"], ["c", "a"]) == ["a", "b", "c"]


###############################################################################
# SelectionResolver
###############################################################################


class TestSelectElements:
    """Element granularity."""

    def setup_method(self):
        self.elements = [
            _square("inside", 10, 10),
            _square("straddling", 95, 95),
            _square("outside", 200, 200),
            _square("far", 150, 0),
        ]
        self.region = SelectionRegion.from_rect(VePoint(0, 0), VePoint(100, 100))

    def test_rectangle_selects_intersecting(self):
        hits = SelectionResolver().select_elements(self.elements, self.region)
        assert hits == ["inside", "straddling"]

    def test_merge_unions_with_current(self):
        resolver = SelectionResolver()
        first = resolver.select_elements(self.elements, self.region)
        second_region = SelectionRegion.from_rect(VePoint(140, -10), VePoint(170, 20))
        merged = resolver.select_elements(self.elements, second_region, current=first, merge=True)
        assert merged == ["inside", "straddling", "far"]
        again = resolver.select_elements(self.elements, self.region, current=merged, merge=True)
        assert again == merged

    def test_empty_hit_clears_selection(self):
        region = SelectionRegion.from_rect(VePoint(500, 500), VePoint(600, 600))
        assert SelectionResolver().select_elements(self.elements, region, current=["inside"]) == []

    def test_excluded_elements(self):
        resolver = SelectionResolver(is_excluded=lambda i: i == "inside")
        assert resolver.select_elements(self.elements, self.region) == ["straddling"]

    def test_group_uses_children_bounds(self):
        group = VeElement("g", type="group", child_ids=("outside",))
        elements = [*self.elements, group]
        region = SelectionRegion.from_rect(VePoint(190, 190), VePoint(250, 250))
        assert SelectionResolver().select_elements(elements, region) == ["outside", "g"]

    def test_lasso_selection(self):
        hits = SelectionResolver().select_elements(self.elements, TRIANGLE)
        assert hits == ["inside"]


class TestSelectSubpathsAndPoints:
    """Sub path and point granularity."""

    def test_select_subpaths(self):
        element = _path("a", "M 0 0 L 10 0 M 200 200 L 210 200 M 5 5 L 6 6")
        region = SelectionRegion.from_rect(VePoint(0, 0), VePoint(50, 50))
        assert SelectionResolver().select_subpaths([element], region) == [("a", 0), ("a", 2)]
        merged = SelectionResolver().select_subpaths([element], region, current=[("b", 1)], merge=True)
        assert merged == [("b", 1), ("a", 0), ("a", 2)]

    def test_select_subpaths_includes_stroke(self):
        """The rectangle only touches the stroke of a 20 unit wide line."""
        element = VeElement("a", data=VePathData(sub_paths=[PCP.parse("M 0 0 L 100 0")], stroke_width=20))
        region = SelectionRegion.from_rect(VePoint(40, 5), VePoint(60, 8))
        resolver = SelectionResolver()
        assert resolver.select_elements([element], region) == ["a"]
        assert resolver.select_subpaths([element], region) == [("a", 0)]

    def test_select_points(self):
        element = _path("a", "M 0 0 C 10 0 20 10 30 10 L 100 100")
        region = SelectionRegion.from_rect(VePoint(-1, -1), VePoint(15, 5))
        assert SelectionResolver().select_points([element], region) == [("a", 0, 0), ("a", 1, 0)]

    def test_select_points_lasso(self):
        element = _path("a", "M 10 10 L 80 80 L 20 30")
        assert SelectionResolver().select_points([element], TRIANGLE) == [("a", 0, 0), ("a", 2, 0)]

    def test_select_points_skips_excluded(self):
        element = _path("a", "M 10 10")
        region = SelectionRegion.from_rect(VePoint(0, 0), VePoint(50, 50))
        assert SelectionResolver(is_excluded=lambda i: True).select_points([element], region) == []


class TestResolve:
    """Dispatch on the selection mode."""

    def setup_method(self):
        self.elements = [_path("a", "M 0 0 L 10 0 M 200 200 L 210 200"), _square("b", 300, 300)]
        self.region = SelectionRegion.from_rect(VePoint(-1, -1), VePoint(20, 20))
        self.resolver = SelectionResolver()

    def test_elements_mode(self):
        assert self.resolver.resolve(SelectionMode.ELEMENTS, self.elements, self.region) == ["a"]

    def test_subpaths_mode(self):
        assert self.resolver.resolve(SelectionMode.SUBPATHS, self.elements, self.region) == [("a", 0)]

    def test_points_mode(self):
        expected = self.resolver.select_points(self.elements, self.region)
        assert self.resolver.resolve(SelectionMode.POINTS, self.elements, self.region) == expected
        assert expected == [("a", 0, 0), ("a", 1, 0)]

    def test_mode_by_value_with_merge(self):
        result = self.resolver.resolve("points", self.elements, self.region, current=[("b", 0, 0)], merge=True)
        assert result == [("b", 0, 0), ("a", 0, 0), ("a", 1, 0)]

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            self.resolver.resolve("shapes", self.elements, self.region)
