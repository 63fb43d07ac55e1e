"""Selection hit testing for rectangle and lasso gestures.

Selections are resolved at three granularities: whole elements, sub paths
and single editable points. The resolver never reads a global store; the
caller passes the elements and the current selection and receives the new
selection back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
import shapely
import shapely.errors
import shapely.geometry

from vecedit.common import SelectionMode
from vecedit.geom import GeomMath, VeBox, VeViewport
from vecedit.measure import PathMeasurer
from vecedit.path import VeElement, VePoint
from vecedit.path_support import PathCommandProcessor

logger = logging.getLogger(__name__)

ExcludedPredicate = Callable[[str], bool]
SubpathKey = Tuple[str, int]
PointKey = Tuple[str, int, int]

T = TypeVar("T", bound=Hashable)


###############################################################################
# SelectionRegion
###############################################################################


@dataclass(frozen=True)
class SelectionRegion:
    """Either an axis-aligned rectangle or a lasso polygon (implicitly closed)."""

    rect: Optional[VeBox] = None
    lasso: Optional[Tuple[VePoint, ...]] = None

    def __post_init__(self) -> None:
        if (self.rect is None) == (self.lasso is None):
            raise ValueError("SelectionRegion needs exactly one of rect or lasso")

    @classmethod
    def from_rect(cls, start: VePoint, end: VePoint) -> SelectionRegion:
        """Rectangle spanned by the drag start and end points."""
        return cls(rect=VeBox(xmin=start.x, ymin=start.y, xmax=end.x, ymax=end.y))

    @classmethod
    def from_lasso(cls, points: Iterable[VePoint]) -> SelectionRegion:
        """Lasso through the given points."""
        return cls(lasso=tuple(points))

    @property
    def is_lasso(self) -> bool:
        """True for lasso regions."""
        return self.lasso is not None


###############################################################################
# Strategies
###############################################################################


class RectangleSelectionStrategy:
    """AABB arithmetic against the selection rectangle."""

    @staticmethod
    def contains_point(point: VePoint, region: SelectionRegion) -> bool:
        """True if _point_ lies inside the rectangle (border included)."""
        return region.rect.contains_point(point.as_tuple())  # type: ignore[union-attr]

    @staticmethod
    def intersects_bounds(box: VeBox, region: SelectionRegion) -> bool:
        """True if _box_ overlaps the rectangle."""
        return region.rect.intersects(box)  # type: ignore[union-attr]


class LassoSelectionStrategy:
    """Even-odd containment and polygon/box overlap against the lasso.

    A lasso with fewer than three points selects nothing.
    """

    @staticmethod
    def _polygon(region: SelectionRegion) -> Optional[np.ndarray]:
        lasso = region.lasso or ()
        if len(lasso) < 3:
            return None
        return np.array([p.as_tuple() for p in lasso], dtype=np.float64)

    @staticmethod
    def contains_points(points: Sequence[VePoint], region: SelectionRegion) -> List[bool]:
        """Vectorised containment test for many points."""
        polygon = LassoSelectionStrategy._polygon(region)
        if polygon is None or not points:
            return [False] * len(points)
        array = np.array([p.as_tuple() for p in points], dtype=np.float64)
        return [bool(v) for v in GeomMath.points_in_polygon(array, polygon)]

    @staticmethod
    def contains_point(point: VePoint, region: SelectionRegion) -> bool:
        """True if _point_ lies inside the lasso (even-odd rule)."""
        return LassoSelectionStrategy.contains_points([point], region)[0]

    @staticmethod
    def intersects_bounds(box: VeBox, region: SelectionRegion) -> bool:
        """True if _box_ overlaps the lasso polygon."""
        polygon = LassoSelectionStrategy._polygon(region)
        if polygon is None:
            return False
        box_geometry = shapely.geometry.box(box.xmin, box.ymin, box.xmax, box.ymax)
        try:
            lasso_geometry = shapely.geometry.Polygon(polygon)
            if not lasso_geometry.is_valid:
                lasso_geometry = shapely.make_valid(lasso_geometry)
            return bool(lasso_geometry.intersects(box_geometry))
        except (shapely.errors.ShapelyError, ValueError, TypeError) as err:
            logger.warning("Lasso overlap test failed (%s); testing box corners only", err)
            corners = [VePoint(*c) for c in box.corners]
            return any(LassoSelectionStrategy.contains_points(corners, region))


def strategy_for(region: SelectionRegion):
    """Strategy matching the region type."""
    return LassoSelectionStrategy if region.is_lasso else RectangleSelectionStrategy


def merge_selection(current: Iterable[T], new: Iterable[T]) -> List[T]:
    """Union of two selections by identity, keeping the first-seen order."""
    return list(dict.fromkeys([*current, *new]))


###############################################################################
# SelectionResolver
###############################################################################


class SelectionResolver:
    """Resolves a completed selection gesture to element, sub path or point keys.

    Args:
        measurer: bounds provider (shared so its cache is reused).
        is_excluded: predicate returning True for hidden or locked element ids.
    """

    def __init__(self, measurer: Optional[PathMeasurer] = None, is_excluded: Optional[ExcludedPredicate] = None):
        self.measurer = measurer if measurer is not None else PathMeasurer()
        self.is_excluded = is_excluded

    def _selectable(self, element: VeElement) -> bool:
        return self.is_excluded is None or not self.is_excluded(element.id)

    def select_elements(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        elements: Sequence[VeElement],
        region: SelectionRegion,
        viewport: VeViewport = VeViewport(),
        current: Sequence[str] = (),
        merge: bool = False,
    ) -> List[str]:
        """
        Ids of all elements whose measured bounds intersect _region_.

        With _merge_ the result is unioned into _current_; otherwise it
        replaces it (an empty hit clears the selection).
        """
        strategy = strategy_for(region)
        element_map: Dict[str, VeElement] = {element.id: element for element in elements}
        hits: List[str] = []
        for element in elements:
            if not self._selectable(element):
                continue
            if element.type == "group":
                box = self.measurer.get_group_bounds(element, element_map, viewport, self.is_excluded)
            else:
                box = self.measurer.get_element_bounds(element, viewport)
            if box is not None and strategy.intersects_bounds(box, region):
                hits.append(element.id)

        logger.debug("Element selection hit %s element(s)", len(hits))
        return merge_selection(current, hits) if merge else hits

    def select_subpaths(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        elements: Sequence[VeElement],
        region: SelectionRegion,
        viewport: VeViewport = VeViewport(),
        current: Sequence[SubpathKey] = (),
        merge: bool = False,
    ) -> List[SubpathKey]:
        """(element id, sub path index) of every sub path whose bounds intersect _region_."""
        strategy = strategy_for(region)
        hits: List[SubpathKey] = []
        for element in elements:
            if not element.is_path or not self._selectable(element):
                continue
            stroke_width = element.data.stroke_width  # type: ignore[union-attr]
            for index, sub_path in enumerate(element.data.sub_paths):  # type: ignore[union-attr]
                box = self.measurer.measure_subpath_bounds(sub_path, stroke_width, viewport.zoom)
                if box is not None and strategy.intersects_bounds(box, region):
                    hits.append((element.id, index))
        return merge_selection(current, hits) if merge else hits

    def select_points(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        elements: Sequence[VeElement],
        region: SelectionRegion,
        current: Sequence[PointKey] = (),
        merge: bool = False,
    ) -> List[PointKey]:
        """(element id, command index, point index) of every editable point inside _region_."""
        hits: List[PointKey] = []
        for element in elements:
            if not element.is_path or not self._selectable(element):
                continue
            points = PathCommandProcessor.extract_editable_points(element.data.commands)  # type: ignore[union-attr]
            if region.is_lasso:
                inside = LassoSelectionStrategy.contains_points([p.position for p in points], region)
            else:
                inside = [RectangleSelectionStrategy.contains_point(p.position, region) for p in points]
            hits.extend((element.id, p.command_index, p.point_index) for p, ok in zip(points, inside) if ok)
        return merge_selection(current, hits) if merge else hits

    def resolve(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        mode: SelectionMode,
        elements: Sequence[VeElement],
        region: SelectionRegion,
        viewport: VeViewport = VeViewport(),
        current: Sequence[Hashable] = (),
        merge: bool = False,
    ) -> List[Hashable]:
        """Resolve _region_ at the granularity given by _mode_."""
        mode = SelectionMode(mode)
        if mode == SelectionMode.ELEMENTS:
            return self.select_elements(elements, region, viewport, current, merge)  # type: ignore
        if mode == SelectionMode.SUBPATHS:
            return self.select_subpaths(elements, region, viewport, current, merge)  # type: ignore
        return self.select_points(elements, region, current, merge)  # type: ignore
