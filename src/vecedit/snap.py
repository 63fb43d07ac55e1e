"""Object snapping: snap candidate extraction and nearest-candidate lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
from scipy.spatial import KDTree

from vecedit.bezier import BezierCurve
from vecedit.common import SnapKind
from vecedit.config import DEFAULT_SETTINGS, EditorSettings
from vecedit.geom import GeomMath, VeBox, VeViewport
from vecedit.measure import PathMeasurer
from vecedit.path import PathCommand, VeElement, VePoint
from vecedit.path_support import PathCommandProcessor

logger = logging.getLogger(__name__)

BoundsFn = Callable[[VeElement], Optional[VeBox]]
HiddenPredicate = Callable[[str], bool]

# Decimals used to detect duplicate intersection candidates
_INTERSECTION_KEY_DECIMALS: int = 6


###############################################################################
# SnapPoint / SnapOptions
###############################################################################


@dataclass(frozen=True)
class SnapPoint:
    """A candidate position a drag can lock onto."""

    position: VePoint
    kind: SnapKind
    element_id: Optional[str] = None
    command_index: Optional[int] = None
    point_index: Optional[int] = None


@dataclass(frozen=True)
class SnapOptions:
    """Object snap switches. _threshold_ is given in screen pixels."""

    enabled: bool = False
    threshold: float = DEFAULT_SETTINGS.snap_threshold
    snap_to_endpoints: bool = True
    snap_to_controls: bool = True
    snap_to_midpoints: bool = True
    snap_to_edges: bool = True
    snap_to_bbox_corners: bool = True
    snap_to_bbox_center: bool = True
    snap_to_intersections: bool = True

    @classmethod
    def kind_toggles(cls) -> Set[str]:
        """Names of the per-kind switches."""
        return {f.name for f in fields(cls) if f.name.startswith("snap_to_")}


def screen_distance(p1: VePoint, p2: VePoint, zoom: float) -> float:
    """Distance between two path-space points measured in screen pixels."""
    return p1.distance_to(p2) * zoom


###############################################################################
# SnapPointExtractor
###############################################################################


class SnapPointExtractor:
    """Static extraction of snap candidates from path elements.

    Command indices refer to the flat command list of the element.
    """

    @staticmethod
    def _commands(element: VeElement) -> List[PathCommand]:
        if not element.is_path:
            return []
        return element.data.commands  # type: ignore[union-attr]

    @staticmethod
    def extract_endpoints(element: VeElement) -> List[SnapPoint]:
        """Positions of every M, L and C command."""
        return [
            SnapPoint(command.position, SnapKind.ENDPOINT, element.id, index, 2 if command.type == "C" else 0)
            for index, command in enumerate(SnapPointExtractor._commands(element))
            if command.type != "Z"
        ]

    @staticmethod
    def extract_control_points(element: VeElement) -> List[SnapPoint]:
        """Both handles of every C command."""
        result: List[SnapPoint] = []
        for index, command in enumerate(SnapPointExtractor._commands(element)):
            if command.type != "C":
                continue
            for point_index, control in enumerate((command.control_point1, command.control_point2)):
                result.append(SnapPoint(control, SnapKind.CONTROL, element.id, index, point_index))  # type: ignore
        return result

    @staticmethod
    def extract_midpoints(element: VeElement) -> List[SnapPoint]:
        """
        Midpoints of all segments.

        Lines use the arithmetic midpoint, curves the point at t = 0.5, and a
        closing Z the midpoint between the current point and the sub path start.
        """
        result: List[SnapPoint] = []
        for segment in PathCommandProcessor.iter_segments(SnapPointExtractor._commands(element)):
            command = segment.command
            if command.type == "C":
                x, y = BezierCurve.evaluate_cubic(
                    [
                        segment.start.as_tuple(),
                        command.control_point1.as_tuple(),  # type: ignore[union-attr]
                        command.control_point2.as_tuple(),  # type: ignore[union-attr]
                        segment.end.as_tuple(),
                    ],
                    0.5,
                )
                mid = VePoint(x, y)
            else:
                mid = VePoint((segment.start.x + segment.end.x) / 2, (segment.start.y + segment.end.y) / 2)
            result.append(SnapPoint(mid, SnapKind.MIDPOINT, element.id, segment.command_index))
        return result

    @staticmethod
    def extract_bbox_points(
        element: VeElement,
        bounds: VeBox,
        include_corners: bool = True,
        include_center: bool = True,
        include_midpoints: bool = True,
    ) -> List[SnapPoint]:
        """Corners, edge midpoints and center of _bounds_."""
        result: List[SnapPoint] = []
        if include_corners:
            result.extend(SnapPoint(VePoint(*c), SnapKind.BBOX_CORNER, element.id) for c in bounds.corners)
        if include_midpoints:
            result.extend(SnapPoint(VePoint(*m), SnapKind.MIDPOINT, element.id) for m in bounds.edge_midpoints)
        if include_center:
            result.append(SnapPoint(VePoint(*bounds.centroid), SnapKind.BBOX_CENTER, element.id))
        return result

    @staticmethod
    def extract_line_segments(element: VeElement) -> List[Tuple[VePoint, VePoint]]:
        """Straight segments of an element: L commands and Z closures."""
        return [
            (segment.start, segment.end)
            for segment in PathCommandProcessor.iter_segments(SnapPointExtractor._commands(element))
            if segment.command.type in ("L", "Z")
        ]

    @staticmethod
    def find_intersections(elements: Sequence[VeElement]) -> List[SnapPoint]:
        """
        Intersections between straight segments of different elements.

        Curves are not intersected. Duplicates (same position at 6 decimals)
        are reported once.
        """
        result: List[SnapPoint] = []
        seen: Set[Tuple[float, float]] = set()
        segments = [SnapPointExtractor.extract_line_segments(element) for element in elements]
        for i, element in enumerate(elements):
            for j in range(i + 1, len(elements)):
                for start1, end1 in segments[i]:
                    for start2, end2 in segments[j]:
                        hit = GeomMath.line_segment_intersection(
                            start1.as_tuple(), end1.as_tuple(), start2.as_tuple(), end2.as_tuple()
                        )
                        if hit is None:
                            continue
                        key = (round(hit[0], _INTERSECTION_KEY_DECIMALS), round(hit[1], _INTERSECTION_KEY_DECIMALS))
                        if key in seen:
                            continue
                        seen.add(key)
                        result.append(SnapPoint(VePoint(*hit), SnapKind.INTERSECTION, element.id))
        return result

    @staticmethod
    def find_edge_snap_point(
        position: VePoint, element: VeElement, threshold: float, zoom: float, steps: int = 10
    ) -> Optional[SnapPoint]:
        """
        Closest point on any segment of _element_ within _threshold_ screen pixels.

        Curves are approximated by _steps_ chords.
        """
        best: Optional[SnapPoint] = None
        best_distance = threshold
        target = position.as_tuple()

        def _consider(start: Tuple[float, float], end: Tuple[float, float], command_index: int) -> None:
            nonlocal best, best_distance
            closest = VePoint(*GeomMath.closest_point_on_segment(target, start, end))
            dist = screen_distance(position, closest, zoom)
            if dist < best_distance:
                best_distance = dist
                best = SnapPoint(closest, SnapKind.EDGE, element.id, command_index)

        for segment in PathCommandProcessor.iter_segments(SnapPointExtractor._commands(element)):
            command = segment.command
            if command.type == "C":
                samples = BezierCurve.polygonize_cubic_curve(
                    [
                        segment.start.as_tuple(),
                        command.control_point1.as_tuple(),  # type: ignore[union-attr]
                        command.control_point2.as_tuple(),  # type: ignore[union-attr]
                        segment.end.as_tuple(),
                    ],
                    steps,
                )
                for k in range(steps):
                    _consider(tuple(samples[k]), tuple(samples[k + 1]), segment.command_index)  # type: ignore[arg-type]
            elif command.type == "L":
                _consider(segment.start.as_tuple(), segment.end.as_tuple(), segment.command_index)
        return best

    @staticmethod
    def get_all_snap_points(
        elements: Sequence[VeElement], bounds_fn: BoundsFn, options: SnapOptions = SnapOptions()
    ) -> List[SnapPoint]:
        """All static snap candidates of _elements_ (edge snap is computed per query)."""
        result: List[SnapPoint] = []
        for element in elements:
            if options.snap_to_endpoints:
                result.extend(SnapPointExtractor.extract_endpoints(element))
            if options.snap_to_controls:
                result.extend(SnapPointExtractor.extract_control_points(element))
            if options.snap_to_midpoints:
                result.extend(SnapPointExtractor.extract_midpoints(element))
            if options.snap_to_bbox_corners or options.snap_to_bbox_center or options.snap_to_midpoints:
                bounds = bounds_fn(element)
                if bounds is not None:
                    result.extend(
                        SnapPointExtractor.extract_bbox_points(
                            element,
                            bounds,
                            include_corners=options.snap_to_bbox_corners,
                            include_center=options.snap_to_bbox_center,
                            include_midpoints=options.snap_to_midpoints,
                        )
                    )
        if options.snap_to_intersections and len(elements) > 1:
            result.extend(SnapPointExtractor.find_intersections(elements))
        return result


###############################################################################
# ObjectSnapper
###############################################################################


class ObjectSnapper:
    """Snaps drag positions onto nearby geometry of other elements.

    The candidate set is cached by the sorted ids of the contributing
    elements. Geometry edits do not change that key, so callers invalidate
    the cache explicitly after editing.
    """

    def __init__(
        self,
        options: SnapOptions = SnapOptions(),
        measurer: Optional[PathMeasurer] = None,
        settings: EditorSettings = DEFAULT_SETTINGS,
    ):
        self._options = options
        self._measurer = measurer if measurer is not None else PathMeasurer()
        self.settings = settings
        self._cache_key: Optional[str] = None
        self._cached_points: Optional[List[SnapPoint]] = None
        self._tree: Optional[KDTree] = None
        self.current_snap_point: Optional[SnapPoint] = None

    @property
    def options(self) -> SnapOptions:
        """Current snap options."""
        return self._options

    def update_options(self, **changes) -> SnapOptions:
        """Replace option fields; changing any per-kind toggle invalidates the cache."""
        self._options = replace(self._options, **changes)
        if SnapOptions.kind_toggles() & set(changes):
            self.invalidate_cache()
        return self._options

    def invalidate_cache(self) -> None:
        """Forget cached candidates."""
        self._cache_key = None
        self._cached_points = None
        self._tree = None

    @staticmethod
    def _relevant(
        elements: Sequence[VeElement], exclude_ids: Iterable[str], is_hidden: Optional[HiddenPredicate]
    ) -> List[VeElement]:
        excluded = set(exclude_ids)
        return [
            element
            for element in elements
            if element.id not in excluded
            and element.is_path
            and (is_hidden is None or not is_hidden(element.id))
        ]

    def find_available_snap_points(
        self,
        elements: Sequence[VeElement],
        viewport: VeViewport = VeViewport(),
        exclude_ids: Iterable[str] = (),
        is_hidden: Optional[HiddenPredicate] = None,
    ) -> List[SnapPoint]:
        """Static candidates of all visible, non-excluded path elements (cached)."""
        relevant = self._relevant(elements, exclude_ids, is_hidden)
        cache_key = "|".join(sorted(element.id for element in relevant))
        if self._cached_points is not None and self._cache_key == cache_key:
            return self._cached_points

        def _bounds(element: VeElement) -> Optional[VeBox]:
            return self._measurer.get_element_bounds(element, viewport)

        points = [
            p
            for p in SnapPointExtractor.get_all_snap_points(relevant, _bounds, self._options)
            if p.position.is_finite()
        ]
        self._cache_key = cache_key
        self._cached_points = points
        self._tree = KDTree(np.array([p.position.as_tuple() for p in points])) if points else None
        logger.debug("Snap cache rebuilt for %r with %s candidate(s)", cache_key, len(points))
        return points

    def apply_object_snap(
        self,
        point: VePoint,
        elements: Sequence[VeElement],
        viewport: VeViewport = VeViewport(),
        exclude_ids: Iterable[str] = (),
        is_hidden: Optional[HiddenPredicate] = None,
    ) -> VePoint:
        """
        Snap _point_ onto the closest candidate within the snap threshold.

        Endpoints, controls, midpoints, bounding box features and intersections
        take priority; edge snapping is only tried when none of them is close
        enough. Returns _point_ unchanged when snapping is disabled or nothing
        is in range.
        """
        if not self._options.enabled:
            return point

        exclude_ids = list(exclude_ids)
        threshold = viewport.screen_to_path_distance(self._options.threshold)
        candidates = self.find_available_snap_points(elements, viewport, exclude_ids, is_hidden)

        closest: Optional[SnapPoint] = None
        if self._tree is not None:
            distance, index = self._tree.query(point.as_tuple(), k=1)
            if distance < threshold:
                closest = candidates[int(index)]

        if closest is None and self._options.snap_to_edges:
            best_distance = float("inf")
            for element in self._relevant(elements, exclude_ids, is_hidden):
                edge = SnapPointExtractor.find_edge_snap_point(
                    point, element, self._options.threshold, viewport.zoom, self.settings.edge_snap_steps
                )
                if edge is None:
                    continue
                dist = screen_distance(point, edge.position, viewport.zoom)
                if dist < best_distance:
                    best_distance = dist
                    closest = edge

        self.current_snap_point = closest
        return closest.position if closest is not None else point
