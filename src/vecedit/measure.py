"""Bounding boxes of paths, sub paths and groups."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional, Sequence, Set, Tuple

import svgpathtools

from vecedit.geom import VeBox, VeViewport
from vecedit.path import PathCommand, VeElement
from vecedit.path_support import PathCommandProcessor

logger = logging.getLogger(__name__)

HiddenPredicate = Callable[[str], bool]


class PathMeasurer:
    """Measures geometric bounds and memoizes the results.

    The geometric box of a path is computed by svgpathtools from the path
    text, which takes the true extrema of cubic segments into account. The
    cache is keyed by (path text, stroke width, zoom) and only cleared
    explicitly via ``clear_cache``.
    """

    def __init__(self) -> None:
        self._cache: Dict[Tuple[str, float, float], Optional[VeBox]] = {}

    def clear_cache(self) -> None:
        """Drop all memoized measurements."""
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        """Number of memoized measurements."""
        return len(self._cache)

    @staticmethod
    def _geometric_bbox(text: str, commands: Sequence[PathCommand]) -> Optional[VeBox]:
        fallback = PathMeasurer.measure_commands_bounds(commands)
        try:
            path = svgpathtools.parse_path(text)
            if len(path) == 0:
                return fallback
            xmin, xmax, ymin, ymax = path.bbox()
        except (ValueError, IndexError, TypeError) as err:
            logger.warning("svgpathtools could not measure %r (%s); using point extents", text, err)
            return fallback
        box = VeBox(xmin=float(xmin), ymin=float(ymin), xmax=float(xmax), ymax=float(ymax))
        # M-only sub paths contribute their points but no svgpathtools segments
        anchors = VeBox.from_points(c.position.as_tuple() for c in commands if c.position is not None)
        return box.union(anchors) if anchors is not None else box

    def measure_path(
        self, sub_paths: Sequence[Sequence[PathCommand]], stroke_width: float, zoom: float = 1.0
    ) -> Optional[VeBox]:
        """
        Geometric bounds of all sub paths, expanded by half the stroke width.

        Commands with non-finite coordinates are ignored.

        Returns:
            Optional[VeBox]: the bounds, or None for a path without points
        """
        commands = PathCommandProcessor.normalize_path_commands(
            [command for sub_path in sub_paths for command in sub_path]
        )
        text = PathCommandProcessor.commands_to_string(commands)
        key = (text, float(stroke_width), float(zoom))
        if key in self._cache:
            return self._cache[key]

        box = self._geometric_bbox(text, commands) if commands else None
        if box is not None:
            box = box.expand(stroke_width / 2.0)
        self._cache[key] = box
        logger.debug("Measured %r -> %s", text, box)
        return box

    def measure_subpath_bounds(
        self, commands: Sequence[PathCommand], stroke_width: float = 1.0, zoom: float = 1.0
    ) -> Optional[VeBox]:
        """Geometric bounds of one sub path."""
        return self.measure_path([commands], stroke_width, zoom)

    @staticmethod
    def measure_commands_bounds(commands: Sequence[PathCommand]) -> Optional[VeBox]:
        """Box around every point including control points (no stroke)."""
        return VeBox.from_points(point.as_tuple() for command in commands for point in command.points)

    def accumulate_bounds(
        self, commands_list: Sequence[Sequence[PathCommand]], stroke_width: float = 1.0, zoom: float = 1.0
    ) -> Optional[VeBox]:
        """One box enclosing the bounds of every command set."""
        result: Optional[VeBox] = None
        for commands in commands_list:
            box = self.measure_subpath_bounds(commands, stroke_width, zoom)
            if box is None:
                continue
            result = box if result is None else result.union(box)
        return result

    @staticmethod
    def calculate_commands_bounds(
        commands: Sequence[PathCommand], stroke_width: float = 0.0, zoom: float = 1.0
    ) -> Optional[VeBox]:
        """Control hull box expanded by half the stroke width in screen-independent units."""
        box = PathMeasurer.measure_commands_bounds(commands)
        if box is None:
            return None
        return box.expand((stroke_width / 2.0) / zoom)

    def get_element_bounds(self, element: VeElement, viewport: Optional[VeViewport] = None) -> Optional[VeBox]:
        """Bounds of a path element; None for groups and empty paths."""
        if not element.is_path:
            return None
        zoom = viewport.zoom if viewport is not None else 1.0
        return self.measure_path(element.data.sub_paths, element.data.stroke_width, zoom)  # type: ignore[union-attr]

    def get_group_bounds(
        # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        group: VeElement,
        element_map: Mapping[str, VeElement],
        viewport: Optional[VeViewport] = None,
        is_hidden: Optional[HiddenPredicate] = None,
        visited: Optional[Set[str]] = None,
    ) -> Optional[VeBox]:
        """
        Union of the bounds of all visible descendants of _group_.

        _visited_ holds the ids on the current recursion path; a group that is
        already on it is skipped so cyclic groupings terminate.
        """
        if visited is None:
            visited = set()
        if group.id in visited:
            logger.debug("Group cycle detected at %s", group.id)
            return None

        visited.add(group.id)
        try:
            result: Optional[VeBox] = None
            for child_id in group.child_ids:
                child = element_map.get(child_id)
                if child is None or (is_hidden is not None and is_hidden(child_id)):
                    continue
                if child.type == "group":
                    box = self.get_group_bounds(child, element_map, viewport, is_hidden, visited)
                else:
                    box = self.get_element_bounds(child, viewport)
                if box is not None:
                    result = box if result is None else result.union(box)
            return result
        finally:
            visited.discard(group.id)
