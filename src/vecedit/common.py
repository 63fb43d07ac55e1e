"""Central module containing constants and type definitions for path editing."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Literal

###############################################################################
# Types
###############################################################################


PathCmds = Literal[  # Type-Definition for path commands used in PathCommand
    # MoveTo (2) - start a new subpath and move the current point to (x,y)
    "M",
    # LineTo (2) - draw a straight line from the current point to (x,y)
    "L",
    # Cubic Bezier To (6) - draw a cubic Bezier curve with two control points and an endpoint (x,y)
    "C",
    # ClosePath (0) - close subpath by drawing a line from the current point to start point
    "Z",
]


###############################################################################
# Enums and Consts
###############################################################################


# Number of decimals kept for every coordinate written back into a path
PATH_DECIMAL_PRECISION: int = 2


class AlignmentType(str, Enum):
    """Relationship between two control handles sharing an anchor."""

    INDEPENDENT = "independent"
    ALIGNED = "aligned"
    MIRRORED = "mirrored"


class SnapKind(str, Enum):
    """Kinds of snap candidates."""

    ENDPOINT = "endpoint"
    CONTROL = "control"
    MIDPOINT = "midpoint"
    BBOX_CORNER = "bbox-corner"
    BBOX_CENTER = "bbox-center"
    INTERSECTION = "intersection"
    EDGE = "edge"


class SelectionMode(str, Enum):
    """Granularity of a selection gesture."""

    ELEMENTS = "elements"
    SUBPATHS = "subpaths"
    POINTS = "points"


###############################################################################
# Functions
###############################################################################


def format_to_precision(value: float, precision: int = PATH_DECIMAL_PRECISION) -> float:
    """Round _value_ to _precision_ decimals.

    Rounding goes through the fixed-point string representation so the
    result equals what the path serializer writes out.

    Args:
        value (float): the value to round
        precision (int, optional): number of decimals. Defaults to PATH_DECIMAL_PRECISION.

    Returns:
        float: the rounded value
    """
    rounded = float(f"{value:.{precision}f}")
    if rounded == 0.0:
        return 0.0  # no negative zero
    return rounded


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a stream handler to the package logger.

    The library itself never configures handlers; applications and scripts
    may call this once at start-up.
    """
    package_logger = logging.getLogger("vecedit")
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(level)
