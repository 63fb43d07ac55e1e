"""Path geometry, handle alignment, transforms, curve authoring and spatial queries of a vector editor."""

from vecedit.common import AlignmentType, SelectionMode, SnapKind, configure_logging
from vecedit.config import DEFAULT_SETTINGS, EditorSettings
from vecedit.path import ControlPoint, PathCommand, VeElement, VePathData, VePoint

__all__ = [
    "AlignmentType",
    "ControlPoint",
    "DEFAULT_SETTINGS",
    "EditorSettings",
    "PathCommand",
    "SelectionMode",
    "SnapKind",
    "VeElement",
    "VePathData",
    "VePoint",
    "configure_logging",
]
