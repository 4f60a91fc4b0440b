"""Restore Rush: clean a dirty object with the right tools before time runs out."""

from .dirt_field import DirtField
from .levels import LEVELS, LevelConfig, get_level
from .pointer import PointerSample, SurfaceMapping
from .progress import ProgressStore
from .session import RoundResult, RoundSession
from .shapes import ShapeStyle, build_object_mask, is_inside_shape
from .tools import DirtKind, ToolKind, effectiveness

__all__ = [
    "DirtField",
    "DirtKind",
    "LEVELS",
    "LevelConfig",
    "PointerSample",
    "ProgressStore",
    "RoundResult",
    "RoundSession",
    "ShapeStyle",
    "SurfaceMapping",
    "ToolKind",
    "build_object_mask",
    "effectiveness",
    "get_level",
    "is_inside_shape",
]
