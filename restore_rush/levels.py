from dataclasses import dataclass

from .shapes import ShapeStyle

MIN_TARGET_CLEAN_FRACTION = 0.2
MAX_TARGET_CLEAN_FRACTION = 0.99


@dataclass(frozen=True)
class LevelConfig:
    name: str
    duration_seconds: float
    target_clean_fraction: float
    shape_style: ShapeStyle


LEVELS = (
    LevelConfig("Level 1 - Old Jug", 35.0, 0.78, ShapeStyle.JUG),
    LevelConfig("Level 2 - Dinner Plate", 33.0, 0.80, ShapeStyle.PLATE),
    LevelConfig("Level 3 - Vintage Vase", 32.0, 0.82, ShapeStyle.VASE),
    LevelConfig("Level 4 - Duck Toy", 30.0, 0.83, ShapeStyle.TOY_DUCK),
    LevelConfig("Level 5 - Robot Head", 30.0, 0.85, ShapeStyle.ROBOT_HEAD),
)


def clamp_level_index(level_index, catalog=LEVELS):
    return min(max(int(level_index), 0), max(0, len(catalog) - 1))


def get_level(level_index, catalog=LEVELS):
    return catalog[clamp_level_index(level_index, catalog)]


def clamp_target(target):
    return min(max(float(target), MIN_TARGET_CLEAN_FRACTION), MAX_TARGET_CLEAN_FRACTION)
