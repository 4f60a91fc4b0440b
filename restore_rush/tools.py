from enum import IntEnum

import numpy as np


class ToolKind(IntEnum):
    BRUSH = 0
    SPRAY = 1
    SCRAPER = 2


class DirtKind(IntEnum):
    DUST = 0
    RUST = 1
    PAINT = 2


# Rows: ToolKind, columns: DirtKind.
EFFECTIVENESS = np.array(
    [
        [1.8, 0.22, 0.55],  # Brush
        [0.22, 0.55, 1.7],  # Spray
        [0.55, 1.9, 0.22],  # Scraper
    ],
    dtype=np.float64,
)

BEST_TOOL_THRESHOLD = 1.5
CORRECT_STROKE_THRESHOLD = 1.0

# (radius in cells, cleaning power per second)
TOOL_SETTINGS = {
    ToolKind.BRUSH: (7, 3.6),
    ToolKind.SPRAY: (10, 2.8),
    ToolKind.SCRAPER: (5, 4.8),
}

BRUSH_UPGRADE_STEP = 0.05

TOOL_HINTS = {
    ToolKind.BRUSH: "Brush: strongest on DUST",
    ToolKind.SPRAY: "Spray: strongest on PAINT",
    ToolKind.SCRAPER: "Scraper: strongest on RUST",
}


def effectiveness(tool, dirt_kind):
    return float(EFFECTIVENESS[int(tool), int(dirt_kind)])


def best_tool(dirt_kind):
    column = EFFECTIVENESS[:, int(dirt_kind)]
    return ToolKind(int(np.argmax(column >= BEST_TOOL_THRESHOLD)))


def is_correct_stroke(tool, dirt_kind):
    return effectiveness(tool, dirt_kind) >= CORRECT_STROKE_THRESHOLD


def brush_power_multiplier(upgrade_level):
    return 1.0 + max(0, int(upgrade_level)) * BRUSH_UPGRADE_STEP


def tool_settings(tool, power_multiplier=1.0):
    """Returns (radius_cells, power_per_second). Only the brush scales with upgrades."""
    radius, power = TOOL_SETTINGS[ToolKind(tool)]
    if tool == ToolKind.BRUSH:
        power *= power_multiplier
    return radius, power


def next_tool(tool):
    return ToolKind((int(tool) + 1) % len(ToolKind))


def tool_label(tool):
    return ToolKind(tool).name.capitalize()


def dirt_label(dirt_kind):
    return DirtKind(dirt_kind).name.capitalize()
