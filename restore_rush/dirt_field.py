"""
Per-cell cleaning simulation.

A DirtField owns three (H, W) arrays: the object mask, the dirt kind of each
cell and its remaining dirt in [0, 1]. Cell (x, y) lives at row y, column x;
its flat index is y * width + x.
"""

import logging

import numpy as np

from .noise import noise_grid
from .shapes import build_object_mask
from .tools import EFFECTIVENESS, DirtKind, tool_settings

logger = logging.getLogger(__name__)

MAX_COMBO_BOOST_STEPS = 10
COMBO_BOOST_PER_STEP = 0.05
MIN_FALLOFF = 0.2

DIRT_NOISE_SCALE = 0.09
DIRT_NOISE_LEVEL_OFFSET = (31, 19)
MAX_THRESHOLD_LEVEL = 4


def dirt_thresholds(level_index):
    """(rust_threshold, paint_threshold); both shrink a little on later levels."""
    t = min(max(level_index / MAX_THRESHOLD_LEVEL, 0.0), 1.0)
    rust = 0.36 + (0.30 - 0.36) * t
    paint = 0.72 + (0.64 - 0.72) * t
    return rust, paint


def classify_dirt(noise, level_index):
    rust, paint = dirt_thresholds(level_index)
    noise = np.asarray(noise)
    kinds = np.full(noise.shape, DirtKind.PAINT, dtype=np.uint8)
    kinds[noise < paint] = DirtKind.RUST
    kinds[noise < rust] = DirtKind.DUST
    return kinds


def combo_boost(combo_streak):
    steps = min(max(combo_streak - 1, 0), MAX_COMBO_BOOST_STEPS)
    return 1.0 + steps * COMBO_BOOST_PER_STEP


class DirtField:
    def __init__(self, object_mask, dirt_kinds, dirt_values=None):
        self.object_mask = np.array(object_mask, dtype=bool)
        if self.object_mask.ndim != 2:
            raise ValueError("object_mask must be a 2D array")

        self.dirt_kinds = np.array(dirt_kinds, dtype=np.uint8).reshape(self.object_mask.shape)
        self.dirt_kinds[~self.object_mask] = DirtKind.DUST

        if dirt_values is None:
            self.dirt_values = self.object_mask.astype(np.float64)
        else:
            self.dirt_values = np.clip(
                np.array(dirt_values, dtype=np.float64).reshape(self.object_mask.shape), 0.0, 1.0
            )
        self.dirt_values[~self.object_mask] = 0.0

        self.max_dirt = float(np.count_nonzero(self.object_mask))
        self.total_dirt = float(self.dirt_values.sum())

        self.needs_redraw = False
        self._dirty_region = None

    @classmethod
    def create(cls, style, width, height, level_index=0):
        """Builds a fully dirty field for an object style on a W x H grid."""
        width = max(32, int(width))
        height = max(32, int(height))
        mask = build_object_mask(style, width, height)
        offset_x, offset_y = (o * level_index for o in DIRT_NOISE_LEVEL_OFFSET)
        noise = noise_grid(width, height, offset_x, offset_y, DIRT_NOISE_SCALE)
        field = cls(mask, classify_dirt(noise, level_index))
        logger.debug(
            "Dirt field %dx%d for %s: %d object cells", width, height, style, int(field.max_dirt)
        )
        return field

    @property
    def width(self):
        return self.object_mask.shape[1]

    @property
    def height(self):
        return self.object_mask.shape[0]

    @property
    def clean_fraction(self):
        if self.max_dirt <= 0:
            return 0.0
        return 1.0 - self.total_dirt / self.max_dirt

    def cell_index(self, x, y):
        return y * self.width + x

    def in_bounds(self, x, y):
        return 0 <= x < self.width and 0 <= y < self.height

    def is_object(self, x, y):
        return self.in_bounds(x, y) and bool(self.object_mask[y, x])

    def dirt_at(self, x, y):
        if not self.in_bounds(x, y):
            return 0.0
        return float(self.dirt_values[y, x])

    def kind_at(self, x, y):
        if not self.in_bounds(x, y):
            return None
        return DirtKind(int(self.dirt_kinds[y, x]))

    def kind_counts(self):
        kinds = self.dirt_kinds[self.object_mask]
        return {kind: int(np.count_nonzero(kinds == kind)) for kind in DirtKind}

    def apply_stroke(self, cx, cy, tool, dt, combo_streak=0, power_multiplier=1.0):
        """
        Cleans a disc of cells around (cx, cy) for one tick.
        Returns True if any cell lost dirt.
        """
        if not self.in_bounds(cx, cy):
            return False

        radius, base_power = tool_settings(tool, power_multiplier)
        power = base_power * combo_boost(combo_streak) * dt
        if power <= 0:
            return False

        x0, x1 = max(0, cx - radius), min(self.width - 1, cx + radius)
        y0, y1 = max(0, cy - radius), min(self.height - 1, cy + radius)
        window = (slice(y0, y1 + 1), slice(x0, x1 + 1))

        ys, xs = np.ogrid[y0:y1 + 1, x0:x1 + 1]
        dist_sq = (xs - cx) ** 2 + (ys - cy) ** 2

        old = self.dirt_values[window]
        candidates = (dist_sq <= radius * radius) & self.object_mask[window] & (old > 0)
        if not candidates.any():
            return False

        falloff = np.maximum(MIN_FALLOFF, 1.0 - np.sqrt(dist_sq) / radius)
        eff = EFFECTIVENESS[int(tool)][self.dirt_kinds[window]]
        new = np.maximum(0.0, old - power * eff * falloff)

        changed = candidates & (new < old)
        if not changed.any():
            return False

        self.total_dirt -= float((old - new)[changed].sum())
        old[changed] = new[changed]
        self.total_dirt = min(max(self.total_dirt, 0.0), self.max_dirt)

        rows, cols = np.nonzero(changed)
        self._mark_dirty(x0 + int(cols.min()), y0 + int(rows.min()), x0 + int(cols.max()), y0 + int(rows.max()))
        return True

    def _mark_dirty(self, min_x, min_y, max_x, max_y):
        if self._dirty_region is None:
            self._dirty_region = (min_x, min_y, max_x, max_y)
        else:
            a, b, c, d = self._dirty_region
            self._dirty_region = (min(a, min_x), min(b, min_y), max(c, max_x), max(d, max_y))
        self.needs_redraw = True

    def consume_dirty_region(self):
        """Returns the inclusive (min_x, min_y, max_x, max_y) changed since last call, or None."""
        region = self._dirty_region
        self._dirty_region = None
        self.needs_redraw = False
        return region

    def recompute_total(self):
        return float(self.dirt_values[self.object_mask].sum())

