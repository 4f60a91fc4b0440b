"""
One timed restore round.

The caller drives the round with `tick(dt, pointer)` once per frame. Stroke
starts (pointer press edges) score combos and penalties; every held tick
cleans the field. The round ends exactly once, as won or lost.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import GRID_SIZE
from .dirt_field import DirtField
from .levels import LEVELS, clamp_level_index, clamp_target
from .tools import DirtKind, ToolKind, best_tool, effectiveness, is_correct_stroke, next_tool

logger = logging.getLogger(__name__)

WRONG_TOOL_TIME_PENALTY = 0.8
WRONG_TOOL_HINT_SECONDS = 1.15
STROKE_START_MIN_DIRT = 0.03
MAX_COMBO_STREAK = 20
PERMILLE_SCALE = 1000

THREE_STAR_MARGIN = 0.15
TWO_STAR_MARGIN = 0.07
COMBO_BONUS_MIN_COMBO = 3
COMBO_BONUS_COINS_PER_STEP = 8
BASE_COIN_REWARD = 40
COINS_PER_LEVEL = 12
COINS_PER_STAR = 20


def calculate_stars(clean_fraction, target):
    if clean_fraction < target:
        return 0
    # Bands are compared in whole permille; thresholds above 1.0 stay unreachable
    clean = to_permille(clean_fraction)
    if clean >= round((target + THREE_STAR_MARGIN) * PERMILLE_SCALE):
        return 3
    if clean >= round((target + TWO_STAR_MARGIN) * PERMILLE_SCALE):
        return 2
    return 1


def calculate_combo_bonus_coins(best_combo):
    if best_combo < COMBO_BONUS_MIN_COMBO:
        return 0
    return (best_combo - 2) * COMBO_BONUS_COINS_PER_STEP


def calculate_coin_reward(level_index, stars, combo_bonus_coins=0):
    if stars <= 0:
        return 0
    return BASE_COIN_REWARD + level_index * COINS_PER_LEVEL + stars * COINS_PER_STAR + combo_bonus_coins


def to_permille(fraction):
    return min(max(int(round(fraction * PERMILLE_SCALE)), 0), PERMILLE_SCALE)


@dataclass(frozen=True)
class RoundResult:
    level_index: int
    level_name: str
    won: bool
    stars: int
    coin_reward: int
    combo_bonus_coins: int
    strokes: int
    clean_fraction: float
    duration_seconds: float
    best_combo: int


@dataclass(frozen=True)
class CellHint:
    dirt_kind: DirtKind
    best_tool: ToolKind
    multiplier: float
    correct: bool


class RoundSession:
    def __init__(self, progress, level_index=0, grid_width=GRID_SIZE, grid_height=GRID_SIZE,
                 catalog=LEVELS, field=None):
        self.progress = progress
        self.level_index = clamp_level_index(level_index, catalog)
        self.level = catalog[self.level_index]
        self.duration_seconds = float(self.level.duration_seconds)
        self.target_clean_fraction = clamp_target(self.level.target_clean_fraction)
        self.power_multiplier = progress.brush_power_multiplier

        if field is None:
            field = DirtField.create(self.level.shape_style, grid_width, grid_height, self.level_index)
        self.field = field

        self.time_remaining = self.duration_seconds
        self.elapsed_seconds = 0.0
        self.selected_tool = ToolKind.BRUSH
        self.stroke_count = 0
        self.wrong_stroke_count = 0
        self.combo_streak = 0
        self.best_combo = 0
        self.wrong_tool_hint_timer = 0.0
        self.ended = False
        self.won = False
        self.result: Optional[RoundResult] = None
        self._pointer_was_down = False

        logger.info(
            "Round start: %s (%dx%d grid, %d object cells, target %.0f%%, %.0fs)",
            self.level.name, self.field.width, self.field.height, int(self.field.max_dirt),
            self.target_clean_fraction * 100, self.duration_seconds,
        )

    @property
    def clean_fraction(self):
        return self.field.clean_fraction

    @property
    def clean_permille(self):
        return to_permille(self.clean_fraction)

    @property
    def target_permille(self):
        return to_permille(self.target_clean_fraction)

    @property
    def wrong_tool_hint_active(self):
        return self.wrong_tool_hint_timer > 0

    def select_tool(self, tool):
        self.selected_tool = ToolKind(tool)

    def cycle_tool(self):
        self.selected_tool = next_tool(self.selected_tool)
        return self.selected_tool

    def describe_cell(self, cell):
        """What the pointer is over: None for background or nearly clean cells."""
        if cell is None:
            return None
        x, y = cell
        if not self.field.is_object(x, y) or self.field.dirt_at(x, y) <= STROKE_START_MIN_DIRT:
            return None
        kind = self.field.kind_at(x, y)
        multiplier = effectiveness(self.selected_tool, kind)
        return CellHint(kind, best_tool(kind), multiplier, multiplier >= 1.0)

    def tick(self, dt, pointer=None):
        """Advances the round by dt seconds. Returns True once the round has ended."""
        if self.ended:
            return True

        dt = max(0.0, float(dt))
        self.elapsed_seconds += dt
        if self.wrong_tool_hint_timer > 0:
            self.wrong_tool_hint_timer -= dt

        self._handle_pointer(dt, pointer)

        if self.clean_fraction >= self.target_clean_fraction:
            self._end_round(True)
            return True

        self.time_remaining -= dt
        if self.time_remaining <= 0:
            self.time_remaining = 0.0
            self._end_round(False)
            return True

        return False

    def _handle_pointer(self, dt, pointer):
        if pointer is None:
            self._pointer_was_down = False
            return

        if pointer.inside and (pointer.just_pressed or (pointer.is_down and not self._pointer_was_down)):
            self._start_stroke(pointer.cell)

        if pointer.is_down and pointer.inside:
            cx, cy = pointer.cell
            self.field.apply_stroke(cx, cy, self.selected_tool, dt, self.combo_streak, self.power_multiplier)

        self._pointer_was_down = pointer.is_down

    def _start_stroke(self, cell):
        x, y = cell
        if not self.field.is_object(x, y) or self.field.dirt_at(x, y) <= STROKE_START_MIN_DIRT:
            return

        self.stroke_count += 1
        if is_correct_stroke(self.selected_tool, self.field.kind_at(x, y)):
            self.combo_streak = min(self.combo_streak + 1, MAX_COMBO_STREAK)
            self.best_combo = max(self.best_combo, self.combo_streak)
            return

        # sfx: wrong_tool_buzz
        self.wrong_stroke_count += 1
        self.combo_streak = 0
        self.time_remaining = max(0.0, self.time_remaining - WRONG_TOOL_TIME_PENALTY)
        self.wrong_tool_hint_timer = WRONG_TOOL_HINT_SECONDS

    def _end_round(self, won):
        if self.ended:
            return

        self.ended = True
        self.won = won
        clean_fraction = self.clean_fraction
        stars = coin_reward = combo_bonus = 0

        if won:
            stars = calculate_stars(clean_fraction, self.target_clean_fraction)
            combo_bonus = calculate_combo_bonus_coins(self.best_combo)
            coin_reward = calculate_coin_reward(self.level_index, stars, combo_bonus)
            self.progress.update_best_stars(self.level_index, stars)
            self.progress.add_coins(coin_reward)
            self.progress.unlock_level(self.level_index + 1)

        self.result = RoundResult(
            level_index=self.level_index,
            level_name=self.level.name,
            won=won,
            stars=stars,
            coin_reward=coin_reward,
            combo_bonus_coins=combo_bonus,
            strokes=self.stroke_count,
            clean_fraction=clean_fraction,
            duration_seconds=self.elapsed_seconds,
            best_combo=self.best_combo,
        )
        self.progress.record_result(self.result)
        if won:
            self.progress.save()

        logger.info(
            "Round %s: %s, %.1f%% clean, %d stars, +%d coins, best combo %d",
            "won" if won else "lost", self.level.name, clean_fraction * 100, stars, coin_reward,
            self.best_combo,
        )
