"""
Player progress: unlocked levels, coins, brush upgrades and best stars per level.
A ProgressStore is created or loaded explicitly and handed to each round.
"""

import json
import logging
import os

from .levels import LEVELS
from .tools import brush_power_multiplier

logger = logging.getLogger(__name__)

MAX_STARS = 3
MAX_BRUSH_UPGRADE_LEVEL = 10
SAVE_VERSION = 1


class ProgressStore:
    def __init__(self, path=None, level_count=len(LEVELS)):
        self.path = path
        self.level_count = max(1, int(level_count))
        self.unlocked_level = 0
        self.current_level = 0
        self.coins = 0
        self.brush_upgrade_level = 0
        self.level_stars = {}
        self.last_result = None

    def _clamp_level(self, level_index):
        return min(max(int(level_index), 0), self.level_count - 1)

    @property
    def brush_power_multiplier(self):
        return brush_power_multiplier(self.brush_upgrade_level)

    def best_stars(self, level_index):
        return self.level_stars.get(self._clamp_level(level_index), 0)

    def add_coins(self, amount):
        self.coins = max(0, self.coins + int(amount))

    def unlock_level(self, level_index):
        level_index = self._clamp_level(level_index)
        if level_index <= self.unlocked_level:
            return False
        self.unlocked_level = level_index
        logger.info("Unlocked level %d", level_index + 1)
        return True

    def update_best_stars(self, level_index, stars):
        level_index = self._clamp_level(level_index)
        stars = min(max(int(stars), 0), MAX_STARS)
        if stars <= self.best_stars(level_index):
            return False
        self.level_stars[level_index] = stars
        return True

    def set_current_level(self, level_index):
        self.current_level = min(self._clamp_level(level_index), self.unlocked_level)

    def set_brush_upgrade_level(self, level):
        self.brush_upgrade_level = min(max(int(level), 0), MAX_BRUSH_UPGRADE_LEVEL)

    def record_result(self, result):
        self.last_result = result

    def total_stars(self):
        return sum(self.level_stars.values())

    # --- Persistence ---

    def to_dict(self):
        return {
            "version": SAVE_VERSION,
            "unlocked_level": self.unlocked_level,
            "current_level": self.current_level,
            "coins": self.coins,
            "brush_upgrade_level": self.brush_upgrade_level,
            "level_stars": {str(k): v for k, v in sorted(self.level_stars.items())},
        }

    @classmethod
    def from_dict(cls, data, path=None, level_count=len(LEVELS)):
        store = cls(path=path, level_count=level_count)
        store.unlocked_level = store._clamp_level(data.get("unlocked_level", 0))
        store.set_current_level(data.get("current_level", 0))
        store.add_coins(data.get("coins", 0))
        store.set_brush_upgrade_level(data.get("brush_upgrade_level", 0))
        for key, stars in dict(data.get("level_stars", {})).items():
            store.update_best_stars(int(key), stars)
        return store

    @classmethod
    def load(cls, path, level_count=len(LEVELS)):
        if not os.path.exists(path):
            logger.info("No progress file at %s, starting fresh", path)
            return cls(path=path, level_count=level_count)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            store = cls.from_dict(data, path=path, level_count=level_count)
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValueError, OverflowError) as e:
            logger.warning("Ignoring unreadable progress file %s: %s", path, e)
            return cls(path=path, level_count=level_count)

        logger.info(
            "Loaded progress from %s: level %d unlocked, %d coins",
            path, store.unlocked_level + 1, store.coins,
        )
        return store

    def save(self, path=None):
        path = path or self.path
        if path is None:
            return False

        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, path)
        self.path = path
        logger.debug("Saved progress to %s", path)
        return True
