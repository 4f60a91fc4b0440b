"""
Runtime configuration.
Reads environment variables and falls back to defaults.
"""

import logging
import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

SAVE_PATH = os.path.expanduser(
    os.getenv("RESTORE_RUSH_SAVE_PATH", os.path.join("~", ".restore_rush", "progress.json"))
)

MIN_GRID_SIZE = 32
GRID_SIZE = max(MIN_GRID_SIZE, int(os.getenv("RESTORE_RUSH_GRID_SIZE", 120)))

FPS = max(1, int(os.getenv("RESTORE_RUSH_FPS", 30)))

LOG_LEVEL = os.getenv("RESTORE_RUSH_LOG_LEVEL", "INFO").upper()


def configure_logging(level=None):
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
