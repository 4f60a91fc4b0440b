import numpy as np

from .session import STROKE_START_MIN_DIRT
from .tools import CORRECT_STROKE_THRESHOLD, EFFECTIVENESS


def policy(env):
    # Strategy: only ever clean dirt the selected tool is good at. Find the nearest such cell,
    # steer the pointer toward it along the larger axis first, and keep space held so the
    # stroke never restarts. When the tool has nothing left to clean, cycle to the next one.
    session = env.session
    field = session.field

    dirty = field.object_mask & (field.dirt_values > STROKE_START_MIN_DIRT)
    if not dirty.any():
        return [0, 0, 0]

    matches = dirty & (EFFECTIVENESS[int(session.selected_tool)][field.dirt_kinds] >= CORRECT_STROKE_THRESHOLD)
    if not matches.any():
        # Release shift first so the next press registers as an edge
        return [0, 0, 0 if env.prev_shift_held else 1]

    px, py = env.mapping.to_cell(env.pointer_pos)
    ys, xs = np.nonzero(matches)
    nearest = int(np.argmin((xs - px) ** 2 + (ys - py) ** 2))
    tx, ty = env.mapping.to_screen((int(xs[nearest]), int(ys[nearest])))

    dx = tx - env.pointer_pos[0]
    dy = ty - env.pointer_pos[1]
    step = env.POINTER_SPEED / 2

    movement = 0
    if abs(dx) >= abs(dy) and abs(dx) > step:
        movement = 4 if dx > 0 else 3  # Right / Left
    elif abs(dy) > step:
        movement = 2 if dy > 0 else 1  # Down / Up

    hint = session.describe_cell((px, py)) if env.mapping.contains(env.pointer_pos) else None
    space = 1 if env.pointer_down or (movement == 0 and hint is not None and hint.correct) else 0
    return [movement, space, 0]
