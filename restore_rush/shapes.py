"""
Object silhouettes and their colouring.

Every shape is an implicit formula over normalized cell-centre coordinates
(nx, ny) in [-1, 1], with ny growing upward. Functions accept scalars or
numpy arrays so a whole grid can be evaluated in one call.
"""

from enum import Enum

import numpy as np

from .noise import noise_grid
from .tools import DirtKind


class ShapeStyle(Enum):
    JUG = "jug"
    PLATE = "plate"
    VASE = "vase"
    TOY_DUCK = "toy_duck"
    ROBOT_HEAD = "robot_head"


def _lerp(a, b, t):
    return a + (b - a) * np.clip(t, 0.0, 1.0)


def _inverse_lerp(a, b, value):
    return np.clip((value - a) / (b - a), 0.0, 1.0)


def _ellipse(nx, ny, cx, cy, rx_sq, ry_sq):
    return ((nx - cx) ** 2) / rx_sq + ((ny - cy) ** 2) / ry_sq <= 1.0


def _band(value, low, high):
    return (value > low) & (value < high)


def _jug(nx, ny):
    body = _ellipse(nx, ny, 0.0, -0.05, 0.46, 0.78)
    neck = (np.abs(nx) < 0.24) & _band(ny, 0.28, 0.86)
    lip = (np.abs(nx) < 0.34) & _band(ny, 0.82, 0.96)
    handle = _ellipse(nx, ny, 0.66, 0.1, 0.08, 0.18) & ~_ellipse(nx, ny, 0.66, 0.1, 0.035, 0.08)
    return body | neck | lip | handle


def _plate(nx, ny):
    rim = _ellipse(nx, ny, 0.0, 0.0, 0.70, 0.70) & ~_ellipse(nx, ny, 0.0, 0.0, 0.30, 0.30)
    center = _ellipse(nx, ny, 0.0, 0.0, 0.16, 0.16)
    return rim | center


def _vase(nx, ny):
    top = np.abs(nx) < _lerp(0.15, 0.28, _inverse_lerp(0.2, 0.95, ny))
    body_width = _lerp(0.2, 0.62, _inverse_lerp(-1.0, 0.2, ny))
    body = (nx * nx) / body_width + ((ny + 0.12) ** 2) / 0.9 <= 1.0
    return ((ny > 0.2) & top) | body


def _toy_duck(nx, ny):
    body = _ellipse(nx, ny, -0.08, -0.14, 0.58, 0.46)
    head = _ellipse(nx, ny, 0.36, 0.40, 0.11, 0.12)
    beak = _band(nx, 0.48, 0.76) & _band(ny, 0.30, 0.44)
    return body | head | beak


def _robot_head(nx, ny):
    head = (np.abs(nx) < 0.62) & (np.abs(ny) < 0.62)
    antenna = (np.abs(nx) < 0.07) & _band(ny, 0.62, 0.92)
    ear_left = _band(nx, -0.82, -0.62) & (np.abs(ny) < 0.18)
    ear_right = _band(nx, 0.62, 0.82) & (np.abs(ny) < 0.18)
    return head | antenna | ear_left | ear_right


_SHAPES = {
    ShapeStyle.JUG: _jug,
    ShapeStyle.PLATE: _plate,
    ShapeStyle.VASE: _vase,
    ShapeStyle.TOY_DUCK: _toy_duck,
    ShapeStyle.ROBOT_HEAD: _robot_head,
}


def is_inside_shape(style, nx, ny):
    inside = _SHAPES[ShapeStyle(style)](np.asarray(nx, dtype=np.float64), np.asarray(ny, dtype=np.float64))
    if np.ndim(inside) == 0:
        return bool(inside)
    return inside


def normalized_coords(width, height):
    """Cell-centre coordinates (nx, ny) for a grid, each of shape (H, W)."""
    xs = (np.arange(width) + 0.5) / width * 2.0 - 1.0
    ys = (np.arange(height) + 0.5) / height * 2.0 - 1.0
    return np.meshgrid(xs, ys)


def build_object_mask(style, width, height):
    nx, ny = normalized_coords(width, height)
    return is_inside_shape(style, nx, ny)


# --- Colours (RGB, 0..1) ---

CLEAN_GRADIENTS = {
    ShapeStyle.JUG: ((0.56, 0.72, 0.90), (0.86, 0.94, 1.00)),
    ShapeStyle.PLATE: ((0.82, 0.79, 0.70), (0.95, 0.94, 0.89)),
    ShapeStyle.VASE: ((0.52, 0.76, 0.60), (0.85, 0.98, 0.87)),
    ShapeStyle.TOY_DUCK: ((0.95, 0.73, 0.18), (1.00, 0.95, 0.52)),
    ShapeStyle.ROBOT_HEAD: ((0.55, 0.60, 0.68), (0.87, 0.90, 0.94)),
}

DIRT_GRADIENTS = {
    ShapeStyle.JUG: ((0.12, 0.08, 0.06), (0.24, 0.16, 0.11)),
    ShapeStyle.PLATE: ((0.18, 0.14, 0.10), (0.32, 0.25, 0.16)),
    ShapeStyle.VASE: ((0.10, 0.14, 0.09), (0.20, 0.29, 0.15)),
    ShapeStyle.TOY_DUCK: ((0.23, 0.15, 0.09), (0.39, 0.25, 0.12)),
    ShapeStyle.ROBOT_HEAD: ((0.09, 0.10, 0.12), (0.20, 0.22, 0.26)),
}

DIRT_TINTS = np.array(
    [
        [0.62, 0.56, 0.46],  # Dust
        [0.76, 0.34, 0.18],  # Rust
        [0.35, 0.50, 0.82],  # Paint
    ]
)

HIGHLIGHT_COLOR = np.array([0.98, 0.995, 1.0])


def dirt_type_tint(dirt_kind):
    return tuple(DIRT_TINTS[int(DirtKind(dirt_kind))])


def build_clean_colors(style, width, height):
    """Returns an (H, W, 3) float array of the restored object's colours."""
    style = ShapeStyle(style)
    nx, ny = normalized_coords(width, height)
    bottom, top = (np.array(c) for c in CLEAN_GRADIENTS[style])

    vertical = _inverse_lerp(-1.0, 1.0, ny)[..., None]
    color = bottom + (top - bottom) * vertical

    radial = np.clip(1.0 - np.sqrt(np.maximum(0.0, nx * nx / 0.9 + ny * ny / 1.05)), 0.0, 1.0)
    color = color * _lerp(0.68, 1.14, radial)[..., None]

    highlight = np.exp(-((nx + 0.22) ** 2 / 0.05 + (ny - 0.18) ** 2 / 0.09))
    color = color + (HIGHLIGHT_COLOR - color) * (highlight * 0.36)[..., None]
    return np.clip(color, 0.0, 1.0)


def build_dirt_base_colors(style, dirt_kinds):
    """
    Returns an (H, W, 4) float RGBA array of the dirt layer at full intensity.
    Tone and alpha come from two independent noise samples per cell.
    """
    style = ShapeStyle(style)
    height, width = dirt_kinds.shape
    noise_a = noise_grid(width, height, 13.0, 47.0, 0.11)
    noise_b = noise_grid(width, height, 5.0, 17.0, 0.27)

    dark, light = (np.array(c) for c in DIRT_GRADIENTS[style])
    tone = dark + (light - dark) * noise_a[..., None]

    tint = DIRT_TINTS[dirt_kinds.astype(np.intp)]
    tone = tone + (tint - tone) * _lerp(0.58, 0.85, noise_b)[..., None]

    alpha = _lerp(0.76, 1.0, noise_b)
    return np.concatenate([tone, alpha[..., None]], axis=-1)
