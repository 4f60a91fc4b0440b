from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class PointerSample:
    """One pointer read per tick. `cell` is None when the pointer is off the playable surface."""

    cell: Optional[Tuple[int, int]]
    is_down: bool = False
    just_pressed: bool = False

    @property
    def inside(self):
        return self.cell is not None


@dataclass(frozen=True)
class SurfaceMapping:
    """Maps screen pixels inside `rect` (x, y, w, h) onto a W x H grid whose y axis grows upward."""

    rect: Tuple[int, int, int, int]
    grid_width: int
    grid_height: int

    def contains(self, pos):
        x, y, w, h = self.rect
        return x <= pos[0] < x + w and y <= pos[1] < y + h

    def to_cell(self, pos):
        x, y, w, h = self.rect
        u = min(max((pos[0] - x) / max(1, w - 1), 0.0), 1.0)
        v = min(max((pos[1] - y) / max(1, h - 1), 0.0), 1.0)
        cx = int(round(u * (self.grid_width - 1)))
        cy = int(round((1.0 - v) * (self.grid_height - 1)))
        return (
            min(max(cx, 0), self.grid_width - 1),
            min(max(cy, 0), self.grid_height - 1),
        )

    def to_screen(self, cell):
        """Centre pixel of a grid cell, the inverse of `to_cell` up to rounding."""
        x, y, w, h = self.rect
        u = cell[0] / max(1, self.grid_width - 1)
        v = 1.0 - cell[1] / max(1, self.grid_height - 1)
        return (x + u * (w - 1), y + v * (h - 1))

    def sample(self, pos, is_down, just_pressed):
        cell = self.to_cell(pos) if self.contains(pos) else None
        return PointerSample(cell, bool(is_down), bool(just_pressed))
