import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import numpy as np
import pytest

from restore_rush.dirt_field import DirtField
from restore_rush.progress import ProgressStore
from restore_rush.tools import DirtKind


@pytest.fixture
def progress():
    return ProgressStore()


@pytest.fixture
def half_field():
    """40x40 field: left half is object, all Rust."""
    mask = np.zeros((40, 40), dtype=bool)
    mask[:, :20] = True
    kinds = np.full((40, 40), DirtKind.RUST, dtype=np.uint8)
    return DirtField(mask, kinds)


@pytest.fixture
def make_field():
    def _make(kind=DirtKind.DUST, size=40, mask=None):
        if mask is None:
            mask = np.ones((size, size), dtype=bool)
        kinds = np.full(mask.shape, kind, dtype=np.uint8)
        return DirtField(mask, kinds)

    return _make
