import numpy as np

# Fixed permutation so every run classifies and colours cells the same way.
_PERM = np.random.default_rng(1337).permutation(256)
_PERM = np.concatenate([_PERM, _PERM])

_GRADIENTS = np.array(
    [[1, 1], [-1, 1], [1, -1], [-1, -1], [1, 0], [-1, 0], [0, 1], [0, -1]],
    dtype=np.float64,
)

# Largest magnitude 2D gradient noise can reach, used to rescale into [0, 1].
_NOISE_AMPLITUDE = np.sqrt(0.5)


def _fade(t):
    return t * t * t * (t * (t * 6 - 15) + 10)


def _corner(ix, iy, fx, fy):
    g = _GRADIENTS[_PERM[_PERM[ix] + iy] % len(_GRADIENTS)]
    return g[..., 0] * fx + g[..., 1] * fy


def perlin(x, y):
    """
    2D Perlin gradient noise remapped to [0, 1].
    Accepts scalars or numpy arrays of matching shape. Integer lattice points return 0.5.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    x0 = np.floor(x)
    y0 = np.floor(y)
    fx = x - x0
    fy = y - y0
    ix = x0.astype(np.int64) & 255
    iy = y0.astype(np.int64) & 255
    ix1 = (ix + 1) & 255
    iy1 = (iy + 1) & 255

    n00 = _corner(ix, iy, fx, fy)
    n10 = _corner(ix1, iy, fx - 1, fy)
    n01 = _corner(ix, iy1, fx, fy - 1)
    n11 = _corner(ix1, iy1, fx - 1, fy - 1)

    u = _fade(fx)
    v = _fade(fy)
    nx0 = n00 + u * (n10 - n00)
    nx1 = n01 + u * (n11 - n01)
    value = nx0 + v * (nx1 - nx0)

    result = np.clip(0.5 + 0.5 * value / _NOISE_AMPLITUDE, 0.0, 1.0)
    if result.ndim == 0:
        return float(result)
    return result


def noise_grid(width, height, offset_x, offset_y, scale):
    """Samples perlin((x + offset_x) * scale, (y + offset_y) * scale) for every cell, shape (H, W)."""
    ys, xs = np.mgrid[0:height, 0:width]
    return perlin((xs + offset_x) * scale, (ys + offset_y) * scale)
