"""Map escape counts to RGB colors."""

from __future__ import annotations

import numpy as np
from matplotlib.colors import hsv_to_rgb

BANDED = "banded"
HSV = "hsv"
COLOR_SCHEMES = (BANDED, HSV)


def _banded(iterations: np.ndarray) -> np.ndarray:
    # Repeats every 256 escape steps.
    h = np.mod(iterations, 256).astype(np.int64)
    return np.stack(((h * 3) % 255, (h * 5) % 255, (h * 7) % 255), axis=-1)


def _hsv(iterations: np.ndarray, max_iterations: int) -> np.ndarray:
    hue = iterations.astype(np.float64) / np.float64(max_iterations)
    hsv = np.stack((np.mod(hue, 1.0), np.ones_like(hue), np.ones_like(hue)), axis=-1)
    return np.floor(hsv_to_rgb(hsv) * 255.0).astype(np.int64)


def colorize(iterations, max_iterations: int, scheme: str = BANDED) -> np.ndarray:
    """Color escape counts with ``scheme``.

    Accepts a scalar or an array of counts and returns ``uint8`` RGB with one
    trailing channel axis. Counts equal to ``max_iterations`` are black.
    """

    if scheme not in COLOR_SCHEMES:
        raise ValueError(f"Unknown color scheme '{scheme}'. Valid choices: {', '.join(COLOR_SCHEMES)}.")

    iters = np.asarray(iterations, dtype=np.int64)
    if scheme == BANDED:
        rgb = _banded(iters)
    else:
        rgb = _hsv(iters, max(int(max_iterations), 1))

    inside = (iters == max_iterations)[..., np.newaxis]
    rgb = np.where(inside, 0, rgb)
    return np.clip(rgb, 0, 255).astype(np.uint8)


def pack_rgb(rgb) -> np.ndarray:
    """Pack the trailing RGB axis into ``0xRRGGBB`` integers."""

    rgb = np.asarray(rgb, dtype=np.uint32)
    return (rgb[..., 0] << 16) | (rgb[..., 1] << 8) | rgb[..., 2]


def unpack_rgb(packed) -> np.ndarray:
    packed = np.asarray(packed, dtype=np.uint32)
    return np.stack(((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF), axis=-1).astype(np.uint8)
