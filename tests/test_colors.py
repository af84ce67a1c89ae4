import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from mandelzoom import COLOR_SCHEMES, colorize, pack_rgb, unpack_rgb


@pytest.mark.parametrize("scheme", COLOR_SCHEMES)
@pytest.mark.parametrize("budget", [0, 1, 255, 500])
def test_inside_is_black(scheme, budget):
    assert tuple(colorize(budget, budget, scheme)) == (0, 0, 0)


def test_banded_values():
    assert tuple(colorize(0, 500)) == (0, 0, 0)
    assert tuple(colorize(1, 500)) == (3, 5, 7)
    assert tuple(colorize(100, 500)) == (300 % 255, 500 % 255, 700 % 255)


def test_banded_repeats_every_256_steps():
    assert tuple(colorize(10, 1000)) == tuple(colorize(266, 1000))
    assert tuple(colorize(255, 1000)) == ((255 * 3) % 255, (255 * 5) % 255, (255 * 7) % 255)


def test_hsv_values():
    assert tuple(colorize(0, 600, "hsv")) == (255, 0, 0)
    assert tuple(colorize(150, 600, "hsv")) == (127, 255, 0)
    assert tuple(colorize(300, 600, "hsv")) == (0, 255, 255)


def test_schemes_differ():
    iters = np.arange(1, 100)
    assert not np.array_equal(colorize(iters, 100, "banded"), colorize(iters, 100, "hsv"))


def test_array_input_keeps_shape():
    iters = np.array([[0, 1], [2, 7]])
    rgb = colorize(iters, 7)
    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[1, 1]) == (0, 0, 0)
    assert tuple(rgb[0, 1]) == (3, 5, 7)


def test_unknown_scheme():
    with pytest.raises(ValueError):
        colorize(1, 10, "viridis")


def test_pack_rgb():
    assert int(pack_rgb((3, 5, 7))) == 0x030507
    assert tuple(unpack_rgb(0x030507)) == (3, 5, 7)
    rgb = np.array([[[255, 0, 16]]], dtype=np.uint8)
    assert pack_rgb(rgb)[0, 0] == 0xFF0010
