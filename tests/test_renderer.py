import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from mandelzoom import (
    FrameBuffer,
    ViewportRect,
    escape_time,
    escape_times,
    pixel_to_complex,
    render_frame,
)
from mandelzoom.renderer import plane_axes

INITIAL_VIEW = ViewportRect(-2.5, 1.0, -1.2, 1.2)


@pytest.mark.parametrize("budget", [1, 10, 500])
def test_origin_never_escapes(budget):
    assert escape_time(0j, budget) == budget


@pytest.mark.parametrize("budget", [1, 2, 500])
def test_two_escapes_after_one_iteration(budget):
    assert escape_time(2 + 0j, budget) == 1


def test_far_point_escapes_immediately():
    assert escape_time(complex(-2.5, -1.2), 500) == 0


def test_zero_budget():
    assert escape_time(0j, 0) == 0
    assert escape_time(complex(-0.75, 0.1), 0) == 0


@pytest.mark.parametrize("c", [complex(-0.75, 0.1), complex(0.3, 0.5), complex(-1.25, 0.0), complex(0.26, 0.0)])
def test_escape_time_is_bounded_and_deterministic(c):
    first = escape_time(c, 200)
    assert 0 <= first <= 200
    assert escape_time(c, 200) == first


def test_vectorized_matches_scalar():
    width, height, budget = 24, 18, 60
    xs, ys = plane_axes(INITIAL_VIEW, width, height)
    grid = escape_times(xs, ys, budget)

    assert grid.shape == (height, width)
    for row in range(height):
        for col in range(width):
            c = pixel_to_complex(INITIAL_VIEW, width, height, col, row)
            assert grid[row, col] == escape_time(c, budget), (row, col)


def test_escape_times_zero_budget():
    xs, ys = plane_axes(INITIAL_VIEW, 4, 3)
    assert np.array_equal(escape_times(xs, ys, 0), np.zeros((3, 4), dtype=np.int32))


def test_pixel_mapping_starts_at_lower_bounds():
    assert pixel_to_complex(INITIAL_VIEW, 800, 600, 0, 0) == complex(-2.5, -1.2)
    c = pixel_to_complex(INITIAL_VIEW, 800, 600, 400, 300)
    assert c.real == pytest.approx(-0.75)
    assert c.imag == pytest.approx(0.0)


def test_render_frame_layout():
    frame = render_frame(INITIAL_VIEW, 40, 30, 50)

    assert isinstance(frame, FrameBuffer)
    assert frame.rgb.shape == (30, 40, 3)
    assert frame.rgb.dtype == np.uint8
    assert frame.iterations.shape == (30, 40)
    assert (frame.width, frame.height) == (40, 30)
    assert frame.max_iterations == 50

    packed = frame.packed()
    assert packed.shape == (40 * 30,)
    row, col = 15, 20
    r, g, b = (int(v) for v in frame.rgb[row, col])
    assert packed[row * 40 + col] == (r << 16) | (g << 8) | b


def test_render_frame_first_pixel_is_black():
    frame = render_frame(INITIAL_VIEW, 80, 60, 500)
    assert frame.iterations[0, 0] == 0
    assert tuple(frame.rgb[0, 0]) == (0, 0, 0)


def test_render_frame_inside_pixels_are_black():
    frame = render_frame(INITIAL_VIEW, 40, 30, 50)
    inside = frame.iterations == 50
    assert inside.any()
    assert not frame.rgb[inside].any()


def test_render_frame_rejects_empty_grid():
    with pytest.raises(ValueError):
        render_frame(INITIAL_VIEW, 0, 10, 50)


def test_viewport_invariants():
    with pytest.raises(ValueError):
        ViewportRect(1.0, 1.0, 0.0, 1.0)
    with pytest.raises(ValueError):
        ViewportRect(0.0, 1.0, 2.0, 1.0)
    with pytest.raises(ValueError):
        ViewportRect(0.0, float("inf"), 0.0, 1.0)


def test_viewport_helpers():
    view = ViewportRect.centered(-0.5, 0.25, 2.0, 1.0)
    assert view == ViewportRect(-1.5, 0.5, -0.25, 0.75)
    assert view.width == pytest.approx(2.0)
    assert view.height == pytest.approx(1.0)
    assert view.aspect == pytest.approx(0.5)
    assert view.center == pytest.approx((-0.5, 0.25))
    assert view.normalized(-0.5, 0.25) == pytest.approx((0.5, 0.5))
