import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from mandelzoom import ViewportRect, ZoomConfig, ZoomTarget, parse_target
from mandelzoom.config import DEFAULT_PATH, FALLBACK_TARGET, FALLBACK_VIEWPORT


def test_defaults():
    config = ZoomConfig()
    assert (config.width, config.height) == (800, 600)
    assert config.initial_viewport == ViewportRect(-2.5, 1.0, -1.2, 1.2)
    assert config.initial_max_iterations == 500
    assert config.zoom_speed == 0.99
    assert config.path == DEFAULT_PATH
    assert config.path[0] == ZoomTarget(-0.743643887037151, 0.131825904205330, "The antenna")
    assert config.aspect == pytest.approx(2.4 / 3.5)


def test_fallback_view_contains_its_target():
    x, y = FALLBACK_VIEWPORT.normalized(FALLBACK_TARGET.x, FALLBACK_TARGET.y)
    assert x == pytest.approx(0.5)
    assert y == pytest.approx(0.5)


@pytest.mark.parametrize(
    "overrides",
    [
        dict(width=0),
        dict(height=-1),
        dict(zoom_speed=1.0),
        dict(zoom_speed=0.0),
        dict(epsilon=0.0),
        dict(path=()),
        dict(discovery_fraction=1.5),
        dict(iteration_increment=-1),
        dict(budget_granularity="sometimes"),
        dict(color_scheme="viridis"),
        dict(frame_interval=-0.1),
        dict(initial_max_iterations=-5),
    ],
)
def test_rejects_invalid_values(overrides):
    with pytest.raises(ValueError):
        ZoomConfig(**overrides)


def test_parse_target():
    assert parse_target("-0.1604,1.0336,Upper spiral") == ZoomTarget(-0.1604, 1.0336, "Upper spiral")
    assert parse_target(" 0.25 , 0 ") == ZoomTarget(0.25, 0.0, "")
    assert parse_target("1,2,a, b") == ZoomTarget(1.0, 2.0, "a, b")


@pytest.mark.parametrize("text", ["1", "a,b", "1,nan", ""])
def test_parse_target_rejects(text):
    with pytest.raises(ValueError):
        parse_target(text)
