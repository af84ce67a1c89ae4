"""Run configuration for an automatic Mandelbrot zoom."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .colors import BANDED, COLOR_SCHEMES
from .renderer import ViewportRect

BUDGET_GRANULARITIES = ("discovery", "advance", "both")


@dataclass(frozen=True)
class ZoomTarget:
    """A point of the complex plane the viewport zooms toward."""

    x: float
    y: float
    label: str = ""


DEFAULT_PATH = (
    ZoomTarget(-0.743643887037151, 0.131825904205330, "The antenna"),
    ZoomTarget(-0.1604, 1.0336, "Upper spiral"),
    ZoomTarget(-0.1554, 1.0332, "Another upper spiral"),
)

DEFAULT_VIEWPORT = ViewportRect(-2.5, 1.0, -1.2, 1.2)

# Seahorse valley, dense with structure at every scale down to double precision.
FALLBACK_TARGET = ZoomTarget(-0.743643887037151, 0.131825904205330, "Seahorse valley")
FALLBACK_VIEWPORT = ViewportRect.centered(FALLBACK_TARGET.x, FALLBACK_TARGET.y, 0.035, 0.024)


@dataclass(frozen=True)
class ZoomConfig:
    """Every tunable of a zoom run."""

    width: int = 800
    height: int = 600
    initial_viewport: ViewportRect = DEFAULT_VIEWPORT
    initial_max_iterations: int = 500
    zoom_speed: float = 0.99
    epsilon: float = 1e-10
    path: tuple[ZoomTarget, ...] = DEFAULT_PATH
    discovery_fraction: float = 0.25
    iteration_increment: int = 500
    budget_granularity: str = "discovery"
    color_scheme: str = BANDED
    frame_interval: float = 1.0 / 60.0
    fallback_viewport: ViewportRect = FALLBACK_VIEWPORT
    fallback_target: ZoomTarget = FALLBACK_TARGET

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"frame dimensions must be positive, got {self.width}x{self.height}")
        if self.initial_max_iterations < 0:
            raise ValueError("initial_max_iterations must be non-negative.")
        if not 0.0 < self.zoom_speed < 1.0:
            raise ValueError(f"zoom_speed must lie in (0, 1), got {self.zoom_speed}")
        if not (math.isfinite(self.epsilon) and self.epsilon > 0.0):
            raise ValueError(f"epsilon must be a positive number, got {self.epsilon}")
        if not self.path:
            raise ValueError("the zoom path needs at least one target.")
        if not 0.0 < self.discovery_fraction < 1.0:
            raise ValueError(f"discovery_fraction must lie in (0, 1), got {self.discovery_fraction}")
        if self.iteration_increment < 0:
            raise ValueError("iteration_increment must be non-negative.")
        if self.budget_granularity not in BUDGET_GRANULARITIES:
            raise ValueError(
                f"Unknown budget granularity '{self.budget_granularity}'. "
                f"Valid choices: {', '.join(BUDGET_GRANULARITIES)}."
            )
        if self.color_scheme not in COLOR_SCHEMES:
            raise ValueError(f"Unknown color scheme '{self.color_scheme}'. Valid choices: {', '.join(COLOR_SCHEMES)}.")
        if self.frame_interval < 0.0:
            raise ValueError("frame_interval must be non-negative.")

    @property
    def aspect(self) -> float:
        """Height over width of the configured initial view."""

        return self.initial_viewport.aspect


def parse_target(text: str) -> ZoomTarget:
    """Parse ``"X,Y"`` or ``"X,Y,LABEL"`` into a :class:`ZoomTarget`."""

    parts = [part.strip() for part in text.split(",", 2)]
    if len(parts) < 2:
        raise ValueError(f"target '{text}' must have the form X,Y[,LABEL]")
    try:
        x = float(parts[0])
        y = float(parts[1])
    except ValueError as exc:
        raise ValueError(f"target '{text}' has a non-numeric coordinate") from exc
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"target '{text}' must have finite coordinates")
    label = parts[2] if len(parts) == 3 else ""
    return ZoomTarget(x, y, label)
