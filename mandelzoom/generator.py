"""Utilities for steering an automatic Mandelbrot zoom sequence."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from .config import ZoomConfig, ZoomTarget
from .renderer import FrameBuffer, ViewportRect, escape_times, plane_axes, render_frame


class Transition(enum.Enum):
    """What the path controller did at the end of a frame."""

    NONE = "none"
    ADVANCE = "advance"
    DISCOVER = "discover"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PathState:
    """Ordered zoom targets and the index of the active one."""

    targets: tuple[ZoomTarget, ...]
    current_index: int = 0

    def __post_init__(self) -> None:
        if not self.targets:
            raise ValueError("a path needs at least one target.")
        if not 0 <= self.current_index < len(self.targets):
            raise ValueError(f"current_index {self.current_index} outside path of length {len(self.targets)}")

    @property
    def active(self) -> ZoomTarget:
        return self.targets[self.current_index]

    @property
    def at_end(self) -> bool:
        return self.current_index == len(self.targets) - 1


@dataclass(frozen=True)
class BudgetPolicy:
    """Raise the iteration ceiling by ``increment`` at the selected transitions."""

    increment: int
    granularity: str = "discovery"

    def applies_to(self, transition: Transition) -> bool:
        if transition is Transition.ADVANCE:
            return self.granularity in ("advance", "both")
        if transition in (Transition.DISCOVER, Transition.FALLBACK):
            return self.granularity in ("discovery", "both")
        return False

    def bump(self, max_iterations: int, transition: Transition) -> int:
        if self.applies_to(transition):
            return max_iterations + max(self.increment, 0)
        return max_iterations

    @classmethod
    def from_config(cls, config: ZoomConfig) -> "BudgetPolicy":
        return cls(increment=config.iteration_increment, granularity=config.budget_granularity)


@dataclass(frozen=True)
class RunState:
    """The whole mutable state of a zoom run, advanced one frame at a time."""

    viewport: ViewportRect
    path: PathState
    max_iterations: int
    frame_index: int = 0

    @property
    def target(self) -> ZoomTarget:
        return self.path.active

    @classmethod
    def initial(cls, config: ZoomConfig) -> "RunState":
        return cls(
            viewport=config.initial_viewport,
            path=PathState(tuple(config.path), 0),
            max_iterations=config.initial_max_iterations,
        )


def shrink_toward(viewport: ViewportRect, target: ZoomTarget, zoom_speed: float) -> ViewportRect:
    """Shrink ``viewport`` toward ``target`` keeping the target's relative position fixed."""

    if not 0.0 < zoom_speed < 1.0:
        raise ValueError(f"zoom_speed must lie in (0, 1), got {zoom_speed}")

    tx = target.x
    ty = target.y
    return ViewportRect(
        x_min=tx - (tx - viewport.x_min) * zoom_speed,
        x_max=tx + (viewport.x_max - tx) * zoom_speed,
        y_min=ty - (ty - viewport.y_min) * zoom_speed,
        y_max=ty + (viewport.y_max - ty) * zoom_speed,
    )


def select_discovery_pixel(iterations: np.ndarray, max_iterations: int) -> Optional[tuple[int, int]]:
    """Return ``(row, col)`` of the slowest escaping pixel, or ``None``.

    Pixels classified inside the set are not candidates; ``None`` means every
    pixel reached ``max_iterations``. Ties resolve to the first pixel in
    row-major order.
    """

    candidates = np.where(iterations < max_iterations, iterations, -1)
    if candidates.size == 0:
        return None
    flat_idx = int(np.argmax(candidates))
    if candidates.flat[flat_idx] < 0:
        return None
    row, col = np.unravel_index(flat_idx, candidates.shape)
    return int(row), int(col)


def _resolvable(viewport_width: float, viewport_height: float, center: tuple[float, float], width: int, height: int) -> bool:
    # Neighbouring pixels must still map to distinct doubles.
    spacing = np.spacing(np.float64(max(abs(center[0]), abs(center[1]), 1e-300)))
    return viewport_width / width > 2 * spacing and viewport_height / height > 2 * spacing


def discover_target(
    viewport: ViewportRect,
    config: ZoomConfig,
    max_iterations: int,
    *,
    device: Optional[str] = None,
) -> tuple[ViewportRect, ZoomTarget, Transition]:
    """Search ``viewport`` for a new point of interest.

    The rectangle is re-rendered at the full grid resolution and the pixel with
    the highest escape count still below ``max_iterations`` becomes the new
    target. The returned rectangle is centred on it and covers
    ``discovery_fraction`` of the searched width with the configured aspect.
    When nothing qualifies the configured fallback view is returned.
    """

    xs, ys = plane_axes(viewport, config.width, config.height)
    iterations = escape_times(xs, ys, max_iterations, device=device)
    pixel = select_discovery_pixel(iterations, max_iterations)
    if pixel is not None:
        row, col = pixel
        target = ZoomTarget(float(xs[col]), float(ys[row]), f"discovered@{max_iterations}")
        new_width = viewport.width * config.discovery_fraction
        new_height = new_width * config.aspect
        if _resolvable(new_width, new_height, (target.x, target.y), config.width, config.height):
            return ViewportRect.centered(target.x, target.y, new_width, new_height), target, Transition.DISCOVER
    return config.fallback_viewport, config.fallback_target, Transition.FALLBACK


def advance_path(
    state: RunState,
    config: ZoomConfig,
    policy: Optional[BudgetPolicy] = None,
    *,
    device: Optional[str] = None,
) -> tuple[RunState, Transition]:
    """Apply the end-of-frame transition for a viewport that has just been shrunk."""

    policy = policy or BudgetPolicy.from_config(config)
    if state.viewport.width >= config.epsilon:
        return state, Transition.NONE

    if not state.path.at_end:
        path = replace(state.path, current_index=state.path.current_index + 1)
        max_iterations = policy.bump(state.max_iterations, Transition.ADVANCE)
        return replace(state, path=path, max_iterations=max_iterations), Transition.ADVANCE

    viewport, target, transition = discover_target(state.viewport, config, state.max_iterations, device=device)
    return (
        replace(
            state,
            viewport=viewport,
            path=PathState((target,), 0),
            max_iterations=policy.bump(state.max_iterations, transition),
        ),
        transition,
    )


def fall_back(state: RunState, config: ZoomConfig, policy: BudgetPolicy) -> RunState:
    """Restart the zoom from the configured fallback view."""

    return replace(
        state,
        viewport=config.fallback_viewport,
        path=PathState((config.fallback_target,), 0),
        max_iterations=policy.bump(state.max_iterations, Transition.FALLBACK),
    )


def render_state(state: RunState, config: ZoomConfig, *, device: Optional[str] = None) -> FrameBuffer:
    """Render the frame ``state`` currently describes."""

    return render_frame(
        state.viewport,
        config.width,
        config.height,
        state.max_iterations,
        scheme=config.color_scheme,
        device=device,
    )


def finish_frame(
    state: RunState,
    config: ZoomConfig,
    policy: Optional[BudgetPolicy] = None,
    *,
    device: Optional[str] = None,
) -> tuple[RunState, Transition]:
    """Shrink toward the active target and apply the end-of-frame transition."""

    policy = policy or BudgetPolicy.from_config(config)
    try:
        shrunk = replace(state, viewport=shrink_toward(state.viewport, state.target, config.zoom_speed))
    except ValueError:
        # The view collapsed below double precision.
        next_state, transition = fall_back(state, config, policy), Transition.FALLBACK
    else:
        next_state, transition = advance_path(shrunk, config, policy, device=device)
    return replace(next_state, frame_index=state.frame_index + 1), transition


def step(
    state: RunState,
    config: ZoomConfig,
    policy: Optional[BudgetPolicy] = None,
    *,
    device: Optional[str] = None,
) -> tuple[RunState, FrameBuffer, Transition]:
    """Render the current frame and advance ``state`` to the next one."""

    frame = render_state(state, config, device=device)
    next_state, transition = finish_frame(state, config, policy, device=device)
    return next_state, frame, transition
