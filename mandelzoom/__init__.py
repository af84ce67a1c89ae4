"""Public API for the automatic Mandelbrot zoom."""

from .colors import COLOR_SCHEMES, colorize, pack_rgb, unpack_rgb
from .renderer import (
    FrameBuffer,
    ViewportRect,
    escape_time,
    escape_times,
    pixel_to_complex,
    render_frame,
)
from .config import ZoomConfig, ZoomTarget, parse_target
from .generator import (
    BudgetPolicy,
    PathState,
    RunState,
    Transition,
    advance_path,
    discover_target,
    finish_frame,
    render_state,
    select_discovery_pixel,
    shrink_toward,
    step,
)
from .display import Display, DisplayError, FrameExporter, WindowDisplay, frame_filename

__all__ = [
    "BudgetPolicy",
    "COLOR_SCHEMES",
    "Display",
    "DisplayError",
    "FrameBuffer",
    "FrameExporter",
    "PathState",
    "RunState",
    "Transition",
    "ViewportRect",
    "WindowDisplay",
    "ZoomConfig",
    "ZoomTarget",
    "advance_path",
    "colorize",
    "discover_target",
    "escape_time",
    "escape_times",
    "finish_frame",
    "frame_filename",
    "pack_rgb",
    "parse_target",
    "pixel_to_complex",
    "render_frame",
    "render_state",
    "select_discovery_pixel",
    "shrink_toward",
    "step",
    "unpack_rgb",
]
