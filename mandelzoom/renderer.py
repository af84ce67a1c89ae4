"""Rendering primitives for Mandelbrot frames."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .colors import colorize, pack_rgb

HORIZON_SQUARED = 4.0


@dataclass(frozen=True)
class ViewportRect:
    """Axis-aligned region of the complex plane mapped onto the pixel grid."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self) -> None:
        bounds = (self.x_min, self.x_max, self.y_min, self.y_max)
        if not all(math.isfinite(value) for value in bounds):
            raise ValueError(f"viewport bounds must be finite, got {bounds}")
        if not self.x_min < self.x_max:
            raise ValueError(f"x_min ({self.x_min!r}) must be less than x_max ({self.x_max!r})")
        if not self.y_min < self.y_max:
            raise ValueError(f"y_min ({self.y_min!r}) must be less than y_max ({self.y_max!r})")

    @classmethod
    def centered(cls, x: float, y: float, width: float, height: float) -> "ViewportRect":
        half_w = width / 2.0
        half_h = height / 2.0
        return cls(x - half_w, x + half_w, y - half_h, y + half_h)

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def aspect(self) -> float:
        return self.height / self.width

    @property
    def center(self) -> tuple[float, float]:
        return (self.x_min + self.x_max) / 2.0, (self.y_min + self.y_max) / 2.0

    def normalized(self, x: float, y: float) -> tuple[float, float]:
        """Position of ``(x, y)`` relative to the rectangle, 0..1 on each axis when inside."""

        return (x - self.x_min) / self.width, (y - self.y_min) / self.height


@dataclass(frozen=True)
class FrameBuffer:
    """A completed frame: per-pixel escape counts and their colors."""

    rgb: np.ndarray
    iterations: np.ndarray
    viewport: ViewportRect
    max_iterations: int

    @property
    def width(self) -> int:
        return int(self.rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgb.shape[0])

    def packed(self) -> np.ndarray:
        """Row-major ``0xRRGGBB`` pixels, ``buffer[y * width + x]``."""

        return pack_rgb(self.rgb).reshape(-1)


def escape_time(c: complex, max_iterations: int) -> int:
    """Escape iteration count of ``c`` under ``z <- z**2 + c``.

    The orbit starts from its first iterate ``z = c`` and is advanced while
    ``|z|**2 <= 4``. The result lies in ``[0, max_iterations]``; a return
    value of ``max_iterations`` classifies ``c`` as inside the set.
    """

    c_re = float(c.real)
    c_im = float(c.imag)
    z_re = c_re
    z_im = c_im
    n = 0
    while n < max_iterations and z_re * z_re + z_im * z_im <= HORIZON_SQUARED:
        z_re2 = z_re * z_re
        z_im2 = z_im * z_im
        z_im = 2.0 * z_re * z_im + c_im
        z_re = z_re2 - z_im2 + c_re
        n += 1
    return n


@tf.function
def _mandelbrot_step(zr: tf.Tensor, zi: tf.Tensor, cr: tf.Tensor, ci: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
    """Perform a single Mandelbrot iteration for points that have not diverged."""

    zr2 = zr * zr
    zi2 = zi * zi
    zi_new = tf.constant(2.0, dtype=zr.dtype) * zr * zi + ci
    zr_new = zr2 - zi2 + cr
    zr = tf.where(active, zr_new, zr)
    zi = tf.where(active, zi_new, zi)
    ns = ns + tf.cast(active, tf.int32)
    horizon = tf.constant(HORIZON_SQUARED, dtype=zr.dtype)
    new_active = tf.logical_and(active, zr * zr + zi * zi <= horizon)
    return zr, zi, ns, new_active


@tf.function
def _mandelbrot_run(cr: tf.Tensor, ci: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate the Mandelbrot formula using a TensorFlow while loop."""

    max_iterations = tf.cast(max_iterations, tf.int32)
    i = tf.constant(0, dtype=tf.int32)
    ns = tf.zeros_like(cr, tf.int32)
    horizon = tf.constant(HORIZON_SQUARED, dtype=cr.dtype)
    active = cr * cr + ci * ci <= horizon

    def cond(i: tf.Tensor, zr: tf.Tensor, zi: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tf.Tensor:
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(active))

    def body(i: tf.Tensor, zr: tf.Tensor, zi: tf.Tensor, ns: tf.Tensor, active: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
        zr, zi, ns, active = _mandelbrot_step(zr, zi, cr, ci, ns, active)
        return i + 1, zr, zi, ns, active

    _, _, _, ns, _ = tf.while_loop(cond, body, (i, cr, ci, ns, active))
    return ns


def plane_axes(viewport: ViewportRect, width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    """Sample coordinates of every pixel column and row."""

    if width <= 0 or height <= 0:
        raise ValueError(f"frame dimensions must be positive, got {width}x{height}")

    x_span = np.float64(viewport.x_max) - np.float64(viewport.x_min)
    y_span = np.float64(viewport.y_max) - np.float64(viewport.y_min)
    xs = np.arange(width, dtype=np.float64) / np.float64(width) * x_span + np.float64(viewport.x_min)
    ys = np.arange(height, dtype=np.float64) / np.float64(height) * y_span + np.float64(viewport.y_min)
    return xs, ys


def pixel_to_complex(viewport: ViewportRect, width: int, height: int, col: int, row: int) -> complex:
    c_re = col / width * (viewport.x_max - viewport.x_min) + viewport.x_min
    c_im = row / height * (viewport.y_max - viewport.y_min) + viewport.y_min
    return complex(c_re, c_im)


def escape_times(xs: np.ndarray, ys: np.ndarray, max_iterations: int, *, device: Optional[str] = None) -> np.ndarray:
    """Escape counts over the grid spanned by ``xs`` (columns) and ``ys`` (rows)."""

    if max_iterations <= 0:
        return np.zeros((len(ys), len(xs)), dtype=np.int32)

    with tf.device(device if device is not None else "/CPU:0"):
        x_tf = tf.convert_to_tensor(np.asarray(xs, dtype=np.float64), dtype=tf.float64)
        y_tf = tf.convert_to_tensor(np.asarray(ys, dtype=np.float64), dtype=tf.float64)
        X, Y = tf.meshgrid(x_tf, y_tf)
        ns = _mandelbrot_run(X, Y, tf.constant(max_iterations, dtype=tf.int32))

    return ns.numpy()


def render_frame(
    viewport: ViewportRect,
    width: int,
    height: int,
    max_iterations: int,
    *,
    scheme: str = "banded",
    device: Optional[str] = None,
) -> FrameBuffer:
    """Render a Mandelbrot frame of ``width`` x ``height`` pixels covering ``viewport``."""

    xs, ys = plane_axes(viewport, width, height)
    iterations = escape_times(xs, ys, max_iterations, device=device)
    rgb = colorize(iterations, max_iterations, scheme)
    return FrameBuffer(
        rgb=rgb,
        iterations=iterations,
        viewport=viewport,
        max_iterations=int(max_iterations),
    )
