"""Presentation collaborators: a live window and an image-file exporter."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Protocol

import imageio
import numpy as np
import PIL.Image

from .renderer import FrameBuffer

WINDOW_TITLE = "Mandelbrot Zoom - ESC to exit"


class DisplayError(RuntimeError):
    """The presentation surface could not be created or refused a frame."""


class Display(Protocol):
    def present(self, frame: FrameBuffer) -> bool:
        """Show ``frame``; return whether the display is still open."""

    def poll_quit(self) -> bool:
        """Return whether a quit was requested since the last poll."""

    def close(self) -> None:
        ...


class WindowDisplay:
    """A pygame window showing each frame as it completes."""

    def __init__(self, width: int, height: int, title: str = WINDOW_TITLE) -> None:
        import pygame

        self._pygame = pygame
        self.width = width
        self.height = height
        self._open = False
        try:
            pygame.init()
            self.screen = pygame.display.set_mode((width, height))
            pygame.display.set_caption(title)
        except pygame.error as exc:
            pygame.quit()
            raise DisplayError(f"Unable to create window: {exc}") from exc
        self._open = True
        self._quit_requested = False

    def present(self, frame: FrameBuffer) -> bool:
        if not self._open:
            return False
        pygame = self._pygame
        if frame.width != self.width or frame.height != self.height:
            raise DisplayError(
                f"frame is {frame.width}x{frame.height}, window is {self.width}x{self.height}"
            )
        try:
            # surfarray is indexed (x, y).
            surface = pygame.surfarray.make_surface(frame.rgb.swapaxes(0, 1))
            self.screen.blit(surface, (0, 0))
            pygame.display.flip()
        except pygame.error as exc:
            raise DisplayError(f"Unable to present frame: {exc}") from exc
        return self._open

    def poll_quit(self) -> bool:
        if not self._open:
            return True
        pygame = self._pygame
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._quit_requested = True
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self._quit_requested = True
        return self._quit_requested

    def close(self) -> None:
        if self._open:
            self._open = False
            self._pygame.quit()


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def frame_filename(index: int, image_format: str = "png", digits: int = 0, prefix: str = "mandelbrot_") -> str:
    return f"{prefix}{index:0{digits}d}.{image_format}" if digits else f"{prefix}{index}.{image_format}"


def write_frame_sequence(
    image: PIL.Image.Image,
    frame_dir: Path,
    index: int,
    digits: int,
    image_format: str,
) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    pil_format = _pil_format_name(image_format)
    frame_path = frame_dir / frame_filename(index, image_format, digits)
    frame_dir.mkdir(parents=True, exist_ok=True)
    image.save(str(frame_path), format=pil_format)
    return frame_path


def write_gif(writer: Any, frame_array: np.ndarray) -> None:
    """Append ``frame_array`` to an active GIF writer."""

    writer.append_data(frame_array)


class FrameExporter:
    """Persist frames as numbered images and/or a GIF.

    ``max_frames`` turns the exporter into a bounded batch: once that many frames
    were written :meth:`poll_quit` reports a quit.
    """

    def __init__(
        self,
        frame_dir: Optional[Path] = None,
        gif_path: Optional[Path] = None,
        *,
        image_format: str = "png",
        digits: int = 0,
        max_frames: Optional[int] = None,
        frame_duration: float = 0.1,
    ) -> None:
        if frame_dir is None and gif_path is None:
            raise ValueError("FrameExporter needs a frame directory, a GIF path, or both.")
        self.frame_dir = frame_dir
        self.gif_path = gif_path
        self.image_format = (image_format or "png").lower().lstrip(".")
        self.digits = digits
        self.max_frames = max_frames
        self.frames_written = 0
        self._gif_writer = None
        try:
            if frame_dir is not None:
                frame_dir.mkdir(parents=True, exist_ok=True)
            if gif_path is not None:
                gif_path.parent.mkdir(parents=True, exist_ok=True)
                self._gif_writer = imageio.get_writer(str(gif_path), mode='I', duration=frame_duration, loop=0)
        except OSError as exc:
            raise DisplayError(f"Unable to prepare export targets: {exc}") from exc

    def present(self, frame: FrameBuffer) -> bool:
        index = self.frames_written
        try:
            if self.frame_dir is not None:
                write_frame_sequence(PIL.Image.fromarray(frame.rgb), self.frame_dir, index, self.digits, self.image_format)
            if self._gif_writer is not None:
                write_gif(self._gif_writer, frame.rgb)
        except (OSError, ValueError) as exc:
            raise DisplayError(f"Unable to persist frame {index}: {exc}") from exc
        self.frames_written += 1
        return True

    def poll_quit(self) -> bool:
        return self.max_frames is not None and self.frames_written >= self.max_frames

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None
