"""
Supersampled evaluation of a color function over a viewport.

Every pixel is split into a 2x2 grid of sub-pixels. Each sub-pixel is
colored independently and the four colors are averaged in 16-bit
alpha-premultiplied space before being narrowed back to 8 bits.
"""

import time
import threading
from typing import Callable, Iterable, Optional, Tuple
import logging

import numpy as np

from .errors import RenderCancelled
from .options import Viewport

logger = logging.getLogger(__name__)

# Sub-pixel offsets along each axis, in pixel units
SUBPIXEL_OFFSETS = (0.0, 0.5)


class CancellationToken:
    """Cooperative cancellation flag with an optional deadline."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds from now after which the token counts as cancelled
        """
        self._event = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def with_deadline(cls, deadline: Optional[float]) -> 'CancellationToken':
        """
        Token that expires at an absolute ``time.monotonic()`` deadline.

        Worker processes rebuild the caller's deadline this way, since the
        cancel flag itself cannot cross a process boundary.
        """
        token = cls()
        token.deadline = deadline
        return token

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RenderCancelled("Render cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise RenderCancelled("Render exceeded its time limit")


def average_colors(colors: Iterable) -> Tuple[int, int, int, int]:
    """
    Average colors channel-wise in 16-bit space.

    Channels are summed as wide integers, divided by the sample count and
    then narrowed to 8 bits by dropping the low byte.

    Args:
        colors: Color values exposing rgba64()

    Returns:
        8-bit (r, g, b, a) tuple
    """
    r = g = b = a = 0
    count = 0
    for color in colors:
        r1, g1, b1, a1 = color.rgba64()
        r += r1
        g += g1
        b += b1
        a += a1
        count += 1

    if count == 0:
        raise ValueError("Cannot average an empty set of samples")

    return ((r // count) >> 8, (g // count) >> 8, (b // count) >> 8, (a // count) >> 8)


def sample_pixel(color_fn: Callable, viewport: Viewport, px: int, py: int) -> Tuple[int, int, int, int]:
    """Color one pixel by averaging its sub-pixel samples."""
    samples = []
    for dy in SUBPIXEL_OFFSETS:
        for dx in SUBPIXEL_OFFSETS:
            samples.append(color_fn(viewport.pixel_to_complex(px + dx, py + dy)))
    return average_colors(samples)


def sample_rows(color_fn: Callable, viewport: Viewport, row_start: int = 0,
                row_stop: Optional[int] = None,
                cancel_token: Optional[CancellationToken] = None) -> np.ndarray:
    """
    Color a contiguous band of rows.

    Args:
        color_fn: Color function applied to each sub-pixel
        viewport: Pixel to plane mapping
        row_start: First row (inclusive)
        row_stop: Last row (exclusive), defaults to the viewport height
        cancel_token: Checked before each row

    Returns:
        uint8 array of shape (row_stop - row_start, width, 4)
    """
    if row_stop is None:
        row_stop = viewport.height

    rows = max(0, row_stop - row_start)
    band = np.zeros((rows, viewport.width, 4), dtype=np.uint8)

    for offset in range(rows):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        py = row_start + offset
        for px in range(viewport.width):
            band[offset, px] = sample_pixel(color_fn, viewport, px, py)

    return band
