"""Test supersampling and linear-space averaging.

Tests for complex_fractals.core.sampling:
    - average_colors() is the identity for identical samples
    - Averaging happens on 16-bit channels before narrowing
    - sample_pixel() visits the 2x2 sub-pixel offsets in row-major order
    - sample_rows() handles empty extents without running the pixel loop
    - CancellationToken stops a render between rows

Run:
    pytest tests/test_sampling.py -v
"""

import numpy as np
import pytest

from complex_fractals.core.errors import RenderCancelled
from complex_fractals.core.options import RenderingOptions, Viewport
from complex_fractals.core.sampling import (
    CancellationToken,
    average_colors,
    sample_pixel,
    sample_rows,
)
from complex_fractals.rendering.coloring import BLACK, RGBA, YCbCr


class RecordingFunction:
    """Constant color function that remembers every point it was asked about."""

    def __init__(self, color=RGBA(10, 20, 30, 255)):
        self.color = color
        self.calls = []

    def __call__(self, z):
        self.calls.append(z)
        return self.color


@pytest.fixture
def viewport():
    return Viewport.from_options(RenderingOptions(width=16, height=16))


# ============================================================================
# AVERAGING
# ============================================================================

@pytest.mark.parametrize("color", [
    RGBA(0, 0, 0, 255),
    RGBA(255, 255, 255, 255),
    RGBA(17, 128, 254, 255),
    RGBA(1, 2, 3, 4),
    YCbCr(128, 128, 128),
])
def test_average_of_identical_colors_is_identity(color):
    expected = tuple(c >> 8 for c in color.rgba64())
    assert average_colors([color] * 4) == expected


def test_average_of_identical_rgba_returns_channels():
    assert average_colors([RGBA(17, 128, 254, 255)] * 4) == (17, 128, 254, 255)


def test_average_uses_wide_16_bit_sums():
    white = RGBA(255, 255, 255, 255)
    assert average_colors([BLACK, BLACK, white, white]) == (127, 127, 127, 255)


def test_average_narrows_after_division():
    red = RGBA(255, 0, 0, 255)
    # (65535 // 4) >> 8 = 63
    assert average_colors([red, BLACK, BLACK, BLACK]) == (63, 0, 0, 255)


def test_average_mixes_color_models():
    gray = YCbCr(128, 128, 128)
    assert average_colors([gray, gray, BLACK, BLACK]) == (64, 64, 64, 255)


def test_average_of_nothing_fails():
    with pytest.raises(ValueError):
        average_colors([])


# ============================================================================
# PIXELS AND ROWS
# ============================================================================

def test_sample_pixel_visits_subpixels_in_order(viewport):
    fn = RecordingFunction()
    assert sample_pixel(fn, viewport, 8, 8) == (10, 20, 30, 255)
    assert fn.calls == [0j, complex(0.125, 0), complex(0, 0.125), complex(0.125, 0.125)]


def test_sample_rows_shape_and_fill(viewport):
    fn = RecordingFunction()
    band = sample_rows(fn, viewport, 2, 5)
    assert band.shape == (3, 16, 4)
    assert band.dtype == np.uint8
    assert (band == np.array([10, 20, 30, 255], dtype=np.uint8)).all()
    assert len(fn.calls) == 3 * 16 * 4


def test_sample_rows_rows_start_at_top(viewport):
    fn = RecordingFunction()
    sample_rows(fn, viewport, 0, 1)
    assert fn.calls[0] == complex(-2, -2)


@pytest.mark.parametrize("width, height", [(0, 3), (3, 0), (0, 0)])
def test_sample_rows_empty_extent_runs_no_pixels(width, height):
    viewport = Viewport(xstart=-2, ystart=-2, xspan=4, yspan=4, width=width, height=height)
    fn = RecordingFunction()
    band = sample_rows(fn, viewport)
    assert band.shape == (height, width, 4)
    assert fn.calls == []


# ============================================================================
# CANCELLATION
# ============================================================================

def test_token_starts_uncancelled():
    token = CancellationToken()
    assert not token.cancelled
    token.raise_if_cancelled()


def test_cancelled_token_stops_render(viewport):
    token = CancellationToken()
    token.cancel()
    fn = RecordingFunction()
    with pytest.raises(RenderCancelled):
        sample_rows(fn, viewport, cancel_token=token)
    assert fn.calls == []


def test_expired_deadline_counts_as_cancelled():
    token = CancellationToken(timeout=0)
    assert token.cancelled
    with pytest.raises(RenderCancelled, match="time limit"):
        token.raise_if_cancelled()


def test_cancel_between_rows(viewport):
    token = CancellationToken()

    class CancelAfterFirstRow(RecordingFunction):
        def __call__(self, z):
            result = super().__call__(z)
            if len(self.calls) == 16 * 4:
                token.cancel()
            return result

    fn = CancelAfterFirstRow()
    with pytest.raises(RenderCancelled):
        sample_rows(fn, viewport, cancel_token=token)
    assert len(fn.calls) == 16 * 4
