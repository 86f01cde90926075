"""Test the band-parallel renderer.

Tests for complex_fractals.acceleration.parallel:
    - create_row_bands() covers every row exactly once with disjoint bands
    - render_band() honours the deadline it is handed
    - A timeout bounds the wall time of a parallel render
    - An explicit cancel() stops a parallel render without joining running bands

Run:
    pytest tests/test_parallel.py -v
"""

import threading
import time

import numpy as np
import pytest

from complex_fractals.acceleration.parallel import (
    ParallelBandRenderer,
    RowBand,
    create_row_bands,
    render_band,
)
from complex_fractals.api import FractalRenderer, RenderConfig
from complex_fractals.core.errors import RenderCancelled
from complex_fractals.core.options import RenderingOptions, Viewport
from complex_fractals.core.sampling import CancellationToken, sample_rows
from complex_fractals.rendering.coloring import DivergenceHue


@pytest.fixture
def viewport():
    return Viewport.from_options(RenderingOptions(width=8, height=6))


# ============================================================================
# BANDS
# ============================================================================

def test_bands_split_uneven_height():
    bands = create_row_bands(10, 3)
    assert [(b.row_start, b.row_stop) for b in bands] == [(0, 3), (3, 6), (6, 9), (9, 10)]
    assert [b.band_id for b in bands] == [0, 1, 2, 3]
    assert bands[-1].rows == 1


@pytest.mark.parametrize("height, band_height", [(1, 1), (16, 16), (17, 16), (100, 7), (5, 64)])
def test_bands_are_disjoint_and_cover_every_row(height, band_height):
    bands = create_row_bands(height, band_height)
    rows = [row for band in bands for row in range(band.row_start, band.row_stop)]
    assert rows == list(range(height))
    assert all(0 < band.rows <= band_height for band in bands)


def test_zero_height_has_no_bands():
    assert create_row_bands(0, 3) == []


def test_band_height_must_be_positive():
    with pytest.raises(ValueError):
        create_row_bands(10, 0)


# ============================================================================
# WORKER
# ============================================================================

def test_render_band_matches_sequential_rows(viewport):
    fn = DivergenceHue()
    result = render_band((fn, viewport, RowBand(0, 2, 5), None))
    assert result.row_start == 2
    assert np.array_equal(result.pixels, sample_rows(fn, viewport, 2, 5))


def test_render_band_stops_at_expired_deadline(viewport):
    with pytest.raises(RenderCancelled, match="time limit"):
        render_band((DivergenceHue(), viewport, RowBand(0, 0, 6), time.monotonic() - 1))


def test_token_with_deadline():
    assert CancellationToken.with_deadline(time.monotonic() - 1).cancelled
    assert not CancellationToken.with_deadline(time.monotonic() + 60).cancelled
    assert not CancellationToken.with_deadline(None).cancelled


# ============================================================================
# CANCELLATION
# ============================================================================

def test_timeout_bounds_parallel_render_time():
    # Uncancelled, this render takes several seconds
    renderer = FractalRenderer(
        RenderConfig(workers=2, band_height=64, parallel_threshold=0, timeout=0.3)
    )
    start = time.monotonic()
    with pytest.raises(RenderCancelled):
        renderer.render(None, "mandelbrot", RenderingOptions(width=256, height=128))
    assert time.monotonic() - start < 4.0


def test_cancel_stops_parallel_render():
    viewport = Viewport.from_options(RenderingOptions(width=256, height=64))
    token = CancellationToken()
    timer = threading.Timer(0.2, token.cancel)
    timer.start()
    start = time.monotonic()
    try:
        with pytest.raises(RenderCancelled, match="Render cancelled"):
            ParallelBandRenderer(2, band_height=2).render(DivergenceHue(), viewport, token)
    finally:
        timer.cancel()
    assert time.monotonic() - start < 4.0


def test_already_cancelled_token_skips_workers():
    viewport = Viewport.from_options(RenderingOptions(width=8, height=8))
    token = CancellationToken()
    token.cancel()
    with pytest.raises(RenderCancelled):
        ParallelBandRenderer(2, band_height=2).render(DivergenceHue(), viewport, token)


def test_poll_interval_must_be_positive():
    with pytest.raises(ValueError):
        ParallelBandRenderer(2, poll_interval=0)
