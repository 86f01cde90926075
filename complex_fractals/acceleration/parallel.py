"""
Multiprocessing backend for parallel rendering.

The image is split into disjoint bands of whole rows. Each band is colored
in a worker process and copied into its own slice of the output grid, so no
two workers ever write the same pixel. The grid is returned only after
every band has been joined.
"""

import os
import time
import logging
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from ..core.options import Viewport
from ..core.sampling import CancellationToken, sample_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowBand:
    """A contiguous band of image rows rendered by one worker."""
    band_id: int
    row_start: int
    row_stop: int

    @property
    def rows(self) -> int:
        return self.row_stop - self.row_start


@dataclass
class BandResult:
    """Pixels computed for one band."""
    band_id: int
    row_start: int
    pixels: np.ndarray
    processing_time: float


def create_row_bands(height: int, band_height: int = 16) -> List[RowBand]:
    """
    Split image rows into contiguous, non-overlapping bands.

    Args:
        height: Total image height
        band_height: Target rows per band

    Returns:
        List of RowBand objects covering every row exactly once
    """
    if band_height < 1:
        raise ValueError("band_height must be >= 1")

    bands = []
    for band_id, row_start in enumerate(range(0, height, band_height)):
        bands.append(RowBand(band_id, row_start, min(row_start + band_height, height)))

    logger.debug(f"Created {len(bands)} bands of up to {band_height} rows")
    return bands


def render_band(args) -> BandResult:
    """
    Color a single band in a worker process.

    Args:
        args: Tuple of (color_fn, viewport, band, deadline); deadline is an
            absolute time.monotonic() value or None

    Returns:
        BandResult object

    Raises:
        RenderCancelled: if the deadline passes between rows
    """
    color_fn, viewport, band, deadline = args
    start_time = time.time()
    token = CancellationToken.with_deadline(deadline) if deadline is not None else None
    pixels = sample_rows(color_fn, viewport, band.row_start, band.row_stop, token)
    return BandResult(band.band_id, band.row_start, pixels, time.time() - start_time)


def get_optimal_process_count() -> int:
    """Number of worker processes to use by default."""
    return max(1, os.cpu_count() or 1)


class ParallelBandRenderer:
    """Band-parallel rendering across worker processes."""

    def __init__(self, num_processes: Optional[int] = None, band_height: int = 16,
                 poll_interval: float = 0.05):
        """
        Args:
            num_processes: Number of worker processes (None for CPU count)
            band_height: Rows per band
            poll_interval: Seconds between cancellation checks while bands run
        """
        if num_processes is None:
            self.num_processes = get_optimal_process_count()
        else:
            self.num_processes = max(1, num_processes)

        if band_height < 1:
            raise ValueError("band_height must be >= 1")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.band_height = band_height
        self.poll_interval = poll_interval
        logger.info(f"Parallel renderer: {self.num_processes} processes, {band_height}-row bands")

    def render(self, color_fn: Callable, viewport: Viewport,
               cancel_token: Optional[CancellationToken] = None) -> np.ndarray:
        """
        Render the full viewport using parallel row bands.

        Workers check the token's deadline between rows. An explicit
        cancel() is seen by this process within ``poll_interval``; bands
        already running in a worker are then abandoned, not joined.

        Args:
            color_fn: Picklable color function
            viewport: Pixel to plane mapping
            cancel_token: Optional cancellation token

        Returns:
            uint8 grid of shape (height, width, 4)

        Raises:
            RenderCancelled: if the token is cancelled before all bands finish
        """
        start_time = time.time()
        grid = np.zeros((viewport.height, viewport.width, 4), dtype=np.uint8)
        bands = create_row_bands(viewport.height, self.band_height)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        deadline = cancel_token.deadline if cancel_token is not None else None

        logger.info(f"Processing {len(bands)} bands with {self.num_processes} processes")

        executor = ProcessPoolExecutor(max_workers=self.num_processes)
        try:
            future_to_band = {executor.submit(render_band, (color_fn, viewport, band, deadline)): band
                              for band in bands}
            pending = set(future_to_band)
            completed = 0
            processing_time = 0.0

            while pending:
                done, pending = wait(pending, timeout=self.poll_interval,
                                     return_when=FIRST_COMPLETED)
                for future in done:
                    band = future_to_band[future]
                    result = future.result()
                    grid[band.row_start:band.row_stop] = result.pixels
                    processing_time += result.processing_time
                    completed += 1

                    if completed % max(1, len(bands) // 10) == 0:
                        progress = (completed / len(bands)) * 100
                        logger.debug(f"Completed {completed}/{len(bands)} bands ({progress:.1f}%)")

                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        total_time = time.time() - start_time
        logger.info(f"Parallel rendering complete: {total_time:.2f}s total, "
                    f"{processing_time:.2f}s processing time")
        return grid
