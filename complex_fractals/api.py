"""
Main API for rendering functions over the complex plane.

This module combines option validation, color function selection, the
supersampling loop and PNG encoding into a single render call.
"""

import io
import time
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .core.errors import InvalidConfiguration
from .core.options import DEFAULT_OPTIONS, RenderingOptions, Viewport
from .core.sampling import CancellationToken, sample_rows
from .rendering.coloring import ColorFunction, ColorFunctionRegistry
from .rendering.image_output import ImageExporter, RenderMetadata, Sink
from .acceleration.parallel import ParallelBandRenderer, get_optimal_process_count

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Renderer settings that do not change the rendered pixels."""

    # Performance
    workers: Optional[int] = None  # None uses every CPU
    band_height: int = 16
    parallel_threshold: int = 256 * 256  # Smaller renders stay in-process

    # Cancellation
    timeout: Optional[float] = None  # Seconds

    # Output
    embed_metadata: bool = True
    compress_level: int = 6

    def validate(self):
        """Validate configuration parameters."""
        problems = []
        if self.workers is not None and self.workers < 1:
            problems.append("workers must be >= 1")
        if self.band_height < 1:
            problems.append("band_height must be >= 1")
        if self.parallel_threshold < 0:
            problems.append("parallel_threshold must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            problems.append("timeout must be positive")
        if not 0 <= self.compress_level <= 9:
            problems.append("compress_level must be between 0 and 9")
        if problems:
            raise InvalidConfiguration(problems)

    @property
    def effective_workers(self) -> int:
        return self.workers or get_optimal_process_count()


class FractalRenderer:
    """Supersampling renderer for complex-plane color functions."""

    def __init__(self, config: Optional[RenderConfig] = None,
                 registry: Optional[ColorFunctionRegistry] = None):
        """
        Initialize renderer.

        Args:
            config: Renderer settings (uses defaults if None)
            registry: Color functions available by name (built-ins if None)
        """
        self.config = config or RenderConfig()
        self.config.validate()
        self.registry = registry or ColorFunctionRegistry()
        self.image_exporter = ImageExporter(self.config.compress_level)

    def _resolve_function(self, function: Union[str, ColorFunction]) -> ColorFunction:
        if isinstance(function, str):
            return self.registry.resolve(function)
        if not callable(function):
            raise InvalidConfiguration(f"Color function must be a name or callable, got {function!r}")
        return function

    def _compute(self, color_fn: ColorFunction, viewport: Viewport,
                 cancel_token: Optional[CancellationToken]) -> np.ndarray:
        if cancel_token is None and self.config.timeout is not None:
            cancel_token = CancellationToken(self.config.timeout)

        total_pixels = viewport.width * viewport.height
        workers = self.config.effective_workers

        if workers > 1 and total_pixels >= self.config.parallel_threshold:
            logger.info(f"Using parallel render: {workers} processes")
            renderer = ParallelBandRenderer(workers, self.config.band_height)
            return renderer.render(color_fn, viewport, cancel_token)

        logger.info("Using sequential render")
        return sample_rows(color_fn, viewport, 0, viewport.height, cancel_token)

    def compute(self, function: Union[str, ColorFunction], options: RenderingOptions,
                cancel_token: Optional[CancellationToken] = None) -> np.ndarray:
        """
        Compute the pixel grid without encoding it.

        Args:
            function: Color function name or instance
            options: Bounds, zoom and size
            cancel_token: Optional token checked between rows

        Returns:
            uint8 array of shape (height, width, 4)

        Raises:
            InvalidConfiguration: before any pixel work if options are invalid
            RenderCancelled: if the token is cancelled or the timeout passes
        """
        options.validate()
        color_fn = self._resolve_function(function)
        return self._compute(color_fn, Viewport.from_options(options), cancel_token)

    def render(self, sink: Optional[Sink], function: Union[str, ColorFunction],
               options: Optional[RenderingOptions] = None,
               cancel_token: Optional[CancellationToken] = None) -> np.ndarray:
        """
        Render a color function and encode it as PNG.

        Args:
            sink: Output path or writable binary stream; None skips encoding
            function: Color function name or instance; unknown names fall
                back to the Mandelbrot coloring
            options: Bounds, zoom and size (uses defaults if None)
            cancel_token: Optional cancellation token

        Returns:
            The computed RGBA pixel grid

        Raises:
            InvalidConfiguration: if options are invalid
            RenderCancelled: if the render is cancelled
            EncodeFailure: if the grid was computed but could not be written
        """
        options = options or DEFAULT_OPTIONS
        options.validate()
        color_fn = self._resolve_function(function)
        name = getattr(color_fn, 'name', type(color_fn).__name__)
        start_time = time.time()

        logger.info(f"Starting render: {name} {options.width}x{options.height} "
                    f"bounds={options.bounds} zoom={options.zoom}")

        grid = self._compute(color_fn, Viewport.from_options(options), cancel_token)
        render_time = time.time() - start_time

        if sink is not None:
            metadata = None
            if self.config.embed_metadata:
                metadata = RenderMetadata(
                    function=name,
                    bounds=options.bounds,
                    zoom=options.zoom,
                    resolution=(options.width, options.height),
                    render_time_seconds=render_time,
                    workers=self.config.effective_workers,
                )
            self.image_exporter.encode(grid, sink, metadata)

        logger.info(f"Render complete: {time.time() - start_time:.2f}s")
        return grid


def render(sink: Optional[Sink], function_name: Union[str, ColorFunction],
           options: Optional[RenderingOptions] = None,
           config: Optional[RenderConfig] = None) -> np.ndarray:
    """Render once with a fresh renderer. See FractalRenderer.render."""
    return FractalRenderer(config).render(sink, function_name, options)


def render_to_file(filepath: Union[str, Path], function_name: Union[str, ColorFunction],
                   options: Optional[RenderingOptions] = None,
                   config: Optional[RenderConfig] = None) -> Path:
    """
    Render to a PNG file, creating parent directories.

    Returns:
        The path written
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    render(filepath, function_name, options, config)
    logger.info(f"Successfully drew fractal to {filepath}")
    return filepath


def render_to_bytes(function_name: Union[str, ColorFunction],
                    options: Optional[RenderingOptions] = None,
                    config: Optional[RenderConfig] = None) -> bytes:
    """Render and return the encoded PNG bytes."""
    buffer = io.BytesIO()
    render(buffer, function_name, options, config)
    return buffer.getvalue()
