"""
Rendering of functions over the complex plane.

This library renders PNG images of escape-time fractals (Mandelbrot),
root-convergence fractals (Newton's method on z^4 - 1) and direct
colorings of complex functions (acos, sqrt), antialiased with 2x2
sub-pixel supersampling.

Key Features:
- Four color functions selected by name, with a Mandelbrot fallback
- Zoom about the centre of the requested bounds
- Band-parallel rendering across worker processes
- PNG output to any file or binary stream, with embedded render metadata
- Command-line tool and an on-demand HTTP endpoint

Example usage:
    >>> from complex_fractals import RenderingOptions, render
    >>> options = RenderingOptions(width=256, height=256, zoom=2)
    >>> with open("newton.png", "wb") as fh:
    ...     grid = render(fh, "newton", options)
"""

__version__ = "1.0.0"
__author__ = "Complex Fractals Team"

from complex_fractals.core.errors import FractalError, InvalidConfiguration, EncodeFailure, RenderCancelled
from complex_fractals.core.options import RenderingOptions, Viewport, DEFAULT_OPTIONS, parse_options
from complex_fractals.core.sampling import CancellationToken
from complex_fractals.rendering.coloring import ColorFunction, ColorFunctionRegistry, RGBA, YCbCr
from complex_fractals.rendering.image_output import ImageExporter, RenderMetadata

# Main API
from complex_fractals.api import FractalRenderer, RenderConfig, render, render_to_file, render_to_bytes

__all__ = [
    "FractalRenderer",
    "RenderConfig",
    "render",
    "render_to_file",
    "render_to_bytes",
    "RenderingOptions",
    "Viewport",
    "DEFAULT_OPTIONS",
    "parse_options",
    "CancellationToken",
    "ColorFunction",
    "ColorFunctionRegistry",
    "RGBA",
    "YCbCr",
    "ImageExporter",
    "RenderMetadata",
    "FractalError",
    "InvalidConfiguration",
    "EncodeFailure",
    "RenderCancelled",
]
