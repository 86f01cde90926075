"""
Exception types raised by the rendering pipeline.

Configuration problems are reported before any pixel work starts, encoder
problems only after the pixel grid has been fully computed.
"""

from typing import Optional

import numpy as np


class FractalError(Exception):
    """Base class for all rendering errors."""


class InvalidConfiguration(FractalError, ValueError):
    """Rendering options or renderer settings violate their invariants."""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class EncodeFailure(FractalError, IOError):
    """The computed pixel grid could not be written to the sink."""

    def __init__(self, message: str, grid: Optional[np.ndarray] = None):
        super().__init__(message)
        # Kept so callers can retry with a different sink
        self.grid = grid


class RenderCancelled(FractalError):
    """A render was cancelled or ran past its deadline."""
