"""
Rendering options and the viewport projection onto the complex plane.

A render is described by the plane bounds, a zoom factor applied about the
centre of those bounds, and the pixel dimensions of the output image.
"""

import json
import math
from dataclasses import dataclass, asdict, replace, fields
from typing import Dict, Any, Mapping, Tuple
import logging

from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderingOptions:
    """Plane bounds, zoom and image size for one render."""

    xmin: float = -2.0
    xmax: float = 2.0
    ymin: float = -2.0
    ymax: float = 2.0
    zoom: float = 1.0
    width: int = 1024
    height: int = 1024

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Plane bounds as (xmin, xmax, ymin, ymax)."""
        return (self.xmin, self.xmax, self.ymin, self.ymax)

    def validate(self) -> None:
        """
        Check every invariant and report all violations at once.

        Raises:
            InvalidConfiguration: if any bound, the zoom or the size is unusable
        """
        problems = []

        for name in ('xmin', 'xmax', 'ymin', 'ymax', 'zoom'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                problems.append(f"{name} must be a number")
            elif not math.isfinite(value):
                problems.append(f"{name} must be a finite number")

        for name in ('width', 'height'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                problems.append(f"{name} must be an integer")
            elif value <= 0:
                problems.append(f"{name} must be positive, got {value}")

        if problems:
            raise InvalidConfiguration(problems)

        if self.xmax <= self.xmin:
            problems.append(f"xmax ({self.xmax}) must be greater than xmin ({self.xmin})")
        if self.ymax <= self.ymin:
            problems.append(f"ymax ({self.ymax}) must be greater than ymin ({self.ymin})")
        if self.zoom <= 0:
            problems.append(f"zoom must be positive, got {self.zoom}")

        if not problems:
            # A zoom can still collapse or blow up the span in floating point
            xspan = (self.xmax - self.xmin) / self.zoom
            yspan = (self.ymax - self.ymin) / self.zoom
            if not (math.isfinite(xspan) and xspan > 0):
                problems.append(f"zoom {self.zoom} gives a degenerate x span ({xspan})")
            if not (math.isfinite(yspan) and yspan > 0):
                problems.append(f"zoom {self.zoom} gives a degenerate y span ({yspan})")

        if problems:
            raise InvalidConfiguration(problems)

    def replace(self, **changes) -> 'RenderingOptions':
        """Return a copy with some fields changed."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert options to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderingOptions':
        """Create options from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown rendering options: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in known})


DEFAULT_OPTIONS = RenderingOptions()

_FLOAT_KEYS = ('xmin', 'xmax', 'ymin', 'ymax', 'zoom')
_INT_KEYS = ('width', 'height')


def parse_options(params: Mapping[str, str],
                  defaults: RenderingOptions = DEFAULT_OPTIONS) -> RenderingOptions:
    """
    Build options from string parameters such as an HTTP query.

    Missing, empty or unparsable values fall back to the default for that
    key. The result is not validated here; the renderer does that before
    any pixel work.

    Args:
        params: Mapping of option name to raw string value
        defaults: Values used for anything not supplied

    Returns:
        Parsed rendering options
    """
    values = defaults.to_dict()

    for key in _FLOAT_KEYS:
        raw = params.get(key)
        if raw in (None, ''):
            continue
        try:
            values[key] = float(raw)
        except (TypeError, ValueError):
            logger.warning(f"Could not parse {key}={raw!r}, using default {values[key]}")

    for key in _INT_KEYS:
        raw = params.get(key)
        if raw in (None, ''):
            continue
        try:
            values[key] = int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Could not parse {key}={raw!r}, using default {values[key]}")

    return RenderingOptions(**values)


@dataclass(frozen=True)
class Viewport:
    """Maps pixel coordinates onto the zoomed region of the complex plane."""

    xstart: float
    ystart: float
    xspan: float
    yspan: float
    width: int
    height: int

    @classmethod
    def from_options(cls, options: RenderingOptions) -> 'Viewport':
        """Centre the zoomed spans on the midpoint of the original bounds."""
        xspan = (options.xmax - options.xmin) / options.zoom
        yspan = (options.ymax - options.ymin) / options.zoom
        xstart = (options.xmin + options.xmax) / 2 - xspan / 2
        ystart = (options.ymin + options.ymax) / 2 - yspan / 2
        return cls(xstart, ystart, xspan, yspan, options.width, options.height)

    def pixel_to_complex(self, px: float, py: float) -> complex:
        """Convert (possibly fractional) pixel coordinates to a complex number."""
        x = px / self.width * self.xspan + self.xstart
        y = py / self.height * self.yspan + self.ystart
        return complex(x, y)

    @property
    def center(self) -> complex:
        """Complex coordinate at the middle of the viewport."""
        return complex(self.xstart + self.xspan / 2, self.ystart + self.yspan / 2)


def load_options_file(path, defaults: RenderingOptions = DEFAULT_OPTIONS) -> RenderingOptions:
    """
    Load option defaults from a JSON object file.

    Keys present in the file override ``defaults``; unknown keys are
    ignored with a warning.

    Raises:
        InvalidConfiguration: if the file is not a JSON object
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfiguration(f"{path}: invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise InvalidConfiguration(f"{path}: expected a JSON object of rendering options")

    logger.info(f"Loaded rendering options from {path}")
    return RenderingOptions.from_dict({**defaults.to_dict(), **data})
