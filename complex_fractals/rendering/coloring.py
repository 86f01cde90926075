"""
Color strategies for functions over the complex plane.

Each strategy maps a single complex number to a color value:

- divergence hue: escape time of z -> z^2 + c mapped through HSV
- root shade: which root of z^4 - 1 Newton's method reaches, and how fast
- direct map: real and imaginary parts of acos(z) or sqrt(z) used as chroma

Color values expose ``rgba64()``, the 16-bit alpha-premultiplied channel
values that supersampling averages over.
"""

import cmath
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)

RGBA64 = Tuple[int, int, int, int]


@dataclass(frozen=True)
class RGBA:
    """8-bit RGBA color."""
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self):
        """Validate channel values."""
        for component in (self.r, self.g, self.b, self.a):
            if not 0 <= component <= 255:
                raise ValueError("RGBA components must be between 0 and 255")

    def rgba64(self) -> RGBA64:
        """Widen each channel to 16 bits."""
        return (self.r * 0x101, self.g * 0x101, self.b * 0x101, self.a * 0x101)

    def to_tuple(self) -> Tuple[int, int, int, int]:
        """Convert to an (r, g, b, a) tuple."""
        return (self.r, self.g, self.b, self.a)


def _clamp_ycbcr_channel(value: int) -> int:
    # 24-bit fixed point result; out of range values saturate
    if 0 <= value <= 0xffffff:
        return value >> 8
    return 0 if value < 0 else 0xffff


@dataclass(frozen=True)
class YCbCr:
    """8-bit Y'CbCr color (JFIF full range)."""
    y: int
    cb: int
    cr: int

    def __post_init__(self):
        """Validate channel values."""
        for component in (self.y, self.cb, self.cr):
            if not 0 <= component <= 255:
                raise ValueError("YCbCr components must be between 0 and 255")

    def rgba64(self) -> RGBA64:
        """
        Convert to 16-bit RGBA using fixed-point JFIF coefficients.

        R = Y + 1.40200*(Cr-128)
        G = Y - 0.34414*(Cb-128) - 0.71414*(Cr-128)
        B = Y + 1.77200*(Cb-128)
        """
        yy = self.y * 0x10101
        cb = self.cb - 128
        cr = self.cr - 128

        r = _clamp_ycbcr_channel(yy + 91881 * cr)
        g = _clamp_ycbcr_channel(yy - 22554 * cb - 46802 * cr)
        b = _clamp_ycbcr_channel(yy + 116130 * cb)
        return (r, g, b, 0xffff)


Color = Union[RGBA, YCbCr]

BLACK = RGBA(0, 0, 0, 255)


def hsv_to_rgb(h: float, s: float, v: float) -> RGBA:
    """
    Convert HSV (each 0-1) to an 8-bit RGBA color.

    Components are truncated, not rounded, when scaled to 0-255.
    """
    i = int(h * 6)
    f = h * 6 - i
    p = v * (1 - s)
    q = v * (1 - f * s)
    t = v * (1 - (1 - f) * s)

    sector = i % 6
    if sector == 0:
        rgb = (v, t, p)
    elif sector == 1:
        rgb = (q, v, p)
    elif sector == 2:
        rgb = (p, v, t)
    elif sector == 3:
        rgb = (p, q, v)
    elif sector == 4:
        rgb = (t, p, v)
    else:
        rgb = (v, p, q)

    return RGBA(*(int(c * 255) for c in rgb), 255)


class ColorFunction(ABC):
    """A pure mapping from one complex number to one color."""

    name: str = "abstract"

    @abstractmethod
    def __call__(self, z: complex) -> Color:
        """
        Compute the color for a point of the complex plane.

        Args:
            z: Point to color

        Returns:
            RGBA or YCbCr color value
        """
        pass

    def get_description(self) -> str:
        """Get a description of this color function."""
        return f"{self.name} coloring"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class DivergenceHue(ColorFunction):
    """Escape-time coloring of the Mandelbrot set."""

    name = "mandelbrot"

    def __init__(self, iterations: int = 200, escape_radius: float = 2.0):
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        if escape_radius <= 0:
            raise ValueError("escape_radius must be positive")
        self.iterations = iterations
        self.escape_radius = escape_radius

    def __call__(self, z: complex) -> Color:
        v = 0j
        for n in range(self.iterations):
            v = v * v + z
            # hypot saturates to inf instead of raising like abs() on complex
            if math.hypot(v.real, v.imag) > self.escape_radius:
                return hsv_to_rgb(n / self.iterations, 1, 1)
        return BLACK

    def get_description(self) -> str:
        return (f"Mandelbrot set: v -> v^2 + z from v = 0, hue by escape iteration "
                f"({self.iterations} iterations, escape radius {self.escape_radius})")


NEWTON_ROOTS = (1 + 0j, -1 + 0j, 1j, -1j)


class RootShade(ColorFunction):
    """
    Newton's method for f(z) = z^4 - 1.

    z' = z - f(z)/f'(z)
       = z - (z^4 - 1) / (4 * z^3)

    The root reached picks the hue (red, green, blue, yellow for 1, -1, i, -i)
    and the number of steps taken picks the shade.
    """

    name = "newton"

    def __init__(self, iterations: int = 37, epsilon: float = 1e-6):
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        if epsilon <= 0:
            raise ValueError("epsilon must be positive")
        self.iterations = iterations
        self.epsilon = epsilon

    def _root_color(self, root_index: int, n: int) -> RGBA:
        shade = 255 - (255 * n) // self.iterations
        if root_index == 0:
            return RGBA(shade, 0, 0, 255)
        elif root_index == 1:
            return RGBA(0, shade, 0, 255)
        elif root_index == 2:
            return RGBA(0, 0, shade, 255)
        return RGBA(shade, shade, 0, 255)

    def __call__(self, z: complex) -> Color:
        for n in range(self.iterations):
            cube = z * z * z
            derivative = 4 * z * z * z
            if derivative == 0:
                # No tangent to follow; the orbit can never reach a root
                return BLACK
            z = z - (cube * z - 1) / derivative
            for i, root in enumerate(NEWTON_ROOTS):
                delta = z - root
                if math.hypot(delta.real, delta.imag) < self.epsilon:
                    return self._root_color(i, n)
        return BLACK

    def get_description(self) -> str:
        return (f"Newton fractal for z^4 - 1: hue by root, shade by steps "
                f"({self.iterations} iterations, tolerance {self.epsilon})")


_INT64_LIMIT = 2.0 ** 63


def _chroma(component: float) -> int:
    """
    Scale a component into a chroma byte centred on 127.

    The scaled value is truncated toward zero through a signed 64-bit
    integer and wrapped into a byte. Values that do not fit in 64 bits,
    or are not finite, convert to the int64 sentinel whose low byte is 0,
    so they come out as 127.
    """
    scaled = component * 128
    if not (math.isfinite(scaled) and -_INT64_LIMIT <= scaled < _INT64_LIMIT):
        return 127
    return (int(scaled) + 127) & 0xff


class DirectMap(ColorFunction):
    """Colors a point by the real and imaginary parts of a single transform."""

    def __init__(self, name: str, transform: Callable[[complex], complex], luma: int):
        if not 0 <= luma <= 255:
            raise ValueError("luma must be between 0 and 255")
        self.name = name
        self.transform = transform
        self.luma = luma

    def __call__(self, z: complex) -> Color:
        w = self.transform(z)
        return YCbCr(self.luma, _chroma(w.real), _chroma(w.imag))

    def get_description(self) -> str:
        return f"{self.name}(z): Cb from the real part, Cr from the imaginary part, Y={self.luma}"


def acos_map() -> DirectMap:
    """Direct map of the complex inverse cosine."""
    return DirectMap("acos", cmath.acos, 192)


def sqrt_map() -> DirectMap:
    """Direct map of the complex square root."""
    return DirectMap("sqrt", cmath.sqrt, 128)


DEFAULT_FUNCTION = "mandelbrot"

BUILTIN_FUNCTIONS: Dict[str, Callable[..., ColorFunction]] = {
    'mandelbrot': DivergenceHue,
    'newton': RootShade,
    'acos': acos_map,
    'sqrt': sqrt_map,
}


class ColorFunctionRegistry:
    """
    Name to color function lookup.

    Each registry owns its table, so functions registered on one renderer
    or app are never visible to another.
    """

    def __init__(self, functions: Optional[Mapping[str, Callable[..., ColorFunction]]] = None):
        """
        Args:
            functions: Initial name to factory table (defaults to the built-in functions)
        """
        table = BUILTIN_FUNCTIONS if functions is None else functions
        self._functions: Dict[str, Callable[..., ColorFunction]] = {
            name.lower(): factory for name, factory in table.items()
        }
        if DEFAULT_FUNCTION not in self._functions:
            raise ValueError(f"Registry must provide the '{DEFAULT_FUNCTION}' fallback")

    def register(self, name: str, factory: Callable[..., ColorFunction]) -> None:
        """
        Register a new color function.

        Args:
            name: Unique identifier for the function
            factory: Callable returning a ColorFunction
        """
        if not callable(factory):
            raise ValueError("Color function factory must be callable")
        self._functions[name.lower()] = factory
        logger.info(f"Registered color function: {name}")

    def names(self) -> List[str]:
        """Names of all registered color functions."""
        return list(self._functions.keys())

    def get(self, name: str, **kwargs) -> ColorFunction:
        """
        Create a color function by name.

        Raises:
            KeyError: if the name is not registered
        """
        factory = self._functions.get(name.lower())
        if factory is None:
            available = ', '.join(self._functions.keys())
            raise KeyError(f"Unknown color function '{name}'. Available: {available}")
        return factory(**kwargs)

    def resolve(self, name: str) -> ColorFunction:
        """
        Create a color function by name, falling back to the default.

        Unknown names are not an error: a warning is logged and the
        Mandelbrot coloring is used instead.
        """
        key = (name or '').strip().lower()
        if key not in self._functions:
            logger.warning(f"Unknown function '{name}', falling back to '{DEFAULT_FUNCTION}'")
            key = DEFAULT_FUNCTION
        return self._functions[key]()

    def describe(self) -> Dict[str, str]:
        """Get a dictionary of available functions and their descriptions."""
        return {name: factory().get_description() for name, factory in self._functions.items()}
