"""
PNG export for rendered pixel grids.

Grids are written as 8-bit RGBA PNG images to a file path or to any
writable binary stream. Render parameters can be embedded as PNG text
chunks and read back later.
"""

import json
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

import numpy as np
from PIL import Image, PngImagePlugin

from .. import __version__
from ..core.errors import EncodeFailure

logger = logging.getLogger(__name__)

Sink = Union[str, Path, BinaryIO]

METADATA_KEY = "FractalMetadata"


@dataclass
class RenderMetadata:
    """Metadata for a render."""

    function: str
    bounds: Tuple[float, float, float, float]  # xmin, xmax, ymin, ymax
    zoom: float
    resolution: Tuple[int, int]  # width, height

    # Timing and performance
    render_time_seconds: float = 0.0
    workers: int = 1

    # Generation info
    timestamp: str = ""
    software_version: str = __version__
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderMetadata':
        """Create metadata from dictionary."""
        data = dict(data)
        data['bounds'] = tuple(data['bounds'])
        data['resolution'] = tuple(data['resolution'])
        return cls(**data)

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'RenderMetadata':
        """Create metadata from JSON string."""
        return cls.from_dict(json.loads(json_str))


class ImageExporter:
    """PNG encoder for RGBA pixel grids."""

    def __init__(self, compress_level: int = 6):
        """
        Args:
            compress_level: zlib level, 0 (none) to 9 (max)
        """
        if not 0 <= compress_level <= 9:
            raise ValueError("compress_level must be between 0 and 9")
        self.compress_level = compress_level

    def _prepare_grid(self, grid: np.ndarray) -> np.ndarray:
        """Validate the pixel grid layout."""
        if grid.ndim != 3 or grid.shape[2] != 4:
            raise ValueError(f"Expected RGBA grid (H, W, 4), got {grid.shape}")
        if grid.dtype != np.uint8:
            raise ValueError(f"Expected uint8 grid, got {grid.dtype}")
        return np.ascontiguousarray(grid)

    def _pnginfo(self, metadata: Optional[RenderMetadata]) -> PngImagePlugin.PngInfo:
        pnginfo = PngImagePlugin.PngInfo()
        if metadata:
            pnginfo.add_text("Title", f"Fractal: {metadata.function}")
            pnginfo.add_text("Software", f"complex-fractals v{metadata.software_version}")
            pnginfo.add_text("Creation Time", metadata.timestamp)
            pnginfo.add_text(METADATA_KEY, metadata.to_json())
        return pnginfo

    def encode(self, grid: np.ndarray, sink: Sink,
               metadata: Optional[RenderMetadata] = None) -> None:
        """
        Encode a grid as PNG into a path or writable binary stream.

        Args:
            grid: uint8 array of shape (height, width, 4)
            sink: Output path or object with a binary write()
            metadata: Render metadata to embed

        Raises:
            EncodeFailure: if the grid cannot be encoded or written
        """
        try:
            pil_image = Image.fromarray(self._prepare_grid(grid))
            pil_image.save(sink, "PNG", pnginfo=self._pnginfo(metadata),
                           compress_level=self.compress_level)
        except Exception as e:
            raise EncodeFailure(f"Could not encode PNG to {sink!r}: {e}", grid=grid) from e

        logger.debug(f"Encoded {grid.shape[1]}x{grid.shape[0]} PNG")

    def save(self, grid: np.ndarray, filepath: Union[str, Path],
             metadata: Optional[RenderMetadata] = None) -> Path:
        """
        Save a grid to a PNG file, creating parent directories.

        Returns:
            The path written
        """
        filepath = Path(filepath)
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EncodeFailure(f"Could not create {filepath.parent}: {e}", grid=grid) from e

        self.encode(grid, filepath, metadata)
        logger.info(f"Saved image: {filepath} ({grid.shape[1]}x{grid.shape[0]})")
        return filepath

    def read_metadata(self, source: Sink) -> Optional[RenderMetadata]:
        """
        Extract render metadata from a PNG written by encode().

        Args:
            source: Path or readable binary stream

        Returns:
            Extracted metadata or None
        """
        with Image.open(source) as img:
            text = getattr(img, 'text', {})
            if METADATA_KEY not in text:
                return None
            return RenderMetadata.from_json(text[METADATA_KEY])
