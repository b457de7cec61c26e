"""Adapters for the external raster capabilities: decoding and tracing.

AIDEV-NOTE: Decoding/resizing is Pillow; bitmap tracing is the potrace
algorithm from the `potracer` distribution (imported as `potrace`). The
rest of the pipeline only sees numpy buffers and path-command strings.
"""

import io
import logging
from dataclasses import dataclass

import numpy as np
import potrace
from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import DecodeError, TraceError
from ..models import MAX_DIMENSION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceOptions:
    """Tracer parameters derived from the detail slider."""

    min_feature_size: int = 2  # Drop outlines enclosing <= this many px
    curve_tolerance: float = 0.2  # Curve optimization tolerance
    threshold: int = 128  # Pixels below this are foreground
    invert: bool = False  # Trace light pixels instead of dark ones
    alphamax: float = 1.0  # Corner/curve smoothness


@dataclass
class TraceResult:
    """Path commands emitted by the tracer."""

    commands: "list[str]"
    bbox: "tuple[float, float, float, float]"  # (min_x, min_y, max_x, max_y)


def resize_to_limit(
    image: Image.Image, max_dimension: int = MAX_DIMENSION
) -> Image.Image:
    """Scale down proportionally if either side exceeds max_dimension.

    Never upscales.
    """
    width, height = image.size
    if width <= max_dimension and height <= max_dimension:
        return image

    scale = max_dimension / max(width, height)
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    logger.info(
        "Resizing %dx%d image to %dx%d", width, height, new_size[0], new_size[1]
    )
    return image.resize(new_size, Image.Resampling.LANCZOS)


def load_image(data: bytes) -> Image.Image:
    """Decode image bytes into an RGBA Pillow image.

    Raises:
        DecodeError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        # AIDEV-NOTE: Honour camera orientation before anything else
        image = ImageOps.exif_transpose(image)
        # AIDEV-NOTE: Always convert to RGBA for consistent processing
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return image
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Failed to load image: {e}") from e


def decode_and_resize(
    data: bytes, max_dimension: int = MAX_DIMENSION
) -> "tuple[np.ndarray, int, int]":
    """Decode bytes and bound their size.

    Returns:
        Tuple of (RGBA array of shape (H, W, 4), width, height)
    """
    image = resize_to_limit(load_image(data), max_dimension)
    width, height = image.size
    return np.asarray(image, dtype=np.uint8), width, height


def _fmt(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def curve_to_commands(curve) -> str:
    """Serialize one potrace curve as absolute M/L/C/Z path data."""
    start = curve.start_point
    parts = [f"M{_fmt(start.x)},{_fmt(start.y)}"]

    for segment in curve.segments:
        end = segment.end_point
        if segment.is_corner:
            corner = segment.c
            parts.append(
                f"L{_fmt(corner.x)},{_fmt(corner.y)}"
                f"L{_fmt(end.x)},{_fmt(end.y)}"
            )
        else:
            c1, c2 = segment.c1, segment.c2
            parts.append(
                f"C{_fmt(c1.x)},{_fmt(c1.y)} "
                f"{_fmt(c2.x)},{_fmt(c2.y)} "
                f"{_fmt(end.x)},{_fmt(end.y)}"
            )

    parts.append("Z")
    return "".join(parts)


def trace_binary_bitmap(
    bitmap: np.ndarray, options: TraceOptions = TraceOptions()
) -> TraceResult:
    """Trace the dark regions of a single-channel bitmap.

    Args:
        bitmap: Grayscale or binary buffer, shape (H, W), dtype uint8
        options: Tracer parameters

    Returns:
        TraceResult with one closed path-command string per outline

    Raises:
        TraceError: If the input is unusable or the tracer fails
    """
    gray = np.asarray(bitmap)
    if gray.ndim != 2 or gray.size == 0:
        raise TraceError(f"Expected a non-empty 2D bitmap, got shape {gray.shape}")

    foreground = gray < options.threshold
    if options.invert:
        foreground = ~foreground

    height, width = gray.shape
    bbox = (0.0, 0.0, float(width), float(height))
    if not foreground.any():
        return TraceResult(commands=[], bbox=bbox)

    try:
        # potrace treats True as white for boolean input
        traced = potrace.Bitmap(~foreground).trace(
            turdsize=options.min_feature_size,
            alphamax=options.alphamax,
            opticurve=True,
            opttolerance=options.curve_tolerance,
        )
    except (ValueError, IndexError, ArithmeticError, MemoryError, RecursionError) as e:
        raise TraceError(f"Tracing failed: {e}") from e

    commands = [curve_to_commands(curve) for curve in traced]
    logger.debug("Traced %d outlines from %dx%d bitmap", len(commands), width, height)
    return TraceResult(commands=commands, bbox=bbox)
