"""Main vectorizer orchestrating the complete pipeline.

AIDEV-NOTE: This module handles the complete pipeline from decoded image
to SVG: bound the image size, dispatch to the mode processor, assemble
the document and time the whole conversion. Settings are validated before
any pixel is touched.
"""

import logging
import time
from pathlib import Path

import numpy as np
from PIL import Image

from ..errors import ConversionError, DecodeError
from ..models import (
    MAX_DIMENSION,
    ConversionResult,
    ConversionStats,
    Layer,
    LineArtOptions,
    MulticolorOptions,
    OutputUnit,
    SilhouetteOptions,
    VectorizationSettings,
)
from .modes import Tracer, process_lineart, process_multicolor, process_silhouette
from .svg_builder import assemble
from .tracing import load_image, resize_to_limit, trace_binary_bitmap
from .utils import cut_length

logger = logging.getLogger(__name__)

# Cutting-machine limits used for conversion warnings
MAX_FILE_SIZE_BYTES = 2 * 1024 * 1024
MAX_DIMENSION_INCHES = 23.5  # Standard 24" mat
MAX_PATHS = 5000
WARN_PATHS = 2000
MAX_POINTS = 10000
WARN_POINTS = 5000
MAX_LAYERS = 8
MM_PER_INCH = 25.4


class Vectorizer:
    """Converts raster images into layered, dimensioned SVG documents."""

    def __init__(
        self,
        tracer: Tracer = trace_binary_bitmap,
        max_dimension: int = MAX_DIMENSION,
        max_workers: int = 1,
    ):
        self.tracer = tracer
        self.max_dimension = max_dimension
        self.max_workers = max_workers

    def convert(
        self, image_bytes: bytes, settings: VectorizationSettings
    ) -> ConversionResult:
        """Convert encoded image bytes (PNG, JPG, ...) to SVG.

        Raises:
            SettingsError: If settings are invalid (before decoding)
            DecodeError: If the bytes are not a readable image
            ConversionError: If tracing fails
        """
        settings.validate()
        start = time.perf_counter()
        image = load_image(image_bytes)
        return self._convert(image, settings, start)

    def convert_file(
        self, file_path: "str | Path", settings: VectorizationSettings
    ) -> ConversionResult:
        """Convert an image file on disk."""
        settings.validate()
        try:
            data = Path(file_path).read_bytes()
        except OSError as e:
            raise DecodeError(f"Failed to read {file_path}: {e}") from e
        return self.convert(data, settings)

    def convert_image(
        self, image: Image.Image, settings: VectorizationSettings
    ) -> ConversionResult:
        """Convert an already-decoded Pillow image."""
        settings.validate()
        start = time.perf_counter()
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return self._convert(image, settings, start)

    def process_layers(
        self, pixels: np.ndarray, settings: VectorizationSettings
    ) -> "list[Layer]":
        """Dispatch to the processor for the settings' mode."""
        options = settings.mode
        if isinstance(options, SilhouetteOptions):
            return process_silhouette(pixels, settings, self.tracer)
        elif isinstance(options, MulticolorOptions):
            return process_multicolor(
                pixels, settings, self.tracer, max_workers=self.max_workers
            )
        elif isinstance(options, LineArtOptions):
            return process_lineart(pixels, settings, self.tracer)
        else:
            raise ConversionError(f"Unknown conversion mode: {options!r}")

    def _convert(
        self,
        image: Image.Image,
        settings: VectorizationSettings,
        start: float,
    ) -> ConversionResult:
        original_width, original_height = image.size
        logger.info(
            "Converting %dx%d image, mode: %s",
            original_width,
            original_height,
            settings.mode_name.value,
        )

        # Scale down image to bound processing load
        image = resize_to_limit(image, self.max_dimension)
        width, height = image.size
        pixels = np.asarray(image, dtype=np.uint8)

        layers = self.process_layers(pixels, settings)
        document, assembly = assemble(layers, settings, width, height)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        stats = ConversionStats(
            total_paths=assembly.total_paths,
            total_points=assembly.total_points,
            processing_time_ms=elapsed_ms,
            original_width=original_width,
            original_height=original_height,
            output_width=assembly.output_width,
            output_height=assembly.output_height,
            svg_size_bytes=assembly.size_bytes,
        )
        # Paths are in traced pixels; report cut length in the output unit
        scale = assembly.output_width / width
        result = ConversionResult(
            svg=document,
            layers=[layer.info(cut_length(layer.paths) * scale) for layer in layers],
            stats=stats,
        )
        result.warnings = cutter_warnings(result, settings)

        logger.info(
            "Conversion complete in %.0f ms: %d layers, %d paths, %d points",
            elapsed_ms,
            len(layers),
            stats.total_paths,
            stats.total_points,
        )
        for warning in result.warnings:
            logger.warning(warning)
        return result


def cutter_warnings(
    result: ConversionResult, settings: VectorizationSettings
) -> "list[str]":
    """Warnings about output that may be hard for cutting software.

    AIDEV-NOTE: These never fail a conversion. "No layers" is reported
    here as a warning, distinct from a raised ConversionError.
    """
    warnings = []
    stats = result.stats

    if not result.layers:
        warnings.append(
            "No cuttable shapes were found. Try a different threshold, "
            "more detail, or another mode."
        )

    if stats.svg_size_bytes > MAX_FILE_SIZE_BYTES:
        size_mb = stats.svg_size_bytes / (1024 * 1024)
        warnings.append(
            f"Large file size ({size_mb:.1f}MB). Files over 2MB may upload "
            f"slowly or fail in cutting software. Consider reducing detail."
        )

    if stats.total_paths > MAX_PATHS:
        warnings.append(
            f"Very high path count ({stats.total_paths:,}). This may freeze "
            f"cutting software. Reduce detail or simplify the image."
        )
    elif stats.total_paths > WARN_PATHS:
        warnings.append(
            f"High path count ({stats.total_paths:,}). Complex designs may "
            f"cut slowly. Consider reducing detail."
        )

    if stats.total_points > MAX_POINTS:
        warnings.append(
            f"Very high point count ({stats.total_points:,}). This complexity "
            f"may cause issues in cutting software."
        )
    elif stats.total_points > WARN_POINTS:
        warnings.append(
            f"High point count ({stats.total_points:,}). Complex paths may "
            f"slow down cutting software."
        )

    largest = max(stats.output_width, stats.output_height)
    largest_inches = largest / MM_PER_INCH if settings.unit == OutputUnit.MM else largest
    if largest_inches > MAX_DIMENSION_INCHES:
        warnings.append(
            f'Design is {largest_inches:.1f}" wide/tall, exceeding the standard '
            f'cutting mat ({MAX_DIMENSION_INCHES}"). You may need to resize or '
            f"tile the design."
        )

    if len(result.layers) > MAX_LAYERS:
        warnings.append(
            f"Many color layers ({len(result.layers)}). Each layer requires "
            f"separate material and alignment. Consider reducing colors."
        )

    return warnings


def convert(
    image_bytes: bytes,
    settings: VectorizationSettings,
    tracer: Tracer = trace_binary_bitmap,
) -> ConversionResult:
    """Convert image bytes with a default Vectorizer."""
    return Vectorizer(tracer=tracer).convert(image_bytes, settings)
