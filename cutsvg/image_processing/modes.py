"""Mode processors turning an RGBA image into vector layers.

AIDEV-NOTE: Each mode converts pixels to binary bitmaps differently,
then shares the same tracing and path post-processing:
- silhouette: threshold (plus optional cleanup) -> one black layer
- multicolor: quantize -> one mask and layer per palette colour
- lineart: Laplacian edge response -> one black outline layer
Detail mappings are per-mode constants and are tuned independently.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

import numpy as np
from PIL import Image
from scipy import ndimage

from ..errors import TraceError
from ..models import (
    BackgroundHandling,
    Layer,
    VectorizationSettings,
)
from .cleanup import cleanup, needs_cleanup
from .quantization import (
    ALPHA_CUTOFF,
    quantize,
    remove_background,
    rgb_to_hex,
    sort_palette_by_luminance,
)
from .svg_parser import paths_from_commands
from .tracing import TraceOptions, TraceResult, trace_binary_bitmap
from .utils import polygon_area

logger = logging.getLogger(__name__)

Tracer = Callable[[np.ndarray, TraceOptions], TraceResult]

BLACK_HEX = "#000000"

# Threshold used once a bitmap is already binary (0/255)
BINARY_THRESHOLD = 128

# 8-neighbour discrete Laplacian
LAPLACIAN_KERNEL = np.array(
    [[-1, -1, -1], [-1, 8, -1], [-1, -1, -1]], dtype=np.float32
)


@dataclass(frozen=True)
class DetailMapping:
    """Linear mapping from the detail slider to tracer parameters.

    Higher detail always gives a smaller (or equal) minimum feature size
    and a smaller curve tolerance, never fewer points.
    """

    feature_divisor: int
    min_feature_floor: int = 2
    tolerance_max: float = 2.0
    tolerance_span: float = 1.8

    def min_feature_size(self, detail: float) -> int:
        return max(self.min_feature_floor, int((100 - detail) // self.feature_divisor))

    def curve_tolerance(self, detail: float) -> float:
        return self.tolerance_max - (detail / 100) * self.tolerance_span

    def trace_options(self, detail: float, threshold: float = BINARY_THRESHOLD) -> TraceOptions:
        return TraceOptions(
            min_feature_size=self.min_feature_size(detail),
            curve_tolerance=self.curve_tolerance(detail),
            threshold=threshold,
        )


SILHOUETTE_DETAIL = DetailMapping(feature_divisor=10)
MULTICOLOR_DETAIL = DetailMapping(feature_divisor=10)
LINEART_DETAIL = DetailMapping(feature_divisor=5)

# Line art: a pixel is an edge when its response exceeds
# LINEART_EDGE_BASE + (100 - detail) * LINEART_EDGE_SLOPE
LINEART_EDGE_BASE = 50.0
LINEART_EDGE_SLOPE = 1.5


def lineart_threshold(detail: float) -> float:
    """Tracer threshold on the inverted edge image for a detail level."""
    cutoff = LINEART_EDGE_BASE + (100 - detail) * LINEART_EDGE_SLOPE
    return 255.0 - cutoff


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """Luma (ITU-R 601) with transparent pixels forced to white.

    Args:
        pixels: RGBA array, shape (H, W, 4)

    Returns:
        New uint8 array, shape (H, W)
    """
    rgba = np.asarray(pixels, dtype=np.uint8)
    rgb = Image.fromarray(np.ascontiguousarray(rgba[..., :3]))
    gray = np.asarray(rgb.convert("L"), dtype=np.uint8)
    return np.where(rgba[..., 3] > ALPHA_CUTOFF, gray, 255).astype(np.uint8)


def process_silhouette(
    pixels: np.ndarray,
    settings: VectorizationSettings,
    tracer: Tracer = trace_binary_bitmap,
) -> "list[Layer]":
    """Render image as a single black cut layer.

    Args:
        pixels: RGBA array, shape (H, W, 4)
        settings: Validated settings with SilhouetteOptions
        tracer: Bitmap tracer

    Returns:
        [Silhouette layer], or [] when nothing was traced

    Raises:
        TraceError: If tracing fails
    """
    options = settings.mode

    if settings.background == BackgroundHandling.REMOVE:
        pixels = remove_background(pixels)

    gray = to_grayscale(pixels)

    if needs_cleanup(options):
        bitmap = cleanup(gray, options)
        threshold = BINARY_THRESHOLD
    else:
        bitmap = gray
        threshold = options.threshold

    result = tracer(bitmap, SILHOUETTE_DETAIL.trace_options(settings.detail, threshold))
    paths = paths_from_commands(
        result.commands, settings.detail, settings.smoothing, fill=BLACK_HEX
    )
    logger.info("Silhouette traced %d paths", len(paths))

    if not paths:
        return []
    return [Layer(id="layer-0", name="Silhouette", color=BLACK_HEX, paths=paths)]


def process_multicolor(
    pixels: np.ndarray,
    settings: VectorizationSettings,
    tracer: Tracer = trace_binary_bitmap,
    max_workers: int = 1,
) -> "list[Layer]":
    """Split image into one layer per quantized colour.

    Args:
        pixels: RGBA array, shape (H, W, 4)
        settings: Validated settings with MulticolorOptions
        tracer: Bitmap tracer
        max_workers: Trace colours on this many threads (1 = sequential)

    Returns:
        Layers in dark-to-light palette order. Colours whose trace fails or
        yields no paths above the area threshold are left out.

    AIDEV-NOTE: A TraceError on one colour is logged and only drops that
    colour. Layer ids and names keep the sorted palette index, so gaps are
    expected when colours are dropped.
    """
    options = settings.mode

    if settings.background == BackgroundHandling.REMOVE:
        pixels = remove_background(pixels)

    height, width = pixels.shape[:2]
    palette, assignments = quantize(
        pixels,
        options.color_layers,
        space=options.color_space,
        method=options.method,
        random_state=options.seed,
    )
    sorted_palette, remap = sort_palette_by_luminance(palette)
    labels = np.where(assignments >= 0, remap[assignments], -1).reshape(height, width)
    logger.info(
        "Palette: %s", ", ".join(rgb_to_hex(color) for color in sorted_palette)
    )

    min_area = width * height * options.min_area_threshold / 100
    trace_options = MULTICOLOR_DETAIL.trace_options(settings.detail)

    def trace_color(index: int) -> "Layer | None":
        color_hex = rgb_to_hex(sorted_palette[index])
        # Cluster members are black; everything else, transparent included, is white
        mask = np.where(labels == index, 0, 255).astype(np.uint8)

        try:
            result = tracer(mask, trace_options)
        except TraceError as e:
            logger.warning("Error tracing colour layer %d (%s): %s", index, color_hex, e)
            return None

        paths = paths_from_commands(
            result.commands, settings.detail, settings.smoothing, fill=color_hex
        )
        # Measured on the outer outline; holes do not count against it
        kept = [path for path in paths if polygon_area(path.points) >= min_area]
        logger.debug(
            "Colour %d (%s): kept %d of %d paths", index, color_hex, len(kept), len(paths)
        )
        if not kept:
            return None
        return Layer(
            id=f"layer-{index}",
            name=f"Color {index + 1}",
            color=color_hex,
            paths=kept,
        )

    indices = range(len(sorted_palette))
    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(sorted_palette))) as executor:
            traced = list(executor.map(trace_color, indices))
    else:
        traced = [trace_color(index) for index in indices]

    layers = [layer for layer in traced if layer is not None]
    logger.info("Multicolor produced %d of %d layers", len(layers), len(sorted_palette))
    return layers


def edge_image(gray: np.ndarray) -> np.ndarray:
    """Black-on-white edge map from a grayscale image.

    The absolute Laplacian response is saturated to 0-255 and inverted,
    so strong edges are 0 and flat areas are 255.
    """
    response = ndimage.convolve(
        np.asarray(gray, dtype=np.float32), LAPLACIAN_KERNEL, mode="nearest"
    )
    strength = np.clip(np.abs(response), 0, 255)
    return (255 - np.rint(strength)).astype(np.uint8)


def process_lineart(
    pixels: np.ndarray,
    settings: VectorizationSettings,
    tracer: Tracer = trace_binary_bitmap,
) -> "list[Layer]":
    """Render image outlines as a single black layer.

    Raises:
        TraceError: If tracing fails
    """
    edges = edge_image(to_grayscale(pixels))
    threshold = lineart_threshold(settings.detail)

    result = tracer(edges, LINEART_DETAIL.trace_options(settings.detail, threshold))
    paths = paths_from_commands(
        result.commands, settings.detail, settings.smoothing, fill=BLACK_HEX
    )
    logger.info("Line art traced %d paths", len(paths))

    if not paths:
        return []
    return [Layer(id="layer-0", name="Line Art", color=BLACK_HEX, paths=paths)]
