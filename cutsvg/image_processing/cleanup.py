"""Binary cleanup for silhouette tracing.

AIDEV-NOTE: Every step takes a uint8 buffer and returns a new one
(0 = black/cut, 255 = white). Steps run in a fixed order: threshold,
invert, erode, edge-region removal, small-region removal. Erosion must run
before the removal passes so that severed slivers are already
disconnected when components are labelled.
"""

import logging
from typing import TYPE_CHECKING

import numpy as np
from scipy import ndimage

if TYPE_CHECKING:
    from ..models import SilhouetteOptions

logger = logging.getLogger(__name__)

BLACK = 0
WHITE = 255

# 4-connectivity (no diagonals) for region labelling
FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)

# Full 3x3 window for erosion
EIGHT_NEIGHBORHOOD = np.ones((3, 3), dtype=bool)


def _to_binary(black: np.ndarray) -> np.ndarray:
    return np.where(black, BLACK, WHITE).astype(np.uint8)


def count_black(binary: np.ndarray) -> int:
    return int(np.count_nonzero(np.asarray(binary) == BLACK))


def apply_threshold(gray: np.ndarray, threshold: int) -> np.ndarray:
    """Pixels darker than threshold become black, the rest white."""
    return _to_binary(np.asarray(gray) < threshold)


def invert(binary: np.ndarray) -> np.ndarray:
    """Swap black and white."""
    return (WHITE - np.asarray(binary, dtype=np.uint8)).astype(np.uint8)


def erode(binary: np.ndarray, iterations: int) -> np.ndarray:
    """Shrink black regions by about one pixel per iteration.

    A pixel stays black only if its whole 3x3 window is black. Pixels on
    the image border have no full window and always become white.
    """
    black = np.asarray(binary) == BLACK
    if iterations <= 0:
        return _to_binary(black)

    eroded = ndimage.binary_erosion(
        black,
        structure=EIGHT_NEIGHBORHOOD,
        iterations=iterations,
        border_value=0,
    )
    return _to_binary(eroded)


def _label_black(binary: np.ndarray) -> "tuple[np.ndarray, int]":
    black = np.asarray(binary) == BLACK
    return ndimage.label(black, structure=FOUR_CONNECTED)


def remove_edge_regions(binary: np.ndarray) -> np.ndarray:
    """Whiten every black region that touches the image border.

    Equivalent to a 4-connected flood fill seeded from each black border
    pixel.
    """
    labels, count = _label_black(binary)
    if count == 0:
        return np.array(binary, dtype=np.uint8, copy=True)

    border_labels = np.unique(
        np.concatenate(
            [labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1]]
        )
    )
    border_labels = border_labels[border_labels != 0]

    touching = np.isin(labels, border_labels)
    logger.debug("Removing %d border-connected regions", len(border_labels))
    return _to_binary((labels != 0) & ~touching)


def remove_small_regions(binary: np.ndarray, min_region_size: float) -> np.ndarray:
    """Whiten 4-connected black regions below a size threshold.

    Args:
        binary: Binary buffer
        min_region_size: Minimum region size as % of the image area

    Returns:
        New binary buffer without the small regions
    """
    binary = np.asarray(binary, dtype=np.uint8)
    min_pixels = min_region_size / 100.0 * binary.size
    labels, count = _label_black(binary)
    if count == 0 or min_pixels <= 0:
        return binary.copy()

    sizes = np.bincount(labels.ravel(), minlength=count + 1)
    keep = sizes >= min_pixels
    keep[0] = False  # background label

    logger.debug(
        "Removing %d of %d regions smaller than %.1f px",
        int(count - keep[1:].sum()),
        count,
        min_pixels,
    )
    return _to_binary(keep[labels])


def needs_cleanup(options: "SilhouetteOptions") -> bool:
    """True when any cleanup step beyond plain thresholding is active."""
    return (
        options.invert
        or options.remove_edge_regions
        or options.min_region_size > 0
        or options.erosion_level > 0
    )


def cleanup(gray: np.ndarray, options: "SilhouetteOptions") -> np.ndarray:
    """Run the full cleanup pipeline on a grayscale buffer.

    Args:
        gray: Grayscale image, shape (H, W), dtype uint8
        options: Silhouette settings selecting the steps

    Returns:
        Binary buffer (0/255), ready to trace at threshold 128
    """
    binary = apply_threshold(gray, options.threshold)
    logger.debug("Thresholded at %d: %d black pixels", options.threshold, count_black(binary))

    if options.invert:
        binary = invert(binary)

    if options.erosion_level > 0:
        binary = erode(binary, options.erosion_level)
        logger.debug(
            "Eroded %d times: %d black pixels",
            options.erosion_level,
            count_black(binary),
        )

    if options.remove_edge_regions:
        binary = remove_edge_regions(binary)

    if options.min_region_size > 0:
        binary = remove_small_regions(binary, options.min_region_size)

    logger.info("Cleanup left %d black pixels", count_black(binary))
    return binary
