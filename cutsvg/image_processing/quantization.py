"""Color quantization for multicolor layer separation.

AIDEV-NOTE: This module reduces an RGBA image to a small palette and a
per-pixel assignment map. K-means (scikit-learn, k-means++ seeding) is the
default; Pillow's median cut is the cheaper alternative. Distances are
measured in CIE L*a*b* or in channel-weighted RGB. LAB values are only
used for comparisons; palettes are always device RGB.
"""

import logging
import math

import numpy as np
from PIL import Image
from skimage.color import lab2rgb, rgb2lab
from sklearn.cluster import KMeans, kmeans_plusplus
from sklearn.metrics import pairwise_distances_argmin
from sklearn.utils import check_random_state

from ..models import Color, ColorSpace, QuantizationMethod

logger = logging.getLogger(__name__)

# Pixels with alpha at or below this are transparent
ALPHA_CUTOFF = 128

# Cluster on a strided subsample above this many opaque pixels
SAMPLE_CAP = 50_000

MAX_ITERATIONS = 20

# Per-channel weights for the weighted RGB metric (R, G, B)
RGB_WEIGHTS = np.sqrt(np.array([2.0, 4.0, 3.0]))

# Max CIE76 distance from the border colour for background removal
BACKGROUND_DISTANCE = 12.0

WHITE: Color = (255, 255, 255)


def luminance(color: Color) -> float:
    """Perceived brightness (0-255) of an RGB colour."""
    r, g, b = color
    return 0.299 * r + 0.587 * g + 0.114 * b


def rgb_to_hex(color: Color) -> str:
    r, g, b = (int(round(max(0, min(255, c)))) for c in color)
    return f"#{r:02x}{g:02x}{b:02x}"


def sort_palette_by_luminance(
    palette: "list[Color]",
) -> "tuple[list[Color], np.ndarray]":
    """Order palette dark to light.

    Returns:
        Tuple of (sorted palette, remap) where remap[old_index] is the
        entry's index in the sorted palette
    """
    order = sorted(range(len(palette)), key=lambda i: luminance(palette[i]))
    remap = np.empty(len(palette), dtype=np.int32)
    remap[order] = np.arange(len(palette), dtype=np.int32)
    return [palette[i] for i in order], remap


def to_color_space(rgb: np.ndarray, space: ColorSpace) -> np.ndarray:
    """Map (N, 3) RGB values (0-255) into the clustering feature space."""
    rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)
    if space == ColorSpace.LAB:
        return rgb2lab((rgb / 255.0).reshape(-1, 1, 3)).reshape(-1, 3)
    elif space == ColorSpace.WEIGHTED_RGB:
        return rgb * RGB_WEIGHTS
    else:
        raise ValueError(f"Unsupported colour space: {space}")


def from_color_space(features: np.ndarray, space: ColorSpace) -> np.ndarray:
    """Inverse of to_color_space, returning (N, 3) RGB floats (0-255)."""
    features = np.asarray(features, dtype=np.float64).reshape(-1, 3)
    if space == ColorSpace.LAB:
        rgb = lab2rgb(features.reshape(-1, 1, 3)).reshape(-1, 3) * 255.0
    else:
        rgb = features / RGB_WEIGHTS
    return np.clip(rgb, 0, 255)


def _pack(rgb: np.ndarray) -> np.ndarray:
    rgb = rgb.astype(np.uint32)
    return (rgb[:, 0] << 16) | (rgb[:, 1] << 8) | rgb[:, 2]


def _unpack(packed: np.ndarray) -> np.ndarray:
    return np.stack(
        [(packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF], axis=1
    ).astype(np.float64)


def _strided_sample(rgb: np.ndarray) -> np.ndarray:
    if len(rgb) <= SAMPLE_CAP:
        return rgb
    stride = math.ceil(len(rgb) / SAMPLE_CAP)
    return rgb[::stride]


def quantize(
    pixels: np.ndarray,
    k: int,
    space: ColorSpace = ColorSpace.LAB,
    method: QuantizationMethod = QuantizationMethod.KMEANS,
    random_state: "int | np.random.RandomState | None" = None,
) -> "tuple[list[Color], np.ndarray]":
    """Reduce RGBA pixels to a palette of at most k colours.

    Args:
        pixels: RGBA array, shape (H, W, 4) or (N, 4), dtype uint8
        k: Requested palette size (>= 1)
        space: Distance metric for clustering and assignment
        method: K-means or median cut
        random_state: Seed or RandomState for k-means++ seeding

    Returns:
        Tuple of (palette, assignments). Assignments are flat, one per
        input pixel: a palette index, or -1 for transparent pixels.

    AIDEV-NOTE: The palette has exactly min(k, distinct opaque colours)
    entries. With no opaque pixels at all the palette is [white] and every
    assignment is 0, never an empty palette.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    flat = np.asarray(pixels, dtype=np.uint8).reshape(-1, 4)
    opaque = flat[:, 3] > ALPHA_CUTOFF

    if not opaque.any():
        logger.debug("No opaque pixels, returning white palette")
        return [WHITE], np.zeros(len(flat), dtype=np.int32)

    opaque_rgb = flat[opaque, :3]

    # Cluster distinct colours once and broadcast back through `inverse`
    packed, inverse, counts = np.unique(
        _pack(opaque_rgb), return_inverse=True, return_counts=True
    )
    inverse = inverse.reshape(-1)
    distinct_rgb = _unpack(packed)
    distinct_features = to_color_space(distinct_rgb, space)

    sample = _strided_sample(opaque_rgb)
    sample_packed = np.unique(_pack(sample))
    k = min(k, len(sample_packed))

    if method == QuantizationMethod.KMEANS:
        centers = _kmeans_centers(sample, k, space, random_state)
    elif method == QuantizationMethod.MEDIAN_CUT:
        centers = to_color_space(_median_cut_palette(sample, k), space)
    else:
        raise ValueError(f"Unsupported quantization method: {method}")

    distinct_labels = pairwise_distances_argmin(distinct_features, centers)
    palette = _cluster_means(
        distinct_rgb, counts, distinct_labels, from_color_space(centers, space)
    )

    assignments = np.full(len(flat), -1, dtype=np.int32)
    assignments[opaque] = distinct_labels[inverse]

    logger.debug(
        "Quantized %d opaque pixels (%d distinct) to %d colours",
        len(opaque_rgb),
        len(packed),
        len(palette),
    )
    return palette, assignments


def _kmeans_centers(
    sample: np.ndarray,
    k: int,
    space: ColorSpace,
    random_state,
) -> np.ndarray:
    """K-means++ seeding followed by Lloyd iterations.

    AIDEV-NOTE: One local trial makes kmeans_plusplus the textbook
    k-means++ (first centre uniform, then D^2 sampling). tol=0 means Lloyd
    stops only when assignments stop changing or after MAX_ITERATIONS.
    """
    rng = check_random_state(random_state)
    features = to_color_space(sample, space)

    init, _ = kmeans_plusplus(features, k, random_state=rng, n_local_trials=1)

    kmeans = KMeans(
        n_clusters=k,
        init=init,
        n_init=1,
        max_iter=MAX_ITERATIONS,
        tol=0.0,
        algorithm="lloyd",
        random_state=rng,
    )
    kmeans.fit(features)
    logger.debug("K-means converged after %d iterations", kmeans.n_iter_)
    return kmeans.cluster_centers_


def _median_cut_palette(sample: np.ndarray, k: int) -> np.ndarray:
    """Pillow median-cut palette of at most k colours."""
    strip = Image.fromarray(
        np.ascontiguousarray(sample.reshape(1, -1, 3), dtype=np.uint8)
    )
    quantized = strip.quantize(colors=k, method=Image.Quantize.MEDIANCUT)

    palette_data = quantized.getpalette() or []
    used = sorted(index for _, index in quantized.getcolors(maxcolors=256))
    colors = [palette_data[3 * i : 3 * i + 3] for i in used]
    if not colors:
        colors = [list(WHITE)]
    return np.asarray(colors, dtype=np.float64)


def _cluster_means(
    distinct_rgb: np.ndarray,
    counts: np.ndarray,
    labels: np.ndarray,
    fallback_rgb: np.ndarray,
) -> "list[Color]":
    """Channel-wise mean RGB of every cluster's member pixels.

    Clusters that end up with no members keep their centre colour.
    """
    n_clusters = len(fallback_rgb)
    totals = np.bincount(labels, weights=counts, minlength=n_clusters)

    palette = []
    for cluster in range(n_clusters):
        if totals[cluster] > 0:
            members = labels == cluster
            weights = counts[members]
            mean = (distinct_rgb[members] * weights[:, None]).sum(axis=0)
            mean /= totals[cluster]
        else:
            mean = fallback_rgb[cluster]
        palette.append(tuple(int(c) for c in np.rint(mean)))
    return palette


def find_background_color(pixels: np.ndarray) -> "Color | None":
    """Average colour of the opaque pixels on the image border.

    Args:
        pixels: RGBA array, shape (H, W, 4)

    Returns:
        Mean RGB of opaque border pixels, or None if none are opaque
    """
    rgba = np.asarray(pixels)
    border = np.concatenate(
        [rgba[0, :], rgba[-1, :], rgba[1:-1, 0], rgba[1:-1, -1]]
    )
    opaque = border[border[:, 3] > ALPHA_CUTOFF, :3]
    if len(opaque) == 0:
        return None
    mean = np.rint(opaque.astype(np.float64).mean(axis=0))
    return tuple(int(c) for c in mean)


def remove_background(
    pixels: np.ndarray,
    max_distance: float = BACKGROUND_DISTANCE,
) -> np.ndarray:
    """Make pixels close to the border colour transparent.

    Args:
        pixels: RGBA array, shape (H, W, 4)
        max_distance: CIE76 distance band around the background estimate

    Returns:
        New RGBA array; the input is left untouched
    """
    rgba = np.array(pixels, dtype=np.uint8, copy=True)
    background = find_background_color(rgba)
    if background is None:
        logger.debug("No opaque border pixels, background left as is")
        return rgba

    flat = rgba.reshape(-1, 4)
    packed, inverse = np.unique(_pack(flat[:, :3]), return_inverse=True)
    inverse = inverse.reshape(-1)
    features = to_color_space(_unpack(packed), ColorSpace.LAB)
    reference = to_color_space(np.array([background]), ColorSpace.LAB)[0]
    close = np.linalg.norm(features - reference, axis=1) < max_distance

    flat[close[inverse], 3] = 0
    logger.info(
        "Removed background %s (%d pixels)",
        rgb_to_hex(background),
        int(close[inverse].sum()),
    )
    return rgba
