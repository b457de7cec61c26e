"""Test colour quantization and background removal.

Tests for cutsvg.image_processing.quantization:
    - Colour helpers (luminance, hex conversion, palette sorting)
    - quantize(): transparency, degenerate input, k capping,
      determinism, member-mean palette, subsampling, both metrics,
      median cut
    - find_background_color() / remove_background()

Run:
    pytest tests/test_quantization.py -v
"""

import numpy as np
import pytest

from cutsvg.image_processing.quantization import (
    SAMPLE_CAP,
    WHITE,
    find_background_color,
    luminance,
    quantize,
    remove_background,
    rgb_to_hex,
    sort_palette_by_luminance,
)
from cutsvg.models import ColorSpace, QuantizationMethod


def test_luminance():
    assert luminance((0, 0, 0)) == 0
    assert luminance((255, 255, 255)) == pytest.approx(255)
    assert luminance((0, 255, 0)) > luminance((255, 0, 0)) > luminance((0, 0, 255))


def test_rgb_to_hex():
    assert rgb_to_hex((255, 0, 16)) == "#ff0010"
    # Out-of-range channels are clamped
    assert rgb_to_hex((300, -5, 127.6)) == "#ff0080"


def test_sort_palette_by_luminance():
    palette = [(255, 255, 255), (0, 0, 0), (255, 0, 0)]
    ordered, remap = sort_palette_by_luminance(palette)
    assert ordered == [(0, 0, 0), (255, 0, 0), (255, 255, 255)]
    assert list(remap) == [2, 0, 1]


def test_quantize_no_opaque_pixels(make_rgba):
    """Fully transparent input gives a white palette, never an empty one."""
    pixels = make_rgba(4, 3, (10, 20, 30), alpha=0)
    palette, assignments = quantize(pixels, 4)
    assert palette == [WHITE]
    assert assignments.shape == (12,)
    assert np.all(assignments == 0)


def test_quantize_marks_transparent_pixels(make_rgba):
    pixels = make_rgba(4, 4, (0, 0, 0))
    pixels[0, :, 3] = 0
    pixels[1, :, 3] = 128  # at the cutoff, still transparent
    _, assignments = quantize(pixels, 2, random_state=0)
    assignments = assignments.reshape(4, 4)
    assert np.all(assignments[:2] == -1)
    assert np.all(assignments[2:] >= 0)


def test_quantize_caps_k_at_distinct_colors(two_tone_image):
    palette, assignments = quantize(two_tone_image, 8, random_state=0)
    assert len(palette) == 2
    assert sorted(palette) == [(20, 20, 220), (220, 20, 20)]

    labels = assignments.reshape(20, 30)
    assert len(np.unique(labels[:, :15])) == 1
    assert len(np.unique(labels[:, 15:])) == 1
    assert labels[0, 0] != labels[0, 29]


def test_quantize_deterministic_with_seed():
    rng = np.random.default_rng(7)
    pixels = np.concatenate(
        [rng.integers(0, 256, size=(400, 3)), np.full((400, 1), 255)], axis=1
    ).astype(np.uint8)

    first = quantize(pixels, 5, random_state=42)
    second = quantize(pixels, 5, random_state=42)
    assert first[0] == second[0]
    np.testing.assert_array_equal(first[1], second[1])


def test_palette_is_member_mean():
    """Each palette entry is the rounded RGB mean of its members."""
    rng = np.random.default_rng(3)
    rgb = rng.integers(0, 256, size=(300, 3))
    pixels = np.concatenate([rgb, np.full((300, 1), 255)], axis=1).astype(np.uint8)

    palette, assignments = quantize(pixels, 4, random_state=1)
    assert len(palette) == 4
    for index, color in enumerate(palette):
        members = rgb[assignments == index]
        expected = tuple(int(c) for c in np.rint(members.mean(axis=0)))
        assert color == expected


def test_quantize_subsamples_large_images(make_rgba):
    """Every opaque pixel is assigned even when clustering on a subsample."""
    pixels = make_rgba(300, 200, (0, 0, 0))
    pixels[:, 150:, :3] = 255
    assert pixels.shape[0] * pixels.shape[1] > SAMPLE_CAP

    palette, assignments = quantize(pixels, 2, random_state=0)
    assert sorted(palette) == [(0, 0, 0), (255, 255, 255)]
    assert np.all(assignments >= 0)
    labels = assignments.reshape(200, 300)
    assert labels[0, 0] != labels[0, 299]


def test_quantize_weighted_rgb(two_tone_image):
    palette, assignments = quantize(
        two_tone_image, 2, space=ColorSpace.WEIGHTED_RGB, random_state=0
    )
    assert sorted(palette) == [(20, 20, 220), (220, 20, 20)]
    labels = assignments.reshape(20, 30)
    assert labels[5, 2] != labels[5, 20]


def test_quantize_median_cut(two_tone_image):
    palette, assignments = quantize(
        two_tone_image, 2, method=QuantizationMethod.MEDIAN_CUT
    )
    assert sorted(palette) == [(20, 20, 220), (220, 20, 20)]
    labels = assignments.reshape(20, 30)
    assert labels[5, 2] != labels[5, 20]


def test_quantize_rejects_bad_k(two_tone_image):
    with pytest.raises(ValueError):
        quantize(two_tone_image, 0)


def test_find_background_color(make_rgba):
    pixels = make_rgba(10, 10, (250, 250, 250))
    pixels[3:7, 3:7, :3] = (0, 0, 0)
    assert find_background_color(pixels) == (250, 250, 250)

    assert find_background_color(make_rgba(5, 5, alpha=0)) is None


def test_remove_background(make_rgba):
    pixels = make_rgba(10, 10, (255, 255, 255))
    pixels[3:7, 3:7, :3] = (200, 0, 0)
    original = pixels.copy()

    result = remove_background(pixels)

    np.testing.assert_array_equal(pixels, original)
    assert np.all(result[3:7, 3:7, 3] == 255)
    assert np.all(result[0, :, 3] == 0)
    assert int(np.count_nonzero(result[..., 3] == 0)) == 100 - 16


def test_remove_background_keeps_distinct_colors(make_rgba):
    """Near-background shades go; clearly different colours stay."""
    pixels = make_rgba(10, 10, (255, 255, 255))
    pixels[2, 2, :3] = (250, 250, 250)
    pixels[5, 5, :3] = (128, 128, 128)

    result = remove_background(pixels)
    assert result[2, 2, 3] == 0
    assert result[5, 5, 3] == 255


@pytest.mark.parametrize("k", [1, 2, 3, 6])
def test_assignments_index_palette(k):
    rng = np.random.default_rng(k)
    pixels = rng.integers(0, 256, size=(16, 16, 4)).astype(np.uint8)
    palette, assignments = quantize(pixels, k, random_state=0)

    transparent = pixels.reshape(-1, 4)[:, 3] <= 128
    assert 1 <= len(palette) <= k
    assert np.all(assignments[transparent] == -1)
    assert np.all((assignments[~transparent] >= 0) & (assignments[~transparent] < len(palette)))
