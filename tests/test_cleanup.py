"""Test the binary cleanup pipeline.

Tests for cutsvg.image_processing.cleanup:
    - Threshold and inversion
    - Erosion (3x3 window, border pixels become white)
    - Edge-connected and small region removal (4-connectivity)
    - Step ordering and input immutability

Run:
    pytest tests/test_cleanup.py -v
"""

import numpy as np

from cutsvg.image_processing.cleanup import (
    BLACK,
    WHITE,
    apply_threshold,
    cleanup,
    count_black,
    erode,
    invert,
    needs_cleanup,
    remove_edge_regions,
    remove_small_regions,
)
from cutsvg.models import SilhouetteOptions


def white(height, width):
    return np.full((height, width), WHITE, dtype=np.uint8)


def test_apply_threshold():
    gray = np.array([[0, 127, 128, 255]], dtype=np.uint8)
    binary = apply_threshold(gray, 128)
    assert binary.tolist() == [[BLACK, BLACK, WHITE, WHITE]]
    assert binary.dtype == np.uint8


def test_invert():
    binary = np.array([[0, 255]], dtype=np.uint8)
    assert invert(binary).tolist() == [[255, 0]]


def test_erode_single_iteration():
    binary = white(7, 7)
    binary[2:5, 2:5] = BLACK
    eroded = erode(binary, 1)
    assert count_black(eroded) == 1
    assert eroded[3, 3] == BLACK


def test_erode_border_pixels_become_white():
    binary = np.zeros((5, 5), dtype=np.uint8)
    eroded = erode(binary, 1)
    assert count_black(eroded) == 9
    assert np.all(eroded[0, :] == WHITE)
    assert np.all(eroded[:, -1] == WHITE)


def test_erode_zero_iterations_is_copy():
    binary = white(4, 4)
    binary[1, 1] = BLACK
    eroded = erode(binary, 0)
    np.testing.assert_array_equal(eroded, binary)
    assert eroded is not binary


def test_remove_edge_regions():
    binary = white(6, 6)
    binary[0:2, 0:2] = BLACK  # touches border
    binary[3:5, 3:5] = BLACK  # interior
    cleaned = remove_edge_regions(binary)
    assert np.all(cleaned[0:2, 0:2] == WHITE)
    assert np.all(cleaned[3:5, 3:5] == BLACK)


def test_remove_edge_regions_is_four_connected():
    """A diagonal neighbour of an edge region is a separate region."""
    binary = white(5, 5)
    binary[0, 0] = BLACK
    binary[1, 1] = BLACK
    cleaned = remove_edge_regions(binary)
    assert cleaned[0, 0] == WHITE
    assert cleaned[1, 1] == BLACK


def test_remove_edge_regions_all_white():
    binary = white(3, 3)
    np.testing.assert_array_equal(remove_edge_regions(binary), binary)


def test_remove_small_regions():
    binary = white(10, 10)
    binary[1:3, 1:3] = BLACK  # 4 px
    binary[5:8, 5:8] = BLACK  # 9 px
    # 5% of 100 px
    cleaned = remove_small_regions(binary, 5.0)
    assert np.all(cleaned[1:3, 1:3] == WHITE)
    assert count_black(cleaned) == 9


def test_remove_small_regions_zero_is_noop():
    binary = white(4, 4)
    binary[0, 0] = BLACK
    np.testing.assert_array_equal(remove_small_regions(binary, 0.0), binary)


def test_needs_cleanup():
    assert not needs_cleanup(SilhouetteOptions())
    assert not needs_cleanup(SilhouetteOptions(threshold=10))
    assert needs_cleanup(SilhouetteOptions(invert=True))
    assert needs_cleanup(SilhouetteOptions(remove_edge_regions=True))
    assert needs_cleanup(SilhouetteOptions(min_region_size=0.5))
    assert needs_cleanup(SilhouetteOptions(erosion_level=1))


def test_cleanup_erosion_consumes_small_square():
    """Five erosion rounds remove an isolated 3x3 square entirely."""
    gray = white(20, 20)
    gray[8:11, 8:11] = 0
    binary = cleanup(gray, SilhouetteOptions(erosion_level=5))
    assert count_black(binary) == 0


def test_cleanup_invert_then_remove_edges():
    """Inverting a blank page makes one border-touching region, which goes."""
    gray = white(8, 8)
    binary = cleanup(gray, SilhouetteOptions(invert=True, remove_edge_regions=True))
    assert count_black(binary) == 0


def test_cleanup_does_not_modify_input():
    gray = white(10, 10)
    gray[2:8, 2:8] = 30
    original = gray.copy()
    cleanup(
        gray,
        SilhouetteOptions(erosion_level=1, remove_edge_regions=True, min_region_size=1),
    )
    np.testing.assert_array_equal(gray, original)


def test_cleanup_erodes_before_removing_small_regions():
    """Erosion splits a dumbbell, then each half is measured on its own."""
    gray = white(20, 30)
    gray[5:15, 2:12] = 0  # 10x10 block
    gray[9:11, 12:18] = 0  # thin bridge, gone after one erosion round
    gray[5:15, 18:28] = 0  # 10x10 block
    binary = cleanup(gray, SilhouetteOptions(erosion_level=1, min_region_size=10))
    # Each eroded block is 8x8 = 64 px, above 10% of 600 px
    assert count_black(binary) == 128


def test_double_invert_is_identity():
    rng = np.random.default_rng(5)
    gray = rng.integers(0, 256, size=(12, 9)).astype(np.uint8)
    binary = apply_threshold(gray, 100)
    np.testing.assert_array_equal(invert(invert(binary)), binary)


def test_erosion_is_monotonic():
    rng = np.random.default_rng(11)
    binary = apply_threshold(rng.integers(0, 256, size=(30, 30)).astype(np.uint8), 200)
    counts = [count_black(erode(binary, n)) for n in range(6)]
    assert counts == sorted(counts, reverse=True)


def test_edge_removal_clears_border():
    rng = np.random.default_rng(2)
    binary = apply_threshold(rng.integers(0, 256, size=(25, 25)).astype(np.uint8), 128)
    cleaned = remove_edge_regions(binary)
    for line in (cleaned[0, :], cleaned[-1, :], cleaned[:, 0], cleaned[:, -1]):
        assert np.all(line == WHITE)
