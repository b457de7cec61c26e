"""Test decoding, resizing and bitmap tracing adapters.

Tests for cutsvg.image_processing.tracing:
    - resize_to_limit() only ever scales down
    - load_image() / decode_and_resize() produce RGBA, raise DecodeError
    - trace_binary_bitmap() on blank, invalid and simple bitmaps

Run:
    pytest tests/test_tracing.py -v
"""

import numpy as np
import pytest
from PIL import Image

from cutsvg.errors import DecodeError, TraceError
from cutsvg.image_processing.svg_parser import extract_points
from cutsvg.image_processing.tracing import (
    TraceOptions,
    decode_and_resize,
    load_image,
    resize_to_limit,
    trace_binary_bitmap,
)
from cutsvg.image_processing.utils import polygon_area


def test_resize_to_limit_scales_down():
    image = Image.new("RGBA", (8000, 100))
    resized = resize_to_limit(image, 4000)
    assert resized.size == (4000, 50)


def test_resize_to_limit_never_upscales():
    image = Image.new("RGBA", (120, 80))
    assert resize_to_limit(image, 4000) is image


def test_load_image_converts_to_rgba(to_png, make_rgba):
    rgb = make_rgba(6, 4, (10, 20, 30))[..., :3].copy()
    data = to_png(rgb)
    image = load_image(data)
    assert image.mode == "RGBA"
    assert image.size == (6, 4)


def test_load_image_rejects_garbage():
    with pytest.raises(DecodeError):
        load_image(b"definitely not an image")


def test_decode_and_resize(to_png, make_rgba):
    data = to_png(make_rgba(50, 20, (1, 2, 3)))
    pixels, width, height = decode_and_resize(data, max_dimension=25)
    assert (width, height) == (25, 10)
    assert pixels.shape == (10, 25, 4)
    assert pixels.dtype == np.uint8


def test_trace_blank_bitmap():
    bitmap = np.full((10, 12), 255, dtype=np.uint8)
    result = trace_binary_bitmap(bitmap, TraceOptions())
    assert result.commands == []
    assert result.bbox == (0.0, 0.0, 12.0, 10.0)


@pytest.mark.parametrize(
    "bitmap",
    [np.zeros((0, 0), dtype=np.uint8), np.zeros((4, 4, 3), dtype=np.uint8)],
)
def test_trace_invalid_bitmap(bitmap):
    with pytest.raises(TraceError):
        trace_binary_bitmap(bitmap, TraceOptions())


def test_trace_rectangle():
    """A solid rectangle traces to one closed outline of about its size."""
    bitmap = np.full((40, 40), 255, dtype=np.uint8)
    bitmap[10:20, 5:25] = 0

    result = trace_binary_bitmap(bitmap, TraceOptions())
    assert len(result.commands) == 1
    command = result.commands[0]
    assert command.startswith("M")
    assert command.endswith("Z")

    points = np.array(extract_points(command))
    extent_x = points[:, 0].max() - points[:, 0].min()
    extent_y = points[:, 1].max() - points[:, 1].min()
    assert extent_x == pytest.approx(20, abs=1.5)
    assert extent_y == pytest.approx(10, abs=1.5)
    assert 150 < polygon_area(extract_points(command)) <= 205


def test_trace_threshold_and_invert():
    bitmap = np.full((30, 30), 200, dtype=np.uint8)
    bitmap[10:20, 10:20] = 100

    # 200 is not below 150, only the inner square is foreground
    assert len(trace_binary_bitmap(bitmap, TraceOptions(threshold=150)).commands) == 1
    # Nothing is below 50
    assert trace_binary_bitmap(bitmap, TraceOptions(threshold=50)).commands == []
    # Inverted at 50: everything is foreground, one full-frame outline
    inverted = trace_binary_bitmap(bitmap, TraceOptions(threshold=50, invert=True))
    assert len(inverted.commands) == 1


def test_trace_drops_specks():
    """Outlines at or below min_feature_size pixels are discarded."""
    bitmap = np.full((20, 20), 255, dtype=np.uint8)
    bitmap[5, 5] = 0
    bitmap[10:16, 10:16] = 0
    result = trace_binary_bitmap(bitmap, TraceOptions(min_feature_size=2))
    assert len(result.commands) == 1
