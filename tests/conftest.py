"""Shared fixtures: synthetic images and default settings."""

import io

import numpy as np
import pytest
from PIL import Image

from cutsvg.models import (
    DEFAULT_SETTINGS,
    LineArtOptions,
    MulticolorOptions,
    VectorizationSettings,
)


def solid_rgba(width, height, color=(255, 255, 255), alpha=255):
    """RGBA array filled with one colour."""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., :3] = color
    pixels[..., 3] = alpha
    return pixels


def encode_png(pixels):
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_rgba():
    """Factory for solid RGBA arrays."""
    return solid_rgba


@pytest.fixture
def to_png():
    """Factory encoding an RGBA array as PNG bytes."""
    return encode_png


@pytest.fixture
def black_square_image():
    """40x40 white image with a 20x20 black square in the middle."""
    pixels = solid_rgba(40, 40)
    pixels[10:30, 10:30, :3] = 0
    return pixels


@pytest.fixture
def two_tone_image():
    """30x20 image, left half red, right half blue."""
    pixels = solid_rgba(30, 20, (220, 20, 20))
    pixels[:, 15:, :3] = (20, 20, 220)
    return pixels


@pytest.fixture
def default_settings():
    return DEFAULT_SETTINGS


@pytest.fixture
def multicolor_settings():
    """Full detail, no smoothing, no area filter and a pinned seed."""
    return VectorizationSettings(
        mode=MulticolorOptions(color_layers=2, min_area_threshold=0.0, seed=0),
        detail=100.0,
        smoothing=0.0,
    )


@pytest.fixture
def lineart_settings():
    return VectorizationSettings(mode=LineArtOptions(), detail=100.0, smoothing=0.0)
