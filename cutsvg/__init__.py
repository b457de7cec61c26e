"""cutsvg - raster image to cuttable layered SVG converter."""

from .errors import (
    ConversionError,
    CutSvgError,
    DecodeError,
    SettingsError,
    TraceError,
)
from .image_processing import Vectorizer, convert
from .models import (
    DEFAULT_SETTINGS,
    BackgroundHandling,
    ColorSpace,
    ConversionMode,
    ConversionResult,
    LineArtOptions,
    MulticolorOptions,
    OutputUnit,
    QuantizationMethod,
    SilhouetteOptions,
    VectorizationSettings,
    settings_from_dict,
    settings_to_dict,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_SETTINGS",
    "BackgroundHandling",
    "ColorSpace",
    "ConversionError",
    "ConversionMode",
    "ConversionResult",
    "CutSvgError",
    "DecodeError",
    "LineArtOptions",
    "MulticolorOptions",
    "OutputUnit",
    "QuantizationMethod",
    "SettingsError",
    "SilhouetteOptions",
    "TraceError",
    "VectorizationSettings",
    "Vectorizer",
    "convert",
    "settings_from_dict",
    "settings_to_dict",
]
