"""Data models, settings and constants for the cutsvg converter."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Mapping

from .errors import SettingsError

# AIDEV-NOTE: Inputs larger than this (either side, in pixels) are scaled
# down before any processing. Never scaled up.
MAX_DIMENSION = 4000

# Largest accepted target size, in the configured unit
MAX_TARGET_DIMENSION = 100.0

# Configuration file path
CONFIG_FILE = Path.home() / ".cutsvg_config.json"

Point = tuple[float, float]
Color = tuple[int, int, int]


class ConversionMode(Enum):
    """Vectorization strategies."""

    SILHOUETTE = "silhouette"  # Single black layer from a threshold
    MULTICOLOR = "multicolor"  # One layer per quantized palette colour
    LINEART = "lineart"  # Outlines from edge detection


class BackgroundHandling(Enum):
    """What to do with the image background."""

    TRANSPARENT = "transparent"
    REMOVE = "remove"
    KEEP = "keep"


class OutputUnit(Enum):
    """Physical unit attached to the SVG width/height."""

    INCHES = "inches"
    MM = "mm"


class ColorSpace(Enum):
    """Distance metric used for colour clustering."""

    LAB = "lab"  # CIE76 distance, perceptually uniform
    WEIGHTED_RGB = "weighted_rgb"  # Cheaper, channel-weighted RGB


class QuantizationMethod(Enum):
    """Palette reduction algorithm."""

    KMEANS = "kmeans"
    MEDIAN_CUT = "median_cut"


def _parse_enum(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise SettingsError(
            f"Invalid {name} {value!r}. Must be one of: {choices}"
        ) from None


def _check_number(name: str, value: Any, low: float, high: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"{name} must be a number, got {value!r}")
    # NaN fails both comparisons
    if not low <= value <= high:
        raise SettingsError(f"{name} must be between {low} and {high}")


def _check_int(name: str, value: Any, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SettingsError(f"{name} must be an integer, got {value!r}")
    _check_number(name, value, low, high)


def _check_bool(name: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise SettingsError(f"{name} must be true or false, got {value!r}")


# --- Mode options ---


@dataclass(frozen=True)
class SilhouetteOptions:
    """Settings used only by silhouette mode."""

    kind: ClassVar[ConversionMode] = ConversionMode.SILHOUETTE

    threshold: int = 128  # 0-255, darker pixels are cut
    invert: bool = False
    remove_edge_regions: bool = False
    min_region_size: float = 0.0  # % of image area (0-10)
    erosion_level: int = 0  # erosion iterations (0-5)

    def validate(self) -> None:
        _check_int("threshold", self.threshold, 0, 255)
        _check_bool("invert", self.invert)
        _check_bool("removeEdgeRegions", self.remove_edge_regions)
        _check_number("minRegionSize", self.min_region_size, 0, 10)
        _check_int("erosionLevel", self.erosion_level, 0, 5)

    def to_dict(self) -> dict:
        return {
            "threshold": self.threshold,
            "invert": self.invert,
            "removeEdgeRegions": self.remove_edge_regions,
            "minRegionSize": self.min_region_size,
            "erosionLevel": self.erosion_level,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SilhouetteOptions":
        return cls(
            threshold=data["threshold"],
            invert=data["invert"],
            remove_edge_regions=data["removeEdgeRegions"],
            min_region_size=data["minRegionSize"],
            erosion_level=data["erosionLevel"],
        )


@dataclass(frozen=True)
class MulticolorOptions:
    """Settings used only by multicolor mode."""

    kind: ClassVar[ConversionMode] = ConversionMode.MULTICOLOR

    color_layers: int = 4  # Palette size (2-16)
    min_area_threshold: float = 0.1  # % of image area (0-5)
    color_space: ColorSpace = ColorSpace.LAB
    method: QuantizationMethod = QuantizationMethod.KMEANS
    seed: int | None = None  # Pin for reproducible palettes

    def validate(self) -> None:
        _check_int("colorLayers", self.color_layers, 2, 16)
        _check_number("minAreaThreshold", self.min_area_threshold, 0, 5)
        if not isinstance(self.color_space, ColorSpace):
            raise SettingsError(f"Invalid colorSpace {self.color_space!r}")
        if not isinstance(self.method, QuantizationMethod):
            raise SettingsError(f"Invalid quantizer {self.method!r}")
        if self.seed is not None:
            _check_int("seed", self.seed, 0, 2**32 - 1)

    def to_dict(self) -> dict:
        return {
            "colorLayers": self.color_layers,
            "minAreaThreshold": self.min_area_threshold,
            "colorSpace": self.color_space.value,
            "quantizer": self.method.value,
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MulticolorOptions":
        return cls(
            color_layers=data["colorLayers"],
            min_area_threshold=data["minAreaThreshold"],
            color_space=_parse_enum(ColorSpace, data["colorSpace"], "colorSpace"),
            method=_parse_enum(QuantizationMethod, data["quantizer"], "quantizer"),
            seed=data["seed"],
        )


@dataclass(frozen=True)
class LineArtOptions:
    """Line art has no settings of its own beyond detail and smoothing."""

    kind: ClassVar[ConversionMode] = ConversionMode.LINEART

    def validate(self) -> None:
        return None

    def to_dict(self) -> dict:
        return {}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LineArtOptions":
        return cls()


ModeOptions = SilhouetteOptions | MulticolorOptions | LineArtOptions

_OPTIONS_BY_MODE: "dict[ConversionMode, type]" = {
    ConversionMode.SILHOUETTE: SilhouetteOptions,
    ConversionMode.MULTICOLOR: MulticolorOptions,
    ConversionMode.LINEART: LineArtOptions,
}


@dataclass(frozen=True)
class VectorizationSettings:
    """Immutable configuration for a single conversion.

    AIDEV-NOTE: `mode` is a closed set of option types; each carries only
    the fields its processor reads. Call validate() once before any pixel
    work. The pipeline never mutates settings.
    """

    mode: ModeOptions = field(default_factory=SilhouetteOptions)

    detail: float = 50.0  # 0-100, lower = fewer points
    smoothing: float = 50.0  # 0-100, higher = smoother curves
    background: BackgroundHandling = BackgroundHandling.TRANSPARENT

    # Physical output size (aspect ratio of the source wins)
    target_width: float = 6.0
    target_height: float = 6.0
    unit: OutputUnit = OutputUnit.INCHES

    @property
    def mode_name(self) -> ConversionMode:
        return self.mode.kind

    def validate(self) -> "VectorizationSettings":
        """Check every field, raising SettingsError on the first problem.

        Returns:
            self, so calls can be chained
        """
        if not isinstance(self.mode, (SilhouetteOptions, MulticolorOptions, LineArtOptions)):
            raise SettingsError(f"Unsupported mode options: {self.mode!r}")
        _check_number("detail", self.detail, 0, 100)
        _check_number("smoothing", self.smoothing, 0, 100)
        if not isinstance(self.background, BackgroundHandling):
            raise SettingsError(f"Invalid background {self.background!r}")
        if not isinstance(self.unit, OutputUnit):
            raise SettingsError(f"Invalid unit {self.unit!r}")
        for name, value in (
            ("targetWidth", self.target_width),
            ("targetHeight", self.target_height),
        ):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise SettingsError(f"{name} must be a number, got {value!r}")
            if not value > 0:
                raise SettingsError("Target dimensions must be positive")
            if value > MAX_TARGET_DIMENSION:
                raise SettingsError(
                    f"Target dimensions cannot exceed {MAX_TARGET_DIMENSION:g}"
                )
        self.mode.validate()
        return self


DEFAULT_SETTINGS = VectorizationSettings()


def settings_to_dict(settings: VectorizationSettings) -> dict:
    """Flatten settings into the camelCase mapping used by JSON clients."""
    data = {
        "mode": settings.mode_name.value,
        "detail": settings.detail,
        "smoothing": settings.smoothing,
        "background": settings.background.value,
        "targetWidth": settings.target_width,
        "targetHeight": settings.target_height,
        "unit": settings.unit.value,
    }
    data.update(settings.mode.to_dict())
    return data


def _flat_defaults() -> dict:
    data = settings_to_dict(DEFAULT_SETTINGS)
    for options_cls in _OPTIONS_BY_MODE.values():
        data.update(options_cls().to_dict())
    return data


def settings_from_dict(data: Mapping[str, Any]) -> VectorizationSettings:
    """Build validated settings from a flat camelCase mapping.

    Missing keys fall back to the defaults. Keys that belong to other
    modes are ignored.

    Raises:
        SettingsError: If any value is invalid
    """
    merged = {**_flat_defaults(), **{k: v for k, v in data.items() if v is not None}}

    mode = _parse_enum(ConversionMode, merged["mode"], "mode")
    try:
        options = _OPTIONS_BY_MODE[mode].from_dict(merged)
        settings = VectorizationSettings(
            mode=options,
            detail=merged["detail"],
            smoothing=merged["smoothing"],
            background=_parse_enum(
                BackgroundHandling, merged["background"], "background"
            ),
            target_width=merged["targetWidth"],
            target_height=merged["targetHeight"],
            unit=_parse_enum(OutputUnit, merged["unit"], "unit"),
        )
    except (TypeError, KeyError) as e:
        raise SettingsError(f"Invalid settings format: {e}") from e
    return settings.validate()


# --- Vector output models ---


@dataclass
class PathData:
    """A traced outline in source-pixel coordinates.

    AIDEV-NOTE: Paths with fewer than 3 points enclose no area and are
    dropped by the mode processors before they reach a Layer. `points` is
    the outer outline; `holes` are the outlines nested directly inside it
    and are written into the same compound path with the even-odd fill
    rule, so they stay open.
    """

    points: "list[Point]"
    closed: bool = True
    fill: str = "#000000"
    holes: "list[list[Point]]" = field(default_factory=list)

    @property
    def rings(self) -> "list[list[Point]]":
        return [self.points, *self.holes]

    @property
    def point_count(self) -> int:
        return sum(len(ring) for ring in self.rings)


@dataclass
class LayerInfo:
    """Summary of one output layer."""

    id: str
    name: str
    color: str
    path_count: int
    point_count: int
    cut_length: float = 0.0  # Blade travel, in the output unit


@dataclass
class Layer:
    """A named group of paths sharing one fill colour."""

    id: str
    name: str
    color: str  # "#rrggbb"
    paths: "list[PathData]" = field(default_factory=list)

    @property
    def path_count(self) -> int:
        return len(self.paths)

    @property
    def point_count(self) -> int:
        return sum(path.point_count for path in self.paths)

    def info(self, cut_length: float = 0.0) -> LayerInfo:
        return LayerInfo(
            id=self.id,
            name=self.name,
            color=self.color,
            path_count=self.path_count,
            point_count=self.point_count,
            cut_length=cut_length,
        )


@dataclass
class ConversionStats:
    """Statistics reported for a finished conversion."""

    total_paths: int = 0
    total_points: int = 0
    processing_time_ms: float = 0.0

    # Dimensions after decoding (pixels)
    original_width: int = 0
    original_height: int = 0

    # Physical output size, in the configured unit
    output_width: float = 0.0
    output_height: float = 0.0

    svg_size_bytes: int = 0


@dataclass
class ConversionResult:
    """Result of the vectorization pipeline."""

    svg: str
    layers: "list[LayerInfo]"
    stats: ConversionStats
    warnings: "list[str]" = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when the conversion succeeded but produced no layers."""
        return not self.layers
