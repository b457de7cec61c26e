"""cutsvg - command line entry point.

Usage::

    cutsvg logo.png
    cutsvg photo.jpg -o photo.svg --mode multicolor --colors 6 --seed 1
    cutsvg sketch.png --mode lineart --detail 80 --width 150 --height 150 --unit mm
"""

import argparse
import logging
import sys
from pathlib import Path

from .config_manager import ConfigManager
from .errors import ConversionError, DecodeError, SettingsError
from .image_processing import Vectorizer
from .logging_config import setup_logging
from .models import (
    CONFIG_FILE,
    BackgroundHandling,
    ColorSpace,
    ConversionMode,
    ConversionResult,
    OutputUnit,
    QuantizationMethod,
    VectorizationSettings,
    settings_from_dict,
    settings_to_dict,
)

logger = logging.getLogger(__name__)

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_SETTINGS = 2

# CLI option -> settings key
_OVERRIDES = {
    "mode": "mode",
    "detail": "detail",
    "smoothing": "smoothing",
    "colors": "colorLayers",
    "min_area": "minAreaThreshold",
    "color_space": "colorSpace",
    "quantizer": "quantizer",
    "seed": "seed",
    "background": "background",
    "width": "targetWidth",
    "height": "targetHeight",
    "unit": "unit",
    "threshold": "threshold",
    "invert": "invert",
    "remove_edge_regions": "removeEdgeRegions",
    "min_region_size": "minRegionSize",
    "erosion": "erosionLevel",
}


def _choices(enum_cls) -> "list[str]":
    return [member.value for member in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cutsvg",
        description="Convert a raster image into a layered SVG for cutting machines.",
    )
    parser.add_argument("input", type=Path, help="Input image (PNG, JPG, GIF, ...)")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output SVG path (default: input path with .svg suffix)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_FILE,
        help="Saved defaults file (default: %(default)s)",
    )
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Store the effective settings as the new defaults",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Threads for per-colour tracing in multicolor mode",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    shared = parser.add_argument_group("conversion")
    shared.add_argument("--mode", choices=_choices(ConversionMode))
    shared.add_argument("--detail", type=float, help="0-100, higher keeps more points")
    shared.add_argument("--smoothing", type=float, help="0-100, higher is smoother")
    shared.add_argument("--background", choices=_choices(BackgroundHandling))
    shared.add_argument("--width", type=float, help="Target width")
    shared.add_argument("--height", type=float, help="Target height")
    shared.add_argument("--unit", choices=_choices(OutputUnit))

    multicolor = parser.add_argument_group("multicolor")
    multicolor.add_argument("--colors", type=int, help="Number of colour layers (2-16)")
    multicolor.add_argument(
        "--min-area", type=float, help="Minimum shape area, %% of image (0-5)"
    )
    multicolor.add_argument("--color-space", choices=_choices(ColorSpace))
    multicolor.add_argument("--quantizer", choices=_choices(QuantizationMethod))
    multicolor.add_argument("--seed", type=int, help="Seed for reproducible palettes")

    silhouette = parser.add_argument_group("silhouette")
    silhouette.add_argument("--threshold", type=int, help="0-255, darker pixels are cut")
    silhouette.add_argument("--invert", action="store_true", default=None)
    silhouette.add_argument("--remove-edge-regions", action="store_true", default=None)
    silhouette.add_argument(
        "--min-region-size", type=float, help="Drop regions below this %% of image"
    )
    silhouette.add_argument("--erosion", type=int, help="Erosion iterations (0-5)")
    return parser


def resolve_settings(
    args: argparse.Namespace, defaults: VectorizationSettings
) -> VectorizationSettings:
    """Overlay command line options on the saved defaults.

    Raises:
        SettingsError: If the combined settings are invalid
    """
    data = settings_to_dict(defaults)
    for option, key in _OVERRIDES.items():
        value = getattr(args, option)
        if value is not None:
            data[key] = value
    return settings_from_dict(data)


def print_summary(result: ConversionResult, output: Path) -> None:
    stats = result.stats
    print(f"Wrote {output} ({stats.svg_size_bytes:,} bytes)")
    print(
        f"  {len(result.layers)} layers, {stats.total_paths} paths, "
        f"{stats.total_points} points in {stats.processing_time_ms:.0f} ms"
    )
    print(
        f"  Size: {stats.output_width:.2f} x {stats.output_height:.2f} "
        f"(source {stats.original_width}x{stats.original_height} px)"
    )
    for layer in result.layers:
        print(
            f"  {layer.id} {layer.name} {layer.color}: "
            f"{layer.path_count} paths, {layer.point_count} points, "
            f"cut length {layer.cut_length:.2f}"
        )
    for warning in result.warnings:
        print(f"  Warning: {warning}")


def main(argv: "list[str] | None" = None) -> int:
    """Run the converter. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    config = ConfigManager(args.config)
    try:
        settings = resolve_settings(args, config.load())
    except SettingsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SETTINGS

    if args.save_defaults:
        ok, error = config.save(settings)
        if not ok:
            print(f"Warning: could not save defaults: {error}", file=sys.stderr)

    output = args.output or args.input.with_suffix(".svg")
    vectorizer = Vectorizer(max_workers=max(1, args.workers))
    try:
        result = vectorizer.convert_file(args.input, settings)
    except SettingsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SETTINGS
    except (DecodeError, ConversionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        output.write_text(result.svg, encoding="utf-8")
    except OSError as e:
        print(f"Error: could not write {output}: {e}", file=sys.stderr)
        return EXIT_FAILURE

    print_summary(result, output)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
