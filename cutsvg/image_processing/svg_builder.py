"""SVG document assembly for traced layers."""

import logging
from dataclasses import dataclass

import svg

from ..models import Layer, PathData, Point, VectorizationSettings
from .utils import count_paths, count_points, fit_aspect_ratio

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# Decimal places for path coordinates and physical size
COORD_PRECISION = 2
SIZE_PRECISION = 4


@dataclass
class AssemblyStats:
    """Statistics of an assembled document."""

    total_paths: int
    total_points: int
    output_width: float
    output_height: float
    size_bytes: int


def _ring_commands(ring: "list[Point]", closed: bool) -> "list[svg.PathData]":
    (x0, y0), *rest = ring
    commands: "list[svg.PathData]" = [
        svg.MoveTo(round(x0, COORD_PRECISION), round(y0, COORD_PRECISION))
    ]
    commands.extend(
        svg.LineTo(round(x, COORD_PRECISION), round(y, COORD_PRECISION))
        for x, y in rest
    )
    if closed:
        commands.append(svg.ClosePath())
    return commands


def path_to_svg_data(path: PathData) -> "list[svg.PathData]":
    """Convert path points to absolute M/L(/Z) commands.

    Holes follow the outer outline as extra closed subpaths.
    """
    if not path.points:
        return []

    commands = _ring_commands(path.points, path.closed)
    for hole in path.holes:
        if hole:
            commands.extend(_ring_commands(hole, closed=True))
    return commands


def layer_to_group(layer: Layer) -> svg.G:
    """One <g> per layer; every path is filled with the layer colour.

    AIDEV-NOTE: Paths with holes use the even-odd rule so the holes are
    left unfilled whatever direction the tracer wound them.
    """
    paths: "list[svg.Element]" = [
        svg.Path(
            d=path_to_svg_data(path),
            fill=layer.color,
            fill_rule="evenodd" if path.holes else None,
        )
        for path in layer.paths
        if path.points
    ]
    return svg.G(id=layer.id, extra={"data-name": layer.name}, elements=paths)


def assemble(
    layers: "list[Layer]",
    settings: VectorizationSettings,
    source_width: int,
    source_height: int,
) -> "tuple[str, AssemblyStats]":
    """Build the final dimensioned SVG document.

    Args:
        layers: Layers in output order
        settings: Validated settings (target size and unit)
        source_width: Traced bitmap width in pixels
        source_height: Traced bitmap height in pixels

    Returns:
        Tuple of (SVG document string, stats)

    AIDEV-NOTE: viewBox stays in source-pixel space; physical size only
    lives in the width/height attributes ("6.0000inches", "150.0000mm"),
    so the same path data can be re-dimensioned without touching it.
    """
    output_width, output_height = fit_aspect_ratio(
        settings.target_width, settings.target_height, source_width, source_height
    )
    unit = settings.unit.value

    canvas = svg.SVG(
        width=f"{output_width:.{SIZE_PRECISION}f}{unit}",
        height=f"{output_height:.{SIZE_PRECISION}f}{unit}",
        viewBox=svg.ViewBoxSpec(0, 0, source_width, source_height),
        elements=[layer_to_group(layer) for layer in layers],
    )
    document = f"{XML_DECLARATION}\n{canvas.as_str()}"

    stats = AssemblyStats(
        total_paths=count_paths(layers),
        total_points=sum(count_points(layer.paths) for layer in layers),
        output_width=output_width,
        output_height=output_height,
        size_bytes=len(document.encode("utf-8")),
    )
    logger.debug(
        "Assembled %d layers, %d paths, %.4fx%.4f %s",
        len(layers),
        stats.total_paths,
        output_width,
        output_height,
        unit,
    )
    return document, stats
