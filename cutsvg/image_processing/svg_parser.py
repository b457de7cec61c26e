"""Path-command parsing for tracer output.

AIDEV-NOTE: Uses svgpathtools to parse path data. Complex numbers
represent coordinates (real=x, imag=y). Curves are flattened by fixed
parametric sampling, not adaptive subdivision, so the cost per segment is
constant.
"""

import logging
import math

from svgpathtools import Line, parse_path

from ..models import PathData, Point
from .utils import group_rings, simplify_path, smooth_path

logger = logging.getLogger(__name__)

# Parameters sampled on every non-linear segment (4 points per curve)
CURVE_SAMPLES = (0.25, 0.5, 0.75, 1.0)


def _as_point(value: complex) -> Point:
    return (float(value.real), float(value.imag))


def extract_points(d: str) -> "list[Point]":
    """Flatten an SVG path-command string into a point sequence.

    Args:
        d: Path data using M/L/H/V/C/S/Q/T/A/Z commands

    Returns:
        Points in drawing order. Lines contribute their end point, curves
        contribute samples at t = 0.25, 0.5, 0.75 and 1.0, and each new
        subpath contributes its start point.
    """
    if not d or not d.strip():
        return []

    path = parse_path(d)
    points: "list[Point]" = []
    previous_end = None

    for segment in path:
        if previous_end is None or segment.start != previous_end:
            points.append(_as_point(segment.start))

        if isinstance(segment, Line):
            points.append(_as_point(segment.end))
        else:
            points.extend(_as_point(segment.point(t)) for t in CURVE_SAMPLES)

        previous_end = segment.end

    return points


def _post_process(
    points: "list[Point]", smooth_iterations: int, tolerance: float
) -> "list[Point] | None":
    """Smooth then simplify one ring; None when it degenerates."""
    if smooth_iterations > 0:
        points = smooth_path(points, smooth_iterations)
    if tolerance > 0:
        points = simplify_path(points, tolerance)

    # A closed ring repeats its first point, so count distinct vertices
    if len(set(points)) < 3:
        return None
    return points


def paths_from_commands(
    commands: "list[str]",
    detail: float,
    smoothing: float,
    fill: str = "#000000",
) -> "list[PathData]":
    """Turn tracer path commands into smoothed, simplified paths.

    Args:
        commands: One path-command string per traced outline
        detail: Detail slider (0-100), sets the simplification tolerance
        smoothing: Smoothing slider (0-100), sets Chaikin iterations
        fill: Fill colour recorded on each path

    Returns:
        PathData list, one per outer outline, with the closed outlines
        nested directly inside it as holes. Outlines with 2 or fewer
        points, or fewer than 3 distinct points after processing, are
        dropped; a dropped outer outline drops its holes too.

    AIDEV-NOTE: Smoothing runs before simplification so the tolerance is
    measured against the already-smoothed curve. Nesting is decided on
    the raw flattened outlines, before either step moves them.
    """
    smooth_iterations = math.floor(smoothing / 25)
    tolerance = (100 - detail) / 10

    outlines = []
    for d in commands:
        points = extract_points(d)
        if len(points) > 2:
            outlines.append((points, "Z" in d.upper()))

    closed = [index for index, (_, is_closed) in enumerate(outlines) if is_closed]
    holes_of: "dict[int, list[int]]" = {}
    for outer, holes in group_rings([outlines[index][0] for index in closed]):
        holes_of[closed[outer]] = [closed[hole] for hole in holes]
    hole_indices = {hole for holes in holes_of.values() for hole in holes}

    paths = []
    for index, (points, is_closed) in enumerate(outlines):
        if index in hole_indices:
            continue

        outer = _post_process(points, smooth_iterations, tolerance)
        if outer is None:
            continue

        holes = []
        for hole_index in holes_of.get(index, []):
            hole = _post_process(outlines[hole_index][0], smooth_iterations, tolerance)
            if hole is not None:
                holes.append(hole)

        paths.append(PathData(points=outer, closed=is_closed, fill=fill, holes=holes))

    logger.debug(
        "Parsed %d of %d traced outlines (%d holes)",
        len(paths),
        len(commands),
        len(hole_indices),
    )
    return paths
