"""Geometry helpers for traced paths.

AIDEV-NOTE: This module contains the pure path operations used after
tracing: Douglas-Peucker simplification, Chaikin smoothing, polygon area,
point/length counting, outline nesting (outer vs hole) and the
aspect-ratio fit for output sizing.
Points are (x, y) tuples in source-pixel units.
"""

import math
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from ..models import Layer, PathData, Point


def _segment_distances(
    points: np.ndarray, start: np.ndarray, end: np.ndarray
) -> np.ndarray:
    """Distance of each point to the segment start-end.

    Falls back to point distance when the segment has zero length
    (closed loops, where first == last).
    """
    direction = end - start
    length_sq = float(direction @ direction)
    if length_sq == 0.0:
        return np.hypot(*(points - start).T)

    t = ((points - start) @ direction) / length_sq
    t = np.clip(t, 0.0, 1.0)
    nearest = start + t[:, None] * direction
    return np.hypot(*(points - nearest).T)


def _douglas_peucker(coords: np.ndarray, tolerance: float) -> np.ndarray:
    """Keep-mask for an open polyline; first and last are always kept."""
    keep = np.zeros(len(coords), dtype=bool)
    keep[0] = keep[-1] = True

    stack = [(0, len(coords) - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        distances = _segment_distances(
            coords[first + 1 : last], coords[first], coords[last]
        )
        index = int(np.argmax(distances))
        if distances[index] > tolerance:
            split = first + 1 + index
            keep[split] = True
            stack.append((split, last))
            stack.append((first, split))

    return keep


def _farthest_vertex(coords: np.ndarray, origin: np.ndarray) -> int:
    """Index of the vertex farthest from origin; ties go to the lowest (x, y)."""
    distances = np.hypot(*(coords - origin).T)
    candidates = np.flatnonzero(np.isclose(distances, distances.max()))
    order = np.lexsort((coords[candidates, 1], coords[candidates, 0]))
    return int(candidates[order[0]])


def _simplify_ring(points: "list[Point]", tolerance: float) -> "list[Point]":
    """Douglas-Peucker on a closed ring (points[0] == points[-1]).

    AIDEV-NOTE: The ring is split at two anchors picked from the vertex
    set alone (farthest from the centroid, then farthest from that), so the
    kept vertices do not depend on where the tracer started the loop.
    """
    ring = points[:-1]
    coords = np.asarray(ring, dtype=np.float64)
    count = len(coords)

    first = _farthest_vertex(coords, coords.mean(axis=0))
    second = _farthest_vertex(coords, coords[first])

    # Walk once around the ring starting and ending at the first anchor
    walk = np.append(np.roll(np.arange(count), -first), first)
    split = (second - first) % count

    keep = np.zeros(count, dtype=bool)
    for arc in (walk[: split + 1], walk[split:]):
        keep[arc[_douglas_peucker(coords[arc], tolerance)]] = True

    kept = [ring[i] for i in np.flatnonzero(keep)]
    return kept + kept[:1]


def simplify_path(points: "list[Point]", tolerance: float) -> "list[Point]":
    """Douglas-Peucker polyline simplification.

    Args:
        points: Polyline vertices
        tolerance: Points closer than this to the chord are dropped

    Returns:
        Simplified polyline. First and last points are always kept. Closed
        rings come back closed, in their original order, and keep the same
        vertices whichever vertex they start at.

    AIDEV-NOTE: Uses an explicit stack instead of recursion so that long
    traced outlines cannot hit the interpreter recursion limit. The split
    order matches the recursive formulation exactly.
    """
    if len(points) <= 2:
        return list(points)

    if len(points) > 3 and tuple(points[0]) == tuple(points[-1]):
        return _simplify_ring(points, tolerance)

    keep = _douglas_peucker(np.asarray(points, dtype=np.float64), tolerance)
    return [points[i] for i in np.flatnonzero(keep)]


def smooth_path(points: "list[Point]", iterations: int) -> "list[Point]":
    """Chaikin corner-cutting.

    Each round replaces every segment with its 25% and 75% points while
    keeping the original endpoints, so the point count grows each round.
    """
    if len(points) <= 2 or iterations <= 0:
        return list(points)

    smoothed = list(points)
    for _ in range(iterations):
        new_points = [smoothed[0]]
        for (x0, y0), (x1, y1) in zip(smoothed, smoothed[1:]):
            new_points.append((x0 * 0.75 + x1 * 0.25, y0 * 0.75 + y1 * 0.25))
            new_points.append((x0 * 0.25 + x1 * 0.75, y0 * 0.25 + y1 * 0.75))
        new_points.append(smoothed[-1])
        smoothed = new_points

    return smoothed


def polygon_area(points: "list[Point]") -> float:
    """Unsigned polygon area by the shoelace formula (0 for < 3 points)."""
    if len(points) < 3:
        return 0.0

    coords = np.asarray(points, dtype=np.float64)
    x, y = coords[:, 0], coords[:, 1]
    twice_area = np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)
    return abs(float(twice_area)) / 2.0


def path_length(points: "list[Point]") -> float:
    """Total polyline length in pixels."""
    total = 0.0
    for i in range(1, len(points)):
        x1, y1 = points[i - 1]
        x2, y2 = points[i]
        total += math.sqrt((x2 - x1) ** 2 + (y2 - y1) ** 2)
    return total


def cut_length(paths: "list[PathData]") -> float:
    """Blade travel in pixels over every outline and hole.

    Closed rings that do not repeat their first point get the closing
    segment added.
    """
    total = 0.0
    for path in paths:
        for ring in path.rings:
            if path.closed and ring and ring[0] != ring[-1]:
                ring = [*ring, ring[0]]
            total += path_length(ring)
    return total


def count_points(paths: "list[PathData]") -> int:
    """Count total number of points across paths, holes included."""
    return sum(path.point_count for path in paths)


def count_paths(layers: "list[Layer]") -> int:
    return sum(len(layer.paths) for layer in layers)


def point_in_ring(point: "Point", ring: "list[Point]") -> bool:
    """Even-odd ray casting test of a point against a closed ring."""
    if len(ring) < 3:
        return False

    coords = np.asarray(ring, dtype=np.float64)
    xs, ys = coords[:, 0], coords[:, 1]
    next_xs, next_ys = np.roll(xs, -1), np.roll(ys, -1)
    x, y = point

    straddles = (ys > y) != (next_ys > y)
    with np.errstate(divide="ignore", invalid="ignore"):
        crossing_x = xs + (y - ys) * (next_xs - xs) / (next_ys - ys)
    return bool(np.count_nonzero(straddles & (x < crossing_x)) % 2)


def group_rings(rings: "list[list[Point]]") -> "list[tuple[int, list[int]]]":
    """Pair each outer outline with the holes nested directly inside it.

    Args:
        rings: Closed outlines that do not cross each other, as traced

    Returns:
        (outer index, hole indices) pairs, outers in input order

    AIDEV-NOTE: A ring's depth is the number of larger rings containing
    its first point. Even depth is an outer outline (a filled region, or
    an island inside a hole); odd depth is a hole, attached to the
    smallest enclosing ring one level up. Winding direction is not used.
    """
    if not rings:
        return []

    areas = np.array([polygon_area(ring) for ring in rings])
    # (min_x, min_y, max_x, max_y) per ring
    bounds = np.array(
        [
            np.concatenate([np.min(coords, axis=0), np.max(coords, axis=0)])
            for coords in map(np.asarray, rings)
        ],
        dtype=np.float64,
    )

    containers = []
    for index, ring in enumerate(rings):
        x, y = ring[0]
        candidates = np.flatnonzero(
            (areas > areas[index])
            & (bounds[:, 0] <= x)
            & (bounds[:, 1] <= y)
            & (bounds[:, 2] >= x)
            & (bounds[:, 3] >= y)
        )
        containers.append(
            [int(j) for j in candidates if point_in_ring(ring[0], rings[j])]
        )

    depths = [len(enclosing) for enclosing in containers]
    holes: "dict[int, list[int]]" = {
        index: [] for index, depth in enumerate(depths) if depth % 2 == 0
    }
    for index, enclosing in enumerate(containers):
        if depths[index] % 2 == 0:
            continue
        parents = [j for j in enclosing if depths[j] == depths[index] - 1]
        if parents:
            holes[min(parents, key=lambda j: areas[j])].append(index)
        else:
            # No ring one level up to cut it from; keep it as an outline
            holes[index] = []

    return sorted(holes.items())


def fit_aspect_ratio(
    target_width: float,
    target_height: float,
    source_width: int,
    source_height: int,
) -> "tuple[float, float]":
    """Shrink one target dimension so the output keeps the source aspect.

    Args:
        target_width: Requested physical width
        target_height: Requested physical height
        source_width: Source image width in pixels
        source_height: Source image height in pixels

    Returns:
        (width, height) with width / height == source aspect ratio

    AIDEV-NOTE: Whichever dimension would distort the ratio is recomputed
    from the other; the result never exceeds either target.
    """
    aspect = source_width / source_height
    width, height = float(target_width), float(target_height)

    if width / height > aspect:
        width = height * aspect
    else:
        height = width / aspect

    return width, height
