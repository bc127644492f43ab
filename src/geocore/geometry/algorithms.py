"""Planar primitives shared by the validity checker and the relate engine.

All functions work on the XY projection, take plain ``(x, y)`` tuples and use
exact floating-point arithmetic. They are not robust predicates: results for
nearly-degenerate input follow IEEE rounding.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import IntEnum
from typing import TypeAlias

XY: TypeAlias = tuple[float, float]


class Location(IntEnum):
    """Position of a point relative to a geometry's point sets.

    Values double as row/column indices of a DE-9IM matrix.
    """

    INTERIOR = 0
    BOUNDARY = 1
    EXTERIOR = 2


def orientation(a: XY, b: XY, c: XY) -> float:
    """Return the cross product (b - a) x (c - a).

    Positive when a, b, c turn counter-clockwise, negative for clockwise,
    zero when collinear.
    """
    return (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])


def in_segment_box(p: XY, a: XY, b: XY) -> bool:
    """Check that p lies in the closed bounding box of segment ab."""
    return (
        min(a[0], b[0]) <= p[0] <= max(a[0], b[0])
        and min(a[1], b[1]) <= p[1] <= max(a[1], b[1])
    )


def point_on_segment(p: XY, a: XY, b: XY) -> bool:
    """Check whether p lies on the closed segment ab."""
    return orientation(a, b, p) == 0.0 and in_segment_box(p, a, b)


def segment_parameter(p: XY, a: XY, b: XY) -> float:
    """Return the position of p along ab in [0, 1], measured on the longer axis."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    if abs(dx) >= abs(dy):
        return 0.0 if dx == 0.0 else (p[0] - a[0]) / dx
    return (p[1] - a[1]) / dy


def intersect_segments(a1: XY, a2: XY, b1: XY, b2: XY) -> tuple[XY, ...]:
    """Intersect two closed segments.

    Returns:
        An empty tuple if the segments are disjoint, a 1-tuple with the single
        shared point, or a 2-tuple with the endpoints of a collinear overlap
        (ordered along a1 -> a2).
    """
    d1 = orientation(b1, b2, a1)
    d2 = orientation(b1, b2, a2)
    d3 = orientation(a1, a2, b1)
    d4 = orientation(a1, a2, b2)

    if d1 == 0.0 and d2 == 0.0 and d3 == 0.0 and d4 == 0.0:
        return _collinear_overlap(a1, a2, b1, b2)

    if ((d1 > 0.0 and d2 < 0.0) or (d1 < 0.0 and d2 > 0.0)) and (
        (d3 > 0.0 and d4 < 0.0) or (d3 < 0.0 and d4 > 0.0)
    ):
        # Proper crossing: interpolate along a1 -> a2.
        t = d1 / (d1 - d2)
        return ((a1[0] + t * (a2[0] - a1[0]), a1[1] + t * (a2[1] - a1[1])),)

    touches: list[XY] = []
    if d3 == 0.0 and in_segment_box(b1, a1, a2):
        touches.append(b1)
    if d4 == 0.0 and in_segment_box(b2, a1, a2):
        touches.append(b2)
    if d1 == 0.0 and in_segment_box(a1, b1, b2):
        touches.append(a1)
    if d2 == 0.0 and in_segment_box(a2, b1, b2):
        touches.append(a2)
    if not touches:
        return ()
    return (touches[0],)


def _collinear_overlap(a1: XY, a2: XY, b1: XY, b2: XY) -> tuple[XY, ...]:
    if a1 == a2:
        return (a1,) if in_segment_box(a1, b1, b2) else ()
    tb1 = segment_parameter(b1, a1, a2)
    tb2 = segment_parameter(b2, a1, a2)
    lo = max(0.0, min(tb1, tb2))
    hi = min(1.0, max(tb1, tb2))
    if lo > hi:
        return ()
    candidates = sorted(
        (
            (t, p)
            for t, p in ((0.0, a1), (1.0, a2), (tb1, b1), (tb2, b2))
            if lo <= t <= hi
        ),
        key=lambda item: item[0],
    )
    start = candidates[0][1]
    end = candidates[-1][1]
    if start == end:
        return (start,)
    return (start, end)


def signed_area(ring: Sequence[XY]) -> float:
    """Return the shoelace signed area; positive for counter-clockwise rings."""
    total = 0.0
    n = len(ring)
    for i in range(n):
        x1, y1 = ring[i]
        x2, y2 = ring[(i + 1) % n]
        total += x1 * y2 - x2 * y1
    return total / 2.0


def point_in_ring(p: XY, ring: Sequence[XY]) -> bool:
    """Crossing-number test; the answer for points on the ring is unspecified.

    The ring is treated as closed whether or not its last vertex repeats the
    first.
    """
    x, y = p
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = xi + (y - yi) * (xj - xi) / (yj - yi)
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def point_on_ring(p: XY, ring: Sequence[XY]) -> bool:
    """Check whether p lies on any edge of the (implicitly closed) ring."""
    n = len(ring)
    for i in range(n):
        if point_on_segment(p, ring[i], ring[(i + 1) % n]):
            return True
    return False


def locate_in_ring(p: XY, ring: Sequence[XY]) -> Location:
    """Locate p against the area enclosed by a ring."""
    if point_on_ring(p, ring):
        return Location.BOUNDARY
    return Location.INTERIOR if point_in_ring(p, ring) else Location.EXTERIOR
