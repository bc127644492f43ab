"""Geometry validity checking for geocore.

Validity is a query, not a gate: constructors accept structurally odd input
and these functions report on it. Rules, applied recursively:

1. Point: always valid (NaN/Inf included).
2. LineString: 0 or at least 2 points.
3. Ring: closed, at least 4 points, simple (no two non-adjacent edges meet;
   the closing edge is adjacent to the first and the last edge).
4. Polygon: valid rings; every hole inside the exterior; no hole crosses the
   exterior or another hole; holes do not nest.
5. Collections: every member valid. Empty geometries are valid.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from geocore.exceptions import InvalidGeometryError
from geocore.geometry.algorithms import (
    XY,
    Location,
    intersect_segments,
    locate_in_ring,
)
from geocore.geometry.model import MIN_RING_POINTS, Geometry, GeometryKind

logger = logging.getLogger(__name__)


class GeometryValidator:
    """Validator for geometry structure.

    The validator is stateless and operates purely on the geometry passed
    to each method.
    """

    def validate(self, geometry: Geometry, *, strict: bool = True) -> bool:
        """Validate a geometry.

        Args:
            geometry: The geometry to check.
            strict: If True, raise InvalidGeometryError on failure.
                If False, return False instead.

        Returns:
            True if the geometry is valid.

        Raises:
            InvalidGeometryError: If strict=True and the geometry is invalid.
        """
        reason = self.reason(geometry)
        if reason is None:
            return True
        logger.debug("Invalid %s: %s", geometry.type_name, reason)
        if strict:
            raise InvalidGeometryError(
                f"Invalid {geometry.type_name}", reason=reason
            )
        return False

    def is_valid(self, geometry: Geometry) -> bool:
        """Check validity without raising."""
        return self.validate(geometry, strict=False)

    def reason(self, geometry: Geometry) -> str | None:
        """Return a description of the first rule violated, or None if valid."""
        kind = geometry.kind
        if kind is GeometryKind.POINT:
            return None
        if kind is GeometryKind.LINESTRING:
            return _line_reason(geometry.coordinates)
        if kind is GeometryKind.POLYGON:
            return _polygon_reason(geometry.coordinates)
        for i, member in enumerate(geometry.coordinates):
            member_reason = self.reason(member)
            if member_reason is not None:
                return f"Member {i}: {member_reason}"
        return None

    def is_closed(self, geometry: Geometry) -> bool:
        """Check that every line or ring ends where it starts.

        Points are closed. Empty lines are not.
        """
        kind = geometry.kind
        if kind is GeometryKind.POINT:
            return True
        if kind is GeometryKind.LINESTRING:
            coords = geometry.coordinates
            return len(coords) >= 2 and coords[0] == coords[-1]
        if kind is GeometryKind.POLYGON:
            return all(ring and ring[0] == ring[-1] for ring in geometry.coordinates)
        return all(self.is_closed(g) for g in geometry.coordinates)

    def is_ring(self, geometry: Geometry) -> bool:
        """Check that a LineString is closed and simple.

        Any other kind is not a ring.
        """
        if geometry.kind is not GeometryKind.LINESTRING:
            return False
        return _ring_reason(_xy(geometry.coordinates)) is None


_default_validator = GeometryValidator()


def is_valid(geometry: Geometry) -> bool:
    """Return True if the geometry satisfies every structural rule."""
    return _default_validator.is_valid(geometry)


def validity_reason(geometry: Geometry) -> str | None:
    """Return why a geometry is invalid, or None if it is valid."""
    return _default_validator.reason(geometry)


def is_closed(geometry: Geometry) -> bool:
    """Return True if every line-like part ends where it starts."""
    return _default_validator.is_closed(geometry)


def is_ring(geometry: Geometry) -> bool:
    """Return True for a closed, simple LineString."""
    return _default_validator.is_ring(geometry)


def _xy(coords: Sequence) -> list[XY]:
    return [(c.x, c.y) for c in coords]


def _line_reason(coords: Sequence) -> str | None:
    if len(coords) == 1:
        return "LineString requires 0 or at least 2 points, got 1"
    return None


def _ring_reason(ring: list[XY]) -> str | None:
    if len(ring) < MIN_RING_POINTS:
        return f"Ring requires at least {MIN_RING_POINTS} points, got {len(ring)}"
    if ring[0] != ring[-1]:
        return "Ring is not closed (first and last points must be equal)"
    distinct = _drop_repeated(ring)
    if len(distinct) < MIN_RING_POINTS:
        return "Ring requires at least 3 distinct vertices"
    crossing = _self_intersection(distinct)
    if crossing is not None:
        return f"Ring self-intersection at {crossing}"
    return None


def _drop_repeated(ring: list[XY]) -> list[XY]:
    result = [ring[0]]
    for p in ring[1:]:
        if p != result[-1]:
            result.append(p)
    return result


def _self_intersection(ring: list[XY]) -> XY | None:
    """Find a point where the ring touches itself other than at shared vertices.

    Edge i joins ring[i] and ring[i + 1]. Adjacent edges may only share their
    common vertex; every other pair must be disjoint. The ring must not
    repeat consecutive vertices.
    """
    n = len(ring) - 1
    for i in range(n):
        a1, a2 = ring[i], ring[i + 1]
        for j in range(i + 1, n):
            b1, b2 = ring[j], ring[j + 1]
            hits = intersect_segments(a1, a2, b1, b2)
            if not hits:
                continue
            if j == i + 1:
                shared = a2
            elif i == 0 and j == n - 1:
                shared = a1
            else:
                return hits[0]
            if len(hits) > 1 or hits[0] != shared:
                return hits[0] if hits[0] != shared else hits[-1]
    return None


def _polygon_reason(rings: Sequence) -> str | None:
    if not rings:
        return None
    xy_rings = [_xy(ring) for ring in rings]
    for i, ring in enumerate(xy_rings):
        reason = _ring_reason(ring)
        if reason is not None:
            return reason if i == 0 else f"Hole {i - 1}: {reason}"

    exterior = xy_rings[0]
    holes = xy_rings[1:]
    for i, hole in enumerate(holes):
        crossing = _rings_cross(exterior, hole)
        if crossing is not None:
            return f"Hole {i} crosses the exterior ring at {crossing}"
        if not _ring_inside(hole, exterior):
            return f"Hole {i} lies outside the exterior ring"
    for i, hole in enumerate(holes):
        for j in range(i + 1, len(holes)):
            other = holes[j]
            crossing = _rings_cross(hole, other)
            if crossing is not None:
                return f"Hole {i} crosses hole {j} at {crossing}"
            if _ring_inside(hole, other) or _ring_inside(other, hole):
                return f"Holes {i} and {j} are nested"
    return None


def _rings_cross(a: list[XY], b: list[XY]) -> XY | None:
    """Return a point where the rings overlap along an edge or cross.

    Rings may touch at isolated points; sharing an edge segment or a
    proper crossing makes the polygon invalid.
    """
    for i in range(len(a) - 1):
        a1, a2 = a[i], a[i + 1]
        for j in range(len(b) - 1):
            b1, b2 = b[j], b[j + 1]
            hits = intersect_segments(a1, a2, b1, b2)
            if len(hits) == 2:
                return hits[0]
            if len(hits) == 1:
                p = hits[0]
                if p not in (a1, a2, b1, b2):
                    return p
    return _vertex_crossing(a, b)


def _vertex_crossing(a: list[XY], b: list[XY]) -> XY | None:
    # A crossing through a vertex has no proper intersection point; it shows
    # up as parts of b lying both inside and outside a.
    samples = [*b[:-1], *(_midpoint(b[j], b[j + 1]) for j in range(len(b) - 1))]
    sides = {locate_in_ring(p, a) for p in samples}
    sides.discard(Location.BOUNDARY)
    if len(sides) < 2:
        return None
    for p in b[:-1]:
        if locate_in_ring(p, a) is Location.BOUNDARY:
            return p
    for p in a[:-1]:
        if locate_in_ring(p, b) is Location.BOUNDARY:
            return p
    return b[0]


def _ring_inside(inner: list[XY], outer: list[XY]) -> bool:
    """Check that a non-crossing ring lies inside another.

    Uses the first vertex or edge midpoint of ``inner`` that is not on
    ``outer``; if every such sample is on the boundary, the rings coincide.
    """
    samples = [*inner[:-1], *(_midpoint(inner[i], inner[i + 1]) for i in range(len(inner) - 1))]
    for p in samples:
        location = locate_in_ring(p, outer)
        if location is not Location.BOUNDARY:
            return location is Location.INTERIOR
    return False


def _midpoint(a: XY, b: XY) -> XY:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)
