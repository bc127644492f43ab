"""Accessor functions over Geometry values.

These are the inspection helpers the function layer exposes to users
(point coordinates, endpoints, rings, envelopes). Each returns plain values
or new Geometry values; none mutate their input.
"""

from __future__ import annotations

from geocore.exceptions import GeometryKindError
from geocore.geometry.model import Geometry, GeometryKind
from geocore.geometry.primitives import Coordinate


def _require(geometry: Geometry, *kinds: GeometryKind) -> None:
    if geometry.kind not in kinds:
        expected = " or ".join(k.value for k in kinds)
        raise GeometryKindError(
            f"Expected {expected}, got {geometry.type_name}"
        )


def point_coordinate(geometry: Geometry) -> Coordinate | None:
    """Return the coordinate of a Point (None for an empty Point)."""
    _require(geometry, GeometryKind.POINT)
    return geometry.coordinates


def x(geometry: Geometry) -> float | None:
    """Return the X of a Point."""
    coord = point_coordinate(geometry)
    return None if coord is None else coord.x


def y(geometry: Geometry) -> float | None:
    """Return the Y of a Point."""
    coord = point_coordinate(geometry)
    return None if coord is None else coord.y


def z(geometry: Geometry) -> float | None:
    """Return the Z of a Point, None if it has no elevation."""
    coord = point_coordinate(geometry)
    return None if coord is None else coord.z


def start_point(geometry: Geometry) -> Geometry | None:
    """Return the first vertex of a LineString as a Point."""
    _require(geometry, GeometryKind.LINESTRING)
    if not geometry.coordinates:
        return None
    return Geometry(GeometryKind.POINT, geometry.coordinates[0], geometry.srid)


def end_point(geometry: Geometry) -> Geometry | None:
    """Return the last vertex of a LineString as a Point."""
    _require(geometry, GeometryKind.LINESTRING)
    if not geometry.coordinates:
        return None
    return Geometry(GeometryKind.POINT, geometry.coordinates[-1], geometry.srid)


def exterior_ring(geometry: Geometry) -> Geometry:
    """Return the exterior ring of a Polygon as a LineString."""
    _require(geometry, GeometryKind.POLYGON)
    rings = geometry.coordinates
    return Geometry(GeometryKind.LINESTRING, rings[0] if rings else (), geometry.srid)


def interior_rings(geometry: Geometry) -> tuple[Geometry, ...]:
    """Return the holes of a Polygon as LineStrings."""
    _require(geometry, GeometryKind.POLYGON)
    return tuple(
        Geometry(GeometryKind.LINESTRING, ring, geometry.srid)
        for ring in geometry.coordinates[1:]
    )


def geometry_n(geometry: Geometry, n: int) -> Geometry:
    """Return the n-th (0-based) member of a collection.

    Raises:
        IndexError: If n is out of range.
    """
    members = geometry.geometries()
    if not 0 <= n < len(members):
        raise IndexError(f"Member {n} out of range [0, {len(members) - 1}]")
    return members[n]


def envelope(geometry: Geometry) -> Geometry:
    """Return the bounding box as a geometry.

    A Polygon for boxes with area, a LineString for boxes collapsed to a
    segment, a Point for single-position boxes and an empty Polygon for
    empty input.
    """
    box = geometry.bbox
    if box is None:
        return Geometry.empty(GeometryKind.POLYGON, srid=geometry.srid)
    if box.width == 0.0 and box.height == 0.0:
        return Geometry.point(box.min_x, box.min_y, srid=geometry.srid)
    if box.width == 0.0 or box.height == 0.0:
        return Geometry.line_string(
            [(box.min_x, box.min_y), (box.max_x, box.max_y)], srid=geometry.srid
        )
    return Geometry.polygon(
        [
            (box.min_x, box.min_y),
            (box.max_x, box.min_y),
            (box.max_x, box.max_y),
            (box.min_x, box.max_y),
            (box.min_x, box.min_y),
        ],
        srid=geometry.srid,
    )
