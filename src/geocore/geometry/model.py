"""Geometry value model for geocore.

A ``Geometry`` is a tagged union: a ``GeometryKind`` tag plus a payload whose
shape depends on the tag. Values are frozen; every "modification" builds a
new value. Flags are computed once at construction and the bounding box is
derived lazily and cached on first access.

Payload shapes:
    - POINT: a single ``Coordinate`` (None for an empty point)
    - LINESTRING: tuple of ``Coordinate``
    - POLYGON: tuple of rings, exterior first, each a tuple of ``Coordinate``
    - MULTIPOINT / MULTILINESTRING / MULTIPOLYGON: tuple of member
      ``Geometry`` values of the matching single kind
    - GEOMETRYCOLLECTION: tuple of member ``Geometry`` values of any kind

Example:
    from geocore.geometry import Geometry

    square = Geometry.polygon([(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)])
    square.bbox.to_tuple()  # (0.0, 0.0, 4.0, 4.0)
    square.dimension  # 2
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, TypeAlias

from geocore.config import settings
from geocore.exceptions import (
    DimensionalityMismatchError,
    GeometryKindError,
    InvalidRingStructureError,
)
from geocore.geometry.primitives import BoundingBox, Coordinate, GeometryFlags, Srid

CoordinateLike: TypeAlias = Coordinate | Sequence[float]
Ring: TypeAlias = tuple[Coordinate, ...]

# A closed ring needs three distinct vertices plus the closing vertex.
MIN_RING_POINTS = 4


class GeometryKind(str, Enum):
    """Variant tag of a Geometry."""

    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"
    MULTIPOINT = "MultiPoint"
    MULTILINESTRING = "MultiLineString"
    MULTIPOLYGON = "MultiPolygon"
    GEOMETRYCOLLECTION = "GeometryCollection"

    @classmethod
    def parse(cls, name: str | GeometryKind) -> GeometryKind:
        """Resolve a kind from its tag or a case-insensitive name."""
        if isinstance(name, GeometryKind):
            return name
        if not isinstance(name, str):
            raise GeometryKindError(
                f"Geometry kind must be a name, got {type(name).__name__}"
            )
        lowered = name.replace("_", "").lower()
        for kind in cls:
            if kind.value.lower() == lowered:
                return kind
        raise GeometryKindError(f"Unknown geometry kind: {name!r}")

    @property
    def is_collection(self) -> bool:
        """Return True for the multi kinds and GeometryCollection."""
        return self in _MEMBER_KINDS or self is GeometryKind.GEOMETRYCOLLECTION

    @property
    def member_kind(self) -> GeometryKind | None:
        """Return the single kind a homogeneous collection holds."""
        return _MEMBER_KINDS.get(self)


_MEMBER_KINDS: dict[GeometryKind, GeometryKind] = {
    GeometryKind.MULTIPOINT: GeometryKind.POINT,
    GeometryKind.MULTILINESTRING: GeometryKind.LINESTRING,
    GeometryKind.MULTIPOLYGON: GeometryKind.POLYGON,
}

_KIND_DIMENSION: dict[GeometryKind, int] = {
    GeometryKind.POINT: 0,
    GeometryKind.MULTIPOINT: 0,
    GeometryKind.LINESTRING: 1,
    GeometryKind.MULTILINESTRING: 1,
    GeometryKind.POLYGON: 2,
    GeometryKind.MULTIPOLYGON: 2,
}


def _default_srid() -> Srid:
    return Srid.of(settings.DEFAULT_SRID)


def _to_coordinate(value: CoordinateLike) -> Coordinate:
    if isinstance(value, Coordinate):
        return value
    try:
        return Coordinate.from_tuple(value)
    except (TypeError, ValueError) as e:
        raise GeometryKindError(f"Cannot read coordinate from {value!r}") from e


def _to_sequence(values: Iterable[CoordinateLike]) -> tuple[Coordinate, ...]:
    return tuple(_to_coordinate(v) for v in values)


def _dimension_label(has_z: bool, has_m: bool) -> str:
    return "XY" + ("Z" if has_z else "") + ("M" if has_m else "")


@dataclass(frozen=True)
class Geometry:
    """An immutable geometry value.

    Equality and hashing are value-based over (kind, coordinates, srid).
    The SRID participates: identical coordinates under different SRIDs are
    unequal.

    Attributes:
        kind: Variant tag, fixed at construction.
        coordinates: Kind-specific payload (see module docstring).
        srid: Spatial reference, defaulting to settings.DEFAULT_SRID.
        flags: HAS_Z/HAS_M/IS_EMPTY/HAS_BBOX/HAS_SRID, derived at construction.
    """

    kind: GeometryKind
    coordinates: Any
    srid: Srid = field(default_factory=_default_srid)
    flags: GeometryFlags = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        kind = GeometryKind.parse(self.kind)
        srid = Srid.of(self.srid)
        payload = _normalize_payload(kind, self.coordinates, srid)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "srid", srid)
        object.__setattr__(self, "coordinates", payload)
        object.__setattr__(self, "flags", _compute_flags(kind, payload))

    # -- Builders ---------------------------------------------------------

    @classmethod
    def point(
        cls,
        x: float,
        y: float,
        z: float | None = None,
        m: float | None = None,
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create a Point geometry."""
        return construct(GeometryKind.POINT, Coordinate(x=x, y=y, z=z, m=m), srid)

    @classmethod
    def line_string(
        cls,
        coords: Iterable[CoordinateLike],
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create a LineString geometry from zero or more coordinates."""
        return construct(GeometryKind.LINESTRING, coords, srid)

    @classmethod
    def polygon(
        cls,
        exterior: Iterable[CoordinateLike],
        holes: Iterable[Iterable[CoordinateLike]] = (),
        *,
        srid: int | Srid | None = None,
        strict: bool = False,
    ) -> Geometry:
        """Create a Polygon geometry.

        Args:
            exterior: Exterior ring coordinates.
            holes: Interior ring coordinate sequences.
            srid: Spatial reference code; defaults to settings.DEFAULT_SRID.
            strict: If True, reject rings with fewer than 4 points or whose
                first and last coordinates differ.

        Raises:
            InvalidRingStructureError: If strict=True and a ring is malformed.
            DimensionalityMismatchError: If Z/M presence is inconsistent.
        """
        rings = [_to_sequence(exterior), *(_to_sequence(h) for h in holes)]
        if len(rings) == 1 and not rings[0]:
            rings = []
        if strict:
            for i, ring in enumerate(rings):
                _check_ring_structure(ring, i)
        return construct(GeometryKind.POLYGON, rings, srid)

    @classmethod
    def multi_point(
        cls,
        points: Iterable[CoordinateLike | Geometry],
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create a MultiPoint from coordinates or Point geometries."""
        return construct(GeometryKind.MULTIPOINT, points, srid)

    @classmethod
    def multi_line_string(
        cls,
        lines: Iterable[Iterable[CoordinateLike] | Geometry],
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create a MultiLineString from coordinate sequences or LineStrings."""
        return construct(GeometryKind.MULTILINESTRING, lines, srid)

    @classmethod
    def multi_polygon(
        cls,
        polygons: Iterable[Iterable[Iterable[CoordinateLike]] | Geometry],
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create a MultiPolygon from ring lists or Polygon geometries."""
        return construct(GeometryKind.MULTIPOLYGON, polygons, srid)

    @classmethod
    def geometry_collection(
        cls,
        geometries: Iterable[Geometry],
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create a GeometryCollection of arbitrary member geometries."""
        return construct(GeometryKind.GEOMETRYCOLLECTION, geometries, srid)

    @classmethod
    def empty(
        cls,
        kind: GeometryKind | str,
        *,
        srid: int | Srid | None = None,
    ) -> Geometry:
        """Create an empty geometry of the given kind."""
        kind = GeometryKind.parse(kind)
        return construct(kind, None if kind is GeometryKind.POINT else (), srid)

    # -- Derived metadata ---------------------------------------------------

    @cached_property
    def bbox(self) -> BoundingBox | None:
        """Return the tightest axis-aligned box, or None if empty."""
        if self.is_empty:
            return None
        if self.kind.is_collection:
            boxes = [g.bbox for g in self.coordinates if g.bbox is not None]
            result = boxes[0]
            for box in boxes[1:]:
                result = result.expand(box)
            return result
        return BoundingBox.from_coordinates(self.iter_coordinates())

    @property
    def is_empty(self) -> bool:
        """Return True if the geometry holds zero coordinates."""
        return GeometryFlags.IS_EMPTY in self.flags

    @property
    def has_z(self) -> bool:
        """Return True if every coordinate carries Z."""
        return GeometryFlags.HAS_Z in self.flags

    @property
    def has_m(self) -> bool:
        """Return True if every coordinate carries M."""
        return GeometryFlags.HAS_M in self.flags

    @property
    def type_name(self) -> str:
        """Return the OGC type name (e.g., "Polygon")."""
        return self.kind.value

    @property
    def num_points(self) -> int:
        """Return the total leaf coordinate count, recursive for collections."""
        if self.kind is GeometryKind.POINT:
            return 0 if self.coordinates is None else 1
        if self.kind is GeometryKind.LINESTRING:
            return len(self.coordinates)
        if self.kind is GeometryKind.POLYGON:
            return sum(len(ring) for ring in self.coordinates)
        return sum(g.num_points for g in self.coordinates)

    @property
    def dimension(self) -> int:
        """Return the topological dimension (0 points, 1 lines, 2 areas).

        Collections report the maximum over their members; an empty
        GeometryCollection reports 0.
        """
        fixed = _KIND_DIMENSION.get(self.kind)
        if fixed is not None:
            return fixed
        return max((g.dimension for g in self.coordinates), default=0)

    @property
    def coordinate_dimension(self) -> int:
        """Return 2 for XY, 3 for XYZ or XYM, 4 for XYZM."""
        return 2 + int(self.has_z) + int(self.has_m)

    @property
    def num_geometries(self) -> int:
        """Return the member count of a collection, 1 otherwise."""
        if self.kind.is_collection:
            return len(self.coordinates)
        return 1

    def geometries(self) -> tuple[Geometry, ...]:
        """Return collection members, or a 1-tuple holding this geometry."""
        if self.kind.is_collection:
            return self.coordinates
        return (self,)

    def iter_coordinates(self) -> Iterator[Coordinate]:
        """Yield every leaf coordinate in storage order."""
        if self.kind is GeometryKind.POINT:
            if self.coordinates is not None:
                yield self.coordinates
        elif self.kind is GeometryKind.LINESTRING:
            yield from self.coordinates
        elif self.kind is GeometryKind.POLYGON:
            for ring in self.coordinates:
                yield from ring
        else:
            for member in self.coordinates:
                yield from member.iter_coordinates()

    # -- Derived values -----------------------------------------------------

    def map_coordinates(self, fn: Callable[[Coordinate], Coordinate]) -> Geometry:
        """Return a new geometry with ``fn`` applied to every coordinate."""
        return Geometry(self.kind, _map_payload(self.kind, self.coordinates, fn), self.srid)

    def translate(self, dx: float, dy: float, dz: float = 0.0) -> Geometry:
        """Return a copy shifted by (dx, dy[, dz])."""
        return self.map_coordinates(lambda c: c.translated(dx, dy, dz))

    def with_srid(self, srid: int | Srid) -> Geometry:
        """Return a copy tagged with a different SRID (no reprojection)."""
        srid = Srid.of(srid)
        if self.kind.is_collection:
            members = tuple(g.with_srid(srid) for g in self.coordinates)
            return Geometry(self.kind, members, srid)
        return Geometry(self.kind, self.coordinates, srid)

    def force_2d(self) -> Geometry:
        """Return a copy with Z and M dropped."""
        return self.map_coordinates(lambda c: Coordinate(x=c.x, y=c.y))

    def reverse(self) -> Geometry:
        """Return a copy with the vertex order of every line and ring reversed."""
        if self.kind is GeometryKind.LINESTRING:
            return Geometry(self.kind, self.coordinates[::-1], self.srid)
        if self.kind is GeometryKind.POLYGON:
            rings = tuple(ring[::-1] for ring in self.coordinates)
            return Geometry(self.kind, rings, self.srid)
        if self.kind.is_collection:
            members = tuple(g.reverse() for g in self.coordinates)
            return Geometry(self.kind, members, self.srid)
        return self


def construct(
    kind: GeometryKind | str,
    coordinates: Any,
    srid: int | Srid | None = None,
) -> Geometry:
    """Build a Geometry from a kind tag and a raw payload.

    Construction never fails on shape alone: unclosed rings and single-point
    lines are accepted and left to the validity checker.

    Args:
        kind: Geometry kind tag or name.
        coordinates: Kind-specific payload; coordinates may be Coordinate
            values or (x, y[, z[, m]]) sequences.
        srid: Spatial reference; defaults to settings.DEFAULT_SRID.

    Returns:
        The new Geometry.

    Raises:
        DimensionalityMismatchError: If Z/M presence is inconsistent.
        GeometryKindError: If the payload does not fit the kind.
    """
    return Geometry(
        GeometryKind.parse(kind),
        coordinates,
        _default_srid() if srid is None else Srid.of(srid),
    )


def _check_ring_structure(ring: Ring, index: int) -> None:
    if len(ring) < MIN_RING_POINTS:
        raise InvalidRingStructureError(
            f"Ring requires at least {MIN_RING_POINTS} points",
            ring_index=index,
            num_points=len(ring),
        )
    if ring[0] != ring[-1]:
        raise InvalidRingStructureError(
            "Ring is not closed (first and last points must be equal)",
            ring_index=index,
            num_points=len(ring),
        )


def _normalize_payload(kind: GeometryKind, payload: Any, srid: Srid) -> Any:
    if kind is GeometryKind.POINT:
        return None if payload is None else _to_coordinate(payload)
    if payload is None:
        return ()
    if kind is GeometryKind.LINESTRING:
        return _to_sequence(payload)
    if kind is GeometryKind.POLYGON:
        return tuple(_to_sequence(ring) for ring in payload)
    return tuple(_to_member(kind, item, srid) for item in payload)


def _to_member(kind: GeometryKind, item: Any, srid: Srid) -> Geometry:
    expected = kind.member_kind
    if isinstance(item, Geometry):
        if expected is not None and item.kind is not expected:
            raise GeometryKindError(
                f"{kind.value} cannot hold a {item.kind.value} member"
            )
        return item
    if expected is None:
        raise GeometryKindError(
            f"GeometryCollection members must be Geometry values, got {type(item).__name__}"
        )
    return Geometry(expected, item, srid)


def _map_payload(
    kind: GeometryKind,
    payload: Any,
    fn: Callable[[Coordinate], Coordinate],
) -> Any:
    if kind is GeometryKind.POINT:
        return None if payload is None else fn(payload)
    if kind is GeometryKind.LINESTRING:
        return tuple(fn(c) for c in payload)
    if kind is GeometryKind.POLYGON:
        return tuple(tuple(fn(c) for c in ring) for ring in payload)
    return tuple(g.map_coordinates(fn) for g in payload)


def _compute_flags(kind: GeometryKind, payload: Any) -> GeometryFlags:
    flags = GeometryFlags.HAS_SRID
    if kind.is_collection:
        non_empty = [g for g in payload if not g.is_empty]
        if not non_empty:
            return flags | GeometryFlags.IS_EMPTY
        dims = {g.flags & (GeometryFlags.HAS_Z | GeometryFlags.HAS_M) for g in non_empty}
        if len(dims) > 1:
            labels = sorted(
                _dimension_label(GeometryFlags.HAS_Z in d, GeometryFlags.HAS_M in d)
                for d in dims
            )
            raise DimensionalityMismatchError(
                f"{kind.value} members mix coordinate dimensions",
                expected=labels[0],
                got=labels[-1],
            )
        return flags | dims.pop() | GeometryFlags.HAS_BBOX

    count = 0
    z_count = 0
    m_count = 0
    for coord in _leaf_coordinates(kind, payload):
        count += 1
        z_count += coord.z is not None
        m_count += coord.m is not None
    if count == 0:
        return flags | GeometryFlags.IS_EMPTY
    for present, component in ((z_count, "Z"), (m_count, "M")):
        if 0 < present < count:
            raise DimensionalityMismatchError(
                f"{kind.value} mixes coordinates with and without {component}",
                expected=f"{count} coordinates with {component}",
                got=str(present),
            )
    flags |= GeometryFlags.HAS_BBOX
    if z_count:
        flags |= GeometryFlags.HAS_Z
    if m_count:
        flags |= GeometryFlags.HAS_M
    return flags


def _leaf_coordinates(kind: GeometryKind, payload: Any) -> Iterator[Coordinate]:
    if kind is GeometryKind.POINT:
        if payload is not None:
            yield payload
    elif kind is GeometryKind.LINESTRING:
        yield from payload
    else:
        for ring in payload:
            yield from ring
