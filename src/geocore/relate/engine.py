"""DE-9IM relationship engine.

``relate`` dispatches on the pair of geometry classes (puntal, lineal,
polygonal, collection):

- both puntal: compare point sets directly
- puntal against anything: locate each point in the other geometry
- disjoint bounding boxes or an empty operand: the matrix follows from the
  operands' interior and boundary dimensions alone
- everything else: the general noding engine

The general engine nodes every segment of both geometries against every
other with an x-extent sweep, splitting at crossings, touches and the ends
of collinear overlaps. Between two nodes a sub-edge has a constant location
in both geometries, so a single sample per sub-edge gives a 1-dimensional
cell. Nodes give 0-dimensional cells. The two sides of every ring sub-edge
are labelled Interior or Exterior in both geometries, giving the
2-dimensional cells. Exterior/Exterior is always 2.

Collections are related as the point-set union of their members: polygon
interior dominates polygon boundary, which dominates line boundaries
(mod-2 endpoint rule), which dominate line interiors and points.

All tests use exact floating-point arithmetic on the XY projection; Z and M
are ignored.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field

from geocore.geometry.algorithms import (
    XY,
    Location,
    intersect_segments,
    point_in_ring,
    point_on_ring,
    point_on_segment,
    segment_parameter,
    signed_area,
)
from geocore.geometry.model import Geometry, GeometryKind
from geocore.relate.matrix import IntersectionMatrix

logger = logging.getLogger(__name__)

INTERIOR = Location.INTERIOR
BOUNDARY = Location.BOUNDARY
EXTERIOR = Location.EXTERIOR


# =============================================================================
# Topology
# =============================================================================


def _dedup(coords: list[XY]) -> list[XY]:
    result: list[XY] = []
    for p in coords:
        if not result or p != result[-1]:
            result.append(p)
    return result


def _close(ring: list[XY]) -> list[XY]:
    if ring and ring[0] != ring[-1]:
        return [*ring, ring[0]]
    return ring


def _bounds(coords: list[XY]) -> tuple[float, float, float, float]:
    xs = [p[0] for p in coords]
    ys = [p[1] for p in coords]
    return (min(xs), min(ys), max(xs), max(ys))


@dataclass
class _Polygon:
    rings: list[list[XY]]
    bounds: tuple[float, float, float, float]

    def _in_bounds(self, p: XY) -> bool:
        min_x, min_y, max_x, max_y = self.bounds
        return min_x <= p[0] <= max_x and min_y <= p[1] <= max_y

    def contains(self, p: XY) -> bool:
        """Crossing-number interior test; undefined for points on a ring."""
        if not self._in_bounds(p) or not point_in_ring(p, self.rings[0]):
            return False
        return not any(point_in_ring(p, hole) for hole in self.rings[1:])

    def locate(self, p: XY) -> Location:
        if not self._in_bounds(p):
            return EXTERIOR
        if any(point_on_ring(p, ring) for ring in self.rings):
            return BOUNDARY
        return INTERIOR if self.contains(p) else EXTERIOR


class _Topology:
    """Flattened point, line and polygon components of one geometry."""

    def __init__(self, geometry: Geometry) -> None:
        self.points: list[XY] = []
        self.lines: list[list[XY]] = []
        self.polygons: list[_Polygon] = []
        self._collect(geometry)

        ends: Counter[XY] = Counter()
        for line in self.lines:
            ends[line[0]] += 1
            ends[line[-1]] += 1
        self.line_boundary = frozenset(p for p, n in ends.items() if n % 2 == 1)
        self.point_set = frozenset(self.points)

    def _collect(self, geometry: Geometry) -> None:
        kind = geometry.kind
        if kind is GeometryKind.POINT:
            if geometry.coordinates is not None:
                self.points.append(geometry.coordinates.xy)
        elif kind is GeometryKind.LINESTRING:
            self._add_line(_dedup([c.xy for c in geometry.coordinates]))
        elif kind is GeometryKind.POLYGON:
            self._add_polygon(geometry.coordinates)
        else:
            for member in geometry.coordinates:
                self._collect(member)

    def _add_line(self, coords: list[XY]) -> None:
        if len(coords) >= 2:
            self.lines.append(coords)
        elif coords:
            self.points.append(coords[0])

    def _add_polygon(self, rings: tuple) -> None:
        if not rings or not rings[0]:
            # Holes without an exterior bound no area.
            return
        closed = [_close(_dedup([c.xy for c in ring])) for ring in rings if ring]
        exterior = closed[0]
        if len(exterior) < 4:
            # Collapsed area: keep what is left of it as a line or point.
            self._add_line(exterior[:-1] if len(exterior) > 1 else exterior)
            return
        holes = [ring for ring in closed[1:] if len(ring) >= 4]
        self.polygons.append(_Polygon([exterior, *holes], _bounds(exterior)))

    @property
    def is_empty(self) -> bool:
        return not (self.points or self.lines or self.polygons)

    @property
    def interior_dimension(self) -> int:
        if self.polygons:
            return 2
        if self.lines:
            return 1
        if self.points:
            return 0
        return -1

    @property
    def boundary_dimension(self) -> int:
        if self.polygons:
            return 1
        if self.line_boundary:
            return 0
        return -1

    def in_area(self, p: XY, skip: frozenset[int] = frozenset()) -> bool:
        """Check whether p is strictly inside some polygon not listed in ``skip``."""
        return any(
            poly.contains(p) for k, poly in enumerate(self.polygons) if k not in skip
        )

    def locate(self, p: XY) -> Location:
        """Locate a point exactly against the union of all components."""
        on_boundary = False
        for poly in self.polygons:
            loc = poly.locate(p)
            if loc is INTERIOR:
                return INTERIOR
            if loc is BOUNDARY:
                on_boundary = True
        if on_boundary:
            return BOUNDARY
        if p in self.line_boundary:
            return BOUNDARY
        for line in self.lines:
            if any(point_on_segment(p, line[k], line[k + 1]) for k in range(len(line) - 1)):
                return INTERIOR
        if p in self.point_set:
            return INTERIOR
        return EXTERIOR


# =============================================================================
# Shortcut relations
# =============================================================================


def _relate_disjoint(ta: _Topology, tb: _Topology) -> IntersectionMatrix:
    matrix = IntersectionMatrix()
    matrix.set(INTERIOR, EXTERIOR, ta.interior_dimension)
    matrix.set(BOUNDARY, EXTERIOR, ta.boundary_dimension)
    matrix.set(EXTERIOR, INTERIOR, tb.interior_dimension)
    matrix.set(EXTERIOR, BOUNDARY, tb.boundary_dimension)
    matrix.set(EXTERIOR, EXTERIOR, 2)
    return matrix


def _relate_points(ta: _Topology, tb: _Topology) -> IntersectionMatrix:
    matrix = IntersectionMatrix()
    if ta.point_set & tb.point_set:
        matrix.set(INTERIOR, INTERIOR, 0)
    if ta.point_set - tb.point_set:
        matrix.set(INTERIOR, EXTERIOR, 0)
    if tb.point_set - ta.point_set:
        matrix.set(EXTERIOR, INTERIOR, 0)
    matrix.set(EXTERIOR, EXTERIOR, 2)
    return matrix


def _relate_point_geometry(ta: _Topology, tb: _Topology) -> IntersectionMatrix:
    """Relate a puntal geometry to one of any class by locating each point."""
    matrix = IntersectionMatrix()
    for p in ta.point_set:
        matrix.set_at_least(INTERIOR, tb.locate(p), 0)

    if tb.polygons or tb.lines:
        matrix.set(EXTERIOR, INTERIOR, tb.interior_dimension)
    elif tb.point_set - ta.point_set:
        matrix.set(EXTERIOR, INTERIOR, 0)
    if tb.polygons:
        matrix.set(EXTERIOR, BOUNDARY, 1)
    elif tb.line_boundary - ta.point_set:
        matrix.set(EXTERIOR, BOUNDARY, 0)
    matrix.set(EXTERIOR, EXTERIOR, 2)
    return matrix


def _relate_geometry_point(ta: _Topology, tb: _Topology) -> IntersectionMatrix:
    return _relate_point_geometry(tb, ta).transpose()


# =============================================================================
# General noding engine
# =============================================================================

_POINT = "point"
_LINE = "line"
_RING = "ring"


@dataclass
class _Component:
    geom: int
    kind: str
    coords: list[XY]
    closed: bool = False
    interior_left: bool = False
    polygon: int = -1
    first_segment: int = 0


@dataclass
class _SubEdgeLabel:
    location: Location
    left: Location
    right: Location


@dataclass
class _Noding:
    """Segments of both geometries with their split points and overlaps."""

    components: list[_Component] = field(default_factory=list)
    starts: list[XY] = field(default_factory=list)
    ends: list[XY] = field(default_factory=list)
    owners: list[int] = field(default_factory=list)
    positions: list[int] = field(default_factory=list)
    splits: list[list[XY]] = field(default_factory=list)
    overlaps: list[list[tuple[XY, XY, int]]] = field(default_factory=list)
    node_hits: defaultdict[XY, set[int]] = field(default_factory=lambda: defaultdict(set))

    def add_component(self, component: _Component) -> None:
        index = len(self.components)
        component.first_segment = len(self.starts)
        self.components.append(component)
        coords = component.coords
        if component.kind is _POINT:
            self._add_segment(coords[0], coords[0], index, 0)
            return
        for k in range(len(coords) - 1):
            self._add_segment(coords[k], coords[k + 1], index, k)

    def _add_segment(self, a: XY, b: XY, owner: int, position: int) -> None:
        self.starts.append(a)
        self.ends.append(b)
        self.owners.append(owner)
        self.positions.append(position)
        self.splits.append([])
        self.overlaps.append([])

    def sweep(self) -> None:
        """Intersect every pair of segments whose extents overlap."""
        n = len(self.starts)
        min_x = [min(self.starts[i][0], self.ends[i][0]) for i in range(n)]
        max_x = [max(self.starts[i][0], self.ends[i][0]) for i in range(n)]
        min_y = [min(self.starts[i][1], self.ends[i][1]) for i in range(n)]
        max_y = [max(self.starts[i][1], self.ends[i][1]) for i in range(n)]

        active: list[int] = []
        for i in sorted(range(n), key=min_x.__getitem__):
            x0 = min_x[i]
            active = [j for j in active if max_x[j] >= x0]
            for j in active:
                if min_y[j] > max_y[i] or max_y[j] < min_y[i]:
                    continue
                self._intersect(i, j)
            active.append(i)

    def _adjacent(self, i: int, j: int) -> bool:
        owner = self.owners[i]
        if owner != self.owners[j]:
            return False
        pi, pj = self.positions[i], self.positions[j]
        if abs(pi - pj) == 1:
            return True
        component = self.components[owner]
        last = len(component.coords) - 2
        return component.closed and {pi, pj} == {0, last}

    def _intersect(self, i: int, j: int) -> None:
        a1, a2 = self.starts[i], self.ends[i]
        b1, b2 = self.starts[j], self.ends[j]
        hits = intersect_segments(a1, a2, b1, b2)
        if not hits:
            return
        if a1 == a2 or b1 == b2:
            hits = (a1 if a1 == a2 else b1,)
        elif len(hits) == 1 and self._adjacent(i, j) and hits[0] in {a1, a2} & {b1, b2}:
            return

        owners = (self.owners[i], self.owners[j])
        for h in hits:
            self.splits[i].append(h)
            self.splits[j].append(h)
            self.node_hits[h].update(owners)
        if len(hits) == 2:
            self.overlaps[i].append((hits[0], hits[1], j))
            self.overlaps[j].append((hits[0], hits[1], i))

    def nodes_of(self, segment: int) -> list[tuple[float, XY]]:
        """Return the segment's nodes as (parameter, point), in order."""
        a, b = self.starts[segment], self.ends[segment]
        inner = {
            (segment_parameter(p, a, b), p)
            for p in self.splits[segment]
            if p != a and p != b
        }
        return [(0.0, a), *sorted(inner), (1.0, b)]

    def same_direction(self, i: int, j: int) -> bool:
        ai, bi = self.starts[i], self.ends[i]
        aj, bj = self.starts[j], self.ends[j]
        dot = (bi[0] - ai[0]) * (bj[0] - aj[0]) + (bi[1] - ai[1]) * (bj[1] - aj[1])
        return dot > 0.0


class _GeneralRelate:
    """Node both geometries together and label the resulting graph."""

    def __init__(self, ta: _Topology, tb: _Topology) -> None:
        self.topologies = (ta, tb)
        self.matrix = IntersectionMatrix()
        self.noding = _Noding()
        for index, topo in enumerate(self.topologies):
            for component in _components(index, topo):
                self.noding.add_component(component)

    def compute(self) -> IntersectionMatrix:
        noding = self.noding
        noding.sweep()
        logger.debug(
            "Noded %d segments, %d intersection nodes",
            len(noding.starts),
            len(noding.node_hits),
        )
        for index, component in enumerate(noding.components):
            if component.kind is _POINT:
                self._label_point(index, component)
            else:
                self._label_edges(component)
        for p, owners in noding.node_hits.items():
            self._add(0, self._node_location(0, p, owners), self._node_location(1, p, owners))
        self.matrix.set(EXTERIOR, EXTERIOR, 2)
        return self.matrix

    def _add(self, dim: int, loc_a: Location, loc_b: Location) -> None:
        self.matrix.set_at_least(loc_a, loc_b, dim)

    def _label_point(self, index: int, component: _Component) -> None:
        p = component.coords[0]
        if p in self.noding.node_hits:
            return
        # Not on any segment, so only the other geometry's areas can hold it.
        other = self.topologies[1 - component.geom]
        locs = [INTERIOR, INTERIOR]
        locs[1 - component.geom] = INTERIOR if other.in_area(p) else EXTERIOR
        self._add(0, locs[0], locs[1])

    def _label_edges(self, component: _Component) -> None:
        noding = self.noding
        # Area membership by crossing number; only changes at intersection nodes.
        in_area: list[bool | None] = [None, None]
        labels: tuple[_SubEdgeLabel, _SubEdgeLabel] | None = None
        first_labels: tuple[_SubEdgeLabel, _SubEdgeLabel] | None = None

        num_segments = len(component.coords) - 1
        for k in range(num_segments):
            segment = component.first_segment + k
            nodes = noding.nodes_of(segment)
            for (tp, p), (tq, q) in zip(nodes, nodes[1:]):
                labels = self._label_sub_edge(component, segment, (tp + tq) / 2.0, p, q, in_area)
                if first_labels is None:
                    first_labels = labels
                a, b = labels
                self._add(1, a.location, b.location)
                if component.kind is _RING:
                    self._add(2, a.left, b.left)
                    self._add(2, a.right, b.right)
                if q in noding.node_hits:
                    in_area = [None, None]

        if component.kind is _LINE and not component.closed:
            self._label_line_end(component, component.coords[0], first_labels)
            self._label_line_end(component, component.coords[-1], labels)

    def _label_line_end(
        self,
        component: _Component,
        p: XY,
        labels: tuple[_SubEdgeLabel, _SubEdgeLabel] | None,
    ) -> None:
        if labels is None or p in self.noding.node_hits:
            return
        # An end touching nothing else keeps the other geometry's location of
        # its sub-edge; in its own geometry it is boundary unless an area
        # of the same collection covers it.
        locs = [labels[0].location, labels[1].location]
        own = component.geom
        locs[own] = INTERIOR if self.topologies[own].in_area(p) else BOUNDARY
        self._add(0, locs[0], locs[1])

    def _label_sub_edge(
        self,
        component: _Component,
        segment: int,
        t_mid: float,
        p: XY,
        q: XY,
        in_area: list[bool | None],
    ) -> tuple[_SubEdgeLabel, _SubEdgeLabel]:
        noding = self.noding
        partners = [
            j
            for h0, h1, j in noding.overlaps[segment]
            if _between(t_mid, h0, h1, noding.starts[segment], noding.ends[segment])
        ]
        result = []
        for g in (0, 1):
            rings = [j for j in partners if self._kind_of(j, g) is _RING]
            on_line = any(self._kind_of(j, g) is _LINE for j in partners)
            if component.geom == g:
                if component.kind is _RING:
                    rings.append(segment)
                else:
                    on_line = True

            if rings:
                left = any(self._interior_on_left(segment, j) for j in rings)
                right = any(not self._interior_on_left(segment, j) for j in rings)
                if not (left and right) and self._in_other_area(g, rings, p, q):
                    # Another polygon of the same geometry covers both sides.
                    left = right = True
                area = INTERIOR if left and right else BOUNDARY
                side_left = INTERIOR if left else EXTERIOR
                side_right = INTERIOR if right else EXTERIOR
            else:
                if in_area[g] is None:
                    mid = ((p[0] + q[0]) / 2.0, (p[1] + q[1]) / 2.0)
                    skip = frozenset({component.polygon}) if component.geom == g else frozenset()
                    in_area[g] = self.topologies[g].in_area(mid, skip)
                area = INTERIOR if in_area[g] else EXTERIOR
                side_left = side_right = area

            location = area if area is not EXTERIOR else (INTERIOR if on_line else EXTERIOR)
            result.append(_SubEdgeLabel(location, side_left, side_right))
        return result[0], result[1]

    def _in_other_area(self, g: int, rings: list[int], p: XY, q: XY) -> bool:
        """Check whether polygons not owning ``rings`` hold the sub-edge p-q."""
        topo = self.topologies[g]
        owning = frozenset(
            self.noding.components[self.noding.owners[j]].polygon for j in rings
        )
        if len(owning) >= len(topo.polygons):
            return False
        mid = ((p[0] + q[0]) / 2.0, (p[1] + q[1]) / 2.0)
        return topo.in_area(mid, owning)

    def _kind_of(self, segment: int, geom: int) -> str | None:
        component = self.noding.components[self.noding.owners[segment]]
        return component.kind if component.geom == geom else None

    def _interior_on_left(self, segment: int, ring_segment: int) -> bool:
        ring = self.noding.components[self.noding.owners[ring_segment]]
        if self.noding.same_direction(segment, ring_segment):
            return ring.interior_left
        return not ring.interior_left

    def _node_location(self, g: int, p: XY, owners: set[int]) -> Location:
        topo = self.topologies[g]
        incident = [
            self.noding.components[c]
            for c in owners
            if self.noding.components[c].geom == g
        ]
        ring_polygons = frozenset(c.polygon for c in incident if c.kind is _RING)
        if topo.in_area(p, ring_polygons):
            return INTERIOR
        if ring_polygons:
            return BOUNDARY
        if p in topo.line_boundary:
            return BOUNDARY
        if incident:
            return INTERIOR
        return EXTERIOR


def _between(t: float, h0: XY, h1: XY, a: XY, b: XY) -> bool:
    t0 = segment_parameter(h0, a, b)
    t1 = segment_parameter(h1, a, b)
    return min(t0, t1) < t < max(t0, t1)


def _components(index: int, topo: _Topology) -> list[_Component]:
    components = [_Component(index, _POINT, [p]) for p in topo.points]
    components.extend(
        _Component(index, _LINE, line, closed=line[0] == line[-1]) for line in topo.lines
    )
    for k, polygon in enumerate(topo.polygons):
        for r, ring in enumerate(polygon.rings):
            # Exterior rings hold the interior on their left when
            # counter-clockwise; holes when clockwise.
            ccw = signed_area(ring) > 0.0
            components.append(
                _Component(
                    index,
                    _RING,
                    ring,
                    closed=True,
                    interior_left=ccw != (r > 0),
                    polygon=k,
                )
            )
    return components


def _relate_general(ta: _Topology, tb: _Topology) -> IntersectionMatrix:
    return _GeneralRelate(ta, tb).compute()


# =============================================================================
# Dispatch
# =============================================================================

_PUNTAL = "puntal"
_LINEAL = "lineal"
_POLYGONAL = "polygonal"
_COLLECTION = "collection"

_KIND_CLASS: dict[GeometryKind, str] = {
    GeometryKind.POINT: _PUNTAL,
    GeometryKind.MULTIPOINT: _PUNTAL,
    GeometryKind.LINESTRING: _LINEAL,
    GeometryKind.MULTILINESTRING: _LINEAL,
    GeometryKind.POLYGON: _POLYGONAL,
    GeometryKind.MULTIPOLYGON: _POLYGONAL,
    GeometryKind.GEOMETRYCOLLECTION: _COLLECTION,
}

RelateHandler = Callable[[_Topology, _Topology], IntersectionMatrix]

_DISPATCH: dict[tuple[str, str], RelateHandler] = {(_PUNTAL, _PUNTAL): _relate_points}
for _other in (_LINEAL, _POLYGONAL, _COLLECTION):
    _DISPATCH[(_PUNTAL, _other)] = _relate_point_geometry
    _DISPATCH[(_other, _PUNTAL)] = _relate_geometry_point


def relate_with_dimensions(a: Geometry, b: Geometry) -> tuple[IntersectionMatrix, int, int]:
    """Compute the DE-9IM matrix and the interior dimensions of both operands.

    Dimensions are -1 for empty operands. Callers are expected to have
    checked the operand types.
    """
    ta = _Topology(a)
    tb = _Topology(b)
    dim_a, dim_b = ta.interior_dimension, tb.interior_dimension
    box_a, box_b = a.bbox, b.bbox
    if (
        ta.is_empty
        or tb.is_empty
        or box_a is None
        or box_b is None
        or not box_a.intersects(box_b)
    ):
        return _relate_disjoint(ta, tb), dim_a, dim_b
    handler = _DISPATCH.get((_KIND_CLASS[a.kind], _KIND_CLASS[b.kind]), _relate_general)
    return handler(ta, tb), dim_a, dim_b


def compute_matrix(a: Geometry, b: Geometry) -> IntersectionMatrix:
    """Compute the DE-9IM matrix of two Geometry values."""
    return relate_with_dimensions(a, b)[0]
