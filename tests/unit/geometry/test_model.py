"""Unit tests for the Geometry value model.

Tests construction, derived metadata, value semantics and the derived-value
operations (translate, with_srid, force_2d, reverse).
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from geocore.exceptions import (
    DimensionalityMismatchError,
    GeometryKindError,
    InvalidRingStructureError,
)
from geocore.geometry import (
    BoundingBox,
    Geometry,
    GeometryFlags,
    GeometryKind,
    Srid,
    construct,
)
from geocore.geometry import accessors


class TestGeometryKind:
    """Tests for GeometryKind parsing."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Point", GeometryKind.POINT),
            ("linestring", GeometryKind.LINESTRING),
            ("multi_polygon", GeometryKind.MULTIPOLYGON),
            ("GEOMETRYCOLLECTION", GeometryKind.GEOMETRYCOLLECTION),
        ],
    )
    def test_parse(self, name: str, expected: GeometryKind) -> None:
        assert GeometryKind.parse(name) is expected

    def test_parse_unknown(self) -> None:
        with pytest.raises(GeometryKindError, match="Unknown geometry kind"):
            GeometryKind.parse("Triangle")

    @pytest.mark.parametrize("name", [None, 3, 1.5])
    def test_parse_rejects_non_string(self, name: object) -> None:
        with pytest.raises(GeometryKindError, match="must be a name"):
            GeometryKind.parse(name)  # type: ignore[arg-type]

    def test_construct_rejects_non_string_kind(self) -> None:
        with pytest.raises(GeometryKindError, match="must be a name"):
            construct(None, (1, 2))  # type: ignore[arg-type]
        with pytest.raises(GeometryKindError, match="must be a name"):
            construct(3, (1, 2))  # type: ignore[arg-type]

    def test_member_kind(self) -> None:
        assert GeometryKind.MULTIPOINT.member_kind is GeometryKind.POINT
        assert GeometryKind.GEOMETRYCOLLECTION.member_kind is None
        assert GeometryKind.GEOMETRYCOLLECTION.is_collection
        assert not GeometryKind.POLYGON.is_collection


class TestConstruction:
    """Tests for geometry builders."""

    def test_point_bbox(self) -> None:
        """A point's box collapses to the point itself."""
        point = Geometry.point(1.5, 2.5)
        assert point.bbox == BoundingBox(min_x=1.5, min_y=2.5, max_x=1.5, max_y=2.5)
        assert point.type_name == "Point"
        assert point.num_points == 1
        assert point.dimension == 0

    def test_default_srid(self) -> None:
        assert Geometry.point(0, 0).srid == Srid.WGS84
        assert construct("point", (0, 0)).srid.code == 4326

    def test_explicit_srid(self) -> None:
        assert Geometry.point(0, 0, srid=3857).srid == Srid.WEB_MERCATOR

    def test_line_string_accepts_single_point(self) -> None:
        """Construction never validates; a 1-point line is accepted."""
        line = Geometry.line_string([(0, 0)])
        assert line.num_points == 1

    def test_polygon_accepts_unclosed_ring(self) -> None:
        polygon = Geometry.polygon([(0, 0), (1, 0), (1, 1)])
        assert polygon.num_points == 3

    def test_strict_polygon_rejects_short_ring(self) -> None:
        with pytest.raises(InvalidRingStructureError) as exc_info:
            Geometry.polygon([(0, 0), (1, 0), (0, 0)], strict=True)
        assert exc_info.value.num_points == 3
        assert exc_info.value.ring_index == 0

    def test_strict_polygon_rejects_open_hole(self) -> None:
        with pytest.raises(InvalidRingStructureError, match="not closed"):
            Geometry.polygon(
                [(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)],
                [[(1, 1), (1, 2), (2, 2), (2, 1)]],
                strict=True,
            )

    def test_mixed_z_rejected(self) -> None:
        with pytest.raises(DimensionalityMismatchError, match="Z"):
            Geometry.line_string([(0, 0, 1), (1, 1)])

    def test_collection_members_must_agree_on_dimensions(self) -> None:
        with pytest.raises(DimensionalityMismatchError):
            Geometry.multi_point([(0, 0, 1), (1, 1)])

    def test_multi_rejects_wrong_member_kind(self) -> None:
        line = Geometry.line_string([(0, 0), (1, 1)])
        with pytest.raises(GeometryKindError, match="MultiPolygon"):
            Geometry.multi_polygon([line])

    def test_collection_rejects_raw_payload(self) -> None:
        with pytest.raises(GeometryKindError, match="Geometry values"):
            construct(GeometryKind.GEOMETRYCOLLECTION, [(0, 0)])

    def test_bad_coordinate(self) -> None:
        with pytest.raises(GeometryKindError, match="Cannot read coordinate"):
            Geometry.line_string([(0, 0), ("a", "b")])


class TestMetadata:
    """Tests for flags and derived metadata."""

    def test_empty_geometries(self) -> None:
        for kind in GeometryKind:
            empty = Geometry.empty(kind)
            assert empty.is_empty
            assert empty.bbox is None
            assert empty.num_points == 0
            assert GeometryFlags.HAS_BBOX not in empty.flags

    def test_empty_collection_dimension(self) -> None:
        assert Geometry.empty("GeometryCollection").dimension == 0
        assert Geometry.empty("Polygon").dimension == 2

    def test_z_and_m_flags(self) -> None:
        line = Geometry.line_string([(0, 0, 1), (1, 1, 2)])
        assert line.has_z
        assert not line.has_m
        assert line.coordinate_dimension == 3

        measured = Geometry.point(1, 2, m=3)
        assert measured.has_m
        assert measured.coordinate_dimension == 3

    def test_collection_metadata(self, unit_square: Geometry) -> None:
        collection = Geometry.geometry_collection(
            [Geometry.point(5, 5), unit_square, Geometry.empty("LineString")]
        )
        assert collection.num_geometries == 3
        assert collection.dimension == 2
        assert collection.num_points == 6
        assert collection.bbox == BoundingBox(min_x=0, min_y=0, max_x=5, max_y=5)

    def test_multi_point_from_coordinates(self) -> None:
        multi = Geometry.multi_point([(0, 0), (2, 3)])
        assert [g.kind for g in multi.geometries()] == [GeometryKind.POINT] * 2
        assert multi.bbox is not None
        assert multi.bbox.to_tuple() == (0.0, 0.0, 2.0, 3.0)


class TestValueSemantics:
    """Tests for equality, hashing and derived values."""

    def test_equal_values_hash_equal(self) -> None:
        a = Geometry.line_string([(0, 0), (1, 1)])
        b = Geometry.line_string([(0.0, 0.0), (1.0, 1.0)])
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_srid_participates_in_equality(self) -> None:
        assert Geometry.point(1, 2) != Geometry.point(1, 2, srid=3857)

    def test_translate_returns_new_value(self, unit_square: Geometry) -> None:
        moved = unit_square.translate(2, 3)
        assert moved is not unit_square
        assert moved.bbox is not None
        assert moved.bbox.to_tuple() == (2.0, 3.0, 3.0, 4.0)
        assert unit_square.bbox is not None
        assert unit_square.bbox.to_tuple() == (0.0, 0.0, 1.0, 1.0)

    def test_with_srid_applies_to_members(self) -> None:
        multi = Geometry.multi_point([(0, 0), (1, 1)]).with_srid(3857)
        assert multi.srid.code == 3857
        assert all(g.srid.code == 3857 for g in multi.geometries())

    def test_force_2d(self) -> None:
        line = Geometry.line_string([(0, 0, 1, 2), (1, 1, 3, 4)]).force_2d()
        assert not line.has_z
        assert not line.has_m

    def test_reverse(self) -> None:
        line = Geometry.line_string([(0, 0), (1, 0), (2, 0)])
        assert [c.x for c in line.reverse().coordinates] == [2.0, 1.0, 0.0]

    @given(
        dx=st.floats(-1e3, 1e3),
        dy=st.floats(-1e3, 1e3),
    )
    def test_translate_shifts_bbox(self, dx: float, dy: float) -> None:
        point = Geometry.point(1.0, 2.0)
        moved = point.translate(dx, dy)
        assert moved.bbox is not None
        assert moved.bbox.min_x == 1.0 + dx
        assert moved.bbox.min_y == 2.0 + dy


class TestAccessors:
    """Tests for geocore.geometry.accessors."""

    def test_point_components(self) -> None:
        point = Geometry.point(1, 2, 3)
        assert (accessors.x(point), accessors.y(point), accessors.z(point)) == (1.0, 2.0, 3.0)
        assert accessors.x(Geometry.empty("Point")) is None

    def test_point_accessor_rejects_other_kinds(self, unit_square: Geometry) -> None:
        with pytest.raises(GeometryKindError, match="Expected Point"):
            accessors.x(unit_square)

    def test_line_endpoints(self) -> None:
        line = Geometry.line_string([(0, 0), (1, 1), (2, 0)])
        assert accessors.start_point(line) == Geometry.point(0, 0)
        assert accessors.end_point(line) == Geometry.point(2, 0)
        assert accessors.start_point(Geometry.empty("LineString")) is None

    def test_rings(self, square_with_hole: Geometry) -> None:
        exterior = accessors.exterior_ring(square_with_hole)
        holes = accessors.interior_rings(square_with_hole)
        assert exterior.kind is GeometryKind.LINESTRING
        assert exterior.num_points == 5
        assert len(holes) == 1
        assert holes[0].bbox is not None
        assert holes[0].bbox.to_tuple() == (1.0, 1.0, 2.0, 2.0)

    def test_geometry_n(self) -> None:
        multi = Geometry.multi_point([(0, 0), (1, 1)])
        assert accessors.geometry_n(multi, 1) == Geometry.point(1, 1)
        with pytest.raises(IndexError):
            accessors.geometry_n(multi, 2)

    def test_envelope(self) -> None:
        line = Geometry.line_string([(0, 0), (2, 1)])
        envelope = accessors.envelope(line)
        assert envelope.kind is GeometryKind.POLYGON
        assert envelope.bbox == line.bbox
        assert accessors.envelope(Geometry.point(1, 1)).kind is GeometryKind.POINT
        flat = Geometry.line_string([(0, 0), (3, 0)])
        assert accessors.envelope(flat).kind is GeometryKind.LINESTRING
        assert accessors.envelope(Geometry.empty("Point")).is_empty

    def test_accessors_exported_from_package(self) -> None:
        from geocore.geometry import end_point, envelope, x, y, z

        p = Geometry.point(1, 2, 3)
        assert (x(p), y(p), z(p)) == (1, 2, 3)
        line = Geometry.line_string([(0, 0), (2, 1)])
        assert end_point(line) == Geometry.point(2, 1)
        assert envelope(line).kind is GeometryKind.POLYGON
