"""Unit tests for geometry validity checks.

Tests the validity rules (points, lines, rings, polygons, collections),
is_ring / is_closed, and GeometryValidator strict mode.
"""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from geocore.exceptions import InvalidGeometryError
from geocore.geometry import (
    Geometry,
    GeometryValidator,
    is_closed,
    is_ring,
    is_valid,
    validity_reason,
)

SQUARE = [(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)]


class TestSimpleKinds:
    """Tests for points and lines."""

    def test_point_always_valid(self) -> None:
        assert is_valid(Geometry.point(float("nan"), float("inf")))

    def test_empty_line_valid(self) -> None:
        assert is_valid(Geometry.empty("LineString"))

    def test_single_point_line_invalid(self) -> None:
        line = Geometry.line_string([(0, 0)])
        assert not is_valid(line)
        assert "at least 2 points" in (validity_reason(line) or "")

    def test_self_crossing_line_is_valid(self) -> None:
        """Lines may cross themselves; only rings must be simple."""
        line = Geometry.line_string([(0, 0), (2, 2), (2, 0), (0, 2)])
        assert is_valid(line)


class TestPolygons:
    """Tests for polygon rules."""

    def test_square_valid(self, unit_square: Geometry) -> None:
        assert is_valid(unit_square)
        assert validity_reason(unit_square) is None

    def test_polygon_with_hole_valid(self, square_with_hole: Geometry) -> None:
        assert is_valid(square_with_hole)

    def test_valid_polygons_have_closed_rings(self, square_with_hole: Geometry) -> None:
        for ring in square_with_hole.coordinates:
            assert len(ring) >= 4
            assert ring[0] == ring[-1]

    def test_empty_polygon_valid(self) -> None:
        assert is_valid(Geometry.empty("Polygon"))

    def test_unclosed_ring_invalid(self) -> None:
        polygon = Geometry.polygon([(0, 0), (4, 0), (4, 4), (0, 4)])
        assert "not closed" in (validity_reason(polygon) or "")

    def test_too_few_points_invalid(self) -> None:
        polygon = Geometry.polygon([(0, 0), (1, 1), (0, 0)])
        assert "at least 4 points" in (validity_reason(polygon) or "")

    def test_collapsed_ring_invalid(self) -> None:
        polygon = Geometry.polygon([(0, 0), (1, 0), (1, 0), (0, 0)])
        assert not is_valid(polygon)

    def test_bowtie_invalid(self) -> None:
        polygon = Geometry.polygon([(0, 0), (2, 2), (2, 0), (0, 2), (0, 0)])
        reason = validity_reason(polygon)
        assert reason is not None
        assert "self-intersection" in reason

    def test_repeated_vertices_still_valid(self) -> None:
        polygon = Geometry.polygon([(0, 0), (4, 0), (4, 0), (4, 4), (0, 4), (0, 0)])
        assert is_valid(polygon)

    def test_hole_outside_exterior_invalid(self) -> None:
        polygon = Geometry.polygon(SQUARE, [[(5, 5), (6, 5), (6, 6), (5, 6), (5, 5)]])
        assert "outside" in (validity_reason(polygon) or "")

    def test_hole_crossing_exterior_invalid(self) -> None:
        polygon = Geometry.polygon(SQUARE, [[(3, 1), (5, 1), (5, 2), (3, 2), (3, 1)]])
        assert "crosses the exterior" in (validity_reason(polygon) or "")

    def test_hole_sharing_exterior_edge_invalid(self) -> None:
        polygon = Geometry.polygon(SQUARE, [[(0, 1), (1, 1), (1, 2), (0, 2), (0, 1)]])
        assert not is_valid(polygon)

    def test_hole_touching_exterior_at_point_valid(self) -> None:
        polygon = Geometry.polygon(SQUARE, [[(0, 2), (1, 1), (2, 2), (1, 3), (0, 2)]])
        assert is_valid(polygon)

    def test_nested_holes_invalid(self) -> None:
        outer = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        big_hole = [(1, 1), (9, 1), (9, 9), (1, 9), (1, 1)]
        small_hole = [(3, 3), (5, 3), (5, 5), (3, 5), (3, 3)]
        polygon = Geometry.polygon(outer, [big_hole, small_hole])
        assert "nested" in (validity_reason(polygon) or "")

    def test_crossing_holes_invalid(self) -> None:
        outer = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
        a = [(1, 1), (5, 1), (5, 5), (1, 5), (1, 1)]
        b = [(3, 3), (7, 3), (7, 7), (3, 7), (3, 3)]
        polygon = Geometry.polygon(outer, [a, b])
        assert "crosses hole" in (validity_reason(polygon) or "")

    def test_hole_reason_names_the_hole(self) -> None:
        polygon = Geometry.polygon(SQUARE, [[(1, 1), (2, 2), (1, 1)]])
        assert (validity_reason(polygon) or "").startswith("Hole 0:")


class TestCollections:
    """Tests for collection validity."""

    def test_empty_collection_valid(self) -> None:
        assert is_valid(Geometry.empty("GeometryCollection"))

    def test_invalid_member_reported(self, unit_square: Geometry) -> None:
        collection = Geometry.geometry_collection(
            [unit_square, Geometry.line_string([(0, 0)])]
        )
        assert not is_valid(collection)
        assert (validity_reason(collection) or "").startswith("Member 1:")


class TestRingAndClosed:
    """Tests for is_ring and is_closed."""

    def test_closed_simple_line_is_ring(self) -> None:
        assert is_ring(Geometry.line_string(SQUARE))

    def test_open_line_not_ring(self) -> None:
        assert not is_ring(Geometry.line_string([(0, 0), (1, 0), (1, 1)]))

    def test_bowtie_line_not_ring(self) -> None:
        assert not is_ring(Geometry.line_string([(0, 0), (2, 2), (2, 0), (0, 2), (0, 0)]))

    def test_polygon_not_ring(self, unit_square: Geometry) -> None:
        assert not is_ring(unit_square)

    def test_is_closed(self, unit_square: Geometry) -> None:
        assert is_closed(Geometry.point(0, 0))
        assert is_closed(Geometry.line_string(SQUARE))
        assert not is_closed(Geometry.line_string([(0, 0), (1, 1)]))
        assert not is_closed(Geometry.empty("LineString"))
        assert is_closed(unit_square)
        multi = Geometry.multi_line_string([SQUARE, [(0, 0), (1, 1)]])
        assert not is_closed(multi)

    @given(
        x=st.floats(-1e6, 1e6),
        y=st.floats(-1e6, 1e6),
        size=st.floats(1e-3, 1e3),
    )
    def test_axis_aligned_squares_are_valid(self, x: float, y: float, size: float) -> None:
        x2, y2 = x + size, y + size
        if x2 == x or y2 == y:
            return
        square = Geometry.polygon([(x, y), (x2, y), (x2, y2), (x, y2), (x, y)])
        assert is_valid(square)


class TestGeometryValidator:
    """Tests for GeometryValidator strict mode."""

    @pytest.fixture
    def validator(self) -> GeometryValidator:
        """Create a validator instance."""
        return GeometryValidator()

    def test_strict_raises_with_reason(self, validator: GeometryValidator) -> None:
        line = Geometry.line_string([(0, 0)])
        with pytest.raises(InvalidGeometryError) as exc_info:
            validator.validate(line)
        assert exc_info.value.reason is not None
        assert "reason=" in str(exc_info.value)

    def test_non_strict_returns_false(self, validator: GeometryValidator) -> None:
        assert validator.validate(Geometry.line_string([(0, 0)]), strict=False) is False

    def test_valid_returns_true(
        self, validator: GeometryValidator, unit_square: Geometry
    ) -> None:
        assert validator.validate(unit_square) is True
