"""Unit tests for the R*-tree SpatialIndex.

Most tests use a node capacity of 4 so that small inputs already build
multi-level trees and exercise splits, forced reinsertion and condensing.
"""

from __future__ import annotations

import math
import random

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from geocore.config import ConfigError, Settings
from geocore.exceptions import (
    ConcurrentModificationError,
    InvalidBoundingBoxError,
    MissingBoundingBoxError,
)
from geocore.geometry import BoundingBox, Coordinate, Geometry
from geocore.index import Neighbor, SpatialIndex


def point_box(x: float, y: float) -> tuple[float, float, float, float]:
    return (x, y, x, y)


def brute_force_knn(
    points: list[tuple[float, float]], qx: float, qy: float, k: int
) -> list[int]:
    def key(i: int) -> tuple[float, int]:
        return (math.hypot(points[i][0] - qx, points[i][1] - qy), i)

    order = sorted(range(len(points)), key=key)
    return order[:k]


@pytest.fixture
def small_index(test_settings: Settings) -> SpatialIndex:
    """Empty index with capacity 4."""
    return SpatialIndex(config=test_settings, name="test")


@pytest.fixture
def grid_index(small_index: SpatialIndex) -> SpatialIndex:
    """Index of unit boxes on a 10x10 grid, ids (i, j)."""
    for i in range(10):
        for j in range(10):
            small_index.insert((i, j), (i, j, i + 1, j + 1))
    return small_index


class TestConstruction:
    """Tests for capacity and settings handling."""

    def test_defaults_from_settings(self) -> None:
        index = SpatialIndex()
        assert len(index) == 0
        assert index.height == 1
        assert index.bounds is None

    def test_max_entries_override(self, test_settings: Settings) -> None:
        index = SpatialIndex(8, config=test_settings)
        for i in range(9):
            index.insert(i, point_box(i, i))
        assert index.height == 2

    def test_rejects_tiny_capacity(self) -> None:
        with pytest.raises(ConfigError):
            SpatialIndex(max_entries=2)


class TestInsertAndQuery:
    """Tests for insert, query_bbox and introspection."""

    def test_empty_index_queries(self, small_index: SpatialIndex) -> None:
        assert list(small_index.query_bbox((0, 0, 1, 1))) == []
        assert small_index.query_knn((0, 0), 3) == []
        assert list(small_index.query_within_distance((0, 0), 10)) == []
        assert small_index.nearest((0, 0)) == []

    def test_grid_round_trip(self, grid_index: SpatialIndex) -> None:
        assert len(grid_index) == 100
        assert grid_index.height > 2
        everything = set(grid_index.query_bbox((-1, -1, 11, 11)))
        assert everything == {(i, j) for i in range(10) for j in range(10)}

    def test_query_is_closed(self, grid_index: SpatialIndex) -> None:
        """Boxes touching the query along an edge or corner are returned."""
        found = set(grid_index.query_bbox((2, 2, 3, 3)))
        assert found == {(i, j) for i in (1, 2, 3) for j in (1, 2, 3)}

    def test_query_no_duplicates(self, grid_index: SpatialIndex) -> None:
        found = list(grid_index.query_bbox((0, 0, 10, 10)))
        assert len(found) == len(set(found)) == 100

    def test_query_accepts_bounding_box(self, grid_index: SpatialIndex) -> None:
        box = BoundingBox(min_x=0.25, min_y=0.25, max_x=0.75, max_y=0.75)
        assert list(grid_index.query_bbox(box)) == [(0, 0)]

    def test_bounds_and_contains(self, grid_index: SpatialIndex) -> None:
        assert grid_index.bounds == BoundingBox(min_x=0, min_y=0, max_x=10, max_y=10)
        assert (3, 4) in grid_index
        assert (10, 10) not in grid_index
        assert set(grid_index) == {(i, j) for i in range(10) for j in range(10)}

    def test_insert_replaces_existing_id(self, small_index: SpatialIndex) -> None:
        small_index.insert("a", (0, 0, 1, 1))
        small_index.insert("a", (10, 10, 11, 11))
        assert len(small_index) == 1
        assert list(small_index.query_bbox((0, 0, 1, 1))) == []
        assert list(small_index.query_bbox((10, 10, 11, 11))) == ["a"]
        assert small_index.get_bounds("a") == BoundingBox(min_x=10, min_y=10, max_x=11, max_y=11)

    def test_insert_geometry(self, small_index: SpatialIndex, unit_square: Geometry) -> None:
        small_index.insert_geometry("square", unit_square)
        assert list(small_index.query_bbox((0.5, 0.5, 0.5, 0.5))) == ["square"]

    def test_insert_empty_geometry_raises(self, small_index: SpatialIndex) -> None:
        with pytest.raises(MissingBoundingBoxError, match="empty Polygon"):
            small_index.insert_geometry("nothing", Geometry.empty("Polygon"))
        assert len(small_index) == 0

    def test_inverted_box_rejected(self, small_index: SpatialIndex) -> None:
        with pytest.raises(InvalidBoundingBoxError):
            small_index.insert("bad", (1, 0, 0, 1))

    def test_zero_area_boxes_are_regular_entries(self, small_index: SpatialIndex) -> None:
        small_index.insert("p", point_box(1, 1))
        small_index.insert("seg", (0, 2, 5, 2))
        assert list(small_index.query_bbox((1, 1, 1, 1))) == ["p"]
        assert list(small_index.query_bbox((3, 1, 3, 3))) == ["seg"]


class TestRemove:
    """Tests for removal and tree condensing."""

    def test_remove_half(self, grid_index: SpatialIndex) -> None:
        removed = {(i, j) for i in range(10) for j in range(10) if (i + j) % 2 == 0}
        for item_id in sorted(removed):
            assert grid_index.remove(item_id)
        assert len(grid_index) == 50
        remaining = set(grid_index.query_bbox((0, 0, 10, 10)))
        assert remaining == {(i, j) for i in range(10) for j in range(10)} - removed

    def test_remove_all_shrinks_tree(self, grid_index: SpatialIndex) -> None:
        for i in range(10):
            for j in range(10):
                grid_index.remove((i, j))
        assert len(grid_index) == 0
        assert grid_index.height == 1
        assert grid_index.bounds is None

    def test_remove_unknown_id(self, small_index: SpatialIndex) -> None:
        assert small_index.remove("missing") is False

    def test_clear(self, grid_index: SpatialIndex) -> None:
        grid_index.clear()
        assert len(grid_index) == 0
        assert list(grid_index.query_bbox((0, 0, 10, 10))) == []
        grid_index.insert("again", (0, 0, 1, 1))
        assert grid_index.query_knn((0, 0)) == ["again"]


class TestNaNBoxes:
    """Tests for entries whose boxes contain NaN."""

    def test_stored_but_never_returned(self, small_index: SpatialIndex) -> None:
        small_index.insert("nan", (math.nan, 0.0, 1.0, 1.0))
        small_index.insert("ok", (0.0, 0.0, 1.0, 1.0))
        assert len(small_index) == 2
        assert "nan" in small_index
        assert list(small_index.query_bbox((-100, -100, 100, 100))) == ["ok"]
        assert small_index.query_knn((0, 0), 5) == ["ok"]
        assert small_index.get_bounds("nan") is not None

    def test_remove_nan_entry(self, small_index: SpatialIndex) -> None:
        small_index.insert("nan", (math.nan, math.nan, math.nan, math.nan))
        assert small_index.remove("nan")
        assert len(small_index) == 0


class TestNearest:
    """Tests for KNN and within-distance queries."""

    def test_nearest_returns_distances(self, small_index: SpatialIndex) -> None:
        small_index.insert("near", point_box(3, 4))
        small_index.insert("far", point_box(6, 8))
        assert small_index.nearest((0, 0), 2) == [Neighbor("near", 5.0), Neighbor("far", 10.0)]

    def test_distance_is_to_box_center(self, small_index: SpatialIndex) -> None:
        small_index.insert("wide", (-10, 0, 10, 10))
        small_index.insert("small", point_box(0, 4))
        assert small_index.query_knn((0, 0), 2) == ["small", "wide"]

    def test_ties_break_by_insertion_order(self, small_index: SpatialIndex) -> None:
        for item_id, (x, y) in [("e", (1, 0)), ("n", (0, 1)), ("w", (-1, 0)), ("s", (0, -1))]:
            small_index.insert(item_id, point_box(x, y))
        small_index.insert("far", point_box(5, 5))
        assert small_index.query_knn((0, 0), 4) == ["e", "n", "w", "s"]

    def test_replaced_entry_moves_to_back_of_ties(self, small_index: SpatialIndex) -> None:
        small_index.insert("a", point_box(1, 0))
        small_index.insert("b", point_box(-1, 0))
        small_index.insert("a", point_box(0, 1))
        assert small_index.query_knn((0, 0), 2) == ["b", "a"]

    def test_k_larger_than_size(self, grid_index: SpatialIndex) -> None:
        assert len(grid_index.query_knn((5, 5), 500)) == 100

    def test_non_positive_k(self, grid_index: SpatialIndex) -> None:
        assert grid_index.query_knn((5, 5), 0) == []

    def test_accepts_coordinate(self, grid_index: SpatialIndex) -> None:
        assert grid_index.query_knn(Coordinate(x=0.4, y=0.6), 1) == [(0, 0)]

    def test_query_within_distance(self, small_index: SpatialIndex) -> None:
        small_index.insert("a", point_box(3, 4))
        small_index.insert("b", (6, 0, 7, 1))
        small_index.insert("c", point_box(10, 10))
        assert set(small_index.query_within_distance((0, 0), 5.0)) == {"a"}
        assert set(small_index.query_within_distance((0, 0), 6.0)) == {"a", "b"}

    @given(
        st.lists(
            st.tuples(st.integers(-50, 50), st.integers(-50, 50)),
            min_size=1,
            max_size=60,
        ),
        st.tuples(st.integers(-60, 60), st.integers(-60, 60)),
    )
    @settings(max_examples=50)
    def test_knn_matches_linear_scan(
        self,
        points: list[tuple[int, int]],
        query: tuple[int, int],
    ) -> None:
        index = SpatialIndex(max_entries=4)
        for i, (x, y) in enumerate(points):
            index.insert(i, point_box(x, y))
        qx, qy = query
        expected = brute_force_knn([(float(x), float(y)) for x, y in points], qx, qy, 5)
        assert index.query_knn(query, 5) == expected

    @given(
        st.lists(
            st.tuples(st.integers(0, 100), st.integers(0, 100), st.integers(0, 5)),
            max_size=80,
        )
    )
    @settings(max_examples=50)
    def test_insert_remove_round_trip(self, boxes: list[tuple[int, int, int]]) -> None:
        index = SpatialIndex(max_entries=4)
        for i, (x, y, size) in enumerate(boxes):
            index.insert(i, (x, y, x + size, y + size))
        assert set(index.query_bbox((0, 0, 105, 105))) == set(range(len(boxes)))
        for i in range(0, len(boxes), 3):
            assert index.remove(i)
        expected = {i for i in range(len(boxes)) if i % 3}
        assert set(index.query_bbox((0, 0, 105, 105))) == expected
        assert len(index) == len(expected)


class TestBulkLoad:
    """Tests for Sort-Tile-Recursive bulk loading."""

    def test_bulk_load_returns_total(self, small_index: SpatialIndex) -> None:
        small_index.insert("existing", (0, 0, 1, 1))
        total = small_index.bulk_load((i, point_box(i, i)) for i in range(20))
        assert total == 21
        assert "existing" in small_index
        assert set(small_index.query_bbox((0.5, 0.5, 2, 2))) == {"existing", 1, 2}

    def test_bulk_load_empty(self, small_index: SpatialIndex) -> None:
        assert small_index.bulk_load([]) == 0
        assert small_index.query_knn((0, 0)) == []

    def test_insert_after_bulk_load(self, small_index: SpatialIndex) -> None:
        small_index.bulk_load((i, point_box(i, 0)) for i in range(50))
        small_index.insert("new", point_box(25.5, 0))
        assert small_index.query_knn((25.4, 0), 2) == ["new", 25]
        assert small_index.remove(10)
        assert 10 not in set(small_index.query_bbox((0, 0, 50, 0)))

    def test_bulk_load_100k_knn_matches_brute_force(self) -> None:
        rng = random.Random(42)
        points = [(rng.uniform(-1000, 1000), rng.uniform(-1000, 1000)) for _ in range(100_000)]
        index = SpatialIndex(name="bulk")
        assert index.bulk_load((i, point_box(x, y)) for i, (x, y) in enumerate(points)) == 100_000

        assert index.query_knn((0.0, 0.0), 5) == brute_force_knn(points, 0.0, 0.0, 5)
        assert index.query_knn((512.0, -37.5), 10) == brute_force_knn(points, 512.0, -37.5, 10)
        neighbours = index.nearest((0.0, 0.0), 5)
        assert [n.distance for n in neighbours] == sorted(n.distance for n in neighbours)


class TestConcurrentModification:
    """Tests for lazy iterators observing mutation."""

    def test_mutation_during_iteration_raises(self, grid_index: SpatialIndex) -> None:
        results = grid_index.query_bbox((0, 0, 10, 10))
        next(results)
        grid_index.insert("intruder", (0, 0, 1, 1))
        with pytest.raises(ConcurrentModificationError, match="modified during iteration"):
            list(results)

    def test_unconsumed_iterator_sees_later_state(self, grid_index: SpatialIndex) -> None:
        """Iteration starts on first next(), so earlier mutations are visible."""
        results = grid_index.query_bbox((0, 0, 1, 1))
        grid_index.clear()
        assert list(results) == []
