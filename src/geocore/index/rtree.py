"""R*-tree spatial index over bounding boxes.

The index stores (id, bounding box) pairs and answers box-intersection,
k-nearest-neighbour and within-distance queries. Ids are opaque hashable
values; the index never holds geometries, so callers re-check candidates
exactly (e.g. with ``geocore.relate``) after the box pre-filter.

Insertion follows the R*-tree of Beckmann et al.: ChooseSubtree by overlap
enlargement just above the leaves and by area enlargement higher up, forced
reinsertion of the entries farthest from the node center (once per level per
insertion), and the topological split (axis by minimum margin sum,
distribution by minimum overlap, then minimum area). ``bulk_load`` packs the
tree with Sort-Tile-Recursive.

Boxes with NaN bounds are stored and counted but never returned by spatial
queries. Zero-area boxes (points, axis-parallel segments) are ordinary
entries.

Example:
    from geocore.index import SpatialIndex

    index = SpatialIndex()
    index.insert("a", (0.0, 0.0, 1.0, 1.0))
    index.insert("b", (5.0, 5.0, 6.0, 6.0))
    list(index.query_bbox((0.5, 0.5, 2.0, 2.0)))  # ["a"]
    index.query_knn((4.0, 4.0), k=1)  # ["b"]
"""

from __future__ import annotations

import heapq
import itertools
import math
from collections.abc import Callable, Hashable, Iterable, Iterator
from typing import NamedTuple, TypeAlias

from geocore.config import Settings, settings
from geocore.exceptions import (
    ConcurrentModificationError,
    InvalidBoundingBoxError,
    MissingBoundingBoxError,
)
from geocore.geometry.model import Geometry
from geocore.geometry.primitives import BoundingBox, Coordinate
from geocore.index.lock import ReadWriteLock
from geocore.utils.logging import get_logger

logger = get_logger(__name__)

Bounds: TypeAlias = tuple[float, float, float, float]
BoundsLike: TypeAlias = BoundingBox | tuple[float, float, float, float]
PointLike: TypeAlias = Coordinate | tuple[float, float]


class Neighbor(NamedTuple):
    """A nearest-neighbour result: the entry id and its center distance."""

    id: Hashable
    distance: float


class _Item(NamedTuple):
    bounds: Bounds
    id: Hashable
    seq: int


class _Node:
    __slots__ = ("bounds", "children", "leaf", "level")

    def __init__(self, leaf: bool, children: list, level: int) -> None:
        self.leaf = leaf
        self.children = children
        self.level = level
        self.bounds: Bounds = _EMPTY_BOUNDS
        self.refresh()

    def refresh(self) -> None:
        self.bounds = _union_all(c.bounds for c in self.children)


# =============================================================================
# Box arithmetic on plain tuples
# =============================================================================

_EMPTY_BOUNDS: Bounds = (math.inf, math.inf, -math.inf, -math.inf)


def _as_bounds(bbox: BoundsLike) -> Bounds:
    if isinstance(bbox, BoundingBox):
        return bbox.to_tuple()
    min_x, min_y, max_x, max_y = (float(v) for v in bbox)
    if min_x > max_x or min_y > max_y:
        raise InvalidBoundingBoxError(
            f"Box bounds must satisfy min <= max, got {(min_x, min_y, max_x, max_y)}"
        )
    return (min_x, min_y, max_x, max_y)


def _as_point(point: PointLike) -> tuple[float, float]:
    if isinstance(point, Coordinate):
        return point.xy
    x, y = point
    return (float(x), float(y))


def _has_nan(b: Bounds) -> bool:
    return any(math.isnan(v) for v in b)


def _union(a: Bounds, b: Bounds) -> Bounds:
    return (min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3]))


def _union_all(boxes: Iterable[Bounds]) -> Bounds:
    result = _EMPTY_BOUNDS
    for b in boxes:
        result = _union(result, b)
    return result


def _area(b: Bounds) -> float:
    return max(0.0, b[2] - b[0]) * max(0.0, b[3] - b[1])


def _margin(b: Bounds) -> float:
    return max(0.0, b[2] - b[0]) + max(0.0, b[3] - b[1])


def _overlap(a: Bounds, b: Bounds) -> float:
    w = min(a[2], b[2]) - max(a[0], b[0])
    h = min(a[3], b[3]) - max(a[1], b[1])
    if w <= 0.0 or h <= 0.0:
        return 0.0
    return w * h


def _intersects(a: Bounds, b: Bounds) -> bool:
    return a[0] <= b[2] and a[2] >= b[0] and a[1] <= b[3] and a[3] >= b[1]


def _center(b: Bounds) -> tuple[float, float]:
    return ((b[0] + b[2]) / 2.0, (b[1] + b[3]) / 2.0)


def _min_distance(b: Bounds, x: float, y: float) -> float:
    dx = max(b[0] - x, 0.0, x - b[2])
    dy = max(b[1] - y, 0.0, y - b[3])
    return math.hypot(dx, dy)


def _center_distance(b: Bounds, x: float, y: float) -> float:
    cx, cy = _center(b)
    return math.hypot(cx - x, cy - y)


# =============================================================================
# Index
# =============================================================================


class SpatialIndex:
    """A thread-safe R*-tree keyed by opaque ids.

    Mutations take the write side of a reader-writer lock. Lazy queries take
    the read side one node at a time and raise ConcurrentModificationError
    if the index changed between steps.

    Args:
        max_entries: Node capacity M. Defaults to settings.INDEX_MAX_ENTRIES.
        name: Label bound to log events from this index.
        config: Settings source for the remaining tuning values.

    Raises:
        ConfigError: If the capacity or fill settings are inconsistent.
    """

    def __init__(
        self,
        max_entries: int | None = None,
        *,
        name: str = "default",
        config: Settings | None = None,
    ) -> None:
        config = config or settings
        if max_entries is not None:
            config = config.model_copy(update={"INDEX_MAX_ENTRIES": max_entries})
        self.name = name
        self._max_entries = config.INDEX_MAX_ENTRIES
        self._min_entries = config.index_min_entries()
        self._reinsert_count = max(1, config.index_reinsert_count())
        self._lock = ReadWriteLock()
        self._reset()

    def _reset(self) -> None:
        self._root = _Node(leaf=True, children=[], level=0)
        self._entries: dict[Hashable, _Item] = {}
        self._unindexed: dict[Hashable, _Item] = {}
        self._seq = itertools.count()
        self._version = 0

    # -- Introspection ------------------------------------------------------

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __contains__(self, item_id: object) -> bool:
        with self._lock.read():
            return item_id in self._entries

    def __iter__(self) -> Iterator[Hashable]:
        with self._lock.read():
            ids = list(self._entries)
        return iter(ids)

    @property
    def bounds(self) -> BoundingBox | None:
        """Return the box enclosing every queryable entry, or None if there are none."""
        with self._lock.read():
            if not self._root.children:
                return None
            return BoundingBox.from_tuple(self._root.bounds)

    @property
    def height(self) -> int:
        """Return the number of node levels (1 for a lone leaf root)."""
        with self._lock.read():
            return self._root.level + 1

    def get_bounds(self, item_id: Hashable) -> BoundingBox | None:
        """Return the box stored for an id, or None if it is not indexed."""
        with self._lock.read():
            item = self._entries.get(item_id)
        return None if item is None else BoundingBox.from_tuple(item.bounds)

    # -- Mutation -----------------------------------------------------------

    def insert(self, item_id: Hashable, bbox: BoundsLike) -> None:
        """Insert an entry, replacing any existing entry with the same id.

        Args:
            item_id: Opaque hashable identifier.
            bbox: BoundingBox or (min_x, min_y, max_x, max_y) tuple.
        """
        bounds = _as_bounds(bbox)
        with self._lock.write():
            if item_id in self._entries:
                self._remove_locked(item_id)
            item = _Item(bounds, item_id, next(self._seq))
            self._entries[item_id] = item
            if _has_nan(bounds):
                self._unindexed[item_id] = item
            else:
                self._insert_entry(item, 0, set())
            self._version += 1

    def insert_geometry(self, item_id: Hashable, geometry: Geometry) -> None:
        """Insert a geometry's bounding box under ``item_id``.

        Raises:
            MissingBoundingBoxError: If the geometry is empty.
        """
        box = geometry.bbox
        if box is None:
            raise MissingBoundingBoxError(
                f"Cannot index empty {geometry.type_name}", id=item_id
            )
        self.insert(item_id, box)

    def bulk_load(self, items: Iterable[tuple[Hashable, BoundsLike]]) -> int:
        """Rebuild the tree with Sort-Tile-Recursive packing.

        Existing entries are kept; an id appearing in ``items`` replaces the
        stored entry. Later duplicates within ``items`` win.

        Args:
            items: (id, bbox) pairs.

        Returns:
            Number of entries in the index after loading.
        """
        loaded = [(item_id, _as_bounds(bbox)) for item_id, bbox in items]
        with self._lock.write():
            for item_id, bounds in loaded:
                self._entries[item_id] = _Item(bounds, item_id, next(self._seq))
            self._unindexed = {
                k: v for k, v in self._entries.items() if _has_nan(v.bounds)
            }
            indexed = [v for v in self._entries.values() if not _has_nan(v.bounds)]
            self._root = self._pack(indexed)
            self._version += 1
            total = len(self._entries)
            logger.info(
                "Bulk load complete",
                index_name=self.name,
                operation="bulk_load",
                loaded=len(loaded),
                total=total,
                unindexed=len(self._unindexed),
                height=self._root.level + 1,
            )
        return total

    def remove(self, item_id: Hashable) -> bool:
        """Remove an entry by id.

        Returns:
            True if the id was present.
        """
        with self._lock.write():
            if item_id not in self._entries:
                logger.debug(
                    "Remove of unknown id",
                    index_name=self.name,
                    operation="remove",
                    id=item_id,
                )
                return False
            self._remove_locked(item_id)
            self._version += 1
            return True

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock.write():
            count = len(self._entries)
            version = self._version
            self._reset()
            self._version = version + 1
        logger.info("Index cleared", index_name=self.name, operation="clear", removed=count)

    # -- Queries ------------------------------------------------------------

    def query_bbox(self, bbox: BoundsLike) -> Iterator[Hashable]:
        """Lazily yield ids whose boxes intersect ``bbox`` (closed intervals).

        Results are unordered and contain no duplicates.

        Raises:
            ConcurrentModificationError: If the index is mutated while the
                iterator is being consumed.
        """
        target = _as_bounds(bbox)
        return self._search(lambda b: _intersects(b, target))

    def query_within_distance(self, point: PointLike, radius: float) -> Iterator[Hashable]:
        """Lazily yield ids whose boxes lie within ``radius`` of a point.

        The distance is the minimum Euclidean distance from the point to the
        box, so this is a pre-filter for exact distance checks.

        Raises:
            ConcurrentModificationError: If the index is mutated while the
                iterator is being consumed.
        """
        x, y = _as_point(point)
        return self._search(lambda b: _min_distance(b, x, y) <= radius)

    def _search(self, accept: Callable[[Bounds], bool]) -> Iterator[Hashable]:
        with self._lock.read():
            version = self._version
            stack = [self._root] if self._root.children else []
        while stack:
            with self._lock.read():
                if self._version != version:
                    raise ConcurrentModificationError(
                        "Index modified during iteration", index=self.name
                    )
                node = stack.pop()
                if node.leaf:
                    hits = [c.id for c in node.children if accept(c.bounds)]
                else:
                    stack.extend(c for c in node.children if accept(c.bounds))
                    hits = []
            yield from hits

    def nearest(self, point: PointLike, k: int = 1) -> list[Neighbor]:
        """Return the k entries whose box centers are closest to a point.

        Ties are broken by insertion order.

        Args:
            point: Query position.
            k: Maximum number of results.

        Returns:
            Up to k neighbours in ascending distance.
        """
        if k <= 0:
            return []
        x, y = _as_point(point)
        result: list[Neighbor] = []
        with self._lock.read():
            if not self._root.children:
                return result
            counter = itertools.count()
            # (distance, 0 for nodes / 1 for items, tie-break, payload)
            heap: list[tuple[float, int, int, object]] = [
                (_min_distance(self._root.bounds, x, y), 0, next(counter), self._root)
            ]
            while heap and len(result) < k:
                distance, is_item, _, payload = heapq.heappop(heap)
                if is_item:
                    result.append(Neighbor(payload, distance))
                    continue
                node = payload
                if node.leaf:
                    for item in node.children:
                        heapq.heappush(
                            heap,
                            (_center_distance(item.bounds, x, y), 1, item.seq, item.id),
                        )
                else:
                    for child in node.children:
                        heapq.heappush(
                            heap,
                            (_min_distance(child.bounds, x, y), 0, next(counter), child),
                        )
        return result

    def query_knn(self, point: PointLike, k: int = 1) -> list[Hashable]:
        """Return the ids of the k entries nearest to a point.

        Ordering is by ascending box-center distance, ties by insertion
        order. An empty index or k <= 0 yields an empty list.
        """
        return [n.id for n in self.nearest(point, k)]

    # -- Insertion internals (write lock held) ------------------------------

    def _insert_entry(self, entry: _Item | _Node, level: int, reinserted: set[int]) -> None:
        path = self._choose_path(entry.bounds, level)
        path[-1].children.append(entry)
        self._adjust_path(path, reinserted)

    def _choose_path(self, bounds: Bounds, level: int) -> list[_Node]:
        node = self._root
        path = [node]
        while node.level > level:
            if node.level == 1:
                node = self._least_overlap_child(node, bounds)
            else:
                node = self._least_enlargement_child(node, bounds)
            path.append(node)
        return path

    @staticmethod
    def _least_enlargement_child(node: _Node, bounds: Bounds) -> _Node:
        def cost(child: _Node) -> tuple[float, float]:
            area = _area(child.bounds)
            return (_area(_union(child.bounds, bounds)) - area, area)

        return min(node.children, key=cost)

    @staticmethod
    def _least_overlap_child(node: _Node, bounds: Bounds) -> _Node:
        children = node.children

        def cost(child: _Node) -> tuple[float, float, float]:
            grown = _union(child.bounds, bounds)
            before = after = 0.0
            for other in children:
                if other is child:
                    continue
                before += _overlap(child.bounds, other.bounds)
                after += _overlap(grown, other.bounds)
            area = _area(child.bounds)
            return (after - before, _area(grown) - area, area)

        return min(children, key=cost)

    def _adjust_path(self, path: list[_Node], reinserted: set[int]) -> None:
        for depth in range(len(path) - 1, -1, -1):
            node = path[depth]
            if len(node.children) > self._max_entries:
                if depth > 0 and node.level not in reinserted:
                    reinserted.add(node.level)
                    removed = self._take_far_entries(node)
                    for ancestor in reversed(path[: depth + 1]):
                        ancestor.refresh()
                    for entry in removed:
                        self._insert_entry(entry, node.level, reinserted)
                    return
                sibling = self._split(node)
                if depth == 0:
                    self._root = _Node(leaf=False, children=[node, sibling], level=node.level + 1)
                else:
                    path[depth - 1].children.append(sibling)
            node.refresh()

    def _take_far_entries(self, node: _Node) -> list:
        cx, cy = _center(node.bounds)

        def distance(entry: _Item | _Node) -> float:
            ex, ey = _center(entry.bounds)
            return math.hypot(ex - cx, ey - cy)

        ordered = sorted(node.children, key=distance)
        keep = len(ordered) - self._reinsert_count
        node.children = ordered[:keep]
        # Reinsert closest-first.
        return ordered[keep:]

    def _split(self, node: _Node) -> _Node:
        entries = node.children
        m = self._min_entries
        splits = range(m, len(entries) - m + 1)

        def sorts(axis: int) -> list[list]:
            return [
                sorted(entries, key=lambda e: (e.bounds[axis], e.bounds[axis + 2])),
                sorted(entries, key=lambda e: (e.bounds[axis + 2], e.bounds[axis])),
            ]

        def margin_sum(axis: int) -> float:
            total = 0.0
            for ordered in sorts(axis):
                for k in splits:
                    total += _margin(_union_all(e.bounds for e in ordered[:k]))
                    total += _margin(_union_all(e.bounds for e in ordered[k:]))
            return total

        axis = min((0, 1), key=margin_sum)

        best: tuple[float, float] | None = None
        best_groups: tuple[list, list] = (entries, [])
        for ordered in sorts(axis):
            for k in splits:
                left, right = ordered[:k], ordered[k:]
                lb = _union_all(e.bounds for e in left)
                rb = _union_all(e.bounds for e in right)
                cost = (_overlap(lb, rb), _area(lb) + _area(rb))
                if best is None or cost < best:
                    best = cost
                    best_groups = (left, right)

        node.children = list(best_groups[0])
        node.refresh()
        return _Node(leaf=node.leaf, children=list(best_groups[1]), level=node.level)

    # -- Removal internals (write lock held) --------------------------------

    def _remove_locked(self, item_id: Hashable) -> None:
        item = self._entries.pop(item_id)
        if self._unindexed.pop(item_id, None) is not None:
            return
        path = self._find_leaf(self._root, item, [])
        if path is None:
            return
        leaf = path[-1]
        leaf.children = [c for c in leaf.children if c.id != item_id]
        self._condense(path)

    def _find_leaf(self, node: _Node, item: _Item, path: list[_Node]) -> list[_Node] | None:
        path = [*path, node]
        if node.leaf:
            if any(c.id == item.id for c in node.children):
                return path
            return None
        for child in node.children:
            if _contains(child.bounds, item.bounds):
                found = self._find_leaf(child, item, path)
                if found is not None:
                    return found
        return None

    def _condense(self, path: list[_Node]) -> None:
        orphans: list[_Item] = []
        for depth in range(len(path) - 1, 0, -1):
            node = path[depth]
            parent = path[depth - 1]
            if len(node.children) < self._min_entries:
                parent.children = [c for c in parent.children if c is not node]
                orphans.extend(_leaf_items(node))
            else:
                node.refresh()
        self._root.refresh()
        while not self._root.leaf and len(self._root.children) == 1:
            self._root = self._root.children[0]
        if not self._root.leaf and not self._root.children:
            self._root = _Node(leaf=True, children=[], level=0)
        for item in sorted(orphans, key=lambda i: i.seq):
            self._insert_entry(item, 0, set())

    # -- Bulk loading -------------------------------------------------------

    def _pack(self, items: list[_Item]) -> _Node:
        if not items:
            return _Node(leaf=True, children=[], level=0)
        level = 0
        nodes = [
            _Node(leaf=True, children=group, level=0)
            for group in _str_groups(items, self._max_entries)
        ]
        while len(nodes) > 1:
            level += 1
            nodes = [
                _Node(leaf=False, children=group, level=level)
                for group in _str_groups(nodes, self._max_entries)
            ]
        return nodes[0]


def _contains(outer: Bounds, inner: Bounds) -> bool:
    return (
        outer[0] <= inner[0]
        and outer[1] <= inner[1]
        and outer[2] >= inner[2]
        and outer[3] >= inner[3]
    )


def _leaf_items(node: _Node) -> list[_Item]:
    if node.leaf:
        return list(node.children)
    items: list[_Item] = []
    for child in node.children:
        items.extend(_leaf_items(child))
    return items


def _str_groups(entries: list, capacity: int) -> list[list]:
    """Partition entries into runs of ``capacity`` by Sort-Tile-Recursive.

    Entries are sorted by center x, cut into vertical slices of
    ``ceil(sqrt(P)) * capacity`` entries (P = number of output groups), and
    each slice is sorted by center y and chunked.
    """
    num_groups = math.ceil(len(entries) / capacity)
    slice_size = math.ceil(math.sqrt(num_groups)) * capacity
    by_x = sorted(entries, key=lambda e: _center(e.bounds)[0])
    groups: list[list] = []
    for start in range(0, len(by_x), slice_size):
        column = sorted(by_x[start : start + slice_size], key=lambda e: _center(e.bounds)[1])
        groups.extend(column[i : i + capacity] for i in range(0, len(column), capacity))
    return groups
