"""Index module for geocore.

This package provides the R*-tree spatial index used as a bounding-box
pre-filter ahead of exact relate checks.

Key Components:
    - SpatialIndex: insert/remove/bulk_load and bbox, KNN and distance queries
    - Neighbor: (id, distance) result of ``SpatialIndex.nearest``
    - ReadWriteLock: single-writer / multi-reader lock guarding the tree
"""

from geocore.index.lock import ReadWriteLock
from geocore.index.rtree import Neighbor, SpatialIndex

__all__ = ["Neighbor", "ReadWriteLock", "SpatialIndex"]
