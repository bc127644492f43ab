"""Relate module for geocore.

This package computes DE-9IM intersection matrices and the named spatial
predicates derived from them.

Key Components:
    - IntersectionMatrix: 3x3 dimension matrix with pattern matching
    - relate / relate_string / relate_pattern: matrix computation
    - Named predicates: intersects, disjoint, touches, crosses, within,
      contains, covers, covered_by, overlaps, equals
"""

from geocore.relate.matrix import IntersectionMatrix
from geocore.relate.predicates import (
    contains,
    covered_by,
    covers,
    crosses,
    disjoint,
    equals,
    intersects,
    overlaps,
    relate,
    relate_pattern,
    relate_string,
    touches,
    within,
)

__all__ = [
    "IntersectionMatrix",
    "contains",
    "covered_by",
    "covers",
    "crosses",
    "disjoint",
    "equals",
    "intersects",
    "overlaps",
    "relate",
    "relate_pattern",
    "relate_string",
    "touches",
    "within",
]
