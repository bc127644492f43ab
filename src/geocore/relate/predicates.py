"""Named spatial predicates built on the DE-9IM engine.

Every predicate first compares bounding boxes and only computes the full
matrix when the boxes allow the relation to hold.

Example:
    from geocore.geometry import Geometry
    from geocore.relate import relate_string, touches

    a = Geometry.polygon([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)])
    b = Geometry.polygon([(1, 0), (2, 0), (2, 1), (1, 1), (1, 0)])
    touches(a, b)  # True
    relate_string(a, b)  # "FF2F11212"
"""

from __future__ import annotations

from geocore.exceptions import UnsupportedGeometryPairError
from geocore.geometry.model import Geometry
from geocore.relate.engine import compute_matrix, relate_with_dimensions
from geocore.relate.matrix import IntersectionMatrix, validate_pattern


def _check_pair(a: object, b: object) -> None:
    if not isinstance(a, Geometry) or not isinstance(b, Geometry):
        raise UnsupportedGeometryPairError(
            "relate requires two Geometry values",
            left=type(a).__name__,
            right=type(b).__name__,
        )


def _boxes_meet(a: Geometry, b: Geometry) -> bool:
    box_a, box_b = a.bbox, b.bbox
    return box_a is not None and box_b is not None and box_a.intersects(box_b)


def _box_covers(outer: Geometry, inner: Geometry) -> bool:
    box_outer, box_inner = outer.bbox, inner.bbox
    return box_outer is not None and box_inner is not None and box_outer.contains(box_inner)


def relate(a: Geometry, b: Geometry) -> IntersectionMatrix:
    """Compute the DE-9IM intersection matrix of two geometries.

    Args:
        a: Row geometry.
        b: Column geometry.

    Returns:
        The intersection matrix; ``relate(b, a)`` is its transpose.

    Raises:
        UnsupportedGeometryPairError: If either operand is not a Geometry.
    """
    _check_pair(a, b)
    return compute_matrix(a, b)


def relate_string(a: Geometry, b: Geometry) -> str:
    """Return the 9-character DE-9IM string, e.g. ``"FF2FF1212"``."""
    return relate(a, b).to_string()


def relate_pattern(a: Geometry, b: Geometry, pattern: str) -> bool:
    """Check the DE-9IM matrix of two geometries against a pattern.

    Raises:
        ValueError: If the pattern is not 9 characters over ``T F * 0 1 2``.
        UnsupportedGeometryPairError: If either operand is not a Geometry.
    """
    pattern = validate_pattern(pattern)
    return relate(a, b).matches(pattern)


def intersects(a: Geometry, b: Geometry) -> bool:
    """Return True if the geometries share at least one point."""
    _check_pair(a, b)
    if not _boxes_meet(a, b):
        return False
    return compute_matrix(a, b).is_intersects()


def disjoint(a: Geometry, b: Geometry) -> bool:
    """Return True if the geometries share no point."""
    _check_pair(a, b)
    if not _boxes_meet(a, b):
        return True
    return compute_matrix(a, b).is_disjoint()


def touches(a: Geometry, b: Geometry) -> bool:
    """Return True if the geometries meet only along their boundaries."""
    _check_pair(a, b)
    if not _boxes_meet(a, b):
        return False
    matrix, dim_a, dim_b = relate_with_dimensions(a, b)
    return matrix.is_touches(dim_a, dim_b)


def crosses(a: Geometry, b: Geometry) -> bool:
    """Return True if the interiors meet in a lower dimension than the larger operand."""
    _check_pair(a, b)
    if not _boxes_meet(a, b):
        return False
    matrix, dim_a, dim_b = relate_with_dimensions(a, b)
    return matrix.is_crosses(dim_a, dim_b)


def within(a: Geometry, b: Geometry) -> bool:
    """Return True if ``a`` lies in ``b`` and their interiors meet."""
    _check_pair(a, b)
    if not _box_covers(b, a):
        return False
    return compute_matrix(a, b).is_within()


def contains(a: Geometry, b: Geometry) -> bool:
    """Return True if ``b`` lies in ``a`` and their interiors meet."""
    _check_pair(a, b)
    if not _box_covers(a, b):
        return False
    return compute_matrix(a, b).is_contains()


def covers(a: Geometry, b: Geometry) -> bool:
    """Return True if no point of ``b`` lies outside ``a``."""
    _check_pair(a, b)
    if not _box_covers(a, b):
        return False
    return compute_matrix(a, b).is_covers()


def covered_by(a: Geometry, b: Geometry) -> bool:
    """Return True if no point of ``a`` lies outside ``b``."""
    _check_pair(a, b)
    if not _box_covers(b, a):
        return False
    return compute_matrix(a, b).is_covered_by()


def overlaps(a: Geometry, b: Geometry) -> bool:
    """Return True for same-dimension geometries that partly share interiors."""
    _check_pair(a, b)
    if not _boxes_meet(a, b):
        return False
    matrix, dim_a, dim_b = relate_with_dimensions(a, b)
    return matrix.is_overlaps(dim_a, dim_b)


def equals(a: Geometry, b: Geometry) -> bool:
    """Return True if the geometries cover the same point set.

    Two empty geometries are equal regardless of kind.
    """
    _check_pair(a, b)
    if a.is_empty or b.is_empty:
        return a.is_empty and b.is_empty
    if a.bbox != b.bbox:
        return False
    matrix, dim_a, dim_b = relate_with_dimensions(a, b)
    return matrix.is_equals(dim_a, dim_b)
