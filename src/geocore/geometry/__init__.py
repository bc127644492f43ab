"""Geometry module for geocore.

This package provides the geometry value model, its primitives, and the
validity checker.

Key Components:
    - Primitives: Coordinate, BoundingBox, Srid, GeometryFlags value objects
    - Model: GeometryKind tag and the immutable Geometry value
    - Accessors: point coordinates, endpoints, rings, envelope
    - Validators: is_valid / is_ring / is_closed and GeometryValidator

Example:
    from geocore.geometry import Geometry, is_valid

    square = Geometry.polygon([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)])
    square.bbox  # BoundingBox(min_x=0.0, min_y=0.0, max_x=1.0, max_y=1.0)
    is_valid(square)  # True
"""

from geocore.geometry.accessors import (
    end_point,
    envelope,
    exterior_ring,
    geometry_n,
    interior_rings,
    point_coordinate,
    start_point,
    x,
    y,
    z,
)
from geocore.geometry.model import Geometry, GeometryKind, construct
from geocore.geometry.primitives import (
    GEOGRAPHIC_SRIDS,
    BoundingBox,
    Coordinate,
    GeometryFlags,
    Srid,
)
from geocore.geometry.validators import (
    GeometryValidator,
    is_closed,
    is_ring,
    is_valid,
    validity_reason,
)

__all__ = [
    "GEOGRAPHIC_SRIDS",
    "BoundingBox",
    "Coordinate",
    "Geometry",
    "GeometryFlags",
    "GeometryKind",
    "GeometryValidator",
    "Srid",
    "construct",
    "end_point",
    "envelope",
    "exterior_ring",
    "geometry_n",
    "interior_rings",
    "is_closed",
    "is_ring",
    "is_valid",
    "point_coordinate",
    "start_point",
    "validity_reason",
    "x",
    "y",
    "z",
]
