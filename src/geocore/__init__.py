"""geocore: geometry value model, validity checks, DE-9IM relate engine and
R*-tree spatial index.

Example:
    from geocore import Geometry, SpatialIndex, intersects

    a = Geometry.polygon([(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)])
    b = Geometry.point(0.5, 0.5)
    intersects(a, b)  # True

    index = SpatialIndex()
    index.insert_geometry("a", a)
    list(index.query_bbox(b.bbox))  # ["a"]
"""

__version__ = "0.1.0"

from geocore.exceptions import (  # noqa: E402
    ConcurrentModificationError,
    DimensionalityMismatchError,
    GeoCoreError,
    GeometryError,
    GeometryKindError,
    InvalidBoundingBoxError,
    InvalidGeometryError,
    InvalidRingStructureError,
    InvalidSridError,
    MissingBoundingBoxError,
    SpatialIndexError,
    UnsupportedGeometryPairError,
)
from geocore.geometry import (  # noqa: E402
    BoundingBox,
    Coordinate,
    Geometry,
    GeometryFlags,
    GeometryKind,
    GeometryValidator,
    Srid,
    construct,
    is_closed,
    is_ring,
    is_valid,
    validity_reason,
)
from geocore.index import Neighbor, SpatialIndex  # noqa: E402
from geocore.relate import (  # noqa: E402
    IntersectionMatrix,
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
    "BoundingBox",
    "ConcurrentModificationError",
    "Coordinate",
    "DimensionalityMismatchError",
    "GeoCoreError",
    "Geometry",
    "GeometryError",
    "GeometryFlags",
    "GeometryKind",
    "GeometryKindError",
    "GeometryValidator",
    "IntersectionMatrix",
    "InvalidBoundingBoxError",
    "InvalidGeometryError",
    "InvalidRingStructureError",
    "InvalidSridError",
    "MissingBoundingBoxError",
    "Neighbor",
    "SpatialIndex",
    "SpatialIndexError",
    "Srid",
    "UnsupportedGeometryPairError",
    "__version__",
    "construct",
    "contains",
    "covered_by",
    "covers",
    "crosses",
    "disjoint",
    "equals",
    "intersects",
    "is_closed",
    "is_ring",
    "is_valid",
    "overlaps",
    "relate",
    "relate_pattern",
    "relate_string",
    "touches",
    "validity_reason",
    "within",
]
