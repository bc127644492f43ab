"""Geometry primitives for geocore.

This module provides the immutable value objects every geometry is built
from: coordinates, axis-aligned bounding boxes, spatial reference ids and the
flag bitset describing a geometry's coordinate data.

Coordinate equality is exact floating-point equality. No tolerance is applied
anywhere in the core, including ring closure and point coincidence.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from enum import IntFlag
from typing import ClassVar, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from geocore.exceptions import InvalidBoundingBoxError, InvalidSridError

# Geographic (lon/lat, degree unit) reference systems known to the core.
GEOGRAPHIC_SRIDS: frozenset[int] = frozenset(
    {4326, 4269, 4267, 4258, 4148, 4674, 4283, 4612, 4490}
)


class Coordinate(BaseModel, frozen=True):
    """A 2D position with optional elevation (z) and measure (m).

    Non-finite values are accepted; numeric sanity is the caller's concern.

    Attributes:
        x: Easting / longitude.
        y: Northing / latitude.
        z: Optional elevation.
        m: Optional measure value.
    """

    x: float
    y: float
    z: float | None = None
    m: float | None = None

    @property
    def has_z(self) -> bool:
        """Return True if the coordinate carries an elevation."""
        return self.z is not None

    @property
    def has_m(self) -> bool:
        """Return True if the coordinate carries a measure."""
        return self.m is not None

    @property
    def xy(self) -> tuple[float, float]:
        """Return the planar (x, y) projection."""
        return (self.x, self.y)

    def to_tuple(self) -> tuple[float, ...]:
        """Convert to (x, y[, z][, m]) tuple."""
        values = [self.x, self.y]
        if self.z is not None:
            values.append(self.z)
        if self.m is not None:
            values.append(self.m)
        return tuple(values)

    @classmethod
    def from_tuple(cls, coord: Iterable[float]) -> Self:
        """Create a Coordinate from an (x, y[, z[, m]]) sequence.

        A 3-tuple is read as XYZ, a 4-tuple as XYZM.
        """
        values = tuple(coord)
        if not 2 <= len(values) <= 4:
            raise ValueError(f"Coordinate needs 2 to 4 values, got {len(values)}")
        z = values[2] if len(values) > 2 else None
        m = values[3] if len(values) > 3 else None
        return cls(x=values[0], y=values[1], z=z, m=m)

    def is_geographic_valid(self) -> bool:
        """Check longitude in [-180, 180] and latitude in [-90, 90]."""
        return -180.0 <= self.x <= 180.0 and -90.0 <= self.y <= 90.0

    def translated(self, dx: float, dy: float, dz: float = 0.0) -> Coordinate:
        """Return a copy shifted by (dx, dy, dz); m is carried unchanged."""
        z = self.z + dz if self.z is not None else None
        return Coordinate(x=self.x + dx, y=self.y + dy, z=z, m=self.m)


class BoundingBox(BaseModel, frozen=True):
    """An axis-aligned bounding box.

    Intervals are closed: boxes touching along an edge or at a corner
    intersect. NaN bounds are accepted so callers can index degenerate data.

    Attributes:
        min_x: Left edge.
        min_y: Bottom edge.
        max_x: Right edge.
        max_y: Top edge.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @model_validator(mode="after")
    def _validate_order(self) -> Self:
        """Ensure min <= max on both axes."""
        if self.min_x > self.max_x:
            raise InvalidBoundingBoxError(
                f"min_x ({self.min_x}) must be <= max_x ({self.max_x})"
            )
        if self.min_y > self.max_y:
            raise InvalidBoundingBoxError(
                f"min_y ({self.min_y}) must be <= max_y ({self.max_y})"
            )
        return self

    @classmethod
    def from_coordinates(cls, coords: Iterable[Coordinate]) -> BoundingBox | None:
        """Compute the tightest box over coordinates in one linear scan.

        Returns:
            The bounding box, or None if ``coords`` is empty.
        """
        iterator = iter(coords)
        first = next(iterator, None)
        if first is None:
            return None
        min_x = max_x = first.x
        min_y = max_y = first.y
        for c in iterator:
            if c.x < min_x:
                min_x = c.x
            elif c.x > max_x:
                max_x = c.x
            if c.y < min_y:
                min_y = c.y
            elif c.y > max_y:
                max_y = c.y
        return cls(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)

    @classmethod
    def from_point(cls, x: float, y: float) -> Self:
        """Create a zero-area box at (x, y)."""
        return cls(min_x=x, min_y=y, max_x=x, max_y=y)

    def to_tuple(self) -> tuple[float, float, float, float]:
        """Convert to (min_x, min_y, max_x, max_y) tuple."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    @classmethod
    def from_tuple(cls, bounds: tuple[float, float, float, float]) -> Self:
        """Create a BoundingBox from (min_x, min_y, max_x, max_y)."""
        return cls(min_x=bounds[0], min_y=bounds[1], max_x=bounds[2], max_y=bounds[3])

    @property
    def width(self) -> float:
        """Return the horizontal extent."""
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        """Return the vertical extent."""
        return self.max_y - self.min_y

    @property
    def area(self) -> float:
        """Return the box area."""
        return self.width * self.height

    @property
    def center(self) -> tuple[float, float]:
        """Return the center point as (x, y) tuple."""
        return ((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    @property
    def is_degenerate(self) -> bool:
        """Return True for zero-area boxes and boxes with NaN bounds."""
        return self.has_nan or self.area == 0.0

    @property
    def has_nan(self) -> bool:
        """Return True if any bound is NaN."""
        return any(math.isnan(v) for v in self.to_tuple())

    def intersects(self, other: BoundingBox) -> bool:
        """Check closed-interval overlap on both axes.

        Args:
            other: Another BoundingBox.

        Returns:
            True if the boxes overlap or touch.
        """
        return (
            self.min_x <= other.max_x
            and self.max_x >= other.min_x
            and self.min_y <= other.max_y
            and self.max_y >= other.min_y
        )

    def contains(self, other: BoundingBox) -> bool:
        """Check that ``other`` lies within or on the boundary of this box."""
        return (
            self.min_x <= other.min_x
            and self.max_x >= other.max_x
            and self.min_y <= other.min_y
            and self.max_y >= other.max_y
        )

    def contains_coordinate(self, coord: Coordinate) -> bool:
        """Check if a coordinate is inside this box (inclusive of edges)."""
        return (
            self.min_x <= coord.x <= self.max_x and self.min_y <= coord.y <= self.max_y
        )

    def expand(self, other: BoundingBox) -> BoundingBox:
        """Return the union of this box with another."""
        return BoundingBox(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
        )

    def expand_by(self, distance: float) -> BoundingBox:
        """Return this box grown by ``distance`` on every side.

        Raises:
            InvalidBoundingBoxError: If a negative distance inverts the box.
        """
        return BoundingBox(
            min_x=self.min_x - distance,
            min_y=self.min_y - distance,
            max_x=self.max_x + distance,
            max_y=self.max_y + distance,
        )

    def distance_to_point(self, x: float, y: float) -> float:
        """Return the minimum Euclidean distance from (x, y) to this box.

        Points inside or on the boundary are at distance 0.
        """
        dx = max(self.min_x - x, 0.0, x - self.max_x)
        dy = max(self.min_y - y, 0.0, y - self.max_y)
        return math.hypot(dx, dy)


class Srid(BaseModel, frozen=True):
    """A spatial reference identifier.

    The geographic/planar classification, not the literal CRS, decides
    whether measurements elsewhere use geodesic or Euclidean formulas.

    Attributes:
        code: Positive EPSG-style integer code.
    """

    code: int = Field(..., description="Spatial reference code")

    WGS84: ClassVar[Srid]
    WEB_MERCATOR: ClassVar[Srid]
    NAD83: ClassVar[Srid]

    @field_validator("code")
    @classmethod
    def _validate_code(cls, value: int) -> int:
        if value <= 0:
            raise InvalidSridError(f"SRID must be positive, got {value}")
        return value

    @classmethod
    def of(cls, code: int | Srid) -> Srid:
        """Coerce an integer code (or an existing Srid) to a Srid."""
        if isinstance(code, Srid):
            return code
        return cls(code=code)

    def is_geographic(self) -> bool:
        """Return True for well-known geographic (lon/lat) reference systems."""
        return self.code in GEOGRAPHIC_SRIDS

    def __int__(self) -> int:
        return self.code


Srid.WGS84 = Srid(code=4326)
Srid.WEB_MERCATOR = Srid(code=3857)
Srid.NAD83 = Srid(code=4269)


class GeometryFlags(IntFlag):
    """Bitset describing a geometry's coordinate data."""

    NONE = 0
    HAS_Z = 0b0000_0001
    HAS_M = 0b0000_0010
    IS_EMPTY = 0b0000_0100
    HAS_BBOX = 0b0000_1000
    HAS_SRID = 0b0001_0000
