"""Custom exceptions for geocore.

Every error raised by the core is a local, recoverable condition reported to
the caller. Validity failures are not errors: ``is_valid`` returns a boolean.
Index queries never raise on empty or missing data.
"""

from __future__ import annotations

from typing import Any


class GeoCoreError(Exception):
    """Base exception for all geocore errors.

    Attributes:
        message: Human-readable error description.
        context: Extra key/value details rendered into ``str(error)``.
    """

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize the error with optional keyword context.

        Args:
            message: Human-readable error description.
            **context: Values describing the offending input.
        """
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class GeometryError(GeoCoreError):
    """Base exception for geometry construction errors."""


class DimensionalityMismatchError(GeometryError):
    """Raised when coordinates of one geometry disagree on Z/M presence.

    This error is raised when:
    - Some coordinates carry Z and others do not
    - Some coordinates carry M and others do not
    - Members of a collection have different coordinate dimensions
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str | None = None,
        got: str | None = None,
    ) -> None:
        self.expected = expected
        self.got = got
        super().__init__(message, expected=expected, got=got)


class InvalidRingStructureError(GeometryError):
    """Raised by strict constructors for structurally impossible rings.

    Only raised when strict construction is explicitly requested; the default
    constructors accept any ring and leave the verdict to the validator.
    """

    def __init__(
        self,
        message: str,
        *,
        ring_index: int | None = None,
        num_points: int | None = None,
    ) -> None:
        self.ring_index = ring_index
        self.num_points = num_points
        super().__init__(message, ring_index=ring_index, num_points=num_points)


class GeometryKindError(GeometryError):
    """Raised when a payload does not fit the requested geometry kind."""


class InvalidBoundingBoxError(GeometryError):
    """Raised when a bounding box has min > max on an axis."""


class InvalidSridError(GeometryError):
    """Raised for non-positive SRID codes."""


class InvalidGeometryError(GeometryError):
    """Raised by ``GeometryValidator.validate`` in strict mode.

    Attributes:
        reason: The first validity rule the geometry failed.
    """

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(message, reason=reason)


class UnsupportedGeometryPairError(GeoCoreError):
    """Raised when an operation is requested between unsupported operands."""

    def __init__(
        self,
        message: str,
        *,
        left: str | None = None,
        right: str | None = None,
    ) -> None:
        self.left = left
        self.right = right
        super().__init__(message, left=left, right=right)


class SpatialIndexError(GeoCoreError):
    """Base exception for spatial index errors."""


class MissingBoundingBoxError(SpatialIndexError):
    """Raised when indexing a geometry that has no bounding box (empty)."""


class ConcurrentModificationError(SpatialIndexError):
    """Raised when a lazy index query observes a concurrent mutation."""
