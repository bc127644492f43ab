"""DE-9IM intersection matrix.

The matrix holds, for each pair of point sets (Interior, Boundary, Exterior)
of two geometries A and B, the dimension of their intersection: -1 (written
``F``) for empty, otherwise 0, 1 or 2. Rows belong to A, columns to B.

String form is row-major over (I, B, E) x (I, B, E), e.g. ``"FF2FF1212"``
for two disjoint squares.
"""

from __future__ import annotations

from collections.abc import Iterable

from geocore.geometry.algorithms import Location

EMPTY = -1

_DIM_SYMBOLS = {EMPTY: "F", 0: "0", 1: "1", 2: "2"}
_SYMBOL_DIMS = {"F": EMPTY, "0": 0, "1": 1, "2": 2}
_PATTERN_SYMBOLS = frozenset("TF*012")

INTERIOR = Location.INTERIOR
BOUNDARY = Location.BOUNDARY
EXTERIOR = Location.EXTERIOR


def validate_pattern(pattern: str) -> str:
    """Check a DE-9IM pattern and return it upper-cased.

    Raises:
        ValueError: If the pattern is not 9 characters over ``T F * 0 1 2``.
    """
    normalized = pattern.upper()
    if len(normalized) != 9 or not set(normalized) <= _PATTERN_SYMBOLS:
        raise ValueError(
            f"DE-9IM pattern must be 9 characters from 'TF*012', got {pattern!r}"
        )
    return normalized


def _cell_matches(dim: int, symbol: str) -> bool:
    if symbol == "*":
        return True
    if symbol == "T":
        return dim >= 0
    return dim == _SYMBOL_DIMS[symbol]


class IntersectionMatrix:
    """A mutable 3x3 DE-9IM matrix.

    The relate engine fills cells with ``set_at_least``; callers usually only
    read the result through ``matches`` and the predicate methods.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Iterable[int] | None = None) -> None:
        values = [EMPTY] * 9 if cells is None else list(cells)
        if len(values) != 9 or any(v not in _DIM_SYMBOLS for v in values):
            raise ValueError(f"Intersection matrix needs 9 cells in -1..2, got {values}")
        self._cells = values

    @classmethod
    def from_string(cls, text: str) -> IntersectionMatrix:
        """Parse a 9-character dimension string over ``F012``."""
        symbols = text.upper()
        if len(symbols) != 9 or not set(symbols) <= set(_SYMBOL_DIMS):
            raise ValueError(f"Matrix string must be 9 characters from 'F012', got {text!r}")
        return cls(_SYMBOL_DIMS[s] for s in symbols)

    def get(self, row: Location, col: Location) -> int:
        """Return the dimension of row(A) intersected with col(B)."""
        return self._cells[row * 3 + col]

    def set(self, row: Location, col: Location, dim: int) -> None:
        """Overwrite a cell."""
        self._cells[row * 3 + col] = dim

    def set_at_least(self, row: Location, col: Location, dim: int) -> None:
        """Raise a cell to ``dim`` if it is currently lower."""
        index = row * 3 + col
        if self._cells[index] < dim:
            self._cells[index] = dim

    def __getitem__(self, key: tuple[Location, Location]) -> int:
        row, col = key
        return self.get(row, col)

    def transpose(self) -> IntersectionMatrix:
        """Return the matrix of relate(B, A)."""
        c = self._cells
        return IntersectionMatrix([c[0], c[3], c[6], c[1], c[4], c[7], c[2], c[5], c[8]])

    def to_string(self) -> str:
        """Return the 9-character row-major dimension string."""
        return "".join(_DIM_SYMBOLS[v] for v in self._cells)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"IntersectionMatrix({self.to_string()!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IntersectionMatrix):
            return self._cells == other._cells
        if isinstance(other, str):
            return self.to_string() == other.upper()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self._cells))

    def matches(self, pattern: str) -> bool:
        """Check the matrix against a pattern over ``T F * 0 1 2``.

        Raises:
            ValueError: If the pattern is malformed.
        """
        pattern = validate_pattern(pattern)
        return all(_cell_matches(dim, s) for dim, s in zip(self._cells, pattern, strict=True))

    # -- Named predicates ---------------------------------------------------
    #
    # Dimension arguments are the topological dimensions of A and B. They
    # matter for touches, crosses, overlaps and equals only.

    def is_intersects(self) -> bool:
        """Return True unless all of II, IB, BI, BB are empty."""
        return not self.is_disjoint()

    def is_disjoint(self) -> bool:
        """Return True when the pattern is ``FF*FF****``."""
        return self.matches("FF*FF****")

    def is_touches(self, dim_a: int, dim_b: int) -> bool:
        """Return True when the geometries meet only on their boundaries.

        Undefined (False) for two puntal geometries.
        """
        if dim_a == 0 and dim_b == 0:
            return False
        return (
            self.matches("FT*******")
            or self.matches("F**T*****")
            or self.matches("F***T****")
        )

    def is_crosses(self, dim_a: int, dim_b: int) -> bool:
        """Return True for a crossing of lower-dimension into higher.

        Patterns depend on the dimension pair: ``T*T******`` when A has the
        lower dimension, ``T*****T**`` when B does, ``0********`` for two
        lines.
        """
        if dim_a < dim_b and dim_a in (0, 1):
            return self.matches("T*T******")
        if dim_a > dim_b and dim_b in (0, 1):
            return self.matches("T*****T**")
        if dim_a == 1 and dim_b == 1:
            return self.matches("0********")
        return False

    def is_within(self) -> bool:
        """Return True when the pattern is ``T*F**F***``."""
        return self.matches("T*F**F***")

    def is_contains(self) -> bool:
        """Return True when the pattern is ``T*****FF*``."""
        return self.matches("T*****FF*")

    def is_covers(self) -> bool:
        """Return True when B has no point in A's exterior and they meet."""
        inner = (INTERIOR, BOUNDARY)
        meets = any(self.get(row, col) >= 0 for row in inner for col in inner)
        return (
            meets
            and self.get(EXTERIOR, INTERIOR) == EMPTY
            and self.get(EXTERIOR, BOUNDARY) == EMPTY
        )

    def is_covered_by(self) -> bool:
        """Return True when A has no point in B's exterior and they meet."""
        return self.transpose().is_covers()

    def is_overlaps(self, dim_a: int, dim_b: int) -> bool:
        """Return True for same-dimension geometries sharing part of their interiors."""
        if dim_a != dim_b:
            return False
        if dim_a == 1:
            return self.matches("1*T***T**")
        return self.matches("T*T***T**")

    def is_equals(self, dim_a: int, dim_b: int) -> bool:
        """Return True when the pattern is ``T*F**FFF*`` for equal dimensions."""
        if dim_a != dim_b:
            return False
        return self.matches("T*F**FFF*")
