"""Dual-indexed sparse association matrix.

One logical matrix R of float32 weights keyed by pairs of integer ids, stored
twice: once keyed by row and once keyed by column, so either direction can be
scanned without a transpose. Both views are written by the same helpers and
always hold the same entries with the same values. A row or column key is only
present while it has at least one stored entry.

Instances perform no locking. Concurrent mutation of one instance must be
serialized by the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import TypeAlias

import numpy as np
from numpy.typing import NDArray

from .errors import ErrorCode, InvariantViolationError

SparseIndex: TypeAlias = dict[int, dict[int, float]]

_EMPTY: Mapping[int, float] = MappingProxyType({})


def _narrow(value: float) -> float:
    # Stored weights carry float32 precision.
    return float(np.float32(value))


def _add_to_index(index: SparseIndex, outer: int, inner: int, value: float) -> None:
    entries = index.get(outer)
    if entries is None:
        entries = {}
        index[outer] = entries
    entries[inner] = _narrow(entries.get(inner, 0.0) + value)


def _remove_from_index(index: SparseIndex, outer: int, inner: int) -> None:
    entries = index.get(outer)
    if entries is None:
        return
    entries.pop(inner, None)
    if not entries:
        del index[outer]


def _sorted_ids(ids: Iterable[int]) -> NDArray[np.int64]:
    return np.sort(np.fromiter(ids, dtype=np.int64))


class SparseAssociationMatrix:
    """Sparse matrix of observed association weights, indexed by row and column.

    Examples:
        >>> r = SparseAssociationMatrix()
        >>> r.increment(1, 10, 0.5)
        >>> r.increment(1, 10, 0.25)
        >>> r.get(1, 10), r.column(10)[1]
        (0.75, 0.75)
        >>> r.remove(1, 10)
        >>> len(r), 1 in r.by_row
        (0, False)
    """

    __slots__ = ("_by_column", "_by_row")

    def __init__(self) -> None:
        self._by_row: SparseIndex = {}
        self._by_column: SparseIndex = {}

    @classmethod
    def from_triples(
        cls, triples: Iterable[tuple[int, int, float]]
    ) -> SparseAssociationMatrix:
        """Build a matrix by incrementing each (row, column, value) triple in turn."""
        matrix = cls()
        for row, column, value in triples:
            matrix.increment(row, column, value)
        return matrix

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def increment(self, row: int, column: int, value: float) -> None:
        """
        Add ``value`` to the entry at (row, column) in both views.

        Missing rows, columns and entries are created. Repeated calls for the
        same coordinate accumulate.

        Args:
            row: Row id.
            column: Column id.
            value: Amount to add.
        """
        _add_to_index(self._by_row, row, column, value)
        _add_to_index(self._by_column, column, row, value)

    def remove(self, row: int, column: int) -> None:
        """
        Delete the entry at (row, column) from both views, if present.

        Rows and columns left without entries are dropped entirely.

        Args:
            row: Row id.
            column: Column id.
        """
        _remove_from_index(self._by_row, row, column)
        _remove_from_index(self._by_column, column, row)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def by_row(self) -> Mapping[int, Mapping[int, float]]:
        """Read-only view: row id -> (column id -> value)."""
        return MappingProxyType(self._by_row)

    @property
    def by_column(self) -> Mapping[int, Mapping[int, float]]:
        """Read-only view: column id -> (row id -> value)."""
        return MappingProxyType(self._by_column)

    def row(self, row: int) -> Mapping[int, float]:
        entries = self._by_row.get(row)
        return _EMPTY if entries is None else MappingProxyType(entries)

    def column(self, column: int) -> Mapping[int, float]:
        entries = self._by_column.get(column)
        return _EMPTY if entries is None else MappingProxyType(entries)

    def get(self, row: int, column: int) -> float | None:
        """Return the stored value, or None if the entry was never stored."""
        entries = self._by_row.get(row)
        if entries is None:
            return None
        return entries.get(column)

    def row_ids(self) -> NDArray[np.int64]:
        """Return the ids of all non-empty rows in ascending order."""
        return _sorted_ids(self._by_row)

    def column_ids(self) -> NDArray[np.int64]:
        """Return the ids of all non-empty columns in ascending order."""
        return _sorted_ids(self._by_column)

    @property
    def shape(self) -> tuple[int, int]:
        """Number of distinct (rows, columns) currently holding entries."""
        return len(self._by_row), len(self._by_column)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._by_row.values())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        row, column = key
        try:
            entries = self._by_row.get(row)
            return entries is not None and column in entries
        except TypeError:
            # Unhashable ids cannot be stored, so they are never present.
            return False

    def __iter__(self) -> Iterator[tuple[int, int, float]]:
        """Iterate over stored (row, column, value) triples in row-view order."""
        for row, entries in self._by_row.items():
            for column, value in entries.items():
                yield row, column, value

    def __repr__(self) -> str:
        rows, columns = self.shape
        return (
            f"SparseAssociationMatrix(rows={rows}, columns={columns}, "
            f"entries={len(self)})"
        )

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def check_invariant(self) -> None:
        """
        Verify that the row and column views mirror each other exactly.

        Raises:
            InvariantViolationError: If an entry is missing from one view, the
                values differ, or an outer key maps to an empty inner mapping.
        """
        _check_mirrored(self._by_row, self._by_column, "row", "column")
        _check_mirrored(self._by_column, self._by_row, "column", "row")


def _check_mirrored(
    index: SparseIndex, mirror: SparseIndex, index_name: str, mirror_name: str
) -> None:
    for outer, entries in index.items():
        if not entries:
            msg = f"{index_name} {outer} is present with no entries"
            raise InvariantViolationError(msg, code=ErrorCode.INVARIANT_VIOLATION)
        for inner, value in entries.items():
            mirrored = mirror.get(inner, {}).get(outer)
            if mirrored is None:
                msg = (
                    f"entry ({index_name}={outer}, {mirror_name}={inner}) is "
                    f"missing from the {mirror_name} view"
                )
                raise InvariantViolationError(msg, code=ErrorCode.INVARIANT_VIOLATION)
            # NaN weights propagate unchecked and never compare equal.
            if mirrored != value and not (np.isnan(mirrored) and np.isnan(value)):
                msg = (
                    f"entry ({index_name}={outer}, {mirror_name}={inner}) has "
                    f"value {value!r} but mirror holds {mirrored!r}"
                )
                raise InvariantViolationError(msg, code=ErrorCode.INVARIANT_VIOLATION)
