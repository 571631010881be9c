"""Small dense matrices with zero-copy access to their storage.

Kernels in :mod:`als_linalg.matrix_ops` read and write the float64 buffer of a
:class:`DenseMatrix` in place. The buffer is a documented capability of the
type, so hot paths never copy data out of the matrix.
"""

from __future__ import annotations

from typing import TypeAlias, cast

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .errors import raise_matrix_layout_error

DenseBuffer: TypeAlias = NDArray[np.float64]

_EXPECTED_LAYOUT = "a C-contiguous 2D float64 ndarray or DenseMatrix"


def _is_dense_buffer(data: object) -> bool:
    return (
        isinstance(data, np.ndarray)
        and data.ndim == 2
        and data.dtype == np.float64
        and data.flags.c_contiguous
    )


class DenseMatrix:
    """Row-major float64 matrix used for normal equations and cross products.

    Entries are stored at double precision even when they are built from
    float32 factor vectors.
    """

    __slots__ = ("_data",)

    def __init__(self, data: DenseBuffer) -> None:
        """
        Wrap an existing buffer without copying it.

        Args:
            data: C-contiguous 2D float64 array that becomes the live storage.

        Raises:
            MatrixLayoutError: If ``data`` does not have the expected layout.
        """
        if not _is_dense_buffer(data):
            raise_matrix_layout_error(expected=_EXPECTED_LAYOUT, got=_describe(data))
        self._data = data

    @classmethod
    def zeros(cls, rows: int, cols: int) -> DenseMatrix:
        """Return a new rows x cols matrix of zeros."""
        return cls(np.zeros((rows, cols), dtype=np.float64))

    @classmethod
    def identity(cls, k: int) -> DenseMatrix:
        """Return a new k x k identity matrix."""
        return cls(np.eye(k, dtype=np.float64))

    @classmethod
    def from_array(cls, values: ArrayLike) -> DenseMatrix:
        """Return a new matrix holding a float64 copy of ``values``."""
        return cls(np.array(values, dtype=np.float64, order="C", ndmin=2))

    @property
    def data(self) -> DenseBuffer:
        """The live backing buffer; writes through it modify this matrix."""
        return self._data

    @property
    def shape(self) -> tuple[int, int]:
        return cast("tuple[int, int]", self._data.shape)

    def get_entry(self, row: int, col: int) -> float:
        return float(self._data[row, col])

    def set_entry(self, row: int, col: int, value: float) -> None:
        self._data[row, col] = value

    def add_to_entry(self, row: int, col: int, increment: float) -> None:
        self._data[row, col] += increment

    def to_array(self) -> DenseBuffer:
        """Return a copy of the entries."""
        return self._data.copy()

    def __repr__(self) -> str:
        rows, cols = self.shape
        return f"DenseMatrix(rows={rows}, cols={cols})"


def _describe(obj: object) -> str:
    if isinstance(obj, np.ndarray):
        return (
            f"ndarray(ndim={obj.ndim}, dtype={obj.dtype}, "
            f"c_contiguous={obj.flags.c_contiguous})"
        )
    return type(obj).__name__


def access_matrix_data_directly(matrix: DenseMatrix | DenseBuffer) -> DenseBuffer:
    """
    Return the storage of a dense matrix, not a copy.

    Args:
        matrix: A DenseMatrix, or a bare C-contiguous 2D float64 ndarray.

    Raises:
        MatrixLayoutError: If ``matrix`` is any other representation. No copying
            fallback exists.

    Returns:
        The live 2D float64 buffer backing ``matrix``.
    """
    if isinstance(matrix, DenseMatrix):
        return matrix.data
    if _is_dense_buffer(matrix):
        return cast("DenseBuffer", matrix)
    raise_matrix_layout_error(expected=_EXPECTED_LAYOUT, got=_describe(matrix))
