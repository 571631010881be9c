"""Unit tests for als_linalg.dense."""

from __future__ import annotations

import numpy as np
import pytest

from als_linalg.dense import DenseMatrix, access_matrix_data_directly
from als_linalg.errors import ErrorCode, MatrixLayoutError


def test_accessor_returns_live_buffer() -> None:
    """Writes through the accessed buffer are visible through the matrix."""
    m = DenseMatrix.zeros(2, 3)
    data = access_matrix_data_directly(m)

    data[1, 2] = 4.0

    assert data is m.data
    assert m.get_entry(1, 2) == 4.0


def test_accessor_accepts_float64_ndarray_without_copy() -> None:
    """A C-contiguous float64 ndarray is returned as-is."""
    arr = np.ones((2, 2), dtype=np.float64)

    assert access_matrix_data_directly(arr) is arr


@pytest.mark.parametrize(
    "bad",
    [
        np.ones((2, 2), dtype=np.float32),
        np.ones(4, dtype=np.float64),
        np.asfortranarray(np.ones((2, 3), dtype=np.float64)),
        [[1.0, 0.0], [0.0, 1.0]],
        None,
    ],
)
def test_accessor_rejects_other_representations(bad: object) -> None:
    """Anything without the expected float64 2D layout is a hard failure."""
    with pytest.raises(MatrixLayoutError) as excinfo:
        access_matrix_data_directly(bad)  # type: ignore[arg-type]
    assert excinfo.value.code is ErrorCode.MATRIX_LAYOUT
    assert isinstance(excinfo.value, TypeError)


def test_constructor_rejects_wrong_dtype() -> None:
    """DenseMatrix refuses to wrap a buffer it could not hand out zero-copy."""
    with pytest.raises(MatrixLayoutError, match="float64"):
        DenseMatrix(np.zeros((2, 2), dtype=np.int64))


def test_entry_operations() -> None:
    """get/set/add_to entry operate on the backing buffer."""
    m = DenseMatrix.identity(3)
    m.set_entry(0, 1, 2.5)
    m.add_to_entry(0, 1, 0.5)
    m.add_to_entry(2, 2, 1.0)

    assert m.get_entry(0, 1) == pytest.approx(3.0)
    assert m.get_entry(2, 2) == pytest.approx(2.0)
    assert m.shape == (3, 3)


def test_from_array_copies_and_to_array_copies() -> None:
    """from_array and to_array never alias caller memory."""
    source = [[1, 2], [3, 4]]
    m = DenseMatrix.from_array(source)
    out = m.to_array()
    out[0, 0] = 99.0

    assert m.data.dtype == np.float64
    assert m.get_entry(0, 0) == 1.0
    assert repr(m) == "DenseMatrix(rows=2, cols=2)"
