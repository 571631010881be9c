"""
Matrix kernels for alternating-least-squares factorization.

This module provides the dense/sparse products an ALS iteration needs:

- Projection of factor vectors through a small dense matrix (``multiply``).
- Normal-equation construction, sum of v v^T over a factor store
  (``transpose_times_self``).
- Cross products between two dense-indexed factor sets (``multiply_xyt``).

Design notes:
    * Precision: factor vectors are stored as float32, but every sum is
      accumulated in float64 so rounding error does not grow with the number
      of vectors. Results destined for factor stores are narrowed back to
      float32; dense results stay float64.
    * Zero-copy: dense operands are read through
      :func:`als_linalg.dense.access_matrix_data_directly`, which refuses any
      representation it cannot read in place.
    * Purity: kernels never mutate their inputs and hold no state, so callers
      may run them concurrently over disjoint id ranges and merge the outputs.
    * Unchecked input: NaN/Infinity are not screened and propagate into
      results.
"""

from __future__ import annotations

from collections.abc import Mapping
from itertools import islice
from typing import TypeAlias, cast, overload

import numpy as np
from numpy.typing import NDArray

from .dense import DenseBuffer, DenseMatrix, access_matrix_data_directly

# =============================================================================
# Public types
# =============================================================================

FactorVector: TypeAlias = NDArray[np.floating]
FactorVectors: TypeAlias = Mapping[int, FactorVector]

# === Rows of float64 scratch materialized at once by transpose_times_self ===
_ACCUMULATION_CHUNK = 4096

# =============================================================================
# Error message constants
# =============================================================================

_VECTOR_NDIM_ERROR = "vector must be 1D; got ndim={ndim}"
_VECTOR_LENGTH_ERROR = "vector length {length} does not match matrix shape {shape}"
_OPERAND_TYPE_ERROR = "operand must be a mapping of vectors or a 1D array; got {typ}"


# =============================================================================
# Internal helpers
# =============================================================================


def _as_float64_vector(vector: FactorVector, shape: tuple[int, ...]) -> DenseBuffer:
    v = np.asarray(vector, dtype=np.float64)
    if v.ndim != 1:
        raise ValueError(_VECTOR_NDIM_ERROR.format(ndim=v.ndim))
    if v.shape[0] != shape[1]:
        raise ValueError(_VECTOR_LENGTH_ERROR.format(length=v.shape[0], shape=shape))
    return cast("DenseBuffer", v)


def _stack_float64(vectors: list[FactorVector]) -> DenseBuffer:
    """
    Stack equal-length vectors into a float64 (n, k) block.

    Args:
        vectors: Non-empty list of 1D vectors of the same length.

    Returns:
        A new C-contiguous float64 array with one vector per row.
    """
    return np.asarray(vectors, dtype=np.float64)


def _stack_indexed(vectors: FactorVectors) -> DenseBuffer:
    # Keys must be exactly 0..len-1; a gap surfaces as KeyError.
    return _stack_float64([vectors[i] for i in range(len(vectors))])


def _multiply_vectors(
    matrix_data: DenseBuffer,
    vectors: FactorVectors,
) -> dict[int, NDArray[np.float32]]:
    # One product per vector, so a result never depends on which other ids
    # were passed in the same call.
    shape = matrix_data.shape
    return {
        vector_id: (matrix_data @ _as_float64_vector(vector, shape)).astype(np.float32)
        for vector_id, vector in vectors.items()
    }


def _multiply_vector(matrix_data: DenseBuffer, vector: FactorVector) -> DenseBuffer:
    v = _as_float64_vector(vector, matrix_data.shape)
    return cast("DenseBuffer", matrix_data @ v)


# =============================================================================
# Projection: M @ v
# =============================================================================


@overload
def multiply(
    matrix: DenseMatrix | DenseBuffer, operand: FactorVectors
) -> dict[int, NDArray[np.float32]]: ...


@overload
def multiply(
    matrix: DenseMatrix | DenseBuffer, operand: FactorVector
) -> DenseBuffer: ...


def multiply(
    matrix: DenseMatrix | DenseBuffer,
    operand: FactorVectors | FactorVector,
) -> dict[int, NDArray[np.float32]] | DenseBuffer:
    """
    Multiply a small dense matrix by one vector or by every vector in a store.

    Given an (m, n) matrix M:

    - ``operand`` a mapping id -> length-n vector: returns a new dict
      id -> float32 vector ``M @ v`` of length m. The input is not modified.
    - ``operand`` a single length-n vector: returns ``M @ v`` as a float64
      vector of length m; the caller narrows if needed.

    Both paths accumulate in float64.

    Args:
        matrix: Dense (m, n) matrix.
        operand: Mapping of vectors, or a single 1D vector.

    Raises:
        TypeError: If ``operand`` is neither a mapping nor array-like.
        ValueError: If vector lengths do not match the matrix column count.
        MatrixLayoutError: If ``matrix`` is not a float64 dense matrix.

    Returns:
        A dict of float32 vectors, or a float64 vector.
    """
    matrix_data = access_matrix_data_directly(matrix)
    if isinstance(operand, Mapping):
        return _multiply_vectors(matrix_data, cast("FactorVectors", operand))
    if isinstance(operand, np.ndarray | list | tuple):
        return _multiply_vector(matrix_data, cast("FactorVector", operand))
    raise TypeError(_OPERAND_TYPE_ERROR.format(typ=type(operand)))


# =============================================================================
# Normal equations: sum of v v^T
# =============================================================================


def transpose_times_self(vectors: FactorVectors | None) -> DenseMatrix | None:
    """
    Compute M^T M for the tall, skinny matrix whose rows are ``vectors``.

    Equivalent to summing the outer product v v^T over every stored vector.
    All vectors must share one length k (not checked beyond what NumPy
    enforces when stacking).

    Args:
        vectors: Mapping id -> length-k vector, or None.

    Returns:
        A new k x k DenseMatrix, or None when there are no vectors and
        therefore no dimensionality to build a matrix from.
    """
    if not vectors:
        return None

    remaining = iter(vectors.values())
    result: DenseBuffer | None = None
    while True:
        chunk = list(islice(remaining, _ACCUMULATION_CHUNK))
        if not chunk:
            break
        block = _stack_float64(chunk)
        if result is None:
            k = block.shape[1]
            result = np.zeros((k, k), dtype=np.float64)
        result += block.T @ block

    return DenseMatrix(cast("DenseBuffer", result))


# =============================================================================
# Cross products: X @ Y^T
# =============================================================================


def multiply_xyt(x: FactorVectors, y: FactorVectors) -> DenseMatrix:
    """
    Compute the matrix of pairwise dot products between two factor sets.

    Entry (i, j) of the result is ``dot(x[i], y[j])``. Both mappings must be
    keyed by dense, contiguous, 0-based indices; this is the caller's
    responsibility and is not validated.

    Args:
        x: Mapping index -> vector, indices 0..len(x)-1.
        y: Mapping index -> vector, indices 0..len(y)-1, same vector length.

    Returns:
        A new DenseMatrix of shape (len(x), len(y)).
    """
    n_x = len(x)
    n_y = len(y)
    if n_x == 0 or n_y == 0:
        return DenseMatrix.zeros(n_x, n_y)

    x_data = _stack_indexed(x)
    y_data = _stack_indexed(y)
    return DenseMatrix(np.ascontiguousarray(x_data @ y_data.T))
