"""Interchangeable dense linear system solvers for normal equations.

Two backends implement :class:`LinearSystemSolver`:

- :class:`PortableLinearSystemSolver` (default): Householder QR through NumPy.
- :class:`NativeLinearSystemSolver`: column-pivoted, rank-revealing QR through
  SciPy's LAPACK bindings. Requires the ``native`` extra.

Both accept the same inputs and agree numerically on well-conditioned
matrices; they differ in speed and in dependency footprint.

Selection happens once, at process start:

    config = MatrixConfig.from_env()
    lss = build_linear_system_solver(config)

The returned object is immutable and is passed explicitly to whatever needs
it. There is no module-level solver instance.

Singularity:
    A matrix is treated as singular when the smallest pivot magnitude of its
    QR factor R is at most ``singularity_threshold`` times the largest. An
    all-zero matrix is always singular. Pivots that are NaN or infinite are
    not screened and propagate into the solution. ``get_solver`` on a
    singular matrix raises :class:`als_linalg.errors.SingularMatrixError`
    instead of returning a solver that would produce NaN. Callers that can meet degenerate input
    (an id with no observations) should test ``is_non_singular`` first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, NoReturn, Protocol

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import SINGULARITY_THRESHOLD_RATIO, MatrixConfig
from .dense import DenseBuffer, DenseMatrix, access_matrix_data_directly
from .errors import SingularMatrixError, require_scipy

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


# Pivots below this fraction of the largest do not count toward apparent rank.
_APPARENT_RANK_RATIO: Final[float] = 0.01

_SQUARE_ERROR_MSG = "Matrix must be square; got shape {shape}"
_SINGULAR_ERROR_MSG = (
    "{rows} x {cols} matrix is near-singular (threshold {threshold}). "
    "Apparent rank: {rank}"
)


# =============================================================================
# Protocols
# =============================================================================


class Solver(Protocol):
    """A factorized matrix A that solves A x = b for any number of b."""

    def solve(self, b: ArrayLike) -> NDArray[np.float64]:
        """Return x with A x = b, in float64."""
        ...

    def solve_float(self, b: ArrayLike) -> NDArray[np.float32]:
        """Return x with A x = b, narrowed to float32."""
        ...


class LinearSystemSolver(Protocol):
    """Backend interface for singularity checks and factorization."""

    def is_non_singular(self, matrix: DenseMatrix | DenseBuffer) -> bool:
        """Return True if ``matrix`` admits a unique solve."""
        ...

    def get_solver(self, matrix: DenseMatrix | DenseBuffer) -> Solver:
        """Factorize ``matrix`` once for repeated solves."""
        ...


# =============================================================================
# Shared helpers
# =============================================================================


def _square_data(matrix: DenseMatrix | DenseBuffer) -> DenseBuffer:
    data = access_matrix_data_directly(matrix)
    rows, cols = data.shape
    if rows != cols:
        raise ValueError(_SQUARE_ERROR_MSG.format(shape=data.shape))
    return data


def _is_well_posed(r: DenseBuffer, threshold: float) -> bool:
    pivots = np.abs(np.diag(r))
    if pivots.size == 0:
        return True
    # NaN/Infinity are not screened; they propagate into x.
    if not np.isfinite(pivots).all():
        return True
    return bool(pivots.min() > threshold * pivots.max())


def _apparent_rank(r: DenseBuffer) -> int:
    pivots = np.abs(np.diag(r))
    if pivots.size == 0:
        return 0
    largest = pivots.max()
    return int(np.count_nonzero(pivots > _APPARENT_RANK_RATIO * largest))


def _raise_singular(
    shape: tuple[int, ...], r: DenseBuffer, threshold: float
) -> NoReturn:
    rank = _apparent_rank(r)
    rows, cols = shape
    logger.warning(
        "%d x %d matrix is near-singular (threshold %g). Add more data or "
        "decrease the number of features, to <= about %d",
        rows,
        cols,
        threshold,
        rank,
    )
    msg = _SINGULAR_ERROR_MSG.format(
        rows=rows, cols=cols, threshold=threshold, rank=rank
    )
    raise SingularMatrixError(msg, apparent_rank=rank)


@dataclass(frozen=True, slots=True)
class _FactorizedSolver:
    """Solver backed by a precomputed factorization callable."""

    apply: Callable[[NDArray[np.float64]], NDArray[np.float64]]

    def solve(self, b: ArrayLike) -> NDArray[np.float64]:
        return self.apply(np.asarray(b, dtype=np.float64))

    def solve_float(self, b: ArrayLike) -> NDArray[np.float32]:
        return self.solve(b).astype(np.float32)


# =============================================================================
# Portable backend (NumPy)
# =============================================================================


@dataclass(frozen=True, slots=True)
class PortableLinearSystemSolver:
    """Default backend: Householder QR via ``numpy.linalg.qr``.

    Attributes:
        singularity_threshold: Relative pivot threshold for singularity.
    """

    singularity_threshold: float = SINGULARITY_THRESHOLD_RATIO

    def is_non_singular(self, matrix: DenseMatrix | DenseBuffer) -> bool:
        _, r = np.linalg.qr(_square_data(matrix))
        return _is_well_posed(r, self.singularity_threshold)

    def get_solver(self, matrix: DenseMatrix | DenseBuffer) -> Solver:
        """
        Factorize ``matrix`` as Q R.

        Args:
            matrix: Square dense matrix.

        Raises:
            SingularMatrixError: If the matrix is singular.

        Returns:
            A solver computing x from R x = Q^T b.
        """
        data = _square_data(matrix)
        q, r = np.linalg.qr(data)
        if not _is_well_posed(r, self.singularity_threshold):
            _raise_singular(data.shape, r, self.singularity_threshold)
        q_t = q.T.copy()

        def _apply(b: NDArray[np.float64]) -> NDArray[np.float64]:
            return np.linalg.solve(r, q_t @ b)

        return _FactorizedSolver(_apply)


# =============================================================================
# Native backend (SciPy / LAPACK)
# =============================================================================


@dataclass(frozen=True, slots=True)
class NativeLinearSystemSolver:
    """Accelerated backend: pivoted QR via ``scipy.linalg.qr``.

    Construction fails with OptionalDependencyMissingError when SciPy is not
    installed.

    Attributes:
        singularity_threshold: Relative pivot threshold for singularity.
    """

    singularity_threshold: float = SINGULARITY_THRESHOLD_RATIO

    def __post_init__(self) -> None:
        require_scipy()

    def is_non_singular(self, matrix: DenseMatrix | DenseBuffer) -> bool:
        from scipy.linalg import qr  # noqa: PLC0415

        r = qr(_square_data(matrix), mode="r", pivoting=True, check_finite=False)[0]
        return _is_well_posed(r, self.singularity_threshold)

    def get_solver(self, matrix: DenseMatrix | DenseBuffer) -> Solver:
        """
        Factorize ``matrix`` as Q R P^T with column pivoting.

        Args:
            matrix: Square dense matrix.

        Raises:
            SingularMatrixError: If the matrix is singular.

        Returns:
            A solver applying the factorization through triangular solves.
        """
        from scipy.linalg import qr, solve_triangular  # noqa: PLC0415

        data = _square_data(matrix)
        q, r, perm = qr(data, pivoting=True, check_finite=False)
        if not _is_well_posed(r, self.singularity_threshold):
            _raise_singular(data.shape, r, self.singularity_threshold)
        q_t = q.T.copy()

        def _apply(b: NDArray[np.float64]) -> NDArray[np.float64]:
            z = solve_triangular(r, q_t @ b, check_finite=False)
            x = np.empty_like(z)
            x[perm] = z
            return x

        return _FactorizedSolver(_apply)


# =============================================================================
# Factory
# =============================================================================


def build_linear_system_solver(
    config: MatrixConfig | None = None,
) -> LinearSystemSolver:
    """
    Build the solver backend selected by configuration.

    Call once at startup and pass the result down to code that solves.

    Args:
        config: Matrix configuration; defaults to ``MatrixConfig()``.

    Raises:
        OptionalDependencyMissingError: If the native backend is selected but
            SciPy is not installed.

    Returns:
        An immutable LinearSystemSolver.
    """
    cfg = config if config is not None else MatrixConfig()
    lss: LinearSystemSolver
    if cfg.native_math:
        lss = NativeLinearSystemSolver(cfg.singularity_threshold)
    else:
        lss = PortableLinearSystemSolver(cfg.singularity_threshold)
    logger.info("Using %s for dense linear solves", type(lss).__name__)
    return lss
