"""Exception hierarchy for als_linalg.

Every failure raised by the package is an :class:`AlsLinalgError` carrying an
:class:`ErrorCode`, and also subclasses the builtin a caller would expect
(``ArithmeticError`` for a singular solve, ``ImportError`` for a missing
extra). SciPy is optional; :func:`require_scipy` is the single gate in front
of the native solver backend.
"""

from __future__ import annotations

from enum import StrEnum
from importlib.util import find_spec
from typing import Final, NoReturn

_NATIVE_EXTRA_INSTALL_MSG: Final[str] = (
    "Install the optional dependency group with:\n"
    "  pip install 'als-linalg[native]'\n"
    "or, if you are using uv:\n"
    "  uv pip install '.[native]'"
)


class ErrorCode(StrEnum):
    """Machine-readable classification for als_linalg failures."""

    SINGULAR_MATRIX = "singular_matrix"
    MATRIX_LAYOUT = "matrix_layout"
    INVARIANT_VIOLATION = "invariant_violation"
    OPTIONAL_DEPENDENCY_MISSING = "optional_dependency_missing"
    INVALID_CONFIG = "invalid_config"


class AlsLinalgError(Exception):
    """Base exception for als_linalg failures."""

    def __init__(self, message: str, *, code: ErrorCode | None = None) -> None:
        """
        Initialize an AlsLinalgError.

        Args:
            message: Human-readable error message.
            code: Optional machine-readable error code classifying the error.
        """
        super().__init__(message)
        self.code: ErrorCode | None = code


class SingularMatrixError(AlsLinalgError, ArithmeticError):
    """Raised when a singular matrix is factorized for solving."""

    def __init__(self, message: str, *, apparent_rank: int) -> None:
        """
        Initialize a SingularMatrixError.

        Args:
            message: Human-readable error message.
            apparent_rank: Numerical rank estimated for the rejected matrix.
        """
        super().__init__(message, code=ErrorCode.SINGULAR_MATRIX)
        self.apparent_rank = apparent_rank


class MatrixLayoutError(AlsLinalgError, TypeError):
    """Raised when a dense matrix does not expose the expected float64 buffer."""


class InvariantViolationError(AlsLinalgError, AssertionError):
    """Raised when the row and column views of a sparse matrix disagree."""


class OptionalDependencyMissingError(AlsLinalgError, ImportError):
    """Raised when an optional dependency is required but missing."""


class MatrixConfigError(AlsLinalgError, ValueError):
    """Raised when matrix configuration values are invalid."""


def require_scipy() -> None:
    """Fail fast when the native backend is selected without SciPy.

    Raises:
        OptionalDependencyMissingError: If SciPy cannot be found.
    """
    if find_spec("scipy") is not None:
        return

    msg = (
        "The native linear system solver requires scipy, which is not "
        f"installed.\n\n{_NATIVE_EXTRA_INSTALL_MSG}"
    )
    raise OptionalDependencyMissingError(
        msg, code=ErrorCode.OPTIONAL_DEPENDENCY_MISSING
    )


def raise_matrix_layout_error(*, expected: str, got: object) -> NoReturn:
    """Raise a standardized MatrixLayoutError.

    Args:
        expected: Human-readable description of the required representation.
        got: The offending object or a description of it.

    Raises:
        MatrixLayoutError: Always.
    """
    msg = (
        f"Dense matrix does not expose the expected storage. Expected {expected}. "
        f"Got: {got!r}."
    )
    raise MatrixLayoutError(msg, code=ErrorCode.MATRIX_LAYOUT)
