"""als_linalg sparse/dense linear-algebra kernels for ALS matrix factorization."""

from __future__ import annotations

from .config import MatrixConfig
from .dense import DenseMatrix, access_matrix_data_directly
from .errors import (
    AlsLinalgError,
    ErrorCode,
    InvariantViolationError,
    MatrixConfigError,
    MatrixLayoutError,
    OptionalDependencyMissingError,
    SingularMatrixError,
)
from .formatting import render
from .linear_solver import (
    LinearSystemSolver,
    NativeLinearSystemSolver,
    PortableLinearSystemSolver,
    Solver,
    build_linear_system_solver,
)
from .matrix_ops import (
    FactorVector,
    FactorVectors,
    multiply,
    multiply_xyt,
    transpose_times_self,
)
from .sparse import SparseAssociationMatrix

__all__ = [
    "AlsLinalgError",
    "DenseMatrix",
    "ErrorCode",
    "FactorVector",
    "FactorVectors",
    "InvariantViolationError",
    "LinearSystemSolver",
    "MatrixConfig",
    "MatrixConfigError",
    "MatrixLayoutError",
    "NativeLinearSystemSolver",
    "OptionalDependencyMissingError",
    "PortableLinearSystemSolver",
    "SingularMatrixError",
    "Solver",
    "SparseAssociationMatrix",
    "access_matrix_data_directly",
    "build_linear_system_solver",
    "multiply",
    "multiply_xyt",
    "render",
    "transpose_times_self",
]

__version__ = "0.1.0"
