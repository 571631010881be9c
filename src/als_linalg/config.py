"""Startup configuration for als_linalg.

The only behavioral switch is the linear system solver backend. It is read once
at process start (typically via :meth:`MatrixConfig.from_env`) and handed to
:func:`als_linalg.linear_solver.build_linear_system_solver`.

Notes:
    - The model is frozen; a backend built from it never changes afterwards.
    - Boolean environment values accept the spellings pydantic accepts
      ("true", "false", "1", "0", "yes", "no", "on", "off").
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ErrorCode, MatrixConfigError

NATIVE_MATH_ENV: Final[str] = "ALS_LINALG_NATIVE_MATH"
SINGULARITY_THRESHOLD_ENV: Final[str] = "ALS_LINALG_SINGULARITY_THRESHOLD"

SINGULARITY_THRESHOLD_RATIO: Final[float] = 1.0e-5

_ENV_FIELDS: Final[dict[str, str]] = {
    NATIVE_MATH_ENV: "native_math",
    SINGULARITY_THRESHOLD_ENV: "singularity_threshold",
}


class MatrixConfig(BaseModel):
    """Configuration for solver backend selection.

    Attributes:
        native_math: Use the SciPy/LAPACK backend instead of the portable
            NumPy backend.
        singularity_threshold: Ratio of the smallest to the largest pivot
            magnitude below which a matrix is treated as singular.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    native_math: bool = Field(
        default=False,
        description="Select the SciPy-backed linear system solver",
    )

    singularity_threshold: float = Field(
        default=SINGULARITY_THRESHOLD_RATIO, gt=0.0, lt=1.0
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MatrixConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        Returns:
            Parsed configuration; unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        values = {
            field: env[name].strip()
            for name, field in _ENV_FIELDS.items()
            if name in env
        }
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "<root>"
            msg = (
                f"Invalid als_linalg configuration for {field}="
                f"{values.get(field)!r}. Detail: {error['msg']}"
            )
            raise MatrixConfigError(msg, code=ErrorCode.INVALID_CONFIG) from exc
