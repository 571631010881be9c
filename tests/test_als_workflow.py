"""End-to-end check of one ALS half-step built from als_linalg pieces.

Observations go into a SparseAssociationMatrix; for each user the normal
equations (Y_u^T Y_u) x_u = Y_u^T r_u are built with transpose_times_self and
solved with the configured backend. With noise-free data generated from known
factors, the solve recovers the true user factors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest

from als_linalg import (
    MatrixConfig,
    SparseAssociationMatrix,
    build_linear_system_solver,
    multiply,
    render,
    transpose_times_self,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray

K = 3


def _solve_user(
    r: SparseAssociationMatrix,
    item_factors: dict[int, NDArray[np.float32]],
    user: int,
    native: bool,  # noqa: FBT001
) -> NDArray[np.float32] | None:
    lss = build_linear_system_solver(MatrixConfig(native_math=native))
    observed = r.row(user)
    y_u = {item: item_factors[item] for item in observed}
    cov = transpose_times_self(y_u)
    if cov is None or not lss.is_non_singular(cov):
        return None
    rhs = np.zeros(K, dtype=np.float64)
    for item, weight in observed.items():
        rhs += weight * item_factors[item].astype(np.float64)
    return lss.get_solver(cov).solve_float(rhs)


@pytest.mark.parametrize("native", [False, True])
def test_half_step_recovers_user_factors(
    request: pytest.FixtureRequest,
    native: bool,  # noqa: FBT001
) -> None:
    """Exact ratings from known factors are inverted back to those factors."""
    if native:
        request.getfixturevalue("require_scipy")

    rng = np.random.default_rng(7)
    users = {u: rng.uniform(-1.0, 1.0, K).astype(np.float32) for u in (10, 20)}
    items = {i: rng.uniform(-1.0, 1.0, K).astype(np.float32) for i in range(100, 108)}

    r = SparseAssociationMatrix()
    for user, x in users.items():
        for item, y in items.items():
            r.increment(user, item, float(np.dot(x.astype(np.float64), y)))
    r.check_invariant()

    for user, x in users.items():
        solved = _solve_user(r, items, user, native)
        assert solved is not None
        assert np.allclose(solved, x, atol=1e-3)


def test_user_without_observations_has_no_data() -> None:
    """An unobserved user yields no covariance matrix at all."""
    r = SparseAssociationMatrix()
    r.increment(1, 100, 1.0)
    r.remove(1, 100)

    assert _solve_user(r, {}, 1, native=False) is None


def test_user_with_too_few_observations_is_skipped() -> None:
    """Fewer observed items than factors gives a singular system."""
    items = {
        100: np.array([1.0, 0.0, 0.0], dtype=np.float32),
        101: np.array([0.0, 1.0, 0.0], dtype=np.float32),
    }
    r = SparseAssociationMatrix.from_triples([(1, 100, 1.0), (1, 101, 2.0)])

    assert _solve_user(r, items, 1, native=False) is None


def test_projection_and_render_round_out_the_flow() -> None:
    """Projected factors keep their ids; the debug table lists every item."""
    rng = np.random.default_rng(8)
    items = {i: rng.standard_normal(K).astype(np.float32) for i in (5, 3, 9)}
    cov = transpose_times_self(items)
    assert cov is not None

    projected = multiply(cov, items)
    assert set(projected) == {3, 5, 9}

    r = SparseAssociationMatrix.from_triples([(1, i, 1.0) for i in items])
    header = render(r).split("\n")[0].split("\t")[1:]
    assert [int(c) for c in header] == [3, 5, 9]
