import numpy as np
import pytest

from caterpillar.config import SSAConfig
from caterpillar.exceptions import DegenerateSubspace
from caterpillar.ssa.decomposition import decompose
from caterpillar.ssa.embedding import embed
from caterpillar.ssa.recurrence import (
    build_recurrence,
    characteristic_roots,
    derive,
    one_step_variance,
    residual_variance,
)


def test_build_recurrence_constant_direction():
    L = 5
    u = np.ones(L) / np.sqrt(L)
    a, nu2 = build_recurrence(u)
    assert nu2 == pytest.approx(1.0 / L)
    assert np.allclose(a, np.full(L - 1, 1.0 / (L - 1)))


def test_build_recurrence_vertical_subspace_is_degenerate():
    u = np.zeros((4, 1))
    u[-1, 0] = 1.0
    with pytest.raises(DegenerateSubspace):
        build_recurrence(u)


def test_build_recurrence_full_basis_is_degenerate():
    # повний ортонормований базис: ν² = 1
    with pytest.raises(DegenerateSubspace):
        build_recurrence(np.eye(4))


def test_one_step_variance_zero_for_exact_recurrence():
    series = np.arange(20, dtype=float)
    assert one_step_variance(series, [-1.0, 2.0]) == pytest.approx(0.0, abs=1e-20)


def test_one_step_variance_mean_square():
    # x[t] ≈ x[t-1]: помилки дорівнюють приростам ряду
    series = np.array([0.0, 1.0, 1.0, 3.0])
    assert one_step_variance(series, [1.0]) == pytest.approx((1 + 0 + 4) / 3)


def test_residual_variance_of_rank_one_reconstruction():
    # X X^T = diag(2, 3): ранг 1 залишає другий рядок, перший стає різницею
    trajectory = embed(np.array([0.0, 1.0, 0.0, 1.0, 0.0, 1.0]), 2)
    basis = decompose(trajectory, rank=1)
    assert residual_variance(trajectory, basis) == pytest.approx(0.16)


def test_residual_variance_matches_projection_onto_basis(sine_factory):
    series = sine_factory(365, noise=0.3, seed=3)
    trajectory = embed(series, 7)
    basis = decompose(trajectory, rank=2)
    u = np.linalg.svd(trajectory)[0][:, :2]
    expected = np.var(trajectory - u @ (u.T @ trajectory))
    assert residual_variance(trajectory, basis) == pytest.approx(expected, rel=1e-8)

    recurrence = derive(series, SSAConfig(window_size=7, series_length=365, rank=2))
    assert recurrence.residual_variance == pytest.approx(expected, rel=1e-8)
    assert recurrence.one_step_variance > 0


def test_characteristic_roots_of_linear_recurrence():
    roots = characteristic_roots([-1.0, 2.0])
    assert np.allclose(np.abs(roots), 1.0, atol=1e-6)


def test_derive_linear_series_recovers_second_difference():
    config = SSAConfig(window_size=3, series_length=30)
    recurrence = derive(np.arange(10, 40, dtype=float), config)
    assert recurrence.rank == 2
    assert np.allclose(recurrence.coefficients, [-1.0, 2.0], atol=1e-8)
    assert recurrence.residual_variance == pytest.approx(0.0, abs=1e-12)


def test_derive_reports_verticality():
    config = SSAConfig(window_size=7, series_length=30)
    recurrence = derive(np.full(30, 5.0), config)
    assert recurrence.verticality == pytest.approx(1.0 / 7)
    assert len(recurrence.coefficients) == 6
