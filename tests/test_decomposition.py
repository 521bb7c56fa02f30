import numpy as np
import pytest
from scipy.linalg import eigh

from caterpillar.exceptions import InvalidConfiguration, NumericalInstability
from caterpillar.ssa.decomposition import decompose, jacobi_eigh, select_rank
from caterpillar.ssa.embedding import embed


def _random_symmetric(n, seed=0):
    m = np.random.default_rng(seed).normal(size=(n, n))
    return m @ m.T


@pytest.mark.parametrize("n", [2, 5, 12, 30])
def test_jacobi_matches_scipy_eigh(n):
    a = _random_symmetric(n, seed=n)
    values, vectors = jacobi_eigh(a)
    expected = eigh(a, eigvals_only=True)
    assert np.allclose(np.sort(values), expected, rtol=1e-8, atol=1e-10 * np.abs(expected).max())
    # A v = λ v для кожної пари
    assert np.allclose(a @ vectors, vectors * values, atol=1e-8 * np.linalg.norm(a))
    assert np.allclose(vectors.T @ vectors, np.eye(n), atol=1e-10)


def test_jacobi_zero_matrix():
    values, vectors = jacobi_eigh(np.zeros((4, 4)))
    assert values.tolist() == [0.0] * 4
    assert np.array_equal(vectors, np.eye(4))


def test_jacobi_sweep_cutoff_raises():
    with pytest.raises(NumericalInstability):
        jacobi_eigh(_random_symmetric(6), max_sweeps=0)


def test_jacobi_rejects_non_finite():
    a = _random_symmetric(3)
    a[0, 1] = a[1, 0] = np.nan
    with pytest.raises(NumericalInstability):
        jacobi_eigh(a)


def test_jacobi_rejects_non_square():
    with pytest.raises(InvalidConfiguration):
        jacobi_eigh(np.ones((2, 3)))


def test_select_rank_energy_rule():
    s = np.array([3.0, 2.0, 1.0, 0.5])  # енергія 9, 4, 1, 0.25
    assert select_rank(s, energy_threshold=0.5) == 1
    assert select_rank(s, energy_threshold=0.9) == 2
    assert select_rank(s, energy_threshold=0.98) == 3
    assert select_rank(s, energy_threshold=0.98, max_rank=2) == 2


def test_select_rank_fixed_is_capped():
    s = np.array([3.0, 2.0, 1.0, 0.5])
    assert select_rank(s, rank=2) == 2
    assert select_rank(s, rank=10) == 3  # не більше L - 1


def test_select_rank_ignores_zero_components():
    assert select_rank(np.array([5.0, 0.0, 0.0]), rank=2) == 1
    assert select_rank(np.zeros(4)) == 1


def test_select_rank_keeps_exact_low_rank_structure():
    # друга компонента несе 1e-4 енергії, але матриця має точний ранг 2
    s = np.array([10.0, 0.1, 0.0, 0.0])
    assert select_rank(s, energy_threshold=0.98) == 2
    assert select_rank(s, energy_threshold=0.98, max_rank=1) == 1
    assert select_rank(s, rank=1) == 1


def test_decompose_linear_series_selects_rank_two():
    basis = decompose(embed(np.arange(10, 40, dtype=float), 3))
    assert basis.rank == 2
    assert basis.explained_energy == pytest.approx(1.0)


def test_decompose_matches_numpy_svd():
    x = embed(np.random.default_rng(5).normal(size=40), 8)
    basis = decompose(x, rank=3)
    expected = np.linalg.svd(x, compute_uv=False)
    assert np.allclose(basis.singular_values, expected, rtol=1e-6, atol=1e-6 * expected[0])
    assert np.all(np.diff(basis.singular_values) <= 0)
    assert basis.rank == 3
    assert basis.selected.shape == (8, 3)
    assert basis.right_vectors.shape == (x.shape[1], 3)


def test_decompose_vectors_are_orthonormal_and_sign_normalised():
    x = embed(np.sin(np.arange(50) / 3.0) + np.arange(50) * 0.01, 7)
    basis = decompose(x)
    u = basis.left_vectors
    assert np.allclose(u.T @ u, np.eye(7), atol=1e-10)
    for j in range(7):
        k = np.argmax(np.abs(u[:, j]))
        assert u[k, j] > 0


def test_decompose_is_deterministic():
    x = embed(np.random.default_rng(11).normal(size=30), 7)
    first, second = decompose(x), decompose(x)
    assert np.array_equal(first.singular_values, second.singular_values)
    assert np.array_equal(first.left_vectors, second.left_vectors)
    assert first.rank == second.rank


def test_contributions_sum_to_hundred():
    x = embed(np.random.default_rng(2).normal(size=30), 6)
    basis = decompose(x)
    assert basis.contributions(10).sum() == pytest.approx(100.0)
    assert len(basis.contributions(3)) == 3


def test_reconstruct_rank_one_series_exactly():
    x = embed(np.full(20, 3.0), 5)
    basis = decompose(x)
    assert basis.rank == 1
    assert basis.explained_energy == pytest.approx(1.0)
    assert np.allclose(basis.reconstruct(), x)
