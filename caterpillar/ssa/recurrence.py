"""
Етап 3. Лінійне рекурентне співвідношення (ЛРС) з сингулярного базису.

Для вибраних векторів u_i позначимо u_i^- вектор без останньої координати,
π_i – останню координату, ν² = sum π_i^2 («вертикальність»). Тоді

    a = (1 / (1 - ν²)) · sum π_i · u_i^-

і кожне наступне значення ряду виражається через L - 1 попередніх:

    x[t] = sum_k a_k · x[t - L + 1 + k].
"""
import logging
from dataclasses import dataclass

import numpy as np

from caterpillar.exceptions import DegenerateSubspace, NumericalInstability
from caterpillar.ssa.decomposition import SpectralBasis, decompose
from caterpillar.ssa.embedding import embed

logger = logging.getLogger(__name__)


@dataclass
class Recurrence:
    coefficients: np.ndarray
    residual_variance: float
    basis: SpectralBasis
    verticality: float
    one_step_variance: float = 0.0

    @property
    def rank(self) -> int:
        return self.basis.rank


def build_recurrence(basis_vectors, tolerance: float = 1e-6):
    """
    Коефіцієнти ЛРС з базисних векторів (стовпці матриці L x r).

    :return: (a, ν²), де a має довжину L - 1
    :raises DegenerateSubspace: якщо ν² >= 1 - tolerance
    """
    u = np.asarray(basis_vectors, dtype=float)
    if u.ndim == 1:
        u = u[:, np.newaxis]
    pi = u[-1, :]
    nu2 = float(np.sum(pi ** 2))
    if nu2 >= 1.0 - tolerance:
        raise DegenerateSubspace(
            f"Вертикальність ν² = {nu2:.6f} >= 1 - {tolerance:g}; "
            "зменшіть ранг або довжину вікна"
        )
    coefficients = (u[:-1, :] @ pi) / (1.0 - nu2)
    if not np.all(np.isfinite(coefficients)):
        raise NumericalInstability("Коефіцієнти ЛРС містять NaN або нескінченні значення")
    return coefficients, nu2


def residual_variance(trajectory, basis: SpectralBasis) -> float:
    """
    Залишкова дисперсія σ²_res.

    Траєкторна матриця відновлюється вибраним базисом (ранг r), і
    береться дисперсія поелементних різниць з вихідною матрицею.
    """
    x = np.asarray(trajectory, dtype=float)
    return float(np.var(x - basis.reconstruct()))


def one_step_variance(series, coefficients) -> float:
    """
    Середній квадрат помилки однокрокового прогнозу ЛРС на навчальному вікні.

    Для кожного вектора затримки остання координата відновлюється через
    попередні L - 1. Лише діагностика: межі інтервалів її не використовують.
    """
    a = np.asarray(coefficients, dtype=float)
    trajectory = embed(series, len(a) + 1)
    predicted = a @ trajectory[:-1, :]
    diff = trajectory[-1, :] - predicted
    return float(np.mean(diff ** 2))


def characteristic_roots(coefficients) -> np.ndarray:
    """Корені z^(L-1) - sum a_k z^k = 0; за модулем > 1 – ЛРС розбіжне."""
    a = np.asarray(coefficients, dtype=float)
    # np.roots чекає коефіцієнти від старшого степеня: 1, -a_{L-2}, ..., -a_0
    poly = np.concatenate(([1.0], -a[::-1]))
    return np.roots(poly)


def derive(series, config) -> Recurrence:
    """
    Повний навчальний прохід: вкладення → розкладання → ЛРС.

    :param series: навчальне вікно (вже обрізане до потрібної довжини)
    :param config: SSAConfig
    """
    trajectory = embed(series, config.window_size)
    basis = decompose(
        trajectory,
        rank=config.rank,
        energy_threshold=config.energy_threshold,
        max_rank=config.effective_max_rank,
        tol=config.eigen_tolerance,
        max_sweeps=config.max_sweeps,
    )
    coefficients, nu2 = build_recurrence(basis.selected, tolerance=config.degeneracy_tolerance)
    variance = residual_variance(trajectory, basis)
    one_step = one_step_variance(series, coefficients)

    roots = characteristic_roots(coefficients)
    if len(roots) and np.max(np.abs(roots)) > 1.0 + 1e-6:
        logger.warning(
            "ЛРС нестійке: максимальний модуль кореня %.4f > 1, прогноз може розходитися",
            float(np.max(np.abs(roots))),
        )
    logger.info(
        "ЛРС побудовано: ранг %d, енергія %.4f, ν² = %.4f, σ²_res = %.6g, однокрокова %.6g",
        basis.rank, basis.explained_energy, nu2, variance, one_step,
    )
    return Recurrence(coefficients=coefficients, residual_variance=variance,
                      basis=basis, verticality=nu2, one_step_variance=one_step)


__all__ = [
    "Recurrence",
    "build_recurrence",
    "residual_variance",
    "one_step_variance",
    "characteristic_roots",
    "derive",
]
