"""
Етап 2. Спектральне розкладання траєкторної матриці.

Замість бібліотечного SVD використовується циклічний метод Якобі для
симетричної матриці S = X · X^T: власні числа λ_i дорівнюють квадратам
сингулярних чисел X, а власні вектори – лівим сингулярним векторам u_i.
Результат детермінований: стабільне сортування за спаданням (рівні
значення зберігають вихідний порядок) і фіксований знак кожного вектора.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from caterpillar.exceptions import InvalidConfiguration, NumericalInstability

logger = logging.getLogger(__name__)

# Частка загальної енергії, нижче якої компонента вважається нульовою.
NEGLIGIBLE_ENERGY = 1e-12


def _off_diagonal_norm(a):
    return float(np.sqrt(2.0 * np.sum(np.triu(a, 1) ** 2)))


def jacobi_eigh(matrix, tol: float = 1e-12, max_sweeps: int = 50):
    """
    Власні числа та вектори симетричної матриці методом обертань Якобі.

    Кожен прохід (sweep) обнуляє по черзі всі позадіагональні елементи.
    Зупинка – коли норма Фробеніуса позадіагональної частини не перевищує
    tol * ||A||_F. Якщо за max_sweeps проходів цього не сталося,
    виникає NumericalInstability.

    :return: (eigenvalues, eigenvectors) без сортування; вектори – стовпці.
    """
    a = np.array(matrix, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise InvalidConfiguration(f"Очікувалась квадратна матриця, отримано {a.shape}")
    if not np.all(np.isfinite(a)):
        raise NumericalInstability("Матриця містить NaN або нескінченні значення")

    n = a.shape[0]
    v = np.eye(n)
    scale = float(np.linalg.norm(a))
    if scale == 0.0:
        return np.zeros(n), v
    threshold = tol * scale

    for sweep in range(max_sweeps):
        if _off_diagonal_norm(a) <= threshold:
            logger.debug("Метод Якобі зійшовся за %d проходів", sweep)
            return np.diag(a).copy(), v
        for p in range(n - 1):
            for q in range(p + 1, n):
                apq = a[p, q]
                if apq == 0.0:
                    continue
                theta = (a[q, q] - a[p, p]) / (2.0 * apq)
                sign = 1.0 if theta >= 0 else -1.0
                t = sign / (abs(theta) + np.sqrt(theta * theta + 1.0))
                c = 1.0 / np.sqrt(t * t + 1.0)
                s = t * c

                col_p, col_q = a[:, p].copy(), a[:, q].copy()
                a[:, p] = c * col_p - s * col_q
                a[:, q] = s * col_p + c * col_q
                row_p, row_q = a[p, :].copy(), a[q, :].copy()
                a[p, :] = c * row_p - s * row_q
                a[q, :] = s * row_p + c * row_q
                a[p, q] = a[q, p] = 0.0

                vec_p, vec_q = v[:, p].copy(), v[:, q].copy()
                v[:, p] = c * vec_p - s * vec_q
                v[:, q] = s * vec_p + c * vec_q

    if _off_diagonal_norm(a) <= threshold:
        return np.diag(a).copy(), v
    raise NumericalInstability(
        f"Метод Якобі не зійшовся за {max_sweeps} проходів "
        f"(позадіагональна норма {_off_diagonal_norm(a):.3e}, поріг {threshold:.3e})"
    )


def select_rank(singular_values, rank: Optional[int] = None,
                energy_threshold: float = 0.98, max_rank: Optional[int] = None) -> int:
    """
    Детерміноване правило вибору рангу r.

    Фіксований rank має пріоритет. Інакше береться найменше r, для якого
    накопичена енергія sum(σ_i^2) / sum(σ^2) досягає energy_threshold.
    Якщо ж траєкторна матриця має точний низький ранг (ненульових
    компонент не більше max_rank), r дорівнює цьому рангу; для лінійного
    ряду це 2 незалежно від частки енергії другої компоненти.
    Результат обмежено max_rank, L - 1 та кількістю ненульових компонент
    і не менше 1.
    """
    s = np.asarray(singular_values, dtype=float)
    energy = s ** 2
    total = float(np.sum(energy))
    upper = len(s) - 1 if len(s) > 1 else 1
    nonzero = int(np.sum(energy > NEGLIGIBLE_ENERGY * total)) if total > 0 else 0
    if total > 0:
        upper = min(upper, nonzero)

    if rank is not None:
        r = rank
    elif total == 0:
        r = 1
    else:
        cap = upper if max_rank is None else min(max_rank, upper)
        if nonzero <= cap:
            r = nonzero
        else:
            cumulative = np.cumsum(energy) / total
            r = int(np.searchsorted(cumulative, energy_threshold - 1e-15)) + 1
        r = min(r, cap)
    return max(1, min(r, upper))


@dataclass
class SpectralBasis:
    """
    Набір сингулярних трійок (σ_i, u_i, v_i).

    left_vectors містить усі L власних векторів (стовпцями) у порядку
    спадання σ; right_vectors – лише для перших rank компонент.
    """
    singular_values: np.ndarray
    left_vectors: np.ndarray
    right_vectors: np.ndarray
    rank: int

    @property
    def window_size(self) -> int:
        return self.left_vectors.shape[0]

    @property
    def selected(self) -> np.ndarray:
        """Базис, з якого будується рекурентне співвідношення (L x r)."""
        return self.left_vectors[:, :self.rank]

    @property
    def explained_energy(self) -> float:
        total = float(np.sum(self.singular_values ** 2))
        if total == 0:
            return 1.0
        return float(np.sum(self.singular_values[:self.rank] ** 2) / total)

    def contributions(self, n_components=10) -> np.ndarray:
        """Внесок (енергія) перших n сингулярних компонент у %."""
        total = float(np.sum(self.singular_values ** 2))
        if total == 0:
            return np.zeros(min(n_components, len(self.singular_values)))
        return (self.singular_values ** 2 / total * 100)[:n_components]

    def reconstruct(self) -> np.ndarray:
        """Апроксимація траєкторної матриці рангу r: sum σ_i u_i v_i^T."""
        u = self.selected
        return (u * self.singular_values[:self.rank]) @ self.right_vectors.T


def _normalize_signs(vectors):
    # Найбільша за модулем координата кожного вектора – додатна.
    for j in range(vectors.shape[1]):
        k = int(np.argmax(np.abs(vectors[:, j])))
        if vectors[k, j] < 0:
            vectors[:, j] = -vectors[:, j]
    return vectors


def decompose(trajectory, rank: Optional[int] = None, energy_threshold: float = 0.98,
              max_rank: Optional[int] = None, tol: float = 1e-12,
              max_sweeps: int = 50) -> SpectralBasis:
    """
    Розкладання траєкторної матриці X (L x K) через власні числа X · X^T.

    :return: SpectralBasis з вибраним рангом
    """
    x = np.asarray(trajectory, dtype=float)
    L, K = x.shape
    eigenvalues, eigenvectors = jacobi_eigh(x @ x.T, tol=tol, max_sweeps=max_sweeps)

    eigenvalues = np.clip(eigenvalues, 0.0, None)
    order = np.argsort(-eigenvalues, kind="stable")
    singular_values = np.sqrt(eigenvalues[order])
    left = _normalize_signs(eigenvectors[:, order])

    r = select_rank(singular_values, rank=rank, energy_threshold=energy_threshold,
                    max_rank=max_rank)
    r = min(r, K)

    right = np.zeros((K, r))
    for i in range(r):
        if singular_values[i] > 0:
            right[:, i] = x.T @ left[:, i] / singular_values[i]

    basis = SpectralBasis(singular_values=singular_values, left_vectors=left,
                          right_vectors=right, rank=r)
    logger.debug("Розкладання %dx%d: ранг %d, енергія %.4f", L, K, r, basis.explained_energy)
    return basis


__all__ = ["jacobi_eigh", "select_rank", "decompose", "SpectralBasis"]
