import numpy as np

from caterpillar.exceptions import InvalidConfiguration


def embed(series, window_size: int) -> np.ndarray:
    """
    Етап 1. Вкладення (Embedding).

    Побудова траєкторної матриці розміру L x K, де K = N - L + 1.
    Стовпець j – це відрізок ряду series[j .. j+L-1].

    :param series: одномірна послідовність довжини N >= L + 1
    :param window_size: довжина вікна L, 1 < L < N
    """
    values = np.asarray(series, dtype=float)
    if values.ndim != 1:
        raise InvalidConfiguration(f"Очікувався одномірний ряд, отримано форму {values.shape}")
    n, L = len(values), window_size
    if L <= 1:
        raise InvalidConfiguration(f"Довжина вікна має бути > 1, отримано {L}")
    if L >= n or n < L + 1:
        raise InvalidConfiguration(
            f"Ряд довжини {n} закороткий для вікна {L} (потрібно щонайменше {L + 1})"
        )
    K = n - L + 1
    trajectory = np.empty((L, K))
    for i in range(K):
        trajectory[:, i] = values[i:i + L]
    return trajectory


def diagonal_averaging(matrix) -> np.ndarray:
    """
    Діагональне усереднення (ганкелізація).

    Перетворює матрицю L x K назад у ряд довжини L + K - 1,
    усереднюючи елементи вздовж побічних діагоналей.
    """
    matrix = np.asarray(matrix, dtype=float)
    L, K = matrix.shape
    result = np.zeros(L + K - 1)
    counts = np.zeros(L + K - 1)
    for i in range(L):
        result[i:i + K] += matrix[i, :]
        counts[i:i + K] += 1
    return result / counts


__all__ = ["embed", "diagonal_averaging"]
