"""
Довірчі межі прогнозу.

Дисперсія помилки на кроці k наближається як σ²_res · k (накопичення
однокрокових помилок). Це свідомо просте наближення, а не точна
теоретична межа. Напівширина інтервалу: z(c) · sqrt(σ²_res · k),
де z(c) – квантиль стандартного нормального розподілу для двобічного
рівня c (c = 0.95 → z ≈ 1.96).
"""
import math

from scipy.stats import norm

from caterpillar.exceptions import InvalidConfiguration


def z_score(confidence_level: float) -> float:
    if not 0.0 < confidence_level < 1.0:
        raise InvalidConfiguration(
            f"confidence_level має лежати в (0, 1), отримано {confidence_level}"
        )
    return float(norm.ppf((1.0 + confidence_level) / 2.0))


def half_width(residual_variance: float, step: int, confidence_level: float) -> float:
    if step < 1:
        raise InvalidConfiguration(f"Номер кроку має бути >= 1, отримано {step}")
    if residual_variance < 0:
        raise InvalidConfiguration(f"Дисперсія не може бути від'ємною: {residual_variance}")
    return z_score(confidence_level) * math.sqrt(residual_variance * step)


def interval(point: float, residual_variance: float, step: int, confidence_level: float):
    """Симетричний інтервал (lower, upper) без жодного обрізання знизу."""
    width = half_width(residual_variance, step, confidence_level)
    return point - width, point + width


__all__ = ["z_score", "half_width", "interval"]
