"""
Ієрархія помилок прогнозного рушія SSA.

Кожна помилка виникає синхронно в тому виклику, який порушив
передумову, і не залишає частково змінений стан.
"""


class SSAError(Exception):
    """Базовий клас для всіх помилок пакета."""


class InvalidConfiguration(SSAError, ValueError):
    """Некоректні розміри вікна, ряду, горизонту або рівень довіри."""


class InsufficientData(SSAError, ValueError):
    """Історія коротша, ніж потрібно для навчання."""


class InvalidObservation(SSAError, ValueError):
    """Нескінченне значення або NaN серед спостережень."""


class NumericalInstability(SSAError, ArithmeticError):
    """Власні числа не зійшлися за відведену кількість проходів."""


class DegenerateSubspace(SSAError, ArithmeticError):
    """Підпростір майже «вертикальний» (ν² ≈ 1), рекурентне співвідношення не визначене."""


class NotTrained(SSAError, RuntimeError):
    """Операцію викликано до навчання рушія."""


class CheckpointError(SSAError, ValueError):
    """Контрольну точку неможливо прочитати або вона суперечить власній конфігурації."""


__all__ = [
    "SSAError",
    "InvalidConfiguration",
    "InsufficientData",
    "InvalidObservation",
    "NumericalInstability",
    "DegenerateSubspace",
    "NotTrained",
    "CheckpointError",
]
