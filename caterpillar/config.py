"""
Конфігурація прогнозного рушія SSA.

Значення за замовчуванням розраховані на щоденний ряд попиту:
вікно 7 днів, буфер 30 днів, горизонт 7 днів, рівень довіри 0.95.
"""
import json
from dataclasses import asdict, dataclass
from typing import Optional

from caterpillar.exceptions import InvalidConfiguration


@dataclass(frozen=True)
class SSAConfig:
    window_size: int = 7              # L – довжина вікна вкладення
    series_length: int = 30           # N – місткість буфера
    train_size: Optional[int] = None  # скільки останніх точок іде в розкладання
    horizon: int = 7
    confidence_level: float = 0.95
    rank: Optional[int] = None        # фіксований ранг; None – правило енергії
    energy_threshold: float = 0.98
    max_rank: Optional[int] = None    # None – L - 1
    degeneracy_tolerance: float = 1e-6
    eigen_tolerance: float = 1e-12
    max_sweeps: int = 50

    def __post_init__(self):
        L, N = self.window_size, self.series_length
        if L <= 1:
            raise InvalidConfiguration(f"window_size має бути > 1, отримано {L}")
        if N < L + 1:
            raise InvalidConfiguration(
                f"series_length ({N}) має бути щонайменше window_size + 1 ({L + 1})"
            )
        if self.train_size is not None and self.train_size < N:
            raise InvalidConfiguration(
                f"train_size ({self.train_size}) не може бути меншим за series_length ({N})"
            )
        if self.horizon < 1:
            raise InvalidConfiguration(f"horizon має бути >= 1, отримано {self.horizon}")
        if not 0.0 < self.confidence_level < 1.0:
            raise InvalidConfiguration(
                f"confidence_level має лежати в (0, 1), отримано {self.confidence_level}"
            )
        for name in ("rank", "max_rank"):
            value = getattr(self, name)
            if value is not None and not 1 <= value <= L - 1:
                raise InvalidConfiguration(f"{name} має лежати в [1, {L - 1}], отримано {value}")
        if not 0.0 < self.energy_threshold <= 1.0:
            raise InvalidConfiguration(
                f"energy_threshold має лежати в (0, 1], отримано {self.energy_threshold}"
            )
        if not 0.0 < self.degeneracy_tolerance < 1.0:
            raise InvalidConfiguration("degeneracy_tolerance має лежати в (0, 1)")
        if self.eigen_tolerance <= 0:
            raise InvalidConfiguration("eigen_tolerance має бути додатним")
        if self.max_sweeps < 1:
            raise InvalidConfiguration("max_sweeps має бути >= 1")

    @property
    def training_length(self) -> int:
        """Кількість останніх точок, на яких будується траєкторна матриця."""
        return self.train_size if self.train_size is not None else self.series_length

    @property
    def effective_max_rank(self) -> int:
        if self.max_rank is not None:
            return self.max_rank
        return self.window_size - 1

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> "SSAConfig":
        try:
            fields = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidConfiguration(f"Не вдалося розібрати конфігурацію: {exc}") from exc
        if not isinstance(fields, dict):
            raise InvalidConfiguration("Конфігурація має бути JSON-об'єктом")
        try:
            return cls(**fields)
        except TypeError as exc:
            raise InvalidConfiguration(f"Невідомі поля конфігурації: {exc}") from exc


__all__ = ["SSAConfig"]
