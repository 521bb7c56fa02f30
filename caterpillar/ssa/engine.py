"""
Прогнозний рушій SSA.

Рушій має два стани: UNTRAINED і TRAINED. train() переводить його в
TRAINED (або будує нові коефіцієнти при повторному виклику), observe()
лише дописує значення в буфер без перенавчання, forecast() ітерує
рекурентне співвідношення.

Рушій не є потокобезпечним: виклики observe/forecast/checkpoint для
одного екземпляра має серіалізувати той, хто його використовує.
"""
import io
import logging
import math
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

import numpy as np

from caterpillar.config import SSAConfig
from caterpillar.exceptions import (
    CheckpointError,
    InsufficientData,
    InvalidConfiguration,
    InvalidObservation,
    NotTrained,
)
from caterpillar.ssa import confidence
from caterpillar.ssa.buffer import SequenceBuffer
from caterpillar.ssa.recurrence import Recurrence, derive

logger = logging.getLogger(__name__)

CHECKPOINT_FORMAT_VERSION = 1


class EngineState(str, Enum):
    UNTRAINED = "untrained"
    TRAINED = "trained"


@dataclass(frozen=True)
class ForecastPoint:
    """Один крок прогнозу з довірчим інтервалом."""
    step: int
    value: float
    lower_bound: float
    upper_bound: float

    def as_tuple(self):
        return self.value, self.lower_bound, self.upper_bound


def _as_finite_array(values, what) -> np.ndarray:
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidObservation(f"{what}: значення мають бути числовими ({exc})") from exc
    if arr.ndim != 1:
        raise InvalidObservation(f"{what}: очікувався одномірний ряд, отримано {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidObservation(f"{what}: ряд містить NaN або нескінченні значення")
    return arr


class ForecastEngine:
    """
    Власник буфера, коефіцієнтів ЛРС та оцінки залишкової дисперсії.

    Кілька незалежних рушіїв можуть існувати в одному процесі: жодного
    глобального стану немає.
    """

    def __init__(self, config: Optional[SSAConfig] = None):
        self.config = config if config is not None else SSAConfig()
        self._buffer: Optional[SequenceBuffer] = None
        self._coefficients: Optional[np.ndarray] = None
        self._residual_variance: Optional[float] = None
        self.recurrence: Optional[Recurrence] = None

    # ------------------------------------------------------------------
    # Стан
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        if self._coefficients is None:
            return EngineState.UNTRAINED
        return EngineState.TRAINED

    @property
    def is_trained(self) -> bool:
        return self.state is EngineState.TRAINED

    def _require_trained(self, operation):
        if not self.is_trained:
            raise NotTrained(f"{operation}() викликано до train()")

    @property
    def coefficients(self) -> np.ndarray:
        self._require_trained("coefficients")
        return self._coefficients.copy()

    @property
    def residual_variance(self) -> float:
        self._require_trained("residual_variance")
        return self._residual_variance

    def window(self) -> np.ndarray:
        self._require_trained("window")
        return self._buffer.window()

    # ------------------------------------------------------------------
    # Навчання та спостереження
    # ------------------------------------------------------------------
    def train(self, initial_series) -> Recurrence:
        """
        Навчання на останніх значеннях історії.

        Розкладання використовує останні config.training_length точок,
        буфер отримує останні config.series_length точок. Попередній
        стан замінюється лише після успішного завершення всіх кроків.
        """
        values = _as_finite_array(initial_series, "train")
        required = self.config.training_length
        if len(values) < required:
            raise InsufficientData(
                f"Для навчання потрібно щонайменше {required} значень, отримано {len(values)}"
            )

        recurrence = derive(values[-required:], self.config)
        buffer = SequenceBuffer(self.config.series_length, values[-self.config.series_length:])

        self._buffer = buffer
        self._coefficients = recurrence.coefficients
        self._residual_variance = recurrence.residual_variance
        self.recurrence = recurrence
        logger.info(
            "Рушій навчено на %d точках (L=%d, N=%d)",
            required, self.config.window_size, self.config.series_length,
        )
        return recurrence

    def observe(self, value):
        """Додає нове спостереження; найстаріше витісняється, ЛРС не перераховується."""
        self._require_trained("observe")
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise InvalidObservation(f"observe: очікувалось число, отримано {value!r}")
        if not math.isfinite(value):
            raise InvalidObservation(f"observe: значення {value!r} не є скінченним")
        self._buffer.append(value)

    # ------------------------------------------------------------------
    # Прогноз
    # ------------------------------------------------------------------
    def forecast(self, horizon: Optional[int] = None) -> List[ForecastPoint]:
        """
        Прогноз на horizon кроків (за замовчуванням config.horizon).

        Кожне спрогнозоване значення дописується в історію і бере участь
        у наступному кроці.
        """
        self._require_trained("forecast")
        if horizon is None:
            horizon = self.config.horizon
        if horizon < 1:
            raise InvalidConfiguration(f"horizon має бути >= 1, отримано {horizon}")

        a = self._coefficients
        lag = len(a)
        history = list(self._buffer.window()[-lag:])
        level = self.config.confidence_level
        points = []
        for step in range(1, horizon + 1):
            value = float(np.dot(a, history[-lag:]))
            history.append(value)
            lower, upper = confidence.interval(value, self._residual_variance, step, level)
            points.append(ForecastPoint(step=step, value=value,
                                        lower_bound=lower, upper_bound=upper))
        return points

    # ------------------------------------------------------------------
    # Контрольні точки
    # ------------------------------------------------------------------
    def checkpoint(self) -> bytes:
        """Серіалізує повний стан рушія в архів .npz (без pickle)."""
        self._require_trained("checkpoint")
        stream = io.BytesIO()
        np.savez(
            stream,
            format_version=np.array(CHECKPOINT_FORMAT_VERSION),
            config=np.array(self.config.to_json()),
            buffer=self._buffer.window(),
            coefficients=np.asarray(self._coefficients, dtype=float),
            residual_variance=np.array(self._residual_variance, dtype=float),
        )
        return stream.getvalue()

    def restore(self, blob: bytes):
        """
        Відновлює стан з контрольної точки.

        Якщо архів пошкоджений або суперечливий, виникає CheckpointError,
        а поточний стан рушія не змінюється.
        """
        try:
            with np.load(io.BytesIO(blob), allow_pickle=False) as archive:
                version = int(archive["format_version"])
                config_text = str(archive["config"])
                buffer_values = np.array(archive["buffer"], dtype=float)
                coefficients = np.array(archive["coefficients"], dtype=float)
                variance = float(archive["residual_variance"])
        except (OSError, EOFError, ValueError, KeyError, TypeError, AttributeError,
                zipfile.BadZipFile) as exc:
            raise CheckpointError(f"Не вдалося прочитати контрольну точку: {exc}") from exc

        if version != CHECKPOINT_FORMAT_VERSION:
            raise CheckpointError(
                f"Непідтримувана версія контрольної точки {version} "
                f"(очікувалась {CHECKPOINT_FORMAT_VERSION})"
            )
        try:
            config = SSAConfig.from_json(config_text)
        except InvalidConfiguration as exc:
            raise CheckpointError(f"Некоректна конфігурація в контрольній точці: {exc}") from exc
        if len(coefficients) != config.window_size - 1:
            raise CheckpointError(
                f"Очікувалось {config.window_size - 1} коефіцієнтів, отримано {len(coefficients)}"
            )
        if len(buffer_values) != config.series_length:
            raise CheckpointError(
                f"Буфер має містити {config.series_length} значень, отримано {len(buffer_values)}"
            )
        if not (np.all(np.isfinite(buffer_values)) and np.all(np.isfinite(coefficients))
                and math.isfinite(variance) and variance >= 0):
            raise CheckpointError("Контрольна точка містить некоректні числові значення")

        self.config = config
        self._buffer = SequenceBuffer(config.series_length, buffer_values)
        self._coefficients = coefficients
        self._residual_variance = variance
        self.recurrence = None
        return self

    @classmethod
    def from_checkpoint(cls, blob: bytes) -> "ForecastEngine":
        return cls().restore(blob)

    def save(self, path) -> Path:
        """Записує контрольну точку у файл, шлях до якого задає викликач."""
        path = Path(path)
        path.write_bytes(self.checkpoint())
        logger.info("Контрольну точку збережено: %s", path)
        return path

    @classmethod
    def load(cls, path) -> "ForecastEngine":
        path = Path(path)
        try:
            blob = path.read_bytes()
        except OSError as exc:
            raise CheckpointError(f"Не вдалося прочитати файл {path}: {exc}") from exc
        return cls.from_checkpoint(blob)

    def __repr__(self):
        return (f"ForecastEngine(state={self.state.value}, L={self.config.window_size}, "
                f"N={self.config.series_length}, horizon={self.config.horizon})")


__all__ = ["ForecastEngine", "ForecastPoint", "EngineState", "CHECKPOINT_FORMAT_VERSION"]
