from caterpillar.config import SSAConfig
from caterpillar.exceptions import (
    CheckpointError,
    DegenerateSubspace,
    InsufficientData,
    InvalidConfiguration,
    InvalidObservation,
    NotTrained,
    NumericalInstability,
    SSAError,
)
from caterpillar.ssa import ForecastEngine, ForecastPoint

__version__ = "0.2.0"

__all__ = [
    "SSAConfig",
    "ForecastEngine",
    "ForecastPoint",
    "SSAError",
    "InvalidConfiguration",
    "InsufficientData",
    "InvalidObservation",
    "NumericalInstability",
    "DegenerateSubspace",
    "NotTrained",
    "CheckpointError",
]
