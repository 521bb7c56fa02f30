"""
Сингулярний спектральний аналіз (SSA), метод «Гусениця»:
вкладення, розкладання, рекурентне прогнозування.
"""
from caterpillar.ssa.buffer import SequenceBuffer
from caterpillar.ssa.confidence import half_width, interval, z_score
from caterpillar.ssa.decomposition import SpectralBasis, decompose, jacobi_eigh, select_rank
from caterpillar.ssa.embedding import diagonal_averaging, embed
from caterpillar.ssa.engine import EngineState, ForecastEngine, ForecastPoint
from caterpillar.ssa.recurrence import (
    Recurrence,
    build_recurrence,
    derive,
    one_step_variance,
    residual_variance,
)

__all__ = [
    "SequenceBuffer",
    "embed",
    "diagonal_averaging",
    "jacobi_eigh",
    "select_rank",
    "decompose",
    "SpectralBasis",
    "build_recurrence",
    "residual_variance",
    "one_step_variance",
    "derive",
    "Recurrence",
    "z_score",
    "half_width",
    "interval",
    "ForecastEngine",
    "ForecastPoint",
    "EngineState",
]
