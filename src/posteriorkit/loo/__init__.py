"""Pareto-smoothed importance sampling LOO (PSIS-LOO-CV), WAIC and model comparison."""

from posteriorkit.loo.loo import loo
from posteriorkit.loo.loo_pit import loo_pit, loo_pit_from_data
from posteriorkit.loo.waic import waic
from posteriorkit.loo.model_weights import (
    BootstrappedPseudoBMA,
    ModelWeightsMethod,
    PseudoBMA,
    Stacking,
    get_weights_method,
    model_weights,
)
from posteriorkit.loo.compare import ModelComparisonResult, compare

__all__ = [
    "loo",
    "loo_pit",
    "loo_pit_from_data",
    "waic",
    "BootstrappedPseudoBMA",
    "ModelWeightsMethod",
    "PseudoBMA",
    "Stacking",
    "get_weights_method",
    "model_weights",
    "ModelComparisonResult",
    "compare",
]
