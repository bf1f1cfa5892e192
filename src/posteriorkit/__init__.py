# pylint: disable=wildcard-import
"""Labelled containers for Bayesian inference data with PSIS, LOO and WAIC."""

__version__ = "0.1.0"

from posteriorkit.errors import (
    DimensionMismatchError,
    GroupNotFoundError,
    InferenceDataSchemaError,
    VariableNotFoundError,
)
from posteriorkit.data import (
    Dataset,
    InferenceData,
    SampleSource,
    convert_to_dataset,
    convert_to_inference_data,
    dict_of_arrays,
    dict_to_dataset,
    from_dict,
    ndarray_to_dataarray,
)
from posteriorkit.psis import PSISResult, pareto_shape_category, psis
from posteriorkit.utils import (
    ELPDResult,
    PSISLOOResult,
    WAICResult,
    get_log_likelihood,
    information_criterion,
)
from posteriorkit.accessors import *
from posteriorkit.loo import (
    BootstrappedPseudoBMA,
    ModelComparisonResult,
    PseudoBMA,
    Stacking,
    compare,
    loo,
    loo_pit,
    loo_pit_from_data,
    model_weights,
    waic,
)
