"""Helper functions for PSIS-LOO-CV and WAIC."""

import logging
import warnings
from collections import namedtuple

import numpy as np
import xarray as xr

from posteriorkit.base import dataarray_stats
from posteriorkit.data import (
    Dataset,
    InferenceData,
    convert_to_inference_data,
    ndarray_to_dataarray,
)
from posteriorkit.psis import describe_observations
from posteriorkit.utils import get_log_likelihood
from posteriorkit.validate import validate_sample_dims

__all__ = [
    "MIN_DRAWS",
    "LooInputs",
    "_check_log_likelihood",
    "_get_r_eff",
    "_prepare_loo_inputs",
]

_log = logging.getLogger(__name__)

MIN_DRAWS = 100

LooInputs = namedtuple(
    "LooInputs",
    ["log_likelihood", "var_name", "sample_dims", "obs_dims", "n_samples", "n_data_points"],
)


def _array_to_log_likelihood(ary):
    """Label a raw log likelihood array shaped ``(draw, [chain,] *obs)``."""
    ary = np.asarray(ary, dtype=float)
    if ary.ndim == 0:
        raise ValueError("log likelihood must have at least one dimension with the draws")
    default_dims = ["draw"] if ary.ndim == 1 else ["draw", "chain"]
    return ndarray_to_dataarray(ary, "log_likelihood", default_dims=default_dims), default_dims


def _prepare_loo_inputs(data, var_name=None, sample_dims=None):
    """Get the log likelihood and its dimensions from any supported input."""
    if isinstance(data, list | tuple | np.ndarray):
        if sample_dims is not None:
            raise ValueError(
                "sample_dims can not be used with unlabelled arrays, their draws are "
                "always the leading (draw, chain) axes"
            )
        log_likelihood, sample_dims = _array_to_log_likelihood(data)
    elif isinstance(data, xr.DataArray):
        log_likelihood = data
    elif isinstance(data, Dataset | xr.Dataset):
        log_likelihood = get_log_likelihood(InferenceData(log_likelihood=data), var_name=var_name)
    else:
        log_likelihood = get_log_likelihood(convert_to_inference_data(data), var_name=var_name)
    if var_name is None and log_likelihood.name is not None:
        var_name = log_likelihood.name

    sample_dims = validate_sample_dims(log_likelihood, sample_dims)
    obs_dims = [dim for dim in log_likelihood.dims if dim not in sample_dims]
    n_samples = int(np.prod([log_likelihood.sizes[dim] for dim in sample_dims]))
    n_data_points = int(np.prod([log_likelihood.sizes[dim] for dim in obs_dims]))
    return LooInputs(log_likelihood, var_name, sample_dims, obs_dims, n_samples, n_data_points)


def _check_log_likelihood(loo_inputs):
    """Warn about non finite log likelihood values and too few draws.

    Returns
    -------
    bool
        True if a warning was issued.
    """
    warn_mg = False
    log_likelihood = loo_inputs.log_likelihood
    non_finite = (~np.isfinite(log_likelihood)).any(dim=loo_inputs.sample_dims)
    if non_finite.any():
        warnings.warn(
            f"The log likelihood has non finite values for {describe_observations(non_finite)}",
            UserWarning,
            stacklevel=3,
        )
        warn_mg = True
    if loo_inputs.n_samples < MIN_DRAWS:
        warnings.warn(
            f"Only {loo_inputs.n_samples} posterior draws are available, estimates are "
            f"unreliable with fewer than {MIN_DRAWS}",
            UserWarning,
            stacklevel=3,
        )
        warn_mg = True
    return warn_mg


def _get_r_eff(log_likelihood, sample_dims):
    """Relative efficiency of the likelihood draws of every observation.

    Uses the effective sample size of ``exp(log_likelihood)`` without splitting chains.
    """
    likelihood = np.exp(log_likelihood - log_likelihood.max(dim=sample_dims))
    chain_dims = [dim for dim in sample_dims if dim == "chain"]
    draw_dims = [dim for dim in sample_dims if dim != "chain"]
    if len(draw_dims) > 1:
        likelihood = likelihood.stack(__draws__=draw_dims)
        draw_dims = ["__draws__"]
    reff = dataarray_stats.ess(likelihood, sample_dims=chain_dims + draw_dims, relative=True)
    _log.debug("Estimated relative efficiency between %s and %s", reff.min(), reff.max())
    return reff

