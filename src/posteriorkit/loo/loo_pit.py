"""Compute leave one out (PSIS-LOO) probability integral transform (PIT) values."""

import warnings

import numpy as np
import xarray as xr

from posteriorkit.base import dataarray_stats
from posteriorkit.base.stats_utils import smooth_data
from posteriorkit.data import convert_to_inference_data, ndarray_to_dataarray
from posteriorkit.errors import DimensionMismatchError
from posteriorkit.loo.loo import loo
from posteriorkit.validate import validate_sample_dims

__all__ = ["loo_pit", "loo_pit_from_data"]


def _label_draws(ary, name):
    """Label a raw array shaped ``(draw, [chain,] *obs)``."""
    ary = np.asarray(ary)
    if ary.ndim == 0:
        raise ValueError(f"{name} must have at least one dimension with the draws")
    default_dims = ["draw"] if ary.ndim == 1 else ["draw", "chain"]
    # every raw input shares the generated observation dimension names
    return ndarray_to_dataarray(ary, "y", default_dims=default_dims).rename(name)


def _is_integer_valued(da):
    values = np.asarray(da)
    if values.dtype.kind in "iub":
        return True
    return bool(np.all(np.mod(values, 1) == 0))


def _prepare_loo_pit_inputs(y, y_pred, log_weights, sample_dims):
    if not isinstance(y, xr.DataArray):
        y = ndarray_to_dataarray(np.asarray(y), "y")
    if not isinstance(y_pred, xr.DataArray):
        if sample_dims is not None:
            raise ValueError("sample_dims can not be used with an unlabelled y_pred array")
        y_pred = _label_draws(y_pred, "y_pred")
        sample_dims = [dim for dim in ("draw", "chain") if dim in y_pred.dims]
    if not isinstance(log_weights, xr.DataArray):
        log_weights = _label_draws(log_weights, "log_weights")
    sample_dims = validate_sample_dims(y_pred, sample_dims)
    obs_dims = [dim for dim in y_pred.dims if dim not in sample_dims]
    if dict(log_weights.sizes) != dict(y_pred.sizes):
        raise DimensionMismatchError(
            f"log_weights and y_pred must have the same dimensions, got "
            f"{dict(log_weights.sizes)} and {dict(y_pred.sizes)}"
        )
    if set(y.dims) != set(obs_dims) or any(y.sizes[dim] != y_pred.sizes[dim] for dim in y.dims):
        raise DimensionMismatchError(
            f"y must have the non sample dimensions of y_pred {obs_dims}, got {dict(y.sizes)}"
        )
    return y, y_pred, log_weights, sample_dims, obs_dims


def _smooth_discrete(y, y_pred, sample_dims, obs_dims):
    y = y.transpose(*obs_dims)
    y_pred = y_pred.transpose(*sample_dims, *obs_dims)
    y_vals, pred_vals = smooth_data(y.values.ravel(), y_pred.values.reshape(-1, y.size))
    return (
        y.copy(data=y_vals.reshape(y.shape)),
        y_pred.copy(data=pred_vals.reshape(y_pred.shape)),
    )


def loo_pit(y, y_pred, log_weights, *, is_discrete=None, sample_dims=None):
    r"""Compute leave one out (PSIS-LOO) probability integral transform (PIT) values.

    The LOO-PIT values are :math:`p(\tilde{y}_i \le y_i \mid y_{-i})`, where :math:`y_i`
    represents the observed data for index :math:`i` and :math:`\tilde y_i` represents the
    posterior predictive sample at index :math:`i`. Note that :math:`y_{-i}` indicates we have
    left out the :math:`i`-th observation. For well calibrated predictions the values are
    approximately uniform on ``[0, 1]``, see [1]_.

    Parameters
    ----------
    y : scalar, array-like or DataArray
        Observations.
    y_pred : array-like or DataArray
        Posterior predictive draws. Arrays are shaped ``(draw, [chain,] *y.shape)``.
    log_weights : array-like or DataArray
        Normalized smoothed log weights with the shape of `y_pred`, e.g. the
        ``psis_result.log_weights`` of :func:`~posteriorkit.loo`.
    is_discrete : bool, optional
        Smooth the data with cubic splines before computing the PIT values. If not
        given, it is True when `y` and `y_pred` are all integer valued, and a warning
        is emitted before smoothing.
    sample_dims : str or sequence of hashable, optional
        Draw dimensions of labelled `y_pred` and `log_weights`.

    Returns
    -------
    DataArray
        LOO-PIT value of every observation, with the dimensions of `y`.

    Raises
    ------
    DimensionMismatchError
        If the shapes of `y`, `y_pred` and `log_weights` are not compatible.

    References
    ----------
    .. [1] Gabry et al. *Visualization in Bayesian workflow*.
        J. R. Stat. Soc. Ser. A Stat. Soc. 182 (2019) https://doi.org/10.1111/rssa.12378
        arXiv preprint https://arxiv.org/abs/1709.01449
    """
    y, y_pred, log_weights, sample_dims, obs_dims = _prepare_loo_pit_inputs(
        y, y_pred, log_weights, sample_dims
    )
    if is_discrete is None:
        is_discrete = _is_integer_valued(y) and _is_integer_valued(y_pred)
        if is_discrete:
            warnings.warn(
                "All data and predictions are integer valued. "
                "Smoothing data before computing LOO-PIT values.",
                UserWarning,
                stacklevel=2,
            )
    if is_discrete:
        y, y_pred = _smooth_discrete(y, y_pred, sample_dims, obs_dims)
    return dataarray_stats.loo_pit(y, y_pred, log_weights, dim=sample_dims).rename("loo_pit")


def loo_pit_from_data(
    data,
    var_name=None,
    *,
    y_pred_name=None,
    log_likelihood_name=None,
    log_weights=None,
    reff=None,
    is_discrete=None,
):
    """Compute LOO-PIT values from the groups of an inference data object.

    Parameters
    ----------
    data : InferenceData, DataTree or mapping of groups
        It must have ``observed_data`` and ``posterior_predictive`` groups, plus a
        ``log_likelihood`` group unless `log_weights` is given.
    var_name : hashable, optional
        Observed variable. Required if ``observed_data`` has several variables.
    y_pred_name : hashable, optional
        Posterior predictive variable, defaults to `var_name`.
    log_likelihood_name : hashable, optional
        Log likelihood variable, defaults to `var_name`.
    log_weights : DataArray, optional
        Precomputed normalized smoothed log weights. Computed with :func:`~posteriorkit.loo`
        otherwise.
    reff : float, array-like or DataArray, optional
        Relative efficiency passed to :func:`~posteriorkit.loo`.
    is_discrete : bool, optional
        See :func:`loo_pit`.

    Returns
    -------
    DataArray
        LOO-PIT values named ``"loo_pit_{var_name}"``.

    Examples
    --------
    .. code-block:: python

        from posteriorkit import loo, loo_pit_from_data

        loo_pit_from_data(idata, "y")
        # reusing the weights of a previous loo call
        loo_pit_from_data(idata, "y", log_weights=loo(idata, "y").psis_result.log_weights)
    """
    idata = convert_to_inference_data(data)
    observed_data = idata["observed_data"]
    if var_name is None:
        var_names = list(observed_data)
        if len(var_names) != 1:
            raise TypeError(
                f"Found observed data arrays {var_names}, var_name must select exactly one"
            )
        var_name = var_names[0]
    y = observed_data[var_name]
    y_pred = idata["posterior_predictive"][var_name if y_pred_name is None else y_pred_name]
    if log_weights is None:
        log_likelihood_name = var_name if log_likelihood_name is None else log_likelihood_name
        log_weights = loo(idata, var_name=log_likelihood_name, reff=reff).psis_result.log_weights
    pit = loo_pit(y, y_pred, log_weights, is_discrete=is_discrete)
    return pit.rename(f"loo_pit_{var_name}")
