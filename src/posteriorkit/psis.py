"""Pareto smoothed importance sampling (PSIS)."""

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import xarray as xr
from xarray_einstats.stats import logsumexp

from posteriorkit.base import dataarray_stats
from posteriorkit.data.dimensions import ndarray_to_dataarray
from posteriorkit.validate import validate_sample_dims

__all__ = ["GOOD_K", "OK_K", "PSISResult", "pareto_shape_category", "psis"]

_log = logging.getLogger(__name__)

GOOD_K = 0.5
OK_K = 0.7

PARETO_FMT = """Pareto shape diagnostic values:
                        {{0:>{0}}} {{1:>6}}
 (-Inf, {{8:.1f}}]  (good)     {{2:{0}d}} {{5:6.1f}}%
  ({{8:.1f}}, {{9:.1f}}]  (okay)     {{3:{0}d}} {{6:6.1f}}%
   ({{9:.1f}}, Inf)  (bad)      {{4:{0}d}} {{7:6.1f}}%"""


def pareto_shape_category(pareto_shape):
    """Classify Pareto shape estimates by the reliability of importance sampling.

    Parameters
    ----------
    pareto_shape : float, array-like or DataArray

    Returns
    -------
    str, ndarray of str or DataArray
        ``"good"`` for ``k <= 0.5``, ``"okay"`` for ``0.5 < k <= 0.7`` and ``"bad"``
        for ``k > 0.7`` or non finite values.
    """
    if isinstance(pareto_shape, xr.DataArray):
        return pareto_shape.copy(data=np.asarray(pareto_shape_category(pareto_shape.values)))
    k = np.asarray(pareto_shape, dtype=float)
    categories = np.where(k <= GOOD_K, "good", np.where(k <= OK_K, "okay", "bad"))
    categories[np.isinf(k)] = "bad"
    return categories.item() if categories.ndim == 0 else categories


def format_pareto_counts(pareto_shape):
    """Format the table with the number of observations in each Pareto shape category."""
    categories = np.ravel(pareto_shape_category(np.asarray(pareto_shape)))
    counts = np.array([np.sum(categories == name) for name in ("good", "okay", "bad")])
    pct = counts / max(categories.size, 1) * 100
    table = PARETO_FMT.format(max(5, len(str(np.max(counts)))))
    return table.format("Count", "Pct.", *counts, *pct, GOOD_K, OK_K)


@dataclass(frozen=True)
class PSISResult:
    """Smoothed importance weights and their diagnostics.

    Attributes
    ----------
    log_weights : ndarray or DataArray
        Normalized smoothed log weights, same shape and dimensions as the raw ones.
    pareto_shape : float, ndarray or DataArray
        Estimated shape of the generalized Pareto tail, one per observation.
    reff : float, ndarray or DataArray
        Relative efficiency used for each observation.
    ess : float, ndarray or DataArray
        Effective sample size of the smoothed weights, ``reff / sum(w**2)``.
    """

    log_weights: object
    pareto_shape: object
    reff: object
    ess: object

    @property
    def weights(self):
        """Normalized smoothed weights in probability space."""
        return np.exp(self.log_weights)

    @property
    def categories(self):
        """Diagnostic category of each Pareto shape, see :func:`pareto_shape_category`."""
        return pareto_shape_category(self.pareto_shape)

    def __str__(self):
        """Print the Pareto shape diagnostics."""
        n_obs = int(np.size(self.pareto_shape))
        n_draws = int(np.size(self.log_weights)) // max(n_obs, 1)
        lines = [
            f"PSISResult with {n_draws} draws and {n_obs} observations",
            "",
            format_pareto_counts(self.pareto_shape),
            "",
            f"Minimum ESS: {np.nanmin(np.asarray(self.ess)):.1f}",
        ]
        return "\n".join(lines)

    def __repr__(self):
        """Alias to ``__str__``."""
        return self.__str__()


def _array_to_dataarray(ary):
    """Label raw log weights shaped ``(draw, [chain,] *obs)``."""
    if ary.ndim == 0:
        raise ValueError("log weights must have at least one dimension with the draws")
    default_dims = ["draw"] if ary.ndim == 1 else ["draw", "chain"]
    return ndarray_to_dataarray(ary, "log_weights", default_dims=default_dims), default_dims


def _validate_reff(reff, template, warn=True):
    """Broadcast `reff` to the observation shape, replacing invalid values with 1."""
    if reff is None:
        return xr.ones_like(template, dtype=float)
    if isinstance(reff, xr.DataArray):
        reff_da = xr.broadcast(reff.astype(float), template)[0].transpose(*template.dims)
    else:
        reff_values = np.asarray(reff, dtype=float)
        try:
            reff_values = np.broadcast_to(reff_values, template.shape).copy()
        except ValueError:
            raise ValueError(
                f"reff must be a scalar or have the observation shape {template.shape}, "
                f"got shape {reff_values.shape}"
            ) from None
        reff_da = template.copy(data=reff_values)
    invalid = ~np.isfinite(reff_da) | (reff_da <= 0)
    if invalid.any():
        if warn:
            warnings.warn(
                "Relative efficiency must be finite and positive, using reff=1 for "
                f"{describe_observations(invalid)}",
                UserWarning,
                stacklevel=3,
            )
        reff_da = reff_da.where(~invalid, 1.0)
    return reff_da


def flagged_observations(mask):
    """Return the coordinate labels of the observations where `mask` is True.

    Parameters
    ----------
    mask : DataArray of bool
        One value per observation.

    Returns
    -------
    list
        Labels for one dimensional masks, tuples of labels otherwise.
    """
    values = np.asarray(mask.values, dtype=bool)
    if mask.ndim == 0:
        return [()] if values else []
    labels = [mask[dim].values.tolist() for dim in mask.dims]
    if mask.ndim == 1:
        return [labels[0][i] for i in np.flatnonzero(values)]
    return [tuple(labels[j][i] for j, i in enumerate(pos)) for pos in np.argwhere(values)]


def describe_observations(mask):
    """Name the observations flagged in `mask` for warning messages."""
    if mask.ndim == 0:
        return "the single observation"
    return f"observations {flagged_observations(mask)}"


def _warn_pareto_shape(pareto_shape):
    short_tail = np.isinf(pareto_shape) & (pareto_shape > 0)
    if short_tail.any():
        warnings.warn(
            "Tail too short to fit a generalized Pareto distribution, weights are not smoothed "
            f"for {describe_observations(short_tail)}",
            UserWarning,
            stacklevel=3,
        )
    not_estimated = np.isnan(pareto_shape)
    if not_estimated.any():
        warnings.warn(
            "Pareto shape could not be estimated because the log weights are not finite or "
            "their tail is constant, weights are not smoothed for "
            f"{describe_observations(not_estimated)}",
            UserWarning,
            stacklevel=3,
        )
    bad = np.isfinite(pareto_shape) & (pareto_shape > OK_K)
    if bad.any():
        warnings.warn(
            f"Estimated shape parameter of Pareto distribution is greater than {OK_K} for "
            f"{describe_observations(bad)}. Importance sampling estimates are "
            "unreliable for them.",
            UserWarning,
            stacklevel=3,
        )


def psis(log_weights, reff=None, *, dims=None, warn=True):
    """Pareto smoothed importance sampling.

    Smooths the largest raw importance weights of every observation by fitting a
    generalized Pareto distribution to the tail, see [1]_.

    Parameters
    ----------
    log_weights : array-like or DataArray
        Raw log weights. Arrays are shaped ``(draw, [chain,] *obs)``; all draws and
        chains of an observation are pooled. DataArrays pool the sample dimensions.
    reff : float, array-like or DataArray, optional
        Relative efficiency of the draws, scalar or one value per observation.
        Defaults to 1. Non finite or non positive values are replaced by 1 with a warning.
    dims : str or sequence of hashable, optional
        Sample dimensions of DataArray inputs. Defaults to the dimensions of
        ``rcParams["data.sample_dims"]`` present in `log_weights`.
    warn : bool, default True
        Warn about observations with unreliable or missing Pareto shape estimates.

    Returns
    -------
    PSISResult
        With numpy arrays for array inputs and DataArrays for DataArray inputs.

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from posteriorkit import psis

        rng = np.random.default_rng(0)
        result = psis(rng.normal(size=(1000, 4, 8)))
        result.pareto_shape

    References
    ----------
    .. [1] Vehtari et al. *Pareto Smoothed Importance Sampling*.
        Journal of Machine Learning Research, 25(72) (2024) https://jmlr.org/papers/v25/19-556.html
    """
    is_array = not isinstance(log_weights, xr.DataArray)
    if is_array:
        da, dims = _array_to_dataarray(np.asarray(log_weights, dtype=float))
    else:
        da = log_weights
        dims = validate_sample_dims(da, dims)
    template = da.isel({dim: 0 for dim in dims}, drop=True)
    template.name = None
    reff_da = _validate_reff(reff, template, warn=warn)

    smoothed, pareto_shape = dataarray_stats.psislw(da, r_eff=reff_da, dim=dims)
    smoothed = smoothed.transpose(*da.dims)
    ess = reff_da * np.exp(-logsumexp(2 * smoothed, dims=dims))
    _log.debug("Smoothed %d observations pooling dims %s", pareto_shape.size, dims)
    if warn:
        _warn_pareto_shape(pareto_shape)

    if is_array:
        return PSISResult(
            smoothed.values,
            pareto_shape.values[()],
            reff_da.values[()],
            ess.values[()],
        )
    return PSISResult(
        smoothed.rename(da.name),
        pareto_shape,
        reff_da.rename("reff"),
        ess.rename("ess"),
    )
