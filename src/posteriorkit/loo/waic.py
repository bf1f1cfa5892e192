"""Widely applicable information criterion (WAIC)."""

import warnings

import xarray as xr

from posteriorkit.base import dataarray_stats
from posteriorkit.loo.helper_loo import _check_log_likelihood, _prepare_loo_inputs
from posteriorkit.psis import describe_observations
from posteriorkit.utils import WAICResult, _sum_and_se

P_WAIC_THRESHOLD = 0.4


def waic(data, var_name=None, *, sample_dims=None):
    """Compute the widely applicable information criterion (WAIC).

    The pointwise elpd is the log pointwise predictive density penalized by the
    variance of the log likelihood across draws, see [1]_.

    Parameters
    ----------
    data : array-like, DataArray, Dataset, InferenceData or DataTree
        Same inputs as :func:`~posteriorkit.loo`.
    var_name : str, optional
        The name of the variable in log_likelihood groups storing the pointwise log
        likelihood data to use for waic computation.
    sample_dims : str or sequence of hashable, optional
        Dimensions pooled as draws. Only valid for labelled inputs.

    Returns
    -------
    WAICResult
        Same attributes as the result of :func:`~posteriorkit.loo` without the importance
        sampling diagnostics. The pointwise dataset has the ``elpd`` and ``p`` variables.

    Warns
    -----
    UserWarning
        When the variance of the log likelihood of an observation exceeds 0.4, in which
        case PSIS-LOO-CV is more reliable.

    References
    ----------
    .. [1] Watanabe. *Asymptotic equivalence of Bayes cross validation and widely applicable
        information criterion in singular learning theory*. Journal of Machine Learning
        Research, 11 (2010) https://jmlr.org/papers/v11/watanabe10a.html
    """
    loo_inputs = _prepare_loo_inputs(data, var_name, sample_dims)
    warn_mg = _check_log_likelihood(loo_inputs)

    elpd_i, p_i, _ = dataarray_stats.waic_pointwise(
        loo_inputs.log_likelihood, dim=loo_inputs.sample_dims
    )
    high_p = p_i > P_WAIC_THRESHOLD
    if high_p.any():
        warnings.warn(
            f"The variance of the log likelihood exceeds {P_WAIC_THRESHOLD} for "
            f"{describe_observations(high_p)}. WAIC estimates are unreliable for them, "
            "consider using loo instead.",
            UserWarning,
            stacklevel=2,
        )
        warn_mg = True

    pointwise = xr.Dataset({"elpd": elpd_i, "p": p_i})
    elpd, elpd_mcse = _sum_and_se(elpd_i)
    p, p_mcse = _sum_and_se(p_i)
    return WAICResult(
        "waic",
        elpd,
        elpd_mcse,
        p,
        p_mcse,
        loo_inputs.n_samples,
        loo_inputs.n_data_points,
        pointwise,
        warn_mg,
    )
