"""Pareto-smoothed importance sampling LOO (PSIS-LOO-CV)."""

import numpy as np
import xarray as xr

from posteriorkit.base import dataarray_stats
from posteriorkit.loo.helper_loo import _check_log_likelihood, _get_r_eff, _prepare_loo_inputs
from posteriorkit.psis import pareto_shape_category, psis
from posteriorkit.utils import PSISLOOResult, _sum_and_se


def loo(data, var_name=None, reff=None, *, sample_dims=None):
    r"""Compute Pareto-smoothed importance sampling leave-one-out cross-validation (PSIS-LOO-CV).

    Estimates the expected log pointwise predictive density (elpd) using Pareto-smoothed
    importance sampling leave-one-out cross-validation (PSIS-LOO-CV). Also calculates the
    Monte Carlo standard errors and the effective number of parameters. The method is
    described in [1]_ and [2]_.

    Parameters
    ----------
    data : array-like, DataArray, Dataset, InferenceData or DataTree
        Arrays are shaped ``(draw, [chain,] *obs)``. Labelled inputs are searched for
        the ``log_likelihood`` group, Datasets are taken to be that group.
    var_name : str, optional
        The name of the variable in log_likelihood groups storing the pointwise log
        likelihood data to use for loo computation.
    reff : float, array-like or DataArray, optional
        Relative MCMC efficiency, ``ess / n`` i.e. number of effective samples divided by the number
        of actual samples. Estimated for every observation from the likelihood draws by default.
    sample_dims : str or sequence of hashable, optional
        Dimensions pooled as draws. Defaults to the dimensions of
        ``rcParams["data.sample_dims"]`` present in the log likelihood. Only valid for
        labelled inputs.

    Returns
    -------
    PSISLOOResult
        Object with the following attributes:

        - **kind**: "loo"
        - **elpd**: expected log pointwise predictive density
        - **elpd_mcse**: standard error of the elpd
        - **p**: effective number of parameters
        - **p_mcse**: standard error of the effective number of parameters
        - **n_samples**: number of samples
        - **n_data_points**: number of data points
        - **pointwise**: :class:`xarray.Dataset` with the ``elpd``, ``elpd_mcse``, ``p``,
          ``reff`` and ``pareto_shape`` of every observation
        - **warning**: True if any warning was issued, e.g. a Pareto shape above 0.7
        - **psis_result**: the :class:`~posteriorkit.PSISResult` of the leave-one-out weights

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from posteriorkit import loo

        rng = np.random.default_rng(0)
        log_lik = rng.normal(-1, 0.2, size=(1000, 4, 8))
        loo(log_lik)

    References
    ----------
    .. [1] Vehtari et al. *Practical Bayesian model evaluation using leave-one-out cross-validation
        and WAIC*. Statistics and Computing. 27(5) (2017) https://doi.org/10.1007/s11222-016-9696-4
        arXiv preprint https://arxiv.org/abs/1507.04544.

    .. [2] Vehtari et al. *Pareto Smoothed Importance Sampling*.
        Journal of Machine Learning Research, 25(72) (2024) https://jmlr.org/papers/v25/19-556.html
        arXiv preprint https://arxiv.org/abs/1507.02646
    """
    loo_inputs = _prepare_loo_inputs(data, var_name, sample_dims)
    log_likelihood = loo_inputs.log_likelihood
    sample_dims = loo_inputs.sample_dims
    warn_mg = _check_log_likelihood(loo_inputs)

    if reff is None:
        reff = _get_r_eff(log_likelihood, sample_dims)
    reff_values = np.asarray(reff, dtype=float)
    warn_mg = warn_mg or not np.all(np.isfinite(reff_values) & (reff_values > 0))
    psis_result = psis(-log_likelihood, reff, dims=sample_dims)
    pareto_shape = psis_result.pareto_shape
    warn_mg = warn_mg or bool(np.any(pareto_shape_category(pareto_shape.values) == "bad"))

    elpd_i, elpd_mcse_i, lpd_i = dataarray_stats.loo_pointwise(
        log_likelihood, psis_result.log_weights, psis_result.reff, dim=sample_dims
    )
    p_i = lpd_i - elpd_i
    pointwise = xr.Dataset(
        {
            "elpd": elpd_i,
            "elpd_mcse": elpd_mcse_i,
            "p": p_i,
            "reff": psis_result.reff,
            "pareto_shape": pareto_shape,
        }
    )
    elpd, elpd_mcse = _sum_and_se(elpd_i)
    p, p_mcse = _sum_and_se(p_i)

    return PSISLOOResult(
        "loo",
        elpd,
        elpd_mcse,
        p,
        p_mcse,
        loo_inputs.n_samples,
        loo_inputs.n_data_points,
        pointwise,
        warn_mg,
        psis_result=psis_result,
    )
