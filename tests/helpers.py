# pylint: disable=redefined-outer-name
"""Test related helper functions."""

import os
import sys
import warnings
from typing import Any

import numpy as np
import pytest

EIGHT_SCHOOLS_Y = np.array([28.0, 8.0, -3.0, 7.0, -1.0, 1.0, 18.0, 12.0])
EIGHT_SCHOOLS_SIGMA = np.array([15.0, 10.0, 16.0, 11.0, 9.0, 11.0, 10.0, 18.0])


def importorskip(modname: str, reason: str | None = None) -> Any:
    """Import and return the requested module ``modname``.

    Doesn't allow skips when ``POSTERIORKIT_REQUIRE_ALL_DEPS`` env var is defined.
    Borrowed and modified from ``pytest.importorskip``.

    Parameters
    ----------
    modname : str
        the name of the module to import
    reason : str, optional
        this reason is shown as skip message when the module cannot be imported.
    """
    __tracebackhide__ = True  # pylint: disable=unused-variable
    compile(modname, "", "eval")  # to catch syntaxerrors

    with warnings.catch_warnings():
        # Make sure to ignore ImportWarnings that might happen because
        # of existing directories with the same name we're trying to
        # import but without a __init__.py file.
        warnings.simplefilter("ignore")
        try:
            __import__(modname)
        except ImportError as exc:
            if "POSTERIORKIT_REQUIRE_ALL_DEPS" in os.environ:
                raise exc
            if reason is None:
                reason = f"could not import {modname!r}: {exc}"
            pytest.skip(reason, allow_module_level=True)

    mod = sys.modules[modname]
    return mod


def eight_schools_posterior(seed=0, ndraws=1000, nchains=4):
    """Exact i.i.d. draws of ``mu`` for the complete pooling eight schools model.

    With a flat prior the posterior of the common mean is normal, so no sampler is
    needed. Returns an array of shape ``(ndraws, nchains)``.
    """
    rng = np.random.default_rng(seed)
    precision = 1 / EIGHT_SCHOOLS_SIGMA**2
    post_mean = np.sum(EIGHT_SCHOOLS_Y * precision) / np.sum(precision)
    post_sd = 1 / np.sqrt(np.sum(precision))
    return rng.normal(post_mean, post_sd, size=(ndraws, nchains))


def eight_schools_log_likelihood(seed=0, ndraws=1000, nchains=4):
    """Pointwise log likelihood shaped ``(draw, chain, school)``."""
    from scipy.stats import norm

    mu = eight_schools_posterior(seed=seed, ndraws=ndraws, nchains=nchains)
    return norm.logpdf(EIGHT_SCHOOLS_Y, loc=mu[..., None], scale=EIGHT_SCHOOLS_SIGMA)


def eight_schools_exact_loo():
    """Exact leave-one-out elpd of the complete pooling eight schools model."""
    from scipy.stats import norm

    precision = 1 / EIGHT_SCHOOLS_SIGMA**2
    elpd_i = np.empty(len(EIGHT_SCHOOLS_Y))
    for j, (y_j, sigma_j) in enumerate(zip(EIGHT_SCHOOLS_Y, EIGHT_SCHOOLS_SIGMA)):
        keep = np.arange(len(EIGHT_SCHOOLS_Y)) != j
        post_var = 1 / np.sum(precision[keep])
        post_mean = np.sum(EIGHT_SCHOOLS_Y[keep] * precision[keep]) * post_var
        elpd_i[j] = norm.logpdf(y_j, loc=post_mean, scale=np.sqrt(post_var + sigma_j**2))
    return elpd_i


def create_model(seed=10):
    """Create model with fake data."""
    from posteriorkit import from_dict

    rng = np.random.default_rng(seed)
    nchains = 4
    ndraws = 500
    mu = rng.normal(7.7, 4.1, size=(nchains, ndraws))
    log_likelihood = -0.5 * (
        np.log(2 * np.pi * EIGHT_SCHOOLS_SIGMA**2)
        + (EIGHT_SCHOOLS_Y - mu[..., None]) ** 2 / EIGHT_SCHOOLS_SIGMA**2
    )
    return from_dict(
        {
            "posterior": {
                "mu": mu,
                "theta": rng.normal(7.7, 5, size=(nchains, ndraws, 8)),
            },
            "posterior_predictive": {"y": rng.normal(7.7, 12, size=(nchains, ndraws, 8))},
            "log_likelihood": {"y": log_likelihood},
            "sample_stats": {"diverging": rng.random((nchains, ndraws)) > 0.90},
            "observed_data": {"y": EIGHT_SCHOOLS_Y},
        },
        dims={"y": ["school"], "theta": ["school"]},
        coords={"school": [f"school_{i}" for i in range(8)]},
        library="posteriorkit-tests",
    )


def synthetic_log_likelihood(sigma, seed=0, shape=(1000, 4, 8), loc=-1.0):
    """Log likelihood values drawn i.i.d. from ``normal(loc, sigma)``.

    Larger `sigma` means a larger variance penalty and thus a worse fitting model.
    """
    rng = np.random.default_rng(seed)
    return rng.normal(loc, sigma, size=shape)
