"""Weights for averaging the predictions of several models."""

import logging
import warnings
from collections.abc import Mapping

import numpy as np
from arviz_base import rcParams
from scipy.optimize import minimize
from scipy.stats import dirichlet

__all__ = [
    "BootstrappedPseudoBMA",
    "ModelWeightsMethod",
    "PseudoBMA",
    "Stacking",
    "get_weights_method",
    "model_weights",
]

_log = logging.getLogger(__name__)

WEIGHTS_SUM_TOL = 1e-6


def _ic_matrix(names, elpd_results):
    """Store the pointwise elpd of every model as the columns of a 2D matrix."""
    pointwise = [np.ravel(result.pointwise["elpd"].values) for result in elpd_results]
    obs_counts = {name: len(values) for name, values in zip(names, pointwise)}
    if len(set(obs_counts.values())) > 1:
        sorted_counts = sorted(obs_counts.items(), key=lambda item: (item[1], str(item[0])))
        mismatch_details = ", ".join([f"'{name}' ({count})" for name, count in sorted_counts])
        raise ValueError(
            "All models must have the same number of observations, but models have inconsistent "
            f"observation counts: {mismatch_details}"
        )
    return np.column_stack(pointwise)


def _softmax(values):
    exp_values = np.exp(values - np.max(values, axis=-1, keepdims=True))
    return exp_values / np.sum(exp_values, axis=-1, keepdims=True)


class ModelWeightsMethod:
    """Base class of the methods computing model averaging weights."""

    name = None

    def weights(self, elpd_results, names=None):
        """Compute the weight of every model.

        Parameters
        ----------
        elpd_results : sequence of ELPDResult
        names : sequence of hashable, optional
            Model names used in error messages.

        Returns
        -------
        ndarray
            Non negative weights summing to one, in the order of `elpd_results`.

        Raises
        ------
        ValueError
            If the models have a different number of observations or the weights do not
            sum to one.
        """
        elpd_results = list(elpd_results)
        if not elpd_results:
            raise ValueError("At least one model is needed to compute weights")
        if names is None:
            names = [f"model_{i}" for i in range(len(elpd_results))]
        ic_mat = _ic_matrix(names, elpd_results)
        weights = np.asarray(self._weights(ic_mat, elpd_results), dtype=float)
        if not np.isclose(np.sum(weights), 1, rtol=0, atol=WEIGHTS_SUM_TOL):
            raise ValueError(f"{self.name} weights must sum to 1, got {np.sum(weights)}")
        return weights

    def _weights(self, ic_mat, elpd_results):
        raise NotImplementedError

    def __repr__(self):
        """Show the method name and its settings."""
        settings = ", ".join(f"{key}={value!r}" for key, value in vars(self).items())
        return f"{type(self).__name__}({settings})"


class Stacking(ModelWeightsMethod):
    """Stacking of predictive distributions.

    Maximizes ``sum_i log(sum_m w_m exp(elpd_{m,i}))`` over the simplex, see [1]_.

    Parameters
    ----------
    optimizer : str, default "SLSQP"
        Method of :func:`scipy.optimize.minimize`, it must support bounds and constraints.
    options : dict, optional
        Options passed to :func:`scipy.optimize.minimize`.

    References
    ----------
    .. [1] Yao et al. *Using stacking to average Bayesian predictive distributions*
        Bayesian Analysis, 13, 3 (2018). https://doi.org/10.1214/17-BA1091
        arXiv preprint https://arxiv.org/abs/1704.02030.
    """

    name = "Stacking"

    def __init__(self, optimizer="SLSQP", options=None):
        self.optimizer = optimizer
        self.options = options

    def _weights(self, ic_mat, elpd_results):
        cols = ic_mat.shape[1]
        if cols == 1 or np.all(ic_mat == ic_mat[:, :1]):
            return np.full(cols, 1.0 / cols)
        # rows are shifted by their maximum, the optimum does not change
        exp_ic_i = np.exp(ic_mat - np.max(ic_mat, axis=1, keepdims=True))
        km1 = cols - 1

        def w_fuller(weights):
            return np.concatenate((weights, [max(1.0 - np.sum(weights), 0.0)]))

        def log_score(weights):
            w_full = w_fuller(weights)
            return -np.sum(np.log(exp_ic_i @ w_full))

        def gradient(weights):
            w_full = w_fuller(weights)
            density = exp_ic_i @ w_full
            grad = (exp_ic_i[:, :km1] - exp_ic_i[:, km1:]) / density[:, None]
            return -np.sum(grad, axis=0)

        theta = np.full(km1, 1.0 / cols)
        bounds = [(0.0, 1.0) for _ in range(km1)]
        constraints = [
            {"type": "ineq", "fun": lambda x: -np.sum(x) + 1.0},
            {"type": "ineq", "fun": np.sum},
        ]

        minimize_result = minimize(
            fun=log_score,
            x0=theta,
            jac=gradient,
            method=self.optimizer,
            bounds=bounds,
            constraints=constraints,
            options=self.options,
        )
        _log.debug("Stacking optimizer finished: %s", minimize_result.message)
        if not minimize_result.success:
            warnings.warn(
                f"Optimization of the stacking weights did not converge: "
                f"{minimize_result.message}",
                UserWarning,
                stacklevel=4,
            )
        free_weights = np.asarray(minimize_result["x"], dtype=float)
        weights = np.concatenate((free_weights, [1.0 - np.sum(free_weights)]))
        # round off solver noise, anything further off the simplex is an error
        weights[(weights < 0) & (weights > -WEIGHTS_SUM_TOL)] = 0.0
        if np.any(weights < 0):
            raise ValueError(
                f"Stacking optimizer returned weights outside the simplex: {free_weights}"
            )
        return weights


class PseudoBMA(ModelWeightsMethod):
    """Pseudo Bayesian model averaging using Akaike-type weighting.

    Weights are the softmax of the elpd of every model.

    Parameters
    ----------
    regularize : bool, default False
        Use ``elpd - elpd_mcse / 2`` instead of the elpd, which penalizes models with
        uncertain estimates.
    """

    name = "PseudoBMA"

    def __init__(self, regularize=False):
        self.regularize = regularize

    def _weights(self, ic_mat, elpd_results):
        elpd = np.array([result.elpd for result in elpd_results])
        if self.regularize:
            elpd = elpd - np.array([result.elpd_mcse for result in elpd_results]) / 2
        return _softmax(elpd)


class BootstrappedPseudoBMA(ModelWeightsMethod):
    """Pseudo Bayesian model averaging stabilized with the Bayesian bootstrap.

    Every bootstrap sample draws observation weights from a Dirichlet distribution,
    computes pseudo-BMA weights from the reweighted elpd and the results are averaged.

    Parameters
    ----------
    rng : int or numpy.random.Generator, optional
        Seed or random number generator for the bootstrap.
    samples : int, default 1000
        Number of bootstrap samples.
    alpha : float, default 1
        Concentration of the Dirichlet distribution.
    """

    name = "BootstrappedPseudoBMA"

    def __init__(self, rng=None, samples=1000, alpha=1):
        self.rng = np.random.default_rng(rng)
        self.samples = samples
        self.alpha = alpha

    def _weights(self, ic_mat, elpd_results):
        rows = ic_mat.shape[0]
        b_weighting = dirichlet.rvs(
            alpha=[self.alpha] * rows, size=self.samples, random_state=self.rng
        )
        z_bs = rows * (b_weighting @ ic_mat)
        return _softmax(z_bs).mean(axis=0)


_METHODS = {"stacking": Stacking, "pseudo-bma": PseudoBMA, "bb-pseudo-bma": BootstrappedPseudoBMA}


def get_weights_method(method=None):
    """Get a weights method instance from its name.

    Parameters
    ----------
    method : str or ModelWeightsMethod, optional
        ``"stacking"``, ``"pseudo-bma"`` or ``"bb-pseudo-bma"``. Defaults to
        ``rcParams["stats.ic_compare_method"]``.

    Returns
    -------
    ModelWeightsMethod
    """
    if method is None:
        method = rcParams["stats.ic_compare_method"]
    if isinstance(method, ModelWeightsMethod):
        return method
    if isinstance(method, type) and issubclass(method, ModelWeightsMethod):
        return method()
    if isinstance(method, str) and method.lower() in _METHODS:
        return _METHODS[method.lower()]()
    raise ValueError(
        f"Invalid method '{method}'. Available methods: {', '.join(_METHODS)}. "
        "Use 'stacking' for robust model averaging as recommended in "
        "https://doi.org/10.1214/17-BA1091."
    )


def model_weights(elpd_results, method=None):
    """Compute weights for averaging the predictions of several models.

    Parameters
    ----------
    elpd_results : mapping of {hashable: ELPDResult} or sequence of ELPDResult
        Results of :func:`~posteriorkit.loo` or :func:`~posteriorkit.waic` for every model,
        all computed on the same observations.
    method : str or ModelWeightsMethod, optional
        See :func:`get_weights_method`. Defaults to :class:`Stacking`.

    Returns
    -------
    dict or ndarray
        A dict from model name to weight for mapping inputs, an array otherwise.

    Examples
    --------
    .. code-block:: python

        from posteriorkit import PseudoBMA, loo, model_weights

        model_weights({"a": loo(log_lik_a), "b": loo(log_lik_b)}, method=PseudoBMA())
    """
    method = get_weights_method(method)
    if isinstance(elpd_results, Mapping):
        names = list(elpd_results)
        weights = method.weights(elpd_results.values(), names=names)
        return dict(zip(names, weights.tolist()))
    return method.weights(elpd_results)
