"""Expected log pointwise predictive density results and shared helpers."""

import warnings
from dataclasses import dataclass
from importlib import import_module

import numpy as np
import xarray as xr
from arviz_base import rcParams

from posteriorkit.errors import GroupNotFoundError
from posteriorkit.psis import PSISResult, format_pareto_counts
from posteriorkit.validate import SCALES, validate_scale

__all__ = [
    "ELPDResult",
    "PSISLOOResult",
    "WAICResult",
    "get_function",
    "get_log_likelihood",
    "information_criterion",
]

BASE_FMT = """Computed from {{n_samples}} posterior samples and \
{{n_points}} observations log-likelihood matrix.

{{0:{0}}} Estimate     MCSE
elpd_{{kind}} {{elpd:8.2f}} {{elpd_mcse:8.2f}}
p_{{kind:{1}}} {{p:8.2f}} {{p_mcse:8.2f}}"""


def get_log_likelihood(idata, var_name=None):
    """Retrieve the log likelihood DataArray of a given variable.

    Parameters
    ----------
    idata : InferenceData
    var_name : hashable, optional
        Variable of the ``log_likelihood`` group. Required if it has several variables.

    Returns
    -------
    DataArray

    Raises
    ------
    GroupNotFoundError
        If there is no ``log_likelihood`` group.
    VariableNotFoundError
        If `var_name` is not in the ``log_likelihood`` group.
    TypeError
        If `var_name` is None and the group does not have exactly one variable.
    """
    if "log_likelihood" not in idata:
        if "sample_stats" in idata and "log_likelihood" in idata["sample_stats"]:
            warnings.warn(
                "Storing the log_likelihood in sample_stats groups has been deprecated",
                DeprecationWarning,
                stacklevel=2,
            )
            return idata["sample_stats"]["log_likelihood"]
        raise GroupNotFoundError("log_likelihood", idata)
    log_likelihood = idata["log_likelihood"]
    if var_name is None:
        var_names = list(log_likelihood)
        if len(var_names) != 1:
            raise TypeError(
                f"Found log likelihood arrays {var_names}, var_name must select exactly one"
            )
        return log_likelihood[var_names[0]]
    return log_likelihood[var_name]


def _sum_and_se(pointwise):
    """Sum of pointwise values and its standard error ``sqrt(n) * std(x, ddof=1)``."""
    values = np.ravel(np.asarray(pointwise, dtype=float))
    n = values.size
    total = float(np.sum(values))
    if n < 2:
        return total, np.nan
    return total, float(np.sqrt(n) * np.std(values, ddof=1))


@dataclass(frozen=True, eq=False)
class ELPDResult:
    """Estimates of the expected log pointwise predictive density (elpd).

    Attributes
    ----------
    kind : str
        Estimator used, ``"loo"`` or ``"waic"``.
    elpd, elpd_mcse : float
        Sum of the pointwise elpd and its standard error.
    p, p_mcse : float
        Effective number of parameters and its standard error.
    n_samples : int
        Number of pooled posterior draws.
    n_data_points : int
        Number of observations.
    pointwise : xarray.Dataset
        Pointwise estimates, one value per observation.
    warning : bool
        True if a warning was issued during the computation.
    """

    kind: str
    elpd: float
    elpd_mcse: float
    p: float
    p_mcse: float
    n_samples: int
    n_data_points: int
    pointwise: xr.Dataset
    warning: bool

    def elpd_estimates(self, pointwise=False):
        """Return the estimates.

        Parameters
        ----------
        pointwise : bool, default False
            If True return the pointwise :class:`xarray.Dataset` instead of the aggregates.

        Returns
        -------
        dict or xarray.Dataset
            Aggregates with keys ``elpd``, ``elpd_mcse``, ``p`` and ``p_mcse``.
        """
        if pointwise:
            return self.pointwise
        return {
            "elpd": self.elpd,
            "elpd_mcse": self.elpd_mcse,
            "p": self.p,
            "p_mcse": self.p_mcse,
        }

    def __str__(self):
        """Print elpd data in a user friendly way."""
        padding = len(self.kind) + 5
        base = BASE_FMT.format(padding, padding - 2)
        base = base.format(
            "",
            kind=self.kind,
            n_samples=self.n_samples,
            n_points=self.n_data_points,
            elpd=self.elpd,
            elpd_mcse=self.elpd_mcse,
            p=self.p,
            p_mcse=self.p_mcse,
        )
        if self.warning:
            base += "\n\nThere has been a warning during the calculation. Please check the results."
        return base

    def __repr__(self):
        """Alias to ``__str__``."""
        return self.__str__()

    def __getitem__(self, key):
        """Define getitem magic method."""
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None


@dataclass(frozen=True, eq=False, repr=False)
class PSISLOOResult(ELPDResult):
    """Results of PSIS-LOO-CV, also holding the smoothed importance weights."""

    psis_result: PSISResult = None

    def __str__(self):
        """Print elpd data and the Pareto shape diagnostics."""
        base = super().__str__()
        if self.psis_result is None:
            return base
        return "\n\n".join([base, format_pareto_counts(self.psis_result.pareto_shape)])


@dataclass(frozen=True, eq=False, repr=False)
class WAICResult(ELPDResult):
    """Results of the widely applicable information criterion."""


def information_criterion(result, scale, pointwise=False):
    """Express the elpd of `result` on an information criterion scale.

    Parameters
    ----------
    result : ELPDResult
    scale : {"log", "negative_log", "deviance"}
        Multiply the elpd by 1, -1 or -2 respectively.
    pointwise : bool, default False
        Return the pointwise values instead of the aggregate.

    Returns
    -------
    float or DataArray

    Raises
    ------
    ValueError
        For unknown scales.
    """
    scale = validate_scale(scale)
    factor = SCALES[scale]
    if pointwise:
        return (factor * result.pointwise["elpd"]).rename(scale)
    return factor * result.elpd


def get_function(func_name):
    """Get a function from the DataArray computational layer.

    Imports the ``dataarray_stats`` object of the module indicated in the rcParam
    ``stats.module`` and returns its `func_name` method.

    Parameters
    ----------
    func_name : str
        Name of the function to be imported and returned

    Returns
    -------
    callable
    """
    module_name = rcParams["stats.module"]
    if isinstance(module_name, str):
        preferred_module = import_module(f"posteriorkit.{module_name}")
    else:
        preferred_module = module_name
    if hasattr(preferred_module, "dataarray_stats"):
        preferred_module = preferred_module.dataarray_stats
    if not hasattr(preferred_module, func_name):
        raise KeyError(f"Requested function '{func_name}' is not available in '{preferred_module}'")
    return getattr(preferred_module, func_name)
