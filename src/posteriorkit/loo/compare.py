"""Compare models by their expected log pointwise predictive density."""

from collections import namedtuple
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

from posteriorkit.loo.loo import loo
from posteriorkit.loo.model_weights import _ic_matrix, get_weights_method
from posteriorkit.loo.waic import waic
from posteriorkit.utils import ELPDResult

__all__ = ["ModelComparisonResult", "compare"]

COLUMNS = (
    "name",
    "rank",
    "elpd",
    "elpd_mcse",
    "elpd_diff",
    "elpd_diff_mcse",
    "weight",
    "p",
    "p_mcse",
)
ComparisonRow = namedtuple("ComparisonRow", COLUMNS)

_ELPD_METHODS = {"loo": loo, "waic": waic}


@dataclass(frozen=True, eq=False)
class ModelComparisonResult:
    """Table comparing several models, one row per model.

    Every column is available as an attribute holding a tuple with one value per row.

    Attributes
    ----------
    name : tuple of hashable
    rank : tuple of int
        0 for the model with the highest elpd.
    elpd, elpd_mcse : tuple of float
    elpd_diff : tuple of float
        Difference between the elpd of the best model and the elpd of each model.
    elpd_diff_mcse : tuple of float
        Standard error of `elpd_diff`, computed from the pointwise differences.
    weight : tuple of float
    p, p_mcse : tuple of float
    elpd_results : dict
        Model name to the ELPDResult used in the comparison.
    weights_method : ModelWeightsMethod
    """

    name: tuple
    rank: tuple
    elpd: tuple
    elpd_mcse: tuple
    elpd_diff: tuple
    elpd_diff_mcse: tuple
    weight: tuple
    p: tuple
    p_mcse: tuple
    elpd_results: dict
    weights_method: object

    def __len__(self):
        return len(self.name)

    def __iter__(self):
        columns = [getattr(self, column) for column in COLUMNS]
        return (ComparisonRow(*row) for row in zip(*columns))

    def to_dataframe(self):
        """Return the table as a :class:`pandas.DataFrame` indexed by model name."""
        df = pd.DataFrame(
            {column: list(getattr(self, column)) for column in COLUMNS[1:]},
            index=pd.Index(list(self.name), name="name"),
        )
        return df.astype({"rank": int})

    def __str__(self):
        """Print the comparison table."""
        header = f"ModelComparisonResult with {self.weights_method.name} weights"
        return "\n".join([header, self.to_dataframe().to_string(float_format="{:.2f}".format)])

    def __repr__(self):
        """Alias to ``__str__``."""
        return self.__str__()


def _get_elpd_method(elpd_method):
    if elpd_method is None:
        return loo
    if callable(elpd_method):
        return elpd_method
    if isinstance(elpd_method, str) and elpd_method.lower() in _ELPD_METHODS:
        return _ELPD_METHODS[elpd_method.lower()]
    raise ValueError(f"elpd_method must be one of {list(_ELPD_METHODS)} or a callable")


def _calculate_ics(models, elpd_method=None, model_names=None, var_name=None):
    """Compute the elpd of the models that are not ELPDResult already.

    Returns
    -------
    dict of {hashable: ELPDResult}
    """
    if isinstance(models, Mapping):
        names = list(models)
        models = list(models.values())
    else:
        models = list(models)
        if model_names is None:
            names = [f"model_{i}" for i in range(len(models))]
        else:
            names = list(model_names)
            if len(names) != len(models):
                raise ValueError(
                    f"Got {len(names)} model names for {len(models)} models: {names}"
                )
    if len(set(names)) != len(names):
        raise ValueError(f"Model names must be unique, got {names}")

    elpd_method = _get_elpd_method(elpd_method)
    elpd_results = {}
    for name, model in zip(names, models):
        if isinstance(model, ELPDResult):
            elpd_results[name] = model
            continue
        try:
            elpd_results[name] = elpd_method(model, var_name=var_name)
        except Exception as e:
            message = f"Encountered error trying to compute ELPD from model {name}."
            if isinstance(e, KeyError):
                # the argument of KeyError subclasses is the missing key
                e.add_note(message)
                raise
            raise e.__class__(message) from e

    kinds = {result.kind for result in elpd_results.values()}
    if len(kinds) > 1:
        by_kind = {
            kind: [name for name, result in elpd_results.items() if result.kind == kind]
            for kind in sorted(kinds)
        }
        raise ValueError(f"Cannot compare models with different elpd estimators: {by_kind}")
    return elpd_results


def compare(
    models,
    weights_method=None,
    elpd_method=None,
    sort=True,
    model_names=None,
    var_name=None,
):
    r"""Compare models based on their expected log pointwise predictive density (ELPD).

    The ELPD is estimated by Pareto smoothed importance sampling leave-one-out
    cross-validation, the same method used by :func:`posteriorkit.loo`, unless
    `elpd_method` says otherwise. The method is described in [1]_ and [2]_.
    By default, the weights are estimated using stacking as described in [3]_.

    Parameters
    ----------
    models : mapping of {hashable: ELPDResult or data} or sequence
        Models to compare. Entries that are not ELPDResult are passed to `elpd_method`.
    weights_method : str or ModelWeightsMethod, optional
        Method used to estimate the weights for each model, see
        :func:`~posteriorkit.loo.get_weights_method`. Available options are:

        - :class:`~posteriorkit.Stacking` or ``"stacking"``: stacking of predictive
          distributions.
        - :class:`~posteriorkit.BootstrappedPseudoBMA` or ``"bb-pseudo-bma"``:
          pseudo-Bayesian Model averaging using Akaike-type weighting. The weights are
          stabilized using the Bayesian bootstrap.
        - :class:`~posteriorkit.PseudoBMA` or ``"pseudo-bma"``: pseudo-Bayesian Model
          averaging using Akaike-type weighting, without Bootstrap stabilization
          (not recommended).

    elpd_method : {"loo", "waic"} or callable, optional
        Estimator used for models given as data. Defaults to :func:`~posteriorkit.loo`.
    sort : bool, default True
        Sort the rows by decreasing elpd. Otherwise keep the order of `models`.
    model_names : sequence of hashable, optional
        Names of the models when `models` is a sequence. Defaults to
        ``model_0, model_1, ...``.
    var_name : str, optional
        If there is more than a single observed variable in the log likelihood group,
        which one should be used as the basis for comparison.

    Returns
    -------
    ModelComparisonResult

    Raises
    ------
    ValueError
        If the models mix elpd estimators or have a different number of observations.

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from posteriorkit import compare

        rng = np.random.default_rng(0)
        comparison = compare(
            {
                "a": rng.normal(-1, 0.1, size=(1000, 4, 8)),
                "b": rng.normal(-1, 1, size=(1000, 4, 8)),
            }
        )
        comparison.to_dataframe()

    References
    ----------
    .. [1] Vehtari et al. *Practical Bayesian model evaluation using leave-one-out cross-validation
        and WAIC*. Statistics and Computing. 27(5) (2017) https://doi.org/10.1007/s11222-016-9696-4
        arXiv preprint https://arxiv.org/abs/1507.04544.

    .. [2] Vehtari et al. *Pareto Smoothed Importance Sampling*.
        Journal of Machine Learning Research, 25(72) (2024) https://jmlr.org/papers/v25/19-556.html
        arXiv preprint https://arxiv.org/abs/1507.02646

    .. [3] Yao et al. *Using stacking to average Bayesian predictive distributions*
        Bayesian Analysis, 13, 3 (2018). https://doi.org/10.1214/17-BA1091
        arXiv preprint https://arxiv.org/abs/1704.02030.
    """
    elpd_results = _calculate_ics(models, elpd_method, model_names, var_name)
    names = list(elpd_results)
    results = list(elpd_results.values())
    weights_method = get_weights_method(weights_method)
    weights = weights_method.weights(results, names=names)

    ic_mat = _ic_matrix(names, results)
    n_data_points = ic_mat.shape[0]
    elpd = np.array([result.elpd for result in results])
    order = np.argsort(-elpd, kind="stable")
    best = order[0]
    rank = np.empty(len(names), dtype=int)
    rank[order] = np.arange(len(names))

    elpd_diff = elpd[best] - elpd
    elpd_diff_mcse = np.zeros(len(names))
    for idx in range(len(names)):
        if idx == best:
            continue
        if n_data_points < 2:
            elpd_diff_mcse[idx] = np.nan
        else:
            diff = ic_mat[:, best] - ic_mat[:, idx]
            elpd_diff_mcse[idx] = np.sqrt(n_data_points) * np.std(diff, ddof=1)

    rows = order if sort else np.arange(len(names))
    return ModelComparisonResult(
        name=tuple(names[i] for i in rows),
        rank=tuple(int(rank[i]) for i in rows),
        elpd=tuple(float(elpd[i]) for i in rows),
        elpd_mcse=tuple(float(results[i].elpd_mcse) for i in rows),
        elpd_diff=tuple(float(elpd_diff[i]) for i in rows),
        elpd_diff_mcse=tuple(float(elpd_diff_mcse[i]) for i in rows),
        weight=tuple(float(weights[i]) for i in rows),
        p=tuple(float(results[i].p) for i in rows),
        p_mcse=tuple(float(results[i].p_mcse) for i in rows),
        elpd_results={names[i]: results[i] for i in rows},
        weights_method=weights_method,
    )
