"""Class with array functions.

"array" functions work on any dimension array,
batching as necessary.
"""

import numpy as np

from posteriorkit.base.diagnostics import _DiagnosticsBase
from posteriorkit.base.stats_utils import logsumexp, make_ufunc


def process_chain_none(ary, chain_axis, draw_axis):
    """Process array with chain and draw axis to cover the case ``chain_axis=None``."""
    if chain_axis is None:
        ary = np.expand_dims(ary, axis=0)
        chain_axis = 0
        draw_axis = draw_axis + 1 if draw_axis >= 0 else draw_axis
    return ary, chain_axis, draw_axis


def process_ary_axes(ary, axes):
    """Process input array and axes to ensure input core dims are the last ones.

    Parameters
    ----------
    ary : array_like
    axes : int or sequence of int
    """
    ary = np.asarray(ary)
    if axes is None:
        axes = list(range(ary.ndim))
    if isinstance(axes, int | np.integer):
        axes = [axes]
    axes = [ax if ax >= 0 else ary.ndim + ax for ax in axes]
    reordered_axes = [i for i in range(ary.ndim) if i not in axes] + list(axes)
    ary = np.transpose(ary, axes=reordered_axes)
    return ary, np.arange(-len(axes), 0, dtype=int)


class BaseArray(_DiagnosticsBase):
    """Class with numpy+scipy only functions that take array inputs.

    Notes
    -----
    If a new dimension is created by the function it must be added at the end of the array.
    Otherwise the functions won't be compatible with :func:`xarray.apply_ufunc`.
    """

    def ess(self, ary, chain_axis=-2, draw_axis=-1, relative=False):
        """Compute the basic effective sample size on array-like inputs.

        Chains are not split and values are not rank normalized, which is the
        estimate used for the relative efficiency of importance sampling draws.

        Parameters
        ----------
        ary : array-like
        chain_axis : int or None, default -2
        draw_axis : int, default -1
        relative : bool, default False
        """
        ary, chain_axis, draw_axis = process_chain_none(np.asarray(ary), chain_axis, draw_axis)
        ary, _ = process_ary_axes(ary, [chain_axis, draw_axis])
        ess_array = make_ufunc(self._ess_basic, n_output=1, n_input=1, n_dims=2, ravel=False)
        return ess_array(ary, relative=relative)

    def psislw(self, ary, r_eff=1, axis=-1):
        """Compute log weights for Pareto-smoothed importance sampling (PSIS) method.

        Parameters
        ----------
        ary : array-like
        r_eff : float or array-like, default 1
            Scalar or one value per element of the batch shape of `ary`.
        axis : int, sequence of int or None, default -1

        Returns
        -------
        log_weights : array-like
            Same shape as `ary` but `axis` dimensions moved to the end
        khat : array-like
            Shape of `ary` minus dimensions indicated in `axis`
        """
        ary, axes = process_ary_axes(ary, axis)
        core_shape = ary.shape[len(ary.shape) - len(axes) :]
        r_eff = np.broadcast_to(np.asarray(r_eff, dtype=float), ary.shape[: -len(axes)])
        psl_ufunc = make_ufunc(
            self._psislw,
            n_output=2,
            n_input=2,
            n_dims=len(axes),
            ravel=False,
        )
        return psl_ufunc(ary, r_eff, out_shape=[core_shape, ()])

    def loo_pointwise(self, ary, log_weights, r_eff=1, axis=-1):
        """Compute pointwise PSIS-LOO-CV quantities on array-like inputs.

        Parameters
        ----------
        ary : array-like
            Log likelihood values.
        log_weights : array-like
            Normalized smoothed log weights, same shape as `ary`.
        r_eff : float or array-like, default 1
        axis : int, sequence of int or None, default -1

        Returns
        -------
        elpd_i, elpd_mcse_i, lpd_i : array-like
            Shape of `ary` minus dimensions indicated in `axis`
        """
        ary, axes = process_ary_axes(ary, axis)
        log_weights, _ = process_ary_axes(log_weights, axis)
        r_eff = np.broadcast_to(np.asarray(r_eff, dtype=float), ary.shape[: -len(axes)])
        loo_ufunc = make_ufunc(
            self._loo_pointwise,
            n_output=3,
            n_input=3,
            n_dims=len(axes),
            ravel=True,
        )
        return loo_ufunc(ary, log_weights, r_eff)

    def _loo_pointwise(self, ary, log_weights, r_eff):
        log_weights = np.ravel(log_weights)
        n_samples = ary.size
        lpd = logsumexp(ary, b_inv=n_samples)
        elpd = self._log_mean(ary, log_weights)
        elpd_mcse = self._se_log_mean(ary, log_weights, elpd) / np.sqrt(r_eff)
        return elpd, elpd_mcse, lpd

    def waic_pointwise(self, ary, axis=-1):
        """Compute pointwise WAIC quantities on array-like inputs.

        Returns
        -------
        elpd_i, p_i, lpd_i : array-like
            Shape of `ary` minus dimensions indicated in `axis`
        """
        ary, axes = process_ary_axes(ary, axis)
        n_samples = np.prod(ary.shape[-len(axes) :])
        axis = tuple(int(ax) for ax in axes)
        lpd = logsumexp(ary, b_inv=n_samples, axis=axis)
        p_waic = np.var(ary, axis=axis, ddof=1)
        return lpd - p_waic, p_waic, lpd

    def loo_pit(self, y, y_pred, log_weights, axis=-1):
        """Compute LOO-PIT values on array-like inputs.

        Parameters
        ----------
        y : array-like
            Observations, shape of `y_pred` minus dimensions indicated in `axis`.
        y_pred : array-like
            Posterior predictive draws.
        log_weights : array-like
            Normalized smoothed log weights, same shape as `y_pred`.
        axis : int, sequence of int or None, default -1

        Returns
        -------
        array-like
            ``P(y_pred <= y)`` under the importance weights, same shape as `y`.
        """
        y_pred, axes = process_ary_axes(y_pred, axis)
        log_weights, _ = process_ary_axes(log_weights, axis)
        axis = tuple(int(ax) for ax in axes)
        y = np.expand_dims(np.asarray(y), axis)
        selected = np.where(y_pred <= y, log_weights, -np.inf)
        with np.errstate(divide="ignore"):
            pit = np.exp(logsumexp(selected, axis=axis))
        return np.clip(pit, 0, 1)


array_stats = BaseArray()
