# pylint: disable=too-many-function-args
"""Diagnostic functions: effective sample size and Pareto smoothed importance sampling."""

import numpy as np

from posteriorkit.base.core import _CoreBase
from posteriorkit.base.stats_utils import logsumexp
from posteriorkit.base.stats_utils import not_valid as _not_valid

MIN_TAIL_LENGTH = 5


class _DiagnosticsBase(_CoreBase):
    """Class with numpy+scipy only diagnostic related functions."""

    def _ess(self, ary, relative=False):
        """Compute the effective sample size for a 2D array."""
        ary = np.asarray(ary, dtype=float)
        if (np.max(ary) - np.min(ary)) < np.finfo(float).resolution:  # pylint: disable=no-member
            return 1.0 if relative else ary.size
        n_chain, n_draw = ary.shape
        acov = self.autocov(ary, axis=1)
        chain_mean = ary.mean(axis=1)
        mean_var = np.mean(acov[:, 0]) * n_draw / (n_draw - 1.0)
        var_plus = mean_var * (n_draw - 1.0) / n_draw
        if n_chain > 1:
            var_plus += np.var(chain_mean, axis=None, ddof=1)

        rho_hat_t = np.zeros(n_draw)
        rho_hat_even = 1.0
        rho_hat_t[0] = rho_hat_even
        rho_hat_odd = 1.0 - (mean_var - np.mean(acov[:, 1])) / var_plus
        rho_hat_t[1] = rho_hat_odd

        # Geyer's initial positive sequence
        t = 1
        while t < (n_draw - 3) and (rho_hat_even + rho_hat_odd) > 0.0:
            rho_hat_even = 1.0 - (mean_var - np.mean(acov[:, t + 1])) / var_plus
            rho_hat_odd = 1.0 - (mean_var - np.mean(acov[:, t + 2])) / var_plus
            if (rho_hat_even + rho_hat_odd) >= 0:
                rho_hat_t[t + 1] = rho_hat_even
                rho_hat_t[t + 2] = rho_hat_odd
            t += 2

        max_t = t - 2
        if rho_hat_even > 0:
            rho_hat_t[max_t + 1] = rho_hat_even
        # Geyer's initial monotone sequence
        t = 1
        while t <= max_t - 2:
            if (rho_hat_t[t + 1] + rho_hat_t[t + 2]) > (rho_hat_t[t - 1] + rho_hat_t[t]):
                rho_hat_t[t + 1] = (rho_hat_t[t - 1] + rho_hat_t[t]) / 2.0
                rho_hat_t[t + 2] = rho_hat_t[t + 1]
            t += 2

        ess = n_chain * n_draw
        tau_hat = (
            -1.0 + 2.0 * np.sum(rho_hat_t[: max_t + 1]) + np.sum(rho_hat_t[max_t + 1 : max_t + 2])
        )
        tau_hat = max(tau_hat, 1 / np.log10(ess))
        ess = (1 if relative else ess) / tau_hat
        if np.isnan(rho_hat_t).any():
            ess = np.nan
        return ess

    def _ess_basic(self, ary, relative=False):
        """Compute the effective sample size of the raw values without splitting chains."""
        ary = np.asarray(ary)
        if ary.ndim == 1:
            ary = ary[None, :]
        if _not_valid(ary, min_chains=1, min_draws=4):
            return np.nan
        return self._ess(ary, relative=relative)

    @staticmethod
    def _psis_tail_length(n_samples, r_eff=1):
        """Number of largest weights used to fit the generalized Pareto tail."""
        return int(np.ceil(min(0.2 * n_samples, 3 * np.sqrt(n_samples / r_eff))))

    def _psislw(self, ary, r_eff=1):
        """Pareto smoothed importance sampling on one set of raw log weights.

        All draws of `ary` are pooled; the output keeps its shape.

        Parameters
        ----------
        ary : ndarray
            Raw log weights of a single observation.
        r_eff : float, default 1
            Relative efficiency of the draws.

        Returns
        -------
        log_weights : ndarray
            Normalized smoothed log weights, same shape as `ary`.
        khat : float
            Estimated Pareto tail shape. ``inf`` when the tail is too short to be fitted
            and ``nan`` when the weights are degenerate; the weights are only normalized
            in both cases.
        """
        shape = np.shape(ary)
        log_weights = np.array(ary, dtype=float).ravel()
        n_samples = log_weights.size

        if np.isnan(log_weights).any() or np.isposinf(log_weights).any():
            return log_weights.reshape(shape), np.nan

        log_weights -= np.max(log_weights)
        n_tail = self._psis_tail_length(n_samples, r_eff)
        if n_tail < MIN_TAIL_LENGTH:
            khat = np.inf
        else:
            ordered = np.argsort(log_weights)
            tail_ids = ordered[-n_tail:]
            draws_tail = log_weights[tail_ids]
            # largest value smaller than tail values
            cutoff = max(log_weights[ordered[-n_tail - 1]], np.log(np.finfo(float).tiny))
            if draws_tail[-1] - draws_tail[0] < np.finfo(float).tiny:
                khat = np.nan
            else:
                exp_cutoff = np.exp(cutoff)
                with np.errstate(divide="ignore", invalid="ignore"):
                    khat, sigma = self._gpdfit(np.exp(draws_tail) - exp_cutoff)
                    probs = np.arange(0.5, n_tail) / n_tail
                    smoothed = np.log(self._gpinv(probs, khat, sigma, exp_cutoff))
                if np.isfinite(khat) and np.all(np.isfinite(smoothed)):
                    log_weights[tail_ids] = smoothed
                    # truncate at the maximum raw log weight
                    log_weights[log_weights > 0] = 0

        log_weights -= logsumexp(log_weights)
        return log_weights.reshape(shape), khat

    @staticmethod
    def _gpdfit(ary):
        """Estimate the parameters for the Generalized Pareto Distribution (GPD).

        Empirical Bayes estimate for the parameters (kappa, sigma) of the generalized Pareto
        distribution given the data.

        The fit uses a prior for kappa to stabilize estimates for very small (effective)
        sample sizes. The weakly informative prior is a Gaussian centered at 0.5.
        See details in Vehtari et al., 2024 (https://doi.org/10.48550/arXiv.1507.02646)

        Parameters
        ----------
        ary : array
            sorted 1D data array

        Returns
        -------
        kappa : float
            estimated shape parameter
        sigma : float
            estimated scale parameter
        """
        prior_bs = 3
        prior_k = 10
        n = len(ary)
        m_est = 30 + int(n**0.5)

        b_ary = 1 - np.sqrt(m_est / (np.arange(1, m_est + 1, dtype=float) - 0.5))
        b_ary /= prior_bs * ary[int(n / 4 + 0.5) - 1]
        b_ary += 1 / ary[-1]

        k_ary = np.log1p(-b_ary[:, None] * ary).mean(axis=1)  # pylint: disable=no-member
        len_scale = n * (np.log(-(b_ary / k_ary)) - k_ary - 1)
        weights = 1 / np.exp(len_scale - len_scale[:, None]).sum(axis=1)

        # remove negligible weights
        real_idxs = weights >= 10 * np.finfo(float).eps
        if not np.all(real_idxs):
            weights = weights[real_idxs]
            b_ary = b_ary[real_idxs]
        weights /= weights.sum()

        # posterior mean for b
        b_post = np.sum(b_ary * weights)
        kappa = np.log1p(-b_post * ary).mean()  # pylint: disable=no-member
        sigma = -kappa / b_post
        # add prior for kappa
        kappa = (n * kappa + prior_k * 0.5) / (n + prior_k)

        return kappa, sigma

    @staticmethod
    def _gpinv(probs, kappa, sigma, mu):
        """Quantile function for generalized pareto distribution with location `mu`."""
        if sigma <= 0:
            return np.full_like(probs, np.nan)

        if kappa == 0:
            q = mu - sigma * np.log1p(-probs)
        else:
            q = mu + sigma * np.expm1(-kappa * np.log1p(-probs)) / kappa

        return q
