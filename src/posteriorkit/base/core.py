"""Core stats functions.

Functions that are needed by multiple "organization classes"
should go here. e.g. autocov is used for ess and the log-mean helpers for loo.
"""

import numpy as np
from scipy.fft import next_fast_len

from posteriorkit.base.stats_utils import logsumexp


class _CoreBase:
    def rfft(self, ary, n, axis=-1):  # pylint: disable=no-self-use
        return np.fft.rfft(ary, n=n, axis=axis)

    def irfft(self, ary, n, axis=-1):  # pylint: disable=no-self-use
        return np.fft.irfft(ary, n=n, axis=axis)

    def autocov(self, ary, axis=-1):
        """Compute autocovariance estimates for every lag for the input array.

        Parameters
        ----------
        ary : array-like
        axis : int, default -1
        """
        if not isinstance(axis, int):
            raise ValueError("Only integer values are allowed for `axis` in autocov.")
        axis = axis if axis >= 0 else ary.ndim + axis
        n = ary.shape[axis]
        m = next_fast_len(2 * n)

        ary = ary - ary.mean(axis, keepdims=True)

        ifft_ary = self.rfft(ary, n=m, axis=axis)
        ifft_ary *= np.conjugate(ifft_ary)

        shape = tuple(
            slice(None) if dim_idx != axis else slice(0, n) for dim_idx in range(ary.ndim)
        )
        cov = self.irfft(ifft_ary, n=m, axis=axis)[shape]
        cov /= n

        return cov

    @staticmethod
    def _log_mean(log_x, log_weights):
        """Log of the weighted mean of ``exp(log_x)`` for normalized `log_weights`."""
        return logsumexp(log_x + log_weights)

    @staticmethod
    def _se_log_mean(log_x, log_weights, log_mean):
        """Standard error of the log of a self-normalized importance sampling mean.

        The variance of the mean follows Owen (2013), eq. 9.9, and the delta method maps it
        to the variance of its logarithm.
        """
        high = np.maximum(log_x, log_mean)
        low = np.minimum(log_x, log_mean)
        with np.errstate(divide="ignore"):
            log_abs_diff = high + np.log1p(-np.exp(low - high))
        log_var_mean = logsumexp(2 * (log_weights + log_abs_diff))
        return np.exp(log_var_mean / 2 - log_mean)
