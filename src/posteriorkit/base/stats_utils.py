"""Stats-utility functions shared by the array layer."""

import logging
from collections.abc import Sequence

import numpy as np
from scipy.interpolate import CubicSpline

__all__ = ["logsumexp", "make_ufunc", "not_valid", "smooth_data"]

_log = logging.getLogger(__name__)


def make_ufunc(func, n_dims=2, n_output=1, n_input=1, ravel=True):
    """Make ufunc from a function working on the trailing core dimensions.

    Parameters
    ----------
    func : callable
    n_dims : int, optional
        Number of core dimensions not broadcasted. Dimensions are taken from the end.
        At minimum n_dims > 0.
    n_output : int, optional
        Number of results returned by `func`.
        If n_output > 1, ufunc returns a tuple of arrays else returns an array.
    n_input : int, optional
        Number of **array** inputs to func, i.e. ``n_input=2`` means that func is called
        with ``func(ary1[idx], ary2[idx], *args, **kwargs)``. All array inputs must share
        the batch shape of the first one, core dimensions are optional for the rest.
    ravel : bool, optional
        If true, ravel the core dimensions of the first input before calling `func`.

    Returns
    -------
    callable
        ufunc wrapper for `func`. It accepts an ``out_shape`` keyword with the
        core shape of each output, ``()`` by default.
    """
    if n_dims < 1:
        raise TypeError("n_dims must be one or higher.")

    def _ufunc(*args, out_shape=None, **kwargs):
        arys = args[:n_input]
        element_shape = arys[0].shape[:-n_dims]
        if out_shape is None:
            out_shape = [()] * n_output
        out = tuple(np.empty((*element_shape, *shape)) for shape in out_shape)
        for idx in np.ndindex(element_shape):
            first = arys[0][idx]
            arys_idx = [first.ravel() if ravel else first]
            arys_idx.extend(ary[idx] for ary in arys[1:])
            results = func(*arys_idx, *args[n_input:], **kwargs)
            if n_output == 1:
                results = (results,)
            for i, res in enumerate(results):
                out[i][idx] = np.asarray(res)
        return out if n_output > 1 else out[0]

    _ufunc.__doc__ = (
        f"Loop over the batch dimensions calling {getattr(func, '__name__', func)!s} "
        f"on the last {n_dims} core dimension(s)."
    )
    return _ufunc


def logsumexp(ary, *, b=None, b_inv=None, axis=None, keepdims=False):
    """Stable logsumexp when b >= 0 and b is scalar.

    b_inv overwrites b unless b_inv is None.
    """
    ary = np.asarray(ary)
    if ary.dtype.kind in "iub":
        ary = ary.astype(np.float64)
    shape_len = ary.ndim
    if isinstance(axis, Sequence):
        axis = tuple(axis_i if axis_i >= 0 else shape_len + axis_i for axis_i in axis)
    elif axis is not None:
        axis = axis if axis >= 0 else shape_len + axis
    if b_inv == 0:
        return np.full_like(ary.sum(axis=axis, keepdims=keepdims), np.inf)
    if b_inv is None and b == 0:
        return np.full_like(ary.sum(axis=axis, keepdims=keepdims), -np.inf)
    ary_max = np.max(ary, axis=axis, keepdims=True)
    # all -inf slices would give nan after the shift
    ary_max = np.where(np.isfinite(ary_max), ary_max, 0)
    out = np.log(np.sum(np.exp(ary - ary_max), axis=axis, keepdims=keepdims))
    if b_inv is not None:
        ary_max = ary_max - np.log(b_inv)
    elif b:
        ary_max = ary_max + np.log(b)
    out = out + (ary_max if keepdims else np.squeeze(ary_max, axis=axis))
    return out if np.ndim(out) else out.dtype.type(out)


def not_valid(ary, check_nan=True, check_shape=True, min_chains=1, min_draws=4):
    """Validate a ``(chain, draw)`` array before computing a diagnostic.

    Parameters
    ----------
    ary : numpy.ndarray
    check_nan : bool
        Check if any value contains NaN.
    check_shape : bool
        Check if array has enough chains and draws.
        For 1D arrays (shape = (n,)) assumes chain equals 1.
    min_chains, min_draws : int

    Returns
    -------
    bool
    """
    ary = np.asarray(ary)

    isnan = np.isnan(ary)
    if isnan.all():
        return True

    nan_error = False
    if check_nan and isnan.any():
        _log.debug("Array contains NaN-value.")
        nan_error = True

    shape_error = False
    if check_shape:
        shape = ary.shape
        n_chains, n_draws = (1, shape[0]) if len(shape) < 2 else shape[:2]
        if n_chains < min_chains or n_draws < min_draws:
            _log.debug(
                "Shape validation failed: input_shape: %s, minimum_shape: (chains=%s, draws=%s)",
                shape,
                min_chains,
                min_draws,
            )
            shape_error = True

    return nan_error or shape_error


def smooth_data(obs_vals, pp_vals):
    """Smooth discrete data with cubic splines along the observations.

    Parameters
    ----------
    obs_vals : array-like
        1D array of observations.
    pp_vals : array-like
        2D ``(sample, observation)`` array of predictions.

    Returns
    -------
    obs_vals, pp_vals : ndarray
        Smoothed values with the input shapes.
    """
    obs_vals = np.asarray(obs_vals, dtype=float)
    pp_vals = np.asarray(pp_vals, dtype=float)
    if obs_vals.size < 2:
        raise ValueError("Smoothing discrete data needs at least 2 observations")
    x = np.linspace(0, 1, len(obs_vals))
    csi = CubicSpline(x, obs_vals)
    obs_vals = csi(np.linspace(0.01, 0.99, len(obs_vals)))

    x = np.linspace(0, 1, pp_vals.shape[1])
    csi = CubicSpline(x, pp_vals, axis=1)
    pp_vals = csi(np.linspace(0.01, 0.99, pp_vals.shape[1]))

    return obs_vals, pp_vals
