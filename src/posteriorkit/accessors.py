"""posteriorkit accessors for xarray objects."""

import xarray as xr

from posteriorkit.utils import get_function

__all__ = ["PkStatsDaAccessor", "PkStatsDsAccessor"]


def update_dims(dims, da):
    """Update dims to contain only those present in da."""
    if dims is None:
        return None
    if isinstance(dims, str):
        dims = [dims]
    return [dim for dim in dims if dim in da.dims]


class _BaseAccessor:
    """Base accessor class."""

    def __init__(self, xarray_obj):
        self._obj = xarray_obj

    def _apply(self, func, **kwargs):
        raise NotImplementedError("_apply private method needs to be implemented in subclasses")

    def ess(self, dims=None, relative=False):
        """Compute the basic effective sample size, without splitting chains."""
        return self._apply("ess", sample_dims=dims, relative=relative)


@xr.register_dataarray_accessor("pkstats")
class PkStatsDaAccessor(_BaseAccessor):
    """posteriorkit accessor class for DataArrays."""

    def _apply(self, func, **kwargs):
        """Apply function to DataArray input."""
        if isinstance(func, str):
            func = get_function(func)
        return func(self._obj, **kwargs)

    def psislw(self, r_eff=1, dims=None):
        """Pareto smooth the log weights, returning them and the Pareto shape.

        No validation nor warnings, see :func:`~posteriorkit.psis` for that.
        """
        return self._apply("psislw", r_eff=r_eff, dim=dims)


@xr.register_dataset_accessor("pkstats")
class PkStatsDsAccessor(_BaseAccessor):
    """posteriorkit accessor class for Datasets.

    Notes
    -----
    Whenever "dims" indicates a set of dimensions that are to be reduced, the behaviour
    should be to reduce all present dimensions and ignore the ones not present.
    """

    def _apply(self, func, **kwargs):
        """Apply a function to all variables subsetting dims to existing dimensions."""
        if isinstance(func, str):
            func = get_function(func)
        dims = kwargs.pop("sample_dims", None)
        return xr.Dataset(
            {
                var_name: func(da, sample_dims=update_dims(dims, da), **kwargs)
                for var_name, da in self._obj.items()
            }
        )
