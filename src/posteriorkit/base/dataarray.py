"""Class with dataarray functions.

"dataarray" functions take :class:`xarray.DataArray` as inputs.
"""

import numpy as np
from xarray import apply_ufunc

from posteriorkit.base.array import array_stats
from posteriorkit.validate import validate_dims, validate_dims_chain_draw_axis


class BaseDataArray:
    """Class with numpy+scipy only functions that take DataArray inputs."""

    def __init__(self, array_class=None):
        self.array_class = array_stats if array_class is None else array_class

    def ess(self, da, sample_dims=None, relative=False):
        """Compute the basic ess on DataArray input."""
        dims, chain_axis, draw_axis = validate_dims_chain_draw_axis(sample_dims)
        return apply_ufunc(
            self.array_class.ess,
            da,
            input_core_dims=[dims],
            output_core_dims=[[]],
            kwargs={"relative": relative, "chain_axis": chain_axis, "draw_axis": draw_axis},
        )

    def psislw(self, da, r_eff=1, dim=None):
        """Compute log weights for Pareto-smoothed importance sampling (PSIS) method."""
        dims = validate_dims(dim)
        log_weights, khat = apply_ufunc(
            self.array_class.psislw,
            da,
            r_eff,
            input_core_dims=[dims, []],
            output_core_dims=[dims, []],
            kwargs={"axis": np.arange(-len(dims), 0, 1)},
        )
        return log_weights, khat.rename("pareto_shape")

    def loo_pointwise(self, da, log_weights, r_eff=1, dim=None):
        """Compute pointwise elpd, its mcse and lpd with PSIS-LOO-CV on DataArray input."""
        dims = validate_dims(dim)
        return apply_ufunc(
            self.array_class.loo_pointwise,
            da,
            log_weights,
            r_eff,
            input_core_dims=[dims, dims, []],
            output_core_dims=[[], [], []],
            kwargs={"axis": np.arange(-len(dims), 0, 1)},
        )

    def waic_pointwise(self, da, dim=None):
        """Compute pointwise elpd, p and lpd with WAIC on DataArray input."""
        dims = validate_dims(dim)
        return apply_ufunc(
            self.array_class.waic_pointwise,
            da,
            input_core_dims=[dims],
            output_core_dims=[[], [], []],
            kwargs={"axis": np.arange(-len(dims), 0, 1)},
        )

    def loo_pit(self, y, y_pred, log_weights, dim=None):
        """Compute LOO-PIT values on DataArray input."""
        dims = validate_dims(dim)
        return apply_ufunc(
            self.array_class.loo_pit,
            y,
            y_pred,
            log_weights,
            input_core_dims=[[], dims, dims],
            output_core_dims=[[]],
            kwargs={"axis": np.arange(-len(dims), 0, 1)},
        )


dataarray_stats = BaseDataArray(array_class=array_stats)
