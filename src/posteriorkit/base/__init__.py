"""Computational functions in NumPy and SciPy.

Functions implemented in this folder should only depend on NumPy and SciPy,
with the exception of the DataArray wrappers which also use xarray.
"""

from posteriorkit.base.array import array_stats
from posteriorkit.base.dataarray import dataarray_stats
