"""Resolve dimension names and coordinate values for raw arrays.

Every array entering a :class:`~posteriorkit.Dataset` goes through this module. A dimension
specifier is either a name, a ``(name, index_values)`` pair, a 1D
:class:`xarray.DataArray` or :class:`pandas.Index` carrying its own values, or ``None``
to have the name generated.
"""

from collections.abc import Hashable, Mapping

import numpy as np
import pandas as pd
import xarray as xr
from arviz_base import generate_dims_coords

from posteriorkit.errors import DimensionMismatchError

__all__ = ["as_dimension", "generate_dims", "index_to_indices", "ndarray_to_dataarray"]

SAMPLE_DIMS = ("chain", "draw")


def _parse_dim_spec(spec):
    """Split a dimension specifier into its name and optional index values."""
    if spec is None:
        return None, None
    if isinstance(spec, xr.DataArray):
        if spec.ndim != 1:
            raise DimensionMismatchError(
                f"DataArray dimension specifiers must be 1D, got dims {spec.dims}"
            )
        return spec.dims[0], spec.values
    if isinstance(spec, pd.Index):
        if spec.name is None:
            raise ValueError("pandas.Index dimension specifiers must be named")
        return spec.name, spec.values
    if isinstance(spec, tuple):
        if len(spec) != 2:
            raise ValueError(f"Dimension specifier tuples must be (name, index), got {spec!r}")
        return spec[0], None if spec[1] is None else np.asarray(spec[1])
    if isinstance(spec, Hashable):
        return spec, None
    raise TypeError(f"Unsupported dimension specifier {spec!r}")


def _default_dims_for(array, default_dims):
    default_dims = [] if default_dims is None else list(default_dims)
    if all(dim in default_dims for dim in SAMPLE_DIMS) and array.ndim < 2:
        # single chain vectors and scalars get a leading chain axis
        array = np.atleast_1d(array)[np.newaxis, ...]
    return array, default_dims


def generate_dims(array, name, dims=None, default_dims=None, index_origin=1):
    """Generate the dimension names of `array`.

    Parameters
    ----------
    array : array-like
    name : hashable
        Variable name, used for the automatically generated dimension names.
    dims : sequence, optional
        Specifiers for the dimensions after `default_dims`. Missing entries and ``None``
        are named ``"{name}_dim_{position}"`` where position counts the non default
        dimensions starting at `index_origin`.
    default_dims : sequence of hashable, optional
        Names of the leading dimensions, e.g. ``["chain", "draw"]``.
    index_origin : int, default 1

    Returns
    -------
    list of hashable

    Raises
    ------
    DimensionMismatchError
        When more dimension specifiers are given than the array has axes left after
        the default dimensions.
    """
    ndim = np.ndim(array)
    default_dims = [] if default_dims is None else list(default_dims)
    dims = [] if dims is None else list(dims)
    n_free = ndim - len(default_dims)
    if n_free < 0 or len(dims) > n_free:
        raise DimensionMismatchError(
            f"Variable '{name}' has {ndim} dimensions but {len(default_dims)} default "
            f"dimensions {default_dims} and {len(dims)} extra dimensions {dims} were provided"
        )
    names = list(default_dims)
    for i in range(n_free):
        dim_name, _ = _parse_dim_spec(dims[i] if i < len(dims) else None)
        if dim_name is None:
            dim_name = f"{name}_dim_{i + index_origin}"
        names.append(dim_name)
    return names


def as_dimension(spec, length, coords=None, index_origin=1):
    """Resolve a single dimension into its name and index values.

    Index values in `coords` override the ones carried by `spec`; without either the
    index is ``index_origin, ..., index_origin + length - 1``.

    Returns
    -------
    name : hashable
    index : numpy.ndarray
    """
    name, index = _parse_dim_spec(spec)
    if name is None:
        raise ValueError("Dimension specifier has no name")
    if coords is not None and name in coords:
        index = coords[name]
    if index is None:
        return name, np.arange(index_origin, index_origin + length)
    index = np.asarray(index)
    if index.ndim != 1 or index.size != length:
        raise DimensionMismatchError(
            f"Dimension '{name}' has length {length} but its index has shape {index.shape}"
        )
    return name, index


def ndarray_to_dataarray(array, name, dims=None, coords=None, default_dims=None, index_origin=1):
    """Convert a raw array into a :class:`xarray.DataArray` with resolved dimensions.

    Names and carried index values are resolved here, the remaining coordinate values
    are generated by :func:`arviz_base.generate_dims_coords`.

    Parameters
    ----------
    array : array-like
    name : hashable
    dims : sequence, optional
        Specifiers for the non default dimensions, see :func:`generate_dims`.
    coords : mapping, optional
        Dimension name to index values. Takes precedence over values in `dims`.
    default_dims : sequence of hashable, optional
        Leading dimensions. If both ``chain`` and ``draw`` are among them, arrays with
        fewer than 2 dimensions get a singleton ``chain`` dimension prepended.
    index_origin : int, default 1

    Returns
    -------
    xarray.DataArray
    """
    array = np.asarray(array)
    array, default_dims = _default_dims_for(array, default_dims)
    coords = {} if coords is None else coords
    dims = [] if dims is None else list(dims)
    dim_names = generate_dims(array, name, dims, default_dims, index_origin=index_origin)
    specs = list(default_dims) + dims + [None] * (len(dim_names) - len(default_dims) - len(dims))
    if len(set(dim_names)) != len(dim_names):
        raise DimensionMismatchError(f"Variable '{name}' repeats dimension names: {dim_names}")
    known_coords = {}
    for axis, (dim_name, spec) in enumerate(zip(dim_names, specs)):
        _, carried = _parse_dim_spec(spec)
        if carried is not None or dim_name in coords:
            _, known_coords[dim_name] = as_dimension(
                (dim_name, carried), array.shape[axis], coords, index_origin=index_origin
            )
    dim_names, da_coords = generate_dims_coords(
        array.shape,
        name,
        dims=dim_names,
        coords=known_coords,
        index_origin=index_origin,
        check_conventions=False,
    )
    return xr.DataArray(array, dims=dim_names, coords=da_coords, name=name)


def index_to_indices(index):
    """Turn a scalar selector into a one element list so the dimension is kept."""
    if np.ndim(index) == 0 and isinstance(index, np.ndarray | xr.DataArray):
        return [index.item()]
    if isinstance(index, slice | list | np.ndarray | pd.Index | xr.DataArray | Mapping):
        return index
    return [index]
