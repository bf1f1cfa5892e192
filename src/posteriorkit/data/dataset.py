"""Immutable labelled container of named-dimension arrays."""

import warnings
from collections.abc import Mapping
from importlib.metadata import PackageNotFoundError, version
from types import MappingProxyType, ModuleType

import arviz_base as azb
import numpy as np
import xarray as xr

from posteriorkit.data.dimensions import index_to_indices, ndarray_to_dataarray
from posteriorkit.errors import DimensionMismatchError, VariableNotFoundError

__all__ = ["Dataset", "make_attrs"]


def _creation_library_version():
    try:
        return version("posteriorkit")
    except PackageNotFoundError:
        return "unknown"


def make_attrs(attrs=None, library=None):
    """Make standard attributes to attach to datasets.

    Wraps :func:`arviz_base.make_attrs`, recording this package as the creation library.

    Parameters
    ----------
    attrs : dict, optional
        Additional attributes, they take precedence over the defaults.
    library : module or str, optional
        Library used to perform the inference. The version is recorded for modules.

    Returns
    -------
    dict
    """
    inference_library = library if isinstance(library, ModuleType) else None
    default_attrs = azb.make_attrs(inference_library=inference_library)
    default_attrs["creation_library"] = "posteriorkit"
    default_attrs["creation_library_version"] = _creation_library_version()
    if library is not None and inference_library is None:
        default_attrs["inference_library"] = str(library)
    if attrs is not None:
        default_attrs.update(attrs)
    return default_attrs


def _freeze(ds):
    """Make the data of every variable read only."""
    for variable in ds.variables.values():
        if isinstance(variable.data, np.ndarray):
            variable.data.flags.writeable = False
    return ds


def _as_dataarray(name, value):
    if isinstance(value, xr.DataArray):
        return value.rename(name)
    if isinstance(value, xr.Variable):
        return xr.DataArray(value, name=name)
    if isinstance(value, tuple) and len(value) == 2:
        dims, values = value
        return xr.DataArray(np.asarray(values), dims=dims, name=name)
    return ndarray_to_dataarray(value, name)


def check_shared_dims(named_arrays):
    """Check arrays sharing a dimension name agree on its length and index values.

    Parameters
    ----------
    named_arrays : iterable of (hashable, xarray.DataArray)

    Raises
    ------
    DimensionMismatchError
    """
    seen = {}
    for name, da in named_arrays:
        for dim, size in da.sizes.items():
            index = da.indexes.get(dim)
            if dim not in seen:
                seen[dim] = (name, size, index)
                continue
            ref_name, ref_size, ref_index = seen[dim]
            if size != ref_size:
                raise DimensionMismatchError(
                    f"Dimension '{dim}' has length {ref_size} in '{ref_name}' "
                    f"but length {size} in '{name}'"
                )
            if ref_index is None:
                seen[dim] = (name, size, index)
            elif index is not None and not ref_index.equals(index):
                raise DimensionMismatchError(
                    f"Dimension '{dim}' has different index values in '{ref_name}' and '{name}'"
                )


class Dataset(Mapping):
    """Immutable mapping from variable name to :class:`xarray.DataArray`.

    All variables agree on the length and index values of the dimensions they share.
    Every dataset carries creation metadata in its attributes (``created_at`` and the
    creating library), plus any extra attributes given at construction.

    Parameters
    ----------
    data : mapping or xarray.Dataset or Dataset, optional
        Mapping values can be :class:`xarray.DataArray`, ``(dims, values)`` tuples or
        array-likes, the latter go through :func:`~posteriorkit.data.ndarray_to_dataarray`.
    attrs : mapping, optional
        Attributes added on top of the existing ones.

    Raises
    ------
    DimensionMismatchError
        When two variables disagree on a shared dimension.

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from posteriorkit import Dataset

        ds = Dataset({"mu": (("chain", "draw"), np.zeros((4, 100)))}, attrs={"note": "x"})
        ds["mu"]
    """

    __slots__ = ("_ds",)

    def __init__(self, data=None, attrs=None):
        if data is None:
            data = {}
        if isinstance(data, Dataset):
            ds = data._ds.copy()
        elif isinstance(data, xr.Dataset):
            ds = data.copy()
        elif isinstance(data, Mapping):
            variables = {name: _as_dataarray(name, value) for name, value in data.items()}
            check_shared_dims(variables.items())
            ds = xr.Dataset(variables)
        else:
            raise TypeError(f"Can not build a Dataset from {type(data)}")
        base_attrs = dict(ds.attrs)
        if "created_at" not in base_attrs:
            base_attrs = make_attrs(base_attrs)
        if attrs is not None:
            base_attrs.update(attrs)
        ds.attrs = base_attrs
        self._ds = _freeze(ds.copy(deep=True))

    def __getitem__(self, key):
        try:
            return self._ds.data_vars[key]
        except KeyError:
            raise VariableNotFoundError(key, self._ds.data_vars) from None

    def __iter__(self):
        return iter(self._ds.data_vars)

    def __len__(self):
        return len(self._ds.data_vars)

    def __contains__(self, key):
        return key in self._ds.data_vars

    def __eq__(self, other):
        if not isinstance(other, Dataset):
            return NotImplemented
        return self._ds.equals(other.to_xarray())

    __hash__ = None

    def __repr__(self):
        return repr(self._ds).replace("<xarray.Dataset>", "<posteriorkit.Dataset>", 1)

    @property
    def dims(self):
        """Dimension names, in order of first appearance."""
        return tuple(self._ds.sizes)

    @property
    def sizes(self):
        """Mapping from dimension name to length."""
        return MappingProxyType(dict(self._ds.sizes))

    @property
    def coords(self):
        """Mapping from dimension name to its index values."""
        return MappingProxyType({dim: self._ds.indexes[dim] for dim in self._ds.indexes})

    @property
    def attrs(self):
        """Read only view of the dataset metadata."""
        return MappingProxyType(self._ds.attrs)

    def to_xarray(self):
        """Return a writable deep copy of the data as :class:`xarray.Dataset`."""
        return self._ds.copy(deep=True)

    def with_attrs(self, **attrs):
        """Return a new dataset with `attrs` added to its metadata."""
        return Dataset(self._ds, attrs=attrs)

    def _check_indexers(self, indexers, missing_dims):
        missing = [dim for dim in indexers if dim not in self._ds.dims]
        if not missing:
            return indexers
        if missing_dims == "raise":
            raise DimensionMismatchError(
                f"Dimensions {missing} do not exist. Expected one or more of {self.dims}"
            )
        if missing_dims == "warn":
            warnings.warn(
                f"Dimensions {missing} do not exist. Expected one or more of {self.dims}",
                UserWarning,
                stacklevel=3,
            )
        elif missing_dims != "ignore":
            raise ValueError(
                f"missing_dims must be one of 'raise', 'warn' or 'ignore', got {missing_dims!r}"
            )
        return {dim: value for dim, value in indexers.items() if dim not in missing}

    def _prepare_indexers(self, indexers, indexers_kwargs, drop, missing_dims):
        indexers = {**(indexers or {}), **indexers_kwargs}
        indexers = self._check_indexers(indexers, missing_dims)
        if not drop:
            indexers = {dim: index_to_indices(value) for dim, value in indexers.items()}
        return indexers

    def sel(self, indexers=None, *, drop=False, missing_dims="raise", **indexers_kwargs):
        """Select by index labels.

        Parameters
        ----------
        indexers : mapping, optional
            Dimension name to label, list of labels or slice.
        drop : bool, default False
            If False, scalar labels keep the dimension with length 1.
        missing_dims : {"raise", "warn", "ignore"}, default "raise"
            What to do with dimensions not present in any variable.
        **indexers_kwargs
            Indexers given as keywords.

        Returns
        -------
        Dataset
        """
        indexers = self._prepare_indexers(indexers, indexers_kwargs, drop, missing_dims)
        return Dataset(self._ds.sel(indexers, drop=drop))

    select = sel

    def isel(self, indexers=None, *, drop=False, missing_dims="raise", **indexers_kwargs):
        """Select by position, see :meth:`sel` for the arguments."""
        indexers = self._prepare_indexers(indexers, indexers_kwargs, drop, missing_dims)
        return Dataset(self._ds.isel(indexers, drop=drop))

    def merge(self, *others):
        """Merge datasets, keeping the first variable for each name.

        Dimensions are unioned. Attributes are the ones of this dataset.

        Raises
        ------
        DimensionMismatchError
            If the datasets disagree on a shared dimension.
        """
        datasets = [self, *(Dataset(other) for other in others)]
        check_shared_dims((name, da) for ds in datasets for name, da in ds.items())
        variables = {}
        for ds in datasets:
            for name, da in ds.items():
                variables.setdefault(name, da)
        merged = xr.Dataset(variables)
        merged.attrs = dict(self._ds.attrs)
        return Dataset(merged)
