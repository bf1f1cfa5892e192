"""Conversion of raw sampler output into datasets and inference data."""

from collections.abc import Mapping, Sequence
from numbers import Number
from typing import Protocol, runtime_checkable

import numpy as np
import xarray as xr
from arviz_base import rcParams

from posteriorkit.data.dataset import Dataset, make_attrs
from posteriorkit.data.dimensions import ndarray_to_dataarray
from posteriorkit.data.inference_data import InferenceData
from posteriorkit.errors import GroupNotFoundError, VariableNotFoundError

__all__ = [
    "SampleSource",
    "convert_to_dataset",
    "convert_to_inference_data",
    "dict_of_arrays",
    "dict_to_dataset",
    "from_dict",
]

NON_SAMPLE_GROUPS = ("observed_data", "constant_data", "predictions_constant_data")
PRIOR_DERIVED_GROUPS = ("prior_predictive", "sample_stats_prior")


@runtime_checkable
class SampleSource(Protocol):
    """Sampler output that can export its draws as a mapping of arrays.

    Arrays must have shape ``(chain, draw, *var_shape)``. Adapters for sampling
    libraries implement this method and are then accepted by every converter.
    """

    def to_dict_of_arrays(self):
        """Return a mapping from variable name to array of draws."""


def dict_to_dataset(
    data,
    *,
    attrs=None,
    library=None,
    coords=None,
    dims=None,
    default_dims=None,
    index_origin=1,
):
    """Convert a dictionary of arrays into a :class:`~posteriorkit.Dataset`.

    Parameters
    ----------
    data : dict of {hashable: array_like}
    attrs : dict, optional
        Attributes added to the creation metadata.
    library : module or str, optional
        Library used for the inference, stored as provenance metadata.
    coords : dict of {hashable: array_like}, optional
        Index values for each dimension.
    dims : dict of {hashable: list}, optional
        Dimension specifiers for each variable, after the default dimensions.
    default_dims : list of hashable, optional
        Leading dimensions of every variable. Defaults to ``rcParams["data.sample_dims"]``.
        Use an empty list for data without sample dimensions.
    index_origin : int, default 1
        Starting value of generated indexes and dimension names.

    Returns
    -------
    Dataset
    """
    if default_dims is None:
        default_dims = rcParams["data.sample_dims"]
    dims = {} if dims is None else dims
    variables = {
        var_name: ndarray_to_dataarray(
            values,
            var_name,
            dims=dims.get(var_name),
            coords=coords,
            default_dims=default_dims,
            index_origin=index_origin,
        )
        for var_name, values in data.items()
    }
    return Dataset(variables, attrs=make_attrs(attrs, library=library))


def _extract_groups(data):
    """Move variables referenced by name out of the posterior or prior groups."""
    data = {
        group: list(values) if _is_name_list(values) else dict(values)
        for group, values in data.items()
    }
    for group, values in list(data.items()):
        if not isinstance(values, list):
            continue
        source_name = "prior" if group in PRIOR_DERIVED_GROUPS else "posterior"
        source = data.get(source_name)
        if not isinstance(source, dict):
            available = [name for name, value in data.items() if isinstance(value, dict)]
            raise GroupNotFoundError(source_name, available)
        for var_name in values:
            if var_name not in source:
                raise VariableNotFoundError(var_name, source)
        data[group] = {var_name: source.pop(var_name) for var_name in values}
    return data


def _is_name_list(values):
    return (
        isinstance(values, Sequence)
        and not isinstance(values, str)
        and all(isinstance(value, str) for value in values)
        and len(values) > 0
    )


def from_dict(
    data,
    *,
    coords=None,
    dims=None,
    library=None,
    attrs=None,
    sample_dims=None,
    index_origin=1,
):
    """Convert nested dictionaries into :class:`~posteriorkit.InferenceData`.

    Parameters
    ----------
    data : dict of {str: dict or list of str}
        Group name to dictionary of arrays. A group can also be a list of variable
        names, which are then moved out of the ``posterior`` group (``prior`` for
        ``prior_predictive`` and ``sample_stats_prior``).
    coords, dims, library, attrs, index_origin
        Passed to :func:`dict_to_dataset` for every group.
    sample_dims : list of hashable, optional
        Default dimensions for groups with draws. ``observed_data``, ``constant_data``
        and ``predictions_constant_data`` never have default dimensions.

    Returns
    -------
    InferenceData

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from posteriorkit import from_dict

        rng = np.random.default_rng()
        idata = from_dict(
            {
                "posterior": {
                    "mu": rng.normal(size=(4, 100)),
                    "log_lik": rng.normal(size=(4, 100, 8)),
                },
                "log_likelihood": ["log_lik"],
                "observed_data": {"y": rng.normal(size=8)},
            },
            dims={"log_lik": ["obs"], "y": ["obs"]},
        )
    """
    groups = {}
    for group, group_data in _extract_groups(data).items():
        default_dims = [] if group in NON_SAMPLE_GROUPS else sample_dims
        groups[group] = dict_to_dataset(
            group_data,
            attrs=attrs,
            library=library,
            coords=coords,
            dims=dims,
            default_dims=default_dims,
            index_origin=index_origin,
        )
    return InferenceData(groups)


def dict_of_arrays(records):
    """Convert nested sequences of per-draw records into a dictionary of arrays.

    Parameters
    ----------
    records : sequence
        Nested sequences, e.g. ``records[chain][draw]``, whose leaves are mappings
        from variable name to value. All leaves must have the same keys.

    Returns
    -------
    dict of {hashable: ndarray}
        Arrays with the nesting shape followed by the shape of each value.
    """
    first = records
    while not isinstance(first, Mapping):
        if len(first) == 0:
            raise ValueError("Can not convert empty records")
        first = first[0]

    def _collect(node, key):
        if isinstance(node, Mapping):
            return np.asarray(node[key])
        return np.stack([_collect(child, key) for child in node])

    return {key: _collect(records, key) for key in first}


def convert_to_inference_data(obj, *, group="posterior", **kwargs):
    """Convert a supported object to :class:`~posteriorkit.InferenceData`.

    Parameters
    ----------
    obj : object
        - InferenceData: returned unchanged
        - xarray.DataTree: one group per child node
        - Dataset, xarray.Dataset, xarray.DataArray: stored in `group`
        - SampleSource: its ``to_dict_of_arrays()`` output stored in `group`
        - dict: mapping of arrays stored in `group`
        - ndarray or number: stored in `group` as variable ``x``
    group : str, default "posterior"
    **kwargs
        Passed to :func:`from_dict` when the input is not already labelled.

    Returns
    -------
    InferenceData
    """
    if isinstance(obj, InferenceData):
        return obj
    if isinstance(obj, xr.DataTree):
        return InferenceData.from_datatree(obj)
    if isinstance(obj, Dataset | xr.Dataset):
        return InferenceData({group: obj})
    if isinstance(obj, xr.DataArray):
        name = "x" if obj.name is None else obj.name
        return InferenceData({group: Dataset({name: obj})})
    if isinstance(obj, SampleSource):
        return from_dict({group: obj.to_dict_of_arrays()}, **kwargs)
    if isinstance(obj, Mapping):
        return from_dict({group: obj}, **kwargs)
    if isinstance(obj, np.ndarray | Number):
        return from_dict({group: {"x": np.asarray(obj)}}, **kwargs)
    raise TypeError(f"Can not convert {type(obj).__name__} to InferenceData")


def convert_to_dataset(obj, *, group="posterior", **kwargs):
    """Convert a supported object to :class:`~posteriorkit.Dataset`.

    Accepts the same inputs as :func:`convert_to_inference_data` and returns `group`.

    Raises
    ------
    GroupNotFoundError
        If `obj` has groups but not `group`.
    """
    if isinstance(obj, Dataset):
        return obj
    if isinstance(obj, xr.Dataset):
        return Dataset(obj)
    return convert_to_inference_data(obj, group=group, **kwargs)[group]
