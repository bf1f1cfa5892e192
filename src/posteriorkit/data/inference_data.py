"""Container of named groups of datasets following the inference data schema."""

import warnings
from collections.abc import Mapping

import xarray as xr

from posteriorkit.data.dataset import Dataset
from posteriorkit.errors import (
    DimensionMismatchError,
    GroupNotFoundError,
    InferenceDataSchemaError,
)

__all__ = ["InferenceData", "SUPPORTED_GROUPS", "WARMUP_GROUPS"]

SUPPORTED_GROUPS = (
    "posterior",
    "posterior_predictive",
    "predictions",
    "log_likelihood",
    "sample_stats",
    "prior",
    "prior_predictive",
    "sample_stats_prior",
    "observed_data",
    "constant_data",
    "predictions_constant_data",
)

WARMUP_GROUPS = (
    "warmup_posterior",
    "warmup_posterior_predictive",
    "warmup_predictions",
    "warmup_log_likelihood",
    "warmup_sample_stats",
)

SCHEMA_GROUPS = SUPPORTED_GROUPS + WARMUP_GROUPS
_GROUP_ORDER = {name: i for i, name in enumerate(SCHEMA_GROUPS)}


def _group_sort_key(name):
    return (0, _GROUP_ORDER[name], "") if name in _GROUP_ORDER else (1, 0, str(name))


def _reorder_groups(groups):
    return {name: groups[name] for name in sorted(groups, key=_group_sort_key)}


class InferenceData(Mapping):
    """Ordered mapping from group name to :class:`~posteriorkit.Dataset`.

    Groups are always stored in the canonical schema order: ``posterior``,
    ``posterior_predictive``, ``predictions``, ``log_likelihood``, ``sample_stats``,
    ``prior``, ``prior_predictive``, ``sample_stats_prior``, ``observed_data``,
    ``constant_data``, ``predictions_constant_data`` followed by the ``warmup_*``
    groups. Groups outside the schema are kept after those, sorted by name.

    Groups of the schema can also be accessed as attributes, e.g. ``idata.posterior``.

    Parameters
    ----------
    groups : mapping, optional
        Group name to :class:`~posteriorkit.Dataset`, :class:`xarray.Dataset` or mapping
        of variables.
    **kwargs
        Groups given as keywords.

    Examples
    --------
    .. code-block:: python

        import numpy as np
        from posteriorkit import InferenceData

        idata = InferenceData(
            observed_data={"y": (("obs",), np.zeros(8))},
            posterior={"mu": (("chain", "draw"), np.zeros((4, 100)))},
        )
        list(idata)  # ['posterior', 'observed_data']
    """

    __slots__ = ("_groups",)

    def __init__(self, groups=None, **kwargs):
        groups = {**(groups or {}), **kwargs}
        self._groups = _reorder_groups(
            {
                name: value if isinstance(value, Dataset) else Dataset(value)
                for name, value in groups.items()
            }
        )

    def __getitem__(self, key):
        try:
            return self._groups[key]
        except KeyError:
            raise GroupNotFoundError(key, self._groups) from None

    def __getattr__(self, name):
        if name in SCHEMA_GROUPS:
            try:
                return self._groups[name]
            except KeyError:
                raise AttributeError(f"InferenceData has no group '{name}'") from None
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __iter__(self):
        return iter(self._groups)

    def __len__(self):
        return len(self._groups)

    def __contains__(self, key):
        return key in self._groups

    def __eq__(self, other):
        if not isinstance(other, InferenceData):
            return NotImplemented
        return list(self) == list(other) and all(
            self[name] == other[name] for name in self._groups
        )

    __hash__ = None

    def __repr__(self):
        lines = ["InferenceData with groups:"]
        lines.extend(f"  > {name}" for name in self._groups)
        return "\n".join(lines)

    def groups(self):
        """Return the group names in canonical order."""
        return list(self._groups)

    def get_group(self, name):
        """Return group `name`, raising :class:`GroupNotFoundError` if it is missing."""
        return self[name]

    def with_group(self, name, dataset):
        """Return a new object with group `name` set to `dataset`."""
        return InferenceData({**self._groups, name: dataset})

    def without_groups(self, *names):
        """Return a new object without the groups in `names`."""
        missing = [name for name in names if name not in self._groups]
        if missing:
            raise GroupNotFoundError(missing[0], self._groups)
        return InferenceData({k: v for k, v in self._groups.items() if k not in names})

    def _select(self, method, groups, indexers, drop):
        if groups is None:
            groups = list(self._groups)
        elif isinstance(groups, str):
            groups = [groups]
        for name in groups:
            if name not in self._groups:
                raise GroupNotFoundError(name, self._groups)
        all_dims = {dim for name in groups for dim in self._groups[name].dims}
        unknown = [dim for dim in indexers if dim not in all_dims]
        if unknown:
            raise DimensionMismatchError(
                f"Dimensions {unknown} are not present in any of the groups {groups}"
            )
        selected = dict(self._groups)
        for name in groups:
            dataset = self._groups[name]
            missing = [dim for dim in indexers if dim not in dataset.dims]
            if missing:
                warnings.warn(
                    f"Group '{name}' has no dimensions {missing}, they are not selected on it",
                    UserWarning,
                    stacklevel=3,
                )
            selector = getattr(dataset, method)
            selected[name] = selector(indexers, drop=drop, missing_dims="ignore")
        return InferenceData(selected)

    def sel(self, groups=None, *, drop=False, **indexers):
        """Select by index labels on the given groups.

        Parameters
        ----------
        groups : str or list of str, optional
            Groups to select on, all of them by default. Other groups are kept as is.
        drop : bool, default False
            If False, scalar labels keep the dimension with length 1.
        **indexers
            Dimension name to label, list of labels or slice.

        Returns
        -------
        InferenceData

        Warns
        -----
        UserWarning
            When a selected dimension is missing from some of the groups.
        """
        return self._select("sel", groups, indexers, drop)

    select = sel

    def isel(self, groups=None, *, drop=False, **indexers):
        """Select by position on the given groups, see :meth:`sel`."""
        return self._select("isel", groups, indexers, drop)

    def merge(self, *others):
        """Merge with other objects, keeping the first occurrence of each group."""
        groups = dict(self._groups)
        for other in others:
            for name, dataset in InferenceData(other).items():
                groups.setdefault(name, dataset)
        return InferenceData(groups)

    def concat(self, *others, overwrite=False):
        """Combine the groups of objects with different groups.

        Parameters
        ----------
        *others : InferenceData
        overwrite : bool, default False
            If True, groups from later objects replace earlier ones.

        Raises
        ------
        ValueError
            If a group is present in more than one object and `overwrite` is False.
        """
        groups = dict(self._groups)
        for other in others:
            for name, dataset in InferenceData(other).items():
                if name in groups and not overwrite:
                    raise ValueError(
                        f"Group '{name}' is present in more than one object, "
                        "use overwrite=True to replace it"
                    )
                groups[name] = dataset
        return InferenceData(groups)

    def extend(self, other, join="left"):
        """Add the groups of `other` to this object in place.

        Parameters
        ----------
        other : InferenceData
        join : {"left", "right"}, default "left"
            With "left" existing groups are kept, with "right" the groups in `other`
            replace them.
        """
        if join not in ("left", "right"):
            raise ValueError(f"join must be 'left' or 'right', got {join!r}")
        groups = dict(self._groups)
        for name, dataset in InferenceData(other).items():
            if join == "right" or name not in groups:
                groups[name] = dataset
        self._groups = _reorder_groups(groups)
        return self

    def to_datatree(self):
        """Convert to :class:`xarray.DataTree` with one child node per group."""
        return xr.DataTree.from_dict(
            {f"/{name}": dataset.to_xarray() for name, dataset in self._groups.items()}
        )

    @classmethod
    def from_datatree(cls, dt):
        """Build from :class:`xarray.DataTree`, one group per child node."""
        return cls({name: node.to_dataset() for name, node in dt.children.items()})

    def check_follows_schema(self):
        """Check every group follows the inference data schema.

        Raises
        ------
        InferenceDataSchemaError
            If a group lacks the ``created_at`` attribute, a variable shares its name
            with a dimension, or a variable repeats a dimension.
        """
        for name, dataset in self._groups.items():
            if "created_at" not in dataset.attrs:
                raise InferenceDataSchemaError(f"Group '{name}' has no 'created_at' attribute")
            dims = set(dataset.dims)
            for var_name, da in dataset.items():
                if var_name in dims:
                    raise InferenceDataSchemaError(
                        f"Variable '{var_name}' in group '{name}' has the name of a dimension"
                    )
                if len(set(da.dims)) != len(da.dims):
                    raise InferenceDataSchemaError(
                        f"Variable '{var_name}' in group '{name}' has repeated dimensions "
                        f"{da.dims}"
                    )
