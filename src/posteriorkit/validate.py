"""Validator functions for common arguments."""

from arviz_base import rcParams

SCALES = {"log": 1, "negative_log": -1, "deviance": -2}


def validate_dims(dims):
    """Validate `dims` argument.

    Uses the default in rcParams and ensures the returned object is a list.

    Parameters
    ----------
    dims : str, sequence of hashable, or None

    Returns
    -------
    list
    """
    if dims is None:
        dims = rcParams["data.sample_dims"]
    if isinstance(dims, str):
        dims = [dims]
    return list(dims)


def validate_sample_dims(da, dims=None):
    """Restrict the sample dimensions to the ones present in `da`.

    Missing default dimensions are skipped so single chain arrays without a ``chain``
    dimension are accepted. Explicitly requested dimensions must all be present.

    Returns
    -------
    list
    """
    explicit = dims is not None
    dims = validate_dims(dims)
    present = [dim for dim in dims if dim in da.dims]
    if explicit and len(present) != len(dims):
        missing = [dim for dim in dims if dim not in da.dims]
        raise ValueError(f"Sample dimensions {missing} not found in array with dims {da.dims}")
    if not present:
        raise ValueError(
            f"None of the sample dimensions {dims} are present in array with dims {da.dims}"
        )
    return present


def validate_dims_chain_draw_axis(dims):
    """Validate `dims` argument for functions that use chain_axis and draw_axis.

    In such cases, dims can have length 1 or 2 depending on there being a chain dimension.

    Returns
    -------
    list
        List of dimensions
    int or None
        Positional index for chain dimension
    int
        Positional index for draw dimension
    """
    dims = validate_dims(dims)
    draw_axis = -1
    if len(dims) == 1:
        chain_axis = None
    elif len(dims) == 2:
        chain_axis = -2
    else:
        raise ValueError("dims can only have 1 or 2 elements")
    return dims, chain_axis, draw_axis


def validate_scale(scale):
    """Validate the information criterion `scale` argument.

    Returns
    -------
    str
    """
    scale = scale.lower() if isinstance(scale, str) else scale
    if scale not in SCALES:
        raise ValueError(f"Valid scales are {list(SCALES)}, got {scale!r}")
    return scale
