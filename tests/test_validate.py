# pylint: disable=redefined-outer-name, unused-import
# ruff: noqa: F811
import numpy as np
import pytest
import xarray as xr

from .helpers import importorskip

azb = importorskip("arviz_base")

from posteriorkit.validate import (  # noqa: E402
    validate_dims,
    validate_dims_chain_draw_axis,
    validate_sample_dims,
    validate_scale,
)


def test_validate_dims_none():
    result = validate_dims(None)
    expected = azb.rcParams["data.sample_dims"]
    assert result == list(expected)


def test_validate_dims_string():
    result = validate_dims("chain")
    assert result == ["chain"]


def test_validate_dims_tuple():
    result = validate_dims(("chain", "draw"))
    assert result == ["chain", "draw"]


def test_validate_dims_chain_draw_axis_two_dims():
    dims, chain_axis, draw_axis = validate_dims_chain_draw_axis(["chain", "draw"])
    assert dims == ["chain", "draw"]
    assert chain_axis == -2
    assert draw_axis == -1


def test_validate_dims_chain_draw_axis_one_dim():
    dims, chain_axis, draw_axis = validate_dims_chain_draw_axis("draw")
    assert dims == ["draw"]
    assert chain_axis is None
    assert draw_axis == -1


def test_validate_dims_chain_draw_axis_too_many():
    with pytest.raises(ValueError, match="1 or 2 elements"):
        validate_dims_chain_draw_axis(["chain", "draw", "other"])


def test_validate_sample_dims_skips_missing_defaults():
    da = xr.DataArray(np.zeros((10, 3)), dims=["draw", "obs"])
    assert validate_sample_dims(da) == ["draw"]


def test_validate_sample_dims_explicit():
    da = xr.DataArray(np.zeros((10, 3)), dims=["sample", "obs"])
    assert validate_sample_dims(da, "sample") == ["sample"]
    with pytest.raises(ValueError, match="not found"):
        validate_sample_dims(da, ["chain", "sample"])


def test_validate_sample_dims_none_present():
    da = xr.DataArray(np.zeros((10, 3)), dims=["sample", "obs"])
    with pytest.raises(ValueError, match="None of the sample dimensions"):
        validate_sample_dims(da)


@pytest.mark.parametrize("scale", ["log", "negative_log", "deviance", "LOG"])
def test_validate_scale(scale):
    assert validate_scale(scale) == scale.lower()


def test_validate_scale_invalid():
    with pytest.raises(ValueError, match="Valid scales"):
        validate_scale("bic")
