# pylint: disable=redefined-outer-name
import numpy as np
import pytest
from numpy.testing import assert_allclose

from posteriorkit import WAICResult, information_criterion, loo, waic

from ..helpers import synthetic_log_likelihood


@pytest.fixture(scope="module")
def eight_schools_waic(eight_schools):
    return waic(eight_schools)


def test_waic_eight_schools(eight_schools_waic, eight_schools):
    result = eight_schools_waic
    assert isinstance(result, WAICResult)
    assert result.kind == "waic"
    assert result.n_samples == 4000
    assert result.n_data_points == 8
    assert abs(result.elpd - loo(eight_schools).elpd) < 0.2
    assert 0.6 < result.p < 1.2
    assert not result.warning


def test_waic_pointwise(eight_schools_waic, eight_schools):
    pointwise = eight_schools_waic.pointwise
    assert set(pointwise.data_vars) == {"elpd", "p"}
    assert_allclose(pointwise["p"].values, eight_schools.var(axis=(0, 1), ddof=1))
    assert_allclose(pointwise["elpd"].sum(), eight_schools_waic.elpd)


def test_waic_scales(eight_schools_waic):
    assert information_criterion(eight_schools_waic, "deviance") == -2 * eight_schools_waic.elpd
    assert information_criterion(eight_schools_waic, "negative_log") == -eight_schools_waic.elpd


def test_waic_idata(model_idata):
    result = waic(model_idata, var_name="y")
    assert result.pointwise["elpd"].dims == ("school",)
    assert "elpd_waic" in str(result)
    assert "p_waic" in str(result)
    assert "Pareto" not in str(result)


def test_waic_high_variance():
    log_lik = synthetic_log_likelihood(1.0, shape=(1000, 4, 3))
    with pytest.warns(UserWarning, match="exceeds 0.4"):
        result = waic(log_lik)
    assert result.warning
    assert np.all(result.pointwise["p"] > 0.4)


def test_waic_sample_dims(model_idata):
    log_lik = model_idata.log_likelihood["y"].isel(chain=0, drop=True)
    result = waic(log_lik, sample_dims="draw")
    assert result.n_samples == 500
