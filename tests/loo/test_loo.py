# pylint: disable=redefined-outer-name
import warnings

import numpy as np
import pytest
import xarray as xr
from numpy.testing import assert_allclose
from scipy.stats import genpareto

from posteriorkit import PSISLOOResult, PSISResult, information_criterion, loo
from posteriorkit.errors import GroupNotFoundError, VariableNotFoundError
from posteriorkit.loo.helper_loo import MIN_DRAWS, _get_r_eff, _prepare_loo_inputs

from ..helpers import eight_schools_exact_loo, synthetic_log_likelihood


@pytest.fixture(scope="module")
def eight_schools_loo(eight_schools):
    return loo(eight_schools)


def test_loo_eight_schools(eight_schools_loo):
    result = eight_schools_loo
    assert isinstance(result, PSISLOOResult)
    assert result.kind == "loo"
    assert result.n_samples == 4000
    assert result.n_data_points == 8
    assert -32 < result.elpd < -30
    assert 0.6 < result.p < 1.2
    assert abs(result.elpd - eight_schools_exact_loo().sum()) < 0.15
    assert result.elpd_mcse > 0
    assert not result.warning


def test_loo_pointwise_matches_exact(eight_schools_loo):
    pointwise = eight_schools_loo.pointwise
    assert set(pointwise.data_vars) == {"elpd", "elpd_mcse", "p", "reff", "pareto_shape"}
    assert_allclose(pointwise["elpd"].values, eight_schools_exact_loo(), atol=0.05)
    assert np.all(pointwise["pareto_shape"] < 0.7)
    assert np.all(pointwise["elpd_mcse"] > 0)
    assert_allclose(pointwise["elpd"].sum(), eight_schools_loo.elpd)
    assert_allclose(pointwise["p"].sum(), eight_schools_loo.p)


def test_loo_psis_result(eight_schools_loo):
    psis_result = eight_schools_loo.psis_result
    assert isinstance(psis_result, PSISResult)
    assert_allclose(np.exp(psis_result.log_weights).sum(["draw", "chain"]).values, np.ones(8))
    assert_allclose(psis_result.pareto_shape, eight_schools_loo.pointwise["pareto_shape"])


def test_loo_deviance(eight_schools_loo):
    assert information_criterion(eight_schools_loo, "deviance") == -2 * eight_schools_loo.elpd


def test_loo_idata(model_idata):
    result = loo(model_idata)
    assert result.n_samples == 2000
    assert result.pointwise["elpd"].dims == ("school",)
    assert list(result.pointwise["school"].values) == [f"school_{i}" for i in range(8)]


def test_loo_input_types_agree(model_idata):
    expected = loo(model_idata).elpd
    log_lik = model_idata.log_likelihood["y"]
    assert_allclose(loo(model_idata, var_name="y").elpd, expected)
    assert_allclose(loo(model_idata.log_likelihood).elpd, expected)
    assert_allclose(loo(model_idata.log_likelihood.to_xarray()).elpd, expected)
    assert_allclose(loo(log_lik).elpd, expected)
    assert_allclose(loo(model_idata.to_datatree()).elpd, expected)
    # raw arrays are shaped (draw, chain, obs)
    assert_allclose(loo(log_lik.transpose("draw", "chain", "school").values).elpd, expected)


def test_loo_missing_var_name(model_idata):
    with pytest.raises(VariableNotFoundError):
        loo(model_idata, var_name="z")


def test_loo_missing_group(model_idata):
    with pytest.raises(GroupNotFoundError):
        loo(model_idata.without_groups("log_likelihood"))


def test_loo_sample_dims(model_idata):
    log_lik = model_idata.log_likelihood["y"].stack(sample=("chain", "draw"))
    log_lik = log_lik.drop_vars(["sample", "chain", "draw"])
    result = loo(log_lik, sample_dims="sample", reff=1)
    assert result.n_samples == 2000
    assert_allclose(result.elpd, loo(model_idata, reff=1).elpd)


def test_loo_reff_scalar_and_array(eight_schools):
    result = loo(eight_schools, reff=0.8)
    assert_allclose(result.pointwise["reff"], np.full(8, 0.8))
    result = loo(eight_schools, reff=np.linspace(0.5, 1, 8))
    assert_allclose(result.pointwise["reff"], np.linspace(0.5, 1, 8))


def test_loo_invalid_reff(eight_schools):
    with pytest.warns(UserWarning, match="Relative efficiency"):
        result = loo(eight_schools, reff=np.array([1, 1, 0, 1, 1, 1, 1, 1]))
    assert result.warning
    assert result.pointwise["reff"].values[2] == 1


def test_loo_estimated_reff(eight_schools):
    ll = xr.DataArray(eight_schools, dims=["draw", "chain", "school"])
    reff = _get_r_eff(ll, ["draw", "chain"])
    assert reff.dims == ("school",)
    # independent draws
    assert np.all((reff > 0.7) & (reff < 1.3))


def test_loo_few_draws():
    log_lik = synthetic_log_likelihood(0.1, shape=(50, 1, 8))
    with pytest.warns(UserWarning, match=f"fewer than {MIN_DRAWS}"):
        result = loo(log_lik)
    assert result.warning


def test_loo_single_observation(rng):
    result = loo(rng.normal(-1, 0.1, size=1000))
    assert result.n_data_points == 1
    assert np.isfinite(result.elpd)
    assert np.isnan(result.elpd_mcse)
    assert "elpd_loo" in str(result)


def test_loo_high_pareto_shape(rng):
    log_lik = synthetic_log_likelihood(0.1, shape=(4000, 1, 4), seed=3)
    log_lik[:, 0, 0] = -np.log(genpareto.rvs(c=1.0, size=4000, random_state=rng))
    with pytest.warns(UserWarning, match="greater than 0.7"):
        result = loo(log_lik, reff=1)
    assert result.warning
    assert result.pointwise["pareto_shape"].values[0] > 0.7
    assert "There has been a warning" in str(result)


def test_loo_non_finite():
    log_lik = synthetic_log_likelihood(0.1, shape=(1000, 1, 3))
    log_lik[5, 0, 1] = np.inf
    with pytest.warns(UserWarning, match="non finite values for observations \\[2\\]"):
        result = loo(log_lik, reff=1)
    assert result.warning


def test_loo_no_warnings(eight_schools):
    with warnings.catch_warnings():
        warnings.simplefilter("error", UserWarning)
        loo(eight_schools)


def test_prepare_loo_inputs_raw_arrays():
    inputs = _prepare_loo_inputs(np.zeros((100, 4, 3, 2)))
    assert inputs.sample_dims == ["draw", "chain"]
    assert inputs.obs_dims == ["log_likelihood_dim_1", "log_likelihood_dim_2"]
    assert inputs.n_samples == 400
    assert inputs.n_data_points == 6
    with pytest.raises(ValueError):
        _prepare_loo_inputs(np.array(1.0))


def test_prepare_loo_inputs_sample_dims_raw_array():
    with pytest.raises(ValueError, match="unlabelled arrays"):
        _prepare_loo_inputs(np.zeros((100, 4, 3)), sample_dims=["draw"])
