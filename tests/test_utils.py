# pylint: disable=redefined-outer-name, protected-access
import numpy as np
import pytest
from numpy.testing import assert_allclose

from posteriorkit import (
    ELPDResult,
    InferenceData,
    PSISLOOResult,
    get_log_likelihood,
    information_criterion,
    loo,
)
from posteriorkit.base import dataarray_stats
from posteriorkit.errors import GroupNotFoundError, VariableNotFoundError
from posteriorkit.utils import _sum_and_se, get_function


@pytest.fixture(scope="module")
def loo_result(model_idata):
    return loo(model_idata)


def test_get_log_likelihood(model_idata):
    log_lik = get_log_likelihood(model_idata)
    assert log_lik.name == "y"
    assert log_lik.dims == ("chain", "draw", "school")
    assert get_log_likelihood(model_idata, var_name="y").equals(log_lik)


def test_get_log_likelihood_missing_var(model_idata):
    with pytest.raises(VariableNotFoundError, match="available variables are \\['y'\\]"):
        get_log_likelihood(model_idata, var_name="z")


def test_get_log_likelihood_missing_group(model_idata):
    with pytest.raises(GroupNotFoundError):
        get_log_likelihood(model_idata.without_groups("log_likelihood"))


def test_get_log_likelihood_ambiguous(model_idata):
    log_lik = model_idata.log_likelihood
    both = InferenceData(log_likelihood={"y": log_lik["y"], "y2": log_lik["y"] * 2})
    with pytest.raises(TypeError, match="var_name"):
        get_log_likelihood(both)
    assert get_log_likelihood(both, var_name="y2").name == "y2"


def test_get_log_likelihood_sample_stats(model_idata):
    idata = InferenceData(sample_stats={"log_likelihood": model_idata.log_likelihood["y"]})
    with pytest.warns(DeprecationWarning):
        log_lik = get_log_likelihood(idata)
    assert log_lik.name == "log_likelihood"


@pytest.mark.parametrize("scale, factor", [("log", 1), ("negative_log", -1), ("deviance", -2)])
def test_information_criterion(loo_result, scale, factor):
    assert information_criterion(loo_result, scale) == factor * loo_result.elpd
    pointwise = information_criterion(loo_result, scale, pointwise=True)
    assert pointwise.name == scale
    assert_allclose(pointwise, factor * loo_result.pointwise["elpd"])


def test_information_criterion_case_insensitive(loo_result):
    assert information_criterion(loo_result, "Deviance") == -2 * loo_result.elpd


def test_information_criterion_bad_scale(loo_result):
    with pytest.raises(ValueError, match="Valid scales"):
        information_criterion(loo_result, "aic")


def test_elpd_result_access(loo_result):
    assert isinstance(loo_result, ELPDResult)
    assert isinstance(loo_result, PSISLOOResult)
    assert loo_result["elpd"] == loo_result.elpd
    estimates = loo_result.elpd_estimates()
    assert set(estimates) == {"elpd", "elpd_mcse", "p", "p_mcse"}
    assert loo_result.elpd_estimates(pointwise=True) is loo_result.pointwise
    with pytest.raises(AttributeError):
        loo_result.elpd = 0
    with pytest.raises(KeyError, match="elpd_loo"):
        loo_result["elpd_loo"]  # pylint: disable=pointless-statement


def test_elpd_result_str(loo_result):
    text = str(loo_result)
    assert "Computed from 2000 posterior samples and 8 observations" in text
    assert "elpd_loo" in text
    assert "p_loo" in text
    assert "Pareto shape diagnostic values" in text
    assert repr(loo_result) == text


def test_sum_and_se():
    total, se = _sum_and_se(np.array([1.0, 2.0, 3.0]))
    assert total == 6
    assert_allclose(se, np.sqrt(3))
    total, se = _sum_and_se(np.array([2.0]))
    assert total == 2
    assert np.isnan(se)


def test_get_function():
    assert get_function("ess") == dataarray_stats.ess
    with pytest.raises(KeyError, match="not available"):
        get_function("hdi")

