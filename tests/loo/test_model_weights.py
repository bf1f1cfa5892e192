# pylint: disable=redefined-outer-name
import sys
import numpy as np
import pytest
import xarray as xr
from numpy.testing import assert_allclose
from scipy.optimize import OptimizeResult

from posteriorkit import (
    BootstrappedPseudoBMA,
    ELPDResult,
    PseudoBMA,
    Stacking,
    loo,
    model_weights,
)
from posteriorkit.loo import ModelWeightsMethod, get_weights_method

from ..helpers import synthetic_log_likelihood


def make_result(elpd_i, elpd_mcse=1.0, kind="loo"):
    elpd_i = np.asarray(elpd_i, dtype=float)
    pointwise = xr.Dataset(
        {
            "elpd": (("obs",), elpd_i),
            "p": (("obs",), np.full(elpd_i.shape, 0.1)),
        }
    )
    return ELPDResult(
        kind,
        float(elpd_i.sum()),
        elpd_mcse,
        0.1 * elpd_i.size,
        0.01,
        1000,
        elpd_i.size,
        pointwise,
        False,
    )


@pytest.fixture(scope="module")
def fitted_results():
    return {
        "good": loo(synthetic_log_likelihood(0.1, seed=1)),
        "bad": loo(synthetic_log_likelihood(1.0, seed=2)),
    }


@pytest.mark.parametrize(
    "method",
    [Stacking(), PseudoBMA(), PseudoBMA(regularize=True), BootstrappedPseudoBMA(rng=3)],
)
def test_weights_favor_better_model(fitted_results, method):
    weights = model_weights(fitted_results, method=method)
    assert list(weights) == ["good", "bad"]
    assert_allclose(sum(weights.values()), 1)
    assert all(weight >= 0 for weight in weights.values())
    assert weights["good"] > weights["bad"]


def test_model_weights_sequence(fitted_results):
    weights = model_weights(list(fitted_results.values()), method="pseudo-bma")
    assert isinstance(weights, np.ndarray)
    assert weights.shape == (2,)


def test_pseudo_bma_softmax():
    results = [make_result([-5.0, -5.0]), make_result([-6.0, -6.0])]
    expected = np.exp([0, -2]) / np.sum(np.exp([0, -2]))
    assert_allclose(PseudoBMA().weights(results), expected)


def test_pseudo_bma_regularize():
    results = [make_result([-5.0, -5.0], elpd_mcse=4.0), make_result([-6.0, -6.0], elpd_mcse=0)]
    # elpd - elpd_mcse / 2 gives -12 and -12
    assert_allclose(PseudoBMA(regularize=True).weights(results), [0.5, 0.5])


def test_pseudo_bma_large_differences():
    results = [make_result(np.full(10, -1.0)), make_result(np.full(10, -500.0))]
    weights = PseudoBMA().weights(results)
    assert np.all(np.isfinite(weights))
    assert_allclose(weights, [1, 0])


def test_stacking_single_model():
    assert_allclose(Stacking().weights([make_result([-1.0, -2.0])]), [1.0])


@pytest.mark.parametrize("method", [Stacking(), PseudoBMA(), BootstrappedPseudoBMA(rng=5)])
def test_identical_models_equal_weights(method):
    results = [make_result([-1.0, -2.0, -3.0])] * 3
    assert_allclose(method.weights(results), np.full(3, 1 / 3))


def test_stacking_symmetric():
    elpd_a = np.tile([0.0, -3.0], 10)
    elpd_b = np.tile([-3.0, 0.0], 10)
    weights = Stacking().weights([make_result(elpd_a), make_result(elpd_b)])
    assert_allclose(weights, [0.5, 0.5], atol=1e-3)


def test_stacking_matches_grid_search(rng):
    elpd_a = rng.normal(-1, 0.5, size=30)
    elpd_b = elpd_a + rng.normal(0, 1, size=30)
    grid = np.linspace(0, 1, 2001)
    scores = [
        np.sum(np.log(w * np.exp(elpd_a) + (1 - w) * np.exp(elpd_b))) for w in grid
    ]
    expected = grid[np.argmax(scores)]
    weights = Stacking().weights([make_result(elpd_a), make_result(elpd_b)])
    assert_allclose(weights, [expected, 1 - expected], atol=0.01)


def test_stacking_off_simplex_solution(monkeypatch):
    def fake_minimize(**kwargs):
        return OptimizeResult(x=np.array([0.9, 0.7]), success=True, message="ok")

    monkeypatch.setattr(sys.modules["posteriorkit.loo.model_weights"], "minimize", fake_minimize)
    results = [make_result([-1.0, -2.0]), make_result([-2.0, -1.0]), make_result([-1.5, -1.5])]
    with pytest.raises(ValueError, match="outside the simplex"):
        Stacking().weights(results)


def test_stacking_rounds_solver_noise(monkeypatch):
    def fake_minimize(**kwargs):
        return OptimizeResult(x=np.array([0.5, 0.5 + 1e-9]), success=True, message="ok")

    monkeypatch.setattr(sys.modules["posteriorkit.loo.model_weights"], "minimize", fake_minimize)
    results = [make_result([-1.0, -2.0]), make_result([-2.0, -1.0]), make_result([-1.5, -1.5])]
    weights = Stacking().weights(results)
    assert weights[-1] == 0
    assert_allclose(weights[:2], [0.5, 0.5])


def test_stacking_shift_invariant():
    elpd_a = np.array([-700.0, -702.0, -701.0])
    elpd_b = np.array([-701.0, -700.5, -703.0])
    weights = Stacking().weights([make_result(elpd_a), make_result(elpd_b)])
    shifted = Stacking().weights([make_result(elpd_a + 700), make_result(elpd_b + 700)])
    assert np.all(np.isfinite(weights))
    assert_allclose(weights, shifted, atol=1e-4)


def test_stacking_dominated_model():
    elpd_a = np.full(20, -1.0)
    weights = Stacking().weights([make_result(elpd_a), make_result(elpd_a - 5)])
    assert weights[0] > 0.99


def test_bootstrapped_pseudo_bma_reproducible(fitted_results):
    results = list(fitted_results.values())
    first = BootstrappedPseudoBMA(rng=11).weights(results)
    second = BootstrappedPseudoBMA(rng=11).weights(results)
    assert_allclose(first, second)
    assert_allclose(first.sum(), 1)


def test_bootstrapped_pseudo_bma_settings():
    method = BootstrappedPseudoBMA(rng=0, samples=50, alpha=0.5)
    weights = method.weights([make_result([-1.0, -2.0, -1.5]), make_result([-1.2, -1.9, -1.4])])
    assert weights.shape == (2,)
    assert_allclose(weights.sum(), 1)


def test_inconsistent_observation_counts():
    results = [make_result([-1.0, -2.0]), make_result([-1.0, -2.0, -3.0])]
    message = "inconsistent observation counts: 'a' \\(2\\), 'b' \\(3\\)"
    with pytest.raises(ValueError, match=message):
        Stacking().weights(results, names=["a", "b"])


def test_no_models():
    with pytest.raises(ValueError, match="At least one model"):
        model_weights([])


def test_weights_must_sum_to_one():
    class Broken(ModelWeightsMethod):
        name = "Broken"

        def _weights(self, ic_mat, elpd_results):
            return np.full(ic_mat.shape[1], 0.6)

    with pytest.raises(ValueError, match="must sum to 1"):
        Broken().weights([make_result([-1.0]), make_result([-2.0])])


@pytest.mark.parametrize(
    "method, expected",
    [
        (None, Stacking),
        ("stacking", Stacking),
        ("Pseudo-BMA", PseudoBMA),
        ("bb-pseudo-bma", BootstrappedPseudoBMA),
        (PseudoBMA, PseudoBMA),
    ],
)
def test_get_weights_method(method, expected):
    assert isinstance(get_weights_method(method), expected)


def test_get_weights_method_instance():
    method = PseudoBMA(regularize=True)
    assert get_weights_method(method) is method
    assert repr(method) == "PseudoBMA(regularize=True)"


def test_get_weights_method_invalid():
    with pytest.raises(ValueError, match="Invalid method"):
        get_weights_method("bma")
