import numpy as np
import pytest

from .helpers import create_model, eight_schools_log_likelihood


@pytest.fixture(scope="session")
def eight_schools():
    """Fixture for the eight schools log likelihood shaped (draw, chain, school)."""
    return eight_schools_log_likelihood(seed=7)


@pytest.fixture(scope="session")
def model_idata():
    """Fixture for an InferenceData with posterior, log likelihood and observed data."""
    return create_model()


@pytest.fixture(scope="function")
def rng():
    """Fixture for a seeded random number generator."""
    return np.random.default_rng(2024)
