import pytest

from posteriorkit import (
    DimensionMismatchError,
    GroupNotFoundError,
    InferenceDataSchemaError,
    VariableNotFoundError,
)


@pytest.mark.parametrize("error_class", [GroupNotFoundError, VariableNotFoundError])
def test_not_found_errors_are_key_errors(error_class):
    error = error_class("mu", ["theta", "tau"])
    assert isinstance(error, KeyError)
    assert error.key == "mu"
    assert error.available == ["theta", "tau"]
    assert "'mu' not found" in str(error)
    assert "['theta', 'tau']" in str(error)


def test_not_found_error_without_available():
    assert str(VariableNotFoundError("mu")) == "variable 'mu' not found"
    assert str(GroupNotFoundError("prior")) == "group 'prior' not found"


@pytest.mark.parametrize("error_class", [DimensionMismatchError, InferenceDataSchemaError])
def test_value_errors(error_class):
    with pytest.raises(ValueError, match="bad"):
        raise error_class("bad")
