"""Exceptions raised by posteriorkit."""

__all__ = [
    "DimensionMismatchError",
    "GroupNotFoundError",
    "InferenceDataSchemaError",
    "VariableNotFoundError",
]


class DimensionMismatchError(ValueError):
    """Raised when arrays sharing a dimension name disagree on its length or index values."""


class _NotFoundError(KeyError):
    """Missing key error whose message lists the available keys."""

    kind = "key"

    def __init__(self, key, available=None):
        self.key = key
        self.available = None if available is None else list(available)
        super().__init__(key)

    def __str__(self):
        msg = f"{self.kind} '{self.key}' not found"
        if self.available is not None:
            msg += f", available {self.kind}s are {self.available}"
        return msg


class VariableNotFoundError(_NotFoundError):
    """Raised when a variable is not present in a :class:`~posteriorkit.Dataset`."""

    kind = "variable"


class GroupNotFoundError(_NotFoundError):
    """Raised when a group is not present in an :class:`~posteriorkit.InferenceData`."""

    kind = "group"


class InferenceDataSchemaError(ValueError):
    """Raised when an :class:`~posteriorkit.InferenceData` does not follow the schema."""
