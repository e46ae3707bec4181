"""
This module defines the exceptions raised by the CloudEvents model and codecs.

Every error derives from `CloudEventError`, so callers that do not care about
the specific failure can catch a single type.
"""
from typing import List, Optional


class CloudEventError(Exception):
    """Base class for all errors raised by this library."""


class ValidationError(CloudEventError):
    """Raised when a value violates a construction-time rule."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class ReservedAttributeName(ValidationError):
    """Raised when an optional attribute would shadow a required one."""

    def __init__(self, name: str):
        self.name = name
        super().__init__([f"attribute name '{name}' is reserved for a required attribute"])


class NotFound(CloudEventError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"attribute '{name}' is not set")


class TypeMismatch(CloudEventError):
    """Raised when a union is read as a variant other than the one it holds."""

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {_label(expected)} but value holds {_label(actual)}")


class WrongDataKind(TypeMismatch):
    pass


class DecodeError(CloudEventError):
    """
    Base class for failures while decoding wire bytes.

    `index` is set when the failure happened inside a batch and points at the
    position of the offending event.
    """

    def __init__(self, message: str, index: Optional[int] = None):
        self.message = message
        self.index = index
        if index is not None:
            message = f"event at index {index}: {message}"
        super().__init__(message)

    def at_index(self, index: int) -> "DecodeError":
        """Returns a copy of this error attributed to a batch position."""
        return type(self)(self.message, index=index)


class MalformedEnvelope(DecodeError):
    pass


class UnknownAttributeVariant(DecodeError):
    pass


class UnknownDataVariant(DecodeError):
    pass


def _label(kind) -> str:
    if kind is None:
        return "no value"
    return getattr(kind, "value", str(kind))
