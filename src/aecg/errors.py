"""Exception types for parsing and validating aECG documents.

Parse-time problems are raised: a malformed leaf leaves its parent unusable.
Validation-time problems are ``ValidationError`` instances that are only ever
accumulated into a ``ValidationContext``, never raised by the validator.
"""


class AECGError(Exception):
    """Base class for all errors raised by the package."""


class ParseError(AECGError):
    """Raised when document content cannot be decoded.

    Args:
        message: Description of the failure.
        field: Name of the element or attribute that failed, if known.
    """

    def __init__(self, message: str, field: str = ""):
        self.message = message
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class InvalidNumericError(ParseError, ValueError):
    """Raised when a numeric field or digit list cannot be parsed."""


class ValidationCanceled(AECGError):
    """Raised inside a validation walk when cancellation or the deadline fires."""


class ValidationError(AECGError):
    """A single validation problem: field, message and optional offending value.

    Two validation errors are equal when their field, message and value match,
    so tests and callers can compare against the factory functions below.
    """

    def __init__(self, field: str, message: str, value: str = ""):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(field, message, value)

    def __str__(self) -> str:
        if self.value:
            return f"validation error on field {self.field}:\n- {self.message} (value: {self.value})"
        return f"validation error on field {self.field}:\n- {self.message}"

    def __repr__(self) -> str:
        return f"ValidationError(field={self.field!r}, message={self.message!r}, value={self.value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.field, self.message, self.value) == (other.field, other.message, other.value)

    def __hash__(self) -> int:
        return hash((self.field, self.message, self.value))


class MultipleValidationErrors(AECGError):
    """Combined error for a validation pass that produced more than one error."""

    def __init__(self, errors: list[ValidationError]):
        self.errors = list(errors)
        details = "\n".join(str(e) for e in self.errors)
        super().__init__(f"multiple validation errors ({len(self.errors)}):\n{details}")


def missing(field: str) -> ValidationError:
    """Error for an absent required field."""
    return ValidationError(field, f"{field} is required")


def invalid(field: str, message: str, value: object = "") -> ValidationError:
    """Error for a present but invalid field."""
    return ValidationError(field, message, "" if value is None else str(value))
