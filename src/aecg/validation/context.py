"""Accumulation state of one validation pass."""

import threading
import time

from ..errors import MultipleValidationErrors, ValidationCanceled, ValidationError
from ..identifiers import DefaultIdentifierProvider


class ValidationContext:
    """Collects the errors and warnings of one validation pass.

    A context is owned by a single validation call and is not safe for
    concurrent writers. To validate independent subtrees in parallel, give each
    branch its own context and combine them afterwards with ``merge``.

    Args:
        strict_mode: Report advisory findings as errors instead of warnings.
        identifiers: Provider of the root used to fill empty identifiers. A
            fresh, unset provider is created if None.
        autocomplete_ids: Fill empty identifier roots from ``identifiers``.
        cancel_event: Event that cancels the pass when set.
        timeout: Seconds after which the pass is canceled, measured on the
            monotonic clock from construction.

    Examples:
        >>> ctx = ValidationContext(strict_mode=True)
        >>> ctx.has_errors()
        False
        >>> ctx.get_error() is None
        True
    """

    def __init__(
        self,
        strict_mode: bool = False,
        identifiers: DefaultIdentifierProvider | None = None,
        autocomplete_ids: bool = True,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ):
        self.strict_mode = strict_mode
        self.identifiers = identifiers if identifiers is not None else DefaultIdentifierProvider()
        self.autocomplete_ids = autocomplete_ids
        self.cancel_event = cancel_event
        self.deadline = None if timeout is None else time.monotonic() + timeout
        self.errors: list[ValidationError] = []
        self.warnings: list[ValidationError] = []
        self.canceled = False
        self.cancel_reason = ""

    def add_error(self, error: ValidationError) -> None:
        self.errors.append(error)

    def add_warning(self, warning: ValidationError) -> None:
        self.warnings.append(warning)

    def advisory(self, finding: ValidationError) -> None:
        """Record a finding that is only an error in strict mode."""
        if self.strict_mode:
            self.add_error(finding)
        else:
            self.add_warning(finding)

    def check_canceled(self) -> None:
        """Raise ``ValidationCanceled`` if the cancel event is set or the deadline has passed."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ValidationCanceled("validation canceled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise ValidationCanceled("validation deadline exceeded")

    def has_errors(self) -> bool:
        return bool(self.errors)

    def get_error(self) -> ValidationError | MultipleValidationErrors | None:
        """Combine the accumulated errors into one exception object.

        Returns:
            None if there are no errors, the error itself if there is exactly
            one, and a ``MultipleValidationErrors`` wrapper otherwise.
        """
        if not self.errors:
            return None
        if len(self.errors) == 1:
            return self.errors[0]
        return MultipleValidationErrors(self.errors)

    def merge(self, other: "ValidationContext") -> "ValidationContext":
        """Append the findings of ``other`` to this context, keeping their order."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if other.canceled and not self.canceled:
            self.canceled = True
            self.cancel_reason = other.cancel_reason
        return self

    def __repr__(self) -> str:
        return (
            f"ValidationContext(errors={len(self.errors)}, warnings={len(self.warnings)}, "
            f"strict_mode={self.strict_mode}, canceled={self.canceled})"
        )
