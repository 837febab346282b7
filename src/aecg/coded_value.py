"""Coded values: a code drawn from a code system, with optional names."""

from collections.abc import Collection
from typing import TYPE_CHECKING, Generic

from lxml import etree
from pydantic import BaseModel

from .codec.xml import attribute, sub_element
from .errors import ValidationError, invalid
from .types import CodeT, SystemT

if TYPE_CHECKING:
    from .validation.context import ValidationContext


class CodedValue(BaseModel, Generic[CodeT, SystemT]):
    """A ``(code, code system, code system name, display name)`` tuple.

    The type parameters narrow the domain of valid codes and of code system
    identifiers, e.g. ``CodedValue[str, str]`` for free vendor codes.

    ``code_system`` may be empty for vendor or proprietary codes; in that case
    ``code_system_name`` identifies the vocabulary instead.

    Attributes:
        code: The code itself, e.g. ``"MDC_ECG_LEAD_II"``.
        code_system: OID of the code system, e.g. ``"2.16.840.1.113883.6.24"``.
        code_system_name: Human readable name of the code system.
        display_name: Human readable name of the code.

    Examples:
        >>> lead = CodedValue(code="MDC_ECG_LEAD_II", code_system="2.16.840.1.113883.6.24")
        >>> lead.is_empty()
        False
    """

    code: CodeT = ""
    code_system: SystemT = ""
    code_system_name: str = ""
    display_name: str = ""

    def __str__(self) -> str:
        return self.display_name or self.code

    def is_empty(self) -> bool:
        """Return True if no code is set."""
        return not self.code

    def check_membership(self, allowed: Collection[str], field: str) -> ValidationError | None:
        """Return a domain error if the code is not in ``allowed``, else None.

        Only the code is checked; an absent code system is never a defect.
        """
        if self.code in allowed:
            return None
        return invalid(field, f"{field} must be one of {sorted(allowed)}", self.code)

    def validate_membership(self, allowed: Collection[str], field: str, ctx: "ValidationContext") -> bool:
        """Record a domain error in ``ctx`` if the code is not in ``allowed``.

        Returns:
            True if the code is a member of ``allowed``.
        """
        error = self.check_membership(allowed, field)
        if error is not None:
            ctx.add_error(error)
            return False
        return True

    @classmethod
    def from_xml(cls, element: etree._Element) -> "CodedValue":
        return cls(
            code=attribute(element, "code"),
            code_system=attribute(element, "codeSystem"),
            code_system_name=attribute(element, "codeSystemName"),
            display_name=attribute(element, "displayName"),
        )

    def to_xml(self, parent: etree._Element, tag: str = "code") -> etree._Element:
        return sub_element(
            parent,
            tag,
            code=self.code,
            codeSystem=self.code_system,
            codeSystemName=self.code_system_name,
            displayName=self.display_name,
        )
