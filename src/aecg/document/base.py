"""Building blocks shared by the document entities: identifiers, times, names."""

import uuid
from collections.abc import Callable
from typing import TypeVar

from lxml import etree
from pydantic import BaseModel

from ..codec.xml import attribute, child, child_text, sub_element, text_element

ModelT = TypeVar("ModelT")


def optional_child(element: etree._Element, tag: str, decode: Callable[[etree._Element], ModelT]) -> ModelT | None:
    """Decode the first child named ``tag`` with ``decode``, or return None if absent."""
    node = child(element, tag)
    return None if node is None else decode(node)


class Identifier(BaseModel):
    """Instance identifier, rendered as ``<id root=".." extension=".."/>``.

    Attributes:
        root: OID or UUID naming the identifier scope, or the identifier itself.
        extension: Identifier within the scope of ``root``.
    """

    root: str = ""
    extension: str = ""

    def __str__(self) -> str:
        return f"{self.root}^{self.extension}" if self.extension else self.root

    def is_empty(self) -> bool:
        return not self.root

    def assign(self, root: str = "", extension: str = "") -> "Identifier":
        """Set root and extension, generating a UUID4 root when ``root`` is empty."""
        self.root = root or str(uuid.uuid4())
        self.extension = extension
        return self

    @classmethod
    def generate(cls, extension: str = "") -> "Identifier":
        return cls().assign("", extension)

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Identifier":
        return cls(root=attribute(element, "root"), extension=attribute(element, "extension"))

    def to_xml(self, parent: etree._Element, tag: str = "id") -> etree._Element:
        return sub_element(parent, tag, root=self.root, extension=self.extension)


class Time(BaseModel):
    """A point in time, rendered as ``<tag value="YYYYMMDDHHmmss"/>``."""

    value: str = ""

    def is_empty(self) -> bool:
        return not self.value

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Time":
        return cls(value=attribute(element, "value"))

    def to_xml(self, parent: etree._Element, tag: str) -> etree._Element:
        return sub_element(parent, tag, value=self.value)


class Interval(BaseModel):
    """A time interval with optional ``low`` and ``high`` endpoints.

    Attributes:
        low: Start of the interval.
        high: End of the interval.
        low_inclusive: Optional ``inclusive`` flag of the low endpoint.
        high_inclusive: Optional ``inclusive`` flag of the high endpoint.
    """

    low: Time | None = None
    high: Time | None = None
    low_inclusive: bool | None = None
    high_inclusive: bool | None = None

    @classmethod
    def between(cls, low: str = "", high: str = "") -> "Interval":
        return cls(low=Time(value=low) if low else None, high=Time(value=high) if high else None)

    def endpoints(self) -> list[tuple[str, Time]]:
        """Return the present endpoints as ``(name, time)`` pairs."""
        return [(name, t) for name, t in (("low", self.low), ("high", self.high)) if t is not None]

    def is_empty(self) -> bool:
        return not self.endpoints()

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Interval":
        low = child(element, "low")
        high = child(element, "high")
        return cls(
            low=None if low is None else Time.from_xml(low),
            high=None if high is None else Time.from_xml(high),
            low_inclusive=_parse_flag(attribute(low, "inclusive")),
            high_inclusive=_parse_flag(attribute(high, "inclusive")),
        )

    def to_xml(self, parent: etree._Element, tag: str = "effectiveTime") -> etree._Element:
        element = sub_element(parent, tag)
        for name, endpoint, inclusive in (
            ("low", self.low, self.low_inclusive),
            ("high", self.high, self.high_inclusive),
        ):
            if endpoint is None:
                continue
            node = endpoint.to_xml(element, name)
            if inclusive is not None:
                node.set("inclusive", "true" if inclusive else "false")
        return element


def _parse_flag(value: str) -> bool | None:
    if not value:
        return None
    return value.lower() == "true"


class PersonName(BaseModel):
    """A person name, either free text or split into parts."""

    text: str = ""
    prefix: str | None = None
    given: str | None = None
    family: str | None = None
    suffix: str | None = None

    def __str__(self) -> str:
        parts = [p for p in (self.prefix, self.given, self.family, self.suffix) if p]
        return " ".join(parts) if parts else self.text

    @classmethod
    def from_xml(cls, element: etree._Element) -> "PersonName":
        return cls(
            text=(element.text or "").strip(),
            prefix=child_text(element, "prefix"),
            given=child_text(element, "given"),
            family=child_text(element, "family"),
            suffix=child_text(element, "suffix"),
        )

    def to_xml(self, parent: etree._Element, tag: str = "name") -> etree._Element:
        element = sub_element(parent, tag, text=self.text or None)
        for part in ("prefix", "given", "family", "suffix"):
            text_element(element, part, getattr(self, part))
        return element


class AssignedEntity(BaseModel):
    """A person acting in a role, e.g. a study event performer or an investigator.

    On the wire the person is wrapped in a role-specific element such as
    ``assignedPerson`` or ``investigatorPerson``.
    """

    id: Identifier | None = None
    name: PersonName | None = None

    @classmethod
    def from_xml(cls, element: etree._Element, person_tag: str = "assignedPerson") -> "AssignedEntity":
        person = child(element, person_tag)
        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            name=None if person is None else optional_child(person, "name", PersonName.from_xml),
        )

    def to_xml(self, parent: etree._Element, tag: str, person_tag: str = "assignedPerson") -> etree._Element:
        element = sub_element(parent, tag)
        if self.id is not None:
            self.id.to_xml(element)
        if self.name is not None:
            self.name.to_xml(sub_element(element, person_tag))
        return element


class Organization(BaseModel):
    """An organization such as a device manufacturer or a trial sponsor."""

    id: Identifier | None = None
    name: str | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Organization":
        return cls(id=optional_child(element, "id", Identifier.from_xml), name=child_text(element, "name"))

    def to_xml(self, parent: etree._Element, tag: str) -> etree._Element:
        element = sub_element(parent, tag)
        if self.id is not None:
            self.id.to_xml(element)
        text_element(element, "name", self.name)
        return element
