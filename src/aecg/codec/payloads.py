"""Concrete payload shapes of polymorphic ``<value>`` elements.

Each recognized payload knows its discriminator (``xsi_type``), how to decode
itself from a value element and how to write its fields back into one. Numeric
fields are kept as the decimal strings found on the wire so that encoding is
lossless; the reconstruction helpers turn them into numpy arrays on demand.
"""

from typing import ClassVar

import numpy as np
import pandas as pd
from lxml import etree
from pydantic import BaseModel, Field

from .. import numeric
from ..constants import GLIST_PQ, GLIST_TS, PQ, SLIST_INT, SLIST_PQ, ST
from ..errors import InvalidNumericError, ParseError
from ..types import Digits, Samples
from .xml import attribute, require_child, sub_element


def _decode_quantity(element: etree._Element, tag: str, field: str) -> "PhysicalQuantity":
    node = require_child(element, tag, field)
    quantity = PhysicalQuantity(value=attribute(node, "value"), unit=attribute(node, "unit"))
    try:
        numeric.parse_decimal(quantity.value, f"{field}.value")
    except InvalidNumericError as e:
        raise ParseError(str(e), field) from e
    return quantity


def _decode_integer(element: etree._Element, tag: str, field: str) -> int:
    node = require_child(element, tag, field)
    raw = attribute(node, "value") or (node.text or "").strip()
    try:
        return numeric.parse_integer(raw, f"{field}.value")
    except InvalidNumericError as e:
        raise ParseError(str(e), field) from e


def _decode_digits(element: etree._Element, field: str) -> str:
    node = require_child(element, "digits", field)
    digits = node.text or ""
    try:
        numeric.parse_digits(digits)
    except InvalidNumericError as e:
        raise ParseError(str(e), f"{field}.digits") from e
    return digits


class PhysicalQuantity(BaseModel):
    """A decimal value with a unit, e.g. ``<value xsi:type="PQ" value="0.25" unit="mV"/>``."""

    xsi_type: ClassVar[str] = PQ

    value: str = ""
    unit: str = ""

    def as_float(self) -> float:
        """Return the value as a float.

        Raises:
            InvalidNumericError: If the value is not a finite decimal number.
        """
        return numeric.parse_decimal(self.value, "value")

    def is_numeric(self) -> bool:
        try:
            self.as_float()
        except InvalidNumericError:
            return False
        return True

    @classmethod
    def from_xml(cls, element: etree._Element) -> "PhysicalQuantity":
        if element.get("value") is None:
            raise ParseError("missing value attribute", PQ)
        quantity = cls(value=attribute(element, "value"), unit=attribute(element, "unit"))
        try:
            quantity.as_float()
        except InvalidNumericError as e:
            raise ParseError(str(e), PQ) from e
        return quantity

    def write_xml(self, element: etree._Element) -> None:
        element.set("value", self.value)
        if self.unit:
            element.set("unit", self.unit)

    def to_xml(self, parent: etree._Element, tag: str) -> etree._Element:
        """Write the quantity as a plain child element, e.g. ``<scale value=".." unit=".."/>``."""
        return sub_element(parent, tag, value=self.value, unit=self.unit)


class Text(BaseModel):
    """Free text annotation value (``ST``)."""

    xsi_type: ClassVar[str] = ST

    content: str = ""

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Text":
        return cls(content=element.text or "")

    def write_xml(self, element: etree._Element) -> None:
        element.text = self.content


class GeneratedTimestampList(BaseModel):
    """Timestamps generated from a head and an increment (``GLIST_TS``).

    Attributes:
        head: First timestamp as an HL7 TS string, e.g. ``"20021122091000.000"``.
        head_unit: Optional unit on the head element.
        increment: Step between consecutive timestamps, e.g. ``0.002 s``.
    """

    xsi_type: ClassVar[str] = GLIST_TS

    head: str
    head_unit: str = ""
    increment: PhysicalQuantity

    @classmethod
    def from_xml(cls, element: etree._Element) -> "GeneratedTimestampList":
        head = require_child(element, "head", GLIST_TS)
        if not attribute(head, "value"):
            raise ParseError("missing head value", f"{GLIST_TS}.head")
        return cls(
            head=attribute(head, "value"),
            head_unit=attribute(head, "unit"),
            increment=_decode_quantity(element, "increment", f"{GLIST_TS}.increment"),
        )

    def write_xml(self, element: etree._Element) -> None:
        sub_element(element, "head", value=self.head, unit=self.head_unit)
        self.increment.to_xml(element, "increment")

    def timestamps(self, length: int) -> pd.DatetimeIndex:
        """Realize ``length`` absolute timestamps."""
        return numeric.generate_timestamps(self.head, self.increment.value, self.increment.unit, length)

    def offsets(self, length: int) -> Samples:
        """Realize ``length`` offsets from the head, in the increment's unit."""
        return numeric.generate_series(0, self.increment.value, length)


class GeneratedQuantityList(BaseModel):
    """Quantities generated from a head and an increment (``GLIST_PQ``).

    Used for relative time axes, e.g. the time sequence of a median beat.
    """

    xsi_type: ClassVar[str] = GLIST_PQ

    head: PhysicalQuantity
    increment: PhysicalQuantity

    @classmethod
    def from_xml(cls, element: etree._Element) -> "GeneratedQuantityList":
        return cls(
            head=_decode_quantity(element, "head", f"{GLIST_PQ}.head"),
            increment=_decode_quantity(element, "increment", f"{GLIST_PQ}.increment"),
        )

    def write_xml(self, element: etree._Element) -> None:
        self.head.to_xml(element, "head")
        self.increment.to_xml(element, "increment")

    def values(self, length: int) -> Samples:
        return numeric.generate_series(self.head.value, self.increment.value, length)


class ScaledQuantityList(BaseModel):
    """Physical values encoded as ``origin + digit * scale`` (``SLIST_PQ``).

    Attributes:
        origin: Offset added to every scaled digit.
        scale: Factor applied to every digit; its unit is the unit of the values.
        digits: Whitespace-separated signed integers.
    """

    xsi_type: ClassVar[str] = SLIST_PQ

    origin: PhysicalQuantity
    scale: PhysicalQuantity
    digits: str = ""

    @property
    def length(self) -> int:
        return numeric.count_digits(self.digits)

    @property
    def unit(self) -> str:
        return self.scale.unit or self.origin.unit

    @classmethod
    def from_xml(cls, element: etree._Element) -> "ScaledQuantityList":
        return cls(
            origin=_decode_quantity(element, "origin", f"{SLIST_PQ}.origin"),
            scale=_decode_quantity(element, "scale", f"{SLIST_PQ}.scale"),
            digits=_decode_digits(element, SLIST_PQ),
        )

    @classmethod
    def from_samples(cls, samples: np.ndarray, origin: float, scale: float, unit: str) -> "ScaledQuantityList":
        """Encode physical samples by rounding ``(sample - origin) / scale`` to integers."""
        digits = np.rint((np.asarray(samples, dtype=np.float64) - origin) / scale).astype(np.int64)
        return cls(
            origin=PhysicalQuantity(value=repr(float(origin)), unit=unit),
            scale=PhysicalQuantity(value=repr(float(scale)), unit=unit),
            digits=numeric.format_digits(digits),
        )

    def write_xml(self, element: etree._Element) -> None:
        self.origin.to_xml(element, "origin")
        self.scale.to_xml(element, "scale")
        sub_element(element, "digits", text=self.digits)

    def digit_values(self) -> Digits:
        return numeric.parse_digits(self.digits)

    def values(self) -> Samples:
        return numeric.scale_series(self.origin.value, self.scale.value, self.digits)


class ScaledIntegerList(BaseModel):
    """Integers encoded as ``origin + digit * scale`` (``SLIST_INT``)."""

    xsi_type: ClassVar[str] = SLIST_INT

    origin: int = 0
    scale: int = 1
    digits: str = ""

    @property
    def length(self) -> int:
        return numeric.count_digits(self.digits)

    @classmethod
    def from_xml(cls, element: etree._Element) -> "ScaledIntegerList":
        return cls(
            origin=_decode_integer(element, "origin", f"{SLIST_INT}.origin"),
            scale=_decode_integer(element, "scale", f"{SLIST_INT}.scale"),
            digits=_decode_digits(element, SLIST_INT),
        )

    def write_xml(self, element: etree._Element) -> None:
        sub_element(element, "origin", value=str(self.origin))
        sub_element(element, "scale", value=str(self.scale))
        sub_element(element, "digits", text=self.digits)

    def digit_values(self) -> Digits:
        return numeric.parse_digits(self.digits)

    def values(self) -> Digits:
        return numeric.scale_integers(self.origin, self.scale, self.digits)


class OpaqueValue(BaseModel):
    """A value with an unrecognized discriminator, kept as raw inner bytes.

    The bytes are re-emitted verbatim on encode, so values introduced by newer
    revisions of the format survive a parse/serialize cycle unchanged.

    Attributes:
        xsi_type: The unrecognized discriminator. A QName outside the HL7
            namespace keeps its prefix, e.g. ``acme:WAVE``.
        attributes: Other attributes of the value element, e.g. ``code`` of a
            ``CD`` value, keyed in Clark notation for namespaced names.
        namespaces: Namespace declarations in scope at the value element that
            the raw content may depend on, by prefix (``""`` for the default).
        raw: Inner content of the value element.
    """

    xsi_type: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    namespaces: dict[str, str] = Field(default_factory=dict)
    raw: bytes = b""


def has_digits(payload: object) -> bool:
    """Return True for payloads that carry a digit list."""
    return isinstance(payload, (ScaledQuantityList, ScaledIntegerList))
