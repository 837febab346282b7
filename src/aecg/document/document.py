"""The document root: ``AnnotatedECG``."""

from lxml import etree
from pydantic import BaseModel, Field

from ..codec.xml import child, child_text, children, localname, qname, sub_element, text_element
from ..coded_value import CodedValue
from ..constants import NSMAP, ROOT_TAG
from ..errors import ParseError
from .base import Identifier, Interval, optional_child
from .series import Series
from .trial import TimepointEvent


class AnnotatedECG(BaseModel):
    """An HL7 v3 annotated ECG document.

    Attributes:
        id: Document identifier (required).
        code: Document type, e.g. CPT ``93000`` (required).
        text: Free text description.
        effective_time: Time span of the ECG (required).
        confidentiality_code: Blinding of the document (``S``, ``I``, ``B`` or ``C``).
        reason_code: Why the ECG was recorded, relative to the protocol.
        component_of: Timepoint event linking the ECG to subject and trial (required).
        series: Recorded series; at least one.

    Examples:
        >>> doc = AnnotatedECG(id=Identifier.generate())
        >>> doc.find_series("RHYTHM") is None
        True
    """

    id: Identifier | None = None
    code: CodedValue | None = None
    text: str | None = None
    effective_time: Interval | None = None
    confidentiality_code: CodedValue | None = None
    reason_code: CodedValue | None = None
    component_of: TimepointEvent | None = None
    series: list[Series] = Field(default_factory=list)

    def find_series(self, code: str) -> Series | None:
        """Return the first series of type ``code`` (e.g. ``RHYTHM``), or None."""
        for series in self.series:
            if series.code is not None and series.code.code == code:
                return series
        return None

    def add_series(self, series: Series) -> int:
        self.series.append(series)
        return len(self.series) - 1

    @classmethod
    def from_xml(cls, element: etree._Element) -> "AnnotatedECG":
        if localname(element) != ROOT_TAG:
            raise ParseError(f"expected <{ROOT_TAG}> root element, got <{localname(element)}>", "document")
        timepoint = child(element, "componentOf")
        timepoint = None if timepoint is None else child(timepoint, "timepointEvent")
        series = []
        for component in children(element, "component"):
            node = child(component, "series")
            if node is not None:
                series.append(Series.from_xml(node))
        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            code=optional_child(element, "code", CodedValue.from_xml),
            text=child_text(element, "text"),
            effective_time=optional_child(element, "effectiveTime", Interval.from_xml),
            confidentiality_code=optional_child(element, "confidentialityCode", CodedValue.from_xml),
            reason_code=optional_child(element, "reasonCode", CodedValue.from_xml),
            component_of=None if timepoint is None else TimepointEvent.from_xml(timepoint),
            series=series,
        )

    def to_xml(self) -> etree._Element:
        """Build the root element with the HL7 and xsi namespaces declared."""
        element = etree.Element(qname(ROOT_TAG), nsmap=NSMAP)
        if self.id is not None:
            self.id.to_xml(element)
        if self.code is not None:
            self.code.to_xml(element)
        text_element(element, "text", self.text)
        if self.effective_time is not None:
            self.effective_time.to_xml(element)
        if self.confidentiality_code is not None:
            self.confidentiality_code.to_xml(element, "confidentialityCode")
        if self.reason_code is not None:
            self.reason_code.to_xml(element, "reasonCode")
        if self.component_of is not None:
            self.component_of.to_xml(sub_element(element, "componentOf"))
        for series in self.series:
            series.to_xml(sub_element(element, "component"))
        return element
