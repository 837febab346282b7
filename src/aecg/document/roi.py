"""Regions of interest scoping a series or an annotation."""

from lxml import etree
from pydantic import BaseModel, Field

from ..codec.xml import attribute, child, children, sub_element
from ..coded_value import CodedValue
from ..constants import ACT_CODE_OID, ROI_CLASS_CODE, ROI_PARTIALLY_SPECIFIED
from .base import optional_child


class Boundary(BaseModel):
    """One boundary of a region: a dimension (lead or time axis) and an optional range.

    Attributes:
        code: Dimension the boundary applies to, e.g. ``MDC_ECG_LEAD_II``.
        low: Optional lower bound on that dimension.
        high: Optional upper bound on that dimension.
    """

    code: CodedValue = Field(default_factory=CodedValue)
    low: int | None = None
    high: int | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Boundary":
        value = child(element, "value")
        low = attribute(value, "low")
        high = attribute(value, "high")
        return cls(
            code=optional_child(element, "code", CodedValue.from_xml) or CodedValue(),
            low=int(low) if low.lstrip("-").isdigit() else None,
            high=int(high) if high.lstrip("-").isdigit() else None,
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "boundary")
        self.code.to_xml(element)
        if self.low is not None or self.high is not None:
            sub_element(
                element,
                "value",
                low="" if self.low is None else str(self.low),
                high="" if self.high is None else str(self.high),
            )
        return element


class RegionOfInterest(BaseModel):
    """A named sub-range of a series, by lead and/or time.

    ``ROIPS`` (partially specified) and ``ROIFS`` (fully specified) regions have
    the same shape; only the stored code differs.

    Attributes:
        class_code: Class of the region, normally ``ROIBND``.
        code: ``ROIPS`` or ``ROIFS``.
        boundaries: Ordered boundaries of the region.
    """

    class_code: str = ""
    code: CodedValue | None = None
    boundaries: list[Boundary] = Field(default_factory=list)

    @classmethod
    def for_lead(cls, lead_code: str, lead_code_system: str = "") -> "RegionOfInterest":
        """Build a partially specified region scoping a single lead."""
        return cls(
            class_code=ROI_CLASS_CODE,
            code=CodedValue(code=ROI_PARTIALLY_SPECIFIED, code_system=ACT_CODE_OID),
            boundaries=[Boundary(code=CodedValue(code=lead_code, code_system=lead_code_system))],
        )

    def boundary_codes(self) -> list[str]:
        return [b.code.code for b in self.boundaries]

    def contains_code(self, code: str) -> bool:
        return code in self.boundary_codes()

    @classmethod
    def from_xml(cls, element: etree._Element) -> "RegionOfInterest":
        """Decode a ``<support>`` element."""
        roi = child(element, "supportingROI")
        if roi is None:
            return cls()
        boundaries = []
        for component in children(roi, "component"):
            boundary = child(component, "boundary")
            if boundary is not None:
                boundaries.append(Boundary.from_xml(boundary))
        return cls(
            class_code=attribute(roi, "classCode"),
            code=optional_child(roi, "code", CodedValue.from_xml),
            boundaries=boundaries,
        )

    def to_xml(self, parent: etree._Element, tag: str = "support") -> etree._Element:
        element = sub_element(parent, tag)
        roi = sub_element(element, "supportingROI", classCode=self.class_code)
        if self.code is not None:
            self.code.to_xml(roi)
        for boundary in self.boundaries:
            boundary.to_xml(sub_element(roi, "component"))
        return element
