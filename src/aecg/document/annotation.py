"""Annotations: measurements and interpretations attached to a series.

Annotations are grouped in annotation sets and may nest: a grouping
annotation without a value (e.g. ``MDC_ECG_TIME_PD_QTc``) holds the actual
measurements (e.g. ``QTcB``, ``QTcF``) as components. An annotation may be
scoped to a single lead through its ``support`` region of interest.

Builder methods are append-only. They check their own arguments and return the
index of the new annotation, or ``NOT_ADDED`` if an argument is invalid, so a
batch of annotations can be added without try/except around every call.
"""

import math

import numpy as np
from lxml import etree
from pydantic import BaseModel, Field

from .._logging import logger
from ..codec.payloads import PhysicalQuantity, Text
from ..codec.registry import AnnotationValuePayload
from ..codec.values import decode_annotation_value, encode_value
from ..codec.xml import child, children, sub_element
from ..coded_value import CodedValue
from ..constants import (
    HEART_RATE_CODE,
    MDC_OID,
    PR_INTERVAL_CODE,
    QRS_DURATION_CODE,
    QT_INTERVAL_CODE,
    QTC_INTERVAL_CODE,
    UNIT_BPM,
    UNIT_MILLISECOND,
)
from .base import Time, optional_child
from .roi import RegionOfInterest

NOT_ADDED = -1


def _format_value(value: float) -> str:
    return np.format_float_positional(float(value), trim="-")


def _reject(builder: str, reason: str, code: str) -> int:
    logger.warning(f"{builder}: annotation '{code}' not added, {reason}")
    return NOT_ADDED


def _check_measurement(code: str, value: float, unit: str) -> str | None:
    """Return the reason a measurement is invalid, or None."""
    if not code:
        return "code is empty"
    if not unit:
        return "unit is empty"
    try:
        finite = math.isfinite(value)
    except TypeError:
        finite = False
    if not finite:
        return f"value {value!r} is not a finite number"
    return None


def _measurement(code: CodedValue, value: float, unit: str) -> "Annotation":
    return Annotation(code=code, value=PhysicalQuantity(value=_format_value(value), unit=unit))


class Annotation(BaseModel):
    """A single measurement or observation.

    Attributes:
        code: What is annotated, e.g. ``MDC_ECG_HEART_RATE``.
        value: ``PhysicalQuantity``, ``Text``, an opaque value or an instance of
            a registered annotation payload; None for a grouping annotation
            that only holds components.
        support: Region of interest scoping the annotation, e.g. to one lead.
        components: Nested annotations, in declaration order.
    """

    code: CodedValue | None = None
    value: AnnotationValuePayload | None = None
    support: RegionOfInterest | None = None
    components: list["Annotation"] = Field(default_factory=list)

    def value_float(self) -> float | None:
        """Return the numeric value of a ``PQ`` annotation, or None."""
        if isinstance(self.value, PhysicalQuantity) and self.value.is_numeric():
            return self.value.as_float()
        return None

    def value_unit(self) -> str:
        return self.value.unit if isinstance(self.value, PhysicalQuantity) else ""

    def text(self) -> str | None:
        """Return the content of an ``ST`` annotation, or None."""
        return self.value.content if isinstance(self.value, Text) else None

    def find_nested_annotation_by_code(self, code: str) -> "Annotation | None":
        """Return the first direct component with ``code``, or None."""
        for component in self.components:
            if component.code is not None and component.code.code == code:
                return component
        return None

    def get_annotation(self, index: int) -> "Annotation | None":
        if 0 <= index < len(self.components):
            return self.components[index]
        return None

    def _append(self, annotation: "Annotation") -> int:
        self.components.append(annotation)
        return len(self.components) - 1

    def add_nested_annotation(self, code: str, code_system: str, value: float, unit: str) -> int:
        """Append a nested measurement. ``code_system`` may be empty for vendor codes.

        Returns:
            Index of the new component, or ``NOT_ADDED``.
        """
        reason = _check_measurement(code, value, unit)
        if reason:
            return _reject("add_nested_annotation", reason, code)
        return self._append(_measurement(CodedValue(code=code, code_system=code_system), value, unit))

    def add_nested_annotation_with_code_system_name(
        self, code: str, code_system_name: str, value: float, unit: str
    ) -> int:
        """Append a nested vendor measurement identified by its code system name."""
        reason = _check_measurement(code, value, unit)
        if not reason and not code_system_name:
            reason = "code system name is empty"
        if reason:
            return _reject("add_nested_annotation_with_code_system_name", reason, code)
        return self._append(_measurement(CodedValue(code=code, code_system_name=code_system_name), value, unit))

    def add_nested_text_annotation(self, code: str, code_system: str, text: str) -> int:
        """Append a nested free text annotation."""
        if not code:
            return _reject("add_nested_text_annotation", "code is empty", code)
        return self._append(
            Annotation(code=CodedValue(code=code, code_system=code_system), value=Text(content=text) if text else None)
        )

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Annotation":
        value = child(element, "value")
        return cls(
            code=optional_child(element, "code", CodedValue.from_xml),
            value=None if value is None else decode_annotation_value(value),
            support=optional_child(element, "support", RegionOfInterest.from_xml),
            components=_decode_components(element),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "annotation")
        if self.code is not None:
            self.code.to_xml(element)
        if self.value is not None:
            encode_value(element, self.value)
        if self.support is not None:
            self.support.to_xml(element)
        for component in self.components:
            component.to_xml(sub_element(element, "component"))
        return element


def _decode_components(element: etree._Element) -> list[Annotation]:
    annotations = []
    for component in children(element, "component"):
        annotation = child(component, "annotation")
        if annotation is not None:
            annotations.append(Annotation.from_xml(annotation))
    return annotations


class AnnotationSet(BaseModel):
    """A set of annotations made at one time, by one party, on one series.

    Attributes:
        activity_time: When the annotations were made.
        components: Top-level annotations, in declaration order.

    Examples:
        >>> annotations = AnnotationSet()
        >>> annotations.add_annotation("MDC_ECG_HEART_RATE", "2.16.840.1.113883.6.24", 57, "bpm")
        0
        >>> annotations.add_annotation("MDC_ECG_HEART_RATE", "2.16.840.1.113883.6.24", float("nan"), "bpm")
        -1
    """

    activity_time: Time | None = None
    components: list[Annotation] = Field(default_factory=list)

    def find_annotation_by_code(self, code: str) -> Annotation | None:
        """Return the first top-level annotation with ``code``, or None."""
        for annotation in self.components:
            if annotation.code is not None and annotation.code.code == code:
                return annotation
        return None

    def find_lead_annotation(self, lead_code: str) -> Annotation | None:
        """Return the first annotation whose support region names ``lead_code``, or None."""
        for annotation in self.components:
            if annotation.support is not None and annotation.support.contains_code(lead_code):
                return annotation
        return None

    def get_annotation(self, index: int) -> Annotation | None:
        if 0 <= index < len(self.components):
            return self.components[index]
        return None

    def _append(self, annotation: Annotation) -> int:
        self.components.append(annotation)
        return len(self.components) - 1

    def add_annotation(self, code: str, code_system: str, value: float, unit: str) -> int:
        """Append a measurement coded in a registered code system.

        Args:
            code: Measurement code, e.g. ``MDC_ECG_HEART_RATE``.
            code_system: OID of the code system; must not be empty.
            value: Finite measured value. Zero and negative values are valid.
            unit: Unit of the value, e.g. ``bpm``.

        Returns:
            Index of the new annotation, or ``NOT_ADDED`` if an argument is invalid.
        """
        reason = _check_measurement(code, value, unit)
        if not reason and not code_system:
            reason = "code system is empty"
        if reason:
            return _reject("add_annotation", reason, code)
        return self._append(_measurement(CodedValue(code=code, code_system=code_system), value, unit))

    def add_annotation_with_code_system_name(self, code: str, code_system_name: str, value: float, unit: str) -> int:
        """Append a vendor measurement identified by its code system name."""
        reason = _check_measurement(code, value, unit)
        if not reason and not code_system_name:
            reason = "code system name is empty"
        if reason:
            return _reject("add_annotation_with_code_system_name", reason, code)
        return self._append(_measurement(CodedValue(code=code, code_system_name=code_system_name), value, unit))

    def add_text_annotation(self, code: str, code_system: str, text: str) -> int:
        """Append a free text annotation, e.g. an interpretation statement.

        An empty ``text`` creates a grouping annotation without a value.
        """
        if not code:
            return _reject("add_text_annotation", "code is empty", code)
        if not code_system:
            return _reject("add_text_annotation", "code system is empty", code)
        return self._append(
            Annotation(code=CodedValue(code=code, code_system=code_system), value=Text(content=text) if text else None)
        )

    def add_text_annotation_with_code_system_name(self, code: str, code_system_name: str, text: str) -> int:
        if not code:
            return _reject("add_text_annotation_with_code_system_name", "code is empty", code)
        if not code_system_name:
            return _reject("add_text_annotation_with_code_system_name", "code system name is empty", code)
        return self._append(
            Annotation(
                code=CodedValue(code=code, code_system_name=code_system_name),
                value=Text(content=text) if text else None,
            )
        )

    def add_lead_annotation(self, lead_code: str, matrix_code: str, code_system: str, code_system_name: str) -> int:
        """Append a grouping annotation scoped to one lead.

        Per-lead measurements are then added to it with the nested builders.

        Args:
            lead_code: Lead the annotation applies to, e.g. ``MDC_ECG_LEAD_I``.
            matrix_code: Code of the grouping annotation.
            code_system: Code system of ``matrix_code``.
            code_system_name: Code system name; required if ``code_system`` is empty.

        Returns:
            Index of the new annotation, or ``NOT_ADDED``.
        """
        if not lead_code:
            return _reject("add_lead_annotation", "lead code is empty", matrix_code)
        if not matrix_code:
            return _reject("add_lead_annotation", "matrix code is empty", matrix_code)
        if not code_system and not code_system_name:
            return _reject("add_lead_annotation", "code system and code system name are both empty", matrix_code)
        return self._append(
            Annotation(
                code=CodedValue(code=matrix_code, code_system=code_system, code_system_name=code_system_name),
                support=RegionOfInterest.for_lead(lead_code, MDC_OID),
            )
        )

    def add_heart_rate(self, bpm: float) -> int:
        return self.add_annotation(HEART_RATE_CODE, MDC_OID, bpm, UNIT_BPM)

    def add_pr_interval(self, ms: float) -> int:
        return self.add_annotation(PR_INTERVAL_CODE, MDC_OID, ms, UNIT_MILLISECOND)

    def add_qrs_duration(self, ms: float) -> int:
        return self.add_annotation(QRS_DURATION_CODE, MDC_OID, ms, UNIT_MILLISECOND)

    def add_qt_interval(self, ms: float) -> int:
        return self.add_annotation(QT_INTERVAL_CODE, MDC_OID, ms, UNIT_MILLISECOND)

    def add_qtc_interval(self, ms: float) -> int:
        return self.add_annotation(QTC_INTERVAL_CODE, MDC_OID, ms, UNIT_MILLISECOND)

    @classmethod
    def from_xml(cls, element: etree._Element) -> "AnnotationSet":
        return cls(
            activity_time=optional_child(element, "activityTime", Time.from_xml),
            components=_decode_components(element),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "annotationSet")
        if self.activity_time is not None:
            self.activity_time.to_xml(element, "activityTime")
        for annotation in self.components:
            annotation.to_xml(sub_element(element, "component"))
        return element


def find_annotation_by_code(annotation_set: AnnotationSet | None, code: str) -> Annotation | None:
    """Like ``AnnotationSet.find_annotation_by_code``, but safe on None."""
    return None if annotation_set is None else annotation_set.find_annotation_by_code(code)


def find_nested_annotation_by_code(annotation: Annotation | None, code: str) -> Annotation | None:
    """Like ``Annotation.find_nested_annotation_by_code``, but safe on None."""
    return None if annotation is None else annotation.find_nested_annotation_by_code(code)


def find_lead_annotation(annotation_set: AnnotationSet | None, lead_code: str) -> Annotation | None:
    """Like ``AnnotationSet.find_lead_annotation``, but safe on None."""
    return None if annotation_set is None else annotation_set.find_lead_annotation(lead_code)
