"""Tests for value types contributed through the registries and entry points."""

from typing import ClassVar

import pydantic
import pytest
from lxml import etree
from pydantic import BaseModel

import aecg
from aecg.codec import (
    ANNOTATION_VALUES,
    SEQUENCE_VALUES,
    OpaqueValue,
    PhysicalQuantity,
    ScaledQuantityList,
    ValueTypeRegistry,
    registry,
)
from aecg.codec.xml import child, sub_element
from aecg.document import Annotation, Sequence

LEAD_II_VALUE = b"""<value xsi:type="SLIST_PQ">
                <origin value="0" unit="uV"/>
                <scale value="5" unit="uV"/>
                <digits>1 2 3 4 5</digits>
              </value>"""
REAL_VALUE = b'<value xsi:type="SLIST_REAL"><digits>1.5 2.5 3.5 4.5 5.5</digits></value>'
STATEMENT_VALUE = b'<value xsi:type="ST">Sinus bradycardia</value>'
CODED_VALUE = b'<value xsi:type="CD" code="NSR" codeSystem="2.16.840.1.113883.6.24"/>'


class ScaledRealList(BaseModel):
    """Lead samples written as plain decimals."""

    xsi_type: ClassVar[str] = "SLIST_REAL"
    digits: str

    @classmethod
    def from_xml(cls, element: etree._Element) -> "ScaledRealList":
        digits = child(element, "digits")
        return cls(digits="" if digits is None else digits.text or "")

    def write_xml(self, element: etree._Element) -> None:
        sub_element(element, "digits", text=self.digits)


class CodedObservation(BaseModel):
    xsi_type: ClassVar[str] = "CD"
    code: str
    code_system: str = ""

    @classmethod
    def from_xml(cls, element: etree._Element) -> "CodedObservation":
        return cls(code=element.get("code", ""), code_system=element.get("codeSystem", ""))

    def write_xml(self, element: etree._Element) -> None:
        element.set("code", self.code)
        if self.code_system:
            element.set("codeSystem", self.code_system)


class FakeEntryPoint:
    def __init__(self, name: str, target):
        self.name = name
        self.target = target

    def load(self):
        if isinstance(self.target, Exception):
            raise self.target
        return self.target


@pytest.fixture
def real_values() -> ValueTypeRegistry:
    sequences = ValueTypeRegistry.get_instance(SEQUENCE_VALUES)
    sequences.register("SLIST_REAL", ScaledRealList)
    return sequences


def test_registered_sequence_value_is_parsed_validated_and_written(real_values, sample_xml):
    data = sample_xml.replace(LEAD_II_VALUE, REAL_VALUE)
    assert data != sample_xml

    document = aecg.parse(data)
    lead = document.series[0].sequence_sets[0].find_sequence("MDC_ECG_LEAD_II")
    assert lead.value == ScaledRealList(digits="1.5 2.5 3.5 4.5 5.5")
    assert lead.length is None

    ctx = aecg.validate(document)
    assert ctx.errors == []
    unchecked = [w for w in ctx.warnings if w.value == "SLIST_REAL"]
    assert len(unchecked) == 1
    assert unchecked[0].field.endswith("sequence.value")
    assert unchecked[0].message == "No checks available for value type 'SLIST_REAL'"

    # A registered type is legitimate, so strict mode does not reject it
    strict = aecg.validate(document, settings=aecg.Settings(validation={"strict_mode": True}))
    assert [e for e in strict.errors if e.value == "SLIST_REAL"] == []
    assert [w.value for w in strict.warnings] == ["SLIST_REAL"]

    assert aecg.parse(aecg.serialize(document)) == document


def test_registered_annotation_value(sample_xml):
    ValueTypeRegistry.get_instance(ANNOTATION_VALUES).register("CD", CodedObservation)
    document = aecg.parse(sample_xml.replace(STATEMENT_VALUE, CODED_VALUE))

    statement = aecg.find_annotation_by_code(
        document.series[0].annotation_sets[0], "MDC_ECG_INTERPRETATION_STATEMENT"
    )
    assert statement.value == CodedObservation(code="NSR", code_system="2.16.840.1.113883.6.24")

    ctx = aecg.validate(document)
    assert ctx.errors == []
    assert [w.value for w in ctx.warnings if w.value == "CD"] == ["CD"]
    assert aecg.parse(aecg.serialize(document)) == document


def test_unregistered_value_type_stays_opaque(sample_xml):
    document = aecg.parse(sample_xml.replace(LEAD_II_VALUE, REAL_VALUE))
    lead = document.series[0].sequence_sets[0].find_sequence("MDC_ECG_LEAD_II")
    assert isinstance(lead.value, OpaqueValue)
    strict = aecg.validate(document, settings=aecg.Settings(validation={"strict_mode": True}))
    assert [e.value for e in strict.errors if e.field.endswith("sequence.value")] == ["SLIST_REAL"]


def test_value_fields_only_accept_registered_payloads(real_values):
    assert Sequence(value=ScaledRealList(digits="1")).value == ScaledRealList(digits="1")

    with pytest.raises(pydantic.ValidationError):
        Annotation(value=ScaledRealList(digits="1"))
    scaled = ScaledQuantityList(
        origin=PhysicalQuantity(value="0", unit="uV"),
        scale=PhysicalQuantity(value="5", unit="uV"),
        digits="1",
    )
    with pytest.raises(pydantic.ValidationError):
        Annotation(value=scaled)
    with pytest.raises(pydantic.ValidationError):
        Sequence(value="1 2 3")

    real_values.unregister("SLIST_REAL")
    with pytest.raises(pydantic.ValidationError):
        Sequence(value=ScaledRealList(digits="1"))


def test_value_types_from_entry_points(monkeypatch, sample_xml):
    installed = {
        SEQUENCE_VALUES: [
            FakeEntryPoint("SLIST_PQ", ScaledQuantityList),
            FakeEntryPoint("SLIST_INT", ScaledRealList),
            FakeEntryPoint("SLIST_BROKEN", ImportError("no module named acme")),
            FakeEntryPoint("SLIST_REAL", ScaledRealList),
        ],
    }
    monkeypatch.setattr(registry, "entry_points", lambda group: installed.get(group, []))

    sequences = ValueTypeRegistry.get_instance(SEQUENCE_VALUES)
    assert sequences.get("SLIST_REAL") is ScaledRealList
    assert sequences.get("SLIST_INT") is not ScaledRealList
    assert not sequences.has_type("SLIST_BROKEN")
    assert not ValueTypeRegistry.get_instance(ANNOTATION_VALUES).has_type("SLIST_REAL")

    document = aecg.parse(sample_xml.replace(LEAD_II_VALUE, REAL_VALUE))
    lead = document.series[0].sequence_sets[0].find_sequence("MDC_ECG_LEAD_II")
    assert isinstance(lead.value, ScaledRealList)


def test_reset_discards_manual_registrations(real_values):
    assert ValueTypeRegistry.get_instance(SEQUENCE_VALUES) is real_values

    ValueTypeRegistry.reset()
    fresh = ValueTypeRegistry.get_instance(SEQUENCE_VALUES)
    assert fresh is not real_values
    assert not fresh.has_type("SLIST_REAL")
    assert fresh.has_type("SLIST_PQ")
