"""Shared test fixtures for aecg tests."""

from collections.abc import Callable

import neurokit2 as nk
import numpy as np
import pandas as pd
import pytest

from aecg import constants
from aecg.codec import GeneratedTimestampList, PhysicalQuantity, ScaledQuantityList, ValueTypeRegistry
from aecg.coded_value import CodedValue
from aecg.document import (
    AnnotatedECG,
    ClinicalTrial,
    Identifier,
    Interval,
    Sequence,
    SequenceSet,
    Series,
    SubjectAssignment,
    TimepointEvent,
    TrialSubject,
)
from aecg.identifiers import DefaultIdentifierProvider

SAMPLE_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<AnnotatedECG xmlns="urn:hl7-org:v3" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <id root="2.16.840.1.113883.3.1" extension="ecg-001"/>
  <code code="93000" codeSystem="2.16.840.1.113883.6.12" codeSystemName="CPT-4"/>
  <text>Routine ECG</text>
  <effectiveTime>
    <low value="20021122091000.000"/>
    <high value="20021122091010.000"/>
  </effectiveTime>
  <confidentialityCode code="B" codeSystem="2.16.840.1.113883.5.25"/>
  <reasonCode code="PER_PROTOCOL"/>
  <componentOf>
    <timepointEvent>
      <code code="VISIT_2" codeSystemName="SPONSOR"/>
      <componentOf>
        <subjectAssignment>
          <subject>
            <trialSubject>
              <id root="2.16.840.1.113883.3.1" extension="subject-42"/>
              <code code="ENROLLED" codeSystem="2.16.840.1.113883.5.111"/>
              <subjectDemographicPerson>
                <administrativeGenderCode code="F" codeSystem="2.16.840.1.113883.5.1"/>
                <birthTime value="19640926"/>
                <raceCode code="2106-3" codeSystem="2.16.840.1.113883.5.104"/>
              </subjectDemographicPerson>
            </trialSubject>
          </subject>
          <componentOf>
            <clinicalTrial>
              <id root="2.16.840.1.113883.3.1" extension="trial-7"/>
              <title>Thorough QT study</title>
            </clinicalTrial>
          </componentOf>
        </subjectAssignment>
      </componentOf>
    </timepointEvent>
  </componentOf>
  <component>
    <series>
      <id root="2.16.840.1.113883.3.1" extension="series-1"/>
      <code code="RHYTHM" codeSystem="2.16.840.1.113883.5.4"/>
      <effectiveTime>
        <low value="20021122091000.000"/>
        <high value="20021122091000.010"/>
      </effectiveTime>
      <component>
        <sequenceSet>
          <component>
            <sequence>
              <code code="TIME_ABSOLUTE" codeSystem="2.16.840.1.113883.5.4"/>
              <value xsi:type="GLIST_TS">
                <head value="20021122091000.000" unit="s"/>
                <increment value="0.002" unit="s"/>
              </value>
            </sequence>
          </component>
          <component>
            <sequence>
              <code code="MDC_ECG_LEAD_II" codeSystem="2.16.840.1.113883.6.24"/>
              <value xsi:type="SLIST_PQ">
                <origin value="0" unit="uV"/>
                <scale value="5" unit="uV"/>
                <digits>1 2 3 4 5</digits>
              </value>
            </sequence>
          </component>
        </sequenceSet>
      </component>
      <subjectOf>
        <annotationSet>
          <activityTime value="20021122091500"/>
          <component>
            <annotation>
              <code code="MDC_ECG_HEART_RATE" codeSystem="2.16.840.1.113883.6.24"/>
              <value xsi:type="PQ" value="57" unit="bpm"/>
            </annotation>
          </component>
          <component>
            <annotation>
              <code code="MDC_ECG_TIME_PD_QTc" codeSystem="2.16.840.1.113883.6.24"/>
              <component>
                <annotation>
                  <code code="QTcB" codeSystemName="SPONSOR"/>
                  <value xsi:type="PQ" value="412" unit="ms"/>
                </annotation>
              </component>
              <component>
                <annotation>
                  <code code="QTcF" codeSystemName="SPONSOR"/>
                  <value xsi:type="PQ" value="405" unit="ms"/>
                </annotation>
              </component>
            </annotation>
          </component>
          <component>
            <annotation>
              <code code="MDC_ECG_BEAT_MATRIX" codeSystem="2.16.840.1.113883.6.24"/>
              <support>
                <supportingROI classCode="ROIBND">
                  <code code="ROIPS" codeSystem="2.16.840.1.113883.5.4"/>
                  <component>
                    <boundary>
                      <code code="MDC_ECG_LEAD_II" codeSystem="2.16.840.1.113883.6.24"/>
                    </boundary>
                  </component>
                </supportingROI>
              </support>
              <component>
                <annotation>
                  <code code="MDC_ECG_WAVC_PEAK" codeSystem="2.16.840.1.113883.6.24"/>
                  <value xsi:type="PQ" value="1.2" unit="mV"/>
                </annotation>
              </component>
            </annotation>
          </component>
          <component>
            <annotation>
              <code code="MDC_ECG_INTERPRETATION_STATEMENT" codeSystem="2.16.840.1.113883.6.24"/>
              <value xsi:type="ST">Sinus bradycardia</value>
            </annotation>
          </component>
        </annotationSet>
      </subjectOf>
    </series>
  </component>
</AnnotatedECG>
"""


@pytest.fixture(autouse=True)
def value_registries():
    """Start and end every test with freshly built value type registries."""
    ValueTypeRegistry.reset()
    yield
    ValueTypeRegistry.reset()


@pytest.fixture
def sample_xml() -> bytes:
    """XML of a small, valid document with one rhythm series and a few annotations."""
    return SAMPLE_XML


@pytest.fixture
def identifiers() -> DefaultIdentifierProvider:
    """A fresh, unset default identifier provider."""
    return DefaultIdentifierProvider()


@pytest.fixture
def make_document() -> Callable[..., AnnotatedECG]:
    """Factory for a valid document built in code.

    The document holds one rhythm series whose sequence set has an absolute
    time axis (head ``20021122091000.000``, increment 0.002 s) and lead II
    with origin 0 uV, scale 5 uV and digits ``1 2 3 4 5``.
    """

    def _make(digits: str = "1 2 3 4 5") -> AnnotatedECG:
        root = "2.16.840.1.113883.3.1"
        time_sequence = Sequence(
            code=CodedValue(code=constants.TIME_ABSOLUTE, code_system=constants.ACT_CODE_OID),
            value=GeneratedTimestampList(
                head="20021122091000.000",
                increment=PhysicalQuantity(value="0.002", unit="s"),
            ),
        )
        lead_sequence = Sequence(
            code=CodedValue(code="MDC_ECG_LEAD_II", code_system=constants.MDC_OID),
            value=ScaledQuantityList(
                origin=PhysicalQuantity(value="0", unit="uV"),
                scale=PhysicalQuantity(value="5", unit="uV"),
                digits=digits,
            ),
        )
        series = Series(
            id=Identifier(root=root, extension="series-1"),
            code=CodedValue(code=constants.RHYTHM, code_system=constants.ACT_CODE_OID),
            effective_time=Interval.between("20021122091000.000", "20021122091000.010"),
            sequence_sets=[SequenceSet(sequences=[time_sequence, lead_sequence])],
        )
        return AnnotatedECG(
            id=Identifier(root=root, extension="ecg-001"),
            code=CodedValue(code=constants.CPT_ECG_ROUTINE, code_system=constants.CPT_OID),
            effective_time=Interval.between("20021122091000.000", "20021122091010.000"),
            component_of=TimepointEvent(
                subject_assignment=SubjectAssignment(
                    subject=TrialSubject(id=Identifier(root=root, extension="subject-42")),
                    clinical_trial=ClinicalTrial(id=Identifier(root=root, extension="trial-7")),
                )
            ),
            series=[series],
        )

    return _make


@pytest.fixture
def test_data() -> tuple[pd.DataFrame, int]:
    """Generate a synthetic 12-lead ECG for testing.

    Returns:
        Tuple of (signals, sfreq) where signals has one column per MDC lead
        code and values in microvolts.
    """
    sfreq = 250
    duration = 2

    ecg = nk.ecg_simulate(
        duration=duration,
        sampling_rate=sfreq,
        noise=0.01,
        heart_rate=70,
        method="multileads",
        random_state=0,
    )
    signals = pd.DataFrame(np.asarray(ecg) * 1000.0, columns=constants.STANDARD_LEAD_CODES)
    return signals, sfreq
