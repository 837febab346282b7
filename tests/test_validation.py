"""Tests for the recursive validation pass."""

import threading

import pytest

import aecg
from aecg import validation
from aecg.codec import OpaqueValue, PhysicalQuantity, Text
from aecg.coded_value import CodedValue
from aecg.document import (
    Annotation,
    AnnotationSet,
    Boundary,
    ControlVariable,
    DemographicPerson,
    Identifier,
    RegionOfInterest,
    Series,
    SeriesAuthor,
    Time,
)
from aecg.errors import MultipleValidationErrors, ValidationError, missing
from aecg.identifiers import DefaultIdentifierProvider
from aecg.validation import ValidationContext, is_valid_timestamp
from aecg.validation import validators as v

SUBJECT = "componentOf.timepointEvent.componentOf.subjectAssignment.subject.trialSubject"
SERIES = "component[0].series"
SEQUENCE_SET = f"{SERIES}.component[0].sequenceSet"
TIME_SEQUENCE = f"{SEQUENCE_SET}.component[0].sequence"
LEAD_SEQUENCE = f"{SEQUENCE_SET}.component[1].sequence"
ANNOTATION_SET = f"{SERIES}.subjectOf[0].annotationSet"


class CancelAfter(threading.Event):
    """Event that reports itself set after a number of cancellation checks."""

    def __init__(self, checks: int):
        super().__init__()
        self.checks = checks

    def is_set(self) -> bool:
        self.checks -= 1
        return self.checks < 0


def fields(errors: list[ValidationError]) -> list[str]:
    return [e.field for e in errors]


def test_sample_document_is_valid(sample_xml):
    ctx = validation.validate(aecg.parse(sample_xml))
    assert ctx.errors == []
    assert ctx.warnings == []
    assert not ctx.canceled
    assert ctx.get_error() is None


def test_built_document_is_valid(make_document):
    ctx = validation.validate(make_document())
    assert ctx.errors == []
    assert ctx.warnings == []


def test_missing_document():
    ctx = validation.validate(None)
    assert ctx.errors == [missing("AnnotatedECG")]


def test_independent_defects_are_all_reported_in_order(make_document):
    document = make_document()
    document.code = None
    document.component_of.subject_assignment.subject.demographic_person = DemographicPerson(
        gender=CodedValue(code="X")
    )
    document.series[0].sequence_sets[0].sequences[1].value.scale.value = "0"

    ctx = validation.validate(document)
    assert fields(ctx.errors) == [
        "code",
        f"{SUBJECT}.subjectDemographicPerson.administrativeGenderCode",
        f"{LEAD_SEQUENCE}.value.scale",
    ]
    assert ctx.errors[0] == missing("code")
    assert ctx.errors[2].message == v.INVALID_SCALE
    assert isinstance(ctx.get_error(), MultipleValidationErrors)


def test_gender_and_race_are_distinct_fields(make_document):
    document = make_document()
    document.component_of.subject_assignment.subject.demographic_person = DemographicPerson(
        gender=CodedValue(code="X"),
        race=CodedValue(code="Y"),
        birth_time=Time(value="19640926"),
    )
    ctx = validation.validate(document)
    assert fields(ctx.errors) == [
        f"{SUBJECT}.subjectDemographicPerson.administrativeGenderCode",
        f"{SUBJECT}.subjectDemographicPerson.raceCode",
    ]
    assert ctx.errors[0].value == "X"
    assert ctx.errors[1].value == "Y"


def test_missing_required_and_absent_optional(make_document):
    document = make_document()
    document.effective_time = None
    document.confidentiality_code = None
    document.series[0].author = None

    ctx = validation.validate(document)
    assert ctx.errors == [missing("effectiveTime")]


def test_series_author_requires_device(make_document):
    document = make_document()
    document.series[0].author = SeriesAuthor()
    ctx = validation.validate(document)
    assert ctx.errors == [missing(f"{SERIES}.author.seriesAuthor.manufacturedSeriesDevice")]


def test_invalid_domain_codes(make_document):
    document = make_document()
    document.confidentiality_code = CodedValue(code="TOP_SECRET")
    document.reason_code = CodedValue(code="PER_PROTOCOL")
    document.component_of.subject_assignment.subject.code = CodedValue(code="RANDOMIZED")

    ctx = validation.validate(document)
    assert fields(ctx.errors) == ["confidentialityCode", f"{SUBJECT}.code"]


def test_missing_series_and_sequence_sets(make_document):
    document = make_document()
    document.series[0].sequence_sets = []
    ctx = validation.validate(document)
    assert ctx.errors == [missing(f"{SERIES}.component.sequenceSet")]

    document.series = []
    ctx = validation.validate(document)
    assert ctx.errors == [missing("component.series")]


def test_missing_series_code_is_one_error(make_document):
    document = make_document()
    document.series[0].code = None
    ctx = validation.validate(document)
    assert ctx.errors == [missing(f"{SERIES}.code")]
    assert ctx.warnings == []


def test_missing_identifier_without_autocomplete(make_document):
    document = make_document()
    document.component_of.subject_assignment.subject.id = None
    ctx = validation.validate(document, autocomplete_ids=False)
    assert ctx.errors == [missing(f"{SUBJECT}.id")]


def test_missing_identifier_is_autocompleted(make_document):
    document = make_document()
    subject = document.component_of.subject_assignment.subject
    subject.id = None
    document.series[0].id = Identifier(extension="series-1")

    ctx = validation.validate(document)
    assert ctx.errors == []
    assert subject.id.root == document.id.root
    assert document.series[0].id.root == document.id.root
    assert document.series[0].id.extension == "series-1"


def test_autocomplete_uses_the_given_provider(make_document):
    document = make_document()
    document.id = None
    identifiers = DefaultIdentifierProvider("1.2.3.4")

    ctx = validation.validate(document, identifiers=identifiers)
    assert ctx.errors == []
    assert document.id.root == "1.2.3.4"


def test_empty_roots_are_reported_without_a_default(make_document):
    document = make_document()
    document.id = None
    document.series[0].id = Identifier(extension="series-1")

    ctx = validation.validate(document)
    assert ctx.errors == [missing("id"), missing(f"{SERIES}.id.root")]


def test_sequence_set_without_time_sequence(make_document):
    document = make_document()
    sequence_set = document.series[0].sequence_sets[0]
    sequence_set.sequences = sequence_set.lead_sequences()
    ctx = validation.validate(document)
    assert ctx.errors == [ValidationError(SEQUENCE_SET, v.MISSING_TIME_SEQUENCE)]


def test_sequence_set_without_lead_sequence(make_document):
    document = make_document()
    sequence_set = document.series[0].sequence_sets[0]
    sequence_set.sequences = sequence_set.time_sequences()
    ctx = validation.validate(document)
    assert ctx.errors == [ValidationError(SEQUENCE_SET, v.MISSING_LEAD_SEQUENCE)]


def test_sequence_length_mismatch(make_document):
    document = make_document()
    sequence_set = document.series[0].sequence_sets[0]
    other = make_document(digits="1 2 3").series[0].sequence_sets[0].sequences[1]
    other.code = CodedValue(code="MDC_ECG_LEAD_I", code_system=other.code.code_system)
    sequence_set.sequences.append(other)

    ctx = validation.validate(document)
    assert ctx.errors == [ValidationError(SEQUENCE_SET, v.SEQUENCE_LENGTH_MISMATCH, "5 3")]


def test_invalid_digits(make_document):
    ctx = validation.validate(make_document(digits="1 x 3 4 5"))
    assert ctx.errors == [ValidationError(f"{LEAD_SEQUENCE}.value.digits", v.INVALID_DIGITS)]


@pytest.mark.parametrize("increment", ["0", "-0.002", "fast"])
def test_invalid_increment(make_document, increment):
    document = make_document()
    document.series[0].sequence_sets[0].sequences[0].value.increment = PhysicalQuantity(value=increment, unit="s")
    ctx = validation.validate(document)
    assert ctx.errors == [ValidationError(f"{TIME_SEQUENCE}.value.increment", v.INVALID_INCREMENT, increment)]


def test_missing_sequence_value(make_document):
    document = make_document()
    document.series[0].sequence_sets[0].sequences[1].value = None
    ctx = validation.validate(document)
    assert ctx.errors == [missing(f"{LEAD_SEQUENCE}.value")]


def test_derived_series_must_use_relative_time(make_document):
    document = make_document()
    leads = {"MDC_ECG_LEAD_II": [1, 2, 3]}
    absolute = aecg.build_series("MEDIAN_BEAT", "20021122091000", None, 500, leads)
    document.series[0].derived_series = [absolute]

    ctx = validation.validate(document)
    derived_time = f"{SERIES}.derivation[0].derivedSeries.component[0].sequenceSet.component[0].sequence.code"
    assert ctx.errors == [ValidationError(derived_time, v.ABSOLUTE_TIME_IN_DERIVED, "TIME_ABSOLUTE")]

    document.series[0].derived_series = [
        aecg.build_series("MEDIAN_BEAT", "20021122091000", None, 500, leads, relative=True)
    ]
    assert validation.validate(document).errors == []


def test_nested_derivation_is_one_error(make_document):
    """The nested series is not walked, so its own defects are not reported."""
    document = make_document()
    derived = aecg.build_series("MEDIAN_BEAT", "20021122091000", None, 500, {"MDC_ECG_LEAD_II": [1]}, relative=True)
    derived.derived_series = [Series(), Series()]
    document.series[0].derived_series = [derived]

    ctx = validation.validate(document)
    assert ctx.errors == [ValidationError(f"{SERIES}.derivation[0].derivedSeries.derivation", v.NESTED_DERIVATION, "2")]


def test_region_of_interest(make_document):
    document = make_document()
    document.series[0].support = RegionOfInterest(
        class_code="ROIX",
        code=CodedValue(code="ROIPS"),
        boundaries=[Boundary()],
    )
    ctx = validation.validate(document)
    roi = f"{SERIES}.support.supportingROI"
    assert ctx.errors == [
        ValidationError(f"{roi}.classCode", "SupportingROI classCode should be 'ROIBND'", "ROIX"),
        ValidationError(f"{roi}.component[0].boundary.code", "Boundary lead code cannot be empty"),
    ]

    document.series[0].support = RegionOfInterest(class_code="ROIBND")
    assert validation.validate(document).errors == [missing(f"{roi}.code")]

    document.series[0].support = RegionOfInterest(class_code="ROIBND", code=CodedValue(code="ROIXX"))
    assert fields(validation.validate(document).errors) == [f"{roi}.code"]


@pytest.mark.parametrize("roi_code", ["ROIPS", "ROIFS"])
def test_partially_and_fully_specified_regions(make_document, roi_code):
    document = make_document()
    support = RegionOfInterest.for_lead("MDC_ECG_LEAD_II")
    support.code = CodedValue(code=roi_code)
    document.series[0].support = support
    assert validation.validate(document).errors == []


def test_annotation_checks(make_document):
    document = make_document()
    document.series[0].annotation_sets = [
        AnnotationSet(
            activity_time=Time(value="20021122091500"),
            components=[
                Annotation(value=PhysicalQuantity(value="57", unit="bpm")),
                Annotation(code=CodedValue(code="MDC_ECG_HEART_RATE"), value=PhysicalQuantity(unit="bpm")),
                Annotation(code=CodedValue(code="MDC_ECG_HEART_RATE"), value=PhysicalQuantity(value="fast")),
                Annotation(code=CodedValue(code="MDC_ECG_INTERPRETATION_STATEMENT"), value=Text()),
                Annotation(
                    code=CodedValue(code="MDC_ECG_TIME_PD_QTc"),
                    components=[Annotation(code=CodedValue(code=""), value=PhysicalQuantity(value="412"))],
                ),
            ],
        )
    ]
    ctx = validation.validate(document)
    assert [(e.field, e.message) for e in ctx.errors] == [
        (f"{ANNOTATION_SET}.component[0].annotation.code", "Annotation code cannot be empty"),
        (f"{ANNOTATION_SET}.component[1].annotation.value", "Annotation value cannot be empty"),
        (f"{ANNOTATION_SET}.component[2].annotation.value", "Annotation PQ value must be a valid number"),
        (f"{ANNOTATION_SET}.component[3].annotation.value", "Annotation ST value cannot be empty"),
        (
            f"{ANNOTATION_SET}.component[4].annotation.component[0].annotation.code",
            "Annotation code cannot be empty",
        ),
    ]


@pytest.mark.parametrize(
    "activity_time, message",
    [
        ("", "Activity time value cannot be empty"),
        ("2002-11-22", f"{ANNOTATION_SET}.activityTime is not a valid timestamp"),
    ],
)
def test_invalid_activity_time(make_document, activity_time, message):
    document = make_document()
    document.series[0].annotation_sets = [AnnotationSet(activity_time=Time(value=activity_time))]
    ctx = validation.validate(document)
    assert [(e.field, e.message) for e in ctx.errors] == [(f"{ANNOTATION_SET}.activityTime", message)]


def test_imprecise_activity_time_is_advisory(make_document):
    document = make_document()
    document.series[0].add_annotation_set("20021122")

    lenient = validation.validate(document)
    assert lenient.errors == []
    assert fields(lenient.warnings) == [f"{ANNOTATION_SET}.activityTime"]

    strict = validation.validate(document, strict_mode=True)
    assert fields(strict.errors) == [f"{ANNOTATION_SET}.activityTime"]
    assert strict.warnings == []


def test_non_standard_codes_are_advisory(make_document):
    document = make_document()
    document.series[0].code = CodedValue(code="VENDOR_STRIP")
    document.series[0].sequence_sets[0].sequences[1].code = CodedValue(code="MDC_ECG_LEAD_X")

    lenient = validation.validate(document)
    assert lenient.errors == []
    assert fields(lenient.warnings) == [f"{SERIES}.code", f"{LEAD_SEQUENCE}.code"]

    strict = validation.validate(document, strict_mode=True)
    assert fields(strict.errors) == [f"{SERIES}.code", f"{LEAD_SEQUENCE}.code"]


def test_opaque_values_are_advisory(make_document):
    document = make_document()
    document.series[0].sequence_sets[0].sequences[1].value = OpaqueValue(xsi_type="SLIST_REAL", raw=b"<digits/>")

    lenient = validation.validate(document)
    assert lenient.errors == []
    assert [(w.field, w.value) for w in lenient.warnings] == [(f"{LEAD_SEQUENCE}.value", "SLIST_REAL")]
    assert fields(validation.validate(document, strict_mode=True).errors) == [f"{LEAD_SEQUENCE}.value"]


def test_control_variables(make_document):
    document = make_document()
    document.series[0].control_variables = [
        aecg.low_pass_filter(150),
        ControlVariable(value=PhysicalQuantity(value="high", unit="Hz")),
    ]
    ctx = validation.validate(document)
    control = f"{SERIES}.controlVariable[1].controlVariable"
    assert ctx.errors == [
        missing(f"{control}.code"),
        ValidationError(f"{control}.value", "Control variable value must be a valid number", "high"),
    ]


def test_cancel_event_set_before_start(make_document):
    document = make_document()
    document.code = None
    event = threading.Event()
    event.set()

    ctx = validation.validate(document, cancel_event=event)
    assert ctx.canceled
    assert ctx.cancel_reason == "validation canceled"
    assert ctx.errors == []


def test_cancellation_keeps_errors_found_so_far(make_document):
    document = make_document()
    document.code = None
    document.series[0].sequence_sets = []

    ctx = validation.validate(document, cancel_event=CancelAfter(checks=1))
    assert ctx.canceled
    assert ctx.errors == [missing("code")]


def test_cancellation_keeps_prior_errors(make_document):
    prior = ValidationError("batch", "earlier problem")
    ctx = ValidationContext(cancel_event=CancelAfter(checks=0))
    ctx.add_error(prior)

    validation.run(make_document(), ctx)
    assert ctx.canceled
    assert ctx.errors == [prior]


def test_deadline(make_document):
    ctx = validation.validate(make_document(), timeout=0)
    assert ctx.canceled
    assert ctx.cancel_reason == "validation deadline exceeded"


def test_context_merge_and_get_error():
    first = ValidationContext()
    assert first.get_error() is None

    error = ValidationError("id", "id is required")
    first.add_error(error)
    assert first.get_error() is error

    second = ValidationContext()
    second.add_error(ValidationError("code", "code is required"))
    second.add_warning(ValidationError("code", "odd code", "VENDOR"))
    second.canceled = True
    second.cancel_reason = "validation canceled"

    merged = first.merge(second)
    assert merged is first
    assert fields(first.errors) == ["id", "code"]
    assert fields(first.warnings) == ["code"]
    assert first.canceled
    assert first.cancel_reason == "validation canceled"

    combined = first.get_error()
    assert isinstance(combined, MultipleValidationErrors)
    assert combined.errors == first.errors


def test_error_formatting():
    error = ValidationError("administrativeGenderCode", "invalid gender", "X")
    assert str(error) == "validation error on field administrativeGenderCode:\n- invalid gender (value: X)"
    assert str(missing("id")) == "validation error on field id:\n- id is required"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("20021122091000.000", True),
        ("20021122", True),
        ("1700000000", True),
        ("0", False),
        ("4102444800", False),
        ("", False),
        ("2002-11-22", False),
    ],
)
def test_is_valid_timestamp(text, expected):
    assert is_valid_timestamp(text) is expected


def test_domain_rules_have_distinct_demographic_fields():
    rules = validation.DOMAIN_RULES
    assert rules["gender"].field != rules["race"].field
    assert rules["series_type"].advisory
    assert not rules["gender"].advisory
