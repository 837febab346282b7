"""Recursive validators for every entity of the document tree.

Every validator takes ``(entity, ctx, path)`` and accepts ``entity=None``:
an absent optional entity is silently valid, an absent required entity
(``required=True``) is reported as exactly one "missing" error naming the
field. Problems are recorded in the context and the walk always continues
into siblings and children; only cancellation stops it, by raising
``ValidationCanceled`` from the entry check of a composite validator.

``path`` is the dotted location of the entity in the wire tree, e.g.
``component[0].series.component[0].sequenceSet``. It is used as the field
of every error reported for the entity.
"""

import functools
from collections.abc import Callable

from .. import numeric
from .._logging import logger
from ..codec.payloads import (
    GeneratedQuantityList,
    GeneratedTimestampList,
    OpaqueValue,
    PhysicalQuantity,
    ScaledIntegerList,
    ScaledQuantityList,
    Text,
)
from ..coded_value import CodedValue
from ..constants import ROI_CLASS_CODE, TIME_ABSOLUTE
from ..document import (
    AnnotatedECG,
    Annotation,
    AnnotationSet,
    AssignedEntity,
    ClinicalTrial,
    ControlVariable,
    DemographicPerson,
    Identifier,
    Interval,
    RegionOfInterest,
    Sequence,
    SequenceSet,
    Series,
    SeriesAuthor,
    SubjectAssignment,
    Time,
    TimepointEvent,
    TrialSite,
    TrialSubject,
)
from ..errors import InvalidNumericError, invalid, missing
from .context import ValidationContext
from .rules import DOMAIN_RULES, SECOND_PRECISION, is_valid_timestamp

MISSING_TIME_SEQUENCE = "SequenceSet must have at least one time sequence (TIME_ABSOLUTE or TIME_RELATIVE)"
MISSING_LEAD_SEQUENCE = "SequenceSet must have at least one lead sequence"
SEQUENCE_LENGTH_MISMATCH = "All sequences in a SequenceSet must have the same length"
INVALID_DIGITS = "Digits must be space-separated integers"
INVALID_INCREMENT = "Increment value must be a positive number"
INVALID_SCALE = "Scale value must be a non-zero number"
NESTED_DERIVATION = "Derived series must not contain nested derivations"
ABSOLUTE_TIME_IN_DERIVED = "Derived series time sequences must be TIME_RELATIVE, not TIME_ABSOLUTE"


def join(path: str, name: str) -> str:
    """Append ``name`` to a dotted ``path``."""
    return f"{path}.{name}" if path else name


def validator(composite: bool = True) -> Callable:
    """Apply the absent-entity rule and, for composites, the cancellation check.

    The wrapped function is only called for a present entity. The wrapper
    accepts an extra ``required`` keyword (default False).
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(entity, ctx: ValidationContext, path: str, required: bool = False, **kwargs) -> None:
            if composite:
                ctx.check_canceled()
            if entity is None:
                if required:
                    ctx.add_error(missing(path))
                return
            func(entity, ctx, path, **kwargs)

        return wrapper

    return decorator


def _decimal(value: str) -> float | None:
    try:
        return numeric.parse_decimal(value)
    except InvalidNumericError:
        return None


# Leaves


@validator(composite=False)
def validate_identifier(identifier: Identifier, ctx: ValidationContext, path: str) -> None:
    """Check the root of a present identifier, filling it from the default provider if empty."""
    if identifier.root:
        return
    if ctx.autocomplete_ids and ctx.identifiers.is_set():
        identifier.root = ctx.identifiers.root
        logger.debug(f"Filled empty identifier root of {path} with {identifier.root}")
        return
    ctx.add_error(missing(join(path, "root")))


def validate_owned_identifier(owner, ctx: ValidationContext, path: str, required: bool = False) -> None:
    """Validate ``owner.id``, creating it from the default provider if a required id is absent."""
    if owner.id is None and required and ctx.autocomplete_ids and ctx.identifiers.is_set():
        owner.id = Identifier(root=ctx.identifiers.root)
        logger.debug(f"Filled missing identifier {join(path, 'id')} with {owner.id.root}")
    validate_identifier(owner.id, ctx, join(path, "id"), required=required)


@validator(composite=False)
def validate_code(code: CodedValue, ctx: ValidationContext, path: str, require_system: bool = False) -> None:
    """Check a coded value. An empty code counts as absent.

    With ``require_system`` a code system or, for vendor codes, a code
    system name must be present.
    """
    if code.is_empty():
        ctx.add_error(missing(path))
        return
    if require_system and not code.code_system and not code.code_system_name:
        ctx.add_error(missing(join(path, "codeSystem")))


@validator(composite=False)
def validate_domain(code: CodedValue, ctx: ValidationContext, path: str, domain: str = "") -> None:
    """Check membership of ``code`` in a closed domain of ``DOMAIN_RULES``.

    ``path`` is the location of the parent; the rule supplies the element name.
    """
    rule = DOMAIN_RULES[domain]
    error = code.check_membership(rule.allowed, join(path, rule.field))
    if error is None:
        return
    if rule.advisory:
        ctx.advisory(error)
    else:
        ctx.add_error(error)


@validator(composite=False)
def validate_time(value: Time, ctx: ValidationContext, path: str) -> None:
    if not is_valid_timestamp(value.value):
        ctx.add_error(invalid(path, f"{path} is not a valid timestamp", value.value))


@validator(composite=False)
def validate_interval(interval: Interval, ctx: ValidationContext, path: str) -> None:
    """An interval needs at least one endpoint, and every present endpoint must parse."""
    endpoints = interval.endpoints()
    if not endpoints:
        ctx.add_error(invalid(path, f"{path} must have at least a low or a high value"))
        return
    for name, endpoint in endpoints:
        validate_time(endpoint, ctx, join(path, name))


# Document root and trial context


@validator()
def validate_document(document: AnnotatedECG, ctx: ValidationContext, path: str) -> None:
    if document.id is not None and document.id.root:
        ctx.identifiers.assign(document.id.root)
    validate_owned_identifier(document, ctx, path, required=True)
    validate_code(document.code, ctx, join(path, "code"), required=True, require_system=True)
    validate_interval(document.effective_time, ctx, join(path, "effectiveTime"), required=True)
    validate_domain(document.confidentiality_code, ctx, path, domain="confidentiality")
    validate_domain(document.reason_code, ctx, path, domain="reason")
    validate_timepoint_event(
        document.component_of,
        ctx,
        join(path, "componentOf.timepointEvent"),
        required=True,
    )
    if not document.series:
        ctx.add_error(missing(join(path, "component.series")))
    for i, series in enumerate(document.series):
        validate_series(series, ctx, join(path, f"component[{i}].series"))


@validator()
def validate_timepoint_event(event: TimepointEvent, ctx: ValidationContext, path: str) -> None:
    validate_interval(event.effective_time, ctx, join(path, "effectiveTime"))
    validate_assigned_entity(event.performer, ctx, join(path, "performer.studyEventPerformer"))
    validate_subject_assignment(
        event.subject_assignment,
        ctx,
        join(path, "componentOf.subjectAssignment"),
        required=True,
    )


@validator()
def validate_assigned_entity(entity: AssignedEntity, ctx: ValidationContext, path: str) -> None:
    validate_owned_identifier(entity, ctx, path)


@validator()
def validate_subject_assignment(assignment: SubjectAssignment, ctx: ValidationContext, path: str) -> None:
    validate_trial_subject(assignment.subject, ctx, join(path, "subject.trialSubject"), required=True)
    validate_clinical_trial(
        assignment.clinical_trial,
        ctx,
        join(path, "componentOf.clinicalTrial"),
        required=True,
    )


@validator()
def validate_trial_subject(subject: TrialSubject, ctx: ValidationContext, path: str) -> None:
    validate_owned_identifier(subject, ctx, path, required=True)
    validate_domain(subject.code, ctx, path, domain="subject_role")
    validate_demographic_person(subject.demographic_person, ctx, join(path, "subjectDemographicPerson"))


@validator()
def validate_demographic_person(person: DemographicPerson, ctx: ValidationContext, path: str) -> None:
    validate_domain(person.gender, ctx, path, domain="gender")
    validate_domain(person.race, ctx, path, domain="race")
    validate_time(person.birth_time, ctx, join(path, "birthTime"))


@validator()
def validate_clinical_trial(trial: ClinicalTrial, ctx: ValidationContext, path: str) -> None:
    validate_owned_identifier(trial, ctx, path, required=True)
    validate_interval(trial.activity_time, ctx, join(path, "activityTime"))
    validate_trial_site(trial.site, ctx, join(path, "location.trialSite"))
    if trial.sponsor is not None:
        validate_owned_identifier(trial.sponsor, ctx, join(path, "sponsor.sponsorOrganization"))


@validator()
def validate_trial_site(site: TrialSite, ctx: ValidationContext, path: str) -> None:
    validate_owned_identifier(site, ctx, path, required=True)
    if site.investigator is not None:
        validate_owned_identifier(
            site.investigator,
            ctx,
            join(path, "responsibleParty.trialInvestigator"),
            required=True,
        )


# Series


@validator()
def validate_series(series: Series, ctx: ValidationContext, path: str, derived: bool = False) -> None:
    """Validate a series and everything below it.

    A derived series must not carry derivations of its own, and its time
    sequences must be relative.
    """
    validate_owned_identifier(series, ctx, path)
    validate_code(series.code, ctx, join(path, "code"), required=True)
    if series.code is not None and not series.code.is_empty():
        validate_domain(series.code, ctx, path, domain="series_type")
    validate_interval(series.effective_time, ctx, join(path, "effectiveTime"), required=True)
    validate_series_author(series.author, ctx, join(path, "author.seriesAuthor"))
    for i, performer in enumerate(series.secondary_performers):
        performer_path = join(path, f"secondaryPerformer[{i}]")
        validate_interval(performer.time, ctx, join(performer_path, "time"))
        validate_assigned_entity(performer.performer, ctx, join(performer_path, "seriesPerformer"))
    validate_region_of_interest(series.support, ctx, join(path, "support.supportingROI"))
    for i, control_variable in enumerate(series.control_variables):
        validate_control_variable(control_variable, ctx, join(path, f"controlVariable[{i}].controlVariable"))

    if not series.sequence_sets:
        ctx.add_error(missing(join(path, "component.sequenceSet")))
    for i, sequence_set in enumerate(series.sequence_sets):
        validate_sequence_set(sequence_set, ctx, join(path, f"component[{i}].sequenceSet"), derived=derived)

    if derived and series.derived_series:
        ctx.add_error(invalid(join(path, "derivation"), NESTED_DERIVATION, len(series.derived_series)))
    elif not derived:
        for i, derived_series in enumerate(series.derived_series):
            validate_series(derived_series, ctx, join(path, f"derivation[{i}].derivedSeries"), derived=True)

    for i, annotation_set in enumerate(series.annotation_sets):
        validate_annotation_set(annotation_set, ctx, join(path, f"subjectOf[{i}].annotationSet"))


@validator()
def validate_series_author(author: SeriesAuthor, ctx: ValidationContext, path: str) -> None:
    validate_owned_identifier(author, ctx, path)
    device_path = join(path, "manufacturedSeriesDevice")
    if author.device is None:
        ctx.add_error(missing(device_path))
        return
    validate_owned_identifier(author.device, ctx, device_path)


@validator()
def validate_control_variable(control_variable: ControlVariable, ctx: ValidationContext, path: str) -> None:
    validate_code(control_variable.code, ctx, join(path, "code"), required=True)
    value = control_variable.value
    if isinstance(value, PhysicalQuantity) and not value.is_numeric():
        ctx.add_error(invalid(join(path, "value"), "Control variable value must be a valid number", value.value))
    elif isinstance(value, OpaqueValue):
        _opaque(value, ctx, join(path, "value"))
    elif value is not None and not isinstance(value, (PhysicalQuantity, Text)):
        _unchecked(value, ctx, join(path, "value"))
    for i, component in enumerate(control_variable.components):
        validate_control_variable(component, ctx, join(path, f"component[{i}].controlVariable"))


@validator()
def validate_sequence_set(sequence_set: SequenceSet, ctx: ValidationContext, path: str, derived: bool = False) -> None:
    """Check the shape of a sequence set, then each of its sequences.

    A sequence set needs a time sequence and a lead sequence, and all
    sequences carrying digits must have the same number of them.
    """
    if not sequence_set.time_sequences():
        ctx.add_error(invalid(path, MISSING_TIME_SEQUENCE))
    if not sequence_set.lead_sequences():
        ctx.add_error(invalid(path, MISSING_LEAD_SEQUENCE))

    lengths = [s.length for s in sequence_set.sequences if s.length is not None]
    if len(set(lengths)) > 1:
        ctx.add_error(invalid(path, SEQUENCE_LENGTH_MISMATCH, " ".join(str(n) for n in lengths)))

    for i, sequence in enumerate(sequence_set.sequences):
        validate_sequence(sequence, ctx, join(path, f"component[{i}].sequence"), derived=derived)


@validator(composite=False)
def validate_sequence(sequence: Sequence, ctx: ValidationContext, path: str, derived: bool = False) -> None:
    code_path = join(path, "code")
    if sequence.code.is_empty():
        ctx.add_error(missing(code_path))
    elif sequence.is_time():
        if derived and sequence.code.code == TIME_ABSOLUTE:
            ctx.add_error(invalid(code_path, ABSOLUTE_TIME_IN_DERIVED, sequence.code.code))
    else:
        validate_domain(sequence.code, ctx, path, domain="lead")
    validate_sequence_value(sequence.value, ctx, join(path, "value"), required=True)


@validator(composite=False)
def validate_sequence_value(payload, ctx: ValidationContext, path: str) -> None:
    """Check the numeric fields of a sequence value, dispatching on its shape."""
    if isinstance(payload, GeneratedTimestampList):
        if not is_valid_timestamp(payload.head):
            ctx.add_error(invalid(join(path, "head"), f"{join(path, 'head')} is not a valid timestamp", payload.head))
        _positive_increment(payload.increment.value, ctx, path)
    elif isinstance(payload, GeneratedQuantityList):
        if _decimal(payload.head.value) is None:
            ctx.add_error(invalid(join(path, "head"), "Head value must be a number", payload.head.value))
        _positive_increment(payload.increment.value, ctx, path)
    elif isinstance(payload, ScaledQuantityList):
        if _decimal(payload.origin.value) is None:
            ctx.add_error(invalid(join(path, "origin"), "Origin value must be a number", payload.origin.value))
        scale = _decimal(payload.scale.value)
        if scale is None or scale == 0:
            ctx.add_error(invalid(join(path, "scale"), INVALID_SCALE, payload.scale.value))
        _digits(payload.digits, ctx, path)
    elif isinstance(payload, ScaledIntegerList):
        if payload.scale == 0:
            ctx.add_error(invalid(join(path, "scale"), INVALID_SCALE, payload.scale))
        _digits(payload.digits, ctx, path)
    elif isinstance(payload, OpaqueValue):
        _opaque(payload, ctx, path)
    else:
        _unchecked(payload, ctx, path)


def _positive_increment(value: str, ctx: ValidationContext, path: str) -> None:
    increment = _decimal(value)
    if increment is None or increment <= 0:
        ctx.add_error(invalid(join(path, "increment"), INVALID_INCREMENT, value))


def _digits(digits: str, ctx: ValidationContext, path: str) -> None:
    try:
        numeric.parse_digits(digits)
    except InvalidNumericError:
        ctx.add_error(invalid(join(path, "digits"), INVALID_DIGITS))


def _opaque(payload: OpaqueValue, ctx: ValidationContext, path: str) -> None:
    ctx.advisory(invalid(path, f"Unrecognized value type {payload.xsi_type!r} kept as opaque", payload.xsi_type))


def _unchecked(payload: object, ctx: ValidationContext, path: str) -> None:
    # Registered plugin payloads are decoded but have no built-in checks
    xsi_type = getattr(payload, "xsi_type", type(payload).__name__)
    ctx.add_warning(invalid(path, f"No checks available for value type {xsi_type!r}", xsi_type))


# Annotations


@validator()
def validate_annotation_set(annotation_set: AnnotationSet, ctx: ValidationContext, path: str) -> None:
    activity_time = annotation_set.activity_time
    time_path = join(path, "activityTime")
    if activity_time is not None:
        if activity_time.is_empty():
            ctx.add_error(invalid(time_path, "Activity time value cannot be empty"))
        elif not is_valid_timestamp(activity_time.value):
            ctx.add_error(invalid(time_path, f"{time_path} is not a valid timestamp", activity_time.value))
        elif len(activity_time.value.partition(".")[0]) < SECOND_PRECISION:
            ctx.advisory(
                invalid(time_path, "Activity time should have at least second precision", activity_time.value)
            )
    for i, annotation in enumerate(annotation_set.components):
        validate_annotation(annotation, ctx, join(path, f"component[{i}].annotation"))


@validator()
def validate_annotation(annotation: Annotation, ctx: ValidationContext, path: str) -> None:
    """Validate an annotation, its value, its support region and its components."""
    if annotation.code is None or annotation.code.is_empty():
        ctx.add_error(invalid(join(path, "code"), "Annotation code cannot be empty"))

    value = annotation.value
    value_path = join(path, "value")
    if isinstance(value, PhysicalQuantity):
        if not value.value:
            ctx.add_error(invalid(value_path, "Annotation value cannot be empty"))
        elif not value.is_numeric():
            ctx.add_error(invalid(value_path, "Annotation PQ value must be a valid number", value.value))
    elif isinstance(value, Text):
        if not value.content:
            ctx.add_error(invalid(value_path, "Annotation ST value cannot be empty"))
    elif isinstance(value, OpaqueValue):
        _opaque(value, ctx, value_path)
    elif value is not None:
        _unchecked(value, ctx, value_path)

    validate_region_of_interest(annotation.support, ctx, join(path, "support.supportingROI"))
    for i, component in enumerate(annotation.components):
        validate_annotation(component, ctx, join(path, f"component[{i}].annotation"))


@validator()
def validate_region_of_interest(roi: RegionOfInterest, ctx: ValidationContext, path: str) -> None:
    """Check class code, code and boundary codes of a region. ``ROIPS`` and ``ROIFS`` are checked alike."""
    if roi.class_code and roi.class_code != ROI_CLASS_CODE:
        ctx.add_error(
            invalid(join(path, "classCode"), f"SupportingROI classCode should be '{ROI_CLASS_CODE}'", roi.class_code)
        )
    if roi.code is None or roi.code.is_empty():
        ctx.add_error(missing(join(path, "code")))
    else:
        validate_domain(roi.code, ctx, path, domain="roi")
    for i, boundary in enumerate(roi.boundaries):
        if boundary.code.is_empty():
            ctx.add_error(invalid(join(path, f"component[{i}].boundary.code"), "Boundary lead code cannot be empty"))
