"""Document tree of an HL7 annotated ECG."""

from .annotation import (
    NOT_ADDED,
    Annotation,
    AnnotationSet,
    find_annotation_by_code,
    find_lead_annotation,
    find_nested_annotation_by_code,
)
from .base import AssignedEntity, Identifier, Interval, Organization, PersonName, Time
from .document import AnnotatedECG
from .roi import Boundary, RegionOfInterest
from .series import ControlVariable, Device, SecondaryPerformer, Sequence, SequenceSet, Series, SeriesAuthor
from .trial import (
    Address,
    ClinicalTrial,
    DemographicPerson,
    SubjectAssignment,
    TimepointEvent,
    TrialSite,
    TrialSubject,
)

__all__ = [
    "NOT_ADDED",
    "Address",
    "AnnotatedECG",
    "Annotation",
    "AnnotationSet",
    "AssignedEntity",
    "Boundary",
    "ClinicalTrial",
    "ControlVariable",
    "DemographicPerson",
    "Device",
    "Identifier",
    "Interval",
    "Organization",
    "PersonName",
    "RegionOfInterest",
    "SecondaryPerformer",
    "Sequence",
    "SequenceSet",
    "Series",
    "SeriesAuthor",
    "SubjectAssignment",
    "Time",
    "TimepointEvent",
    "TrialSite",
    "TrialSubject",
    "find_annotation_by_code",
    "find_lead_annotation",
    "find_nested_annotation_by_code",
]
