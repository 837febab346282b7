"""Clinical trial context of an ECG: timepoint, subject, trial and site.

The nesting mirrors the wire format::

    componentOf/timepointEvent
        componentOf/subjectAssignment
            subject/trialSubject
            definition/treatmentGroupAssignment
            componentOf/clinicalTrial
                location/trialSite
"""

from lxml import etree
from pydantic import BaseModel

from ..codec.xml import child, child_text, sub_element, text_element
from ..coded_value import CodedValue
from .base import AssignedEntity, Identifier, Interval, Organization, PersonName, Time, optional_child


def _wrapped(element: etree._Element, outer: str, inner: str) -> etree._Element | None:
    node = child(element, outer)
    return None if node is None else child(node, inner)


class Address(BaseModel):
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Address":
        return cls(
            city=child_text(element, "city"),
            state=child_text(element, "state"),
            country=child_text(element, "country"),
        )

    def to_xml(self, parent: etree._Element, tag: str = "addr") -> etree._Element:
        element = sub_element(parent, tag)
        text_element(element, "city", self.city)
        text_element(element, "state", self.state)
        text_element(element, "country", self.country)
        return element


class TrialSite(BaseModel):
    """Site where the trial is conducted.

    Attributes:
        id: Site identifier (required).
        name: Site name.
        address: Site address.
        investigator: Responsible investigator.
    """

    id: Identifier | None = None
    name: str | None = None
    address: Address | None = None
    investigator: AssignedEntity | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "TrialSite":
        location = child(element, "location")
        investigator = _wrapped(element, "responsibleParty", "trialInvestigator")
        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            name=None if location is None else child_text(location, "name"),
            address=None if location is None else optional_child(location, "addr", Address.from_xml),
            investigator=None
            if investigator is None
            else AssignedEntity.from_xml(investigator, person_tag="investigatorPerson"),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(sub_element(parent, "location"), "trialSite")
        if self.id is not None:
            self.id.to_xml(element)
        if self.name is not None or self.address is not None:
            location = sub_element(element, "location")
            text_element(location, "name", self.name)
            if self.address is not None:
                self.address.to_xml(location)
        if self.investigator is not None:
            self.investigator.to_xml(
                sub_element(element, "responsibleParty"),
                "trialInvestigator",
                person_tag="investigatorPerson",
            )
        return element


class ClinicalTrial(BaseModel):
    """The clinical trial the ECG was collected for.

    Attributes:
        id: Trial identifier (required).
        title: Trial title.
        activity_time: Period during which the trial was active.
        site: Trial site, wrapped in ``location/trialSite`` on the wire.
        sponsor: Sponsoring organization.
    """

    id: Identifier | None = None
    title: str | None = None
    activity_time: Interval | None = None
    site: TrialSite | None = None
    sponsor: Organization | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "ClinicalTrial":
        site = _wrapped(element, "location", "trialSite")
        sponsor = _wrapped(element, "sponsor", "sponsorOrganization")
        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            title=child_text(element, "title"),
            activity_time=optional_child(element, "activityTime", Interval.from_xml),
            site=None if site is None else TrialSite.from_xml(site),
            sponsor=None if sponsor is None else Organization.from_xml(sponsor),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "clinicalTrial")
        if self.id is not None:
            self.id.to_xml(element)
        text_element(element, "title", self.title)
        if self.activity_time is not None:
            self.activity_time.to_xml(element, "activityTime")
        if self.site is not None:
            self.site.to_xml(element)
        if self.sponsor is not None:
            self.sponsor.to_xml(sub_element(element, "sponsor"), "sponsorOrganization")
        return element


class DemographicPerson(BaseModel):
    """Demographic data of a trial subject."""

    name: PersonName | None = None
    gender: CodedValue | None = None
    birth_time: Time | None = None
    race: CodedValue | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "DemographicPerson":
        return cls(
            name=optional_child(element, "name", PersonName.from_xml),
            gender=optional_child(element, "administrativeGenderCode", CodedValue.from_xml),
            birth_time=optional_child(element, "birthTime", Time.from_xml),
            race=optional_child(element, "raceCode", CodedValue.from_xml),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "subjectDemographicPerson")
        if self.name is not None:
            self.name.to_xml(element)
        if self.gender is not None:
            self.gender.to_xml(element, "administrativeGenderCode")
        if self.birth_time is not None:
            self.birth_time.to_xml(element, "birthTime")
        if self.race is not None:
            self.race.to_xml(element, "raceCode")
        return element


class TrialSubject(BaseModel):
    """A subject enrolled in (or screened for) a trial.

    Attributes:
        id: Subject identifier (required).
        code: Role of the subject, ``SCREENING`` or ``ENROLLED``.
        demographic_person: Demographic data.
    """

    id: Identifier | None = None
    code: CodedValue | None = None
    demographic_person: DemographicPerson | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "TrialSubject":
        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            code=optional_child(element, "code", CodedValue.from_xml),
            demographic_person=optional_child(element, "subjectDemographicPerson", DemographicPerson.from_xml),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(sub_element(parent, "subject"), "trialSubject")
        if self.id is not None:
            self.id.to_xml(element)
        if self.code is not None:
            self.code.to_xml(element)
        if self.demographic_person is not None:
            self.demographic_person.to_xml(element)
        return element


class SubjectAssignment(BaseModel):
    """Assignment of a subject to a trial and, optionally, a treatment group."""

    subject: TrialSubject | None = None
    treatment_group: CodedValue | None = None
    clinical_trial: ClinicalTrial | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "SubjectAssignment":
        subject = _wrapped(element, "subject", "trialSubject")
        group = _wrapped(element, "definition", "treatmentGroupAssignment")
        trial = _wrapped(element, "componentOf", "clinicalTrial")
        return cls(
            subject=None if subject is None else TrialSubject.from_xml(subject),
            treatment_group=None if group is None else optional_child(group, "code", CodedValue.from_xml),
            clinical_trial=None if trial is None else ClinicalTrial.from_xml(trial),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "subjectAssignment")
        if self.subject is not None:
            self.subject.to_xml(element)
        if self.treatment_group is not None:
            group = sub_element(sub_element(element, "definition"), "treatmentGroupAssignment")
            self.treatment_group.to_xml(group)
        if self.clinical_trial is not None:
            self.clinical_trial.to_xml(sub_element(element, "componentOf"))
        return element


class TimepointEvent(BaseModel):
    """The protocol timepoint (visit) at which the ECG was recorded."""

    code: CodedValue | None = None
    effective_time: Interval | None = None
    reason_code: CodedValue | None = None
    performer: AssignedEntity | None = None
    subject_assignment: SubjectAssignment | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "TimepointEvent":
        performer = _wrapped(element, "performer", "studyEventPerformer")
        assignment = _wrapped(element, "componentOf", "subjectAssignment")
        return cls(
            code=optional_child(element, "code", CodedValue.from_xml),
            effective_time=optional_child(element, "effectiveTime", Interval.from_xml),
            reason_code=optional_child(element, "reasonCode", CodedValue.from_xml),
            performer=None if performer is None else AssignedEntity.from_xml(performer),
            subject_assignment=None if assignment is None else SubjectAssignment.from_xml(assignment),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "timepointEvent")
        if self.code is not None:
            self.code.to_xml(element)
        if self.effective_time is not None:
            self.effective_time.to_xml(element)
        if self.reason_code is not None:
            self.reason_code.to_xml(element, "reasonCode")
        if self.performer is not None:
            self.performer.to_xml(sub_element(element, "performer"), "studyEventPerformer")
        if self.subject_assignment is not None:
            self.subject_assignment.to_xml(sub_element(element, "componentOf"))
        return element
