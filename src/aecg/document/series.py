"""Series, sequence sets and sequences: the waveform part of the document.

A series holds one or more sequence sets. Each sequence set is a table of
equal-length sequences: one time axis (``TIME_ABSOLUTE`` or ``TIME_RELATIVE``)
and one sequence per lead. Derived series (e.g. a median beat computed from a
rhythm strip) are attached to their source series through ``derivation``.
"""

import pandas as pd
from lxml import etree
from pydantic import BaseModel, Field

from ..codec.payloads import GeneratedQuantityList, GeneratedTimestampList, has_digits
from ..codec.registry import AnnotationValuePayload, SequenceValuePayload
from ..codec.values import decode_annotation_value, decode_sequence_value, encode_value
from ..codec.xml import child, child_text, children, sub_element, text_element
from ..coded_value import CodedValue
from ..constants import TIME_SEQUENCE_CODES
from .annotation import AnnotationSet
from .base import AssignedEntity, Identifier, Interval, Organization, Time, optional_child
from .roi import RegionOfInterest


class Device(BaseModel):
    """The device that recorded the series."""

    id: Identifier | None = None
    code: CodedValue | None = None
    model_name: str | None = None
    software_name: str | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Device":
        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            code=optional_child(element, "code", CodedValue.from_xml),
            model_name=child_text(element, "manufacturerModelName"),
            software_name=child_text(element, "softwareName"),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "manufacturedSeriesDevice")
        if self.id is not None:
            self.id.to_xml(element)
        if self.code is not None:
            self.code.to_xml(element)
        text_element(element, "manufacturerModelName", self.model_name)
        text_element(element, "softwareName", self.software_name)
        return element


class SeriesAuthor(BaseModel):
    """Author of a series: the recording device and its manufacturer.

    Attributes:
        id: Identifier of the authoring role.
        device: Recording device (required within an author).
        manufacturer: Device manufacturer.
    """

    id: Identifier | None = None
    device: Device | None = None
    manufacturer: Organization | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "SeriesAuthor":
        author = child(element, "seriesAuthor")
        if author is None:
            return cls()
        return cls(
            id=optional_child(author, "id", Identifier.from_xml),
            device=optional_child(author, "manufacturedSeriesDevice", Device.from_xml),
            manufacturer=optional_child(author, "manufacturerOrganization", Organization.from_xml),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(sub_element(parent, "author"), "seriesAuthor")
        if self.id is not None:
            self.id.to_xml(element)
        if self.device is not None:
            self.device.to_xml(element)
        if self.manufacturer is not None:
            self.manufacturer.to_xml(element, "manufacturerOrganization")
        return element


class SecondaryPerformer(BaseModel):
    """A person involved in acquiring the series, e.g. the ECG technician."""

    function_code: CodedValue | None = None
    time: Interval | None = None
    performer: AssignedEntity | None = None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "SecondaryPerformer":
        performer = child(element, "seriesPerformer")
        return cls(
            function_code=optional_child(element, "functionCode", CodedValue.from_xml),
            time=optional_child(element, "time", Interval.from_xml),
            performer=None if performer is None else AssignedEntity.from_xml(performer),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "secondaryPerformer")
        if self.function_code is not None:
            self.function_code.to_xml(element, "functionCode")
        if self.time is not None:
            self.time.to_xml(element, "time")
        if self.performer is not None:
            self.performer.to_xml(element, "seriesPerformer")
        return element


class ControlVariable(BaseModel):
    """A setting or observation relevant to interpreting the series.

    Typical examples are filter settings (``MDC_ECG_CTL_VBL_ATTR_FILTER_LOW_PASS``
    with a cutoff frequency component) or subject observations such as age.
    Control variables nest through ``components``.
    """

    code: CodedValue | None = None
    text: str | None = None
    value: AnnotationValuePayload | None = None
    components: list["ControlVariable"] = Field(default_factory=list)

    @classmethod
    def from_xml(cls, element: etree._Element) -> "ControlVariable":
        """Decode an inner ``<controlVariable>`` element."""
        value = child(element, "value")
        components = []
        for component in children(element, "component"):
            inner = child(component, "controlVariable")
            if inner is not None:
                components.append(cls.from_xml(inner))
        return cls(
            code=optional_child(element, "code", CodedValue.from_xml),
            text=child_text(element, "text"),
            value=None if value is None else decode_annotation_value(value),
            components=components,
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "controlVariable")
        if self.code is not None:
            self.code.to_xml(element)
        text_element(element, "text", self.text)
        if self.value is not None:
            encode_value(element, self.value)
        for component in self.components:
            component.to_xml(sub_element(element, "component"))
        return element


class Sequence(BaseModel):
    """One column of a sequence set: a time axis or the samples of one lead.

    Attributes:
        code: Dimension of the values, e.g. ``TIME_ABSOLUTE`` or ``MDC_ECG_LEAD_II``.
        value: Encoded values; the payload shape is chosen by ``xsi:type``.
    """

    code: CodedValue = Field(default_factory=CodedValue)
    value: SequenceValuePayload | None = None

    def is_time(self) -> bool:
        return self.code.code in TIME_SEQUENCE_CODES

    @property
    def length(self) -> int | None:
        """Number of digits of a scaled list, or None for other payloads."""
        return self.value.length if has_digits(self.value) else None

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Sequence":
        value = child(element, "value")
        return cls(
            code=optional_child(element, "code", CodedValue.from_xml) or CodedValue(),
            value=None if value is None else decode_sequence_value(value),
        )

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "sequence")
        self.code.to_xml(element)
        if self.value is not None:
            encode_value(element, self.value)
        return element


class SequenceSet(BaseModel):
    """A table of equal-length sequences sharing one time axis."""

    sequences: list[Sequence] = Field(default_factory=list)

    def time_sequences(self) -> list[Sequence]:
        return [s for s in self.sequences if s.is_time()]

    def lead_sequences(self) -> list[Sequence]:
        return [s for s in self.sequences if not s.is_time()]

    def find_sequence(self, code: str) -> Sequence | None:
        for sequence in self.sequences:
            if sequence.code.code == code:
                return sequence
        return None

    def to_dataframe(self, length: int | None = None) -> pd.DataFrame:
        """Realize the sequence set as a DataFrame.

        The first time sequence becomes the index (a ``DatetimeIndex`` for
        absolute time, a float index for relative time) and every scaled lead
        sequence becomes a column named after its code.

        Args:
            length: Number of rows. Defaults to the digit count of the first
                scaled sequence.

        Returns:
            DataFrame of shape (length, n_leads).

        Raises:
            ValueError: If no length is given and no sequence carries digits,
                or if a sequence does not have ``length`` values.
        """
        if length is None:
            lengths = [s.length for s in self.sequences if s.length is not None]
            if not lengths:
                raise ValueError("Sequence set has no scaled sequence; pass length explicitly")
            length = lengths[0]

        index = None
        columns = {}
        for sequence in self.sequences:
            payload = sequence.value
            if sequence.is_time():
                if index is not None:
                    continue
                if isinstance(payload, GeneratedTimestampList):
                    index = payload.timestamps(length).rename(sequence.code.code)
                elif isinstance(payload, GeneratedQuantityList):
                    index = pd.Index(payload.values(length), name=sequence.code.code)
                continue
            if not has_digits(payload):
                continue
            values = payload.values()
            if len(values) != length:
                raise ValueError(f"Sequence {sequence.code.code} has {len(values)} values, expected {length}")
            columns[sequence.code.code] = values

        return pd.DataFrame(columns, index=index)

    @classmethod
    def from_xml(cls, element: etree._Element) -> "SequenceSet":
        sequences = []
        for component in children(element, "component"):
            sequence = child(component, "sequence")
            if sequence is not None:
                sequences.append(Sequence.from_xml(sequence))
        return cls(sequences=sequences)

    def to_xml(self, parent: etree._Element) -> etree._Element:
        element = sub_element(parent, "sequenceSet")
        for sequence in self.sequences:
            sequence.to_xml(sub_element(element, "component"))
        return element


class Series(BaseModel):
    """A series of ECG waveforms recorded (or derived) over one time span.

    Attributes:
        id: Series identifier.
        code: ``RHYTHM``, ``REPRESENTATIVE_BEAT`` or ``MEDIAN_BEAT``.
        effective_time: Time span covered by the series (required).
        author: Recording device and manufacturer.
        secondary_performers: Technicians involved in the acquisition.
        support: Region of the source series a derived series was computed from.
        control_variables: Filter settings and related observations.
        sequence_sets: Waveform tables.
        derived_series: Series derived from this one; they must not derive further.
        annotation_sets: Measurements and interpretations.
    """

    id: Identifier | None = None
    code: CodedValue | None = None
    effective_time: Interval | None = None
    author: SeriesAuthor | None = None
    secondary_performers: list[SecondaryPerformer] = Field(default_factory=list)
    support: RegionOfInterest | None = None
    control_variables: list[ControlVariable] = Field(default_factory=list)
    sequence_sets: list[SequenceSet] = Field(default_factory=list)
    derived_series: list["Series"] = Field(default_factory=list)
    annotation_sets: list[AnnotationSet] = Field(default_factory=list)

    def add_annotation_set(self, activity_time: str = "") -> AnnotationSet:
        """Append an empty annotation set and return it."""
        annotation_set = AnnotationSet(activity_time=Time(value=activity_time) if activity_time else None)
        self.annotation_sets.append(annotation_set)
        return annotation_set

    def lead_codes(self) -> list[str]:
        """Codes of all lead sequences, in order of first appearance."""
        codes: list[str] = []
        for sequence_set in self.sequence_sets:
            for sequence in sequence_set.lead_sequences():
                if sequence.code.code not in codes:
                    codes.append(sequence.code.code)
        return codes

    def to_dataframe(self, index: int = 0) -> pd.DataFrame:
        """Realize one of the series' sequence sets as a DataFrame."""
        return self.sequence_sets[index].to_dataframe()

    @classmethod
    def from_xml(cls, element: etree._Element) -> "Series":
        sequence_sets = []
        for component in children(element, "component"):
            sequence_set = child(component, "sequenceSet")
            if sequence_set is not None:
                sequence_sets.append(SequenceSet.from_xml(sequence_set))
        derived_series = []
        for derivation in children(element, "derivation"):
            derived = child(derivation, "derivedSeries")
            if derived is not None:
                derived_series.append(cls.from_xml(derived))
        annotation_sets = []
        for subject_of in children(element, "subjectOf"):
            annotation_set = child(subject_of, "annotationSet")
            if annotation_set is not None:
                annotation_sets.append(AnnotationSet.from_xml(annotation_set))
        control_variables = []
        for wrapper in children(element, "controlVariable"):
            inner = child(wrapper, "controlVariable")
            if inner is not None:
                control_variables.append(ControlVariable.from_xml(inner))

        return cls(
            id=optional_child(element, "id", Identifier.from_xml),
            code=optional_child(element, "code", CodedValue.from_xml),
            effective_time=optional_child(element, "effectiveTime", Interval.from_xml),
            author=optional_child(element, "author", SeriesAuthor.from_xml),
            secondary_performers=[SecondaryPerformer.from_xml(p) for p in children(element, "secondaryPerformer")],
            support=optional_child(element, "support", RegionOfInterest.from_xml),
            control_variables=control_variables,
            sequence_sets=sequence_sets,
            derived_series=derived_series,
            annotation_sets=annotation_sets,
        )

    def to_xml(self, parent: etree._Element, tag: str = "series") -> etree._Element:
        element = sub_element(parent, tag)
        if self.id is not None:
            self.id.to_xml(element)
        if self.code is not None:
            self.code.to_xml(element)
        if self.effective_time is not None:
            self.effective_time.to_xml(element)
        if self.author is not None:
            self.author.to_xml(element)
        for performer in self.secondary_performers:
            performer.to_xml(element)
        if self.support is not None:
            self.support.to_xml(element)
        for control_variable in self.control_variables:
            control_variable.to_xml(sub_element(element, "controlVariable"))
        for sequence_set in self.sequence_sets:
            sequence_set.to_xml(sub_element(element, "component"))
        for derived in self.derived_series:
            derived.to_xml(sub_element(element, "derivation"), "derivedSeries")
        for annotation_set in self.annotation_sets:
            annotation_set.to_xml(sub_element(element, "subjectOf"))
        return element
