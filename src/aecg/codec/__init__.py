"""Polymorphic value codec for HL7 aECG ``<value>`` elements."""

from .payloads import (
    GeneratedQuantityList,
    GeneratedTimestampList,
    OpaqueValue,
    PhysicalQuantity,
    ScaledIntegerList,
    ScaledQuantityList,
    Text,
)
from .registry import (
    ANNOTATION_VALUES,
    SEQUENCE_VALUES,
    AnnotationValuePayload,
    SequenceValuePayload,
    ValueTypeRegistry,
)
from .values import decode_annotation_value, decode_sequence_value, decode_value, encode_value, is_opaque

__all__ = [
    "ANNOTATION_VALUES",
    "SEQUENCE_VALUES",
    "AnnotationValuePayload",
    "GeneratedQuantityList",
    "GeneratedTimestampList",
    "OpaqueValue",
    "PhysicalQuantity",
    "ScaledIntegerList",
    "ScaledQuantityList",
    "SequenceValuePayload",
    "Text",
    "ValueTypeRegistry",
    "decode_annotation_value",
    "decode_sequence_value",
    "decode_value",
    "encode_value",
    "is_opaque",
]
