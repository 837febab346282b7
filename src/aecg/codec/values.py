"""Decoding and encoding of polymorphic ``<value>`` elements.

The concrete payload of a value element is chosen by its ``xsi:type``
discriminator. Recognized discriminators are dispatched through a
``ValueTypeRegistry``; anything else is kept as an ``OpaqueValue`` holding the
element's inner bytes, which are written back verbatim on encode.
"""

from lxml import etree

from ..constants import XSI_TYPE
from ..errors import ParseError
from .payloads import OpaqueValue
from .registry import (
    ANNOTATION_VALUES,
    SEQUENCE_VALUES,
    AnnotationValuePayload,
    SequenceValuePayload,
    ValueTypeRegistry,
)
from .xml import inner_bytes, namespace_declarations, raw_sub_element, sub_element, xsi_type


def decode_value(element: etree._Element, registry: ValueTypeRegistry):
    """Decode a value element into its payload.

    Args:
        element: The ``<value>`` element.
        registry: Registry of the dispatch point the element belongs to.

    Returns:
        An instance of the registered payload class, or ``OpaqueValue`` for an
        unrecognized discriminator.

    Raises:
        ParseError: If the discriminator is recognized but its fields are
            missing or malformed.
    """
    discriminator = xsi_type(element)
    if not registry.has_type(discriminator):
        attributes = {name: value for name, value in element.attrib.items() if name != XSI_TYPE}
        return OpaqueValue(
            xsi_type=discriminator,
            attributes=attributes,
            namespaces=namespace_declarations(element),
            raw=inner_bytes(element),
        )

    payload_class = registry.get(discriminator)
    try:
        return payload_class.from_xml(element)
    except ParseError as e:
        if e.field.startswith(discriminator):
            raise
        raise ParseError(e.message, f"{discriminator}.{e.field}" if e.field else discriminator) from e


def encode_value(parent: etree._Element, payload, tag: str = "value") -> etree._Element:
    """Append a value element carrying ``payload`` to ``parent``.

    Raises:
        TypeError: If ``payload`` is neither an ``OpaqueValue`` nor a payload
            class with a ``write_xml`` method.
    """
    if isinstance(payload, OpaqueValue):
        element = raw_sub_element(parent, tag, payload.raw, payload.namespaces)
        if payload.xsi_type:
            element.set(XSI_TYPE, payload.xsi_type)
        for name, value in payload.attributes.items():
            element.set(name, value)
        return element
    if not hasattr(payload, "write_xml"):
        raise TypeError(f"Cannot encode value payload of type {type(payload).__name__}")
    element = sub_element(parent, tag)
    if payload.xsi_type:
        element.set(XSI_TYPE, payload.xsi_type)
    payload.write_xml(element)
    return element


def decode_sequence_value(element: etree._Element) -> SequenceValuePayload:
    return decode_value(element, ValueTypeRegistry.get_instance(SEQUENCE_VALUES))


def decode_annotation_value(element: etree._Element) -> AnnotationValuePayload:
    return decode_value(element, ValueTypeRegistry.get_instance(ANNOTATION_VALUES))


def is_opaque(payload: object) -> bool:
    return isinstance(payload, OpaqueValue)
