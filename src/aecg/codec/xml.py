"""Thin helpers over lxml for reading and writing HL7 v3 elements."""

from xml.sax.saxutils import quoteattr

from lxml import etree

from ..constants import HL7_NAMESPACE, NSMAP, XSI_TYPE
from ..errors import ParseError

_FRAGMENT_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def qname(tag: str) -> str:
    """Return the Clark notation name of an HL7 element."""
    return f"{{{HL7_NAMESPACE}}}{tag}"


def localname(element: etree._Element) -> str:
    return etree.QName(element).localname


def child(element: etree._Element, tag: str) -> etree._Element | None:
    """Return the first HL7 child named ``tag``, or None.

    Children without a namespace are accepted too, since hand-written documents
    frequently omit the default namespace declaration.
    """
    found = element.find(qname(tag))
    if found is None:
        found = element.find(tag)
    return found


def children(element: etree._Element, tag: str) -> list[etree._Element]:
    """Return all HL7 children named ``tag`` in document order."""
    return [c for c in element if isinstance(c.tag, str) and localname(c) == tag]


def attribute(element: etree._Element | None, name: str, default: str = "") -> str:
    if element is None:
        return default
    return element.get(name, default)


def child_text(element: etree._Element, tag: str) -> str | None:
    """Return the text of the first child named ``tag``.

    Returns None if the child is absent and ``""`` if it is present but empty.
    """
    found = child(element, tag)
    if found is None:
        return None
    return found.text or ""


def require_child(element: etree._Element, tag: str, field: str) -> etree._Element:
    found = child(element, tag)
    if found is None:
        raise ParseError(f"missing <{tag}> element", field)
    return found


def xsi_type(element: etree._Element) -> str:
    """Return the discriminator of a value element.

    Names in the HL7 namespace are returned as bare local names, whichever
    prefix binds them. Any other QName is returned as written, e.g.
    ``acme:WAVE``, so it never collides with an HL7 discriminator.
    """
    value = element.get(XSI_TYPE, "")
    prefix, _, local = value.rpartition(":")
    if not prefix or element.nsmap.get(prefix) == HL7_NAMESPACE:
        return local
    return value


def namespace_declarations(element: etree._Element) -> dict[str, str]:
    """Return the namespaces in scope at ``element`` that a written document does not declare.

    The default namespace is keyed by ``""``.
    """
    return {prefix or "": uri for prefix, uri in element.nsmap.items() if NSMAP.get(prefix) != uri}


def sub_element(parent: etree._Element, tag: str, text: str | None = None, **attributes: str) -> etree._Element:
    """Append an HL7 child element, skipping empty attributes."""
    element = etree.SubElement(parent, qname(tag))
    for name, value in attributes.items():
        if value is not None and value != "":
            element.set(name, str(value))
    if text is not None:
        element.text = text
    return element


def text_element(parent: etree._Element, tag: str, text: str | None) -> etree._Element | None:
    """Append ``<tag>text</tag>`` if ``text`` is not None."""
    if text is None:
        return None
    return sub_element(parent, tag, text=text)


def inner_bytes(element: etree._Element) -> bytes:
    """Return the serialized inner content of ``element``.

    The bytes are everything between the end of the start tag and the start of
    the end tag, i.e. text and child markup exactly as lxml serializes them.
    """
    raw = etree.tostring(element, encoding="UTF-8", with_tail=False)
    start = raw.index(b">") + 1
    if raw[start - 2 : start] == b"/>" and start == len(raw):
        return b""
    end = raw.rindex(b"</")
    return raw[start:end]


def raw_sub_element(
    parent: etree._Element, tag: str, raw: bytes, namespaces: dict[str, str] | None = None
) -> etree._Element:
    """Append an HL7 child whose content is previously captured inner bytes.

    ``namespaces`` are the declarations from ``namespace_declarations`` at the
    place the bytes were read. They are declared on the new element, so
    prefixed content and QName attribute values resolve as they did in the
    source. Content in namespaces other than HL7 serializes to the same bytes;
    prefixes bound to the HL7 namespace are folded into the default one.

    Raises:
        ParseError: If ``raw`` is not well-formed element content.
    """
    declarations = {prefix: uri for prefix, uri in NSMAP.items() if prefix}
    declarations.update(namespaces or {})
    default = declarations.pop("", HL7_NAMESPACE)
    xmlns = " ".join(
        [f"xmlns={quoteattr(default)}"] + [f"xmlns:{prefix}={quoteattr(uri)}" for prefix, uri in declarations.items()]
    )
    fragment = f"<{tag} {xmlns}>".encode("utf-8") + raw + f"</{tag}>".encode("utf-8")
    try:
        parsed = etree.fromstring(fragment, _FRAGMENT_PARSER)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"opaque content is not well-formed: {e}", tag) from e

    if default == HL7_NAMESPACE:
        parent.append(parsed)
        return parsed

    # An HL7 element cannot redefine the default namespace for its content,
    # so the content is moved and lxml declares the foreign namespace on it.
    prefixed = {
        prefix: uri for prefix, uri in declarations.items() if uri != HL7_NAMESPACE and NSMAP.get(prefix) != uri
    }
    element = etree.SubElement(parent, qname(tag), nsmap=prefixed or None)
    element.text = parsed.text
    element.extend(list(parsed))
    return element
