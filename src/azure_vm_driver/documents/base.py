"""XML helpers shared by the document modules.

Request documents are built with xml.etree.ElementTree. Response bodies
come from the network and are parsed with defusedxml.
"""

import xml.etree.ElementTree as ET
from typing import Optional

import defusedxml
import defusedxml.ElementTree as SafeET

from azure_vm_driver.errors import TransportError

AZURE_XMLNS = 'http://schemas.microsoft.com/windowsazure'
XSI_XMLNS = 'http://www.w3.org/2001/XMLSchema-instance'


def new_document(tag: str, xmlns: str = AZURE_XMLNS) -> ET.Element:
    """Create a root element with the default and instance namespaces."""
    return ET.Element(tag, {'xmlns': xmlns, 'xmlns:i': XSI_XMLNS})


def sub(parent: ET.Element, tag: str, text=None, **attrs) -> ET.Element:
    """Append a child element; booleans are written as true/false."""
    el = ET.SubElement(parent, tag, {k: str(v) for k, v in attrs.items()})
    if isinstance(text, bool):
        el.text = 'true' if text else 'false'
    elif text is not None:
        el.text = str(text)
    return el


def to_bytes(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding='utf-8', xml_declaration=False)


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for el in root.iter():
        if isinstance(el.tag, str) and '}' in el.tag:
            el.tag = el.tag.split('}', 1)[1]
        for key in [k for k in el.attrib if '}' in k]:
            el.attrib[key.split('}', 1)[1]] = el.attrib.pop(key)
    return root


def parse(data: bytes) -> ET.Element:
    """Parse a response body into an element tree without namespaces.

    Raises:
        TransportError: If the body is not well-formed or is rejected by
            defusedxml (entity expansion, external references).
    """
    try:
        root = SafeET.fromstring(data)
    except (ET.ParseError, defusedxml.DefusedXmlException) as e:
        raise TransportError(f"Invalid XML response: {e}", code='InvalidResponse') from e
    return _strip_namespaces(root)


def text(el: Optional[ET.Element], path: str, default: str = '') -> str:
    if el is None:
        return default
    found = el.find(path)
    if found is None or found.text is None:
        return default
    return found.text.strip()


def int_text(el: Optional[ET.Element], path: str, default: Optional[int] = None) -> Optional[int]:
    value = text(el, path)
    try:
        return int(value)
    except ValueError:
        return default


def bool_text(el: Optional[ET.Element], path: str, default: Optional[bool] = None) -> Optional[bool]:
    value = text(el, path).lower()
    if value in ('true', 'false'):
        return value == 'true'
    return default


def texts(el: Optional[ET.Element], path: str) -> list[str]:
    """All non-empty texts matching path."""
    if el is None:
        return []
    return [e.text.strip() for e in el.findall(path) if e.text and e.text.strip()]
