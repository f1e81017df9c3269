"""Default record builder and validator for JMA XML bulletins.

Bulletins share a common envelope::

    <Report xmlns="http://xml.kishou.go.jp/jmaxml1/">
      <Control>...</Control>
      <Head xmlns="http://xml.kishou.go.jp/jmaxml1/informationBasis1/">...</Head>
      <Body xmlns="...">...</Body>
    </Report>

Control and Head are flattened into fixed fields; Body is kept as a
nested mapping so that downstream consumers can pick what they need.
Namespaces are ignored throughout.
"""

import xml.etree.ElementTree as ET

from jmarelay.errors import ConversionError
from jmarelay.schemas.relay import IssueSeverity, ValidationIssue

# Control/Status for live (non-training, non-test) bulletins
NORMAL_STATUS = "通常"

CONTROL_FIELDS = {
    "title": "Title",
    "datetime": "DateTime",
    "status": "Status",
    "editorial_office": "EditorialOffice",
    "publishing_office": "PublishingOffice",
}

HEAD_FIELDS = {
    "title": "Title",
    "report_datetime": "ReportDateTime",
    "target_datetime": "TargetDateTime",
    "event_id": "EventID",
    "info_type": "InfoType",
    "serial": "Serial",
    "info_kind": "InfoKind",
    "info_kind_version": "InfoKindVersion",
}


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_text(parent: ET.Element, *path: str) -> str:
    node = parent.find("/".join(f"{{*}}{p}" for p in path))
    if node is None or node.text is None:
        return ""
    return node.text.strip()


def element_to_dict(elem: ET.Element) -> dict | str:
    """Render an element tree as plain JSON-compatible data.

    Leaf elements without attributes become their text. Attributes are
    keyed ``@name`` and mixed text ``#text``. Repeated child tags collapse
    into a list.
    """
    children = list(elem)
    text = (elem.text or "").strip()
    if not children and not elem.attrib:
        return text

    result: dict = {f"@{_local_name(k)}": v for k, v in elem.attrib.items()}
    if text:
        result["#text"] = text

    for child in children:
        key = _local_name(child.tag)
        value = element_to_dict(child)
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def parse_report(raw: bytes) -> ET.Element:
    """Parse raw bytes into the ``Report`` root element.

    Raises:
        ConversionError: If the bytes cannot be parsed as XML (including
            declared encodings the parser does not support) or the root
            element is not a JMA ``Report``.
    """
    try:
        root = ET.fromstring(raw)
    except (ET.ParseError, ValueError) as exc:
        raise ConversionError(f"Malformed XML: {exc}") from exc
    if _local_name(root.tag) != "Report":
        raise ConversionError(f"Unexpected root element: {_local_name(root.tag)}")
    return root


def build_record(raw: bytes) -> dict:
    """Convert a JMA XML bulletin into a JSON-compatible record."""
    root = parse_report(raw)

    control = {key: _find_text(root, "Control", tag) for key, tag in CONTROL_FIELDS.items()}
    head = {key: _find_text(root, "Head", tag) for key, tag in HEAD_FIELDS.items()}
    head["headline"] = _find_text(root, "Head", "Headline", "Text")

    body_elem = root.find("{*}Body")
    body = element_to_dict(body_elem) if body_elem is not None else {}

    return {"control": control, "head": head, "body": body}


def validate_report(filename: str, record: dict) -> list[ValidationIssue]:
    """Semantic checks applied to earthquake and tsunami records."""
    issues: list[ValidationIssue] = []
    head = record.get("head", {})
    control = record.get("control", {})

    for key in ("event_id", "report_datetime"):
        if not head.get(key):
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"{filename}: Head.{HEAD_FIELDS[key]} is missing",
                )
            )

    status = control.get("status", "")
    if status != NORMAL_STATUS:
        issues.append(
            ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"{filename}: Control.Status is {status!r}, not a live bulletin",
            )
        )

    return issues
