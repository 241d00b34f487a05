"""Document loading and tree helpers."""

import logging
import re
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from itertools import islice
from typing import NamedTuple
from xml.etree import ElementTree as ET

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET

from .models import ScanLimits

logger = logging.getLogger(__name__)

DOCUMENT_ROOT = "Comprobante"

# Plain ASCII decimals only: no sign, no exponent, no thousands separator
_DECIMAL_PATTERN = re.compile(r"^[0-9]+(?:\.[0-9]*)?$")
# Amounts in this document family always carry a fractional part
_AMOUNT_PATTERN = re.compile(r"^[0-9]+\.[0-9]+$")


class DocumentError(Exception):
    """Input could not be loaded as an invoice document."""


class Node(NamedTuple):
    element: ET.Element
    path: str


def local_name(tag: object) -> str:
    """Strip the namespace from an ElementTree tag or attribute name."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def get_attribute(element: ET.Element, *names: str) -> str:
    """Return the first non-empty attribute among names, stripped."""
    for name in names:
        value = element.get(name)
        if value and value.strip():
            return value.strip()
    return ""


def parse_decimal(text: str) -> Decimal | None:
    """Parse a plain non-negative decimal, or None."""
    text = text.strip()
    if not _DECIMAL_PATTERN.match(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def parse_amount(text: str) -> Decimal | None:
    """Parse a positive monetary amount written with a decimal fraction."""
    text = text.strip()
    if not _AMOUNT_PATTERN.match(text):
        return None
    value = parse_decimal(text)
    if value is None or value <= 0:
        return None
    return value


def parse_positive(text: str) -> Decimal | None:
    value = parse_decimal(text)
    if value is None or value <= 0:
        return None
    return value


@dataclass(frozen=True)
class SourceDocument:
    """Parsed invoice tree, read-only for the length of one extraction."""

    file_name: str
    root: ET.Element
    # Synthetic parent of root, so that selectors can match the root itself
    container: ET.Element = field(repr=False)
    nodes: tuple[Node, ...] = field(repr=False)
    paths: dict[int, str] = field(repr=False, compare=False)
    limits: ScanLimits = ScanLimits()

    def path_of(self, element: ET.Element) -> str:
        return self.paths.get(id(element), local_name(element.tag))

    def attributes(self, element: ET.Element) -> Iterator[tuple[str, str]]:
        """Attributes of element, bounded by the scan limits."""
        return islice(element.attrib.items(), self.limits.max_attributes)


def _walk(root: ET.Element, max_elements: int) -> tuple[Node, ...]:
    """Pre-order walk producing location paths like ``A/B[2]/C``."""
    nodes: list[Node] = []
    stack = [(root, local_name(root.tag))]

    while stack and len(nodes) < max_elements:
        element, path = stack.pop()
        nodes.append(Node(element, path))

        children = [c for c in element if isinstance(c.tag, str)]
        totals = Counter(local_name(c.tag) for c in children)
        seen: Counter[str] = Counter()
        labelled = []
        for child in children:
            name = local_name(child.tag)
            seen[name] += 1
            label = f"{name}[{seen[name]}]" if totals[name] > 1 else name
            labelled.append((child, f"{path}/{label}"))
        stack.extend(reversed(labelled))

    if stack:
        logger.warning(f"Scan limit reached: only {max_elements} elements inspected")

    return tuple(nodes)


def load_document(
    content: bytes | str,
    file_name: str,
    limits: ScanLimits | None = None,
) -> SourceDocument:
    """Parse raw file content into a SourceDocument.

    Raises DocumentError for empty, malformed or non-invoice content.
    """
    limits = limits or ScanLimits()

    if not content or not content.strip():
        raise DocumentError(f"Empty document: {file_name}")

    try:
        root = SafeET.fromstring(content)
    except ET.ParseError as e:
        raise DocumentError(f"Malformed XML in {file_name}: {e}") from e
    except DefusedXmlException as e:
        raise DocumentError(f"Forbidden XML construct in {file_name}: {e}") from e

    nodes = _walk(root, limits.max_elements)
    if not any(local_name(n.element.tag).lower() == DOCUMENT_ROOT.lower() for n in nodes):
        raise DocumentError(f"Not a fiscal invoice document: {file_name}")

    container = ET.Element("document")
    container.append(root)

    logger.debug(f"Loaded {file_name}: {len(nodes)} elements")
    return SourceDocument(
        file_name=file_name,
        root=root,
        container=container,
        nodes=nodes,
        paths={id(node.element): node.path for node in nodes},
        limits=limits,
    )
