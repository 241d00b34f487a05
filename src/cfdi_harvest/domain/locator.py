"""Namespace-tolerant node lookup."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from xml.etree import ElementTree as ET

from .document import SourceDocument, get_attribute, parse_decimal

logger = logging.getLogger(__name__)

# Ordered selector variants per logical target. ``{*}`` matches any namespace
# (or none); casing variants cover hand-written and legacy documents.
DEFAULT_SELECTORS: dict[str, tuple[str, ...]] = {
    "comprobante": (".//{*}Comprobante", ".//{*}comprobante"),
    "issuer": (".//{*}Emisor", ".//{*}emisor"),
    "recipient": (".//{*}Receptor", ".//{*}receptor"),
    "stamp": (".//{*}TimbreFiscalDigital", ".//{*}timbrefiscaldigital"),
    "local_taxes": (
        ".//{*}ImpuestosLocales",
        ".//{*}impuestoslocales",
        ".//{*}Locales",
    ),
    "local_tax_transfer": (
        ".//{*}TrasladosLocales",
        ".//{*}trasladoslocales",
        ".//{*}ImpLocTraslado",
        ".//{*}imploctraslado",
    ),
}

TAX_ID_ATTRS = ("Rfc", "rfc", "RFC")
UUID_ATTRS = ("UUID", "Uuid", "uuid")
DATE_ATTRS = ("Fecha", "fecha")
SUBTOTAL_ATTRS = ("SubTotal", "Subtotal", "subTotal", "subtotal")
TOTAL_ATTRS = ("Total", "total")


class Locator:
    """Resolve logical target names to elements via ordered selector lists."""

    def __init__(self, selectors: Mapping[str, tuple[str, ...]] | None = None) -> None:
        self.selectors = dict(selectors or DEFAULT_SELECTORS)

    def locate(
        self, document: SourceDocument, target: str, scope: ET.Element | None = None
    ) -> ET.Element | None:
        """Return the first element matched by the first working selector."""
        matches = self.locate_all(document, target, scope)
        return matches[0] if matches else None

    def locate_all(
        self, document: SourceDocument, target: str, scope: ET.Element | None = None
    ) -> list[ET.Element]:
        """Return all matches of the first selector that matches anything."""
        base = scope if scope is not None else document.container
        for selector in self.selectors.get(target, ()):
            try:
                found = base.findall(selector)
            except (SyntaxError, KeyError, ValueError) as e:
                logger.debug(f"Selector {selector!r} unusable for {target}: {e}")
                continue
            if found:
                return found
        return []


@dataclass(frozen=True)
class Identity:
    """Identifying and total fields of a document."""

    issuer_tax_id: str = ""
    recipient_tax_id: str = ""
    document_id: str = ""
    issue_date: str = ""
    subtotal: str = ""
    total_amount: str = ""


def _amount_text(element: ET.Element | None, names: tuple[str, ...]) -> str:
    if element is None:
        return ""
    text = get_attribute(element, *names)
    return text if parse_decimal(text) is not None else ""


def read_identity(document: SourceDocument, locator: Locator) -> Identity:
    """Read tax IDs, UUID, date and totals. Missing fields stay empty."""
    comprobante = locator.locate(document, "comprobante")
    issuer = locator.locate(document, "issuer")
    recipient = locator.locate(document, "recipient")
    stamp = locator.locate(document, "stamp")

    document_id = get_attribute(stamp, *UUID_ATTRS) if stamp is not None else ""
    if not document_id and comprobante is not None:
        document_id = get_attribute(comprobante, *UUID_ATTRS)

    return Identity(
        issuer_tax_id=get_attribute(issuer, *TAX_ID_ATTRS) if issuer is not None else "",
        recipient_tax_id=(
            get_attribute(recipient, *TAX_ID_ATTRS) if recipient is not None else ""
        ),
        document_id=document_id,
        issue_date=(
            get_attribute(comprobante, *DATE_ATTRS) if comprobante is not None else ""
        ),
        subtotal=_amount_text(comprobante, SUBTOTAL_ATTRS),
        total_amount=_amount_text(comprobante, TOTAL_ATTRS),
    )
