"""Unit tests for document loading."""

from decimal import Decimal

import pytest

from cfdi_harvest.domain.document import (
    DocumentError,
    get_attribute,
    load_document,
    local_name,
    parse_amount,
    parse_decimal,
    parse_positive,
)
from cfdi_harvest.domain.models import ScanLimits

from cfdi_samples import MALFORMED_CFDI, build_cfdi


class TestLoadDocument:
    """Tests for load_document."""

    def test_loads_namespaced_cfdi(self) -> None:
        document = load_document(build_cfdi(), "a.xml")
        assert document.file_name == "a.xml"
        assert local_name(document.root.tag) == "Comprobante"

    def test_accepts_bytes(self) -> None:
        document = load_document(build_cfdi().encode("utf-8"), "a.xml")
        assert local_name(document.root.tag) == "Comprobante"

    def test_truncated_document_raises(self) -> None:
        with pytest.raises(DocumentError, match="Malformed"):
            load_document(MALFORMED_CFDI, "broken.xml")

    def test_empty_content_raises(self) -> None:
        with pytest.raises(DocumentError, match="Empty"):
            load_document(b"   \n", "empty.xml")

    def test_plain_text_raises(self) -> None:
        with pytest.raises(DocumentError):
            load_document("this is not xml", "notes.xml")

    def test_non_invoice_xml_raises(self) -> None:
        with pytest.raises(DocumentError, match="Not a fiscal invoice"):
            load_document("<html><body>hello</body></html>", "page.xml")

    def test_entity_expansion_rejected(self) -> None:
        bomb = (
            '<?xml version="1.0"?>'
            '<!DOCTYPE lolz [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;">]>'
            "<Comprobante>&lol2;</Comprobante>"
        )
        with pytest.raises(DocumentError, match="Forbidden"):
            load_document(bomb, "bomb.xml")

    def test_unprefixed_document(self) -> None:
        document = load_document('<Comprobante SubTotal="10.00"/>', "plain.xml")
        assert document.root.get("SubTotal") == "10.00"


class TestNodes:
    """Tests for the bounded node walk."""

    def test_document_order_and_paths(self) -> None:
        document = load_document(build_cfdi(), "a.xml")
        paths = [node.path for node in document.nodes]

        assert paths[0] == "Comprobante"
        assert paths[1] == "Comprobante/Emisor"
        assert (
            "Comprobante/Complemento/ImpuestosLocales/TrasladosLocales" in paths
        )
        assert paths.index("Comprobante/Emisor") < paths.index(
            "Comprobante/Complemento/TimbreFiscalDigital"
        )

    def test_repeated_siblings_are_indexed(self) -> None:
        xml = build_cfdi(transfers=[("003", "130.00")])
        document = load_document(xml, "a.xml")
        paths = [node.path for node in document.nodes]

        assert "Comprobante/Impuestos/Traslados/Traslado[1]" in paths
        assert "Comprobante/Impuestos/Traslados/Traslado[2]" in paths

    def test_scan_limit_bounds_nodes(self) -> None:
        document = load_document(build_cfdi(), "a.xml", ScanLimits(max_elements=3))
        assert len(document.nodes) == 3

    def test_attribute_limit(self) -> None:
        document = load_document(build_cfdi(), "a.xml", ScanLimits(max_attributes=2))
        assert len(list(document.attributes(document.root))) == 2

    def test_path_of_known_element(self) -> None:
        document = load_document(build_cfdi(), "a.xml")
        emisor = document.nodes[1].element
        assert document.path_of(emisor) == "Comprobante/Emisor"


class TestHelpers:
    """Tests for attribute and number helpers."""

    def test_local_name(self) -> None:
        assert local_name("{http://www.sat.gob.mx/cfd/4}Emisor") == "Emisor"
        assert local_name("Emisor") == "Emisor"
        assert local_name(None) == ""

    def test_get_attribute_first_non_empty(self) -> None:
        document = load_document('<Comprobante fecha="2024-01-01" Fecha=" "/>', "a.xml")
        assert get_attribute(document.root, "Fecha", "fecha") == "2024-01-01"
        assert get_attribute(document.root, "Missing") == ""

    def test_parse_decimal(self) -> None:
        assert parse_decimal("150.00") == Decimal("150.00")
        assert parse_decimal(" 12 ") == Decimal("12")
        assert parse_decimal("0") == Decimal("0")
        assert parse_decimal("-5.00") is None
        assert parse_decimal("1e3") is None
        assert parse_decimal("1,000.00") is None
        assert parse_decimal("abc") is None

    def test_parse_positive(self) -> None:
        assert parse_positive("150") == Decimal("150")
        assert parse_positive("0.00") is None

    def test_parse_amount_requires_fraction(self) -> None:
        assert parse_amount("150.00") == Decimal("150.00")
        assert parse_amount("601") is None
        assert parse_amount("0.00") is None

    def test_non_ascii_digits_rejected(self) -> None:
        arabic_indic = "١٥٠.٠٠"  # 150.00
        fullwidth = "１５０.00"
        for text in (arabic_indic, fullwidth):
            assert parse_decimal(text) is None
            assert parse_amount(text) is None
            assert parse_positive(text) is None
