"""Unit tests for the extraction and batch services."""

from pathlib import Path

import pytest

from cfdi_harvest.domain.models import ERROR_SENTINEL, StrategyId
from cfdi_harvest.domain.services import BatchService, ExtractionService

from cfdi_samples import (
    ISSUER_RFC,
    MALFORMED_CFDI,
    RECIPIENT_RFC,
    SAMPLE_UUID,
    TWO_ITEM_CFDI,
    build_cfdi,
)


class TestExtractionService:
    """Tests for ExtractionService."""

    def test_explicit_local_tax(self, service: ExtractionService, scenario_a_xml: str) -> None:
        record = service.extract(scenario_a_xml, "hotel.xml")

        assert record.success
        assert record.source_file_name == "hotel.xml"
        assert record.issuer_tax_id == ISSUER_RFC
        assert record.recipient_tax_id == RECIPIENT_RFC
        assert record.document_id == SAMPLE_UUID
        assert record.issue_date == "2024-03-15T12:30:00"
        assert record.subtotal == "4350.00"
        assert record.total_amount == "5196.00"
        assert record.value_added_tax == "696.00"
        assert record.lodging_tax == "150.00"

    def test_vat_only(self, service: ExtractionService, scenario_b_xml: str) -> None:
        record = service.extract(scenario_b_xml, "plain.xml")

        assert record.success
        assert record.value_added_tax == "696.00"
        assert record.lodging_tax == ""

    def test_lodging_tax_never_duplicates_vat(
        self, service: ExtractionService, scenario_c_xml: str
    ) -> None:
        record = service.extract(scenario_c_xml, "same.xml")

        assert record.success
        assert record.value_added_tax == "150.00"
        assert record.lodging_tax == ""

    def test_line_item_vat_is_not_lodging_tax(self, service: ExtractionService) -> None:
        record = service.extract(TWO_ITEM_CFDI, "two-items.xml")

        assert record.success
        assert record.value_added_tax == "696.00"
        assert record.lodging_tax == ""

    def test_deeply_nested_document(self, service: ExtractionService) -> None:
        xml = "<Comprobante>" + "<a>" * 1500 + "</a>" * 1500 + "</Comprobante>"
        record = service.extract(xml, "deep.xml")

        assert record.success
        assert record.lodging_tax == ""

    def test_malformed_document(self, service: ExtractionService) -> None:
        record = service.extract(MALFORMED_CFDI, "broken.xml")

        assert not record.success
        assert record.source_file_name == "broken.xml (ERROR)"
        assert record.value_added_tax == ERROR_SENTINEL
        assert "Malformed XML" in record.error_detail

    def test_secondary_code_without_local_block(self, service: ExtractionService) -> None:
        xml = build_cfdi(local_taxes=(), transfers=[("003", "130.00")])
        record = service.extract(xml, "coded.xml")
        assert record.lodging_tax == "130.00"

    def test_implausible_lodging_tax_revised(self, service: ExtractionService) -> None:
        xml = build_cfdi(
            local_taxes=(("ISH", "900.00"),),
            addenda='<cfdi:Addenda><Cargo Monto="130.50"/></cfdi:Addenda>',
        )
        record = service.extract(xml, "revised.xml")
        assert record.lodging_tax == "130.50"

    def test_analysis_exposes_candidates(
        self, service: ExtractionService, make_document
    ) -> None:
        analysis = service.analyze(make_document())

        assert analysis.exact.value_added_tax is not None
        assert [c.strategy for c in analysis.candidates] == [
            StrategyId.LOCAL_TAX_STRUCTURE
        ]
        assert analysis.selected == analysis.lodging_tax

    def test_repeatable(self, service: ExtractionService, scenario_a_xml: str) -> None:
        assert service.extract(scenario_a_xml, "a.xml") == service.extract(
            scenario_a_xml, "a.xml"
        )

    def test_unexpected_error_becomes_error_record(
        self,
        service: ExtractionService,
        scenario_a_xml: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr("cfdi_harvest.domain.services.match_exact", explode)
        record = service.extract(scenario_a_xml, "a.xml")

        assert not record.success
        assert record.error_detail == "boom"


class TestBatchService:
    """Tests for BatchService."""

    @pytest.fixture
    def batch_service(self, service: ExtractionService) -> BatchService:
        return BatchService(service)

    def test_processes_in_order(
        self,
        batch_service: BatchService,
        tmp_path: Path,
        scenario_a_xml: str,
        scenario_b_xml: str,
    ) -> None:
        first = tmp_path / "b_first.xml"
        second = tmp_path / "a_second.xml"
        broken = tmp_path / "broken.xml"
        first.write_text(scenario_a_xml, encoding="utf-8")
        second.write_text(scenario_b_xml, encoding="utf-8")
        broken.write_text(MALFORMED_CFDI, encoding="utf-8")

        batch = batch_service.process([first, broken, second])

        assert [r.source_file_name for r in batch] == [
            "b_first.xml",
            "broken.xml (ERROR)",
            "a_second.xml",
        ]
        assert batch.success_count == 2
        assert batch.error_count == 1

    def test_rejects_non_xml_suffix(self, batch_service: BatchService, tmp_path: Path) -> None:
        path = tmp_path / "invoice.pdf"
        path.write_bytes(b"%PDF-1.4")

        assert batch_service.add_file(path) is None
        assert len(batch_service.batch) == 0
        assert batch_service.batch.rejections[0].file_name == "invoice.pdf"
        assert "Unsupported file type" in batch_service.batch.rejections[0].reason

    def test_uppercase_suffix_accepted(
        self, batch_service: BatchService, tmp_path: Path, scenario_a_xml: str
    ) -> None:
        path = tmp_path / "INVOICE.XML"
        path.write_text(scenario_a_xml, encoding="utf-8")

        record = batch_service.add_file(path)

        assert record is not None
        assert record.success

    def test_rejects_oversized_file(
        self, service: ExtractionService, tmp_path: Path, scenario_a_xml: str
    ) -> None:
        path = tmp_path / "huge.xml"
        path.write_text(scenario_a_xml, encoding="utf-8")
        batch_service = BatchService(service, max_file_bytes=100)

        assert batch_service.add_file(path) is None
        assert "File too large" in batch_service.batch.rejections[0].reason

    def test_content_type_checked(
        self, batch_service: BatchService, scenario_a_xml: str
    ) -> None:
        assert batch_service.add_content("a.xml", scenario_a_xml, "application/pdf") is None

        record = batch_service.add_content(
            "b.xml", scenario_a_xml, "text/xml; charset=utf-8"
        )

        assert record is not None
        assert record.success
        assert [r.file_name for r in batch_service.batch.rejections] == ["a.xml"]

    def test_accumulates_until_cleared(
        self, batch_service: BatchService, scenario_a_xml: str
    ) -> None:
        batch_service.add_content("a.xml", scenario_a_xml)
        batch_service.add_content("b.xml", scenario_a_xml)
        assert len(batch_service.batch) == 2

        batch_service.batch.clear()
        batch_service.add_content("c.xml", scenario_a_xml)

        assert [r.source_file_name for r in batch_service.batch] == ["c.xml"]
