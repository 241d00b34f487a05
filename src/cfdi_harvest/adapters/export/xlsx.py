"""Spreadsheet export using openpyxl."""

import logging
from datetime import datetime
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ...domain.models import BatchResult, ExtractedRecord
from ...ports.export import ExportPort
from .filesystem import export_path

logger = logging.getLogger(__name__)

SHEET_TITLE = "Extracted data"
NOT_FOUND = "Not found"

# (header, record attribute, column width)
COLUMNS: list[tuple[str, str, int]] = [
    ("File", "source_file_name", 30),
    ("Issuer tax ID", "issuer_tax_id", 15),
    ("Recipient tax ID", "recipient_tax_id", 15),
    ("UUID", "document_id", 40),
    ("Date", "issue_date", 20),
    ("Subtotal", "subtotal", 15),
    ("Value-added tax", "value_added_tax", 15),
    ("Lodging tax", "lodging_tax", 20),
    ("Total", "total_amount", 15),
]
NUMBER_WIDTH = 5


def record_row(index: int, record: ExtractedRecord) -> list[str | int]:
    """One spreadsheet row; empty fields read as "Not found"."""
    return [index] + [getattr(record, attr) or NOT_FOUND for _, attr, _ in COLUMNS]


class XlsxExporter(ExportPort):
    """Export implementation writing one worksheet per batch."""

    suffix = ".xlsx"

    def export(
        self, batch: BatchResult, directory: Path, now: datetime | None = None
    ) -> Path:
        dest = export_path(directory, self.suffix, now)

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE

        sheet.append(["No."] + [header for header, _, _ in COLUMNS])
        for cell in sheet[1]:
            cell.font = Font(bold=True)

        for index, record in enumerate(batch, start=1):
            sheet.append(record_row(index, record))

        widths = [NUMBER_WIDTH] + [width for _, _, width in COLUMNS]
        for position, width in enumerate(widths, start=1):
            sheet.column_dimensions[get_column_letter(position)].width = width

        workbook.save(dest)
        logger.info(f"Exported {len(batch)} records: {dest.name}")
        return dest
