"""Batch report export as YAML."""

import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

import yaml

from ...domain.models import BatchResult, ExtractedRecord
from ...ports.export import ExportPort
from .filesystem import export_path

logger = logging.getLogger(__name__)


def _record_data(record: ExtractedRecord) -> dict:
    data = asdict(record)
    data["status"] = record.status.value
    if record.success:
        data.pop("error_detail")
    return data


def build_report(batch: BatchResult, now: datetime) -> dict:
    """Summary, failures and records of a batch as plain data."""
    return {
        "generated_at": now.replace(microsecond=0).isoformat(),
        "summary": {
            "processed": len(batch),
            "ok": batch.success_count,
            "errors": batch.error_count,
            "rejected": len(batch.rejections),
        },
        "failed_files": [
            {"file": r.source_file_name, "detail": r.error_detail} for r in batch.failed
        ],
        "rejected_files": [
            {"file": r.file_name, "reason": r.reason} for r in batch.rejections
        ],
        "records": [_record_data(r) for r in batch],
    }


class YamlReportExporter(ExportPort):
    """Export implementation writing a YAML report for review and retry."""

    suffix = ".yaml"

    def export(
        self, batch: BatchResult, directory: Path, now: datetime | None = None
    ) -> Path:
        now = now or datetime.now()
        dest = export_path(directory, self.suffix, now)

        logger.info(f"Writing report: {dest.name}")
        dest.write_text(
            yaml.dump(
                build_report(batch, now),
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            ),
            encoding="utf-8",
        )
        return dest
