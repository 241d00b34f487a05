"""Export adapters."""

from ...config import ExportFormat
from ...ports.export import ExportPort
from .xlsx import XlsxExporter
from .yaml_report import YamlReportExporter

__all__ = ["XlsxExporter", "YamlReportExporter", "create_exporter"]


def create_exporter(fmt: ExportFormat) -> ExportPort:
    """Create exporter for the configured format."""
    if fmt == ExportFormat.XLSX:
        return XlsxExporter()
    elif fmt == ExportFormat.YAML:
        return YamlReportExporter()
    else:
        raise ValueError(f"Unknown export format: {fmt}")
