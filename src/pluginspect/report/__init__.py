"""Report building, serialization and writing."""

from pluginspect.report.builder import (
    ReportBuilder,
    load_report,
    report_summary,
    serialize,
    to_json_bytes,
    to_xml_bytes,
)
from pluginspect.report.writer import ReportWriter, atomic_write_bytes

__all__ = [
    "ReportBuilder",
    "ReportWriter",
    "atomic_write_bytes",
    "load_report",
    "report_summary",
    "serialize",
    "to_json_bytes",
    "to_xml_bytes",
]
