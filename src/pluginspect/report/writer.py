"""Atomic report writing (temp file + fsync + replace).

A report is either written completely or not at all: the bytes go to a
temporary file in the destination directory which then replaces the
destination in one step.
"""

import os
import tempfile
from pathlib import Path

from pluginspect.core.errors import ReportWriteError
from pluginspect.core.logging import LogSink, get_sink
from pluginspect.models.report import PluginReport
from pluginspect.report.builder import serialize


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` atomically.

    Raises:
        OSError: If the temporary file cannot be written or moved into place
    """
    path = Path(path)
    tmp_fd = None
    tmp_path = None
    try:
        tmp_fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        with os.fdopen(tmp_fd, "wb") as handle:
            tmp_fd = None
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    finally:
        if tmp_fd is not None:
            os.close(tmp_fd)
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


class ReportWriter:
    """Serializes a report and writes it to its destination."""

    def __init__(self, report_format: str = "xml", log: LogSink | None = None) -> None:
        self.report_format = report_format
        self.log = log or get_sink()

    def write(self, report: PluginReport, report_path: Path) -> Path:
        """Write the report.

        Args:
            report: Report to write
            report_path: Destination file

        Returns:
            The destination path

        Raises:
            ReportWriteError: If the destination cannot be written; no file
                is left behind in that case
        """
        report_path = Path(report_path)
        data = serialize(report, self.report_format)
        if not report_path.parent.is_dir():
            raise ReportWriteError(
                report.artifact_path, str(report_path), "output directory does not exist"
            )
        try:
            atomic_write_bytes(report_path, data)
        except OSError as e:
            raise ReportWriteError(report.artifact_path, str(report_path), str(e))

        self.log.info(f"Report written to {report_path} ({len(data)} bytes)")
        return report_path
