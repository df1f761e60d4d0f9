"""Builds a human-readable execution report from the JSON-lines session log."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from workdocs.domain.errors import WorkdocsError
from workdocs.infrastructure.monitoring.logger_setup import JSON_LOG_FILE_NAME

logger = logging.getLogger(__name__)

ENVIRONMENT_SELECTED = "Environment selected"
UPLOAD_STARTED = "Starting WorkDocs upload process"
CATEGORY_SELECTED = "Document category selected"
UPLOAD_SUCCEEDED = "Document upload successful"
UPLOAD_FAILED = "Document upload failed"
RUN_FAILED = "Upload process failed"
_FILES_FOUND = re.compile(r"Found (\d+) files to process")
RULE = "=" * 50


@dataclass
class FileDetail:
    filename: str
    employee_id: str
    success: bool
    error: Optional[str] = None


@dataclass
class SessionReport:
    session_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    environment: Optional[str] = None
    category: Optional[str] = None
    total_files: int = 0
    successful: int = 0
    failed: int = 0
    upload_started: bool = False
    errors: List[str] = field(default_factory=list)
    file_details: List[FileDetail] = field(default_factory=list)

    @property
    def duration(self) -> float:
        if not self.end_time:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()


def parse_timestamp(value: Any) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return datetime.now(timezone.utc)


def format_duration(seconds: float) -> str:
    minutes, remaining = divmod(int(seconds), 60)
    return f"{minutes}m {remaining}s" if minutes else f"{remaining}s"


def parse_log_lines(lines: List[str]) -> List[Dict[str, Any]]:
    """Parses JSON-lines entries, skipping blank and malformed lines."""
    entries = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            entries.append(entry)
    return entries


def group_sessions(entries: List[Dict[str, Any]]) -> List[SessionReport]:
    """Splits log entries into upload sessions.

    A session begins at an environment selection, or at an upload start that
    is not already preceded by one. Sessions that never started an upload
    (e.g. a configuration check) are left out.
    """
    sessions: List[SessionReport] = []
    current: Optional[SessionReport] = None

    for entry in entries:
        message = entry.get("message", "")
        timestamp = parse_timestamp(entry.get("timestamp"))

        starts_session = message == ENVIRONMENT_SELECTED or (
            message == UPLOAD_STARTED and (current is None or current.upload_started)
        )
        if starts_session:
            if current:
                sessions.append(current)
            current = SessionReport(
                session_id=timestamp.strftime("%Y-%m-%dT%H-%M-%S"),
                start_time=timestamp,
                environment=entry.get("environment"),
            )

        if current is None:
            continue

        if message == UPLOAD_STARTED:
            current.upload_started = True
            current.environment = entry.get("environment") or current.environment
        elif message == CATEGORY_SELECTED:
            current.category = entry.get("category_name")
        elif message == UPLOAD_SUCCEEDED:
            current.successful += 1
            current.file_details.append(FileDetail(
                filename=entry.get("file_name") or "unknown",
                employee_id=entry.get("employee_id") or "unknown",
                success=True,
            ))
        elif message == UPLOAD_FAILED:
            current.failed += 1
            current.file_details.append(FileDetail(
                filename=entry.get("file_name") or "unknown",
                employee_id=entry.get("employee_id") or "unknown",
                success=False,
                error=entry.get("error") or "Unknown error",
            ))
        else:
            match = _FILES_FOUND.search(message)
            if match:
                current.total_files = int(match.group(1))

        if entry.get("level") == "error" and message != RUN_FAILED:
            error = f"{message}: {entry['error']}" if entry.get("error") else message
            if error not in current.errors:
                current.errors.append(error)

        current.end_time = timestamp

    if current:
        sessions.append(current)
    return [s for s in sessions if s.upload_started]


def render_report(sessions: List[SessionReport], generated_at: Optional[datetime] = None) -> str:
    lines = [RULE, "           WORKDOCS CLI - EXECUTION REPORT", RULE, ""]

    if not sessions:
        lines.append("No upload sessions found in logs.")
        return "\n".join(lines) + "\n"

    total_files = sum(s.total_files for s in sessions)
    total_successful = sum(s.successful for s in sessions)
    total_failed = sum(s.failed for s in sessions)
    success_rate = total_successful / total_files * 100 if total_files else 0.0
    lines += [
        "OVERALL SUMMARY",
        "---------------",
        f"Sessions: {len(sessions)}",
        f"Total Files Processed: {total_files}",
        f"Successful Uploads: {total_successful}",
        f"Failed Uploads: {total_failed}",
        f"Success Rate: {success_rate:.1f}%",
        "",
    ]

    for index, session in enumerate(sessions, 1):
        lines.append(f"SESSION {index}: {session.session_id}")
        lines.append("-" * 50)
        lines.append(f"Start Time: {session.start_time.strftime('%Y-%m-%d %H:%M:%S')}")
        if session.end_time:
            lines.append(f"End Time: {session.end_time.strftime('%Y-%m-%d %H:%M:%S')}")
            lines.append(f"Duration: {format_duration(session.duration)}")
        lines.append(f"Environment: {session.environment or 'Unknown'}")
        lines.append(f"Category: {session.category or 'Not specified'}")
        lines.append(f"Files: {session.total_files} total, {session.successful} successful, "
                     f"{session.failed} failed")
        if session.total_files:
            lines.append(f"Success Rate: {session.successful / session.total_files * 100:.1f}%")
            if session.duration:
                lines.append(f"Average Time per File: {session.duration / session.total_files:.1f}s")

        if session.file_details:
            lines += ["", "File Processing Details:"]
            for detail in session.file_details:
                status = "OK  " if detail.success else "FAIL"
                lines.append(f"  [{status}] {detail.filename} (Employee: {detail.employee_id})")
                if detail.error:
                    lines.append(f"         Error: {detail.error}")

        if session.errors:
            lines += ["", "Errors Encountered:"]
            lines += [f"  - {error}" for error in session.errors]
        lines.append("")

    generated_at = generated_at or datetime.now()
    lines += [RULE, f"Report generated on: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}", RULE]
    return "\n".join(lines) + "\n"


class ReportGenerator:
    """Reads `{logs_dir}/combined.log` and renders the execution report."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)

    async def generate_report(self, output_file: Optional[str] = None) -> str:
        """Renders the report, optionally saving it into the logs directory.

        Raises:
            WorkdocsError: If the session log does not exist yet.
        """
        log_path = self.logs_dir / JSON_LOG_FILE_NAME
        if not log_path.is_file():
            raise WorkdocsError("Log file not found. Run an upload process first.")

        async with aiofiles.open(log_path, mode='r', encoding='utf-8') as f:
            lines = await f.readlines()

        report = render_report(group_sessions(parse_log_lines(lines)))

        if output_file:
            output_path = self.logs_dir / Path(output_file).name
            async with aiofiles.open(output_path, mode='w', encoding='utf-8') as f:
                await f.write(report)
            logger.info("Report generated", extra={"output_path": str(output_path)})

        return report
