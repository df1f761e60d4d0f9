"""Concrete implementation of the DocumentStore interface for the local disk.

Uses `pathlib` for path handling, `aiofiles` for async reads and writes and
`asyncio.to_thread` for the blocking directory operations.
"""

import asyncio
import base64
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import aiofiles

from workdocs.domain.errors import DiscoveryError
from workdocs.domain.interfaces.document_store import DocumentStore
from workdocs.domain.models.common import EmployeeId, FilePath
from workdocs.domain.models.upload import ProcessedFile

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 255
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_FILENAME_PATTERN = re.compile(r"^\d+-[^-]+\.[a-zA-Z0-9]+$")
_EMPLOYEE_ID_PREFIX = re.compile(r"^(\d+)-.*\.")
_EMPLOYEE_ID_PATTERN = re.compile(r"^\d{4,12}$")


def validate_filename(filename: str) -> Optional[str]:
    """Returns the reason a filename is rejected, or None if it is acceptable."""
    if not filename:
        return "Filename is empty"
    if len(filename) > MAX_FILENAME_LENGTH:
        return f"Filename too long (max {MAX_FILENAME_LENGTH} characters)"
    if _INVALID_FILENAME_CHARS.search(filename):
        return "Filename contains invalid characters"
    if not _FILENAME_PATTERN.match(filename):
        return "Filename must follow pattern: {employeeId}-{description}.{extension}"
    return None


def extract_employee_id(filename: str) -> Optional[EmployeeId]:
    """Parses the 4-12 digit employee id prefix of a filename."""
    match = _EMPLOYEE_ID_PREFIX.match(filename)
    if not match or not _EMPLOYEE_ID_PATTERN.match(match.group(1)):
        return None
    return EmployeeId(match.group(1))


class LocalDocumentStore(DocumentStore):
    """Reads documents from an input directory and relocates them afterwards."""

    def __init__(self, input_dir: str, processed_dir: str, failed_dir: str, max_file_size_mb: int = 25):
        self.input_dir = Path(input_dir)
        self.processed_dir = Path(processed_dir)
        self.failed_dir = Path(failed_dir)
        self.max_file_size_mb = max_file_size_mb

    async def get_files_to_process(self) -> List[FilePath]:
        try:
            entries = await asyncio.to_thread(lambda: sorted(self.input_dir.iterdir()))
        except OSError as e:
            logger.error(f"Failed to read input directory {self.input_dir}: {e}")
            raise DiscoveryError(
                "Cannot read input directory. Check that the directory exists and you have read permissions."
            ) from e

        files = [FilePath(str(p)) for p in entries if not p.name.startswith('.') and p.is_file()]
        logger.info(f"Found {len(files)} files to process", extra={"input_dir": str(self.input_dir)})
        return files

    async def process_file(self, file_path: FilePath) -> ProcessedFile:
        path = Path(file_path)
        filename = path.name

        reason = validate_filename(filename)
        if reason:
            return ProcessedFile(employee_id=EmployeeId(""), filename=filename, full_path=file_path, error=reason)

        employee_id = extract_employee_id(filename)
        if not employee_id:
            return ProcessedFile(
                employee_id=EmployeeId(""), filename=filename, full_path=file_path,
                error="Invalid employee ID format. Must be 4-12 digits",
            )

        try:
            size = (await asyncio.to_thread(path.stat)).st_size
            size_mb = size / (1024 * 1024)
            if size_mb > self.max_file_size_mb:
                return ProcessedFile(
                    employee_id=employee_id, filename=filename, full_path=file_path, size=size,
                    error=f"File size ({size_mb:.2f}MB) exceeds maximum allowed size ({self.max_file_size_mb}MB)",
                )

            async with aiofiles.open(path, mode='rb') as f:
                content = await f.read()
        except OSError as e:
            logger.error(f"File processing failed for {filename}: {e}", extra={"file_name": filename})
            return ProcessedFile(
                employee_id=EmployeeId(""), filename=filename, full_path=file_path,
                error=f"File processing error: {e}",
            )

        logger.debug(f"File processed successfully: {filename} ({size} bytes)")
        return ProcessedFile(
            employee_id=employee_id,
            filename=filename,
            full_path=file_path,
            file_content=base64.b64encode(content).decode('ascii'),
            size=size,
            is_valid=True,
        )

    async def move_to_processed(self, file_path: FilePath) -> None:
        destination = await self._move(Path(file_path), self.processed_dir)
        logger.info(
            "File moved to processed directory",
            extra={"file_name": destination.name, "destination": str(destination)},
        )

    async def move_to_failed(self, file_path: FilePath, reason: str) -> None:
        destination = await self._move(Path(file_path), self.failed_dir)

        error_log = self.failed_dir / f"{destination.name}.error.txt"
        failed_at = datetime.now(timezone.utc).isoformat()
        async with aiofiles.open(error_log, mode='w', encoding='utf-8') as f:
            await f.write(f"Failed at: {failed_at}\nReason: {reason}\n")

        logger.warning(
            "File moved to failed directory",
            extra={"file_name": destination.name, "reason": reason, "destination": str(destination)},
        )

    async def _move(self, source: Path, target_dir: Path) -> Path:
        """Moves a file into target_dir, creating the directory if needed.

        Raises:
            OSError: If the file could not be moved.
        """
        destination = target_dir / source.name
        try:
            await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.move, str(source), str(destination))
        except OSError as e:
            logger.error(f"Failed to move {source.name} to {target_dir}: {e}", extra={"file_name": source.name})
            raise
        return destination
