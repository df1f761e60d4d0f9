"""Domain models for the document upload context.

Work items, the documents sent to Workday and the per-item and per-run
result records produced by the orchestrator.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .common import CategoryWid, EmployeeId, DEFAULT_MIME_TYPE


@dataclass(frozen=True)
class ProcessedFile:
    """A work item after local validation.

    Created once per discovered file and never mutated; the outcome of an
    upload is recorded in an UploadResult, not on the item.
    """
    employee_id: EmployeeId
    filename: str
    full_path: str
    file_content: str = ""  # Base64 encoded
    size: int = 0
    is_valid: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class WorkerDocument:
    """Payload for a Put_Worker_Document request."""
    employee_id: EmployeeId
    filename: str
    category_wid: CategoryWid
    file_content: str
    mime_type: str = DEFAULT_MIME_TYPE


@dataclass
class UploadResult:
    """Terminal record for one work item."""
    filename: str
    employee_id: str
    success: bool
    duration: float  # seconds
    error: Optional[str] = None


@dataclass
class UploadStats:
    """Aggregated outcome of an upload run, partial or complete."""
    total_files: int
    successful: int = 0
    failed: int = 0
    not_attempted: int = 0
    cancelled: bool = False
    duration: float = 0.0  # seconds
    results: List[UploadResult] = field(default_factory=list)

    @property
    def failures(self) -> List[UploadResult]:
        return [r for r in self.results if not r.success]


@dataclass(frozen=True)
class ScanResults:
    """Summary of the input directory before an upload starts."""
    total_files: int
    unique_workers: int
