"""Service for uploading a directory of worker documents to Workday.

Drives the per-document pipeline (local validation, worker resolution,
upload, relocation) over all discovered documents in fixed-size batches.
Every remote call goes through the retry service and the circuit breaker of
its operation class. After each batch a safety valve checks whether the run
is failing wholesale and, if so, asks the operator whether to go on.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from workdocs.domain.errors import NotFoundError, RemoteRejection, ValidationError
from workdocs.domain.interfaces.document_store import DocumentStore
from workdocs.domain.interfaces.user_interface import ProgressReporter, UserInterface
from workdocs.domain.interfaces.workday_api import WorkdayApi
from workdocs.domain.models.common import CategoryWid, EmployeeId, FilePath, WorkerWid
from workdocs.domain.models.upload import ScanResults, UploadResult, UploadStats, WorkerDocument
from workdocs.infrastructure.cache.worker_cache import WorkerCache
from workdocs.infrastructure.config.categories import find_category
from workdocs.infrastructure.resilience.api_retry import ApiRetryService
from workdocs.infrastructure.resilience.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_UPLOADS = 5
DEFAULT_FAILURE_PROMPT_THRESHOLD = 10
# Outcomes that prove Workday answered; they never trip a breaker
BUSINESS_EXCEPTIONS = (NotFoundError, RemoteRejection, ValidationError)


def chunked(items: Sequence[FilePath], size: int) -> Iterator[Sequence[FilePath]]:
    """Yields consecutive slices of at most `size` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


class UploadOrchestrator:
    """Uploads every document of the input directory under one category."""

    def __init__(
        self,
        document_store: DocumentStore,
        workday_api: WorkdayApi,
        ui: UserInterface,
        retry_service: Optional[ApiRetryService] = None,
        worker_cache: Optional[WorkerCache] = None,
        validation_breaker: Optional[CircuitBreaker] = None,
        upload_breaker: Optional[CircuitBreaker] = None,
        max_concurrent_uploads: int = DEFAULT_MAX_CONCURRENT_UPLOADS,
        failure_prompt_threshold: int = DEFAULT_FAILURE_PROMPT_THRESHOLD,
        environment_name: str = "",
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the UploadOrchestrator.

        Args:
            document_store: Source and destination of the documents.
            workday_api: Remote Workday operations (one attempt per call).
            ui: Used for progress reporting and the safety-valve question.
            retry_service: Retries transient failures of every remote call.
            worker_cache: Employee id to Worker WID cache shared by all items.
            validation_breaker: Breaker for worker validation calls.
            upload_breaker: Breaker for document upload calls.
            max_concurrent_uploads: Batch size, the bound on concurrent pipelines.
            failure_prompt_threshold: Processed items and consecutive failures
                both needed before the operator is asked to continue.
            environment_name: Shown on the progress display and in logs.
            clock: Monotonic time source for durations.
        """
        if max_concurrent_uploads < 1:
            raise ValueError("max_concurrent_uploads must be at least 1")
        self.document_store = document_store
        self.workday_api = workday_api
        self.ui = ui
        self.retry_service = retry_service or ApiRetryService()
        self.worker_cache = worker_cache if worker_cache is not None else WorkerCache()
        self.validation_breaker = validation_breaker or CircuitBreaker(
            name="worker-validation", ignored_exceptions=BUSINESS_EXCEPTIONS
        )
        self.upload_breaker = upload_breaker or CircuitBreaker(
            name="document-upload", ignored_exceptions=BUSINESS_EXCEPTIONS
        )
        self.max_concurrent_uploads = max_concurrent_uploads
        self.failure_prompt_threshold = failure_prompt_threshold
        self.environment_name = environment_name
        self.clock = clock

        self._consecutive_failures = 0
        self._check_for_failures = True

    async def scan_files(self) -> ScanResults:
        """Counts the documents and distinct employee ids in the input directory.

        Raises:
            DiscoveryError: If the input directory cannot be read.
        """
        file_paths = await self.document_store.get_files_to_process()
        unique_workers = set()
        for file_path in file_paths:
            parts = Path(file_path).name.split('-')
            if len(parts) >= 2:
                unique_workers.add(parts[0])
        return ScanResults(total_files=len(file_paths), unique_workers=len(unique_workers))

    async def upload_all_documents(self, category_wid: CategoryWid) -> UploadStats:
        """Uploads all documents, returning aggregated and per-item results.

        Per-document failures never abort the run; they are recorded in the
        returned stats and the document is moved to the failed directory.

        Raises:
            DiscoveryError: If the input directory cannot be read. Raised
                before any remote call is made.
            AuthFailure: If the initial credential cannot be obtained.
        """
        start_time = self.clock()
        self._consecutive_failures = 0
        self._check_for_failures = True

        logger.info(
            "Starting document upload process",
            extra={"environment": self.environment_name, "max_concurrency": self.max_concurrent_uploads},
        )

        file_paths = await self.document_store.get_files_to_process()
        stats = UploadStats(total_files=len(file_paths))
        if not file_paths:
            logger.info("No files found to process")
            stats.duration = self.clock() - start_time
            return stats

        logger.info("Pre-fetching OAuth token...")
        await self.workday_api.ensure_authenticated()
        logger.info("OAuth token obtained successfully")

        category = find_category(category_wid)
        category_name = category.name if category else "Unknown Category"
        self.ui.display_info(
            f"Uploading {len(file_paths)} worker documents to {self.environment_name}\nCategory: {category_name}"
        )

        progress = self.ui.create_progress(len(file_paths), self.environment_name, category_name)
        progress.start()
        try:
            for batch in chunked(file_paths, self.max_concurrent_uploads):
                batch_results = await asyncio.gather(
                    *(self._process_file(file_path, category_wid, progress) for file_path in batch)
                )
                stats.results.extend(batch_results)

                if self._check_for_failures and await self._confirm_stop(len(stats.results), len(file_paths)):
                    stats.cancelled = True
                    stats.not_attempted = len(file_paths) - len(stats.results)
                    logger.warning("Upload cancelled by user", extra={"not_attempted": stats.not_attempted})
                    self.ui.display_warning(
                        f"Upload cancelled by user. {stats.not_attempted} files not processed."
                    )
                    break
        finally:
            progress.complete()

        stats.successful = sum(1 for r in stats.results if r.success)
        stats.failed = len(stats.results) - stats.successful
        stats.duration = self.clock() - start_time

        logger.info(
            "Upload process completed",
            extra={
                "total_files": stats.total_files,
                "successful": stats.successful,
                "failed": stats.failed,
                "not_attempted": stats.not_attempted,
                "duration": f"{stats.duration:.2f}s",
                "avg_time_per_file": f"{stats.duration / len(file_paths):.2f}s",
            },
        )
        return stats

    async def _process_file(
        self, file_path: FilePath, category_wid: CategoryWid, progress: ProgressReporter
    ) -> UploadResult:
        """Runs the pipeline for one document. Never raises for per-item failures."""
        start_time = self.clock()
        filename = Path(file_path).name
        employee_id = ""
        logger.debug(f"Processing file: {filename}")

        try:
            processed = await self.document_store.process_file(file_path)
            employee_id = processed.employee_id
            if not processed.is_valid:
                raise ValidationError(processed.error or "Unknown error")

            worker_wid = await self._resolve_worker(processed.employee_id)
            document = WorkerDocument(
                employee_id=processed.employee_id,
                filename=processed.filename,
                category_wid=category_wid,
                file_content=processed.file_content,
            )
            await self.upload_breaker.execute(self._upload_with_retry, document, worker_wid,
                                              operation_name="document-upload")
        except Exception as e:
            error = str(e) or type(e).__name__
            try:
                await self.document_store.move_to_failed(file_path, error)
            except OSError as move_error:
                logger.error(
                    "Failed to move file to failed directory",
                    extra={"file_name": filename, "error": str(move_error)},
                )
            return self._record(progress, filename, employee_id, start_time, error=error)

        try:
            await self.document_store.move_to_processed(file_path)
        except OSError as move_error:
            error = f"Uploaded, but could not move file to processed directory: {move_error}"
            logger.error("Failed to move file to processed directory",
                         extra={"file_name": filename, "error": str(move_error)})
            return self._record(progress, filename, employee_id, start_time, error=error)

        return self._record(progress, filename, employee_id, start_time)

    async def _resolve_worker(self, employee_id: EmployeeId) -> WorkerWid:
        cached = self.worker_cache.get(employee_id)
        if cached:
            logger.debug(f"Using cached worker validation for {employee_id}")
            return cached

        worker_wid = await self.validation_breaker.execute(self._validate_with_retry, employee_id,
                                                           operation_name="worker-validation")
        self.worker_cache.set(employee_id, worker_wid)
        return worker_wid

    async def _validate_with_retry(self, employee_id: EmployeeId) -> WorkerWid:
        return await self.retry_service.execute_with_retry(
            self.workday_api.validate_worker, employee_id,
            operation_name=f"Worker validation for {employee_id}",
        )

    async def _upload_with_retry(self, document: WorkerDocument, worker_wid: WorkerWid) -> None:
        await self.retry_service.execute_with_retry(
            self.workday_api.upload_document, document, worker_wid,
            operation_name=f"Document upload for {document.filename}",
        )

    def _record(self, progress: ProgressReporter, filename: str, employee_id: str,
                start_time: float, error: Optional[str] = None) -> UploadResult:
        """Builds the result of a finished item and updates the run counters."""
        result = UploadResult(
            filename=filename,
            employee_id=employee_id,
            success=error is None,
            duration=self.clock() - start_time,
            error=error,
        )
        if result.success:
            self._consecutive_failures = 0
            progress.update_success(filename)
            logger.info("Document upload successful", extra={"file_name": filename, "employee_id": employee_id})
        else:
            self._consecutive_failures += 1
            progress.update_failure(filename)
            logger.warning(
                "Document upload failed",
                extra={"file_name": filename, "employee_id": employee_id, "error": error},
            )
        return result

    async def _confirm_stop(self, total_processed: int, total_files: int) -> bool:
        """Safety valve, checked between batches.

        Returns:
            True if the operator chose to stop the run.
        """
        threshold = self.failure_prompt_threshold
        if total_processed < threshold or self._consecutive_failures < threshold:
            return False
        # Nothing remains to skip, so there is nothing to ask
        if total_processed >= total_files:
            return False

        self.ui.display_warning(
            "All uploads are failing!\n"
            f"{self._consecutive_failures} consecutive failures detected\n"
            f"{total_processed}/{total_files} files processed so far\n"
            f"{total_files - total_processed} files remaining"
        )
        # Blocking terminal input, keep it off the event loop
        should_continue = await asyncio.to_thread(
            self.ui.ask_yes_no_question,
            "All recent uploads have failed. Do you want to continue uploading the remaining files?",
            False,
        )
        if not should_continue:
            self._check_for_failures = False
            return True

        self._consecutive_failures = 0
        logger.info("Continuing with remaining uploads after consecutive failures")
        return False
