"""Workday SOAP API client.

Implements the WorkdayApi interface with one remote attempt per call.
Retries and circuit breaking are applied by the orchestrator around these
methods, so every failure here is raised as a domain error for the retry
policy to classify.
"""

import logging
import re
from typing import Optional

import httpx

from workdocs.domain.errors import NotFoundError, RemoteRejection, ValidationError
from workdocs.domain.interfaces.workday_api import WorkdayApi
from workdocs.domain.models.common import EmployeeId, WorkerWid
from workdocs.domain.models.upload import WorkerDocument
from workdocs.infrastructure.auth.oauth import OAuthService
from workdocs.infrastructure.config.settings import WorkdayEnvironment
from workdocs.infrastructure.workday import transport
from workdocs.infrastructure.workday.templates import render_template

logger = logging.getLogger(__name__)

EMPLOYEE_ID_PATTERN = re.compile(r"^\d{3,12}$")
# Workday ids are 32 lowercase hex characters, e.g. 81f5373f398e4550a111264703c3f689
WID_PATTERN = re.compile(r"^[a-f0-9]{32}$")
_WORKER_WID_PATTERNS = (
    re.compile(r'<bsvc:ID bsvc:type="WID">([^<]+)</bsvc:ID>'),
    re.compile(r'<wd:ID wd:type="WID">([^<]+)</wd:ID>'),
)


def extract_worker_wid(soap_response: str) -> Optional[str]:
    """Returns the first WID in a Get_Workers response, or None."""
    for pattern in _WORKER_WID_PATTERNS:
        match = pattern.search(soap_response)
        if match:
            return match.group(1)
    return None


def is_upload_successful(soap_response: str) -> bool:
    if "soap:Fault" in soap_response or "bsvc:Validation_Error" in soap_response:
        return False
    return ("Put_Worker_Document_Response" in soap_response
            or "bsvc:Worker_Document_Reference" in soap_response)


class WorkdayApiClient(WorkdayApi):
    """Calls the Workday Human Resources SOAP service of one environment."""

    def __init__(
        self,
        environment: WorkdayEnvironment,
        http_client: httpx.AsyncClient,
        oauth_service: OAuthService,
        request_timeout: float = transport.DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ):
        self.environment = environment
        self.http_client = http_client
        self.oauth_service = oauth_service
        self.request_timeout = request_timeout

    async def ensure_authenticated(self) -> None:
        await self.oauth_service.ensure_authenticated()

    async def validate_worker(self, employee_id: EmployeeId) -> WorkerWid:
        if not EMPLOYEE_ID_PATTERN.match(employee_id):
            raise ValidationError("Invalid employee ID format. Must be 3-12 digits.")

        logger.info("Validating worker", extra={"employee_id": employee_id})
        envelope = render_template("get_workers_request", {"employee_id": employee_id})
        response_text = await self._post_soap(envelope)

        worker_wid = extract_worker_wid(response_text)
        if not worker_wid:
            logger.warning("Worker not found", extra={"employee_id": employee_id})
            raise NotFoundError(f"Worker not found: {employee_id}")

        logger.info("Worker validation successful", extra={"employee_id": employee_id})
        return WorkerWid(worker_wid)

    async def upload_document(self, document: WorkerDocument, worker_wid: WorkerWid) -> None:
        if not EMPLOYEE_ID_PATTERN.match(document.employee_id):
            raise ValidationError(f"Invalid employee ID for document upload: {document.employee_id}")
        if not WID_PATTERN.match(worker_wid):
            raise ValidationError(f"Invalid worker WID for document upload (employee {document.employee_id})")
        if not WID_PATTERN.match(document.category_wid):
            raise ValidationError(f"Invalid category WID for document upload: {document.category_wid}")

        logger.info(
            "Uploading document",
            extra={
                "employee_id": document.employee_id,
                "file_name": document.filename,
                "category_wid": document.category_wid,
            },
        )
        envelope = render_template("put_worker_document_request", {
            "worker_wid": worker_wid,
            "category_wid": document.category_wid,
            "mime_type": document.mime_type,
            "filename": document.filename,
            "file_content": document.file_content,
        })
        response_text = await self._post_soap(envelope)

        if not is_upload_successful(response_text):
            raise RemoteRejection(f"Workday rejected document {document.filename}")

    async def _post_soap(self, envelope: str) -> str:
        access_token = await self.oauth_service.get_access_token()
        response = await transport.post(
            self.http_client,
            self.environment.api_url,
            timeout=self.request_timeout,
            content=envelope.encode("utf-8"),
            headers={
                "Content-Type": "text/xml; charset=utf-8",
                "Authorization": f"Bearer {access_token}",
                "SOAPAction": "",
            },
        )
        return response.text
