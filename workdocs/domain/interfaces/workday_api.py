"""Interface for the remote Workday service.

Implementations perform a single remote attempt per call and signal failure
through the domain error taxonomy; retries and circuit breaking are applied
by the caller.
"""

import abc

from workdocs.domain.models.common import EmployeeId, WorkerWid
from workdocs.domain.models.upload import WorkerDocument


class WorkdayApi(abc.ABC):
    """Abstract Base Class for the Workday operations used by an upload run."""

    @abc.abstractmethod
    async def ensure_authenticated(self) -> None:
        """Obtains (or reuses) a bearer credential for the environment.

        Raises:
            AuthFailure: If no credential could be obtained.
        """
        pass

    @abc.abstractmethod
    async def validate_worker(self, employee_id: EmployeeId) -> WorkerWid:
        """Resolves an employee id to its Worker WID.

        Raises:
            ValidationError: If the employee id is malformed.
            NotFoundError: If no worker matches.
            TransportError: On network or HTTP failures.
        """
        pass

    @abc.abstractmethod
    async def upload_document(self, document: WorkerDocument, worker_wid: WorkerWid) -> None:
        """Attaches a document to a worker.

        Raises:
            ValidationError: If an identifier is malformed.
            RemoteRejection: If Workday rejects the document.
            TransportError: On network or HTTP failures.
        """
        pass
