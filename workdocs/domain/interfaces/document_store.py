"""Interface for the local document store.

Covers discovery of work items, their local validation and their relocation
once an upload attempt has completed.
"""

import abc
from typing import List

from workdocs.domain.models.common import FilePath
from workdocs.domain.models.upload import ProcessedFile


class DocumentStore(abc.ABC):
    """Interface for the directories documents are read from and moved to."""

    @abc.abstractmethod
    async def get_files_to_process(self) -> List[FilePath]:
        """Lists the candidate documents in a stable order.

        Raises:
            DiscoveryError: If the input location cannot be read.
        """
        pass

    @abc.abstractmethod
    async def process_file(self, file_path: FilePath) -> ProcessedFile:
        """Validates a document and loads its content.

        Never raises for a bad document; the returned item carries
        `is_valid=False` and the rejection reason instead.
        """
        pass

    @abc.abstractmethod
    async def move_to_processed(self, file_path: FilePath) -> None:
        """Moves a successfully uploaded document to the success area."""
        pass

    @abc.abstractmethod
    async def move_to_failed(self, file_path: FilePath, reason: str) -> None:
        """Moves a document to the failure area and records the reason."""
        pass
