"""Interface for interacting with the user (input/output).

Defines the contract for displaying information, errors, warnings,
asking the operator for decisions and reporting upload progress, allowing
different UI implementations (e.g., console, scripted test doubles).
"""

import abc
from typing import Any, Optional, Sequence

from workdocs.domain.models.common import CategoryWid
from workdocs.domain.models.upload import UploadStats


class ProgressReporter(abc.ABC):
    """Receives per-item outcomes while an upload run is in progress."""

    @abc.abstractmethod
    def start(self) -> None:
        pass

    @abc.abstractmethod
    def update_success(self, filename: str) -> None:
        pass

    @abc.abstractmethod
    def update_failure(self, filename: str) -> None:
        pass

    @abc.abstractmethod
    def complete(self) -> None:
        pass


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display.
            **kwargs: Additional arguments for formatting (e.g., style).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def ask_yes_no_question(self, question: str, default: bool = False) -> bool:
        """Asks a yes/no question and returns the answer.

        Note: This blocks on terminal input. For async contexts, the caller
        should wrap this in asyncio.to_thread.

        Args:
            question: The question to ask.
            default: Answer assumed when the user just presses Enter.

        Returns:
            True if the answer is yes, False otherwise.
        """
        pass

    @abc.abstractmethod
    def select_environment(self) -> str:
        """Asks the user which Workday environment to target."""
        pass

    @abc.abstractmethod
    def select_category(self, categories: Sequence[Any], total_files: int, unique_workers: int) -> CategoryWid:
        """Shows the scan results and asks for the document category.

        Args:
            categories: The selectable document categories.
            total_files: Number of documents found in the input directory.
            unique_workers: Number of distinct employee ids among them.

        Returns:
            The WID of the selected category.
        """
        pass

    @abc.abstractmethod
    def create_progress(self, total: int, environment: str, category: str) -> ProgressReporter:
        """Creates a progress reporter for an upload run of `total` items."""
        pass

    def display_environment_info(self, environment: str) -> None:
        """Describes the selected environment. Optional for implementations."""
        pass

    def display_upload_summary(self, stats: UploadStats, processed_dir: Optional[str] = None,
                               failed_dir: Optional[str] = None) -> None:
        """Displays the final results of an upload run. Optional for implementations."""
        pass
