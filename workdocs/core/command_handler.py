"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), runs the interactive
steps around them (environment, production warning, category) and delegates
the work to the upload orchestrator, the OAuth service and the report
generator. Every handler returns the process exit code.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from workdocs.core.services.report_generator import ReportGenerator
from workdocs.core.services.upload_orchestrator import UploadOrchestrator
from workdocs.domain.errors import ConfigurationError, WorkdocsError
from workdocs.domain.interfaces.user_interface import UserInterface
from workdocs.domain.models.common import CategoryWid
from workdocs.infrastructure.config.categories import (
    DOCUMENT_CATEGORIES,
    DocumentCategory,
    find_category,
    find_category_by_name,
)
from workdocs.infrastructure.config.settings import AppConfig, WorkdayEnvironment, get_environment

logger = logging.getLogger(__name__)

UPLOAD_STARTED_MESSAGE = "Starting WorkDocs upload process"


@dataclass
class EnvironmentServices:
    """Services bound to one Workday environment and one HTTP client."""
    oauth_service: Any  # OAuthService
    orchestrator: UploadOrchestrator


ServicesFactory = Callable[[WorkdayEnvironment, httpx.AsyncClient], EnvironmentServices]


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        ui: UserInterface,
        app_config: AppConfig,
        services_factory: ServicesFactory,
        report_generator: ReportGenerator,
        http_client_factory: Callable[[], httpx.AsyncClient] = httpx.AsyncClient,
    ):
        """Initializes the CommandHandler.

        Args:
            ui: Console interaction.
            app_config: Application settings.
            services_factory: Builds the environment-bound services once the
                environment is known.
            report_generator: Renders reports from the session log.
            http_client_factory: Creates the HTTP client shared by one command.
        """
        self.ui = ui
        self.app_config = app_config
        self.services_factory = services_factory
        self.report_generator = report_generator
        self.http_client_factory = http_client_factory

    async def handle_upload(self, environment: Optional[str] = None, category: Optional[str] = None) -> int:
        """Handles the 'upload' command."""
        self.ui.display_output("WorkDocs CLI - Document Upload", title="WorkDocs", style="bold")
        try:
            environment_name = self._choose_environment(environment)
            if environment_name == "production" and not self._confirm_production():
                self.ui.display_info("Upload cancelled by user.")
                return 0

            workday_environment = get_environment(environment_name)
            preselected_category = self._lookup_category(category) if category else None

            logger.info(
                UPLOAD_STARTED_MESSAGE,
                extra={
                    "environment": environment_name,
                    "input_dir": self.app_config.input_dir,
                    "max_concurrency": self.app_config.max_concurrent_uploads,
                },
            )

            async with self.http_client_factory() as http_client:
                services = self.services_factory(workday_environment, http_client)
                orchestrator = services.orchestrator

                scan_results = await orchestrator.scan_files()
                if scan_results.total_files == 0:
                    self.ui.display_info("No files found to process in the input directory.")
                    return 0

                if preselected_category:
                    category_wid = preselected_category.wid
                    logger.info("Document category selected", extra={
                        "category_name": preselected_category.name, "category_wid": category_wid,
                    })
                else:
                    category_wid = self.ui.select_category(
                        DOCUMENT_CATEGORIES, scan_results.total_files, scan_results.unique_workers
                    )

                stats = await orchestrator.upload_all_documents(CategoryWid(category_wid))
        except WorkdocsError as e:
            logger.error("Upload process failed", extra={"error": str(e), "error_type": type(e).__name__})
            self.ui.display_error(
                f"Upload process failed: {e}\n"
                f"Check {self.app_config.log_dir}/combined.log for detailed error information."
            )
            return 1

        self.ui.display_upload_summary(stats, self.app_config.processed_dir, self.app_config.failed_dir)
        await self._save_session_report()
        return 1 if stats.failed > 0 else 0

    async def handle_validate(self, environment: Optional[str] = None) -> int:
        """Handles the 'validate' command: shows settings and tests authentication."""
        self.ui.display_output("WorkDocs CLI - Configuration Validation", title="WorkDocs", style="bold")
        try:
            environment_name = self._choose_environment(environment)
            workday_environment = get_environment(environment_name)
        except WorkdocsError as e:
            logger.error("Configuration validation failed", extra={"error": str(e)})
            self.ui.display_error(f"Configuration validation failed: {e}")
            return 1

        config = self.app_config
        self.ui.display_info(
            "Environment configuration loaded successfully\n"
            f"  - Environment: {environment_name}\n"
            "  - Client ID: ***CONFIGURED***\n"
            "  - Client Secret: ***CONFIGURED***\n"
            "  - Refresh Token: ***CONFIGURED***\n\n"
            "Application configuration:\n"
            f"  - Input directory: {config.input_dir}\n"
            f"  - Processed directory: {config.processed_dir}\n"
            f"  - Failed directory: {config.failed_dir}\n"
            f"  - Max concurrent uploads: {config.max_concurrent_uploads}\n"
            f"  - Max file size: {config.max_file_size_mb}MB"
        )

        self.ui.display_output("Testing OAuth authentication...")
        try:
            async with self.http_client_factory() as http_client:
                services = self.services_factory(workday_environment, http_client)
                await services.oauth_service.get_access_token()
        except WorkdocsError as e:
            logger.error("OAuth authentication failed during validation", extra={"error": str(e)})
            self.ui.display_error("OAuth authentication failed. Check credentials and network connectivity.")
            return 1

        self.ui.display_info("OAuth authentication successful\n  - Access token: ***OBTAINED***")
        self.ui.display_output("Configuration validation completed successfully", style="green")
        return 0

    async def handle_report(self, output: Optional[str] = None) -> int:
        """Handles the 'report' command."""
        logger.info(f"Handling 'report' command (output: {output or 'console'})")
        try:
            report = await self.report_generator.generate_report(output)
        except (WorkdocsError, OSError) as e:
            logger.error("Report generation failed", extra={"error": str(e)})
            self.ui.display_error(f"Report generation failed: {e}")
            return 1

        if output:
            self.ui.display_info(f"Report saved to {self.report_generator.logs_dir / Path(output).name}")
        else:
            self.ui.display_output(report)
        return 0

    def _choose_environment(self, environment: Optional[str]) -> str:
        if environment is None:
            environment = self.ui.select_environment()
        else:
            logger.info("Environment selected", extra={"environment": environment})
        self.ui.display_environment_info(environment)
        return environment

    def _confirm_production(self) -> bool:
        self.ui.display_warning(
            "You are about to upload documents to the PRODUCTION environment!\n"
            "This will affect live data in your Workday tenant.\n"
            "Please ensure you have tested thoroughly in sandbox first."
        )
        return self.ui.ask_yes_no_question(
            "Are you absolutely sure you want to proceed with production upload?", default=False
        )

    def _lookup_category(self, value: str) -> DocumentCategory:
        """Accepts a category WID or its display name."""
        category = find_category(value) or find_category_by_name(value)
        if category is None:
            raise ConfigurationError(f"Unknown document category: {value}")
        return category

    async def _save_session_report(self) -> None:
        report_name = f"session-report-{datetime.now().strftime('%Y-%m-%dT%H-%M-%S')}.txt"
        try:
            await self.report_generator.generate_report(report_name)
        except (WorkdocsError, OSError) as e:
            logger.warning("Failed to generate summary report", extra={"error": str(e)})
            self.ui.display_warning("Could not generate summary report, but upload process completed")
            return
        self.ui.display_info(f"Detailed report saved to: {self.report_generator.logs_dir / report_name}")
