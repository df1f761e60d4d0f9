"""Main entry point for the WorkDocs application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import functools
import logging
from typing import Any, Coroutine, Dict, Optional

import httpx
import typer
from typing_extensions import Annotated

from workdocs import __version__

# --- Core Layer ---
from workdocs.core.command_handler import CommandHandler, EnvironmentServices
from workdocs.core.services.report_generator import ReportGenerator
from workdocs.core.services.upload_orchestrator import BUSINESS_EXCEPTIONS, UploadOrchestrator

# --- Domain Layer ---
from workdocs.domain.errors import ConfigurationError
from workdocs.domain.interfaces.document_store import DocumentStore
from workdocs.domain.interfaces.user_interface import UserInterface

# --- Infrastructure Layer ---
from workdocs.infrastructure.auth.oauth import OAuthService
from workdocs.infrastructure.cache.worker_cache import WorkerCache
from workdocs.infrastructure.cli.display import ConsoleDisplay
from workdocs.infrastructure.config.settings import AppConfig, WorkdayEnvironment, get_app_config, load_configuration
from workdocs.infrastructure.filesystem.local_fs import LocalDocumentStore
from workdocs.infrastructure.monitoring.logger_setup import setup_logging
from workdocs.infrastructure.resilience.api_retry import ApiRetryService
from workdocs.infrastructure.resilience.circuit_breaker import CircuitBreaker
from workdocs.infrastructure.workday.api_client import WorkdayApiClient

logger = logging.getLogger(__name__)


def create_environment_services(
    app_config: AppConfig,
    ui: UserInterface,
    document_store: DocumentStore,
    environment: WorkdayEnvironment,
    http_client: httpx.AsyncClient,
) -> EnvironmentServices:
    """Wires the services that depend on the selected environment."""
    retry_service = ApiRetryService()
    oauth_service = OAuthService(
        environment,
        http_client,
        retry_service=retry_service,
        token_ttl_seconds=app_config.token_ttl_seconds,
        request_timeout=app_config.request_timeout_seconds,
    )
    workday_api = WorkdayApiClient(
        environment, http_client, oauth_service, request_timeout=app_config.request_timeout_seconds
    )
    orchestrator = UploadOrchestrator(
        document_store=document_store,
        workday_api=workday_api,
        ui=ui,
        retry_service=retry_service,
        worker_cache=WorkerCache(
            ttl_seconds=app_config.worker_cache_ttl_seconds,
            max_entries=app_config.worker_cache_max_entries,
        ),
        validation_breaker=CircuitBreaker(
            failure_threshold=app_config.circuit_failure_threshold,
            recovery_timeout=app_config.circuit_recovery_timeout_seconds,
            name="worker-validation",
            ignored_exceptions=BUSINESS_EXCEPTIONS,
        ),
        upload_breaker=CircuitBreaker(
            failure_threshold=app_config.circuit_failure_threshold,
            recovery_timeout=app_config.circuit_recovery_timeout_seconds,
            name="document-upload",
            ignored_exceptions=BUSINESS_EXCEPTIONS,
        ),
        max_concurrent_uploads=app_config.max_concurrent_uploads,
        failure_prompt_threshold=app_config.failure_prompt_threshold,
        environment_name=environment.name,
    )
    return EnvironmentServices(oauth_service=oauth_service, orchestrator=orchestrator)


# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    try:
        # 1. Load Configuration First
        load_configuration()
        app_config = get_app_config()
        dependencies['app_config'] = app_config

        log_level = getattr(logging, app_config.log_level.upper(), logging.INFO)
        setup_logging(
            log_level=log_level,
            json_log_dir=app_config.log_dir,
            # Keep the console quiet under the progress bar unless debugging
            console_level=log_level if log_level <= logging.DEBUG else logging.WARNING,
        )
        logger.info("Configuration and logging initialized.")

        # 2. Instantiate Infrastructure Adapters
        dependencies['document_store'] = LocalDocumentStore(
            input_dir=app_config.input_dir,
            processed_dir=app_config.processed_dir,
            failed_dir=app_config.failed_dir,
            max_file_size_mb=app_config.max_file_size_mb,
        )
        dependencies['report_generator'] = ReportGenerator(logs_dir=app_config.log_dir)

        # 3. Instantiate Command Handler
        dependencies['command_handler'] = CommandHandler(
            ui=dependencies['ui'],
            app_config=app_config,
            services_factory=functools.partial(
                create_environment_services, app_config, dependencies['ui'], dependencies['document_store']
            ),
            report_generator=dependencies['report_generator'],
        )
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except ConfigurationError as e:
        logger.error(f"Fatal Error during application initialization: {e}")
        dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=1)


_dependencies: Dict[str, Any] = {}


def get_dependencies() -> Dict[str, Any]:
    """Returns the wired dependencies, creating them on first use."""
    if not _dependencies:
        _dependencies.update(create_dependencies())
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="workdocs",
    help="WorkDocs CLI: mass upload worker documents to Workday.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, int]) -> None:
    """Runs an async command handler and exits with its return code."""
    try:
        exit_code = asyncio.run(coro)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        get_dependencies()['ui'].display_warning("Interrupted by user. In-flight uploads may be incomplete.")
        raise typer.Exit(code=130)
    if exit_code:
        raise typer.Exit(code=exit_code)


# --- CLI Commands ---

EnvironmentOption = Annotated[
    Optional[str],
    typer.Option("--environment", "-e",
                 help="Workday environment: sandbox, sandbox_preview or production. Prompts if not set.")
]


@app.command()
def upload(
    environment: EnvironmentOption = None,
    category: Annotated[
        Optional[str],
        typer.Option("--category", "-c", help="Document category name or WID. Prompts if not set.")
    ] = None,
):
    """Upload documents from the input directory to Workday."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_upload(environment, category))


@app.command()
def validate(environment: EnvironmentOption = None):
    """Validate configuration and test OAuth authentication."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_validate(environment))


@app.command()
def report(
    output: Annotated[
        Optional[str],
        typer.Option("--output", "-o", help="Save the report to this file in the logs directory.")
    ] = None,
):
    """Generate a human-readable report from the logs."""
    handler: CommandHandler = get_dependencies()['command_handler']
    run_async(handler.handle_report(output))


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"workdocs {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show the version and exit.")
    ] = None,
):
    """Mass upload worker documents to Workday."""


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
