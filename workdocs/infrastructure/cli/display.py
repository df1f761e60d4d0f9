import logging
from typing import Any, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from workdocs.domain.interfaces.user_interface import ProgressReporter, UserInterface
from workdocs.domain.models.common import ENVIRONMENT_NAMES, CategoryWid
from workdocs.domain.models.upload import UploadStats
from workdocs.infrastructure.cli.progress import ProgressTracker

logger = logging.getLogger(__name__)

ENVIRONMENT_INFO = {
    "sandbox": ("Sandbox", "Safe testing environment - perfect for development and testing"),
    "sandbox_preview": ("Sandbox Preview", "Preview environment - for testing upcoming features"),
    "production": ("Production", "Live environment - affects real data"),
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays plain output, optionally inside a titled panel.

        Args:
            output: The text to display.
            **kwargs: Additional arguments including:
                - title: Wraps the output in a panel with this title
                - style: Rich style for the text
        """
        title = kwargs.get("title")
        style = kwargs.get("style", "white")
        if title:
            self.console.print(Panel(Text(output, style=style), title=f"[bold]{title}[/bold]",
                                     border_style="cyan", box=ROUNDED, padding=(0, 1)))
        else:
            self.console.print(Text(output, style=style))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def ask_yes_no_question(self, question: str, default: bool = False) -> bool:
        """Asks a yes/no question and returns the answer.

        Args:
            question: The question to ask
            default: Answer used for an empty response

        Returns:
            True if the answer is yes, False otherwise
        """
        logger.debug(f"Asking yes/no question: {question}")
        hint = "(Y/n)" if default else "(y/N)"
        panel = Panel(
            Text(f"{question} {hint}", style="white"),
            title="[bold yellow]Question[/bold yellow]",
            border_style="yellow",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

        response = self.console.input("[bold yellow]> [/bold yellow]").strip().lower()
        if not response:
            return default
        return response in ('y', 'yes')

    def select_environment(self) -> str:
        """Asks the user to pick one of the Workday environments.

        Returns:
            The environment name; sandbox when the user just presses Enter.
        """
        logger.debug("Prompting user for environment selection")
        lines = [
            f"{i}. {ENVIRONMENT_INFO[name][0]}" + (" (Caution!)" if name == "production" else "")
            for i, name in enumerate(ENVIRONMENT_NAMES, 1)
        ]
        self.console.print(Panel(
            Text("\n".join(lines) + "\n[default: 1]", style="white"),
            title="[bold blue]Select the Workday environment[/bold blue]",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1)
        ))

        choice = self._ask_choice(len(ENVIRONMENT_NAMES), default=1)
        environment = ENVIRONMENT_NAMES[choice - 1]
        logger.info("Environment selected", extra={"environment": environment})
        return environment

    def select_category(self, categories: Sequence[Any], total_files: int, unique_workers: int) -> CategoryWid:
        """Shows the scan results and asks for the category of all documents."""
        self.console.print(Panel(
            Text(f"{total_files} documents found\n{unique_workers} unique workers identified", style="white"),
            title="[bold cyan]Scan Results[/bold cyan]",
            border_style="cyan",
            box=SIMPLE,
            padding=(0, 1)
        ))

        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Document category", style="white")
        for i, category in enumerate(categories, 1):
            table.add_row(str(i), category.name)
        self.console.print(table)

        choice = self._ask_choice(len(categories))
        selected = categories[choice - 1]
        self.console.print(f"\n[bold]Selected category:[/bold] {selected.name}\n")
        logger.info("Document category selected",
                    extra={"category_name": selected.name, "category_wid": selected.wid})
        return CategoryWid(selected.wid)

    def display_environment_info(self, environment: str) -> None:
        name, description = ENVIRONMENT_INFO.get(environment, (environment, ""))
        style = "red" if environment == "production" else "green"
        self.console.print(f"\n[bold {style}]Selected environment: {name}[/bold {style}]")
        if description:
            self.console.print(f"   {description}\n")

    def display_upload_summary(self, stats: UploadStats, processed_dir: Optional[str] = None,
                               failed_dir: Optional[str] = None) -> None:
        title = "Upload Cancelled" if stats.cancelled else "Upload Complete"
        table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1),
                      title=f"[bold cyan]{title}[/bold cyan]")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="bold")
        table.add_row("Total files", str(stats.total_files))
        table.add_row("Successful", f"[green]{stats.successful}[/green]")
        table.add_row("Failed", f"[red]{stats.failed}[/red]")
        if stats.not_attempted:
            table.add_row("Not attempted", f"[yellow]{stats.not_attempted}[/yellow]")
        table.add_row("Duration", f"{stats.duration:.2f} seconds")
        self.console.print("")
        self.console.print(table)

        failures = stats.failures
        if failures:
            failure_table = Table(show_header=True, box=SIMPLE, border_style="red",
                                  title="[bold red]Failed uploads[/bold red]")
            failure_table.add_column("File", style="white")
            failure_table.add_column("Employee", style="dim")
            failure_table.add_column("Reason", style="red")
            for result in failures:
                failure_table.add_row(result.filename, result.employee_id or "-", result.error or "Unknown error")
            self.console.print(failure_table)

        if processed_dir:
            self.console.print(f"Processed files moved to: {processed_dir}")
        if failed_dir:
            self.console.print(f"Failed files moved to: {failed_dir}")

    def create_progress(self, total: int, environment: str, category: str) -> ProgressReporter:
        return ProgressTracker(total, environment, category, console=self.console)

    def _ask_choice(self, count: int, default: Optional[int] = None) -> int:
        """Reads a 1-based menu choice, asking again until it is valid."""
        while True:
            response = self.console.input("[bold blue]> [/bold blue]").strip()
            if not response and default is not None:
                return default
            if response.isdigit() and 1 <= int(response) <= count:
                return int(response)
            self.console.print(f"[yellow]Please enter a number between 1 and {count}.[/yellow]")
