import logging
from typing import Any, Dict, Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bcconnector.domain.interfaces.user_interface import UserInterface
from bcconnector.domain.models.common import JsonPayload

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output.

    API results go to stdout so they can be piped; diagnostics go to stderr.
    """

    def __init__(self):
        """Initializes the rich Consoles."""
        self._console = Console()
        self._err_console = Console(stderr=True)

    @property
    def console(self):
        """Get the Rich console used for results."""
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    @property
    def err_console(self):
        """Get the Rich console used for errors, warnings and info."""
        return self._err_console

    @err_console.setter
    def err_console(self, value: Console) -> None:
        self._err_console = value

    def display_result(self, data: JsonPayload, **kwargs: Any) -> None:
        """Prints the decoded response as indented JSON.

        Args:
            data: The structured payload returned by the API.
            **kwargs: Additional arguments including:
                - indent: JSON indentation (default: 2)
        """
        indent = kwargs.get("indent", 2)
        logger.debug(f"display_result called with payload of type {type(data).__name__}")
        self.console.print_json(data=data, indent=indent)

    def display_settings(self, settings: Dict[str, Optional[Any]]) -> None:
        """Displays effective configuration values as a two-column table."""
        table = Table(title="bcconnector configuration", box=SIMPLE)
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        for key, value in settings.items():
            table.add_row(key, "" if value is None else str(value))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.err_console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message.

        Args:
            info_message: The informational message to display.
        """
        self.err_console.print(f"[blue]Info:[/blue] {info_message}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.err_console.print(panel)
