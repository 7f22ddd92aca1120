"""Console output shared by every command.

Messages handed to the Reporter are plain text; anything that looks like
rich markup in a tag name or in git's output is printed literally.
"""

from typing import List, Optional

from rich.console import Console  # type: ignore[import]
from rich.markup import escape  # type: ignore[import]


# Status icons
class Icons:
    SUCCESS = "[green]✓[/green]"
    WARNING = "[yellow]⚠[/yellow]"
    ERROR = "[red]✗[/red]"
    INFO = "[blue]ℹ[/blue]"
    PROGRESS = "[cyan]➤[/cyan]"


class Reporter:
    """Routes progress messages to a rich console according to verbosity"""

    def __init__(
        self,
        console: Optional[Console] = None,
        verbose: bool = False,
        quiet: bool = False,
        debug: bool = False,
    ):
        self.console = console or Console(stderr=True, highlight=False)
        self.verbose_enabled = verbose or debug
        self.quiet = quiet
        self.debug = debug

    def log(self, message: str) -> None:
        """Normal progress output"""
        if not self.quiet:
            self.console.print(escape(message))

    def success(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"{Icons.SUCCESS} {escape(message)}")

    def verbose(self, message: str) -> None:
        """Output shown only with --verbose"""
        if self.verbose_enabled and not self.quiet:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def command(self, cmd: List[str]) -> None:
        """Echo an external command before it runs"""
        self.verbose(f"Running: {' '.join(str(c) for c in cmd)}")

    def warning(self, message: str) -> None:
        self.console.print(f"{Icons.WARNING} {escape(message)}")

    def error(self, message: str) -> None:
        # Errors are printed even in quiet mode
        self.console.print(f"{Icons.ERROR} {escape(message)}")


def silent_reporter() -> Reporter:
    """A reporter that only prints warnings and errors"""
    return Reporter(quiet=True)
