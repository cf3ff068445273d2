import logging
from datetime import datetime
from typing import Any, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from auracli.domain.interfaces.user_interface import UserInterface
from auracli.domain.models.diagnostics import AnalysisResult, format_currency
from auracli.domain.models.lead import Lead

logger = logging.getLogger(__name__)

_STATUS_STYLES = {
    "ready": ("green", "System Ready"),
    "missing_config": ("yellow", "System Handshake Failed"),
    "config_error": ("red", "System Handshake Failed"),
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
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
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_analysis(self, result: AnalysisResult) -> None:
        """Displays the score header and the roadmap as a table."""
        score = result.aura_score if result.aura_score is not None else "n/a"
        header = Text.assemble(
            ("Aura Score ", "bold cyan"), (str(score), "bold white"),
            ("   Face Type ", "bold cyan"), (result.face_type or "n/a", "white"),
        )
        self.console.print(Panel(header, box=ROUNDED, border_style="cyan", padding=(0, 1)))

        table = Table(title="Clinical Roadmap", show_header=True, box=ROUNDED, border_style="cyan")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Treatment", style="bold")
        table.add_column("Benefit")
        table.add_column("Rationale", style="dim")
        table.add_column("Est. Value", justify="right", style="green")
        for i, item in enumerate(result.clinical_roadmap, 1):
            table.add_row(str(i), item.name, item.benefit, item.rationale, item.estimated_value)
        table.add_row("", "[bold]Total potential[/bold]", "", "",
                      f"[bold]{format_currency(result.total_potential)}[/bold]")
        self.console.print(table)

        if result.halos:
            self.console.print(Text("Halos: " + ", ".join(str(h) for h in result.halos), style="magenta"))

    def display_leads(self, leads: List[Lead]) -> None:
        if not leads:
            self.display_info("No leads captured yet.")
            return

        table = Table(title=f"Leads ({len(leads)})", show_header=True, box=ROUNDED, border_style="cyan")
        table.add_column("Created", style="dim")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="bold")
        table.add_column("Email")
        table.add_column("Score", justify="right")
        table.add_column("Est. Value", justify="right", style="green")
        table.add_column("Status")
        for lead in leads:
            created = (
                datetime.fromtimestamp(lead.created_at).strftime("%Y-%m-%d %H:%M")
                if lead.created_at else "pending"
            )
            table.add_row(
                created,
                lead.id or "",
                lead.name,
                lead.email,
                "" if lead.aura_score is None else str(lead.aura_score),
                lead.est_value,
                lead.status,
            )
        self.console.print(table)

    def display_system_status(self, status: str, detail: str = "") -> None:
        style, title = _STATUS_STYLES.get(status, ("red", "System Handshake Failed"))
        body = status if not detail else f"{status}: {detail}"
        self.console.print(Panel(
            Text(body, style="white"),
            title=f"[bold {style}]{title}[/bold {style}]",
            border_style=style,
            box=ROUNDED,
            padding=(0, 1)
        ))
