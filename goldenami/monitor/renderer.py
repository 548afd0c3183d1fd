"""Rich terminal renderer for image history and validation results.

Color scheme
------------
- green     : AVAILABLE
- yellow    : PENDING
- red       : FAILED
- dim       : DEREGISTERED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from goldenami.models.builds import LastBuildInfo
from goldenami.models.images import ImageRecord, ImageState
from goldenami.models.validation import ValidationResult


# ---------------------------------------------------------------------------
# State -> Rich style mapping
# ---------------------------------------------------------------------------

_STATE_STYLES: dict[ImageState, str] = {
    ImageState.AVAILABLE: "bold green",
    ImageState.PENDING: "bold yellow",
    ImageState.FAILED: "bold red",
    ImageState.DEREGISTERED: "dim",
}

_STATE_LABELS: dict[ImageState, str] = {
    ImageState.AVAILABLE: "[green]AVAILABLE[/green]",
    ImageState.PENDING: "[yellow]PENDING[/yellow]",
    ImageState.FAILED: "[bold red]FAILED[/bold red]",
    ImageState.DEREGISTERED: "[dim]DEREGISTERED[/dim]",
}


class ImageRenderer:
    """Renders image records as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def render_history(
        self,
        environment: str,
        records: list[ImageRecord],
        latest_id: str | None = None,
    ) -> Panel:
        """Render an environment's history, newest first, marking the latest valid image."""
        table = Table(
            show_header=True,
            header_style="bold cyan",
            expand=True,
            show_lines=False,
        )
        table.add_column("Image", min_width=21)
        table.add_column("Name", min_width=25)
        table.add_column("State", justify="center", min_width=14)
        table.add_column("Created (UTC)", min_width=19)
        table.add_column("Valid", justify="center", width=7)

        for record in sorted(records, key=ImageRecord.sort_key, reverse=True):
            style = _STATE_STYLES.get(record.state, "")
            image_cell = f"[{style}]{record.id}[/{style}]"
            if record.id == latest_id:
                image_cell += " [bold cyan]<- latest[/bold cyan]"
            valid = "[green]Yes[/green]" if record.is_valid else "[dim]No[/dim]"
            table.add_row(
                image_cell,
                record.name or "[dim]-[/dim]",
                _STATE_LABELS.get(record.state, record.state.value),
                record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                valid,
            )

        summary = Text.from_markup(
            f"[bold]Environment:[/bold] {environment}  |  "
            f"[bold]Images:[/bold] {len(records)}  |  "
            f"[bold]Latest valid:[/bold] {latest_id or '[yellow]none[/yellow]'}"
        )
        return Panel(
            Group(table, Text(""), summary),
            title="[bold]Golden Image History[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    def print_history(
        self,
        environment: str,
        records: list[ImageRecord],
        latest_id: str | None = None,
    ) -> None:
        self.console.print(self.render_history(environment, records, latest_id))

    # ------------------------------------------------------------------
    # Single image / validation
    # ------------------------------------------------------------------

    def render_record(self, record: ImageRecord) -> Panel:
        """Render the details of one image."""
        lines = [
            f"[bold]Image:[/bold]       {record.id}",
            f"[bold]Name:[/bold]        {record.name or '-'}",
            f"[bold]Region:[/bold]      {record.region or '-'}",
            f"[bold]State:[/bold]       {_STATE_LABELS.get(record.state, record.state.value)}",
            f"[bold]Created:[/bold]     {record.created_at.isoformat()}",
            f"[bold]Environment:[/bold] {record.environment or '-'}",
        ]
        if record.tags:
            lines.append("[bold]Tags:[/bold]")
            lines.extend(f"  {key}: {value}" for key, value in sorted(record.tags.items()))
        return Panel("\n".join(lines), border_style="cyan", padding=(0, 2))

    def print_validation(
        self,
        result: ValidationResult,
        *,
        warning_kinds: frozenset[str] = frozenset(),
    ) -> None:
        """Print every failure; kinds in ``warning_kinds`` print as warnings."""
        for failure in result.failures:
            if failure.kind in warning_kinds:
                self.console.print(f"[yellow]WARNING:[/yellow] {failure.describe()}")
            else:
                self.console.print(f"[bold red]ERROR:[/bold red] {failure.describe()}")

        fatal = [f for f in result.failures if f.kind not in warning_kinds]
        if not fatal:
            self.console.print(
                f"[green]Image {result.image_id} is valid and ready for use.[/green]"
            )
        else:
            self.console.print(
                f"[bold red]Image {result.image_id} failed validation "
                f"({len(fatal)} issue(s)).[/bold red]"
            )

    # ------------------------------------------------------------------
    # Build status
    # ------------------------------------------------------------------

    def print_last_build(self, info: LastBuildInfo) -> None:
        lines = [
            f"[bold]Build ID:[/bold]    {info.build_id}",
            f"[bold]AMI ID:[/bold]      {info.ami_id}",
            f"[bold]Region:[/bold]      {info.region}",
            f"[bold]Environment:[/bold] {info.environment}",
            f"[bold]Build time:[/bold]  {info.build_time.isoformat()}",
            f"[bold]Build user:[/bold]  {info.build_user}",
            f"[bold]Log file:[/bold]    {info.log_file or '-'}",
        ]
        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]Last build for {info.environment}[/bold]",
                border_style="green",
                padding=(1, 2),
            )
        )
