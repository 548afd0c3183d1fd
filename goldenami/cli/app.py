"""Main Typer application — imports and registers all CLI commands.

Entry point: ``goldenami`` (configured via pyproject.toml [project.scripts]).
"""

from __future__ import annotations

import typer

from goldenami.cli.commands.deregister import deregister_cmd, transition_cmd
from goldenami.cli.commands.history import history_cmd
from goldenami.cli.commands.ingest import ingest_cmd
from goldenami.cli.commands.latest import latest_cmd
from goldenami.cli.commands.record_build import record_build_cmd
from goldenami.cli.commands.status import status_cmd
from goldenami.cli.commands.sync import sync_cmd
from goldenami.cli.commands.validate import validate_cmd
from goldenami.cli.common import configure_logging

app = typer.Typer(
    name="goldenami",
    help="goldenami: golden image lifecycle selection and build validation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to GOLDENAMI_LOG_LEVEL).",
    ),
) -> None:
    """Golden image lifecycle selection and build validation."""
    configure_logging(log_level)


# Register subcommands
app.command(name="ingest", help="Ingest image records from a build producer.")(ingest_cmd)
app.command(name="latest", help="Print the latest valid image for an environment.")(latest_cmd)
app.command(name="validate", help="Validate an image against the policy.")(validate_cmd)
app.command(name="deregister", help="Deregister an available image.")(deregister_cmd)
app.command(name="transition", help="Move an image to a new state.")(transition_cmd)
app.command(name="history", help="Show an environment's build history.")(history_cmd)
app.command(name="record-build", help="Record the image from a Packer manifest.")(record_build_cmd)
app.command(name="status", help="Show the last recorded build.")(status_cmd)
app.command(name="sync", help="Reconcile the history with EC2.")(sync_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
