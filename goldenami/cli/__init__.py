"""goldenami CLI — Typer-based command-line interface.

Provides the ``goldenami`` command with subcommands for ingesting builds,
selecting the latest valid image, validating, deregistering, and
reconciling with EC2.

All output uses Rich for formatted terminal display.
"""
