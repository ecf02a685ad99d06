"""fieldcheck CLI entry point."""

import logging

import click


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level for engine diagnostics.",
)
def cli(log_level: str):
    """fieldcheck: declarative field validation CLI."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from fieldcheck.cli.validate_cmd import check, kinds, validate  # noqa: E402

cli.add_command(validate)
cli.add_command(check)
cli.add_command(kinds)
