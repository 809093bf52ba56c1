"""Scorecard CLI entry point."""

import click

from cli.commands import db, kr, tenant
from cli.config import load_config_model
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Scorecard - strategy map and Key Result tracking."""
    config = load_config_model()
    setup_logging(
        json_mode=config.logging.json_mode,
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.paths.log_file,
        file_level=config.logging.file_level,
    )


cli.add_command(db)
cli.add_command(tenant)
cli.add_command(kr)


if __name__ == "__main__":
    cli()
