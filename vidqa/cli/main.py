"""Main CLI entry point."""

import click

from vidqa import __version__
from vidqa.cli.db import db
from vidqa.cli.pipeline import pipeline


@click.group()
@click.version_option(version=__version__)
def cli():
    """Video Q&A pipeline CLI."""
    pass


cli.add_command(pipeline)
cli.add_command(db)


if __name__ == "__main__":
    cli()
