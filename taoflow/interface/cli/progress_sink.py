"""Stderr progress sink for CLI runs."""

import click


class StderrProgressSink:
    """Writes phase progress lines to stderr."""

    def progress(self, message: str) -> None:
        click.echo(message, err=True)
