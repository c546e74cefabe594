"""Command line interface."""

from engaged_papers.cli.main import cli


__all__ = ["cli"]
