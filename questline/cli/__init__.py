"""Command-line dispatcher for the progression engine."""

from questline.cli.main import app, run

__all__ = ["app", "run"]
