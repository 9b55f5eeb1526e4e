"""CLI entry point for hunklens.

Commands:
  action   — run inside a GitHub Actions pull_request workflow
  review   — review a pull request from a local checkout or terminal
"""

from __future__ import annotations

import logging
import os

import click
from rich.logging import RichHandler

from hunklens_cli.commands.action import action_cmd
from hunklens_cli.commands.review import review_cmd


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.version_option(package_name="hunklens", prog_name="hunklens")
@click.option(
    "--config",
    "config_path",
    default=".hunklens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="HUNKLENS_CONFIG",
)
@click.option(
    "--log-level",
    default=lambda: os.environ.get("LOG_LEVEL", "INFO"),
    show_default="INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR).",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """AI code review for pull request diffs, one hunk at a time."""
    _setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(action_cmd)
main.add_command(review_cmd)
