"""CLI entry point for lintlens.

Commands:
  scan  run the analyzers on a commit and review every open pull request it heads
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.logging import RichHandler

from lintlens_cli.commands.scan import scan_cmd

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}


def setup_logging(debug_level: int) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS.get(debug_level, logging.DEBUG),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=debug_level >= 2, show_path=debug_level >= 2)],
        force=True,
    )
    # PyGithub and GitPython are chatty at DEBUG.
    for name in ("github", "git", "urllib3"):
        logging.getLogger(name).setLevel(max(logging.INFO, _LOG_LEVELS.get(debug_level, logging.DEBUG)))


@click.group()
@click.version_option(
    version=importlib.metadata.version("lintlens"),
    prog_name="lintlens",
)
@click.option(
    "--config",
    "config_path",
    default=".lintlens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="LINTLENS_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Static-analysis reviewer that comments only on issues a pull request introduced."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(scan_cmd)
