"""scan command: analyze one commit and review the pull requests it heads."""

from __future__ import annotations

import click
from rich.console import Console

from lintlens_core.config import load_config, validate_config
from lintlens_core.errors import EXIT_USAGE_ERROR, ConfigError, FatalRunError
from lintlens_core.runner import run_scan

console = Console(stderr=True)


def _split_repo(repo: str | None) -> tuple[str | None, str | None]:
    if repo is None:
        return None, None
    owner, sep, name = repo.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise click.BadParameter("must be in owner/name format.", param_hint="--repo")
    return owner, name


@click.command("scan")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Overrides config file.")
@click.option("--commit", default=None, help="SHA of the commit to scan.")
@click.option(
    "--local-git-repo",
    default=None,
    type=click.Path(file_okay=False),
    help="Path to a local clone with the commit checked out.",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to the configuration file. Overrides the group-level --config.",
)
@click.option("--token", default=None, help="GitHub token. Defaults to GITHUB_TOKEN or the gh CLI session.")
@click.option(
    "--dry-run",
    "-n",
    is_flag=True,
    help="Print the review comments instead of posting them to GitHub.",
)
@click.option(
    "--debug-level",
    type=click.IntRange(0, 2),
    default=None,
    help="0 = warnings, 1 = info, 2 = debug.",
)
@click.option("--review-comments-max", type=int, default=None, help="Inline comments per submitted review (5-100).")
@click.option(
    "--review-comments-total-max",
    type=int,
    default=None,
    help="Inline comments the bot may have on one pull request (0 = unlimited).",
)
@click.option("--informational-url", default=None, help="URL linked from every review the bot posts.")
@click.option(
    "--dismiss-stale-reviews",
    is_flag=True,
    help="Dismiss the bot's reviews whose inline comments are all outdated.",
)
@click.option("--output", default=None, help="Append raw scan results as JSON lines to this file.")
@click.pass_context
def scan_cmd(
    ctx,
    repo: str | None,
    commit: str | None,
    local_git_repo: str | None,
    config_path: str | None,
    token: str | None,
    dry_run: bool,
    debug_level: int | None,
    review_comments_max: int | None,
    review_comments_total_max: int | None,
    informational_url: str | None,
    dismiss_stale_reviews: bool,
    output: str | None,
):
    """Scan COMMIT and post issues it introduced to every open pull request it heads.

    \b
    Exit status:
      0    no errors attributable to the pull request(s)
      250  errors were found and reported
      249  configuration, usage or fatal GitHub error
    """
    from lintlens_cli.auth import resolve_github_token
    from lintlens_cli.cli import setup_logging

    owner, name = _split_repo(repo)
    path = config_path or (ctx.obj or {}).get("config_path", ".lintlens.yml")

    try:
        config = load_config(
            path,
            cli_overrides={
                "repo_owner": owner,
                "repo_name": name,
                "commit": commit,
                "local_git_repo": local_git_repo,
                "dry_run": dry_run or None,
                "debug_level": debug_level,
                "review_comments_max": review_comments_max,
                "review_comments_total_max": review_comments_total_max,
                "informational_url": informational_url,
                "dismiss_stale_reviews": dismiss_stale_reviews or None,
                "output": output,
            },
        )
        validate_config(config)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        ctx.exit(EXIT_USAGE_ERROR)

    setup_logging(config["debug_level"])

    github_token = resolve_github_token(token, config.get("github_token"))
    if not github_token:
        console.print(
            "[red]No GitHub token found.[/red] Set GITHUB_TOKEN, pass --token or run `gh auth login` first."
        )
        ctx.exit(EXIT_USAGE_ERROR)
    config["github_token"] = github_token

    try:
        status = run_scan(config)
    except (ConfigError, FatalRunError) as e:
        console.print(f"[red]Aborting:[/red] {e}")
        ctx.exit(EXIT_USAGE_ERROR)

    ctx.exit(status)
