"""Core scan orchestration: one commit, every pull request it belongs to."""

from __future__ import annotations

import logging
import time

from github import GithubException
from rich.console import Console

from lintlens_core.collaborators import Publisher
from lintlens_core.config import REPO_OPTIONS_FILE, apply_repo_options, redact_config, scanned_extensions
from lintlens_core.errors import EXIT_NORMAL, ExternalServiceUnavailable, FatalRunError
from lintlens_core.gh.pull_request import (
    get_authenticated_login,
    get_client,
    get_repo,
    get_team_member_logins,
    prs_implicated,
    to_pull_request,
)
from lintlens_core.gh.review import GitHubCollaborators, GitHubPublisher, format_comment_body
from lintlens_core.gitrepo.local import LocalRepo
from lintlens_core.models import AttributedFinding, Commit, PullRequest
from lintlens_core.pipeline import PipelinePolicy, RunContext, run_pipeline
from lintlens_core.scanner import build_analyzers, scan_files, scan_types

console = Console()
logger = logging.getLogger(__name__)


class ConsolePublisher(Publisher):
    """Dry-run publisher: prints what would be posted instead of posting it."""

    _severity_color = {"error": "red", "warning": "yellow"}

    def submit_review(self, pr_number: int, findings: list[AttributedFinding], batch_max: int) -> int:
        if not findings:
            console.print(f"[yellow]Dry run: nothing to post on PR #{pr_number}.[/yellow]")
            return 0
        batches = (len(findings) + batch_max - 1) // batch_max
        console.print(
            f"\n[bold]Dry run, PR #{pr_number}: {len(findings)} comment(s) in {batches} review(s) (not posted)[/bold]\n"
        )
        for af in findings:
            color = self._severity_color.get(af.severity.value, "white")
            console.print(
                f"[bold cyan]{af.file}[/bold cyan]  line [bold]{af.line}[/bold]  "
                f"position {af.diff_position}  [{color}]{af.severity.value.upper()}[/{color}]"
            )
            console.print(f"  {format_comment_body(af)}")
            console.print()
        return batches

    def notify_truncated(self, pr_number: int) -> None:
        console.print(f"[yellow]Dry run: PR #{pr_number} reached the comment limit; notice not posted.[/yellow]")

    def export_stats(self, counters: dict[int, dict[str, dict[str, int]]]) -> None:
        for pr_number, per_scan in counters.items():
            parts = ", ".join(f"{scan}: {c['error']} error(s), {c['warning']} warning(s)" for scan, c in per_scan.items())
            console.print(f"  PR #{pr_number}: {parts or 'no scans'}")


def _latest_commit_check(collaborators: GitHubCollaborators, prs: list, commit: str) -> tuple[dict[int, list[Commit]], bool]:
    """Fetch each PR's commits and report whether ``commit`` is still the head everywhere.

    The head comes from a fresh copy of the pull request, not from the end of
    its commit list, which GitHub caps at 250 entries. Commit lists that fail
    to load are left out; the pipeline retries them and skips the PR if they
    still fail.
    """
    commits_by_pr: dict[int, list[Commit]] = {}
    latest = True
    for pr in prs:
        try:
            commits = collaborators.list_pr_commits(pr.number)
            head = collaborators.head_sha(pr.number)
        except ExternalServiceUnavailable as e:
            logger.error("Could not list commits of PR #%d: %s", pr.number, e)
            continue
        commits_by_pr[pr.number] = commits
        if head != commit:
            logger.info("Commit %s is not the latest on PR #%d", commit[:7], pr.number)
            latest = False
    return commits_by_pr, latest


def run_scan(
    config: dict,
    client=None,
    local_repo: LocalRepo | None = None,
    publisher: Publisher | None = None,
    ctx: RunContext | None = None,
) -> int:
    """Scan ``config["commit"]`` and post attributable issues. Returns the exit status.

    Expects a config that already went through ``validate_config``. Raises
    FatalRunError or ConfigError for conditions that must abort the run.
    """
    ctx = ctx or RunContext()
    ctx.reset()
    started = time.monotonic()

    commit = config["commit"]
    repo_name = f"{config['repo_owner']}/{config['repo_name']}"
    logger.info("Starting up with options: %s", redact_config(config))

    client = client if client is not None else get_client(config["github_token"])
    bot_login = get_authenticated_login(client)
    logger.info("Authenticated to GitHub as %s", bot_login)

    local_repo = local_repo if local_repo is not None else LocalRepo(config["local_git_repo"])
    local_repo.ensure_checked_out(commit)
    apply_repo_options(config, local_repo.fetch_file(commit, REPO_OPTIONS_FILE))

    try:
        repo = get_repo(client, repo_name)
        gh_prs = prs_implicated(repo, commit, config["branches_ignore"])
    except GithubException as e:
        raise FatalRunError(f"Could not list pull requests of {repo_name}: {e}")

    if not gh_prs:
        console.print(f"[yellow]Commit {commit[:7]} is not part of any open pull request. Nothing to do.[/yellow]")
        return EXIT_NORMAL

    collaborators = GitHubCollaborators(
        repo,
        local_repo,
        bot_login,
        extensions=scanned_extensions(config),
        skip_folders=config["skip_folders"],
    )

    commits_by_pr, latest = _latest_commit_check(collaborators, gh_prs, commit)
    lint = config["lint"]
    if not latest and lint:
        if not config["phpcs"]:
            console.print("[yellow]Commit is not the latest on its pull request; skipping lint, nothing else to do.[/yellow]")
            return EXIT_NORMAL
        logger.info("Commit is not the latest on its pull request(s); skipping lint")
        lint = False

    pull_requests: list[PullRequest] = []
    all_files: list[str] = []
    for gh_pr in gh_prs:
        try:
            files_changed = collaborators.changed_files(gh_pr.base.sha, commit)
        except GithubException as e:
            logger.error("Could not list files changed by PR #%d, skipping it: %s", gh_pr.number, e)
            continue
        pull_requests.append(to_pull_request(gh_pr, commit, commits_by_pr.get(gh_pr.number, []), files_changed))
        for name in files_changed:
            if name not in all_files:
                all_files.append(name)

    if publisher is None:
        if config["dry_run"]:
            publisher = ConsolePublisher()
        else:
            publisher = GitHubPublisher(repo, commit, bot_login, config.get("informational_url"))
    if isinstance(publisher, GitHubPublisher):
        for pr in pull_requests:
            try:
                publisher.cleanup_notices(pr.number)
            except GithubException as e:
                logger.warning("Could not clean up old notices on PR #%d: %s", pr.number, e)

    analyzers = build_analyzers(config, lint=lint)
    console.print(f"\nScanning {len(all_files)} file(s) changed by {len(pull_requests)} pull request(s)")
    findings_by_file = scan_files(
        all_files,
        lambda name: collaborators.fetch_file(name, commit),
        analyzers,
        output_path=config.get("output"),
        commit=commit,
    )

    excluded_actors: set[str] = set()
    teams = config["dismissed_reviews_exclude_reviews_from_team"]
    if teams:
        try:
            excluded_actors = get_team_member_logins(client, config["repo_owner"], teams)
        except GithubException as e:
            logger.warning("Could not resolve teams %s: %s", teams, e)

    policy = PipelinePolicy.from_config(config, excluded_actors)
    submissions = run_pipeline(ctx, collaborators, pull_requests, findings_by_file, policy, scan_types(analyzers))

    for pr_number, batch in submissions.items():
        if not batch.findings:
            continue
        try:
            publisher.submit_review(pr_number, batch.findings, policy.batch_max)
        except GithubException as e:
            logger.error("Submitting review to PR #%d failed: %s", pr_number, e)

    for pr_number in sorted(ctx.truncated):
        try:
            publisher.notify_truncated(pr_number)
        except GithubException as e:
            logger.error("Posting comment-limit notice to PR #%d failed: %s", pr_number, e)

    if config["dismiss_stale_reviews"] and isinstance(publisher, GitHubPublisher):
        for pr in pull_requests:
            try:
                publisher.dismiss_stale_reviews(pr.number)
            except GithubException as e:
                logger.warning("Could not dismiss stale reviews on PR #%d: %s", pr.number, e)

    counters = ctx.stats.snapshot()
    publisher.export_stats(counters)
    logger.info(
        "Shutting down after %.1fs: %s",
        time.monotonic() - started,
        {"stats": counters, "truncated": sorted(ctx.truncated), "skipped": sorted(ctx.skipped_prs)},
    )

    status = ctx.stats.exit_status()
    if status == EXIT_NORMAL:
        console.print("\n[green]Scan complete. No errors attributable to the pull request(s).[/green]")
    else:
        console.print("\n[red]Scan complete. Errors were found in the pull request(s).[/red]")
    return status
