"""GitHub + local clone implementations of the pipeline's collaborators."""

from __future__ import annotations

import logging
from typing import Iterable

from github import GithubException

from lintlens_core.caps import split_batches
from lintlens_core.collaborators import Collaborators, Publisher
from lintlens_core.errors import DiffUnavailable, ExternalServiceUnavailable
from lintlens_core.gh.pull_request import (
    NOTICE_MARKER,
    find_notices,
    get_commit_shas,
    get_compare_files,
    get_dismissal_events,
    get_pull,
    get_review_comments_by,
    get_review_states,
)
from lintlens_core.gitrepo.local import LocalRepo
from lintlens_core.models import (
    AttributedFinding,
    BlameEntry,
    Commit,
    DismissalEvent,
    ExistingComment,
    ReviewState,
)
from lintlens_core.utils.files import is_scannable

logger = logging.getLogger(__name__)

TOTAL_MAX_NOTICE = "total-max"
STALE_REVIEW_MESSAGE = "Dismissing review as all its inline comments are outdated."


def format_comment_body(af: AttributedFinding) -> str:
    """Inline comment body. Severity is shown exactly as the analyzer reported it."""
    label = (af.finding.severity_text or af.severity.value).upper()
    return f"**[{label}]** ({af.source.value})\n\n{af.finding.message}"


def build_review_body(commit: str, count: int, batch_index: int, batch_total: int, informational_url: str | None) -> str:
    lines = [f"## lintlens scan of `{commit[:7]}`\n"]
    if batch_total > 1:
        lines.append(f"_Part {batch_index} of {batch_total}._\n")
    lines.append(f"Found **{count}** issue(s) introduced by this pull request.")
    if informational_url:
        lines.append(f"\n[What is this bot?]({informational_url})")
    return "\n".join(lines)


class GitHubCollaborators(Collaborators):
    """Reads pull request state through PyGithub and blame through a local clone.

    Compare results and pull request objects are cached for the life of the
    instance, which the runner creates once per run.
    """

    def __init__(
        self,
        repo,
        local_repo: LocalRepo,
        bot_login: str,
        extensions: list[str],
        skip_folders: list[str] | None = None,
    ):
        self.repo = repo
        self.local_repo = local_repo
        self.bot_login = bot_login
        self.extensions = extensions
        self.skip_folders = skip_folders or []
        self._pulls: dict[int, object] = {}
        self._compare: dict[tuple[str, str], dict] = {}

    def _pull(self, pr_number: int):
        if pr_number not in self._pulls:
            self._pulls[pr_number] = get_pull(self.repo, pr_number)
        return self._pulls[pr_number]

    def _compare_files(self, base_sha: str, head_sha: str) -> dict:
        key = (base_sha, head_sha)
        if key not in self._compare:
            files = get_compare_files(self.repo, base_sha, head_sha)
            self._compare[key] = {f.filename: f for f in files}
        return self._compare[key]

    def _unavailable_reason(self, f) -> str | None:
        if not is_scannable(f.filename, self.extensions, self.skip_folders):
            return "excluded by extension or folder rules"
        if f.status == "removed":
            return "file removed"
        if f.status == "renamed" and not f.changes:
            return "rename only"
        if not f.patch:
            return "no textual changes (binary or permission change)"
        return None

    def changed_files(self, base_sha: str, head_sha: str) -> list[str]:
        """Scannable files with a textual diff between two revisions, sorted by name."""
        files = self._compare_files(base_sha, head_sha)
        return sorted(name for name, f in files.items() if self._unavailable_reason(f) is None)

    def fetch_diff(self, file: str, base_sha: str, head_sha: str) -> str:
        try:
            files = self._compare_files(base_sha, head_sha)
        except GithubException as e:
            raise DiffUnavailable(f"compare {base_sha[:7]}..{head_sha[:7]} failed: {e}")
        f = files.get(file)
        if f is None:
            raise DiffUnavailable(f"{file} is not changed between {base_sha[:7]} and {head_sha[:7]}")
        reason = self._unavailable_reason(f)
        if reason:
            raise DiffUnavailable(f"{file}: {reason}")
        return f.patch

    def fetch_blame(self, file: str, revision: str) -> list[BlameEntry]:
        return self.local_repo.blame(revision, file)

    def fetch_file(self, file: str, revision: str) -> str | None:
        return self.local_repo.fetch_file(revision, file)

    def list_pr_commits(self, pr_number: int) -> list[Commit]:
        try:
            return [Commit(sha=sha) for sha in get_commit_shas(self._pull(pr_number))]
        except GithubException as e:
            raise ExternalServiceUnavailable(f"listing commits of PR #{pr_number} failed: {e}")

    def head_sha(self, pr_number: int) -> str:
        """Current head of the pull request as GitHub reports it now."""
        try:
            return self._pull(pr_number).head.sha
        except GithubException as e:
            raise ExternalServiceUnavailable(f"reading PR #{pr_number} failed: {e}")

    def list_existing_comments(self, pr_number: int) -> list[ExistingComment]:
        try:
            pr = self._pull(pr_number)
            states = get_review_states(pr)
            comments = get_review_comments_by(pr, self.bot_login)
        except GithubException as e:
            raise ExternalServiceUnavailable(f"listing review comments of PR #{pr_number} failed: {e}")

        existing = []
        for c in comments:
            review_id = c.pull_request_review_id
            state = ReviewState.DISMISSED if states.get(review_id) == "DISMISSED" else ReviewState.ACTIVE
            existing.append(
                ExistingComment(
                    file=c.path,
                    absolute_line=c.line,  # None for outdated comments; they cover no current line
                    body=c.body or "",
                    review_id=review_id,
                    review_state=state,
                    position=c.position,
                )
            )
        return existing

    def list_review_dismissal_events(self, pr_number: int, actors: Iterable[str]) -> list[DismissalEvent]:
        try:
            events = get_dismissal_events(self._pull(pr_number), set(actors))
        except GithubException as e:
            raise ExternalServiceUnavailable(f"listing review events of PR #{pr_number} failed: {e}")
        return [DismissalEvent(actor=actor, review_id=review_id) for actor, review_id in events]


class GitHubPublisher(Publisher):
    def __init__(self, repo, commit: str, bot_login: str, informational_url: str | None = None):
        self.repo = repo
        self.commit = commit
        self.bot_login = bot_login
        self.informational_url = informational_url

    def submit_review(self, pr_number: int, findings: list[AttributedFinding], batch_max: int) -> int:
        if not findings:
            return 0
        pr = get_pull(self.repo, pr_number)
        commit = self.repo.get_commit(self.commit)
        batches = split_batches(findings, batch_max)
        for idx, batch in enumerate(batches, 1):
            body = build_review_body(self.commit, len(findings), idx, len(batches), self.informational_url)
            api_comments = [
                {"path": af.file, "position": af.diff_position, "body": format_comment_body(af)} for af in batch
            ]
            pr.create_review(commit=commit, body=body, event="COMMENT", comments=api_comments)
            logger.info("Submitted review %d/%d with %d comment(s) to PR #%d", idx, len(batches), len(batch), pr_number)
        return len(batches)

    def notify_truncated(self, pr_number: int) -> None:
        body = (
            "lintlens has reached the maximum number of inline comments it will post "
            "on this pull request. Further issues are not being reported.\n"
            + NOTICE_MARKER.format(kind=TOTAL_MAX_NOTICE)
        )
        if self.informational_url:
            body += f"\n[What is this bot?]({self.informational_url})"
        get_pull(self.repo, pr_number).create_issue_comment(body)

    def cleanup_notices(self, pr_number: int) -> int:
        """Delete notices posted by earlier runs so each run leaves at most one."""
        notices = find_notices(get_pull(self.repo, pr_number), self.bot_login, TOTAL_MAX_NOTICE)
        for comment in notices:
            comment.delete()
        return len(notices)

    def dismiss_stale_reviews(self, pr_number: int) -> int:
        """Dismiss the bot's reviews whose inline comments are all outdated.

        Reviews without inline comments and reviews already dismissed are left
        alone. Returns the number of reviews dismissed.
        """
        pr = get_pull(self.repo, pr_number)
        comments_by_review: dict[int, list] = {}
        for c in get_review_comments_by(pr, self.bot_login):
            comments_by_review.setdefault(c.pull_request_review_id, []).append(c)

        dismissed = 0
        for review in pr.get_reviews():
            if review.user is None or review.user.login != self.bot_login or review.state == "DISMISSED":
                continue
            comments = comments_by_review.get(review.id)
            if not comments or any(c.position is not None for c in comments):
                continue
            review.dismiss(STALE_REVIEW_MESSAGE)
            logger.info("Dismissed review %d on PR #%d: all its comments are outdated", review.id, pr_number)
            dismissed += 1
        return dismissed
