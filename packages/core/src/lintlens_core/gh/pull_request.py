from __future__ import annotations

import logging
import re

from github import Github, GithubException

from lintlens_core.errors import FatalRunError
from lintlens_core.models import Commit, PullRequest

logger = logging.getLogger(__name__)

NOTICE_MARKER = "<!-- lintlens-notice: {kind} -->"
_NOTICE_MARKER_RE = re.compile(r"<!-- lintlens-notice: ([a-z-]+) -->")


def get_client(token: str) -> Github:
    return Github(token)


def get_authenticated_login(client) -> str:
    """Return the login of the token holder. Raises FatalRunError if GitHub refuses."""
    try:
        login = client.get_user().login
    except GithubException as e:
        raise FatalRunError(f"Unable to get information about the token holder from GitHub: {e}")
    if not login:
        raise FatalRunError("GitHub returned no login for the token holder.")
    return login


def get_repo(client, repo_name: str):
    return client.get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def prs_implicated(repo, commit: str, branches_ignore: list[str] | None = None) -> list:
    """Return open pull requests whose head is ``commit``, skipping ignored base branches."""
    ignored = set(branches_ignore or [])
    implicated = []
    for pr in repo.get_pulls(state="open"):
        if pr.head.sha != commit:
            continue
        if pr.base.ref in ignored:
            logger.info("Ignoring PR #%d: base branch %s is in branches_ignore", pr.number, pr.base.ref)
            continue
        implicated.append(pr)
    return implicated


def to_pull_request(pr, head_sha: str, commits: list[Commit], files_changed: list[str]) -> PullRequest:
    """Build the pipeline's PullRequest from a PyGithub pull request."""
    return PullRequest(
        number=pr.number,
        base_sha=pr.base.sha,
        head_sha=head_sha,
        commits=commits,
        files_changed=files_changed,
        base_ref=pr.base.ref,
    )


def get_commit_shas(pr) -> list[str]:
    """Return the PR's own commit SHAs, oldest first."""
    return [c.sha for c in pr.get_commits()]


def get_compare_files(repo, base_sha: str, head_sha: str):
    """Return files changed between two commits using GitHub's compare API."""
    comparison = repo.compare(base_sha, head_sha)
    return comparison.files


def get_review_states(pr) -> dict[int, str]:
    """Map review id to its GitHub state (APPROVED, COMMENTED, DISMISSED, ...)."""
    return {review.id: review.state for review in pr.get_reviews()}


def get_review_comments_by(pr, login: str) -> list:
    return [c for c in pr.get_review_comments() if c.user is not None and c.user.login == login]


def get_dismissal_events(pr, actors: set[str]) -> list[tuple[str, int]]:
    """Return (actor login, review id) for every review dismissal by one of ``actors``."""
    events = []
    for event in pr.get_issue_events():
        if event.event != "review_dismissed" or event.actor is None:
            continue
        if event.actor.login not in actors:
            continue
        dismissed = event.dismissed_review or {}
        review_id = dismissed.get("review_id")
        if review_id is not None:
            events.append((event.actor.login, int(review_id)))
    return events


def get_team_member_logins(client, org_name: str, team_slugs: list[str]) -> set[str]:
    """Resolve team slugs to member logins. Unknown teams are logged and skipped."""
    logins: set[str] = set()
    if not team_slugs:
        return logins
    org = client.get_organization(org_name)
    for slug in team_slugs:
        try:
            team = org.get_team_by_slug(slug)
            logins.update(member.login for member in team.get_members())
        except GithubException as e:
            logger.warning("Could not resolve team %r in %s: %s", slug, org_name, e)
    return logins


def find_notices(pr, login: str, kind: str) -> list:
    """Return our earlier issue comments carrying the ``kind`` notice marker."""
    found = []
    for comment in pr.get_issue_comments():
        if comment.user is None or comment.user.login != login:
            continue
        match = _NOTICE_MARKER_RE.search(comment.body or "")
        if match and match.group(1) == kind:
            found.append(comment)
    return found
