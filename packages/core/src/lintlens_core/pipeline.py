"""Issue attribution and deduplication pipeline.

Per pull request, strictly sequential:

    findings per file ──► collapse duplicates
                      ──► diff map + blame ──► attribution filter
                      ──► ignore list ──► cross-run dedup
                      ──► comment caps ──► stats

Pull requests are processed one at a time and files one at a time inside a
pull request. A failure while mapping one file never affects its siblings,
and a failure while listing a pull request's commits or comments skips that
pull request only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from lintlens_core.attribution import collapse_duplicates, filter_attributable
from lintlens_core.blame import attribute_file
from lintlens_core.caps import build_submission_batch
from lintlens_core.collaborators import Collaborators
from lintlens_core.dedup import filter_already_reported, filter_ignorable
from lintlens_core.diff_map import map_file_diff
from lintlens_core.errors import BlameUnavailable, DiffUnavailable, ExternalServiceUnavailable
from lintlens_core.models import (
    AttributedFinding,
    DiffHunkMap,
    Finding,
    PullRequest,
    ReviewState,
    ScanType,
    SubmissionBatch,
)
from lintlens_core.stats import StatsAggregator

logger = logging.getLogger(__name__)


@dataclass
class PipelinePolicy:
    batch_max: int = 10
    total_max: int = 200
    repost_after_dismissal: bool = True
    excluded_actors: frozenset[str] = frozenset()
    ignore_messages: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: dict, excluded_actors: Iterable[str] = ()) -> PipelinePolicy:
        return cls(
            batch_max=config["review_comments_max"],
            total_max=config["review_comments_total_max"],
            repost_after_dismissal=config["dismissed_reviews_repost_comments"],
            excluded_actors=frozenset(excluded_actors),
            ignore_messages=tuple(config.get("review_comments_ignore") or ()),
        )


@dataclass
class RunContext:
    """Everything one run accumulates. Call reset() before each run."""

    diff_maps: dict[tuple[str, str, str], DiffHunkMap] = field(default_factory=dict)
    blame_logs: dict[tuple[str, str], dict[int, str]] = field(default_factory=dict)
    stats: StatsAggregator = field(default_factory=StatsAggregator)
    submissions: dict[int, SubmissionBatch] = field(default_factory=dict)
    truncated: set[int] = field(default_factory=set)
    skipped_prs: set[int] = field(default_factory=set)

    def reset(self) -> None:
        self.diff_maps.clear()
        self.blame_logs.clear()
        self.stats.reset()
        self.submissions.clear()
        self.truncated.clear()
        self.skipped_prs.clear()


def hunk_map_for(ctx: RunContext, collaborators: Collaborators, file: str, base_sha: str, head_sha: str) -> DiffHunkMap:
    key = (file, base_sha, head_sha)
    if key not in ctx.diff_maps:
        try:
            ctx.diff_maps[key] = map_file_diff(collaborators.fetch_diff, file, base_sha, head_sha)
        except DiffUnavailable as e:
            logger.info("No diff for %s (%s); treating as unchanged", file, e)
            ctx.diff_maps[key] = DiffHunkMap(file=file, base_sha=base_sha, head_sha=head_sha)
    return ctx.diff_maps[key]


def blame_log_for(ctx: RunContext, collaborators: Collaborators, file: str, revision: str) -> dict[int, str]:
    key = (file, revision)
    if key not in ctx.blame_logs:
        try:
            ctx.blame_logs[key] = attribute_file(collaborators.fetch_blame, file, revision)
        except BlameUnavailable as e:
            logger.warning("Blame unavailable for %s@%s: %s", file, revision[:7], e)
            ctx.blame_logs[key] = {}
    return ctx.blame_logs[key]


def attribute_pull_request(
    ctx: RunContext,
    collaborators: Collaborators,
    pr: PullRequest,
    findings_by_file: dict[str, list[Finding]],
) -> list[AttributedFinding]:
    """Run collapse + attribution for every file of ``pr``, in scan order."""
    pr_commits = pr.commit_shas
    changed = set(pr.files_changed)
    attributed: list[AttributedFinding] = []

    for file, findings in findings_by_file.items():
        if file not in changed or not findings:
            continue
        hunk_map = hunk_map_for(ctx, collaborators, file, pr.base_sha, pr.head_sha)
        if hunk_map.is_empty:
            continue
        blame_log = blame_log_for(ctx, collaborators, file, pr.head_sha)
        kept = filter_attributable(collapse_duplicates(findings), hunk_map, blame_log, pr_commits, pr.number)
        logger.debug("PR #%d %s: %d of %d finding(s) attributable", pr.number, file, len(kept), len(findings))
        attributed.extend(kept)

    return attributed


def process_pull_request(
    ctx: RunContext,
    collaborators: Collaborators,
    pr: PullRequest,
    findings_by_file: dict[str, list[Finding]],
    policy: PipelinePolicy,
) -> SubmissionBatch | None:
    """Take one pull request from raw findings to a capped SubmissionBatch.

    Returns None when the pull request had to be skipped for this run.
    """
    try:
        if not pr.commits:
            pr.commits = collaborators.list_pr_commits(pr.number)
        existing = collaborators.list_existing_comments(pr.number)
        events = (
            collaborators.list_review_dismissal_events(pr.number, policy.excluded_actors)
            if policy.excluded_actors
            else []
        )
    except ExternalServiceUnavailable as e:
        logger.error("Skipping PR #%d for this run, could not fetch its state from GitHub: %s", pr.number, e)
        ctx.skipped_prs.add(pr.number)
        return None

    attributed = attribute_pull_request(ctx, collaborators, pr, findings_by_file)
    attributed = filter_ignorable(attributed, policy.ignore_messages)

    hunk_maps = {
        file: hunk_map
        for (file, base, head), hunk_map in ctx.diff_maps.items()
        if base == pr.base_sha and head == pr.head_sha
    }
    fresh = filter_already_reported(
        attributed,
        existing,
        repost_after_dismissal=policy.repost_after_dismissal,
        excluded_actors=policy.excluded_actors,
        dismissal_events=events,
        hunk_maps=hunk_maps,
    )

    previously_posted = sum(1 for c in existing if c.review_state is ReviewState.ACTIVE)
    batch = build_submission_batch(pr.number, fresh, previously_posted, policy.total_max, policy.batch_max)

    ctx.stats.record_all(batch.findings)
    if batch.truncated:
        ctx.truncated.add(pr.number)
    ctx.submissions[pr.number] = batch

    logger.info(
        "PR #%d: %d attributable, %d new, %d to submit%s",
        pr.number,
        len(attributed),
        len(fresh),
        len(batch.findings),
        " (truncated)" if batch.truncated else "",
    )
    return batch


def run_pipeline(
    ctx: RunContext,
    collaborators: Collaborators,
    pull_requests: Iterable[PullRequest],
    findings_by_file: dict[str, list[Finding]],
    policy: PipelinePolicy,
    scan_types: Iterable[ScanType] = (),
) -> dict[int, SubmissionBatch]:
    """Process every pull request in order and return their SubmissionBatches."""
    scan_types = tuple(scan_types)
    for pr in pull_requests:
        ctx.stats.init_pr(pr.number, scan_types)
        process_pull_request(ctx, collaborators, pr, findings_by_file, policy)
    return dict(ctx.submissions)
