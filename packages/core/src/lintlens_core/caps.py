"""Bound how many inline comments we ever post on a pull request.

Two independent limits apply:

- ``batch_max``: comments per single review submission. Larger sets are
  split across several reviews.
- ``total_max``: comments per pull request over its whole lifetime, counting
  what earlier runs posted and is still active. 0 means unlimited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lintlens_core.models import AttributedFinding, SubmissionBatch

logger = logging.getLogger(__name__)

BATCH_MAX_RANGE = range(5, 101)
TOTAL_MAX_RANGE = range(0, 501)


@dataclass
class CapResult:
    kept: list[AttributedFinding] = field(default_factory=list)
    dropped: list[AttributedFinding] = field(default_factory=list)

    @property
    def truncated(self) -> bool:
        return bool(self.dropped)


def enforce_total_cap(findings: list[AttributedFinding], previously_posted: int, total_max: int) -> CapResult:
    """Keep findings in input order until the cumulative limit is reached.

    Input order is the deterministic scan order (files in the order they were
    scanned, lines ascending within a file), so the same input always keeps
    the same findings.
    """
    if total_max <= 0:
        return CapResult(kept=list(findings))

    room = max(total_max - previously_posted, 0)
    return CapResult(kept=list(findings[:room]), dropped=list(findings[room:]))


def split_batches(findings: list[AttributedFinding], batch_max: int) -> list[list[AttributedFinding]]:
    if batch_max <= 0:
        raise ValueError(f"batch_max must be positive, got {batch_max}")
    return [findings[i : i + batch_max] for i in range(0, len(findings), batch_max)]


def build_submission_batch(
    pr_number: int,
    findings: list[AttributedFinding],
    previously_posted: int,
    total_max: int,
    batch_max: int,
) -> SubmissionBatch:
    result = enforce_total_cap(findings, previously_posted, total_max)
    if result.truncated:
        logger.warning(
            "PR #%d reached the comment limit (%d): %d finding(s) will not be posted",
            pr_number,
            total_max,
            len(result.dropped),
        )
    return SubmissionBatch(
        pr_number=pr_number,
        findings=result.kept,
        batches=split_batches(result.kept, batch_max),
        truncated=result.truncated,
    )
