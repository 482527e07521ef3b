"""Decide which findings belong to a pull request.

A finding belongs to a pull request only when the line is an added line in
the diff and blame points at one of the PR's own commits.
"""

from __future__ import annotations

import logging
from typing import Iterable

from lintlens_core.models import AttributedFinding, DiffHunkMap, Finding, ScanType

logger = logging.getLogger(__name__)


def collapse_duplicates(findings: Iterable[Finding]) -> list[Finding]:
    """Drop repeats of the same (file, line, message) from one analyzer run.

    Findings from different analyzers never collapse into each other.

    The first occurrence wins and order is otherwise preserved.
    """
    seen: set[tuple[str, int, str, ScanType]] = set()
    unique: list[Finding] = []
    for finding in findings:
        if finding.key in seen:
            continue
        seen.add(finding.key)
        unique.append(finding)
    return unique


def filter_attributable(
    findings: Iterable[Finding],
    hunk_map: DiffHunkMap,
    blame_log: dict[int, str],
    pr_commits: set[str],
    pr_number: int,
) -> list[AttributedFinding]:
    """Keep findings on changed lines whose blamed commit is part of the PR.

    A line blamed on a SHA that is not literally in ``pr_commits`` is dropped,
    even when a squash or rebase produced an equivalent commit elsewhere.
    The result is ordered by ascending line, stable within a line.
    """
    kept: list[AttributedFinding] = []
    for finding in findings:
        if finding.line not in hunk_map.changed_lines:
            logger.debug("Skipping %s:%d (line not changed)", finding.file, finding.line)
            continue

        commit_sha = blame_log.get(finding.line)
        if commit_sha is None or commit_sha not in pr_commits:
            logger.debug(
                "Skipping %s:%d (blamed on %s, not part of PR #%d)",
                finding.file,
                finding.line,
                commit_sha,
                pr_number,
            )
            continue

        position = hunk_map.position_for(finding.line)
        if position is None:
            logger.debug("Skipping %s:%d (no diff position)", finding.file, finding.line)
            continue

        kept.append(AttributedFinding(finding=finding, diff_position=position, pr_number=pr_number))

    kept.sort(key=lambda af: af.line)
    return kept
