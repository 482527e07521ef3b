"""Avoid reporting the same line twice across runs.

Matching is by (file, absolute line), not by message. Once any of our
comments sits on a line, that line counts as handled, even if a different
issue shows up there later.
"""

from __future__ import annotations

import logging
from typing import Iterable

from lintlens_core.models import AttributedFinding, DiffHunkMap, DismissalEvent, ExistingComment, ReviewState

logger = logging.getLogger(__name__)


def _comment_line(comment: ExistingComment, hunk_map: DiffHunkMap | None) -> int | None:
    if comment.absolute_line is not None:
        return comment.absolute_line
    if comment.position is not None and hunk_map is not None and hunk_map.file == comment.file:
        return hunk_map.line_for(comment.position)
    return None


def _dismissed_by_excluded(
    comment: ExistingComment,
    excluded_actors: set[str],
    excluded_reviews: set[int],
) -> bool:
    if comment.dismissed_by is not None and comment.dismissed_by in excluded_actors:
        return True
    return comment.review_id is not None and comment.review_id in excluded_reviews


def comment_covers_line(
    comment: ExistingComment,
    repost_after_dismissal: bool,
    excluded_actors: set[str],
    excluded_reviews: set[int],
) -> bool:
    """Return True if ``comment`` still blocks re-reporting on its line."""
    if comment.review_state is ReviewState.ACTIVE:
        return True
    if not repost_after_dismissal:
        return True
    # Dismissals by excluded actors never free the line.
    return _dismissed_by_excluded(comment, excluded_actors, excluded_reviews)


def covered_lines(
    existing_comments: Iterable[ExistingComment],
    repost_after_dismissal: bool,
    excluded_actors: Iterable[str] = (),
    dismissal_events: Iterable[DismissalEvent] = (),
    hunk_maps: dict[str, DiffHunkMap] | None = None,
) -> set[tuple[str, int]]:
    """Return every (file, line) already covered by one of our comments."""
    actors = set(excluded_actors)
    excluded_reviews = {event.review_id for event in dismissal_events if event.actor in actors}
    hunk_maps = hunk_maps or {}

    covered: set[tuple[str, int]] = set()
    for comment in existing_comments:
        line = _comment_line(comment, hunk_maps.get(comment.file))
        if line is None:
            continue
        if comment_covers_line(comment, repost_after_dismissal, actors, excluded_reviews):
            covered.add((comment.file, line))
    return covered


def filter_already_reported(
    findings: Iterable[AttributedFinding],
    existing_comments: Iterable[ExistingComment],
    repost_after_dismissal: bool,
    excluded_actors: Iterable[str] = (),
    dismissal_events: Iterable[DismissalEvent] = (),
    hunk_maps: dict[str, DiffHunkMap] | None = None,
) -> list[AttributedFinding]:
    """Drop findings on lines where one of our comments is still in force.

    ``hunk_maps`` (keyed by file) resolves comments that only carry a stored
    diff position. Adding comments can only shrink the result.
    """
    covered = covered_lines(existing_comments, repost_after_dismissal, excluded_actors, dismissal_events, hunk_maps)
    kept: list[AttributedFinding] = []
    for af in findings:
        if (af.file, af.line) in covered:
            logger.debug("Skipping %s:%d (already commented)", af.file, af.line)
            continue
        kept.append(af)
    return kept


def filter_ignorable(findings: Iterable[AttributedFinding], ignore_messages: Iterable[str]) -> list[AttributedFinding]:
    """Drop findings whose message is on the configured ignore list (case-insensitive)."""
    ignored = {m.strip().lower() for m in ignore_messages if m and m.strip()}
    if not ignored:
        return list(findings)
    return [af for af in findings if af.finding.message.strip().lower() not in ignored]
