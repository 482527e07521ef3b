"""Interfaces between the pipeline and the outside world.

The pipeline depends on these ABCs, not on GitHub or git directly. All
network-bound data comes in through ``Collaborators``; everything
that leaves the pipeline goes out through ``Publisher``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from lintlens_core.models import (
        AttributedFinding,
        BlameEntry,
        Commit,
        DismissalEvent,
        ExistingComment,
    )


class Collaborators(ABC):
    """Data sources the pipeline reads from."""

    @abstractmethod
    def fetch_diff(self, file: str, base_sha: str, head_sha: str) -> str:
        """Return the unified diff of ``file`` between two revisions.

        Raises DiffUnavailable when the diff cannot be retrieved or the file
        is excluded (removed, rename-only, permission-only, filtered out).
        """

    @abstractmethod
    def fetch_blame(self, file: str, revision: str) -> list[BlameEntry]:
        """Return one BlameEntry per line of ``file`` at ``revision``.

        Raises BlameUnavailable if the file or repository is not usable.
        """

    @abstractmethod
    def list_pr_commits(self, pr_number: int) -> list[Commit]:
        """Raises ExternalServiceUnavailable on failure."""

    @abstractmethod
    def list_existing_comments(self, pr_number: int) -> list[ExistingComment]:
        """Inline comments this bot already posted. Raises ExternalServiceUnavailable on failure."""

    @abstractmethod
    def list_review_dismissal_events(self, pr_number: int, actors: Iterable[str]) -> list[DismissalEvent]:
        """Review dismissals on the PR performed by any of ``actors``."""


class Publisher(ABC):
    """Destinations for the pipeline's results."""

    @abstractmethod
    def submit_review(self, pr_number: int, findings: list[AttributedFinding], batch_max: int) -> int:
        """Post ``findings`` as one or more reviews of at most ``batch_max`` comments.

        Returns the number of reviews submitted.
        """

    @abstractmethod
    def notify_truncated(self, pr_number: int) -> None:
        """Post a single informational notice that the comment limit was hit."""

    def export_stats(self, counters: dict[int, dict[str, dict[str, int]]]) -> None:
        """Hand the final counters to an external stats sink.

        Optional. Default is a no-op so publishers without a sink need not care.
        """
