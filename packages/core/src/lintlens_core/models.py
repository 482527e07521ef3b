"""Data models shared by the attribution and deduplication pipeline.

Findings are immutable once an analyzer produces them; everything downstream
wraps or filters them rather than editing them in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"

    @classmethod
    def parse(cls, raw: str | None) -> Severity:
        """Normalize analyzer severity text. Anything unrecognised is a warning."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.WARNING


class ScanType(str, Enum):
    LINT = "lint"
    PHPCS = "phpcs"
    SVG = "svg"


class ReviewState(str, Enum):
    ACTIVE = "active"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class Finding:
    """One static-analysis result for a specific file and absolute line."""

    file: str
    line: int
    message: str
    severity: Severity
    source: ScanType
    # Severity exactly as the analyzer reported it, kept for the comment body.
    severity_text: str = ""

    @classmethod
    def create(cls, file: str, line: int, message: str, severity: str | None, source: ScanType) -> Finding:
        return cls(
            file=file,
            line=int(line),
            message=message,
            severity=Severity.parse(severity),
            source=source,
            severity_text=severity or "",
        )

    @property
    def key(self) -> tuple[str, int, str, ScanType]:
        return (self.file, self.line, self.message, self.source)


@dataclass
class DiffHunkMap:
    """Changed lines and line/position mapping for one file between two revisions."""

    file: str
    base_sha: str
    head_sha: str
    changed_lines: set[int] = field(default_factory=set)
    position_of: dict[int, int] = field(default_factory=dict)

    def position_for(self, line: int) -> int | None:
        return self.position_of.get(line)

    def line_for(self, position: int) -> int | None:
        for line, pos in self.position_of.items():
            if pos == position:
                return line
        return None

    @property
    def is_empty(self) -> bool:
        return not self.position_of


@dataclass(frozen=True)
class BlameEntry:
    line: int
    commit_sha: str


@dataclass(frozen=True)
class Commit:
    sha: str


@dataclass
class PullRequest:
    number: int
    base_sha: str
    head_sha: str
    commits: list[Commit] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)
    base_ref: str = ""

    @property
    def commit_shas(self) -> set[str]:
        return {c.sha for c in self.commits}


@dataclass(frozen=True)
class ExistingComment:
    """An inline comment this bot already posted on a pull request.

    ``absolute_line`` may be None when only the stored diff position is known;
    the dedup filter then resolves it through the file's DiffHunkMap.
    """

    file: str
    absolute_line: int | None
    body: str = ""
    review_id: int | None = None
    review_state: ReviewState = ReviewState.ACTIVE
    dismissed_by: str | None = None
    position: int | None = None


@dataclass(frozen=True)
class DismissalEvent:
    actor: str
    review_id: int


@dataclass(frozen=True)
class AttributedFinding:
    finding: Finding
    diff_position: int
    pr_number: int

    @property
    def file(self) -> str:
        return self.finding.file

    @property
    def line(self) -> int:
        return self.finding.line

    @property
    def severity(self) -> Severity:
        return self.finding.severity

    @property
    def source(self) -> ScanType:
        return self.finding.source


@dataclass
class SubmissionBatch:
    """Final, capped comments for one pull request, split for submission."""

    pr_number: int
    findings: list[AttributedFinding] = field(default_factory=list)
    batches: list[list[AttributedFinding]] = field(default_factory=list)
    truncated: bool = False
