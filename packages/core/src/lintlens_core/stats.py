"""Per pull request, per scan type issue counters and the run's exit status."""

from __future__ import annotations

from typing import Iterable

from lintlens_core.errors import EXIT_ISSUES_FOUND, EXIT_NORMAL
from lintlens_core.models import AttributedFinding, ScanType, Severity


class StatsAggregator:
    """Tallies surviving findings by severity.

    These counters alone decide whether the run fails: any surviving
    error-severity finding makes the exit status non-zero, warnings never do.
    """

    def __init__(self) -> None:
        self._counters: dict[int, dict[ScanType, dict[Severity, int]]] = {}

    def init_pr(self, pr_number: int, scan_types: Iterable[ScanType]) -> None:
        per_scan = self._counters.setdefault(pr_number, {})
        for scan_type in scan_types:
            per_scan.setdefault(scan_type, {s: 0 for s in Severity})

    def record(self, finding: AttributedFinding) -> None:
        per_scan = self._counters.setdefault(finding.pr_number, {})
        counts = per_scan.setdefault(finding.source, {s: 0 for s in Severity})
        counts[finding.severity] += 1

    def record_all(self, findings: Iterable[AttributedFinding]) -> None:
        for finding in findings:
            self.record(finding)

    def count(self, pr_number: int, scan_type: ScanType, severity: Severity) -> int:
        return self._counters.get(pr_number, {}).get(scan_type, {}).get(severity, 0)

    def snapshot(self) -> dict[int, dict[str, dict[str, int]]]:
        """Plain-dict copy for export and logging."""
        return {
            pr: {scan.value: {sev.value: n for sev, n in counts.items()} for scan, counts in per_scan.items()}
            for pr, per_scan in self._counters.items()
        }

    def has_errors(self) -> bool:
        return any(
            counts[Severity.ERROR] > 0 for per_scan in self._counters.values() for counts in per_scan.values()
        )

    def exit_status(self) -> int:
        return EXIT_ISSUES_FOUND if self.has_errors() else EXIT_NORMAL

    def reset(self) -> None:
        self._counters.clear()
