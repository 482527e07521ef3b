"""Tests for the per-review and per-PR comment caps."""

import pytest

from lintlens_core.caps import build_submission_batch, enforce_total_cap, split_batches
from lintlens_core.models import AttributedFinding, Finding, ScanType


def af(file, line):
    return AttributedFinding(Finding.create(file, line, "m", "error", ScanType.PHPCS), diff_position=line, pr_number=3)


class TestEnforceTotalCap:
    def test_scenario_c_keeps_first_in_scan_order(self):
        findings = [af("a.php", 5), af("b.php", 1)]
        result = enforce_total_cap(findings, previously_posted=0, total_max=1)
        assert result.kept == [findings[0]]
        assert result.dropped == [findings[1]]
        assert result.truncated

    def test_zero_means_unlimited(self):
        findings = [af("a.php", i) for i in range(1, 600)]
        result = enforce_total_cap(findings, previously_posted=1000, total_max=0)
        assert result.kept == findings
        assert not result.truncated

    def test_previously_posted_counts_against_limit(self):
        findings = [af("a.php", i) for i in range(1, 6)]
        result = enforce_total_cap(findings, previously_posted=8, total_max=10)
        assert result.kept == findings[:2]
        assert result.truncated

    def test_already_over_limit_keeps_nothing(self):
        findings = [af("a.php", 1)]
        result = enforce_total_cap(findings, previously_posted=12, total_max=10)
        assert result.kept == []
        assert result.truncated

    def test_under_limit_not_truncated(self):
        findings = [af("a.php", 1), af("a.php", 2)]
        result = enforce_total_cap(findings, previously_posted=0, total_max=2)
        assert result.kept == findings
        assert not result.truncated

    def test_never_adds_or_reorders(self):
        findings = [af("b.php", 3), af("a.php", 1), af("a.php", 2)]
        result = enforce_total_cap(findings, previously_posted=1, total_max=3)
        assert result.kept == findings[: len(result.kept)]


class TestSplitBatches:
    @pytest.mark.parametrize("count,batch_max,sizes", [(0, 5, []), (5, 5, [5]), (12, 5, [5, 5, 2]), (3, 10, [3])])
    def test_sizes(self, count, batch_max, sizes):
        findings = [af("a.php", i) for i in range(count)]
        batches = split_batches(findings, batch_max)
        assert [len(b) for b in batches] == sizes
        assert [f for b in batches for f in b] == findings

    def test_rejects_non_positive_batch_max(self):
        with pytest.raises(ValueError):
            split_batches([], 0)


def test_build_submission_batch_respects_both_limits():
    findings = [af("a.php", i) for i in range(1, 31)]
    batch = build_submission_batch(3, findings, previously_posted=5, total_max=25, batch_max=7)
    assert batch.pr_number == 3
    assert len(batch.findings) == 20
    assert all(len(b) <= 7 for b in batch.batches)
    assert sum(len(b) for b in batch.batches) == 20
    assert batch.truncated
