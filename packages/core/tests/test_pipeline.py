"""End-to-end tests for the per-PR pipeline with stub collaborators."""

import pytest

from lintlens_core.collaborators import Collaborators
from lintlens_core.errors import BlameUnavailable, DiffUnavailable, ExternalServiceUnavailable
from lintlens_core.models import (
    BlameEntry,
    Commit,
    DismissalEvent,
    ExistingComment,
    Finding,
    PullRequest,
    ReviewState,
    ScanType,
    Severity,
)
from lintlens_core.pipeline import PipelinePolicy, RunContext, process_pull_request, run_pipeline

PR_SHA = "p" * 40
OLD_SHA = "o" * 40
BASE = "b" * 40

# x.php: lines 10-12 added.
X_PATCH = "@@ -8,2 +8,5 @@\n a\n b\n+ten\n+eleven\n+twelve\n"
# y.php: line 1 added.
Y_PATCH = "@@ -0,0 +1 @@\n+one\n"


class StubCollaborators(Collaborators):
    def __init__(self, diffs=None, blames=None, commits=None, comments=None, events=None, failing_prs=()):
        self.diffs = diffs or {}
        self.blames = blames or {}
        self.commits = commits if commits is not None else [Commit(PR_SHA)]
        self.comments = comments or []
        self.events = events or []
        self.failing_prs = set(failing_prs)
        self.diff_calls = []
        self.blame_calls = []
        self.event_calls = []

    def fetch_diff(self, file, base_sha, head_sha):
        self.diff_calls.append(file)
        if file not in self.diffs:
            raise DiffUnavailable(f"{file}: file removed")
        return self.diffs[file]

    def fetch_blame(self, file, revision):
        self.blame_calls.append(file)
        if file not in self.blames:
            raise BlameUnavailable(f"{file} missing")
        return [BlameEntry(line, sha) for line, sha in self.blames[file].items()]

    def list_pr_commits(self, pr_number):
        if pr_number in self.failing_prs:
            raise ExternalServiceUnavailable("boom")
        return list(self.commits)

    def list_existing_comments(self, pr_number):
        if pr_number in self.failing_prs:
            raise ExternalServiceUnavailable("boom")
        return list(self.comments)

    def list_review_dismissal_events(self, pr_number, actors):
        self.event_calls.append((pr_number, set(actors)))
        return list(self.events)


def x_blame():
    blame = {line: OLD_SHA for line in range(1, 13)}
    blame.update({10: PR_SHA, 11: PR_SHA, 12: OLD_SHA})
    return blame


def pull_request(number=1, files=("x.php", "y.php")):
    return PullRequest(number=number, base_sha=BASE, head_sha=PR_SHA, files_changed=list(files))


def finding(file, line, message, severity="error"):
    return Finding.create(file, line, message, severity, ScanType.PHPCS)


@pytest.fixture
def ctx():
    return RunContext()


def test_scenario_a_attribution(ctx):
    collab = StubCollaborators(diffs={"x.php": X_PATCH}, blames={"x.php": x_blame()})
    findings = {"x.php": [finding("x.php", 10, "unused variable", "warning"), finding("x.php", 12, "undefined function")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert [(af.line, af.finding.message) for af in batch.findings] == [(10, "unused variable")]
    assert batch.findings[0].diff_position == 3
    assert ctx.stats.count(1, ScanType.PHPCS, Severity.WARNING) == 1
    assert ctx.stats.count(1, ScanType.PHPCS, Severity.ERROR) == 0


def test_scenario_b_prior_comment_suppresses(ctx):
    collab = StubCollaborators(
        diffs={"x.php": X_PATCH},
        blames={"x.php": x_blame()},
        comments=[ExistingComment(file="x.php", absolute_line=10, review_id=1)],
    )
    findings = {"x.php": [finding("x.php", 10, "unused variable", "warning"), finding("x.php", 12, "undefined function")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert batch.findings == []
    assert not batch.truncated


def test_outdated_prior_comment_does_not_suppress(ctx):
    collab = StubCollaborators(
        diffs={"x.php": X_PATCH},
        blames={"x.php": x_blame()},
        comments=[ExistingComment(file="x.php", absolute_line=None, review_id=1, position=None)],
    )
    findings = {"x.php": [finding("x.php", 10, "unused variable")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert [af.line for af in batch.findings] == [10]


def test_same_issue_from_lint_and_phpcs_both_reported(ctx):
    collab = StubCollaborators(diffs={"x.php": X_PATCH}, blames={"x.php": x_blame()})
    lint = Finding.create("x.php", 11, "syntax error", "error", ScanType.LINT)
    findings = {"x.php": [lint, finding("x.php", 11, "syntax error")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert sorted(af.source.value for af in batch.findings) == ["lint", "phpcs"]


def test_scenario_c_total_cap_notifies_once(ctx):
    collab = StubCollaborators(
        diffs={"x.php": X_PATCH, "y.php": Y_PATCH},
        blames={"x.php": x_blame(), "y.php": {1: PR_SHA}},
    )
    findings = {
        "x.php": [finding("x.php", 10, "first")],
        "y.php": [finding("y.php", 1, "second")],
    }

    submissions = run_pipeline(ctx, collab, [pull_request()], findings, PipelinePolicy(total_max=1))

    batch = submissions[1]
    assert [af.file for af in batch.findings] == ["x.php"]
    assert batch.truncated
    assert ctx.truncated == {1}


def test_scenario_d_duplicates_collapsed(ctx):
    collab = StubCollaborators(diffs={"x.php": X_PATCH}, blames={"x.php": x_blame()})
    findings = {"x.php": [finding("x.php", 11, "dup"), finding("x.php", 11, "dup")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert len(batch.findings) == 1
    assert ctx.stats.count(1, ScanType.PHPCS, Severity.ERROR) == 1


def test_diff_unavailable_degrades_to_nothing_for_that_file(ctx):
    collab = StubCollaborators(diffs={"y.php": Y_PATCH}, blames={"y.php": {1: PR_SHA}})
    findings = {"x.php": [finding("x.php", 10, "gone")], "y.php": [finding("y.php", 1, "kept")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert [af.file for af in batch.findings] == ["y.php"]
    assert "x.php" not in collab.blame_calls


def test_blame_unavailable_degrades_to_nothing_for_that_file(ctx):
    collab = StubCollaborators(diffs={"x.php": X_PATCH, "y.php": Y_PATCH}, blames={"y.php": {1: PR_SHA}})
    findings = {"x.php": [finding("x.php", 10, "no blame")], "y.php": [finding("y.php", 1, "kept")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())

    assert [af.file for af in batch.findings] == ["y.php"]


def test_external_service_failure_skips_only_that_pr(ctx):
    collab = StubCollaborators(diffs={"y.php": Y_PATCH}, blames={"y.php": {1: PR_SHA}}, failing_prs={2})
    findings = {"y.php": [finding("y.php", 1, "e")]}
    prs = [pull_request(number=2), pull_request(number=3)]

    submissions = run_pipeline(ctx, collab, prs, findings, PipelinePolicy(), [ScanType.PHPCS])

    assert 2 not in submissions
    assert ctx.skipped_prs == {2}
    assert len(submissions[3].findings) == 1
    assert ctx.stats.count(2, ScanType.PHPCS, Severity.ERROR) == 0


def test_files_not_changed_by_pr_are_ignored(ctx):
    collab = StubCollaborators(diffs={"y.php": Y_PATCH}, blames={"y.php": {1: PR_SHA}})
    findings = {"y.php": [finding("y.php", 1, "e")]}

    batch = process_pull_request(ctx, collab, pull_request(files=("x.php",)), findings, PipelinePolicy())

    assert batch.findings == []
    assert collab.diff_calls == []


def test_diff_and_blame_cached_across_prs_with_same_revisions(ctx):
    collab = StubCollaborators(diffs={"y.php": Y_PATCH}, blames={"y.php": {1: PR_SHA}})
    findings = {"y.php": [finding("y.php", 1, "e")]}

    run_pipeline(ctx, collab, [pull_request(number=1), pull_request(number=2)], findings, PipelinePolicy())

    assert collab.diff_calls == ["y.php"]
    assert collab.blame_calls == ["y.php"]


def test_ignore_list_applied(ctx):
    collab = StubCollaborators(diffs={"x.php": X_PATCH}, blames={"x.php": x_blame()})
    findings = {"x.php": [finding("x.php", 10, "Noise"), finding("x.php", 11, "signal")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy(ignore_messages=("noise",)))

    assert [af.finding.message for af in batch.findings] == ["signal"]


def test_dismissal_events_fetched_only_with_excluded_actors(ctx):
    collab = StubCollaborators(
        diffs={"x.php": X_PATCH},
        blames={"x.php": x_blame()},
        comments=[ExistingComment("x.php", 10, review_id=42, review_state=ReviewState.DISMISSED)],
        events=[DismissalEvent("lead", 42)],
    )
    findings = {"x.php": [finding("x.php", 10, "e")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy())
    assert len(batch.findings) == 1
    assert collab.event_calls == []

    ctx.reset()
    policy = PipelinePolicy(excluded_actors=frozenset({"lead"}))
    batch = process_pull_request(ctx, collab, pull_request(), findings, policy)
    assert batch.findings == []
    assert collab.event_calls == [(1, {"lead"})]


def test_active_prior_comments_count_toward_total(ctx):
    collab = StubCollaborators(
        diffs={"x.php": X_PATCH},
        blames={"x.php": x_blame()},
        comments=[
            ExistingComment("z.php", 1, review_id=1),
            ExistingComment("z.php", 2, review_id=2, review_state=ReviewState.DISMISSED),
        ],
    )
    findings = {"x.php": [finding("x.php", 10, "a"), finding("x.php", 11, "b")]}

    batch = process_pull_request(ctx, collab, pull_request(), findings, PipelinePolicy(total_max=2))

    assert [af.line for af in batch.findings] == [10]
    assert batch.truncated


def test_run_context_reset_clears_everything(ctx):
    collab = StubCollaborators(diffs={"y.php": Y_PATCH}, blames={"y.php": {1: PR_SHA}})
    run_pipeline(ctx, collab, [pull_request()], {"y.php": [finding("y.php", 1, "e")]}, PipelinePolicy(total_max=0))
    assert ctx.submissions and ctx.diff_maps and ctx.blame_logs

    ctx.reset()

    assert not ctx.submissions
    assert not ctx.diff_maps
    assert not ctx.blame_logs
    assert ctx.stats.snapshot() == {}


def test_policy_from_config():
    config = {
        "review_comments_max": 20,
        "review_comments_total_max": 0,
        "dismissed_reviews_repost_comments": False,
        "review_comments_ignore": ["a", "b"],
    }
    policy = PipelinePolicy.from_config(config, ["lead"])
    assert policy.batch_max == 20
    assert policy.total_max == 0
    assert policy.repost_after_dismissal is False
    assert policy.excluded_actors == frozenset({"lead"})
    assert policy.ignore_messages == ("a", "b")
