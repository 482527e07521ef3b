"""Tests for blame log construction."""

import pytest

from lintlens_core.blame import attribute_file, build_blame_log
from lintlens_core.errors import BlameUnavailable
from lintlens_core.models import BlameEntry


def test_build_blame_log_maps_line_to_sha():
    entries = [BlameEntry(1, "a"), BlameEntry(2, "b"), BlameEntry(3, "a")]
    assert build_blame_log(entries) == {1: "a", 2: "b", 3: "a"}


def test_build_blame_log_empty():
    assert build_blame_log([]) == {}


def test_duplicate_line_raises():
    with pytest.raises(BlameUnavailable):
        build_blame_log([BlameEntry(1, "a"), BlameEntry(1, "b")])


def test_attribute_file_calls_fetcher_with_file_and_revision():
    fetch = lambda file, rev: [BlameEntry(1, rev)]  # noqa: E731
    assert attribute_file(fetch, "x.php", "c" * 40) == {1: "c" * 40}


def test_attribute_file_propagates_blame_unavailable():
    def fetch(file, rev):
        raise BlameUnavailable("no such path")

    with pytest.raises(BlameUnavailable):
        attribute_file(fetch, "x.php", "c" * 40)
