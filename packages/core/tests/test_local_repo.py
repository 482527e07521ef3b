"""Tests for the local clone wrapper. git.Repo is mocked."""

from unittest.mock import MagicMock

import git
import pytest

from lintlens_core.errors import BlameUnavailable, ConfigError
from lintlens_core.gitrepo.local import LocalRepo
from lintlens_core.models import BlameEntry

SHA = "c" * 40


@pytest.fixture
def mock_repo(mocker):
    return mocker.patch("lintlens_core.gitrepo.local.git.Repo").return_value


def test_invalid_repository_is_config_error(mocker):
    mocker.patch("lintlens_core.gitrepo.local.git.Repo", side_effect=git.InvalidGitRepositoryError("/nope"))
    with pytest.raises(ConfigError):
        LocalRepo("/nope")


def test_missing_path_is_config_error(mocker):
    mocker.patch("lintlens_core.gitrepo.local.git.Repo", side_effect=git.NoSuchPathError("/nope"))
    with pytest.raises(ConfigError):
        LocalRepo("/nope")


class TestEnsureCheckedOut:
    def test_matching_head(self, mock_repo):
        mock_repo.head.commit.hexsha = SHA
        LocalRepo("/srv/site").ensure_checked_out(SHA)

    def test_other_head(self, mock_repo):
        mock_repo.head.commit.hexsha = "d" * 40
        with pytest.raises(ConfigError, match="expected"):
            LocalRepo("/srv/site").ensure_checked_out(SHA)


class TestFetchFile:
    def test_reads_blob(self, mock_repo):
        blob = MagicMock()
        blob.data_stream.read.return_value = b"<?php echo 1;"
        mock_repo.commit.return_value.tree.__truediv__.return_value = blob

        assert LocalRepo("/srv/site").fetch_file(SHA, "src/x.php") == "<?php echo 1;"
        mock_repo.commit.assert_called_once_with(SHA)
        mock_repo.commit.return_value.tree.__truediv__.assert_called_once_with("src/x.php")

    def test_missing_path_returns_none(self, mock_repo):
        mock_repo.commit.return_value.tree.__truediv__.side_effect = KeyError("src/x.php")
        assert LocalRepo("/srv/site").fetch_file(SHA, "src/x.php") is None

    def test_unknown_revision_returns_none(self, mock_repo):
        mock_repo.commit.side_effect = ValueError("bad revision")
        assert LocalRepo("/srv/site").fetch_file("nope", "src/x.php") is None


class TestBlame:
    def test_lines_numbered_sequentially_across_chunks(self, mock_repo):
        first, second = MagicMock(hexsha="1" * 40), MagicMock(hexsha="2" * 40)
        mock_repo.blame.return_value = [(first, ["a", "b"]), (second, ["c"]), (first, ["d"])]

        entries = LocalRepo("/srv/site").blame(SHA, "x.php")

        assert entries == [
            BlameEntry(1, "1" * 40),
            BlameEntry(2, "1" * 40),
            BlameEntry(3, "2" * 40),
            BlameEntry(4, "1" * 40),
        ]
        mock_repo.blame.assert_called_once_with(SHA, "x.php")

    def test_git_failure_is_blame_unavailable(self, mock_repo):
        mock_repo.blame.side_effect = git.GitCommandError("blame", 128, b"fatal: no such path")
        with pytest.raises(BlameUnavailable):
            LocalRepo("/srv/site").blame(SHA, "x.php")

    def test_empty_file(self, mock_repo):
        mock_repo.blame.return_value = []
        assert LocalRepo("/srv/site").blame(SHA, "empty.php") == []
