from __future__ import annotations

import re
import shutil
import subprocess
from pathlib import Path

import pytest

from connector_build.utils import CommandError
from connector_build.vcs import describe_commit

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        [
            "git",
            "-c", "user.name=builder",
            "-c", "user.email=builder@example.invalid",
            "-c", "commit.gpgsign=false",
            "-c", "tag.gpgsign=false",
            *args,
        ],
        cwd=repo,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    _git(repo_dir, "init", "-q")
    (repo_dir / "Dockerfile").write_text("FROM scratch\n")
    _git(repo_dir, "add", "Dockerfile")
    _git(repo_dir, "commit", "-q", "-m", "initial")
    return repo_dir


def test_clean_tagged_commit_yields_tag(repo: Path) -> None:
    _git(repo, "tag", "v0.1.0")

    assert describe_commit(repo) == "v0.1.0"


def test_uncommitted_changes_add_dirty_suffix(repo: Path) -> None:
    _git(repo, "tag", "v0.1.0")
    (repo / "Dockerfile").write_text("FROM scratch\nCOPY . /\n")

    assert describe_commit(repo) == "v0.1.0-dirty"


def test_untagged_commit_falls_back_to_hash(repo: Path) -> None:
    assert re.fullmatch(r"[0-9a-f]{7,}", describe_commit(repo))


def test_outside_repository_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    plain = tmp_path / "plain"
    plain.mkdir()

    with pytest.raises(CommandError) as excinfo:
        describe_commit(plain)
    assert excinfo.value.returncode != 0
