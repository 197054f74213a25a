"""Version descriptor lookup backed by the git CLI."""

from __future__ import annotations

from pathlib import Path

from .utils import CommandError, run_command


def describe_command(git: str = "git") -> list[str]:
    return [git, "describe", "--tags", "--always", "--dirty"]


def describe_commit(repo_dir: str | Path, *, git: str = "git") -> str:
    """Return a human-readable descriptor of the commit checked out in ``repo_dir``.

    Tags are preferred, the abbreviated hash is the fallback and ``-dirty`` is
    appended when the working tree has uncommitted changes.
    """
    command = describe_command(git)
    result = run_command(command, cwd=repo_dir)
    descriptor = result.stdout.strip()
    if not descriptor:
        raise CommandError(command, 1, result.stdout, "git describe produced an empty descriptor")
    return descriptor
