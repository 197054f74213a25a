from __future__ import annotations

import hashlib
import json
import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

logger = logging.getLogger(__name__)

# Exit statuses a POSIX shell reports for a command it cannot find or run.
COMMAND_NOT_FOUND = 127
COMMAND_NOT_EXECUTABLE = 126


class CommandError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status code."""

    def __init__(self, command: Sequence[str], returncode: int, stdout: str, stderr: str) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command {format_command(command)} failed with exit code {returncode}\nSTDOUT:{stdout}\nSTDERR:{stderr}"
        )


def exit_status(returncode: int) -> int:
    """Map a subprocess return code to the status a shell would exit with."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in command)


def run_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a subprocess command and return the completed process.

    The command line is logged before it runs. A missing or
    non-executable program is reported as a ``CommandError`` carrying the
    status a shell would use (127 or 126).
    """

    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    if cwd is not None and not Path(cwd).is_dir():
        raise CommandError(command, 1, "", f"Working directory does not exist: {cwd}")

    logger.info("+ %s", format_command(command))
    try:
        result = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd else None,
            env=process_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as exc:
        returncode = COMMAND_NOT_FOUND if isinstance(exc, FileNotFoundError) else COMMAND_NOT_EXECUTABLE
        if not check:
            return subprocess.CompletedProcess(list(command), returncode, "", str(exc))
        raise CommandError(command, returncode, "", str(exc)) from exc

    if result.stdout.strip():
        logger.debug("%s stdout:\n%s", command[0], result.stdout.rstrip())
    if result.stderr.strip():
        logger.debug("%s stderr:\n%s", command[0], result.stderr.rstrip())
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode, result.stdout, result.stderr)
    return result


def ensure_directory(path: str | Path) -> Path:
    """Create a directory and return its Path object."""

    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def sha256_file(path: str | Path) -> str:
    """Compute the SHA256 hash of the provided file."""

    digest = hashlib.sha256()
    with open(path, "rb") as file_handle:
        for chunk in iter(lambda: file_handle.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def file_manifest(root: str | Path) -> List[Dict[str, object]]:
    """List every file below ``root`` with its size and SHA256, sorted by path."""

    root = Path(root)
    entries: List[Dict[str, object]] = []
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
        entries.append(
            {
                "path": path.relative_to(root).as_posix(),
                "size": path.stat().st_size,
                "sha256": sha256_file(path),
            }
        )
    return entries


def dump_json(path: str | Path, payload: object, *, indent: int = 2) -> None:
    """Write structured JSON to disk with a trailing newline for readability."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=indent, sort_keys=True) + "\n")
