from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, List, Set, Tuple

import pytest


class FakeTools:
    """Stands in for ``subprocess.run`` and emulates the git and docker CLIs."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.descriptor = "v1.2.3"
        self.containers: Set[str] = set()
        self.container_files: Dict[str, str] = {
            "libgeyser_plugin.so": "ELF",
            "config/plugin.json": "{}",
        }
        self.missing: Set[str] = set()
        self.denied: Set[str] = set()
        self._failures: Dict[Tuple[str, ...], Tuple[int, str]] = {}

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "boom") -> None:
        self._failures[tuple(prefix)] = (returncode, stderr)

    def commands(self, *prefix: str) -> List[List[str]]:
        return [call for call in self.calls if tuple(call[: len(prefix)]) == prefix]

    def __call__(self, command, cwd=None, env=None, stdout=None, stderr=None, text=None, check=None):
        command = list(command)
        self.calls.append(command)
        if command[0] in self.missing:
            raise FileNotFoundError(2, "No such file or directory", command[0])
        if command[0] in self.denied:
            raise PermissionError(13, "Permission denied", command[0])
        for prefix, (returncode, message) in self._failures.items():
            if tuple(command[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(command, returncode, "", message)

        if command[0] == "git":
            return subprocess.CompletedProcess(command, 0, self.descriptor + "\n", "")

        action = command[1]
        if action == "rm":
            name = command[2]
            if name not in self.containers:
                return subprocess.CompletedProcess(command, 1, "", f"Error: No such container: {name}")
            self.containers.discard(name)
            return subprocess.CompletedProcess(command, 0, name + "\n", "")
        if action == "create":
            name = command[command.index("--name") + 1]
            if name in self.containers:
                return subprocess.CompletedProcess(command, 1, "", f"Conflict. The container name {name} is already in use")
            self.containers.add(name)
            return subprocess.CompletedProcess(command, 0, "c0ffee\n", "")
        if action == "cp":
            destination = Path(command[3])
            for relative, content in self.container_files.items():
                target = destination / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content)
            return subprocess.CompletedProcess(command, 0, "", "")
        return subprocess.CompletedProcess(command, 0, "", "")


@pytest.fixture
def fake_tools(monkeypatch: pytest.MonkeyPatch) -> FakeTools:
    tools = FakeTools()
    monkeypatch.setattr("connector_build.utils.subprocess.run", tools)
    return tools
