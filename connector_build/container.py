"""Thin wrappers around the docker CLI.

This module is the only place that assembles docker command lines; the
pipeline calls these helpers and never shells out to docker directly.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List

from .utils import CommandError, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DockerCLI:
    executable: str = "docker"

    def build_image(
        self,
        *,
        tag: str,
        dockerfile: str,
        context_dir: str,
        build_args: dict[str, str],
        cwd: Path,
    ) -> List[str]:
        command = [self.executable, "build"]
        for name, value in build_args.items():
            command.extend(["--build-arg", f"{name}={value}"])
        command.extend(["-t", tag, "-f", dockerfile, context_dir])
        run_command(command, cwd=cwd)
        return command

    def remove_container(self, name: str, *, best_effort: bool = False) -> bool:
        """Remove ``name``. With ``best_effort`` a failure is logged and reported as ``False``."""
        result = run_command([self.executable, "rm", name], check=not best_effort)
        if result.returncode != 0:
            logger.debug("No container %s to remove: %s", name, result.stderr.strip())
            return False
        return True

    def create_container(self, *, image: str, name: str) -> str:
        result = run_command([self.executable, "create", "--name", name, image])
        return result.stdout.strip()

    def copy_from_container(self, *, name: str, source: str, destination: Path) -> List[str]:
        # Trailing "/." copies the directory contents rather than the directory itself.
        command = [self.executable, "cp", f"{name}:{source.rstrip('/')}/.", str(destination)]
        run_command(command)
        return command

    def remove_image(self, tag: str) -> None:
        run_command([self.executable, "rmi", tag])


@contextmanager
def throwaway_container(docker: DockerCLI, *, image: str, name: str) -> Iterator[str]:
    """Create a non-running container and remove it when the block exits.

    A removal failure after a successful block is raised. When the block
    itself fails, a removal failure is only logged so the original error
    propagates.
    """
    container_id = docker.create_container(image=image, name=name)
    try:
        yield container_id
    except BaseException:
        try:
            docker.remove_container(name)
        except CommandError as exc:
            logger.warning("Failed to remove container %s during cleanup: %s", name, exc.stderr.strip())
        raise
    docker.remove_container(name)
