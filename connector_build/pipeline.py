from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, cast

from .container import DockerCLI, throwaway_container
from .models import BuildSettings, StepResult
from .utils import CommandError, ensure_directory, exit_status, file_manifest
from .vcs import describe_commit

logger = logging.getLogger(__name__)


class Step(Enum):
    DESCRIBE = "describe"
    BUILD = "build"
    PRECLEAN = "preclean"
    CREATE = "create"
    PREPARE_OUTPUT = "prepare_output"
    COPY = "copy"
    REMOVE = "remove"
    REMOVE_IMAGE = "remove_image"


class StepFailed(RuntimeError):
    """Raised when a build step fails; carries the exit status to report."""

    def __init__(self, step: Step, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        self.returncode = exit_status(getattr(cause, "returncode", 1)) or 1
        super().__init__(f"Step '{step.value}' failed: {cause}")


@dataclass
class BuildContext:
    settings: BuildSettings
    workdir: Path = field(default_factory=Path.cwd)
    output_root: Optional[Path] = None

    def __post_init__(self) -> None:
        self.workdir = Path(self.workdir).resolve()
        if self.output_root is None:
            self.output_root = self.workdir
        self.output_root = Path(self.output_root).resolve()

    @property
    def output_path(self) -> Path:
        return cast(Path, self.output_root) / self.settings.output_dir


class BuildPipeline:
    """Runs the build-and-extract sequence, aborting on the first failing step."""

    def __init__(self, context: BuildContext) -> None:
        self.context = context
        self.docker = DockerCLI(context.settings.docker)
        self.results: List[StepResult] = []

    def _record(self, step: Step, details: Dict[str, Any], status: str = "completed") -> StepResult:
        result = StepResult(step.value, status, details)
        self.results.append(result)
        return result

    def describe(self) -> str:
        try:
            descriptor = describe_commit(self.context.workdir, git=self.context.settings.git)
        except CommandError as exc:
            raise StepFailed(Step.DESCRIBE, exc) from exc
        logger.info("Version descriptor: %s", descriptor)
        self._record(Step.DESCRIBE, {"descriptor": descriptor})
        return descriptor

    def build_image(self, descriptor: str) -> None:
        settings = self.context.settings
        try:
            command = self.docker.build_image(
                tag=settings.image_tag,
                dockerfile=settings.dockerfile,
                context_dir=settings.context_dir,
                build_args={settings.build_arg: descriptor},
                cwd=self.context.workdir,
            )
        except CommandError as exc:
            raise StepFailed(Step.BUILD, exc) from exc
        self._record(Step.BUILD, {"image": settings.image_tag, "command": command})

    def clean(self) -> bool:
        name = self.context.settings.container_name
        removed = self.docker.remove_container(name, best_effort=True)
        self._record(Step.PRECLEAN, {"container": name, "removed": removed})
        return removed

    def extract(self) -> Path:
        settings = self.context.settings
        output_path = self.context.output_path
        step = Step.CREATE
        try:
            with throwaway_container(
                self.docker, image=settings.image_tag, name=settings.container_name
            ) as container_id:
                self._record(
                    Step.CREATE,
                    {"container": settings.container_name, "id": container_id, "image": settings.image_tag},
                )

                step = Step.PREPARE_OUTPUT
                ensure_directory(output_path)
                self._record(Step.PREPARE_OUTPUT, {"path": str(output_path)})

                step = Step.COPY
                command = self.docker.copy_from_container(
                    name=settings.container_name,
                    source=settings.container_path,
                    destination=output_path,
                )
                self._record(Step.COPY, {"command": command, "files": file_manifest(output_path)})

                step = Step.REMOVE
        except (CommandError, OSError) as exc:
            raise StepFailed(step, exc) from exc
        self._record(Step.REMOVE, {"container": settings.container_name})
        return output_path

    def remove_image(self) -> None:
        tag = self.context.settings.image_tag
        try:
            self.docker.remove_image(tag)
        except CommandError as exc:
            raise StepFailed(Step.REMOVE_IMAGE, exc) from exc
        self._record(Step.REMOVE_IMAGE, {"image": tag})

    def run(self) -> List[StepResult]:
        """Run every step; on failure the failing step is recorded before re-raising."""
        self.results = []
        try:
            descriptor = self.describe()
            self.build_image(descriptor)
            self.clean()
            output_path = self.extract()
            if self.context.settings.remove_image:
                self.remove_image()
        except StepFailed as exc:
            details: Dict[str, Any] = {
                "returncode": exc.returncode,
                "error": (str(exc.cause).splitlines() or [""])[0],
            }
            command = getattr(exc.cause, "command", None)
            if command:
                details["command"] = command
            self._record(exc.step, details, status="failed")
            raise
        logger.info("Build output extracted to %s", output_path)
        return list(self.results)
