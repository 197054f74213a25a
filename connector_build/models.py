from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping


class SettingsError(RuntimeError):
    """Raised when build settings cannot be parsed or fail validation."""


@dataclass(frozen=True)
class BuildSettings:
    """Names and paths that drive a containerized build and extraction."""

    build_arg: str = "ci_commit"
    image_tag: str = "jitolabs/solana-accountsdb-connector"
    dockerfile: str = "Dockerfile"
    context_dir: str = "."
    container_name: str = "temp"
    container_path: str = "/solana-accountsdb-connector/docker-output"
    output_dir: str = "docker-output"
    remove_image: bool = False
    git: str = "git"
    docker: str = "docker"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BuildSettings":
        return cls().merged(data)

    def merged(self, overrides: Mapping[str, Any]) -> "BuildSettings":
        """Return a copy with ``overrides`` applied; ``None`` values are ignored."""

        known = {f.name: f for f in fields(self)}
        # YAML reads keys such as "on" or "1" as bool/int.
        non_string = [key for key in overrides if not isinstance(key, str)]
        if non_string:
            raise SettingsError(
                f"Settings keys must be strings, got: {', '.join(sorted(map(repr, non_string)))}"
            )
        unknown = sorted(set(overrides) - set(known))
        if unknown:
            raise SettingsError(f"Unknown settings key(s): {', '.join(unknown)}")

        changes: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            expected = bool if known[key].type in ("bool", bool) else str
            if not isinstance(value, expected):
                raise SettingsError(
                    f"Setting '{key}' must be of type {expected.__name__}, got {type(value).__name__}"
                )
            if expected is str and not value.strip():
                raise SettingsError(f"Setting '{key}' must not be empty")
            changes[key] = value
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class StepResult:
    """Summary emitted by a build step."""

    name: str
    status: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.name, "status": self.status, "details": self.details}
