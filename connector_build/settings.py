from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .models import BuildSettings, SettingsError

try:  # pragma: no cover - tomllib is stdlib from 3.11 onwards
    import tomllib  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib  # type: ignore

TOML_TABLE = "connector-build"


@dataclass
class SettingsFile:
    """Lightweight loader for an optional build settings file."""

    path: Path
    _cache: Optional[Dict[str, Any]] = None

    @classmethod
    def from_file(cls, path: str | Path) -> "SettingsFile":
        return cls(path=Path(path))

    def _load(self) -> Dict[str, Any]:
        if self._cache is not None:
            return self._cache

        try:
            raw_text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SettingsError(f"Cannot read settings file {self.path}: {exc}") from exc

        if self.path.suffix == ".toml":
            raw_data = self._parse_toml(raw_text)
        else:
            raw_data = self._parse_json_or_yaml(raw_text)

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, dict):
            raise SettingsError(f"Settings file {self.path} must contain a mapping")
        self._cache = raw_data
        return raw_data

    def _parse_toml(self, raw_text: str) -> Any:
        try:
            data = tomllib.loads(raw_text)
        except tomllib.TOMLDecodeError as exc:
            raise SettingsError(f"Invalid TOML in {self.path}: {exc}") from exc
        table = data.get(TOML_TABLE)
        if isinstance(table, dict):
            return table
        return data

    def _parse_json_or_yaml(self, raw_text: str) -> Any:
        try:
            return json.loads(raw_text)
        except json.JSONDecodeError:
            try:
                import yaml  # type: ignore
            except ImportError as exc:  # pragma: no cover - fallback path
                raise SettingsError("PyYAML is required to parse non-JSON YAML settings") from exc
            try:
                return yaml.safe_load(raw_text)  # type: ignore[no-any-return]
            except yaml.YAMLError as exc:
                raise SettingsError(f"Invalid YAML in {self.path}: {exc}") from exc

    def values(self) -> Mapping[str, Any]:
        return dict(self._load())

    def apply(self, base: BuildSettings) -> BuildSettings:
        return base.merged(self._load())


def load_settings(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> BuildSettings:
    """Resolve settings: defaults, then the settings file, then explicit overrides."""

    settings = BuildSettings()
    if path is not None:
        settings = SettingsFile.from_file(path).apply(settings)
    if overrides:
        settings = settings.merged(overrides)
    return settings
