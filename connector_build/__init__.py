"""Containerized build of the connector and extraction of its output."""

from .models import BuildSettings, SettingsError, StepResult
from .pipeline import BuildContext, BuildPipeline, Step, StepFailed

__all__ = [
    "BuildContext",
    "BuildPipeline",
    "BuildSettings",
    "SettingsError",
    "Step",
    "StepFailed",
    "StepResult",
]
