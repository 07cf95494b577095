"""Exception types raised while bridging a Maven build to an Ant-style runner."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


class AntRunError(Exception):
    """Base exception for the package."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(AntRunError):
    """A required input is missing or invalid.

    Raised for absent task parameters, missing registry references, removed
    plugin parameters, and configuration trees that cannot be serialized.
    """

    pass


class UnresolvedArtifactError(AntRunError):
    """An artifact has no resolved file where a path must be derived from it."""

    def __init__(self, artifact):
        super().__init__(
            f"Attempted to access the artifact {artifact.id}; which has not yet been resolved",
            {"artifact": artifact.id},
        )
        self.artifact = artifact


@dataclass
class Location:
    """Position of an element in a build file. Line and column are 1-based."""
    file_name: Optional[str] = None
    line_number: int = 0
    column_number: int = 0

    def __str__(self):
        if not self.file_name:
            return ""
        return f"{self.file_name}:{self.line_number}:{self.column_number}: "


class RunnerExecutionError(AntRunError):
    """The runner reported a failure while executing a target."""

    def __init__(self, message: str, location: Optional[Location] = None):
        super().__init__(message, {"location": str(location) if location else None})
        self.location = location

    def __str__(self):
        return f"{self.location or ''}{self.message}"


class BuildFailure(AntRunError):
    """Build-fatal error raised by the orchestrator; the cause is chained."""

    pass
