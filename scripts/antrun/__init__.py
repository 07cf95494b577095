"""Run Ant-style targets configured in a Maven project."""

from .artifact_filter import filter_artifacts
from .classpath import PathExpression, compose_path, path_from_artifacts
from .config_writer import render, write
from .errors import (
    AntRunError,
    BuildFailure,
    ConfigurationError,
    RunnerExecutionError,
    UnresolvedArtifactError,
)
from .models import Artifact, ConfigurationNode, LocalRepository, MavenProject, Session
from .mojo import AntRunMojo, AntRunSettings, ExecutionState
from .properties import export_properties, import_properties
from .runner import EmbeddedRunner, Runner

__all__ = [
    "filter_artifacts", "PathExpression", "compose_path", "path_from_artifacts",
    "render", "write",
    "AntRunError", "BuildFailure", "ConfigurationError", "RunnerExecutionError", "UnresolvedArtifactError",
    "Artifact", "ConfigurationNode", "LocalRepository", "MavenProject", "Session",
    "AntRunMojo", "AntRunSettings", "ExecutionState",
    "export_properties", "import_properties",
    "EmbeddedRunner", "Runner",
]
