"""Maven tasks available to generated build files.

``dependencyfilesets`` exposes the project dependencies as file sets and
``attachartifact`` attaches a file produced by the build to the project.
Both read the Maven objects the orchestrator registers in the runner's
reference table.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .artifact_filter import filter_artifacts
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Resource name of the Maven task vocabulary.
ANTLIB = "org/apache/maven/ant/tasks/antlib.xml"

# Reference ids registered by the orchestrator.
MAVEN_REFID_PREFIX = "maven."
DEFAULT_MAVEN_PROJECT_REFID = MAVEN_REFID_PREFIX + "project"
DEFAULT_MAVEN_PROJECT_REF_REFID = MAVEN_REFID_PREFIX + "project.ref"
DEFAULT_MAVEN_PROJECT_HELPER_REFID = MAVEN_REFID_PREFIX + "project.helper"
LOCAL_REPOSITORY_REFID = MAVEN_REFID_PREFIX + "local.repository"

DEFAULT_PROJECT_DEPENDENCIES_ID = "maven.project.dependencies"


@dataclass
class FileSet:
    """A set of files: either a single ``file`` or ``dir`` with include/exclude patterns."""
    dir: Optional[Path] = None
    file: Optional[Path] = None
    includes: list = field(default_factory=list)
    excludes: list = field(default_factory=list)


class Task:
    """Base class for tasks; ``references`` is the runner's reference table."""

    def __init__(self, references: dict, base_dir: Optional[Path] = None):
        self.references = references
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def _require_reference(self, refid: str, what: str):
        """Look up ``refid`` in the reference table.

        Raises:
            ConfigurationError: If nothing is registered under ``refid``.
        """
        reference = self.references.get(refid)
        if reference is None:
            raise ConfigurationError(f"{what} reference not found: {refid}")
        return reference

    def execute(self):
        """Run the task.

        Raises:
            ConfigurationError: If a required parameter or reference is missing.
        """
        raise NotImplementedError


class DependencyFilesetsTask(Task):
    """Create a file set for each dependency of the project, and one with all of them.

    Attributes:
        prefix: Prepended to every registered reference id.
        scopes: Comma-separated scopes to include (all when empty).
        types: Comma-separated types to include (all when empty).
        project_dependencies_id: Reference id of the aggregate file set.
        maven_project_id: Reference id of the Maven project.
    """

    def __init__(
        self,
        references: dict,
        base_dir: Optional[Path] = None,
        prefix: Optional[str] = None,
        scopes: Optional[str] = None,
        types: Optional[str] = None,
        project_dependencies_id: str = DEFAULT_PROJECT_DEPENDENCIES_ID,
        maven_project_id: str = DEFAULT_MAVEN_PROJECT_REFID,
    ):
        super().__init__(references, base_dir)
        self.prefix = prefix or ""
        self.scopes = scopes
        self.types = types
        self.project_dependencies_id = project_dependencies_id
        self.maven_project_id = maven_project_id

    def filter_artifacts(self, artifacts):
        """Keep the artifacts matching this task's ``scopes`` and ``types``.

        Args:
            artifacts: The project's resolved dependencies.

        Returns:
            The matching artifacts in their original order; ``artifacts``
            itself when neither filter is set.
        """
        return filter_artifacts(artifacts, self.scopes, self.types)

    def execute(self):
        """Register one file set per selected dependency and the aggregate set.

        Per-dependency sets are stored under ``<prefix><conflict id>``, the
        aggregate under ``<prefix><project_dependencies_id>``.
        """
        project = self._require_reference(self.maven_project_id, "Maven project")
        local_repository = self._require_reference(LOCAL_REPOSITORY_REFID, "Local repository")

        artifacts = self.filter_artifacts(project.artifacts)
        dependencies = FileSet(dir=Path(local_repository.basedir))
        if not artifacts:
            # Keep the set empty without scanning the whole local repository.
            dependencies.includes.append(".")
            dependencies.excludes.append("**")

        for artifact in artifacts:
            dependencies.includes.append(local_repository.path_of(artifact))
            self.references[self.prefix + artifact.conflict_id] = FileSet(file=artifact.file)

        self.references[self.prefix + self.project_dependencies_id] = dependencies


class AttachArtifactTask(Task):
    """Attach a file to the Maven project as an extra artifact.

    Attributes:
        file: The file to attach; resolved against the base directory.
        type: Artifact type; defaults to the file extension.
        classifier: Optional classifier.
        maven_project_ref_id: Reference id of the stable project handle.
        maven_project_helper_ref_id: Reference id of the project helper.
    """

    def __init__(
        self,
        references: dict,
        base_dir: Optional[Path] = None,
        file: Optional[str] = None,
        type: Optional[str] = None,
        classifier: Optional[str] = None,
        maven_project_ref_id: str = DEFAULT_MAVEN_PROJECT_REF_REFID,
        maven_project_helper_ref_id: str = DEFAULT_MAVEN_PROJECT_HELPER_REFID,
    ):
        super().__init__(references, base_dir)
        self.file = self.base_dir / file if file else None
        self.type = type
        self.classifier = classifier
        self.maven_project_ref_id = maven_project_ref_id
        self.maven_project_helper_ref_id = maven_project_helper_ref_id

    def execute(self):
        """Attach ``file`` to the project through the project helper.

        Raises:
            ConfigurationError: If ``file`` is unset or missing, or a reference
                is not registered.
        """
        if self.file is None:
            raise ConfigurationError("File is a required parameter.")
        if not self.file.exists():
            raise ConfigurationError(f"File does not exist: {self.file}")

        project_ref = self._require_reference(self.maven_project_ref_id, "Maven project")
        artifact_type = self.type or self.file.suffix.lstrip(".")
        helper = self._require_reference(self.maven_project_helper_ref_id, "Maven project helper")

        logger.debug("Attaching %s as an attached artifact", self.file)
        helper.attach_artifact(project_ref.maven_project, artifact_type, self.classifier, self.file)


# Task name → task class, as declared by the vocabulary resource.
MAVEN_TASKS = {
    "attachartifact": AttachArtifactTask,
    "dependencyfilesets": DependencyFilesetsTask,
}
