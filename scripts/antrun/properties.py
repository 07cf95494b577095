"""Property exchange between the Maven project and the runner.

The two directions deliberately use different collision rules:

* export (Maven → runner) always overwrites runner properties;
* import (runner → Maven) never overwrites a property the project already
  has, because project state is authoritative once the runner has finished.
"""

import logging
import os
from typing import Optional

from .errors import UnresolvedArtifactError
from .models import LocalRepository, MavenProject, Session

logger = logging.getLogger(__name__)

DEFAULT_VERSIONS_PROPERTY_NAME = "maven.project.dependencies.versions"


def _project_properties(project: MavenProject, local_repository: LocalRepository) -> list[tuple[str, str]]:
    """The derived ``project.*`` and repository properties, unprefixed."""
    build = project.build
    props = [
        ("project.groupId", project.group_id),
        ("project.artifactId", project.artifact_id),
        ("project.name", project.name),
    ]
    if project.description is not None:
        props.append(("project.description", project.description))
    props += [
        ("project.version", project.version),
        ("project.packaging", project.packaging),
        ("project.build.directory", build.directory),
        ("project.build.outputDirectory", build.output_directory),
        ("project.build.testOutputDirectory", build.test_output_directory),
        ("project.build.sourceDirectory", build.source_directory),
        ("project.build.testSourceDirectory", build.test_source_directory),
        ("localRepository", str(local_repository)),
        ("settings.localRepository", str(local_repository.basedir)),
    ]
    return props


def dependency_properties(project: MavenProject, prefix: str = "") -> dict:
    """Map ``<prefix><conflictId>`` to the resolved file of every dependency.

    Raises:
        UnresolvedArtifactError: If any dependency has no resolved file.
    """
    result = {}
    for artifact in project.artifacts:
        if artifact.file is None:
            raise UnresolvedArtifactError(artifact)
        result[prefix + artifact.conflict_id] = str(artifact.file)
    return result


def dependency_versions(project: MavenProject) -> str:
    """All dependency versions, each followed by the path separator."""
    return "".join(f"{artifact.version}{os.pathsep}" for artifact in project.artifacts)


def export_properties(
    project: MavenProject,
    session: Session,
    runner_properties: dict,
    local_repository: LocalRepository,
    prefix: Optional[str] = "",
    versions_property_name: str = DEFAULT_VERSIONS_PROPERTY_NAME,
):
    """Copy the project's properties into the runner, overwriting what is there.

    Session user properties take precedence over project properties with the
    same key. Derived ``project.*`` properties, the local repository, one
    property per dependency and the dependency versions list are added on top.

    Args:
        project: The Maven project.
        session: The build session providing user property overrides.
        runner_properties: The runner's property table, updated in place.
        local_repository: The local repository.
        prefix: String prepended to derived and per-dependency property names.
        versions_property_name: Key of the dependency versions list (never prefixed).

    Raises:
        UnresolvedArtifactError: If a dependency has no resolved file. Nothing is
            written to the runner in that case.
    """
    prefix = prefix or ""
    dependencies = dependency_properties(project, prefix)

    user_props = session.user_properties
    for key in list(project.properties) + [k for k in user_props if k not in project.properties]:
        runner_properties[key] = str(user_props.get(key, project.properties.get(key)))

    # Tasks running straight from the generated build see the POM as their build file.
    if project.file is not None:
        runner_properties["ant.file"] = str(project.file.absolute())

    logger.debug("Setting properties with prefix: %s", prefix)
    for key, value in _project_properties(project, local_repository):
        runner_properties[prefix + key] = "" if value is None else str(value)

    runner_properties.update(dependencies)
    runner_properties[versions_property_name] = dependency_versions(project)


def import_properties(runner_properties: dict, project_properties: dict, enabled: bool) -> list[str]:
    """Copy runner properties back into the project without overwriting any.

    Args:
        runner_properties: The runner's property table after execution.
        project_properties: The project's properties, updated in place.
        enabled: Whether properties are propagated at all.

    Returns:
        Keys skipped because the project already defines them.
    """
    if not enabled:
        return []

    logger.debug("Propagated Ant properties to Maven properties")
    skipped = []
    for key, value in runner_properties.items():
        existing = project_properties.get(key)
        if existing is not None:
            logger.debug(
                "Ant property '%s=%s' clashes with an existing Maven property, "
                "SKIPPING this Ant property propagation.", key, existing,
            )
            skipped.append(key)
            continue
        project_properties[key] = str(value)
    return skipped
