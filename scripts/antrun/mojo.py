"""Runs a configured target against the Maven project.

Writes the target to a build file, registers the project's classpaths and
Maven objects with the runner, pushes properties in, runs the target and
pulls properties back out.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from . import config_writer
from .classpath import PathExpression, path_from_artifacts
from .errors import BuildFailure, ConfigurationError, RunnerExecutionError
from .models import (
    AntRunProject,
    ConfigurationNode,
    LocalRepository,
    MavenProject,
    ProjectHelper,
    Session,
    check_xml_name,
)
from .properties import DEFAULT_VERSIONS_PROPERTY_NAME, export_properties, import_properties
from .runner import Runner
from .tasks import (
    ANTLIB,
    DEFAULT_MAVEN_PROJECT_HELPER_REFID,
    DEFAULT_MAVEN_PROJECT_REF_REFID,
    DEFAULT_MAVEN_PROJECT_REFID,
    LOCAL_REPOSITORY_REFID,
    MAVEN_REFID_PREFIX,
)

logger = logging.getLogger(__name__)

DEFAULT_TARGET_NAME = config_writer.DEFAULT_TARGET_NAME
TASK_URI = config_writer.TASK_URI

# Namespace users may declare on <target> to mark the Maven tasks' prefix.
ANTRUN_NAMESPACE = "http://maven.apache.org/ANTRUN"

SKIP_PROPERTY = "maven.antrun.skip"


class ExecutionState(Enum):
    SKIPPED = "skipped"
    NO_TARGET = "no-target"
    SUCCEEDED = "succeeded"
    FAILED_TOLERATED = "failed-tolerated"


@dataclass
class AntRunSettings:
    """Parameters of one execution.

    Attributes:
        target: The ``<target>`` configuration tree; nothing runs without it.
        skip: Skip the execution entirely.
        property_prefix: Prepended to derived project and dependency property names.
        custom_task_prefix: Prefix of the Maven tasks; discovered from the target when unset.
        versions_property_name: Property holding all dependency versions.
        export_ant_properties: Copy runner properties back into the project.
        fail_on_error: Fail the build when the target fails.
        output_directory: Where build files are written; defaults to
            ``<build directory>/antrun``.
        plugin_artifacts: Dependencies of the plugin itself, exposed as ``maven.plugin.classpath``.
        tasks: Removed in favor of ``target``; must stay unset.
        source_root: Removed; must stay unset.
        test_source_root: Removed; must stay unset.
    """
    target: Optional[ConfigurationNode] = None
    skip: bool = False
    property_prefix: Optional[str] = ""
    custom_task_prefix: Optional[str] = None
    versions_property_name: str = DEFAULT_VERSIONS_PROPERTY_NAME
    export_ant_properties: bool = False
    fail_on_error: bool = True
    output_directory: Optional[Path] = None
    plugin_artifacts: list = field(default_factory=list)
    tasks: Optional[ConfigurationNode] = None
    source_root: Optional[Path] = None
    test_source_root: Optional[Path] = None


def _check_removed_parameter(value, name: str, replacement: str):
    if value is not None:
        raise ConfigurationError(
            f"You are using '{name}' which has been removed from the maven-antrun-plugin. "
            f"Please use '{replacement}' and refer to the >>Major Version Upgrade to version 3.0.0<< "
            "on the plugin site."
        )


def effective_target_name(target: ConfigurationNode) -> str:
    """The target's ``name`` attribute, or ``main`` when it is absent or empty."""
    return target.get_attribute("name", DEFAULT_TARGET_NAME) or DEFAULT_TARGET_NAME


def find_task_prefix(target: ConfigurationNode, custom_task_prefix: Optional[str] = None) -> Optional[str]:
    """Prefix under which the target uses the Maven tasks, if any.

    An explicit ``custom_task_prefix`` wins; otherwise the first
    ``xmlns:<prefix>="http://maven.apache.org/ANTRUN"`` declaration on the
    target supplies it.
    """
    if custom_task_prefix:
        return custom_task_prefix
    for name in target.attribute_names():
        if name.startswith("xmlns:") and target.get_attribute(name) == ANTRUN_NAMESPACE:
            return name[len("xmlns:"):]
    return None


def find_fragment(error: RunnerExecutionError) -> Optional[str]:
    """The build file line where ``error`` happened, formatted for the failure message.

    Returns ``None`` when the location is unknown or the file cannot be read.
    """
    location = error.location
    if location is None or not location.file_name:
        return None
    build_file = Path(location.file_name)
    if not build_file.exists():
        return None
    try:
        with open(build_file, encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                if number == location.line_number:
                    return (
                        f"around Ant part ...{line.strip()}... @ "
                        f"{location.line_number}:{location.column_number} in {build_file.absolute()}"
                    )
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Could not read %s: %s", build_file, exc)
    return None


class AntRunMojo:
    """Bridges one Maven project to a runner for a single execution.

    The runner's reference table receives:

    * ``maven.compile.classpath`` (also as ``maven.dependency.classpath``),
      ``maven.runtime.classpath``, ``maven.test.classpath`` and
      ``maven.plugin.classpath`` path expressions;
    * ``maven.project``: the project object itself. A runner may hand copies
      of it to nested builds, so changes made through it can be lost;
    * ``maven.project.ref``: an :class:`AntRunProject` wrapping the project,
      which always leads back to this very instance;
    * ``maven.project.helper`` and ``maven.local.repository``.
    """

    def __init__(
        self,
        project: MavenProject,
        session: Session,
        runner: Runner,
        local_repository: LocalRepository,
        settings: Optional[AntRunSettings] = None,
        project_helper: Optional[ProjectHelper] = None,
    ):
        self.project = project
        self.session = session
        self.runner = runner
        self.local_repository = local_repository
        self.settings = settings or AntRunSettings()
        self.project_helper = project_helper or ProjectHelper()

    @property
    def output_directory(self) -> Path:
        if self.settings.output_directory is not None:
            return Path(self.settings.output_directory)
        return Path(self.project.build.directory) / "antrun"

    def build_file_for(self, target_name: str) -> Path:
        return self.output_directory / f"build-{target_name}.xml"

    def execute(self) -> ExecutionState:
        """Run the configured target.

        Returns:
            How the execution ended.

        Raises:
            ConfigurationError: If a removed parameter is set.
            BuildFailure: If the target fails and ``fail_on_error`` is set, or
                on any other error.
        """
        settings = self.settings
        _check_removed_parameter(settings.tasks, "tasks", "target")
        _check_removed_parameter(settings.source_root, "sourceRoot", "the build-helper-maven-plugin")
        _check_removed_parameter(settings.test_source_root, "testSourceRoot", "the build-helper-maven-plugin")

        if settings.skip or str(self.session.user_properties.get(SKIP_PROPERTY, "")).lower() == "true":
            logger.info("Skipping Antrun execution")
            return ExecutionState.SKIPPED

        if settings.target is None:
            logger.info("No Ant target defined - SKIPPED")
            return ExecutionState.NO_TARGET

        target = settings.target
        target_name = effective_target_name(target)
        try:
            build_file = self._write_build_file(target, target_name)
            self.runner.configure(build_file, target_name)
            self.runner.base_dir = Path(self.project.basedir)

            self._add_references()
            self._init_maven_tasks(target)

            export_properties(
                self.project,
                self.session,
                self.runner.properties,
                self.local_repository,
                settings.property_prefix,
                settings.versions_property_name,
            )

            logger.info("Executing tasks")
            self.runner.execute_target(target_name)
            logger.info("Executed tasks")

            import_properties(self.runner.properties, self.project.properties, settings.export_ant_properties)
        except RunnerExecutionError as exc:
            message = f"An Ant BuildException has occurred: {exc.message}"
            fragment = find_fragment(exc)
            if fragment is not None:
                message += "\n" + fragment
            if not settings.fail_on_error:
                logger.info("%s", message, exc_info=exc)
                return ExecutionState.FAILED_TOLERATED
            raise BuildFailure(message) from exc
        except Exception as exc:
            raise BuildFailure(f"Error executing Ant tasks: {exc}") from exc
        return ExecutionState.SUCCEEDED

    def _write_build_file(self, target: ConfigurationNode, target_name: str) -> Path:
        target.validate()
        # The target name becomes the root element and part of the file name.
        check_xml_name(target_name, "Target")
        prefix = find_task_prefix(target, self.settings.custom_task_prefix)
        return config_writer.write(target, self.build_file_for(target_name), prefix or "", target_name)

    def _add_references(self):
        runner = self.runner
        project = self.project

        compile_path = PathExpression(project.compile_classpath_elements())
        # maven.dependency.classpath is the older name of maven.compile.classpath.
        runner.add_reference(MAVEN_REFID_PREFIX + "dependency.classpath", compile_path)
        runner.add_reference(MAVEN_REFID_PREFIX + "compile.classpath", compile_path)
        runner.add_reference(
            MAVEN_REFID_PREFIX + "runtime.classpath", PathExpression(project.runtime_classpath_elements())
        )
        runner.add_reference(
            MAVEN_REFID_PREFIX + "test.classpath", PathExpression(project.test_classpath_elements())
        )
        runner.add_reference(
            MAVEN_REFID_PREFIX + "plugin.classpath", path_from_artifacts(self.settings.plugin_artifacts)
        )

        runner.add_reference(DEFAULT_MAVEN_PROJECT_REFID, project)
        runner.add_reference(DEFAULT_MAVEN_PROJECT_REF_REFID, AntRunProject(project))
        runner.add_reference(DEFAULT_MAVEN_PROJECT_HELPER_REFID, self.project_helper)
        runner.add_reference(LOCAL_REPOSITORY_REFID, self.local_repository)

    def _init_maven_tasks(self, target: ConfigurationNode):
        logger.debug("Initialize Maven Ant Tasks")
        uri = TASK_URI if find_task_prefix(target, self.settings.custom_task_prefix) is not None else None
        self.runner.define_tasks(ANTLIB, uri)
