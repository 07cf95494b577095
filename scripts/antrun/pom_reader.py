"""POM reading: the project model and the antrun plugin executions.

The project model is read with ElementTree, trying each element with and
without the POM namespace. Plugin configuration is read as configuration
trees instead, so that ``<target>`` keeps its namespace prefixes and
``xmlns:*`` declarations exactly as written.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config_reader import child_text, find_path, parse_file
from .errors import ConfigurationError
from .models import Artifact, BuildLayout, ConfigurationNode, MavenProject
from .mojo import AntRunSettings
from .properties import DEFAULT_VERSIONS_PROPERTY_NAME

# XML namespace used by Maven POM files (POM model version 4.0.0).
NS = {"m": "http://maven.apache.org/POM/4.0.0"}

ANTRUN_PLUGIN_ARTIFACT_ID = "maven-antrun-plugin"

_EXPRESSION = re.compile(r"\$\{(.+?)\}")


def _find(el, tag, ns=NS):
    """Find a direct child XML element, trying with and without the Maven namespace."""
    result = el.find(f"m:{tag}", ns)
    if result is not None:
        return result
    return el.find(tag)


def _findall(el, tag, ns=NS):
    return list(el.findall(f"m:{tag}", ns)) + list(el.findall(tag))


def _text(el, tag, ns=NS):
    """Stripped text of a child element, or ``None`` if it is missing or empty."""
    child = _find(el, tag, ns)
    if child is not None and child.text:
        return child.text.strip()
    return None


def interpolate(value: Optional[str], properties: dict, _depth: int = 0) -> Optional[str]:
    """Replace ``${name}`` expressions in ``value`` from ``properties``.

    Unknown expressions are left in place. Values that themselves contain
    expressions are expanded too, up to a depth of 10 to survive cycles.
    """
    if not value or _depth > 10:
        return value

    def _lookup(match):
        name = match.group(1)
        if name in properties:
            return interpolate(properties[name], properties, _depth + 1)
        return match.group(0)

    return _EXPRESSION.sub(_lookup, value)


def _build_layout(build_el, basedir: Path, properties: dict) -> BuildLayout:
    layout = BuildLayout.defaults(basedir)
    if build_el is None:
        return layout

    def _dir(tag, default):
        value = interpolate(_text(build_el, tag), properties)
        if not value:
            return default
        return str(basedir / value)

    # The other directories are commonly expressed relative to this one.
    layout.directory = _dir("directory", layout.directory)
    properties["project.build.directory"] = layout.directory
    layout.output_directory = _dir("outputDirectory", str(Path(layout.directory) / "classes"))
    layout.test_output_directory = _dir("testOutputDirectory", str(Path(layout.directory) / "test-classes"))
    layout.source_directory = _dir("sourceDirectory", layout.source_directory)
    layout.test_source_directory = _dir("testSourceDirectory", layout.test_source_directory)
    return layout


def parse_project(pom_path: Path) -> MavenProject:
    """Parse a ``pom.xml`` into a MavenProject.

    Dependencies become artifacts without a resolved file; callers that need
    files attach them afterwards. groupId and version are inherited from the
    parent when the POM does not declare them, and the name defaults to the
    artifactId.

    Args:
        pom_path: Filesystem path to the pom.xml file.

    Returns:
        A populated MavenProject whose ``basedir`` is the POM's directory.
    """
    pom_path = Path(pom_path).absolute()
    basedir = pom_path.parent
    root = ET.parse(pom_path).getroot()

    parent_el = _find(root, "parent")
    parent_gid = parent_ver = None
    if parent_el is not None:
        parent_gid = _text(parent_el, "groupId")
        parent_ver = _text(parent_el, "version")

    group_id = _text(root, "groupId") or parent_gid or ""
    artifact_id = _text(root, "artifactId") or ""
    version = _text(root, "version") or parent_ver or ""

    properties = {}
    props_el = _find(root, "properties")
    if props_el is not None:
        for child in props_el:
            tag = child.tag.split("}")[-1] if "}" in child.tag else child.tag
            properties[tag] = (child.text or "").strip()

    # Expression context: the project's own properties plus the usual project.* values.
    context = dict(properties)
    context.update({
        "project.groupId": group_id,
        "project.artifactId": artifact_id,
        "project.version": version,
        "project.basedir": str(basedir),
        "basedir": str(basedir),
    })

    artifacts = []
    deps_el = _find(root, "dependencies")
    if deps_el is not None:
        for dep_el in _findall(deps_el, "dependency"):
            artifacts.append(Artifact(
                group_id=interpolate(_text(dep_el, "groupId"), context) or "",
                artifact_id=interpolate(_text(dep_el, "artifactId"), context) or "",
                version=interpolate(_text(dep_el, "version"), context) or "",
                type=_text(dep_el, "type") or "jar",
                scope=_text(dep_el, "scope") or "compile",
                classifier=_text(dep_el, "classifier"),
            ))

    return MavenProject(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        packaging=_text(root, "packaging") or "jar",
        name=_text(root, "name") or artifact_id,
        description=_text(root, "description"),
        basedir=basedir,
        file=pom_path,
        build=_build_layout(_find(root, "build"), basedir, context),
        properties=properties,
        artifacts=artifacts,
    )


@dataclass
class AntrunExecution:
    """One ``<execution>`` of the antrun plugin.

    Attributes:
        execution_id: The execution ``<id>``; ``default-cli`` for plugin-level configuration.
        phase: Lifecycle phase the execution is bound to, if any.
        goals: Goals listed by the execution.
        settings: Parameters for :class:`~antrun.mojo.AntRunMojo`.
    """
    execution_id: str
    phase: Optional[str] = None
    goals: list = field(default_factory=list)
    settings: AntRunSettings = field(default_factory=AntRunSettings)


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value not in ("true", "false"):
        raise ConfigurationError(f"Expected true or false but got '{value}'")
    return value == "true"


def _merge_configuration(plugin_config: Optional[ConfigurationNode],
                         execution_config: Optional[ConfigurationNode]) -> ConfigurationNode:
    """Execution configuration overrides plugin configuration, parameter by parameter."""
    merged = ConfigurationNode("configuration")
    for config in (plugin_config, execution_config):
        if config is None:
            continue
        for child in config.children:
            existing = merged.get_child(child.name)
            if existing is not None:
                merged.children.remove(existing)
            merged.add_child(child)
    return merged


def settings_from_configuration(config: ConfigurationNode, properties: Optional[dict] = None) -> AntRunSettings:
    """Map a plugin ``<configuration>`` block onto AntRunSettings.

    Scalar parameters are interpolated against ``properties``; the ``<target>``
    tree is passed on untouched.
    """
    properties = properties or {}

    def _param(name):
        return interpolate(child_text(config, name), properties)

    source_root = _param("sourceRoot")
    test_source_root = _param("testSourceRoot")
    return AntRunSettings(
        target=config.get_child("target"),
        skip=_as_bool(_param("skip"), False),
        property_prefix=_param("propertyPrefix") or "",
        custom_task_prefix=_param("customTaskPrefix"),
        versions_property_name=_param("versionsPropertyName") or DEFAULT_VERSIONS_PROPERTY_NAME,
        export_ant_properties=_as_bool(_param("exportAntProperties"), False),
        fail_on_error=_as_bool(_param("failOnError"), True),
        tasks=config.get_child("tasks"),
        source_root=Path(source_root) if source_root else None,
        test_source_root=Path(test_source_root) if test_source_root else None,
    )


def find_antrun_executions(pom_path: Path, properties: Optional[dict] = None) -> list[AntrunExecution]:
    """List the antrun plugin executions declared under ``<build><plugins>``.

    A plugin-level ``<configuration>`` applies to every execution; when the
    plugin declares no executions it yields a single ``default-cli`` one.

    Args:
        pom_path: Filesystem path to the pom.xml file.
        properties: Values for ``${...}`` expressions in scalar parameters.

    Returns:
        Executions in declaration order; empty if the plugin is not configured.
    """
    pom = parse_file(pom_path)
    plugins = find_path(pom, "build", "plugins")
    if plugins is None:
        return []

    result = []
    for plugin in plugins.children:
        if plugin.name != "plugin" or child_text(plugin, "artifactId") != ANTRUN_PLUGIN_ARTIFACT_ID:
            continue
        plugin_config = plugin.get_child("configuration")
        executions = plugin.get_child("executions")
        execution_nodes = [e for e in executions.children if e.name == "execution"] if executions is not None else []

        if not execution_nodes:
            if plugin_config is not None:
                merged = _merge_configuration(plugin_config, None)
                result.append(AntrunExecution("default-cli", settings=settings_from_configuration(merged, properties)))
            continue

        for execution in execution_nodes:
            goals_node = execution.get_child("goals")
            goals = [g.value for g in goals_node.children if g.value] if goals_node is not None else []
            merged = _merge_configuration(plugin_config, execution.get_child("configuration"))
            result.append(AntrunExecution(
                execution_id=child_text(execution, "id") or "default",
                phase=child_text(execution, "phase"),
                goals=goals,
                settings=settings_from_configuration(merged, properties),
            ))
    return result
