"""Maven-side data model classes.

Plain data structures for the project being built, its resolved artifacts,
the local repository, and the nested configuration tree handed over by the
user. The only behavior here is derived data (conflict ids, repository
layout paths, classpath element lists).
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError, Location, UnresolvedArtifactError

# Keys Maven uses to steer configuration merging. They are accepted as input
# but never written to a generated build file.
COMBINE_CHILDREN = "combine.children"
COMBINE_SELF = "combine.self"
RESERVED_ATTRIBUTES = (COMBINE_CHILDREN, COMBINE_SELF)

# XML Name, optionally qualified with a namespace prefix.
_XML_NAME = re.compile(r"^(?:[^\W\d][\w.\-]*:)?[^\W\d][\w.\-]*\Z")


def check_xml_name(name: str, what: str = "Element"):
    """Raise ConfigurationError unless ``name`` can be written as an XML element or attribute name.

    Args:
        name: The candidate name, e.g. ``echo`` or ``mvn:attachartifact``.
        what: How the name is referred to in the error message.

    Raises:
        ConfigurationError: If ``name`` is empty or not a valid XML name.
    """
    if not name or not name.strip():
        raise ConfigurationError(f"{what} with an empty name")
    if not _XML_NAME.match(name):
        raise ConfigurationError(f"{what} name '{name}' is not a valid XML name")


# Artifact type → file extension for the default repository layout.
TYPE_EXTENSIONS = {
    "test-jar": "jar",
    "maven-plugin": "jar",
    "ejb": "jar",
    "ejb-client": "jar",
    "java-source": "jar",
    "javadoc": "jar",
}

# Scopes that make up each classpath, in Maven's order.
COMPILE_SCOPES = ("compile", "provided", "system")
RUNTIME_SCOPES = ("compile", "runtime")


@dataclass
class Artifact:
    """A resolved Maven dependency.

    Attributes:
        group_id: Maven groupId (e.g. ``org.apache.commons``).
        artifact_id: Maven artifactId (e.g. ``commons-lang3``).
        version: Resolved version string.
        type: Artifact type such as jar, war, pom or test-jar.
        scope: Maven scope such as compile, runtime or test.
        classifier: Optional classifier (e.g. ``sources``, ``tests``).
        file: Resolved file on disk, or ``None`` if the artifact was not resolved.
    """
    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    scope: str = "compile"
    classifier: Optional[str] = None
    file: Optional[Path] = None

    @property
    def conflict_id(self) -> str:
        """``groupId:artifactId:type[:classifier]``, the key Maven uses to detect conflicts."""
        cid = f"{self.group_id}:{self.artifact_id}:{self.type}"
        if self.classifier:
            cid += f":{self.classifier}"
        return cid

    @property
    def id(self) -> str:
        """Full ``groupId:artifactId:type[:classifier]:version`` coordinates."""
        return f"{self.conflict_id}:{self.version}"

    @property
    def extension(self) -> str:
        return TYPE_EXTENSIONS.get(self.type, self.type)

    def __hash__(self):
        return hash((self.id, self.scope))


@dataclass
class LocalRepository:
    """The local Maven repository, laid out the default (Maven 2+) way."""
    basedir: Path
    repository_id: str = "local"

    @property
    def url(self) -> str:
        return Path(self.basedir).absolute().as_uri()

    def path_of(self, artifact: Artifact) -> str:
        """Relative path of an artifact inside the repository, using ``/`` separators.

        Example: ``org/apache/commons/commons-lang3/3.14.0/commons-lang3-3.14.0.jar``
        """
        name = f"{artifact.artifact_id}-{artifact.version}"
        if artifact.classifier:
            name += f"-{artifact.classifier}"
        return "/".join([
            artifact.group_id.replace(".", "/"),
            artifact.artifact_id,
            artifact.version,
            f"{name}.{artifact.extension}",
        ])

    def find(self, artifact: Artifact) -> Optional[Path]:
        """Return the artifact's file in this repository if it is present on disk."""
        candidate = Path(self.basedir) / self.path_of(artifact)
        return candidate if candidate.is_file() else None

    def __str__(self):
        return f"id: {self.repository_id}, url: {self.url}, layout: default"


@dataclass
class BuildLayout:
    """The ``<build>`` directories of a project, as absolute path strings."""
    directory: str
    output_directory: str
    test_output_directory: str
    source_directory: str
    test_source_directory: str

    @classmethod
    def defaults(cls, basedir: Path) -> "BuildLayout":
        """Maven's conventional layout relative to ``basedir``."""
        target = basedir / "target"
        return cls(
            directory=str(target),
            output_directory=str(target / "classes"),
            test_output_directory=str(target / "test-classes"),
            source_directory=str(basedir / "src" / "main" / "java"),
            test_source_directory=str(basedir / "src" / "test" / "java"),
        )


@dataclass
class MavenProject:
    """In-memory model of the project being built.

    Attributes:
        group_id: Maven groupId.
        artifact_id: Maven artifactId.
        version: Project version.
        packaging: Packaging type such as jar, pom or war.
        name: Human-readable name (defaults to the artifactId when read from a POM).
        description: ``<description>``, or ``None`` if the POM has none.
        basedir: Directory containing the POM.
        file: The POM file itself, if the project was read from disk.
        build: Build directories.
        properties: Project ``<properties>``; mutated in place by property import.
        artifacts: Resolved dependency set, in resolution order.
        attached_artifacts: Extra artifacts attached during the build.
    """
    group_id: str
    artifact_id: str
    version: str
    packaging: str = "jar"
    name: Optional[str] = None
    description: Optional[str] = None
    basedir: Path = field(default_factory=Path.cwd)
    file: Optional[Path] = None
    build: Optional[BuildLayout] = None
    properties: dict = field(default_factory=dict)
    artifacts: list = field(default_factory=list)
    attached_artifacts: list = field(default_factory=list)

    def __post_init__(self):
        if self.build is None:
            self.build = BuildLayout.defaults(Path(self.basedir))

    def compile_classpath_elements(self) -> list[str]:
        return [self.build.output_directory] + self._artifact_files(COMPILE_SCOPES)

    def runtime_classpath_elements(self) -> list[str]:
        return [self.build.output_directory] + self._artifact_files(RUNTIME_SCOPES)

    def test_classpath_elements(self) -> list[str]:
        return [self.build.test_output_directory, self.build.output_directory] + self._artifact_files(None)

    def _artifact_files(self, scopes) -> list[str]:
        files = []
        for artifact in self.artifacts:
            if scopes is not None and artifact.scope not in scopes:
                continue
            if artifact.file is None:
                raise UnresolvedArtifactError(artifact)
            files.append(str(artifact.file))
        return files


@dataclass
class Session:
    """The running build session; only the user (``-D``) properties matter here."""
    user_properties: dict = field(default_factory=dict)


@dataclass(eq=False)
class AntRunProject:
    """Stable handle on a :class:`MavenProject`.

    Registered alongside the plain project reference so that tasks which modify
    the project always reach the very same instance, even when the runner
    hands a copy of the plain reference to a sub-build.
    """
    maven_project: MavenProject


class ProjectHelper:
    """Attaches extra build outputs to a project."""

    def attach_artifact(self, project: MavenProject, type: str, classifier: Optional[str], file: Path) -> Artifact:
        artifact = Artifact(
            group_id=project.group_id,
            artifact_id=project.artifact_id,
            version=project.version,
            type=type,
            classifier=classifier,
            file=Path(file),
        )
        project.attached_artifacts.append(artifact)
        return artifact


@dataclass
class ConfigurationNode:
    """One element of a nested, attributed configuration tree.

    Attributes:
        name: Element name, possibly namespace-qualified (``mvn:attachartifact``).
        attributes: Attributes in insertion order.
        children: Child nodes in document order.
        value: Text content; only meaningful when the node has no children.
        location: Where the element was read from, when parsed from a file.
    """
    name: str
    attributes: dict = field(default_factory=dict)
    children: list = field(default_factory=list)
    value: Optional[str] = None
    location: Optional[Location] = field(default=None, compare=False, repr=False)

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: str):
        self.attributes[name] = value

    def attribute_names(self) -> list[str]:
        return list(self.attributes)

    def get_child(self, name: str, create: bool = False) -> Optional["ConfigurationNode"]:
        """Return the first child called ``name``, optionally appending a new one."""
        for child in self.children:
            if child.name == name:
                return child
        if create:
            return self.add_child(ConfigurationNode(name))
        return None

    def add_child(self, child: "ConfigurationNode") -> "ConfigurationNode":
        self.children.append(child)
        return child

    def validate(self):
        """Reject trees that cannot be written out as markup.

        Raises:
            ConfigurationError: If this node or any descendant has an empty name,
                or an element or attribute name that is not a valid XML name.
        """
        check_xml_name(self.name, "Configuration element")
        for key in self.attributes:
            check_xml_name(key, f"Attribute of element '{self.name}'")
        for child in self.children:
            child.validate()
