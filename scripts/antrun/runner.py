"""Runner interface and an in-process reference runner.

The orchestrator talks to a runner through :class:`Runner` only: a reference
table, a property table, task vocabulary registration, and loading and
executing a target from a build file.
"""

import inspect
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config_reader import parse_file
from .errors import AntRunError, RunnerExecutionError
from .models import ConfigurationNode
from .tasks import ANTLIB, MAVEN_TASKS

logger = logging.getLogger(__name__)

# Known vocabularies, by resource name.
VOCABULARIES = {
    ANTLIB: MAVEN_TASKS,
}

_PROPERTY_REF = re.compile(r"\$\{([^}]+)\}")


def _snake_case(name: str) -> str:
    """``projectDependenciesId`` → ``project_dependencies_id``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _task_kwargs(task_class, attributes: dict) -> dict:
    """Map build file attributes onto the keyword arguments of ``task_class``.

    Attribute names are case-insensitive, so ``projectDependenciesId`` and
    ``projectdependenciesid`` both set ``project_dependencies_id``. Names with
    no matching parameter are passed through in snake case and rejected by
    the constructor.
    """
    parameters = {
        name.replace("_", "").lower(): name
        for name in inspect.signature(task_class).parameters
    }
    kwargs = {}
    for key, value in attributes.items():
        if key.startswith("xmlns"):
            continue
        kwargs[parameters.get(key.replace("_", "").lower(), _snake_case(key))] = value
    return kwargs


class Runner(ABC):
    """What the orchestrator needs from a task runner.

    ``references`` maps reference ids to arbitrary objects; registering an id
    twice replaces the earlier object. ``properties`` is readable after the
    target has run.
    """

    def __init__(self):
        self.references = {}
        self.properties = {}
        self.base_dir: Optional[Path] = None

    def add_reference(self, refid: str, value):
        self.references[refid] = value

    def get_reference(self, refid: str):
        return self.references.get(refid)

    @abstractmethod
    def define_tasks(self, resource: str, uri: Optional[str] = None):
        """Register the tasks declared by ``resource``, under ``uri`` when given."""

    @abstractmethod
    def configure(self, build_file: Path, target_name: str):
        """Load ``build_file`` and bind its root element as target ``target_name``."""

    @abstractmethod
    def execute_target(self, name: str):
        """Run target ``name``.

        Raises:
            RunnerExecutionError: If the target or one of its tasks fails.
        """


class EmbeddedRunner(Runner):
    """Runs generated build files in-process.

    Only the vocabularies registered through :meth:`define_tasks` plus a
    minimal core (``echo``, ``property``, ``fail``) are understood; any other
    element fails the build at its location.
    """

    def __init__(self):
        super().__init__()
        self.targets = {}
        self._tasks = {}

    def define_tasks(self, resource: str, uri: Optional[str] = None):
        vocabulary = VOCABULARIES.get(resource)
        if vocabulary is None:
            raise RunnerExecutionError(f"Could not load definitions from resource {resource}. It could not be found.")
        logger.debug("Defining tasks from %s (uri=%s)", resource, uri)
        for name, task_class in vocabulary.items():
            self._tasks[(uri or None, name)] = task_class

    def configure(self, build_file: Path, target_name: str):
        self.targets[target_name] = parse_file(build_file)

    def expand(self, value: str) -> str:
        """Replace ``${name}`` references with property values; unknown ones are kept."""
        return _PROPERTY_REF.sub(lambda m: self.properties.get(m.group(1), m.group(0)), value)

    def execute_target(self, name: str):
        target = self.targets.get(name)
        if target is None:
            raise RunnerExecutionError(f'Target "{name}" does not exist in the project.')
        namespaces = {
            key[len("xmlns:"):]: value
            for key, value in target.attributes.items()
            if key.startswith("xmlns:")
        }
        for element in target.children:
            self._execute_element(element, namespaces)

    def _execute_element(self, element: ConfigurationNode, namespaces: dict):
        attributes = {key: self.expand(value) for key, value in element.attributes.items()}
        text = self.expand(element.value) if element.value else None
        prefix, _, local = element.name.rpartition(":")

        if not prefix and local in ("echo", "property", "fail"):
            getattr(self, f"_task_{local}")(attributes, text, element)
            return

        task_class = self._tasks.get((namespaces.get(prefix) if prefix else None, local))
        if task_class is None:
            raise RunnerExecutionError(
                f"Problem: failed to create task or type {element.name}",
                element.location,
            )
        kwargs = _task_kwargs(task_class, attributes)
        try:
            task = task_class(self.references, self.base_dir, **kwargs)
        except TypeError as exc:
            raise RunnerExecutionError(f"{element.name} doesn't support the given attributes: {exc}",
                                       element.location) from exc
        try:
            task.execute()
        except AntRunError as exc:
            raise RunnerExecutionError(exc.message, element.location) from exc

    def _task_echo(self, attributes, text, element):
        logger.info("[echo] %s", attributes.get("message", text or ""))

    def _task_property(self, attributes, text, element):
        name = attributes.get("name")
        if not name:
            raise RunnerExecutionError("You must specify the name attribute", element.location)
        if "location" in attributes:
            base = self.base_dir or Path.cwd()
            value = str((Path(base) / attributes["location"]).absolute())
        elif "value" in attributes:
            value = attributes["value"]
        else:
            raise RunnerExecutionError("You must specify value or location", element.location)
        # Properties are immutable: the first definition wins.
        self.properties.setdefault(name, value)

    def _task_fail(self, attributes, text, element):
        raise RunnerExecutionError(attributes.get("message", text or "No message"), element.location)
