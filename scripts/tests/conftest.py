"""Shared test fixtures for the antrun test suite."""

import textwrap
from pathlib import Path

import pytest

from antrun.models import Artifact, ConfigurationNode, LocalRepository, MavenProject, Session
from antrun.runner import Runner


class FakeRunner(Runner):
    """Records every call; optionally runs a hook or raises from ``execute_target``."""

    def __init__(self, failure=None, on_execute=None):
        super().__init__()
        self.failure = failure
        self.on_execute = on_execute
        self.calls = []
        self.build_file = None

    def define_tasks(self, resource, uri=None):
        self.calls.append(("define_tasks", resource, uri))

    def configure(self, build_file, target_name):
        self.calls.append(("configure", target_name))
        self.build_file = build_file

    def execute_target(self, name):
        self.calls.append(("execute_target", name))
        if self.on_execute is not None:
            self.on_execute(self)
        if self.failure is not None:
            raise self.failure


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Factory for FakeRunners with a failure or an execute hook."""
    return FakeRunner


@pytest.fixture
def tmp_pom(tmp_path):
    """Factory fixture that writes a pom.xml to a temp directory and returns the path."""
    def _write(content: str) -> Path:
        pom = tmp_path / "pom.xml"
        pom.write_text(textwrap.dedent(content), encoding="utf-8")
        return pom
    return _write


@pytest.fixture
def local_repository(tmp_path):
    return LocalRepository(tmp_path / "repository")


@pytest.fixture
def make_artifact(local_repository):
    """Factory for artifacts whose file exists in the temp local repository."""
    def _make(artifact_id, scope="compile", type="jar", version="1.0", classifier=None, resolved=True):
        artifact = Artifact(
            group_id="org.example",
            artifact_id=artifact_id,
            version=version,
            type=type,
            scope=scope,
            classifier=classifier,
        )
        if resolved:
            path = Path(local_repository.basedir) / local_repository.path_of(artifact)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"")
            artifact.file = path
        return artifact
    return _make


@pytest.fixture
def project(tmp_path, make_artifact):
    """A small jar project with a compile, a runtime and a test dependency."""
    return MavenProject(
        group_id="com.example",
        artifact_id="demo",
        version="1.0.0",
        name="Demo",
        basedir=tmp_path,
        file=tmp_path / "pom.xml",
        properties={"java.version": "21", "shared": "from-pom"},
        artifacts=[
            make_artifact("core", version="2.1"),
            make_artifact("driver", scope="runtime", version="3.0"),
            make_artifact("junit", scope="test", version="4.13"),
        ],
    )


@pytest.fixture
def session():
    return Session(user_properties={"shared": "from-cli"})


@pytest.fixture
def echo_target():
    target = ConfigurationNode("target", {"name": "main"})
    target.get_child("echo", create=True).set_attribute("message", "Hello")
    return target
