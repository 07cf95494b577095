"""Tests for mojo.py — the execution sequence."""

import pytest

from antrun.classpath import PathExpression
from antrun.config_reader import parse_string
from antrun.errors import BuildFailure, ConfigurationError, Location, RunnerExecutionError
from antrun.models import AntRunProject, ConfigurationNode, Session
from antrun.mojo import (
    TASK_URI,
    AntRunMojo,
    AntRunSettings,
    ExecutionState,
    effective_target_name,
    find_fragment,
    find_task_prefix,
)
from antrun.runner import EmbeddedRunner
from antrun.tasks import ANTLIB


def _mojo(project, session, runner, local_repository, **settings):
    return AntRunMojo(project, session, runner, local_repository, AntRunSettings(**settings))


class TestEarlyExits:
    def test_skip(self, project, session, fake_runner, local_repository, echo_target):
        mojo = _mojo(project, session, fake_runner, local_repository, target=echo_target, skip=True)
        assert mojo.execute() is ExecutionState.SKIPPED
        assert fake_runner.calls == []

    def test_skip_user_property(self, project, fake_runner, local_repository, echo_target):
        session = Session({"maven.antrun.skip": "true"})
        mojo = _mojo(project, session, fake_runner, local_repository, target=echo_target)
        assert mojo.execute() is ExecutionState.SKIPPED

    def test_no_target(self, project, session, fake_runner, local_repository, tmp_path):
        mojo = _mojo(project, session, fake_runner, local_repository)
        assert mojo.execute() is ExecutionState.NO_TARGET
        assert not (tmp_path / "target").exists()

    @pytest.mark.parametrize("parameter, name", [
        ("tasks", "tasks"),
        ("source_root", "sourceRoot"),
        ("test_source_root", "testSourceRoot"),
    ])
    def test_removed_parameters(self, project, session, fake_runner, local_repository, echo_target,
                                parameter, name):
        value = ConfigurationNode("tasks") if parameter == "tasks" else project.basedir
        mojo = _mojo(project, session, fake_runner, local_repository, target=echo_target, **{parameter: value})
        with pytest.raises(ConfigurationError, match=f"You are using '{name}' which has been removed"):
            mojo.execute()


class TestSequence:
    def test_calls_in_order(self, project, session, fake_runner, local_repository, echo_target):
        state = _mojo(project, session, fake_runner, local_repository, target=echo_target).execute()
        assert state is ExecutionState.SUCCEEDED
        assert fake_runner.calls == [
            ("configure", "main"),
            ("define_tasks", ANTLIB, None),
            ("execute_target", "main"),
        ]

    def test_build_file_location(self, project, session, fake_runner, local_repository, echo_target, tmp_path):
        _mojo(project, session, fake_runner, local_repository, target=echo_target).execute()
        build_file = tmp_path / "target" / "antrun" / "build-main.xml"
        assert fake_runner.build_file == build_file
        assert '<echo message="Hello"/>' in build_file.read_text()

    def test_output_directory_override(self, project, session, fake_runner, local_repository, echo_target,
                                       tmp_path):
        out = tmp_path / "elsewhere"
        _mojo(project, session, fake_runner, local_repository, target=echo_target, output_directory=out).execute()
        assert fake_runner.build_file == out / "build-main.xml"

    def test_named_target(self, project, session, fake_runner, local_repository):
        target = ConfigurationNode("target", {"name": "package"})
        _mojo(project, session, fake_runner, local_repository, target=target).execute()
        assert ("execute_target", "package") in fake_runner.calls
        assert fake_runner.build_file.name == "build-package.xml"

    def test_empty_target_name_falls_back_to_main(self, project, session, fake_runner, local_repository):
        target = ConfigurationNode("target", {"name": ""})
        _mojo(project, session, fake_runner, local_repository, target=target).execute()
        assert ("execute_target", "main") in fake_runner.calls
        assert '<main name="main"/>' in fake_runner.build_file.read_text()

    def test_regeneration_overwrites(self, project, session, local_repository, echo_target):
        first, second = EmbeddedRunner(), EmbeddedRunner()
        _mojo(project, session, first, local_repository, target=echo_target).execute()
        echo_target.get_child("echo").set_attribute("message", "Again")
        _mojo(project, session, second, local_repository, target=echo_target).execute()
        build_file = project.basedir / "target" / "antrun" / "build-main.xml"
        assert 'message="Again"' in build_file.read_text()
        assert len(list(build_file.parent.iterdir())) == 1

    def test_references(self, project, session, fake_runner, local_repository, echo_target):
        _mojo(project, session, fake_runner, local_repository, target=echo_target).execute()
        refs = fake_runner.references
        assert refs["maven.compile.classpath"] is refs["maven.dependency.classpath"]
        assert isinstance(refs["maven.runtime.classpath"], PathExpression)
        assert str(project.artifacts[2].file) in refs["maven.test.classpath"].elements
        assert str(project.artifacts[2].file) not in refs["maven.compile.classpath"].elements
        assert str(refs["maven.plugin.classpath"]) == ""
        assert refs["maven.project"] is project
        assert isinstance(refs["maven.project.ref"], AntRunProject)
        assert refs["maven.project.ref"].maven_project is project
        assert refs["maven.local.repository"] is local_repository
        assert "maven.project.helper" in refs

    def test_plugin_classpath(self, project, session, fake_runner, local_repository, echo_target, make_artifact):
        plugin_dep = make_artifact("ant-contrib")
        _mojo(project, session, fake_runner, local_repository, target=echo_target,
              plugin_artifacts=[plugin_dep]).execute()
        assert fake_runner.references["maven.plugin.classpath"].elements == [str(plugin_dep.file)]

    def test_properties_exported_before_execution(self, project, session, local_repository, echo_target,
                                                  make_runner):
        seen = {}
        runner = make_runner(on_execute=lambda r: seen.update(r.properties))
        _mojo(project, session, runner, local_repository, target=echo_target).execute()
        assert seen["project.artifactId"] == "demo"
        assert seen["shared"] == "from-cli"

    def test_task_prefix_from_namespace(self, project, session, fake_runner, local_repository):
        target = parse_string("""
            <target name="main" xmlns:mvn="http://maven.apache.org/ANTRUN">
                <mvn:attachartifact file="x.zip"/>
            </target>
        """)
        _mojo(project, session, fake_runner, local_repository, target=target).execute()
        assert ("define_tasks", ANTLIB, TASK_URI) in fake_runner.calls
        content = fake_runner.build_file.read_text()
        assert f'xmlns:mvn="{TASK_URI}"' in content
        assert "http://maven.apache.org/ANTRUN" not in content

    def test_custom_task_prefix(self, project, session, fake_runner, local_repository, echo_target):
        _mojo(project, session, fake_runner, local_repository, target=echo_target,
              custom_task_prefix="mvn").execute()
        assert ("define_tasks", ANTLIB, TASK_URI) in fake_runner.calls
        assert f'xmlns:mvn="{TASK_URI}"' in fake_runner.build_file.read_text()


class TestPropertyExchange:
    def test_import_after_success(self, project, session, local_repository):
        target = parse_string("""
            <target name="main">
                <property name="generated" value="${project.artifactId}-out"/>
                <property name="java.version" value="8"/>
            </target>
        """)
        mojo = _mojo(project, session, EmbeddedRunner(), local_repository, target=target,
                     export_ant_properties=True)
        assert mojo.execute() is ExecutionState.SUCCEEDED
        assert project.properties["generated"] == "demo-out"
        assert project.properties["java.version"] == "21"

    def test_no_import_unless_enabled(self, project, session, local_repository):
        target = parse_string('<target name="main"><property name="generated" value="x"/></target>')
        _mojo(project, session, EmbeddedRunner(), local_repository, target=target).execute()
        assert "generated" not in project.properties

    def test_prefixed_exports_visible_to_tasks(self, project, session, local_repository):
        target = parse_string('<target name="main"><property name="v" value="${mvn.project.version}"/></target>')
        runner = EmbeddedRunner()
        _mojo(project, session, runner, local_repository, target=target, property_prefix="mvn.").execute()
        assert runner.properties["v"] == "1.0.0"


class TestFailures:
    @pytest.fixture
    def failing_target(self):
        return parse_string("""
            <target name="main">
                <property name="x" value="y"/>
                <fail message="boom"/>
            </target>
        """)

    def test_failure_is_fatal_by_default(self, project, session, local_repository, failing_target):
        mojo = _mojo(project, session, EmbeddedRunner(), local_repository, target=failing_target)
        with pytest.raises(BuildFailure) as exc_info:
            mojo.execute()
        message = exc_info.value.message
        assert message.startswith("An Ant BuildException has occurred: boom")
        assert 'around Ant part ...<fail message="boom"/>... @ 4:' in message
        assert "build-main.xml" in message
        assert isinstance(exc_info.value.__cause__, RunnerExecutionError)

    def test_tolerated_failure_skips_import(self, project, session, local_repository, failing_target, caplog):
        caplog.set_level("INFO", logger="antrun.mojo")
        mojo = _mojo(project, session, EmbeddedRunner(), local_repository, target=failing_target,
                     fail_on_error=False, export_ant_properties=True)
        assert mojo.execute() is ExecutionState.FAILED_TOLERATED
        assert "x" not in project.properties
        assert "An Ant BuildException has occurred: boom" in caplog.text

    def test_failure_without_location(self, project, session, local_repository, echo_target, make_runner):
        runner = make_runner(failure=RunnerExecutionError("bad"))
        with pytest.raises(BuildFailure) as exc_info:
            _mojo(project, session, runner, local_repository, target=echo_target).execute()
        assert exc_info.value.message == "An Ant BuildException has occurred: bad"

    def test_unexpected_error_is_always_fatal(self, project, session, local_repository, echo_target,
                                            make_runner):
        runner = make_runner(failure=ValueError("kaput"))
        mojo = _mojo(project, session, runner, local_repository, target=echo_target, fail_on_error=False)
        with pytest.raises(BuildFailure, match="Error executing Ant tasks: kaput"):
            mojo.execute()

    def test_unresolved_dependency_is_fatal(self, project, session, fake_runner, local_repository, echo_target,
                                            make_artifact):
        project.artifacts.append(make_artifact("ghost", resolved=False))
        mojo = _mojo(project, session, fake_runner, local_repository, target=echo_target, fail_on_error=False)
        with pytest.raises(BuildFailure, match="org.example:ghost:jar:1.0"):
            mojo.execute()
        assert ("execute_target", "main") not in fake_runner.calls

    def test_invalid_tree_is_fatal(self, project, session, fake_runner, local_repository):
        target = ConfigurationNode("target")
        target.add_child(ConfigurationNode(""))
        with pytest.raises(BuildFailure):
            _mojo(project, session, fake_runner, local_repository, target=target).execute()

    @pytest.mark.parametrize("name", ["build all", "1x"])
    def test_invalid_target_name_writes_nothing(self, project, session, fake_runner, local_repository,
                                                echo_target, tmp_path, name):
        echo_target.set_attribute("name", name)
        with pytest.raises(BuildFailure, match="not a valid XML name") as exc_info:
            _mojo(project, session, fake_runner, local_repository, target=echo_target).execute()
        assert isinstance(exc_info.value.__cause__, ConfigurationError)
        assert not (tmp_path / "target" / "antrun").exists()
        assert fake_runner.calls == []

    def test_invalid_child_name_writes_nothing(self, project, session, fake_runner, local_repository,
                                               echo_target, tmp_path):
        echo_target.add_child(ConfigurationNode("a b"))
        with pytest.raises(BuildFailure, match="not a valid XML name"):
            _mojo(project, session, fake_runner, local_repository, target=echo_target).execute()
        assert not (tmp_path / "target" / "antrun").exists()


class TestHelpers:
    def test_find_task_prefix_from_declaration(self):
        target = ConfigurationNode("target", {
            "xmlns:other": "urn:other",
            "xmlns:mvn": "http://maven.apache.org/ANTRUN",
        })
        assert find_task_prefix(target) == "mvn"

    def test_find_task_prefix_explicit_wins(self):
        target = ConfigurationNode("target", {"xmlns:mvn": "http://maven.apache.org/ANTRUN"})
        assert find_task_prefix(target, "x") == "x"

    def test_find_task_prefix_none(self):
        assert find_task_prefix(ConfigurationNode("target")) is None

    def test_effective_target_name(self):
        assert effective_target_name(ConfigurationNode("target", {"name": "package"})) == "package"
        assert effective_target_name(ConfigurationNode("target", {"name": ""})) == "main"
        assert effective_target_name(ConfigurationNode("target")) == "main"

    def test_find_fragment(self, tmp_path):
        build_file = tmp_path / "build.xml"
        build_file.write_text("<main>\n    <fail/>\n</main>\n")
        error = RunnerExecutionError("boom", Location(str(build_file), 2, 5))
        assert find_fragment(error) == f"around Ant part ...<fail/>... @ 2:5 in {build_file.absolute()}"

    def test_find_fragment_missing_file(self, tmp_path):
        error = RunnerExecutionError("boom", Location(str(tmp_path / "gone.xml"), 1, 1))
        assert find_fragment(error) is None

    def test_find_fragment_no_location(self):
        assert find_fragment(RunnerExecutionError("boom")) is None
