"""CLI entry point: run the antrun executions of a Maven project.

Reads ``pom.xml``, attaches dependency files found in the local repository,
and runs each selected execution through the embedded runner, or prints the
generated build files with ``--dry-run``.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import config_writer
from .errors import AntRunError
from .models import LocalRepository, MavenProject, Session
from .mojo import AntRunMojo, ExecutionState, effective_target_name, find_task_prefix
from .pom_reader import find_antrun_executions, parse_project
from .runner import EmbeddedRunner

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_REPOSITORY = Path.home() / ".m2" / "repository"


def _attach_files(project: MavenProject, local_repository: LocalRepository):
    """Point each dependency at its file in the local repository, when present."""
    for artifact in project.artifacts:
        if artifact.file is None:
            artifact.file = local_repository.find(artifact)
            if artifact.file is None:
                logger.warning("Dependency %s not found in %s", artifact.id, local_repository.basedir)


def _parse_defines(defines: list[str]) -> dict:
    props = {}
    for define in defines or []:
        key, sep, value = define.partition("=")
        props[key] = value if sep else "true"
    return props


def run(
    project_path: Path,
    execution_ids: Optional[list[str]] = None,
    dry_run: bool = False,
    local_repository: Optional[Path] = None,
    user_properties: Optional[dict] = None,
) -> dict:
    """Run the antrun executions of the project at ``project_path``.

    Args:
        project_path: Filesystem path to the Maven project root (containing pom.xml).
        execution_ids: Executions to run; all of them when ``None`` or empty.
        dry_run: If ``True``, prints the generated build files instead of running them.
        local_repository: Local repository root; defaults to ``~/.m2/repository``.
        user_properties: Session user properties (``-D`` values).

    Returns:
        Execution id → ExecutionState for the executions that ran; empty on dry runs.
    """
    root_pom = project_path / "pom.xml"
    if not root_pom.exists():
        print(f"ERROR: No pom.xml found at {root_pom}", file=sys.stderr)
        sys.exit(1)

    session = Session(user_properties=dict(user_properties or {}))
    repository = LocalRepository(local_repository or DEFAULT_LOCAL_REPOSITORY)
    project = parse_project(root_pom)
    executions = find_antrun_executions(root_pom, {**project.properties, **session.user_properties})
    if execution_ids:
        executions = [e for e in executions if e.execution_id in execution_ids]
    if not executions:
        print(f"WARNING: No maven-antrun-plugin executions selected in {root_pom}", file=sys.stderr)
        return {}

    if dry_run:
        for execution in executions:
            target = execution.settings.target
            print("=" * 60)
            print(f"execution: {execution.execution_id}")
            print("=" * 60)
            if target is None:
                print("(no target)")
                continue
            target_name = effective_target_name(target)
            prefix = find_task_prefix(target, execution.settings.custom_task_prefix)
            print(config_writer.render(target, prefix or "", target_name))
        return {}

    _attach_files(project, repository)
    results = {}
    for execution in executions:
        mojo = AntRunMojo(project, session, EmbeddedRunner(), repository, execution.settings)
        try:
            state = mojo.execute()
        except AntRunError as exc:
            print(f"ERROR: [{execution.execution_id}] {exc.message}", file=sys.stderr)
            sys.exit(1)
        results[execution.execution_id] = state
        marker = "✓" if state is ExecutionState.SUCCEEDED else "⏭"
        print(f"  {marker} {execution.execution_id}: {state.value}")
    return results


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Run the maven-antrun-plugin targets of a Maven project"
    )
    parser.add_argument("project", type=Path, help="Path to Maven project root")
    parser.add_argument(
        "--execution", "-e", action="append", dest="executions", default=None,
        help="Execution id to run (repeatable; default: all)",
    )
    parser.add_argument("--dry-run", "-n", action="store_true", help="Print generated build files without running them")
    parser.add_argument(
        "--local-repository", type=Path, default=None,
        help=f"Local repository (default: {DEFAULT_LOCAL_REPOSITORY})",
    )
    parser.add_argument(
        "-D", dest="defines", action="append", default=[], metavar="KEY=VALUE",
        help="Session user property (repeatable)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")
    return parser.parse_args(argv)


def main(argv=None):
    """CLI entry point. Parses arguments and delegates to ``run()``."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )
    run(args.project, args.executions, args.dry_run, args.local_repository, _parse_defines(args.defines))


if __name__ == "__main__":
    main()
