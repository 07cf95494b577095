"""Scope and type filtering of resolved artifacts.

Pure predicate composition over an in-memory artifact collection. No
resolution and no I/O.
"""

from typing import Callable, Iterable, Optional

from .models import Artifact

ArtifactPredicate = Callable[[Artifact], bool]


def _tokens(csv: Optional[str]) -> set[str]:
    """Split a comma-separated list, ignoring surrounding whitespace and empty entries."""
    if not csv:
        return set()
    return {token.strip() for token in csv.split(",") if token.strip()}


def scopes_filter(scopes: str) -> ArtifactPredicate:
    """Predicate accepting artifacts whose scope is listed in ``scopes``.

    Scope names are compared verbatim; there is no scope hierarchy, so
    ``compile`` does not pull in ``provided`` or ``system``.
    """
    wanted = _tokens(scopes)
    return lambda artifact: artifact.scope in wanted


def types_filter(types: str) -> ArtifactPredicate:
    """Predicate accepting artifacts whose type is listed in ``types``."""
    wanted = _tokens(types)
    return lambda artifact: artifact.type in wanted


def and_filter(*predicates: ArtifactPredicate) -> ArtifactPredicate:
    return lambda artifact: all(p(artifact) for p in predicates)


def filter_artifacts(artifacts: Iterable[Artifact], scopes: Optional[str], types: Optional[str]):
    """Filter a set of artifacts using the scopes and types lists.

    Args:
        artifacts: Resolved artifacts, in resolution order.
        scopes: Comma-separated scopes to keep; ``None`` or empty keeps any scope.
        types: Comma-separated types to keep; ``None`` or empty keeps any type.

    Returns:
        ``artifacts`` itself when neither list constrains anything. Otherwise a
        new list of the artifacts matching both lists, in first-seen order and
        without duplicates.
    """
    scopes = scopes or ""
    types = types or ""
    if not _tokens(scopes) and not _tokens(types):
        return artifacts

    predicates = []
    if _tokens(scopes):
        predicates.append(scopes_filter(scopes))
    if _tokens(types):
        predicates.append(types_filter(types))
    accept = and_filter(*predicates)

    result = []
    seen = set()
    for artifact in artifacts:
        if artifact in seen or not accept(artifact):
            continue
        seen.add(artifact)
        result.append(artifact)
    return result
