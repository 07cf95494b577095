"""Classpath composition from file lists and resolved artifacts."""

import os
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .errors import UnresolvedArtifactError
from .models import Artifact


def compose_path(files: Iterable) -> str:
    """Join paths in input order with the platform path separator.

    No sorting and no de-duplication; an empty input yields ``""``.
    """
    return os.pathsep.join(str(f) for f in files)


@dataclass
class PathExpression:
    """An ordered list of path elements, rendered joined by ``os.pathsep``."""
    elements: list = field(default_factory=list)

    @classmethod
    def parse(cls, text: Optional[str]) -> "PathExpression":
        """Split a path string on ``os.pathsep``, dropping empty elements.

        Args:
            text: A joined path such as ``a.jar:b.jar``, or ``None``.

        Returns:
            The parsed expression; empty for ``None`` or ``""``.
        """
        if not text:
            return cls()
        return cls([part for part in text.split(os.pathsep) if part])

    def __str__(self):
        return compose_path(self.elements)

    def __len__(self):
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)


def path_from_artifacts(artifacts: Optional[Iterable[Artifact]]) -> PathExpression:
    """Build a path expression from the resolved files of ``artifacts``.

    Raises:
        UnresolvedArtifactError: For the first artifact without a resolved file.
            Nothing is returned in that case.
    """
    if artifacts is None:
        return PathExpression()

    elements = []
    for artifact in artifacts:
        if artifact.file is None:
            raise UnresolvedArtifactError(artifact)
        elements.append(str(artifact.file))
    return PathExpression(elements)
