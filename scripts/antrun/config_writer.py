"""Build file generation from a configuration tree.

Renders a :class:`~antrun.models.ConfigurationNode` tree as a pretty-printed
XML document whose root element is the target to run. Maven's configuration
merge attributes (``combine.children`` / ``combine.self``) are stripped, and
the task namespace is declared on the root when a task prefix is in use.
"""

import os
import tempfile
from pathlib import Path
from xml.sax.saxutils import escape

from .models import RESERVED_ATTRIBUTES, ConfigurationNode

# URI under which the Maven tasks (attachartifact, dependencyfilesets) are defined.
TASK_URI = "antlib:org.apache.maven.ant.tasks"

DEFAULT_TARGET_NAME = "main"
INDENT = "  "
ENCODING = "UTF-8"

_ATTR_ENTITIES = {'"': "&quot;", "\n": "&#10;", "\r": "&#13;", "\t": "&#9;"}


def _format_attributes(attributes: dict) -> str:
    parts = []
    for key, value in attributes.items():
        if key in RESERVED_ATTRIBUTES:
            continue
        parts.append(f' {key}="{escape(str(value), _ATTR_ENTITIES)}"')
    return "".join(parts)


def _render_node(node: ConfigurationNode, lines: list, depth: int, name: str = None, attributes: dict = None):
    """Append the lines for ``node`` and its subtree to ``lines``.

    ``name`` and ``attributes`` replace the node's own, which is how the root
    gets its effective target name without mutating the caller's tree.
    """
    pad = INDENT * depth
    tag = name or node.name
    attrs = _format_attributes(node.attributes if attributes is None else attributes)
    if node.children:
        lines.append(f"{pad}<{tag}{attrs}>")
        for child in node.children:
            _render_node(child, lines, depth + 1)
        lines.append(f"{pad}</{tag}>")
    elif node.value:
        lines.append(f"{pad}<{tag}{attrs}>{escape(node.value)}</{tag}>")
    else:
        lines.append(f"{pad}<{tag}{attrs}/>")


def render(
    root: ConfigurationNode,
    namespace_prefix: str = "",
    target_name: str = DEFAULT_TARGET_NAME,
) -> str:
    """Render ``root`` as a build file and return it as a string.

    The root element is named after the effective target name, which is the
    root's own ``name`` attribute or ``target_name`` if it has none, and always
    carries that name as its ``name`` attribute. With a non-empty
    ``namespace_prefix`` the root also declares
    ``xmlns:<prefix>="antlib:org.apache.maven.ant.tasks"``; element names are
    written as given, qualified or not.

    Args:
        root: The configuration tree; it is not modified.
        namespace_prefix: Prefix the tree uses for Maven tasks, or ``""``.
        target_name: Target name used when the root has no ``name`` attribute.

    Returns:
        The complete document, XML declaration included, ending in a newline.
    """
    effective_name = root.get_attribute("name", target_name) or target_name
    attributes = dict(root.attributes)
    attributes["name"] = effective_name
    if namespace_prefix:
        attributes[f"xmlns:{namespace_prefix}"] = TASK_URI

    lines = [f'<?xml version="1.0" encoding="{ENCODING}"?>']
    _render_node(root, lines, 0, name=effective_name, attributes=attributes)
    return "\n".join(lines) + "\n"


def write(
    root: ConfigurationNode,
    destination: Path,
    namespace_prefix: str = "",
    target_name: str = DEFAULT_TARGET_NAME,
) -> Path:
    """Write the build file for ``root`` to ``destination``.

    The document is rendered in memory first and moved into place from a
    temporary file in the same directory, so a failed write never leaves a
    truncated build file behind. Parent directories are created as needed.

    Raises:
        OSError: If the destination cannot be created or written.
    """
    content = render(root, namespace_prefix, target_name)
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
    try:
        with os.fdopen(fd, "w", encoding=ENCODING, newline="\n") as f:
            f.write(content)
        os.replace(tmp_name, destination)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return destination
