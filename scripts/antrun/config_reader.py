"""Configuration tree parsing.

Builds :class:`~antrun.models.ConfigurationNode` trees from XML. Parsing is
done without namespace processing so that qualified names (``mvn:foo``) and
``xmlns:*`` declarations survive exactly as written, which is what the build
file writer and the task prefix discovery rely on.
"""

import io
import xml.sax
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigurationError, Location
from .models import ConfigurationNode


class _TreeBuilder(xml.sax.ContentHandler):
    """SAX handler assembling ConfigurationNodes, with the location of each start tag."""

    def __init__(self, file_name: Optional[str] = None):
        super().__init__()
        self.file_name = file_name
        self.root = None
        self._stack = []
        self._text = []
        self._locator = None

    def setDocumentLocator(self, locator):
        """Keep the locator so each start tag can record its position."""
        self._locator = locator

    def _location(self) -> Optional[Location]:
        if self._locator is None:
            return None
        return Location(
            file_name=self.file_name,
            line_number=self._locator.getLineNumber(),
            column_number=self._locator.getColumnNumber() + 1,
        )

    def startElement(self, name, attrs):
        """Open a node and attach it to its parent, or make it the root."""
        self._flush_text()
        node = ConfigurationNode(name, attributes={k: attrs.getValue(k) for k in attrs.getNames()})
        node.location = self._location()
        if self._stack:
            self._stack[-1].add_child(node)
        else:
            self.root = node
        self._stack.append(node)

    def endElement(self, name):
        """Close the current node."""
        self._flush_text()
        self._stack.pop()

    def characters(self, content):
        self._text.append(content)

    def _flush_text(self):
        """Assign buffered character data to the open node."""
        if not self._stack:
            self._text = []
            return
        text = "".join(self._text).strip()
        self._text = []
        node = self._stack[-1]
        # Text is only kept for leaves; indentation between children is dropped.
        if text and not node.children:
            node.value = (node.value or "") + text


def _parse(source, file_name: Optional[str]) -> ConfigurationNode:
    """Run the SAX parser over ``source``.

    Args:
        source: A binary file-like object.
        file_name: Recorded in each node's location; ``None`` for strings.

    Returns:
        The root node.

    Raises:
        ConfigurationError: If the input is not well-formed XML.
    """
    handler = _TreeBuilder(file_name)
    parser = xml.sax.make_parser()
    parser.setFeature(xml.sax.handler.feature_namespaces, False)
    parser.setFeature(xml.sax.handler.feature_external_ges, False)
    parser.setContentHandler(handler)
    try:
        parser.parse(source)
    except xml.sax.SAXParseException as exc:
        raise ConfigurationError(
            f"Malformed configuration at {file_name or '<string>'}:"
            f"{exc.getLineNumber()}:{exc.getColumnNumber()}: {exc.getMessage()}"
        ) from exc
    _clear_parent_values(handler.root)
    return handler.root


def _clear_parent_values(node: ConfigurationNode):
    """Drop text from nodes that turned out to have children."""
    if node.children:
        node.value = None
        for child in node.children:
            _clear_parent_values(child)


def parse_string(text: Union[str, bytes]) -> ConfigurationNode:
    """Parse an XML fragment or document into a configuration tree."""
    if isinstance(text, str):
        text = text.encode("utf-8")
    return _parse(io.BytesIO(text), None)


def parse_file(path: Path) -> ConfigurationNode:
    """Parse an XML file into a configuration tree, recording element locations."""
    path = Path(path)
    with open(path, "rb") as f:
        return _parse(f, str(path.absolute()))


def find_path(root: ConfigurationNode, *names: str) -> Optional[ConfigurationNode]:
    """Follow a chain of first-child lookups, e.g. ``find_path(pom, "build", "plugins")``."""
    node = root
    for name in names:
        if node is None:
            return None
        node = node.get_child(name)
    return node


def child_text(node: Optional[ConfigurationNode], name: str) -> Optional[str]:
    """Text content of the first child called ``name``, or ``None``."""
    if node is None:
        return None
    child = node.get_child(name)
    if child is not None and child.value:
        return child.value.strip()
    return None
