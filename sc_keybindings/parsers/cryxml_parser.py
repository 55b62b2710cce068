"""
Decoder for CryEngine binary XML (``CryXmlB``).

The format is a 44-byte header followed by four tables: fixed-size node
records, attribute records, a flat child-index array and a NUL-terminated
string pool. Decoding rebuilds the element tree from node 0 and serializes
it back to XML text.

Every problem with the input (bad signature, tables past the end of the
buffer, dangling indices, cycles) is reported as a failed
``CryXmlConversionResult``; nothing is raised to the caller.
"""

import re
import struct
from typing import NamedTuple
from xml.sax.saxutils import escape

from sc_keybindings.domain.constants import (
    CRYXML_ATTRIBUTE_SIZE,
    CRYXML_CHILD_INDEX_SIZE,
    CRYXML_HEADER_SIZE,
    CRYXML_NODE_SIZE,
    CRYXML_SIGNATURE,
)
from sc_keybindings.domain.models import CryXmlConversionResult, XmlNode

_HEADER = struct.Struct('<8I')
_NODE = struct.Struct('<IIHHIII4x')
_ATTRIBUTE = struct.Struct('<II')
_CHILD_INDEX = struct.Struct('<I')

_ATTRIBUTE_ENTITIES = {'"': '&quot;', '\n': '&#10;', '\r': '&#13;', '\t': '&#9;'}

# XML Name production, restricted to word characters plus ".", "-" and ":".
_XML_NAME = re.compile(r"(?:[^\W\d]|:)[\w.:-]*\Z")


class CryXmlFormatError(ValueError):
    """Raised internally when the binary layout is inconsistent."""


class _Header(NamedTuple):
    node_table_offset: int
    node_count: int
    attribute_table_offset: int
    attribute_count: int
    child_table_offset: int
    child_count: int
    string_data_offset: int
    string_data_size: int


class _RawNode(NamedTuple):
    tag_offset: int
    content_offset: int
    attribute_count: int
    child_count: int
    parent_index: int
    first_attribute_index: int
    first_child_index: int


class CryXmlParser:
    """Converts CryXmlB buffers to XML text."""

    @staticmethod
    def is_cryxml(data: bytes) -> bool:
        """True when ``data`` is long enough for a header and starts with the signature."""
        if data is None or len(data) < CRYXML_HEADER_SIZE:
            return False
        return data[:8].split(b'\x00', 1)[0] == CRYXML_SIGNATURE

    def convert(self, data: bytes) -> CryXmlConversionResult:
        """
        Decode a binary XML buffer.

        Args:
            data: Raw file contents.

        Returns:
            CryXmlConversionResult with the XML text, or a failure describing
            why the buffer could not be decoded.
        """
        if data is None or len(data) < CRYXML_HEADER_SIZE:
            return CryXmlConversionResult.failure(
                "not a binary XML document (buffer shorter than header)"
            )
        if not self.is_cryxml(data):
            return CryXmlConversionResult.failure(
                "not a binary XML document (wrong signature)"
            )

        try:
            root = self.parse_tree(data)
        except (CryXmlFormatError, struct.error) as e:
            return CryXmlConversionResult.failure(str(e))

        return CryXmlConversionResult.success(self.serialize(root))

    def parse_tree(self, data: bytes) -> XmlNode:
        """Rebuild the element tree. Raises CryXmlFormatError on inconsistent input."""
        header = _Header(*_HEADER.unpack_from(data, 12))
        self._check_bounds(data, header)

        if header.node_count == 0:
            raise CryXmlFormatError("document contains no nodes")

        pool = data[header.string_data_offset:header.string_data_offset + header.string_data_size]
        raw_nodes = [
            _RawNode(*_NODE.unpack_from(data, header.node_table_offset + i * CRYXML_NODE_SIZE))
            for i in range(header.node_count)
        ]
        attributes = [
            _ATTRIBUTE.unpack_from(data, header.attribute_table_offset + i * CRYXML_ATTRIBUTE_SIZE)
            for i in range(header.attribute_count)
        ]
        child_indices = [
            _CHILD_INDEX.unpack_from(data, header.child_table_offset + i * CRYXML_CHILD_INDEX_SIZE)[0]
            for i in range(header.child_count)
        ]

        nodes: dict[int, XmlNode] = {}
        root = self._build_node(0, raw_nodes[0], pool, attributes)
        nodes[0] = root

        # Depth-first with an explicit stack; each node index may be placed once.
        stack = [0]
        while stack:
            index = stack.pop()
            raw = raw_nodes[index]
            parent = nodes[index]
            child_ids = []
            for slot in range(raw.first_child_index, raw.first_child_index + raw.child_count):
                if slot >= len(child_indices):
                    raise CryXmlFormatError(
                        f"invalid child index {slot} (child table holds {len(child_indices)})"
                    )
                child_id = child_indices[slot]
                if child_id >= len(raw_nodes):
                    raise CryXmlFormatError(
                        f"invalid child node {child_id} (node table holds {len(raw_nodes)})"
                    )
                if child_id in nodes:
                    raise CryXmlFormatError(f"node {child_id} is referenced more than once")
                child = self._build_node(child_id, raw_nodes[child_id], pool, attributes)
                nodes[child_id] = child
                parent.children.append(child)
                child_ids.append(child_id)
            stack.extend(reversed(child_ids))

        return root

    @staticmethod
    def serialize(root: XmlNode) -> str:
        """Render a tree as compact XML text without a declaration."""
        out: list[str] = []
        # Entries are (node, closing); closing entries emit the end tag.
        stack: list[tuple[XmlNode, bool]] = [(root, False)]
        while stack:
            node, closing = stack.pop()
            if closing:
                out.append(f'</{node.tag}>')
                continue

            attrs = ''.join(
                f' {key}="{escape(value, _ATTRIBUTE_ENTITIES)}"'
                for key, value in node.attributes if key
            )
            if not node.children and not node.content:
                out.append(f'<{node.tag}{attrs} />')
                continue

            out.append(f'<{node.tag}{attrs}>')
            if node.content:
                out.append(escape(node.content))
            stack.append((node, True))
            for child in reversed(node.children):
                stack.append((child, False))

        return ''.join(out)

    @staticmethod
    def _check_bounds(data: bytes, header: _Header) -> None:
        size = len(data)
        tables = (
            ('node table', header.node_table_offset, header.node_count * CRYXML_NODE_SIZE),
            ('attribute table', header.attribute_table_offset,
             header.attribute_count * CRYXML_ATTRIBUTE_SIZE),
            ('child index table', header.child_table_offset,
             header.child_count * CRYXML_CHILD_INDEX_SIZE),
            ('string data', header.string_data_offset, header.string_data_size),
        )
        for label, offset, length in tables:
            if offset > size:
                raise CryXmlFormatError(f"{label}: offset out of bounds ({offset} > {size})")
            if offset + length > size:
                raise CryXmlFormatError(
                    f"{label}: range out of bounds (end={offset + length} > {size})"
                )

    def _build_node(self, index: int, raw: _RawNode, pool: bytes,
                    attributes: list[tuple[int, int]]) -> XmlNode:
        tag = self._read_string(pool, raw.tag_offset)
        if not tag:
            raise CryXmlFormatError(f"node {index} has an empty tag name")
        if not _XML_NAME.match(tag):
            raise CryXmlFormatError(f"node {index} has an invalid tag name {tag!r}")

        node = XmlNode(tag=tag, content=self._read_string(pool, raw.content_offset))
        for attr_index in range(raw.first_attribute_index,
                                raw.first_attribute_index + raw.attribute_count):
            if attr_index >= len(attributes):
                raise CryXmlFormatError(
                    f"invalid attribute index {attr_index} (attribute table holds {len(attributes)})"
                )
            key_offset, value_offset = attributes[attr_index]
            key = self._read_string(pool, key_offset)
            if key and not _XML_NAME.match(key):
                raise CryXmlFormatError(f"node {index} has an invalid attribute name {key!r}")
            node.attributes.append((key, self._read_string(pool, value_offset)))
        return node

    @staticmethod
    def _read_string(pool: bytes, offset: int) -> str:
        if offset >= len(pool):
            raise CryXmlFormatError(
                f"string offset {offset} out of bounds (string data holds {len(pool)} bytes)"
            )
        end = pool.find(b'\x00', offset)
        if end == -1:
            end = len(pool)
        return pool[offset:end].decode('utf-8', errors='replace')
