"""Core data structures for representing rich-text documents.

These lightweight dataclasses mirror the Tiptap / ProseMirror JSON document
model. They are produced from wire JSON by :meth:`DocumentNode.from_dict` and
consumed by the analyzer, sanitizer, service and HTTP layers. They avoid
framework dependencies so they can be cached, pickled, or serialized easily.

Overview:
        * ``DocumentNode`` is a node in the document tree. Each node has a
            ``type`` tag, an optional ``text`` payload and ordered ``children``.
            On the wire the children live under the ``content`` key.
        * ``Mark`` is an inline annotation (bold, textStyle, ...) attached to
            text-bearing nodes.
        * ``ContentStats``, ``ValidationRules`` and ``ValidationReport`` are the
            transient value bags exchanged with callers.

Typical construction (simplified)::

        from tiptap_content.models import DocumentNode

        doc = DocumentNode.from_dict({
                "type": "doc",
                "content": [
                        {"type": "paragraph", "content": [{"type": "text", "text": "Hi"}]},
                ],
        })
        [n.type for n in doc.iter_nodes()]   # ['doc', 'paragraph', 'text']
        payload = doc.to_dict()              # back to wire shape

Design notes:
        * Text is a plain string field. In Tiptap JSON it appears on nodes of type
            ``"text"``; those nodes are ordinary children like any other.
        * Absent fields mean "nothing here": a missing ``type`` is ``None``, a
            missing or non-list ``content`` means no children.
        * All traversals are iterative and bounded by ``max_depth`` so cyclic or
            pathologically deep input raises :class:`MalformedDocument` rather than
            exhausting the interpreter stack.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from .exceptions import MalformedDocument

MAX_TREE_DEPTH = 10_000


@dataclass
class Mark:
    """Inline mark attached to a text-bearing node.

    Attributes:
        type: Mark kind, e.g. ``bold`` or ``textStyle``.
        attrs: Mark attributes (``{"color": "#f00"}`` for a coloured textStyle).
    """

    type: str
    attrs: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"type": self.type}
        if self.attrs:
            data["attrs"] = dict(self.attrs)
        return data


@dataclass
class DocumentNode:
    """A node of a rich-text document tree.

    Attributes:
        type: Node kind (``doc``, ``paragraph``, ``text``, ...). ``None`` when the
            source omitted it.
        text: Text payload for text-bearing nodes, ``None`` otherwise.
        children: Ordered child nodes (wire key ``content``).
        attrs: Node attributes, carried through untouched by the analyzer.
        marks: Inline marks on text-bearing nodes.

    Example:
        >>> node = DocumentNode(type="paragraph", children=[DocumentNode(type="text", text="Hi")])
        >>> node.children[0].text
        'Hi'
    """

    type: Optional[str] = None
    text: Optional[str] = None
    children: List["DocumentNode"] = field(default_factory=list)
    attrs: Dict[str, Any] = field(default_factory=dict)
    marks: List[Mark] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], max_depth: int = MAX_TREE_DEPTH) -> "DocumentNode":
        """Build a node tree from its wire mapping.

        Args:
            data: Mapping shaped ``{"type", "text"?, "content"?, "attrs"?, "marks"?}``.
            max_depth: Maximum nesting below the root before the input is rejected.
        Returns:
            DocumentNode: Root of the constructed tree.
        Raises:
            MalformedDocument: If ``data`` or any child entry is not a mapping, or
                nesting exceeds ``max_depth``.
        """
        if not isinstance(data, Mapping):
            raise MalformedDocument(f"Document node must be an object, got {type(data).__name__}")

        root = cls._from_fields(data)
        stack: List[Tuple[Mapping[str, Any], DocumentNode, int]] = [(data, root, 0)]
        while stack:
            raw, node, depth = stack.pop()
            raw_children = raw.get("content")
            if not isinstance(raw_children, list) or not raw_children:
                continue
            if depth + 1 > max_depth:
                raise MalformedDocument(f"Document exceeds maximum depth of {max_depth}")
            for raw_child in raw_children:
                if not isinstance(raw_child, Mapping):
                    raise MalformedDocument(
                        f"Child node must be an object, got {type(raw_child).__name__}"
                    )
                child = cls._from_fields(raw_child)
                node.children.append(child)
                stack.append((raw_child, child, depth + 1))
        return root

    @classmethod
    def _from_fields(cls, raw: Mapping[str, Any]) -> "DocumentNode":
        node_type = raw.get("type")
        text = raw.get("text")
        attrs = raw.get("attrs")
        marks = raw.get("marks")
        return cls(
            type=node_type if isinstance(node_type, str) else None,
            text=text if isinstance(text, str) else None,
            attrs=dict(attrs) if isinstance(attrs, Mapping) else {},
            marks=[
                Mark(type=m["type"], attrs=dict(m.get("attrs") or {}))
                for m in (marks if isinstance(marks, list) else [])
                if isinstance(m, Mapping) and isinstance(m.get("type"), str)
            ],
        )

    def walk(self, max_depth: int = MAX_TREE_DEPTH) -> Iterator[Tuple["DocumentNode", int]]:
        """Yield ``(node, depth)`` pairs in depth-first pre-order.

        The root has depth 0. Raises :class:`MalformedDocument` when a node
        deeper than ``max_depth`` is reached.
        """
        stack: List[Tuple[DocumentNode, int]] = [(self, 0)]
        while stack:
            node, depth = stack.pop()
            if depth > max_depth:
                raise MalformedDocument(f"Document exceeds maximum depth of {max_depth}")
            yield node, depth
            for child in reversed(node.children):
                stack.append((child, depth + 1))

    def iter_nodes(self, max_depth: int = MAX_TREE_DEPTH) -> List["DocumentNode"]:
        """Return a depth-first list of this node and all descendants.

        Example:
            >>> parent = DocumentNode(type="doc", children=[DocumentNode(type="paragraph")])
            >>> [n.type for n in parent.iter_nodes()]
            ['doc', 'paragraph']
        """
        return [node for node, _ in self.walk(max_depth)]

    def to_dict(self, max_depth: int = MAX_TREE_DEPTH) -> dict:
        """Convert the tree back into its wire mapping.

        Only present fields are emitted, so a parsed document round-trips to the
        same shape Tiptap produces.
        """
        root = self._fields_dict()
        stack: List[Tuple[DocumentNode, dict, int]] = [(self, root, 0)]
        while stack:
            node, out, depth = stack.pop()
            if not node.children:
                continue
            if depth + 1 > max_depth:
                raise MalformedDocument(f"Document exceeds maximum depth of {max_depth}")
            out["content"] = []
            for child in node.children:
                child_out = child._fields_dict()
                out["content"].append(child_out)
                stack.append((child, child_out, depth + 1))
        return root

    def _fields_dict(self) -> dict:
        data: Dict[str, Any] = {}
        if self.type is not None:
            data["type"] = self.type
        if self.attrs:
            data["attrs"] = dict(self.attrs)
        if self.text is not None:
            data["text"] = self.text
        if self.marks:
            data["marks"] = [mark.to_dict() for mark in self.marks]
        return data


@dataclass
class ContentStats:
    """Derived statistics for a document.

    Field names match the JSON keys returned by the service and HTTP API.
    """

    characters: int = 0
    characters_no_spaces: int = 0
    words: int = 0
    paragraphs: int = 0
    reading_time: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class ValidationRules:
    """Optional content constraints. ``None`` means the rule is not applied.

    Attributes:
        max_length: Maximum number of characters in the extracted plain text.
        max_depth: Maximum nesting depth of the node tree.
        allowed_tags: Whitelist of node types; ``None`` allows every type.

    Example:
        >>> rules = ValidationRules.from_mapping({"max_length": 10, "allowed_tags": ["doc"]})
        >>> sorted(rules.allowed_tags)
        ['doc']
    """

    max_length: Optional[int] = None
    max_depth: Optional[int] = None
    allowed_tags: Optional[FrozenSet[str]] = None

    @classmethod
    def from_mapping(cls, rules: Optional[Mapping[str, Any]]) -> "ValidationRules":
        """Create rules from a plain ``{name: value}`` mapping (unknown keys ignored)."""
        rules = rules or {}
        allowed = rules.get("allowed_tags")
        if isinstance(allowed, str):
            allowed = [allowed]
        return cls(
            max_length=rules.get("max_length"),
            max_depth=rules.get("max_depth"),
            allowed_tags=frozenset(allowed) if allowed is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_length": self.max_length,
            "max_depth": self.max_depth,
            "allowed_tags": sorted(self.allowed_tags) if self.allowed_tags is not None else None,
        }


@dataclass
class ValidationReport:
    """Detailed outcome of a validation run.

    Attributes:
        valid: True when every applied rule passed.
        failed_rules: Names of the failing rules in evaluation order.
    """

    valid: bool
    failed_rules: List[str] = field(default_factory=list)
