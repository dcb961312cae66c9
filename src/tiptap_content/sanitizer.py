"""Prune a document tree down to what an extension set allows.

Sanitizing keeps the root node and every descendant whose type is provided by
one of the extensions. A disallowed node is removed together with its subtree.
Marks of unknown types are dropped, and node / mark attributes survive only if
some extension enables them for that type. The input tree is left untouched.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .extensions import Extension, allowed_attributes, allowed_mark_types, allowed_node_types
from .models import MAX_TREE_DEPTH, DocumentNode, Mark
from .exceptions import MalformedDocument

logger = logging.getLogger(__name__)


def _filter_attrs(attrs: dict, enabled: Optional[FrozenSet[str]]) -> dict:
    if not attrs or not enabled:
        return {}
    return {k: v for k, v in attrs.items() if k in enabled}


def sanitize_document(
    node: DocumentNode, extensions: Sequence[Extension], max_depth: int = MAX_TREE_DEPTH
) -> DocumentNode:
    """Return a copy of ``node`` restricted to ``extensions``.

    Args:
        node: Root of the tree to sanitize (kept regardless of its type).
        extensions: Resolved extensions defining the allowed schema.
        max_depth: Traversal bound, as for the analyzer.
    Returns:
        DocumentNode: A new tree; ``node`` is not modified.
    Raises:
        MalformedDocument: If the tree is nested deeper than ``max_depth``.
    """
    node_types = allowed_node_types(extensions)
    mark_types = allowed_mark_types(extensions)
    attributes: Dict[str, FrozenSet[str]] = allowed_attributes(extensions)
    removed = 0

    def copy_fields(source: DocumentNode) -> DocumentNode:
        return DocumentNode(
            type=source.type,
            text=source.text,
            attrs=_filter_attrs(source.attrs, attributes.get(source.type or "")),
            marks=[
                Mark(type=m.type, attrs=_filter_attrs(m.attrs, attributes.get(m.type)))
                for m in source.marks
                if m.type in mark_types
            ],
        )

    root = copy_fields(node)
    stack: List[Tuple[DocumentNode, DocumentNode, int]] = [(node, root, 0)]
    while stack:
        source, target, depth = stack.pop()
        if source.children and depth + 1 > max_depth:
            raise MalformedDocument(f"Document exceeds maximum depth of {max_depth}")
        for child in source.children:
            if child.type not in node_types:
                removed += 1
                continue
            copied = copy_fields(child)
            target.children.append(copied)
            stack.append((child, copied, depth + 1))

    if removed:
        logger.debug(f"Sanitizer removed {removed} disallowed node(s)")
    return root
