"""Document tree analysis: text extraction, depth, statistics and validation.

Every function here is a pure function of its input tree. Functions accept a
:class:`~tiptap_content.models.DocumentNode` or the raw wire mapping (a
``dict`` parsed from Tiptap JSON) and never mutate it, so they are safe to
call concurrently from request handlers.

Conventions:
    * Depth counts ``content`` nesting. A root without children has depth 0;
      Tiptap text nodes are children, so ``doc > paragraph > text`` has depth 2.
    * Text is concatenated raw, with no separators between nodes.
    * Words are whitespace-delimited tokens (``str.split`` semantics).
    * Traversal is iterative and bounded by ``AnalyzerConfig.max_recursion_depth``;
      deeper (or cyclic) input raises :class:`MalformedDocument`.

Example::

    from tiptap_content.analyzer import compute_stats, validate_content

    doc = {"type": "doc", "content": [
        {"type": "paragraph", "content": [{"type": "text", "text": "Hello world"}]},
    ]}
    compute_stats(doc).words                      # 2
    validate_content(doc, {"max_length": 5})      # False
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

from .models import MAX_TREE_DEPTH, ContentStats, DocumentNode, ValidationReport, ValidationRules

WORDS_PER_MINUTE = 200

NodeInput = Union[DocumentNode, Mapping[str, Any]]
RulesInput = Union[ValidationRules, Mapping[str, Any], None]


@dataclass
class AnalyzerConfig:
    """Configuration for tree traversal.

    Args:
        max_recursion_depth: Hard limit on nesting depth; exceeding it raises
            :class:`MalformedDocument` instead of recursing without bound.
    """

    max_recursion_depth: int = MAX_TREE_DEPTH


DEFAULT_CONFIG = AnalyzerConfig()


def as_node(node: NodeInput, config: Optional[AnalyzerConfig] = None) -> DocumentNode:
    """Return ``node`` as a :class:`DocumentNode`, parsing wire mappings."""
    if isinstance(node, DocumentNode):
        return node
    config = config or DEFAULT_CONFIG
    return DocumentNode.from_dict(node, max_depth=config.max_recursion_depth)


def as_rules(rules: RulesInput) -> ValidationRules:
    if isinstance(rules, ValidationRules):
        return rules
    return ValidationRules.from_mapping(rules)


def extract_text(node: NodeInput, config: Optional[AnalyzerConfig] = None) -> str:
    """Concatenate the ``text`` of every node in depth-first pre-order."""
    config = config or DEFAULT_CONFIG
    root = as_node(node, config)
    return "".join(n.text or "" for n, _ in root.walk(config.max_recursion_depth))


def count_depth(node: NodeInput, config: Optional[AnalyzerConfig] = None) -> int:
    """Return the maximum nesting depth below ``node`` (0 for a leaf)."""
    config = config or DEFAULT_CONFIG
    root = as_node(node, config)
    return max(depth for _, depth in root.walk(config.max_recursion_depth))


def count_paragraphs(node: NodeInput, config: Optional[AnalyzerConfig] = None) -> int:
    """Count nodes of type ``paragraph`` in the subtree, root included."""
    config = config or DEFAULT_CONFIG
    root = as_node(node, config)
    return sum(1 for n, _ in root.walk(config.max_recursion_depth) if n.type == "paragraph")


def validate_allowed_tags(
    node: NodeInput, allowed_tags: Iterable[str], config: Optional[AnalyzerConfig] = None
) -> bool:
    """Check every typed node against a whitelist, stopping at the first miss.

    Nodes without a ``type`` are not checked. A bare string is a single tag.
    """
    config = config or DEFAULT_CONFIG
    if isinstance(allowed_tags, str):
        allowed_tags = [allowed_tags]
    allowed = frozenset(allowed_tags)
    root = as_node(node, config)
    for n, _ in root.walk(config.max_recursion_depth):
        if n.type is not None and n.type not in allowed:
            return False
    return True


def count_words(text: str) -> int:
    return len(text.split())


def compute_stats(node: NodeInput, config: Optional[AnalyzerConfig] = None) -> ContentStats:
    """Compute character, word, paragraph and reading-time statistics.

    Args:
        node: Document tree or wire mapping.
        config: Optional traversal configuration.
    Returns:
        ContentStats: ``characters`` counts code points; ``characters_no_spaces``
        removes U+0020 only; ``reading_time`` is ``ceil(words / 200)`` minutes.
    """
    config = config or DEFAULT_CONFIG
    root = as_node(node, config)
    text = extract_text(root, config)
    words = count_words(text)
    return ContentStats(
        characters=len(text),
        characters_no_spaces=len(text.replace(" ", "")),
        words=words,
        paragraphs=count_paragraphs(root, config),
        reading_time=math.ceil(words / WORDS_PER_MINUTE),
    )


def _failed_rules(root: DocumentNode, rules: ValidationRules, config: AnalyzerConfig, stop_early: bool) -> List[str]:
    failed: List[str] = []

    if rules.max_length is not None and len(extract_text(root, config)) > rules.max_length:
        failed.append("max_length")
        if stop_early:
            return failed

    if rules.max_depth is not None and count_depth(root, config) > rules.max_depth:
        failed.append("max_depth")
        if stop_early:
            return failed

    if rules.allowed_tags is not None and not validate_allowed_tags(root, rules.allowed_tags, config):
        failed.append("allowed_tags")

    return failed


def validate_content(node: NodeInput, rules: RulesInput, config: Optional[AnalyzerConfig] = None) -> bool:
    """Return True when every present rule passes.

    Rules are evaluated in the order ``max_length``, ``max_depth``,
    ``allowed_tags`` and evaluation stops at the first failure. Absent rules
    impose no constraint.
    """
    config = config or DEFAULT_CONFIG
    root = as_node(node, config)
    return not _failed_rules(root, as_rules(rules), config, stop_early=True)


def check_content(
    node: NodeInput, rules: RulesInput, config: Optional[AnalyzerConfig] = None
) -> ValidationReport:
    """Evaluate every present rule and report which ones failed.

    ``check_content(n, r).valid`` always equals ``validate_content(n, r)``.
    """
    config = config or DEFAULT_CONFIG
    root = as_node(node, config)
    failed = _failed_rules(root, as_rules(rules), config, stop_early=False)
    return ValidationReport(valid=not failed, failed_rules=failed)
