"""Static registry of editor extensions.

An extension names a capability of the editor schema: the node types, mark
types and attributes a document may use. The registry maps a capability name
to a factory; names are resolved when configuration is loaded, so an unknown
name fails at startup rather than on the first request.

Built-in capabilities:

* ``StarterKit``: core nodes (doc, paragraph, text, heading, blockquote,
  lists, code blocks, breaks, rules) and marks (bold, italic, strike, code).
  Passing ``{"heading": False}`` (or any other sub-capability name) disables
  that part.
* ``Color`` / ``FontFamily``: the ``textStyle`` mark with a ``color`` or
  ``fontFamily`` attribute.
* ``TextAlign``: a ``textAlign`` attribute on the node types listed in the
  ``types`` option (default ``heading`` and ``paragraph``).

Example::

    from tiptap_content.extensions import resolve_extensions, allowed_node_types

    exts = resolve_extensions({"StarterKit": {"heading": False}, "Color": {}})
    "heading" in allowed_node_types(exts)   # False
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Union

from .exceptions import UnknownExtensionError

logger = logging.getLogger(__name__)

# node type -> attributes enabled on it
STARTER_KIT_NODES: Dict[str, FrozenSet[str]] = {
    "doc": frozenset(),
    "paragraph": frozenset(),
    "text": frozenset(),
    "heading": frozenset({"level"}),
    "blockquote": frozenset(),
    "bulletList": frozenset(),
    "orderedList": frozenset({"start"}),
    "listItem": frozenset(),
    "codeBlock": frozenset({"language"}),
    "hardBreak": frozenset(),
    "horizontalRule": frozenset(),
}
STARTER_KIT_MARKS: FrozenSet[str] = frozenset({"bold", "italic", "strike", "code"})

# StarterKit option names that differ from the node type they toggle
_OPTION_ALIASES = {"doc": "document"}

DEFAULT_EXTENSIONS: Dict[str, Dict[str, Any]] = {"StarterKit": {}}


@dataclass
class Extension:
    """A resolved capability.

    Attributes:
        name: Registry name (``StarterKit``, ``Color``, ...).
        options: Options the extension was created with.
        node_types: Node types this extension makes available.
        mark_types: Mark types this extension makes available.
        attributes: Node or mark type -> attribute names enabled on it.
    """

    name: str
    options: Dict[str, Any] = field(default_factory=dict)
    node_types: FrozenSet[str] = frozenset()
    mark_types: FrozenSet[str] = frozenset()
    attributes: Dict[str, FrozenSet[str]] = field(default_factory=dict)

    def describe(self) -> Dict[str, Any]:
        """Primitive-only description, used for cache keys and the HTTP API."""
        return {
            "name": self.name,
            "options": self.options,
            "node_types": sorted(self.node_types),
            "mark_types": sorted(self.mark_types),
            "attributes": {k: sorted(v) for k, v in sorted(self.attributes.items())},
        }


ExtensionFactory = Callable[[Mapping[str, Any]], Extension]
ExtensionSelection = Union[Mapping[str, Any], Sequence[Union[str, Extension]], None]


def starter_kit(options: Mapping[str, Any]) -> Extension:
    disabled = {key for key, value in options.items() if value is False}
    nodes = {
        node: attrs
        for node, attrs in STARTER_KIT_NODES.items()
        if node not in disabled and _OPTION_ALIASES.get(node) not in disabled
    }
    return Extension(
        name="StarterKit",
        options=dict(options),
        node_types=frozenset(nodes),
        mark_types=frozenset(STARTER_KIT_MARKS - disabled),
        attributes={node: attrs for node, attrs in nodes.items() if attrs},
    )


def _text_style_attribute(name: str, attribute: str) -> ExtensionFactory:
    def factory(options: Mapping[str, Any]) -> Extension:
        types = list(options.get("types", ["textStyle"]))
        return Extension(
            name=name,
            options=dict(options),
            mark_types=frozenset(types),
            attributes={t: frozenset({attribute}) for t in types},
        )

    return factory


def text_align(options: Mapping[str, Any]) -> Extension:
    types = list(options.get("types", ["heading", "paragraph"]))
    return Extension(
        name="TextAlign",
        options=dict(options),
        attributes={t: frozenset({"textAlign"}) for t in types},
    )


_REGISTRY: Dict[str, ExtensionFactory] = {
    "StarterKit": starter_kit,
    "Color": _text_style_attribute("Color", "color"),
    "FontFamily": _text_style_attribute("FontFamily", "fontFamily"),
    "TextAlign": text_align,
}


def register_extension(name: str, factory: ExtensionFactory) -> None:
    """Add (or replace) a capability in the registry."""
    if name in _REGISTRY:
        logger.warning(f"Replacing registered extension {name}")
    _REGISTRY[name] = factory


def available_extensions() -> List[str]:
    return sorted(_REGISTRY)


def create_extension(name: str, options: Optional[Mapping[str, Any]] = None) -> Extension:
    """Instantiate a registered capability.

    Raises:
        UnknownExtensionError: If ``name`` is not registered.
    """
    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise UnknownExtensionError(name) from None
    return factory(options or {})


def resolve_extensions(selection: ExtensionSelection, defaults: ExtensionSelection = None) -> List[Extension]:
    """Turn an extension selection into :class:`Extension` instances.

    Args:
        selection: Mapping of name -> options, a list of names and/or instances, or
            empty to use ``defaults``.
        defaults: Selection used when ``selection`` is empty (falls back to
            ``StarterKit`` with no options).
    Returns:
        List[Extension]: Resolved extensions in selection order.
    Raises:
        UnknownExtensionError: For any unregistered name.
    """
    if not selection:
        selection = defaults or DEFAULT_EXTENSIONS

    if isinstance(selection, Mapping):
        return [create_extension(name, options) for name, options in selection.items()]

    resolved: List[Extension] = []
    for item in selection:
        if isinstance(item, Extension):
            resolved.append(item)
        else:
            # Legacy list form: ["StarterKit", "Color"]
            resolved.append(create_extension(str(item)))
    return resolved


def allowed_node_types(extensions: Iterable[Extension]) -> FrozenSet[str]:
    return frozenset().union(*(ext.node_types for ext in extensions))


def allowed_mark_types(extensions: Iterable[Extension]) -> FrozenSet[str]:
    return frozenset().union(*(ext.mark_types for ext in extensions))


def allowed_attributes(extensions: Iterable[Extension]) -> Dict[str, FrozenSet[str]]:
    """Merge the per-type attribute sets of several extensions."""
    merged: Dict[str, FrozenSet[str]] = {}
    for ext in extensions:
        for type_name, attrs in ext.attributes.items():
            merged[type_name] = merged.get(type_name, frozenset()) | attrs
    return merged
