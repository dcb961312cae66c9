"""Fluent builder over :class:`~tiptap_content.service.TiptapService`.

Setters return the builder so calls chain; terminal operations return values.

Example::

    stats = (
        service.make()
        .content(document)
        .starter_kit()
        .color()
        .max_length(10_000)
        .allowed_tags(["doc", "paragraph", "text"])
        .validate_or_fail()
        .sanitize()
        .stats()
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .exceptions import ContentValidationError, MissingContentError

if TYPE_CHECKING:  # pragma: no cover
    from .models import ValidationReport
    from .service import TiptapService

Content = Union[str, Mapping[str, Any]]


class TiptapBuilder:
    """Collects content, extensions and rules, then runs service operations."""

    def __init__(self, service: "TiptapService") -> None:
        self._service = service
        self._content: Optional[Content] = None
        self._extensions: Dict[str, Dict[str, Any]] = {}
        self._rules: Dict[str, Any] = {}
        self._use_cache = True

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def content(self, content: Content) -> "TiptapBuilder":
        """Set the document (mapping or JSON string) or HTML to process."""
        self._content = content
        return self

    def extensions(self, extensions: Union[Mapping[str, Any], Iterable[str]]) -> "TiptapBuilder":
        """Replace the extension set (mapping name -> options, or list of names)."""
        if isinstance(extensions, Mapping):
            self._extensions = {name: dict(options or {}) for name, options in extensions.items()}
        else:
            self._extensions = {name: {} for name in extensions}
        return self

    def extension(self, name: str, options: Optional[Mapping[str, Any]] = None) -> "TiptapBuilder":
        self._extensions[name] = dict(options or {})
        return self

    def starter_kit(self, options: Optional[Mapping[str, Any]] = None) -> "TiptapBuilder":
        return self.extension("StarterKit", options)

    def color(self) -> "TiptapBuilder":
        return self.extension("Color")

    def font_family(self) -> "TiptapBuilder":
        return self.extension("FontFamily")

    def text_align(self, options: Optional[Mapping[str, Any]] = None) -> "TiptapBuilder":
        return self.extension("TextAlign", options)

    def rules(self, rules: Mapping[str, Any]) -> "TiptapBuilder":
        self._rules = dict(rules)
        return self

    def rule(self, key: str, value: Any) -> "TiptapBuilder":
        self._rules[key] = value
        return self

    def max_length(self, length: int) -> "TiptapBuilder":
        return self.rule("max_length", length)

    def max_depth(self, depth: int) -> "TiptapBuilder":
        return self.rule("max_depth", depth)

    def allowed_tags(self, tags: Iterable[str]) -> "TiptapBuilder":
        return self.rule("allowed_tags", list(tags))

    def without_cache(self) -> "TiptapBuilder":
        self._use_cache = False
        return self

    def with_cache(self) -> "TiptapBuilder":
        self._use_cache = True
        return self

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def _require_content(self) -> Content:
        if self._content is None:
            raise MissingContentError("Content must be set before processing")
        return self._content

    def to_html(self) -> str:
        content = self._require_content()
        return self._service.parse_json(content, self._extensions, use_cache=self._use_cache)

    def to_json(self) -> Dict[str, Any]:
        """Return the document mapping, parsing HTML content through the engine."""
        content = self._require_content()
        if isinstance(content, Mapping):
            return dict(content)
        return self._service.parse_html(content, self._extensions, use_cache=self._use_cache)

    def to_text(self) -> str:
        return self._service.to_text(self._require_content())

    def stats(self) -> Dict[str, int]:
        return self._service.get_stats(self._require_content())

    def word_count(self) -> int:
        return self.stats().get("words", 0)

    def character_count(self, include_spaces: bool = True) -> int:
        key = "characters" if include_spaces else "characters_no_spaces"
        return self.stats().get(key, 0)

    def reading_time(self) -> int:
        """Estimated reading time in minutes."""
        return self.stats().get("reading_time", 0)

    def check(self) -> "ValidationReport":
        return self._service.check(self._require_content(), self._rules)

    def validate(self) -> bool:
        return self.check().valid

    def validate_or_fail(self) -> "TiptapBuilder":
        """Raise :class:`ContentValidationError` naming the failed rules."""
        report = self.check()
        if not report.valid:
            raise ContentValidationError(failed_rules=report.failed_rules)
        return self

    def sanitize(self) -> "TiptapBuilder":
        """Replace the content with its sanitized form."""
        self._content = self._service.sanitize(self._require_content(), self._extensions)
        return self

    def is_empty(self) -> bool:
        if self._content is None:
            return True
        return not self.to_text().strip()

    def is_not_empty(self) -> bool:
        return not self.is_empty()

    # ------------------------------------------------------------------
    # Flow helpers
    # ------------------------------------------------------------------
    def tap(self, callback: Callable[["TiptapBuilder"], Any]) -> "TiptapBuilder":
        callback(self)
        return self

    def when(self, condition: bool, callback: Callable[["TiptapBuilder"], Any]) -> "TiptapBuilder":
        if condition:
            callback(self)
        return self

    def unless(self, condition: bool, callback: Callable[["TiptapBuilder"], Any]) -> "TiptapBuilder":
        return self.when(not condition, callback)

    def clone(self) -> "TiptapBuilder":
        """New builder with the same extensions, rules and cache flag (no content)."""
        clone = TiptapBuilder(self._service)
        clone._extensions = {name: dict(options) for name, options in self._extensions.items()}
        clone._rules = dict(self._rules)
        clone._use_cache = self._use_cache
        return clone

    def raw(self) -> Optional[Content]:
        return self._content

    @property
    def extension_names(self) -> List[str]:
        return list(self._extensions)
