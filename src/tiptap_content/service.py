"""Content service: the single entry point used by the builder, CLI and HTTP API.

``TiptapService`` combines the analyzer, sanitizer, extension registry, cache
and an optional HTML conversion engine behind one object configured by
:class:`~tiptap_content.config.TiptapConfig`.

Content arguments accept either a document mapping or its JSON string.

Example::

    from tiptap_content.service import TiptapService

    service = TiptapService()
    service.get_stats({"type": "doc", "content": []})["words"]      # 0
    service.validate(doc, {"max_length": 100})                      # True / False
    service.make().content(doc).max_depth(3).validate_or_fail().stats()
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from .analyzer import AnalyzerConfig, as_node, check_content, compute_stats, extract_text
from .builder import TiptapBuilder
from .cache import Cache, create_cache, make_content_key
from .config import TiptapConfig
from .engine import ContentEngine
from .exceptions import EngineNotConfiguredError, MalformedDocument
from .extensions import Extension, ExtensionSelection, resolve_extensions
from .models import DocumentNode, ValidationReport, ValidationRules
from .monitoring import get_monitor
from .sanitizer import sanitize_document

logger = logging.getLogger(__name__)

Content = Union[str, Mapping[str, Any]]
Rules = Union[ValidationRules, Mapping[str, Any], None]


def _dumps(document: Mapping[str, Any]) -> str:
    try:
        return json.dumps(document)
    except RecursionError as e:
        raise MalformedDocument("Document is nested too deeply to encode as JSON") from e


class TiptapService:
    """Analyze, validate, sanitize and convert rich-text documents.

    Args:
        config: Service configuration (package defaults when omitted).
        cache: Cache store; built from ``config.cache`` when omitted and
            caching is enabled.
        engine: HTML conversion engine. ``parse_json`` / ``parse_html`` raise
            :class:`EngineNotConfiguredError` without one.
    """

    def __init__(
        self,
        config: Optional[TiptapConfig] = None,
        cache: Optional[Cache] = None,
        engine: Optional[ContentEngine] = None,
    ) -> None:
        self.config = config or TiptapConfig()
        if cache is None and self.config.cache.enabled:
            cache = create_cache(self.config.cache)
        self.cache = cache
        self.engine = engine
        self.analyzer_config = AnalyzerConfig(max_recursion_depth=self.config.max_recursion_depth)

    def make(self) -> TiptapBuilder:
        """Create a fluent builder bound to this service."""
        return TiptapBuilder(self)

    # ------------------------------------------------------------------
    # Input helpers
    # ------------------------------------------------------------------
    def decode(self, content: Content) -> Dict[str, Any]:
        """Return ``content`` as a document mapping, parsing JSON strings.

        JSON text nested beyond what the decoder can handle raises
        :class:`MalformedDocument`; pass a mapping for very deep documents.
        """
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except json.JSONDecodeError as e:
                raise MalformedDocument(f"Invalid document JSON: {e}") from e
            except RecursionError as e:
                raise MalformedDocument("Document JSON is nested too deeply to decode") from e
        if not isinstance(content, Mapping):
            raise MalformedDocument(f"Document must be a JSON object, got {type(content).__name__}")
        return dict(content)

    def document(self, content: Content) -> DocumentNode:
        return as_node(self.decode(content), self.analyzer_config)

    def resolve_extensions(self, extensions: ExtensionSelection = None) -> List[Extension]:
        """Resolve ``extensions``, falling back to the configured defaults."""
        return resolve_extensions(extensions, defaults=self.config.extensions)

    def _require_engine(self) -> ContentEngine:
        if self.engine is None:
            raise EngineNotConfiguredError("No content engine configured for HTML conversion")
        return self.engine

    def _should_cache(self, use_cache: bool) -> bool:
        return use_cache and self.config.cache.enabled and self.cache is not None

    # ------------------------------------------------------------------
    # Conversion (delegated to the engine)
    # ------------------------------------------------------------------
    def parse_json(self, content: Content, extensions: ExtensionSelection = None, use_cache: bool = True) -> str:
        """Render a document as HTML."""
        exts = self.resolve_extensions(extensions)
        document = self.decode(content)
        # bounded walk rejects malformed or cyclic input before hashing
        self.document(document)
        engine = self._require_engine()

        def render() -> str:
            return engine.to_html(document, exts)

        if self._should_cache(use_cache):
            key = make_content_key(self.config.cache.prefix, "json", document, exts)
            return self.cache.remember(key, render, self.config.cache.ttl)
        return render()

    def parse_html(self, html: str, extensions: ExtensionSelection = None, use_cache: bool = True) -> Dict[str, Any]:
        """Parse HTML into a document mapping.

        The cache holds the document as JSON text, so every call returns a
        fresh mapping the caller may modify.
        """
        exts = self.resolve_extensions(extensions)
        engine = self._require_engine()

        if self._should_cache(use_cache):

            def parse() -> str:
                return _dumps(self.decode(engine.from_html(html, exts)))

            key = make_content_key(self.config.cache.prefix, "html", html, exts)
            return self.decode(self.cache.remember(key, parse, self.config.cache.ttl))
        return self.decode(engine.from_html(html, exts))

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------
    def merged_rules(self, rules: Rules = None) -> ValidationRules:
        """Merge per-call rules over the configured defaults.

        With a mapping, every key present wins, so ``{"max_depth": None}``
        disables the default depth limit. With a :class:`ValidationRules`
        instance only its non-None fields override.
        """
        merged = self.config.validation.as_rules()
        if isinstance(rules, ValidationRules):
            merged.update({k: v for k, v in rules.to_dict().items() if v is not None})
        elif rules:
            merged.update(rules)
        return ValidationRules.from_mapping(merged)

    def check(self, content: Content, rules: Rules = None) -> ValidationReport:
        """Validate against merged rules and report every failing rule."""
        report = check_content(self.document(content), self.merged_rules(rules), self.analyzer_config)
        get_monitor().record_validation(report.valid, report.failed_rules)
        if not report.valid:
            logger.debug(f"Content failed validation: {report.failed_rules}")
        return report

    def validate(self, content: Content, rules: Rules = None) -> bool:
        return self.check(content, rules).valid

    def sanitize(self, content: Content, extensions: ExtensionSelection = None) -> Content:
        """Restrict content to an extension set.

        Returns a JSON string when given a JSON string, a mapping otherwise.
        """
        exts = self.resolve_extensions(extensions)
        cleaned = sanitize_document(self.document(content), exts, self.config.max_recursion_depth)
        result = cleaned.to_dict(self.config.max_recursion_depth)
        return _dumps(result) if isinstance(content, str) else result

    def to_text(self, content: Content) -> str:
        return extract_text(self.document(content), self.analyzer_config)

    def get_stats(self, content: Content) -> Dict[str, int]:
        return compute_stats(self.document(content), self.analyzer_config).to_dict()
