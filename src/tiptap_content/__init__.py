"""Tiptap Content API
==================

Toolkit and service layer for Tiptap / ProseMirror rich-text documents.

Key capabilities
----------------
- Analyze a document tree: plain text, nesting depth, paragraph count, word and
  character counts, reading time (:mod:`tiptap_content.analyzer`).
- Validate content against length, depth and node-type whitelist rules.
- Sanitize documents down to an extension set (:mod:`tiptap_content.sanitizer`).
- Cache HTML <-> JSON conversions performed by a pluggable content engine, in
  memory or in Redis (:mod:`tiptap_content.cache`).
- Fluent builder API and a FastAPI application.

Minimal quick start
-------------------
>>> from tiptap_content import TiptapService
>>> service = TiptapService()
>>> doc = {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Hello world"}]}]}
>>> service.get_stats(doc)["words"]
2
>>> service.make().content(doc).max_length(5).validate()
False

FastAPI application instance (for ASGI servers like uvicorn):
>>> from tiptap_content.app import app  # noqa: F401
"""

__version__ = "0.1.0"

from .analyzer import (
    check_content,
    compute_stats,
    count_depth,
    count_paragraphs,
    extract_text,
    validate_allowed_tags,
    validate_content,
)
from .builder import TiptapBuilder
from .exceptions import (
    ContentValidationError,
    EngineNotConfiguredError,
    MalformedDocument,
    MissingContentError,
    UnknownExtensionError,
)
from .models import ContentStats, DocumentNode, ValidationReport, ValidationRules
from .service import TiptapService

__all__ = [
    "ContentStats",
    "ContentValidationError",
    "DocumentNode",
    "EngineNotConfiguredError",
    "MalformedDocument",
    "MissingContentError",
    "TiptapBuilder",
    "TiptapService",
    "UnknownExtensionError",
    "ValidationReport",
    "ValidationRules",
    "check_content",
    "compute_stats",
    "count_depth",
    "count_paragraphs",
    "extract_text",
    "validate_allowed_tags",
    "validate_content",
]
