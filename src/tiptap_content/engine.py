"""Content engine port - interface for HTML <-> document conversion.

Rendering and parsing HTML belongs to a rich-text engine outside this package.
The service talks to it through this interface; attach an implementation with
``TiptapService(engine=...)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .extensions import Extension


class ContentEngine(ABC):
    """Interface for a rich-text conversion engine."""

    @abstractmethod
    def to_html(self, document: Dict[str, Any], extensions: List[Extension]) -> str:
        """Render a document mapping as HTML using the given schema."""

    @abstractmethod
    def from_html(self, html: str, extensions: List[Extension]) -> Dict[str, Any]:
        """Parse HTML into a document mapping using the given schema."""
