"""Exception types raised by the content toolkit.

Each exception subclasses the closest built-in so callers that only care about
the broad category (``ValueError`` for bad input, ``LookupError`` for unknown
names, ``RuntimeError`` for missing collaborators) can keep catching that.
"""

from __future__ import annotations

from typing import List, Optional


class MalformedDocument(ValueError):
    """Document input cannot be read as a node tree.

    Raised for undecodable JSON, non-mapping child entries and trees nested
    deeper than the configured traversal bound (which includes cyclic input).
    """


class MissingContentError(ValueError):
    """A builder operation needed content but none was set."""


class ContentValidationError(ValueError):
    """Content failed one or more validation rules.

    Attributes:
        failed_rules: Names of the rules that did not pass (e.g. ``max_length``).
    """

    def __init__(self, message: str = "Content validation failed", failed_rules: Optional[List[str]] = None):
        self.failed_rules = list(failed_rules or [])
        if self.failed_rules:
            message = f"{message}: {', '.join(self.failed_rules)}"
        super().__init__(message)


class UnknownExtensionError(LookupError):
    """An extension name is not present in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown extension: {name}")


class EngineNotConfiguredError(RuntimeError):
    """HTML conversion was requested but no content engine is attached."""
