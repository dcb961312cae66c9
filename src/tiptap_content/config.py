"""Configuration for the content service.

Configuration is a tree of dataclasses with package defaults, optionally read
from a JSON file and then overridden by environment variables:

    TIPTAP_CONFIG_FILE     JSON file with ``extensions`` / ``cache`` / ``validation`` sections
    TIPTAP_EXTENSIONS      Comma separated extension names, e.g. ``StarterKit,Color``
    TIPTAP_CACHE_ENABLED   ``true`` / ``false``
    TIPTAP_CACHE_STORE     ``memory`` (default) or ``redis``
    TIPTAP_CACHE_TTL       Seconds (default 3600)
    TIPTAP_CACHE_PREFIX    Cache key prefix (default ``tiptap``)
    REDIS_URL              Redis connection URL for the ``redis`` store
    TIPTAP_VALIDATION      ``key=value`` pairs, e.g. ``max_length=1000,allowed_tags=doc|paragraph|text``

Extension names are resolved against the registry when a :class:`TiptapConfig`
is created, so a typo fails at startup with :class:`UnknownExtensionError`.

Example::

    from tiptap_content.config import load_config
    config = load_config()           # defaults + environment
    config.validation.max_length     # 50000
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .extensions import DEFAULT_EXTENSIONS, Extension, resolve_extensions
from .models import MAX_TREE_DEPTH

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_NONE_VALUES = ("", "none", "null")


@dataclass
class CacheConfig:
    """Conversion cache settings.

    Args:
        enabled: Cache HTML <-> JSON conversions.
        store: ``None``/``"memory"`` for the in-process cache, ``"redis"`` for Redis.
        ttl: Entry lifetime in seconds.
        prefix: First segment of every cache key.
        redis_url: Redis URL (falls back to ``REDIS_URL``).
    """

    enabled: bool = True
    store: Optional[str] = None
    ttl: float = 3600.0
    prefix: str = "tiptap"
    redis_url: Optional[str] = None


@dataclass
class ValidationConfig:
    """Default validation rules merged under per-call rules.

    ``allowed_tags=None`` means every node type is accepted.
    """

    max_length: Optional[int] = 50000
    max_depth: Optional[int] = 10
    allowed_tags: Optional[List[str]] = None

    def as_rules(self) -> Dict[str, Any]:
        return {
            "max_length": self.max_length,
            "max_depth": self.max_depth,
            "allowed_tags": self.allowed_tags,
        }


def _default_extensions() -> Dict[str, Dict[str, Any]]:
    return {name: dict(options) for name, options in DEFAULT_EXTENSIONS.items()}


@dataclass
class TiptapConfig:
    """Top-level service configuration.

    Attributes:
        extensions: Default extension set, name -> options.
        cache: Conversion cache settings.
        validation: Default validation rules.
        max_recursion_depth: Traversal bound for every tree walk.
    """

    extensions: Dict[str, Dict[str, Any]] = field(default_factory=_default_extensions)
    cache: CacheConfig = field(default_factory=CacheConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    max_recursion_depth: int = MAX_TREE_DEPTH

    def __post_init__(self) -> None:
        self.extensions = _normalize_extensions(self.extensions)
        self._resolved = resolve_extensions(self.extensions)

    @property
    def resolved_extensions(self) -> List[Extension]:
        return list(self._resolved)


def _normalize_extensions(selection: Union[Mapping[str, Any], List[str], None]) -> Dict[str, Dict[str, Any]]:
    if not selection:
        return _default_extensions()
    if isinstance(selection, Mapping):
        return {str(name): dict(options or {}) for name, options in selection.items()}
    return {str(name): {} for name in selection}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _parse_optional_int(value: str) -> Optional[int]:
    value = value.strip()
    if value.lower() in _NONE_VALUES:
        return None
    return int(value)


def _parse_validation(config_str: str, validation: ValidationConfig) -> None:
    """Apply ``key=value`` pairs (``allowed_tags`` values separated by ``|``)."""
    for pair in config_str.split(","):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        key = key.strip()
        if key in ("max_length", "max_depth"):
            setattr(validation, key, _parse_optional_int(value))
        elif key == "allowed_tags":
            value = value.strip()
            validation.allowed_tags = (
                None if value.lower() in _NONE_VALUES else [t.strip() for t in value.split("|") if t.strip()]
            )
        else:
            logger.warning(f"Ignoring unknown validation setting: {key}")


def _read_file(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> TiptapConfig:
    """Load configuration from an optional JSON file plus environment overrides.

    Args:
        path: JSON file to read; defaults to ``TIPTAP_CONFIG_FILE`` when set.
    Returns:
        TiptapConfig: Fully resolved configuration.
    Raises:
        FileNotFoundError: If a configuration file was named but does not exist.
        UnknownExtensionError: If an extension name is not registered.
    """
    path = path or os.getenv("TIPTAP_CONFIG_FILE")
    data: Dict[str, Any] = _read_file(Path(path)) if path else {}

    cache = CacheConfig(**data.get("cache", {}))
    validation = ValidationConfig(**data.get("validation", {}))
    extensions = data.get("extensions")

    if os.getenv("TIPTAP_EXTENSIONS"):
        extensions = [n.strip() for n in os.environ["TIPTAP_EXTENSIONS"].split(",") if n.strip()]
    if os.getenv("TIPTAP_CACHE_ENABLED") is not None:
        cache.enabled = _parse_bool(os.environ["TIPTAP_CACHE_ENABLED"])
    if os.getenv("TIPTAP_CACHE_STORE"):
        cache.store = os.environ["TIPTAP_CACHE_STORE"]
    if os.getenv("TIPTAP_CACHE_TTL"):
        cache.ttl = float(os.environ["TIPTAP_CACHE_TTL"])
    if os.getenv("TIPTAP_CACHE_PREFIX"):
        cache.prefix = os.environ["TIPTAP_CACHE_PREFIX"]
    if os.getenv("REDIS_URL") and not cache.redis_url:
        cache.redis_url = os.environ["REDIS_URL"]
    if os.getenv("TIPTAP_VALIDATION"):
        _parse_validation(os.environ["TIPTAP_VALIDATION"], validation)

    config = TiptapConfig(
        extensions=_normalize_extensions(extensions),
        cache=cache,
        validation=validation,
        max_recursion_depth=int(data.get("max_recursion_depth", MAX_TREE_DEPTH)),
    )
    logger.debug(
        f"Loaded configuration: extensions={list(config.extensions)}, "
        f"cache={'on' if cache.enabled else 'off'} ({cache.store or 'memory'})"
    )
    return config
