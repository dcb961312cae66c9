"""Tests for configuration loading."""

import json

import pytest

from tiptap_content.config import CacheConfig, TiptapConfig, ValidationConfig, load_config
from tiptap_content.exceptions import UnknownExtensionError

ENV_VARS = (
    "TIPTAP_CONFIG_FILE",
    "TIPTAP_EXTENSIONS",
    "TIPTAP_CACHE_ENABLED",
    "TIPTAP_CACHE_STORE",
    "TIPTAP_CACHE_TTL",
    "TIPTAP_CACHE_PREFIX",
    "REDIS_URL",
    "TIPTAP_VALIDATION",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()
    assert config.extensions == {"StarterKit": {}}
    assert config.cache == CacheConfig()
    assert config.cache.prefix == "tiptap"
    assert config.cache.ttl == 3600.0
    assert config.validation.max_length == 50000
    assert config.validation.max_depth == 10
    assert config.validation.allowed_tags is None


def test_default_config_objects_are_independent():
    a = TiptapConfig()
    b = TiptapConfig()
    a.extensions["Color"] = {}
    assert "Color" not in b.extensions


def test_extensions_list_is_normalized():
    config = TiptapConfig(extensions=["StarterKit", "Color"])
    assert config.extensions == {"StarterKit": {}, "Color": {}}
    assert [e.name for e in config.resolved_extensions] == ["StarterKit", "Color"]


def test_unknown_extension_fails_at_load():
    with pytest.raises(UnknownExtensionError):
        TiptapConfig(extensions={"Tables": {}})


def test_validation_config_as_rules():
    assert ValidationConfig(max_length=5).as_rules() == {
        "max_length": 5,
        "max_depth": 10,
        "allowed_tags": None,
    }


def test_load_from_file(tmp_path):
    path = tmp_path / "tiptap.json"
    path.write_text(
        json.dumps(
            {
                "extensions": {"StarterKit": {"heading": False}, "TextAlign": {}},
                "cache": {"enabled": False, "ttl": 30},
                "validation": {"max_depth": 4, "allowed_tags": ["doc", "paragraph", "text"]},
            }
        )
    )

    config = load_config(path)

    assert config.extensions == {"StarterKit": {"heading": False}, "TextAlign": {}}
    assert config.cache.enabled is False
    assert config.cache.ttl == 30
    assert config.validation.max_depth == 4
    assert config.validation.max_length == 50000
    assert config.validation.allowed_tags == ["doc", "paragraph", "text"]


def test_config_file_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "tiptap.json"
    path.write_text(json.dumps({"cache": {"prefix": "site"}}))
    monkeypatch.setenv("TIPTAP_CONFIG_FILE", str(path))
    assert load_config().cache.prefix == "site"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json")


def test_non_object_file_raises(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[]")
    with pytest.raises(ValueError):
        load_config(path)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TIPTAP_EXTENSIONS", "StarterKit, FontFamily")
    monkeypatch.setenv("TIPTAP_CACHE_ENABLED", "false")
    monkeypatch.setenv("TIPTAP_CACHE_STORE", "redis")
    monkeypatch.setenv("TIPTAP_CACHE_TTL", "120")
    monkeypatch.setenv("TIPTAP_CACHE_PREFIX", "blog")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")

    config = load_config()

    assert list(config.extensions) == ["StarterKit", "FontFamily"]
    assert config.cache.enabled is False
    assert config.cache.store == "redis"
    assert config.cache.ttl == 120.0
    assert config.cache.prefix == "blog"
    assert config.cache.redis_url == "redis://cache:6379/1"


def test_validation_from_environment(monkeypatch):
    monkeypatch.setenv("TIPTAP_VALIDATION", "max_length=1000,max_depth=none,allowed_tags=doc|paragraph|text")
    validation = load_config().validation
    assert validation.max_length == 1000
    assert validation.max_depth is None
    assert validation.allowed_tags == ["doc", "paragraph", "text"]


def test_unknown_validation_key_is_ignored(monkeypatch):
    monkeypatch.setenv("TIPTAP_VALIDATION", "colour=red,max_length=7")
    assert load_config().validation.max_length == 7


def test_unknown_extension_in_environment(monkeypatch):
    monkeypatch.setenv("TIPTAP_EXTENSIONS", "StarterKit,Nope")
    with pytest.raises(UnknownExtensionError):
        load_config()
