import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from tiptap_content.config import CacheConfig, TiptapConfig
from tiptap_content.engine import ContentEngine
from tiptap_content.extensions import Extension
from tiptap_content.monitoring import get_monitor
from tiptap_content.service import TiptapService

FIXTURES = Path(__file__).resolve().parent / "fixtures" / "documents"


def load_document(name: str) -> Dict[str, Any]:
    with open(FIXTURES / f"{name}.json", "r", encoding="utf-8") as f:
        return json.load(f)


class RecordingEngine(ContentEngine):
    """Engine double that renders paragraphs naively and counts calls."""

    def __init__(self):
        self.to_html_calls = 0
        self.from_html_calls = 0
        self.last_extensions: List[Extension] = []

    def to_html(self, document, extensions):
        self.to_html_calls += 1
        self.last_extensions = extensions
        paragraphs = [
            "".join(child.get("text", "") for child in node.get("content", []))
            for node in document.get("content", [])
        ]
        return "".join(f"<p>{p}</p>" for p in paragraphs)

    def from_html(self, html, extensions):
        self.from_html_calls += 1
        self.last_extensions = extensions
        text = html.replace("<p>", "").replace("</p>", "")
        return {
            "type": "doc",
            "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
        }


@pytest.fixture
def simple_doc():
    return load_document("simple")


@pytest.fixture
def nested_doc():
    return load_document("nested")


@pytest.fixture
def rich_doc():
    return load_document("rich")


@pytest.fixture
def empty_doc():
    return load_document("empty")


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def service(engine):
    config = TiptapConfig(cache=CacheConfig(enabled=True, ttl=60))
    return TiptapService(config, engine=engine)


@pytest.fixture(autouse=True)
def reset_monitor():
    get_monitor().reset_metrics()
    yield
