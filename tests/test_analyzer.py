"""Tests for the document tree analyzer."""

import pytest

from tiptap_content.analyzer import (
    AnalyzerConfig,
    check_content,
    compute_stats,
    count_depth,
    count_paragraphs,
    count_words,
    extract_text,
    validate_allowed_tags,
    validate_content,
)
from tiptap_content.exceptions import MalformedDocument
from tiptap_content.models import DocumentNode, ValidationRules


def paragraph(text):
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def nest(levels, leaf=None):
    """Build ``levels`` nested blockquotes around ``leaf``."""
    node = leaf or {"type": "text", "text": "deep"}
    for _ in range(levels):
        node = {"type": "blockquote", "content": [node]}
    return node


class TestExtractText:
    def test_concatenates_in_pre_order_without_separators(self, nested_doc):
        assert extract_text(nested_doc) == "IntroQuoted words here"

    def test_root_text_comes_before_children(self):
        node = DocumentNode(
            type="x",
            text="a",
            children=[DocumentNode(text="b", children=[DocumentNode(text="c")]), DocumentNode(text="d")],
        )
        assert extract_text(node) == "abcd"

    def test_equals_own_text_plus_children_text(self, rich_doc):
        node = DocumentNode.from_dict(rich_doc)
        expected = (node.text or "") + "".join(extract_text(child) for child in node.children)
        assert extract_text(node) == expected

    def test_missing_fields_are_empty(self, empty_doc):
        assert extract_text(empty_doc) == ""
        assert extract_text({}) == ""


class TestCountDepth:
    def test_root_without_children_is_zero(self, empty_doc):
        assert count_depth(empty_doc) == 0
        assert count_depth({"type": "doc", "content": []}) == 0

    def test_text_nodes_count_as_a_level(self, simple_doc):
        assert count_depth(simple_doc) == 2

    def test_nested_blockquote(self, nested_doc):
        # doc > blockquote > paragraph > text
        assert count_depth(nested_doc) == 3

    def test_uses_deepest_branch(self):
        doc = {"type": "doc", "content": [paragraph("a"), nest(4)]}
        assert count_depth(doc) == 5

    def test_non_list_content_is_ignored(self):
        assert count_depth({"type": "doc", "content": "oops"}) == 0


class TestCountParagraphs:
    def test_counts_nested_paragraphs(self, nested_doc):
        assert count_paragraphs(nested_doc) == 2

    def test_root_paragraph_is_counted(self):
        assert count_paragraphs(paragraph("x")) == 1

    def test_no_paragraphs(self, empty_doc):
        assert count_paragraphs(empty_doc) == 0


class TestValidateAllowedTags:
    def test_all_types_present_are_allowed(self, rich_doc):
        types = {n.type for n in DocumentNode.from_dict(rich_doc).iter_nodes()}
        assert validate_allowed_tags(rich_doc, types)

    def test_text_type_must_be_whitelisted(self, simple_doc):
        assert not validate_allowed_tags(simple_doc, ["doc", "paragraph"])
        assert validate_allowed_tags(simple_doc, ["doc", "paragraph", "text"])

    def test_untyped_nodes_are_not_checked(self):
        doc = {"type": "doc", "content": [{"text": "loose"}]}
        assert validate_allowed_tags(doc, ["doc"])

    def test_empty_whitelist_rejects_typed_root(self, empty_doc):
        assert not validate_allowed_tags(empty_doc, [])

    def test_single_tag_string(self, empty_doc):
        assert validate_allowed_tags(empty_doc, "doc")
        assert not validate_allowed_tags({"type": "d"}, "doc")


class TestComputeStats:
    def test_simple_document(self, simple_doc):
        stats = compute_stats(simple_doc)
        assert stats.words == 6
        assert stats.paragraphs == 1
        assert stats.characters == 26
        assert stats.characters_no_spaces == 21
        assert stats.reading_time == 1

    def test_empty_document(self, empty_doc):
        stats = compute_stats(empty_doc)
        assert stats.to_dict() == {
            "characters": 0,
            "characters_no_spaces": 0,
            "words": 0,
            "paragraphs": 0,
            "reading_time": 0,
        }

    def test_characters_count_code_points(self):
        stats = compute_stats(paragraph("héllo wörld 👋"))
        assert stats.characters == 13
        assert stats.characters_no_spaces == 11

    def test_only_ascii_spaces_are_removed(self):
        stats = compute_stats(paragraph("a\tb\nc d"))
        assert stats.characters_no_spaces == 6
        assert stats.words == 4

    def test_whitespace_only_text_has_no_words(self):
        stats = compute_stats(paragraph("   \n\t "))
        assert stats.words == 0
        assert stats.reading_time == 0

    def test_reading_time_rounds_up(self):
        assert compute_stats(paragraph(" ".join(["word"] * 200))).reading_time == 1
        assert compute_stats(paragraph(" ".join(["word"] * 201))).reading_time == 2

    def test_count_words_splits_whitespace_runs(self):
        assert count_words("  one   two\tthree\n") == 3
        assert count_words("") == 0


class TestValidateContent:
    def test_max_length(self):
        doc = {"type": "doc", "content": [paragraph("Hello world")]}
        assert validate_content(doc, {"max_length": 5}) is False
        assert validate_content(doc, {"max_length": 100}) is True
        assert validate_content(doc, {"max_length": 11}) is True

    def test_max_depth(self, simple_doc):
        assert validate_content(simple_doc, {"max_depth": 3}) is True
        assert validate_content(simple_doc, {"max_depth": 1}) is False

    def test_allowed_tags(self, simple_doc):
        assert validate_content(simple_doc, {"allowed_tags": ["doc", "paragraph"]}) is False

    def test_absent_or_none_rules_impose_nothing(self, rich_doc):
        assert validate_content(rich_doc, {}) is True
        assert validate_content(rich_doc, None) is True
        assert validate_content(rich_doc, {"max_length": None, "allowed_tags": None}) is True

    def test_accepts_rules_object(self, simple_doc):
        assert validate_content(simple_doc, ValidationRules(max_length=3)) is False

    def test_all_rules_must_pass(self, simple_doc):
        rules = {"max_length": 100, "max_depth": 5, "allowed_tags": ["doc", "paragraph"]}
        assert validate_content(simple_doc, rules) is False


class TestCheckContent:
    def test_reports_every_failing_rule(self, nested_doc):
        report = check_content(nested_doc, {"max_length": 3, "max_depth": 1, "allowed_tags": ["doc"]})
        assert report.valid is False
        assert report.failed_rules == ["max_length", "max_depth", "allowed_tags"]

    def test_agrees_with_validate_content(self, rich_doc):
        for rules in ({}, {"max_length": 5}, {"max_depth": 3}, {"allowed_tags": ["doc", "paragraph", "text"]}):
            assert check_content(rich_doc, rules).valid == validate_content(rich_doc, rules)


class TestTraversalGuard:
    def test_deep_document_within_bound(self):
        doc = nest(3000)
        assert count_depth(doc) == 3000
        assert extract_text(doc) == "deep"

    def test_depth_beyond_bound_raises(self):
        config = AnalyzerConfig(max_recursion_depth=50)
        with pytest.raises(MalformedDocument):
            count_depth(nest(60), config)

    def test_cyclic_tree_raises(self):
        node = DocumentNode(type="paragraph")
        node.children.append(node)
        with pytest.raises(MalformedDocument):
            extract_text(node, AnalyzerConfig(max_recursion_depth=100))

    def test_non_mapping_child_raises(self):
        with pytest.raises(MalformedDocument):
            compute_stats({"type": "doc", "content": ["text"]})

    def test_input_is_not_mutated(self, rich_doc):
        import copy

        before = copy.deepcopy(rich_doc)
        compute_stats(rich_doc)
        validate_content(rich_doc, {"max_depth": 1, "allowed_tags": ["doc"]})
        assert rich_doc == before
