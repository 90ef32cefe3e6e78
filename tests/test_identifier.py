"""Tests for topic identifiers and page classification."""

import pytest

from sanctions.core.identifier import (
    BoardPage,
    Identifier,
    OtherPage,
    TopicPage,
    classify,
    normalize_title,
    parse_identifier,
)
from sanctions.exceptions import InvalidIdentifier

BOARD = "Project talk:Sanctions"


class TestParseIdentifier:
    def test_short_alnum_parses(self):
        ident = parse_identifier("abc123")
        assert ident is not None
        assert ident.alnum == "abc123"

    def test_case_insensitive(self):
        assert parse_identifier("AbC1") == parse_identifier("abc1")
        assert parse_identifier("TV8QC8WTXOZ7YCZD") == parse_identifier("tv8qc8wtxoz7yczd")

    def test_hex_and_alnum_spellings_compare_equal(self):
        ident = Identifier.from_text("tv8qc8wtxoz7yczd")
        assert parse_identifier(ident.hex) == ident
        assert len(ident.hex) == 22

    def test_canonical_form_drops_leading_zeros(self):
        assert parse_identifier("000abc").alnum == "abc"

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "abc-123",
            "has space",
            " abc123",
            "abc123 ",
            "x" * 20,
            "ünïcode",
            "zzzzzzzzzzzzzzzzzzz",
        ],
    )
    def test_invalid_is_none(self, raw):
        assert parse_identifier(raw) is None

    def test_none_input(self):
        assert parse_identifier(None) is None

    def test_out_of_range_rejected(self):
        # 19 base-36 digits can exceed 88 bits.
        with pytest.raises(InvalidIdentifier):
            Identifier.from_text("zzzzzzzzzzzzzzzzzzz")

    def test_padded_token_raises(self):
        with pytest.raises(InvalidIdentifier):
            Identifier.from_text("abc123 ")

    def test_strict_parse_raises(self):
        with pytest.raises(InvalidIdentifier):
            Identifier.from_text("not a topic")

    def test_invalid_identifier_is_a_value_error(self):
        with pytest.raises(ValueError):
            Identifier.from_text("!!")


class TestNormalizeTitle:
    def test_underscores_and_case(self):
        assert normalize_title("project_talk:sanctions") == "Project talk:Sanctions"

    def test_collapses_whitespace(self):
        assert normalize_title("  Project   talk:Sanctions ") == "Project talk:Sanctions"

    def test_empty(self):
        assert normalize_title("   ") == ""


class TestClassify:
    def test_board_page(self):
        assert isinstance(classify("Project_talk:Sanctions", BOARD), BoardPage)

    def test_topic_page_with_namespace(self):
        page = classify("Topic:Tv8qc8wtxoz7yczd", BOARD)
        assert isinstance(page, TopicPage)
        assert page.identifier == Identifier.from_text("tv8qc8wtxoz7yczd")

    def test_topic_page_without_namespace(self):
        assert isinstance(classify("abc123", BOARD), TopicPage)

    def test_padded_page_title_still_a_topic(self):
        page = classify(" Topic:abc123 ", BOARD)
        assert isinstance(page, TopicPage)
        assert page.identifier.alnum == "abc123"

    def test_other_page(self):
        assert isinstance(classify("Main Page", BOARD), OtherPage)

    def test_missing_title(self):
        assert isinstance(classify(None, BOARD), OtherPage)

    def test_missing_board_name_disables_board(self):
        assert isinstance(classify("Project talk:Sanctions", None), OtherPage)
