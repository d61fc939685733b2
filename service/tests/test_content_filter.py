"""Tests for markdown detection in chat input."""

import pytest

from app.guardrails.content_filter import contains_markup, find_markup


class TestContainsMarkup:
    @pytest.mark.parametrize(
        "formatted",
        [
            "**bold**",
            "this is *italic* text",
            "this is _italic_ text",
            "see [my site](https://example.com)",
            "run `rm -rf` now",
            "~~struck~~",
            "# heading",
            "###### deep heading",
            "- item",
            "* item",
            "1. first",
            "> quote",
            "plain first line\n- item on second line",
            "plain first line\n> quoted second line",
        ],
    )
    def test_detects_formatting(self, formatted: str) -> None:
        assert contains_markup(formatted) is True

    @pytest.mark.parametrize(
        "plain",
        [
            "Hello there",
            "What projects has Gregory built?",
            "Is 5 * 3 equal to 15?",
            "Call me at 3pm - thanks",
            "Version 2.0 is out",
            "my_variable looks fine",
            "#hashtag without a space",
            "Price > 10 dollars",
        ],
    )
    def test_allows_plain_prose(self, plain: str) -> None:
        assert contains_markup(plain) is False


class TestFindMarkup:
    def test_reports_first_matching_class(self) -> None:
        # Bold is checked before italic, so '**x**' reports bold
        assert find_markup("**x**") == "bold"

    def test_line_anchored_class(self) -> None:
        assert find_markup("## Title") == "heading"
        assert find_markup("12. twelfth") == "numbered_list"

    def test_none_for_plain_text(self) -> None:
        assert find_markup("nothing special here") is None
