"""Tests for the content quality gate."""

from __future__ import annotations

import pytest

from sitetext.scraper.quality import ERROR_PHRASES, is_meaningful, lexical_variety, looks_like_error_page

_VARIED = (
    "Fresh sourdough baked daily by our team of artisan bakers using local flour, "
    "sea salt, filtered water and time."
)


class TestIsMeaningful:
    def test_exactly_99_chars_rejected(self) -> None:
        text = _VARIED[:99]
        assert len(text) == 99
        assert is_meaningful(text) is False

    def test_100_varied_chars_accepted(self) -> None:
        text = _VARIED[:100]
        assert len(text) == 100
        assert is_meaningful(text) is True

    def test_repeated_loading_rejected(self) -> None:
        text = " ".join(["loading"] * 500)
        assert len(text) > 100
        assert is_meaningful(text) is False

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_rejected(self, value) -> None:
        assert is_meaningful(value) is False

    def test_short_error_page_rejected(self) -> None:
        text = "Oops! Error 404 - the page you requested could not be located on this server, sorry for that, go back."
        assert 100 <= len(text) < 200
        assert is_meaningful(text) is False

    def test_long_page_mentioning_forbidden_accepted(self) -> None:
        text = (
            "Our community guidelines list what is forbidden on the forum: spam, abuse and "
            "advertising. Everything else is welcome, from recipes to travel stories, photos, "
            "questions about gardening and reviews of local restaurants."
        )
        assert len(text) >= 200
        assert is_meaningful(text) is True

    def test_custom_thresholds(self) -> None:
        assert is_meaningful("short but fine text", min_length=10) is True


class TestHelpers:
    def test_lexical_variety(self) -> None:
        assert lexical_variety("a A b B") == pytest.approx(0.5)

    def test_lexical_variety_empty(self) -> None:
        assert lexical_variety("   ") == 0.0

    def test_looks_like_error_page(self) -> None:
        assert looks_like_error_page("Access Denied") is True
        assert looks_like_error_page("Welcome to the shop") is False

    def test_error_phrases_are_the_fixed_four(self) -> None:
        assert ERROR_PHRASES == ("page not found", "error 404", "access denied", "forbidden")

    def test_bare_404_banner_is_not_an_error_phrase(self) -> None:
        assert looks_like_error_page("HTTP 404 Not Found") is False
        assert looks_like_error_page("Page Not Found") is True
