"""Tests for the lexical moderation filter."""

from shopfloor.moderation import DEFAULT_BLOCKLIST, ModerationFilter


class TestModerationFilter:
    """Test substring blocklist matching."""

    def test_clean_text_passes(self):
        assert ModerationFilter().is_violating("Good afternoon, how can I help?") is False

    def test_root_matches_inside_word(self):
        """Roots catch inflected forms."""
        moderation = ModerationFilter()
        assert moderation.is_violating("what the fucking price") is True
        assert moderation.first_violation("what the fucking price") == "fuck"

    def test_case_insensitive(self):
        assert ModerationFilter().is_violating("SHIT happens") is True

    def test_cyrillic_roots(self):
        assert ModerationFilter().is_violating("Да бля, дорого") is True

    def test_empty_text(self):
        assert ModerationFilter().first_violation("") is None

    def test_extra_fragments(self):
        moderation = ModerationFilter(extra_fragments=["Idiot", ""])
        assert moderation.is_violating("you idiot") is True
        assert "idiot" in moderation.fragments
        assert "" not in moderation.fragments

    def test_duplicates_collapsed(self):
        moderation = ModerationFilter(extra_fragments=["FUCK"])
        assert len(moderation.fragments) == len(DEFAULT_BLOCKLIST)

    def test_deterministic(self):
        moderation = ModerationFilter()
        text = "This price is shit"
        assert moderation.first_violation(text) == moderation.first_violation(text)
