"""Lexical moderation for staff free text."""

from typing import Iterable

# Profanity roots matched as substrings. Roots, not words, so inflected
# forms are caught too.
DEFAULT_BLOCKLIST: tuple[str, ...] = (
    "хуй",
    "пизд",
    "еба",
    "бля",
    "сука",
    "гондо",
    "муда",
    "залуп",
    "уеб",
    "охуе",
    "хуе",
    "fuck",
    "shit",
    "bitch",
    "cunt",
    "asshole",
)


class ModerationFilter:
    """
    Case-insensitive substring check against a fixed blocklist.

    Pure and deterministic. Must run before any externally scored
    evaluation of free text.
    """

    def __init__(self, extra_fragments: Iterable[str] = ()):
        fragments = list(DEFAULT_BLOCKLIST) + [f for f in extra_fragments if f]
        self._fragments = tuple(dict.fromkeys(f.lower() for f in fragments))

    @property
    def fragments(self) -> tuple[str, ...]:
        return self._fragments

    def first_violation(self, text: str) -> str | None:
        """Return the first blocked fragment found in `text`, if any."""
        lowered = text.lower()
        for fragment in self._fragments:
            if fragment in lowered:
                return fragment
        return None

    def is_violating(self, text: str) -> bool:
        return self.first_violation(text) is not None
