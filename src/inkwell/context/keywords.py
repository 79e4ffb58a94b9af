"""Keyword extraction for lexical context matching."""

import re

STOP_WORDS = frozenset({
    # articles, conjunctions, prepositions
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "about",
    # auxiliaries
    "is", "was", "are", "were", "been", "be", "have", "has", "had", "do", "does",
    "did", "will", "would", "should", "could", "may", "might", "can",
    # request verbs with no topical signal
    "create", "develop", "write", "make", "add", "build", "describe", "tell",
    "show", "give",
})

MIN_KEYWORD_LENGTH = 3

_NON_WORD = re.compile(r"[^\w\s]")


def extract_keywords(text: str, stop_words: frozenset[str] = STOP_WORDS) -> list[str]:
    """Extract content-bearing tokens from free text.

    Lower-cases, replaces punctuation with spaces, drops short tokens and
    stop words, and removes duplicates. Order of first appearance is kept
    so prompts built from the result are deterministic.
    """
    seen: dict[str, None] = {}
    for word in _NON_WORD.sub(" ", text.lower()).split():
        if len(word) >= MIN_KEYWORD_LENGTH and word not in stop_words:
            seen.setdefault(word, None)
    return list(seen)


class KeywordExtractor:
    """Keyword extraction with an overridable stop-word set."""

    def __init__(self, stop_words: frozenset[str] | None = None) -> None:
        self.stop_words = stop_words if stop_words is not None else STOP_WORDS

    def extract(self, text: str) -> list[str]:
        return extract_keywords(text, self.stop_words)
