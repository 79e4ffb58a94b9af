"""Tests for keyword extraction."""

from inkwell.context import STOP_WORDS, KeywordExtractor, extract_keywords


class TestExtractKeywords:
    """Tests for extract_keywords."""

    def test_lowercases_and_strips_punctuation(self):
        assert extract_keywords("Dragons! Castles, and KNIGHTS.") == [
            "dragons",
            "castles",
            "knights",
        ]

    def test_drops_short_tokens(self):
        """Tokens of two characters or fewer are dropped."""
        assert extract_keywords("an ox ate my fig") == ["ate", "fig"]

    def test_drops_stop_words_and_request_verbs(self):
        """Auxiliaries and verbs like 'create' carry no topic."""
        keywords = extract_keywords("Create a world where the rivers should flow upward")
        assert keywords == ["world", "where", "rivers", "flow", "upward"]

    def test_deduplicates_in_first_appearance_order(self):
        assert extract_keywords("storm city storm harbor city") == ["storm", "city", "harbor"]

    def test_empty_input(self):
        assert extract_keywords("") == []
        assert extract_keywords("!!! ...") == []

    def test_idempotent(self):
        """Extracting from the joined output gives the same keywords."""
        first = extract_keywords("The Crystal City floats above the Ashen Wastes")
        assert extract_keywords(" ".join(first)) == first

    def test_stop_words_contain_request_verbs(self):
        for verb in ("create", "develop", "write", "make", "describe", "give"):
            assert verb in STOP_WORDS


class TestKeywordExtractor:
    def test_default_stop_words(self):
        assert KeywordExtractor().extract("build the tower") == ["tower"]

    def test_custom_stop_words(self):
        """A custom set replaces the default one."""
        extractor = KeywordExtractor(stop_words=frozenset({"tower"}))
        assert extractor.extract("build the tower") == ["build", "the"]
