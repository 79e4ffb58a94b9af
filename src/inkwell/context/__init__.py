"""Context assembly: keywords, relevance scoring, lore matching and task bundles."""

from .builder import ContextBuilder, apply_content_strategy, mentions_name
from .keywords import STOP_WORDS, KeywordExtractor, extract_keywords
from .lore import TriggeredFact, estimate_tokens, format_world_info, match_lore
from .models import CharacterView, ContextBundle, FactView, TaskType
from .scoring import RelevanceScorer

__all__ = [
    "STOP_WORDS",
    "CharacterView",
    "ContextBuilder",
    "ContextBundle",
    "FactView",
    "KeywordExtractor",
    "RelevanceScorer",
    "TaskType",
    "TriggeredFact",
    "apply_content_strategy",
    "estimate_tokens",
    "extract_keywords",
    "format_world_info",
    "match_lore",
    "mentions_name",
]
