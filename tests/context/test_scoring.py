"""Tests for relevance scoring."""

from datetime import datetime, timedelta, timezone

from inkwell.context import RelevanceScorer
from inkwell.store import Fact

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestScore:
    """Tests for RelevanceScorer.score."""

    def setup_method(self):
        self.scorer = RelevanceScorer()

    def test_priority_is_the_base(self):
        fact = Fact(key="Harbor", value="Docks", priority=4)
        assert self.scorer.score(fact, [], now=NOW) == 4

    def test_three_points_per_keyword(self):
        """Each keyword found as a substring adds 3."""
        fact = Fact(key="Crystal City", value="floating metropolis", priority=0)
        assert self.scorer.score(fact, ["floating", "city", "swamp"], now=NOW) == 6

    def test_keyword_matches_aliases(self):
        fact = Fact(key="Dragon", value="Beast", keywords=("wyrm",))
        assert self.scorer.score(fact, ["wyrm"], now=NOW) == 3

    def test_category_match(self):
        fact = Fact(key="Runes", value="Power", category="Magic")
        assert self.scorer.score(fact, [], "Magic", now=NOW) == 2
        assert self.scorer.score(fact, [], "Locations", now=NOW) == 0

    def test_recent_use_bonus(self):
        """Used within the last 7 days adds 2."""
        recent = Fact(key="a", value="b", last_used_at=NOW - timedelta(days=2))
        stale = Fact(key="a", value="b", last_used_at=NOW - timedelta(days=8))

        assert self.scorer.score(recent, [], now=NOW) == 2
        assert self.scorer.score(stale, [], now=NOW) == 0

    def test_naive_timestamps_treated_as_utc(self):
        fact = Fact(key="a", value="b", last_used_at=datetime(2025, 5, 31, 12, 0))
        assert self.scorer.score(fact, [], now=NOW) == 2

    def test_frequent_use_bonus(self):
        """More than 5 uses adds 1."""
        assert self.scorer.score(Fact(key="a", value="b", use_count=6), [], now=NOW) == 1
        assert self.scorer.score(Fact(key="a", value="b", use_count=5), [], now=NOW) == 0

    def test_scores_are_not_capped(self):
        fact = Fact(
            key="storm harbor city",
            value="tower market bridge",
            category="Locations",
            priority=10,
            use_count=50,
            last_used_at=NOW,
        )
        keywords = ["storm", "harbor", "city", "tower", "market", "bridge"]
        assert self.scorer.score(fact, keywords, "Locations", now=NOW) == 10 + 18 + 2 + 2 + 1


class TestRank:
    """Tests for RelevanceScorer.rank."""

    def test_keyword_match_outranks_low_priority(self):
        """A high-priority matching fact ranks above an unrelated one."""
        city = Fact(
            key="Crystal City", value="floating metropolis", category="Locations", priority=10
        )
        other = Fact(key="Swamp", value="murky", priority=2)

        ranked = RelevanceScorer().rank([other, city], ["floating", "city"], now=NOW)

        assert ranked[0][0] is city
        assert ranked[0][1] >= 13
        assert ranked[1] == (other, 2)

    def test_ties_keep_input_order(self):
        facts = [Fact(key=f"f{i}", value="x", priority=3) for i in range(4)]
        ranked = RelevanceScorer().rank(facts, [], now=NOW)
        assert [fact for fact, _ in ranked] == facts

    def test_limit(self):
        facts = [Fact(key=f"f{i}", value="x", priority=i) for i in range(12)]
        ranked = RelevanceScorer().rank(facts, [], limit=10, now=NOW)

        assert len(ranked) == 10
        assert ranked[0][1] == 11
        assert ranked[-1][1] == 2
