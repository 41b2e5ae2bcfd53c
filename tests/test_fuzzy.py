"""Tests for fuzzy scoring, ranking and the confident-pick rule."""

import pytest

from codex_launch.fuzzy import (
    CONFIDENT_MARGIN,
    TOP_SESSIONS,
    TOP_TARGETS,
    confident_pick,
    filter_indices,
    fuzzy_score,
    rank,
)


class TestFuzzyScore:
    """Tests for scoring one text against a query."""

    def test_blank_query_matches_everything(self):
        """Empty and whitespace-only queries score 0."""
        assert fuzzy_score("", "anything") == 0
        assert fuzzy_score("   ", "anything") == 0

    def test_non_subsequence_does_not_match(self):
        """Characters must appear in order."""
        assert fuzzy_score("xyz", "codex-launch") is None
        assert fuzzy_score("hcnual", "launch") is None

    def test_case_insensitive(self):
        """Upper and lower case match each other."""
        assert fuzzy_score("API", "my-api-server") is not None
        assert fuzzy_score("api", "MY-API-SERVER") is not None

    def test_whitespace_in_query_is_ignored(self):
        """Spaces let users separate words without breaking the match."""
        assert fuzzy_score("code launch", "codex-launch") is not None

    def test_case_folding_that_changes_length(self):
        """Characters whose lowercase form is longer do not shift positions."""
        assert fuzzy_score("x", "İx") is not None
        assert fuzzy_score("iz", "İzmir") is not None
        assert fuzzy_score("jsonl]", "İzmir İstanbul deploy  [rollout-a.jsonl]") is not None
        assert fuzzy_score("deploy", "İİİ deploy") == fuzzy_score("deploy", "abc deploy")

    def test_contiguous_beats_scattered(self):
        """A substring hit outscores the same letters spread apart."""
        assert fuzzy_score("proj", "my-proj") > fuzzy_score("proj", "pxrxoxj")

    def test_word_boundary_beats_mid_word(self):
        """Matches starting at a word boundary score higher."""
        assert fuzzy_score("api", "svc/api") > fuzzy_score("api", "rapid")

    def test_longer_gap_scores_lower(self):
        """Wider gaps between matched characters cost more."""
        assert fuzzy_score("ab", "a-b") > fuzzy_score("ab", "a----b")


class TestRank:
    """Tests for ranking and filtering lists."""

    def test_best_first_and_drops_misses(self):
        """Non-matching items are removed; best match comes first."""
        items = ["zzz", "rapid", "svc/api"]
        ranked = rank("api", items)
        assert [item for _, item in ranked] == ["svc/api", "rapid"]

    def test_blank_query_keeps_order(self):
        """An empty query returns every item in its original order."""
        items = ["c", "a", "b"]
        assert [item for _, item in rank("", items)] == items
        assert filter_indices("", items) == [0, 1, 2]

    def test_ties_keep_original_order(self):
        """Equal scores preserve input order."""
        items = ["x/api", "y/api", "z/api"]
        ranked = rank("api", items)
        assert [item for _, item in ranked] == items

    def test_key_function(self):
        """A key function selects the text that is matched."""
        items = [{"name": "alpha"}, {"name": "beta"}]
        ranked = rank("bet", items, key=lambda d: d["name"])
        assert ranked[0][1] == {"name": "beta"}
        assert len(ranked) == 1

    def test_filter_indices(self):
        """filter_indices maps matches back to positions."""
        assert filter_indices("be", ["alpha", "beta", "bear"]) == [1, 2]


class TestConfidentPick:
    """Tests for deciding between auto-pick and a candidate list."""

    def test_clear_leader_is_picked(self):
        """A lead of at least the margin picks the top item."""
        assert confident_pick([(100, "a"), (60, "b")], top_n=TOP_TARGETS) == ("a", [])

    def test_close_scores_are_ambiguous(self):
        """A small lead returns candidates instead."""
        assert confident_pick([(100, "a"), (90, "b")], top_n=TOP_TARGETS) == (
            None,
            ["a", "b"],
        )

    def test_margin_boundary_is_confident(self):
        """Leading by exactly the margin is enough."""
        scored = [(100, "a"), (100 - CONFIDENT_MARGIN, "b")]
        assert confident_pick(scored, top_n=TOP_TARGETS) == ("a", [])

    def test_single_match_is_picked(self):
        """One match is always confident."""
        assert confident_pick([(5, "only")], top_n=TOP_TARGETS) == ("only", [])

    def test_no_matches(self):
        """Nothing to pick from gives no item and no candidates."""
        assert confident_pick([], top_n=TOP_TARGETS) == (None, [])

    @pytest.mark.parametrize("top_n", [TOP_TARGETS, TOP_SESSIONS])
    def test_candidates_are_truncated(self, top_n):
        """Ambiguous results are cut to the requested number."""
        scored = [(50, f"item{i}") for i in range(40)]
        chosen, candidates = confident_pick(scored, top_n=top_n)
        assert chosen is None
        assert candidates == [f"item{i}" for i in range(top_n)]
