"""Tests for matching/scoring.py — normalization, similarity and acceptance thresholds."""

import pytest

from config import MatchingConfig
from matching.scoring import (
    channel_similarity, normalize, score_candidate, significant_tokens, title_overlap,
)


class TestNormalize:
    def test_punctuation_and_case(self):
        assert normalize("Hello, WORLD!!  (Official)") == "hello world official"

    def test_cyrillic_kept(self):
        assert normalize("Привет — Мир") == "привет мир"

    def test_empty(self):
        assert normalize(None) == ""
        assert normalize("?!") == ""

    def test_significant_tokens(self):
        assert significant_tokens("The cat is on a mat of the cat") == ["the", "cat", "mat"]


class TestChannelSimilarity:
    def test_equal_after_normalization(self):
        assert channel_similarity("Rick Astley", "rick astley!") == 1.0

    def test_containment(self):
        assert channel_similarity("Rick Astley", "Rick Astley Official") == 0.85

    def test_unrelated(self):
        assert channel_similarity("Rick Astley", "Кулинарный канал") < 0.45

    def test_missing_side(self):
        assert channel_similarity(None, "Rick") == 0.0
        assert channel_similarity("Rick", "") == 0.0

    def test_typo_scores_high(self):
        assert channel_similarity("Kurzgesagt", "Kurzgesagd") >= 0.8


class TestTitleOverlap:
    def test_all_words_present(self):
        assert title_overlap("Never Gonna Give You Up", "never gonna give you up (lyrics)") == 1.0

    def test_short_words_ignored(self):
        # only words of 3+ chars count: never, gonna, give, you
        assert title_overlap("Never Gonna Give You Up", "Never gonna") == pytest.approx(0.5)

    def test_near_match_counts(self):
        assert title_overlap("Amazing volcano documentary", "Amazin documentery") == pytest.approx(2 / 3)

    def test_no_significant_words(self):
        assert title_overlap("a b c", "a b c") == 0.0

    def test_empty_candidate(self):
        assert title_overlap("Real title here", "") == 0.0


class TestAcceptance:
    def test_channel_only_match_accepted(self):
        s = score_candidate("Совсем другое", "Rick Astley", "Unrelated words", "Rick Astley")
        assert s.channel == 1.0
        assert s.title == 0.0
        assert s.accepted
        assert s.weighted == pytest.approx(0.4)

    def test_title_only_match_accepted(self):
        s = score_candidate("Never Gonna Give You Up", "Rick Astley",
                            "Never Gonna Give You Up", "Какой-то канал")
        assert s.title == 1.0
        assert s.accepted

    def test_neither_rejected(self):
        s = score_candidate("Never Gonna Give You Up", "Rick Astley", "Борщ рецепт", "Кухня")
        assert not s.accepted


class TestThresholdBoundaries:
    """Acceptance is inclusive at both thresholds."""

    @pytest.fixture
    def cfg(self):
        return MatchingConfig()

    def test_title_exactly_at_threshold(self, cfg):
        # 2 of 5 significant words -> 0.4
        s = score_candidate("alpha bravo charlie delta echo", None,
                            "alpha bravo zzzzzz", None, cfg)
        assert s.title == pytest.approx(0.4)
        assert s.accepted

    def test_title_just_below_threshold(self, cfg):
        # 1 of 3 -> 0.333
        s = score_candidate("alpha bravo charlie", None, "alpha qqqqq", None, cfg)
        assert s.title < 0.4
        assert not s.accepted

    def test_channel_threshold_inclusive(self):
        cfg = MatchingConfig(channel_threshold=0.85)
        s = score_candidate("x", "Rick Astley", "y", "Rick Astley Official", cfg)
        assert s.channel == 0.85
        assert s.accepted

    def test_channel_below_threshold(self):
        cfg = MatchingConfig(channel_threshold=0.86)
        s = score_candidate("x", "Rick Astley", "y", "Rick Astley Official", cfg)
        assert not s.accepted

    def test_custom_weights(self):
        cfg = MatchingConfig(channel_weight=0.5, title_weight=0.5)
        s = score_candidate("alpha bravo", "Chan", "alpha bravo", "Chan", cfg)
        assert s.weighted == pytest.approx(1.0)


class TestDefaultChannelThreshold:
    """Word overlap landing exactly on the default 0.45 channel threshold.

    Shared words are short and the rest long, so the edit-distance ratio stays
    well below the word overlap and cannot decide the score.
    """

    SHARED = ["aa", "bb", "cc", "dd", "ee", "ff", "gg", "hh", "ii"]
    OTHER = [ch * 10 for ch in "jklmnopqrst"]  # 11 long words
    ORIGINAL = " ".join(SHARED + OTHER)  # 20 words

    def test_exactly_at_default_threshold(self):
        candidate = " ".join(reversed(self.SHARED))  # 9 of 20, not a substring
        s = score_candidate("x", self.ORIGINAL, "y", candidate)
        assert s.channel == pytest.approx(0.45)
        assert s.title == 0.0
        assert s.accepted

    def test_one_word_short_of_default_threshold(self):
        candidate = " ".join(reversed(self.SHARED[:8]))  # 8 of 20
        s = score_candidate("x", self.ORIGINAL, "y", candidate)
        assert s.channel == pytest.approx(0.40)
        assert not s.accepted
