"""Fuzzy similarity between an original video and a candidate mirror."""

import re
from dataclasses import dataclass
from typing import Optional

from rapidfuzz import fuzz

from config import MatchingConfig

_NON_WORD_RE = re.compile(r'[\W_]+', re.UNICODE)


def normalize(text: Optional[str]) -> str:
    """Casefold, turn punctuation into spaces, collapse whitespace."""
    if not text:
        return ""
    return " ".join(_NON_WORD_RE.sub(" ", text.casefold()).split())


def significant_tokens(text: Optional[str], min_length: int = 3) -> list[str]:
    """Normalized words of at least min_length characters, order kept, no repeats."""
    seen = []
    for word in normalize(text).split():
        if len(word) >= min_length and word not in seen:
            seen.append(word)
    return seen


def channel_similarity(original: Optional[str], candidate: Optional[str],
                       config: Optional[MatchingConfig] = None) -> float:
    config = config or MatchingConfig()
    a, b = normalize(original), normalize(candidate)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return config.containment_score
    words_a, words_b = set(a.split()), set(b.split())
    overlap = len(words_a & words_b) / max(len(words_a), len(words_b))
    return max(overlap, fuzz.ratio(a, b) / 100.0)


def title_overlap(original: Optional[str], candidate: Optional[str],
                  config: Optional[MatchingConfig] = None) -> float:
    """Fraction of the original title's significant words present in the candidate.

    A word counts when it appears verbatim or a candidate word is within
    near_match_ratio edit-distance similarity (catches case endings and typos).
    """
    config = config or MatchingConfig()
    wanted = significant_tokens(original, config.min_token_length)
    if not wanted:
        return 0.0
    available = significant_tokens(candidate, 1)
    if not available:
        return 0.0
    cutoff = config.near_match_ratio * 100
    available_set = set(available)
    found = 0
    for word in wanted:
        if word in available_set or any(fuzz.ratio(word, other) >= cutoff for other in available):
            found += 1
    return found / len(wanted)


@dataclass(frozen=True)
class MatchScore:
    channel: float
    title: float
    weighted: float
    accepted: bool


def score_candidate(original_title: str, original_channel: Optional[str],
                    candidate_title: str, candidate_channel: Optional[str],
                    config: Optional[MatchingConfig] = None) -> MatchScore:
    config = config or MatchingConfig()
    channel = channel_similarity(original_channel, candidate_channel, config)
    title = title_overlap(original_title, candidate_title, config)
    weighted = config.channel_weight * channel + config.title_weight * title
    accepted = channel >= config.channel_threshold or title >= config.title_threshold
    return MatchScore(channel=channel, title=title, weighted=weighted, accepted=accepted)
