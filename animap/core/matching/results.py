"""Result builders for matching system.

Functions to normalize scores to confidence values and decide which
matches are trustworthy enough to persist.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from animap.core.models import Candidate, ScoredCandidate

from .config import MatchingConfig, get_matching_config

if TYPE_CHECKING:
    from .evaluator import MatchResult


def normalize_confidence(raw_score: float, max_score: float) -> float:
    """Normalize raw score to confidence (0.0-1.0).

    Args:
        raw_score: Raw match score
        max_score: Maximum possible score for this match type

    Returns:
        Confidence value between 0.0 and 1.0
    """
    if raw_score <= 0 or max_score <= 0:
        return 0.0
    return min(raw_score / max_score, 1.0)


def is_high_confidence(result: MatchResult, config: MatchingConfig | None = None) -> bool:
    """Whether a match is strong enough to be persisted automatically.

    Either an exact normalized title with season agreement, or text
    containment with confidence above the high-confidence threshold.
    """
    if config is None:
        config = get_matching_config()

    if result.score <= config.acceptance_threshold:
        return False

    if result.exact_title and result.season_agreed:
        return True

    confidence = normalize_confidence(result.score, config.max_score)
    return result.text_matched and confidence > config.high_confidence


def to_scored_candidate(
    candidate: Candidate,
    result: MatchResult,
    config: MatchingConfig | None = None,
) -> ScoredCandidate:
    return ScoredCandidate(
        candidate=candidate,
        score=result.score,
        details=list(result.details),
        high_confidence=is_high_confidence(result, config),
    )
