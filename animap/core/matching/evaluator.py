"""Match evaluator - orchestrates all criteria.

This module provides high-level evaluation functions that combine
all individual criteria to produce a final match score, and selects the
best candidate from a scored pool.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from animap.core.models import Candidate, ScoredCandidate, TargetRecord

from .config import MatchingConfig, get_matching_config
from .criteria import (
    extract_season,
    franchise_stem,
    is_exact_title,
    match_content_type,
    match_season,
    match_text,
    match_year,
)
from .results import to_scored_candidate

logger = structlog.get_logger("animap.matching")


class MatchResult:
    """Result of a match evaluation.

    Attributes:
        score: Raw score (sum of all criteria scores)
        details: List of strings explaining each match criterion
        text_matched: Whether the text-containment signal fired
        exact_title: Whether the normalized title equals a normalized target name
        season_agreed: Whether the season signal was a direct match
    """

    def __init__(
        self,
        score: int,
        details: list[str],
        text_matched: bool = False,
        exact_title: bool = False,
        season_agreed: bool = False,
    ):
        self.score = score
        self.details = details
        self.text_matched = text_matched
        self.exact_title = exact_title
        self.season_agreed = season_agreed

    def __repr__(self) -> str:
        return (
            f"MatchResult(score={self.score}, exact={self.exact_title}, "
            f"season={self.season_agreed}, details={len(self.details)})"
        )


def target_season(target: TargetRecord) -> int:
    """Season the target refers to: the explicit hint, else its title's marker."""
    if target.season_hint is not None:
        return target.season_hint
    return extract_season(target.primary_title)


def evaluate_candidate(
    candidate: Candidate,
    target: TargetRecord,
    config: MatchingConfig | None = None,
) -> MatchResult:
    """Evaluate a candidate against a target record.

    Args:
        candidate: Search result from a content source
        target: Canonical metadata record
        config: Matching configuration (if None, loads from settings file)

    Returns:
        MatchResult with score and details
    """
    if config is None:
        config = get_matching_config()

    names = target.names
    score = 0
    details: list[str] = []

    text_score, text_reason = match_text(candidate.title, names, config)
    score += text_score
    details.append(text_reason)

    season = target_season(target)
    season_score, season_reason = match_season(
        candidate.title,
        season,
        candidate.year,
        target.year,
        franchise_stem(target.primary_title),
        config,
    )
    score += season_score
    details.append(season_reason)

    year_score, year_reason = match_year(candidate.year, target.year, config)
    score += year_score
    details.append(year_reason)

    type_score, type_reason = match_content_type(
        candidate.content_type, target.content_type, config
    )
    score += type_score
    if type_score > 0:
        details.append(type_reason)

    return MatchResult(
        score,
        details,
        text_matched=text_score > 0,
        exact_title=is_exact_title(candidate.title, names),
        season_agreed=season_score == config.season_match,
    )


def score_candidate(
    candidate: Candidate,
    target: TargetRecord,
    config: MatchingConfig | None = None,
) -> int:
    """Signed integer score of a candidate against a target."""
    return evaluate_candidate(candidate, target, config).score


def rank_candidates(
    candidates: Iterable[Candidate],
    target: TargetRecord,
    config: MatchingConfig | None = None,
) -> list[ScoredCandidate]:
    """Score every candidate and order them best first.

    The sort is stable, so equal scores keep their input order.
    """
    if config is None:
        config = get_matching_config()

    scored = [
        to_scored_candidate(candidate, evaluate_candidate(candidate, target, config), config)
        for candidate in candidates
    ]
    return sorted(scored, key=lambda item: item.score, reverse=True)


def pick_best(
    candidates: Iterable[Candidate],
    target: TargetRecord,
    config: MatchingConfig | None = None,
) -> ScoredCandidate | None:
    """Select the highest-scoring candidate above the acceptance threshold.

    Ties keep the first candidate in input order. Returns None when there are
    no candidates or when no score exceeds the acceptance threshold.
    """
    if config is None:
        config = get_matching_config()

    best: ScoredCandidate | None = None
    for candidate in candidates:
        result = evaluate_candidate(candidate, target, config)
        logger.debug(
            "Scored candidate",
            source_id=candidate.source_id,
            title=candidate.title,
            score=result.score,
            details=result.details,
        )
        if best is None or result.score > best.score:
            best = to_scored_candidate(candidate, result, config)

    if best is None:
        return None

    if best.score <= config.acceptance_threshold:
        logger.debug(
            "Best candidate below acceptance threshold",
            source_id=best.candidate.source_id,
            score=best.score,
            threshold=config.acceptance_threshold,
        )
        return None

    return best
