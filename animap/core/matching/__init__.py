"""Matching system for scoring content-source candidates against metadata records."""

from .config import MatchingConfig, get_matching_config, reload_matching_config
from .criteria import (
    extract_season,
    franchise_stem,
    has_season_marker,
    match_content_type,
    match_season,
    match_text,
    match_year,
    normalize_title,
)
from .evaluator import (
    MatchResult,
    evaluate_candidate,
    pick_best,
    rank_candidates,
    score_candidate,
    target_season,
)
from .results import is_high_confidence, normalize_confidence

__all__ = [
    "MatchingConfig",
    "MatchResult",
    "evaluate_candidate",
    "extract_season",
    "franchise_stem",
    "get_matching_config",
    "has_season_marker",
    "is_high_confidence",
    "match_content_type",
    "match_season",
    "match_text",
    "match_year",
    "normalize_confidence",
    "normalize_title",
    "pick_best",
    "rank_candidates",
    "reload_matching_config",
    "score_candidate",
    "target_season",
]
