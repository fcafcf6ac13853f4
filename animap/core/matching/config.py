"""Matching configuration - scoring weights and thresholds."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields

import structlog

logger = structlog.get_logger("animap.matching.config")


@dataclass
class MatchingConfig:
    """Configuration for cross-source matching.

    This class centralizes all scoring weights and thresholds. The absolute
    values are tunable; the relative weighting is what matters: season
    agreement dominates, year proximity is secondary, content type only
    breaks near-ties.
    """

    # Scoring weights (signed integer contributions)
    text_containment: int = 10
    season_match: int = 50
    season_rescue: int = 30
    season_mismatch_penalty: int = 50
    year_close: int = 5
    year_far_penalty: int = 10
    content_type_match: int = 3

    # Year windows
    year_close_max_diff: int = 1  # diff <= 1 earns year_close
    year_far_min_diff: int = 3  # diff >= 3 costs year_far_penalty; diff of 2 is neutral
    rescue_year_max_diff: int = 1

    # Season rescue also requires the candidate to contain the target's franchise stem
    rescue_requires_stem: bool = True

    # Thresholds
    acceptance_threshold: int = 0  # score must be strictly greater to be returned
    high_confidence: float = 0.85  # normalized confidence required for auto-persistence

    # Reverse identification (source entry -> metadata id)
    identify_min_similarity: float = 75.0
    identify_search_limit: int = 5

    @property
    def max_score(self) -> int:
        """Best achievable score: every positive signal fires."""
        return self.text_containment + self.season_match + self.year_close + self.content_type_match


DEFAULT_CONFIG = MatchingConfig()

# Cached config instance (loaded from settings file)
_cached_config: MatchingConfig | None = None


def get_matching_config() -> MatchingConfig:
    """Get the current matching configuration.

    Loads the "matching" section of settings.json if available, otherwise
    returns defaults. Unknown keys are ignored. Caches the result.

    Returns:
        MatchingConfig instance with current settings
    """
    global _cached_config

    if _cached_config is not None:
        return _cached_config

    from animap.core.config import get_settings_file_path

    _cached_config = DEFAULT_CONFIG
    settings_file = get_settings_file_path()
    if settings_file.exists():
        try:
            with settings_file.open("r") as f:
                matching_settings = json.load(f).get("matching")
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(
                "Failed to read matching settings, using defaults",
                path=str(settings_file),
                error=str(e),
            )
            matching_settings = None

        if isinstance(matching_settings, dict):
            known = {f.name for f in fields(MatchingConfig)}
            _cached_config = MatchingConfig(
                **{k: v for k, v in matching_settings.items() if k in known}
            )
            logger.debug("Loaded matching settings", overrides=sorted(matching_settings))

    return _cached_config


def reload_matching_config() -> MatchingConfig:
    """Reload matching configuration from settings file.

    Call this after updating settings to ensure new values are used.
    """
    global _cached_config
    _cached_config = None
    return get_matching_config()
