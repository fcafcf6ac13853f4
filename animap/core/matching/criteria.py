"""Individual match criteria evaluators.

Each function evaluates a single signal of a match (title text, season, year,
content type) and returns a signed integer contribution and a reason. The
evaluator sums them; nothing here short-circuits another signal.
"""

from __future__ import annotations

import re

from .config import MatchingConfig, get_matching_config

_NON_WORD_RE = re.compile(r"[\W_]+")
_SEASON_RE = re.compile(r"season\s*(\d+)|(\d+)(?:st|nd|rd|th)\s*season", re.IGNORECASE)


def normalize_title(value: str | None) -> str:
    """Lowercase and strip everything except letters and digits.

    Letters from any script are kept, so CJK titles still produce a usable key.

    Examples:
        "Jujutsu Kaisen: Culling Game" -> "jujutsukaisencullinggame"
        "Re:Zero - Starting Life" -> "rezerostartinglife"
    """
    if not value:
        return ""
    return _NON_WORD_RE.sub("", value.lower())


def has_season_marker(title: str | None) -> bool:
    """Whether the title explicitly names a season ("Season 2", "2nd Season")."""
    return bool(title and _SEASON_RE.search(title))


def extract_season(title: str | None) -> int:
    """Extract the season number from a title.

    Titles without an explicit marker are the first season of their franchise.

    Examples:
        "Jujutsu Kaisen Season 3: The Culling Game" -> 3
        "Mushoku Tensei 2nd Season" -> 2
        "Attack on Titan" -> 1
    """
    if not title:
        return 1
    match = _SEASON_RE.search(title)
    if not match:
        return 1
    return int(match.group(1) or match.group(2))


def franchise_stem(title: str | None) -> str:
    """Normalized franchise part of a title.

    The text before the season marker, or before the first colon when there
    is no marker. "Jujutsu Kaisen Season 3: The Culling Game" -> "jujutsukaisen".
    """
    if not title:
        return ""
    match = _SEASON_RE.search(title)
    head = title[: match.start()] if match else title.split(":", 1)[0]
    return normalize_title(head)


def match_text(
    candidate_title: str,
    target_names: list[str],
    config: MatchingConfig | None = None,
) -> tuple[int, str]:
    """Evaluate normalized substring containment in either direction.

    Args:
        candidate_title: Title from the content source
        target_names: Every title and synonym of the target
        config: Matching configuration (if None, loads from settings file)

    Returns:
        Tuple of (score, reason)
    """
    if config is None:
        config = get_matching_config()

    candidate_key = normalize_title(candidate_title)
    if not candidate_key:
        return 0, "Empty candidate title"

    for name in target_names:
        target_key = normalize_title(name)
        if not target_key:
            continue
        if target_key in candidate_key or candidate_key in target_key:
            return (
                config.text_containment,
                f"Text containment: '{candidate_key}' ~ '{target_key}' (+{config.text_containment})",
            )

    return 0, f"No text containment for '{candidate_key}'"


def is_exact_title(candidate_title: str, target_names: list[str]) -> bool:
    """Whether the normalized candidate title equals any normalized target name."""
    candidate_key = normalize_title(candidate_title)
    return bool(candidate_key) and any(
        candidate_key == normalize_title(name) for name in target_names
    )


def year_difference(candidate_year: int | None, target_year: int | None) -> int | None:
    if candidate_year is None or target_year is None:
        return None
    return abs(candidate_year - target_year)


def match_season(
    candidate_title: str,
    target_season: int,
    candidate_year: int | None,
    target_year: int | None,
    target_stem: str = "",
    config: MatchingConfig | None = None,
) -> tuple[int, str]:
    """Evaluate season agreement, including the subtitle-sequel rescue.

    A sequel listed without a season marker ("Jujutsu Kaisen: Culling Game"
    for season 3) looks like an implicit season 1. When both years are known
    and within rescue_year_max_diff, and the candidate shares the target's
    franchise stem, it is rewarded instead of penalized.

    Args:
        candidate_title: Title from the content source
        target_season: Season hint, or the season extracted from the target title
        candidate_year: Candidate release year
        target_year: Target release year
        target_stem: Normalized franchise stem of the target title
        config: Matching configuration (if None, loads from settings file)

    Returns:
        Tuple of (score, reason)
    """
    if config is None:
        config = get_matching_config()

    candidate_season = extract_season(candidate_title)
    if candidate_season == target_season:
        return (
            config.season_match,
            f"Season match: S{target_season} (+{config.season_match})",
        )

    if target_season > 1 and not has_season_marker(candidate_title):
        diff = year_difference(candidate_year, target_year)
        stem_ok = not config.rescue_requires_stem or (
            bool(target_stem) and target_stem in normalize_title(candidate_title)
        )
        if diff is not None and diff <= config.rescue_year_max_diff and stem_ok:
            return (
                config.season_rescue,
                f"Season rescue: unmarked candidate within {diff}y of target S{target_season} "
                f"(+{config.season_rescue})",
            )
        return (
            -config.season_mismatch_penalty,
            f"Season mismatch: target S{target_season} vs implicit S1 "
            f"(-{config.season_mismatch_penalty})",
        )

    return (
        -config.season_mismatch_penalty,
        f"Season mismatch: target S{target_season} vs candidate S{candidate_season} "
        f"(-{config.season_mismatch_penalty})",
    )


def match_year(
    candidate_year: int | None,
    target_year: int | None,
    config: MatchingConfig | None = None,
) -> tuple[int, str]:
    """Evaluate release-year proximity.

    Returns:
        Tuple of (score, reason)
    """
    if config is None:
        config = get_matching_config()

    diff = year_difference(candidate_year, target_year)
    if diff is None:
        return 0, "Year missing"

    if diff <= config.year_close_max_diff:
        return config.year_close, f"Year match: {candidate_year} vs {target_year} (+{config.year_close})"

    if diff >= config.year_far_min_diff:
        return (
            -config.year_far_penalty,
            f"Year gap: {candidate_year} vs {target_year} (-{config.year_far_penalty})",
        )

    return 0, f"Year near: {candidate_year} vs {target_year}"


def match_content_type(
    candidate_type: str | None,
    target_type: str | None,
    config: MatchingConfig | None = None,
) -> tuple[int, str]:
    """Evaluate content-type agreement (case-insensitive).

    Returns:
        Tuple of (score, reason)
    """
    if config is None:
        config = get_matching_config()

    if not candidate_type or not target_type:
        return 0, "Type missing"

    if candidate_type.strip().lower() == target_type.strip().lower():
        return (
            config.content_type_match,
            f"Type match: {target_type} (+{config.content_type_match})",
        )

    return 0, f"Type differs: {candidate_type} vs {target_type}"
