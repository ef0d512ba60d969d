"""Matching score between a match request and an interviewer."""

import math

from mockmatch.schemas.matching import MatchingScore, MatchingSignals

MATCHING_WEIGHTS = {
    "profession": 0.40,
    "tech_stack": 0.30,
    "language": 0.15,
    "level": 0.10,
    "timezone": 0.05,
}

MATCH_THRESHOLD_PERCENTAGE = 70


def calculate_matching_score(signals: MatchingSignals) -> MatchingScore:
    """
    Turn match signals into a percentage and a pass/fail flag.

    Every signal contributes a non-negative weight, so improving any one of
    them never lowers the percentage.
    """
    overlap = min(1.0, max(0.0, signals.tech_stack_overlap))

    weighted = (
        (MATCHING_WEIGHTS["profession"] if signals.profession_matched else 0.0)
        + overlap * MATCHING_WEIGHTS["tech_stack"]
        + (MATCHING_WEIGHTS["language"] if signals.language_matched else 0.0)
        + (MATCHING_WEIGHTS["level"] if signals.level_matched else 0.0)
        + (MATCHING_WEIGHTS["timezone"] if signals.timezone_matched else 0.0)
    )

    percentage = min(100, max(0, math.floor(weighted * 100 + 0.5)))

    return MatchingScore(
        percentage=percentage,
        meets_threshold=percentage >= MATCH_THRESHOLD_PERCENTAGE,
    )
