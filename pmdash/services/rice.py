# pmdash/services/rice.py

from __future__ import annotations

import logging
import math
from typing import List, Sequence

from pmdash.errors import ConfidenceOutOfRangeError, InvalidInputError
from pmdash.schemas.rice import (
    ComponentContributions,
    RiceCategory,
    RiceComparison,
    RiceResult,
    RiceScore,
    ScoreDistribution,
)
from pmdash.utils.numeric import round1

logger = logging.getLogger("pmdash.services.rice")

# (lower bound, category) from highest to lowest; lower bounds are inclusive.
# With 1-10 scales the theoretical maximum is 100 and the typical range 0-50.
RICE_BANDS = (
    (30.0, RiceCategory(label="Must Do", color="green", priority=1,
                        description="Critical priority - implement immediately")),
    (15.0, RiceCategory(label="Should Do", color="yellow", priority=2,
                        description="High priority - implement soon")),
    (5.0, RiceCategory(label="Could Do", color="orange", priority=3,
                       description="Medium priority - consider for roadmap")),
)
WONT_DO = RiceCategory(label="Won't Do", color="red", priority=4,
                       description="Low priority - defer or decline")


def calculate_rice_score(reach: float, impact: float, confidence: float, effort: float) -> float:
    """RICE score: (Reach x Impact x Confidence) / Effort, rounded to one decimal.

    Args:
        reach: users reached (1-10 scale)
        impact: impact per user (1-10 scale)
        confidence: percentage, 0-100
        effort: effort (1-10 scale), must be > 0

    Raises:
        InvalidInputError: non-finite or negative reach/impact/confidence, or
            non-positive effort
        ConfidenceOutOfRangeError: confidence above 100
    """
    if not all(math.isfinite(v) for v in (reach, impact, confidence, effort)):
        raise InvalidInputError("Invalid input values: All values must be finite numbers")
    if reach < 0 or impact < 0 or confidence < 0 or effort <= 0:
        raise InvalidInputError(
            "Invalid input values: All values must be positive, effort must be greater than 0"
        )
    if confidence > 100:
        raise ConfidenceOutOfRangeError("Confidence cannot exceed 100%")

    score = (reach * impact * (confidence / 100)) / effort
    return round1(score)


def get_rice_score_category(score: float) -> RiceCategory:
    for lower_bound, category in RICE_BANDS:
        if score >= lower_bound:
            return category
    return WONT_DO


def format_rice_score(score: float) -> str:
    return f"{score:.1f}"


def calculate_component_contributions(
    reach: float, impact: float, confidence: float, effort: float
) -> ComponentContributions:
    """How much each factor adds compared with its floor value.

    Floors: reach=1, impact=1, confidence=10%, effort=1. Effort is inverted:
    its contribution is how much the score would rise at the minimum effort.
    """
    actual = calculate_rice_score(reach, impact, confidence, effort)
    if actual == 0:
        return ComponentContributions()

    with_min_reach = calculate_rice_score(1, impact, confidence, effort)
    with_min_impact = calculate_rice_score(reach, 1, confidence, effort)
    with_min_confidence = calculate_rice_score(reach, impact, 10, effort)
    with_min_effort = calculate_rice_score(reach, impact, confidence, 1)

    return ComponentContributions(
        reach=max(0.0, actual - with_min_reach),
        impact=max(0.0, actual - with_min_impact),
        confidence=max(0.0, actual - with_min_confidence),
        effort=max(0.0, with_min_effort - actual),
    )


def generate_rice_insights(
    reach: float, impact: float, confidence: float, effort: float, score: float
) -> List[str]:
    """Rule-based advice for a score. Insights are additive and ordered."""
    category = get_rice_score_category(score)
    insights = [f'This feature is a "{category.label}" priority with a score of {format_rice_score(score)}']

    if reach <= 3:
        insights.append("Limited reach - suitable for testing or niche features")
    elif reach >= 8:
        insights.append("Excellent reach! This will impact a large user base")

    if impact <= 3:
        insights.append("Low impact score - ensure this aligns with strategic goals")
    elif impact >= 7:
        insights.append("High impact feature that will significantly improve user experience")

    if confidence < 50:
        insights.append("Low confidence - consider more research or prototyping")
    elif confidence >= 80:
        insights.append("High confidence level indicates good validation")

    if effort >= 7:
        insights.append("High effort requirement - consider breaking into smaller features")
    elif effort <= 3:
        insights.append("Low effort - great candidate for quick wins")

    if score < 5 and effort > 5:
        insights.append("High effort for low score - reconsider scope or deprioritize")
    if score > 20 and effort <= 3:
        insights.append("Excellent ROI - low effort with high impact")

    return insights


def evaluate_rice(reach: float, impact: float, confidence: float, effort: float) -> RiceResult:
    """Score, band, insights and contributions in one call (what the calculator panel shows)."""
    score = calculate_rice_score(reach, impact, confidence, effort)
    result = RiceResult(
        score=score,
        category=get_rice_score_category(score),
        insights=generate_rice_insights(reach, impact, confidence, effort, score),
        contributions=calculate_component_contributions(reach, impact, confidence, effort),
    )
    logger.debug("rice.computed", extra={"calculator": "RICE", "total": score})
    return result


def compare_rice_scores(score_a: RiceScore, score_b: RiceScore) -> RiceComparison:
    """Pick the higher-scoring item (ties go to ``score_a``) and describe the gap."""
    difference = abs(score_a.score - score_b.score)
    if score_a.score >= score_b.score:
        winner, loser = score_a, score_b
    else:
        winner, loser = score_b, score_a

    if difference < 5:
        recommendation = "Scores are very close - consider other factors like strategic alignment"
    elif difference < 20:
        recommendation = f"{winner.name} is moderately better than {loser.name}"
    else:
        recommendation = f"{winner.name} is significantly better than {loser.name}"

    winner_category = get_rice_score_category(winner.score)
    loser_category = get_rice_score_category(loser.score)
    if winner_category.priority != loser_category.priority:
        recommendation += (
            f'. {winner.name} is a "{winner_category.label}" while {loser.name} is a "{loser_category.label}"'
        )

    return RiceComparison(winner=winner, difference=difference, recommendation=recommendation)


def calculate_average_score(scores: Sequence[RiceScore]) -> float:
    if not scores:
        return 0.0
    return round1(sum(s.score for s in scores) / len(scores))


def get_score_distribution(scores: Sequence[RiceScore]) -> ScoreDistribution:
    distribution = ScoreDistribution()
    for s in scores:
        priority = get_rice_score_category(s.score).priority
        if priority == 1:
            distribution.must_do += 1
        elif priority == 2:
            distribution.should_do += 1
        elif priority == 3:
            distribution.could_do += 1
        else:
            distribution.wont_do += 1
    return distribution


__all__ = [
    "RICE_BANDS",
    "calculate_rice_score",
    "get_rice_score_category",
    "format_rice_score",
    "calculate_component_contributions",
    "generate_rice_insights",
    "evaluate_rice",
    "compare_rice_scores",
    "calculate_average_score",
    "get_score_distribution",
]
