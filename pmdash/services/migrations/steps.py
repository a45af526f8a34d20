# pmdash/services/migrations/steps.py
"""
Individual migration transforms.

Every step takes the stored payload plus a timestamp (epoch ms) and returns
the payload for the next version. Steps are total: unexpected shapes
degrade to empty structures instead of raising.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from pmdash.errors import CalculatorError
from pmdash.services.migrations.scales import (
    map_effort_to_new_scale,
    map_impact_to_new_scale,
    map_reach_to_new_scale,
)
from pmdash.services.rice import calculate_rice_score
from pmdash.utils.numeric import is_int_in_range

logger = logging.getLogger("pmdash.services.migrations")


def _number(value: Any, default: Optional[float]) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return value


def layout_v0_to_v1(data: Any, now_ms: int) -> Dict[str, Any]:
    """Wrap an untagged layout (bare list or ``{widgets: [...]}``) in a version 1 envelope."""
    if isinstance(data, list):
        widgets = list(data)
    elif isinstance(data, dict) and isinstance(data.get("widgets"), list):
        widgets = list(data["widgets"])
    else:
        widgets = []
    return {"version": 1, "widgets": widgets, "migratedAt": now_ms}


def is_current_rice_scale(score: Dict[str, Any]) -> bool:
    """True when reach, impact and effort are all integers on the 1-10 scale."""
    return all(is_int_in_range(score.get(key), 1, 10) for key in ("reach", "impact", "effort"))


def migrate_rice_score(score: Dict[str, Any], now_ms: int) -> Optional[Dict[str, Any]]:
    """Rewrite one version 1 score onto the 1-10 scale; None if it cannot be recomputed."""
    if is_current_rice_scale(score):
        return score

    reach = map_reach_to_new_scale(_number(score.get("reach"), 0) or 0)
    impact = map_impact_to_new_scale(_number(score.get("impact"), 1) or 1)
    effort = map_effort_to_new_scale(_number(score.get("effort"), 1) or 1)
    confidence = _number(score.get("confidence"), None)
    if confidence is None:
        logger.warning(
            "migration.rice_score_dropped",
            extra={"score_id": score.get("id"), "reason": "confidence missing or not a finite number"},
        )
        return None

    try:
        new_score = calculate_rice_score(reach, impact, confidence, effort)
    except CalculatorError as exc:
        logger.warning(
            "migration.rice_score_dropped",
            extra={"score_id": score.get("id"), "reason": str(exc)},
        )
        return None

    logger.info(
        "migration.rice_score_rescaled",
        extra={
            "score_id": score.get("id"),
            "reason": (
                f"reach {score.get('reach')}->{reach}, impact {score.get('impact')}->{impact}, "
                f"effort {score.get('effort')}->{effort}"
            ),
        },
    )
    return {
        **score,
        "reach": reach,
        "impact": impact,
        "effort": effort,
        "confidence": confidence,
        "score": new_score,
        "migratedAt": now_ms,
    }


def rice_v1_to_v2(data: Any, now_ms: int) -> Dict[str, Any]:
    """Move every version 1 score onto the 1-10 scales and recompute its score."""
    raw_scores = data.get("scores") if isinstance(data, dict) else data
    if not isinstance(raw_scores, list):
        raw_scores = []

    migrated: List[Dict[str, Any]] = []
    for item in raw_scores:
        if not isinstance(item, dict):
            logger.warning("migration.rice_score_dropped", extra={"reason": "entry is not an object"})
            continue
        result = migrate_rice_score(item, now_ms)
        if result is not None:
            migrated.append(result)

    return {"version": 2, "scores": migrated}


__all__ = [
    "layout_v0_to_v1",
    "is_current_rice_scale",
    "migrate_rice_score",
    "rice_v1_to_v2",
]
