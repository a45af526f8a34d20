# pmdash/services/migrations/rice_scores.py

from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from pmdash.schemas.rice import RiceScore, RiceScoreCollection
from pmdash.services.migrations.registry import (
    BASE_RICE_VERSION,
    CURRENT_RICE_VERSION,
    RICE_MIGRATIONS,
    run_migrations,
)

logger = logging.getLogger("pmdash.services.migrations")


def detect_rice_version(data: Any) -> int:
    """Version tag of stored RICE scores; a bare list or untagged object is version 1."""
    if isinstance(data, dict):
        version = data.get("version")
        if isinstance(version, int) and not isinstance(version, bool) and version >= BASE_RICE_VERSION:
            return version
    return BASE_RICE_VERSION


def _raw_scores(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("scores"), list):
        return data["scores"]
    return []


def _to_models(raw: List[Any]) -> List[RiceScore]:
    scores: List[RiceScore] = []
    for item in raw:
        try:
            scores.append(RiceScore.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "migration.rice_score_dropped",
                extra={
                    "score_id": item.get("id") if isinstance(item, dict) else None,
                    "reason": f"{exc.error_count()} validation error(s)",
                },
            )
    return scores


def migrate_rice_scores(data: Any, now_ms: Optional[int] = None) -> RiceScoreCollection:
    """Bring stored RICE scores up to the current 1-10 scale.

    Accepts a bare list (legacy), ``{"scores": [...]}`` or
    ``{"version": n, "scores": [...]}``. Never raises; unreadable entries are
    dropped with a warning.
    """
    if not data:
        return RiceScoreCollection(version=CURRENT_RICE_VERSION)

    version = detect_rice_version(data)
    if version >= CURRENT_RICE_VERSION:
        if version > CURRENT_RICE_VERSION:
            logger.warning(
                "migration.future_version",
                extra={"reason": "rice", "from_version": version, "to_version": CURRENT_RICE_VERSION},
            )
        return RiceScoreCollection(version=version, scores=_to_models(_raw_scores(data)))

    migrated = run_migrations(
        RICE_MIGRATIONS, data, version, CURRENT_RICE_VERSION, kind="rice", now_ms=now_ms
    )
    if migrated is None:
        return RiceScoreCollection(version=CURRENT_RICE_VERSION)

    scores = _to_models(_raw_scores(migrated))
    logger.info(
        "migration.rice_scores_migrated",
        extra={"count": len(scores), "from_version": version, "to_version": CURRENT_RICE_VERSION},
    )
    return RiceScoreCollection(version=CURRENT_RICE_VERSION, scores=scores)


__all__ = ["detect_rice_version", "migrate_rice_scores"]
