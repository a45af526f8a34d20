# pmdash/api/routes/migrations.py

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from pmdash.api.deps import require_shared_secret
from pmdash.schemas.layout import VersionedLayout
from pmdash.schemas.rice import RiceScoreCollection
from pmdash.services.migrations import migrate_layout, migrate_rice_scores


router = APIRouter(
    prefix="/migrations",
    tags=["migrations"],
    dependencies=[Depends(require_shared_secret)],
)


@router.post("/layout", response_model=VersionedLayout)
def layout(data: Any = Body(default=None)) -> VersionedLayout:
    """
    Upgrade a stored dashboard layout. Accepts any JSON; never fails.
    """
    return migrate_layout(data)


@router.post("/rice-scores", response_model=RiceScoreCollection)
def rice_scores(data: Any = Body(default=None)) -> RiceScoreCollection:
    """
    Upgrade stored RICE scores to the current 1-10 scale.
    """
    return migrate_rice_scores(data)
