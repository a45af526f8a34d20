# pmdash/schemas/rice.py

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field

from pmdash.schemas.base import CamelModel


class RiceInputs(CamelModel):
    reach: float
    impact: float
    confidence: float  # percentage 0-100
    effort: float


class RiceScore(CamelModel):
    """A saved RICE calculation.

    Current scale (version 2): reach/impact/effort are integers 1-10 and
    confidence is 0-100. Version 1 records carry raw user counts for reach,
    0.25-3 for impact and person-months for effort; the migration layer
    rewrites those before anything recomputes them.
    """
    model_config = ConfigDict(extra="allow", allow_inf_nan=False)

    id: str = ""
    name: str = ""
    reach: float
    impact: float
    confidence: float
    effort: float
    score: float = 0.0
    saved_at: Optional[datetime] = None
    notes: Optional[str] = None
    migrated_at: Optional[int] = None  # epoch milliseconds


class RiceCategory(CamelModel):
    model_config = ConfigDict(frozen=True)

    label: str
    color: str
    priority: int  # 1 is highest
    description: str


class RiceComparison(CamelModel):
    winner: RiceScore
    difference: float
    recommendation: str


class ScoreDistribution(CamelModel):
    must_do: int = 0
    should_do: int = 0
    could_do: int = 0
    wont_do: int = 0


class ComponentContributions(CamelModel):
    reach: float = 0.0
    impact: float = 0.0
    confidence: float = 0.0
    effort: float = 0.0


class RiceResult(CamelModel):
    """Score plus everything the calculator panel renders next to it."""
    score: float
    category: RiceCategory
    insights: List[str] = Field(default_factory=list)
    contributions: Optional[ComponentContributions] = None
    warnings: List[str] = Field(default_factory=list)


class RiceScoreCollection(CamelModel):
    version: int
    scores: List[RiceScore] = Field(default_factory=list)
