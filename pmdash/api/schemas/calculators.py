# pmdash/api/schemas/calculators.py

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from pmdash.schemas.abtest import TestResult
from pmdash.schemas.base import CamelModel
from pmdash.schemas.rice import RiceScore
from pmdash.schemas.roi import RoiCalculation


class RiceCompareRequest(CamelModel):
    score_a: RiceScore
    score_b: RiceScore


class MonteCarloRequest(CamelModel):
    calculation: RoiCalculation
    iterations: Optional[int] = Field(default=None, ge=1)
    uncertainty_range: Optional[float] = Field(default=None, ge=0, lt=1)
    seed: Optional[int] = None


class AnalyzeResponse(CamelModel):
    results: List[TestResult]
