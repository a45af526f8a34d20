# pmdash/schemas/abtest.py

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import Field, model_validator

from pmdash.schemas.base import CamelModel

TestDirection = Literal["one-tailed", "two-tailed"]
CorrectionMethod = Literal["none", "bonferroni", "holm", "fdr"]


class Variation(CamelModel):
    id: str
    name: str = ""
    visitors: int = Field(ge=0)
    conversions: int = Field(ge=0)

    @model_validator(mode="after")
    def check_conversions(self) -> "Variation":
        if self.conversions > self.visitors:
            raise ValueError(
                f"Variation {self.id}: conversions ({self.conversions}) cannot exceed visitors ({self.visitors})"
            )
        return self

    @property
    def rate(self) -> float:
        return self.conversions / self.visitors if self.visitors else 0.0


class TestConfig(CamelModel):
    __test__ = False  # not a pytest class

    confidence_level: float = Field(default=95.0, gt=0, lt=100)
    test_direction: TestDirection = "two-tailed"
    correction_method: CorrectionMethod = "none"


class TestResult(CamelModel):
    __test__ = False

    variation_id: str
    method: Literal["frequentist"] = "frequentist"
    p_value: float
    is_significant: bool
    confidence_interval: Tuple[float, float]
    uplift: float  # relative, %
    absolute_uplift: float
    effect_size: float  # Cohen's h
    power: float
    multiple_testing_adjusted: bool = False
    winner: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class AnalyzeRequest(CamelModel):
    variations: List[Variation]
    config: TestConfig = Field(default_factory=TestConfig)


class MetricSpec(CamelModel):
    type: Literal["binary", "continuous"] = "binary"
    baseline: float  # conversion rate, %


class EffectSpec(CamelModel):
    type: Literal["relative", "absolute"] = "relative"
    value: float  # % (relative lift or percentage points)
    practical_significance: Optional[float] = None


class StatisticalParams(CamelModel):
    confidence_level: float = 95.0
    power: float = 80.0
    test_direction: TestDirection = "two-tailed"
    multiple_comparisons: Optional[int] = None


class Seasonality(CamelModel):
    day_of_week: List[float] = Field(min_length=7, max_length=7)


class TrafficConstraints(CamelModel):
    cost_per_sample: Optional[float] = None
    max_duration_days: Optional[int] = None


class TrafficSpec(CamelModel):
    daily: float
    # Arm name -> share of traffic in %. Taken as given, never re-normalised.
    allocation: Dict[str, float] = Field(default_factory=lambda: {"control": 50.0, "variant": 50.0})
    seasonality: Optional[Seasonality] = None
    constraints: Optional[TrafficConstraints] = None


class SampleSizeInputs(CamelModel):
    metric: MetricSpec
    effect: EffectSpec
    statistical_params: StatisticalParams = Field(default_factory=StatisticalParams)
    traffic: TrafficSpec


class DurationEstimate(CamelModel):
    days: int
    weeks: int
    confidence_interval: Tuple[int, int]


class CostEstimate(CamelModel):
    total: float
    per_variation: Dict[str, float]


class SampleSizeResult(CamelModel):
    per_variation: Dict[str, int]
    total: int
    power_achieved: float
    duration: DurationEstimate
    cost: Optional[CostEstimate] = None
    notes: List[str] = Field(default_factory=list)


class MdeRequest(CamelModel):
    sample_size: int = Field(gt=0)
    baseline_rate: float = Field(gt=0, lt=1)
    alpha: float = Field(default=0.05, gt=0, lt=1)
    power: float = Field(default=0.8, gt=0, lt=1)
    test_direction: TestDirection = "two-tailed"


class MdeResult(CamelModel):
    mde: float  # absolute difference in conversion rate
    relative_mde: float  # % of baseline
