# pmdash/schemas/roi.py

from typing import Dict, List, Literal, Optional

from pydantic import Field

from pmdash.schemas.base import CamelModel

IrrStatus = Literal["converged", "not_converged", "undefined"]


class LineItem(CamelModel):
    """A cost or benefit spread over a window of months.

    Recurring items contribute ``amount`` every month of the window; one-off
    items spread ``amount`` evenly across it.
    """
    id: str = ""
    category: str = "other"
    description: str = ""
    amount: float
    start_month: int = 1  # 1-based
    months: int = 1
    is_recurring: bool = False
    probability: Optional[float] = None  # 0-100, benefits only

    @property
    def end_month(self) -> int:
        """Exclusive end of the window."""
        return self.start_month + self.months

    def active_in(self, month: int) -> bool:
        return self.start_month <= month < self.end_month


class RiskMitigation(CamelModel):
    description: str = ""
    cost: float = 0.0
    effectiveness: float = Field(default=0.0, ge=0, le=1)


class RiskFactor(CamelModel):
    id: str = ""
    name: str = ""
    category: Literal["technical", "market", "operational", "financial"] = "technical"
    probability: float = Field(ge=0, le=1)
    impact: float  # multiplier on affected items
    affected_items: List[str] = Field(default_factory=list)
    mitigation: Optional[RiskMitigation] = None


class RoiCalculation(CamelModel):
    id: str = ""
    name: str = ""
    description: Optional[str] = None
    initial_cost: float = 0.0
    recurring_costs: List[LineItem] = Field(default_factory=list)
    benefits: List[LineItem] = Field(default_factory=list)
    time_horizon: int = 12  # months
    discount_rate: float = 10.0  # annual %
    currency: str = "USD"
    risk_factors: List[RiskFactor] = Field(default_factory=list)


class MonthlyProjection(CamelModel):
    month: int
    costs: float
    benefits: float
    net_cash_flow: float
    cumulative_cash_flow: float
    discounted_cash_flow: float
    discounted_cumulative: float


class RoiMetrics(CamelModel):
    simple_roi: float
    npv: float
    irr: Optional[float] = None  # annual %, None when undefined
    irr_status: IrrStatus
    mirr: Optional[float] = None  # annual %
    payback_period: float  # months; time_horizon + 1 when never paid back
    paid_back: bool
    discounted_payback_period: float
    break_even_month: Optional[int] = None
    pi: Optional[float] = None
    eva: float
    warnings: List[str] = Field(default_factory=list)


class RoiResult(CamelModel):
    metrics: RoiMetrics
    projections: List[MonthlyProjection]


class RoiCategory(CamelModel):
    label: str
    color: str
    description: str


class DistributionStats(CamelModel):
    p10: float
    p50: float
    p90: float
    mean: float
    std_dev: float


class MonteCarloResults(CamelModel):
    iterations: int
    metrics: Dict[str, DistributionStats]
    success_probability: float
