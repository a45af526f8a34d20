# pmdash/schemas/market.py

from typing import List, Literal, Optional

from pydantic import Field

from pmdash.schemas.base import CamelModel

TimePeriod = Literal["monthly", "quarterly", "annual"]
GeographicScope = Literal["global", "regional", "country"]
MarketMaturity = Literal["emerging", "growing", "mature", "declining"]
SizingMethod = Literal["topDown", "bottomUp"]


class MarketCalculationParams(CamelModel):
    currency: Literal["USD", "EUR", "GBP", "JPY", "INR"] = "USD"
    time_period: TimePeriod = "annual"
    geographic_scope: GeographicScope = "global"
    market_maturity: MarketMaturity = "mature"
    competitor_count: Optional[int] = None
    market_share_target: Optional[float] = None  # %


class MarketSegment(CamelModel):
    id: Optional[str] = None
    name: str = ""
    users: float = Field(ge=0)
    avg_price: float = Field(ge=0)
    growth_rate: float = 0.0  # annual %
    penetration_rate: float = Field(default=100.0, ge=0, le=100)  # % of segment addressable

    @property
    def addressable_value(self) -> float:
        return self.users * self.avg_price * self.penetration_rate / 100


class MarketSizes(CamelModel):
    tam: float
    sam: float
    som: float
    method: SizingMethod
    segments: Optional[List[MarketSegment]] = None
    assumptions: List[str] = Field(default_factory=list)
    confidence: float  # 0-100 input-quality score, not a statistical level


class TopDownRequest(CamelModel):
    tam: float
    sam_percentage: float
    som_percentage: float
    market_params: MarketCalculationParams = Field(default_factory=MarketCalculationParams)


class BottomUpRequest(CamelModel):
    segments: List[MarketSegment]
    market_params: MarketCalculationParams = Field(default_factory=MarketCalculationParams)
    competitor_count: int = Field(default=0, ge=0)
    market_share_target: float = Field(default=10.0, ge=0, le=100)
