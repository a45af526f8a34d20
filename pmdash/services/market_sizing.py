# pmdash/services/market_sizing.py
"""
TAM/SAM/SOM market sizing.

Two approaches:
- top-down: TAM -> SAM (% of TAM) -> SOM (% of SAM)
- bottom-up: aggregate customer segments, then apply market share and a
  simple competitive dilution model

Both return period-adjusted figures (monthly/quarterly/annual) with a 0-100
confidence score describing input quality.
"""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence

from pmdash.errors import MarketSizingError
from pmdash.schemas.market import MarketCalculationParams, MarketSegment, MarketSizes
from pmdash.utils.numeric import clamp

logger = logging.getLogger("pmdash.services.market_sizing")

MATURITY_MULTIPLIERS = MappingProxyType({
    "emerging": 1.3,  # high growth potential
    "growing": 1.1,
    "mature": 1.0,
    "declining": 0.9,  # contracting market
})

PERIOD_DIVISORS = MappingProxyType({
    "monthly": 12,
    "quarterly": 4,
    "annual": 1,
})

BASE_CONFIDENCE = 70


def calculate_top_down(
    tam: float,
    sam_percentage: float,
    som_percentage: float,
    market_params: Optional[MarketCalculationParams] = None,
) -> MarketSizes:
    """Top-down sizing from a known total market.

    Raises:
        MarketSizingError: tam <= 0 or a percentage outside [0, 100]
    """
    params = market_params or MarketCalculationParams()

    if tam <= 0:
        raise MarketSizingError("TAM must be greater than 0")
    if sam_percentage < 0 or sam_percentage > 100:
        raise MarketSizingError("SAM percentage must be between 0 and 100")
    if som_percentage < 0 or som_percentage > 100:
        raise MarketSizingError("SOM percentage must be between 0 and 100")

    sam = tam * (sam_percentage / 100)
    som = sam * (som_percentage / 100)

    # Funnel invariant: som <= sam <= tam
    if sam > tam:
        raise MarketSizingError("SAM cannot exceed TAM")
    if som > sam:
        raise MarketSizingError("SOM cannot exceed SAM")

    sizes = adjust_for_time_period({"tam": tam, "sam": sam, "som": som}, params.time_period)

    return MarketSizes(
        **sizes,
        method="topDown",
        assumptions=[
            f"Market defined as {params.geographic_scope} scope",
            f"{params.market_maturity} market maturity level",
            f"SAM represents {_fmt_number(sam_percentage)}% of total market",
            f"SOM represents {_fmt_number(som_percentage)}% of serviceable market",
        ],
        confidence=calculate_confidence(params),
    )


def calculate_bottom_up(
    segments: Sequence[MarketSegment],
    market_params: Optional[MarketCalculationParams] = None,
    competitor_count: int = 0,
    market_share_target: float = 10.0,
) -> MarketSizes:
    """Bottom-up sizing from customer segments.

    TAM is growth-adjusted; SAM uses penetration and is not. SOM takes the
    target share of SAM divided across ``competitor_count + 1`` players.

    Raises:
        MarketSizingError: no segments, or negative competitor count / share target
    """
    params = market_params or MarketCalculationParams()

    if not segments:
        raise MarketSizingError("At least one market segment is required")
    if competitor_count < 0:
        raise MarketSizingError("Competitor count cannot be negative")
    if market_share_target < 0 or market_share_target > 100:
        raise MarketSizingError("Market share target must be between 0 and 100")

    tam = sum(s.users * s.avg_price * (1 + s.growth_rate / 100) for s in segments)
    sam = sum(s.addressable_value for s in segments)

    competitive_adjustment = 1 / (competitor_count + 1)
    som = sam * (market_share_target / 100) * competitive_adjustment

    multiplier = get_maturity_multiplier(params.market_maturity)
    adjusted = {"tam": tam * multiplier, "sam": sam * multiplier, "som": som * multiplier}
    sizes = adjust_for_time_period(adjusted, params.time_period)

    if sizes["sam"] > sizes["tam"]:
        # Penetration above growth-adjusted share, e.g. shrinking segments at 100% penetration
        logger.warning(
            "market_sizing.sam_exceeds_tam",
            extra={"calculator": "TAM", "reason": "negative growth with high penetration"},
        )

    return MarketSizes(
        **sizes,
        method="bottomUp",
        segments=list(segments),
        assumptions=[
            f"{len(segments)} market segments analyzed",
            f"Average penetration rate: {_average_penetration(segments):.1f}%",
            f"{competitor_count} major competitors considered",
            f"Target market share: {_fmt_number(market_share_target)}%",
            f"Market maturity factor: {_fmt_number(multiplier)}x",
        ],
        confidence=calculate_confidence(params, segments),
    )


def get_maturity_multiplier(maturity: str) -> float:
    return MATURITY_MULTIPLIERS.get(maturity, 1.0)


def adjust_for_time_period(sizes: Dict[str, float], period: str) -> Dict[str, float]:
    divisor = PERIOD_DIVISORS.get(period, 1)
    return {key: value / divisor for key, value in sizes.items()}


def calculate_confidence(
    params: MarketCalculationParams, segments: Optional[Sequence[MarketSegment]] = None
) -> float:
    confidence = BASE_CONFIDENCE

    if params.geographic_scope == "country":
        confidence += 10
    elif params.geographic_scope == "regional":
        confidence += 5

    if params.market_maturity == "mature":
        confidence += 10
    elif params.market_maturity == "growing":
        confidence += 5
    elif params.market_maturity == "declining":
        confidence -= 10

    # Segment detail only applies to bottom-up
    if segments and len(segments) > 3:
        confidence += 10
    if segments and len(segments) > 5:
        confidence += 5

    return clamp(float(confidence), 0.0, 100.0)


def validate_market_sizes(sizes: MarketSizes) -> List[str]:
    """Post-hoc sanity check of a sizing result; returns messages instead of raising."""
    errors: List[str] = []
    if sizes.tam <= 0:
        errors.append("TAM must be greater than 0")
    if sizes.sam > sizes.tam:
        errors.append("SAM cannot exceed TAM")
    if sizes.som > sizes.sam:
        errors.append("SOM cannot exceed SAM")
    if sizes.som < 0:
        errors.append("SOM cannot be negative")
    return errors


def calculate_market_efficiency(tam: float, sam: float, som: float) -> str:
    """Share of the total market that is realistically obtainable."""
    if tam <= 0:
        return "Low"
    efficiency = som / tam * 100
    if efficiency > 10:
        return "High"
    if efficiency > 5:
        return "Medium"
    return "Low"


def calculate_cagr(begin_value: float, end_value: float, years: float) -> float:
    """Compound annual growth rate in %, 0 when undefined."""
    if begin_value <= 0 or years <= 0 or end_value < 0:
        return 0.0
    return ((end_value / begin_value) ** (1 / years) - 1) * 100


def get_market_size_category(tam: float) -> Dict[str, str]:
    if tam >= 100e9:
        return {"label": "Mega Market", "color": "purple"}
    if tam >= 10e9:
        return {"label": "Large Market", "color": "blue"}
    if tam >= 1e9:
        return {"label": "Medium Market", "color": "green"}
    if tam >= 100e6:
        return {"label": "Small Market", "color": "yellow"}
    return {"label": "Niche Market", "color": "orange"}


def _average_penetration(segments: Sequence[MarketSegment]) -> float:
    if not segments:
        return 0.0
    return sum(s.penetration_rate for s in segments) / len(segments)


def _fmt_number(value: float) -> str:
    """20.0 -> '20', 12.5 -> '12.5'."""
    return f"{value:g}"


__all__ = [
    "MATURITY_MULTIPLIERS",
    "PERIOD_DIVISORS",
    "calculate_top_down",
    "calculate_bottom_up",
    "get_maturity_multiplier",
    "adjust_for_time_period",
    "calculate_confidence",
    "validate_market_sizes",
    "calculate_market_efficiency",
    "calculate_cagr",
    "get_market_size_category",
]
