# pmdash/services/roi.py
"""
ROI / discounted cash-flow engine.

Cash-flow conventions:
- Months are 1-based; the projection covers months 1..time_horizon.
- The initial cost is booked in month 1's costs, so the undiscounted
  cumulative cash flow is a plain running sum of net cash flows starting at 0.
- For discounting the initial cost sits at t=0 (undiscounted) and month t's
  operating flow is multiplied by (1 + monthly_rate) ** -t, where
  monthly_rate = (1 + annual_rate) ** (1/12) - 1.
- IRR/MIRR are solved on monthly flows and annualised by compounding.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import brentq

from pmdash.config import settings
from pmdash.errors import RoiInputError
from pmdash.schemas.roi import (
    DistributionStats,
    IrrStatus,
    LineItem,
    MonteCarloResults,
    MonthlyProjection,
    RiskFactor,
    RoiCalculation,
    RoiCategory,
    RoiMetrics,
    RoiResult,
)

logger = logging.getLogger("pmdash.services.roi")

# Probe points (monthly rates) used to bracket an IRR root for Brent's method
_IRR_PROBES = (-0.5, -0.2, -0.1, -0.05, -0.01, 0.0, 0.005, 0.01, 0.02, 0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 5.0)


@dataclass(frozen=True)
class IrrSolution:
    monthly_rate: Optional[float]
    status: IrrStatus
    iterations: int = 0

    @property
    def annual_pct(self) -> Optional[float]:
        if self.monthly_rate is None:
            return None
        return annualize_monthly_rate(self.monthly_rate) * 100


# ---------------------------------------------------------------------------
# Rates and line items
# ---------------------------------------------------------------------------

def monthly_discount_rate(annual_rate_pct: float) -> float:
    """Monthly rate equivalent to an annual percentage under monthly compounding."""
    return (1 + annual_rate_pct / 100) ** (1 / 12) - 1


def annualize_monthly_rate(monthly_rate: float) -> float:
    return (1 + monthly_rate) ** 12 - 1


def _probability_weight(item: LineItem) -> float:
    return (item.probability if item.probability is not None else 100.0) / 100


def line_item_total(item: LineItem, is_benefit: bool = False) -> float:
    """Total value of an item over its whole window (benefits are risk-weighted)."""
    total = item.amount * item.months if item.is_recurring else item.amount
    if is_benefit:
        total *= _probability_weight(item)
    return total


def line_item_month_amount(item: LineItem, month: int, is_benefit: bool = False) -> float:
    """Contribution of an item to a single month; one-off items are spread over their window."""
    if not item.active_in(month):
        return 0.0
    amount = item.amount if item.is_recurring else item.amount / item.months
    if is_benefit:
        amount *= _probability_weight(item)
    return amount


def calculate_total_costs(calculation: RoiCalculation) -> float:
    return calculation.initial_cost + sum(line_item_total(c) for c in calculation.recurring_costs)


def calculate_total_benefits(calculation: RoiCalculation) -> float:
    return sum(line_item_total(b, is_benefit=True) for b in calculation.benefits)


def _validate_calculation(calculation: RoiCalculation) -> List[str]:
    """Raise on impossible inputs; return advisory warnings for the rest."""
    if calculation.time_horizon < 1:
        raise RoiInputError("Time horizon must be at least 1 month")
    if calculation.initial_cost < 0:
        raise RoiInputError("Initial cost cannot be negative")
    if calculation.discount_rate <= -100:
        raise RoiInputError("Discount rate must be greater than -100%")

    warnings: List[str] = []
    for kind, items in (("Cost", calculation.recurring_costs), ("Benefit", calculation.benefits)):
        for idx, item in enumerate(items, start=1):
            label = item.description or f"#{idx}"
            if item.amount < 0:
                raise RoiInputError(f"{kind} {label} amount cannot be negative")
            if item.months < 1:
                raise RoiInputError(f"{kind} {label} duration must be at least 1 month")
            if item.start_month < 1:
                raise RoiInputError(f"{kind} {label} start month must be at least 1")
            if item.probability is not None and not 0 <= item.probability <= 100:
                raise RoiInputError(f"{kind} {label} probability must be 0-100%")
            if item.end_month - 1 > calculation.time_horizon:
                warnings.append(f"{kind} {label} extends beyond the time horizon")
    return warnings


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def _project(calculation: RoiCalculation) -> Tuple[List[MonthlyProjection], List[float]]:
    """Monthly projection plus the operating cash-flow series [-initial, op_1, ..., op_T]."""
    rate = monthly_discount_rate(calculation.discount_rate)
    projections: List[MonthlyProjection] = []
    flows: List[float] = [-calculation.initial_cost]

    cumulative = 0.0
    discounted_cumulative = 0.0
    for month in range(1, calculation.time_horizon + 1):
        operating_costs = sum(line_item_month_amount(c, month) for c in calculation.recurring_costs)
        benefits = sum(line_item_month_amount(b, month, is_benefit=True) for b in calculation.benefits)
        costs = operating_costs + (calculation.initial_cost if month == 1 else 0.0)

        net = benefits - costs
        cumulative += net

        operating_net = benefits - operating_costs
        discounted = operating_net / (1 + rate) ** month
        if month == 1:
            discounted -= calculation.initial_cost
        discounted_cumulative += discounted

        flows.append(operating_net)
        projections.append(
            MonthlyProjection(
                month=month,
                costs=costs,
                benefits=benefits,
                net_cash_flow=net,
                cumulative_cash_flow=cumulative,
                discounted_cash_flow=discounted,
                discounted_cumulative=discounted_cumulative,
            )
        )

    return projections, flows


def calculate_monthly_projections(calculation: RoiCalculation) -> List[MonthlyProjection]:
    _validate_calculation(calculation)
    projections, _ = _project(calculation)
    return projections


# ---------------------------------------------------------------------------
# NPV / IRR / MIRR
# ---------------------------------------------------------------------------

def npv_at(cash_flows: Sequence[float], rate: float) -> float:
    """NPV of flows indexed from t=0 at a per-period rate."""
    return sum(cf / (1 + rate) ** t for t, cf in enumerate(cash_flows))


def _npv_and_derivative(cash_flows: Sequence[float], rate: float) -> Tuple[float, float]:
    npv = 0.0
    derivative = 0.0
    for t, cf in enumerate(cash_flows):
        npv += cf / (1 + rate) ** t
        if t > 0:
            derivative -= t * cf / (1 + rate) ** (t + 1)
    return npv, derivative


def _safe_npv(cash_flows: Sequence[float], rate: float) -> Optional[float]:
    try:
        value = npv_at(cash_flows, rate)
    except (OverflowError, ZeroDivisionError):
        return None
    return value if math.isfinite(value) else None


def calculate_irr(
    cash_flows: Sequence[float],
    guess: Optional[float] = None,
    tolerance: Optional[float] = None,
    max_iterations: Optional[int] = None,
) -> IrrSolution:
    """Solve NPV(rate) = 0 for a per-period rate.

    Newton-Raphson from ``guess``; when it stalls, leaves the
    [IRR_LOWER_BOUND, IRR_UPPER_BOUND] bracket or runs out of iterations,
    the root is bracketed on a fixed probe grid and refined with Brent's
    method. Flows that never change sign have no IRR (status ``undefined``).
    If no root can be bracketed the last Newton estimate is returned with
    status ``not_converged``.
    """
    guess = settings.IRR_INITIAL_GUESS if guess is None else guess
    tolerance = settings.IRR_TOLERANCE if tolerance is None else tolerance
    max_iterations = settings.IRR_MAX_ITERATIONS if max_iterations is None else max_iterations
    lower, upper = settings.IRR_LOWER_BOUND, settings.IRR_UPPER_BOUND

    has_positive = any(cf > 0 for cf in cash_flows)
    has_negative = any(cf < 0 for cf in cash_flows)
    if not (has_positive and has_negative):
        return IrrSolution(monthly_rate=None, status="undefined")

    rate = guess
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        try:
            npv, derivative = _npv_and_derivative(cash_flows, rate)
        except (OverflowError, ZeroDivisionError):
            break
        if derivative == 0 or not math.isfinite(npv) or not math.isfinite(derivative):
            break
        new_rate = rate - npv / derivative
        if not math.isfinite(new_rate) or new_rate <= lower or new_rate >= upper:
            break
        if abs(new_rate - rate) < tolerance:
            return IrrSolution(monthly_rate=new_rate, status="converged", iterations=iterations)
        rate = new_rate

    probes = (lower + tolerance,) + _IRR_PROBES + (upper,)
    previous: Optional[Tuple[float, float]] = None
    for probe in probes:
        value = _safe_npv(cash_flows, probe)
        if value is None:
            continue
        if value == 0:
            return IrrSolution(monthly_rate=probe, status="converged", iterations=iterations)
        if previous is not None and (previous[1] < 0) != (value < 0):
            try:
                root = brentq(
                    lambda r: npv_at(cash_flows, r),
                    previous[0],
                    probe,
                    xtol=tolerance,
                    maxiter=max_iterations,
                )
            except (RuntimeError, ValueError) as exc:
                logger.warning("roi.irr_brent_failed", extra={"reason": str(exc)})
                break
            return IrrSolution(monthly_rate=float(root), status="converged", iterations=iterations)
        previous = (probe, value)

    best_effort = rate if math.isfinite(rate) else None
    return IrrSolution(monthly_rate=best_effort, status="not_converged", iterations=iterations)


def calculate_mirr(cash_flows: Sequence[float], rate: float) -> Optional[float]:
    """Modified IRR (per period); finance and reinvestment both at ``rate``."""
    n = len(cash_flows) - 1
    if n < 1:
        return None
    pv_negative = sum(cf / (1 + rate) ** t for t, cf in enumerate(cash_flows) if cf < 0)
    fv_positive = sum(cf * (1 + rate) ** (n - t) for t, cf in enumerate(cash_flows) if cf > 0)
    if pv_negative == 0 or fv_positive == 0:
        return None
    return (fv_positive / abs(pv_negative)) ** (1 / n) - 1


# ---------------------------------------------------------------------------
# Payback
# ---------------------------------------------------------------------------

def _payback(positions: Sequence[float]) -> Optional[float]:
    """First crossing of zero in a position series whose index 0 is t=0.

    Interpolates linearly inside the month in which the position turns
    non-negative. Returns None when it never does.
    """
    for t in range(1, len(positions)):
        current = positions[t]
        if current >= 0:
            previous = positions[t - 1]
            if previous < 0:
                return (t - 1) + (-previous) / (current - previous)
            return float(t - 1)
    return None


def calculate_payback_period(
    projections: Sequence[MonthlyProjection], initial_cost: float
) -> Optional[float]:
    positions = [-initial_cost] + [p.cumulative_cash_flow for p in projections]
    return _payback(positions)


def calculate_discounted_payback_period(
    projections: Sequence[MonthlyProjection], initial_cost: float
) -> Optional[float]:
    positions = [-initial_cost] + [p.discounted_cumulative for p in projections]
    return _payback(positions)


def find_break_even_month(projections: Sequence[MonthlyProjection]) -> Optional[int]:
    for p in projections:
        if p.cumulative_cash_flow >= 0:
            return p.month
    return None


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def calculate_roi(calculation: RoiCalculation) -> RoiResult:
    """Full ROI analysis: projection plus metrics.

    Risk factors attached to the calculation are applied to the affected line
    items first.

    Raises:
        RoiInputError: on impossible inputs (negative amounts, empty horizon, ...)
    """
    if calculation.risk_factors:
        calculation = apply_risk_factors(calculation, calculation.risk_factors)

    warnings = _validate_calculation(calculation)
    projections, flows = _project(calculation)
    horizon = calculation.time_horizon

    total_costs = calculate_total_costs(calculation)
    total_benefits = calculate_total_benefits(calculation)
    if total_costs > 0:
        simple_roi = (total_benefits - total_costs) / total_costs * 100
    else:
        simple_roi = 0.0
        warnings.append("No costs defined; simple ROI reported as 0")

    npv = projections[-1].discounted_cumulative

    irr = calculate_irr(flows)
    if irr.status == "undefined":
        warnings.append("IRR is undefined: cash flows never change sign")
    elif irr.status == "not_converged":
        warnings.append("IRR did not converge; value is a best-effort estimate")
        logger.warning(
            "roi.irr_not_converged",
            extra={"calculator": "ROI", "iterations": irr.iterations, "irr_status": irr.status},
        )

    monthly_rate = monthly_discount_rate(calculation.discount_rate)
    mirr_monthly = calculate_mirr(flows, monthly_rate) if calculation.discount_rate else None
    mirr = annualize_monthly_rate(mirr_monthly) * 100 if mirr_monthly is not None else None

    payback = calculate_payback_period(projections, calculation.initial_cost)
    paid_back = payback is not None
    if not paid_back:
        warnings.append(f"Investment is not paid back within {horizon} months")
    discounted_payback = calculate_discounted_payback_period(projections, calculation.initial_cost)

    initial = calculation.initial_cost
    pi = (npv + initial) / initial if initial > 0 else None
    eva = npv - initial * (calculation.discount_rate / 100)

    metrics = RoiMetrics(
        simple_roi=simple_roi,
        npv=npv,
        irr=irr.annual_pct,
        irr_status=irr.status,
        mirr=mirr,
        payback_period=payback if paid_back else float(horizon + 1),
        paid_back=paid_back,
        discounted_payback_period=discounted_payback if discounted_payback is not None else float(horizon + 1),
        break_even_month=find_break_even_month(projections),
        pi=pi,
        eva=eva,
        warnings=warnings,
    )
    logger.debug("roi.computed", extra={"calculator": "ROI", "npv": npv, "irr_status": irr.status})
    return RoiResult(metrics=metrics, projections=projections)


def calculate_roi_metrics(calculation: RoiCalculation) -> RoiMetrics:
    return calculate_roi(calculation).metrics


def apply_risk_factors(calculation: RoiCalculation, risk_factors: Sequence[RiskFactor]) -> RoiCalculation:
    """Scale affected line items by each risk's expected impact.

    Costs grow by (impact - 1) x probability; benefits shrink by
    (1 - impact) x probability. Mitigation effectiveness pulls the impact
    towards the neutral multiplier 1. Returns a new calculation with
    ``risk_factors`` cleared.
    """
    costs = [c.model_copy() for c in calculation.recurring_costs]
    benefits = [b.model_copy() for b in calculation.benefits]

    for risk in risk_factors:
        effectiveness = risk.mitigation.effectiveness if risk.mitigation else 0.0
        effective_impact = 1 + (risk.impact - 1) * (1 - effectiveness)
        affected = set(risk.affected_items)
        for cost in costs:
            if cost.id in affected:
                cost.amount = cost.amount * (1 + (effective_impact - 1) * risk.probability)
        for benefit in benefits:
            if benefit.id in affected:
                benefit.amount = benefit.amount * (1 - (1 - effective_impact) * risk.probability)

    return calculation.model_copy(
        update={"recurring_costs": costs, "benefits": benefits, "risk_factors": []}
    )


def get_roi_category(roi: float) -> RoiCategory:
    if roi >= 200:
        return RoiCategory(label="Excellent", color="green", description="Exceptional return on investment")
    if roi >= 100:
        return RoiCategory(label="Good", color="blue", description="Strong return on investment")
    if roi >= 50:
        return RoiCategory(label="Moderate", color="yellow", description="Acceptable return on investment")
    if roi >= 0:
        return RoiCategory(label="Low", color="orange", description="Minimal return on investment")
    return RoiCategory(label="Negative", color="red", description="Loss on investment")


# ---------------------------------------------------------------------------
# Monte Carlo
# ---------------------------------------------------------------------------

def _distribution(values: np.ndarray) -> DistributionStats:
    return DistributionStats(
        p10=float(np.percentile(values, 10)),
        p50=float(np.percentile(values, 50)),
        p90=float(np.percentile(values, 90)),
        mean=float(np.mean(values)),
        std_dev=float(np.std(values)),
    )


def run_monte_carlo_simulation(
    calculation: RoiCalculation,
    iterations: Optional[int] = None,
    uncertainty_range: Optional[float] = None,
    seed: Optional[int] = None,
) -> MonteCarloResults:
    """Uncertainty analysis: every amount varies uniformly by +/- ``uncertainty_range``.

    Deterministic for a given ``seed``.
    """
    iterations = settings.MONTE_CARLO_ITERATIONS if iterations is None else iterations
    spread = settings.MONTE_CARLO_UNCERTAINTY if uncertainty_range is None else uncertainty_range
    if iterations < 1:
        raise RoiInputError("Monte Carlo needs at least one iteration")
    if not 0 <= spread < 1:
        raise RoiInputError("Uncertainty range must be in [0, 1)")

    if calculation.risk_factors:
        calculation = apply_risk_factors(calculation, calculation.risk_factors)
    _validate_calculation(calculation)

    rng = np.random.default_rng(seed)
    roi = np.empty(iterations)
    npv = np.empty(iterations)
    payback = np.empty(iterations)

    def jitter(item: LineItem) -> LineItem:
        return item.model_copy(update={"amount": item.amount * rng.uniform(1 - spread, 1 + spread)})

    for i in range(iterations):
        randomized = calculation.model_copy(
            update={
                "initial_cost": calculation.initial_cost * rng.uniform(1 - spread, 1 + spread),
                "recurring_costs": [jitter(c) for c in calculation.recurring_costs],
                "benefits": [jitter(b) for b in calculation.benefits],
            }
        )
        projections, _ = _project(randomized)
        total_costs = calculate_total_costs(randomized)
        total_benefits = calculate_total_benefits(randomized)
        roi[i] = (total_benefits - total_costs) / total_costs * 100 if total_costs > 0 else 0.0
        npv[i] = projections[-1].discounted_cumulative
        months = calculate_payback_period(projections, randomized.initial_cost)
        payback[i] = months if months is not None else randomized.time_horizon + 1

    return MonteCarloResults(
        iterations=iterations,
        metrics={
            "roi": _distribution(roi),
            "npv": _distribution(npv),
            "payback": _distribution(payback),
        },
        success_probability=float(np.mean(npv > 0)),
    )


__all__ = [
    "IrrSolution",
    "monthly_discount_rate",
    "annualize_monthly_rate",
    "line_item_total",
    "line_item_month_amount",
    "calculate_total_costs",
    "calculate_total_benefits",
    "calculate_monthly_projections",
    "npv_at",
    "calculate_irr",
    "calculate_mirr",
    "calculate_payback_period",
    "calculate_discounted_payback_period",
    "find_break_even_month",
    "calculate_roi",
    "calculate_roi_metrics",
    "apply_risk_factors",
    "get_roi_category",
    "run_monte_carlo_simulation",
]
