# pmdash/services/abtest.py
"""
Frequentist A/B test statistics for binary (conversion) metrics.

Rates handled internally are decimals (0-1); request models carry
percentages where the dashboard form does (baseline, confidence, power).
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from scipy.optimize import brentq

from pmdash.config import settings
from pmdash.errors import SampleSizeError
from pmdash.schemas.abtest import (
    CorrectionMethod,
    CostEstimate,
    DurationEstimate,
    SampleSizeInputs,
    SampleSizeResult,
    TestConfig,
    TestResult,
    Variation,
)
from pmdash.utils.stats import TestDirection, critical_z, pnorm, qnorm

logger = logging.getLogger("pmdash.services.abtest")


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def pooled_standard_error(p1: float, n1: int, p2: float, n2: int) -> float:
    pooled = (p1 * n1 + p2 * n2) / (n1 + n2)
    return math.sqrt(pooled * (1 - pooled) * (1 / n1 + 1 / n2))


def standard_error(p1: float, n1: int, p2: float, n2: int) -> float:
    """Unpooled standard error of the difference of two proportions."""
    return math.sqrt(p1 * (1 - p1) / n1 + p2 * (1 - p2) / n2)


def cohens_h(p1: float, p2: float) -> float:
    return 2 * math.asin(math.sqrt(p2)) - 2 * math.asin(math.sqrt(p1))


def calculate_power(
    n1: int,
    n2: int,
    p1: float,
    p2: float,
    alpha: float,
    test_direction: TestDirection = "two-tailed",
) -> float:
    """Probability of detecting the difference p2 - p1 at significance ``alpha``."""
    if n1 <= 0 or n2 <= 0:
        return 0.0
    delta = abs(p2 - p1)
    se0 = pooled_standard_error(p1, n1, p2, n2)
    se1 = standard_error(p1, n1, p2, n2)
    if se1 == 0:
        return 1.0 if delta > 0 else 0.0
    z = (delta - critical_z(alpha, test_direction) * se0) / se1
    return pnorm(z)


def adjust_p_value(p_value: float, num_tests: int, method: CorrectionMethod) -> float:
    """Single-p-value multiple testing correction.

    Holm and Benjamini-Hochberg need the full set of p-values to be exact;
    with one value at hand Holm reduces to Bonferroni and FDR to a halved
    Bonferroni factor.
    """
    if method in ("bonferroni", "holm"):
        return min(p_value * num_tests, 1.0)
    if method == "fdr":
        return min(p_value * num_tests / 2, 1.0)
    return p_value


def get_confidence_interval(
    p1: float,
    n1: int,
    p2: float,
    n2: int,
    confidence: float = 0.95,
    test_direction: TestDirection = "two-tailed",
) -> Tuple[float, float]:
    diff = p2 - p1
    margin = critical_z(1 - confidence, test_direction) * standard_error(p1, n1, p2, n2)
    return diff - margin, diff + margin


# ---------------------------------------------------------------------------
# Analysis of a finished test
# ---------------------------------------------------------------------------

def calculate_frequentist(variations: Sequence[Variation], config: Optional[TestConfig] = None) -> List[TestResult]:
    """Two-proportion z-test of every treatment against the control (first variation).

    Raises:
        SampleSizeError: fewer than two variations or a variation without visitors
    """
    config = config or TestConfig()
    if len(variations) < 2:
        raise SampleSizeError("At least 2 variations required for A/B test")
    for variation in variations:
        if variation.visitors <= 0:
            raise SampleSizeError(f"Variation {variation.id} has no visitors")

    control = variations[0]
    control_rate = control.rate
    alpha = 1 - config.confidence_level / 100
    num_treatments = len(variations) - 1
    adjusted = num_treatments > 1 and config.correction_method != "none"

    results: List[TestResult] = []
    for variant in variations[1:]:
        variant_rate = variant.rate

        se_pooled = pooled_standard_error(control_rate, control.visitors, variant_rate, variant.visitors)
        z_score = (variant_rate - control_rate) / se_pooled if se_pooled > 0 else 0.0

        if config.test_direction == "two-tailed":
            p_value = 2 * (1 - pnorm(abs(z_score)))
        else:
            p_value = 1 - pnorm(z_score)
        if adjusted:
            p_value = adjust_p_value(p_value, num_treatments, config.correction_method)

        absolute_uplift = variant_rate - control_rate
        ci = get_confidence_interval(
            control_rate,
            control.visitors,
            variant_rate,
            variant.visitors,
            confidence=config.confidence_level / 100,
            test_direction=config.test_direction,
        )
        relative_uplift = absolute_uplift / control_rate * 100 if control_rate > 0 else 0.0
        power = calculate_power(
            control.visitors, variant.visitors, control_rate, variant_rate, alpha, config.test_direction
        )
        is_significant = p_value < alpha

        warnings: List[str] = []
        if power < settings.ABTEST_LOW_POWER_THRESHOLD:
            warnings.append(
                f"Low statistical power ({power:.0%}); the test may be too small to detect this effect"
            )

        results.append(
            TestResult(
                variation_id=variant.id,
                p_value=p_value,
                is_significant=is_significant,
                confidence_interval=ci,
                uplift=relative_uplift,
                absolute_uplift=absolute_uplift,
                effect_size=cohens_h(control_rate, variant_rate),
                power=power,
                multiple_testing_adjusted=adjusted,
                winner=variant.id if is_significant and absolute_uplift > 0 else None,
                warnings=warnings,
            )
        )

    return results


# ---------------------------------------------------------------------------
# Test design
# ---------------------------------------------------------------------------

def required_sample_size(p1: float, p2: float, alpha: float, power: float, test_direction: TestDirection) -> int:
    """Per-arm sample size for the two-proportion z-test.

    n = (z_alpha + z_beta)^2 * [p1(1-p1) + p2(1-p2)] / (p1 - p2)^2
    """
    z_alpha = critical_z(alpha, test_direction)
    z_beta = qnorm(power)
    variance = p1 * (1 - p1) + p2 * (1 - p2)
    return math.ceil((z_alpha + z_beta) ** 2 * variance / (p1 - p2) ** 2)


def _effective_daily_traffic(inputs: SampleSizeInputs) -> float:
    seasonality = inputs.traffic.seasonality
    if not seasonality:
        return inputs.traffic.daily
    return inputs.traffic.daily * sum(seasonality.day_of_week) / 7


def calculate_frequentist_sample_size(inputs: SampleSizeInputs) -> SampleSizeResult:
    """Sample size and duration needed to detect the configured effect.

    Allocation percentages are used as given; an allocation that does not sum
    to 100 is reported in the notes, not corrected.

    Raises:
        SampleSizeError: unsupported metric or out-of-range inputs
    """
    metric, effect = inputs.metric, inputs.effect
    params, traffic = inputs.statistical_params, inputs.traffic

    if metric.type != "binary":
        raise SampleSizeError("Only binary metrics supported in this implementation")
    if not 0 < metric.baseline < 100:
        raise SampleSizeError("Baseline conversion rate must be between 0 and 100%")
    if not 0 < params.confidence_level < 100:
        raise SampleSizeError("Confidence level must be between 0 and 100%")
    if not 0 < params.power < 100:
        raise SampleSizeError("Power must be between 0 and 100%")
    if traffic.daily <= 0:
        raise SampleSizeError("Daily traffic must be greater than 0")
    if len(traffic.allocation) < 2:
        raise SampleSizeError("Traffic allocation needs a control and at least one variant")
    for arm, share in traffic.allocation.items():
        if share <= 0:
            raise SampleSizeError(f"Traffic allocation for '{arm}' must be greater than 0")

    p1 = metric.baseline / 100
    if effect.type == "relative":
        p2 = p1 * (1 + effect.value / 100)
    else:
        p2 = p1 + effect.value / 100
    if p2 == p1:
        raise SampleSizeError("Effect size must be non-zero")
    if not 0 < p2 < 1:
        raise SampleSizeError("Expected variant conversion rate falls outside 0-100%")

    alpha = 1 - params.confidence_level / 100
    comparisons = params.multiple_comparisons or 1
    if comparisons > 1:
        alpha = alpha / comparisons  # Bonferroni

    n = required_sample_size(p1, p2, alpha, params.power / 100, params.test_direction)
    per_variation = {arm: n for arm in traffic.allocation}
    total = n * len(per_variation)

    # The arm with the smallest share takes longest to fill
    effective_daily = _effective_daily_traffic(inputs)
    if effective_daily <= 0:
        raise SampleSizeError("Effective daily traffic must be greater than 0")
    days = max(math.ceil(n / (effective_daily * share / 100)) for share in traffic.allocation.values())
    duration = DurationEstimate(
        days=days,
        weeks=math.ceil(days / 7),
        confidence_interval=(math.floor(days * 0.8), math.ceil(days * 1.2)),
    )

    cost = None
    if traffic.constraints and traffic.constraints.cost_per_sample:
        per_sample = traffic.constraints.cost_per_sample
        cost = CostEstimate(
            total=total * per_sample,
            per_variation={arm: size * per_sample for arm, size in per_variation.items()},
        )

    notes: List[str] = []
    if comparisons > 1:
        notes.append(f"Sample size adjusted for {comparisons} comparisons")
    if traffic.seasonality:
        notes.append("Duration estimate accounts for seasonality")
    if effect.practical_significance:
        notes.append(f"Practical significance threshold: {effect.practical_significance:g}%")
    allocation_sum = sum(traffic.allocation.values())
    if not math.isclose(allocation_sum, 100.0, abs_tol=1e-9):
        notes.append(f"Traffic allocation sums to {allocation_sum:g}%, not 100%")
    if days > settings.ABTEST_LONG_DURATION_DAYS:
        notes.append(
            f"Test would run for {days} days; consider raising the minimum detectable effect "
            "or increasing traffic"
        )
    max_days = traffic.constraints.max_duration_days if traffic.constraints else None
    if max_days and days > max_days:
        notes.append(f"Estimated duration exceeds the {max_days}-day limit")

    logger.debug(
        "abtest.sample_size",
        extra={"calculator": "AB_TEST", "sample_size": n, "total": total},
    )

    return SampleSizeResult(
        per_variation=per_variation,
        total=total,
        power_achieved=params.power,
        duration=duration,
        cost=cost,
        notes=notes,
    )


def calculate_mde(
    sample_size: int,
    baseline_rate: float,
    alpha: float = 0.05,
    power: float = 0.8,
    test_direction: TestDirection = "two-tailed",
) -> float:
    """Smallest absolute lift over ``baseline_rate`` detectable with ``sample_size`` per arm.

    Inverts the sample-size formula exactly (root-finding on the effect). If
    even the largest possible lift needs more than ``sample_size`` visitors,
    that largest lift (1 - baseline) is returned.

    Raises:
        SampleSizeError: non-positive sample size or rates outside (0, 1)
    """
    if sample_size <= 0:
        raise SampleSizeError("Sample size must be greater than 0")
    if not 0 < baseline_rate < 1:
        raise SampleSizeError("Baseline rate must be between 0 and 1")
    if not 0 < alpha < 1 or not 0 < power < 1:
        raise SampleSizeError("Alpha and power must be between 0 and 1")

    p1 = baseline_rate
    k = (critical_z(alpha, test_direction) + qnorm(power)) ** 2

    def gap(delta: float) -> float:
        p2 = p1 + delta
        return k * (p1 * (1 - p1) + p2 * (1 - p2)) / delta ** 2 - sample_size

    hi = 1 - p1 - 1e-12
    lo = 1e-12
    if gap(hi) > 0:
        logger.info("abtest.mde_unreachable", extra={"calculator": "AB_TEST", "sample_size": sample_size})
        return 1 - p1
    return float(brentq(gap, lo, hi, xtol=1e-12))


def is_sample_size_sufficient(
    n: int,
    baseline_rate: float,
    mde: float,
    alpha: float = 0.05,
    desired_power: float = 0.8,
    test_direction: TestDirection = "two-tailed",
) -> bool:
    actual = calculate_power(n, n, baseline_rate, baseline_rate + mde, alpha, test_direction)
    return actual >= desired_power


__all__ = [
    "pooled_standard_error",
    "standard_error",
    "cohens_h",
    "calculate_power",
    "adjust_p_value",
    "get_confidence_interval",
    "calculate_frequentist",
    "required_sample_size",
    "calculate_frequentist_sample_size",
    "calculate_mde",
    "is_sample_size_sufficient",
]
