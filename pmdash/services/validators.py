# pmdash/services/validators.py
"""
Form-level input validation for the calculators.

Validators never raise: they collect per-field errors and advisory warnings
so the UI can render them inline. ``ensure_valid`` turns the first error
into the calculator's exception type for callers that want the hard failure.
"""
from __future__ import annotations

import math
from typing import Sequence, Type

from pmdash.config import settings
from pmdash.errors import CalculatorError, InvalidInputError
from pmdash.schemas.abtest import SampleSizeInputs
from pmdash.schemas.roi import LineItem, RoiCalculation
from pmdash.schemas.validation import ValidationResult
from pmdash.utils.numeric import is_int_in_range

RICE_SCALE_MIN = 1
RICE_SCALE_MAX = 10

ZERO_FACTOR_WARNINGS = {
    "reach": "Reach is 0 - this feature won't impact any users",
    "impact": "Impact is 0 - this feature won't change anything for users",
}


def validate_rice_inputs(reach: float, impact: float, confidence: float, effort: float) -> ValidationResult:
    result = ValidationResult()

    # Zero reach or impact is legal and scores 0; effort is a divisor.
    for field, value in (("reach", reach), ("impact", impact), ("effort", effort)):
        low = RICE_SCALE_MIN if field == "effort" else 0
        if not math.isfinite(value) or value < low or value > RICE_SCALE_MAX:
            result.add_error(field, f"{field.capitalize()} must be between {low} and {RICE_SCALE_MAX}")
        elif value == 0:
            result.warnings.append(ZERO_FACTOR_WARNINGS[field])
        elif not is_int_in_range(value, RICE_SCALE_MIN, RICE_SCALE_MAX):
            result.warnings.append(f"{field.capitalize()} is usually a whole number on the 1-10 scale")

    if not math.isfinite(confidence):
        result.add_error("confidence", "Confidence must be a number")
        return result

    if confidence < 0:
        result.add_error("confidence", "Confidence must be at least 0%")
    elif confidence > 100:
        result.add_error("confidence", "Confidence cannot exceed 100%")
    elif confidence < 20:
        result.warnings.append("Very low confidence - consider more research before implementing")
    elif confidence == 100:
        result.warnings.append("100% confidence is rare - are you sure about this estimate?")

    if result.is_valid and effort >= 8 and reach * impact * confidence / 100 / effort < 1:
        result.warnings.append("Very low score with high effort - reconsider prioritization")

    return result


def validate_top_down_inputs(tam: float, sam_percentage: float, som_percentage: float) -> ValidationResult:
    result = ValidationResult()
    if tam <= 0:
        result.add_error("tam", "TAM must be greater than 0")
    for field, value in (("samPercentage", sam_percentage), ("somPercentage", som_percentage)):
        if value < 0 or value > 100:
            result.add_error(field, "Percentage must be between 0 and 100")
    if result.is_valid and som_percentage > 50:
        result.warnings.append("Capturing more than half of the serviceable market is rarely realistic")
    return result


def _validate_line_items(result: ValidationResult, kind: str, items: Sequence[LineItem], horizon: int) -> None:
    for index, item in enumerate(items):
        prefix = f"{kind}-{index}"
        label = f"{kind.capitalize()} #{index + 1}"
        if not item.description.strip():
            result.add_error(f"{prefix}-description", f"{label} needs a description")
        if item.amount < 0:
            result.add_error(f"{prefix}-amount", f"{label} amount cannot be negative")
        if item.start_month < 1 or item.start_month > horizon:
            result.add_error(f"{prefix}-startMonth", f"{label} start month must be within 1-{horizon}")
        if item.months < 1:
            result.add_error(f"{prefix}-months", f"{label} duration must be at least 1 month")
        elif item.start_month + item.months - 1 > horizon:
            result.add_error(f"{prefix}-duration", f"{label} extends beyond time horizon")
        if item.probability is not None:
            if item.probability < 0 or item.probability > 100:
                result.add_error(f"{prefix}-probability", f"{label} probability must be 0-100%")
            elif item.probability < 50:
                result.warnings.append(f"{label} has low probability ({item.probability:g}%)")


def validate_roi_inputs(calculation: RoiCalculation) -> ValidationResult:
    result = ValidationResult()
    horizon = calculation.time_horizon

    if not calculation.name.strip():
        result.add_error("projectName", "Project name is required")
    if calculation.initial_cost < 0:
        result.add_error("initialCost", "Initial cost cannot be negative")
    if horizon < 1:
        result.add_error("timeHorizon", "Time horizon must be at least 1 month")
    elif horizon > settings.ROI_MAX_TIME_HORIZON:
        result.add_error(
            "timeHorizon", f"Time horizon cannot exceed {settings.ROI_MAX_TIME_HORIZON} months"
        )
    if calculation.discount_rate < 0:
        result.add_error("discountRate", "Discount rate cannot be negative")
    elif calculation.discount_rate > settings.ROI_MAX_DISCOUNT_RATE:
        result.add_error(
            "discountRate", f"Discount rate seems too high (max {settings.ROI_MAX_DISCOUNT_RATE:g}%)"
        )
    elif calculation.discount_rate > 20:
        result.warnings.append("Discount rate seems high. Typical rates are 8-15%")

    _validate_line_items(result, "cost", calculation.recurring_costs, horizon)
    _validate_line_items(result, "benefit", calculation.benefits, horizon)

    if 1 <= horizon < 12 and (calculation.recurring_costs or calculation.benefits):
        result.warnings.append("Consider a longer time horizon (12+ months) for more accurate ROI")
    if not calculation.benefits and (calculation.initial_cost > 0 or calculation.recurring_costs):
        result.warnings.append("No benefits defined - ROI will be negative")

    return result


def validate_sample_size_inputs(inputs: SampleSizeInputs) -> ValidationResult:
    result = ValidationResult()
    baseline = inputs.metric.baseline
    params = inputs.statistical_params

    if inputs.metric.type != "binary":
        result.add_error("metric.type", "Only binary metrics are supported")
    if not 0 < baseline < 100:
        result.add_error("metric.baseline", "Baseline conversion rate must be between 0 and 100%")
    if inputs.effect.value == 0:
        result.add_error("effect.value", "Effect size must be non-zero")
    if not 0 < params.confidence_level < 100:
        result.add_error("statisticalParams.confidenceLevel", "Confidence level must be between 0 and 100%")
    if not 0 < params.power < 100:
        result.add_error("statisticalParams.power", "Power must be between 0 and 100%")
    elif params.power < 80:
        result.warnings.append("Power below 80% makes false negatives likely")
    if inputs.traffic.daily <= 0:
        result.add_error("traffic.daily", "Daily traffic must be greater than 0")

    allocation = inputs.traffic.allocation
    if len(allocation) < 2:
        result.add_error("traffic.allocation", "Traffic allocation needs a control and at least one variant")
    elif any(share <= 0 for share in allocation.values()):
        result.add_error("traffic.allocation", "Every arm needs a positive share of traffic")
    elif not math.isclose(sum(allocation.values()), 100.0, abs_tol=1e-9):
        result.warnings.append("Traffic allocation does not sum to 100%")

    return result


def ensure_valid(result: ValidationResult, error_type: Type[CalculatorError] = InvalidInputError) -> None:
    """Raise the first collected error, if any."""
    if result.errors:
        first = result.errors[0]
        raise error_type(f"{first.field}: {first.message}")


__all__ = [
    "validate_rice_inputs",
    "validate_top_down_inputs",
    "validate_roi_inputs",
    "validate_sample_size_inputs",
    "ensure_valid",
]
