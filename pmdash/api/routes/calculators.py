# pmdash/api/routes/calculators.py

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from pmdash.api.deps import require_shared_secret
from pmdash.api.schemas.calculators import AnalyzeResponse, MonteCarloRequest, RiceCompareRequest
from pmdash.errors import CalculatorError
from pmdash.schemas.abtest import AnalyzeRequest, MdeRequest, MdeResult, SampleSizeInputs, SampleSizeResult
from pmdash.schemas.market import BottomUpRequest, MarketSizes, TopDownRequest
from pmdash.schemas.rice import RiceComparison, RiceInputs, RiceResult
from pmdash.schemas.roi import MonteCarloResults, RoiCalculation, RoiResult
from pmdash.schemas.validation import ValidationResult
from pmdash.services import abtest, market_sizing, rice, roi, validators


router = APIRouter(
    prefix="/calculators",
    tags=["calculators"],
    dependencies=[Depends(require_shared_secret)],
)


def _reject_invalid(result: ValidationResult) -> None:
    if not result.is_valid:
        raise HTTPException(status_code=400, detail=result.to_json_dict())


@router.post("/rice", response_model=RiceResult)
def rice_score(req: RiceInputs) -> RiceResult:
    check = validators.validate_rice_inputs(req.reach, req.impact, req.confidence, req.effort)
    _reject_invalid(check)
    try:
        result = rice.evaluate_rice(req.reach, req.impact, req.confidence, req.effort)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    result.warnings.extend(check.warnings)
    return result


@router.post("/rice/compare", response_model=RiceComparison)
def rice_compare(req: RiceCompareRequest) -> RiceComparison:
    return rice.compare_rice_scores(req.score_a, req.score_b)


@router.post("/market/top-down", response_model=MarketSizes)
def market_top_down(req: TopDownRequest) -> MarketSizes:
    _reject_invalid(validators.validate_top_down_inputs(req.tam, req.sam_percentage, req.som_percentage))
    try:
        return market_sizing.calculate_top_down(req.tam, req.sam_percentage, req.som_percentage, req.market_params)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/market/bottom-up", response_model=MarketSizes)
def market_bottom_up(req: BottomUpRequest) -> MarketSizes:
    try:
        return market_sizing.calculate_bottom_up(
            req.segments, req.market_params, req.competitor_count, req.market_share_target
        )
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/roi", response_model=RoiResult)
def roi_analysis(req: RoiCalculation) -> RoiResult:
    check = validators.validate_roi_inputs(req)
    _reject_invalid(check)
    try:
        result = roi.calculate_roi(req)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    result.metrics.warnings.extend(w for w in check.warnings if w not in result.metrics.warnings)
    return result


@router.post("/roi/monte-carlo", response_model=MonteCarloResults)
def roi_monte_carlo(req: MonteCarloRequest) -> MonteCarloResults:
    _reject_invalid(validators.validate_roi_inputs(req.calculation))
    try:
        return roi.run_monte_carlo_simulation(req.calculation, req.iterations, req.uncertainty_range, req.seed)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/abtest/analyze", response_model=AnalyzeResponse)
def abtest_analyze(req: AnalyzeRequest) -> AnalyzeResponse:
    try:
        return AnalyzeResponse(results=abtest.calculate_frequentist(req.variations, req.config))
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/abtest/sample-size", response_model=SampleSizeResult)
def abtest_sample_size(req: SampleSizeInputs) -> SampleSizeResult:
    _reject_invalid(validators.validate_sample_size_inputs(req))
    try:
        return abtest.calculate_frequentist_sample_size(req)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/abtest/mde", response_model=MdeResult)
def abtest_mde(req: MdeRequest) -> MdeResult:
    try:
        mde = abtest.calculate_mde(req.sample_size, req.baseline_rate, req.alpha, req.power, req.test_direction)
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return MdeResult(mde=mde, relative_mde=mde / req.baseline_rate * 100)
