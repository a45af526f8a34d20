from .rice import (
    RiceInputs,
    RiceScore,
    RiceCategory,
    RiceComparison,
    RiceResult,
    RiceScoreCollection,
    ScoreDistribution,
    ComponentContributions,
)
from .market import MarketCalculationParams, MarketSegment, MarketSizes, TopDownRequest, BottomUpRequest
from .roi import (
    LineItem,
    RiskFactor,
    RiskMitigation,
    RoiCalculation,
    MonthlyProjection,
    RoiMetrics,
    RoiResult,
    RoiCategory,
    MonteCarloResults,
)
from .abtest import (
    Variation,
    TestConfig,
    TestResult,
    AnalyzeRequest,
    SampleSizeInputs,
    SampleSizeResult,
    MdeRequest,
    MdeResult,
)
from .layout import VersionedLayout, Widget
from .validation import FieldError, ValidationResult
