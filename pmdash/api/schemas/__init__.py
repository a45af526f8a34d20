from .calculators import RiceCompareRequest, MonteCarloRequest, AnalyzeResponse
