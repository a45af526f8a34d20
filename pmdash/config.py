# pmdash/config.py

import logging
import math
import sys

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from pythonjsonlogger.json import JsonFormatter

load_dotenv()

class CustomJsonFormatter(JsonFormatter):
    """JSON formatter for calculator logs.

    Drops fields whose value is None and writes non-finite numbers (an
    undefined NPV, a NaN read from stored data) as strings, so every line
    stays strict JSON.
    """

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        for key, value in list(log_record.items()):
            if value is None:
                del log_record[key]
            elif isinstance(value, float) and not math.isfinite(value):
                log_record[key] = str(value)

def setup_json_logging(log_level: int = logging.INFO, stream=None) -> None:
    """Initialize JSON logging configuration for the calculators.

    Logs go to stdout unless another stream is given (the CLI keeps stdout
    for its JSON output and logs to stderr).
    """
    handler = logging.StreamHandler(stream or sys.stdout)

    # JSON formatter with common fields used across the calculators
    formatter = CustomJsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s "
        "%(calculator)s %(score_id)s %(count)s %(total)s "
        "%(warning)s %(reason)s %(from_version)s %(to_version)s "
        "%(iterations)s %(irr_status)s %(npv)s %(sample_size)s"
    )

    handler.setFormatter(formatter)

    root_logger = logging.getLogger("pmdash")
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers = []

    root_logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    root_logger.propagate = False


class Settings(BaseSettings):
    # App
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    PMDASH_SECRET: str = ""

    # ROI: IRR root finding (monthly rate)
    IRR_TOLERANCE: float = 1e-7
    IRR_MAX_ITERATIONS: int = 200
    IRR_INITIAL_GUESS: float = 0.1 / 12
    # Bracket used when Newton-Raphson fails and we fall back to Brent's method
    IRR_LOWER_BOUND: float = -0.99
    IRR_UPPER_BOUND: float = 10.0

    # ROI input limits (form-level validation)
    ROI_MAX_TIME_HORIZON: int = 120  # months
    ROI_MAX_DISCOUNT_RATE: float = 50.0  # annual %

    # ROI uncertainty analysis
    MONTE_CARLO_ITERATIONS: int = 1000
    MONTE_CARLO_UNCERTAINTY: float = 0.2  # +/- 20% variation

    # A/B testing advisories
    ABTEST_LONG_DURATION_DAYS: int = 56  # 8 weeks
    ABTEST_LOW_POWER_THRESHOLD: float = 0.8

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("IRR_TOLERANCE")
    @classmethod
    def validate_irr_tolerance(cls, v: float) -> float:
        # 0.01% of an annual rate is roughly 8e-6 on the monthly rate
        if v <= 0 or v > 1e-5:
            raise ValueError("IRR_TOLERANCE must be in (0, 1e-5]")
        return v

    @field_validator("IRR_MAX_ITERATIONS", "MONTE_CARLO_ITERATIONS")
    @classmethod
    def validate_positive_iterations(cls, v: int) -> int:
        if v < 1:
            raise ValueError("iteration counts must be at least 1")
        return v


settings = Settings()
