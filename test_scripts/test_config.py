# test_scripts/test_config.py

from __future__ import annotations

import io
import json
import logging

import pytest
from pydantic import ValidationError

from pmdash.config import Settings, setup_json_logging


def test_defaults():
    s = Settings(_env_file=None)
    assert s.IRR_TOLERANCE == 1e-7
    assert s.IRR_MAX_ITERATIONS == 200
    assert s.ABTEST_LONG_DURATION_DAYS == 56
    assert s.ROI_MAX_TIME_HORIZON == 120


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("monte_carlo_iterations", "250")
    monkeypatch.setenv("PMDASH_SECRET", "abc")
    s = Settings(_env_file=None)
    assert s.MONTE_CARLO_ITERATIONS == 250
    assert s.PMDASH_SECRET == "abc"


@pytest.mark.parametrize("value", ["0", "0.001"])
def test_irr_tolerance_is_validated(monkeypatch, value):
    monkeypatch.setenv("IRR_TOLERANCE", value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_json_logging_drops_empty_fields():
    stream = io.StringIO()
    setup_json_logging(logging.INFO, stream=stream)
    logging.getLogger("pmdash.services.roi").warning(
        "roi.irr_not_converged", extra={"calculator": "ROI", "iterations": 200}
    )
    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["message"] == "roi.irr_not_converged"
    assert record["calculator"] == "ROI"
    assert record["iterations"] == 200
    assert "score_id" not in record
    assert "npv" not in record


def test_json_logging_writes_non_finite_numbers_as_strings():
    stream = io.StringIO()
    setup_json_logging(logging.INFO, stream=stream)
    logging.getLogger("pmdash.services.roi").info(
        "roi.computed", extra={"calculator": "ROI", "npv": float("nan"), "total": float("-inf")}
    )
    line = stream.getvalue().strip().splitlines()[-1]
    assert "NaN" not in line and "Infinity" not in line
    record = json.loads(line)
    assert record["npv"] == "nan"
    assert record["total"] == "-inf"
