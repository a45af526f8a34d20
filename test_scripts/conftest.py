# test_scripts/conftest.py
from __future__ import annotations

import logging

import pytest

from pmdash.config import settings


@pytest.fixture(autouse=True)
def pmdash_logs_propagate(monkeypatch) -> None:
    """Let caplog see pmdash.* records even after an app or CLI installed JSON logging."""
    root = logging.getLogger("pmdash")
    monkeypatch.setattr(root, "propagate", True)
    monkeypatch.setattr(root, "handlers", [])


@pytest.fixture
def shared_secret(monkeypatch) -> str:
    secret = "test-secret"
    monkeypatch.setattr(settings, "PMDASH_SECRET", secret)
    return secret
