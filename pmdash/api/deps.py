# pmdash/api/deps.py

from __future__ import annotations

from fastapi import Header, HTTPException

from pmdash.config import settings


def require_shared_secret(x_pmdash_secret: str | None = Header(default=None)) -> None:
    """
    Shared secret header sent by the dashboard extension.
    Header name: X-PMDASH-SECRET
    """
    expected = settings.PMDASH_SECRET
    if not expected:
        # Secret not configured: fail closed
        raise HTTPException(status_code=500, detail="PMDASH_SECRET is not configured")

    if not x_pmdash_secret or x_pmdash_secret != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")
