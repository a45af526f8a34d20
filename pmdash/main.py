# pmdash/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI

from pmdash.config import setup_json_logging, settings
from pmdash.api.routes.calculators import router as calculators_router
from pmdash.api.routes.migrations import router as migrations_router
from pmdash.services.migrations import CURRENT_LAYOUT_VERSION, CURRENT_RICE_VERSION


def create_app() -> FastAPI:
    setup_json_logging(log_level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO))

    app = FastAPI(
        title="PM DASHBOARD - Calculator API",
        description="RICE, market sizing, ROI and A/B test calculators, plus stored-data migrations.",
        version="0.1.0",
    )

    app.include_router(calculators_router)
    app.include_router(migrations_router)

    @app.get("/health")
    def health():
        # Clients compare these with the version tag of what they have stored.
        return {
            "ok": True,
            "layoutVersion": CURRENT_LAYOUT_VERSION,
            "riceVersion": CURRENT_RICE_VERSION,
        }

    return app


app = create_app()
