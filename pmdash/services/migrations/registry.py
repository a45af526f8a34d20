# pmdash/services/migrations/registry.py
"""
Registry of schema migrations for persisted dashboard data.

Tables are keyed by the version being migrated FROM. Adding a schema change
means bumping the CURRENT_* constant and registering one more step; the
runner needs no changes.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from pmdash.services.migrations.steps import layout_v0_to_v1, rice_v1_to_v2

logger = logging.getLogger("pmdash.services.migrations")

CURRENT_LAYOUT_VERSION = 1

# Version 1: raw reach counts, 0.25-3 impact, person-month effort
# Version 2: 1-10 scale for reach, impact and effort
CURRENT_RICE_VERSION = 2
BASE_RICE_VERSION = 1


@dataclass(frozen=True)
class MigrationStep:
    from_version: int
    to_version: int
    description: str
    apply: Callable[[Any, int], Any]


LAYOUT_MIGRATIONS: Mapping[int, MigrationStep] = MappingProxyType({
    0: MigrationStep(
        from_version=0,
        to_version=1,
        description="Wrap untagged widget list in a versioned envelope",
        apply=layout_v0_to_v1,
    ),
})

RICE_MIGRATIONS: Mapping[int, MigrationStep] = MappingProxyType({
    1: MigrationStep(
        from_version=1,
        to_version=2,
        description="Rescale reach/impact/effort to 1-10 and recompute scores",
        apply=rice_v1_to_v2,
    ),
})


def now_millis() -> int:
    return int(time.time() * 1000)


def run_migrations(
    table: Mapping[int, MigrationStep],
    data: Any,
    from_version: int,
    to_version: int,
    kind: str,
    now_ms: Optional[int] = None,
) -> Any:
    """Apply registered steps sequentially from ``from_version`` up to ``to_version``.

    A version with no registered step is skipped (data passes through) and
    logged as ``migration.step_missing``. A step that raises is logged and
    the run returns None so the caller can fall back to its default.
    """
    stamp = now_millis() if now_ms is None else now_ms
    for version in range(from_version, to_version):
        step = table.get(version)
        if step is None:
            logger.warning(
                "migration.step_missing",
                extra={"reason": kind, "from_version": version, "to_version": version + 1},
            )
            continue

        logger.info(
            "migration.step",
            extra={"reason": kind, "from_version": step.from_version, "to_version": step.to_version},
        )
        try:
            data = step.apply(data, stamp)
        except Exception:
            logger.exception(
                "migration.step_failed",
                extra={"reason": kind, "from_version": step.from_version, "to_version": step.to_version},
            )
            return None
    return data


__all__ = [
    "CURRENT_LAYOUT_VERSION",
    "CURRENT_RICE_VERSION",
    "BASE_RICE_VERSION",
    "MigrationStep",
    "LAYOUT_MIGRATIONS",
    "RICE_MIGRATIONS",
    "now_millis",
    "run_migrations",
]
