# pmdash/services/migrations/layout.py

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from pmdash.schemas.layout import VersionedLayout, Widget
from pmdash.services.migrations.registry import (
    CURRENT_LAYOUT_VERSION,
    LAYOUT_MIGRATIONS,
    now_millis,
    run_migrations,
)

logger = logging.getLogger("pmdash.services.migrations")


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def is_versioned_layout(data: Any) -> bool:
    return (
        isinstance(data, dict)
        and _int_or_none(data.get("version")) is not None
        and isinstance(data.get("widgets"), list)
    )


def detect_layout_version(data: Any) -> int:
    """Version tag of a stored layout; untagged data is version 0."""
    if isinstance(data, dict):
        version = _int_or_none(data.get("version"))
        if version is not None and version >= 0:
            return version
    return 0


def extract_widgets(data: Any) -> List[Widget]:
    """Widgets from a versioned layout, a legacy bare list, or anything else (empty)."""
    if isinstance(data, VersionedLayout):
        return data.widgets
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("widgets"), list):
        return data["widgets"]
    return []


def prepare_layout_for_storage(widgets: Sequence[Widget]) -> VersionedLayout:
    return VersionedLayout(version=CURRENT_LAYOUT_VERSION, widgets=list(widgets))


def _to_layout(data: Any, version: int) -> VersionedLayout:
    raw = extract_widgets(data)
    widgets = [w for w in raw if isinstance(w, dict)]
    dropped = len(raw) - len(widgets)
    if dropped:
        logger.warning("migration.widgets_dropped", extra={"count": dropped, "reason": "entry is not an object"})
    migrated_at = _int_or_none(data.get("migratedAt")) if isinstance(data, dict) else None
    return VersionedLayout(version=version, widgets=widgets, migrated_at=migrated_at)


def migrate_layout(data: Any, now_ms: Optional[int] = None) -> VersionedLayout:
    """Bring a stored dashboard layout up to the current version.

    Never raises: empty or unreadable data yields an empty current-version
    layout.
    """
    if not data:
        return VersionedLayout(version=CURRENT_LAYOUT_VERSION)

    version = detect_layout_version(data)

    if version >= CURRENT_LAYOUT_VERSION and is_versioned_layout(data):
        if version > CURRENT_LAYOUT_VERSION:
            logger.warning(
                "migration.future_version",
                extra={"reason": "layout", "from_version": version, "to_version": CURRENT_LAYOUT_VERSION},
            )
        return _to_layout(data, version)

    migrated = run_migrations(
        LAYOUT_MIGRATIONS, data, version, CURRENT_LAYOUT_VERSION, kind="layout", now_ms=now_ms
    )
    if migrated is None:
        return VersionedLayout(
            version=CURRENT_LAYOUT_VERSION,
            migrated_at=now_millis() if now_ms is None else now_ms,
        )
    return _to_layout(migrated, CURRENT_LAYOUT_VERSION)


def ensure_required_properties(widgets: Sequence[Widget]) -> List[Widget]:
    """Default ``visible`` to True and ``settings`` to {}; drop empty titles."""
    repaired: List[Widget] = []
    for widget in widgets:
        fixed = {**widget}
        if fixed.get("visible") is None:
            fixed["visible"] = True
        fixed["settings"] = fixed.get("settings") or {}
        if not fixed.get("title"):
            fixed.pop("title", None)
        repaired.append(fixed)
    return repaired


def fix_invalid_positions(widgets: Sequence[Widget]) -> List[Widget]:
    """Clamp grid coordinates to be non-negative."""
    repaired: List[Widget] = []
    for widget in widgets:
        position = widget.get("position") if isinstance(widget.get("position"), dict) else {}
        x = position.get("x", 0)
        y = position.get("y", 0)
        x = x if isinstance(x, (int, float)) and not isinstance(x, bool) else 0
        y = y if isinstance(y, (int, float)) and not isinstance(y, bool) else 0
        repaired.append({**widget, "position": {**position, "x": max(0, x), "y": max(0, y)}})
    return repaired


def remove_duplicates(widgets: Sequence[Widget]) -> List[Widget]:
    """Keep the first widget for each id."""
    seen = set()
    unique: List[Widget] = []
    for widget in widgets:
        widget_id = widget.get("id")
        if widget_id in seen:
            logger.warning("migration.duplicate_widget", extra={"reason": f"duplicate widget id {widget_id}"})
            continue
        seen.add(widget_id)
        unique.append(widget)
    return unique


__all__ = [
    "is_versioned_layout",
    "detect_layout_version",
    "extract_widgets",
    "prepare_layout_for_storage",
    "migrate_layout",
    "ensure_required_properties",
    "fix_invalid_positions",
    "remove_duplicates",
]
