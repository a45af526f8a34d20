# test_scripts/test_migrations.py

from __future__ import annotations

import json
import logging

import pytest

from pmdash.schemas.layout import VersionedLayout
from pmdash.services.migrations import (
    CURRENT_LAYOUT_VERSION,
    CURRENT_RICE_VERSION,
    MigrationStep,
    ensure_required_properties,
    extract_widgets,
    fix_invalid_positions,
    is_versioned_layout,
    map_effort_to_new_scale,
    map_impact_to_new_scale,
    map_reach_to_new_scale,
    migrate_layout,
    migrate_rice_scores,
    prepare_layout_for_storage,
    remove_duplicates,
    run_migrations,
)
from pmdash.services.migrations.steps import rice_v1_to_v2

NOW = 1_700_000_000_000

LEGACY_RICE = {
    "id": "rice-1",
    "name": "Bulk export",
    "reach": 5000,
    "impact": 1,
    "confidence": 80,
    "effort": 1,
    "score": 4000,
    "savedAt": "2024-03-01T12:00:00Z",
}


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("empty", [None, [], {}, ""])
def test_empty_layout_becomes_current_version(empty):
    layout = migrate_layout(empty, now_ms=NOW)
    assert layout.version == CURRENT_LAYOUT_VERSION
    assert layout.widgets == []


def test_bare_array_is_wrapped_unchanged():
    widgets = [dict(LEGACY_RICE), {"id": "w2", "type": "roi"}]
    layout = migrate_layout(widgets, now_ms=NOW)
    assert layout.version == 1
    assert layout.widgets == widgets
    assert layout.migrated_at == NOW
    assert layout.to_json_dict() == {"version": 1, "widgets": widgets, "migratedAt": NOW}


def test_untagged_widget_object_is_wrapped():
    layout = migrate_layout({"widgets": [{"id": "w1"}]}, now_ms=NOW)
    assert layout.version == 1
    assert layout.widgets == [{"id": "w1"}]


def test_current_layout_passes_through():
    stored = {"version": 1, "widgets": [{"id": "w1", "position": {"x": 1, "y": 2}}], "migratedAt": 42}
    layout = migrate_layout(stored, now_ms=NOW)
    assert layout.to_json_dict() == stored


def test_layout_migration_is_idempotent():
    first = migrate_layout([{"id": "w1"}], now_ms=NOW)
    second = migrate_layout(first.to_json_dict(), now_ms=NOW + 1)
    assert second == first


@pytest.mark.parametrize("junk", ["not a layout", 42, {"widgets": "nope"}, {"version": "1"}])
def test_unrecognised_layout_degrades_to_empty(junk):
    layout = migrate_layout(junk, now_ms=NOW)
    assert layout.version == CURRENT_LAYOUT_VERSION
    assert layout.widgets == []


def test_non_object_widgets_are_dropped():
    layout = migrate_layout([{"id": "w1"}, "stray", 3], now_ms=NOW)
    assert layout.widgets == [{"id": "w1"}]


def test_future_layout_version_is_kept(caplog):
    with caplog.at_level(logging.WARNING, logger="pmdash.services.migrations"):
        layout = migrate_layout({"version": 7, "widgets": [{"id": "w1"}]}, now_ms=NOW)
    assert layout.version == 7
    assert any(r.message == "migration.future_version" for r in caplog.records)


def test_extract_and_prepare_round_trip():
    widgets = [{"id": "a", "type": "rice"}, {"id": "b", "settings": {"k": 1}}]
    stored = prepare_layout_for_storage(widgets)
    assert stored.version == CURRENT_LAYOUT_VERSION
    assert extract_widgets(stored) == widgets
    assert extract_widgets(stored.to_json_dict()) == widgets
    assert extract_widgets(widgets) == widgets
    assert extract_widgets("junk") == []


def test_is_versioned_layout():
    assert is_versioned_layout({"version": 1, "widgets": []}) is True
    assert is_versioned_layout({"widgets": []}) is False
    assert is_versioned_layout({"version": True, "widgets": []}) is False
    assert is_versioned_layout([]) is False


def test_layout_repair_helpers():
    widgets = [
        {"id": "a", "title": "", "position": {"x": -3, "y": 2, "w": 4}},
        {"id": "b", "visible": False, "settings": None},
        {"id": "a", "title": "Duplicate"},
    ]
    repaired = remove_duplicates(fix_invalid_positions(ensure_required_properties(widgets)))
    assert [w["id"] for w in repaired] == ["a", "b"]
    first, second = repaired
    assert "title" not in first
    assert first["visible"] is True
    assert first["settings"] == {}
    assert first["position"] == {"x": 0, "y": 2, "w": 4}
    assert second["visible"] is False
    assert second["position"] == {"x": 0, "y": 0}


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

def test_missing_step_passes_data_through(caplog):
    data = {"payload": 1}
    with caplog.at_level(logging.WARNING, logger="pmdash.services.migrations"):
        result = run_migrations({}, data, 0, 2, kind="test", now_ms=NOW)
    assert result == data
    missing = [r for r in caplog.records if r.message == "migration.step_missing"]
    assert [(r.from_version, r.to_version) for r in missing] == [(0, 1), (1, 2)]


def test_failing_step_returns_none(caplog):
    def boom(data, now_ms):
        raise RuntimeError("broken step")

    table = {0: MigrationStep(from_version=0, to_version=1, description="fails", apply=boom)}
    with caplog.at_level(logging.ERROR, logger="pmdash.services.migrations"):
        assert run_migrations(table, [], 0, 1, kind="test", now_ms=NOW) is None
    assert any(r.message == "migration.step_failed" for r in caplog.records)


def test_steps_run_in_order():
    calls = []

    def step(label):
        def apply(data, now_ms):
            calls.append(label)
            return data + [label]
        return apply

    table = {
        0: MigrationStep(0, 1, "first", step("a")),
        1: MigrationStep(1, 2, "second", step("b")),
    }
    assert run_migrations(table, [], 0, 2, kind="test", now_ms=NOW) == ["a", "b"]
    assert calls == ["a", "b"]


# ---------------------------------------------------------------------------
# RICE scales
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "reach,expected",
    [(0, 1), (10, 1), (11, 2), (50, 2), (100, 3), (500, 4), (1000, 5), (2500, 6),
     (5000, 7), (10000, 8), (50000, 9), (50001, 10)],
)
def test_reach_breakpoints(reach, expected):
    assert map_reach_to_new_scale(reach) == expected


@pytest.mark.parametrize(
    "impact,expected",
    [(0.1, 1), (0.25, 2), (0.3, 2), (0.5, 3), (0.75, 4), (1, 5), (1.5, 6), (2, 7), (2.5, 8), (3, 9), (4, 10)],
)
def test_impact_mapping(impact, expected):
    assert map_impact_to_new_scale(impact) == expected


@pytest.mark.parametrize(
    "effort,expected",
    [(0.1, 1), (0.25, 1), (0.5, 2), (1, 3), (2, 4), (3, 5), (8, 6), (12, 7), (16, 8), (24, 9), (36, 10)],
)
def test_effort_breakpoints(effort, expected):
    assert map_effort_to_new_scale(effort) == expected


# ---------------------------------------------------------------------------
# RICE scores
# ---------------------------------------------------------------------------

def test_legacy_rice_score_is_rescaled_and_recomputed():
    collection = migrate_rice_scores([dict(LEGACY_RICE)], now_ms=NOW)
    assert collection.version == CURRENT_RICE_VERSION
    (score,) = collection.scores
    assert (score.reach, score.impact, score.effort) == (7, 5, 3)
    assert score.confidence == 80
    assert score.score == 9.3  # 7 * 5 * 0.8 / 3
    assert score.migrated_at == NOW
    assert score.name == "Bulk export"
    assert score.saved_at is not None


def test_tagged_version_one_collection_is_migrated():
    collection = migrate_rice_scores({"version": 1, "scores": [dict(LEGACY_RICE)]}, now_ms=NOW)
    assert collection.version == 2
    assert collection.scores[0].reach == 7


def test_rice_migration_is_idempotent():
    first = migrate_rice_scores([dict(LEGACY_RICE)], now_ms=NOW)
    second = migrate_rice_scores(first.to_json_dict(), now_ms=NOW + 1000)
    assert json.dumps(second.to_json_dict(), sort_keys=True) == json.dumps(first.to_json_dict(), sort_keys=True)


def test_rice_step_leaves_current_scale_scores_untouched():
    current = {"id": "x", "reach": 8, "impact": 5, "confidence": 80, "effort": 6, "score": 5.3}
    migrated = rice_v1_to_v2({"scores": [current]}, NOW)
    assert migrated == {"version": 2, "scores": [current]}
    assert rice_v1_to_v2(migrated, NOW) == migrated


def test_unreadable_rice_entries_are_dropped(caplog):
    data = [
        dict(LEGACY_RICE),
        "not an object",
        {"id": "no-confidence", "reach": 5000, "impact": 1, "effort": 1},
        {"id": "too-confident", "reach": 5000, "impact": 1, "effort": 1, "confidence": 150},
    ]
    with caplog.at_level(logging.WARNING, logger="pmdash.services.migrations"):
        collection = migrate_rice_scores(data, now_ms=NOW)
    assert [s.id for s in collection.scores] == ["rice-1"]
    dropped = [r for r in caplog.records if r.message == "migration.rice_score_dropped"]
    assert len(dropped) == 3


@pytest.mark.parametrize("bad_confidence", [float("nan"), float("inf")])
def test_non_finite_confidence_drops_only_that_entry(caplog, bad_confidence):
    data = [dict(LEGACY_RICE), {**LEGACY_RICE, "id": "rice-bad", "confidence": bad_confidence}]
    with caplog.at_level(logging.WARNING, logger="pmdash.services.migrations"):
        collection = migrate_rice_scores(data, now_ms=NOW)
    assert [s.id for s in collection.scores] == ["rice-1"]
    assert collection.scores[0].score == 9.3
    assert not [r for r in caplog.records if r.message == "migration.step_failed"]


def test_non_finite_values_from_json_text_do_not_wipe_history():
    stored = json.loads(
        '[{"id": "ok", "reach": 5000, "impact": 1, "confidence": 80, "effort": 1},'
        ' {"id": "nan", "reach": 5000, "impact": 1, "confidence": NaN, "effort": 1},'
        ' {"id": "current", "reach": 5, "impact": 5, "confidence": Infinity, "effort": 5}]'
    )
    collection = migrate_rice_scores(stored, now_ms=NOW)
    assert [s.id for s in collection.scores] == ["ok"]


def test_current_collection_drops_invalid_entries():
    collection = migrate_rice_scores(
        {"version": 2, "scores": [{"id": "ok", "reach": 1, "impact": 1, "confidence": 50, "effort": 1}, {"id": "bad"}]}
    )
    assert [s.id for s in collection.scores] == ["ok"]


@pytest.mark.parametrize("junk", [None, [], {}, "text", 12])
def test_rice_migration_never_raises(junk):
    collection = migrate_rice_scores(junk, now_ms=NOW)
    assert collection.version == CURRENT_RICE_VERSION
    assert collection.scores == []


def test_versioned_layout_model_accepts_camel_case():
    layout = VersionedLayout.model_validate({"version": 1, "widgets": [], "migratedAt": 5})
    assert layout.migrated_at == 5
