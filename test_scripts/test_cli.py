# test_scripts/test_cli.py

from __future__ import annotations

import io
import json

import pytest

from pmdash import cli


def _run(capsys, argv, stdin=None, monkeypatch=None):
    if stdin is not None:
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(stdin)))
    code = cli.main(argv)
    out = capsys.readouterr().out
    return code, (json.loads(out) if out.strip() else None)


def test_rice_command(capsys):
    code, out = _run(capsys, ["rice", "--reach", "1000", "--impact", "2", "--confidence", "80", "--effort", "3"])
    assert code == 0
    assert out["score"] == 533.3
    assert out["category"]["label"] == "Must Do"


def test_rice_command_invalid_confidence(capsys):
    code, out = _run(capsys, ["rice", "--reach", "100", "--impact", "1", "--confidence", "150", "--effort", "1"])
    assert code == 1
    assert out is None


def test_top_down_command_with_formatting(capsys):
    code, out = _run(capsys, ["top-down", "--tam", "1000000", "--sam", "20", "--som", "10", "--format"])
    assert code == 0
    assert out["sam"] == pytest.approx(200_000)
    assert out["formatted"] == {"tam": "$1.0M", "sam": "$200.0K", "som": "$20.0K"}


def test_roi_command_reads_file(capsys, tmp_path):
    path = tmp_path / "calc.json"
    path.write_text(
        json.dumps(
            {
                "name": "Onboarding",
                "initialCost": 1200,
                "benefits": [{"amount": 200, "months": 12, "isRecurring": True}],
                "timeHorizon": 12,
            }
        ),
        encoding="utf-8",
    )
    code, out = _run(capsys, ["roi", "--input", str(path)])
    assert code == 0
    assert out["metrics"]["paidBack"] is True
    assert out["metrics"]["paybackPeriod"] == pytest.approx(6.0)


def test_migrate_layout_from_stdin(capsys, monkeypatch):
    code, out = _run(capsys, ["migrate-layout"], stdin=[{"id": "w1"}], monkeypatch=monkeypatch)
    assert code == 0
    assert out["version"] == 1
    assert out["widgets"] == [{"id": "w1"}]


def test_migrate_rice_from_stdin(capsys, monkeypatch):
    legacy = [{"id": "r1", "reach": 5000, "impact": 1, "confidence": 80, "effort": 1}]
    code, out = _run(capsys, ["migrate-rice"], stdin=legacy, monkeypatch=monkeypatch)
    assert code == 0
    assert out["version"] == 2
    assert out["scores"][0]["score"] == 9.3


def test_sample_size_and_mde(capsys, monkeypatch):
    body = {"metric": {"baseline": 10}, "effect": {"value": 20}, "traffic": {"daily": 1000}}
    code, out = _run(capsys, ["sample-size"], stdin=body, monkeypatch=monkeypatch)
    assert code == 0
    assert out["total"] == 7678

    code, out = _run(capsys, ["mde", "--sample-size", "3839", "--baseline", "0.1"])
    assert code == 0
    assert out["mde"] == pytest.approx(0.02, abs=5e-4)


def test_analyze_command(capsys, monkeypatch):
    body = {"variations": [{"id": "A", "visitors": 1000, "conversions": 100}, {"id": "B", "visitors": 1000, "conversions": 150}]}
    code, out = _run(capsys, ["analyze"], stdin=body, monkeypatch=monkeypatch)
    assert code == 0
    assert out[0]["winner"] == "B"


def test_malformed_json_is_an_input_error(capsys, monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("{not json"))
    assert cli.main(["roi"]) == 1


def test_unknown_command_is_a_usage_error():
    with pytest.raises(SystemExit) as exc:
        cli.main(["nope"])
    assert exc.value.code == 2
