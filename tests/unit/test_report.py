"""Unit tests for smoke.report console formatting and JSON report."""

from __future__ import annotations

import orjson

from smoke.health import Outcome, ResultAggregator
from smoke.report import (
    GREEN,
    RESET,
    Painter,
    build_json_report,
    format_outcome,
    print_results,
    print_summary,
    write_json_report,
)

PLAIN = Painter(enabled=False)


def _results() -> ResultAggregator:
    results = ResultAggregator()
    results.record(Outcome.passed("backup", "Velero Server: 1 running"))
    results.record(Outcome.warning("backup", "No backup schedules configured"))
    results.record(Outcome.failed("custom", "Widget", detail="CRD widgets.example.com not found"))
    results.record(Outcome.passed("cluster", "Nodes ready: 3"))
    return results


def test_painter_wraps_only_when_enabled():
    assert Painter()("ok", GREEN) == f"{GREEN}ok{RESET}"
    assert PLAIN("ok", GREEN) == "ok"


def test_format_outcome_markers():
    assert format_outcome(Outcome.passed("cluster", "Nodes ready: 3"), PLAIN) == "  ✓ Nodes ready: 3"
    assert format_outcome(Outcome.warning("cluster", "Nodes not ready: 1"), PLAIN) == "  ⚠ Nodes not ready: 1"
    failed = format_outcome(Outcome.failed("addons", "VPA CRD", detail="CRD missing"), PLAIN)
    assert failed.splitlines() == ["  ✗ VPA CRD", "      CRD missing"]


def test_print_results_uses_declared_order(capsys):
    print_results(_results(), [("cluster", "EKS CLUSTER HEALTH"), ("backup", "BACKUP AND RECOVERY")], PLAIN)
    out = capsys.readouterr().out
    assert out.index("EKS CLUSTER HEALTH") < out.index("BACKUP AND RECOVERY") < out.index("CUSTOM")
    assert "      CRD widgets.example.com not found" in out


def test_print_summary_counts(capsys):
    print_summary(_results().summary(), PLAIN)
    out = capsys.readouterr().out
    assert "✓ Passed:   2" in out
    assert "✗ Failed:   1" in out
    assert "⚠ Warnings: 1" in out
    assert "Total:     4" in out
    assert "✗ Some checks failed. Review output above." in out


def test_build_json_report():
    report = build_json_report(_results(), "staging")
    assert report["profile"] == "staging"
    assert report["summary"] == {
        "passed": 2,
        "failed": 1,
        "warnings": 1,
        "total": 4,
        "overall_failed": True,
    }
    assert report["outcomes"][2] == {
        "stage": "custom",
        "section": None,
        "label": "Widget",
        "severity": "fail",
        "detail": "CRD widgets.example.com not found",
    }


def test_write_json_report_creates_parents(tmp_path):
    path = write_json_report(tmp_path / "build" / "smoke.json", _results(), "eks")
    assert path.exists()
    assert orjson.loads(path.read_bytes())["summary"]["total"] == 4


def test_print_results_announces_each_section_once(capsys):
    results = ResultAggregator()
    checks = results.section("Velero")
    checks.record(Outcome.passed("backup", "Velero Server: 1 running"))
    checks.record(Outcome.warning("backup", "No backup schedules configured"))
    results.section("Snapshots").record(Outcome.passed("backup", "Backups: 3 total"))

    print_results(results, [("backup", "BACKUP AND RECOVERY")], PLAIN)
    lines = capsys.readouterr().out.splitlines()
    assert lines.count("▶ Velero") == 1
    assert lines.count("▶ Snapshots") == 1
    assert lines.index("▶ Velero") < lines.index("  ✓ Velero Server: 1 running")
    assert lines.index("  ⚠ No backup schedules configured") < lines.index("▶ Snapshots")


def test_outcomes_without_section_print_no_marker(capsys):
    print_results(_results(), [("cluster", "EKS CLUSTER HEALTH")], PLAIN)
    assert "▶" not in capsys.readouterr().out
