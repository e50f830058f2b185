"""
smoke/report.py — Human-readable console report and optional JSON report.

The orchestrator hands over outcomes in execution order; this module only
decides how they look.
"""

from __future__ import annotations

import pathlib
from datetime import UTC, datetime
from typing import Iterable

import orjson

from smoke.health import Outcome, ResultAggregator, Severity, Verdict

RESET = "\033[0m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
CYAN = "\033[36m"

MARKERS = {
    Severity.PASS: ("✓", GREEN),
    Severity.FAIL: ("✗", RED),
    Severity.WARNING: ("⚠", YELLOW),
}
RULE = "━" * 64


class Painter:
    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def __call__(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.enabled else text


def format_outcome(outcome: Outcome, paint: Painter) -> str:
    marker, color = MARKERS[outcome.severity]
    line = f"  {paint(marker, color)} {outcome.label}"
    if outcome.detail and outcome.severity is not Severity.PASS:
        line += f"\n      {outcome.detail}"
    return line


def print_banner(paint: Painter) -> None:
    print(paint("╔═══════════════════════════════════════════════════════════════╗", CYAN))
    print(paint("║           EKS SMOKE TEST - Infrastructure Validation          ║", CYAN))
    print(paint("╚═══════════════════════════════════════════════════════════════╝", CYAN))


def print_header(title: str, paint: Painter) -> None:
    print()
    print(paint(RULE, BLUE))
    print(paint(f"  {title}", BLUE))
    print(paint(RULE, BLUE))


def print_section(name: str, paint: Painter) -> None:
    print()
    print(paint(f"▶ {name}", YELLOW))


def print_stage(title: str, outcomes: list[Outcome], paint: Painter) -> None:
    """Header, then outcomes with a ▶ line wherever the section changes."""
    print_header(title, paint)
    current = None
    for outcome in outcomes:
        if outcome.section and outcome.section != current:
            print_section(outcome.section, paint)
        current = outcome.section
        print(format_outcome(outcome, paint))


def print_results(
    results: ResultAggregator,
    titles: Iterable[tuple[str, str]],
    paint: Painter,
) -> None:
    """Print outcomes grouped by stage, stages in the given (declared) order.

    Stages that recorded outcomes but are not in titles are printed last
    under their stage id.
    """
    grouped = results.by_stage()
    seen = set()
    for stage, title in titles:
        seen.add(stage)
        if stage in grouped:
            print_stage(title, grouped[stage], paint)
    for stage, outcomes in grouped.items():
        if stage not in seen:
            print_stage(stage.upper(), outcomes, paint)


def print_summary(verdict: Verdict, paint: Painter) -> None:
    print_header("TEST SUMMARY", paint)
    print()
    print(f"  {paint('✓ Passed:', GREEN)}   {verdict.passed}")
    print(f"  {paint('✗ Failed:', RED)}   {verdict.failed}")
    print(f"  {paint('⚠ Warnings:', YELLOW)} {verdict.warnings}")
    print("  ─────────────────")
    print(f"  Total:     {verdict.total}")
    print()
    if verdict.overall_failed:
        print(paint("✗ Some checks failed. Review output above.", RED))
    else:
        print(paint("✓ All critical checks passed!", GREEN))
    print()


def build_json_report(results: ResultAggregator, profile_name: str) -> dict:
    verdict = results.summary()
    return {
        "generated_at": datetime.now(tz=UTC).isoformat(),
        "profile": profile_name,
        "summary": {
            "passed": verdict.passed,
            "failed": verdict.failed,
            "warnings": verdict.warnings,
            "total": verdict.total,
            "overall_failed": verdict.overall_failed,
        },
        "outcomes": [
            {
                "stage": o.stage,
                "section": o.section,
                "label": o.label,
                "severity": o.severity.value,
                "detail": o.detail,
            }
            for o in results.outcomes
        ],
    }


def write_json_report(path: str | pathlib.Path, results: ResultAggregator, profile_name: str) -> pathlib.Path:
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(orjson.dumps(build_json_report(results, profile_name), option=orjson.OPT_INDENT_2))
    return path
