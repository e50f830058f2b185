"""
smoke/health — Composable cluster health check groups for eks-smoke-test.

Each group module exposes a run_checks(cluster, profile, results) function
that records Outcome objects into a shared ResultAggregator. smoke.run
executes every group and derives the exit code from the aggregate.

Usage:
    from smoke.health import Outcome, ResultAggregator, Severity
    from smoke.health.cluster_health import run_checks as cluster_checks
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable


class Severity(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


@dataclass(frozen=True)
class Outcome:
    stage: str
    label: str
    severity: Severity
    detail: str | None = None
    # subsection heading within the stage, e.g. "Velero"
    section: str | None = None

    @classmethod
    def passed(cls, stage: str, label: str, detail: str | None = None) -> Outcome:
        return cls(stage, label, Severity.PASS, detail)

    @classmethod
    def warning(cls, stage: str, label: str, detail: str | None = None) -> Outcome:
        return cls(stage, label, Severity.WARNING, detail)

    @classmethod
    def failed(cls, stage: str, label: str, detail: str | None = None) -> Outcome:
        return cls(stage, label, Severity.FAIL, detail)

    def __str__(self) -> str:
        line = f"  [{self.severity.value.upper()}] {self.label}"
        if self.detail and self.severity is not Severity.PASS:
            line += f"\n         {self.detail}"
        return line


@dataclass(frozen=True)
class Verdict:
    passed: int
    failed: int
    warnings: int

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.warnings

    @property
    def overall_failed(self) -> bool:
        return self.failed > 0

    @property
    def exit_code(self) -> int:
        # Warnings never change the exit status.
        return 1 if self.overall_failed else 0


class ResultAggregator:
    """Append-only record of every outcome in one run.

    record() is serialized with a lock so check groups may share one
    aggregator across worker threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: list[Outcome] = []
        self._counts = {severity: 0 for severity in Severity}

    def record(self, outcome: Outcome) -> Outcome:
        with self._lock:
            self._outcomes.append(outcome)
            self._counts[outcome.severity] += 1
        return outcome

    def extend(self, outcomes: Iterable[Outcome]) -> None:
        for outcome in outcomes:
            self.record(outcome)

    def section(self, name: str) -> SectionRecorder:
        return SectionRecorder(self, name)

    @property
    def outcomes(self) -> tuple[Outcome, ...]:
        with self._lock:
            return tuple(self._outcomes)

    def count(self, severity: Severity) -> int:
        with self._lock:
            return self._counts[severity]

    def by_stage(self) -> dict[str, list[Outcome]]:
        """Outcomes grouped by stage, stages in first-recorded order."""
        grouped: dict[str, list[Outcome]] = {}
        for outcome in self.outcomes:
            grouped.setdefault(outcome.stage, []).append(outcome)
        return grouped

    def summary(self) -> Verdict:
        with self._lock:
            return Verdict(
                passed=self._counts[Severity.PASS],
                failed=self._counts[Severity.FAIL],
                warnings=self._counts[Severity.WARNING],
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)


class SectionRecorder:
    """Records into an aggregator, tagging each outcome with a section name."""

    def __init__(self, results: ResultAggregator, name: str) -> None:
        self._results = results
        self.name = name

    def record(self, outcome: Outcome) -> Outcome:
        return self._results.record(replace(outcome, section=self.name))

    def extend(self, outcomes: Iterable[Outcome]) -> None:
        for outcome in outcomes:
            self.record(outcome)
