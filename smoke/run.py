#!/usr/bin/env python3
"""
smoke/run.py — Run every check group against one cluster and derive the exit code.

Groups (executed in this order, each delegating to a module in smoke/health/):
  1. Cluster health         (connectivity, nodes, system pods, Karpenter)
  2. Core add-ons           (CRDs + controller pods)
  3. Security               (secret store, ExternalSecrets, Kyverno, TLS)
  4. Networking             (LB controller, IngressClasses, External DNS)
  5. Backup and recovery    (Velero)
  6. Resource optimization  (Goldilocks, VPAs, Reloader)
  7. Observability          (Metrics Server, CloudWatch, Grafana k8s-monitoring)

Exit status is 1 if any check failed, 0 otherwise. Warnings never fail a run.

Usage:
    eks-smoke-test                        # reads .env from the working directory
    python -m smoke.run --profile staging.yml --json-report build/smoke.json

Importable (used by tests):
    from smoke.run import run_smoke_test
    results = run_smoke_test(cluster)
"""

from __future__ import annotations

import argparse
import logging
import sys
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from pydantic import ValidationError

from config.settings import Settings, load_settings
from smoke.cluster import ClusterQueryPort, connect
from smoke.health import Outcome, ResultAggregator, Verdict
from smoke.health import addons as health_addons
from smoke.health import backup as health_backup
from smoke.health import cluster_health as health_cluster
from smoke.health import networking as health_networking
from smoke.health import observability as health_observability
from smoke.health import optimization as health_optimization
from smoke.health import security as health_security
from smoke.profile import DeploymentProfile, load_profile
from smoke.report import (
    RED,
    Painter,
    print_banner,
    print_results,
    print_summary,
    write_json_report,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckGroup:
    stage: str
    title: str
    run_checks: Callable[[ClusterQueryPort, DeploymentProfile, ResultAggregator], None]


CHECK_GROUPS: tuple[CheckGroup, ...] = tuple(
    CheckGroup(module.STAGE, module.TITLE, module.run_checks)
    for module in (
        health_cluster,
        health_addons,
        health_security,
        health_networking,
        health_backup,
        health_optimization,
        health_observability,
    )
)


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class SmokeTestRun:
    """One pass over every check group: IDLE → RUNNING → DONE.

    Groups share only the read-only cluster port and the aggregator, so an
    executor may run them concurrently. Without one they run in order on the
    calling thread.
    """

    def __init__(
        self,
        cluster: ClusterQueryPort,
        profile: Optional[DeploymentProfile] = None,
        groups: Sequence[CheckGroup] = CHECK_GROUPS,
        executor: Optional[Executor] = None,
    ) -> None:
        self.cluster = cluster
        self.profile = profile if profile is not None else DeploymentProfile()
        self.groups = tuple(groups)
        self.executor = executor
        self.results = ResultAggregator()
        self.state = RunState.IDLE

    def start(self) -> Verdict:
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"run already {self.state.value}; create a new SmokeTestRun")
        self.state = RunState.RUNNING

        if self.executor is None:
            for group in self.groups:
                self._run_group(group)
        else:
            futures = [self.executor.submit(self._run_group, group) for group in self.groups]
            for future in futures:
                future.result()

        self.state = RunState.DONE
        return self.verdict

    @property
    def verdict(self) -> Verdict:
        if self.state is not RunState.DONE:
            raise RuntimeError("verdict is only available once the run is done")
        return self.results.summary()

    @property
    def exit_code(self) -> int:
        return self.verdict.exit_code

    def _run_group(self, group: CheckGroup) -> None:
        logger.info("running check group %s", group.stage)
        try:
            group.run_checks(self.cluster, self.profile, self.results)
        except Exception as exc:  # noqa: BLE001
            # Probes convert query errors themselves; this only catches bugs
            # and malformed data so the remaining groups still run.
            logger.error("check group %s aborted: %s", group.stage, exc)
            logger.debug("check group %s traceback", group.stage, exc_info=True)
            self.results.record(
                Outcome.failed(group.stage, f"{group.title} (unexpected error)", detail=str(exc))
            )
        recorded = sum(1 for o in self.results.outcomes if o.stage == group.stage)
        logger.info("check group %s recorded %d outcome(s)", group.stage, recorded)


def run_smoke_test(
    cluster: ClusterQueryPort,
    profile: Optional[DeploymentProfile] = None,
    executor: Optional[Executor] = None,
) -> ResultAggregator:
    """Run all check groups and return the populated aggregator."""
    run = SmokeTestRun(cluster, profile, executor=executor)
    run.start()
    return run.results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eks-smoke-test",
        description="Read-only smoke test of an EKS platform deployment",
    )
    parser.add_argument("--env-file", default=".env", help="env file to read settings from")
    parser.add_argument("--profile", help="deployment profile YAML (default: built-in EKS profile)")
    parser.add_argument("--json-report", help="also write a JSON report to this path")
    parser.add_argument("--max-workers", type=int, help="run check groups on N threads")
    parser.add_argument("--no-color", action="store_true", help="disable ANSI colors")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    return parser


def _apply_overrides(cfg: Settings, args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.profile:
        overrides["SMOKE_PROFILE"] = args.profile
    if args.json_report:
        overrides["SMOKE_REPORT_PATH"] = args.json_report
    if args.max_workers is not None:
        overrides["SMOKE_MAX_WORKERS"] = args.max_workers
    if args.no_color:
        overrides["SMOKE_COLOR"] = False
    if args.verbose:
        overrides["SMOKE_LOG_LEVEL"] = "DEBUG"
    if not overrides:
        return cfg
    return Settings(**{**cfg.model_dump(), **overrides})


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = _apply_overrides(load_settings(args.env_file), args)
    except ValidationError as exc:
        print(f"ERROR: invalid configuration\n{exc}")
        return 1

    logging.basicConfig(
        level=cfg.SMOKE_LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        profile = load_profile(cfg.SMOKE_PROFILE)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: could not load deployment profile\n{exc}")
        return 1

    paint = Painter(cfg.SMOKE_COLOR)
    print_banner(paint)

    try:
        cluster = connect(cfg)
    except Exception as exc:  # noqa: BLE001
        print(paint(f"✗ Failed to initialize: {exc}", RED))
        return 1

    if cfg.parallel:
        with ThreadPoolExecutor(max_workers=cfg.SMOKE_MAX_WORKERS) as pool:
            run = SmokeTestRun(cluster, profile, executor=pool)
            verdict = run.start()
    else:
        run = SmokeTestRun(cluster, profile)
        verdict = run.start()

    print_results(run.results, [(g.stage, g.title) for g in run.groups], paint)
    print_summary(verdict, paint)

    if cfg.SMOKE_REPORT_PATH:
        try:
            path = write_json_report(cfg.SMOKE_REPORT_PATH, run.results, profile.name)
        except OSError as exc:
            print(f"ERROR: could not write JSON report\n{exc}")
        else:
            print(f"  JSON report written to {path}")

    return verdict.exit_code


if __name__ == "__main__":
    sys.exit(main())
