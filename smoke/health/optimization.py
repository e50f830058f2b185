"""
smoke/health/optimization.py — Goldilocks VPA recommendations and Reloader.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.cluster import ClusterQueryError
from smoke.health import Outcome, ResultAggregator
from smoke.health.probes import check_crd_exists, check_workload_running, list_versioned

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import DeploymentProfile, OptimizationSection

STAGE = "optimization"
TITLE = "RESOURCE OPTIMIZATION"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    section = profile.optimization

    rightsizing = results.section("Goldilocks (VPA Recommendations)")
    goldilocks = section.goldilocks
    rightsizing.record(
        check_workload_running(cluster, STAGE, goldilocks.namespace, goldilocks.selector, goldilocks.name)
    )
    rightsizing.record(check_crd_exists(cluster, STAGE, section.vpa_crd.name, section.vpa_crd.display))
    rightsizing.record(_check_vpas(cluster, section))
    rightsizing.record(_check_dashboard_service(cluster, section))

    reloader = section.reloader
    results.section("Reloader (ConfigMap/Secret Watcher)").record(
        check_workload_running(cluster, STAGE, reloader.namespace, reloader.selector, reloader.name)
    )


def _check_vpas(cluster: ClusterQueryPort, section: OptimizationSection) -> Outcome:
    found = list_versioned(cluster, section.vpas.spec)
    if found is None:
        return Outcome.warning(STAGE, "Could not list VPAs")
    if not found.items:
        return Outcome.warning(STAGE, "No VPAs configured (Goldilocks may create them automatically)")
    return Outcome.passed(STAGE, f"VPAs configured: {len(found.items)}")


def _check_dashboard_service(cluster: ClusterQueryPort, section: OptimizationSection) -> Outcome:
    ref = section.dashboard_service
    try:
        cluster.get_service(ref.namespace, ref.name)
    except ClusterQueryError as exc:
        return Outcome.warning(STAGE, "Goldilocks dashboard service not found", detail=str(exc))
    return Outcome.passed(STAGE, "Goldilocks dashboard service exists")
