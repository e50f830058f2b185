"""
smoke/health/addons.py — Add-on CRD registration and controller pods.

Every add-on listed in the profile is required: a missing CRD or a controller
with no Running pod fails the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.health import ResultAggregator
from smoke.health.probes import check_crd_exists, check_workload_running

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import DeploymentProfile

STAGE = "addons"
TITLE = "CORE ADDONS"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    crds = results.section("CRDs Installed")
    for crd in profile.addons.crds:
        crds.record(check_crd_exists(cluster, STAGE, crd.name, crd.display))

    deployments = results.section("Addon Deployments")
    for addon in profile.addons.workloads:
        deployments.record(
            check_workload_running(cluster, STAGE, addon.namespace, addon.selector, addon.name)
        )
