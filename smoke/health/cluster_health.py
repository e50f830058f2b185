"""
smoke/health/cluster_health.py — API connectivity, node readiness, system pods
and Karpenter autoscaling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.cluster import ClusterQueryError
from smoke.health import Outcome, ResultAggregator
from smoke.health.probes import (
    check_crd_exists,
    check_resources_configured,
    check_workload_running,
    find_condition,
)

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import DeploymentProfile

STAGE = "cluster"
TITLE = "EKS CLUSTER HEALTH"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    section = profile.cluster

    results.section("Cluster Connectivity").record(_check_connectivity(cluster))
    results.section("Node Health").extend(_check_nodes(cluster))

    system = results.section("System Pods")
    for workload in section.system_workloads:
        system.record(
            check_workload_running(cluster, STAGE, workload.namespace, workload.selector, workload.name)
        )

    autoscaling = results.section("Karpenter")
    autoscaler = section.autoscaler
    autoscaling.record(
        check_workload_running(cluster, STAGE, autoscaler.namespace, autoscaler.selector, autoscaler.name)
    )
    for crd in section.autoscaler_crds:
        autoscaling.record(check_crd_exists(cluster, STAGE, crd.name, crd.display))
    autoscaling.record(check_resources_configured(cluster, STAGE, section.node_pools.spec, "NodePools"))
    autoscaling.record(
        check_resources_configured(cluster, STAGE, section.node_classes.spec, "EC2NodeClasses")
    )

    handler = section.termination_handler
    if handler is not None:
        results.section("Node Termination Handler").record(
            check_workload_running(cluster, STAGE, handler.namespace, handler.selector, handler.name)
        )


def _check_connectivity(cluster: ClusterQueryPort) -> Outcome:
    try:
        version = cluster.server_version()
    except ClusterQueryError as exc:
        return Outcome.failed(STAGE, "Cluster connectivity", detail=str(exc))
    return Outcome.passed(STAGE, f"Cluster connectivity (Kubernetes {version})")


def _check_nodes(cluster: ClusterQueryPort) -> list[Outcome]:
    try:
        nodes = cluster.list_nodes()
    except ClusterQueryError as exc:
        return [Outcome.failed(STAGE, "List nodes", detail=str(exc))]

    # Nodes without a Ready condition at all are counted in neither bucket.
    ready = 0
    not_ready = 0
    for node in nodes:
        condition = find_condition(node, "Ready")
        if condition is None:
            continue
        if condition.get("status") == "True":
            ready += 1
        else:
            not_ready += 1

    outcomes = [Outcome.passed(STAGE, f"Nodes ready: {ready}")]
    if not_ready > 0:
        outcomes.append(Outcome.warning(STAGE, f"Nodes not ready: {not_ready}"))
    return outcomes
