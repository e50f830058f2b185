"""
smoke/health/observability.py — Metrics Server and API, Container Insights,
and the Grafana k8s-monitoring stack.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.cluster import ClusterQueryError
from smoke.health import Outcome, ResultAggregator
from smoke.health.probes import (
    check_workload_running,
    count_running,
    list_versioned,
    lookup,
    lookup_list,
)

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import DeploymentProfile, ObservabilitySection, WorkloadRef

STAGE = "observability"
TITLE = "OBSERVABILITY"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    section = profile.observability

    metrics = results.section("Metrics Server")
    metrics_server = section.metrics_server
    metrics.record(
        check_workload_running(
            cluster, STAGE, metrics_server.namespace, metrics_server.selector, metrics_server.name
        )
    )
    metrics.record(_check_metrics_api(cluster, section.metrics_api))
    metrics.record(_check_node_metrics(cluster, section))

    insights = results.section("Container Insights")
    agent = section.cloudwatch_agent
    insights.record(check_workload_running(cluster, STAGE, agent.namespace, agent.selector, agent.name))
    if section.fluent_bit is not None:
        insights.record(_check_optional_workload(cluster, section.fluent_bit))

    grafana = results.section("Grafana Cloud Monitoring (k8s-monitoring)")
    for collector in section.collectors:
        grafana.record(
            check_workload_running(cluster, STAGE, collector.namespace, collector.selector, collector.name)
        )
    grafana.record(_check_monitoring_namespace(cluster, section.monitoring_namespace))
    grafana.extend(_check_dashboard_ingress(cluster, section))


def _check_metrics_api(cluster: ClusterQueryPort, group_version: str) -> Outcome:
    try:
        available = cluster.api_group_version_available(group_version)
    except ClusterQueryError as exc:
        return Outcome.warning(STAGE, "Metrics API not available", detail=str(exc))
    if available:
        return Outcome.passed(STAGE, "Metrics API available")
    return Outcome.warning(STAGE, "Metrics API not available", detail=f"{group_version} not served")


def _check_node_metrics(cluster: ClusterQueryPort, section: ObservabilitySection) -> Outcome:
    found = list_versioned(cluster, section.node_metrics.spec)
    if found is None or not found.items:
        return Outcome.warning(STAGE, "Node metrics not available")
    return Outcome.passed(STAGE, f"Node metrics available: {len(found.items)} nodes")


def _check_optional_workload(cluster: ClusterQueryPort, workload: WorkloadRef) -> Outcome:
    """Absent is fine; deployed but not running warns."""
    try:
        pods = cluster.list_pods(workload.namespace, workload.selector)
    except ClusterQueryError as exc:
        return Outcome.warning(STAGE, f"{workload.name} (error listing)", detail=str(exc))
    if not pods:
        return Outcome.passed(STAGE, f"{workload.name}: not deployed (optional)")
    running = count_running(pods)
    if running > 0:
        return Outcome.passed(STAGE, f"{workload.name}: {running} running")
    return Outcome.warning(STAGE, f"{workload.name}: no pods running")


def _check_monitoring_namespace(cluster: ClusterQueryPort, namespace: str) -> Outcome:
    try:
        pods = cluster.list_pods(namespace)
    except ClusterQueryError as exc:
        return Outcome.warning(STAGE, "Monitoring namespace/pods not found", detail=str(exc))
    if not pods:
        return Outcome.warning(STAGE, "Monitoring namespace/pods not found")
    running = count_running(pods)
    if running > 0:
        return Outcome.passed(STAGE, f"Monitoring namespace pods: {running} running")
    return Outcome.warning(STAGE, "Monitoring pods: none running")


def _check_dashboard_ingress(cluster: ClusterQueryPort, section: ObservabilitySection) -> list[Outcome]:
    try:
        ingresses = cluster.list_ingresses(section.monitoring_namespace)
    except ClusterQueryError as exc:
        return [Outcome.warning(STAGE, "Could not list monitoring ingresses", detail=str(exc))]

    outcomes = []
    for ingress in ingresses:
        rules = lookup_list(ingress, "spec", "rules")
        host = lookup(rules[0], "host") if rules else None
        if host:
            outcomes.append(Outcome.passed(STAGE, f"{section.dashboard_label}: {host}"))
    if not outcomes:
        outcomes.append(Outcome.passed(STAGE, f"{section.dashboard_label}: none configured"))
    return outcomes
