"""
smoke/health/networking.py — Load balancer controller, IngressClasses,
External DNS, and ingress / LoadBalancer service inventory.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.cluster import ClusterQueryError
from smoke.health import Outcome, ResultAggregator
from smoke.health.probes import (
    check_irsa_annotation,
    check_workload_running,
    count_satisfied,
    lookup,
    lookup_list,
)

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import DeploymentProfile

STAGE = "networking"
TITLE = "NETWORKING"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    section = profile.networking

    load_balancing = results.section("AWS Load Balancer Controller")
    controller = section.load_balancer_controller
    load_balancing.record(
        check_workload_running(cluster, STAGE, controller.namespace, controller.selector, controller.name)
    )
    load_balancing.extend(_check_ingress_classes(cluster))

    external_dns = results.section("External DNS")
    dns = section.external_dns
    external_dns.record(check_workload_running(cluster, STAGE, dns.namespace, dns.selector, dns.name))
    account = section.external_dns_account
    external_dns.record(
        check_irsa_annotation(
            cluster, STAGE, account.namespace, account.name, dns.name, profile.irsa_annotation
        )
    )

    results.section("Ingresses").record(_check_ingresses(cluster))
    results.section("Services").record(_check_load_balancer_services(cluster))


def _check_ingress_classes(cluster: ClusterQueryPort) -> list[Outcome]:
    try:
        classes = cluster.list_ingress_classes()
    except ClusterQueryError as exc:
        return [Outcome.warning(STAGE, "No IngressClasses found", detail=str(exc))]
    if not classes:
        return [Outcome.warning(STAGE, "No IngressClasses found")]
    return [
        Outcome.passed(
            STAGE,
            f"IngressClass: {lookup(ic, 'metadata', 'name')} "
            f"(controller: {lookup(ic, 'spec', 'controller')})",
        )
        for ic in classes
    ]


def _has_load_balancer(ingress: dict) -> bool:
    return bool(lookup_list(ingress, "status", "loadBalancer", "ingress"))


def _check_ingresses(cluster: ClusterQueryPort) -> Outcome:
    try:
        ingresses = cluster.list_ingresses()
    except ClusterQueryError as exc:
        return Outcome.warning(STAGE, "Could not list Ingresses", detail=str(exc))
    with_lb = count_satisfied(ingresses, _has_load_balancer)
    return Outcome.passed(STAGE, f"Ingresses: {len(ingresses)} total, {with_lb} with LoadBalancer")


def _check_load_balancer_services(cluster: ClusterQueryPort) -> Outcome:
    try:
        services = cluster.list_services()
    except ClusterQueryError as exc:
        return Outcome.warning(STAGE, "Could not list Services", detail=str(exc))
    count = count_satisfied(services, lambda svc: lookup(svc, "spec", "type") == "LoadBalancer")
    return Outcome.passed(STAGE, f"LoadBalancer services: {count}")
