"""
smoke/health/security.py — Secrets management, admission policies and TLS.

The ClusterSecretStore is the only hard requirement here. Sync ratios and
readiness counts are informational: partially synced ExternalSecrets warn,
zero ExternalSecrets is healthy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.health import Outcome, ResultAggregator
from smoke.health.probes import (
    check_resources_configured,
    check_workload_running,
    condition_satisfied,
    count_satisfied,
    field_equals,
    get_versioned,
    list_versioned,
    ratio,
)

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import DeploymentProfile, SecuritySection

STAGE = "security"
TITLE = "SECURITY CONFIGURATION"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    section = profile.security

    secrets = results.section("Secrets Management")
    secrets.record(_check_secret_store(cluster, section))
    secrets.record(_check_external_secrets(cluster, section))
    results.section("Kyverno Policies").record(_check_policies(cluster, section))

    tls = results.section("TLS/Certificates")
    cert_manager = section.cert_manager
    tls.record(
        check_workload_running(
            cluster, STAGE, cert_manager.namespace, cert_manager.selector, cert_manager.name
        )
    )
    tls.record(
        check_resources_configured(cluster, STAGE, section.cluster_issuers.spec, "ClusterIssuers")
    )
    tls.record(_check_certificates(cluster, section))


def _check_secret_store(cluster: ClusterQueryPort, section: SecuritySection) -> Outcome:
    spec = section.secret_store.spec
    label = f"ClusterSecretStore '{spec.name}'"
    if get_versioned(cluster, spec) is None:
        return Outcome.failed(
            STAGE, label, detail=f"not found under {spec.group} versions {', '.join(spec.versions)}"
        )
    return Outcome.passed(STAGE, label)


def _ready(resource: object) -> bool:
    return condition_satisfied(resource, "Ready")


def _check_external_secrets(cluster: ClusterQueryPort, section: SecuritySection) -> Outcome:
    found = list_versioned(cluster, section.external_secrets.spec)
    if found is None:
        return Outcome.warning(STAGE, "Could not list ExternalSecrets")

    total = len(found.items)
    if total == 0:
        return Outcome.passed(STAGE, "No ExternalSecrets configured (OK)")
    synced = count_satisfied(found.items, _ready)
    label = f"ExternalSecrets synced: {ratio(synced, total)}"
    if synced == total:
        return Outcome.passed(STAGE, label)
    return Outcome.warning(STAGE, label)


def _check_policies(cluster: ClusterQueryPort, section: SecuritySection) -> Outcome:
    found = list_versioned(cluster, section.policies.spec)
    if found is None:
        return Outcome.warning(STAGE, "Could not list Kyverno policies")
    ready = count_satisfied(found.items, lambda p: field_equals(p, ("status", "ready"), True))
    return Outcome.passed(STAGE, f"Kyverno policies: {len(found.items)} total, {ready} ready")


def _check_certificates(cluster: ClusterQueryPort, section: SecuritySection) -> Outcome:
    found = list_versioned(cluster, section.certificates.spec)
    if found is None:
        return Outcome.warning(STAGE, "Could not list Certificates")
    ready = count_satisfied(found.items, _ready)
    return Outcome.passed(STAGE, f"Certificates: {len(found.items)} total, {ready} ready")
