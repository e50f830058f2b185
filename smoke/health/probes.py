"""
smoke/health/probes.py — Reusable probe vocabulary shared by all check groups.

Every probe turns one or more ClusterQueryPort calls into either an Outcome
or plain data. Probes never retry and never raise: query errors become Fail
or Warning outcomes, or "no data" (None) for the caller to classify.

Structured resources are loosely shaped dicts, so all status inspection goes
through lookup(), which returns None instead of raising on missing keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional

from smoke.cluster import (
    ClusterQueryError,
    ClusterQueryPort,
    PartialDataError,
    ResourceNotFoundError,
    WorkloadStatus,
)
from smoke.health import Outcome

logger = logging.getLogger(__name__)

RUNNING_PHASE = "Running"

# -----------------------------------------------------------------------------
# Path lookup
# -----------------------------------------------------------------------------


def lookup(resource: Any, *path: str) -> Any:
    """Return resource[path[0]][path[1]]..., or None if any step is missing."""
    node = resource
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def lookup_list(resource: Any, *path: str) -> list[Any]:
    value = lookup(resource, *path)
    return value if isinstance(value, list) else []


def require_list(resource: Any, *path: str) -> list[Any]:
    """Strict variant of lookup_list: absent or non-list raises PartialDataError."""
    value = lookup(resource, *path)
    if not isinstance(value, list):
        raise PartialDataError(f"{'.'.join(path)} is not a list (got {type(value).__name__})")
    return value


def annotations_of(resource: Any) -> dict[str, Any]:
    value = lookup(resource, "metadata", "annotations")
    return value if isinstance(value, dict) else {}


# -----------------------------------------------------------------------------
# Status inspection
# -----------------------------------------------------------------------------


def find_condition(resource: Any, condition_type: str) -> Optional[dict[str, Any]]:
    """First status.conditions entry whose type matches, else None."""
    for condition in lookup_list(resource, "status", "conditions"):
        if isinstance(condition, dict) and condition.get("type") == condition_type:
            return condition
    return None


def condition_satisfied(resource: Any, condition_type: str) -> bool:
    condition = find_condition(resource, condition_type)
    return condition is not None and condition.get("status") == "True"


def field_equals(resource: Any, path: Iterable[str], expected: Any) -> bool:
    """Scalar status field probe, e.g. field_equals(bsl, ("status", "phase"), "Available")."""
    value = lookup(resource, *path)
    if value is None:
        return False
    if isinstance(expected, bool):
        return value is expected
    return value == expected


def count_running(workloads: Iterable[WorkloadStatus]) -> int:
    return sum(1 for w in workloads if w.phase == RUNNING_PHASE)


def count_satisfied(resources: Iterable[Any], predicate: Callable[[Any], bool]) -> int:
    return sum(1 for r in resources if predicate(r))


def ratio(satisfied: int, total: int) -> str:
    return f"{satisfied}/{total}"


# -----------------------------------------------------------------------------
# Outcome-producing probes
# -----------------------------------------------------------------------------


def check_workload_running(
    cluster: ClusterQueryPort,
    stage: str,
    namespace: str,
    label_selector: str,
    display_name: str,
) -> Outcome:
    """Pass if at least one pod matching the selector is Running, else Fail.

    "Selector matched nothing" and "matched but not running" both Fail; the
    detail field says which one it was.
    """
    try:
        pods = cluster.list_pods(namespace, label_selector)
    except ClusterQueryError as exc:
        logger.debug("listing pods %s in %s failed: %s", label_selector, namespace, exc)
        return Outcome.failed(stage, f"{display_name} (error listing)", detail=str(exc))

    running = count_running(pods)
    if running > 0:
        return Outcome.passed(stage, f"{display_name}: {running} running")
    if not pods:
        detail = f"selector {label_selector} matched no pods in {namespace}"
    else:
        detail = f"{ratio(0, len(pods))} matched pods running in {namespace}"
    return Outcome.failed(stage, f"{display_name}: no pods running", detail=detail)


def check_crd_exists(cluster: ClusterQueryPort, stage: str, name: str, display_name: str) -> Outcome:
    """Binary existence check: Pass if the CRD is registered, otherwise Fail."""
    try:
        exists = cluster.crd_exists(name)
    except ClusterQueryError as exc:
        logger.debug("CRD lookup %s failed: %s", name, exc)
        return Outcome.failed(stage, display_name, detail=str(exc))
    if exists:
        return Outcome.passed(stage, display_name)
    return Outcome.failed(stage, display_name, detail=f"CRD {name} not found")


def check_irsa_annotation(
    cluster: ClusterQueryPort,
    stage: str,
    namespace: str,
    service_account: str,
    display_name: str,
    annotation: str,
) -> Outcome:
    """Warn when the service account lacks a non-empty IAM role annotation."""
    try:
        account = cluster.get_service_account(namespace, service_account)
    except ClusterQueryError as exc:
        logger.debug("reading service account %s/%s failed: %s", namespace, service_account, exc)
        return Outcome.warning(
            stage,
            f"{display_name} service account not found",
            detail=f"{namespace}/{service_account}: {exc}",
        )
    if annotations_of(account).get(annotation):
        return Outcome.passed(stage, f"{display_name} has IRSA configured")
    return Outcome.warning(
        stage, f"{display_name} missing IRSA annotation", detail=f"expected {annotation}"
    )


# -----------------------------------------------------------------------------
# Versioned custom resources
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionedResourceSpec:
    group: str
    version: str
    resource: str
    fallback_versions: tuple[str, ...] = ()
    namespace: Optional[str] = None
    name: Optional[str] = None

    @property
    def versions(self) -> tuple[str, ...]:
        return (self.version, *self.fallback_versions)

    def __str__(self) -> str:
        return f"{self.resource}.{self.group}"


@dataclass(frozen=True)
class VersionedItems:
    version: str
    items: list[dict[str, Any]]


def _attempts(spec: VersionedResourceSpec, fetch: Callable[[str], Any]) -> Iterator[tuple[str, Any]]:
    """Try each candidate version in order; yield (version, payload) for successes."""
    for version in spec.versions:
        try:
            yield version, fetch(version)
        except ClusterQueryError as exc:
            kind = "not served" if isinstance(exc, ResourceNotFoundError) else "failed"
            logger.debug("%s/%s %s: %s", spec, version, kind, exc)


def list_versioned(cluster: ClusterQueryPort, spec: VersionedResourceSpec) -> Optional[VersionedItems]:
    """List spec's resources with the first version that answers, or None if none do."""
    def fetch(version: str) -> list[dict[str, Any]]:
        return cluster.list_custom_resources(spec.group, version, spec.resource, spec.namespace)

    for version, items in _attempts(spec, fetch):
        return VersionedItems(version, items)
    return None


def get_versioned(cluster: ClusterQueryPort, spec: VersionedResourceSpec) -> Optional[dict[str, Any]]:
    """Get the named resource with the first version that answers, or None."""
    if not spec.name:
        raise ValueError(f"{spec} has no name to get")

    def fetch(version: str) -> dict[str, Any]:
        return cluster.get_custom_resource(
            spec.group, version, spec.resource, spec.name, spec.namespace
        )

    for _, resource in _attempts(spec, fetch):
        return resource
    return None


def check_resources_configured(
    cluster: ClusterQueryPort, stage: str, spec: VersionedResourceSpec, display_name: str
) -> Outcome:
    """Pass with a count when at least one resource exists; Warn when none or unlistable."""
    found = list_versioned(cluster, spec)
    if found is None or not found.items:
        return Outcome.warning(stage, f"No {display_name} configured")
    return Outcome.passed(stage, f"{display_name} configured: {len(found.items)}")
