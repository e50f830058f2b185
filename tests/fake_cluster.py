"""
tests/fake_cluster.py — In-memory ClusterQueryPort for unit tests.

FakeCluster answers every port operation from plain dicts. healthy_cluster()
builds one that satisfies every check of a DeploymentProfile, so tests can
start from a green cluster and break exactly one thing.
"""

from __future__ import annotations

from typing import Any, Optional

from smoke.cluster import ClusterConnectionError, ResourceNotFoundError, WorkloadStatus
from smoke.profile import DeploymentProfile, ResourceRef

CustomKey = tuple[str, str, str, Optional[str]]


def _named(name: str, **fields: Any) -> dict[str, Any]:
    return {"metadata": {"name": name}, **fields}


class FakeCluster:
    def __init__(self, version: str = "v1.30.2-eks-1552ad0") -> None:
        self.version = version
        self.nodes: list[dict[str, Any]] = []
        self.pods: dict[tuple[str, str], list[WorkloadStatus]] = {}
        self.crds: set[str] = set()
        self.custom: dict[CustomKey, list[dict[str, Any]]] = {}
        self.service_accounts: dict[tuple[str, str], dict[str, Any]] = {}
        self.named_services: dict[tuple[str, str], dict[str, Any]] = {}
        self.services: list[dict[str, Any]] = []
        self.ingresses: list[dict[str, Any]] = []
        self.ingress_classes: list[dict[str, Any]] = []
        self.group_versions: set[str] = set()
        # operation name → exception raised instead of answering
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, tuple]] = []

    # -- setup helpers ------------------------------------------------------

    def add_pods(self, namespace: str, selector: str, *phases: str) -> None:
        pods = self.pods.setdefault((namespace, selector), [])
        for phase in phases:
            pods.append(WorkloadStatus(f"{selector.split('=')[-1]}-{len(pods)}", namespace, phase))

    def add_node(self, name: str, ready: Optional[str] = "True") -> None:
        conditions = [] if ready is None else [{"type": "Ready", "status": ready}]
        self.nodes.append(_named(name, status={"conditions": conditions}))

    def add_custom(
        self,
        group: str,
        version: str,
        resource: str,
        *items: dict[str, Any],
        namespace: Optional[str] = None,
    ) -> None:
        self.custom.setdefault((group, version, resource, namespace), []).extend(items)

    def add_resource(self, ref: ResourceRef, *items: dict[str, Any]) -> None:
        self.add_custom(ref.group, ref.versions[0], ref.resource, *items, namespace=ref.namespace)

    def fail(self, operation: str, exc: Optional[Exception] = None) -> None:
        self.errors[operation] = exc or ClusterConnectionError(f"{operation}: connection refused")

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if operation in self.errors:
            raise self.errors[operation]

    # -- ClusterQueryPort ----------------------------------------------------

    def server_version(self) -> str:
        self._record("server_version")
        return self.version

    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> list[WorkloadStatus]:
        self._record("list_pods", namespace, label_selector)
        if label_selector is None:
            return [p for (ns, _), pods in self.pods.items() if ns == namespace for p in pods]
        return list(self.pods.get((namespace, label_selector), []))

    def list_nodes(self) -> list[dict[str, Any]]:
        self._record("list_nodes")
        return list(self.nodes)

    def crd_exists(self, name: str) -> bool:
        self._record("crd_exists", name)
        return name in self.crds

    def list_custom_resources(
        self, group: str, version: str, resource: str, namespace: Optional[str] = None
    ) -> list[dict[str, Any]]:
        self._record("list_custom_resources", group, version, resource, namespace)
        key = (group, version, resource, namespace)
        if key not in self.custom:
            raise ResourceNotFoundError(f"{resource}.{group}/{version} not served")
        return list(self.custom[key])

    def get_custom_resource(
        self,
        group: str,
        version: str,
        resource: str,
        name: str,
        namespace: Optional[str] = None,
    ) -> dict[str, Any]:
        self._record("get_custom_resource", group, version, resource, name, namespace)
        for item in self.custom.get((group, version, resource, namespace), []):
            if item.get("metadata", {}).get("name") == name:
                return item
        raise ResourceNotFoundError(f"{resource}.{group}/{version} {name} not found")

    def get_service_account(self, namespace: str, name: str) -> dict[str, Any]:
        self._record("get_service_account", namespace, name)
        try:
            return self.service_accounts[(namespace, name)]
        except KeyError:
            raise ResourceNotFoundError(f"serviceaccount {namespace}/{name}") from None

    def get_service(self, namespace: str, name: str) -> dict[str, Any]:
        self._record("get_service", namespace, name)
        try:
            return self.named_services[(namespace, name)]
        except KeyError:
            raise ResourceNotFoundError(f"service {namespace}/{name}") from None

    def list_services(self, namespace: Optional[str] = None) -> list[dict[str, Any]]:
        self._record("list_services", namespace)
        return list(self.services)

    def list_ingresses(self, namespace: Optional[str] = None) -> list[dict[str, Any]]:
        self._record("list_ingresses", namespace)
        if namespace is None:
            return list(self.ingresses)
        return [i for i in self.ingresses if i["metadata"].get("namespace") == namespace]

    def list_ingress_classes(self) -> list[dict[str, Any]]:
        self._record("list_ingress_classes")
        return list(self.ingress_classes)

    def api_group_version_available(self, group_version: str) -> bool:
        self._record("api_group_version_available", group_version)
        return group_version in self.group_versions


def healthy_cluster(profile: Optional[DeploymentProfile] = None) -> FakeCluster:
    """A FakeCluster on which every check of profile passes."""
    profile = profile or DeploymentProfile()
    cluster = FakeCluster()

    for name in ("ip-10-0-1-10", "ip-10-0-2-20", "ip-10-0-3-30"):
        cluster.add_node(name)

    workloads = [
        *profile.cluster.system_workloads,
        profile.cluster.autoscaler,
        *profile.addons.workloads,
        profile.security.cert_manager,
        profile.networking.load_balancer_controller,
        profile.networking.external_dns,
        profile.backup.velero,
        profile.optimization.goldilocks,
        profile.optimization.reloader,
        profile.observability.metrics_server,
        profile.observability.cloudwatch_agent,
        *profile.observability.collectors,
    ]
    for optional in (profile.cluster.termination_handler, profile.observability.fluent_bit):
        if optional is not None:
            workloads.append(optional)
    for workload in workloads:
        if (workload.namespace, workload.selector) not in cluster.pods:
            cluster.add_pods(workload.namespace, workload.selector, "Running", "Running")

    for crd in [*profile.cluster.autoscaler_crds, *profile.addons.crds, profile.optimization.vpa_crd]:
        cluster.crds.add(crd.name)

    ready = {"status": {"conditions": [{"type": "Ready", "status": "True"}]}}
    cluster.add_resource(profile.cluster.node_pools, _named("default"))
    cluster.add_resource(profile.cluster.node_classes, _named("default"))
    cluster.add_resource(profile.security.secret_store, _named(profile.security.secret_store.name))
    cluster.add_resource(profile.security.external_secrets, _named("db-credentials", **ready))
    cluster.add_resource(profile.security.policies, _named("require-labels", status={"ready": True}))
    cluster.add_resource(profile.security.cluster_issuers, _named("letsencrypt-prod"))
    cluster.add_resource(profile.security.certificates, _named("wildcard-tls", **ready))
    cluster.add_resource(
        profile.backup.storage_locations, _named("default", status={"phase": "Available"})
    )
    cluster.add_resource(profile.backup.schedules, _named("daily"))
    cluster.add_resource(profile.backup.backups, _named("daily-001", status={"phase": "Completed"}))
    cluster.add_resource(profile.optimization.vpas, _named("goldilocks-api"))
    cluster.add_resource(profile.observability.node_metrics, _named("ip-10-0-1-10"))
    cluster.group_versions.add(profile.observability.metrics_api)

    irsa = {"annotations": {profile.irsa_annotation: "arn:aws:iam::123456789012:role/irsa"}}
    for account in (profile.networking.external_dns_account, profile.backup.velero_account):
        cluster.service_accounts[(account.namespace, account.name)] = {
            "metadata": {"name": account.name, "namespace": account.namespace, **irsa}
        }
    dashboard = profile.optimization.dashboard_service
    cluster.named_services[(dashboard.namespace, dashboard.name)] = _named(dashboard.name)

    cluster.ingress_classes.append(_named("alb", spec={"controller": "ingress.k8s.aws/alb"}))
    cluster.services.append(_named("web", spec={"type": "LoadBalancer"}))
    cluster.ingresses.append(
        {
            "metadata": {"name": "grafana", "namespace": profile.observability.monitoring_namespace},
            "spec": {"rules": [{"host": "grafana.example.com"}]},
            "status": {"loadBalancer": {"ingress": [{"hostname": "k8s-alb.elb.amazonaws.com"}]}},
        }
    )
    return cluster
