"""
Typed deployment profile: which workloads, CRDs and custom resources a
platform install is expected to have.

The profile is data, not logic. Check groups read their section of it and
never hard-code namespaces or selectors. Defaults describe the standard EKS
platform profile; a YAML file can override any section:

    profile_version: 1
    name: staging
    networking:
      external_dns:
        namespace: dns
        selector: app.kubernetes.io/name=external-dns
        name: External DNS
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from smoke.health.probes import VersionedResourceSpec

SUPPORTED_PROFILE_VERSION = 1


class WorkloadRef(BaseModel):
    """Pods expected to be Running, found by namespace + label selector."""

    namespace: str
    selector: str
    name: str

    @field_validator("namespace", "selector", "name")
    @classmethod
    def non_empty_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be a non-empty string")
        return value


class CrdRef(BaseModel):
    name: str
    display: str

    @field_validator("name")
    @classmethod
    def qualified_crd_name(cls, value: str) -> str:
        value = value.strip()
        if "." not in value:
            raise ValueError(f"'{value}' is not a <plural>.<group> CRD name")
        return value


class ResourceRef(BaseModel):
    """A custom resource type, with API versions in preference order."""

    group: str
    versions: list[str]
    resource: str
    namespace: Optional[str] = None
    name: Optional[str] = None

    @field_validator("versions")
    @classmethod
    def at_least_one_version(cls, value: list[str]) -> list[str]:
        cleaned = [v.strip() for v in value if v and v.strip()]
        if not cleaned:
            raise ValueError("must list at least one API version")
        return cleaned

    @property
    def spec(self) -> VersionedResourceSpec:
        return VersionedResourceSpec(
            group=self.group,
            version=self.versions[0],
            resource=self.resource,
            fallback_versions=tuple(self.versions[1:]),
            namespace=self.namespace,
            name=self.name,
        )


class ObjectRef(BaseModel):
    """A single namespaced core object (service account, service)."""

    namespace: str
    name: str


def _w(namespace: str, selector: str, name: str) -> WorkloadRef:
    return WorkloadRef(namespace=namespace, selector=selector, name=name)


def _app(namespace: str, app: str, name: str) -> WorkloadRef:
    return _w(namespace, f"app.kubernetes.io/name={app}", name)


def _crd(name: str, display: str) -> CrdRef:
    return CrdRef(name=name, display=display)


def _res(group: str, versions: list[str], resource: str, **kwargs: str) -> ResourceRef:
    return ResourceRef(group=group, versions=versions, resource=resource, **kwargs)


# -----------------------------------------------------------------------------
# Sections, one per check group
# -----------------------------------------------------------------------------


class ClusterSection(BaseModel):
    system_workloads: list[WorkloadRef] = Field(
        default_factory=lambda: [
            _w("kube-system", "k8s-app=kube-dns", "CoreDNS"),
            _w("kube-system", "k8s-app=kube-proxy", "kube-proxy"),
            _w("kube-system", "k8s-app=aws-node", "AWS VPC CNI"),
        ]
    )
    autoscaler: WorkloadRef = Field(
        default_factory=lambda: _app("kube-system", "karpenter", "Karpenter controller")
    )
    autoscaler_crds: list[CrdRef] = Field(
        default_factory=lambda: [
            _crd("nodepools.karpenter.sh", "NodePool CRD"),
            _crd("ec2nodeclasses.karpenter.k8s.aws", "EC2NodeClass CRD"),
        ]
    )
    node_pools: ResourceRef = Field(
        default_factory=lambda: _res("karpenter.sh", ["v1", "v1beta1"], "nodepools")
    )
    node_classes: ResourceRef = Field(
        default_factory=lambda: _res("karpenter.k8s.aws", ["v1", "v1beta1"], "ec2nodeclasses")
    )
    termination_handler: Optional[WorkloadRef] = Field(
        default_factory=lambda: _app(
            "kube-system", "aws-node-termination-handler", "Node Termination Handler"
        )
    )


class AddonsSection(BaseModel):
    crds: list[CrdRef] = Field(
        default_factory=lambda: [
            _crd("externalsecrets.external-secrets.io", "External Secrets"),
            _crd("clustersecretstores.external-secrets.io", "ClusterSecretStore"),
            _crd("certificates.cert-manager.io", "Cert Manager Certificates"),
            _crd("issuers.cert-manager.io", "Cert Manager Issuers"),
            _crd("clusterissuers.cert-manager.io", "Cert Manager ClusterIssuers"),
            _crd("clusterpolicies.kyverno.io", "Kyverno ClusterPolicies"),
            _crd("nodepools.karpenter.sh", "Karpenter NodePools"),
            _crd("ec2nodeclasses.karpenter.k8s.aws", "Karpenter EC2NodeClasses"),
            _crd("backups.velero.io", "Velero Backups"),
            _crd("restores.velero.io", "Velero Restores"),
            _crd("schedules.velero.io", "Velero Schedules"),
        ]
    )
    workloads: list[WorkloadRef] = Field(
        default_factory=lambda: [
            _app("cert-manager", "cert-manager", "Cert Manager"),
            _app("cert-manager", "cainjector", "Cert Manager CA Injector"),
            _app("cert-manager", "webhook", "Cert Manager Webhook"),
            _app("external-secrets", "external-secrets", "External Secrets Operator"),
            _app("external-secrets", "external-secrets-webhook", "External Secrets Webhook"),
            _app(
                "external-secrets",
                "external-secrets-cert-controller",
                "External Secrets Cert Controller",
            ),
            _w(
                "kyverno",
                "app.kubernetes.io/component=admission-controller",
                "Kyverno Admission Controller",
            ),
            _app("aws-load-balancer", "aws-load-balancer-controller", "AWS Load Balancer Controller"),
            _app("external-dns", "external-dns", "External DNS"),
            _app("reloader", "reloader", "Reloader"),
            _app("kube-system", "metrics-server", "Metrics Server"),
        ]
    )


class SecuritySection(BaseModel):
    secret_store: ResourceRef = Field(
        default_factory=lambda: _res(
            "external-secrets.io",
            ["v1", "v1beta1"],
            "clustersecretstores",
            name="aws-secrets-manager",
        )
    )
    external_secrets: ResourceRef = Field(
        default_factory=lambda: _res("external-secrets.io", ["v1", "v1beta1"], "externalsecrets")
    )
    policies: ResourceRef = Field(
        default_factory=lambda: _res("kyverno.io", ["v1"], "clusterpolicies")
    )
    cert_manager: WorkloadRef = Field(
        default_factory=lambda: _app("cert-manager", "cert-manager", "Cert Manager")
    )
    cluster_issuers: ResourceRef = Field(
        default_factory=lambda: _res("cert-manager.io", ["v1"], "clusterissuers")
    )
    certificates: ResourceRef = Field(
        default_factory=lambda: _res("cert-manager.io", ["v1"], "certificates")
    )

    @field_validator("secret_store")
    @classmethod
    def secret_store_is_named(cls, value: ResourceRef) -> ResourceRef:
        if not value.name:
            raise ValueError("secret_store needs the name of the store to look up")
        return value


class NetworkingSection(BaseModel):
    load_balancer_controller: WorkloadRef = Field(
        default_factory=lambda: _app(
            "aws-load-balancer", "aws-load-balancer-controller", "AWS LB Controller"
        )
    )
    external_dns: WorkloadRef = Field(
        default_factory=lambda: _app("external-dns", "external-dns", "External DNS")
    )
    external_dns_account: ObjectRef = Field(
        default_factory=lambda: ObjectRef(namespace="external-dns", name="external-dns")
    )


class BackupSection(BaseModel):
    velero: WorkloadRef = Field(default_factory=lambda: _app("velero", "velero", "Velero Server"))
    velero_account: ObjectRef = Field(
        default_factory=lambda: ObjectRef(namespace="velero", name="velero")
    )
    storage_locations: ResourceRef = Field(
        default_factory=lambda: _res(
            "velero.io", ["v1"], "backupstoragelocations", namespace="velero"
        )
    )
    schedules: ResourceRef = Field(
        default_factory=lambda: _res("velero.io", ["v1"], "schedules", namespace="velero")
    )
    backups: ResourceRef = Field(
        default_factory=lambda: _res("velero.io", ["v1"], "backups", namespace="velero")
    )


class OptimizationSection(BaseModel):
    goldilocks: WorkloadRef = Field(
        default_factory=lambda: _app("goldilocks", "goldilocks", "Goldilocks Controller")
    )
    vpa_crd: CrdRef = Field(
        default_factory=lambda: _crd("verticalpodautoscalers.autoscaling.k8s.io", "VPA CRD")
    )
    vpas: ResourceRef = Field(
        default_factory=lambda: _res("autoscaling.k8s.io", ["v1"], "verticalpodautoscalers")
    )
    dashboard_service: ObjectRef = Field(
        default_factory=lambda: ObjectRef(namespace="goldilocks", name="goldilocks-dashboard")
    )
    reloader: WorkloadRef = Field(
        default_factory=lambda: _app("reloader", "reloader", "Reloader")
    )


class ObservabilitySection(BaseModel):
    metrics_server: WorkloadRef = Field(
        default_factory=lambda: _app("kube-system", "metrics-server", "Metrics Server")
    )
    metrics_api: str = "metrics.k8s.io/v1beta1"
    node_metrics: ResourceRef = Field(
        default_factory=lambda: _res("metrics.k8s.io", ["v1beta1"], "nodes")
    )
    cloudwatch_agent: WorkloadRef = Field(
        default_factory=lambda: _app("amazon-cloudwatch", "cloudwatch-agent", "CloudWatch Agent")
    )
    # Optional log shipper: absence is healthy, presence without running pods is not.
    fluent_bit: Optional[WorkloadRef] = Field(
        default_factory=lambda: _app("amazon-cloudwatch", "fluent-bit", "Fluent Bit")
    )
    monitoring_namespace: str = "monitoring"
    collectors: list[WorkloadRef] = Field(
        default_factory=lambda: [
            _app("monitoring", "alloy-logs", "Alloy Logs"),
            _app("monitoring", "alloy-metrics", "Alloy Metrics"),
            _app("monitoring", "alloy-singleton", "Alloy Singleton"),
            _app("monitoring", "kube-state-metrics", "Kube State Metrics"),
            _app("monitoring", "node-exporter", "Node Exporter"),
        ]
    )
    dashboard_label: str = "Grafana ingress"

    @field_validator("metrics_api")
    @classmethod
    def group_version(cls, value: str) -> str:
        value = value.strip()
        if "/" not in value:
            raise ValueError(f"'{value}' must be '<group>/<version>'")
        return value


class DeploymentProfile(BaseModel):
    """Versioned contract for a deployment profile YAML file."""

    profile_version: int = SUPPORTED_PROFILE_VERSION
    name: str = "eks"
    irsa_annotation: str = "eks.amazonaws.com/role-arn"
    cluster: ClusterSection = Field(default_factory=ClusterSection)
    addons: AddonsSection = Field(default_factory=AddonsSection)
    security: SecuritySection = Field(default_factory=SecuritySection)
    networking: NetworkingSection = Field(default_factory=NetworkingSection)
    backup: BackupSection = Field(default_factory=BackupSection)
    optimization: OptimizationSection = Field(default_factory=OptimizationSection)
    observability: ObservabilitySection = Field(default_factory=ObservabilitySection)

    @field_validator("profile_version")
    @classmethod
    def validate_profile_version(cls, value: int) -> int:
        if value != SUPPORTED_PROFILE_VERSION:
            raise ValueError(
                f"unsupported profile_version={value}; expected {SUPPORTED_PROFILE_VERSION}"
            )
        return value


def load_profile_yaml(path: Path) -> dict:
    with open(path, encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
        if not isinstance(payload, dict):
            raise ValueError("profile root must be a YAML mapping/object")
        return payload


def load_profile(path: str | Path | None = None) -> DeploymentProfile:
    """Load a profile file, or the built-in EKS profile when path is None.

    Raises:
        FileNotFoundError: the profile file does not exist.
        ValueError: the YAML is not a mapping or fails validation.
    """
    if path is None:
        return DeploymentProfile()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Deployment profile not found: {path}")
    payload = load_profile_yaml(path)
    try:
        return DeploymentProfile.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(exc) from exc
