"""
tests/unit/test_profile.py — Unit tests for smoke/profile.py.

Validates the built-in EKS profile and YAML overrides without touching a
cluster.
"""

from __future__ import annotations

import pytest
import yaml

from smoke.profile import DeploymentProfile, ResourceRef, WorkloadRef, load_profile


def _write(tmp_path, payload) -> str:
    path = tmp_path / "profile.yml"
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return str(path)


def test_default_profile():
    profile = load_profile()
    assert profile.name == "eks"
    assert profile.irsa_annotation == "eks.amazonaws.com/role-arn"
    assert [w.name for w in profile.cluster.system_workloads] == ["CoreDNS", "kube-proxy", "AWS VPC CNI"]
    assert len(profile.addons.crds) == 11
    assert len(profile.addons.workloads) == 11
    assert profile.security.secret_store.name == "aws-secrets-manager"


def test_resource_ref_spec_carries_fallbacks():
    spec = DeploymentProfile().cluster.node_pools.spec
    assert spec.versions == ("v1", "v1beta1")
    assert str(spec) == "nodepools.karpenter.sh"


def test_yaml_overrides_one_section(tmp_path):
    path = _write(
        tmp_path,
        {
            "profile_version": 1,
            "name": "staging",
            "networking": {
                "external_dns": {
                    "namespace": "dns",
                    "selector": "app.kubernetes.io/name=external-dns",
                    "name": "External DNS",
                }
            },
        },
    )
    profile = load_profile(path)
    assert profile.name == "staging"
    assert profile.networking.external_dns.namespace == "dns"
    # untouched sections keep their defaults
    assert profile.networking.external_dns_account.namespace == "external-dns"
    assert profile.backup.velero.namespace == "velero"


def test_optional_workloads_can_be_disabled(tmp_path):
    path = _write(tmp_path, {"observability": {"fluent_bit": None}})
    assert load_profile(path).observability.fluent_bit is None


def test_empty_file_is_default_profile(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_profile(path) == DeploymentProfile()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="Deployment profile not found"):
        load_profile(tmp_path / "absent.yml")


def test_non_mapping_root_raises(tmp_path):
    path = tmp_path / "list.yml"
    path.write_text("- cluster\n- addons\n", encoding="utf-8")
    with pytest.raises(ValueError, match="YAML mapping"):
        load_profile(path)


def test_unsupported_version_raises(tmp_path):
    path = _write(tmp_path, {"profile_version": 2})
    with pytest.raises(ValueError, match="profile_version"):
        load_profile(path)


def test_secret_store_requires_name(tmp_path):
    path = _write(
        tmp_path,
        {
            "security": {
                "secret_store": {
                    "group": "external-secrets.io",
                    "versions": ["v1"],
                    "resource": "clustersecretstores",
                }
            }
        },
    )
    with pytest.raises(ValueError, match="secret_store"):
        load_profile(path)


def test_metrics_api_must_be_group_version(tmp_path):
    path = _write(tmp_path, {"observability": {"metrics_api": "metrics.k8s.io"}})
    with pytest.raises(ValueError, match="<group>/<version>"):
        load_profile(path)


def test_resource_ref_needs_a_version():
    with pytest.raises(ValueError, match="at least one API version"):
        ResourceRef(group="velero.io", versions=[" "], resource="backups")


def test_crd_name_must_be_qualified():
    with pytest.raises(ValueError, match="CRD name"):
        DeploymentProfile.model_validate({"addons": {"crds": [{"name": "backups", "display": "x"}]}})


def test_workload_fields_are_stripped_and_required():
    ref = WorkloadRef(namespace=" velero ", selector="app=velero", name="Velero")
    assert ref.namespace == "velero"
    with pytest.raises(ValueError):
        WorkloadRef(namespace="velero", selector="  ", name="Velero")
