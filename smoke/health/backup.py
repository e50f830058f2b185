"""
smoke/health/backup.py — Velero server, storage locations, schedules and backups.

Only the Velero server pod is required. Missing locations or schedules warn:
a fresh cluster may legitimately have no backups configured yet.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from smoke.health import Outcome, ResultAggregator
from smoke.health.probes import (
    check_irsa_annotation,
    check_workload_running,
    count_satisfied,
    field_equals,
    list_versioned,
)

if TYPE_CHECKING:
    from smoke.cluster import ClusterQueryPort
    from smoke.profile import BackupSection, DeploymentProfile

STAGE = "backup"
TITLE = "BACKUP AND RECOVERY"


def run_checks(cluster: ClusterQueryPort, profile: DeploymentProfile, results: ResultAggregator) -> None:
    section = profile.backup
    checks = results.section("Velero")

    velero = section.velero
    checks.record(check_workload_running(cluster, STAGE, velero.namespace, velero.selector, velero.name))
    account = section.velero_account
    checks.record(
        check_irsa_annotation(
            cluster, STAGE, account.namespace, account.name, "Velero", profile.irsa_annotation
        )
    )

    checks.record(_check_storage_locations(cluster, section))
    checks.record(_check_schedules(cluster, section))
    checks.record(_check_backups(cluster, section))


def _check_storage_locations(cluster: ClusterQueryPort, section: BackupSection) -> Outcome:
    found = list_versioned(cluster, section.storage_locations.spec)
    if found is None or not found.items:
        return Outcome.warning(STAGE, "No BackupStorageLocations configured")
    available = count_satisfied(
        found.items, lambda bsl: field_equals(bsl, ("status", "phase"), "Available")
    )
    return Outcome.passed(
        STAGE, f"BackupStorageLocations: {len(found.items)} total, {available} available"
    )


def _check_schedules(cluster: ClusterQueryPort, section: BackupSection) -> Outcome:
    found = list_versioned(cluster, section.schedules.spec)
    if found is None:
        return Outcome.warning(STAGE, "Could not list backup schedules")
    if not found.items:
        return Outcome.warning(STAGE, "No backup schedules configured")
    return Outcome.passed(STAGE, f"Backup schedules: {len(found.items)}")


def _check_backups(cluster: ClusterQueryPort, section: BackupSection) -> Outcome:
    found = list_versioned(cluster, section.backups.spec)
    if found is None:
        return Outcome.warning(STAGE, "Could not list Backups")
    completed = count_satisfied(
        found.items, lambda backup: field_equals(backup, ("status", "phase"), "Completed")
    )
    return Outcome.passed(STAGE, f"Backups: {len(found.items)} total, {completed} completed")
