"""
smoke — Read-only EKS platform smoke test.

Probes the Kubernetes API for the workloads, CRDs and custom resources a
platform deployment is expected to have, and turns each probe into a
Pass / Warning / Fail outcome. smoke.run aggregates them into an exit code.
"""
