"""
tests/conftest.py — Shared fixtures and path setup for all tests.

Adds the project root and tests/ to sys.path so unit tests can import:
    from config.settings import Settings
    from smoke.health import Outcome, ResultAggregator
    from fake_cluster import FakeCluster, healthy_cluster
"""
import pathlib
import sys

import pytest

# Make project root importable without installing as a package
PROJECT_ROOT = pathlib.Path(__file__).parent.parent
TESTS_DIR = pathlib.Path(__file__).parent
for path in (PROJECT_ROOT, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from fake_cluster import FakeCluster, healthy_cluster  # noqa: E402
from smoke.profile import DeploymentProfile  # noqa: E402


@pytest.fixture
def profile() -> DeploymentProfile:
    return DeploymentProfile()


@pytest.fixture
def cluster(profile: DeploymentProfile) -> FakeCluster:
    """A fake cluster on which every default-profile check passes."""
    return healthy_cluster(profile)
