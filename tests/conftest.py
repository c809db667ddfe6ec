"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for compute_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from compute_mock import MockComputeTransport  # noqa: E402
from converge.client import ComputeClient  # noqa: E402
from converge.naming import Scope  # noqa: E402

# Account scope used throughout the lifecycle tests
ACCOUNT_PREFIX = "/acct-1/user-1"


@pytest.fixture
def scope() -> Scope:
    return Scope(ACCOUNT_PREFIX)


@pytest.fixture
def transport() -> MockComputeTransport:
    return MockComputeTransport()


@pytest.fixture
def client(scope: Scope, transport: MockComputeTransport) -> ComputeClient:
    return ComputeClient(scope, transport)
