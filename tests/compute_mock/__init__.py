"""Compute API mock for lifecycle testing.

Provides an in-memory Transport that stands in for the compute REST API,
so lifecycle calls can be exercised end to end without network access.

Key Features:
- In-memory objects keyed by qualified name
- Scripted status sequences (one status consumed per GET)
- Request log for assertions on methods, paths and bodies
- Error injection per method and path
- Fake monotonic clock for deterministic timeout tests

Usage:
    from compute_mock import MockComputeTransport

    transport = MockComputeTransport()
    transport.script_statuses("/platform/v1/orchestration/Compute-a/u/web-app",
                              ["activating", "active"])
    client = ComputeClient(Scope("/Compute-a/u"), transport)
"""

from .clock import FakeClock
from .transport import GONE, MockComputeTransport, RecordedRequest

__all__ = [
    "FakeClock",
    "GONE",
    "MockComputeTransport",
    "RecordedRequest",
]
