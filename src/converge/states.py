"""Table-driven status classification shared by every resource kind."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from .errors import UnknownStatus


class StatusClass(str, Enum):
    """Outcome of classifying a sampled status."""

    CONVERGED = "converged"
    TRANSIENT = "transient"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StateMachine:
    """Maps a resource kind's status values onto StatusClass.

    A status equal to the desired state echoed by the server (or one of its
    configured equivalents) is converged. Anything else is looked up in
    ``table``; statuses missing from the table are UNKNOWN, never TRANSIENT.
    """

    kind: str
    table: Mapping[str, StatusClass]
    desired_equivalents: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def classify(self, status: str | None, desired: str | None = None) -> StatusClass:
        if desired and status in self.desired_equivalents.get(desired, frozenset({desired})):
            return StatusClass.CONVERGED
        if status is None:
            return StatusClass.UNKNOWN
        return self.table.get(status, StatusClass.UNKNOWN)

    def require(
        self,
        status: str | None,
        desired: str | None = None,
        *,
        identifier: str | None = None,
        elapsed: float | None = None,
    ) -> StatusClass:
        """Classify ``status``, raising UnknownStatus instead of returning UNKNOWN."""
        result = self.classify(status, desired)
        if result is StatusClass.UNKNOWN:
            raise UnknownStatus(self.kind, status, identifier, elapsed)
        return result
