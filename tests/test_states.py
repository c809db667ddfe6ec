"""Tests for status classification tables."""

from __future__ import annotations

import pytest

from converge.errors import UnknownStatus
from converge.resources.orchestrations import ORCHESTRATION_KIND
from converge.resources.storage_attachments import STORAGE_ATTACHMENT_KIND
from converge.states import StateMachine, StatusClass


class TestStateMachine:
    """Tests for the generic classifier."""

    @pytest.fixture
    def machine(self) -> StateMachine:
        return StateMachine(
            kind="widget",
            table={"ready": StatusClass.CONVERGED, "busy": StatusClass.TRANSIENT},
        )

    def test_table_lookup(self, machine: StateMachine) -> None:
        assert machine.classify("ready") is StatusClass.CONVERGED
        assert machine.classify("busy") is StatusClass.TRANSIENT

    def test_unknown_fails_closed(self, machine: StateMachine) -> None:
        assert machine.classify("rebooting") is StatusClass.UNKNOWN
        assert machine.classify(None) is StatusClass.UNKNOWN

    def test_require_raises_on_unknown(self, machine: StateMachine) -> None:
        with pytest.raises(UnknownStatus) as exc_info:
            machine.require("rebooting", identifier="w-1", elapsed=4.0)

        error = exc_info.value
        assert error.status == "rebooting"
        assert error.identifier == "w-1"
        assert str(error) == "Unknown widget w-1 state: 'rebooting' after 4.0s"

    def test_desired_state_converges(self, machine: StateMachine) -> None:
        assert machine.classify("busy", desired="busy") is StatusClass.CONVERGED


class TestStorageAttachmentTables:
    """Storage attachment ready and delete tables."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("attached", StatusClass.CONVERGED),
            ("attaching", StatusClass.TRANSIENT),
            ("detaching", StatusClass.FAILED),
            ("unavailable", StatusClass.FAILED),
            ("unknown", StatusClass.FAILED),
        ],
    )
    def test_ready(self, status: str, expected: StatusClass) -> None:
        assert STORAGE_ATTACHMENT_KIND.ready.classify(status) is expected

    @pytest.mark.parametrize("status", ["attached", "attaching", "detaching", "unavailable"])
    def test_delete_states_are_transient(self, status: str) -> None:
        assert STORAGE_ATTACHMENT_KIND.deleted.classify(status) is StatusClass.TRANSIENT


class TestOrchestrationTables:
    """Orchestration tables converge on the echoed desired state."""

    @pytest.mark.parametrize(
        ("status", "desired", "expected"),
        [
            ("active", "active", StatusClass.CONVERGED),
            ("inactive", "inactive", StatusClass.CONVERGED),
            ("suspended", "suspend", StatusClass.CONVERGED),
            ("suspend", "suspend", StatusClass.CONVERGED),
            ("activating", "active", StatusClass.TRANSIENT),
            ("suspended", "active", StatusClass.TRANSIENT),
            # Steady states other than the desired one are not waited on
            ("starting", "active", StatusClass.UNKNOWN),
            ("inactive", "active", StatusClass.UNKNOWN),
            ("active", "inactive", StatusClass.UNKNOWN),
            ("suspend", "active", StatusClass.UNKNOWN),
            ("terminal_error", "active", StatusClass.FAILED),
            ("reticulating", "active", StatusClass.UNKNOWN),
        ],
    )
    def test_ready(self, status: str, desired: str, expected: StatusClass) -> None:
        assert ORCHESTRATION_KIND.ready.classify(status, desired) is expected

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("stopping", StatusClass.TRANSIENT),
            ("deleting", StatusClass.TRANSIENT),
            ("active", StatusClass.TRANSIENT),
            ("terminal_error", StatusClass.FAILED),
            ("activating", StatusClass.UNKNOWN),
            ("inactive", StatusClass.UNKNOWN),
            ("deactivating", StatusClass.UNKNOWN),
        ],
    )
    def test_delete(self, status: str, expected: StatusClass) -> None:
        assert ORCHESTRATION_KIND.deleted.classify(status) is expected
