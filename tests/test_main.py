"""Tests for run_operation exit codes and structured logging."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from compute_mock import MockComputeTransport
from converge.client import ComputeClient
from converge.config import Config
from converge.errors import ResourceFailed, RollbackError, TransportError
from converge.main import EXIT_FAILED, EXIT_OK, JsonFormatter, run_operation


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        endpoint="https://compute.example.com",
        identity_domain="acme",
        user="jdoe",
        specs_dir=tmp_path,
    )


class TestRunOperation:
    """Tests for run_operation."""

    @pytest.mark.asyncio
    async def test_none_result_prints_nothing(
        self, config: Config, client: ComputeClient
    ) -> None:
        echoed: list[str] = []

        async def operation(_: ComputeClient) -> None:
            return None

        assert await run_operation(config, operation, echoed.append, client) == EXIT_OK
        assert echoed == []

    @pytest.mark.asyncio
    async def test_rollback_error(self, config: Config, client: ComputeClient) -> None:
        async def operation(_: ComputeClient) -> None:
            raise RollbackError(
                ResourceFailed("orchestration", "web-app", "terminal_error"),
                TransportError("DELETE failed", status_code=500),
            )

        assert await run_operation(config, operation, print, client) == EXIT_FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error(
        self, config: Config, client: ComputeClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        async def operation(_: ComputeClient) -> None:
            raise RuntimeError("bug")

        assert await run_operation(config, operation, print, client) == EXIT_FAILED
        assert "bug" in caplog.text

    @pytest.mark.asyncio
    async def test_result_echoed_as_json(
        self, config: Config, client: ComputeClient, transport: MockComputeTransport
    ) -> None:
        transport.put_object(
            "/storage/attachment/acct-1/user-1/web-1/3a9c/77d0",
            {"name": "/acct-1/user-1/web-1/3a9c/77d0", "state": "attached"},
        )
        echoed: list[str] = []

        async def operation(c: ComputeClient):
            return await c.storage_attachments().get_storage_attachment("web-1/3a9c/77d0")

        assert await run_operation(config, operation, echoed.append, client) == EXIT_OK
        assert json.loads(echoed[0]) == {"name": "web-1/3a9c/77d0", "state": "attached"}


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_extra_fields_included(self) -> None:
        record = logging.LogRecord(
            "converge.lifecycle", logging.INFO, __file__, 1, "orchestration create polling", None, None
        )
        record.resource = "web-app"
        record.phase = "polling"

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "orchestration create polling"
        assert data["level"] == "INFO"
        assert data["resource"] == "web-app"
        assert data["phase"] == "polling"
        assert data["timestamp"].endswith("Z")
