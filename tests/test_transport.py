"""Tests for the azure-core HTTP transport."""

from __future__ import annotations

from unittest import mock

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.core.pipeline.policies import BearerTokenCredentialPolicy

from converge.errors import ResourceNotFound, TransportError
from converge.transport import COMPUTE_CONTENT_TYPE, HttpTransport


def fake_response(status_code: int, content: bytes = b"", reason: str = "") -> mock.Mock:
    return mock.Mock(
        status_code=status_code,
        reason=reason,
        content=content,
        text=lambda: content.decode("utf-8"),
    )


@pytest.fixture
def pipeline_client():
    with mock.patch("converge.transport.PipelineClient") as client_class:
        yield client_class


class TestHttpTransport:
    """Tests for HttpTransport."""

    def test_credential_requires_token_scope(self, pipeline_client: mock.Mock) -> None:
        with pytest.raises(ValueError):
            HttpTransport("https://compute.example.com", credential=mock.Mock())

    def test_bearer_policy_added_with_credential(self, pipeline_client: mock.Mock) -> None:
        HttpTransport(
            "https://compute.example.com/",
            credential=mock.Mock(),
            token_scope="https://compute.example.com/.default",
        )

        kwargs = pipeline_client.call_args.kwargs
        assert kwargs["base_url"] == "https://compute.example.com"
        assert any(isinstance(p, BearerTokenCredentialPolicy) for p in kwargs["policies"])

    def test_no_bearer_policy_without_credential(self, pipeline_client: mock.Mock) -> None:
        HttpTransport("https://compute.example.com")

        policies = pipeline_client.call_args.kwargs["policies"]
        assert not any(isinstance(p, BearerTokenCredentialPolicy) for p in policies)

    @pytest.mark.asyncio
    async def test_get_returns_body(self, pipeline_client: mock.Mock) -> None:
        pipeline_client.return_value.send_request.return_value = fake_response(
            200, b'{"name": "/acct-1/user-1/web-app"}'
        )
        transport = HttpTransport("https://compute.example.com")

        body = await transport.send("GET", "/platform/v1/orchestration/acct-1/user-1/web-app")

        assert body == b'{"name": "/acct-1/user-1/web-app"}'
        request = pipeline_client.return_value.send_request.call_args.args[0]
        assert request.method == "GET"
        assert request.url == (
            "https://compute.example.com/platform/v1/orchestration/acct-1/user-1/web-app"
        )
        assert "Content-Type" not in request.headers

    @pytest.mark.asyncio
    async def test_body_sent_with_compute_content_type(self, pipeline_client: mock.Mock) -> None:
        pipeline_client.return_value.send_request.return_value = fake_response(201, b"{}")
        transport = HttpTransport("https://compute.example.com")

        await transport.send("POST", "/storage/attachment/", b'{"index":1}')

        request = pipeline_client.return_value.send_request.call_args.args[0]
        assert request.headers["Content-Type"] == COMPUTE_CONTENT_TYPE
        assert request.content == b'{"index":1}'

    @pytest.mark.asyncio
    async def test_404_is_resource_not_found(self, pipeline_client: mock.Mock) -> None:
        pipeline_client.return_value.send_request.return_value = fake_response(
            404, reason="Not Found"
        )
        transport = HttpTransport("https://compute.example.com")

        with pytest.raises(ResourceNotFound) as exc_info:
            await transport.send("GET", "/storage/attachment/acct-1/user-1/x")

        assert exc_info.value.status_code == 404
        assert exc_info.value.path == "/storage/attachment/acct-1/user-1/x"
        assert exc_info.value.method == "GET"

    @pytest.mark.asyncio
    async def test_server_error_is_transport_error(self, pipeline_client: mock.Mock) -> None:
        pipeline_client.return_value.send_request.return_value = fake_response(
            500, b"internal error", reason="Internal Server Error"
        )
        transport = HttpTransport("https://compute.example.com")

        with pytest.raises(TransportError) as exc_info:
            await transport.send("DELETE", "/storage/attachment/acct-1/user-1/x")

        assert not isinstance(exc_info.value, ResourceNotFound)
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self, pipeline_client: mock.Mock) -> None:
        pipeline_client.return_value.send_request.side_effect = ServiceRequestError(
            "connection refused"
        )
        transport = HttpTransport("https://compute.example.com")

        with pytest.raises(TransportError) as exc_info:
            await transport.send("GET", "/storage/attachment/acct-1/user-1/x")

        assert exc_info.value.status_code is None
        assert "connection refused" in str(exc_info.value)
