"""Request transport for the compute API.

``Transport`` is the only seam lifecycle code talks to; tests substitute an
in-memory implementation. ``HttpTransport`` is the production one, built on
the azure-core pipeline.

Retries are disabled in the pipeline: the polling loop re-samples transient
states itself, and a single failed request is surfaced rather than retried.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Protocol

from azure.core import PipelineClient
from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
    map_error,
)
from azure.core.pipeline.policies import (
    BearerTokenCredentialPolicy,
    HeadersPolicy,
    NetworkTraceLoggingPolicy,
    RetryPolicy,
    UserAgentPolicy,
)
from azure.core.rest import HttpRequest

from .errors import ResourceNotFound, TransportError

logger = logging.getLogger(__name__)

COMPUTE_CONTENT_TYPE = "application/oracle-compute-v3+json"
USER_AGENT = "converge-compute-client"

ERROR_MAP = {
    401: ClientAuthenticationError,
    404: ResourceNotFoundError,
    409: ResourceExistsError,
}


class Transport(Protocol):
    """Issues a request and returns the raw response body.

    Implementations raise ResourceNotFound for a missing resource and
    TransportError for any other failure. They must be safe to share across
    concurrent lifecycle calls.
    """

    async def send(self, method: str, path: str, body: bytes | None = None) -> bytes: ...


class HttpTransport:
    """Transport over HTTPS using an azure-core PipelineClient.

    The blocking pipeline runs in the event loop's default executor, the same
    way long-running SDK pollers are awaited elsewhere.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        credential: TokenCredential | None = None,
        token_scope: str | None = None,
        content_type: str = COMPUTE_CONTENT_TYPE,
        user_agent: str = USER_AGENT,
    ) -> None:
        if credential is not None and not token_scope:
            raise ValueError("token_scope is required when a credential is given")

        self._endpoint = endpoint.rstrip("/")
        self._content_type = content_type

        policies = [
            HeadersPolicy({"Accept": content_type}),
            UserAgentPolicy(base_user_agent=user_agent),
            RetryPolicy.no_retries(),
        ]
        if credential is not None:
            policies.append(BearerTokenCredentialPolicy(credential, token_scope))
        policies.append(NetworkTraceLoggingPolicy())

        self._client = PipelineClient(base_url=self._endpoint, policies=policies)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def send(self, method: str, path: str, body: bytes | None = None) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._send_sync, method, path, body)
        )

    def _send_sync(self, method: str, path: str, body: bytes | None) -> bytes:
        headers = {"Content-Type": self._content_type} if body is not None else None
        request = HttpRequest(method, self._endpoint + path, headers=headers, content=body)

        logger.debug("HTTP request", extra={"method": method, "path": path})

        try:
            response = self._client.send_request(request)
            if response.status_code >= 400:
                map_error(status_code=response.status_code, response=response, error_map=ERROR_MAP)
                raise HttpResponseError(response=response)
            return response.content
        except ResourceNotFoundError as e:
            raise ResourceNotFound(
                f"{method} {path}: not found", method=method, path=path, status_code=404
            ) from e
        except HttpResponseError as e:
            raise TransportError(
                f"{method} {path} failed with status {e.status_code}: {e.message}",
                method=method,
                path=path,
                status_code=e.status_code,
            ) from e
        except AzureError as e:
            raise TransportError(f"{method} {path} failed: {e}", method=method, path=path) from e
