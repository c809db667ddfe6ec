"""Explicit client context shared by the per-kind resource clients."""

from __future__ import annotations

import logging

from azure.core.credentials import TokenCredential

from .codec import Codec, JsonCodec
from .config import Config
from .naming import Scope
from .resources.orchestrations import OrchestrationsClient
from .resources.storage_attachments import StorageAttachmentsClient
from .security import enforce_secretless_architecture, get_managed_identity_credential
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)


class ComputeClient:
    """Scope, transport and codec for one caller session.

    Nothing here is module-level state: sessions with different scopes can
    run side by side. The scope is read-only and the transport is safe to
    share, so resource clients handed out by one ComputeClient may be used
    concurrently.
    """

    def __init__(self, scope: Scope, transport: Transport, codec: Codec | None = None) -> None:
        self._scope = scope
        self._transport = transport
        self._codec = codec or JsonCodec()

    @classmethod
    def from_config(
        cls, config: Config, credential: TokenCredential | None = None
    ) -> ComputeClient:
        """Build a client backed by HttpTransport.

        When ``config.token_scope`` is set and no credential is given, a
        managed identity credential is used.

        Raises:
            SecretlessViolationError: If secrets are present in the environment.
        """
        enforce_secretless_architecture()

        if config.token_scope and credential is None:
            credential = get_managed_identity_credential(config.managed_identity_client_id)

        transport = HttpTransport(
            config.endpoint,
            credential=credential if config.token_scope else None,
            token_scope=config.token_scope,
        )
        logger.info(
            "Compute client configured",
            extra={
                "endpoint": config.endpoint,
                "scope": config.scope.prefix,
                "bearer_auth": bool(config.token_scope),
            },
        )
        return cls(config.scope, transport)

    @property
    def scope(self) -> Scope:
        return self._scope

    def storage_attachments(self) -> StorageAttachmentsClient:
        return StorageAttachmentsClient(self._scope, self._transport, self._codec)

    def orchestrations(self) -> OrchestrationsClient:
        return OrchestrationsClient(self._scope, self._transport, self._codec)
