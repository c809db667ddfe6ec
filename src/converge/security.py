"""Token credential construction for the HTTP transport.

The client never handles passwords or client secrets itself. Bearer tokens
come from a managed identity, and the client refuses to start while
secret-bearing variables are present in the environment, whether or not
bearer authentication is enabled.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from azure.identity import ManagedIdentityCredential

logger = logging.getLogger(__name__)

# Variables that would let a credential chain fall back to a stored secret,
# plus the compute API's own basic-auth password
FORBIDDEN_CREDENTIAL_ENV_VARS: tuple[str, ...] = (
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PATH",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZURE_USERNAME",
    "AZURE_PASSWORD",
    "COMPUTE_PASSWORD",
)

SECRETLESS_VIOLATION_MESSAGE = (
    "SECURITY VIOLATION: {env_vars} set. The compute client authenticates "
    "with a managed identity only; remove secret-bearing variables from the "
    "environment and grant the identity access to the compute endpoint instead."
)


class SecretlessViolationError(Exception):
    """Raised when a secret-bearing variable is found in the environment."""

    def __init__(self, env_vars: list[str]) -> None:
        self.env_vars = env_vars
        joined = ", ".join(env_vars)
        super().__init__(
            SECRETLESS_VIOLATION_MESSAGE.format(
                env_vars=f"{joined} is" if len(env_vars) == 1 else f"{joined} are"
            )
        )


def find_credential_env_vars(environ: Mapping[str, str] | None = None) -> list[str]:
    """Names of forbidden variables that are set to a non-empty value."""
    environ = os.environ if environ is None else environ
    return [name for name in FORBIDDEN_CREDENTIAL_ENV_VARS if environ.get(name)]


def enforce_secretless_architecture() -> None:
    """Refuse to continue if any credential secret is in the environment.

    Every offending variable is reported, not only the first one found.

    Raises:
        SecretlessViolationError: If any forbidden variable is set.
    """
    offending = find_credential_env_vars()
    if not offending:
        return

    logger.critical(
        "Refusing to start with credentials in the environment",
        extra={"security_event": "credential_detected", "env_vars": offending},
    )
    raise SecretlessViolationError(offending)


def get_managed_identity_credential(
    client_id: str | None = None,
) -> ManagedIdentityCredential:
    """Managed identity credential for bearer authentication.

    Args:
        client_id: Client ID of a user-assigned identity; system-assigned if None.

    Raises:
        SecretlessViolationError: If credential environment variables detected.
    """
    enforce_secretless_architecture()

    if not client_id:
        logger.info("Authenticating with the system-assigned managed identity")
        return ManagedIdentityCredential()

    logger.info(
        "Authenticating with a user-assigned managed identity",
        extra={"client_id_prefix": client_id[:8]},
    )
    return ManagedIdentityCredential(client_id=client_id)
