"""Configuration management with validation.

Invalid configuration is rejected when the Config is constructed, before
any request reaches the compute API.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from .naming import Scope


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Wait defaults per resource kind (seconds)
STORAGE_ATTACHMENT_READY_POLL_INTERVAL_SECONDS = 1
STORAGE_ATTACHMENT_READY_TIMEOUT_SECONDS = 30
STORAGE_ATTACHMENT_DELETE_POLL_INTERVAL_SECONDS = 1
STORAGE_ATTACHMENT_DELETE_TIMEOUT_SECONDS = 30

ORCHESTRATION_POLL_INTERVAL_SECONDS = 3
ORCHESTRATION_ACTIVE_TIMEOUT_SECONDS = 3600
ORCHESTRATION_DELETE_TIMEOUT_SECONDS = 3600

MAX_WAIT_TIMEOUT_SECONDS = 24 * 3600

# Input limits
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file
MAX_ORCHESTRATION_OBJECTS = 100
MAX_OBJECT_LABEL_LENGTH = 256

# Input validation patterns
VALID_IDENTITY_DOMAIN_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]*$"
VALID_ENDPOINT_PATTERN = r"^(https://[^\s/]+|http://(localhost|127\.0\.0\.1)(:\d+)?)(/[^\s]*)?$"


@dataclass(frozen=True)
class Config:
    """Client configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError listing every problem found.
    """

    # Required fields
    endpoint: str
    identity_domain: str
    user: str

    # Authentication
    token_scope: str | None = None
    managed_identity_client_id: str | None = None

    # Wait overrides applied to every lifecycle call (None keeps per-kind defaults)
    poll_interval_seconds: float | None = None
    timeout_seconds: float | None = None

    # Paths
    specs_dir: Path = field(default_factory=lambda: Path("."))

    def __post_init__(self) -> None:
        errors: list[str] = []

        if not self.endpoint:
            errors.append("COMPUTE_ENDPOINT is required")
        elif not re.match(VALID_ENDPOINT_PATTERN, self.endpoint):
            errors.append(
                f"COMPUTE_ENDPOINT must be an https URL (http only for localhost): {self.endpoint}"
            )

        if not self.identity_domain:
            errors.append("COMPUTE_IDENTITY_DOMAIN is required")
        elif not re.match(VALID_IDENTITY_DOMAIN_PATTERN, self.identity_domain):
            errors.append(
                f"COMPUTE_IDENTITY_DOMAIN must match pattern "
                f"{VALID_IDENTITY_DOMAIN_PATTERN}: {self.identity_domain}"
            )

        if not self.user:
            errors.append("COMPUTE_USER is required")
        elif "/" in self.user:
            errors.append(f"COMPUTE_USER must not contain '/': {self.user}")

        if self.poll_interval_seconds is not None and self.poll_interval_seconds <= 0:
            errors.append("POLL_INTERVAL must be positive")

        if self.timeout_seconds is not None:
            if not (1 <= self.timeout_seconds <= MAX_WAIT_TIMEOUT_SECONDS):
                errors.append(
                    f"WAIT_TIMEOUT must be between 1 and {MAX_WAIT_TIMEOUT_SECONDS} seconds"
                )
            elif (
                self.poll_interval_seconds is not None
                and self.timeout_seconds < self.poll_interval_seconds
            ):
                errors.append("WAIT_TIMEOUT must be at least POLL_INTERVAL")

        if not self.specs_dir.exists():
            errors.append(f"Specs directory does not exist: {self.specs_dir}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def scope(self) -> Scope:
        """Namespace all of this caller's identifiers are rooted under."""
        return Scope.for_account(self.identity_domain, self.user)

    def wait_override(self) -> tuple[float | None, float | None]:
        """(poll_interval, timeout) overrides for lifecycle calls."""
        return self.poll_interval_seconds, self.timeout_seconds

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            COMPUTE_ENDPOINT: Base URL of the compute API
            COMPUTE_IDENTITY_DOMAIN: Identity domain (tenant) of the account
            COMPUTE_USER: User the objects are owned by
            COMPUTE_TOKEN_SCOPE: If set, requests carry a managed-identity bearer token
            AZURE_CLIENT_ID: Client ID of a user-assigned managed identity
            POLL_INTERVAL: Seconds between status polls (default: per resource kind)
            WAIT_TIMEOUT: Seconds to wait for convergence (default: per resource kind)
            SPECS_DIR: Base directory for relative spec paths (default: .)
        """

        def get_float(key: str) -> float | None:
            value = os.environ.get(key)
            if value is None or value == "":
                return None
            try:
                return float(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be a number: {value}") from e

        return cls(
            endpoint=os.environ.get("COMPUTE_ENDPOINT", ""),
            identity_domain=os.environ.get("COMPUTE_IDENTITY_DOMAIN", ""),
            user=os.environ.get("COMPUTE_USER", ""),
            token_scope=os.environ.get("COMPUTE_TOKEN_SCOPE") or None,
            managed_identity_client_id=os.environ.get("AZURE_CLIENT_ID") or None,
            poll_interval_seconds=get_float("POLL_INTERVAL"),
            timeout_seconds=get_float("WAIT_TIMEOUT"),
            specs_dir=Path(os.environ.get("SPECS_DIR", ".")),
        )
