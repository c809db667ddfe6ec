"""Error taxonomy for lifecycle operations.

Every error raised out of a lifecycle call derives from ConvergeError and
carries enough context (resource kind, identifier, last status, elapsed
time) to diagnose the failure without re-querying the remote system.
"""

from __future__ import annotations

from typing import Any


class ConvergeError(Exception):
    """Base class for all converge errors."""

    pass


class TransportError(ConvergeError):
    """Raised when a request fails at the network or HTTP layer."""

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.path = path
        self.status_code = status_code


class ResourceNotFound(TransportError):
    """Raised when the remote resource does not exist (HTTP 404).

    Delete lifecycles treat this as the convergence signal.
    """

    pass


class CodecError(ConvergeError):
    """Raised when a response body cannot be decoded."""

    pass


class InvalidResponse(CodecError):
    """Raised when a decoded response does not fit the resource's model."""

    def __init__(
        self,
        kind: str,
        identifier: str | None,
        reason: str,
        *,
        elapsed: float | None = None,
    ) -> None:
        self.kind = kind
        self.identifier = identifier
        self.reason = reason
        self.elapsed = elapsed
        target = f"{kind} {identifier}" if identifier else kind
        message = f"Invalid {target} response: {reason}"
        if elapsed is not None:
            message += f" after {elapsed:.1f}s"
        super().__init__(message)


class WaitValidationError(ConvergeError, ValueError):
    """Raised when a wait is configured with an invalid interval or timeout."""

    pass


class WaitCancelled(ConvergeError):
    """Raised by a probe when the caller's cancellation signal is set."""

    def __init__(self, description: str) -> None:
        super().__init__(f"Cancelled while waiting for {description}")
        self.description = description


class ConvergenceTimeout(ConvergeError):
    """Raised when a wait exceeds its timeout without converging."""

    def __init__(
        self,
        description: str,
        *,
        timeout: float,
        elapsed: float,
        attempts: int,
        kind: str | None = None,
        identifier: str | None = None,
        last_status: str | None = None,
    ) -> None:
        self.description = description
        self.timeout = timeout
        self.elapsed = elapsed
        self.attempts = attempts
        self.kind = kind
        self.identifier = identifier
        self.last_status = last_status
        super().__init__(self._format())

    def _format(self) -> str:
        message = (
            f"Timeout waiting for {self.description} after {self.elapsed:.1f}s "
            f"(timeout {self.timeout:.1f}s, {self.attempts} attempts)"
        )
        if self.identifier is not None:
            message += f": {self.kind} {self.identifier}"
        if self.last_status is not None:
            message += f", last status '{self.last_status}'"
        return message

    def with_context(
        self,
        *,
        kind: str,
        identifier: str,
        last_status: str | None,
    ) -> ConvergenceTimeout:
        """Attach resource context in place and return self for re-raising."""
        self.kind = kind
        self.identifier = identifier
        self.last_status = last_status
        self.args = (self._format(),)
        return self


class ResourceFailed(ConvergeError):
    """Raised when a resource reaches a terminal failure status.

    For composite resources, ``child`` names the object that carried the
    failure and the cause/detail/error fields come from that object's health
    rather than the parent's generic status.
    """

    def __init__(
        self,
        kind: str,
        identifier: str,
        status: str,
        *,
        cause: str | None = None,
        detail: str | None = None,
        error: str | None = None,
        child: str | None = None,
        elapsed: float | None = None,
    ) -> None:
        self.kind = kind
        self.identifier = identifier
        self.status = status
        self.cause = cause
        self.detail = detail
        self.error = error
        self.child = child
        self.elapsed = elapsed
        super().__init__(self._format())

    def _format(self) -> str:
        subject = f"{self.kind} {self.identifier}"
        if self.child:
            subject += f" (object {self.child})"
        message = f"Error in {subject}: status '{self.status}'"
        details = [
            f"{label}: {value}"
            for label, value in (
                ("cause", self.cause),
                ("detail", self.detail),
                ("error", self.error),
            )
            if value
        ]
        if details:
            message += " [" + "; ".join(details) + "]"
        if self.elapsed is not None:
            message += f" after {self.elapsed:.1f}s"
        return message

    def to_dict(self) -> dict[str, Any]:
        """Structured form for logging."""
        return {
            "kind": self.kind,
            "identifier": self.identifier,
            "status": self.status,
            "cause": self.cause,
            "detail": self.detail,
            "error": self.error,
            "child": self.child,
            "elapsed_seconds": self.elapsed,
        }


class UnknownStatus(ConvergeError):
    """Raised when a status is not in the resource kind's state table.

    Always fatal: an unrecognised status most likely means the server is in
    a state this client does not understand, and waiting on it could hang.
    """

    def __init__(
        self,
        kind: str,
        status: str | None,
        identifier: str | None = None,
        elapsed: float | None = None,
    ) -> None:
        self.kind = kind
        self.status = status
        self.identifier = identifier
        self.elapsed = elapsed
        target = f"{kind} {identifier}" if identifier else kind
        message = f"Unknown {target} state: '{status}'"
        if elapsed is not None:
            message += f" after {elapsed:.1f}s"
        super().__init__(message)


class RollbackError(ConvergeError):
    """Raised when the compensating delete after a failed create also fails.

    ``original`` is the creation failure and is the primary cause;
    ``rollback_error`` is the secondary deletion failure.
    """

    def __init__(self, original: BaseException, rollback_error: BaseException) -> None:
        self.original = original
        self.rollback_error = rollback_error
        super().__init__(f"{original} (rollback also failed: {rollback_error})")
        self.__cause__ = original
