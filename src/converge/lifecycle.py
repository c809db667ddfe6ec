"""Create/get/update/delete workflows that drive a resource to convergence.

Every lifecycle call follows the same sequence:

1. Qualify identifiers in the caller's input (per resource kind).
2. Submit the request through the Transport.
3. Poll the resource with the Poll Engine, classifying each sample with
   the kind's StateMachine.
4. Unqualify identifiers in the converged result and return it.

A failed create is compensated by deleting whatever was partially created.
Updates are never rolled back: the resource existed before the call, and
there is no well-defined prior state to roll back to.

Phases of a call:

    SUBMITTED -> POLLING -> CONVERGED | FAILED | TIMED_OUT
    (create only) FAILED | TIMED_OUT -> ROLLING_BACK -> ROLLED_BACK | ROLLBACK_FAILED
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, NoReturn

from pydantic import BaseModel, ValidationError

from .codec import Codec, JsonCodec
from .errors import (
    ConvergeError,
    ConvergenceTimeout,
    InvalidResponse,
    ResourceFailed,
    ResourceNotFound,
    RollbackError,
)
from .naming import Scope, qualify, unqualify
from .states import StateMachine, StatusClass
from .transport import Transport
from .waiter import Probe, WaitSpec, cancellable

logger = logging.getLogger(__name__)


class LifecyclePhase(str, Enum):
    """Phase of a single lifecycle call."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    CONVERGED = "converged"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"


@dataclass(frozen=True)
class ResourceKind:
    """Static description of a resource kind: where it lives and how it converges."""

    description: str
    container_path: str
    root_path: str
    result_model: type[BaseModel]
    ready: StateMachine
    deleted: StateMachine
    ready_wait: WaitSpec
    delete_wait: WaitSpec
    rollback_on_failure: bool = True
    delete_query: str = ""


@dataclass
class Lifecycle:
    """Per-call state threaded through one create/update/delete.

    Owned by the call that created it; never shared between calls.
    """

    operation: str
    kind: str
    name: str
    identifier: str
    wait: WaitSpec
    payload: BaseModel | None = None
    phase: LifecyclePhase = LifecyclePhase.SUBMITTED
    history: list[LifecyclePhase] = field(default_factory=list)
    last_status: str | None = None
    started: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    def transition(self, phase: LifecyclePhase) -> None:
        self.phase = phase
        self.history.append(phase)
        log = logger.warning if phase in _UNHAPPY_PHASES else logger.info
        log(
            f"{self.kind} {self.operation} {phase.value}",
            extra={
                "operation": self.operation,
                "kind": self.kind,
                "resource": self.name,
                "phase": phase.value,
                "last_status": self.last_status,
                "elapsed_seconds": round(self.elapsed, 3),
            },
        )


_UNHAPPY_PHASES = frozenset(
    {
        LifecyclePhase.FAILED,
        LifecyclePhase.TIMED_OUT,
        LifecyclePhase.ROLLING_BACK,
        LifecyclePhase.ROLLBACK_FAILED,
    }
)


class ResourceClient:
    """Lifecycle orchestrator for one resource kind.

    Subclasses set ``kind`` and implement the identifier translation hooks
    ``qualify_input`` and ``unqualify_result``; composite kinds also override
    ``failure_of`` to surface a failing child object.
    """

    kind: ClassVar[ResourceKind]

    def __init__(self, scope: Scope, transport: Transport, codec: Codec | None = None) -> None:
        self._scope = scope
        self._transport = transport
        self._codec = codec or JsonCodec()

    @property
    def scope(self) -> Scope:
        return self._scope

    # -------------------------------------------------------------------------
    # Per-kind hooks
    # -------------------------------------------------------------------------

    def qualify_input(self, payload: BaseModel) -> BaseModel:
        return payload

    def unqualify_result(self, result: Any) -> Any:
        return result

    def identifier_of(self, result: Any) -> str:
        return result.name

    def status_of(self, result: Any) -> str | None:
        return getattr(result, "status", None)

    def desired_of(self, result: Any) -> str | None:
        return None

    def failure_of(self, result: Any, lifecycle: Lifecycle) -> ResourceFailed:
        return ResourceFailed(
            self.kind.description,
            lifecycle.name,
            self.status_of(result) or "unknown",
            elapsed=lifecycle.elapsed,
        )

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def object_path(self, identifier: str) -> str:
        return self.kind.root_path + identifier

    async def _request(self, method: str, path: str, payload: BaseModel | None = None) -> Any:
        body = None
        if payload is not None:
            body = self._codec.encode(payload.model_dump(mode="json", exclude_none=True))
        data = await self._transport.send(method, path, body)
        return self._codec.decode(data)

    def _parse(self, raw: Any, identifier: str | None, lifecycle: Lifecycle | None = None) -> Any:
        try:
            return self.kind.result_model.model_validate(raw)
        except ValidationError as e:
            reason = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
                for error in e.errors()
            )
            raise InvalidResponse(
                self.kind.description,
                unqualify(self._scope, identifier) if identifier else None,
                reason,
                elapsed=lifecycle.elapsed if lifecycle else None,
            ) from e

    async def _fetch(self, identifier: str, lifecycle: Lifecycle | None = None) -> Any:
        """GET the resource by qualified identifier; the result stays qualified."""
        raw = await self._request("GET", self.object_path(identifier))
        return self._parse(raw, identifier, lifecycle)

    def _wait_spec(
        self, default: WaitSpec, poll_interval: float | None, timeout: float | None
    ) -> WaitSpec:
        # A timeout shorter than the kind's default interval polls at the timeout
        if poll_interval is None and timeout is not None and timeout < default.poll_interval:
            poll_interval = timeout
        return default.with_overrides(poll_interval=poll_interval, timeout=timeout)

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    async def get(self, name: str) -> Any:
        """Fetch a resource by short name.

        Raises:
            ResourceNotFound: If the resource does not exist.
        """
        result = await self._fetch(qualify(self._scope, name))
        return self.unqualify_result(result)

    async def create(
        self,
        payload: BaseModel,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """Create a resource and wait for it to converge.

        On convergence failure the partially created resource is deleted
        before the original error is re-raised.

        Raises:
            ResourceFailed: The resource reached a terminal error status.
            ConvergenceTimeout: The resource did not converge in time.
            UnknownStatus: The server reported an unrecognised status.
            InvalidResponse: A sample did not fit the resource model.
            RollbackError: The compensating delete failed as well.
        """
        wait = self._wait_spec(self.kind.ready_wait, poll_interval, timeout)
        qualified_payload = self.qualify_input(payload)

        created = self._parse(
            await self._request("POST", self.kind.container_path, qualified_payload),
            getattr(qualified_payload, "name", None),
        )
        identifier = self.identifier_of(created)
        lifecycle = Lifecycle(
            operation="create",
            kind=self.kind.description,
            name=unqualify(self._scope, identifier),
            identifier=identifier,
            wait=wait,
            payload=qualified_payload,
        )
        lifecycle.transition(LifecyclePhase.SUBMITTED)

        try:
            result = await self._await_ready(lifecycle, cancel)
        except Exception as e:
            if not self.kind.rollback_on_failure:
                raise
            await self._rollback(lifecycle, e)

        return self.unqualify_result(result)

    async def update(
        self,
        name: str,
        payload: BaseModel,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        """Update a resource and wait for it to converge. Never rolled back."""
        wait = self._wait_spec(self.kind.ready_wait, poll_interval, timeout)
        qualified_payload = self.qualify_input(payload)
        identifier = qualify(self._scope, name)

        await self._request("PUT", self.object_path(identifier), qualified_payload)
        lifecycle = Lifecycle(
            operation="update",
            kind=self.kind.description,
            name=unqualify(self._scope, identifier),
            identifier=identifier,
            wait=wait,
            payload=qualified_payload,
        )
        lifecycle.transition(LifecyclePhase.SUBMITTED)

        result = await self._await_ready(lifecycle, cancel)
        return self.unqualify_result(result)

    async def delete(
        self,
        name: str,
        *,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Delete a resource and wait until it is gone."""
        wait = self._wait_spec(self.kind.delete_wait, poll_interval, timeout)
        await self._delete_identifier(qualify(self._scope, name), wait, cancel)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _await_ready(self, lifecycle: Lifecycle, cancel: asyncio.Event | None) -> Any:
        ready = self.kind.ready
        latest: Any = None

        async def probe() -> bool:
            nonlocal latest
            latest = await self._fetch(lifecycle.identifier, lifecycle)
            status = self.status_of(latest)
            lifecycle.last_status = status

            match ready.require(
                status,
                self.desired_of(latest),
                identifier=lifecycle.name,
                elapsed=lifecycle.elapsed,
            ):
                case StatusClass.CONVERGED:
                    return True
                case StatusClass.FAILED:
                    raise self.failure_of(latest, lifecycle)
                case _:
                    logger.debug(
                        f"{lifecycle.kind} {status}",
                        extra={"resource": lifecycle.name, "status": status},
                    )
                    return False

        await self._poll(lifecycle, probe, cancel)
        return latest

    async def _delete_identifier(
        self, identifier: str, wait: WaitSpec, cancel: asyncio.Event | None
    ) -> None:
        lifecycle = Lifecycle(
            operation="delete",
            kind=self.kind.description,
            name=unqualify(self._scope, identifier),
            identifier=identifier,
            wait=wait,
        )

        try:
            await self._request("DELETE", self.object_path(identifier) + self.kind.delete_query)
        except ResourceNotFound:
            logger.info(
                f"{lifecycle.kind} already deleted",
                extra={"resource": lifecycle.name},
            )
            lifecycle.transition(LifecyclePhase.CONVERGED)
            return
        lifecycle.transition(LifecyclePhase.SUBMITTED)

        deleted = self.kind.deleted

        async def probe() -> bool:
            try:
                current = await self._fetch(identifier, lifecycle)
            except ResourceNotFound:
                return True

            status = self.status_of(current)
            lifecycle.last_status = status

            match deleted.require(status, identifier=lifecycle.name, elapsed=lifecycle.elapsed):
                case StatusClass.FAILED:
                    raise self.failure_of(current, lifecycle)
                case _:
                    logger.debug(
                        f"{lifecycle.kind} {status}",
                        extra={"resource": lifecycle.name, "status": status},
                    )
                    return False

        await self._poll(lifecycle, probe, cancel)

    async def _poll(
        self, lifecycle: Lifecycle, probe: Probe, cancel: asyncio.Event | None
    ) -> None:
        lifecycle.transition(LifecyclePhase.POLLING)
        description = f"{lifecycle.kind} {lifecycle.name} to be {_GOALS[lifecycle.operation]}"
        wait = lifecycle.wait.with_overrides(description=description)

        try:
            await wait.wait(cancellable(probe, cancel, description))
        except ConvergenceTimeout as e:
            lifecycle.transition(LifecyclePhase.TIMED_OUT)
            raise e.with_context(
                kind=lifecycle.kind,
                identifier=lifecycle.name,
                last_status=lifecycle.last_status,
            )
        except ConvergeError:
            lifecycle.transition(LifecyclePhase.FAILED)
            raise

        lifecycle.transition(LifecyclePhase.CONVERGED)

    async def _rollback(self, lifecycle: Lifecycle, original: Exception) -> NoReturn:
        lifecycle.transition(LifecyclePhase.ROLLING_BACK)
        try:
            await self._delete_identifier(lifecycle.identifier, self.kind.delete_wait, None)
        except ConvergeError as rollback_error:
            lifecycle.transition(LifecyclePhase.ROLLBACK_FAILED)
            logger.error(
                f"Error deleting {lifecycle.kind} {lifecycle.name} after failed create",
                extra={
                    "resource": lifecycle.name,
                    "original_error": str(original),
                    "rollback_error": str(rollback_error),
                },
            )
            raise RollbackError(original, rollback_error) from original

        lifecycle.transition(LifecyclePhase.ROLLED_BACK)
        raise original


_GOALS = {"create": "ready", "update": "ready", "delete": "deleted"}
