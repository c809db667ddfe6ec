"""Generic poll-until-converged primitive.

The engine knows nothing about resource kinds. A probe reports True when
the condition holds, False when it should be sampled again, and raises to
abort the wait. Probe errors are never swallowed or retried here; retrying
transient failures is the probe's own business.

Timeouts are wall-clock, measured against a monotonic clock captured when
the wait starts, so a slow remote API can exhaust the budget in fewer
iterations than ``timeout / poll_interval``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from .errors import ConvergenceTimeout, WaitCancelled, WaitValidationError

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class WaitSpec:
    """Poll interval and timeout (seconds) governing a single wait."""

    poll_interval: float
    timeout: float
    description: str = "resource to converge"

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise WaitValidationError(
                f"poll_interval must be positive: {self.poll_interval}"
            )
        if self.timeout < self.poll_interval:
            raise WaitValidationError(
                f"timeout ({self.timeout}) must be at least poll_interval ({self.poll_interval})"
            )

    def with_overrides(
        self,
        poll_interval: float | None = None,
        timeout: float | None = None,
        description: str | None = None,
    ) -> WaitSpec:
        """Return a copy with any caller-supplied values applied."""
        return replace(
            self,
            poll_interval=self.poll_interval if poll_interval is None else poll_interval,
            timeout=self.timeout if timeout is None else timeout,
            description=self.description if description is None else description,
        )

    async def wait(
        self,
        probe: Probe,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> int:
        return await wait_for(
            self.description,
            self.poll_interval,
            self.timeout,
            probe,
            clock=clock,
            sleep=sleep,
        )


async def wait_for(
    description: str,
    poll_interval: float,
    timeout: float,
    probe: Probe,
    *,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """Invoke ``probe`` until it returns True, raises, or time runs out.

    The first probe runs immediately. Between probes the engine sleeps
    ``poll_interval``; the last sleep is clipped so the final probe lands
    on the deadline, and no probe runs once the timeout has fired.

    Args:
        description: What is being waited for; included in timeout errors.
        poll_interval: Seconds to sleep between probes.
        timeout: Wall-clock budget in seconds.
        probe: Async callable returning True once converged.
        clock: Monotonic clock, injectable for tests.
        sleep: Async sleep, injectable for tests.

    Returns:
        Number of probe invocations, including the converging one.

    Raises:
        WaitValidationError: If the interval or timeout is invalid.
        ConvergenceTimeout: If the timeout elapses without convergence.
        Exception: Whatever the probe raised, unchanged.
    """
    WaitSpec(poll_interval=poll_interval, timeout=timeout, description=description)

    start = clock()
    attempts = 0

    while True:
        attempts += 1
        if await probe():
            logger.debug(
                f"Finished waiting for {description}",
                extra={"attempts": attempts, "elapsed_seconds": clock() - start},
            )
            return attempts

        elapsed = clock() - start
        if elapsed >= timeout:
            raise ConvergenceTimeout(
                description, timeout=timeout, elapsed=elapsed, attempts=attempts
            )

        logger.debug(
            f"Waiting for {description}",
            extra={"attempt": attempts, "elapsed_seconds": elapsed},
        )
        await sleep(min(poll_interval, timeout - elapsed))


def cancellable(probe: Probe, event: asyncio.Event | None, description: str) -> Probe:
    """Wrap ``probe`` so it raises WaitCancelled once ``event`` is set.

    The engine has no preemption; the signal is observed at the start of
    each probe invocation.
    """
    if event is None:
        return probe

    async def _probe() -> bool:
        if event.is_set():
            raise WaitCancelled(description)
        return await probe()

    return _probe
