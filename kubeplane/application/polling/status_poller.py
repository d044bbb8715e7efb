"""
Status Poller

Architectural Intent:
- Generic "wait until a resource reaches a terminal status" engine shared
  by the cluster and node-group managers
- Turns fire-then-poll provider behavior into a bounded, awaitable step

Design Decisions:
- Every poll loop has a deadline; nothing here waits indefinitely
- Cadence is fixed, optionally with deterministic exponential backoff
  (interval * factor**n, capped at max_interval); the last sleep is clipped
  so the loop never oversleeps the deadline
- Only the calling task is suspended (asyncio.sleep); cancelling it
  abandons the wait without touching the provider operation
- A timeout is reported, never interpreted: the last observed resource is
  returned and a later get() is the source of truth
- Clock and sleep are injectable so deadline behavior is testable without
  real waiting
"""

from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Collection, Generic, Optional, TypeVar

from kubeplane.domain.errors import NotFoundError, ProvisioningTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollResult(Generic[T]):
    resource: Optional[T]
    terminal: bool
    attempts: int
    elapsed: float
    absent: bool = False

    @property
    def timed_out(self) -> bool:
        return not self.terminal


def _status_of(resource: Any) -> Any:
    return resource.status


class StatusPoller:
    def __init__(
        self,
        timeout: float = 1800.0,
        interval: float = 10.0,
        backoff_factor: float = 1.0,
        max_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if backoff_factor < 1.0:
            raise ValueError("backoff_factor must be >= 1.0")
        self.timeout = timeout
        self.interval = interval
        self.backoff_factor = backoff_factor
        self.max_interval = max(max_interval, interval)
        self._clock = clock
        self._sleep = sleep

    def next_interval(self, attempt: int) -> float:
        """Delay after the given (1-based) attempt."""
        delay = self.interval * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_interval)

    async def poll(
        self,
        accessor: Callable[[], Awaitable[T]],
        terminal_statuses: Collection[Any],
        timeout: Optional[float] = None,
        absent_is_terminal: bool = False,
        status_of: Callable[[T], Any] = _status_of,
    ) -> PollResult[T]:
        """
        Call accessor until its status is terminal or the deadline elapses.

        When absent_is_terminal is set, a NotFoundError from the accessor
        ends the loop as a terminal observation (delete flows).
        """
        limit = self.timeout if timeout is None else timeout
        if limit <= 0:
            raise ValueError(f"timeout must be positive, got {limit}")

        start = self._clock()
        deadline = start + limit
        last: Optional[T] = None
        attempt = 0

        while True:
            attempt += 1
            try:
                resource = await accessor()
            except NotFoundError:
                if not absent_is_terminal:
                    raise
                logger.debug("Resource absent after %d attempt(s)", attempt)
                return PollResult(
                    resource=last,
                    terminal=True,
                    attempts=attempt,
                    elapsed=self._clock() - start,
                    absent=True,
                )

            last = resource
            status = status_of(resource)
            if status in terminal_statuses:
                elapsed = self._clock() - start
                logger.debug(
                    "Terminal status %s after %d attempt(s), %.1fs",
                    status, attempt, elapsed,
                )
                return PollResult(
                    resource=resource,
                    terminal=True,
                    attempts=attempt,
                    elapsed=elapsed,
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                elapsed = self._clock() - start
                logger.warning(
                    "Gave up waiting after %.1fs (%d attempts), last status %s",
                    elapsed, attempt, status,
                )
                return PollResult(
                    resource=last,
                    terminal=False,
                    attempts=attempt,
                    elapsed=elapsed,
                )

            await self._sleep(min(self.next_interval(attempt), remaining))

    async def wait_for(
        self,
        accessor: Callable[[], Awaitable[T]],
        terminal_statuses: Collection[Any],
        operation: str,
        target: Any = None,
        timeout: Optional[float] = None,
        absent_is_terminal: bool = False,
        status_of: Callable[[T], Any] = _status_of,
    ) -> PollResult[T]:
        """Like poll(), but a timeout raises ProvisioningTimeoutError."""
        result = await self.poll(
            accessor,
            terminal_statuses,
            timeout=timeout,
            absent_is_terminal=absent_is_terminal,
            status_of=status_of,
        )
        if result.timed_out:
            last_status = (
                status_of(result.resource) if result.resource is not None else None
            )
            raise ProvisioningTimeoutError(
                f"Timed out after {result.elapsed:.1f}s waiting for "
                f"{sorted(str(s) for s in terminal_statuses)}; last status "
                f"{last_status}; the operation may still complete",
                last_observed=result.resource,
                operation=operation,
                target=target,
            )
        return result
