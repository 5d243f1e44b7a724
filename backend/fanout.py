"""
Fan-Out Coordinator - mirrors write traffic to every backend.

One asyncio task per backend is started for each inbound write. The caller
waits for the primary task only; secondary tasks close their own responses
and are kept alive by a TaskSupervisor until they finish, so a slow or
failing secondary never delays or alters what the caller receives.
"""

import asyncio
import logging
from typing import Coroutine, Optional, Set

from backend_registry import BackendRegistry
from relay_client import Operation, RelayClient, Success, TransportFailure
from relay_errors import PrimaryUnavailableError
from schemas import BackendConfig

DRAIN_TIMEOUT_SECONDS = 15.0


class TaskSupervisor:
    """
    Owns background tasks that outlive the request that started them.

    Holds a strong reference to every task until it finishes (the event loop
    only keeps weak ones) and can wait for all of them on shutdown.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Background task {task.get_name()} crashed: {error!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = DRAIN_TIMEOUT_SECONDS) -> None:
        """Wait for outstanding tasks; cancel whatever is left after `timeout`."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        self.logger.info(f"Waiting for {len(tasks)} mirrored request(s) to finish...")
        done, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            self.logger.warning(f"Cancelled {len(still_running)} mirrored request(s) at shutdown")


class FanOutCoordinator:
    """Sends one write to all backends and returns the primary's outcome."""

    def __init__(
        self,
        registry: BackendRegistry,
        relay_client: RelayClient,
        supervisor: TaskSupervisor,
        logger: logging.Logger,
        warn_on_secondary_failure: bool = False,
    ):
        self.registry = registry
        self.relay_client = relay_client
        self.supervisor = supervisor
        self.logger = logger
        self.secondary_failure_level = logging.WARNING if warn_on_secondary_failure else logging.DEBUG

    async def dispatch(self, operation: Operation, body: bytes, user_agent: Optional[str]) -> Success:
        """
        Start a call per backend and wait for the primary only.

        Raises PrimaryUnavailableError if the primary call fails at the
        transport level, or if no backend is marked primary.
        """
        primary_task: Optional[asyncio.Task] = None

        for backend in self.registry:
            call = self.relay_client.call(operation, backend, body, user_agent)
            if backend.is_primary and primary_task is None:
                primary_task = asyncio.create_task(call, name=f"{operation.value}:{backend.name}")
            else:
                self.supervisor.spawn(
                    self._mirror(call, backend, operation),
                    name=f"mirror-{operation.value}:{backend.name}",
                )

        if primary_task is None:
            self.logger.error("No primary backend in registry; cannot answer write request")
            raise PrimaryUnavailableError("no primary backend configured")

        outcome = await primary_task
        if isinstance(outcome, TransportFailure):
            self.logger.debug(f"Primary backend error: {outcome.error}")
            raise PrimaryUnavailableError(
                f"primary backend {outcome.backend.name} unreachable", cause=outcome.error,
            )
        return outcome

    async def _mirror(self, call: Coroutine, backend: BackendConfig, operation: Operation) -> None:
        outcome = await call
        if isinstance(outcome, TransportFailure):
            self.logger.log(
                self.secondary_failure_level,
                f"Secondary backend {backend.name} failed {operation.value}: {outcome.error}",
            )
            return
        await outcome.response.aclose()
        self.logger.debug(f"Secondary backend {backend.name} answered {operation.value} with {outcome.status_code}")
