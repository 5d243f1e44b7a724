"""
Request context shared by the routes.

Built once per application in the lifespan and injected with
Depends(get_context), so several differently configured apps can live in
one process (tests do this).
"""

import logging

import httpx
from fastapi import Request

from backend_registry import BackendRegistry
from fanout import FanOutCoordinator, TaskSupervisor
from relay_client import RelayClient, REQUEST_TIMEOUT_SECONDS
from schemas import RelayConfig


class RelayContext:
    """Everything a request handler needs: registry, clients, debug sink."""

    def __init__(
        self,
        config: RelayConfig,
        http_client: httpx.AsyncClient,
        logger: logging.Logger,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.config = config
        self.logger = logger
        self.registry = BackendRegistry(config.backends)
        self.http_client = http_client
        self.relay_client = RelayClient(http_client, logger.getChild("relay"), timeout=timeout)
        self.supervisor = TaskSupervisor(logger.getChild("tasks"))
        self.coordinator = FanOutCoordinator(
            self.registry,
            self.relay_client,
            self.supervisor,
            logger.getChild("fanout"),
            warn_on_secondary_failure=config.warn_on_secondary_failure,
        )

    async def close(self) -> None:
        """Let mirrored requests finish, then release connections."""
        await self.supervisor.drain()
        await self.http_client.aclose()


def get_context(request: Request) -> RelayContext:
    return request.app.state.context
