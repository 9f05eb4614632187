"""Shared httpx client handling for HTTP model adapters.

An httpx.AsyncClient pools connections on the event loop that opened
them. Hosts that run every build under its own asyncio.run() would find
the pool of a closed loop on the second build, so an adapter that owns
its client opens a fresh one whenever the running loop changes.
"""

import asyncio
import logging

import httpx

from medic.core.ports import ModelPort

logger = logging.getLogger(__name__)


class HttpChatAdapter(ModelPort):
    """Base for adapters that talk to a chat API over httpx."""

    def __init__(self, timeout: float, client: httpx.AsyncClient | None = None):
        """Initialize client handling.

        Args:
            timeout: Per-request timeout for clients this adapter opens.
            client: Optional preconfigured httpx client. An injected client
                is used as-is and never replaced.
        """
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._client_loop: asyncio.AbstractEventLoop | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Return a client usable on the running event loop."""
        loop = asyncio.get_running_loop()
        if self._client_loop is None:
            self._client_loop = loop
        elif self._client_loop is not loop and self._owns_client:
            logger.debug("Event loop changed since last request, opening a new HTTP client")
            self.client = httpx.AsyncClient(timeout=self.timeout)
            self._client_loop = loop
        return self.client

    async def close(self) -> None:
        """Close the httpx client and clean up resources.

        A client whose loop has already finished is dropped without
        closing; its connections went with that loop.
        """
        if self._client_loop not in (None, asyncio.get_running_loop()):
            logger.debug("HTTP client belongs to a finished event loop, not closing it")
            return
        await self.client.aclose()
