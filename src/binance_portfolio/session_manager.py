"""
HTTP session lifecycle for aggregation cycles.

A cycle talks to three hosts (spot, USD-M futures, COIN-M futures) over one
``ClientSession``. The session is opened when the cycle starts and closed when
it ends, so nothing but configuration outlives a cycle.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp

from .constants import CONNECTIONS_PER_HOST, USER_AGENT
from .models.config import ConnectionConfig


class SessionManager:
    """Opens and closes the session used by one aggregation cycle."""

    def __init__(self, config: ConnectionConfig, connections_per_host: int = CONNECTIONS_PER_HOST):
        self._config = config
        self._connections_per_host = connections_per_host
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def session(self) -> Optional[aiohttp.ClientSession]:
        """Current session, if one is open."""
        return self._session

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    def _connector(self) -> aiohttp.TCPConnector:
        # Sub-account fan-out concentrates on the spot host; cap per host
        return aiohttp.TCPConnector(
            limit=self._connections_per_host * 3,
            limit_per_host=self._connections_per_host,
            ttl_dns_cache=300,
        )

    async def open_session(self) -> aiohttp.ClientSession:
        """Open the session, or return the one already open."""
        if self.is_open:
            return self._session

        self._session = aiohttp.ClientSession(
            connector=self._connector(),
            timeout=aiohttp.ClientTimeout(total=self._config.timeout),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        return self._session

    async def close_session(self) -> None:
        """Close the session if open; safe to call repeatedly."""
        session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()

    @asynccontextmanager
    async def managed_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Session scoped to an ``async with`` block."""
        session = await self.open_session()
        try:
            yield session
        finally:
            await self.close_session()
