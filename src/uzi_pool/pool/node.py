"""HTTP client for the upstream Zeeka node."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

import aiohttp
from loguru import logger

from uzi_pool.pool.constants import MAX_ERROR_BODY_LENGTH
from uzi_pool.protocol.messages import (
    MINER_TOKEN_HEADER,
    PUZZLE_PATH,
    SOLUTION_PATH,
    PuzzleEnvelope,
    Solution,
)

if TYPE_CHECKING:
    from uzi_pool.config.models import NodeConfig


class NodeError(Exception):
    """A request to the node failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NodeClient:
    """
    Talks to the node's miner API.

    Every request carries the pool's token in the ``X-ZEEKA-MINER-TOKEN``
    header. One aiohttp session is shared by the poller and the solution
    relay; it is created lazily on the running loop.
    """

    def __init__(self, config: NodeConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the client.

        Args:
            config: Node configuration.
            session: Existing session to use (the client will not close it).
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def __aenter__(self) -> NodeClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    def _headers(self) -> dict:
        return {MINER_TOKEN_HEADER: self.config.miner_token}

    async def fetch_puzzle(self) -> PuzzleEnvelope:
        """
        Fetch the node's current puzzle.

        Returns:
            The envelope; its puzzle is None when the node has no work.

        Raises:
            NodeError: On transport failure or a non-2xx response.
            ProtocolError: If the body is not a valid puzzle envelope.
        """
        url = f"{self.base_url}{PUZZLE_PATH}"
        body = await self._request("GET", url)
        return PuzzleEnvelope.parse(body)

    async def submit_solution(self, solution: Solution) -> None:
        """
        Forward a miner's solution to the node.

        Raises:
            NodeError: On transport failure or a non-2xx response.
        """
        url = f"{self.base_url}{SOLUTION_PATH}"
        await self._request("POST", url, json=solution.to_dict())
        logger.debug(f"Relayed solution nonce={solution.nonce} to {self.config.address}")

    async def _request(self, method: str, url: str, **kwargs) -> str:
        session = self._get_session()
        try:
            async with session.request(
                method, url, headers=self._headers(), timeout=self._timeout, **kwargs
            ) as resp:
                text = await resp.text()
                if resp.status >= 300:
                    if len(text) > MAX_ERROR_BODY_LENGTH:
                        text = text[:MAX_ERROR_BODY_LENGTH] + "... (truncated)"
                    raise NodeError(
                        f"{method} {url} returned HTTP {resp.status}: {text}",
                        status=resp.status,
                    )
                return text
        except asyncio.TimeoutError as e:
            raise NodeError(f"{method} {url} timed out after {self.config.request_timeout}s") from e
        except aiohttp.ClientError as e:
            raise NodeError(f"{method} {url} failed: {e}") from e

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
