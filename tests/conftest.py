"""Shared fixtures: a fake Zeeka node and pool wiring."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from uzi_pool.config.models import Config, MiningConfig, NodeConfig
from uzi_pool.mining.hasher import HashContextCache, build_hash_context
from uzi_pool.pool.context import MiningContext
from uzi_pool.pool.node import NodeClient
from uzi_pool.pool.server import PoolServer
from uzi_pool.pool.stats import PoolStats

TOKEN = "s3cret"

SAMPLE_PUZZLE = {
    "key": "ab12",
    "blob": "deadbeef",
    "offset": 0,
    "size": 8,
    "target": 1000,
}


class FakeNode:
    """Minimal stand-in for the node's miner API."""

    def __init__(self):
        self.envelope = {"puzzle": None}
        self.raw_puzzle_body = None
        self.puzzle_status = 200
        self.solution_status = 200
        self.puzzle_delay = 0.0

        self.puzzle_requests = []
        self.solution_requests = []

        # Set by the test to hold solution requests open
        self.solution_gate = None
        self.solution_received = asyncio.Event()

        self.app = web.Application()
        self.app.router.add_get("/miner/puzzle", self._puzzle)
        self.app.router.add_post("/miner/solution", self._solution)
        self.server = TestServer(self.app)

    @property
    def address(self) -> str:
        return f"{self.server.host}:{self.server.port}"

    async def _puzzle(self, request: web.Request) -> web.Response:
        self.puzzle_requests.append(dict(request.headers))
        if self.puzzle_delay:
            await asyncio.sleep(self.puzzle_delay)
        if self.raw_puzzle_body is not None:
            return web.Response(text=self.raw_puzzle_body, status=self.puzzle_status)
        return web.json_response(self.envelope, status=self.puzzle_status)

    async def _solution(self, request: web.Request) -> web.Response:
        self.solution_requests.append((dict(request.headers), await request.json()))
        self.solution_received.set()
        if self.solution_gate is not None:
            await self.solution_gate.wait()
        return web.Response(text="", status=self.solution_status)


@pytest_asyncio.fixture
async def fake_node():
    node = FakeNode()
    await node.server.start_server()
    yield node
    await node.server.close()


@pytest.fixture
def build_calls():
    """Seeds passed to the hash context builder, in call order."""
    return []


@pytest.fixture
def hash_cache(build_calls):
    def builder(seed: bytes):
        build_calls.append(seed)
        return build_hash_context(seed, cache_size=1024)

    return HashContextCache(builder=builder)


@pytest.fixture
def mining_context(hash_cache):
    return MiningContext(hash_cache)


@pytest.fixture
def stats():
    return PoolStats()


@pytest.fixture
def config(fake_node):
    return Config(
        node=NodeConfig(address=fake_node.address, miner_token=TOKEN, request_timeout=5),
        mining=MiningConfig(poll_interval=0.05, stats_interval=0),
    )


@pytest_asyncio.fixture
async def node_client(config):
    client = NodeClient(config.node)
    yield client
    await client.close()


@pytest.fixture
def pool_server(config, mining_context, node_client, stats):
    return PoolServer(config, context=mining_context, client=node_client, stats=stats)


@pytest_asyncio.fixture
async def pool_client(pool_server):
    client = TestClient(TestServer(pool_server.create_app()))
    await client.start_server()
    yield client
    await client.close()
