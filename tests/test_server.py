"""Tests for the miner-facing HTTP server."""

import asyncio

import pytest

from uzi_pool.mining.difficulty import Difficulty

from conftest import SAMPLE_PUZZLE, TOKEN


async def test_puzzle_is_null_before_any_poll(pool_client):
    resp = await pool_client.get("/miner/puzzle")

    assert resp.status == 200
    assert await resp.json() == {"puzzle": None}


async def test_serves_scaled_puzzle_after_poll(fake_node, pool_server, pool_client, stats):
    fake_node.envelope = {"puzzle": SAMPLE_PUZZLE}
    await pool_server.poller.run_cycle()

    resp = await pool_client.get("/miner/puzzle")
    body = await resp.json()

    assert body["puzzle"]["key"] == "ab12"
    assert body["puzzle"]["blob"] == "deadbeef"
    assert body["puzzle"]["target"] == Difficulty(1000).scale(0.1).to_u32()
    assert stats.puzzles_served == 1
    # Serving never calls the node
    assert len(fake_node.puzzle_requests) == 1


async def test_solution_is_relayed_with_token(fake_node, pool_client, stats):
    resp = await pool_client.post("/miner/solution", json={"nonce": "00ff"})

    assert resp.status == 200
    assert await resp.text() == "OK"
    assert len(fake_node.solution_requests) == 1
    headers, body = fake_node.solution_requests[0]
    assert body == {"nonce": "00ff"}
    assert headers["X-ZEEKA-MINER-TOKEN"] == TOKEN
    assert stats.solutions_relayed == 1


async def test_solution_acknowledged_only_after_relay_completes(fake_node, pool_client):
    fake_node.solution_gate = asyncio.Event()

    submit = asyncio.ensure_future(pool_client.post("/miner/solution", json={"nonce": "00ff"}))
    await asyncio.wait_for(fake_node.solution_received.wait(), timeout=2)
    await asyncio.sleep(0.05)
    assert not submit.done()

    fake_node.solution_gate.set()
    resp = await asyncio.wait_for(submit, timeout=2)
    assert await resp.text() == "OK"


async def test_failed_relay_is_not_acknowledged(fake_node, pool_client, stats):
    fake_node.solution_status = 500

    resp = await pool_client.post("/miner/solution", json={"nonce": "00ff"})

    assert resp.status == 502
    assert await resp.text() == ""
    assert stats.solutions_failed == 1


@pytest.mark.parametrize("body", [b"", b"not json", b'{"nonce": 1}', b'{"other": "00ff"}'])
async def test_malformed_solution_is_rejected_without_relay(fake_node, pool_client, body):
    resp = await pool_client.post("/miner/solution", data=body)

    assert resp.status == 400
    assert fake_node.solution_requests == []


@pytest.mark.parametrize(
    "method, path",
    [("GET", "/"), ("GET", "/miner/unknown"), ("POST", "/miner/puzzle"), ("GET", "/miner/solution")],
)
async def test_other_paths_get_empty_not_found(pool_client, method, path):
    resp = await pool_client.request(method, path)

    assert resp.status == 404
    assert await resp.text() == ""


async def test_puzzle_request_not_blocked_by_slow_relay(fake_node, pool_server, pool_client):
    fake_node.envelope = {"puzzle": SAMPLE_PUZZLE}
    await pool_server.poller.run_cycle()
    fake_node.solution_gate = asyncio.Event()

    submit = asyncio.ensure_future(pool_client.post("/miner/solution", json={"nonce": "00ff"}))
    await asyncio.wait_for(fake_node.solution_received.wait(), timeout=2)

    # The relay is in flight; the mining context must be free
    assert not pool_server.context.locked
    resp = await asyncio.wait_for(pool_client.get("/miner/puzzle"), timeout=1)
    assert (await resp.json())["puzzle"]["key"] == "ab12"
    assert not submit.done()

    fake_node.solution_gate.set()
    resp = await asyncio.wait_for(submit, timeout=2)
    assert resp.status == 200
    assert pool_server.context.max_hold_seconds < 0.1


async def test_start_and_stop_run_poller(fake_node, pool_server, unused_tcp_port):
    fake_node.envelope = {"puzzle": SAMPLE_PUZZLE}
    pool_server.config.server.listen = f"127.0.0.1:{unused_tcp_port}"

    await pool_server.start()
    try:
        for _ in range(40):
            if (await pool_server.context.current_puzzle()).has_work:
                break
            await asyncio.sleep(0.05)
        assert (await pool_server.context.current_puzzle()).has_work
    finally:
        await pool_server.stop()

    assert pool_server.client._session is None
