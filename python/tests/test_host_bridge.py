"""Tests for the sidebar websocket bridge"""

import asyncio

import pytest
from aiohttp import test_utils

from claimer.config import PollingConfig
from claimer.host_bridge import HostBridge
from claimer.models import ClaimResult, Issue
from claimer.notifier import NotificationHub
from claimer.orchestrator import IssueOrchestrator


def make_bridge(tracker, scheduler):
    hub = NotificationHub()
    orchestrator = IssueOrchestrator(tracker, hub, PollingConfig(), scheduler=scheduler)
    bridge = HostBridge(orchestrator)
    hub.add_listener(bridge)
    return bridge, orchestrator


async def wait_for(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.mark.asyncio
async def test_attach_pushes_auth_status(tracker, scheduler):
    bridge, orchestrator = make_bridge(tracker, scheduler)
    client = test_utils.TestClient(test_utils.TestServer(bridge.create_app()))
    await client.start_server()
    try:
        ws = await client.ws_connect("/ws")

        msg = await ws.receive_json(timeout=5)

        assert msg == {"command": "authStatus", "authenticated": True}
        assert orchestrator.context.view_visible

        await ws.close()
        assert await wait_for(lambda: not orchestrator.context.view_visible)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_claim_issue_round_trip(tracker, scheduler):
    bridge, _ = make_bridge(tracker, scheduler)
    client = test_utils.TestClient(test_utils.TestServer(bridge.create_app()))
    await client.start_server()
    try:
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=5)

        await ws.send_json({
            "command": "claimIssue",
            "issue": {"number": 7, "title": "Add docs", "url": "", "labels": ["Ready for Plan"]}
        })
        msg = await ws.receive_json(timeout=5)

        assert msg == {
            "command": "claimIssueResult",
            "result": {"success": True, "branchName": "issue-7-add-docs"}
        }
        await ws.close()
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_invalid_messages_get_error_reply(tracker, scheduler):
    bridge, _ = make_bridge(tracker, scheduler)
    client = test_utils.TestClient(test_utils.TestServer(bridge.create_app()))
    await client.start_server()
    try:
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=5)

        await ws.send_str("not json")
        first = await ws.receive_json(timeout=5)
        await ws.send_json({"command": "openIssue"})
        second = await ws.receive_json(timeout=5)

        assert first["command"] == "error"
        assert second == {"command": "error", "message": "Invalid message: Unknown command: 'openIssue'"}
        await ws.close()
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_health(tracker, scheduler):
    bridge, _ = make_bridge(tracker, scheduler)
    client = test_utils.TestClient(test_utils.TestServer(bridge.create_app()))
    await client.start_server()
    try:
        resp = await client.get("/health")

        assert resp.status == 200
        assert await resp.json() == {"state": "idle", "authenticated": False, "claimInFlight": False}
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_notifications_without_sockets(tracker, scheduler):
    bridge, _ = make_bridge(tracker, scheduler)

    await bridge.notify_issue_claimed(Issue(1, "x"), ClaimResult(success=True, branch_name="issue-1-x"))
    await bridge.notify_error("boom")


@pytest.mark.asyncio
async def test_stop_cancels_commands_but_not_claims(tracker, scheduler):
    tracker.gated_label = "Claimed by Agent"
    bridge, orchestrator = make_bridge(tracker, scheduler)
    client = test_utils.TestClient(test_utils.TestServer(bridge.create_app()))
    await client.start_server()
    try:
        ws = await client.ws_connect("/ws")
        await ws.receive_json(timeout=5)
        await ws.send_json({
            "command": "claimIssue",
            "issue": {"number": 7, "title": "Add docs", "url": "", "labels": ["Ready for Plan"]}
        })
        assert await wait_for(lambda: tracker.calls_named("add_label"))
        await ws.close()
        assert await wait_for(lambda: not bridge.sockets)

        orchestrator.stop()
        await bridge.stop()

        assert not bridge._tasks
        assert orchestrator.claim_in_flight

        tracker.label_gate.set()
        await orchestrator.wait_for_claims()
        assert [call[2] for call in tracker.calls_named("add_label")] == [
            "Claimed by Agent", "Branch: issue-7-add-docs"
        ]
    finally:
        tracker.label_gate.set()
        await client.close()
