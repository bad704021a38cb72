#!/usr/bin/env python3
"""
Websocket bridge between the editor sidebar and the Issue Claimer.

The sidebar connects to /ws and exchanges JSON messages tagged by "command".

Inbound:  claimIssue {issue}, checkAuthStatus, updateConfig {settings}, listIssues
Outbound: authStatus {authenticated}, claimIssueResult {result},
          issueClaimed {issue, result}, showIssues {issues}, error {message}
"""

import asyncio
import json
import logging
from typing import List, Optional, Set

from aiohttp import WSMsgType, web

from .models import AuthState, ClaimResult, Issue, parse_command


class HostBridge:
    """Serves the sidebar websocket and broadcasts notifications to it"""

    def __init__(self, orchestrator, host: str = "127.0.0.1", port: int = 8765):
        self.orchestrator = orchestrator
        self.host = host
        self.port = port
        self.sockets: Set[web.WebSocketResponse] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/ws", self.websocket_handler)
        app.router.add_get("/health", self.health_handler)
        return app

    async def start(self):
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logging.info(f"Host bridge listening on ws://{self.host}:{self.port}/ws")

    async def stop(self):
        # Claims started by these commands run in their own tasks and survive this
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        for ws in list(self.sockets):
            await ws.close()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def health_handler(self, request: web.Request) -> web.Response:
        return web.json_response({
            "state": self.orchestrator.state.value,
            "authenticated": self.orchestrator.auth_monitor.authenticated,
            "claimInFlight": self.orchestrator.claim_in_flight,
        })

    async def websocket_handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self.sockets.add(ws)
        logging.info(f"Host view attached ({len(self.sockets)} connected)")
        await self.orchestrator.attach_view()

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._handle_message(ws, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logging.error(f"Websocket closed with exception {ws.exception()}")
        finally:
            self.sockets.discard(ws)
            if not self.sockets:
                self.orchestrator.detach_view()
            logging.info(f"Host view detached ({len(self.sockets)} connected)")

        return ws

    async def _handle_message(self, ws: web.WebSocketResponse, data: str):
        try:
            command = parse_command(json.loads(data))
        except ValueError as e:
            await ws.send_json({"command": "error", "message": f"Invalid message: {e}"})
            return

        # Claims can queue behind each other, keep reading while they run
        task = asyncio.create_task(self.orchestrator.handle_command(command))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logging.error(f"Host command failed: {task.exception()}")

    async def broadcast(self, message: dict):
        for ws in list(self.sockets):
            if ws.closed:
                continue
            try:
                await ws.send_json(message)
            except ConnectionError as e:
                logging.warning(f"Failed to send {message['command']} to host view: {e}")

    async def notify_auth_status(self, state: AuthState):
        await self.broadcast({"command": "authStatus", "authenticated": state.authenticated})

    async def notify_claim_result(self, result: ClaimResult):
        await self.broadcast({"command": "claimIssueResult", "result": result.to_dict()})

    async def notify_issue_claimed(self, issue: Issue, result: ClaimResult):
        await self.broadcast({
            "command": "issueClaimed",
            "issue": issue.to_dict(),
            "result": result.to_dict(),
        })

    async def notify_issues(self, issues: List[Issue]):
        await self.broadcast({"command": "showIssues", "issues": [i.to_dict() for i in issues]})

    async def notify_error(self, message: str):
        await self.broadcast({"command": "error", "message": message})
