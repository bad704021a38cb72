#!/usr/bin/env python3
"""
Notification fan-out for the Issue Claimer.

Listeners (the host bridge, Slack, Telegram) implement any subset of:

    notify_auth_status(state)
    notify_claim_result(result)
    notify_issue_claimed(issue, result)
    notify_issues(issues)
    notify_error(message)

A listener that fails is logged and skipped; the others still get the
notification.
"""

import logging
from typing import List

from .models import AuthState, ClaimResult, Issue


class NotificationHub:
    """Sends each notification to every listener that handles it"""

    def __init__(self, listeners: List = None):
        self.listeners = list(listeners or [])

    def add_listener(self, listener):
        self.listeners.append(listener)

    def remove_listener(self, listener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    @property
    def has_listeners(self) -> bool:
        return bool(self.listeners)

    async def _dispatch(self, method: str, *args):
        for listener in list(self.listeners):
            handler = getattr(listener, method, None)
            if handler is None:
                continue
            try:
                await handler(*args)
            except Exception as e:
                logging.error(f"Failed to send {method} to {type(listener).__name__}: {e}")

    async def auth_status(self, state: AuthState):
        await self._dispatch("notify_auth_status", state)

    async def claim_result(self, result: ClaimResult):
        await self._dispatch("notify_claim_result", result)

    async def issue_claimed(self, issue: Issue, result: ClaimResult):
        await self._dispatch("notify_issue_claimed", issue, result)

    async def issues(self, issues: List[Issue]):
        await self._dispatch("notify_issues", issues)

    async def error(self, message: str):
        await self._dispatch("notify_error", message)
