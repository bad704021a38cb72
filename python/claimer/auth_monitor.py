#!/usr/bin/env python3
"""
Authentication monitoring for the Issue Claimer.

Tracks whether the GitHub CLI session is authenticated. Not being
authenticated is a normal state, so it is reported as a status value and
never raised.
"""

import logging
from typing import Optional

from .models import AuthState
from .tracker import Tracker


class AuthMonitor:
    """Re-evaluates the authentication state on every tick"""

    def __init__(self, tracker: Tracker):
        self.tracker = tracker
        self.state: Optional[AuthState] = None

    @property
    def authenticated(self) -> bool:
        return self.state is not None and self.state.authenticated

    async def check_authenticated(self) -> bool:
        return await self.tracker.check_auth()

    async def tick(self, force: bool = False) -> Optional[AuthState]:
        """Check the session and return the state if it should be pushed.

        The state is returned when it changed since the last tick or when
        force is set (a fresh paint was requested); otherwise None.
        """
        current = AuthState(authenticated=await self.check_authenticated())
        changed = current != self.state
        if changed:
            logging.info(f"GitHub CLI authenticated: {current.authenticated}")
        self.state = current

        if changed or force:
            return current
        return None
