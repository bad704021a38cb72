"""Shared fakes for the Issue Claimer tests"""

import asyncio
from typing import Dict, List, Optional

import pytest

from claimer.models import Issue, LabelNotFoundError, TrackerError
from claimer.notifier import NotificationHub
from claimer.scheduler import Scheduler, TimerHandle
from claimer.tracker import Tracker


class FakeTracker(Tracker):
    """In-memory tracker that records every call"""

    def __init__(self):
        self.installed = True
        self.authenticated = True
        self.git_repo = True
        self.issues: List[Issue] = []
        self.list_error: Optional[Exception] = None
        self.add_label_errors: Dict[str, List[Exception]] = {}
        self.create_label_error: Optional[Exception] = None
        self.create_branch_error: Optional[Exception] = None
        # When set, adding this label waits for label_gate
        self.gated_label: Optional[str] = None
        self.label_gate = asyncio.Event()
        self.calls = []

    async def check_installed(self) -> bool:
        return self.installed

    async def check_auth(self) -> bool:
        self.calls.append(("check_auth",))
        return self.authenticated

    async def is_git_repository(self) -> bool:
        return self.git_repo

    async def list_issues(self, include_labels, limit, repository=None):
        self.calls.append(("list_issues", list(include_labels), limit, repository))
        if self.list_error:
            raise self.list_error
        return list(self.issues)

    async def add_label(self, issue_number, label, repository=None):
        self.calls.append(("add_label", issue_number, label, repository))
        if self.gated_label == label:
            await self.label_gate.wait()
        errors = self.add_label_errors.get(label)
        if errors:
            raise errors.pop(0)

    async def create_label(self, label, color, description="", repository=None):
        self.calls.append(("create_label", label, color, description, repository))
        if self.create_label_error:
            raise self.create_label_error

    async def create_branch(self, branch_name):
        self.calls.append(("create_branch", branch_name))
        if self.create_branch_error:
            raise self.create_branch_error

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]


def label_not_found(label: str) -> LabelNotFoundError:
    return LabelNotFoundError(label, f"could not add label: '{label}' not found")


class ManualTimer(TimerHandle):
    def __init__(self, name, interval, callback):
        self.name = name
        self.interval = interval
        self.callback = callback
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Scheduler whose ticks only happen when a test fires them"""

    def __init__(self):
        self.timers: List[ManualTimer] = []

    def schedule_periodic(self, name, interval, callback):
        timer = ManualTimer(name, interval, callback)
        self.timers.append(timer)
        return timer

    def active(self, name) -> Optional[ManualTimer]:
        for timer in reversed(self.timers):
            if timer.name == name and not timer.cancelled:
                return timer
        return None

    async def tick(self, name):
        timer = self.active(name)
        assert timer is not None, f"No active timer named {name}"
        await timer.callback()


class RecordingListener:
    """Notification listener that keeps every notification it receives"""

    def __init__(self):
        self.events = []

    async def notify_auth_status(self, state):
        self.events.append(("auth_status", state))

    async def notify_claim_result(self, result):
        self.events.append(("claim_result", result))

    async def notify_issue_claimed(self, issue, result):
        self.events.append(("issue_claimed", issue, result))

    async def notify_issues(self, issues):
        self.events.append(("issues", issues))

    async def notify_error(self, message):
        self.events.append(("error", message))

    def named(self, name):
        return [event for event in self.events if event[0] == name]


@pytest.fixture
def tracker():
    return FakeTracker()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def hub(listener):
    return NotificationHub([listener])


@pytest.fixture
def ready_issue():
    return Issue(number=42, title="Fix the Bug!!  now", url="https://github.com/o/r/issues/42",
                 labels=["Ready for Plan"])


@pytest.fixture
def tracker_error():
    return TrackerError("network unreachable")
