#!/usr/bin/env python3
"""
Issue Claimer Package

Polls GitHub for issues labeled 'Ready for Plan' and claims them for an agent
by labelling the issue and creating a branch, using the GitHub CLI (gh).
"""

__version__ = "1.0.0"

__all__ = [
    # Models
    "Issue",
    "ClaimResult",
    "AuthState",
    "PollOutcome",
    "OrchestratorState",
    "parse_command",

    # Core components
    "Config",
    "PollingConfig",
    "CommandRunner",
    "GhCliTracker",
    "AuthMonitor",
    "ReadyIssuePoller",
    "ClaimExecutor",
    "derive_branch_name",
    "NotificationHub",
    "IssueOrchestrator",

    # Host and chat integrations
    "HostBridge",
    "SlackNotifier",
    "TelegramNotifier",
]

from .models import (
    AuthState,
    ClaimResult,
    Issue,
    OrchestratorState,
    PollOutcome,
    parse_command,
)
from .config import Config, PollingConfig
from .command_runner import CommandRunner
from .tracker import GhCliTracker
from .auth_monitor import AuthMonitor
from .poller import ReadyIssuePoller
from .claim_executor import ClaimExecutor, derive_branch_name
from .notifier import NotificationHub
from .orchestrator import IssueOrchestrator


# Lazy imports so the core works without the web and chat dependencies loaded
def _import_host_bridge():
    """Import host bridge module."""
    from .host_bridge import HostBridge
    return HostBridge

def _import_slack_notifier():
    """Import Slack notifier module."""
    from .slack_notifier import SlackNotifier
    return SlackNotifier

def _import_telegram_notifier():
    """Import Telegram notifier module."""
    from .telegram_notifier import TelegramNotifier
    return TelegramNotifier

class _LazyImport:
    def __init__(self, import_func, name):
        self._import_func = import_func
        self._name = name
        self._module = None

    def __getattr__(self, name):
        if self._module is None:
            self._module = self._import_func()
        return getattr(self._module, name)

    def __call__(self, *args, **kwargs):
        if self._module is None:
            self._module = self._import_func()
        return self._module(*args, **kwargs)

HostBridge = _LazyImport(_import_host_bridge, "HostBridge")
SlackNotifier = _LazyImport(_import_slack_notifier, "SlackNotifier")
TelegramNotifier = _LazyImport(_import_telegram_notifier, "TelegramNotifier")
