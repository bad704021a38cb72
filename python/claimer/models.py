#!/usr/bin/env python3
"""
Data models for the Issue Claimer.

This module contains the data classes, enums, host command variants and
exception types used throughout the claimer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


READY_LABEL = "Ready for Plan"
CLAIMED_LABEL = "Claimed by Agent"
BRANCH_LABEL_PREFIX = "Branch: "


class ClaimerError(Exception):
    """Base class for claimer errors"""


class CommandError(ClaimerError):
    """An external command could not be run to completion"""


class TrackerError(ClaimerError):
    """A tracker operation failed"""


class LabelNotFoundError(TrackerError):
    """The tracker rejected a label because it does not exist yet"""

    def __init__(self, label: str, message: str):
        super().__init__(message)
        self.label = label


class NoRepositoryContextError(ClaimerError):
    """Neither a configured repository nor a git checkout is available"""

    def __init__(self, message: str = None):
        super().__init__(message or (
            "Not in a git repository. Please specify a repository in the "
            "settings (repository) or run from within a git repository."
        ))


class OrchestratorState(Enum):
    """Lifecycle state of the orchestrator"""
    IDLE = "idle"
    POLLING = "polling"
    CLAIMING = "claiming"
    STOPPED = "stopped"


@dataclass(frozen=True)
class Issue:
    """Read-only snapshot of a tracker issue"""
    number: int
    title: str
    url: str = ""
    labels: List[str] = field(default_factory=list)

    def has_any_label(self, names) -> bool:
        return any(name in self.labels for name in names)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Issue":
        """Build an issue from the tracker's JSON shape.

        Labels arrive either as ``[{"name": ...}]`` (gh output) or as plain
        strings (host messages).
        """
        labels = []
        for label in data.get("labels") or []:
            if isinstance(label, dict):
                if label.get("name"):
                    labels.append(str(label["name"]))
            elif label:
                labels.append(str(label))

        number = int(data["number"])
        if number <= 0:
            raise ValueError(f"Issue number must be positive, got {number}")

        return cls(
            number=number,
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            labels=labels,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "url": self.url,
            "labels": list(self.labels),
        }


@dataclass(frozen=True)
class ClaimResult:
    """Outcome of one claim attempt"""
    success: bool
    branch_name: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the host's JSON shape"""
        data = {"success": self.success, "branchName": self.branch_name}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class AuthState:
    authenticated: bool


@dataclass(frozen=True)
class PollOutcome:
    """Issues found by one poll, or the configuration error that stopped it"""
    issues: List[Issue] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of an external command"""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return f"{self.stdout}\n{self.stderr}".strip()


# Inbound host commands

@dataclass(frozen=True)
class ClaimIssueCommand:
    issue: Issue


@dataclass(frozen=True)
class AuthStatusRequest:
    pass


@dataclass(frozen=True)
class ConfigChangeCommand:
    settings: Dict[str, Any]


@dataclass(frozen=True)
class ListReadyIssuesRequest:
    pass


HostCommand = Union[
    ClaimIssueCommand,
    AuthStatusRequest,
    ConfigChangeCommand,
    ListReadyIssuesRequest,
]


def parse_command(payload: Dict[str, Any]) -> HostCommand:
    """Turn a host message into a command variant.

    Raises ValueError for unknown or malformed messages.
    """
    if not isinstance(payload, dict):
        raise ValueError("Host message must be a JSON object")

    tag = payload.get("command")
    if tag == "claimIssue":
        issue = payload.get("issue")
        if not isinstance(issue, dict):
            raise ValueError("claimIssue requires an 'issue' object")
        try:
            return ClaimIssueCommand(issue=Issue.from_payload(issue))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid issue payload: {e}") from e
    if tag == "checkAuthStatus":
        return AuthStatusRequest()
    if tag == "updateConfig":
        settings = payload.get("settings")
        if not isinstance(settings, dict):
            raise ValueError("updateConfig requires a 'settings' object")
        return ConfigChangeCommand(settings=dict(settings))
    if tag == "listIssues":
        return ListReadyIssuesRequest()

    raise ValueError(f"Unknown command: {tag!r}")
