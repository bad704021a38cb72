#!/usr/bin/env python3
"""
Issue tracker access for the Issue Claimer.

Tracker is the capability the poller and the claim executor depend on.
GhCliTracker implements it by shelling out to the GitHub CLI (gh) and git.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .command_runner import CommandRunner
from .models import (
    CommandError,
    CommandResult,
    Issue,
    LabelNotFoundError,
    TrackerError,
)


class Tracker(ABC):
    """Operations the claimer needs from the issue tracker and local checkout"""

    @abstractmethod
    async def check_installed(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def check_auth(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def is_git_repository(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_issues(
        self,
        include_labels: List[str],
        limit: int,
        repository: Optional[str] = None
    ) -> List[Issue]:
        raise NotImplementedError

    @abstractmethod
    async def add_label(self, issue_number: int, label: str, repository: Optional[str] = None):
        raise NotImplementedError

    @abstractmethod
    async def create_label(
        self,
        label: str,
        color: str,
        description: str = "",
        repository: Optional[str] = None
    ):
        raise NotImplementedError

    @abstractmethod
    async def create_branch(self, branch_name: str):
        raise NotImplementedError


class GhCliTracker(Tracker):
    """Tracker backed by the gh and git command-line tools"""

    AUTHENTICATED_MARKER = "Logged in to"

    def __init__(self, runner: CommandRunner, gh_path: str = "gh", git_path: str = "git"):
        self.runner = runner
        self.gh_path = gh_path
        self.git_path = git_path

    async def _gh(self, args: List[str], repository: Optional[str] = None) -> CommandResult:
        cmd = [self.gh_path, *args]
        if repository:
            cmd += ["-R", repository]
        try:
            return await self.runner.run(cmd)
        except CommandError as e:
            raise TrackerError(f"Failed to execute command: {' '.join(cmd)}. Error: {e}") from e

    async def check_installed(self) -> bool:
        """Check if the GitHub CLI is installed"""
        try:
            result = await self.runner.run([self.gh_path, "--version"])
        except CommandError:
            return False
        return result.ok

    async def check_auth(self) -> bool:
        """Check if the gh session is authenticated.

        Older gh versions print the status to stderr, newer ones to stdout.
        """
        try:
            result = await self.runner.run([self.gh_path, "auth", "status"])
        except CommandError as e:
            logging.debug(f"gh auth status failed: {e}")
            return False
        return result.ok and self.AUTHENTICATED_MARKER in result.output

    async def is_git_repository(self) -> bool:
        """Check if the working directory is inside a git work tree"""
        try:
            result = await self.runner.run([self.git_path, "rev-parse", "--is-inside-work-tree"])
        except CommandError as e:
            logging.debug(f"git rev-parse failed: {e}")
            return False
        return result.ok and result.stdout.strip() == "true"

    async def list_issues(
        self,
        include_labels: List[str],
        limit: int,
        repository: Optional[str] = None
    ) -> List[Issue]:
        """List open issues carrying all of include_labels, in tracker order"""
        args = ["issue", "list", "--json", "number,title,url,labels"]
        for label in include_labels:
            args += ["--label", label]
        args += ["--limit", str(limit)]

        result = await self._gh(args, repository)
        if not result.ok:
            raise TrackerError(f"Failed to list issues: {result.stderr.strip()}")

        if not result.stdout.strip():
            return []
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise TrackerError(f"Invalid JSON from gh: {e}") from e
        if not isinstance(data, list):
            raise TrackerError(f"Unexpected issue list payload: {type(data).__name__}")

        try:
            return [Issue.from_payload(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise TrackerError(f"Malformed issue in gh output: {e}") from e

    async def add_label(self, issue_number: int, label: str, repository: Optional[str] = None):
        """Add a label to an issue; adding a label already present is a no-op"""
        result = await self._gh(["issue", "edit", str(issue_number), "--add-label", label], repository)
        if result.ok:
            return

        message = result.stderr.strip() or result.stdout.strip()
        if f"'{label}' not found" in message or f'"{label}" not found' in message:
            raise LabelNotFoundError(label, message)
        raise TrackerError(f"Failed to add label '{label}' to issue #{issue_number}: {message}")

    async def create_label(
        self,
        label: str,
        color: str,
        description: str = "",
        repository: Optional[str] = None
    ):
        """Create a label on the repository"""
        args = ["label", "create", label, "--color", color]
        if description:
            args += ["--description", description]

        result = await self._gh(args, repository)
        if not result.ok:
            raise TrackerError(f"Failed to create label '{label}': {result.stderr.strip()}")

    async def create_branch(self, branch_name: str):
        """Create and check out a new local branch"""
        try:
            result = await self.runner.run([self.git_path, "checkout", "-b", branch_name])
        except CommandError as e:
            raise TrackerError(f"Failed to create branch {branch_name}: {e}") from e
        if not result.ok:
            raise TrackerError(f"Failed to create branch {branch_name}: {result.stderr.strip()}")
