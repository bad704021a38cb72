#!/usr/bin/env python3
"""
Claim protocol for the Issue Claimer.

Claiming an issue means:
1. Adding the "Claimed by Agent" label
2. Deriving a branch name from the issue title
3. Creating the branch when running inside a git checkout
4. Adding a "Branch: <branch-name>" label

The steps are not transactional. A failure after step 1 leaves the issue
labelled as claimed.
"""

import logging
import re
from typing import Optional

from .models import (
    BRANCH_LABEL_PREFIX,
    CLAIMED_LABEL,
    ClaimResult,
    ClaimerError,
    Issue,
    LabelNotFoundError,
    NoRepositoryContextError,
    TrackerError,
)
from .tracker import Tracker


CLAIMED_LABEL_COLOR = "0E8A16"
CLAIMED_LABEL_DESCRIPTION = "Issue claimed by an agent"
BRANCH_LABEL_COLOR = "0075CA"
BRANCH_LABEL_DESCRIPTION = "Branch created for this issue"

# \w also matches "_", which is not kept
_DISALLOWED_CHARS = re.compile(r"[^\w\s-]|_")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def derive_branch_name(issue_number: int, issue_title: str) -> str:
    """Convert an issue title to a branch name like "issue-42-fix-the-bug" """
    slug = _DISALLOWED_CHARS.sub("", issue_title.lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug).strip("-")
    return f"issue-{issue_number}-{slug}"


class ClaimExecutor:
    """Runs the claim protocol for one issue at a time"""

    def __init__(self, tracker: Tracker):
        self.tracker = tracker

    async def add_label(
        self,
        issue_number: int,
        label: str,
        repository: Optional[str] = None,
        color: str = CLAIMED_LABEL_COLOR,
        description: str = ""
    ):
        """Add a label to an issue, creating the label first if it doesn't exist.

        Creation and the second add are each attempted exactly once; any
        failure there propagates.
        """
        try:
            await self.tracker.add_label(issue_number, label, repository)
        except LabelNotFoundError:
            logging.info(f"Label '{label}' not found. Creating it...")
            await self.tracker.create_label(label, color, description, repository)
            await self.tracker.add_label(issue_number, label, repository)

    async def claim(self, issue: Issue, repository: Optional[str] = None) -> ClaimResult:
        """Claim an issue and report the outcome; never raises ClaimerError"""
        try:
            in_git_repo = await self.tracker.is_git_repository()
            if not repository and not in_git_repo:
                raise NoRepositoryContextError()

            await self.add_label(
                issue.number,
                CLAIMED_LABEL,
                repository,
                CLAIMED_LABEL_COLOR,
                CLAIMED_LABEL_DESCRIPTION
            )
        except ClaimerError as e:
            logging.error(f"Failed to claim issue #{issue.number}: {e}")
            return ClaimResult(success=False, branch_name="", error=str(e))

        branch_name = derive_branch_name(issue.number, issue.title)

        if in_git_repo:
            try:
                await self.tracker.create_branch(branch_name)
                logging.info(f"Created branch {branch_name} for issue #{issue.number}")
            except TrackerError as e:
                # The label is the authoritative claim, the branch is optional
                logging.warning(f"Could not create branch: {e}")
        else:
            logging.info("Skipping branch creation as we're not in a git repository")

        try:
            await self.add_label(
                issue.number,
                f"{BRANCH_LABEL_PREFIX}{branch_name}",
                repository,
                BRANCH_LABEL_COLOR,
                BRANCH_LABEL_DESCRIPTION
            )
        except TrackerError as e:
            logging.error(f"Failed to add branch label to issue #{issue.number}: {e}")
            return ClaimResult(success=False, branch_name=branch_name, error=str(e))

        logging.info(f"Claimed issue #{issue.number} on branch {branch_name}")
        return ClaimResult(success=True, branch_name=branch_name)
