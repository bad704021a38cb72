#!/usr/bin/env python3
"""
Ready-issue polling for the Issue Claimer.

The gh label filter only supports positive matches, so excluded labels are
filtered out locally after an oversized fetch.
"""

import logging
from typing import Iterable, List, Optional

from .models import (
    CLAIMED_LABEL,
    READY_LABEL,
    Issue,
    NoRepositoryContextError,
    PollOutcome,
    TrackerError,
)
from .tracker import Tracker


DEFAULT_LIMIT = 10
MIN_EXCLUDE_FETCH_LIMIT = 30


def fetch_limit(limit: int, has_excludes: bool) -> int:
    """Page size to request so that local filtering can still fill the limit"""
    if has_excludes:
        return max(limit * 2, MIN_EXCLUDE_FETCH_LIMIT)
    return limit


def exclude_issues(issues: Iterable[Issue], exclude_labels: Iterable[str]) -> List[Issue]:
    exclude_labels = list(exclude_labels)
    return [issue for issue in issues if not issue.has_any_label(exclude_labels)]


class ReadyIssuePoller:
    """Finds issues that are ready to be claimed"""

    def __init__(
        self,
        tracker: Tracker,
        include_labels: Optional[List[str]] = None,
        exclude_labels: Optional[List[str]] = None,
        limit: int = DEFAULT_LIMIT
    ):
        self.tracker = tracker
        self.include_labels = include_labels if include_labels is not None else [READY_LABEL]
        self.exclude_labels = exclude_labels if exclude_labels is not None else [CLAIMED_LABEL]
        self.limit = limit

    async def ensure_repository_context(self, repository: Optional[str] = None) -> bool:
        """Return whether the working directory is a git checkout.

        Raises NoRepositoryContextError when that is false and no repository
        is configured either.
        """
        in_git_repo = await self.tracker.is_git_repository()
        if not repository and not in_git_repo:
            raise NoRepositoryContextError()
        return in_git_repo

    async def search_issues(
        self,
        include_labels: List[str],
        exclude_labels: List[str],
        limit: int = DEFAULT_LIMIT,
        repository: Optional[str] = None
    ) -> List[Issue]:
        """Search for issues with all include_labels and none of exclude_labels.

        Tracker failures yield an empty list; a missing repository context
        raises NoRepositoryContextError before anything is fetched.
        """
        await self.ensure_repository_context(repository)

        try:
            issues = await self.tracker.list_issues(
                include_labels,
                fetch_limit(limit, bool(exclude_labels)),
                repository
            )
        except TrackerError as e:
            logging.error(f"Error searching for issues: {e}")
            return []

        if exclude_labels:
            issues = exclude_issues(issues, exclude_labels)
        return issues[:limit]

    async def find_ready_issues(self, repository: Optional[str] = None) -> PollOutcome:
        """Search with the ready/claimed label policy"""
        try:
            issues = await self.search_issues(
                self.include_labels,
                self.exclude_labels,
                self.limit,
                repository
            )
        except NoRepositoryContextError as e:
            return PollOutcome(issues=[], error=str(e))

        logging.debug(f"Found {len(issues)} ready issues")
        return PollOutcome(issues=issues)
