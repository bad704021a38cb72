#!/usr/bin/env python3
"""
Slack notification manager for the Issue Claimer.

This module handles sending notifications to Slack about claimed issues,
failed claims and errors.
"""

import logging
from slack_sdk.web.async_client import AsyncWebClient
from slack_sdk.errors import SlackApiError

from .models import ClaimResult, Issue


class SlackNotifier:
    """Slack notification manager"""

    def __init__(self, bot_token: str, channel_id: str):
        self.client = AsyncWebClient(token=bot_token)
        self.channel_id = channel_id

    async def send_message(self, text: str = None, blocks: list = None):
        """Send a message to Slack"""
        try:
            response = await self.client.chat_postMessage(
                channel=self.channel_id,
                text=text,
                blocks=blocks
            )
            return response
        except SlackApiError as e:
            logging.error(f"Failed to send Slack message: {e.response['error']}")

    @staticmethod
    def _issue_link(issue: Issue) -> str:
        return f"<{issue.url}|#{issue.number}>" if issue.url else f"#{issue.number}"

    async def notify_issue_claimed(self, issue: Issue, result: ClaimResult):
        """Notify about the outcome of claiming a polled issue"""
        issue_link = self._issue_link(issue)

        if result.success:
            blocks = [
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f":label: *Claimed issue {issue_link}*\n{issue.title}\nBranch: `{result.branch_name}`"
                    }
                }
            ]
            await self.send_message(
                text=f"Claimed issue #{issue.number}: {issue.title}",
                blocks=blocks
            )
            return

        blocks = [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f":x: *Failed to claim issue {issue_link}*\n{issue.title}"
                }
            }
        ]
        if result.error:
            # Truncate error for Slack
            truncated_error = result.error[-300:] if len(result.error) > 300 else result.error
            blocks.append({
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"```{truncated_error}```"
                }
            })
        await self.send_message(
            text=f"Failed to claim issue #{issue.number}: {result.error}",
            blocks=blocks
        )

    async def notify_error(self, message: str):
        """Notify about an error"""
        blocks = [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f":warning: *Issue Claimer error*\n{message}"
                }
            }
        ]
        await self.send_message(
            text=f"Issue Claimer error: {message}",
            blocks=blocks
        )
