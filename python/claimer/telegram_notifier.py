#!/usr/bin/env python3
"""
Telegram notification manager for the Issue Claimer.

This module handles sending notifications to Telegram about claimed issues,
failed claims and errors.
"""

import logging
from telegram import Bot
from telegram.error import TelegramError

from .models import ClaimResult, Issue


class TelegramNotifier:
    """Telegram notification manager"""

    def __init__(self, bot_token: str, chat_id: str):
        self.bot = Bot(token=bot_token)
        self.chat_id = chat_id

    async def send_message(self, message: str, parse_mode: str = "Markdown"):
        """Send a message to Telegram"""
        try:
            # Truncate message if too long
            max_length = 4000
            if len(message) > max_length:
                message = message[:max_length] + "\n... (truncated)"

            await self.bot.send_message(
                chat_id=self.chat_id,
                text=message,
                parse_mode=parse_mode
            )
        except TelegramError as e:
            logging.error(f"Failed to send Telegram message: {e}")

    async def notify_issue_claimed(self, issue: Issue, result: ClaimResult):
        """Notify about the outcome of claiming a polled issue"""
        if result.success:
            message = f"🏷 *Claimed issue #{issue.number}*: {issue.title}\nBranch: `{result.branch_name}`"
        else:
            message = f"❌ *Failed to claim issue #{issue.number}*:\n{result.error}"
        await self.send_message(message)

    async def notify_error(self, message: str):
        """Notify about an error"""
        await self.send_message(f"⚠️ *Issue Claimer error*:\n{message}")
