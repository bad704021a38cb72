#!/usr/bin/env python3
"""
Main orchestrator for the Issue Claimer.

This module coordinates the authentication monitor, the ready-issue poller
and the claim executor on independent timers, funnelling every claim through
a single in-flight slot.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Set

from .auth_monitor import AuthMonitor
from .claim_executor import ClaimExecutor
from .command_runner import CommandRunner
from .config import Config, ConfigWatcher, PollingConfig
from .models import (
    AuthStatusRequest,
    ClaimIssueCommand,
    ClaimResult,
    ConfigChangeCommand,
    HostCommand,
    Issue,
    ListReadyIssuesRequest,
    OrchestratorState,
)
from .notifier import NotificationHub
from .poller import ReadyIssuePoller
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .tracker import GhCliTracker, Tracker


GH_NOT_INSTALLED_MESSAGE = (
    "The GitHub CLI (gh) is not installed. Please install it from https://cli.github.com/"
)


@dataclass
class OrchestratorContext:
    """Mutable state owned by a single orchestrator"""
    polling: PollingConfig
    state: OrchestratorState = OrchestratorState.IDLE
    view_visible: bool = False
    auth_timer: Optional[TimerHandle] = None
    poll_timer: Optional[TimerHandle] = None
    watch_timer: Optional[TimerHandle] = None
    claim_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    claim_tasks: Set[asyncio.Task] = field(default_factory=set)


class IssueOrchestrator:
    """Polls for ready issues and claims them one at a time"""

    def __init__(
        self,
        tracker: Tracker,
        notifier: NotificationHub,
        polling: PollingConfig,
        scheduler: Scheduler = None,
        auth_interval: float = 5,
        config_watcher: ConfigWatcher = None,
        watch_interval: float = 2
    ):
        self.tracker = tracker
        self.notifier = notifier
        self.scheduler = scheduler or AsyncioScheduler()
        self.auth_interval = auth_interval
        self.config_watcher = config_watcher
        self.watch_interval = watch_interval

        self.auth_monitor = AuthMonitor(tracker)
        self.poller = ReadyIssuePoller(tracker)
        self.executor = ClaimExecutor(tracker)

        self.context = OrchestratorContext(polling=polling)

    @property
    def state(self) -> OrchestratorState:
        return self.context.state

    @property
    def polling(self) -> PollingConfig:
        return self.context.polling

    @property
    def claim_in_flight(self) -> bool:
        return self.context.claim_lock.locked() or bool(self.context.claim_tasks)

    async def start(self):
        """Start the auth timer, the poll timer and the config watcher"""
        ctx = self.context
        if ctx.state == OrchestratorState.STOPPED:
            raise RuntimeError("Orchestrator has been stopped and cannot be restarted")
        if ctx.state != OrchestratorState.IDLE:
            return

        logging.info("Starting Issue Claimer")
        ctx.state = OrchestratorState.POLLING

        if not await self.tracker.check_installed():
            logging.error(GH_NOT_INSTALLED_MESSAGE)
            await self.notifier.error(GH_NOT_INSTALLED_MESSAGE)

        # Known auth state before the first poll tick, which runs immediately
        await self._auth_tick()

        ctx.auth_timer = self.scheduler.schedule_periodic(
            "auth-check", self.auth_interval, self._auth_tick
        )
        if self.config_watcher is not None:
            ctx.watch_timer = self.scheduler.schedule_periodic(
                "config-watch", self.watch_interval, self._watch_tick
            )
        self._start_polling()

    def stop(self):
        """Release every timer; an in-flight claim finishes and its result is dropped

        Claims run in their own tasks, so cancelling the timers never
        interrupts one. Await wait_for_claims() to let them complete.
        """
        ctx = self.context
        for timer in (ctx.auth_timer, ctx.poll_timer, ctx.watch_timer):
            if timer is not None:
                timer.cancel()
        ctx.auth_timer = ctx.poll_timer = ctx.watch_timer = None
        ctx.state = OrchestratorState.STOPPED
        logging.info("Issue Claimer stopped")

    async def wait_for_claims(self):
        """Wait until every claim in flight has finished"""
        tasks = list(self.context.claim_tasks)
        if tasks:
            logging.info(f"Waiting for {len(tasks)} claim(s) in flight")
            await asyncio.gather(*tasks, return_exceptions=True)

    async def attach_view(self):
        """The host view became visible: start if needed and repaint auth status"""
        self.context.view_visible = True
        if self.context.state == OrchestratorState.IDLE:
            # start() pushes the first auth state
            await self.start()
        else:
            await self._auth_tick(force=True)

    def detach_view(self):
        self.context.view_visible = False

    def _start_polling(self):
        polling = self.context.polling
        if not polling.enabled:
            logging.info("Issue polling is disabled")
            return
        logging.info(f"Polling for ready issues every {polling.interval_seconds} seconds")
        self.context.poll_timer = self.scheduler.schedule_periodic(
            "issue-poll", polling.interval_seconds, self._poll_tick
        )

    def _stop_polling(self):
        if self.context.poll_timer is not None:
            self.context.poll_timer.cancel()
            self.context.poll_timer = None

    async def apply_config(self, polling: PollingConfig) -> bool:
        """Replace the polling config and restart the poll timer.

        Returns False when the config is unchanged. The auth timer is never
        touched.
        """
        ctx = self.context
        if polling == ctx.polling:
            return False

        logging.info(f"Polling configuration changed: {polling}")
        self._stop_polling()
        ctx.polling = polling
        if ctx.state in (OrchestratorState.POLLING, OrchestratorState.CLAIMING):
            self._start_polling()
        return True

    async def _auth_tick(self, force: bool = False):
        state = await self.auth_monitor.tick(force=force)
        if state is not None and self.context.state != OrchestratorState.STOPPED:
            await self.notifier.auth_status(state)

    async def _watch_tick(self):
        polling = await self.config_watcher.check()
        if polling is not None:
            await self.apply_config(polling)

    async def _poll_tick(self):
        if not self.auth_monitor.authenticated:
            logging.debug("Not authenticated with GitHub, skipping poll")
            return

        repository = self.context.polling.repository
        outcome = await self.poller.find_ready_issues(repository)
        if not outcome.ok:
            logging.error(f"Issue poll failed: {outcome.error}")
            await self.notifier.error(outcome.error)
            return
        if not outcome.issues:
            return

        # Only the first ready issue is claimed per poll; the rest wait for later polls
        issue = outcome.issues[0]
        if len(outcome.issues) > 1:
            logging.info(f"Found {len(outcome.issues)} ready issues, claiming #{issue.number} first")

        if self.claim_in_flight:
            logging.info(f"Claim already in progress, not claiming issue #{issue.number}")
            return

        await self._run_claim(
            issue, repository, lambda result: self.notifier.issue_claimed(issue, result)
        )

    def _run_claim(
        self,
        issue: Issue,
        repository: Optional[str],
        report: Callable[[ClaimResult], Awaitable[None]]
    ) -> Awaitable[Optional[ClaimResult]]:
        """Start a claim in its own task and return a shielded wait on it.

        Cancelling the caller (a poll timer being restarted or stopped) only
        stops the wait; the claim and its report still run to the end.
        """
        task = asyncio.create_task(
            self._claim_and_report(issue, repository, report),
            name=f"claim-{issue.number}"
        )
        self.context.claim_tasks.add(task)
        task.add_done_callback(self._claim_done)
        return asyncio.shield(task)

    def _claim_done(self, task: asyncio.Task):
        self.context.claim_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logging.error(f"Claim task {task.get_name()} failed: {task.exception()}")

    async def _claim_and_report(
        self,
        issue: Issue,
        repository: Optional[str],
        report: Callable[[ClaimResult], Awaitable[None]]
    ) -> Optional[ClaimResult]:
        result = await self._claim(issue, repository)
        if result is not None:
            await report(result)
        return result

    async def _claim(self, issue: Issue, repository: Optional[str]) -> Optional[ClaimResult]:
        """Run one claim in the single claim slot; None if stopped meanwhile"""
        ctx = self.context
        async with ctx.claim_lock:
            if ctx.state == OrchestratorState.POLLING:
                ctx.state = OrchestratorState.CLAIMING
            try:
                logging.info(f"Claiming issue #{issue.number}: {issue.title}")
                result = await self.executor.claim(issue, repository)
            finally:
                if ctx.state == OrchestratorState.CLAIMING:
                    ctx.state = OrchestratorState.POLLING

        if ctx.state == OrchestratorState.STOPPED:
            logging.info(f"Discarding claim result for issue #{issue.number}: {result}")
            return None
        return result

    async def claim_issue(self, issue: Issue) -> Optional[ClaimResult]:
        """Claim an issue on the host's request, waiting for any claim in flight"""
        return await self._run_claim(
            issue, self.context.polling.repository, self.notifier.claim_result
        )

    async def handle_command(self, command: HostCommand):
        """Dispatch a host command"""
        if isinstance(command, ClaimIssueCommand):
            await self.claim_issue(command.issue)
        elif isinstance(command, AuthStatusRequest):
            await self._auth_tick(force=True)
        elif isinstance(command, ConfigChangeCommand):
            try:
                polling = self.context.polling.updated(command.settings)
            except ValueError as e:
                await self.notifier.error(f"Invalid configuration: {e}")
                return
            await self.apply_config(polling)
        elif isinstance(command, ListReadyIssuesRequest):
            outcome = await self.poller.find_ready_issues(self.context.polling.repository)
            if outcome.ok:
                await self.notifier.issues(outcome.issues)
            else:
                await self.notifier.error(outcome.error)
        else:
            raise TypeError(f"Unhandled host command: {command!r}")


async def main(config_path: str = "config.json"):
    """Main entry point"""
    # Imported here so the core does not require the web and chat stacks
    from .host_bridge import HostBridge
    from .slack_notifier import SlackNotifier
    from .telegram_notifier import TelegramNotifier

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('claimer.log'),
            logging.StreamHandler()
        ]
    )

    config = Config(config_path)
    runner = CommandRunner(config.working_directory, config.command_timeout)
    hub = NotificationHub()

    if config.telegram_bot_token and config.telegram_chat_id:
        hub.add_listener(TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id))
    if config.slack_bot_token and config.slack_channel_id:
        hub.add_listener(SlackNotifier(config.slack_bot_token, config.slack_channel_id))

    orchestrator = IssueOrchestrator(
        GhCliTracker(runner),
        hub,
        config.polling,
        auth_interval=config.auth_check_interval,
        config_watcher=ConfigWatcher(config_path),
        watch_interval=config.watch_interval
    )
    bridge = HostBridge(orchestrator, config.host, config.port)
    hub.add_listener(bridge)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await bridge.start()
    try:
        await stop_event.wait()
    finally:
        orchestrator.stop()
        await bridge.stop()
        await orchestrator.wait_for_claims()
