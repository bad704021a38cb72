#!/usr/bin/env python3
"""
External command execution for the Issue Claimer.

Every tracker and git operation goes through CommandRunner, which runs the
command asynchronously in the project directory with a hard timeout.
"""

import asyncio
import logging
import os
from typing import Optional, Sequence

from .models import CommandError, CommandResult


DEFAULT_TIMEOUT_SECONDS = 30


class CommandRunner:
    """Runs external commands and captures (exit code, stdout, stderr)"""

    def __init__(self, cwd: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.cwd = cwd or os.getcwd()
        self.timeout = timeout

    async def run(self, args: Sequence[str], cwd: Optional[str] = None) -> CommandResult:
        """Run a command and return its result.

        A non-zero exit code is returned, not raised. CommandError is raised
        when the binary is missing or the command exceeds the timeout.
        """
        cwd = cwd or self.cwd
        logging.debug(f"Executing command: {' '.join(args)} in directory: {cwd}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd
            )
        except OSError as e:
            # FileNotFoundError / PermissionError for the binary or the cwd
            raise CommandError(f"Failed to start {args[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise CommandError(f"Command timed out after {self.timeout} seconds: {' '.join(args)}")
        except asyncio.CancelledError:
            # The caller went away, the child must not outlive it
            await self._kill(process)
            raise

        return CommandResult(
            exit_code=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace")
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process):
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                # Exited between the check and the kill
                pass
        await process.wait()
