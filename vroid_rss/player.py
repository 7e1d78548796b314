"""
Feed item player.

Hands each item's title and description to the external speech
executable, one process at a time, with fixed pauses in between.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Iterable

from vroid_rss.items import FeedItem

logger = logging.getLogger(__name__)

# Pause after reading a title, before its description
TITLE_DELAY_SECONDS = 2.0

# Pause after reading a description, before the next item
DESCRIPTION_DELAY_SECONDS = 5.0


class ProcessError(Exception):
    """Raised when the executable cannot be launched or exits non-zero."""


class Player:
    """
    Plays feed items through an external executable.

    Items are processed strictly in order. A failing invocation is logged
    and never aborts the loop.
    """

    def __init__(
        self,
        executable_path: str,
        log: Callable[[str], None],
        title_delay: float = TITLE_DELAY_SECONDS,
        description_delay: float = DESCRIPTION_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the player.

        Parameters
        ----------
        executable_path : str
            Executable invoked as ``<path> <text>``.
        log : Callable[[str], None]
            Receives every user-facing log line.
        title_delay : float
            Seconds to wait after the title invocation.
        description_delay : float
            Seconds to wait after the description invocation.
        sleep : Callable[[float], Awaitable[None]]
            Coroutine used for the pauses.
        """
        self.executable_path = executable_path
        self.log = log
        self.title_delay = title_delay
        self.description_delay = description_delay
        self._sleep = sleep

    async def play(self, items: Iterable[FeedItem]) -> int:
        """
        Play all items.

        Parameters
        ----------
        items : Iterable[FeedItem]
            Items in feed order.

        Returns
        -------
        int
            Number of failed invocations.
        """
        failures = 0
        count = 0

        for item in items:
            count += 1
            self.log(item.title)
            self.log("  " + item.description)

            if not await self._speak(item.title):
                failures += 1
            await self._sleep(self.title_delay)

            if not await self._speak(item.description):
                failures += 1
            await self._sleep(self.description_delay)

        logger.info("Played %d item(s), %d failed invocation(s)", count, failures)
        return failures

    async def _speak(self, text: str) -> bool:
        """Run the executable once, logging a failure instead of raising."""
        try:
            await self._run(text)
        except ProcessError as e:
            logger.warning("Execution of %s failed: %s", self.executable_path, e)
            self.log(f"execute fail {e}.")
            return False
        return True

    async def _run(self, argument: str) -> None:
        """
        Launch the executable with a single argument and wait for it.

        Parameters
        ----------
        argument : str
            The only command-line argument passed.

        Raises
        ------
        ProcessError
            If the process cannot be started or exits with a non-zero status.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable_path,
                argument,
                stdin=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ProcessError(str(e)) from e

        try:
            returncode = await process.wait()
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            # Reap the child so its transport is closed before the loop stops
            await asyncio.shield(process.wait())
            raise

        if returncode != 0:
            raise ProcessError(f"exit status {returncode}")
