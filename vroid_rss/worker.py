"""
Background asyncio loop.

Runs coroutines off the UI thread and hands back concurrent futures the
UI can observe.
"""

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundLoop:
    """An asyncio event loop running on a daemon thread."""

    def __init__(self):
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Whether the loop thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread. Does nothing if already running."""
        if self.running:
            return

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run, name="vroid-rss-loop", daemon=True
        )
        self._thread.start()
        logger.debug("Background loop started")

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def submit(
        self, coro: Coroutine[Any, Any, Any]
    ) -> concurrent.futures.Future:
        """
        Schedule a coroutine on the loop.

        Parameters
        ----------
        coro : Coroutine
            Coroutine to run.

        Returns
        -------
        concurrent.futures.Future
            Future resolved with the coroutine's result or exception.

        Raises
        ------
        RuntimeError
            If the loop is not running.
        """
        if not self.running or self._loop is None:
            coro.close()
            raise RuntimeError("Background loop is not running")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def stop(self, timeout: float = 5.0) -> None:
        """
        Cancel pending tasks, stop the loop and join its thread.

        Parameters
        ----------
        timeout : float
            Seconds to wait for cancellation and for the thread to exit.
        """
        if self._loop is None:
            return

        if self.running:
            try:
                asyncio.run_coroutine_threadsafe(
                    self._cancel_tasks(), self._loop
                ).result(timeout)
            except concurrent.futures.TimeoutError:
                logger.warning("Timed out cancelling background tasks")
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)

        if not self.running:
            self._loop.close()
        self._loop = None
        self._thread = None
        logger.debug("Background loop stopped")

    async def _cancel_tasks(self) -> None:
        """Cancel every task on the loop except the caller."""
        current = asyncio.current_task()
        tasks = [t for t in asyncio.all_tasks() if t is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
