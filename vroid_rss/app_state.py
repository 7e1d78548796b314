"""
Application state shared by the UI event handlers.

Owns the loaded configuration and enforces that at most one play cycle
runs at a time.
"""

import concurrent.futures
import logging
from collections.abc import Callable

from pydantic import ValidationError

from vroid_rss.config import AppConfig, ConfigStore, FeedEntry
from vroid_rss.player import Player
from vroid_rss.rss_parser import FeedParser, FetchError
from vroid_rss.worker import BackgroundLoop

logger = logging.getLogger(__name__)


class PlaybackInProgressError(RuntimeError):
    """Raised when a play cycle is requested while another is running."""


class AppState:
    """
    State passed explicitly to the main window.

    All methods are meant to be called from the UI thread. The play
    cycle itself runs on the background loop and only reads the
    executable path captured when it was started.
    """

    def __init__(
        self,
        store: ConfigStore,
        config: AppConfig,
        loop: BackgroundLoop,
        parser_factory: Callable[[], FeedParser] = FeedParser,
        player_factory: Callable[..., Player] = Player,
    ):
        """
        Initialize the application state.

        Parameters
        ----------
        store : ConfigStore
            Store used by ``save``.
        config : AppConfig
            Configuration returned by ``store.load()``.
        loop : BackgroundLoop
            Loop running play cycles.
        parser_factory : Callable[[], FeedParser]
            Creates the feed fetcher for each cycle.
        player_factory : Callable[..., Player]
            Creates the player, called as ``(executable_path, log)``.
        """
        self.store = store
        self.config = config
        self.loop = loop
        self.parser_factory = parser_factory
        self.player_factory = player_factory
        self._playing = False

    @property
    def playing(self) -> bool:
        """Whether a play cycle is in flight."""
        return self._playing

    @property
    def executable_path(self) -> str:
        """Executable path from the loaded or last saved configuration."""
        return self.config.vrx.path

    def feed_names(self) -> list[str]:
        """Return feed display names in configuration order."""
        return [feed.name for feed in self.config.rss]

    def add_feed(self, name: str, url: str) -> int:
        """
        Append a feed entry.

        Parameters
        ----------
        name : str
            Display name, unique among configured feeds.
        url : str
            Feed URL.

        Returns
        -------
        int
            Index of the new entry, to be selected in the feed selector.

        Raises
        ------
        ValueError
            If a field is empty or the name is already used.
        """
        try:
            entry = FeedEntry(name=name, url=url)
        except ValidationError as e:
            raise ValueError(_first_error(e)) from e

        if entry.name in self.feed_names():
            raise ValueError(f"A feed named '{entry.name}' already exists")

        self.config.rss.append(entry)
        logger.info("Added feed '%s' (%s)", entry.name, entry.url)
        return len(self.config.rss) - 1

    def url_for(self, name: str) -> str | None:
        """Return the URL of the feed called ``name``, or None."""
        url = None
        for feed in self.config.rss:
            if feed.name == name:
                url = feed.url
        return url

    def save(self, executable_path: str) -> None:
        """
        Persist the executable path and the feed list.

        Raises
        ------
        ConfigIOError
            If the configuration file cannot be written.
        """
        self.config.vrx.path = executable_path
        self.store.save(self.config)

    def start_play(
        self,
        feed_name: str,
        executable_path: str,
        log: Callable[[str], None],
    ) -> concurrent.futures.Future:
        """
        Start a play cycle for the named feed.

        Parameters
        ----------
        feed_name : str
            Name currently shown in the feed selector.
        executable_path : str
            Executable to run, captured for the whole cycle.
        log : Callable[[str], None]
            Receives user-facing log lines. Called from the loop thread.

        Returns
        -------
        concurrent.futures.Future
            Resolves to the number of failed invocations, or fails with
            ``FetchError`` when the feed cannot be fetched. Pass it to
            ``finish_play`` once done.

        Raises
        ------
        PlaybackInProgressError
            If a previous cycle has not been finished.
        """
        if self._playing:
            raise PlaybackInProgressError("A play cycle is already running")

        url = self.url_for(feed_name)
        future = self.loop.submit(self._play_cycle(feed_name, url, executable_path, log))
        self._playing = True
        logger.info("Started play cycle for '%s'", feed_name)
        return future

    def finish_play(
        self, future: concurrent.futures.Future
    ) -> BaseException | None:
        """
        Mark the play cycle as finished.

        Parameters
        ----------
        future : concurrent.futures.Future
            The completed future returned by ``start_play``.

        Returns
        -------
        BaseException | None
            The exception the cycle ended with, if any.
        """
        self._playing = False
        if future.cancelled():
            logger.info("Play cycle cancelled")
            return None
        return future.exception()

    async def _play_cycle(
        self,
        feed_name: str,
        url: str | None,
        executable_path: str,
        log: Callable[[str], None],
    ) -> int:
        if url is None:
            raise FetchError(f"unknown feed '{feed_name}'")

        async with self.parser_factory() as parser:
            items = await parser.fetch_feed(url)

        player = self.player_factory(executable_path, log)
        return await player.play(items)


def _first_error(error: ValidationError) -> str:
    """Return a short message for the first validation error."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}"
