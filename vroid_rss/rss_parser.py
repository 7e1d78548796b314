"""
RSS/Atom feed fetching module.

Fetches feeds with aiohttp and parses them with feedparser, reducing
every entry to a FeedItem.
"""

import asyncio
import logging
from typing import Any

import aiohttp
import feedparser

from vroid_rss.items import FeedItem

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a feed cannot be retrieved or is not RSS/Atom."""


class FeedParser:
    """
    Async RSS/Atom feed fetcher.

    Performs a single request per fetch; there is no retry and no cache.
    """

    def __init__(
        self, timeout: int | None = None, user_agent: str = "VroidRSS/1.0"
    ):
        """
        Initialize the feed parser.

        Parameters
        ----------
        timeout : int | None
            Total HTTP request timeout in seconds. None keeps aiohttp's
            default session timeout.
        user_agent : str
            User-Agent header for HTTP requests.
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            kwargs: dict[str, Any] = {"headers": {"User-Agent": self.user_agent}}
            if self.timeout is not None:
                kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(**kwargs)
        return self._session

    async def fetch_feed(self, url: str) -> list[FeedItem]:
        """
        Fetch and parse an RSS/Atom feed.

        Parameters
        ----------
        url : str
            URL of the feed document.

        Returns
        -------
        list[FeedItem]
            Items in the order the feed lists them.

        Raises
        ------
        FetchError
            If the URL is empty, the request fails, or the body is not
            an RSS/Atom document.
        """
        if not url:
            raise FetchError("no feed URL given")

        session = await self._get_session()
        logger.debug("Fetching feed %s", url)

        try:
            async with session.get(url) as response:
                response.raise_for_status()
                content = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Failed to fetch feed %s: %s", url, e)
            raise FetchError(f"cannot fetch {url}: {e}") from e

        items = self._parse_feed(content, url)
        logger.info("Fetched %d items from %s", len(items), url)
        return items

    def _parse_feed(self, content: bytes, url: str) -> list[FeedItem]:
        """
        Parse feed content into FeedItem objects.

        Parameters
        ----------
        content : bytes
            Raw feed document. Left undecoded so feedparser can apply
            the encoding declared in the XML prolog.
        url : str
            Source URL, used for logging and error messages.

        Returns
        -------
        list[FeedItem]
            Parsed items.

        Raises
        ------
        FetchError
            If feedparser finds no feed in the content or cannot decode it.
        """
        # Some servers send leading newlines before the XML declaration
        content = content.lstrip()
        try:
            parsed: Any = feedparser.parse(content)
        except ValueError as e:
            raise FetchError(f"cannot parse {url}: {e}") from e

        if not parsed.entries and (parsed.bozo or not parsed.get("version")):
            detail = parsed.get("bozo_exception") or "no RSS/Atom feed found"
            raise FetchError(f"cannot parse {url}: {detail}")

        if parsed.bozo and parsed.get("bozo_exception"):
            logger.warning(
                "Feed %s has parsing issues: %s", url, parsed.bozo_exception
            )

        items = [FeedItem.from_feedparser(entry) for entry in parsed.entries]
        logger.debug("Parsed items from %s: %s", url, items)
        return items

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
            logger.debug("HTTP session closed")

    async def __aenter__(self) -> "FeedParser":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
