"""
Shared fixtures for VroidRSS tests.

Provides common test fixtures for use across all test modules.
"""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from vroid_rss.config import AppConfig, ConfigStore, FeedEntry, VrxConfig
from vroid_rss.items import FeedItem
from vroid_rss.worker import BackgroundLoop


# Path to test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_rss_content(fixtures_dir: Path) -> str:
    """Return contents of the sample RSS feed."""
    return (fixtures_dir / "sample_rss.xml").read_text(encoding="utf-8")


@pytest.fixture
def sample_atom_content(fixtures_dir: Path) -> str:
    """Return contents of the sample Atom feed."""
    return (fixtures_dir / "sample_atom.xml").read_text(encoding="utf-8")


@pytest.fixture
def sample_config_content(fixtures_dir: Path) -> str:
    """Return contents of the sample TOML configuration."""
    return (fixtures_dir / "sample_config.toml").read_text(encoding="utf-8")


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Return a not-yet-created configuration directory."""
    return tmp_path / "appdata" / "VroidRSS"


@pytest.fixture
def store(config_dir: Path) -> ConfigStore:
    """Create a ConfigStore rooted in a temporary directory."""
    return ConfigStore(config_dir)


@pytest.fixture
def sample_config() -> AppConfig:
    """
    Create a configuration with a custom path and two feeds.

    Returns
    -------
    AppConfig
        Configuration differing from the first-run defaults.
    """
    return AppConfig(
        vrx=VrxConfig(path="/usr/bin/vrx"),
        rss=[
            FeedEntry(name="NHK", url="https://www3.nhk.or.jp/rss/news/cat0.xml"),
            FeedEntry(name="Example", url="https://example.com/feed.xml"),
        ],
    )


@pytest.fixture
def sample_items() -> list[FeedItem]:
    """Return two feed items."""
    return [
        FeedItem(title="T1", description="D1"),
        FeedItem(title="T2", description="D2"),
    ]


@pytest.fixture
def background_loop() -> Generator[BackgroundLoop, None, None]:
    """
    Start a background loop for the duration of a test.

    Yields
    ------
    BackgroundLoop
        A running loop, stopped on teardown.
    """
    loop = BackgroundLoop()
    loop.start()
    yield loop
    loop.stop()


@pytest.fixture
def mock_parser_factory(sample_items: list[FeedItem]) -> MagicMock:
    """
    Create a FeedParser factory whose parsers return ``sample_items``.

    Returns
    -------
    MagicMock
        Factory; ``factory.parser`` is the parser it hands out.
    """
    parser = MagicMock()
    parser.fetch_feed = AsyncMock(return_value=sample_items)
    parser.__aenter__ = AsyncMock(return_value=parser)
    parser.__aexit__ = AsyncMock(return_value=None)

    factory = MagicMock(return_value=parser)
    factory.parser = parser
    return factory
