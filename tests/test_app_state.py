"""
Unit tests for the application state.

Tests cover feed list handling, saving, and the play cycle lifecycle
including the single in-flight invariant.
"""

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock

import pytest

from vroid_rss.app_state import AppState, PlaybackInProgressError
from vroid_rss.config import AppConfig, ConfigIOError, ConfigStore
from vroid_rss.items import FeedItem
from vroid_rss.rss_parser import FetchError
from vroid_rss.worker import BackgroundLoop


@pytest.fixture
def mock_player_factory() -> MagicMock:
    """Create a Player factory whose players report zero failures."""
    player = MagicMock()
    player.play = AsyncMock(return_value=0)
    factory = MagicMock(return_value=player)
    factory.player = player
    return factory


@pytest.fixture
def state(
    store: ConfigStore,
    background_loop: BackgroundLoop,
    mock_parser_factory: MagicMock,
    mock_player_factory: MagicMock,
) -> AppState:
    """Create an AppState over a freshly loaded store."""
    return AppState(
        store,
        store.load(),
        background_loop,
        parser_factory=mock_parser_factory,
        player_factory=mock_player_factory,
    )


class TestFeedList:
    """Tests for feed list operations."""

    def test_feed_names(self, state: AppState) -> None:
        """Test names of the default configuration."""
        assert state.feed_names() == ["NHK"]

    def test_add_feed_appends(self, state: AppState) -> None:
        """Test that adding returns the new index and keeps order."""
        index = state.add_feed("Example", "https://example.com/feed.xml")

        assert index == 1
        assert state.feed_names() == ["NHK", "Example"]
        assert state.url_for("Example") == "https://example.com/feed.xml"

    def test_add_many_feeds(self, state: AppState) -> None:
        """Test that N additions give initial + N entries in insertion order."""
        indexes = [
            state.add_feed(f"Feed {i}", f"https://example.com/{i}.xml")
            for i in range(4)
        ]

        assert indexes == [1, 2, 3, 4]
        assert state.feed_names() == ["NHK"] + [f"Feed {i}" for i in range(4)]

    def test_add_feed_empty_field(self, state: AppState) -> None:
        """Test that empty input is rejected without changing the list."""
        with pytest.raises(ValueError, match="url"):
            state.add_feed("Example", "  ")

        assert state.feed_names() == ["NHK"]

    def test_add_feed_duplicate_name(self, state: AppState) -> None:
        """Test that names must be unique."""
        with pytest.raises(ValueError, match="already exists"):
            state.add_feed("NHK", "https://example.com/other.xml")

        assert len(state.config.rss) == 1

    def test_url_for_unknown(self, state: AppState) -> None:
        """Test that an unknown name has no URL."""
        assert state.url_for("Nope") is None

    def test_add_is_not_persisted(self, state: AppState, store: ConfigStore) -> None:
        """Test that adding a feed does not write the configuration."""
        state.add_feed("Example", "https://example.com/feed.xml")

        assert store.load().rss == AppConfig().rss


class TestSave:
    """Tests for AppState.save."""

    def test_save_persists_path_and_feeds(
        self, state: AppState, store: ConfigStore
    ) -> None:
        """Test that save writes the path and the feed list."""
        state.add_feed("Example", "https://example.com/feed.xml")

        state.save("/usr/bin/vrx")

        reloaded = store.load()
        assert reloaded.vrx.path == "/usr/bin/vrx"
        assert [feed.name for feed in reloaded.rss] == ["NHK", "Example"]
        assert state.executable_path == "/usr/bin/vrx"

    def test_save_error_propagates(self, state: AppState, store: ConfigStore) -> None:
        """Test that a write failure surfaces as ConfigIOError."""
        store.path.unlink()

        with pytest.raises(ConfigIOError):
            state.save("/usr/bin/vrx")


class TestPlayCycle:
    """Tests for starting and finishing play cycles."""

    def test_play_fetches_then_plays(
        self,
        state: AppState,
        mock_parser_factory: MagicMock,
        mock_player_factory: MagicMock,
        sample_items: list[FeedItem],
    ) -> None:
        """Test a successful cycle."""
        log = MagicMock()

        future = state.start_play("NHK", "/usr/bin/vrx", log)
        assert future.result(timeout=5) == 0

        mock_parser_factory.parser.fetch_feed.assert_awaited_once_with(
            "https://www3.nhk.or.jp/rss/news/cat0.xml"
        )
        mock_player_factory.assert_called_once_with("/usr/bin/vrx", log)
        mock_player_factory.player.play.assert_awaited_once_with(sample_items)
        assert state.finish_play(future) is None
        assert state.playing is False

    def test_playing_flag(self, state: AppState) -> None:
        """Test that the flag stays set until finish_play is called."""
        future = state.start_play("NHK", "/usr/bin/vrx", MagicMock())
        future.result(timeout=5)

        assert state.playing is True

        state.finish_play(future)

        assert state.playing is False

    def test_second_start_rejected(self, state: AppState) -> None:
        """Test that only one cycle may be in flight."""
        future = state.start_play("NHK", "/usr/bin/vrx", MagicMock())

        with pytest.raises(PlaybackInProgressError):
            state.start_play("NHK", "/usr/bin/vrx", MagicMock())

        future.result(timeout=5)
        state.finish_play(future)
        second = state.start_play("NHK", "/usr/bin/vrx", MagicMock())
        second.result(timeout=5)
        state.finish_play(second)

    def test_executable_path_snapshot(
        self, state: AppState, mock_player_factory: MagicMock
    ) -> None:
        """Test that the path given at start is used even if config changes."""
        future = state.start_play("NHK", "/first/vrx", MagicMock())
        state.config.vrx.path = "/second/vrx"
        future.result(timeout=5)

        assert mock_player_factory.call_args.args[0] == "/first/vrx"

    def test_fetch_failure_skips_player(
        self,
        state: AppState,
        mock_parser_factory: MagicMock,
        mock_player_factory: MagicMock,
    ) -> None:
        """Test that a fetch error ends the cycle before any invocation."""
        mock_parser_factory.parser.fetch_feed.side_effect = FetchError("down")

        future = state.start_play("NHK", "/usr/bin/vrx", MagicMock())

        with pytest.raises(FetchError):
            future.result(timeout=5)
        mock_player_factory.assert_not_called()
        error = state.finish_play(future)
        assert isinstance(error, FetchError)
        assert state.playing is False

    def test_unknown_feed_fails_with_fetch_error(
        self,
        state: AppState,
        mock_parser_factory: MagicMock,
        mock_player_factory: MagicMock,
    ) -> None:
        """Test that an unknown feed name fails without fetching."""
        future = state.start_play("Nope", "/usr/bin/vrx", MagicMock())

        with pytest.raises(FetchError, match="unknown feed"):
            future.result(timeout=5)
        mock_parser_factory.assert_not_called()
        mock_player_factory.assert_not_called()
        state.finish_play(future)

    def test_parser_closed_before_playing(
        self,
        state: AppState,
        mock_parser_factory: MagicMock,
        mock_player_factory: MagicMock,
    ) -> None:
        """Test that the fetcher session is released before playback."""
        events: list[str] = []
        mock_parser_factory.parser.__aexit__.side_effect = (
            lambda *args: events.append("closed")
        )

        async def play(items) -> int:
            events.append("play")
            return 0

        mock_player_factory.player.play = play

        state.start_play("NHK", "/usr/bin/vrx", MagicMock()).result(timeout=5)

        assert events == ["closed", "play"]

    def test_log_called_from_loop_thread(
        self,
        state: AppState,
        mock_player_factory: MagicMock,
        background_loop: BackgroundLoop,
    ) -> None:
        """Test that the player runs on the background thread."""
        seen: list[str] = []

        async def play(items) -> int:
            seen.append(threading.current_thread().name)
            return 0

        mock_player_factory.player.play = play

        state.start_play("NHK", "/usr/bin/vrx", MagicMock()).result(timeout=5)

        assert seen == ["vroid-rss-loop"]

    def test_cancelled_cycle(
        self,
        store: ConfigStore,
        mock_parser_factory: MagicMock,
        mock_player_factory: MagicMock,
    ) -> None:
        """Test finish_play on a cycle cancelled at shutdown."""
        loop = BackgroundLoop()
        loop.start()
        started = threading.Event()

        async def play(items) -> int:
            started.set()
            await asyncio.Event().wait()
            return 0

        mock_player_factory.player.play = play
        state = AppState(
            store,
            store.load(),
            loop,
            parser_factory=mock_parser_factory,
            player_factory=mock_player_factory,
        )

        future = state.start_play("NHK", "/usr/bin/vrx", MagicMock())
        assert started.wait(timeout=5)
        loop.stop()

        assert state.finish_play(future) is None
        assert state.playing is False
