"""
Configuration management for VroidRSS.

Handles loading, first-run creation and saving of the TOML configuration
file kept in the user's application-data directory.
"""

import logging
import os
import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

APP_DIR_NAME = "VroidRSS"
CONFIG_FILE_NAME = "config.toml"
DEFAULT_EXECUTABLE_PATH = "C:\\Program Files"


class ConfigIOError(OSError):
    """Raised when the configuration cannot be created, read, decoded or written."""


class FeedEntry(BaseModel):
    """
    A named RSS/Atom source.

    Attributes
    ----------
    name : str
        Display name shown in the feed selector.
    url : str
        URL of the RSS/Atom document.
    """

    name: str
    url: str

    @field_validator("name", "url")
    @classmethod
    def check_not_empty(cls, v: str) -> str:
        """Validate that required fields are not empty."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()


class VrxConfig(BaseModel):
    """
    Settings for the external speech executable.

    Attributes
    ----------
    path : str
        Path of the executable invoked for every title and description.
    """

    path: str = DEFAULT_EXECUTABLE_PATH


def known_feeds() -> list[FeedEntry]:
    """Return the built-in feed list used on first run."""
    return [
        FeedEntry(name="NHK", url="https://www3.nhk.or.jp/rss/news/cat0.xml"),
    ]


class AppConfig(BaseModel):
    """
    Root application configuration.

    Attributes
    ----------
    vrx : VrxConfig
        Executable settings, stored under the ``[vrx]`` table.
    rss : list[FeedEntry]
        Known feeds, stored as ``[[rss]]`` tables in insertion order.
    """

    vrx: VrxConfig = Field(default_factory=VrxConfig)
    rss: list[FeedEntry] = Field(default_factory=known_feeds)


def default_config_dir(environ: dict[str, str] | None = None) -> Path:
    """
    Resolve the per-user configuration directory.

    Parameters
    ----------
    environ : dict[str, str] | None
        Environment mapping to read, defaults to ``os.environ``.

    Returns
    -------
    Path
        ``%APPDATA%/VroidRSS``, falling back to
        ``%USERPROFILE%/Application Data/VroidRSS`` and finally to the
        home directory when neither variable is set.
    """
    env = os.environ if environ is None else environ

    appdata = env.get("APPDATA")
    if appdata:
        return Path(appdata) / APP_DIR_NAME

    profile = env.get("USERPROFILE")
    base = Path(profile) if profile else Path.home()
    return base / "Application Data" / APP_DIR_NAME


class ConfigStore:
    """
    Reads and writes the TOML configuration file.

    The store assumes a single process and a single writer; no locking
    is performed.
    """

    def __init__(self, config_dir: str | Path | None = None):
        """
        Initialize the store.

        Parameters
        ----------
        config_dir : str | Path | None
            Directory holding ``config.toml``. Resolved from the
            environment when omitted.
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.path = self.config_dir / CONFIG_FILE_NAME

    def load(self) -> AppConfig:
        """
        Load the configuration, creating it with defaults on first run.

        Returns
        -------
        AppConfig
            The decoded configuration, or the defaults just written.

        Raises
        ------
        ConfigIOError
            If the directory or file cannot be created or read, or the
            file content is not a valid configuration.
        """
        try:
            self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigIOError(f"cannot create directory: {e}") from e

        if not self.path.exists():
            config = AppConfig()
            logger.info("No configuration found, creating %s", self.path)
            try:
                with open(self.path, "wb") as f:
                    tomli_w.dump(config.model_dump(), f)
            except OSError as e:
                raise ConfigIOError(f"cannot create {self.path}: {e}") from e
            return config

        logger.info("Loading configuration from %s", self.path)

        try:
            with open(self.path, "rb") as f:
                raw_config = tomllib.load(f)
        except OSError as e:
            raise ConfigIOError(f"cannot read {self.path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigIOError(f"invalid TOML in {self.path}: {e}") from e

        try:
            config = AppConfig.model_validate(raw_config)
        except ValidationError as e:
            raise ConfigIOError(f"invalid configuration in {self.path}: {e}") from e

        logger.info(
            "Configuration loaded successfully: %d feed(s) configured",
            len(config.rss),
        )
        return config

    def save(self, config: AppConfig) -> None:
        """
        Overwrite the existing configuration file with ``config``.

        The file must already exist (``load`` creates it); this method
        neither creates the directory nor the file.

        Parameters
        ----------
        config : AppConfig
            Configuration to persist.

        Raises
        ------
        ConfigIOError
            If the file is missing or cannot be written.
        """
        data = tomli_w.dumps(config.model_dump()).encode("utf-8")

        try:
            with open(self.path, "r+b") as f:
                f.write(data)
                f.truncate()
        except OSError as e:
            raise ConfigIOError(f"cannot write {self.path}: {e}") from e

        logger.info(
            "Configuration saved to %s (%d feed(s))", self.path, len(config.rss)
        )
