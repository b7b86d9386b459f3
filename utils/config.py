"""
Configuration management for the webtoon reader backend.
"""

import os
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional


def _env_path(var: str, default: Path) -> Path:
    value = os.environ.get(var)
    return Path(value).expanduser() if value else default


class Config:
    """Configuration settings for the webtoon reader."""

    # Application info
    APP_NAME = "Webtoon Reader"
    VERSION = "0.3.0"

    # Platform
    BASE_URL = "https://www.webtoons.com"
    DEFAULT_LANGUAGE = "en"

    # HTTP Headers
    USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'

    HTTP_HEADERS = {
        'User-Agent': USER_AGENT,
        'Accept-Language': 'en-US,en;q=0.9',
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8',
        'Referer': 'https://www.webtoons.com/'
    }

    # The image CDN rejects requests that do not come from the platform
    IMAGE_HEADERS = {
        'User-Agent': USER_AGENT,
        'Accept': 'image/webp,image/apng,image/*,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.9',
        'Referer': 'https://www.webtoons.com/',
        'Sec-Fetch-Dest': 'image',
        'Sec-Fetch-Mode': 'no-cors',
        'Sec-Fetch-Site': 'cross-site'
    }

    # Default values
    DEFAULT_MAX_WORKERS = 16
    DEFAULT_RETRY_COUNT = 1
    DEFAULT_TIMEOUT = 30

    # Cache freshness windows
    EPISODE_REFRESH_INTERVAL = timedelta(days=1)
    METADATA_EXPIRY = timedelta(days=10)

    # Homepage listings
    ORIGINALS_HOMEPAGE_LIMIT = 20
    CANVAS_HOMEPAGE_PAGES = (1, 5)

    # Logging configuration
    LOGGING_CONFIG = {
        'level': logging.INFO,
        'max_file_size': 10 * 1024 * 1024,  # 10MB
        'backup_count': 5,
        'log_to_file': True,
        'log_to_console': True
    }

    # File paths
    BASE_DIR = Path.cwd()
    CACHE_DIR = _env_path('WEBTOON_CACHE_DIR', BASE_DIR / "cache")
    DATA_DIR = _env_path('WEBTOON_DATA_DIR', BASE_DIR / "data")
    DB_PATH = _env_path('WEBTOON_DB_PATH', DATA_DIR / "webtoon_store.db")
    LOGS_DIR = _env_path('WEBTOON_LOGS_DIR', BASE_DIR / "logs")

    # Image folders, created by the downloader on first write
    THUMBNAILS_SUBDIR = "thumbnails"
    EPISODES_SUBDIR = "episodes"
    PANELS_SUBDIR = "panels"

    @classmethod
    def get_cache_dir(cls) -> Path:
        """Get the purgeable cache directory, creating it if necessary."""
        cls.CACHE_DIR.mkdir(parents=True, exist_ok=True)
        return cls.CACHE_DIR

    @classmethod
    def get_data_dir(cls) -> Path:
        """Get the persistent data directory, creating it if necessary."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        return cls.DATA_DIR

    @classmethod
    def get_logs_dir(cls) -> Path:
        """Get the logs directory, creating it if necessary."""
        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        return cls.LOGS_DIR

    @classmethod
    def get_thumbnails_dir(cls, data_dir: Optional[Path] = None) -> Path:
        """Get the folder holding webtoon thumbnails."""
        return Path(data_dir or cls.DATA_DIR) / cls.THUMBNAILS_SUBDIR

    @classmethod
    def get_episode_thumbnails_dir(cls, webtoon_key: str, data_dir: Optional[Path] = None) -> Path:
        """Get the folder holding the episode thumbnails of one webtoon."""
        return Path(data_dir or cls.DATA_DIR) / cls.EPISODES_SUBDIR / webtoon_key

    @classmethod
    def get_panels_dir(cls, cache_dir: Optional[Path] = None) -> Path:
        """Get the folder holding episode panels and author pictures."""
        return Path(cache_dir or cls.CACHE_DIR) / cls.PANELS_SUBDIR

    @classmethod
    def setup_logging(cls) -> logging.Logger:
        """Set up application-wide logging configuration."""
        from utils.logger import configure_root_logger
        return configure_root_logger(
            level=cls.LOGGING_CONFIG['level'],
            log_to_file=cls.LOGGING_CONFIG['log_to_file'],
            log_to_console=cls.LOGGING_CONFIG['log_to_console'],
            max_file_size=cls.LOGGING_CONFIG['max_file_size'],
            backup_count=cls.LOGGING_CONFIG['backup_count']
        )

    @classmethod
    def validate_config(cls) -> bool:
        """Validate configuration settings."""
        try:
            # Ensure necessary directories can be created
            cls.get_cache_dir()
            cls.get_data_dir()
            cls.get_logs_dir()

            # Set up logging
            logger = cls.setup_logging()
            logger.info(f"Configuration validated successfully for {cls.APP_NAME} v{cls.VERSION}")

            return True
        except OSError as e:
            print(f"Configuration validation failed: {e}")
            return False
