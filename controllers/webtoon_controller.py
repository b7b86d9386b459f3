"""
Webtoon Controller - Cache freshness and the backend command layer.

This controller handles every webtoon-related command the UI issues:
- Serving webtoon metadata from the cache, refreshing what went stale
- Forcing an episode list synchronization
- Fetching an episode's panels and its top-level comments
- Search, homepage recommendations and creator profiles
- Generic image caching
- Cache maintenance

A cached record carries two clocks: ``expired_at`` for the metadata and
``refresh_eps_at`` for the episode list. ``decide_refresh`` maps a record
(or its absence) to the work needed; the controller performs it on a copy
and writes the result back only once every step succeeded.
"""

import copy
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from models.creator import CreatorInfo
from models.episode import EpisodeDetail, EpisodePreview, Post
from models.progress import DownloadingInfo
from models.webtoon import WebtoonId, WebtoonMetadata, WebtoonSearchResult, utcnow
from scraper.creators import CreatorScraper
from scraper.downloader import ImageDownloader
from scraper.episodes import EpisodeScraper
from scraper.progress import ProgressSink
from scraper.recommendations import RecommendationScraper
from scraper.webtoon import WebtoonScraper
from scraper.webtoon_client import WebtoonClient
from utils.config import Config
from utils.db_manager import DatabaseManager
from utils.logger import get_logger, log_exception, CacheMissError, NotFoundError, ValidationError
from utils.single_flight import SingleFlight

logger = get_logger(__name__)


class RefreshAction(Enum):
    """Work needed to bring a cached record up to date."""

    FULL_FETCH = "full_fetch"
    SERVE_CACHED = "serve_cached"
    REFRESH_METADATA = "refresh_metadata"
    SYNC_EPISODES = "sync_episodes"
    REFRESH_ALL = "refresh_all"


def decide_refresh(record: Optional[WebtoonMetadata], now: datetime) -> RefreshAction:
    """Pick the refresh action for ``record`` at ``now``. ``None`` means no usable record."""
    if record is None:
        return RefreshAction.FULL_FETCH

    metadata_stale = record.is_expired(now)
    episodes_stale = record.needs_episode_refresh(now)

    if metadata_stale and episodes_stale:
        return RefreshAction.REFRESH_ALL
    if metadata_stale:
        return RefreshAction.REFRESH_METADATA
    if episodes_stale:
        return RefreshAction.SYNC_EPISODES
    return RefreshAction.SERVE_CACHED


class WebtoonController:
    """Controller for webtoon cache operations."""

    def __init__(self, db_manager: DatabaseManager, client: Optional[WebtoonClient] = None,
                 cache_dir: Union[str, Path, None] = None, data_dir: Union[str, Path, None] = None,
                 recommendation_scraper: Optional[RecommendationScraper] = None,
                 clock: Callable[[], datetime] = utcnow):
        """Initialize the webtoon controller.

        Args:
            db_manager: Persistent store for cached records
            client: HTTP client shared by every scraper
            cache_dir: Purgeable folder for panels and temporary images
            data_dir: Persistent folder for thumbnails
            recommendation_scraper: Replaces the default search/homepage scraper
            clock: Returns the current aware UTC time
        """
        self.db_manager = db_manager
        self.client = client or WebtoonClient()
        self.cache_dir = Path(cache_dir or Config.CACHE_DIR)
        self.data_dir = Path(data_dir or Config.DATA_DIR)
        self.clock = clock

        self.downloader = ImageDownloader(self.client)
        self.webtoon_scraper = WebtoonScraper(self.client, self.downloader)
        self.episode_scraper = EpisodeScraper(self.client, self.downloader)
        self.recommendation_scraper = recommendation_scraper or RecommendationScraper(self.client)
        self.creator_scraper = CreatorScraper(self.client)

        self._single_flight = SingleFlight()
        self._locks_guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

        # Event callbacks
        self.on_progress: Optional[Callable[[DownloadingInfo], None]] = None

    def _lock_for(self, webtoon_id: WebtoonId) -> threading.Lock:
        """Lock serializing every write to the record of ``webtoon_id``."""
        with self._locks_guard:
            return self._locks.setdefault(webtoon_id.key, threading.Lock())

    def _progress(self, progress: Optional[ProgressSink]) -> ProgressSink:
        return progress or ProgressSink(self.on_progress)

    def _load(self, webtoon_id: WebtoonId) -> Optional[WebtoonMetadata]:
        try:
            return self.db_manager.get_webtoon(webtoon_id)
        except CacheMissError as e:
            logger.debug(f"Cache miss for {webtoon_id}: {e}")
            return None

    # ------------------------------------------------------------------
    # Webtoon info
    # ------------------------------------------------------------------

    def get_webtoon_info(self, webtoon_id: WebtoonId,
                         progress: Optional[ProgressSink] = None) -> WebtoonMetadata:
        """Get the metadata and episode list of a webtoon, refreshing stale parts.

        Concurrent calls for the same webtoon share one refresh and one result.
        """
        progress = self._progress(progress)
        return self._single_flight.do(
            ('info', webtoon_id.key),
            lambda: self._run_locked(webtoon_id, self._get_webtoon_info, progress)
        )

    def _run_locked(self, webtoon_id: WebtoonId, operation, progress: ProgressSink):
        with self._lock_for(webtoon_id):
            try:
                return operation(webtoon_id, progress)
            except Exception as e:
                log_exception(logger, e, f"Error while updating {webtoon_id}")
                raise

    def _get_webtoon_info(self, webtoon_id: WebtoonId, progress: ProgressSink) -> WebtoonMetadata:
        now = self.clock()
        cached = self._load(webtoon_id)
        action = decide_refresh(cached, now)
        logger.info(f"{webtoon_id}: {action.value}")

        if action == RefreshAction.SERVE_CACHED:
            progress.completed()
            return cached

        if action == RefreshAction.FULL_FETCH:
            record = self._full_fetch(webtoon_id, progress, now)
        else:
            record = copy.deepcopy(cached)
            if action in (RefreshAction.REFRESH_METADATA, RefreshAction.REFRESH_ALL):
                record = self._refresh_metadata(record, progress, now)
            if action in (RefreshAction.SYNC_EPISODES, RefreshAction.REFRESH_ALL):
                self._sync_episodes(record, progress, now)

        self.db_manager.save_webtoon(record)
        progress.completed()
        return record

    def _full_fetch(self, webtoon_id: WebtoonId, progress: ProgressSink, now: datetime) -> WebtoonMetadata:
        record = self.webtoon_scraper.fetch_metadata(webtoon_id, progress, now)
        self.webtoon_scraper.cache_thumbnail(record, Config.get_thumbnails_dir(self.data_dir), progress)
        self._sync_episodes(record, progress, now)
        return record

    def _refresh_metadata(self, record: WebtoonMetadata, progress: ProgressSink,
                          now: datetime) -> WebtoonMetadata:
        """Refetch the metadata, keeping the episode list and its clock."""
        fresh = self.webtoon_scraper.fetch_metadata(record.id, progress, now)
        fresh.episodes = record.episodes
        fresh.refresh_eps_at = record.refresh_eps_at
        self.webtoon_scraper.cache_thumbnail(fresh, Config.get_thumbnails_dir(self.data_dir), progress)
        return fresh

    def _sync_episodes(self, record: WebtoonMetadata, progress: ProgressSink, now: datetime) -> None:
        """Bring ``record.episodes`` up to date and push the episode clock."""
        known_count = record.episode_count
        if known_count == 0:
            record.episodes = []
            new_episodes = self.episode_scraper.scrape_all(record.id, progress)
        else:
            new_episodes = self.episode_scraper.scrape_new_since(record.id, known_count, progress)

        added = record.append_episodes(new_episodes)
        logger.info(f"{record.id}: {added} new episode(s), {record.episode_count} in total")

        self.webtoon_scraper.cache_episode_thumbnails(
            record, Config.get_episode_thumbnails_dir(record.id.key, self.data_dir), progress
        )
        record.push_episode_refresh(now, Config.EPISODE_REFRESH_INTERVAL)

    def force_refresh_episodes(self, webtoon_id: WebtoonId,
                               progress: Optional[ProgressSink] = None) -> WebtoonMetadata:
        """Synchronize the episode list now, whatever its clock says."""
        progress = self._progress(progress)
        return self._single_flight.do(
            ('episodes', webtoon_id.key),
            lambda: self._run_locked(webtoon_id, self._force_refresh_episodes, progress)
        )

    def _force_refresh_episodes(self, webtoon_id: WebtoonId, progress: ProgressSink) -> WebtoonMetadata:
        cached = self._load(webtoon_id)
        if cached is None:
            # Nothing to synchronize against; a full fetch includes the episodes
            return self._get_webtoon_info(webtoon_id, progress)

        record = copy.deepcopy(cached)
        self._sync_episodes(record, progress, self.clock())
        self.db_manager.save_webtoon(record)
        progress.completed()
        return record

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    def _find_episode(self, webtoon_id: WebtoonId, episode_number: int,
                      progress: ProgressSink) -> Tuple[WebtoonMetadata, EpisodePreview]:
        """Look an episode up in the cached list, fetching the webtoon first if needed."""
        if episode_number < 1:
            raise ValidationError(f"Episode numbers start at 1, got {episode_number}")

        record = self._load(webtoon_id)
        if record is None or record.episodes is None:
            record = self.get_webtoon_info(webtoon_id, progress)

        preview = record.get_episode(episode_number)
        if preview is None:
            raise NotFoundError(f"{webtoon_id} has no episode #{episode_number} "
                                f"({record.episode_count} cached)")
        return record, preview

    def get_episode_detail(self, webtoon_id: WebtoonId, episode_number: int,
                           progress: Optional[ProgressSink] = None) -> Tuple[EpisodeDetail, bool]:
        """Fetch an episode's panels into the cache.

        Returns:
            The episode detail with local panel paths, and whether a next
            episode exists in the cached list.

        Raises:
            ValidationError: if ``episode_number`` is below 1.
            NotFoundError: if the cached list has no such episode.
        """
        progress = self._progress(progress)
        record, preview = self._find_episode(webtoon_id, episode_number, progress)

        detail = self.episode_scraper.fetch_detail(preview, Config.get_panels_dir(self.cache_dir), progress)
        has_next = episode_number < record.episode_count

        progress.completed()
        return detail, has_next

    def get_episode_posts(self, webtoon_id: WebtoonId, episode_number: int,
                          progress: Optional[ProgressSink] = None) -> List[Post]:
        """Fetch the top-level comments of an episode. Nothing is cached.

        Raises:
            ValidationError: if ``episode_number`` is below 1.
            NotFoundError: if the cached list has no such episode.
        """
        progress = self._progress(progress)
        _, preview = self._find_episode(webtoon_id, episode_number, progress)
        posts = self.episode_scraper.fetch_posts(preview)
        progress.completed()
        return posts

    # ------------------------------------------------------------------
    # Search, recommendations and creators
    # ------------------------------------------------------------------

    def search_webtoon(self, query: str) -> List[WebtoonSearchResult]:
        """Search the platform in the user's language. A blank query returns nothing without a request."""
        if not query.strip():
            return []
        return self.recommendation_scraper.search_by_query(query.strip(), self.db_manager.get_language())

    def get_homepage_recommendations(self) -> List[WebtoonSearchResult]:
        return self.recommendation_scraper.get_recommendations(self.db_manager.get_language())

    def get_author_info(self, profile_id: str) -> CreatorInfo:
        """Fetch a creator's profile in the user's language.

        Raises:
            ValidationError: if ``profile_id`` is blank.
            NotFoundError: if the creator does not exist or lists no webtoon.
        """
        if not profile_id.strip():
            raise ValidationError("Creator profile id is empty")
        return self.creator_scraper.fetch_creator(profile_id.strip(), self.db_manager.get_language())

    # ------------------------------------------------------------------
    # Images and cache maintenance
    # ------------------------------------------------------------------

    def fetch_images(self, urls: List[str], use_temporary_cache: bool,
                     progress: Optional[ProgressSink] = None) -> List[str]:
        """Cache arbitrary images, in the purgeable cache or the persistent data folder."""
        progress = self._progress(progress)
        dest_dir = self.cache_dir if use_temporary_cache else self.data_dir
        paths = self.downloader.download(dest_dir, urls, progress)
        progress.completed()
        return paths

    def delete_episodes(self, webtoon_id: WebtoonId) -> WebtoonMetadata:
        """Drop the cached episode list; the next ``get_webtoon_info`` scrapes it again.

        Raises:
            CacheMissError: if the webtoon is not cached.
        """
        with self._lock_for(webtoon_id):
            record = self.db_manager.get_webtoon(webtoon_id)
            record.episodes = None
            record.refresh_eps_at = self.clock()
            self.db_manager.save_webtoon(record)
        logger.info(f"Deleted cached episodes of {webtoon_id}")
        return record

    def delete_webtoon(self, webtoon_id: WebtoonId) -> bool:
        """Remove the cached record. Returns whether there was one."""
        with self._lock_for(webtoon_id):
            deleted = self.db_manager.delete_webtoon(webtoon_id)
        logger.info(f"Deleted cache record of {webtoon_id}" if deleted else f"{webtoon_id} was not cached")
        return deleted

    def close(self) -> None:
        self.client.close()
