"""
Library Controller - Subscriptions, reading progress and the
platform language.

Subscriptions are kept apart from the webtoon cache: clearing a cached
record never loses what the user follows or has read.
"""

from typing import Optional

from models.meta import Language
from models.user import UserData, UserWebtoon
from models.webtoon import WebtoonId
from scraper.progress import ProgressSink
from utils.db_manager import DatabaseManager
from utils.logger import get_logger, NotFoundError, ValidationError

logger = get_logger(__name__)


class LibraryController:
    """Controller for the user's library."""

    def __init__(self, db_manager: DatabaseManager, webtoon_controller):
        """Initialize the library controller.

        ``webtoon_controller`` provides the metadata a new subscription is
        built from.
        """
        self.db_manager = db_manager
        self.webtoon_controller = webtoon_controller

    def subscribe(self, webtoon_id: WebtoonId, progress: Optional[ProgressSink] = None) -> UserWebtoon:
        """Add a webtoon to the library. Subscribing twice keeps the existing entry."""
        existing = self.db_manager.get_user_webtoon(webtoon_id)
        if existing is not None:
            logger.debug(f"Already subscribed to {webtoon_id}")
            return existing

        metadata = self.webtoon_controller.get_webtoon_info(webtoon_id, progress)
        entry = UserWebtoon.from_metadata(metadata)
        self.db_manager.save_user_webtoon(entry)
        logger.info(f"Subscribed to {webtoon_id} ('{entry.title}')")
        return entry

    def unsubscribe(self, webtoon_id: WebtoonId) -> bool:
        """Remove a webtoon from the library. Returns whether it was there."""
        removed = self.db_manager.delete_user_webtoon(webtoon_id)
        if removed:
            logger.info(f"Unsubscribed from {webtoon_id}")
        return removed

    def mark_as_read(self, webtoon_id: WebtoonId, episode_number: int) -> UserWebtoon:
        """Record that an episode was read.

        Raises:
            ValidationError: if ``episode_number`` is below 1.
            NotFoundError: if the webtoon is not in the library.
        """
        if episode_number < 1:
            raise ValidationError(f"Episode numbers start at 1, got {episode_number}")

        entry = self.db_manager.get_user_webtoon(webtoon_id)
        if entry is None:
            raise NotFoundError(f"{webtoon_id} is not in the library")

        entry.mark_seen(episode_number)
        self.db_manager.save_user_webtoon(entry)
        return entry

    def get_user_data(self) -> UserData:
        return self.db_manager.get_user_data()

    def change_language(self, language: Language) -> UserData:
        """Switch the platform edition used for search, homepage and creator pages."""
        self.db_manager.set_language(language)
        return self.get_user_data()
