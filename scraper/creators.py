"""
Creator profile scraper.
"""

from typing import Optional

from models.creator import CreatorInfo
from models.meta import Language
from scraper.parsers import parse_creator_page, CREATOR_NAME_SELECTOR
from scraper.webtoon_client import WebtoonClient, generate_creator_url
from utils.logger import get_logger, NotFoundError

logger = get_logger(__name__)


class CreatorScraper:
    """Fetches creator profiles in a given platform language."""

    def __init__(self, client: WebtoonClient):
        self.client = client

    def fetch_creator(self, profile_id: str, language: Optional[Language] = None) -> CreatorInfo:
        """Fetch the profile of ``profile_id``.

        Raises:
            NotFoundError: if the creator does not exist or lists no webtoon.
        """
        logger.info(f"Fetching creator profile '{profile_id}'")
        document = self.client.get_page(generate_creator_url(profile_id, language))

        # Unknown profiles render an empty shell instead of a 404
        if document.select_first(CREATOR_NAME_SELECTOR) is None:
            raise NotFoundError(f"Creator '{profile_id}' not found")

        creator = parse_creator_page(document, profile_id)
        if not creator.webtoons:
            raise NotFoundError(f"Creator '{profile_id}' has no webtoons")

        logger.info(f"Creator {creator} has {len(creator.webtoons)} webtoon(s)")
        return creator
