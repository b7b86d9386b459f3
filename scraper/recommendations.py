"""
Search and homepage recommendation scrapers.
"""

import random
from typing import List, Optional

from models.meta import Language
from models.webtoon import WebtoonSearchResult
from scraper.parsers import parse_search_results, parse_originals_listing, parse_canvas_listing
from scraper.webtoon_client import (
    WebtoonClient, generate_search_url, generate_originals_url, generate_canvas_url
)
from utils.config import Config
from utils.logger import get_logger

logger = get_logger(__name__)


class RecommendationScraper:
    """Fetches search results and the homepage listings."""

    def __init__(self, client: WebtoonClient, rng: Optional[random.Random] = None):
        self.client = client
        self.rng = rng or random.Random()

    def search_by_query(self, query: str, language: Optional[Language] = None) -> List[WebtoonSearchResult]:
        """Search the platform edition in ``language`` for ``query``."""
        logger.info(f"Searching for '{query}'")
        results = parse_search_results(self.client.get_page(generate_search_url(query, language)))
        logger.info(f"Search for '{query}' returned {len(results)} webtoon(s)")
        return results

    def fetch_originals_homepage(self, language: Optional[Language] = None) -> List[WebtoonSearchResult]:
        """First entries of the originals listing, without creator."""
        document = self.client.get_page(generate_originals_url(language))
        return parse_originals_listing(document, Config.ORIGINALS_HOMEPAGE_LIMIT)

    def fetch_canvas_homepage(self, page: Optional[int] = None,
                              language: Optional[Language] = None) -> List[WebtoonSearchResult]:
        """A page of the popularity-sorted canvas catalog, random unless ``page`` is given."""
        if page is None:
            first, last = Config.CANVAS_HOMEPAGE_PAGES
            page = self.rng.randint(first, last)
        logger.debug(f"Fetching canvas catalog page {page}")
        return parse_canvas_listing(self.client.get_page(generate_canvas_url(page, language)))

    def get_recommendations(self, language: Optional[Language] = None) -> List[WebtoonSearchResult]:
        """Originals and canvas listings merged and shuffled."""
        merged = self.fetch_originals_homepage(language) + self.fetch_canvas_homepage(language=language)
        self.rng.shuffle(merged)
        logger.info(f"Built {len(merged)} homepage recommendation(s)")
        return merged
