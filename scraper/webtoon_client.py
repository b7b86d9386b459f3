"""
WebtoonClient handles all network requests to Webtoons.com.

This module is responsible for making HTTP requests, handling the session
and its headers, and building the platform URLs the scrapers read from.
"""

import time
from typing import Optional, Dict, Tuple
from urllib.parse import quote

import requests

from models.meta import Language
from models.webtoon import WebtoonId, WtType
from scraper.html import HtmlDocument
from utils.config import Config
from utils.logger import get_logger, log_exception, NetworkError, NotFoundError

logger = get_logger(__name__)


def _edition(language: Optional[Language]) -> str:
    return f"{Config.BASE_URL}/{(language or Language.default()).value}"


def generate_webtoon_url(webtoon_id: WebtoonId, language: Optional[Language] = None) -> str:
    """Build the list page URL of a webtoon.

    The genre and title path segments are placeholders: the platform
    redirects to the canonical URL, which the episode scraper picks up.
    """
    section = 'challenge' if webtoon_id.wt_type == WtType.CANVAS else 'genre'
    return f"{_edition(language)}/{section}/title/list?title_no={webtoon_id.wt_id}"


def generate_search_url(query: str, language: Optional[Language] = None) -> str:
    return f"{_edition(language)}/search?keyword={quote(query)}"


def generate_originals_url(language: Optional[Language] = None) -> str:
    return f"{_edition(language)}/originals"


def generate_canvas_url(page: int, language: Optional[Language] = None) -> str:
    return f"{_edition(language)}/canvas/list?genreTab=ALL&sortOrder=MANA&page={page}"


def generate_creator_url(profile_id: str, language: Optional[Language] = None) -> str:
    return f"{Config.BASE_URL}/p/community/{(language or Language.default()).value}/u/{quote(profile_id)}"


class WebtoonClient:
    """Client for making requests to Webtoons.com."""

    def __init__(self, timeout: Optional[int] = None, retry_count: Optional[int] = None):
        """Initialize the client."""
        self.session = requests.Session()
        self.timeout = timeout or Config.DEFAULT_TIMEOUT
        self.retry_count = retry_count or Config.DEFAULT_RETRY_COUNT

        # Set up default headers
        self.session.headers.update(Config.HTTP_HEADERS)

    def get_page(self, url: str) -> HtmlDocument:
        """Get a web page and return the parsed document."""
        document, _ = self.get_page_with_url(url)
        return document

    def get_page_with_url(self, url: str) -> Tuple[HtmlDocument, str]:
        """Get a web page, returning the parsed document and the URL it resolved to."""
        response = self._request(url)
        return HtmlDocument.parse(response.text), response.url

    def get_image(self, url: str, headers: Dict[str, str] = None) -> bytes:
        """Download an image and return its raw bytes."""
        img_headers = Config.IMAGE_HEADERS.copy()
        if headers:
            img_headers.update(headers)

        response = self._request(url, headers=img_headers)

        content_type = response.headers.get('Content-Type', '')
        if content_type and not content_type.startswith(('image/', 'application/octet-stream', 'binary/octet-stream')):
            logger.warning(f"URL {url} returned unexpected content type: {content_type}")

        return response.content

    def _request(self, url: str, headers: Dict[str, str] = None) -> requests.Response:
        """GET ``url``, retrying ``retry_count`` times with exponential backoff.

        Raises:
            NotFoundError: if the platform answers 404.
            NetworkError: once every attempt has failed.
        """
        last_error: Optional[Exception] = None
        for attempt in range(self.retry_count):
            try:
                logger.debug(f"Fetching: {url}")
                response = self.session.get(url, headers=headers, timeout=self.timeout)
                if response.status_code == 404:
                    raise NotFoundError(f"{url} does not exist")
                response.raise_for_status()
                logger.debug(f"Successfully fetched: {url}")
                return response
            except requests.RequestException as e:
                last_error = e
                logger.warning(f"Attempt {attempt + 1} failed for {url}: {e}")
                if attempt < self.retry_count - 1:
                    time.sleep(2 ** attempt)  # Exponential backoff

        raise NetworkError(f"Failed to fetch {url}: {last_error}")

    def close(self) -> None:
        """Close the client and clean up resources."""
        try:
            self.session.close()
            logger.debug("HTTP session closed")
        except Exception as e:
            log_exception(logger, e, "Error closing WebtoonClient")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
