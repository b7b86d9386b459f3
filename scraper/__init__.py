"""
Scraper package for the webtoon reader backend.

This package handles all web scraping, parsing, and image caching.
"""

from .html import HtmlDocument, HtmlElement
from .webtoon_client import WebtoonClient
from .downloader import ImageDownloader, cache_key_for_url
from .episodes import EpisodeScraper
from .webtoon import WebtoonScraper
from .recommendations import RecommendationScraper
from .creators import CreatorScraper
from .progress import ProgressSink

__all__ = [
    'HtmlDocument',
    'HtmlElement',
    'WebtoonClient',
    'ImageDownloader',
    'cache_key_for_url',
    'EpisodeScraper',
    'WebtoonScraper',
    'RecommendationScraper',
    'CreatorScraper',
    'ProgressSink'
]
