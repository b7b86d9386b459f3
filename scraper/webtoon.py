"""
Webtoon info page scraping and thumbnail caching.
"""

import os.path
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from models.webtoon import WebtoonId, WebtoonMetadata, utcnow
from scraper.downloader import ImageDownloader, image_extension
from scraper.parsers import parse_webtoon_metadata, TITLE_SELECTOR
from scraper.progress import ProgressSink
from scraper.webtoon_client import WebtoonClient, generate_webtoon_url
from utils.logger import get_logger, NotFoundError

logger = get_logger(__name__)

PathLike = Union[str, Path]


def is_remote(url: str) -> bool:
    return url.startswith(('http://', 'https://'))


def original_thumbnail_name(webtoon_id: WebtoonId, url: str) -> str:
    """Fixed file name an Original's thumbnail is cached under."""
    return f"wt_{webtoon_id.wt_id}_thumb{image_extension(url)}"


class WebtoonScraper:
    """Scrapes webtoon metadata and caches the images it points to."""

    def __init__(self, client: WebtoonClient, downloader: Optional[ImageDownloader] = None):
        self.client = client
        self.downloader = downloader or ImageDownloader(client)

    def fetch_metadata(self, webtoon_id: WebtoonId, progress: Optional[ProgressSink] = None,
                       now: Optional[datetime] = None) -> WebtoonMetadata:
        """Fetch the info page of ``webtoon_id``.

        The returned record has ``episodes`` unset and its thumbnail still
        pointing at the platform; see ``cache_thumbnail``.

        Raises:
            NotFoundError: if the platform has no such webtoon.
        """
        progress = progress or ProgressSink()
        progress.webtoon_data(10)

        url = generate_webtoon_url(webtoon_id)
        logger.info(f"Fetching metadata of {webtoon_id}")
        document, resolved_url = self.client.get_page_with_url(url)
        progress.webtoon_data(50)

        # Unknown ids redirect to a generic page instead of answering 404
        if document.select_first(TITLE_SELECTOR) is None and document.select_first('.detail_header') is None:
            raise NotFoundError(f"{webtoon_id} not found (landed on {resolved_url})")

        metadata = parse_webtoon_metadata(document, webtoon_id, now or utcnow())
        progress.webtoon_data(70)

        logger.info(f"Fetched metadata of {webtoon_id}: '{metadata.title}' by {', '.join(metadata.creators)}")
        progress.webtoon_data(100)
        return metadata

    def cache_thumbnail(self, metadata: WebtoonMetadata, dest_dir: PathLike,
                        progress: Optional[ProgressSink] = None) -> str:
        """Cache the webtoon thumbnail and point ``metadata.thumbnail`` at the local file.

        Originals are cached under a fixed per-id name, so a refreshed record
        reuses the file already on disk. Canvas thumbnails use the generic
        URL-derived name.
        """
        url = metadata.thumbnail
        if not is_remote(url):
            return url

        if metadata.id.is_original:
            path = os.path.join(str(dest_dir), original_thumbnail_name(metadata.id, url))
            local_path = self.downloader.download_as(url, path, progress)
        else:
            local_path = self.downloader.download(dest_dir, [url], progress)[0]

        metadata.thumbnail = local_path
        return local_path

    def cache_episode_thumbnails(self, metadata: WebtoonMetadata, dest_dir: PathLike,
                                 progress: Optional[ProgressSink] = None) -> None:
        """Cache every episode thumbnail and rewrite them to local paths.

        Episodes whose thumbnail is already a local path are left alone.
        """
        pending = [episode for episode in metadata.episodes or [] if is_remote(episode.thumbnail)]
        if not pending:
            return

        local_paths = self.downloader.download(dest_dir, [episode.thumbnail for episode in pending], progress)
        for episode, local_path in zip(pending, local_paths):
            episode.thumbnail = local_path
        logger.debug(f"Resolved {len(pending)} episode thumbnail(s) of {metadata.id}")
