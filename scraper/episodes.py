"""
Episode list scraping and episode reader pages.

The platform lists episodes newest first, a fixed number per page. A full
scrape walks pages until episode 1; an incremental scrape walks them until it
meets an episode the cache already holds. Both return episodes oldest first.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from models.episode import EpisodePreview, EpisodeDetail, Post
from models.webtoon import WebtoonId
from scraper.downloader import ImageDownloader
from scraper.parsers import parse_episode_list, parse_episode_detail, parse_episode_posts
from scraper.progress import ProgressSink
from scraper.webtoon_client import WebtoonClient, generate_webtoon_url
from utils.logger import get_logger

logger = get_logger(__name__)


class EdgeCase(Enum):
    """Whether the episode matching the lower bound is part of the result."""

    INCLUSIVE = "inclusive"
    EXCLUSIVE = "exclusive"


class EpisodeScraper:
    """Scrapes episode lists and episode reader pages."""

    def __init__(self, client: WebtoonClient, downloader: Optional[ImageDownloader] = None):
        self.client = client
        self.downloader = downloader or ImageDownloader(client)

    def scrape_all(self, webtoon_id: WebtoonId,
                   progress: Optional[ProgressSink] = None) -> List[EpisodePreview]:
        """Scrape every episode down to episode 1, oldest first."""
        return self._scrape_until(webtoon_id, 1, EdgeCase.INCLUSIVE, progress)

    def scrape_new_since(self, webtoon_id: WebtoonId, known_count: int,
                         progress: Optional[ProgressSink] = None) -> List[EpisodePreview]:
        """Scrape the episodes numbered above ``known_count``, oldest first.

        ``known_count`` is the number of episodes already cached, which is
        also the number of the newest cached episode. An empty cache must use
        ``scrape_all`` instead.
        """
        if known_count < 1:
            raise ValueError("known_count must be at least 1, use scrape_all for an empty cache")
        return self._scrape_until(webtoon_id, known_count, EdgeCase.EXCLUSIVE, progress)

    def _scrape_until(self, webtoon_id: WebtoonId, until_number: int, edge_case: EdgeCase,
                      progress: Optional[ProgressSink] = None) -> List[EpisodePreview]:
        progress = progress or ProgressSink()
        progress.episode_info(0)
        logger.info(f"Scraping episodes of {webtoon_id} down to #{until_number} ({edge_case.value})")

        episodes: List[EpisodePreview] = []
        percent = 0
        base_url: Optional[str] = None
        lowest_seen: Optional[int] = None
        page = 1

        while True:
            if base_url is None:
                document, base_url = self.client.get_page_with_url(generate_webtoon_url(webtoon_id))
            else:
                document = self.client.get_page(f"{base_url}&page={page}")

            done = False
            page_episodes: List[EpisodePreview] = []
            last_number: Optional[int] = None

            for episode in parse_episode_list(document, webtoon_id):
                number = episode.number

                if last_number == number:
                    logger.warning(f"Episode #{number} listed twice in a row on page {page}, stopping")
                    done = True
                    break
                last_number = number

                if lowest_seen is not None and number >= lowest_seen:
                    # Past the last page the platform serves the last page again
                    logger.warning(f"Page {page} of {webtoon_id} repeats episode #{number}, stopping")
                    done = True
                    break

                if number <= until_number:
                    if edge_case == EdgeCase.INCLUSIVE:
                        page_episodes.append(episode)
                    done = True
                    break
                page_episodes.append(episode)

            if last_number is None:
                logger.warning(f"Page {page} of {webtoon_id} lists no episode, stopping")
                done = True

            episodes.extend(page_episodes)
            if page_episodes:
                lowest_seen = page_episodes[-1].number

            percent = (percent + 10) % 100
            progress.episode_info(percent)

            if done:
                break
            page += 1

        progress.episode_info(100)

        episodes.reverse()
        logger.info(f"Scraped {len(episodes)} episode(s) of {webtoon_id}")
        return episodes

    def fetch_detail(self, preview: EpisodePreview, cache_dir: Union[str, Path],
                     progress: Optional[ProgressSink] = None) -> EpisodeDetail:
        """Fetch an episode's reader page and cache its panels and author picture.

        ``panels`` and ``author_thumb`` of the result are local paths under
        ``cache_dir``.
        """
        progress = progress or ProgressSink()

        progress.episode_info(0)
        document = self.client.get_page(preview.ep_url)
        progress.episode_info(50)
        detail = parse_episode_detail(document, preview)
        progress.episode_info(100)

        logger.info(f"Episode #{preview.number} of {preview.parent_wt_id} has {len(detail.panels)} panel(s)")

        local_paths = self.downloader.download(cache_dir, detail.panels + [detail.author_thumb], progress)
        detail.panels = local_paths[:-1]
        detail.author_thumb = local_paths[-1]
        return detail

    def fetch_posts(self, preview: EpisodePreview) -> List[Post]:
        """Fetch the top-level comments shown under an episode."""
        posts = parse_episode_posts(self.client.get_page(preview.ep_url), preview)
        logger.info(f"Episode #{preview.number} of {preview.parent_wt_id} has {len(posts)} top-level comment(s)")
        return posts
