#!/usr/bin/env python3
"""
Tests for EpisodeScraper.
Tests full and incremental list scraping across pages, the stop conditions
reader page fetching and episode comments.
"""

import os
import tempfile
import unittest

# Add project root to path
import sys
from pathlib import Path
project_root = Path(__file__).parent.parent.absolute()
sys.path.insert(0, str(project_root))

from models.progress import Stage
from models.webtoon import WebtoonId, WtType
from scraper.episodes import EpisodeScraper
from scraper.html import HtmlDocument
from scraper.parsers import parse_episode_list
from scraper.progress import ProgressSink
from scraper.webtoon_client import generate_webtoon_url
from utils.logger import NotFoundError
from tests.fakes import (
    FakeClient, canonical_url, comment_html, comment_list_html, episode_list_html, reader_html,
    register_webtoon, webtoon_page_html
)

ORIGINAL = WebtoonId(95, WtType.ORIGINAL)
CANVAS = WebtoonId(843910, WtType.CANVAS)


class TestScrapeEpisodeList(unittest.TestCase):
    """Test cases for list scraping."""

    def setUp(self):
        self.client = FakeClient()
        self.scraper = EpisodeScraper(self.client)
        self.events = []
        self.progress = ProgressSink(self.events.append)

    def numbers(self, episodes):
        return [episode.number for episode in episodes]

    def test_scrape_all_is_oldest_first(self):
        register_webtoon(self.client, ORIGINAL, 25, per_page=10)

        episodes = self.scraper.scrape_all(ORIGINAL, self.progress)

        self.assertEqual(self.numbers(episodes), list(range(1, 26)))
        self.assertTrue(all(episode.parent_wt_id == ORIGINAL for episode in episodes))

    def test_later_pages_use_the_resolved_url(self):
        register_webtoon(self.client, CANVAS, 25, per_page=10)

        self.scraper.scrape_all(CANVAS)

        base = canonical_url(CANVAS)
        self.assertEqual(self.client.page_requests, [
            generate_webtoon_url(CANVAS),
            f"{base}&page=2",
            f"{base}&page=3",
        ])

    def test_new_since_returns_only_newer_episodes(self):
        register_webtoon(self.client, ORIGINAL, 25, per_page=10)

        episodes = self.scraper.scrape_new_since(ORIGINAL, 12, self.progress)

        self.assertEqual(self.numbers(episodes), list(range(13, 26)))
        self.assertEqual(len(self.client.page_requests), 2)

    def test_new_since_up_to_date(self):
        register_webtoon(self.client, ORIGINAL, 25, per_page=10)

        self.assertEqual(self.scraper.scrape_new_since(ORIGINAL, 25), [])
        self.assertEqual(len(self.client.page_requests), 1)

    def test_new_since_rejects_empty_cache(self):
        with self.assertRaises(ValueError):
            self.scraper.scrape_new_since(ORIGINAL, 0)
        self.assertEqual(self.client.page_requests, [])

    def test_stops_on_consecutive_duplicate(self):
        self.client.pages[generate_webtoon_url(ORIGINAL)] = webtoon_page_html(ORIGINAL, [5, 5, 4, 3])

        episodes = self.scraper.scrape_all(ORIGINAL)

        self.assertEqual(self.numbers(episodes), [5])

    def test_stops_when_a_page_repeats(self):
        # Episodes 1 and 2 were taken down; page 3 serves page 2 again
        base = canonical_url(ORIGINAL)
        self.client.redirects[generate_webtoon_url(ORIGINAL)] = base
        self.client.pages[base] = webtoon_page_html(ORIGINAL, [10, 9, 8, 7, 6])
        self.client.pages[f"{base}&page=2"] = webtoon_page_html(ORIGINAL, [5, 4, 3])
        self.client.pages[f"{base}&page=3"] = webtoon_page_html(ORIGINAL, [5, 4, 3])

        episodes = self.scraper.scrape_all(ORIGINAL)

        self.assertEqual(self.numbers(episodes), list(range(3, 11)))
        self.assertEqual(len(self.client.page_requests), 3)

    def test_stops_on_empty_page(self):
        base = canonical_url(CANVAS)
        self.client.redirects[generate_webtoon_url(CANVAS)] = base
        self.client.pages[base] = webtoon_page_html(CANVAS, [4, 3])
        self.client.pages[f"{base}&page=2"] = webtoon_page_html(CANVAS, [])

        self.assertEqual(self.numbers(self.scraper.scrape_all(CANVAS)), [3, 4])

    def test_missing_webtoon(self):
        with self.assertRaises(NotFoundError):
            self.scraper.scrape_all(WebtoonId(1, WtType.CANVAS))

    def test_progress_brackets_the_scrape(self):
        register_webtoon(self.client, ORIGINAL, 25, per_page=10)

        self.scraper.scrape_all(ORIGINAL, self.progress)

        self.assertTrue(all(event.stage == Stage.EPISODE_INFO for event in self.events))
        percents = [event.percent for event in self.events]
        self.assertEqual(percents[0], 0)
        self.assertEqual(percents[-1], 100)
        self.assertEqual(percents[1:-1], [10, 20, 30])


class TestFetchDetail(unittest.TestCase):
    """Test cases for reader pages."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.cache_dir = Path(self.temp_dir.name) / "panels"
        self.client = FakeClient()
        self.scraper = EpisodeScraper(self.client)

        page = HtmlDocument.parse(episode_list_html(ORIGINAL, [3]))
        self.preview = next(parse_episode_list(page, ORIGINAL))
        self.client.pages[self.preview.ep_url] = reader_html(panel_count=4, prefix="ep3")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_panels_are_local_files(self):
        detail = self.scraper.fetch_detail(self.preview, self.cache_dir)

        self.assertEqual(len(detail.panels), 4)
        self.assertEqual([os.path.basename(p) for p in detail.panels],
                         ["ep3_1.jpg", "ep3_2.jpg", "ep3_3.jpg", "ep3_4.jpg"])
        self.assertTrue(all(os.path.exists(p) for p in detail.panels))
        self.assertEqual(os.path.basename(detail.author_thumb), "siu_profile.png")
        self.assertTrue(os.path.exists(detail.author_thumb))

    def test_progress_stages(self):
        events = []
        self.scraper.fetch_detail(self.preview, self.cache_dir, ProgressSink(events.append))

        episode_percents = [e.percent for e in events if e.stage == Stage.EPISODE_INFO]
        self.assertEqual(episode_percents, [0, 50, 100])
        self.assertEqual(events[-1].stage, Stage.CACHING_IMAGES)
        self.assertEqual(events[-1].percent, 100)

    def test_panels_are_cached_once(self):
        self.scraper.fetch_detail(self.preview, self.cache_dir)
        self.scraper.fetch_detail(self.preview, self.cache_dir)

        self.assertEqual(len(self.client.image_requests), 5)

    def test_posts_skip_panels(self):
        self.client.pages[self.preview.ep_url] = reader_html(comments=comment_list_html(
            comment_html("c-1", replies=[comment_html("c-1-r1")]),
            comment_html("c-2"),
        ))

        posts = self.scraper.fetch_posts(self.preview)

        self.assertEqual([post.id for post in posts], ["c-1", "c-2"])
        self.assertEqual(self.client.image_requests, [])


if __name__ == '__main__':
    unittest.main()
