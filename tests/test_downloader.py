#!/usr/bin/env python3
"""
Tests for the image cache downloader.
Tests result ordering under out-of-order completion, idempotence, progress
reporting and batch failure.
"""

import os
import tempfile
import threading
import unittest

# Add project root to path
import sys
from pathlib import Path
project_root = Path(__file__).parent.parent.absolute()
sys.path.insert(0, str(project_root))

from models.progress import Stage
from scraper.downloader import ImageDownloader, cache_key_for_url, image_extension
from scraper.progress import ProgressSink, percent_of
from utils.logger import NetworkError, ValidationError
from tests.fakes import CDN, FakeClient, image_bytes


def panel_urls(count):
    return [f"{CDN}/viewer/{i:03d}_panel.jpg?type=q90" for i in range(count)]


class TestCacheKey(unittest.TestCase):
    """Test URL to file name derivation."""

    def test_strips_query_and_fragment(self):
        self.assertEqual(cache_key_for_url(f"{CDN}/a/b/image_01.jpg?type=q90#x"), "image_01.jpg")

    def test_same_last_segment_collides(self):
        self.assertEqual(cache_key_for_url(f"{CDN}/one/thumb.jpg"), cache_key_for_url(f"{CDN}/two/thumb.jpg"))

    def test_empty_segment(self):
        with self.assertRaises(ValidationError):
            cache_key_for_url("https://cdn.example/?x=1")
        with self.assertRaises(ValidationError):
            cache_key_for_url(f"{CDN}/a/b/")

    def test_query_slashes_are_ignored(self):
        self.assertEqual(cache_key_for_url(f"{CDN}/a/thumb.jpg?next=/b/c/"), "thumb.jpg")

    def test_image_extension(self):
        self.assertEqual(image_extension(f"{CDN}/t/thumb.PNG?x=1"), ".png")
        self.assertEqual(image_extension(f"{CDN}/t/thumb"), ".jpg")

    def test_percent_of(self):
        self.assertEqual(percent_of(1, 3), 33)
        self.assertEqual(percent_of(2, 3), 67)
        self.assertEqual(percent_of(1, 8), 13)
        self.assertEqual(percent_of(3, 8), 38)
        self.assertEqual(percent_of(0, 0), 100)


class TestImageDownloader(unittest.TestCase):
    """Test cases for ImageDownloader."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.dest = Path(self.temp_dir.name) / "panels"
        self.events = []
        self.progress = ProgressSink(self.events.append)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_paths_follow_input_order(self):
        client = FakeClient(max_delay=0.02, seed=7)
        urls = panel_urls(24)

        paths = ImageDownloader(client, max_workers=8).download(self.dest, urls, self.progress)

        self.assertEqual(len(paths), len(urls))
        for url, path in zip(urls, paths):
            self.assertEqual(os.path.basename(path), cache_key_for_url(url))
            with open(path, 'rb') as f:
                self.assertEqual(f.read(), image_bytes(url))

    def test_second_call_is_served_from_disk(self):
        client = FakeClient()
        downloader = ImageDownloader(client)
        urls = panel_urls(5)

        first = downloader.download(self.dest, urls)
        requests_after_first = len(client.image_requests)
        second = downloader.download(self.dest, urls, self.progress)

        self.assertEqual(first, second)
        self.assertEqual(requests_after_first, 5)
        self.assertEqual(len(client.image_requests), 5)
        self.assertEqual(self.events[-1].percent, 100)

    def test_mixes_cached_and_new_files(self):
        client = FakeClient()
        urls = panel_urls(4)
        self.dest.mkdir(parents=True)
        (self.dest / cache_key_for_url(urls[2])).write_bytes(b"already here")

        paths = ImageDownloader(client).download(self.dest, urls)

        self.assertEqual(len(paths), 4)
        self.assertNotIn(urls[2], client.image_requests)
        self.assertEqual(Path(paths[2]).read_bytes(), b"already here")

    def test_progress_is_monotonic(self):
        client = FakeClient(max_delay=0.02, seed=3)

        ImageDownloader(client, max_workers=6).download(self.dest, panel_urls(12), self.progress)

        percents = [event.percent for event in self.events if event.stage == Stage.CACHING_IMAGES]
        self.assertEqual(percents[0], 0)
        self.assertEqual(percents[-1], 100)
        self.assertEqual(percents, sorted(percents))
        self.assertEqual(len(percents), 13)

    def test_failure_names_the_url(self):
        urls = panel_urls(6)
        client = FakeClient(failing_images=[urls[3]])

        with self.assertRaises(NetworkError) as ctx:
            ImageDownloader(client, max_workers=1).download(self.dest, urls)

        self.assertIn(urls[3], str(ctx.exception))
        self.assertFalse(os.path.exists(self.dest / cache_key_for_url(urls[3])))

    def test_completed_files_survive_a_failure(self):
        urls = panel_urls(3)
        client = FakeClient(failing_images=[urls[2]])

        with self.assertRaises(NetworkError):
            ImageDownloader(client, max_workers=1).download(self.dest, urls)

        self.assertTrue(os.path.exists(self.dest / cache_key_for_url(urls[0])))
        self.assertFalse(any(name.endswith('.part') for name in os.listdir(self.dest)))

        # Once the image is back, only the missing file is fetched
        client.failing_images.clear()
        client.image_requests.clear()
        ImageDownloader(client).download(self.dest, urls)
        self.assertEqual(client.image_requests, [urls[2]])

    def test_colliding_names_are_fetched_once(self):
        client = FakeClient()
        urls = [f"{CDN}/one/thumb.jpg", f"{CDN}/two/thumb.jpg"]

        paths = ImageDownloader(client).download(self.dest, urls)

        self.assertEqual(paths[0], paths[1])
        self.assertEqual(client.image_requests, [urls[0]])

    def test_download_as_uses_the_given_path(self):
        client = FakeClient()
        target = self.dest / "wt_95_thumb.jpg"

        path = ImageDownloader(client).download_as(f"{CDN}/thumb/anything.jpg", target)

        self.assertEqual(path, str(target))
        self.assertTrue(target.exists())

    def test_empty_url_list(self):
        self.assertEqual(ImageDownloader(FakeClient()).download(self.dest, []), [])

    def test_concurrent_downloads_of_the_same_file(self):
        url = f"{CDN}/profile/siu_profile.png"

        class LockstepClient(FakeClient):
            """Holds each fetch until both callers have one in flight."""

            def __init__(self):
                super().__init__()
                self.barrier = threading.Barrier(2, timeout=5)

            def get_image(self, url, headers=None):
                data = super().get_image(url, headers)
                self.barrier.wait()
                return data

        for round_no in range(30):
            dest = self.dest / f"round_{round_no}"
            client = LockstepClient()
            downloader = ImageDownloader(client)
            errors = []
            results = []

            def fetch():
                try:
                    results.append(downloader.download(dest, [url]))
                except Exception as e:
                    errors.append(e)

            dest.mkdir(parents=True)
            threads = [threading.Thread(target=fetch) for _ in range(2)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            self.assertEqual(errors, [])
            self.assertEqual(len(results), 2)
            self.assertEqual(results[0], results[1])
            self.assertEqual(Path(results[0][0]).read_bytes(), image_bytes(url))
            self.assertEqual(os.listdir(dest), [cache_key_for_url(url)])


if __name__ == '__main__':
    unittest.main()
