"""
Disk cache for remote images.

``ImageDownloader.download`` maps each image URL to a file in a destination
folder, fetches the files that are not there yet in parallel, and returns the
local paths in the same order as the URLs. A file that exists is never
fetched again, so repeated calls are cheap and an interrupted batch resumes
where it stopped.
"""

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Tuple, Union
from urllib.parse import urlparse

from scraper.progress import ProgressSink, percent_of
from scraper.webtoon_client import WebtoonClient
from utils.config import Config
from utils.logger import get_logger, log_exception, NetworkError, ScrapingError, ValidationError

logger = get_logger(__name__)

PathLike = Union[str, Path]


def cache_key_for_url(url: str) -> str:
    """File name an image URL is cached under.

    This is the last segment of the URL path, so two URLs ending in the same
    file name share one cache entry.

    Raises:
        ValidationError: if the path ends in '/' or is empty.
    """
    filename = urlparse(url).path.split('/')[-1]
    if not filename:
        raise ValidationError(f"Cannot derive a file name from '{url}'")
    return filename


def image_extension(url: str) -> str:
    """Get appropriate file extension from image URL."""
    suffix = os.path.splitext(cache_key_for_url(url))[1].lower()
    if suffix in ('.jpg', '.jpeg', '.png', '.webp', '.gif'):
        return suffix
    return '.jpg'  # Default


class ImageDownloader:
    """Downloads images into a folder, skipping the ones already cached."""

    def __init__(self, client: WebtoonClient, max_workers: Optional[int] = None):
        self.client = client
        self.max_workers = max_workers or Config.DEFAULT_MAX_WORKERS

    def download(self, dest_dir: PathLike, urls: List[str],
                 progress: Optional[ProgressSink] = None) -> List[str]:
        """Cache ``urls`` under ``dest_dir`` and return their local paths.

        Args:
            dest_dir: Folder to store the images in, created if missing
            urls: Image URLs
            progress: Receives ``CachingImages`` percentages as downloads land

        Returns:
            Local paths, ``result[i]`` being the file of ``urls[i]``

        Raises:
            NetworkError: if any image cannot be fetched or written. Images
                written before the failure stay on disk.
        """
        dest_dir = Path(dest_dir)
        paths = [str(dest_dir / cache_key_for_url(url)) for url in urls]
        targets = list(zip(urls, paths))
        return self.download_to(targets, progress)

    def download_as(self, url: str, path: PathLike,
                    progress: Optional[ProgressSink] = None) -> str:
        """Cache a single image under an explicit file path."""
        return self.download_to([(url, str(path))], progress)[0]

    def download_to(self, targets: List[Tuple[str, str]],
                    progress: Optional[ProgressSink] = None) -> List[str]:
        """Fetch each ``(url, path)`` pair whose path does not exist yet."""
        progress = progress or ProgressSink()
        local_paths = [path for _, path in targets]

        # Colliding file names are fetched once, from the first URL using them
        missing = []
        seen_paths = set()
        for index, (url, path) in enumerate(targets):
            if path in seen_paths or os.path.exists(path):
                continue
            seen_paths.add(path)
            missing.append((index, url, path))

        logger.debug(f"{len(targets) - len(missing)}/{len(targets)} images already cached")
        if not missing:
            progress.caching_images(100)
            return local_paths

        for directory in {os.path.dirname(path) for _, _, path in missing}:
            if directory:
                os.makedirs(directory, exist_ok=True)

        progress.caching_images(0)
        completed = 0

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(missing))) as executor:
            future_to_index = {
                executor.submit(self._fetch_and_write, url, path): index
                for index, url, path in missing
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    future.result()
                except Exception as e:
                    for pending in future_to_index:
                        pending.cancel()
                    url = targets[index][0]
                    log_exception(logger, e, f"Error caching image {url}")
                    if isinstance(e, ScrapingError):
                        raise
                    raise NetworkError(f"Failed to cache {url}: {e}") from e

                completed += 1
                progress.caching_images(percent_of(completed, len(missing)))

        logger.info(f"Cached {completed} new image(s), {len(targets) - completed} reused")
        return local_paths

    def _fetch_and_write(self, url: str, path: str) -> None:
        """Download one image and move it into place once fully written."""
        data = self.client.get_image(url)

        # Each writer gets its own temp file; the last rename wins
        directory, name = os.path.split(path)
        with tempfile.NamedTemporaryFile(dir=directory or '.', prefix=f"{name}.",
                                         suffix='.part', delete=False) as f:
            tmp_path = f.name
            f.write(data)
        try:
            os.replace(tmp_path, path)
        except OSError:
            os.remove(tmp_path)
            raise

        logger.debug(f"Cached image: {url} -> {path} ({len(data)} bytes)")
