"""
Progress reporting for long-running webtoon operations.

Each operation receives a ``ProgressSink`` and reports ``DownloadingInfo``
values through it. A UI bridges the sink to its own event system by passing
a callback; sinks are independent, so concurrent operations never mix their
progress.
"""

import threading
from typing import Callable, Optional

from models.progress import DownloadingInfo
from utils.logger import get_logger, log_exception

logger = get_logger(__name__)


def percent_of(done: int, total: int) -> int:
    """Completion percentage, halves rounded up."""
    if total <= 0:
        return 100
    return (done * 200 + total) // (2 * total)


class ProgressSink:
    """Thread-safe progress sink forwarding to an optional callback."""

    def __init__(self, callback: Optional[Callable[[DownloadingInfo], None]] = None,
                 channel: str = "wt_dl_channel"):
        self._lock = threading.Lock()
        self.callback = callback
        self.channel = channel
        self.current = DownloadingInfo.idle()

    def emit(self, info: DownloadingInfo) -> None:
        """Record ``info`` as the current state and notify the callback."""
        with self._lock:
            self.current = info
            self._notify(info)

    def webtoon_data(self, percent: int) -> None:
        self.emit(DownloadingInfo.webtoon_data(percent))

    def episode_info(self, percent: int) -> None:
        self.emit(DownloadingInfo.episode_info(percent))

    def caching_images(self, percent: int) -> None:
        self.emit(DownloadingInfo.caching_images(percent))

    def completed(self) -> None:
        self.emit(DownloadingInfo.completed())

    def idle(self) -> None:
        self.emit(DownloadingInfo.idle())

    def _notify(self, info: DownloadingInfo) -> None:
        """Notify callback of progress update."""
        logger.debug(f"[{self.channel}] {info.stage.value} {info.percent}%")
        if self.callback:
            try:
                self.callback(info)
            except Exception as e:
                # A broken UI listener must not abort the download itself
                log_exception(logger, e, "Error in progress callback")
