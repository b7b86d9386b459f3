"""
Progress values reported to the UI while webtoon data is being acquired.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union


class Stage(Enum):
    WEBTOON_DATA = "WebtoonData"
    EPISODE_INFO = "EpisodeInfo"
    CACHING_IMAGES = "CachingImages"
    IDLE = "Idle"
    COMPLETED = "Completed"


_STAGE_MESSAGES = {
    Stage.WEBTOON_DATA: "Fetching webtoon information...",
    Stage.EPISODE_INFO: "Fetching episodes information...",
    Stage.CACHING_IMAGES: "Caching images (may take a while)...",
    Stage.IDLE: "Currently not downloading anything",
    Stage.COMPLETED: "Done",
}


@dataclass(frozen=True)
class DownloadingInfo:
    """Tagged progress value: a stage and, for working stages, a percentage."""

    stage: Stage
    percent: int = 0

    @classmethod
    def webtoon_data(cls, percent: int) -> 'DownloadingInfo':
        return cls(Stage.WEBTOON_DATA, percent)

    @classmethod
    def episode_info(cls, percent: int) -> 'DownloadingInfo':
        return cls(Stage.EPISODE_INFO, percent)

    @classmethod
    def caching_images(cls, percent: int) -> 'DownloadingInfo':
        return cls(Stage.CACHING_IMAGES, percent)

    @classmethod
    def idle(cls) -> 'DownloadingInfo':
        return cls(Stage.IDLE)

    @classmethod
    def completed(cls) -> 'DownloadingInfo':
        return cls(Stage.COMPLETED, 100)

    @property
    def message(self) -> str:
        return _STAGE_MESSAGES[self.stage]

    def to_json(self) -> Union[str, Dict[str, Any]]:
        if self.stage in (Stage.IDLE, Stage.COMPLETED):
            return self.stage.value
        return {self.stage.value: self.percent}
