"""
Data models for the webtoon reader.

This package contains the records the scrapers produce and the cache stores:
webtoon identity and metadata, episodes, schedules, genres, progress values,
the user's library, creator profiles and episode comments.
"""

from .episode import EpisodePreview, EpisodeDetail, Post
from .meta import Genre, Language, OtherGenre, Schedule, ScheduleKind, Weekday, parse_genre
from .progress import DownloadingInfo, Stage
from .webtoon import WebtoonId, WtType, WebtoonMetadata, WebtoonSearchResult
from .user import UserWebtoon, UserData
from .creator import CreatorInfo

__all__ = [
    'EpisodePreview',
    'EpisodeDetail',
    'Post',
    'Genre',
    'Language',
    'OtherGenre',
    'Schedule',
    'ScheduleKind',
    'Weekday',
    'parse_genre',
    'DownloadingInfo',
    'Stage',
    'WebtoonId',
    'WtType',
    'WebtoonMetadata',
    'WebtoonSearchResult',
    'UserWebtoon',
    'UserData',
    'CreatorInfo'
]
