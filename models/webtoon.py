"""
Webtoon data models: identity, cached metadata and search results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Dict, Any

from models.episode import EpisodePreview
from models.meta import AnyGenre, Schedule, genre_from_json, genre_to_json
from utils.logger import TimeOverflowError


class WtType(Enum):
    """Catalog a webtoon belongs to."""

    ORIGINAL = "Original"
    CANVAS = "Canvas"


@dataclass(frozen=True)
class WebtoonId:
    """Identity of a webtoon; ids are only unique within one catalog."""

    wt_id: int
    wt_type: WtType

    @property
    def key(self) -> str:
        """Key used for every cache table and cache folder."""
        return f"{self.wt_type.value.lower()}_{self.wt_id}"

    @property
    def is_original(self) -> bool:
        return self.wt_type == WtType.ORIGINAL

    def to_dict(self) -> Dict[str, Any]:
        return {'wt_id': self.wt_id, 'wt_type': self.wt_type.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WebtoonId':
        return cls(int(data['wt_id']), WtType(data['wt_type']))

    def __str__(self) -> str:
        return f"{self.wt_type.value} #{self.wt_id}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def expiry_from(now: datetime, delta: timedelta) -> datetime:
    """Return ``now + delta``, raising ``TimeOverflowError`` past ``datetime.max``."""
    try:
        return now + delta
    except OverflowError as e:
        raise TimeOverflowError(f"cannot compute expiry {delta} after {now}: {e}")


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class WebtoonSearchResult:
    """Lightweight webtoon entry used by search and recommendations."""

    id: WebtoonId
    title: str
    thumbnail: str
    creator: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id.to_dict(),
            'title': self.title,
            'thumbnail': self.thumbnail,
            'creator': self.creator
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WebtoonSearchResult':
        return cls(
            id=WebtoonId.from_dict(data['id']),
            title=data['title'],
            thumbnail=data['thumbnail'],
            creator=data.get('creator')
        )


@dataclass
class WebtoonMetadata:
    """Data model for a cached webtoon and its episode list."""

    # Core identifiers
    id: WebtoonId
    title: str
    thumbnail: str

    # Metadata
    banner: Optional[str] = None
    creators: List[str] = field(default_factory=list)
    creator_id: Optional[str] = None
    genres: List[AnyGenre] = field(default_factory=list)
    schedule: Optional[Schedule] = None
    views: str = ""
    subs: str = ""
    summary: str = ""

    # None until the episode list has been scraped once
    episodes: Optional[List[EpisodePreview]] = None

    # Freshness
    refresh_eps_at: datetime = field(default_factory=utcnow)
    expired_at: datetime = field(default_factory=utcnow)

    @property
    def episode_count(self) -> int:
        return len(self.episodes) if self.episodes else 0

    @property
    def primary_creator(self) -> Optional[str]:
        return self.creators[0] if self.creators else None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Whether the metadata itself must be refetched."""
        return self.expired_at <= (now or utcnow())

    def needs_episode_refresh(self, now: Optional[datetime] = None) -> bool:
        """Whether the episode list must be synchronized."""
        return self.refresh_eps_at <= (now or utcnow())

    def push_episode_refresh(self, now: Optional[datetime] = None,
                             interval: timedelta = timedelta(days=1)) -> None:
        """Move the next episode synchronization ``interval`` after ``now``."""
        self.refresh_eps_at = expiry_from(now or utcnow(), interval)

    def get_episode(self, number: int) -> Optional[EpisodePreview]:
        """Get an episode preview by its 1-based number."""
        if not self.episodes or number < 1:
            return None
        # Numbers are dense, so the list index is the fast path
        if number <= len(self.episodes) and self.episodes[number - 1].number == number:
            return self.episodes[number - 1]
        for episode in self.episodes:
            if episode.number == number:
                return episode
        return None

    def append_episodes(self, new_episodes: List[EpisodePreview]) -> int:
        """Append newly scraped episodes, skipping numbers already present.

        Returns:
            Number of episodes actually added.
        """
        if self.episodes is None:
            self.episodes = []

        known = {episode.number for episode in self.episodes}
        added = 0
        for episode in sorted(new_episodes, key=lambda e: e.number):
            if episode.number in known:
                continue
            self.episodes.append(episode)
            known.add(episode.number)
            added += 1
        return added

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id.to_dict(),
            'title': self.title,
            'thumbnail': self.thumbnail,
            'banner': self.banner,
            'creators': list(self.creators),
            'creator_id': self.creator_id,
            'genres': [genre_to_json(genre) for genre in self.genres],
            'schedule': self.schedule.to_json() if self.schedule else None,
            'views': self.views,
            'subs': self.subs,
            'summary': self.summary,
            'episodes': [episode.to_dict() for episode in self.episodes] if self.episodes is not None else None,
            'refresh_eps_at': self.refresh_eps_at.isoformat(),
            'expired_at': self.expired_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WebtoonMetadata':
        """Create instance from dictionary.

        Raises ``KeyError``/``ValueError``/``TypeError`` on records written by
        an incompatible schema; callers treat that as a cache miss.
        """
        episodes_data = data.get('episodes')
        schedule_data = data.get('schedule')

        return cls(
            id=WebtoonId.from_dict(data['id']),
            title=data['title'],
            thumbnail=data['thumbnail'],
            banner=data.get('banner'),
            creators=list(data.get('creators', [])),
            creator_id=data.get('creator_id'),
            genres=[genre_from_json(genre) for genre in data.get('genres', [])],
            schedule=Schedule.from_json(schedule_data) if schedule_data else None,
            views=data.get('views', ''),
            subs=data.get('subs', ''),
            summary=data.get('summary', ''),
            episodes=[EpisodePreview.from_dict(ep) for ep in episodes_data] if episodes_data is not None else None,
            refresh_eps_at=_parse_time(data['refresh_eps_at']),
            expired_at=_parse_time(data['expired_at'])
        )

    def __str__(self) -> str:
        """String representation."""
        return f"WebtoonMetadata(title='{self.title}', episodes={self.episode_count})"
