"""
User library models: subscriptions and reading progress.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from models.meta import Language
from models.webtoon import WebtoonId, WebtoonMetadata


@dataclass
class UserWebtoon:
    """Subscription entry kept for each followed webtoon."""

    id: WebtoonId
    title: str
    thumbnail: Optional[str] = None
    creator: Optional[str] = None
    last_seen: Optional[int] = None
    episode_seen: Dict[int, bool] = field(default_factory=dict)

    @classmethod
    def from_metadata(cls, metadata: WebtoonMetadata) -> 'UserWebtoon':
        return cls(
            id=metadata.id,
            title=metadata.title,
            thumbnail=metadata.thumbnail,
            creator=metadata.primary_creator
        )

    def mark_seen(self, number: int) -> None:
        self.episode_seen[number] = True
        self.last_seen = number

    def has_seen(self, number: int) -> bool:
        return self.episode_seen.get(number, False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id.to_dict(),
            'title': self.title,
            'thumbnail': self.thumbnail,
            'creator': self.creator,
            'last_seen': self.last_seen,
            # JSON object keys are strings
            'episode_seen': {str(number): seen for number, seen in self.episode_seen.items()}
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserWebtoon':
        return cls(
            id=WebtoonId.from_dict(data['id']),
            title=data['title'],
            thumbnail=data.get('thumbnail'),
            creator=data.get('creator'),
            last_seen=data.get('last_seen'),
            episode_seen={int(number): bool(seen) for number, seen in data.get('episode_seen', {}).items()}
        )


@dataclass
class UserData:
    """Snapshot of the user's library and settings handed to the UI."""

    webtoons: Dict[str, UserWebtoon] = field(default_factory=dict)
    language: Language = field(default_factory=Language.default)

    def is_subscribed(self, webtoon_id: WebtoonId) -> bool:
        return webtoon_id.key in self.webtoons

    def to_dict(self) -> Dict[str, Any]:
        return {
            'webtoons': {key: webtoon.to_dict() for key, webtoon in self.webtoons.items()},
            'language': self.language.value
        }
