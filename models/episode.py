"""
Episode data models: list previews, reader-page details and the top-level
comments posted under an episode.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, TYPE_CHECKING

if TYPE_CHECKING:
    from models.webtoon import WebtoonId


def _webtoon_id_from_dict(data: Dict[str, Any]) -> 'WebtoonId':
    from models.webtoon import WebtoonId
    return WebtoonId.from_dict(data)


@dataclass
class EpisodePreview:
    """One entry of a webtoon's episode list."""

    # Core identifiers
    parent_wt_id: 'WebtoonId'
    number: int

    # Metadata
    title: str
    thumbnail: str
    likes: int
    posted_at: str
    ep_url: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'parent_wt_id': self.parent_wt_id.to_dict(),
            'number': self.number,
            'title': self.title,
            'thumbnail': self.thumbnail,
            'likes': self.likes,
            'posted_at': self.posted_at,
            'ep_url': self.ep_url
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EpisodePreview':
        """Create instance from dictionary."""
        return cls(
            parent_wt_id=_webtoon_id_from_dict(data['parent_wt_id']),
            number=int(data['number']),
            title=data['title'],
            thumbnail=data['thumbnail'],
            likes=int(data.get('likes', 0)),
            posted_at=data.get('posted_at', ''),
            ep_url=data['ep_url']
        )

    def __repr__(self) -> str:
        """Developer representation."""
        return f"EpisodePreview(parent_wt_id={self.parent_wt_id!r}, number={self.number})"

    def __eq__(self, other) -> bool:
        """Equality comparison based on parent webtoon and episode number."""
        if not isinstance(other, EpisodePreview):
            return False
        return self.parent_wt_id == other.parent_wt_id and self.number == other.number

    def __hash__(self) -> int:
        """Hash for use in sets and dicts."""
        return hash((self.parent_wt_id, self.number))


@dataclass
class EpisodeDetail:
    """Reader-page content of an episode. Never persisted."""

    parent_wt_id: 'WebtoonId'
    number: int

    panels: List[str] = field(default_factory=list)
    author_note: Optional[str] = None
    author_name: str = ""
    author_id: Optional[str] = None
    author_thumb: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'parent_wt_id': self.parent_wt_id.to_dict(),
            'number': self.number,
            'panels': list(self.panels),
            'author_note': self.author_note,
            'author_name': self.author_name,
            'author_id': self.author_id,
            'author_thumb': self.author_thumb
        }


@dataclass
class Post:
    """A top-level reader comment on an episode. Replies are not kept."""

    wt_id: 'WebtoonId'
    ep_num: int

    id: str
    content: str
    poster_name: str
    posted_at: int  # Unix timestamp, seconds
    is_spoiler: bool = False
    is_top: bool = False
    upvotes: int = 0
    downvotes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'wt_id': self.wt_id.to_dict(),
            'ep_num': self.ep_num,
            'id': self.id,
            'content': self.content,
            'is_spoiler': self.is_spoiler,
            'is_top': self.is_top,
            'upvotes': self.upvotes,
            'downvotes': self.downvotes,
            'posted_at': self.posted_at,
            'poster_name': self.poster_name
        }
