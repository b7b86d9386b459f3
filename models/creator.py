"""
Creator profile model.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from models.webtoon import WebtoonSearchResult


@dataclass
class CreatorInfo:
    """A creator's community profile and the webtoons listed on it."""

    profile_id: str
    name: str
    followers: Optional[int] = None
    webtoons: List[WebtoonSearchResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'profile_id': self.profile_id,
            'name': self.name,
            'followers': self.followers,
            'webtoons': [webtoon.to_dict() for webtoon in self.webtoons]
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.profile_id})"
