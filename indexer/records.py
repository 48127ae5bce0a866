"""Record types shared by the fetcher, the search index and the facade."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional

PLATFORMS = ('iOS', 'macOS', 'watchOS', 'tvOS', 'visionOS', 'universal')

CATEGORIES = (
    'foundations',
    'layout',
    'navigation',
    'presentation',
    'selection-and-input',
    'status',
    'system-capabilities',
    'visual-design',
    'icons-and-images',
    'color-and-materials',
    'typography',
    'motion',
    'technologies',
)

UNIVERSAL_PLATFORM = 'universal'


@dataclass(frozen=True)
class ContentRecord:
    """One retrieved documentation section.

    Records are immutable; a re-fetch produces a new record with the same id
    that supersedes the old one in the index.
    """
    id: str
    title: str
    url: str
    platform: str = UNIVERSAL_PLATFORM
    category: str = 'foundations'
    keywords: FrozenSet[str] = field(default_factory=frozenset)
    snippet: str = ''
    body: Optional[str] = None
    fetched_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Record id cannot be empty")
        if not self.title:
            raise ValueError("Record title is required")
        # Accept any iterable of keywords but store a lowercase frozenset
        object.__setattr__(self, 'keywords', frozenset(k.lower() for k in self.keywords if k))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContentRecord':
        """Create a record from a seed index entry."""
        fetched_at = data.get('fetched_at') or data.get('lastUpdated')
        if isinstance(fetched_at, str):
            try:
                fetched_at = datetime.fromisoformat(fetched_at.replace('Z', '+00:00'))
            except ValueError:
                fetched_at = None

        return cls(
            id=data['id'],
            title=data['title'],
            url=data.get('url', ''),
            platform=data.get('platform', UNIVERSAL_PLATFORM),
            category=data.get('category', 'foundations'),
            keywords=_as_keywords(data.get('keywords', ())),
            snippet=data.get('snippet', ''),
            body=data.get('body') or data.get('content'),
            fetched_at=fetched_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'platform': self.platform,
            'category': self.category,
            'keywords': sorted(self.keywords),
            'snippet': self.snippet,
        }
        if self.body is not None:
            result['body'] = self.body
        if self.fetched_at is not None:
            result['fetched_at'] = self.fetched_at.isoformat()
        return result


@dataclass(frozen=True)
class RankedResult:
    """A scored search hit. Computed per query, never persisted."""
    record_id: str
    relevance_score: float
    matched_fields: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class SectionLink:
    """A discovered guidelines section before its content is fetched."""
    id: str
    title: str
    url: str
    platform: str
    category: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'platform': self.platform,
            'category': self.category,
        }


def _as_keywords(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value or ()]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
