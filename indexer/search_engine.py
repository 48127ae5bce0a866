"""Relevance-ranked keyword search over retrieved content records."""

import logging
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from observability.prometheus_metrics import record_search_metrics

from .records import ContentRecord, RankedResult, UNIVERSAL_PLATFORM
from .synonyms import SynonymTable

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\w+")


class InvalidQueryError(ValueError):
    """The query or its filters failed validation."""


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the individual match signals."""
    exact_title: float = 5.0
    partial_title: float = 3.0
    title_term: float = 1.5
    keyword_term: float = 1.0
    snippet_exact: float = 0.5
    snippet_term: float = 0.3
    synonym_bonus: float = 0.8


def normalize_query(query: str) -> Tuple[str, List[str]]:
    """Split the lowercased query into unique terms longer than one character.

    Returns the terms rejoined by single spaces (the phrase matched against
    snippets and the synonym table) together with the term list.
    """
    terms: List[str] = []
    for term in query.strip().lower().split():
        if len(term) > 1 and term not in terms:
            terms.append(term)
    return ' '.join(terms), terms


class RelevanceSearchEngine:
    """In-memory index of content records scored by title, keyword and snippet matches.

    Records stay searchable until explicitly removed or superseded by a record
    with the same id; cache expiry does not affect the index.
    """

    def __init__(self,
                 synonyms: Optional[SynonymTable] = None,
                 weights: Optional[ScoringWeights] = None,
                 max_query_length: int = 100,
                 default_limit: int = 10):
        self.synonyms = synonyms or SynonymTable()
        self.weights = weights or ScoringWeights()
        self.max_query_length = max_query_length
        self.default_limit = default_limit
        self._index: 'OrderedDict[str, ContentRecord]' = OrderedDict()

    # Index management

    def add(self, record: ContentRecord) -> None:
        """Add or supersede a record; a superseding record keeps its index position."""
        if record.id in self._index:
            logger.debug(f"Superseding indexed record {record.id}")
        self._index[record.id] = record

    def add_many(self, records: Iterable[ContentRecord]) -> int:
        count = 0
        for record in records:
            self.add(record)
            count += 1
        return count

    def load_seed(self, records: Iterable[ContentRecord]) -> int:
        """Seed the index, e.g. from a pre-built index file."""
        count = self.add_many(records)
        logger.info(f"Seeded search index with {count} records")
        return count

    def remove(self, record_id: str) -> bool:
        """Explicitly evict a record from the index."""
        return self._index.pop(record_id, None) is not None

    def get(self, record_id: str) -> Optional[ContentRecord]:
        return self._index.get(record_id)

    def records(self) -> List[ContentRecord]:
        return list(self._index.values())

    def clear(self) -> None:
        self._index.clear()

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._index

    def stats(self) -> Dict[str, Any]:
        """Get indexing statistics."""
        entries = list(self._index.values())
        avg_keywords = sum(len(r.keywords) for r in entries) / len(entries) if entries else 0.0
        platforms: Dict[str, int] = {}
        for record in entries:
            platforms[record.platform] = platforms.get(record.platform, 0) + 1
        return {
            'total_records': len(entries),
            'average_keyword_count': avg_keywords,
            'platforms': platforms,
            'synonym_entries': len(self.synonyms),
        }

    # Search

    def validate_query(self, query: Any) -> None:
        if not isinstance(query, str):
            raise InvalidQueryError(f"Query must be a string, got {type(query).__name__}")
        if len(query) > self.max_query_length:
            raise InvalidQueryError(
                f"Query too long: maximum {self.max_query_length} characters allowed"
            )

    def search(self,
               query: str,
               platform: Optional[str] = None,
               category: Optional[str] = None,
               limit: Optional[int] = None) -> List[RankedResult]:
        """Score every indexed record against ``query`` and return the best matches.

        Args:
            query: Free-text query, at most ``max_query_length`` characters
            platform: Only records of this platform (or universal ones)
            category: Only records of this category
            limit: Maximum number of results

        Returns:
            Results sorted by descending score; ties keep index order

        Raises:
            InvalidQueryError: If the query is not a string or is too long
        """
        start_time = time.time()
        try:
            self.validate_query(query)
        except InvalidQueryError:
            record_search_metrics('invalid', time.time() - start_time, len(self._index))
            raise
        limit = self.default_limit if limit is None else limit

        normalized, terms = normalize_query(query)
        if not terms or limit <= 0:
            record_search_metrics('empty', time.time() - start_time, len(self._index))
            return []

        expansion = self.synonyms.expand(normalized, terms)
        synonyms = expansion[1:]

        results = []
        for record in self._index.values():
            if not self._passes_filters(record, platform, category):
                continue
            score, fields = self._score(record, normalized, terms, synonyms)
            if score > 0:
                results.append(RankedResult(record.id, score, frozenset(fields)))

        # sorted() is stable, so equal scores keep insertion order
        results = sorted(results, key=lambda r: r.relevance_score, reverse=True)
        record_search_metrics('success', time.time() - start_time, len(self._index))
        logger.debug(f"Search '{normalized}' matched {len(results)} records "
                     f"(expanded with {len(synonyms)} synonyms)")
        return results[:limit]

    @staticmethod
    def _passes_filters(record: ContentRecord, platform: Optional[str], category: Optional[str]) -> bool:
        if platform and platform != UNIVERSAL_PLATFORM:
            if record.platform != platform and record.platform != UNIVERSAL_PLATFORM:
                return False
        if category and record.category != category:
            return False
        return True

    def _score(self, record: ContentRecord, query: str, terms: Sequence[str],
               synonyms: Sequence[str]) -> Tuple[float, set]:
        w = self.weights
        score = 0.0
        fields = set()

        title = record.title.lower()
        title_words = set(_WORD_RE.findall(title))
        snippet = record.snippet.lower()
        keywords = record.keywords

        title_hits = [t for t in terms if t in title]
        if len(title_hits) == len(terms):
            # Every query term occurs in the title; exact when the terms also cover every title word
            score += w.exact_title if title_words <= set(terms) else w.partial_title
        if title_hits:
            score += w.title_term * len(title_hits)
            fields.add('title')

        keyword_hits = [t for t in terms if any(t in k for k in keywords)]
        if keyword_hits:
            score += w.keyword_term * len(keyword_hits)
            fields.add('keywords')

        if snippet:
            snippet_hits = [t for t in terms if t in snippet]
            if query in snippet:
                score += w.snippet_exact
            score += w.snippet_term * len(snippet_hits)
            if snippet_hits:
                fields.add('snippet')

        if synonyms and any(
            s in title or s in snippet or any(s in k or k == s for k in keywords)
            for s in synonyms
        ):
            score += w.synonym_bonus
            fields.add('synonym')

        return round(score, 2), fields
