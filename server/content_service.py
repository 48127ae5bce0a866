"""Content service: the inbound entry points of the core.

Wires the tiered cache, the shared rate gate, the resilient fetcher, the
search index and the quality monitor together. The protocol layer calls
``fetch_content``, ``search`` and ``get_resource``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from config import DEFAULT_SYNONYMS_PATH, CoreConfig, load_core_config
from indexer.records import CATEGORIES, PLATFORMS, ContentRecord, SectionLink
from indexer.search_engine import InvalidQueryError, RelevanceSearchEngine
from indexer.seed_index import load_seed_index
from indexer.synonyms import SynonymTable
from observability.logging import setup_logging_from_config
from observability.prometheus_metrics import record_search_metrics
from observability.quality import QualityMonitor, QualityReport, QualitySample
from pipelines.content_extractor import ContentClassification, classify_content, extract_record, page_id
from pipelines.discovery import SectionDiscovery
from pipelines.errors import FetchExhaustedError
from pipelines.fetcher import FetchSource, ResilientFetcher
from pipelines.rate_limiter import RateLimiter
from .resources import Resource, ResourceProvider, generic_document
from .tiered_cache import TieredCache

logger = logging.getLogger(__name__)


@dataclass
class FetchedContent:
    """Result of ``fetch_content``.

    ``source`` is None and ``record`` is None when the handcrafted fallback
    document was returned.
    """
    url: str
    content: str
    record: Optional[ContentRecord]
    source: Optional[FetchSource]
    is_fallback: bool = False

    @property
    def is_degraded(self) -> bool:
        return self.is_fallback or self.source is FetchSource.STALE_CACHE


class ContentService:
    """Reliable, searchable access to the guidelines content."""

    def __init__(self,
                 config: CoreConfig,
                 cache: TieredCache,
                 fetcher: ResilientFetcher,
                 search_engine: RelevanceSearchEngine,
                 quality: QualityMonitor):
        self.config = config
        self.cache = cache
        self.fetcher = fetcher
        self.search_engine = search_engine
        self.quality = quality
        self.discovery = SectionDiscovery(fetcher, cache, config.base_url, config.section_list_ttl_seconds)
        self.resources = ResourceProvider(self.discovery, self._section_text, cache)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self.fetcher.close()

    # Retrieval

    async def fetch_content(self,
                            url: str,
                            platform: Optional[str] = None,
                            category: Optional[str] = None,
                            title: Optional[str] = None,
                            allow_fallback: bool = True) -> FetchedContent:
        """Fetch a guideline page, index it and record its quality.

        Args:
            url: Page URL
            platform: Platform tag of the page, derived from the URL when omitted
            category: Category tag of the page, derived from the URL when omitted
            title: Known title (e.g. the link text from discovery)
            allow_fallback: Return a handcrafted document instead of raising on exhaustion

        Returns:
            Fetched content with its record

        Raises:
            FetchExhaustedError: If nothing could be retrieved and ``allow_fallback`` is False
        """
        try:
            result = await self.fetcher.fetch_result(url)
        except FetchExhaustedError:
            if not allow_fallback:
                raise
            return self._fallback_content(url, title)

        if result.source is FetchSource.FRESH_CACHE:
            indexed = self.search_engine.get(page_id(url))
            if indexed is not None:
                # Same bytes as the indexed record; no new quality sample
                classification = classify_content(indexed.body, self.quality.heuristics)
                return FetchedContent(
                    url=url,
                    content=indexed.body or '',
                    record=indexed,
                    source=result.source,
                    is_fallback=classification is ContentClassification.FALLBACK,
                )

        record = extract_record(result.content, url, title_hint=title, platform=platform, category=category)
        self.search_engine.add(record)

        sample = self.quality.assess_content(record.id, record.body or '')
        if result.source is not FetchSource.FRESH_CACHE:
            self.quality.record(sample)
            self.quality.validate(sample)

        if result.is_degraded:
            logger.info(f"Served {record.id} from stale cache")
        return FetchedContent(
            url=url,
            content=record.body or '',
            record=record,
            source=result.source,
            is_fallback=sample.is_fallback,
        )

    def _fallback_content(self, url: str, title: Optional[str]) -> FetchedContent:
        title = title or url.rstrip('/').rsplit('/', 1)[-1].replace('-', ' ').title() or 'Human Interface Guidelines'
        record_id = page_id(url)

        logger.warning(f"Serving fallback document for {url}")
        self.quality.record(QualitySample(record_id=record_id, score=0.0, is_fallback=True, confidence=0.0))
        return FetchedContent(
            url=url,
            content=generic_document(title, url),
            record=None,
            source=None,
            is_fallback=True,
        )

    async def _section_text(self, section: SectionLink) -> Optional[str]:
        try:
            fetched = await self.fetch_content(
                section.url,
                platform=section.platform,
                category=section.category,
                title=section.title,
                allow_fallback=False,
            )
        except FetchExhaustedError as e:
            logger.warning(f"Skipping section {section.id}: {e}")
            return None
        return fetched.content

    async def discover_sections(self) -> List[SectionLink]:
        return await self.discovery.discover_sections()

    async def refresh_index(self, limit: Optional[int] = None) -> int:
        """Fetch discovered sections and index them; return the number indexed."""
        sections = await self.discover_sections()
        if limit is not None:
            sections = sections[:limit]

        indexed = 0
        for section in sections:
            if await self._section_text(section) is not None:
                indexed += 1
        logger.info(f"Indexed {indexed}/{len(sections)} sections")
        return indexed

    # Search

    def validate_filters(self, platform: Optional[str], category: Optional[str], limit: Optional[int]) -> int:
        """Validate search filters and return the effective limit."""
        if platform is not None and platform not in PLATFORMS:
            raise InvalidQueryError(f"Invalid platform: {platform}. Must be one of: {', '.join(PLATFORMS)}")
        if category is not None and category not in CATEGORIES:
            raise InvalidQueryError(f"Invalid category: {category}. Must be one of: {', '.join(CATEGORIES)}")

        if limit is None:
            return self.config.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self.config.max_limit:
            raise InvalidQueryError(f"Limit must be an integer between 1 and {self.config.max_limit}")
        return limit

    def search(self,
               query: str,
               platform: Optional[str] = None,
               category: Optional[str] = None,
               limit: Optional[int] = None) -> Dict[str, Any]:
        """Search indexed content.

        Returns:
            ``{'results': [...], 'total': n, 'query': query, 'filters': {...}}``

        Raises:
            InvalidQueryError: On a non-string or over-long query or invalid filters
        """
        try:
            limit = self.validate_filters(platform, category, limit)
        except InvalidQueryError:
            record_search_metrics('invalid', 0.0, len(self.search_engine))
            raise
        filters = {'platform': platform, 'category': category, 'limit': limit}

        ranked = self.search_engine.search(query, platform=platform, category=category, limit=limit)
        results = []
        for hit in ranked:
            record = self.search_engine.get(hit.record_id)
            if record is None:
                continue
            results.append({
                'id': record.id,
                'title': record.title,
                'url': record.url,
                'platform': record.platform,
                'category': record.category,
                'snippet': record.snippet,
                'relevance_score': hit.relevance_score,
                'matched_fields': sorted(hit.matched_fields),
            })

        return {'results': results, 'total': len(results), 'query': query, 'filters': filters}

    # Resources and reporting

    async def get_resource(self, uri: str) -> Optional[Resource]:
        return await self.resources.get_resource(uri)

    async def list_resources(self) -> List[Resource]:
        return await self.resources.list_resources()

    def quality_report(self) -> QualityReport:
        return self.quality.generate_report()

    def stats(self) -> Dict[str, Any]:
        """Combined statistics of all components."""
        return {
            'cache': self.cache.stats(),
            'fetcher': self.fetcher.stats.to_dict(),
            'search': self.search_engine.stats(),
            'quality': self.quality.statistics().to_dict(),
        }


def create_content_service(config_path: Optional[str] = None,
                           configure_logging: bool = True,
                           session: Optional[aiohttp.ClientSession] = None) -> ContentService:
    """Build a content service from configuration.

    Args:
        config_path: Optional path to a YAML config file
        configure_logging: Install the configured log handlers
        session: Optional externally owned aiohttp session

    Returns:
        A ready-to-use content service
    """
    config = load_core_config(config_path)
    if configure_logging:
        setup_logging_from_config(config)

    cache = TieredCache(
        default_ttl=config.primary_ttl_seconds,
        backup_ttl_multiplier=config.backup_ttl_multiplier,
        max_entries=config.cache_max_entries,
    )
    rate_limiter = RateLimiter(min_interval=config.request_delay)
    fetcher = ResilientFetcher.from_config(config, cache, rate_limiter, session=session)

    synonyms = SynonymTable.from_yaml(config.synonyms_path or DEFAULT_SYNONYMS_PATH)
    search_engine = RelevanceSearchEngine(
        synonyms=synonyms,
        max_query_length=config.max_query_length,
        default_limit=config.default_limit,
    )
    if config.seed_index_path:
        search_engine.load_seed(load_seed_index(config.seed_index_path))

    quality = QualityMonitor.from_config(config)

    logger.info(f"Content service ready: {len(search_engine)} indexed records, "
                f"{len(synonyms)} synonym entries")
    return ContentService(config, cache, fetcher, search_engine, quality)
