"""Discovery of guideline sections linked from the guidelines landing page."""

import logging
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from indexer.records import SectionLink
from server.tiered_cache import CacheKey, TieredCache
from .content_extractor import GUIDELINES_PATH, extract_category, extract_platform, page_id
from .errors import FetchExhaustedError
from .fetcher import ResilientFetcher

logger = logging.getLogger(__name__)

# Tried in order until one yields sections
LINK_SELECTORS = [
    f'a[href*="{GUIDELINES_PATH}/"]',
    '.navigation a',
    'nav a',
    '.sidebar a',
    '[data-nav] a',
]


def parse_section_links(html: str, base_url: str) -> List[SectionLink]:
    """Collect unique section links from the landing page HTML."""
    soup = BeautifulSoup(html or '', 'html.parser')
    sections: List[SectionLink] = []
    seen_urls = set()

    for selector in LINK_SELECTORS:
        for link in soup.select(selector):
            href = link.get('href')
            text = link.get_text(strip=True)
            if not href or not text or f"{GUIDELINES_PATH}/" not in href:
                continue

            url = urljoin(base_url, href).split('#')[0]
            if url in seen_urls:
                continue
            seen_urls.add(url)

            platform = extract_platform(href, text)
            sections.append(SectionLink(
                id=page_id(url),
                title=text,
                url=url,
                platform=platform,
                category=extract_category(href, text),
            ))

        if sections:
            break

    return sections


class SectionDiscovery:
    """Finds the guideline sections and caches the list."""

    def __init__(self,
                 fetcher: ResilientFetcher,
                 cache: TieredCache,
                 base_url: str,
                 section_list_ttl: float = 14400):
        self.fetcher = fetcher
        self.cache = cache
        self.base_url = base_url
        self.section_list_ttl = section_list_ttl

    async def discover_sections(self) -> List[SectionLink]:
        """Return the section list, from cache when fresh.

        An unreachable origin with nothing cached yields the last known list,
        or an empty list if there never was one.
        """
        cache_key = CacheKey.section_list()
        cached: Optional[List[SectionLink]] = self.cache.get(cache_key)
        if cached is not None:
            return cached

        logger.info(f"Discovering guideline sections from {self.base_url}")
        try:
            html = await self.fetcher.fetch(self.base_url)
        except FetchExhaustedError as e:
            stale = self.cache.get_stale(cache_key)
            if stale is not None:
                logger.warning(f"Section discovery failed ({e}), serving {len(stale)} stale sections")
                return stale
            logger.error(f"Section discovery failed and no section list is cached: {e}")
            return []

        sections = parse_section_links(html, self.base_url)
        if sections:
            self.cache.set_with_degradation(cache_key, sections, self.section_list_ttl)
        else:
            logger.warning(f"No guideline sections found at {self.base_url}")
        logger.info(f"Discovered {len(sections)} guideline sections")
        return sections
