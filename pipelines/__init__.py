"""Pipelines package for the HIG docs core.

Provides rate-limited fetching, section discovery and content extraction.
"""

from .errors import FetchError, RateLimitedError, NetworkError, FetchExhaustedError
from .rate_limiter import RateLimiter
from .fetcher import ResilientFetcher, FetchResult, FetchSource, FetchStats
from .content_extractor import (
    ContentClassification,
    classify_content,
    extract_record,
    extract_platform,
    extract_category,
    extract_snippet,
    generate_id,
    page_id
)
from .discovery import SectionDiscovery, parse_section_links

__all__ = [
    # Errors
    'FetchError',
    'RateLimitedError',
    'NetworkError',
    'FetchExhaustedError',

    # Fetcher
    'RateLimiter',
    'ResilientFetcher',
    'FetchResult',
    'FetchSource',
    'FetchStats',

    # Extraction
    'ContentClassification',
    'classify_content',
    'extract_record',
    'extract_platform',
    'extract_category',
    'extract_snippet',
    'generate_id',
    'page_id',

    # Discovery
    'SectionDiscovery',
    'parse_section_links'
]
