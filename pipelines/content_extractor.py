"""Minimal text extraction and placeholder detection for guideline pages."""

import logging
import re
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from config.core_config import FallbackHeuristics
from indexer.records import ContentRecord, UNIVERSAL_PLATFORM, utc_now

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200
MAX_KEYWORDS = 20

STOP_WORDS = frozenset([
    'the', 'and', 'for', 'are', 'but', 'not', 'you', 'all', 'can', 'had', 'her',
    'was', 'one', 'our', 'out', 'day', 'get', 'has', 'him', 'his', 'how', 'man',
    'new', 'now', 'old', 'see', 'two', 'way', 'who', 'boy', 'did', 'its', 'let',
    'put', 'say', 'she', 'too', 'use', 'with', 'that', 'this', 'from', 'your',
])

# Elements that never carry section content
NOISE_TAGS = ['script', 'style', 'noscript', 'nav', 'header', 'footer']

GUIDELINES_PATH = '/design/human-interface-guidelines'

_KEYWORD_RE = re.compile(r"\b\w{3,}\b")
_HEADING_TAG_RE = re.compile(r"^h[1-6]$")
_HEADING_MARK_RE = re.compile(r"#{1,6}\s+")

# Checked in order; the first hit wins
_PLATFORM_MARKERS = [
    ('ios', 'iOS'),
    ('macos', 'macOS'),
    ('watchos', 'watchOS'),
    ('tvos', 'tvOS'),
    ('visionos', 'visionOS'),
]

_CATEGORY_MARKERS = [
    (('foundation',), 'foundations'),
    (('layout',), 'layout'),
    (('navigation',), 'navigation'),
    (('presentation',), 'presentation'),
    (('input', 'selection'), 'selection-and-input'),
    (('status',), 'status'),
    (('system',), 'system-capabilities'),
    (('visual', 'design'), 'visual-design'),
    (('icon', 'image'), 'icons-and-images'),
    (('color', 'material'), 'color-and-materials'),
    (('typography', 'font'), 'typography'),
    (('motion', 'animation'), 'motion'),
    (('technolog',), 'technologies'),
]


class ContentClassification(str, Enum):
    """Verdict of the placeholder-content heuristic."""
    REAL = 'real'
    LIKELY_FALLBACK = 'likely_fallback'
    FALLBACK = 'fallback'


def classify_content(text: Optional[str],
                     heuristics: Optional[FallbackHeuristics] = None) -> ContentClassification:
    """Classify text as real content or an upstream placeholder.

    This is a heuristic. Empty text or a strong indicator phrase (e.g. "this
    page requires javascript") means FALLBACK. A weak indicator phrase or text
    shorter than ``min_real_length`` means LIKELY_FALLBACK. Anything else is
    REAL. Thresholds and phrases come from ``FallbackHeuristics``.

    Args:
        text: Extracted page text
        heuristics: Thresholds and indicator phrases (defaults when omitted)

    Returns:
        Content classification
    """
    heuristics = heuristics or FallbackHeuristics()
    stripped = (text or '').strip()
    if not stripped:
        return ContentClassification.FALLBACK

    lowered = stripped.lower()
    if any(indicator in lowered for indicator in heuristics.strong_indicators):
        return ContentClassification.FALLBACK
    if any(indicator in lowered for indicator in heuristics.weak_indicators):
        return ContentClassification.LIKELY_FALLBACK
    if len(stripped) < heuristics.min_real_length:
        return ContentClassification.LIKELY_FALLBACK
    return ContentClassification.REAL


def extract_platform(href: str, text: str = '') -> str:
    """Guess the platform from a link target and its text."""
    combined = f"{href} {text}".lower()
    for marker, platform in _PLATFORM_MARKERS:
        if marker in combined:
            return platform
    return UNIVERSAL_PLATFORM


def extract_category(href: str, text: str = '') -> str:
    """Guess the guideline category from a link target and its text."""
    combined = f"{href} {text}".lower().replace(GUIDELINES_PATH, '')
    for markers, category in _CATEGORY_MARKERS:
        if any(marker in combined for marker in markers):
            return category
    return 'foundations'


def generate_id(title: str, platform: str) -> str:
    clean_title = re.sub(r"[^a-z0-9]", "-", title.lower())
    clean_title = re.sub(r"-+", "-", clean_title).strip("-")
    return f"{platform.lower()}-{clean_title}"


def page_id(url: str) -> str:
    """Stable record id of a page, derived from the last segment of its URL path.

    The id does not depend on the page's title or on caller-supplied tags, so
    every fetch of the same URL supersedes the same index entry.
    """
    parsed = urlparse(url)
    slug = parsed.path.rstrip('/').rsplit('/', 1)[-1] or parsed.netloc or url
    return generate_id(slug, extract_platform(slug))


def extract_snippet(content: str, query: str = '', max_length: int = SNIPPET_LENGTH) -> str:
    """Cut a snippet around the first occurrence of ``query``, or from the start."""
    if not content:
        return ''

    index = content.lower().find(query.lower()) if query else -1
    if index == -1:
        return content[:max_length] + ('...' if len(content) > max_length else '')

    start = max(0, index - 50)
    end = min(len(content), start + max_length)
    prefix = '...' if start > 0 else ''
    suffix = '...' if end < len(content) else ''
    return prefix + content[start:end] + suffix


def extract_keywords(title: str, text: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """Unique words of three or more characters, stop words removed, in reading order."""
    keywords: List[str] = []
    for word in _KEYWORD_RE.findall(f"{title} {text}".lower()):
        if word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def html_to_text(soup: BeautifulSoup) -> str:
    """Visible text of the main content area, one block per line.

    Headings are rendered as markdown heading lines so the text keeps its
    outline.
    """
    for tag in soup(NOISE_TAGS):
        tag.decompose()

    for heading in soup.find_all(_HEADING_TAG_RE):
        text = heading.get_text(' ', strip=True)
        heading.clear()
        if text:
            heading.append(f"{'#' * int(heading.name[1])} {text}")

    root = soup.find('main') or soup.find('article') or soup.body or soup
    lines = (line.strip() for line in root.get_text(separator='\n').splitlines())
    return '\n'.join(line for line in lines if line)


def extract_record(html: str,
                   url: str,
                   title_hint: Optional[str] = None,
                   platform: Optional[str] = None,
                   category: Optional[str] = None) -> ContentRecord:
    """Build a content record from a fetched page.

    Args:
        html: Page HTML
        url: Page URL
        title_hint: Title to use when the page has none (e.g. the link text)
        platform: Platform tag; derived from the URL when omitted
        category: Category tag; derived from the URL when omitted

    Returns:
        A new record with body, snippet and keywords filled in
    """
    soup = BeautifulSoup(html or '', 'html.parser')

    title = None
    h1 = soup.find('h1')
    if h1 and h1.get_text(strip=True):
        title = h1.get_text(strip=True)
    elif soup.title and soup.title.get_text(strip=True):
        title = soup.title.get_text(strip=True)
    title = title or title_hint or url.rstrip('/').rsplit('/', 1)[-1] or url

    body = html_to_text(soup)
    platform = platform or extract_platform(url, title)
    category = category or extract_category(url, title)

    flat_text = ' '.join(_HEADING_MARK_RE.sub('', body).split())
    record = ContentRecord(
        id=page_id(url),
        title=title,
        url=url,
        platform=platform,
        category=category,
        keywords=frozenset(extract_keywords(title, body)),
        snippet=extract_snippet(flat_text),
        body=body,
        fetched_at=utc_now(),
    )
    logger.debug(f"Extracted record {record.id} ({len(body)} chars, {len(record.keywords)} keywords)")
    return record
