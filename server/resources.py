"""hig:// resources assembled from discovered guideline sections."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from indexer.records import CATEGORIES, PLATFORMS, UNIVERSAL_PLATFORM, SectionLink
from pipelines.discovery import SectionDiscovery
from .tiered_cache import CacheKey, TieredCache

logger = logging.getLogger(__name__)

URI_SCHEME = "hig://"
MIME_TYPE = "text/markdown"

RESOURCE_LIST_TTL = 7200
RESOURCE_TTL = 3600

_URI_RE = re.compile(r"^hig://([^/]+)(?:/(.+))?$")

# Platforms that get per-platform resources, in listing order
LISTED_PLATFORMS = [p for p in PLATFORMS if p != UNIVERSAL_PLATFORM]

# Category resources offered per platform
LISTED_CATEGORIES = [
    'foundations', 'layout', 'navigation', 'presentation', 'selection-and-input',
    'visual-design', 'color-and-materials', 'typography', 'motion', 'technologies',
]

ATTRIBUTION_TEXT = (
    "---\n"
    "**Attribution Notice**\n\n"
    "This content is sourced from Apple's Human Interface Guidelines, available at "
    "https://developer.apple.com/design/human-interface-guidelines/\n\n"
    "(c) Apple Inc. All rights reserved. This content is provided for educational and "
    "development purposes. This project is not affiliated with Apple Inc. and does not "
    "claim ownership of Apple's content.\n\n"
    "For the most up-to-date and official information, please refer to Apple's official "
    "documentation.\n\n"
    "---\n\n"
)

UPDATE_DOCUMENTS = {
    'liquid-glass': (
        'Liquid Glass Design System',
        'Design language built from translucent, glass-like materials',
        "## Key Features\n\n"
        "- **Translucent Materials**: reflective and transparent interface elements\n"
        "- **Adaptive Colors**: adapts between light and dark environments\n"
        "- **Real-time Rendering**: reacts to movement with specular highlights\n"
        "- **System-wide Implementation**: from buttons to entire interfaces\n\n"
        "## Developer Integration\n\n"
        "SwiftUI, UIKit and AppKit provide APIs to adopt the design system.\n",
    ),
    'latest': (
        'Latest HIG Updates',
        "Most recent changes to Apple's Human Interface Guidelines",
        "## Recent Updates\n\n"
        "- **Liquid Glass Design System**: visual overhaul with translucent materials\n"
        "- **Unified Naming**: OS versions reflect the release year\n"
        "- **Enhanced APIs**: updated SwiftUI, UIKit and AppKit support\n",
    ),
}

SectionFetcher = Callable[[SectionLink], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class Resource:
    """A readable resource document."""
    uri: str
    name: str
    description: str
    mime_type: str = MIME_TYPE
    content: str = ''
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'uri': self.uri,
            'name': self.name,
            'description': self.description,
            'mimeType': self.mime_type,
            'content': self.content,
        }


@dataclass(frozen=True)
class ResourceURI:
    """Parsed hig:// URI."""
    kind: str
    platform: Optional[str] = None
    category: Optional[str] = None
    update_kind: Optional[str] = None


def format_category_name(category: str) -> str:
    """'selection-and-input' -> 'Selection and Input'."""
    words = category.split('-')
    return ' '.join(w if w == 'and' else w.capitalize() for w in words)


def parse_resource_uri(uri: str) -> Optional[ResourceURI]:
    """Parse ``hig://<platform>``, ``hig://<platform>/<category>`` or ``hig://updates/<kind>``."""
    match = _URI_RE.match(uri or '')
    if not match:
        return None

    first, second = match.groups()
    if first == 'updates':
        return ResourceURI(kind='updates', update_kind=second or 'latest')

    platform = next((p for p in PLATFORMS if p.lower() == first.lower()), None)
    if platform is None:
        return None
    if not second:
        return ResourceURI(kind='platform', platform=platform)
    if second not in CATEGORIES:
        return None
    return ResourceURI(kind='category', platform=platform, category=second)


class ResourceProvider:
    """Lists and renders hig:// resources.

    A resource whose sections cannot be fetched is still served, as a static
    generic document pointing at the official guidelines.
    """

    def __init__(self,
                 discovery: SectionDiscovery,
                 fetch_section: SectionFetcher,
                 cache: TieredCache,
                 list_ttl: float = RESOURCE_LIST_TTL,
                 resource_ttl: float = RESOURCE_TTL):
        self.discovery = discovery
        self.fetch_section = fetch_section
        self.cache = cache
        self.list_ttl = list_ttl
        self.resource_ttl = resource_ttl

    async def list_resources(self) -> List[Resource]:
        """List available resources (content left empty)."""
        cache_key = CacheKey.resource_list()
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        sections = await self.discovery.discover_sections()
        resources: List[Resource] = []

        for platform in LISTED_PLATFORMS:
            platform_sections = [s for s in sections if s.platform == platform]
            if not platform_sections:
                continue

            resources.append(Resource(
                uri=f"{URI_SCHEME}{platform.lower()}",
                name=f"{platform} Human Interface Guidelines",
                description=f"Complete design guidelines for {platform} development",
            ))
            for category in LISTED_CATEGORIES:
                if any(s.category == category for s in platform_sections):
                    name = format_category_name(category)
                    resources.append(Resource(
                        uri=f"{URI_SCHEME}{platform.lower()}/{category}",
                        name=f"{platform} {name}",
                        description=f"{platform} guidelines for {name.lower()}",
                    ))

        if any(s.platform == UNIVERSAL_PLATFORM for s in sections):
            resources.append(Resource(
                uri=f"{URI_SCHEME}{UNIVERSAL_PLATFORM}",
                name='Universal Design Guidelines',
                description='Cross-platform design principles',
            ))

        for kind, (name, description, _) in UPDATE_DOCUMENTS.items():
            resources.append(Resource(uri=f"{URI_SCHEME}updates/{kind}", name=name, description=description))

        if sections:
            self.cache.set(cache_key, resources, self.list_ttl)
        return resources

    async def get_resource(self, uri: str) -> Optional[Resource]:
        """Render the resource at ``uri``; unknown URIs give None."""
        cache_key = CacheKey.resource(uri)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        parsed = parse_resource_uri(uri)
        if parsed is None:
            logger.debug(f"Unknown resource URI: {uri}")
            return None

        if parsed.kind == 'updates':
            resource = self._render_updates(uri, parsed.update_kind)
        elif parsed.kind == 'platform':
            resource = await self._render_sections(
                uri, parsed,
                title=f"{parsed.platform} Human Interface Guidelines",
                intro=f"This document contains the design guidelines for {parsed.platform} development.",
                description=f"Complete design guidelines for {parsed.platform} development",
            )
        else:
            name = format_category_name(parsed.category)
            resource = await self._render_sections(
                uri, parsed,
                title=f"{parsed.platform} {name}",
                intro=f"Guidelines for {name.lower()} in {parsed.platform} applications.",
                description=f"{parsed.platform} guidelines for {name.lower()}",
            )

        if not resource.is_fallback:
            self.cache.set(cache_key, resource, self.resource_ttl)
        return resource

    async def _render_sections(self, uri: str, parsed: ResourceURI,
                               title: str, intro: str, description: str) -> Resource:
        sections = await self.discovery.discover_sections()
        selected = [
            s for s in sections
            if s.platform == parsed.platform and (parsed.category is None or s.category == parsed.category)
        ]

        parts = []
        for section in selected:
            text = await self.fetch_section(section)
            if text:
                parts.append(f"## {section.title}\n\n**URL:** {section.url}\n\n{text}\n\n---\n\n")

        if not parts:
            logger.warning(f"No section content available for {uri}, serving generic document")
            return Resource(uri=uri, name=title, description=description,
                            content=generic_document(title), is_fallback=True)

        content = f"# {title}\n\n{intro}\n\n{ATTRIBUTION_TEXT}" + ''.join(parts)
        return Resource(uri=uri, name=title, description=description, content=content)

    @staticmethod
    def _render_updates(uri: str, kind: str) -> Resource:
        name, description, body = UPDATE_DOCUMENTS.get(kind, UPDATE_DOCUMENTS['latest'])
        content = f"# {name}\n\n{description}.\n\n{ATTRIBUTION_TEXT}{body}"
        return Resource(uri=uri, name=name, description=description, content=content)


def generic_document(title: str, url: Optional[str] = None) -> str:
    """Static stand-in document used when no upstream content is available."""
    link = url or "https://developer.apple.com/design/human-interface-guidelines/"
    return (
        f"# {title}\n\n"
        "The guidelines for this topic could not be retrieved right now.\n\n"
        f"Please refer to the official documentation: {link}\n\n"
        f"{ATTRIBUTION_TEXT}"
    )
