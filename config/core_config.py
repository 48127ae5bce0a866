"""Configuration loader for the content core.

Defaults are deep-merged with an optional YAML file. The recognized option
names from the upstream tooling (``requestDelayMs`` and friends) are accepted
as aliases of the snake_case keys.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

HIG_BASE_URL = 'https://developer.apple.com/design/human-interface-guidelines'

# Default configuration
DEFAULT_CONFIG: Dict[str, Any] = {
    'base_url': HIG_BASE_URL,
    'request_delay_ms': 1000,
    'retry_attempts': 3,
    'retry_backoff_ms': 1000,
    'timeout_ms': 10000,
    'primary_ttl_seconds': 3600,
    'backup_ttl_multiplier': 24,
    'section_list_ttl_seconds': 14400,
    'user_agent': 'HIG-Docs-Core/1.0.0 (Educational/Development Purpose)',
    'accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'accept_language': 'en-US,en;q=0.5',
    'cache': {
        'max_entries': None,
    },
    'search': {
        'max_query_length': 100,
        'default_limit': 10,
        'max_limit': 50,
        'synonyms_path': None,
        'seed_index_path': None,
    },
    'quality': {
        'capacity': 1000,
        'sla_target': 0.95,
        'min_quality_score': 0.5,
        'min_confidence': 0.4,
        'min_content_length': 200,
        'min_structure_score': 0.2,
        'min_domain_terms_score': 0.1,
        'max_fallback_rate': 0.05,
        'fallback': {
            'min_real_length': 200,
            'strong_indicators': [
                'this page requires javascript',
                'content extraction failed',
                'fallback information',
            ],
            'weak_indicators': [
                'single page application',
                'please visit the official documentation',
                'enable javascript',
            ],
        },
    },
    'logging': {
        'level': 'INFO',
        'use_json': False,
        'use_colors': True,
        'log_file': None,
    },
}

# camelCase option names -> snake_case keys
CONFIG_ALIASES = {
    'requestDelayMs': 'request_delay_ms',
    'retryAttempts': 'retry_attempts',
    'retryBackoffMs': 'retry_backoff_ms',
    'timeoutMs': 'timeout_ms',
    'primaryTtlSeconds': 'primary_ttl_seconds',
    'backupTtlMultiplier': 'backup_ttl_multiplier',
    'sectionListTtlSeconds': 'section_list_ttl_seconds',
    'baseUrl': 'base_url',
    'userAgent': 'user_agent',
    'acceptLanguage': 'accept_language',
}


@dataclass
class FallbackHeuristics:
    """Tunable thresholds for placeholder-content detection.

    These values were tuned by hand against the upstream site and are
    heuristics, not ground truth.
    """
    min_real_length: int = 200
    strong_indicators: List[str] = field(default_factory=lambda: list(
        DEFAULT_CONFIG['quality']['fallback']['strong_indicators']))
    weak_indicators: List[str] = field(default_factory=lambda: list(
        DEFAULT_CONFIG['quality']['fallback']['weak_indicators']))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FallbackHeuristics':
        defaults = DEFAULT_CONFIG['quality']['fallback']
        return cls(
            min_real_length=int(data.get('min_real_length', defaults['min_real_length'])),
            strong_indicators=[s.lower() for s in data.get('strong_indicators', defaults['strong_indicators'])],
            weak_indicators=[s.lower() for s in data.get('weak_indicators', defaults['weak_indicators'])],
        )


@dataclass
class QualityThresholds:
    """Thresholds used by the quality monitor's validity vote."""
    min_quality_score: float = 0.5
    min_confidence: float = 0.4
    min_content_length: int = 200
    min_structure_score: float = 0.2
    min_domain_terms_score: float = 0.1
    max_fallback_rate: float = 0.05

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QualityThresholds':
        return cls(
            min_quality_score=float(data.get('min_quality_score', 0.5)),
            min_confidence=float(data.get('min_confidence', 0.4)),
            min_content_length=int(data.get('min_content_length', 200)),
            min_structure_score=float(data.get('min_structure_score', 0.2)),
            min_domain_terms_score=float(data.get('min_domain_terms_score', 0.1)),
            max_fallback_rate=float(data.get('max_fallback_rate', 0.05)),
        )


@dataclass
class CoreConfig:
    """Validated settings for cache, fetcher, search and quality monitoring."""
    base_url: str = HIG_BASE_URL
    request_delay_ms: int = 1000
    retry_attempts: int = 3
    retry_backoff_ms: int = 1000
    timeout_ms: int = 10000
    primary_ttl_seconds: int = 3600
    backup_ttl_multiplier: int = 24
    section_list_ttl_seconds: int = 14400
    user_agent: str = DEFAULT_CONFIG['user_agent']
    accept: str = DEFAULT_CONFIG['accept']
    accept_language: str = DEFAULT_CONFIG['accept_language']
    cache_max_entries: Optional[int] = None
    max_query_length: int = 100
    default_limit: int = 10
    max_limit: int = 50
    synonyms_path: Optional[str] = None
    seed_index_path: Optional[str] = None
    quality_capacity: int = 1000
    sla_target: float = 0.95
    quality_thresholds: QualityThresholds = field(default_factory=QualityThresholds)
    fallback_heuristics: FallbackHeuristics = field(default_factory=FallbackHeuristics)
    log_level: str = 'INFO'
    log_json: bool = False
    log_colors: bool = True
    log_file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.request_delay_ms < 0:
            raise ValueError("request_delay_ms cannot be negative")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        if self.retry_backoff_ms < 0:
            raise ValueError("retry_backoff_ms cannot be negative")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.primary_ttl_seconds <= 0:
            raise ValueError("primary_ttl_seconds must be positive")
        if self.backup_ttl_multiplier < 1:
            raise ValueError("backup_ttl_multiplier must be at least 1")
        if self.section_list_ttl_seconds <= 0:
            raise ValueError("section_list_ttl_seconds must be positive")
        if self.cache_max_entries is not None and self.cache_max_entries < 2:
            raise ValueError("cache max_entries must hold at least a primary and a backup slot")
        if self.max_query_length < 1:
            raise ValueError("max_query_length must be positive")
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError("default_limit must be between 1 and max_limit")
        if self.quality_capacity < 1:
            raise ValueError("quality capacity must be positive")
        if not 0.0 <= self.sla_target <= 1.0:
            raise ValueError("sla_target must be a fraction between 0 and 1")

    # Derived values used by the fetcher
    @property
    def request_delay(self) -> float:
        return self.request_delay_ms / 1000.0

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def retry_backoff(self) -> float:
        return self.retry_backoff_ms / 1000.0

    @property
    def backup_ttl_seconds(self) -> int:
        return self.primary_ttl_seconds * self.backup_ttl_multiplier

    @property
    def request_headers(self) -> Dict[str, str]:
        return {
            'User-Agent': self.user_agent,
            'Accept': self.accept,
            'Accept-Language': self.accept_language,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CoreConfig':
        """Create CoreConfig from a (possibly partial) configuration dictionary."""
        merged = deep_merge(DEFAULT_CONFIG, normalize_aliases(data or {}))
        cache = merged.get('cache') or {}
        search = merged.get('search') or {}
        quality = merged.get('quality') or {}
        log = merged.get('logging') or {}

        return cls(
            base_url=merged['base_url'].rstrip('/'),
            request_delay_ms=int(merged['request_delay_ms']),
            retry_attempts=int(merged['retry_attempts']),
            retry_backoff_ms=int(merged['retry_backoff_ms']),
            timeout_ms=int(merged['timeout_ms']),
            primary_ttl_seconds=int(merged['primary_ttl_seconds']),
            backup_ttl_multiplier=int(merged['backup_ttl_multiplier']),
            section_list_ttl_seconds=int(merged['section_list_ttl_seconds']),
            user_agent=merged['user_agent'],
            accept=merged['accept'],
            accept_language=merged['accept_language'],
            cache_max_entries=cache.get('max_entries'),
            max_query_length=int(search.get('max_query_length', 100)),
            default_limit=int(search.get('default_limit', 10)),
            max_limit=int(search.get('max_limit', 50)),
            synonyms_path=search.get('synonyms_path'),
            seed_index_path=search.get('seed_index_path'),
            quality_capacity=int(quality.get('capacity', 1000)),
            sla_target=float(quality.get('sla_target', 0.95)),
            quality_thresholds=QualityThresholds.from_dict(quality),
            fallback_heuristics=FallbackHeuristics.from_dict(quality.get('fallback') or {}),
            log_level=str(log.get('level', 'INFO')),
            log_json=bool(log.get('use_json', False)),
            log_colors=bool(log.get('use_colors', True)),
            log_file=log.get('log_file'),
        )


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries without mutating either."""
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def normalize_aliases(data: Dict[str, Any]) -> Dict[str, Any]:
    """Rename camelCase option names to their snake_case keys."""
    normalized = {}
    for key, value in data.items():
        normalized[CONFIG_ALIASES.get(key, key)] = value
    return normalized


def default_config_path() -> Optional[str]:
    """Find the first existing configuration file."""
    possible_paths = [
        os.environ.get('HIGDOCS_CONFIG'),
        os.path.join(os.getcwd(), 'config', 'higdocs.yaml'),
        os.path.join(os.path.expanduser('~'), '.higdocs', 'higdocs.yaml'),
    ]

    for path in possible_paths:
        if path and os.path.exists(path):
            return path
    return None


def load_core_config(config_path: Optional[str] = None) -> CoreConfig:
    """Load configuration from file, falling back to defaults.

    Args:
        config_path: Optional YAML file. Defaults to ``$HIGDOCS_CONFIG`` or
            the standard locations.

    Returns:
        Validated CoreConfig
    """
    path = config_path or default_config_path()
    file_config: Dict[str, Any] = {}

    if path and Path(path).exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                logger.warning(f"Config file {path} does not contain a mapping, using defaults")
                file_config = {}
            else:
                logger.info(f"Loaded core configuration from {path}")
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse config file {path}: {e}. Using defaults")
            file_config = {}
    elif config_path:
        logger.warning(f"Config file not found at {config_path}, using defaults")

    return CoreConfig.from_dict(file_config)
