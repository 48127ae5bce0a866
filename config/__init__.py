"""Configuration module for the HIG docs core.

Provides configuration management for the cache, fetcher, search engine and
quality monitor.
"""

from pathlib import Path

from .core_config import (
    CoreConfig,
    FallbackHeuristics,
    QualityThresholds,
    DEFAULT_CONFIG,
    CONFIG_ALIASES,
    deep_merge,
    load_core_config
)

DEFAULT_SYNONYMS_PATH = Path(__file__).parent / 'synonyms.yaml'

__all__ = [
    'CoreConfig',
    'FallbackHeuristics',
    'QualityThresholds',
    'DEFAULT_CONFIG',
    'CONFIG_ALIASES',
    'DEFAULT_SYNONYMS_PATH',
    'deep_merge',
    'load_core_config'
]
