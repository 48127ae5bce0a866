"""Observability package for the HIG docs core."""

from .logging import setup_logging, setup_logging_from_config, get_logger, JSONFormatter, ColoredFormatter
from .prometheus_metrics import (
    record_fetch_attempt,
    record_fetch_result,
    record_rate_limit_wait,
    record_cache_lookup,
    record_search_metrics,
    record_quality_sample,
    get_metrics_text,
    get_metrics_summary,
    higdocs_registry
)
from .quality import (
    QualityMonitor,
    QualitySample,
    QualityStatistics,
    QualityReport,
    ValidationResult,
    calculate_quality_score
)

__all__ = [
    'setup_logging',
    'setup_logging_from_config',
    'get_logger',
    'JSONFormatter',
    'ColoredFormatter',
    'record_fetch_attempt',
    'record_fetch_result',
    'record_rate_limit_wait',
    'record_cache_lookup',
    'record_search_metrics',
    'record_quality_sample',
    'get_metrics_text',
    'get_metrics_summary',
    'higdocs_registry',
    'QualityMonitor',
    'QualitySample',
    'QualityStatistics',
    'QualityReport',
    'ValidationResult',
    'calculate_quality_score'
]
