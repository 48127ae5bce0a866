"""Prometheus metrics for the content core."""

import logging
from typing import Any, Dict

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Custom registry so embedding hosts keep their default registry clean
higdocs_registry = CollectorRegistry()

# Fetch metrics
fetch_attempts = Counter(
    'higdocs_fetch_attempts_total',
    'Total number of outbound fetch attempts',
    ['outcome'],
    registry=higdocs_registry
)

fetch_results = Counter(
    'higdocs_fetch_results_total',
    'Logical fetch results by source',
    ['source'],
    registry=higdocs_registry
)

fetch_duration = Histogram(
    'higdocs_fetch_duration_seconds',
    'Duration of a logical fetch including retries',
    buckets=[0.01, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=higdocs_registry
)

rate_limit_wait = Histogram(
    'higdocs_rate_limit_wait_seconds',
    'Time spent waiting at the rate gate',
    buckets=[0.001, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
    registry=higdocs_registry
)

# Cache metrics
cache_lookups = Counter(
    'higdocs_cache_lookups_total',
    'Cache lookups made by the fetcher',
    ['result'],
    registry=higdocs_registry
)

# Search metrics
search_requests = Counter(
    'higdocs_search_requests_total',
    'Total number of search requests',
    ['status'],
    registry=higdocs_registry
)

search_duration = Histogram(
    'higdocs_search_duration_seconds',
    'Search request duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0],
    registry=higdocs_registry
)

search_index_size = Gauge(
    'higdocs_search_index_records',
    'Number of records in the search index',
    registry=higdocs_registry
)

# Quality metrics
quality_samples = Counter(
    'higdocs_quality_samples_total',
    'Quality samples recorded',
    ['fallback'],
    registry=higdocs_registry
)

quality_success_rate = Gauge(
    'higdocs_quality_success_rate',
    'Fraction of recent retrievals that returned real content',
    registry=higdocs_registry
)


def record_fetch_attempt(outcome: str) -> None:
    """Record one outbound attempt ('success', 'http_error', 'timeout', 'connection_error')."""
    fetch_attempts.labels(outcome=outcome).inc()


def record_fetch_result(source: str, duration: float) -> None:
    """Record a finished logical fetch."""
    fetch_results.labels(source=source).inc()
    fetch_duration.observe(duration)


def record_rate_limit_wait(seconds: float) -> None:
    rate_limit_wait.observe(seconds)


def record_cache_lookup(result: str) -> None:
    """Record a cache lookup result ('fresh', 'stale', 'miss')."""
    cache_lookups.labels(result=result).inc()


def record_search_metrics(status: str, duration: float, index_size: int) -> None:
    """Record search request metrics."""
    search_requests.labels(status=status).inc()
    search_duration.observe(duration)
    search_index_size.set(index_size)


def record_quality_sample(is_fallback: bool, success_rate: float) -> None:
    """Record a quality sample and the current success rate."""
    quality_samples.labels(fallback=str(is_fallback).lower()).inc()
    quality_success_rate.set(success_rate)


def get_metrics_text() -> bytes:
    """Render all core metrics in Prometheus exposition format."""
    return generate_latest(higdocs_registry)


def get_metrics_summary() -> Dict[str, Any]:
    """Get a summary of current metric values."""
    summary: Dict[str, Any] = {}
    try:
        for metric in higdocs_registry.collect():
            for sample in metric.samples:
                if sample.name.endswith('_total') or sample.name in (
                    'higdocs_search_index_records', 'higdocs_quality_success_rate'
                ):
                    label = ','.join(f"{k}={v}" for k, v in sorted(sample.labels.items()))
                    key = f"{sample.name}{{{label}}}" if label else sample.name
                    summary[key] = sample.value
    except Exception as e:
        logger.error(f"Failed to collect metrics summary: {e}")
        summary['error'] = str(e)
    return summary


__all__ = [
    'higdocs_registry',
    'CONTENT_TYPE_LATEST',
    'record_fetch_attempt',
    'record_fetch_result',
    'record_rate_limit_wait',
    'record_cache_lookup',
    'record_search_metrics',
    'record_quality_sample',
    'get_metrics_text',
    'get_metrics_summary',
]
