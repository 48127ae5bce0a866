"""Tests for Prometheus metrics wiring."""

import asyncio
from unittest.mock import patch

import pytest

from conftest import FakeSession
from config.core_config import CoreConfig
from indexer.records import ContentRecord
from indexer.search_engine import InvalidQueryError, RelevanceSearchEngine
from observability.prometheus_metrics import get_metrics_summary, get_metrics_text, higdocs_registry
from observability.quality import QualityMonitor, QualitySample
from pipelines.errors import FetchExhaustedError
from pipelines.fetcher import ResilientFetcher
from server.content_service import ContentService


def success_count():
    return higdocs_registry.get_sample_value('higdocs_search_requests_total', {'status': 'success'}) or 0.0


class TestSearchMetrics:

    def test_successful_search_is_counted(self):
        engine = RelevanceSearchEngine()
        engine.add(ContentRecord(id='ios-buttons', title='Buttons', url='https://example.com/buttons'))
        before = success_count()

        engine.search("buttons")

        assert success_count() == before + 1

    def test_rejected_query_is_counted_as_invalid(self):
        engine = RelevanceSearchEngine()
        with patch('indexer.search_engine.record_search_metrics') as mock_record:
            with pytest.raises(InvalidQueryError):
                engine.search("x" * 500)

        mock_record.assert_called_once()
        assert mock_record.call_args[0][0] == 'invalid'

    def test_empty_query_is_counted_as_empty(self):
        engine = RelevanceSearchEngine()
        with patch('indexer.search_engine.record_search_metrics') as mock_record:
            assert engine.search("   ") == []

        mock_record.assert_called_once()
        assert mock_record.call_args[0][0] == 'empty'


class TestServiceSearchMetrics:

    @pytest.fixture
    def service(self, cache, rate_limiter, fake_sleep):
        fetcher = ResilientFetcher(cache, rate_limiter, session=FakeSession([]), sleep=fake_sleep)
        return ContentService(CoreConfig(), cache, fetcher, RelevanceSearchEngine(), QualityMonitor())

    def test_over_length_query_is_counted_once_as_invalid(self, service):
        with patch('indexer.search_engine.record_search_metrics') as engine_record, \
                patch('server.content_service.record_search_metrics') as service_record:
            with pytest.raises(InvalidQueryError):
                service.search("q" * 101)

        assert [c[0][0] for c in engine_record.call_args_list] == ['invalid']
        service_record.assert_not_called()

    def test_invalid_filter_is_counted_as_invalid(self, service):
        with patch('indexer.search_engine.record_search_metrics') as engine_record, \
                patch('server.content_service.record_search_metrics') as service_record:
            with pytest.raises(InvalidQueryError):
                service.search("buttons", platform='android')

        assert [c[0][0] for c in service_record.call_args_list] == ['invalid']
        engine_record.assert_not_called()

    def test_blank_query_is_counted_as_empty(self, service):
        with patch('indexer.search_engine.record_search_metrics') as engine_record:
            assert service.search("   ")['total'] == 0

        assert [c[0][0] for c in engine_record.call_args_list] == ['empty']


class TestFetchMetrics:

    @pytest.mark.asyncio
    async def test_each_attempt_and_the_exhaustion_are_recorded(self, cache, rate_limiter, fake_sleep, clock):
        session = FakeSession([asyncio.TimeoutError()], clock)
        fetcher = ResilientFetcher(cache, rate_limiter, session=session, sleep=fake_sleep)

        with patch('pipelines.fetcher.record_fetch_attempt') as mock_attempt, \
                patch('pipelines.fetcher.record_fetch_result') as mock_result:
            with pytest.raises(FetchExhaustedError):
                await fetcher.fetch("https://example.com/page")

        assert [c[0][0] for c in mock_attempt.call_args_list] == ['timeout'] * 3
        assert mock_result.call_args[0][0] == 'exhausted'


class TestQualityMetrics:

    def test_sample_updates_success_rate_gauge(self):
        monitor = QualityMonitor()
        with patch('observability.quality.record_quality_sample') as mock_record:
            monitor.record(QualitySample(record_id='a', score=0.9))
            monitor.record(QualitySample(record_id='b', score=0.0, is_fallback=True))

        assert mock_record.call_args_list[0][0] == (False, 1.0)
        assert mock_record.call_args_list[1][0] == (True, 0.5)


class TestExposition:

    def test_metrics_text_contains_core_series(self):
        text = get_metrics_text().decode('utf-8')
        assert 'higdocs_fetch_duration_seconds_bucket' in text
        assert 'higdocs_search_duration_seconds' in text

    def test_summary_is_a_flat_mapping(self):
        RelevanceSearchEngine().search("anything")
        summary = get_metrics_summary()
        assert any(key.startswith('higdocs_search_requests_total') for key in summary)
