"""Tests for content quality monitoring."""

import pytest

from config.core_config import CoreConfig
from observability.quality import (
    QualityMonitor,
    QualitySample,
    calculate_quality_score,
)

REAL_CONTENT = (
    "# Buttons\n\n"
    "Buttons initiate app-specific actions on iOS and macOS. Apple's interface design "
    "guidelines recommend a hit region of at least 44x44 points.\n\n"
    "## Best practices\n\n"
    "Use a verb or verb phrase for the title. Keep labels short and make the primary "
    "action prominent so people can find it quickly.\n\n"
    "## Styles\n\n"
    "The system offers several `UIButton.Configuration` styles for common button roles."
)


def sample(record_id='ios-buttons', score=0.8, is_fallback=False, **kwargs):
    kwargs.setdefault('length', 1000)
    kwargs.setdefault('structure_score', 0.6)
    kwargs.setdefault('domain_terms_score', 0.5)
    return QualitySample(record_id=record_id, score=score, is_fallback=is_fallback, **kwargs)


class TestQualitySample:

    def test_confidence_defaults_to_score(self):
        assert sample(score=0.7).confidence == 0.7

    @pytest.mark.parametrize("score", [-0.1, 1.5])
    def test_score_out_of_range(self, score):
        with pytest.raises(ValueError):
            sample(score=score)

    def test_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            sample(confidence=2.0)


class TestRingBuffer:

    def test_oldest_sample_is_evicted(self):
        monitor = QualityMonitor(capacity=3)
        for i in range(5):
            monitor.record(sample(record_id=f"r{i}"))

        assert len(monitor) == 3
        assert [s.record_id for s in monitor.samples()] == ['r2', 'r3', 'r4']

    def test_statistics_reflect_only_the_window(self):
        monitor = QualityMonitor(capacity=2)
        monitor.record(sample(is_fallback=True, score=0.0))
        monitor.record(sample())
        monitor.record(sample())

        stats = monitor.statistics()
        assert stats.total == 2
        assert stats.fallback_count == 0
        assert stats.success_rate == 1.0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            QualityMonitor(capacity=0)

    def test_reset(self):
        monitor = QualityMonitor()
        monitor.record(sample())
        monitor.reset()
        assert len(monitor) == 0


class TestStatistics:

    def test_rates_are_fractions(self):
        monitor = QualityMonitor()
        for _ in range(3):
            monitor.record(sample(score=0.8))
        monitor.record(sample(score=0.0, is_fallback=True))

        stats = monitor.statistics()

        assert stats.total == 4
        assert stats.successful == 3
        assert stats.success_rate == pytest.approx(0.75)
        assert stats.fallback_rate == pytest.approx(0.25)
        assert stats.avg_score == pytest.approx(0.6)
        assert stats.avg_confidence == pytest.approx(0.6)

    def test_empty_buffer(self):
        stats = QualityMonitor().statistics()
        assert stats.total == 0
        assert stats.success_rate == 0.0
        assert stats.to_dict()['fallback_rate'] == 0.0


class TestValidityVote:

    def test_four_of_six_checks_pass(self):
        monitor = QualityMonitor()
        weak_structure = sample(score=0.6, structure_score=0.0, domain_terms_score=0.0)

        assert monitor.is_high_quality(weak_structure)

    def test_three_of_six_checks_fail_the_vote(self):
        monitor = QualityMonitor()
        weak = sample(score=0.6, length=10, structure_score=0.0, domain_terms_score=0.0)

        result = monitor.validate(weak)

        assert not result.is_valid
        assert result.passed_checks == 3
        assert result.score == pytest.approx(0.5)
        assert any("Content too short" in issue for issue in result.issues)
        assert len(result.recommendations) == len(result.issues)

    def test_fallback_flag_alone_does_not_fail_the_vote(self):
        assert QualityMonitor().is_high_quality(sample(is_fallback=True))

    def test_validations_appear_in_report(self):
        monitor = QualityMonitor()
        monitor.record(sample())
        monitor.validate(sample(record_id='good'))
        monitor.validate(sample(record_id='bad', score=0.1, length=10, structure_score=0.0))

        report = monitor.generate_report()

        assert report.total_validated == 2
        assert report.passed_validation == 1
        assert report.overall_score == pytest.approx(0.5)


class TestAssessContent:

    def test_real_content(self):
        result = QualityMonitor().assess_content('ios-buttons', REAL_CONTENT)

        assert result.is_fallback is False
        assert result.confidence == result.score
        assert result.length == len(REAL_CONTENT)
        assert result.structure_score == pytest.approx(3 / 5)
        assert result.domain_terms_score > 0.5

    def test_placeholder_content_is_fallback(self):
        result = QualityMonitor().assess_content('x', "This page requires JavaScript to run.")
        assert result.is_fallback is True
        assert result.confidence == pytest.approx(0.1)

    def test_likely_fallback_halves_confidence(self):
        text = "Please visit the official documentation. " + REAL_CONTENT
        result = QualityMonitor().assess_content('x', text)
        assert result.is_fallback is False
        assert result.confidence == pytest.approx(result.score * 0.5)

    def test_forced_fallback_flag(self):
        result = QualityMonitor().assess_content('x', REAL_CONTENT, is_fallback=True)
        assert result.is_fallback is True

    def test_quality_score_bounds(self):
        assert calculate_quality_score("") == 0.0
        long_content = ("# Apple iOS macOS interface design guidelines\n" * 100) + "`code` ![img]"
        assert calculate_quality_score(long_content) == pytest.approx(1.0)


class TestReport:

    def test_empty_report(self):
        report = QualityMonitor().generate_report()
        assert report.sla_compliance is False
        assert report.low_priority == ["No retrievals recorded yet"]
        assert report.high_priority == []

    def test_sla_met(self):
        monitor = QualityMonitor(sla_target=0.95)
        for _ in range(20):
            monitor.record(sample(score=0.9))

        report = monitor.generate_report()

        assert report.sla_compliance is True
        assert report.high_priority == []
        assert "ACHIEVED" in report.format()

    def test_sla_missed_with_high_fallback(self):
        monitor = QualityMonitor(sla_target=0.95)
        for _ in range(9):
            monitor.record(sample(score=0.9))
        monitor.record(sample(score=0.0, is_fallback=True))

        report = monitor.generate_report()

        assert report.sla_compliance is False
        assert any("SLA NOT MET" in issue for issue in report.high_priority)
        assert any("High fallback usage" in issue for issue in report.high_priority)
        text = report.format()
        assert "NOT MET" in text
        assert "Success rate: 90.0%" in text

    def test_low_average_score(self):
        monitor = QualityMonitor()
        monitor.record(sample(score=0.3))
        report = monitor.generate_report()
        assert any("Low average quality score" in issue for issue in report.medium_priority)

    def test_to_dict(self):
        monitor = QualityMonitor()
        monitor.record(sample())
        data = monitor.generate_report().to_dict()
        assert data['statistics']['total'] == 1
        assert set(data['issues']) == {'high_priority', 'medium_priority', 'low_priority'}

    def test_from_config(self):
        config = CoreConfig.from_dict({'quality': {'capacity': 5, 'sla_target': 0.9}})
        monitor = QualityMonitor.from_config(config)
        assert monitor.capacity == 5
        assert monitor.sla_target == 0.9
