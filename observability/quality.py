"""Content quality monitoring over a rolling window of retrievals.

The monitor keeps the most recent quality samples in a bounded ring buffer and
derives SLA statistics from the buffer on demand. It never blocks retrieval:
callers record samples after the fact.
"""

import logging
import re
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Tuple

from config.core_config import CoreConfig, FallbackHeuristics, QualityThresholds
from pipelines.content_extractor import ContentClassification, classify_content
from .prometheus_metrics import record_quality_sample

logger = logging.getLogger(__name__)

DOMAIN_TERMS = ('apple', 'ios', 'macos', 'interface', 'design', 'guidelines')

_HEADING_RE = re.compile(r"^#+\s", re.MULTILINE)

# Number of the six checks that must pass for a sample to count as valid
MIN_PASSED_CHECKS = 4


@dataclass(frozen=True)
class QualitySample:
    """Quality measurement of one retrieval."""
    record_id: str
    score: float
    is_fallback: bool = False
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    confidence: Optional[float] = None
    length: int = 0
    structure_score: float = 0.0
    domain_terms_score: float = 0.0

    def __post_init__(self):
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Quality score must be within [0, 1], got {self.score}")
        if self.confidence is None:
            object.__setattr__(self, 'confidence', self.score)
        elif not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'record_id': self.record_id,
            'score': self.score,
            'is_fallback': self.is_fallback,
            'captured_at': self.captured_at.isoformat(),
            'confidence': self.confidence,
            'length': self.length,
            'structure_score': self.structure_score,
            'domain_terms_score': self.domain_terms_score,
        }


@dataclass
class QualityStatistics:
    """Aggregates over the current buffer. Rates are fractions in [0, 1]."""
    total: int = 0
    successful: int = 0
    fallback_count: int = 0
    success_rate: float = 0.0
    avg_score: float = 0.0
    avg_confidence: float = 0.0
    fallback_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'successful': self.successful,
            'fallback_count': self.fallback_count,
            'success_rate': self.success_rate,
            'avg_score': self.avg_score,
            'avg_confidence': self.avg_confidence,
            'fallback_rate': self.fallback_rate,
        }


@dataclass
class ValidationResult:
    """Outcome of the six-check validity vote for one sample."""
    record_id: str
    is_valid: bool
    passed_checks: int
    score: float
    confidence: float
    issues: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class QualityReport:
    """Point-in-time quality report with SLA compliance."""
    statistics: QualityStatistics
    sla_target: float
    sla_compliance: bool
    total_validated: int = 0
    passed_validation: int = 0
    failed_validation: int = 0
    overall_score: float = 0.0
    high_priority: List[str] = field(default_factory=list)
    medium_priority: List[str] = field(default_factory=list)
    low_priority: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'statistics': self.statistics.to_dict(),
            'sla_target': self.sla_target,
            'sla_compliance': self.sla_compliance,
            'total_validated': self.total_validated,
            'passed_validation': self.passed_validation,
            'failed_validation': self.failed_validation,
            'overall_score': self.overall_score,
            'issues': {
                'high_priority': list(self.high_priority),
                'medium_priority': list(self.medium_priority),
                'low_priority': list(self.low_priority),
            },
            'recommendations': list(self.recommendations),
            'generated_at': self.generated_at.isoformat(),
        }

    def format(self) -> str:
        """Render the report as plain text."""
        stats = self.statistics
        lines = [
            "Content Quality Report",
            "======================",
            "",
            f"SLA compliance: {'ACHIEVED' if self.sla_compliance else 'NOT MET'} "
            f"(target {self.sla_target:.0%})",
            f"Success rate: {stats.success_rate:.1%}",
            f"Average quality score: {stats.avg_score:.3f}",
            f"Average confidence: {stats.avg_confidence:.3f}",
            f"Total samples: {stats.total}",
            f"Fallback usage: {stats.fallback_count} ({stats.fallback_rate:.1%})",
            "",
            "Validation summary:",
            f"  - Total validated: {self.total_validated}",
            f"  - Passed: {self.passed_validation}",
            f"  - Failed: {self.failed_validation}",
            f"  - Overall validation score: {self.overall_score:.1%}",
        ]

        for title, issues in (("High priority issues", self.high_priority),
                              ("Medium priority issues", self.medium_priority),
                              ("Low priority issues", self.low_priority),
                              ("Recommendations", self.recommendations)):
            if issues:
                lines.append("")
                lines.append(f"{title}:")
                lines.extend(f"  - {issue}" for issue in issues)

        return "\n".join(lines) + "\n"


def calculate_quality_score(content: str) -> float:
    """Score content in [0, 1] from length, domain terms, headings and richness."""
    if not content:
        return 0.0

    lowered = content.lower()
    score = min(len(content) / 2000, 1.0) * 0.3

    found = sum(1 for term in DOMAIN_TERMS if term in lowered)
    score += found / len(DOMAIN_TERMS) * 0.3

    headings = len(_HEADING_RE.findall(content))
    score += min(headings / 5, 1.0) * 0.2

    if '`' in content:
        score += 0.1
    if '![' in content or '<img' in lowered:
        score += 0.1

    return min(score, 1.0)


class QualityMonitor:
    """Rolling-window quality statistics and SLA reporting."""

    def __init__(self,
                 capacity: int = 1000,
                 thresholds: Optional[QualityThresholds] = None,
                 sla_target: float = 0.95,
                 heuristics: Optional[FallbackHeuristics] = None):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.thresholds = thresholds or QualityThresholds()
        self.sla_target = sla_target
        self.heuristics = heuristics or FallbackHeuristics()

        self._samples: Deque[QualitySample] = deque(maxlen=capacity)
        self._validations: 'OrderedDict[str, ValidationResult]' = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: CoreConfig) -> 'QualityMonitor':
        return cls(
            capacity=config.quality_capacity,
            thresholds=config.quality_thresholds,
            sla_target=config.sla_target,
            heuristics=config.fallback_heuristics,
        )

    def record(self, sample: QualitySample) -> None:
        """Append a sample; the oldest one is evicted once the buffer is full."""
        with self._lock:
            self._samples.append(sample)
            stats = self._compute_statistics()

        if sample.is_fallback:
            logger.warning(f"Fallback content recorded for {sample.record_id}")
        record_quality_sample(sample.is_fallback, stats.success_rate)

    def samples(self) -> List[QualitySample]:
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()
            self._validations.clear()

    def statistics(self) -> QualityStatistics:
        """Compute statistics from the current buffer contents."""
        with self._lock:
            return self._compute_statistics()

    def _compute_statistics(self) -> QualityStatistics:
        total = len(self._samples)
        if total == 0:
            return QualityStatistics()

        fallback_count = sum(1 for s in self._samples if s.is_fallback)
        successful = total - fallback_count
        return QualityStatistics(
            total=total,
            successful=successful,
            fallback_count=fallback_count,
            success_rate=successful / total,
            avg_score=sum(s.score for s in self._samples) / total,
            avg_confidence=sum(s.confidence for s in self._samples) / total,
            fallback_rate=fallback_count / total,
        )

    def _checks(self, sample: QualitySample) -> List[Tuple[bool, str, str]]:
        t = self.thresholds
        return [
            (sample.score >= t.min_quality_score,
             f"Quality score too low: {sample.score:.3f} (min: {t.min_quality_score})",
             "Review content extraction selectors"),
            (sample.confidence >= t.min_confidence,
             f"Confidence too low: {sample.confidence:.3f} (min: {t.min_confidence})",
             "Improve extraction accuracy or review source content"),
            (sample.length >= t.min_content_length,
             f"Content too short: {sample.length} characters (min: {t.min_content_length})",
             "Verify complete content extraction or check source availability"),
            (sample.structure_score >= t.min_structure_score,
             f"Poor content structure: {sample.structure_score:.3f} (min: {t.min_structure_score})",
             "Review heading extraction and content organization"),
            (sample.domain_terms_score >= t.min_domain_terms_score,
             f"Insufficient guideline-specific content: {sample.domain_terms_score:.3f} "
             f"(min: {t.min_domain_terms_score})",
             "Verify extraction from the correct guideline pages"),
            (not sample.is_fallback,
             "Content appears to be fallback/placeholder content",
             "Check whether the upstream page needs JavaScript to render"),
        ]

    def is_high_quality(self, sample: QualitySample) -> bool:
        """Soft majority vote: valid iff at least four of the six checks pass."""
        passed = sum(1 for ok, _, _ in self._checks(sample) if ok)
        return passed >= MIN_PASSED_CHECKS

    def validate(self, sample: QualitySample) -> ValidationResult:
        """Run the validity vote and collect issues for the failed checks."""
        checks = self._checks(sample)
        passed = sum(1 for ok, _, _ in checks if ok)
        result = ValidationResult(
            record_id=sample.record_id,
            is_valid=passed >= MIN_PASSED_CHECKS,
            passed_checks=passed,
            score=passed / len(checks),
            confidence=sample.confidence,
            issues=[issue for ok, issue, _ in checks if not ok],
            recommendations=[rec for ok, _, rec in checks if not ok],
        )

        with self._lock:
            self._validations.pop(sample.record_id, None)
            self._validations[sample.record_id] = result
            while len(self._validations) > self.capacity:
                self._validations.popitem(last=False)

        return result

    def assess_content(self, record_id: str, content: str,
                       is_fallback: Optional[bool] = None) -> QualitySample:
        """Measure retrieved text and build a sample (not recorded).

        Args:
            record_id: Id of the record the content belongs to
            content: Extracted text
            is_fallback: Force the fallback flag; classified from the text when None

        Returns:
            The quality sample
        """
        content = content or ''
        classification = classify_content(content, self.heuristics)
        if is_fallback is None:
            is_fallback = classification is ContentClassification.FALLBACK

        score = calculate_quality_score(content)
        if is_fallback:
            confidence = 0.1
        elif classification is ContentClassification.LIKELY_FALLBACK:
            confidence = score * 0.5
        else:
            confidence = score

        lowered = content.lower()
        return QualitySample(
            record_id=record_id,
            score=score,
            is_fallback=is_fallback,
            confidence=confidence,
            length=len(content),
            structure_score=min(len(_HEADING_RE.findall(content)) / 5, 1.0),
            domain_terms_score=sum(1 for term in DOMAIN_TERMS if term in lowered) / len(DOMAIN_TERMS),
        )

    def generate_report(self) -> QualityReport:
        """Build a report with SLA compliance and prioritized issues."""
        with self._lock:
            stats = self._compute_statistics()
            validations = list(self._validations.values())

        passed = sum(1 for v in validations if v.is_valid)
        report = QualityReport(
            statistics=stats,
            sla_target=self.sla_target,
            sla_compliance=stats.total > 0 and stats.success_rate >= self.sla_target,
            total_validated=len(validations),
            passed_validation=passed,
            failed_validation=len(validations) - passed,
            overall_score=passed / len(validations) if validations else 0.0,
        )

        if stats.total == 0:
            report.low_priority.append("No retrievals recorded yet")
            return report

        if not report.sla_compliance:
            report.high_priority.append(
                f"SLA NOT MET: success rate is {stats.success_rate:.1%} (target: {self.sla_target:.0%})"
            )
            report.recommendations.append("Review fetcher configuration and upstream site changes")

        if stats.avg_score < 0.7:
            report.medium_priority.append(f"Low average quality score: {stats.avg_score:.3f}")
            report.recommendations.append("Optimize content extraction selectors")

        if stats.fallback_rate > self.thresholds.max_fallback_rate:
            report.high_priority.append(
                f"High fallback usage: {stats.fallback_rate:.1%} "
                f"(max: {self.thresholds.max_fallback_rate:.0%})"
            )
            report.recommendations.append("Investigate page loading and placeholder responses")

        return report
