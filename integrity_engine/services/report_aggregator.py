"""
Report aggregation for integrity checks.

Combines the results of every rule that ran for a check into one
IntegrityReport: weighted overall score, per-category scores, severity
counts and recommendations. Aggregation does not depend on the order in
which results arrive.
"""
import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional, Sequence

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.models.integrity_models import (
    IntegrityReport,
    RuleCategory,
    Severity,
    ValidationResult,
    clamp_score,
)
from integrity_engine.services.rules.base_rule import RuleDescriptor

logger = logging.getLogger(__name__)

# (category, threshold, recommendation) applied when the category score is below the threshold
CATEGORY_RECOMMENDATIONS = (
    (RuleCategory.PLAGIARISM, 80.0, 'Review flagged content and add proper attribution'),
    (RuleCategory.CITATION, 90.0, 'Verify all citations and ensure proper formatting consistency'),
    (RuleCategory.DATA, 80.0, 'Validate data sources and verify data integrity'),
    (RuleCategory.METHODOLOGY, 80.0, 'Strengthen the methodology description'),
    (RuleCategory.FORMAT, 90.0, 'Review document formatting guidelines'),
)


class ReportAggregator:
    """Builds IntegrityReports from rule results."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.pass_threshold = self.config.INTEGRITY_PASS_THRESHOLD
        self.excellent_threshold = self.config.EXCELLENT_SCORE_THRESHOLD

    def aggregate(
        self,
        document_id: str,
        results: Sequence[ValidationResult],
        rules: Mapping[str, RuleDescriptor],
        processing_time_ms: float = 0.0,
    ) -> IntegrityReport:
        """
        Build the report for one check.

        Args:
            document_id: Document the results belong to
            results: One result per rule that ran
            rules: Descriptors of the rules that ran, keyed by rule id (weights
                and categories as they were when the run started)
            processing_time_ms: Wall time of the whole run

        Returns:
            IntegrityReport with scores clamped to [0, 100]
        """
        category_scores = self.category_scores(results, rules)
        overall = self.overall_score(results, rules)

        counts = Counter(issue.severity for result in results for issue in result.issues)
        total_issues = sum(counts.values())
        critical = counts.get(Severity.CRITICAL, 0)

        report = IntegrityReport(
            document_id=document_id,
            overall_score=overall,
            category_scores=category_scores,
            total_issues=total_issues,
            critical_issues=critical,
            major_issues=counts.get(Severity.MAJOR, 0),
            minor_issues=counts.get(Severity.MINOR, 0),
            warning_issues=counts.get(Severity.WARNING, 0),
            passed=overall >= self.pass_threshold and critical == 0,
            validation_results=tuple(sorted(results, key=lambda r: r.rule_id)),
            recommendations=tuple(self.recommendations(overall, category_scores, counts, total_issues)),
            processing_time_ms=processing_time_ms,
        )
        logger.info(
            f"Aggregated report for {document_id}: overall={overall:.1f}, "
            f"issues={total_issues} (critical={critical}), passed={report.passed}"
        )
        return report

    @staticmethod
    def category_scores(
        results: Sequence[ValidationResult], rules: Mapping[str, RuleDescriptor]
    ) -> Dict[str, float]:
        """Mean score per category; a category no rule ran for scores 100."""
        grouped: Dict[RuleCategory, List[float]] = {}
        for result in results:
            rule = rules.get(result.rule_id)
            if rule is not None:
                grouped.setdefault(rule.category, []).append(result.score)

        scores: Dict[str, float] = {}
        for category in RuleCategory:
            values = grouped.get(category)
            scores[category.value] = clamp_score(sum(values) / len(values)) if values else 100.0
        return scores

    @staticmethod
    def overall_score(results: Sequence[ValidationResult], rules: Mapping[str, RuleDescriptor]) -> float:
        """Weighted mean over the rules that ran; 100 when no weight applies."""
        weighted = 0.0
        total_weight = 0.0
        for result in results:
            rule = rules.get(result.rule_id)
            if rule is None:
                logger.warning(f"Result for unknown rule '{result.rule_id}' ignored in overall score")
                continue
            weighted += result.score * rule.weight
            total_weight += rule.weight
        return clamp_score(weighted / total_weight) if total_weight > 0 else 100.0

    def recommendations(
        self,
        overall: float,
        category_scores: Mapping[str, float],
        counts: Mapping[Severity, int],
        total_issues: int,
    ) -> List[str]:
        recommendations: List[str] = []
        for category, threshold, message in CATEGORY_RECOMMENDATIONS:
            if category_scores.get(category.value, 100.0) < threshold:
                recommendations.append(message)

        if counts.get(Severity.CRITICAL, 0) > 0:
            recommendations.append('Address all critical issues before publication')
        if counts.get(Severity.MAJOR, 0) > 0:
            recommendations.append('Review and resolve major issues for academic standards')
        if overall < self.pass_threshold:
            recommendations.append('Consider comprehensive revision to improve overall integrity')

        if overall >= self.excellent_threshold and total_issues == 0:
            recommendations.append('Excellent integrity. Document meets academic standards')
        return recommendations
