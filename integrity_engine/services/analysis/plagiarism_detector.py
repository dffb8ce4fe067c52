"""
Segment-level plagiarism detection.

The document is cut into fixed-size word windows that keep their character
offsets. Each window is fingerprinted and looked up in the known-source index
through the resource governor. Segment similarity is the best match found.
"""
import logging
import time
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.constants import RULE_PLAGIARISM, SOURCE_PLAGIARISM_INDEX
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    ErrorCode,
    IssueType,
    PlagiarismDetectionResult,
    PlagiarismSegment,
    Severity,
    SourceMatch,
    ValidationIssue,
    ValidationResult,
    build_result_metadata,
    clamp_score,
)
from integrity_engine.services.analysis.content_normalizer import ContentNormalizer
from integrity_engine.services.analysis.document_utils import inconclusive_issue, locate_offset
from integrity_engine.services.analysis.similarity_calculator import SimilarityCalculator
from integrity_engine.services.analysis.source_index import Fingerprinter, KnownSourceIndex
from integrity_engine.services.governor import ExternalCallOutcome, OutcomeStatus, ResourceGovernor

logger = logging.getLogger(__name__)


class PlagiarismDetector:
    """Detects overlap between a document and known sources."""

    def __init__(
        self,
        index: KnownSourceIndex,
        governor: ResourceGovernor,
        fingerprinter: Optional[Fingerprinter] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.index = index
        self.governor = governor
        self.fingerprinter = fingerprinter or Fingerprinter(
            ContentNormalizer(), shingle_size=self.config.PLAGIARISM_SHINGLE_SIZE
        )
        self.normalizer = self.fingerprinter.normalizer
        self.segment_words = self.config.PLAGIARISM_SEGMENT_WORDS
        self.critical_similarity = self.config.PLAGIARISM_CRITICAL_SIMILARITY
        self.min_similarity = self.config.PLAGIARISM_MIN_SIMILARITY

    def segment_text(self, text: str) -> List[Tuple[PlagiarismSegment, List[str]]]:
        """
        Split text into word windows.

        Returns:
            (segment, normalized words) pairs; offsets point into the original text
        """
        segments: List[Tuple[PlagiarismSegment, List[str]]] = []
        # Pure punctuation tokens carry no words; windows count real words only
        words_with_tokens = [
            (word, token)
            for token in self.normalizer.iter_tokens(text)
            for word in (self.normalizer.normalize_word(token.text),)
            if word
        ]

        for i in range(0, len(words_with_tokens), self.segment_words):
            window = words_with_tokens[i:i + self.segment_words]
            start, end = window[0][1].start, window[-1][1].end
            segments.append((
                PlagiarismSegment(text=text[start:end], start_index=start, end_index=end, word_count=len(window)),
                [word for word, _ in window],
            ))
        return segments

    async def detect(self, text: str, context: ValidationContext) -> PlagiarismDetectionResult:
        """Analyze text against the known-source index."""
        result, _ = await self._analyze(text, context)
        return result

    async def _analyze(
        self, text: str, context: ValidationContext
    ) -> Tuple[PlagiarismDetectionResult, List[ExternalCallOutcome]]:
        pairs = self.segment_text(text)
        if not pairs:
            empty = PlagiarismDetectionResult(segments=(), overall_similarity=0.0, source_matches=(), originality_score=100.0)
            return empty, []

        lookup_enabled = context.external_sources.plagiarism_db
        index_version = getattr(self.index, "version", 0)
        analyzed: List[PlagiarismSegment] = []
        failed_outcomes: List[ExternalCallOutcome] = []

        for segment, words in pairs:
            if not lookup_enabled:
                analyzed.append(replace(segment, checked=False))
                continue

            fingerprint = self.fingerprinter.fingerprint_words(words)
            outcome = await self.governor.call_external(
                SOURCE_PLAGIARISM_INDEX,
                lambda fp=fingerprint: self.index.lookup(fp),
                cache_key=f"plagiarism:{index_version}:{fingerprint.digest}",
            )
            if not outcome.ok:
                failed_outcomes.append(outcome)
                analyzed.append(replace(segment, checked=False))
                continue

            matches = tuple(m for m in (outcome.value or ()) if m.similarity >= self.min_similarity)
            best = max((m.similarity for m in matches), default=0.0)
            analyzed.append(replace(segment, similarity=best, matches=matches))

        return self._summarize(analyzed), failed_outcomes

    def _summarize(self, segments: List[PlagiarismSegment]) -> PlagiarismDetectionResult:
        checked = [s for s in segments if s.checked]
        matched = [s for s in checked if s.matches]

        overall_similarity = (len(matched) / len(checked) * 100.0) if checked else 0.0
        if checked:
            mean_similarity = SimilarityCalculator.weighted_mean(
                (s.similarity for s in checked), (s.word_count for s in checked)
            )
            originality = clamp_score(100.0 - mean_similarity)
        else:
            originality = 100.0

        best_by_source: Dict[str, SourceMatch] = {}
        for segment in matched:
            for match in segment.matches:
                current = best_by_source.get(match.source_id)
                if current is None or match.similarity > current.similarity:
                    best_by_source[match.source_id] = match

        return PlagiarismDetectionResult(
            segments=tuple(segments),
            overall_similarity=overall_similarity,
            source_matches=tuple(sorted(best_by_source.values(), key=lambda m: (-m.similarity, m.source_id))),
            originality_score=originality,
            unchecked_segments=len(segments) - len(checked),
        )

    def build_issues(self, text: str, result: PlagiarismDetectionResult) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for segment in result.segments:
            if not segment.matches:
                continue
            critical = segment.similarity > self.critical_similarity
            issues.append(ValidationIssue(
                id=f"plagiarism_{segment.start_index}_{segment.end_index}",
                type=IssueType.PLAGIARISM,
                severity=Severity.CRITICAL if critical else Severity.MAJOR,
                code=ErrorCode.PLAGIARISM_MATCH,
                description=f"Potential plagiarism detected ({segment.similarity:.1f}% similarity)",
                location=locate_offset(text, segment.start_index, segment.end_index),
                evidence={
                    "similarity": round(segment.similarity, 2),
                    "excerpt": segment.text[:200],
                    "sources": [m.to_dict() for m in segment.matches],
                },
                suggested_fix="Rewrite in your own words or quote and cite the source",
                auto_fixable=False,
            ))
        return issues

    async def evaluate(self, text: str, context: ValidationContext) -> Tuple[ValidationResult, PlagiarismDetectionResult]:
        """Run detection and express it as a ValidationResult."""
        start = time.perf_counter()
        result, outcomes = await self._analyze(text, context)
        issues = self.build_issues(text, result)

        by_status: Dict[OutcomeStatus, List[ExternalCallOutcome]] = {}
        for outcome in outcomes:
            by_status.setdefault(outcome.status, []).append(outcome)
        for status, group in sorted(by_status.items(), key=lambda item: item[0].value):
            issues.append(inconclusive_issue(
                f"plagiarism_lookup_{status.value}", group[0], IssueType.PLAGIARISM,
                f"{len(group)} segment(s)", occurrences=len(group),
            ))

        total = len(result.segments)
        confidence = ((total - result.unchecked_segments) / total * 100.0) if total else 100.0
        threshold = context.requirements.originality_threshold
        suggestions = []
        if result.originality_score < threshold:
            suggestions = ['Rewrite flagged content in your own words', 'Add proper citations for referenced material']

        sources = [SOURCE_PLAGIARISM_INDEX] if context.external_sources.plagiarism_db else []
        validation = ValidationResult(
            rule_id=RULE_PLAGIARISM,
            passed=result.originality_score >= threshold,
            score=result.originality_score,
            confidence=confidence,
            issues=tuple(issues),
            suggestions=tuple(suggestions),
            metadata=build_result_metadata(
                (time.perf_counter() - start) * 1000,
                sources,
                overall_similarity=round(result.overall_similarity, 2),
                segments=total,
                unchecked_segments=result.unchecked_segments,
            ),
        )
        logger.debug(
            f"Plagiarism analysis: {total} segments, originality={result.originality_score:.1f}, "
            f"issues={len(issues)}"
        )
        return validation, result

