"""
Quick integrity scan.

Cheap synchronous detectors that estimate integrity without touching the
known-source index or any external service:
1. Plagiarism phrases
2. Citation density
3. Fabrication keywords
4. Text quality (repeated characters, garbled text)

Each detector scores the content out of 100; the quick score is their mean.
"""
import re
import logging
from typing import List, Optional, Tuple

from integrity_engine.core.constants import QUICK_RISK_HIGH, QUICK_RISK_LOW, QUICK_RISK_MEDIUM
from integrity_engine.models.integrity_models import QuickIntegrityScore, RiskLevel

logger = logging.getLogger(__name__)

DetectorResult = Tuple[float, List[str]]


class QuickScanner:
    """Fast heuristic integrity estimate for raw text."""

    PLAGIARISM_PHRASES = ('copy paste', 'exact duplicate', 'word for word')
    FABRICATION_KEYWORDS = ('made up', 'fictional', 'hypothetical')

    # Parenthetical author-year citations and numbered references
    CITATION_PATTERN = re.compile(r'\([^)]*\d{4}[^)]*\)|\[\d+(?:[,–-]\s*\d+)*\]')
    REPEATED_CHAR_PATTERN = re.compile(r'(.)\1{9,}')

    # A detector below this score reports its issue
    ISSUE_THRESHOLD = 80.0

    def scan(self, content: Optional[str]) -> QuickIntegrityScore:
        """
        Score content and classify the risk.

        Args:
            content: Raw document text

        Returns:
            QuickIntegrityScore with score in [0, 100]
        """
        if not content or not content.strip():
            return QuickIntegrityScore(score=0.0, risk_level=RiskLevel.CRITICAL, quick_issues=('Document is empty',))

        results = [
            self._check_plagiarism_phrases(content),
            self._check_citation_density(content),
            self._check_fabrication_keywords(content),
            self._check_text_quality(content),
        ]
        score = sum(score for score, _ in results) / len(results)
        issues = tuple(issue for _, found in results for issue in found)

        logger.debug(f"Quick scan score {score:.1f} with {len(issues)} issue(s)")
        return QuickIntegrityScore(score=score, risk_level=self.risk_level(score), quick_issues=issues)

    @staticmethod
    def risk_level(score: float) -> RiskLevel:
        if score >= QUICK_RISK_LOW:
            return RiskLevel.LOW
        if score >= QUICK_RISK_MEDIUM:
            return RiskLevel.MEDIUM
        if score >= QUICK_RISK_HIGH:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL

    def _issues(self, score: float, message: str) -> DetectorResult:
        return score, [message] if score < self.ISSUE_THRESHOLD else []

    def _check_plagiarism_phrases(self, content: str) -> DetectorResult:
        lowered = content.lower()
        found = any(phrase in lowered for phrase in self.PLAGIARISM_PHRASES)
        return self._issues(30.0 if found else 95.0, 'Potential plagiarism detected')

    def _check_citation_density(self, content: str) -> DetectorResult:
        """Expect at least one citation per ten sentences."""
        citations = self.CITATION_PATTERN.findall(content)
        sentences = len(content.split('.'))
        proper = len(citations) > sentences * 0.1
        return self._issues(90.0 if proper else 60.0, 'Citation issues detected')

    def _check_fabrication_keywords(self, content: str) -> DetectorResult:
        lowered = content.lower()
        found = any(keyword in lowered for keyword in self.FABRICATION_KEYWORDS)
        return self._issues(40.0 if found else 95.0, 'Potential fabrication detected')

    def _check_text_quality(self, content: str) -> DetectorResult:
        """Repeated characters or a high share of unusual symbols."""
        repeated = [
            m for m in self.REPEATED_CHAR_PATTERN.findall(content)
            if m not in (' ', '-', '_', '=', '*', '.', '\n')
        ]

        alphanumeric = sum(1 for c in content if c.isalnum())
        common_chars = set(' \n\t.,;:!?-()[]{}"\'/\\|%&+')
        special = sum(1 for c in content if not c.isalnum() and c not in common_chars)
        garbled = alphanumeric == 0 or special / alphanumeric > 0.2

        if repeated or garbled:
            logger.debug(f"Text quality problems: repeated={len(repeated)}, garbled={garbled}")
            return self._issues(60.0, 'Garbled or machine-generated text detected')
        return 100.0, []
