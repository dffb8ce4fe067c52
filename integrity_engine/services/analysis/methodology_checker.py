"""
Methodology coverage analysis.

Looks for the elements a methods section is expected to describe (design,
sample, data collection, analysis, limitations, ethics) using keyword groups.
Higher academic levels are expected to cover more of them.
"""
import logging
import re
import time
from typing import Dict, List, Optional, Tuple

from integrity_engine.core.config import Settings, settings as default_settings
from integrity_engine.core.constants import RULE_METHODOLOGY
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import (
    ErrorCode,
    IssueLocation,
    IssueType,
    ScoringPenalties,
    Severity,
    ValidationIssue,
    ValidationResult,
    build_result_metadata,
)

logger = logging.getLogger(__name__)

METHODOLOGY_ELEMENTS: Dict[str, Tuple[str, ...]] = {
    "design": (
        "research design", "experimental", "quasi-experimental", "case study", "cross-sectional",
        "longitudinal", "randomized", "mixed methods", "ethnograph", "grounded theory",
    ),
    "sample": ("participants", "sample", "respondents", "subjects", "recruited", "sampling"),
    "data_collection": (
        "survey", "interview", "observation", "questionnaire", "focus group",
        "experiment", "measurement", "recording", "data collection",
    ),
    "analysis": (
        "analysis", "regression", "anova", "t-test", "correlation", "thematic",
        "coding", "statistical", "model",
    ),
    "limitations": ("limitation", "selection bias", "confounding", "measurement error", "attrition", "generalizab"),
    "ethics": (
        "informed consent", "ethics approval", "irb", "ethics committee",
        "confidentiality", "anonymity", "debriefing",
    ),
}

# Elements each academic level is expected to address
LEVEL_REQUIREMENTS: Dict[str, Tuple[str, ...]] = {
    "undergraduate": ("design", "data_collection", "analysis"),
    "graduate": ("design", "sample", "data_collection", "analysis", "limitations"),
    "doctoral": ("design", "sample", "data_collection", "analysis", "limitations", "ethics"),
    "professional": ("design", "sample", "data_collection", "analysis", "limitations", "ethics"),
}

PARADIGM_ANALYSIS_TERMS: Dict[str, Tuple[str, ...]] = {
    "quantitative": ("p <", "p<", "confidence interval", "effect size", "significance"),
    "qualitative": ("theme", "saturation", "interpretive", "narrative"),
    "mixed": ("triangulation", "integration", "convergent"),
}

_SAMPLE_SIZE = re.compile(r"\bn\s*=\s*(\d+)", re.IGNORECASE)
_WORD = re.compile(r"\S+")


class MethodologyChecker:
    """Scores how completely a document describes its methodology."""

    def __init__(self, penalties: Optional[ScoringPenalties] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.penalties = penalties or self.config.scoring_penalties
        self.min_words = self.config.METHODOLOGY_MIN_WORDS

    def find_elements(self, text: str, paradigm: Optional[str] = None) -> Dict[str, List[str]]:
        """Keywords found per methodology element."""
        lowered = text.lower()
        found: Dict[str, List[str]] = {}
        for element, keywords in METHODOLOGY_ELEMENTS.items():
            terms = list(keywords)
            if element == "analysis" and paradigm:
                terms.extend(PARADIGM_ANALYSIS_TERMS.get(paradigm.lower(), ()))
            found[element] = [term for term in terms if term in lowered]
        return found

    def check(self, text: str, context: ValidationContext) -> ValidationResult:
        start = time.perf_counter()
        word_count = len(_WORD.findall(text))

        # Short texts (abstracts, notes) have no methods section to assess
        if word_count < self.min_words:
            return ValidationResult.passing(RULE_METHODOLOGY, word_count=word_count, assessed=False)

        found = self.find_elements(text, context.paradigm)
        required = LEVEL_REQUIREMENTS.get(context.academic_level, LEVEL_REQUIREMENTS["graduate"])
        missing = [element for element in required if not found[element]]

        issues: List[ValidationIssue] = []
        score = 100.0
        report_gaps = context.academic_level != "undergraduate"
        for element in missing:
            score -= self.penalties.methodology_gap
            if report_gaps:
                label = element.replace("_", " ")
                issues.append(ValidationIssue(
                    id=f"methodology_gap_{element}",
                    type=IssueType.LOGICAL_ERROR,
                    severity=Severity.WARNING,
                    code=ErrorCode.METHODOLOGY_GAP,
                    description=f"Methodology does not describe the {label}",
                    location=IssueLocation(section="methodology"),
                    evidence={"element": element, "expected_keywords": list(METHODOLOGY_ELEMENTS[element][:5])},
                    suggested_fix=f"Describe the {label} in the methods section",
                    auto_fixable=False,
                ))

        sample_match = _SAMPLE_SIZE.search(text)
        covered = len(required) - len(missing)
        suggestions = []
        if missing:
            suggestions.append('Strengthen the methodology section: ' + ', '.join(m.replace("_", " ") for m in missing))

        logger.debug(f"Methodology coverage {covered}/{len(required)} for level {context.academic_level}")
        return ValidationResult(
            rule_id=RULE_METHODOLOGY,
            passed=max(0.0, score) >= context.requirements.methodology_rigor,
            score=score,
            # Keyword coverage is a heuristic signal
            confidence=70.0,
            issues=tuple(issues),
            suggestions=tuple(suggestions),
            metadata=build_result_metadata(
                (time.perf_counter() - start) * 1000,
                ["internal_methodology_rules"],
                assessed=True,
                word_count=word_count,
                elements_found={k: v for k, v in found.items() if v},
                elements_missing=missing,
                sample_size=int(sample_match.group(1)) if sample_match else None,
            ),
        )
