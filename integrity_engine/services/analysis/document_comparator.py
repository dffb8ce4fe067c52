"""
Pairwise document comparison.

Comparison types:
- full: Jaccard similarity of normalized word sets
- lexical: character-level Levenshtein ratio of normalized text
- frequency: cosine similarity of word frequencies
- structural: Levenshtein ratio over line-kind signatures (headings, list
  items, table rows, paragraphs), which ignores the wording itself
"""
import logging
import re
from typing import Optional

from integrity_engine.models.integrity_models import ComparisonResult
from integrity_engine.services.analysis.similarity_calculator import SimilarityCalculator

logger = logging.getLogger(__name__)

COMPARISON_TYPES = ("full", "lexical", "frequency", "structural")

_HEADING = re.compile(r'^(#{1,6}\s|\d+(\.\d+)*\.?\s+[A-Z])')
_LIST_ITEM = re.compile(r'^([-*+•]|\d+[.)])\s+')


def structure_signature(text: str) -> str:
    """One letter per non-empty line: H heading, L list item, T table row, P paragraph."""
    kinds = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if _HEADING.match(stripped) or (stripped.isupper() and len(stripped.split()) <= 8):
            kinds.append("H")
        elif stripped.startswith("|"):
            kinds.append("T")
        elif _LIST_ITEM.match(stripped):
            kinds.append("L")
        else:
            kinds.append("P")
    return "".join(kinds)


class DocumentComparator:
    def __init__(self, calculator: Optional[SimilarityCalculator] = None):
        self.calculator = calculator or SimilarityCalculator()

    def compare(self, document_a: str, document_b: str, comparison_type: str = "full") -> ComparisonResult:
        """
        Compare two documents.

        Returns:
            ComparisonResult with similarity on a 0-100 scale

        Raises:
            ValueError: Unknown comparison type
        """
        comparison_type = (comparison_type or "full").lower()
        details = {
            "length_a": len(document_a),
            "length_b": len(document_b),
        }

        if comparison_type == "full":
            ratio = self.calculator.word_jaccard(document_a, document_b)
            words_a = set(self.calculator.normalizer.normalized_words(document_a))
            words_b = set(self.calculator.normalizer.normalized_words(document_b))
            details.update(shared_words=len(words_a & words_b), unique_words=len(words_a | words_b))
        elif comparison_type == "lexical":
            ratio = self.calculator.levenshtein_ratio(document_a, document_b)
        elif comparison_type == "frequency":
            ratio = self.calculator.word_frequency_cosine(document_a, document_b)
        elif comparison_type == "structural":
            signature_a = structure_signature(document_a)
            signature_b = structure_signature(document_b)
            ratio = SimilarityCalculator.sequence_ratio(signature_a, signature_b)
            details.update(structure_a=signature_a[:200], structure_b=signature_b[:200])
        else:
            raise ValueError(
                f"Unknown comparison type '{comparison_type}'. Use one of: {', '.join(COMPARISON_TYPES)}"
            )

        logger.debug(f"Compared documents ({comparison_type}): {ratio:.3f}")
        return ComparisonResult(similarity=ratio * 100.0, comparison_type=comparison_type, details=details)
