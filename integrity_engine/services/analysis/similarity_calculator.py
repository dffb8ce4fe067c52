"""
Similarity calculation for document comparison and plagiarism scoring.

Provides multiple similarity algorithms:
- Jaccard similarity on word sets
- Containment of one shingle set in another
- Cosine similarity on word frequency distributions
- Levenshtein distance (character-level edit distance)
"""
import math
import logging
from typing import Dict, Iterable, List, Set
from collections import Counter
import Levenshtein

from integrity_engine.services.analysis.content_normalizer import ContentNormalizer

logger = logging.getLogger(__name__)


class SimilarityCalculator:
    """Calculate similarity between two text contents. All scores are in [0.0, 1.0]."""

    def __init__(self, normalizer: ContentNormalizer = None):
        """
        Args:
            normalizer: ContentNormalizer instance for text preprocessing
        """
        self.normalizer = normalizer or ContentNormalizer()

    @staticmethod
    def jaccard(set1: Set, set2: Set) -> float:
        """|A ∩ B| / |A ∪ B|, with two empty sets counted as identical."""
        if not set1 and not set2:
            return 1.0
        union = len(set1 | set2)
        return len(set1 & set2) / union if union else 0.0

    @staticmethod
    def containment(subset: Set, superset: Set) -> float:
        """Share of `subset` that also appears in `superset`."""
        if not subset:
            return 0.0
        return len(subset & superset) / len(subset)

    def word_jaccard(self, content1: str, content2: str) -> float:
        """Jaccard similarity on normalized word sets."""
        words1 = set(self.normalizer.normalized_words(content1))
        words2 = set(self.normalizer.normalized_words(content2))
        return self.jaccard(words1, words2)

    @staticmethod
    def _cosine_similarity(freq1: Dict[str, int], freq2: Dict[str, int]) -> float:
        """
        Calculate cosine similarity between two frequency distributions.

        Cosine similarity measures the angle between two vectors. It is robust
        to different magnitudes and focuses on distribution shape.
        """
        if not freq1 and not freq2:
            return 1.0  # Both empty = identical

        if not freq1 or not freq2:
            return 0.0  # One empty = completely different

        keys = set(freq1) | set(freq2)
        dot_product = sum(freq1.get(k, 0) * freq2.get(k, 0) for k in keys)
        magnitude1 = math.sqrt(sum(v * v for v in freq1.values()))
        magnitude2 = math.sqrt(sum(v * v for v in freq2.values()))

        if magnitude1 == 0 or magnitude2 == 0:
            return 0.0

        return max(0.0, min(1.0, dot_product / (magnitude1 * magnitude2)))

    def word_frequency_cosine(self, content1: str, content2: str) -> float:
        """Cosine similarity of word frequency distributions."""
        freq1 = Counter(self.normalizer.normalized_words(content1))
        freq2 = Counter(self.normalizer.normalized_words(content2))
        return self._cosine_similarity(freq1, freq2)

    def levenshtein_ratio(self, content1: str, content2: str) -> float:
        """
        Calculate similarity using Levenshtein distance (character-level).
        Only alphanumeric characters are considered - formatting, punctuation,
        and whitespace differences are ignored.

        Returns:
            Similarity score between 0.0 and 1.0 (1.0 = identical)
        """
        normalized1 = self.normalizer.normalize_for_comparison(content1 or "")
        normalized2 = self.normalizer.normalize_for_comparison(content2 or "")
        return self.sequence_ratio(normalized1, normalized2)

    @staticmethod
    def sequence_ratio(seq1: str, seq2: str) -> float:
        """1 - edit_distance / max_length on already-normalized sequences."""
        if not seq1 and not seq2:
            return 1.0
        if not seq1 or not seq2:
            return 0.0

        distance = Levenshtein.distance(seq1, seq2)
        max_length = max(len(seq1), len(seq2))
        similarity = 1.0 - (distance / max_length)
        logger.debug(f"Levenshtein: edit distance {distance} over max length {max_length}")
        return max(0.0, min(1.0, similarity))

    @staticmethod
    def weighted_mean(values: Iterable[float], weights: Iterable[float]) -> float:
        """Weighted arithmetic mean; 0.0 when total weight is zero."""
        pairs: List[tuple] = list(zip(values, weights))
        total_weight = sum(w for _, w in pairs)
        if total_weight <= 0:
            return 0.0
        return sum(v * w for v, w in pairs) / total_weight
