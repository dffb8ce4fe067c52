"""
Analysis package for document integrity checks.

- content_normalizer.py: Text normalization and tokenization
- similarity_calculator.py: Similarity scoring algorithms
- source_index.py: Fingerprinting and the in-memory known-source index
- plagiarism_detector.py: Segment-level plagiarism detection
- citation_validator.py: Citation completeness, DOI, cross-reference and fabrication checks
- data_consistency_checker.py: Schema-driven data field checks
- methodology_checker.py: Methodology coverage analysis
- format_checker.py: Title and abstract formatting rules
- quick_scanner.py: Cheap synchronous integrity estimate
- document_comparator.py: Pairwise document comparison
"""
from .content_normalizer import ContentNormalizer
from .similarity_calculator import SimilarityCalculator
from .source_index import Fingerprinter, InMemorySourceIndex, KnownSource, KnownSourceIndex
from .plagiarism_detector import PlagiarismDetector
from .citation_validator import BibliographicVerifier, CitationValidator, DoiResolver
from .data_consistency_checker import DEFAULT_DATA_CHECKS, DataConsistencyChecker, parse_checks
from .methodology_checker import MethodologyChecker
from .format_checker import FormatChecker
from .quick_scanner import QuickScanner
from .document_comparator import COMPARISON_TYPES, DocumentComparator

__all__ = [
    'BibliographicVerifier',
    'COMPARISON_TYPES',
    'CitationValidator',
    'ContentNormalizer',
    'DEFAULT_DATA_CHECKS',
    'DataConsistencyChecker',
    'DocumentComparator',
    'DoiResolver',
    'Fingerprinter',
    'FormatChecker',
    'InMemorySourceIndex',
    'KnownSource',
    'KnownSourceIndex',
    'MethodologyChecker',
    'PlagiarismDetector',
    'QuickScanner',
    'SimilarityCalculator',
    'parse_checks',
]
