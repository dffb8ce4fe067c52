"""
Unit tests for the methodology, format, quick-scan and comparison analyzers.
"""
import unittest

from integrity_engine.core.config import Settings
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import ErrorCode, RiskLevel
from integrity_engine.services.analysis import DocumentComparator, FormatChecker, MethodologyChecker, QuickScanner
from integrity_engine.services.analysis.document_comparator import structure_signature


FILLER = " ".join(["word"] * 100)

FULL_METHODS = (
    "We used a longitudinal research design. Participants (n = 120) were recruited from two schools. "
    "Data were gathered by survey. Statistical analysis used regression. "
    "A limitation is attrition. Informed consent was obtained. " + FILLER
)


class TestMethodologyChecker(unittest.TestCase):
    """Test cases for MethodologyChecker."""

    def setUp(self):
        self.checker = MethodologyChecker(config=Settings())

    def test_short_text_is_not_assessed(self):
        result = self.checker.check("Too short to judge.", ValidationContext(document_id="d"))
        self.assertTrue(result.passed)
        self.assertFalse(result.metadata["assessed"])

    def test_complete_methods_section(self):
        context = ValidationContext(document_id="d", academic_level="doctoral")
        result = self.checker.check(FULL_METHODS, context)

        self.assertEqual(result.score, 100.0)
        self.assertEqual(result.issues, ())
        self.assertEqual(result.metadata["sample_size"], 120)
        self.assertEqual(result.confidence, 70.0)

    def test_graduate_gaps_are_warnings(self):
        context = ValidationContext(document_id="d", academic_level="graduate")
        result = self.checker.check("We ran a survey. " + FILLER, context)

        self.assertEqual(
            sorted(i.id for i in result.issues),
            ["methodology_gap_analysis", "methodology_gap_design", "methodology_gap_limitations", "methodology_gap_sample"],
        )
        self.assertTrue(all(i.code == ErrorCode.METHODOLOGY_GAP for i in result.issues))
        self.assertEqual(result.score, 60.0)
        self.assertFalse(result.passed)

    def test_undergraduate_gaps_cost_points_without_warnings(self):
        context = ValidationContext(document_id="d", academic_level="undergraduate")
        result = self.checker.check(FILLER, context)

        self.assertEqual(result.issues, ())
        self.assertEqual(result.score, 70.0)
        self.assertTrue(result.passed)

    def test_paradigm_terms_count_as_analysis(self):
        found = self.checker.find_elements("Themes reached saturation", "qualitative")
        self.assertIn("saturation", found["analysis"])


class TestFormatChecker(unittest.TestCase):
    """Test cases for FormatChecker."""

    def setUp(self):
        self.checker = FormatChecker(config=Settings(MAX_TITLE_LENGTH=200, MAX_ABSTRACT_WORDS=300))

    def test_no_fields_passes(self):
        result = self.checker.check({})
        self.assertTrue(result.passed)
        self.assertEqual(result.score, 100.0)

    def test_long_title_and_abstract(self):
        result = self.checker.check({"title": "T" * 201, "abstract": " ".join(["w"] * 301)})

        self.assertEqual([i.id for i in result.issues], ["format_title_length", "format_abstract_length"])
        self.assertEqual(result.score, 90.0)
        self.assertTrue(result.passed)

    def test_limits_are_inclusive(self):
        result = self.checker.check({"title": "T" * 200, "abstract": " ".join(["w"] * 300)})
        self.assertEqual(result.issues, ())


class TestQuickScanner(unittest.TestCase):
    """Test cases for QuickScanner."""

    def setUp(self):
        self.scanner = QuickScanner()

    def test_empty_document(self):
        score = self.scanner.scan("   ")
        self.assertEqual(score.score, 0.0)
        self.assertEqual(score.risk_level, RiskLevel.CRITICAL)
        self.assertEqual(score.quick_issues, ("Document is empty",))

    def test_clean_cited_text_is_low_risk(self):
        score = self.scanner.scan("Prior work (Smith, 2020) shows effects. Replication [1] confirmed it.")
        self.assertEqual(score.score, 95.0)
        self.assertEqual(score.risk_level, RiskLevel.LOW)
        self.assertEqual(score.quick_issues, ())

    def test_red_flags(self):
        score = self.scanner.scan("This was copied word for word and the data were made up")

        self.assertEqual(score.score, 57.5)
        self.assertEqual(score.risk_level, RiskLevel.HIGH)
        self.assertEqual(
            score.quick_issues,
            ("Potential plagiarism detected", "Citation issues detected", "Potential fabrication detected"),
        )

    def test_repeated_characters(self):
        score = self.scanner.scan("Results (Lee, 2019) were aaaaaaaaaaaaaaa.")
        self.assertIn("Garbled or machine-generated text detected", score.quick_issues)

    def test_risk_bands(self):
        self.assertEqual(QuickScanner.risk_level(90.0), RiskLevel.LOW)
        self.assertEqual(QuickScanner.risk_level(89.9), RiskLevel.MEDIUM)
        self.assertEqual(QuickScanner.risk_level(70.0), RiskLevel.MEDIUM)
        self.assertEqual(QuickScanner.risk_level(50.0), RiskLevel.HIGH)
        self.assertEqual(QuickScanner.risk_level(49.9), RiskLevel.CRITICAL)


class TestDocumentComparator(unittest.TestCase):
    """Test cases for DocumentComparator."""

    def setUp(self):
        self.comparator = DocumentComparator()

    def test_identical_documents(self):
        result = self.comparator.compare("The cat sat.", "The cat sat.", "full")
        self.assertEqual(result.similarity, 100.0)
        self.assertEqual(result.details["shared_words"], 3)

    def test_disjoint_documents(self):
        self.assertEqual(self.comparator.compare("alpha beta", "gamma delta").similarity, 0.0)

    def test_lexical_ignores_punctuation_and_case(self):
        self.assertEqual(self.comparator.compare("Hello, World!", "hello world", "lexical").similarity, 100.0)

    def test_frequency(self):
        result = self.comparator.compare("a a b", "a a b", "frequency")
        self.assertAlmostEqual(result.similarity, 100.0)

    def test_structural_ignores_wording(self):
        a = "# Intro\nSome text here\n- item one"
        b = "# Background\nCompletely different prose\n- another item"
        self.assertEqual(structure_signature(a), "HPL")
        self.assertEqual(self.comparator.compare(a, b, "structural").similarity, 100.0)

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            self.comparator.compare("a", "b", "semantic")


if __name__ == '__main__':
    unittest.main()
