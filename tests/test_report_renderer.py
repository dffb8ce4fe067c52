"""
Unit tests for ReportRenderer.
"""
import unittest

from integrity_engine.core.error_handling import CheckStateError, ReportFormatError
from integrity_engine.models.integrity_models import (
    CheckStatus,
    CheckType,
    ErrorCode,
    IntegrityCheck,
    IntegrityReport,
    IssueType,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from integrity_engine.services.report_renderer import ReportRenderer


def _completed_check(description="Segment matches a known source"):
    issue = ValidationIssue(
        id="plag_seg_0",
        type=IssueType.PLAGIARISM,
        severity=Severity.CRITICAL,
        code=ErrorCode.PLAGIARISM_MATCH,
        description=description,
        suggested_fix="Quote & cite <the source>",
    )
    result = ValidationResult(rule_id="plagiarism_detection", passed=False, score=20.0, confidence=90.0, issues=(issue,))
    report = IntegrityReport(
        document_id="doc<1>",
        overall_score=20.0,
        category_scores={"plagiarism": 20.0},
        total_issues=1,
        critical_issues=1,
        major_issues=0,
        minor_issues=0,
        warning_issues=0,
        passed=False,
        validation_results=(result,),
        recommendations=("Rewrite copied passages",),
    )
    return IntegrityCheck(
        id="check_abc",
        document_id="doc<1>",
        check_type=CheckType.FULL_INTEGRITY,
        status=CheckStatus.COMPLETED,
        report=report,
        issues=[issue],
    )


class TestReportRenderer(unittest.TestCase):
    """Test cases for ReportRenderer."""

    def setUp(self):
        self.renderer = ReportRenderer()

    def test_json_is_check_dict(self):
        check = _completed_check()
        rendered = self.renderer.render(check, "json")

        self.assertEqual(rendered, check.to_dict())
        self.assertEqual(rendered["report"]["overall_score"], 20.0)

    def test_format_defaults_to_json_and_is_case_insensitive(self):
        check = _completed_check()
        self.assertIsInstance(self.renderer.render(check, None), dict)
        self.assertIsInstance(self.renderer.render(check, "HTML"), str)

    def test_html_escapes_document_values(self):
        html_report = self.renderer.render(_completed_check("<script>alert(1)</script>"), "html")

        self.assertIn("&lt;script&gt;alert(1)&lt;/script&gt;", html_report)
        self.assertNotIn("<script>", html_report)
        self.assertIn("doc&lt;1&gt;", html_report)
        self.assertIn("Quote &amp; cite &lt;the source&gt;", html_report)
        self.assertIn("Overall Score: 20.0% (FAILED)", html_report)
        self.assertIn("Plagiarism: 20.0%", html_report)

    def test_pdf_placeholder_summarizes_report(self):
        text = self.renderer.render(_completed_check(), "pdf")

        self.assertIn("Feature requires PDF generation library", text)
        self.assertIn("critical=1", text)

    def test_unknown_format_rejected(self):
        with self.assertRaises(ReportFormatError):
            self.renderer.render(_completed_check(), "docx")

    def test_html_before_report_exists(self):
        check = IntegrityCheck(id="check_pending", document_id="doc", check_type=CheckType.FULL_INTEGRITY)

        with self.assertRaises(CheckStateError):
            self.renderer.render(check, "html")
        # json works in any state
        self.assertIsNone(self.renderer.render(check, "json")["report"])

    def test_failed_check_has_no_report(self):
        check = IntegrityCheck(
            id="check_failed",
            document_id="doc",
            check_type=CheckType.FORMAT_ONLY,
            status=CheckStatus.FAILED,
        )

        with self.assertRaises(CheckStateError) as ctx:
            self.renderer.render(check, "pdf")
        self.assertIn("failed", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
