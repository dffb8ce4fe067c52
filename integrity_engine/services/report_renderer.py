"""
Report rendering for completed integrity checks.

Formats:
- json: plain dict, ready for JSONResponse
- html: standalone page; every value taken from the document is escaped
- pdf: text placeholder (no PDF library is bundled)
"""
import html
import logging
from typing import Any, Dict, Union

from integrity_engine.core.constants import REPORT_FORMATS
from integrity_engine.core.error_handling import CheckStateError, ReportFormatError
from integrity_engine.models.integrity_models import CheckStatus, IntegrityCheck

logger = logging.getLogger(__name__)

_SEVERITY_COLORS = {
    "critical": "#dc3545",
    "major": "#fd7e14",
    "minor": "#ffc107",
    "warning": "#6c757d",
}


class ReportRenderer:
    def render(self, check: IntegrityCheck, fmt: str = "json") -> Union[Dict[str, Any], str]:
        """
        Render a check in the requested format.

        Raises:
            ReportFormatError: Unknown format
            CheckStateError: The check has no report yet
        """
        fmt = (fmt or "json").lower()
        if fmt not in REPORT_FORMATS:
            raise ReportFormatError(f"Unsupported report format '{fmt}'. Use one of: {', '.join(REPORT_FORMATS)}")

        if fmt == "json":
            return check.to_dict()

        if check.report is None:
            if check.status == CheckStatus.FAILED:
                raise CheckStateError(f"Integrity check {check.id} failed and has no report")
            raise CheckStateError(f"Integrity check {check.id} is {check.status}; report not ready")

        if fmt == "html":
            return self.render_html(check)
        return self.render_pdf(check)

    def render_html(self, check: IntegrityCheck) -> str:
        report = check.report
        esc = html.escape
        color = "green" if report.passed else "red"

        score_items = "".join(
            f"<li>{esc(category.title())}: {score:.1f}%</li>"
            for category, score in sorted(report.category_scores.items())
        )
        issue_blocks = "".join(
            f'<div class="issue" style="border-left-color: {_SEVERITY_COLORS[issue.severity.value]}">'
            f"<strong>{esc(issue.type.value)}</strong> ({esc(issue.severity.value)}): {esc(issue.description)}"
            + (f"<br><em>Suggested fix:</em> {esc(issue.suggested_fix)}" if issue.suggested_fix else "")
            + "</div>"
            for issue in report.issues
        ) or "<p>No issues found.</p>"
        recommendation_items = "".join(f"<li>{esc(rec)}</li>" for rec in report.recommendations)

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Integrity Report - {esc(check.id)}</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 20px; }}
        .header {{ background: #f0f0f0; padding: 20px; margin-bottom: 20px; }}
        .score {{ font-size: 24px; font-weight: bold; color: {color}; }}
        .section {{ margin-bottom: 30px; }}
        .issue {{ background: #fff3cd; padding: 10px; margin: 10px 0; border-left: 4px solid #ffc107; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>Academic Integrity Report</h1>
        <p><strong>Check ID:</strong> {esc(check.id)}</p>
        <p><strong>Document ID:</strong> {esc(check.document_id)}</p>
        <p><strong>Check Type:</strong> {esc(check.check_type.value)}</p>
        <p><strong>Generated:</strong> {esc(report.generated_at.isoformat())}</p>
        <div class="score">Overall Score: {report.overall_score:.1f}% ({'PASSED' if report.passed else 'FAILED'})</div>
    </div>
    <div class="section">
        <h2>Category Scores</h2>
        <ul>{score_items}</ul>
    </div>
    <div class="section">
        <h2>Issues Found ({report.total_issues})</h2>
        {issue_blocks}
    </div>
    <div class="section">
        <h2>Recommendations</h2>
        <ul>{recommendation_items}</ul>
    </div>
</body>
</html>"""

    def render_pdf(self, check: IntegrityCheck) -> str:
        """Plain-text summary served for the pdf format; no PDF document is produced."""
        report = check.report
        return (
            f"PDF Report for check {check.id} - Feature requires PDF generation library\n"
            f"Document: {check.document_id}\n"
            f"Overall score: {report.overall_score:.1f} ({'passed' if report.passed else 'failed'})\n"
            f"Issues: {report.total_issues} (critical={report.critical_issues}, major={report.major_issues}, "
            f"minor={report.minor_issues}, warning={report.warning_issues})"
        )
