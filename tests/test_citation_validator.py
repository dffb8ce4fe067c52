"""
Unit tests for citation validation.
"""
import unittest
from unittest.mock import AsyncMock

from integrity_engine.core.config import Settings
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import ErrorCode, FabricationRisk, Severity
from integrity_engine.services.analysis import CitationValidator
from integrity_engine.services.analysis.citation_validator import is_valid_doi, normalize_doi
from integrity_engine.services.governor import ResourceGovernor


def journal_citation(**overrides):
    citation = {
        "type": "journal",
        "title": "Cognitive load during problem solving",
        "authors": ["Sweller, J."],
        "year": 1988,
        "source": "Cognitive Science",
        "volume": "12",
        "doi": "10.1207/s15516709cog1202_4",
    }
    citation.update(overrides)
    return citation


class TestDoiHelpers(unittest.TestCase):
    """Test cases for DOI normalization and syntax checks."""

    def test_normalize_strips_resolver_prefix(self):
        self.assertEqual(normalize_doi("https://doi.org/10.1000/xyz"), "10.1000/xyz")
        self.assertEqual(normalize_doi(" doi:10.1000/xyz "), "10.1000/xyz")

    def test_doi_syntax(self):
        self.assertTrue(is_valid_doi("10.1207/s15516709cog1202_4"))
        self.assertFalse(is_valid_doi("not-a-doi"))
        self.assertFalse(is_valid_doi("10.12/short-registrant"))


class TestCitationValidator(unittest.IsolatedAsyncioTestCase):
    """Test cases for CitationValidator."""

    def setUp(self):
        self.config = Settings()
        self.governor = ResourceGovernor(self.config)
        self.resolver = AsyncMock()
        self.resolver.resolve.return_value = True
        self.crossref = AsyncMock()
        self.crossref.verify.return_value = True
        self.validator = CitationValidator(
            self.governor,
            doi_resolver=self.resolver,
            verifiers={"crossref": self.crossref},
            config=self.config,
            clock_year=2024,
        )
        self.context = ValidationContext(document_id="doc-1")

    async def test_no_citations_passes(self):
        result, checks = await self.validator.validate([], self.context)
        self.assertTrue(result.passed)
        self.assertEqual(result.score, 100.0)
        self.assertEqual(checks, [])

    async def test_complete_citation_passes(self):
        result, checks = await self.validator.validate([journal_citation()], self.context)

        self.assertTrue(result.passed)
        self.assertEqual(result.score, 100.0)
        self.assertEqual(result.issues, ())
        self.assertTrue(checks[0].doi_valid)
        self.assertEqual(checks[0].fabrication_risk, FabricationRisk.LOW)

    async def test_journal_missing_authors_is_major_issue(self):
        citation = journal_citation()
        del citation["authors"]
        result, checks = await self.validator.validate([citation], self.context)

        missing = [i for i in result.issues if i.code == ErrorCode.CITATION_MISSING]
        self.assertEqual(len(missing), 1)
        self.assertEqual(missing[0].severity, Severity.MAJOR)
        self.assertEqual(checks[0].missing_fields, ("authors",))
        self.assertEqual(result.score, 90.0)

    async def test_type_specific_fields(self):
        book = {"type": "book", "title": "Thinking", "authors": ["Kahneman, D."], "year": 2011}
        _, checks = await self.validator.validate([book], self.context)
        self.assertEqual(checks[0].missing_fields, ("publisher",))

    async def test_invalid_doi_format(self):
        result, checks = await self.validator.validate([journal_citation(doi="bad-doi")], self.context)

        self.assertFalse(checks[0].doi_valid)
        self.assertEqual(checks[0].fabrication_risk, FabricationRisk.MEDIUM)
        codes = [i.code for i in result.issues]
        self.assertIn(ErrorCode.CITATION_INVALID_DOI, codes)
        self.assertEqual(result.score, 85.0)
        self.assertEqual(result.confidence, 90.0)
        self.resolver.resolve.assert_not_called()

    async def test_doi_resolution_only_when_enabled(self):
        await self.validator.validate([journal_citation()], self.context)
        self.resolver.resolve.assert_not_called()

        context = ValidationContext(document_id="doc-1", external_sources={"doi": True})
        _, checks = await self.validator.validate([journal_citation()], context)
        self.resolver.resolve.assert_awaited_once_with("10.1207/s15516709cog1202_4")
        self.assertTrue(checks[0].doi_resolved)

    async def test_unresolvable_doi(self):
        self.resolver.resolve.return_value = False
        context = ValidationContext(document_id="doc-1", external_sources={"doi": True})
        result, checks = await self.validator.validate([journal_citation()], context)

        self.assertFalse(checks[0].doi_resolved)
        self.assertIn(ErrorCode.CITATION_INVALID_DOI, [i.code for i in result.issues])

    async def test_resolver_failure_is_inconclusive(self):
        self.resolver.resolve.side_effect = ConnectionError("down")
        context = ValidationContext(document_id="doc-1", external_sources={"doi": True})
        result, checks = await self.validator.validate([journal_citation()], context)

        self.assertIsNone(checks[0].doi_resolved)
        self.assertEqual(result.score, 100.0)
        self.assertLess(result.confidence, 100.0)
        self.assertIn(ErrorCode.EXTERNAL_ERROR, [i.code for i in result.issues])

    async def test_unverified_citation(self):
        self.crossref.verify.return_value = False
        context = ValidationContext(document_id="doc-1", external_sources={"crossref": True})
        result, checks = await self.validator.validate([journal_citation()], context)

        self.assertFalse(checks[0].verified)
        self.assertIn(ErrorCode.CITATION_UNVERIFIED, [i.code for i in result.issues])
        self.assertIn("crossref", result.metadata["sources_checked"])

    async def test_suspicious_author_is_high_risk(self):
        result, checks = await self.validator.validate(
            [journal_citation(authors=["Fake, A."])], self.context
        )
        self.assertEqual(checks[0].fabrication_risk, FabricationRisk.HIGH)
        self.assertIn(ErrorCode.FABRICATION_RISK, [i.code for i in result.issues])
        self.assertEqual(result.metadata["high_risk_citations"], 1)

    async def test_future_year_is_high_risk(self):
        _, checks = await self.validator.validate([journal_citation(year=2031)], self.context)
        self.assertEqual(checks[0].fabrication_risk, FabricationRisk.HIGH)

    async def test_apa_author_format(self):
        result, checks = await self.validator.validate(
            [journal_citation(authors=["John Sweller", "Chandler, P."])], self.context
        )
        self.assertEqual(len(checks[0].format_errors), 1)
        format_issues = [i for i in result.issues if i.code == ErrorCode.CITATION_FORMAT]
        self.assertEqual(format_issues[0].severity, Severity.MINOR)
        self.assertTrue(format_issues[0].auto_fixable)

    async def test_mla_checks_first_author_only(self):
        context = ValidationContext(document_id="doc-1", citation_style="mla")
        _, checks = await self.validator.validate(
            [journal_citation(authors=["Sweller, John", "Paul Chandler"])], context
        )
        self.assertEqual(checks[0].format_errors, ())


if __name__ == '__main__':
    unittest.main()
