"""
Unit tests for segment-level plagiarism detection.
"""
import unittest

from integrity_engine.core.config import Settings
from integrity_engine.models.context_models import ValidationContext
from integrity_engine.models.integrity_models import ErrorCode, Severity
from integrity_engine.services.analysis import (
    ContentNormalizer,
    Fingerprinter,
    InMemorySourceIndex,
    KnownSource,
    PlagiarismDetector,
)
from integrity_engine.services.governor import ResourceGovernor


SOURCE_TEXT = " ".join(f"alpha{i}" for i in range(60))
UNRELATED_TEXT = " ".join(f"omega{i}" for i in range(60))


class TestPlagiarismDetector(unittest.IsolatedAsyncioTestCase):
    """Test cases for PlagiarismDetector."""

    def setUp(self):
        """Set up an index with one known source."""
        self.config = Settings(PLAGIARISM_SEGMENT_WORDS=50, PLAGIARISM_SHINGLE_SIZE=5)
        self.fingerprinter = Fingerprinter(ContentNormalizer(), shingle_size=5)
        self.index = InMemorySourceIndex(self.fingerprinter, segment_words=50, min_similarity=20.0)
        self.index.add_source(KnownSource(source_id="src-1", title="Known Paper", text=SOURCE_TEXT))
        self.governor = ResourceGovernor(self.config)
        self.detector = PlagiarismDetector(self.index, self.governor, self.fingerprinter, self.config)
        self.context = ValidationContext(document_id="doc-1")

    def test_segment_text_keeps_offsets(self):
        text = "Hello,   world! " + " ".join(["word"] * 60)
        pairs = self.detector.segment_text(text)

        self.assertEqual(len(pairs), 2)
        first, words = pairs[0]
        self.assertEqual(first.start_index, 0)
        self.assertEqual(words[:2], ["hello", "world"])
        self.assertEqual(text[first.start_index:first.end_index], first.text)
        self.assertEqual(pairs[1][0].word_count, 12)

    async def test_identical_text_has_no_originality(self):
        result, detection = await self.detector.evaluate(SOURCE_TEXT, self.context)

        self.assertAlmostEqual(detection.originality_score, 0.0, places=3)
        self.assertEqual(detection.overall_similarity, 100.0)
        self.assertFalse(result.passed)
        self.assertTrue(any(i.severity == Severity.CRITICAL for i in result.issues))
        self.assertTrue(all(i.code == ErrorCode.PLAGIARISM_MATCH for i in result.issues))
        self.assertEqual(detection.source_matches[0].source_id, "src-1")

    async def test_unrelated_text_is_fully_original(self):
        result, detection = await self.detector.evaluate(UNRELATED_TEXT, self.context)

        self.assertEqual(detection.originality_score, 100.0)
        self.assertEqual(detection.source_matches, ())
        self.assertTrue(result.passed)
        self.assertEqual(result.issues, ())

    async def test_punctuation_and_case_do_not_hide_copying(self):
        disguised = SOURCE_TEXT.upper().replace(" ", ", ")
        _, detection = await self.detector.evaluate(disguised, self.context)
        self.assertAlmostEqual(detection.originality_score, 0.0, places=3)

    async def test_empty_text(self):
        result, detection = await self.detector.evaluate("   ", self.context)
        self.assertEqual(detection.originality_score, 100.0)
        self.assertEqual(detection.segments, ())
        self.assertTrue(result.passed)

    async def test_lookup_disabled_leaves_segments_unchecked(self):
        context = ValidationContext(document_id="doc-1", external_sources={"plagiarism_db": False})
        result, detection = await self.detector.evaluate(SOURCE_TEXT, context)

        self.assertEqual(detection.unchecked_segments, 2)
        self.assertEqual(detection.originality_score, 100.0)
        self.assertEqual(result.confidence, 0.0)
        self.assertEqual(result.metadata["sources_checked"], [])

    async def test_removed_source_no_longer_matches(self):
        await self.detector.evaluate(SOURCE_TEXT, self.context)
        self.assertTrue(self.index.remove_source("src-1"))

        _, detection = await self.detector.evaluate(SOURCE_TEXT, self.context)
        self.assertEqual(detection.originality_score, 100.0)


class TestInMemorySourceIndex(unittest.TestCase):
    """Test cases for InMemorySourceIndex."""

    def setUp(self):
        self.fingerprinter = Fingerprinter(shingle_size=3)
        self.index = InMemorySourceIndex(self.fingerprinter, segment_words=10, min_similarity=20.0)

    def test_partial_overlap_uses_containment(self):
        self.index.add_source(KnownSource("s", "Source", "one two three four five six seven eight nine ten"))
        fingerprint = self.fingerprinter.fingerprint("one two three four five zulu yankee xray whiskey victor")

        matches = self.index.lookup(fingerprint)
        self.assertEqual(len(matches), 1)
        # 3 of 8 shingles are shared
        self.assertAlmostEqual(matches[0].similarity, 37.5)

    def test_readding_source_replaces_text(self):
        self.index.add_source(KnownSource("s", "Source", "one two three four five"))
        self.index.add_source(KnownSource("s", "Source", "six seven eight nine ten"))

        self.assertEqual(len(self.index), 1)
        self.assertEqual(self.index.lookup(self.fingerprinter.fingerprint("one two three four five")), [])

    def test_shingle_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            Fingerprinter(shingle_size=0)


if __name__ == '__main__':
    unittest.main()
