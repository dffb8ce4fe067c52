"""
Known-source index for plagiarism lookups.

Segments are fingerprinted two ways:
- an MD5 digest of the normalized words, for exact segment matches
- a set of hashed word shingles, for partial overlap

The in-memory index answers a lookup with every source whose shingles cover
at least the configured share of the segment's shingles (containment).
"""
import hashlib
import json
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Protocol, Sequence, Set, Tuple, runtime_checkable

from integrity_engine.models.integrity_models import SegmentFingerprint, SourceMatch
from integrity_engine.services.analysis.content_normalizer import ContentNormalizer

logger = logging.getLogger(__name__)


@runtime_checkable
class KnownSourceIndex(Protocol):
    """Anything that can find known sources resembling a segment."""

    def lookup(self, fingerprint: SegmentFingerprint) -> List[SourceMatch]:
        ...


@dataclass(frozen=True)
class KnownSource:
    """A published text that documents are compared against."""

    source_id: str
    title: str
    text: str
    authors: Tuple[str, ...] = ()
    url: Optional[str] = None


class Fingerprinter:
    """Builds segment fingerprints from normalized words."""

    def __init__(self, normalizer: Optional[ContentNormalizer] = None, shingle_size: int = 5):
        if shingle_size < 1:
            raise ValueError("shingle_size must be at least 1")
        self.normalizer = normalizer or ContentNormalizer()
        self.shingle_size = shingle_size

    @staticmethod
    def _hash(text: str) -> str:
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def shingles(self, words: Sequence[str]) -> frozenset:
        """Hashed k-word shingles; a segment shorter than k is one shingle."""
        if not words:
            return frozenset()
        k = self.shingle_size
        if len(words) <= k:
            return frozenset({self._hash(" ".join(words))[:16]})
        return frozenset(
            self._hash(" ".join(words[i:i + k]))[:16]
            for i in range(len(words) - k + 1)
        )

    def fingerprint_words(self, words: Sequence[str]) -> SegmentFingerprint:
        return SegmentFingerprint(
            digest=self._hash(" ".join(words)),
            shingles=self.shingles(words),
            word_count=len(words),
        )

    def fingerprint(self, text: str) -> SegmentFingerprint:
        return self.fingerprint_words(self.normalizer.normalized_words(text))


@dataclass
class _IndexedSource:
    source: KnownSource
    shingle_count: int
    segment_texts: Dict[str, str] = field(default_factory=dict)


class InMemorySourceIndex:
    """Thread-safe in-process implementation of KnownSourceIndex."""

    def __init__(
        self,
        fingerprinter: Optional[Fingerprinter] = None,
        segment_words: int = 50,
        min_similarity: float = 20.0,
    ):
        """
        Args:
            fingerprinter: Shared fingerprinter (must match the detector's)
            segment_words: Window size used to index exact segment digests
            min_similarity: Matches below this similarity (0-100) are dropped
        """
        self.fingerprinter = fingerprinter or Fingerprinter()
        self.segment_words = segment_words
        self.min_similarity = min_similarity
        self._sources: Dict[str, _IndexedSource] = {}
        self._digests: Dict[str, Set[str]] = defaultdict(set)
        self._shingles: Dict[str, Set[str]] = defaultdict(set)
        self._lock = Lock()
        self.version = 0

    def add_source(self, source: KnownSource) -> None:
        """Index a source. Re-adding an id replaces the previous text."""
        normalizer = self.fingerprinter.normalizer
        tokens = list(normalizer.iter_tokens(source.text))
        words: List[str] = []
        offsets: List[Tuple[int, int]] = []
        for token in tokens:
            word = normalizer.normalize_word(token.text)
            if word:
                words.append(word)
                offsets.append((token.start, token.end))

        indexed = _IndexedSource(source=source, shingle_count=0)
        digests: List[str] = []
        for i in range(0, len(words), self.segment_words):
            window = words[i:i + self.segment_words]
            digest = self.fingerprinter.fingerprint_words(window).digest
            start, end = offsets[i][0], offsets[i + len(window) - 1][1]
            indexed.segment_texts[digest] = source.text[start:end]
            digests.append(digest)
        shingles = self.fingerprinter.shingles(words)
        indexed.shingle_count = len(shingles)

        with self._lock:
            self._remove_locked(source.source_id)
            self._sources[source.source_id] = indexed
            for digest in digests:
                self._digests[digest].add(source.source_id)
            for shingle in shingles:
                self._shingles[shingle].add(source.source_id)
            self.version += 1

        logger.info(f"Indexed source '{source.source_id}' ({len(words)} words, {len(digests)} segments)")

    def remove_source(self, source_id: str) -> bool:
        with self._lock:
            removed = self._remove_locked(source_id)
            if removed:
                self.version += 1
            return removed

    def _remove_locked(self, source_id: str) -> bool:
        if source_id not in self._sources:
            return False
        del self._sources[source_id]
        for bucket in (self._digests, self._shingles):
            for key in [k for k, ids in bucket.items() if source_id in ids]:
                bucket[key].discard(source_id)
                if not bucket[key]:
                    del bucket[key]
        return True

    def lookup(self, fingerprint: SegmentFingerprint) -> List[SourceMatch]:
        """Sources resembling the segment, best match first."""
        matches: Dict[str, SourceMatch] = {}

        with self._lock:
            for source_id in self._digests.get(fingerprint.digest, ()):
                indexed = self._sources[source_id]
                matches[source_id] = self._to_match(
                    indexed, 100.0, 100.0, indexed.segment_texts.get(fingerprint.digest, "")
                )

            shared: Counter = Counter()
            for shingle in fingerprint.shingles:
                for source_id in self._shingles.get(shingle, ()):
                    shared[source_id] += 1

            total = len(fingerprint.shingles)
            for source_id, count in shared.items():
                if source_id in matches or total == 0:
                    continue
                similarity = count / total * 100.0
                if similarity < self.min_similarity:
                    continue
                # Very short segments carry less evidence
                confidence = min(100.0, 50.0 + 50.0 * min(1.0, total / max(1, self.segment_words)))
                matches[source_id] = self._to_match(self._sources[source_id], similarity, confidence, "")

        return sorted(matches.values(), key=lambda m: (-m.similarity, m.source_id))

    @staticmethod
    def _to_match(indexed: _IndexedSource, similarity: float, confidence: float, matched_text: str) -> SourceMatch:
        source = indexed.source
        return SourceMatch(
            source_id=source.source_id,
            title=source.title,
            similarity=similarity,
            confidence=confidence,
            matched_text=matched_text,
            authors=tuple(source.authors),
            url=source.url,
        )

    def load_json(self, path: str) -> int:
        """
        Seed the index from a JSON file: a list of objects with
        source_id, title, text and optional authors and url.

        Returns:
            Number of sources loaded
        """
        entries = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(entries, list):
            raise ValueError(f"Known-source file {path} must contain a JSON list")
        for entry in entries:
            self.add_source(KnownSource(
                source_id=str(entry["source_id"]),
                title=str(entry.get("title", entry["source_id"])),
                text=str(entry["text"]),
                authors=tuple(entry.get("authors") or ()),
                url=entry.get("url"),
            ))
        logger.info(f"Loaded {len(entries)} known sources from {path}")
        return len(entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)
