"""
Text normalization utilities for content comparison.
"""
import re
import logging
from dataclasses import dataclass
from typing import Iterator, List

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r'\S+')


@dataclass(frozen=True)
class Token:
    """A whitespace-delimited word with its character offsets in the source text."""

    text: str
    start: int
    end: int


class ContentNormalizer:
    """Normalize text content for comparison and fingerprinting."""

    def normalize_for_comparison(self, text: str) -> str:
        """
        Normalize text by keeping only alphanumeric characters.
        This filters out formatting, punctuation, and whitespace differences.

        Args:
            text: Text to normalize

        Returns:
            Text containing only alphanumeric characters (lowercase)
        """
        # Keep only alphanumeric characters (including Unicode letters and digits)
        return ''.join(char.lower() for char in text if char.isalnum())

    def normalize_word(self, word: str) -> str:
        """Lowercase a word and strip everything that is not a letter or digit."""
        return self.normalize_for_comparison(word)

    def iter_tokens(self, text: str) -> Iterator[Token]:
        """Yield every whitespace-delimited token with its offsets."""
        for match in _TOKEN_PATTERN.finditer(text or ""):
            yield Token(text=match.group(0), start=match.start(), end=match.end())

    def normalized_words(self, text: str) -> List[str]:
        """Normalized words of a text, dropping tokens that are pure punctuation."""
        words = (self.normalize_word(token.text) for token in self.iter_tokens(text))
        return [w for w in words if w]
