"""
Shared constants for integrity validation.

This module consolidates constants used across the codebase to ensure
consistency and make it easier to modify common values.
"""

# External source keys used by the resource governor
SOURCE_PLAGIARISM_INDEX = "plagiarism_index"
SOURCE_DOI = "doi"
SOURCE_CROSSREF = "crossref"
SOURCE_OPENALEX = "openalex"

# Rule identifiers
RULE_PLAGIARISM = "plagiarism_detection"
RULE_CITATION = "citation_validation"
RULE_DATA_CONSISTENCY = "data_consistency"
RULE_FORMAT = "format_validation"
RULE_METHODOLOGY = "methodology_validation"

# Default rule weights
DEFAULT_RULE_WEIGHTS = {
    RULE_PLAGIARISM: 0.3,
    RULE_CITATION: 0.25,
    RULE_DATA_CONSISTENCY: 0.2,
    RULE_FORMAT: 0.15,
    RULE_METHODOLOGY: 0.1,
}

# Citation checks
DOI_PATTERN = r'^10\.\d{4,}/[-._;()/:a-zA-Z0-9]+$'
APA_AUTHOR_PATTERN = r'^[A-Z][A-Za-z\'\-]+,\s(?:[A-Z]\.\s?)+$'
MLA_AUTHOR_PATTERN = r'^[A-Z][A-Za-z\'\-]+,\s[A-Z][A-Za-z\'\-]+(?:\s[A-Z][A-Za-z.\'\-]*)*$'
SUSPICIOUS_AUTHOR_TOKENS = ('test', 'fake', 'unknown', 'anonymous')
SUSPICIOUS_JOURNAL_TOKENS = ('fake-journal', 'test-publication', 'nonexistent')
EARLIEST_PLAUSIBLE_YEAR = 1800

BASE_CITATION_FIELDS = ('title', 'authors', 'year')
CITATION_TYPE_FIELDS = {
    'journal': ('source', 'volume'),
    'book': ('publisher',),
    'chapter': ('source', 'pages'),
}

# Quick scan risk bands (score out of 100)
QUICK_RISK_LOW = 90.0
QUICK_RISK_MEDIUM = 70.0
QUICK_RISK_HIGH = 50.0

# Report formats
REPORT_FORMATS = ('json', 'html', 'pdf')
