"""
Configuration settings for the integrity engine.
"""
from pydantic_settings import BaseSettings
from typing import Optional, Dict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Key Authentication
    API_KEY: Optional[str] = None  # Required for production - set in environment or .env file
    REQUIRE_API_KEY: bool = True  # Set to False to disable API key authentication (not recommended for production)

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # Options: "text", "json"
    LOG_INCLUDE_REQUEST_ID: bool = True  # Include X-Request-ID in logs

    # HTTP Client Configuration
    HTTP_CLIENT_TIMEOUT: float = 30.0  # Default timeout for HTTP clients (seconds)
    HTTP_CLIENT_HEALTH_CHECK_TIMEOUT: float = 10.0  # Timeout for health check requests (seconds)
    HTTP_MAX_KEEPALIVE_CONNECTIONS: int = 10  # Maximum number of keepalive connections
    HTTP_MAX_CONNECTIONS: int = 20  # Maximum total connections
    HTTP_RETRY_ATTEMPTS: int = 2  # Default retry attempts for transient errors
    HTTP_RETRY_BACKOFF_SECONDS: float = 1.0  # Base backoff for retries
    HTTP_RETRY_STATUSES: tuple[int, ...] = (429, 500, 502, 503, 504)
    HTTP_USER_AGENT: str = "integrity-engine/1.0 (mailto:integrity@example.org)"

    # Performance Monitoring
    RESPONSE_TIME_WARNING_THRESHOLD_MS: int = 10000  # Warn if requests take longer than 10s (milliseconds)

    # External Collaborator Endpoints
    DOI_RESOLVER_URL: str = "https://doi.org"
    CROSSREF_API_URL: str = "https://api.crossref.org"
    OPENALEX_API_URL: str = "https://api.openalex.org"
    TITLE_MATCH_THRESHOLD: float = 0.85  # Levenshtein ratio needed to accept a bibliographic match

    # Resource Governor
    # Maps external source name -> {"quota": calls, "window_seconds": seconds}
    RATE_LIMITS: Dict[str, Dict[str, float]] = {
        "doi": {"quota": 50, "window_seconds": 60},
        "crossref": {"quota": 50, "window_seconds": 60},
        "openalex": {"quota": 100, "window_seconds": 60},
        "plagiarism_index": {"quota": 10000, "window_seconds": 60},
    }
    DEFAULT_RATE_LIMIT_QUOTA: int = 100
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS: float = 3600.0
    CIRCUIT_BREAKER_THRESHOLD: int = 5  # Consecutive failures before the breaker opens
    CIRCUIT_BREAKER_COOLDOWN_SECONDS: float = 60.0  # Time before an open breaker lets a probe through
    CACHE_TTL_SECONDS: float = 3600.0
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 10.0  # Per external call; a timeout is inconclusive
    RULE_TIMEOUT_SECONDS: float = 60.0  # Per rule evaluation; a timeout becomes a rule_execution_error

    # Scoring
    INTEGRITY_PASS_THRESHOLD: float = 80.0
    EXCELLENT_SCORE_THRESHOLD: float = 90.0
    PENALTY_CITATION_MISSING: float = 10.0
    PENALTY_CITATION_INVALID_DOI: float = 15.0
    PENALTY_CITATION_FORMAT: float = 5.0
    PENALTY_DATA_MISSING_FIELD: float = 20.0
    PENALTY_DATA_INVALID_TYPE: float = 15.0
    PENALTY_DATA_INVALID_PATTERN: float = 10.0
    PENALTY_DATA_INVALID_VALUE: float = 15.0
    PENALTY_DATA_CROSS_REFERENCE: float = 12.0
    PENALTY_FORMAT_VIOLATION: float = 5.0
    PENALTY_METHODOLOGY_GAP: float = 10.0
    CONFIDENCE_PENALTY_INVALID_DOI: float = 10.0
    CONFIDENCE_PENALTY_UNVERIFIED: float = 5.0
    CONFIDENCE_PENALTY_INCONCLUSIVE: float = 5.0

    # Plagiarism Detection
    PLAGIARISM_SEGMENT_WORDS: int = 50
    PLAGIARISM_SHINGLE_SIZE: int = 5
    PLAGIARISM_CRITICAL_SIMILARITY: float = 80.0  # Best match above this is a critical issue
    PLAGIARISM_MIN_SIMILARITY: float = 20.0  # Matches below this are ignored
    PLAGIARISM_INDEX_PATH: Optional[str] = None  # Optional JSON file with known sources to seed the index

    # Format Rules
    MAX_TITLE_LENGTH: int = 200
    MAX_ABSTRACT_WORDS: int = 300
    FORMAT_PASS_THRESHOLD: float = 90.0

    # Methodology Rules
    METHODOLOGY_MIN_WORDS: int = 100  # Shorter texts are not assessed

    # Orchestration
    MAX_STORED_CHECKS: int = 1000  # Oldest terminal checks are evicted beyond this

    @property
    def scoring_penalties(self):
        """Build the penalty table used by the analyzers."""
        from integrity_engine.models.integrity_models import ScoringPenalties
        return ScoringPenalties(
            citation_missing=self.PENALTY_CITATION_MISSING,
            citation_invalid_doi=self.PENALTY_CITATION_INVALID_DOI,
            citation_format=self.PENALTY_CITATION_FORMAT,
            data_missing_field=self.PENALTY_DATA_MISSING_FIELD,
            data_invalid_type=self.PENALTY_DATA_INVALID_TYPE,
            data_invalid_pattern=self.PENALTY_DATA_INVALID_PATTERN,
            data_invalid_value=self.PENALTY_DATA_INVALID_VALUE,
            data_cross_reference=self.PENALTY_DATA_CROSS_REFERENCE,
            format_violation=self.PENALTY_FORMAT_VIOLATION,
            methodology_gap=self.PENALTY_METHODOLOGY_GAP,
            confidence_invalid_doi=self.CONFIDENCE_PENALTY_INVALID_DOI,
            confidence_unverified=self.CONFIDENCE_PENALTY_UNVERIFIED,
            confidence_inconclusive=self.CONFIDENCE_PENALTY_INCONCLUSIVE,
        )

    def get_rate_limit(self, source: str) -> tuple[int, float]:
        """Get (quota, window_seconds) for an external source, with fallback to defaults."""
        limit = self.RATE_LIMITS.get(source)
        if not limit:
            return self.DEFAULT_RATE_LIMIT_QUOTA, self.DEFAULT_RATE_LIMIT_WINDOW_SECONDS
        return (
            int(limit.get("quota", self.DEFAULT_RATE_LIMIT_QUOTA)),
            float(limit.get("window_seconds", self.DEFAULT_RATE_LIMIT_WINDOW_SECONDS)),
        )

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Allow extra fields in .env for backward compatibility


settings = Settings()
