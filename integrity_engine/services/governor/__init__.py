"""
Resource governor package: guards for external verification calls.

- rate_limiter.py: per-source call quotas
- circuit_breaker.py: per-source closed/open/half-open breakers
- result_cache.py: TTL cache for lookup results
- input_validator.py: declarative argument validation and sanitization
- resource_governor.py: ResourceGovernor combining the above
"""
from .circuit_breaker import CircuitBreakerRegistry, CircuitState
from .input_validator import InputValidationResult, validate_input
from .rate_limiter import RateLimiter
from .resource_governor import ExternalCallOutcome, OutcomeStatus, ResourceGovernor
from .result_cache import ResultCache

__all__ = [
    'CircuitBreakerRegistry',
    'CircuitState',
    'ExternalCallOutcome',
    'InputValidationResult',
    'OutcomeStatus',
    'RateLimiter',
    'ResourceGovernor',
    'ResultCache',
    'validate_input',
]
