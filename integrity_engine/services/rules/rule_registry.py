"""
Registry of validation rules.

Rules are registered once at engine start-up. Afterwards only their enabled
flag changes; a rule is never removed while checks may be running.
"""
import logging
from threading import Lock
from typing import Dict, List, Optional, Tuple

from integrity_engine.core.error_handling import RuleNotFoundError
from integrity_engine.models.integrity_models import CheckType, RuleCategory
from integrity_engine.services.rules.base_rule import RuleDescriptor, ValidationRule

logger = logging.getLogger(__name__)

# Rule categories each check type runs; None means every category
CHECK_TYPE_CATEGORIES: Dict[CheckType, Optional[Tuple[RuleCategory, ...]]] = {
    CheckType.FULL_INTEGRITY: None,
    CheckType.PLAGIARISM_ONLY: (RuleCategory.PLAGIARISM,),
    CheckType.CITATION_ONLY: (RuleCategory.CITATION,),
    CheckType.DATA_INTEGRITY_ONLY: (RuleCategory.DATA, RuleCategory.CONSISTENCY),
    CheckType.METHODOLOGY_ONLY: (RuleCategory.METHODOLOGY,),
    CheckType.FORMAT_ONLY: (RuleCategory.FORMAT,),
}


class RuleRegistry:
    """Thread-safe rule lookup with enable/disable."""

    def __init__(self):
        self._rules: Dict[str, ValidationRule] = {}
        self._lock = Lock()

    def register(self, rule: ValidationRule) -> None:
        """
        Add a rule.

        Raises:
            ValueError: A rule with the same id is already registered
        """
        with self._lock:
            if rule.rule_id in self._rules:
                raise ValueError(f"Rule '{rule.rule_id}' is already registered")
            self._rules[rule.rule_id] = rule
        logger.info(f"Registered rule {rule!r}")

    def get(self, rule_id: str) -> ValidationRule:
        with self._lock:
            rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(f"Rule not found: {rule_id}")
        return rule

    def enable(self, rule_id: str) -> RuleDescriptor:
        return self._set_enabled(rule_id, True)

    def disable(self, rule_id: str) -> RuleDescriptor:
        return self._set_enabled(rule_id, False)

    def _set_enabled(self, rule_id: str, enabled: bool) -> RuleDescriptor:
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                raise RuleNotFoundError(f"Rule not found: {rule_id}")
            rule.enabled = enabled
            descriptor = rule.describe()
        logger.info(f"Rule '{rule_id}' {'enabled' if enabled else 'disabled'}")
        return descriptor

    def list_rules(self) -> List[RuleDescriptor]:
        with self._lock:
            return [rule.describe() for rule in self._rules.values()]

    def enabled_rules(self, check_type: CheckType = CheckType.FULL_INTEGRITY) -> List[ValidationRule]:
        """Enabled rules that apply to a check type, in registration order."""
        categories = CHECK_TYPE_CATEGORIES.get(check_type)
        with self._lock:
            return [
                rule for rule in self._rules.values()
                if rule.enabled and (categories is None or rule.category in categories)
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        with self._lock:
            return rule_id in self._rules
