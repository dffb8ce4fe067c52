"""
Validation rules.

This package provides the rule interface, the built-in integrity rules and
the registry the orchestrator selects rules from.
"""
from .base_rule import RuleDescriptor, ValidationRule
from .integrity_rules import CitationRule, DataConsistencyRule, FormatRule, MethodologyRule, PlagiarismRule
from .rule_registry import CHECK_TYPE_CATEGORIES, RuleRegistry

__all__ = [
    "CHECK_TYPE_CATEGORIES",
    "CitationRule",
    "DataConsistencyRule",
    "FormatRule",
    "MethodologyRule",
    "PlagiarismRule",
    "RuleDescriptor",
    "RuleRegistry",
    "ValidationRule",
]
