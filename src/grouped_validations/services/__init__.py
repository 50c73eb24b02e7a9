"""Service layer — rule evaluation, group execution, and error aggregation."""

from grouped_validations.services.aggregator import ErrorRecord, ErrorSet, GroupedErrors
from grouped_validations.services.evaluator import RuleEvaluator, default_evaluator
from grouped_validations.services.runner import GroupRunner

__all__ = [
    "ErrorRecord",
    "ErrorSet",
    "GroupRunner",
    "GroupedErrors",
    "RuleEvaluator",
    "default_evaluator",
]
