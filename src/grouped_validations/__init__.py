"""grouped_validations — named, composable validation groups for entity classes."""

from grouped_validations.domain.groups import DefaultsPrecedence, GroupBuilder, GroupRegistry, ValidationGroup
from grouped_validations.domain.lifecycle import ExecutionContext, LifecycleState, resolve_context
from grouped_validations.domain.options import Guard, merge_options
from grouped_validations.domain.rules import RuleSpec, presence_of, rules_for
from grouped_validations.entity import Validatable
from grouped_validations.exceptions import (
    GroupedValidationError,
    GroupNotFoundError,
    InvalidOptionError,
    UnknownValidatorError,
)
from grouped_validations.services.aggregator import ErrorRecord, ErrorSet, GroupedErrors
from grouped_validations.services.evaluator import RuleEvaluator
from grouped_validations.services.runner import GroupRunner

__version__ = "0.1.0"

__all__ = [
    "DefaultsPrecedence",
    "ErrorRecord",
    "ErrorSet",
    "ExecutionContext",
    "GroupBuilder",
    "GroupNotFoundError",
    "GroupRegistry",
    "GroupRunner",
    "GroupedErrors",
    "GroupedValidationError",
    "Guard",
    "InvalidOptionError",
    "LifecycleState",
    "RuleEvaluator",
    "RuleSpec",
    "UnknownValidatorError",
    "Validatable",
    "ValidationGroup",
    "merge_options",
    "presence_of",
    "resolve_context",
    "rules_for",
]
