"""Exception taxonomy for grouped_validations.

Validation failures are never exceptions: they are recorded on the entity's
error set. Exceptions signal caller defects (unknown group, malformed option,
unregistered validator kind) and always propagate.
"""

from __future__ import annotations


class GroupedValidationError(Exception):
    """Base class for all engine errors."""


class GroupNotFoundError(GroupedValidationError, KeyError):
    """A run named a validation group the entity type never declared."""

    def __init__(self, entity_type: str, name: str) -> None:
        self.entity_type = entity_type
        self.name = name
        super().__init__(f"Validation group {name!r} is not declared for {entity_type}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class InvalidOptionError(GroupedValidationError, TypeError):
    """A rule option (guard or context tag) has an unusable value."""


class UnknownValidatorError(GroupedValidationError, LookupError):
    """No validator is registered for a rule's kind."""
