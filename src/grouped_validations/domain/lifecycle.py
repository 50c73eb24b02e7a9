"""Entity lifecycle state and execution-context resolution.

The execution context decides which ``on``-tagged rules run:

- An explicit context supplied to a run is used verbatim.
- Otherwise it is inferred from the entity's lifecycle state: a new
  entity validates in ``create``, a persisted one in ``update``, and an
  entity without a lifecycle concept in no context at all, which every
  rule matches.

Lifecycle state is read from the entity, never stored: an entity opts in by exposing
an ``is_persisted()`` method or a ``persisted`` attribute.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from grouped_validations.exceptions import InvalidOptionError


class ExecutionContext(StrEnum):
    """Built-in context tags. Any other string is a valid custom context."""

    CREATE = "create"
    UPDATE = "update"


class LifecycleState(StrEnum):
    """Persistence state of a validated entity."""

    NEW = "new"
    PERSISTED = "persisted"
    UNTRACKED = "untracked"


# --- Inferred context per lifecycle state ---

STATE_CONTEXTS: dict[str, str | None] = {
    "new": ExecutionContext.CREATE,
    "persisted": ExecutionContext.UPDATE,
    "untracked": None,
}


def lifecycle_state(entity: Any) -> LifecycleState:
    """Read the persistence state of *entity*."""
    is_persisted = getattr(entity, "is_persisted", None)
    if callable(is_persisted):
        persisted = is_persisted()
    else:
        persisted = getattr(entity, "persisted", None)
    if persisted is None:
        return LifecycleState.UNTRACKED
    return LifecycleState.PERSISTED if persisted else LifecycleState.NEW


def resolve_context(explicit_context: str | None, entity: Any) -> str | None:
    """Return the effective context for a run against *entity*."""
    if explicit_context is not None:
        return explicit_context
    return STATE_CONTEXTS[lifecycle_state(entity)]


def applies_in_context(on: Any, context: str | None) -> bool:
    """Check whether a rule tagged with *on* runs in *context*.

    A rule without an ``on`` tag always runs. A tagged rule runs only when
    the effective context matches one of its tags. No context at all (an
    entity without a lifecycle concept) matches every rule.

    Raises:
        InvalidOptionError: If *on* is neither a string nor a collection of strings.
    """
    if on is None:
        return True
    if isinstance(on, str):
        tags: list[Any] | None = [on]
    elif isinstance(on, Iterable):
        tags = list(on)
    else:
        tags = None
    if tags is None or not all(isinstance(tag, str) for tag in tags):
        msg = f"Option 'on' must be a context name or a collection of names, got {on!r}"
        raise InvalidOptionError(msg)
    return context is None or context in tags
