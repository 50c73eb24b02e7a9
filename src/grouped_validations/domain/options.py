"""Rule options — key normalisation, group-default merging, and guards.

Recognised option keys:

- ``if``: guard that must be truthy for the rule to run.
- ``unless``: guard that retires the rule when truthy.
- ``on``: context tag (or collection of tags) the rule applies to.

Every other key is a validator-specific parameter passed through untouched.
"""

from __future__ import annotations

import inspect
import keyword
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from grouped_validations.exceptions import InvalidOptionError

IF = "if"
UNLESS = "unless"
ON = "on"


def normalize_options(options: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a copy of *options* with keyword-safe spellings canonicalised.

    ``if_`` and ``unless_`` (and any other ``<keyword>_``) become ``if`` /
    ``unless`` so callers can write ``validates_presence_of("x", if_=...)``.
    """
    normalized: dict[str, Any] = {}
    for key, value in (options or {}).items():
        stripped = key[:-1] if key.endswith("_") else key
        if stripped != key and (keyword.iskeyword(stripped) or stripped == UNLESS):
            key = stripped
        normalized[key] = value
    return normalized


def merge_options(
    group_defaults: Mapping[str, Any],
    rule_options: Mapping[str, Any],
    explicit_keys: Iterable[str],
) -> dict[str, Any]:
    """Merge a group's default options into a rule's options.

    A key the rule set explicitly keeps the rule's value and the group value
    is discarded outright (two ``if`` guards are never combined). Any other
    group default is injected only where the rule holds no value yet.
    """
    explicit = frozenset(explicit_keys)
    effective = dict(rule_options)
    for key, value in group_defaults.items():
        if key in explicit:
            continue
        effective.setdefault(key, value)
    return effective


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class GuardKind(StrEnum):
    """Variants of the guard tagged union."""

    ALWAYS = "always"
    NEVER = "never"
    PREDICATE = "predicate"


@dataclass(frozen=True)
class Guard:
    """A late-bound condition evaluated against an entity instance.

    Predicate guards are invoked on every evaluation; results are never
    cached because they may depend on mutable entity state.
    """

    kind: GuardKind
    predicate: Callable[[Any], Any] | None = None

    @classmethod
    def always(cls) -> Guard:
        return cls(GuardKind.ALWAYS)

    @classmethod
    def never(cls) -> Guard:
        return cls(GuardKind.NEVER)

    @classmethod
    def from_option(cls, value: Any, *, key: str = IF) -> Guard:
        """Build a guard from a raw ``if``/``unless`` option value.

        Accepts booleans, callables taking the entity (or nothing), and
        strings naming an entity attribute or method.

        Raises:
            InvalidOptionError: If *value* is none of the above.
        """
        if isinstance(value, bool):
            return cls.always() if value else cls.never()
        if isinstance(value, str):
            return cls(GuardKind.PREDICATE, _attribute_predicate(value))
        if callable(value):
            return cls(GuardKind.PREDICATE, _entity_predicate(value))
        msg = f"Option {key!r} must be a bool, a callable or an attribute name, got {value!r}"
        raise InvalidOptionError(msg)

    def test(self, entity: Any) -> bool:
        """Evaluate the guard for *entity*."""
        if self.kind is GuardKind.ALWAYS:
            return True
        if self.kind is GuardKind.NEVER:
            return False
        assert self.predicate is not None
        return bool(self.predicate(entity))


def _attribute_predicate(name: str) -> Callable[[Any], Any]:
    def predicate(entity: Any) -> Any:
        attr = getattr(entity, name)
        return attr() if callable(attr) else attr

    return predicate


def _entity_predicate(fn: Callable[..., Any]) -> Callable[[Any], Any]:
    """Adapt *fn* so it can be called with the entity regardless of arity."""
    try:
        params = inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return fn
    if not params:
        return lambda _entity: fn()
    return fn


def guards_pass(options: Mapping[str, Any], entity: Any) -> bool:
    """Check the ``unless`` guard first, then the ``if`` guard."""
    if UNLESS in options and Guard.from_option(options[UNLESS], key=UNLESS).test(entity):
        return False
    if IF in options and not Guard.from_option(options[IF], key=IF).test(entity):
        return False
    return True
