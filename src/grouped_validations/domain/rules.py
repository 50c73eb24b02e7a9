"""RuleSpec — one field-level validation check plus its options.

Rules are built once at declaration time and never mutated afterwards.
The helpers here return bare RuleSpecs that are not yet owned by any
registry; a group's populate callback may return them to have them captured
into the group.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from dataclasses import field as dc_field
from types import MappingProxyType
from typing import Any

from grouped_validations.domain.options import normalize_options

PRESENCE = "presence"


@dataclass(frozen=True)
class RuleSpec:
    """Immutable description of one field validation.

    Attributes:
        field: Attribute being checked.
        kind: Validator key resolved by the rule evaluator.
        options: Read-only option bag (guards, ``on`` context, validator params).
        explicit_keys: Option keys the declarer set directly on this rule;
            group defaults never override these.
    """

    field: str
    kind: str
    options: Mapping[str, Any] = dc_field(default_factory=dict)
    explicit_keys: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        object.__setattr__(self, "explicit_keys", frozenset(self.explicit_keys))

    @classmethod
    def declare(cls, field_name: str, kind: str, options: Mapping[str, Any] | None = None) -> RuleSpec:
        """Build a rule whose every supplied option is marked explicit."""
        normalized = normalize_options(options)
        return cls(field_name, kind, normalized, frozenset(normalized))

    def __repr__(self) -> str:
        return f"RuleSpec(field={self.field!r}, kind={self.kind!r}, options={dict(self.options)!r})"


def rules_for(*fields: str, kind: str, **options: Any) -> list[RuleSpec]:
    """Declare one rule of *kind* per field, sharing *options*."""
    if not fields:
        msg = "At least one field name is required"
        raise ValueError(msg)
    return [RuleSpec.declare(name, kind, options) for name in fields]


def presence_of(*fields: str, **options: Any) -> list[RuleSpec]:
    """Declare presence rules for *fields*."""
    return rules_for(*fields, kind=PRESENCE, **options)


def flatten_rules(declared: Any) -> Iterator[RuleSpec]:
    """Yield RuleSpecs from a populate callback's return value.

    Accepts ``None``, a single RuleSpec, or arbitrarily nested iterables of
    RuleSpecs. Anything else is a caller defect.
    """
    if declared is None:
        return
    if isinstance(declared, RuleSpec):
        yield declared
        return
    if isinstance(declared, Iterable) and not isinstance(declared, (str, bytes, Mapping)):
        for item in declared:
            yield from flatten_rules(item)
        return
    msg = f"Expected RuleSpec declarations, got {declared!r}"
    raise TypeError(msg)
