"""Validation groups and the per-entity-type group registry.

A registry belongs to one entity type. It holds the type's named groups
(insertion ordered) and its ungrouped rules; every RuleSpec lives in
exactly one of the two.

Groups are append-only: declaring a name again appends rules to the
existing group and merges new default options into the old ones.

Declaration offers two equivalent capture surfaces to a populate callback:

- implicit: RuleSpecs returned from the callback land in the group;
- explicit: rules registered through the :class:`GroupBuilder` handle
  passed to a one-argument callback land in the group.

Rules registered through the registry's own :meth:`GroupRegistry.register`
without a ``group`` argument are ungrouped, even inside a callback.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from grouped_validations.domain.options import normalize_options
from grouped_validations.domain.rules import PRESENCE, RuleSpec, flatten_rules, rules_for
from grouped_validations.exceptions import GroupNotFoundError

logger = logging.getLogger(__name__)


class DefaultsPrecedence(StrEnum):
    """Which declaration wins when group defaults conflict on a key."""

    FIRST = "first"
    LAST = "last"


class ValidationGroup:
    """Named, ordered, append-only collection of rules with default options."""

    def __init__(self, name: str, default_options: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self._defaults: dict[str, Any] = normalize_options(default_options)
        self._rules: list[RuleSpec] = []

    @property
    def default_options(self) -> Mapping[str, Any]:
        return MappingProxyType(dict(self._defaults))

    @property
    def rules(self) -> tuple[RuleSpec, ...]:
        return tuple(self._rules)

    def append(self, rule: RuleSpec) -> None:
        self._rules.append(rule)

    def merge_defaults(
        self,
        options: Mapping[str, Any] | None,
        precedence: DefaultsPrecedence = DefaultsPrecedence.FIRST,
    ) -> None:
        """Merge *options* into the group defaults; existing keys keep their value under FIRST."""
        for key, value in normalize_options(options).items():
            if precedence is DefaultsPrecedence.LAST or key not in self._defaults:
                self._defaults[key] = value

    def copy(self) -> ValidationGroup:
        clone = ValidationGroup(self.name, self._defaults)
        clone._rules = list(self._rules)
        return clone

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"ValidationGroup(name={self.name!r}, rules={len(self._rules)}, defaults={self._defaults!r})"


class GroupBuilder:
    """Explicit registration handle passed to one-argument populate callbacks.

    Every method threads the builder's group name through the registry's
    registrar, so rules declared here are captured into the group.
    """

    def __init__(self, registry: GroupRegistry, group: str) -> None:
        self._registry = registry
        self.group = group

    def add(self, rule: RuleSpec) -> RuleSpec:
        """Capture an already-built rule into the group."""
        self._registry.add_rule(rule, group=self.group)
        return rule

    def validates(self, *fields: str, kind: str, **options: Any) -> list[RuleSpec]:
        return self._registry.register(*fields, kind=kind, group=self.group, **options)

    def validates_presence_of(self, *fields: str, **options: Any) -> list[RuleSpec]:
        return self.validates(*fields, kind=PRESENCE, **options)


class GroupRegistry:
    """Per-entity-type store of validation groups and ungrouped rules.

    Mutations are serialised with a re-entrant lock (populate callbacks
    register rules while the declaring call holds it). Reads return
    snapshots.
    """

    def __init__(
        self,
        owner: str,
        *,
        defaults_precedence: DefaultsPrecedence | str = DefaultsPrecedence.FIRST,
    ) -> None:
        self.owner = owner
        self.defaults_precedence = DefaultsPrecedence(defaults_precedence)
        self._groups: dict[str, ValidationGroup] = {}
        self._ungrouped: list[RuleSpec] = []
        self._owned: set[int] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def declare_group(
        self,
        name: str,
        default_options: Mapping[str, Any] | None = None,
        populate: Callable[..., Any] | None = None,
    ) -> ValidationGroup:
        """Look up or create group *name*, merge its defaults, and populate it.

        *populate* is called with a :class:`GroupBuilder` when it accepts an
        argument, with nothing otherwise. RuleSpecs it returns are captured
        into the group alongside those registered through the builder.
        Returned rules the registry already holds (for example the list a
        builder method returns) are not added twice.

        The declaration is all-or-nothing: if *populate* raises, or returns
        something other than RuleSpecs, the registry is restored to its
        state before the call and the error propagates.
        """
        with self._lock:
            snapshot = self._snapshot()
            try:
                group = self._groups.get(name)
                if group is None:
                    group = self._groups[name] = ValidationGroup(name)
                group.merge_defaults(default_options, self.defaults_precedence)

                if populate is not None:
                    builder = GroupBuilder(self, name)
                    declared = populate(builder) if _accepts_argument(populate) else populate()
                    for rule in list(flatten_rules(declared)):
                        if not self.owns(rule):
                            builder.add(rule)
            except Exception:
                self._restore(snapshot)
                raise
            logger.debug("Declared validation group %s on %s (%d rules)", name, self.owner, len(group))
            return group

    def add_rule(self, rule: RuleSpec, *, group: str | None = None) -> None:
        """Append *rule* to *group* (created bare if missing) or to the ungrouped list.

        Raises:
            ValueError: If this registry already holds *rule*.
        """
        with self._lock:
            if self.owns(rule):
                msg = f"{rule!r} is already registered on {self.owner}"
                raise ValueError(msg)
            self._owned.add(id(rule))
            if group is None:
                self._ungrouped.append(rule)
                return
            target = self._groups.get(group)
            if target is None:
                target = self._groups[group] = ValidationGroup(group)
            target.append(rule)

    def register(
        self,
        *fields: str,
        kind: str,
        group: str | None = None,
        **options: Any,
    ) -> list[RuleSpec]:
        """Declare one rule per field and add them to *group* (ungrouped by default)."""
        rules = rules_for(*fields, kind=kind, **options)
        with self._lock:
            for rule in rules:
                self.add_rule(rule, group=group)
        return rules

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def owns(self, rule: RuleSpec) -> bool:
        return id(rule) in self._owned

    def list_group_names(self) -> list[str]:
        with self._lock:
            return list(self._groups)

    def resolve_group(self, name: str) -> ValidationGroup | None:
        return self._groups.get(name)

    def require_group(self, name: str) -> ValidationGroup:
        """Return group *name*.

        Raises:
            GroupNotFoundError: If no group with that name was declared.
        """
        group = self.resolve_group(name)
        if group is None:
            raise GroupNotFoundError(self.owner, name)
        return group

    @property
    def ungrouped(self) -> tuple[RuleSpec, ...]:
        with self._lock:
            return tuple(self._ungrouped)

    def groups(self) -> list[ValidationGroup]:
        with self._lock:
            return list(self._groups.values())

    def _snapshot(self) -> _RegistrySnapshot:
        return _RegistrySnapshot(
            groups={name: (group, len(group._rules), dict(group._defaults)) for name, group in self._groups.items()},
            ungrouped=len(self._ungrouped),
            owned=set(self._owned),
        )

    def _restore(self, snapshot: _RegistrySnapshot) -> None:
        """Undo every change made since *snapshot*, keeping group identities."""
        self._groups = {name: group for name, (group, _, _) in snapshot.groups.items()}
        for group, size, defaults in snapshot.groups.values():
            del group._rules[size:]
            group._defaults = defaults
        del self._ungrouped[snapshot.ungrouped:]
        self._owned = snapshot.owned

    def inherit(self, owner: str) -> GroupRegistry:
        """Return a registry for a subtype, seeded with copies of this one's rules."""
        child = GroupRegistry(owner, defaults_precedence=self.defaults_precedence)
        with self._lock:
            child._groups = {name: group.copy() for name, group in self._groups.items()}
            child._ungrouped = list(self._ungrouped)
            child._owned = set(self._owned)
        return child


@dataclass(frozen=True)
class _RegistrySnapshot:
    groups: dict[str, tuple[ValidationGroup, int, dict[str, Any]]]
    ungrouped: int
    owned: set[int]


def _accepts_argument(fn: Callable[..., Any]) -> bool:
    try:
        params = inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return False
    return len(params) > 0
