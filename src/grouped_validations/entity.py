"""Validatable — the entity-facing declaration, execution and inspection API.

Each subclass owns a :class:`GroupRegistry`, created when the class is
defined (seeded from the parent class's registry) unless one is injected::

    class Person(Validatable):
        def __init__(self) -> None:
            self.first_name = None
            self.last_name = None
            self.sex = None

    @Person.validation_group("name", if_=lambda p: p.sex is not None)
    def _name(group):
        group.validates_presence_of("first_name")
        return presence_of("last_name")

    Person.validates_presence_of("sex")

    person = Person()
    person.group_valid("name")      # runs only the "name" group
    person.valid()                  # runs everything
    person.grouped_errors()         # {None: {...}, "name": {...}}

Every execution call resets the instance's error set before running.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from grouped_validations.config.settings import get_settings
from grouped_validations.domain.groups import GroupRegistry, ValidationGroup
from grouped_validations.domain.rules import PRESENCE, RuleSpec
from grouped_validations.services.aggregator import ErrorSet, GroupedErrors
from grouped_validations.services.evaluator import RuleEvaluator, default_evaluator
from grouped_validations.services.runner import GroupRunner

_ERRORS_ATTR = "_validation_errors"


class Validatable:
    """Mixin giving an entity class named validation groups."""

    _validation_registry: ClassVar[GroupRegistry]
    _rule_evaluator: ClassVar[RuleEvaluator | None] = None

    def __init_subclass__(
        cls,
        *,
        registry: GroupRegistry | None = None,
        evaluator: RuleEvaluator | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        if registry is None:
            parent = getattr(cls, "_validation_registry", None)
            if parent is not None:
                registry = parent.inherit(cls.__qualname__)
            else:
                precedence = get_settings().engine.defaults_precedence
                registry = GroupRegistry(cls.__qualname__, defaults_precedence=precedence)
        cls._validation_registry = registry
        if evaluator is not None:
            cls._rule_evaluator = evaluator

    # ------------------------------------------------------------------
    # Declaration API
    # ------------------------------------------------------------------

    @classmethod
    def validation_group(
        cls,
        name: str,
        populate: Callable[..., Any] | None = None,
        /,
        **defaults: Any,
    ) -> Any:
        """Declare (or extend) group *name* with default options *defaults*.

        Called with a *populate* callback it returns the group. Called
        without one it declares the group (possibly empty) right away and
        returns a decorator, so a function can populate the group directly.
        """
        registry = cls._registry()
        if populate is None:
            registry.declare_group(name, defaults)

            def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
                registry.declare_group(name, None, fn)
                return fn

            return decorator
        return registry.declare_group(name, defaults, populate)

    @classmethod
    def validates(cls, *fields: str, kind: str, group: str | None = None, **options: Any) -> list[RuleSpec]:
        """Register rules of *kind*; ungrouped unless *group* names a group."""
        return cls._registry().register(*fields, kind=kind, group=group, **options)

    @classmethod
    def validates_presence_of(cls, *fields: str, group: str | None = None, **options: Any) -> list[RuleSpec]:
        return cls.validates(*fields, kind=PRESENCE, group=group, **options)

    @classmethod
    def validation_groups(cls) -> list[str]:
        """Names of the declared groups, in declaration order."""
        return cls._registry().list_group_names()

    @classmethod
    def validation_registry(cls) -> GroupRegistry:
        return cls._registry()

    @classmethod
    def resolve_validation_group(cls, name: str) -> ValidationGroup | None:
        return cls._registry().resolve_group(name)

    # ------------------------------------------------------------------
    # Execution API
    # ------------------------------------------------------------------

    def valid(self, *, context: str | None = None) -> bool:
        """Full validity check: ungrouped rules plus every group."""
        errors = self._reset_errors()
        return self._group_runner().run_all(self, errors, context=context)

    def group_valid(self, name: str, *, context: str | None = None) -> bool:
        """Run only group *name*.

        Raises:
            GroupNotFoundError: If *name* is not declared.
        """
        errors = self._reset_errors()
        return self._group_runner().run_group(self, name, errors, context=context)

    def groups_valid(self, *names: str, context: str | None = None) -> bool:
        """Run the named groups in order, accumulating their failures."""
        errors = self._reset_errors()
        return self._group_runner().run_groups(self, names, errors, context=context)

    # ------------------------------------------------------------------
    # Inspection API
    # ------------------------------------------------------------------

    @property
    def errors(self) -> ErrorSet:
        errors = self.__dict__.get(_ERRORS_ATTR)
        if errors is None:
            errors = ErrorSet()
            self.__dict__[_ERRORS_ATTR] = errors
        return errors

    def flat_errors(self) -> dict[str, list[str]]:
        return self.errors.flat()

    def grouped_errors(self, *, context: str | None = None) -> GroupedErrors:
        """Failures partitioned by group, running a full check first if needed."""
        if context is not None or not self.errors.has_run:
            self.valid(context=context)
        return self.errors.grouped()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset_errors(self) -> ErrorSet:
        errors = self.errors
        errors.clear()
        return errors

    @classmethod
    def _registry(cls) -> GroupRegistry:
        registry = getattr(cls, "_validation_registry", None)
        if registry is None:
            msg = f"{cls.__qualname__} has no validation registry; declare validations on a subclass"
            raise TypeError(msg)
        return registry

    @classmethod
    def _group_runner(cls) -> GroupRunner:
        evaluator = cls._rule_evaluator or default_evaluator()
        return GroupRunner(
            cls._registry(),
            evaluator,
            ungrouped_first=get_settings().engine.ungrouped_first,
        )
