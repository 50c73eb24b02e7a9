"""GroupRunner — executes validation groups against an entity instance.

For every rule, in declaration order:

1. merge the group's default options into the rule's options;
2. evaluate ``unless`` (truthy retires the rule), then ``if`` (falsy retires it);
3. check the ``on`` tag against the effective context;
4. delegate to the rule evaluator and record a failure, if any.

A failing rule never stops later rules. The runner appends to the error
set it is given and never clears it; resetting between runs is the
caller's job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from grouped_validations.domain.groups import GroupRegistry, ValidationGroup
from grouped_validations.domain.lifecycle import applies_in_context, resolve_context
from grouped_validations.domain.options import ON, guards_pass, merge_options
from grouped_validations.domain.rules import RuleSpec
from grouped_validations.services.aggregator import ErrorSet
from grouped_validations.services.evaluator import RuleEvaluator

logger = logging.getLogger(__name__)


class GroupRunner:
    """Runs one, several, or all groups of an entity type's registry."""

    def __init__(
        self,
        registry: GroupRegistry,
        evaluator: RuleEvaluator,
        *,
        ungrouped_first: bool = True,
    ) -> None:
        self._registry = registry
        self._evaluator = evaluator
        self._ungrouped_first = ungrouped_first

    def run_group(self, entity: Any, name: str, errors: ErrorSet, *, context: str | None = None) -> bool:
        """Run group *name*; True iff it appended no failures.

        Raises:
            GroupNotFoundError: If *name* is not declared for the entity type.
        """
        return self.run_groups(entity, [name], errors, context=context)

    def run_groups(
        self,
        entity: Any,
        names: Sequence[str],
        errors: ErrorSet,
        *,
        context: str | None = None,
    ) -> bool:
        """Run the named groups in order; True iff none appended failures.

        Every name is resolved before any rule runs, so an unknown name
        fails the call without partial evaluation.
        """
        groups = [self._registry.require_group(name) for name in names]
        effective = resolve_context(context, entity)
        before = errors.count
        for group in groups:
            self._run_group(entity, group, effective, errors)
        return self._finish([g.name for g in groups], effective, errors, before)

    def run_all(self, entity: Any, errors: ErrorSet, *, context: str | None = None) -> bool:
        """Run the ungrouped rules and every declared group."""
        effective = resolve_context(context, entity)
        before = errors.count
        groups = self._registry.groups()
        if self._ungrouped_first:
            self._run_ungrouped(entity, effective, errors)
        for group in groups:
            self._run_group(entity, group, effective, errors)
        if not self._ungrouped_first:
            self._run_ungrouped(entity, effective, errors)
        names: list[str | None] = [None, *(g.name for g in groups)]
        return self._finish(names, effective, errors, before)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_group(self, entity: Any, group: ValidationGroup, context: str | None, errors: ErrorSet) -> None:
        errors.mark_evaluated(group.name)
        self._run_rules(entity, group.rules, group.default_options, group.name, context, errors)

    def _run_ungrouped(self, entity: Any, context: str | None, errors: ErrorSet) -> None:
        errors.mark_evaluated(None)
        self._run_rules(entity, self._registry.ungrouped, {}, None, context, errors)

    def _run_rules(
        self,
        entity: Any,
        rules: Iterable[RuleSpec],
        defaults: Mapping[str, Any],
        group: str | None,
        context: str | None,
        errors: ErrorSet,
    ) -> None:
        for rule in rules:
            options = merge_options(defaults, rule.options, rule.explicit_keys)
            if not guards_pass(options, entity):
                logger.debug("Guard retired %s rule on %s (group=%s)", rule.kind, rule.field, group)
                continue
            if not applies_in_context(options.get(ON), context):
                logger.debug(
                    "Skipping %s rule on %s outside context %s (group=%s)",
                    rule.kind,
                    rule.field,
                    context,
                    group,
                )
                continue
            message = self._evaluator.evaluate(entity, rule.field, rule.kind, options)
            if message is not None:
                errors.add(rule.field, message, group=group, kind=rule.kind)
                logger.debug("Rule %s failed on %s (group=%s): %s", rule.kind, rule.field, group, message)

    def _finish(
        self,
        groups: list[str | None],
        context: str | None,
        errors: ErrorSet,
        before: int,
    ) -> bool:
        failures = errors.count - before
        self._evaluator.notify_run(self._registry.owner, groups, context, failures)
        return failures == 0
