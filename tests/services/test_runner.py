"""Tests for GroupRunner: guards, context filtering, and result accumulation."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from grouped_validations.domain.groups import GroupRegistry
from grouped_validations.domain.rules import presence_of
from grouped_validations.exceptions import GroupNotFoundError, InvalidOptionError, UnknownValidatorError
from grouped_validations.plugins.hookspecs import hookimpl
from grouped_validations.services.aggregator import ErrorSet
from grouped_validations.services.evaluator import RuleEvaluator
from grouped_validations.services.runner import GroupRunner


def _entity(**fields: Any) -> SimpleNamespace:
    base = {"first_name": None, "last_name": None, "sex": None, "persisted": False}
    base.update(fields)
    return SimpleNamespace(**base)


@pytest.fixture
def registry() -> GroupRegistry:
    registry = GroupRegistry("Person")
    registry.declare_group("first_name_group", populate=lambda: presence_of("first_name"))
    registry.declare_group("last_name_group", populate=lambda: presence_of("last_name"))
    registry.register("sex", kind="presence")
    return registry


@pytest.fixture
def runner(registry: GroupRegistry) -> GroupRunner:
    return GroupRunner(registry, RuleEvaluator())


class TestRunGroup:
    def test_reports_failures_for_group_only(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        assert runner.run_group(_entity(), "first_name_group", errors) is False
        assert errors.flat() == {"first_name": ["can't be blank"]}

    def test_passes(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        assert runner.run_group(_entity(first_name="Dave"), "first_name_group", errors) is True
        assert errors.is_empty

    @pytest.mark.parametrize("name", ["dummy", "", "FIRST_NAME_GROUP"])
    def test_unknown_group_raises(self, runner: GroupRunner, name: str) -> None:
        with pytest.raises(GroupNotFoundError):
            runner.run_group(_entity(), name, ErrorSet())

    def test_does_not_clear_prior_records(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        errors.add("other", "stale")
        assert runner.run_group(_entity(first_name="Dave"), "first_name_group", errors) is True
        assert errors.flat() == {"other": ["stale"]}

    def test_failure_does_not_short_circuit(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", populate=lambda: presence_of("first_name", "last_name", "sex"))
        errors = ErrorSet()
        GroupRunner(registry, RuleEvaluator()).run_group(_entity(last_name="Smith"), "name", errors)
        assert errors.fields == ["first_name", "sex"]

    def test_records_carry_group_and_kind(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        runner.run_group(_entity(), "last_name_group", errors)
        (record,) = errors.records
        assert record.group == "last_name_group"
        assert record.kind == "presence"


class TestGroupDefaults:
    def test_group_guard_applies_to_rule_without_guard(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"if": lambda p: p.last_name is None}, lambda: presence_of("first_name"))
        runner = GroupRunner(registry, RuleEvaluator())

        errors = ErrorSet()
        assert runner.run_group(_entity(), "name", errors) is False
        assert len(errors) == 1

        errors = ErrorSet()
        assert runner.run_group(_entity(last_name="Smith"), "name", errors) is True

    def test_group_false_guard_suppresses(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"if": lambda: False}, lambda: presence_of("first_name"))
        errors = ErrorSet()
        assert GroupRunner(registry, RuleEvaluator()).run_group(_entity(), "name", errors) is True

    def test_explicit_rule_guard_wins(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"if": lambda: True}, lambda: presence_of("first_name", if_=lambda: False))
        errors = ErrorSet()
        assert GroupRunner(registry, RuleEvaluator()).run_group(_entity(), "name", errors) is True

    def test_explicit_true_guard_not_anded_with_group_false(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"if": False}, lambda: presence_of("first_name", if_=True))
        errors = ErrorSet()
        assert GroupRunner(registry, RuleEvaluator()).run_group(_entity(), "name", errors) is False

    def test_unless_retires_rule(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"unless": "persisted"}, lambda: presence_of("first_name"))
        runner = GroupRunner(registry, RuleEvaluator())
        assert runner.run_group(_entity(persisted=True), "name", ErrorSet()) is True
        assert runner.run_group(_entity(persisted=False), "name", ErrorSet()) is False

    def test_group_message_default(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"message": "is required"}, lambda: presence_of("first_name"))
        errors = ErrorSet()
        GroupRunner(registry, RuleEvaluator()).run_group(_entity(), "name", errors)
        assert errors["first_name"] == ["is required"]

    def test_malformed_guard_fails_fast(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", populate=lambda: presence_of("first_name", if_=1))
        with pytest.raises(InvalidOptionError):
            GroupRunner(registry, RuleEvaluator()).run_group(_entity(), "name", ErrorSet())

    def test_unknown_kind_fails_fast(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", populate=lambda g: g.validates("first_name", kind="uniqueness"))
        with pytest.raises(UnknownValidatorError):
            GroupRunner(registry, RuleEvaluator()).run_group(_entity(), "name", ErrorSet())


class TestContext:
    @pytest.fixture
    def runner(self) -> GroupRunner:
        registry = GroupRegistry("Person")
        registry.declare_group("name", populate=lambda: presence_of("last_name", on="update"))
        return GroupRunner(registry, RuleEvaluator())

    def test_explicit_context_filters(self, runner: GroupRunner) -> None:
        assert runner.run_group(_entity(), "name", ErrorSet(), context="create") is True
        assert runner.run_group(_entity(), "name", ErrorSet(), context="update") is False

    def test_inferred_from_lifecycle(self, runner: GroupRunner) -> None:
        assert runner.run_group(_entity(persisted=False), "name", ErrorSet()) is True
        assert runner.run_group(_entity(persisted=True), "name", ErrorSet()) is False

    def test_untracked_entity_runs_tagged_rules(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        assert runner.run_group(SimpleNamespace(last_name=None), "name", errors) is False
        assert errors.flat() == {"last_name": ["can't be blank"]}

    def test_group_level_context(self) -> None:
        registry = GroupRegistry("Person")
        registry.declare_group("name", {"on": "create"}, lambda: presence_of("first_name"))
        runner = GroupRunner(registry, RuleEvaluator())
        assert runner.run_group(_entity(persisted=True), "name", ErrorSet()) is True
        assert runner.run_group(_entity(persisted=False), "name", ErrorSet()) is False


class TestRunGroups:
    def test_union_of_individual_runs(self, runner: GroupRunner) -> None:
        entity = _entity()
        first, last, both = ErrorSet(), ErrorSet(), ErrorSet()
        runner.run_group(entity, "first_name_group", first)
        runner.run_group(entity, "last_name_group", last)
        assert runner.run_groups(entity, ["first_name_group", "last_name_group"], both) is False
        assert both.flat() == {**first.flat(), **last.flat()}
        assert len(both) == 2

    def test_true_when_all_pass(self, runner: GroupRunner) -> None:
        entity = _entity(first_name="Dave", last_name="Smith")
        assert runner.run_groups(entity, ["first_name_group", "last_name_group"], ErrorSet()) is True

    def test_unknown_name_fails_before_running(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        with pytest.raises(GroupNotFoundError):
            runner.run_groups(_entity(), ["first_name_group", "dummy"], errors)
        assert errors.is_empty
        assert errors.has_run is False


class TestRunAll:
    def test_runs_grouped_and_ungrouped(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        assert runner.run_all(_entity(), errors) is False
        assert errors.fields == ["sex", "first_name", "last_name"]

    def test_ungrouped_last(self, registry: GroupRegistry) -> None:
        errors = ErrorSet()
        GroupRunner(registry, RuleEvaluator(), ungrouped_first=False).run_all(_entity(), errors)
        assert errors.fields == ["first_name", "last_name", "sex"]

    def test_all_valid(self, runner: GroupRunner) -> None:
        errors = ErrorSet()
        assert runner.run_all(_entity(first_name="Dave", last_name="Smith", sex="Male"), errors) is True
        assert errors.evaluated_groups == [None, "first_name_group", "last_name_group"]

    def test_post_run_dispatched(self, registry: GroupRegistry) -> None:
        calls: list[tuple[Any, ...]] = []

        class Recorder:
            @hookimpl
            def post_run(self, entity_type: str, groups: list[str | None], context: str | None, failures: int) -> None:
                calls.append((entity_type, groups, context, failures))

        evaluator = RuleEvaluator()
        evaluator.plugin_manager.register_plugin(Recorder())
        GroupRunner(registry, evaluator).run_all(_entity(), ErrorSet())
        assert calls == [("Person", [None, "first_name_group", "last_name_group"], "create", 3)]
