"""Tests for RuleSpec and the declaration helpers."""

from __future__ import annotations

import pytest

from grouped_validations.domain.rules import (
    PRESENCE,
    RuleSpec,
    flatten_rules,
    presence_of,
    rules_for,
)


class TestRuleSpec:
    def test_declare_marks_options_explicit(self) -> None:
        rule = RuleSpec.declare("first_name", PRESENCE, {"if_": True, "message": "required"})
        assert dict(rule.options) == {"if": True, "message": "required"}
        assert rule.explicit_keys == frozenset({"if", "message"})

    def test_options_read_only(self) -> None:
        rule = RuleSpec.declare("first_name", PRESENCE, {"on": "create"})
        with pytest.raises(TypeError):
            rule.options["on"] = "update"  # type: ignore[index]

    def test_frozen(self) -> None:
        rule = RuleSpec("first_name", PRESENCE)
        with pytest.raises(Exception):
            rule.field = "last_name"  # type: ignore[misc]

    def test_source_mapping_copied(self) -> None:
        options = {"on": "create"}
        rule = RuleSpec("first_name", PRESENCE, options, frozenset(options))
        options["on"] = "update"
        assert rule.options["on"] == "create"

    def test_equality(self) -> None:
        assert RuleSpec.declare("a", PRESENCE, {"on": "create"}) == RuleSpec.declare("a", PRESENCE, {"on": "create"})


class TestHelpers:
    def test_rules_for_one_rule_per_field(self) -> None:
        rules = rules_for("first_name", "last_name", kind="format", with_="x")
        assert [r.field for r in rules] == ["first_name", "last_name"]
        assert all(r.kind == "format" for r in rules)

    def test_rules_for_requires_field(self) -> None:
        with pytest.raises(ValueError, match="field"):
            rules_for(kind=PRESENCE)

    def test_presence_of(self) -> None:
        (rule,) = presence_of("sex", on="update")
        assert rule.kind == PRESENCE
        assert rule.options["on"] == "update"


class TestFlattenRules:
    def test_none(self) -> None:
        assert list(flatten_rules(None)) == []

    def test_nested(self) -> None:
        a, b, c = presence_of("a", "b", "c")
        assert list(flatten_rules([a, (b, [c])])) == [a, b, c]

    def test_single(self) -> None:
        (a,) = presence_of("a")
        assert list(flatten_rules(a)) == [a]

    def test_rejects_other_values(self) -> None:
        with pytest.raises(TypeError, match="RuleSpec"):
            list(flatten_rules(["first_name"]))
