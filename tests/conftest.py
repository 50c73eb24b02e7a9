"""Shared pytest fixtures and test helpers for grouped_validations tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from grouped_validations.config.settings import get_settings
from grouped_validations.entity import Validatable
from grouped_validations.services.evaluator import RuleEvaluator, default_evaluator


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep settings discovery away from the developer's environment.

    Runs every test from an empty temp directory with no
    ``GROUPED_VALIDATIONS_*`` variables set, and drops cached settings
    before and after.
    """
    import os

    for name in list(os.environ):
        if name.startswith("GROUPED_VALIDATIONS_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    default_evaluator.cache_clear()
    yield
    get_settings.cache_clear()
    default_evaluator.cache_clear()


@pytest.fixture
def evaluator() -> RuleEvaluator:
    """Evaluator with only the built-in presence validator."""
    return RuleEvaluator()


@pytest.fixture
def person_cls(evaluator: RuleEvaluator) -> type[Validatable]:
    """A fresh Person entity class with an empty validation registry."""
    return make_person_class(evaluator)


@pytest.fixture
def person(person_cls: type[Validatable]) -> Any:
    return person_cls()


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def make_person_class(evaluator: RuleEvaluator | None = None) -> type[Validatable]:
    """Build a Person class with ``first_name``, ``last_name``, ``sex`` and ``persisted``."""

    class Person(Validatable, evaluator=evaluator):
        def __init__(self, **fields: Any) -> None:
            self.first_name: str | None = fields.get("first_name")
            self.last_name: str | None = fields.get("last_name")
            self.sex: str | None = fields.get("sex")
            self.persisted: bool = fields.get("persisted", False)

    return Person


def declare_name_groups(person_cls: type[Validatable]) -> None:
    """Two single-field groups plus an ungrouped ``sex`` presence rule."""
    person_cls.validation_group("first_name_group", lambda g: g.validates_presence_of("first_name"))
    person_cls.validation_group("last_name_group", lambda g: g.validates_presence_of("last_name"))
    person_cls.validates_presence_of("sex")
