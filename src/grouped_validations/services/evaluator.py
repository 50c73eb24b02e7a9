"""RuleEvaluator — dispatches a rule to the validator registered for its kind.

The engine never implements field checks itself. Validators are collected
from plugins (built-in ``presence`` plus any entry-point plugins) and may
also be registered directly for a single evaluator.

INVARIANT: Plugin failures during post-run notification are warnings, never errors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from grouped_validations.exceptions import UnknownValidatorError
from grouped_validations.plugins.builtins.presence import PresencePlugin
from grouped_validations.plugins.hookspecs import Validator
from grouped_validations.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class RuleEvaluator:
    """The external rule-evaluation primitive, backed by pluggy."""

    def __init__(self, plugin_manager: PluginManager | None = None) -> None:
        if plugin_manager is None:
            plugin_manager = PluginManager()
            plugin_manager.register_plugin(PresencePlugin(), name="presence")
        self._pm = plugin_manager
        self._validators: dict[str, Validator] | None = None
        self._overrides: dict[str, Validator] = {}

    @classmethod
    def from_plugins(cls, *, entry_points: bool = True, disabled: Iterable[str] = ()) -> RuleEvaluator:
        """Build an evaluator with the built-in plugins plus discovered ones."""
        pm = PluginManager()
        pm.register_plugin(PresencePlugin(), name="presence")
        if entry_points:
            names = pm.discover_and_load(disabled=disabled)
            logger.debug("Loaded validator plugins: %s", names)
        return cls(pm)

    @property
    def plugin_manager(self) -> PluginManager:
        return self._pm

    def register(self, kind: str, validator: Validator) -> None:
        """Register *validator* for *kind* on this evaluator only."""
        self._overrides[kind] = validator

    def refresh(self) -> None:
        """Forget the cached plugin validator map (after registering plugins)."""
        self._validators = None

    @property
    def kinds(self) -> list[str]:
        return sorted({*self._plugin_validators(), *self._overrides})

    def evaluate(self, entity: Any, field: str, kind: str, options: Mapping[str, Any]) -> str | None:
        """Run the validator for *kind*; return its failure message or None.

        Raises:
            UnknownValidatorError: If nothing is registered for *kind*.
        """
        validator = self._overrides.get(kind) or self._plugin_validators().get(kind)
        if validator is None:
            msg = f"No validator registered for kind {kind!r}"
            raise UnknownValidatorError(msg)
        return validator(entity, field, options)

    def notify_run(
        self,
        entity_type: str,
        groups: list[str | None],
        context: str | None,
        failures: int,
    ) -> None:
        try:
            self._pm.hook.post_run(
                entity_type=entity_type,
                groups=groups,
                context=context,
                failures=failures,
            )
        except Exception:
            logger.warning("post_run hook failed for %s", entity_type, exc_info=True)

    def _plugin_validators(self) -> dict[str, Validator]:
        if self._validators is None:
            self._validators = self._pm.collect_validators()
        return self._validators


@lru_cache(maxsize=1)
def default_evaluator() -> RuleEvaluator:
    """Process-wide evaluator configured from the current settings."""
    from grouped_validations.config.settings import get_settings

    plugins = get_settings().plugins
    return RuleEvaluator.from_plugins(entry_points=plugins.entry_points, disabled=plugins.disabled)
