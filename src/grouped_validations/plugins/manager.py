"""Plugin discovery, loading, and validator collection.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints
in the ``grouped_validations.plugins`` group. Built-in plugins are
registered directly by the rule evaluator.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable

import pluggy

from grouped_validations.plugins.hookspecs import GroupedValidationsHookSpec, Validator

PROJECT_NAME = "grouped_validations"
ENTRY_POINT_GROUP = "grouped_validations.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(GroupedValidationsHookSpec)
        self._loaded: bool = False

    def discover_and_load(self, *, disabled: Iterable[str] = ()) -> list[str]:
        """Load entry-point plugins, skipping (and blocking) *disabled* names.

        Returns a list of registered plugin names.
        """
        for name in disabled:
            self._pm.set_blocked(name)
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        """Return all registered plugins."""
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        """Return names of all registered plugins."""
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def collect_validators(self) -> dict[str, Validator]:
        """Merge the validator maps contributed by every plugin.

        Plugins registered later take precedence on conflicting kinds. A
        plugin whose hook raises or returns something other than a dict is
        skipped with a warning.
        """
        validators: dict[str, Validator] = {}
        for impl in self._pm.hook.register_validators.get_hookimpls():  # registration order
            plugin_name = impl.plugin_name
            try:
                contributed = impl.function()
            except Exception:
                logger.warning(
                    "Failed to collect validators from plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue
            if contributed is None:
                continue
            if not isinstance(contributed, dict):
                logger.warning("Plugin %s returned non-dict validator registrations", plugin_name)
                continue
            for kind, validator in contributed.items():
                if not callable(validator):
                    logger.warning("Skipping non-callable validator %r from plugin %s", kind, plugin_name)
                    continue
                validators[kind] = validator
        return validators

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue
            if not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)

            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any methods decorated with ``@hookimpl``.

        Pluggy's ``HookimplMarker("grouped_validations")`` sets a
        ``grouped_validations_impl`` attribute on decorated methods.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, f"{PROJECT_NAME}_impl", None):
                return True
        return False
