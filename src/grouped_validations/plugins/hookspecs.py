"""Pluggy hook specifications for grouped_validations.

One setup-time hook lets plugins contribute validator kinds (the rule
evaluation primitive the engine delegates to). One notification hook is
dispatched after every validation run.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("grouped_validations")
hookimpl = pluggy.HookimplMarker("grouped_validations")

# (entity, field, options) -> failure message, or None when the value passes
Validator = Callable[[Any, str, Mapping[str, Any]], str | None]


class GroupedValidationsHookSpec:
    """Hook specifications for the grouped_validations plugin system."""

    @hookspec
    def register_validators(self) -> dict[str, Validator] | None:
        """Return validator kind -> callable mappings."""

    @hookspec
    def post_run(
        self,
        entity_type: str,
        groups: list[str | None],
        context: str | None,
        failures: int,
    ) -> None:
        """Called after a validation run completes."""
