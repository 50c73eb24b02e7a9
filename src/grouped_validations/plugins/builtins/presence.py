"""Built-in presence validator.

A value is blank when it is ``None``, ``False``, a whitespace-only string,
or an empty collection. Blank values fail with ``"can't be blank"`` unless
the rule supplies its own ``message`` option.
"""

from __future__ import annotations

from collections.abc import Mapping, Sized
from typing import Any

from grouped_validations.plugins.hookspecs import Validator, hookimpl

BLANK_MESSAGE = "can't be blank"


def is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def validate_presence(entity: Any, field: str, options: Mapping[str, Any]) -> str | None:
    if is_blank(getattr(entity, field, None)):
        return str(options.get("message", BLANK_MESSAGE))
    return None


class PresencePlugin:
    """Contributes the ``presence`` validator kind."""

    @hookimpl
    def register_validators(self) -> dict[str, Validator]:
        return {"presence": validate_presence}
