"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, grouped_validations.toml only
contains overrides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from grouped_validations.domain.groups import DefaultsPrecedence


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    ungrouped_first: bool = True
    defaults_precedence: DefaultsPrecedence = DefaultsPrecedence.FIRST


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    entry_points: bool = True
    disabled: list[str] = Field(default_factory=list)
