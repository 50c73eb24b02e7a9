"""Extension layer — validator plugins via pluggy.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints.
INVARIANT: Plugin failures are warnings, never errors.
"""

from grouped_validations.plugins.hookspecs import hookimpl
from grouped_validations.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
