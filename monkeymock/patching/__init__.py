"""Patching infrastructure.

Holds the capability tables of interceptable entry points, the table of
original implementations (captured once, when this package is first
imported) and the process-wide record of which entry points are proxied.

Unlike a permanent install, nothing is patched at import: subsystems call
apply() when mocked and revert() when restored.
"""

from .core import ORIGINALS, Effect, Family, Operation, PathArg
from .install import apply, is_proxied, revert
from .table import COMMAND_OPERATIONS, FS_OPERATIONS

__all__ = [
    "apply",
    "COMMAND_OPERATIONS",
    "Effect",
    "Family",
    "FS_OPERATIONS",
    "is_proxied",
    "Operation",
    "ORIGINALS",
    "PathArg",
    "revert",
]
