"""Patch installation and the process-wide install state."""

import logging
import shutil
import tempfile
import threading
from typing import Any, Callable, Iterable, Mapping

from ..errors import AlreadyInstalledError
from .core import ORIGINALS, Operation

logger = logging.getLogger(__name__)

_lock = threading.Lock()

# (id(owner), attribute) -> operation name, for every proxied entry point
_proxied: dict[tuple[int, str], str] = {}


def _describe(owner: Any, attr: str) -> str:
    return f"{getattr(owner, '__name__', type(owner).__name__)}.{attr}"


def is_proxied(owner: Any, attr: str) -> bool:
    """Whether owner.attr is currently replaced by a dispatcher."""
    return (id(owner), attr) in _proxied


def apply(
    operations: Iterable[Operation],
    dispatchers: Mapping[str, Callable[..., Any]],
) -> None:
    """Replace every target of operations with its dispatcher.

    All targets are checked before any is patched, so a failed install
    leaves nothing half-patched.

    Raises:
        AlreadyInstalledError: If any target is already proxied.
    """
    operations = tuple(operations)
    with _lock:
        taken = [
            _describe(owner, attr)
            for operation in operations
            for owner, attr in operation.targets
            if (id(owner), attr) in _proxied
        ]
        if taken:
            raise AlreadyInstalledError(
                f"Already proxied, restore first: {', '.join(taken)}"
            )
        for operation in operations:
            dispatcher = dispatchers[operation.name]
            for owner, attr in operation.targets:
                setattr(owner, attr, dispatcher)
                _proxied[(id(owner), attr)] = operation.name
    logger.debug("Patched %s", ", ".join(o.name for o in operations))


def revert(operations: Iterable[Operation]) -> None:
    """Put the captured originals back. Targets not proxied are skipped."""
    operations = tuple(operations)
    with _lock:
        for operation in operations:
            for owner, attr in operation.targets:
                if _proxied.pop((id(owner), attr), None) is not None:
                    setattr(owner, attr, ORIGINALS[operation.name])
    logger.debug("Restored %s", ", ".join(o.name for o in operations))


def patch_internals(unlink: Callable[..., Any]) -> dict[str, Any]:
    """Point stdlib internals that bypass module attributes at dispatchers.

    Returns the saved values for restore_internals().
    """
    saved: dict[str, Any] = {}

    # rmtree's fd-based implementation (os.open/fstat/scandir(fd)) bypasses
    # string-path patches; force the path-based one.
    if hasattr(shutil, "_use_fd_functions"):
        saved["_use_fd_functions"] = shutil._use_fd_functions  # type: ignore[attr-defined]
        shutil._use_fd_functions = False  # type: ignore[attr-defined]

    # Python 3.14+: _rmtree_impl is bound at import time, so setting
    # _use_fd_functions=False doesn't affect which rmtree runs.
    if hasattr(shutil, "_rmtree_impl") and hasattr(shutil, "_rmtree_unsafe"):
        saved["_rmtree_impl"] = shutil._rmtree_impl  # type: ignore[attr-defined]
        shutil._rmtree_impl = shutil._rmtree_unsafe  # type: ignore[attr-defined]

    # _TemporaryFileCloser binds os.unlink as a default argument at import
    # time (cleanup on 3.12+, close before), bypassing runtime patches.
    closer = getattr(tempfile, "_TemporaryFileCloser", None)
    for method in ("cleanup", "close"):
        function = getattr(closer, method, None)
        defaults = getattr(function, "__defaults__", None)
        if defaults and ORIGINALS["unlink"] in defaults:
            saved[f"closer.{method}"] = defaults
            function.__defaults__ = tuple(
                unlink if value is ORIGINALS["unlink"] else value
                for value in defaults
            )

    return saved


def restore_internals(saved: Mapping[str, Any]) -> None:
    """Undo patch_internals()."""
    if "_use_fd_functions" in saved:
        shutil._use_fd_functions = saved["_use_fd_functions"]  # type: ignore[attr-defined]
    if "_rmtree_impl" in saved:
        shutil._rmtree_impl = saved["_rmtree_impl"]  # type: ignore[attr-defined]
    closer = getattr(tempfile, "_TemporaryFileCloser", None)
    for method in ("cleanup", "close"):
        if f"closer.{method}" in saved:
            getattr(closer, method).__defaults__ = saved[f"closer.{method}"]
