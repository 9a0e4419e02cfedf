"""Base interfaces shared by the command and file-system subsystems.

Defines the Mock protocol every subsystem (and MockGroup) implements, the
Binding class behind spies and stubs, and the Interceptor base class that
owns a registry and patches its capability table in and out.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from . import patching
from .context import _in_operation
from .errors import AlreadyInstalledError
from .patching import Operation
from .recorder import CallRecorder, wrap
from .registry import Registry
from .scoped import run_scoped

logger = logging.getLogger(__name__)


@runtime_checkable
class Mock(Protocol):
    """Install/use/restore contract shared by every mock subsystem."""

    def mock(self) -> Any:
        """Install the dispatchers and return a handle that restores them."""
        ...

    def restore(self) -> None:
        """Put the original entry points back, keeping registrations."""
        ...

    def use(self, callback: Callable[[], Any] | None = None) -> Any:
        """Install, run callback, and restore however it exits."""
        ...

    def dispose(self) -> None:
        """Restore and drop every registration."""
        ...


class Installation:
    """Handle returned by mock()/install(); restores on exit.

    Example:
        >>> with fs.mock():
        ...     open("README.md").read()
    """

    def __init__(self, restore: Callable[[], None]):
        self._restore = restore

    def restore(self) -> None:
        self._restore()

    def __enter__(self) -> Installation:
        return self

    def __exit__(self, *exc: Any) -> None:
        self._restore()


class Binding:
    """A registered (scope, implementations, recorders) tuple.

    Spies and stubs are Bindings. Indexing by operation name returns that
    operation's CallRecorder; ``calls`` records every operation in order.
    """

    def __init__(
        self,
        scope: str,
        implementations: Mapping[str, Callable[..., Any]],
        release: Callable[[Binding], None],
    ):
        self.scope = scope
        self.calls = CallRecorder(scope)
        self._release = release
        self._implementations: dict[str, Callable[..., Any]] = {}
        self._recorders: dict[str, CallRecorder] = {}
        for name, implementation in implementations.items():
            recorded, log = wrap(
                name, implementation, CallRecorder(name, parent=self.calls)
            )
            self._implementations[name] = recorded
            self._recorders[name] = log
        self.disposed = False

    @property
    def call_count(self) -> int:
        return self.calls.call_count

    @property
    def operations(self) -> list[str]:
        return list(self._recorders)

    def __getitem__(self, name: str) -> CallRecorder:
        try:
            return self._recorders[name]
        except KeyError:
            raise KeyError(f"{type(self).__name__} has no operation '{name}'") from None

    def invoke(self, name: str, args: tuple, kwargs: dict) -> Any:
        """Run the recorded implementation of name with interception suspended."""
        token = _in_operation.set(True)
        try:
            return self._implementations[name](*args, **kwargs)
        finally:
            _in_operation.reset(token)

    def dispose(self) -> None:
        """Unregister this binding. Safe to call more than once.

        If releasing its resources fails, the binding stays undisposed and
        dispose() can be retried.
        """
        if self.disposed:
            return
        self._release(self)
        self.disposed = True

    def __enter__(self) -> Binding:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} '{self.scope}' calls={self.call_count}>"


class Interceptor:
    """A mock subsystem: a registry plus a capability table to patch.

    Subclasses provide the operations and build one dispatcher per
    operation; this class handles install, restore, use and dispose.
    Installing while already installed raises AlreadyInstalledError.
    """

    name = "mock"
    operations: tuple[Operation, ...] = ()

    def __init__(self) -> None:
        self.registry = Registry(self.name)
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    def dispatch_table(self) -> dict[str, Callable[..., Any]]:
        """Build a dispatcher for every operation, keyed by operation name.

        The table works without patching anything, for code that receives
        its operations by injection.
        """
        return {
            operation.name: self._dispatcher(operation)
            for operation in self.operations
        }

    def _dispatcher(self, operation: Operation) -> Callable[..., Any]:
        raise NotImplementedError

    def _on_install(self, table: Mapping[str, Callable[..., Any]]) -> None:
        pass

    def _on_restore(self) -> None:
        pass

    def install(self) -> Installation:
        """Patch every entry point of this subsystem.

        Raises:
            AlreadyInstalledError: If this subsystem, or another one covering
                the same entry points, is installed.
        """
        if self._installed:
            raise AlreadyInstalledError(f"{self.name} is already installed")
        table = self.dispatch_table()
        patching.apply(self.operations, table)
        self._installed = True
        self._on_install(table)
        logger.debug("%s installed with %d scope(s)", self.name, len(self.registry))
        return Installation(self.restore)

    def mock(self) -> Installation:
        return self.install()

    def restore(self) -> None:
        """Restore the original entry points. No-op when not installed."""
        if not self._installed:
            return
        self._installed = False
        self._on_restore()
        patching.revert(self.operations)
        logger.debug("%s restored", self.name)

    def use(self, callback: Callable[[], Any] | None = None) -> Any:
        """Install, run callback, restore on every exit path.

        Without a callback, returns the Installation handle. If callback
        returns an awaitable, a coroutine is returned and the entry points
        stay patched until it settles.
        """
        handle = self.install()
        if callback is None:
            return handle
        return run_scoped(callback, self.restore)

    def dispose(self) -> None:
        """Restore and dispose every registered binding.

        Every binding is disposed even if one fails; the first failure is
        raised afterwards.
        """
        self.restore()
        errors: list[Exception] = []
        for binding in self.registry.clear():
            try:
                binding.dispose()
            except OSError as error:
                logger.error("%s: failed to dispose %r: %s", self.name, binding, error)
                errors.append(error)
        if errors:
            raise errors[0]

    def _register(self, binding: Binding) -> Binding:
        previous = self.registry.register(binding)
        if previous is not None:
            previous.dispose()
        return binding

    def _release(self, binding: Binding) -> None:
        self.registry.unregister(binding)

    def __enter__(self) -> Interceptor:
        self.install()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.restore()

    def __repr__(self) -> str:
        state = "installed" if self._installed else "restored"
        return f"<{type(self).__name__} {state} scopes={len(self.registry)}>"
