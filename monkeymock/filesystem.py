"""File-system interception: path-scoped spies and sandboxing stubs.

Every entry point in FS_OPERATIONS is replaced by a dispatcher that
normalizes the call's path argument(s), finds the binding with the most
specific scope and hands the call to it. Calls outside every scope run the
real operation.

Example:
    >>> fs = FileSystemMock()
    >>> stub = fs.stub(".")
    >>> with fs.mock():
    ...     Path("README.md").write_text("amber")
    ...     Path("README.md").read_text()
    'amber'
    >>> stub["open"].call_count
    2

The real README.md is left unchanged; the write landed in stub.sandbox.
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Any, Callable, Mapping, NamedTuple

from .base import Binding, Interceptor
from .config import SandboxConfig, StubOptions, load_config, stub_options
from .context import intercepting, suspend
from .errors import ScopeConflictError, UnsupportedOperationError
from .patching import FS_OPERATIONS, Effect, Family, Operation, PathArg
from .patching.install import patch_internals, restore_internals
from .paths import absolute, is_path_like, normalize, within
from .sandbox import Sandbox

logger = logging.getLogger(__name__)

# Calls using these are relative to a descriptor or open through a
# callback; they pass through and their inner calls are intercepted.
_BYPASS_KWARGS = ("dir_fd", "src_dir_fd", "dst_dir_fd", "opener")

OPERATION_NAMES = frozenset(operation.name for operation in FS_OPERATIONS)


def _bypassed(kwargs: Mapping[str, Any]) -> bool:
    return any(kwargs.get(name) is not None for name in _BYPASS_KWARGS)


def _path_of(value: Any) -> str | None:
    """Normalized path of a call argument, or None if it names no path."""
    if not is_path_like(value):
        return None
    try:
        return absolute(value)
    except (TypeError, ValueError):
        return None


def _check_fakes(fake: Mapping[str, Callable[..., Any]] | None) -> dict:
    fakes = dict(fake or {})
    unknown = sorted(set(fakes) - OPERATION_NAMES)
    if unknown:
        raise ValueError(f"Unknown file-system operations: {unknown}")
    for name, implementation in fakes.items():
        if not callable(implementation):
            raise ValueError(f"Fake for '{name}' is not callable: {implementation!r}")
    return fakes


class _Side(NamedTuple):
    """One path argument of a call, as seen by a stub."""

    arg: PathArg
    effect: Effect
    value: Any
    real: str | None  # normalized path when inside the stub's scope


class FileSystemSpy(Binding):
    """Records every file-system call under its scope; the calls run for real."""

    sandbox: Sandbox | None = None
    options: StubOptions | None = None

    def __init__(
        self,
        scope: str,
        release: Callable[[Binding], None],
        implementations: Mapping[str, Callable[..., Any]] | None = None,
    ):
        if implementations is None:
            implementations = {op.name: op.original for op in FS_OPERATIONS}
        super().__init__(scope, implementations, release)


class FileSystemStub(FileSystemSpy):
    """Redirects every file-system call under its scope into a sandbox.

    Reads see the sandboxed copy first and fall back to the real file with
    read_through. Writes copy the real file into the sandbox before
    touching it, so the real tree is never modified.

    Attributes:
        sandbox: The Sandbox the scope is redirected to.
        options: StubOptions in effect.
        fakes: Operations replaced outright by caller-supplied callables;
            those receive the original, unrewritten arguments.
    """

    def __init__(
        self,
        scope: str,
        release: Callable[[Binding], None],
        sandbox: Sandbox,
        options: StubOptions | None = None,
        fakes: Mapping[str, Callable[..., Any]] | None = None,
    ):
        self.sandbox = sandbox
        self.options = options or StubOptions()
        self.fakes = _check_fakes(fakes)
        implementations = {
            operation.name: self.fakes.get(operation.name)
            or self._redirected(operation)
            for operation in FS_OPERATIONS
        }
        super().__init__(scope, release, implementations)

    def _redirected(self, operation: Operation) -> Callable[..., Any]:
        def redirected(*args: Any, **kwargs: Any) -> Any:
            return self._run(operation, args, kwargs)

        redirected.__name__ = operation.name
        redirected.__qualname__ = f"{type(self).__name__}.{operation.name}"
        return redirected

    # Path bookkeeping

    def _claim(self, value: Any) -> str | None:
        path = _path_of(value)
        if path is None or self.sandbox.contains(path):
            return None
        return path if within(path, self.scope) else None

    def _sides(self, operation: Operation, args: tuple, kwargs: dict) -> list[_Side]:
        return [
            _Side(arg, arg.effect_for(args, kwargs), value, self._claim(value))
            for arg in operation.paths
            for value in (arg.get(args, kwargs),)
        ]

    def _outside(self, side: _Side) -> bool:
        if side.real is not None:
            return False
        path = _path_of(side.value)
        return path is not None and not self.sandbox.contains(path)

    def _as_arg(self, side: _Side, path: str) -> Any:
        return os.fsencode(path) if isinstance(side.value, bytes) else path

    def _target(self, side: _Side) -> Any:
        return self._as_arg(side, self.sandbox.locate(side.real))

    def _falls_back(self, real: str) -> bool:
        return self.options.read_through and not self.sandbox.is_hidden(real)

    def _unredirect(self, error: OSError, sides: list[_Side]) -> None:
        """Report the caller's paths, not sandbox paths, in errors."""
        for side in sides:
            if side.real is None:
                continue
            for path in (self._target(side), self._as_arg(side, side.real)):
                if error.filename == path:
                    error.filename = side.value
                if error.filename2 == path:
                    error.filename2 = side.value

    # Redirection

    def _run(self, operation: Operation, args: tuple, kwargs: dict) -> Any:
        sides = self._sides(operation, args, kwargs)
        claimed = [side for side in sides if side.real is not None]
        if not claimed:
            return operation.original(*args, **kwargs)

        for side in sides:
            if side.effect is not Effect.READ and self._outside(side):
                raise UnsupportedOperationError(
                    f"{operation.name}() would change '{side.value}' outside "
                    f"the sandboxed scope '{self.scope}'"
                )

        if operation.family is not Family.DUAL and claimed[0].effect in (
            Effect.READ,
            Effect.PROBE,
        ):
            return self._read(operation, claimed[0], args, kwargs)

        deep = operation.family is Family.DUAL or operation.name == "rmdir"
        call_args, call_kwargs = args, kwargs
        for side in claimed:
            call_args, call_kwargs = side.arg.replace(
                call_args, call_kwargs, self._prepare(side, deep)
            )
        try:
            result = operation.original(*call_args, **call_kwargs)
        except OSError as error:
            self._unredirect(error, claimed)
            raise
        self._settle(claimed)
        return result

    def _prepare(self, side: _Side, deep: bool) -> Any:
        """Sandbox argument for one side of a modifying call."""
        target = self._target(side)
        if side.effect is Effect.READ:
            if not os.path.lexists(target):
                if self._falls_back(side.real):
                    return self._as_arg(side, side.real)
            elif deep and self.options.read_through:
                self.sandbox.copy_up(side.real, deep=True)
            return target
        if self.options.read_through:
            # rmdir and dual-path sources carry their real entries
            self.sandbox.copy_up(
                side.real, deep=deep and side.effect is not Effect.WRITE
            )
        return target

    def _settle(self, claimed: list[_Side]) -> None:
        for side in claimed:
            if side.effect is Effect.DELETE:
                self.sandbox.hide(side.real)
            elif side.effect is Effect.WRITE and os.path.lexists(
                self.sandbox.locate(side.real)
            ):
                self.sandbox.unhide(side.real)

    def _read(
        self, operation: Operation, side: _Side, args: tuple, kwargs: dict
    ) -> Any:
        target = self._target(side)
        if operation.listing:
            return self._list(operation, side, target)

        call_args, call_kwargs = side.arg.replace(args, kwargs, target)
        real_args, real_kwargs = side.arg.replace(
            args, kwargs, self._as_arg(side, side.real)
        )
        if side.effect is Effect.PROBE:
            result = operation.original(*call_args, **call_kwargs)
            if not result and self._falls_back(side.real):
                return operation.original(*real_args, **real_kwargs)
            return result

        try:
            return operation.original(*call_args, **call_kwargs)
        except FileNotFoundError as error:
            if not self._falls_back(side.real):
                self._unredirect(error, [side])
                raise
        return operation.original(*real_args, **real_kwargs)

    def _list(self, operation: Operation, side: _Side, target: Any) -> Any:
        """Merged listing; without read_through only the sandbox is listed."""
        as_bytes = isinstance(side.value, bytes)
        read_through = self.options.read_through
        try:
            if operation.name == "scandir":
                return self.sandbox.scandir(
                    side.real, target, as_bytes, read_through, top=side.value
                )
            return self.sandbox.listdir(side.real, target, as_bytes, read_through)
        except OSError as error:
            self._unredirect(error, [side])
            raise


class FileSystemMock(Interceptor):
    """Path-scoped spies and stubs for file-system operations.

    Args:
        config: Where sandbox directories are created. Defaults to
            load_config(), i.e. the MONKEYMOCK_* environment variables.
    """

    name = "filesystem"
    operations = FS_OPERATIONS

    def __init__(self, config: SandboxConfig | None = None):
        super().__init__()
        self.config = config if config is not None else load_config()
        self._internals: dict[str, Any] = {}

    def spy(self, path: Any) -> FileSystemSpy:
        """Record calls under path while still running them for real."""
        return self._register(  # type: ignore[return-value]
            FileSystemSpy(normalize(path), self._release)
        )

    def stub(
        self,
        path: Any,
        fake: Mapping[str, Callable[..., Any]] | StubOptions | None = None,
        **options: Any,
    ) -> FileSystemStub:
        """Redirect calls under path into a fresh sandbox.

        Args:
            path: Scope of the stub: a path, pathlib.Path or file:// URL.
            fake: Either a mapping of operation name to replacement
                callable, or a StubOptions.
            **options: StubOptions fields, e.g. read_through=False.

        Raises:
            ValueError: On unknown option keys or operation names.
        """
        if isinstance(fake, StubOptions):
            if options:
                raise ValueError("Pass either StubOptions or option keywords")
            stub_opts, fakes = fake, None
        else:
            stub_opts, fakes = stub_options(**options), fake
        fakes = _check_fakes(fakes)
        scope = normalize(path)
        sandbox = Sandbox.create(scope, self.config)
        return self._register(  # type: ignore[return-value]
            FileSystemStub(scope, self._release, sandbox, stub_opts, fakes)
        )

    def _sandboxes(self) -> list[Sandbox]:
        return [b.sandbox for b in self.registry if getattr(b, "sandbox", None)]

    def _lookup(self, value: Any, sandboxes: list[Sandbox]) -> Binding | None:
        path = _path_of(value)
        if path is None or any(sandbox.contains(path) for sandbox in sandboxes):
            return None
        return self.registry.closest(path)

    def _resolve(
        self, operation: Operation, args: tuple, kwargs: dict
    ) -> Binding | None:
        """Binding that handles this call, or None for the real operation.

        Raises:
            ScopeConflictError: If the path arguments fall under two
                different bindings.
        """
        if not operation.paths or not len(self.registry):
            return None
        sandboxes = self._sandboxes()
        with suspend():
            values = [arg.get(args, kwargs) for arg in operation.paths]
        found = [self._lookup(value, sandboxes) for value in values]
        bindings = [binding for binding in found if binding is not None]
        if not bindings:
            return None
        first = bindings[0]
        for other in bindings[1:]:
            if other is not first:
                raise ScopeConflictError(operation.name, first.scope, other.scope)
        return first

    def _dispatcher(self, operation: Operation) -> Callable[..., Any]:
        original = operation.original

        @functools.wraps(original, updated=())
        def dispatch(*args: Any, **kwargs: Any) -> Any:
            if intercepting() and not _bypassed(kwargs):
                binding = self._resolve(operation, args, kwargs)
                if binding is not None:
                    logger.debug("%s -> %r", operation.name, binding)
                    return binding.invoke(operation.name, args, kwargs)
            return original(*args, **kwargs)

        return dispatch

    def _on_install(self, table: Mapping[str, Callable[..., Any]]) -> None:
        self._internals = patch_internals(table["unlink"])

    def _on_restore(self) -> None:
        restore_internals(self._internals)
        self._internals = {}

    def _release(self, binding: Binding) -> None:
        super()._release(binding)
        sandbox = getattr(binding, "sandbox", None)
        if sandbox is not None:
            sandbox.remove()
