"""Process interception: spies and stubs for subprocess.Popen.

``subprocess.run``, ``call``, ``check_call`` and ``check_output`` all go
through ``subprocess.Popen``, so replacing that one entry point covers the
synchronous subprocess API. Bindings are keyed by the exact command name.

Example:
    >>> cmd = CommandMock()
    >>> git = cmd.stub("git")
    >>> with cmd.mock():
    ...     subprocess.run(["git", "status"], check=True)
    >>> git.call_count
    1
"""

from __future__ import annotations

import io
import logging
import os
import shlex
import subprocess
from typing import Any, Callable

from .base import Binding, Interceptor
from .context import intercepting
from .patching import COMMAND_OPERATIONS, ORIGINALS, Operation

logger = logging.getLogger(__name__)

_Popen = ORIGINALS["Popen"]


def command_key(command: Any, shell: bool = False) -> str | None:
    """Registry key for a Popen args value, or None if it has none.

    Args:
        command: The args passed to Popen: a sequence or a single string.
        shell: Whether the call runs through the shell; the key is then
            the first shell word.
    """
    if isinstance(command, (str, bytes, os.PathLike)):
        text = os.fsdecode(os.fspath(command))
        if not shell:
            return text
        try:
            words = shlex.split(text)
        except ValueError:
            return None
        return words[0] if words else None
    try:
        first = next(iter(command))
    except (TypeError, StopIteration):
        return None
    if isinstance(first, (str, bytes, os.PathLike)):
        return os.fsdecode(os.fspath(first))
    return str(first)


def _scope_key(command: Any) -> str:
    if isinstance(command, (str, bytes, os.PathLike)):
        return os.fsdecode(os.fspath(command))
    geturl = getattr(command, "geturl", None)
    if geturl is not None:
        return geturl()
    return str(command)


class CommandDummy(_Popen):
    """Popen stand-in that never spawns anything.

    Reports a finished process: exit code 0, empty output and no signal.
    Piped streams are empty in-memory files (str in text mode, bytes
    otherwise). Subclass and override the class attributes, or use
    returning(), for other canned results.
    """

    # read by Popen.__del__, which also runs when __init__ raised
    _child_created = False
    exit_code: int = 0
    stdout_data: bytes = b""
    stderr_data: bytes = b""

    def __init__(
        self,
        args: Any,
        bufsize: int = -1,
        executable: Any = None,
        stdin: Any = None,
        stdout: Any = None,
        stderr: Any = None,
        *popenargs: Any,
        **kwargs: Any,
    ):
        self.args = args
        self.pid = 0
        self.returncode: int | None = None
        self.encoding = kwargs.get("encoding")
        self.errors = kwargs.get("errors")
        self.text_mode = bool(
            kwargs.get("text")
            or kwargs.get("universal_newlines")
            or self.encoding
            or self.errors
        )
        self.stdin = self._stream(stdin, b"")
        self.stdout = self._stream(stdout, self.stdout_data)
        self.stderr = self._stream(stderr, self.stderr_data)

    def _stream(self, handle: Any, data: bytes) -> Any:
        if handle != subprocess.PIPE:
            return None
        if self.text_mode:
            text = data.decode(self.encoding or "utf-8", self.errors or "strict")
            return io.StringIO(text)
        return io.BytesIO(data)

    @classmethod
    def returning(
        cls,
        returncode: int = 0,
        stdout: str | bytes = b"",
        stderr: str | bytes = b"",
    ) -> type[CommandDummy]:
        """Build a CommandDummy subclass with the given canned result."""
        return type(
            f"{cls.__name__}Returning",
            (cls,),
            {
                "exit_code": returncode,
                "stdout_data": stdout.encode() if isinstance(stdout, str) else stdout,
                "stderr_data": stderr.encode() if isinstance(stderr, str) else stderr,
            },
        )

    def _finish(self) -> int:
        self.returncode = self.exit_code
        return self.returncode

    def poll(self) -> int:
        return self._finish()

    def wait(self, timeout: float | None = None) -> int:
        return self._finish()

    def communicate(
        self, input: Any = None, timeout: float | None = None
    ) -> tuple[Any, Any]:
        if self.stdin is not None:
            self.stdin.close()
        out = self.stdout.read() if self.stdout is not None else None
        err = self.stderr.read() if self.stderr is not None else None
        self._finish()
        return out, err

    def send_signal(self, sig: int) -> None:
        pass

    def terminate(self) -> None:
        pass

    def kill(self) -> None:
        pass

    def __enter__(self) -> CommandDummy:
        return self

    def __exit__(self, *exc: Any) -> None:
        for stream in (self.stdin, self.stdout, self.stderr):
            if stream is not None:
                stream.close()
        self.wait()


class CommandSpy(Binding):
    """Records every Popen of its command; the process still runs."""

    def __init__(
        self,
        command: str,
        release: Callable[[Binding], None],
        implementation: Callable[..., Any] = _Popen,
    ):
        super().__init__(command, {"Popen": implementation}, release)


class CommandStub(CommandSpy):
    """Records every Popen of its command and runs fake instead.

    Attributes:
        fake: Called with the original Popen arguments. Defaults to
            CommandDummy. Anything it raises reaches the caller.
    """

    def __init__(
        self,
        command: str,
        release: Callable[[Binding], None],
        fake: Callable[..., Any] | None = None,
    ):
        self.fake = fake if fake is not None else CommandDummy
        super().__init__(command, release, self.fake)


def _popen_dispatcher(
    select: Callable[[tuple, dict], Binding | None],
) -> type:
    """Build the class installed as subprocess.Popen.

    Calling it routes to the selected binding or the real Popen, while
    isinstance/issubclass checks and Popen[...] keep answering for the
    real class.
    """

    class _PopenDispatch(type):
        def __call__(cls, *args: Any, **kwargs: Any) -> Any:
            if intercepting():
                binding = select(args, kwargs)
                if binding is not None:
                    return binding.invoke("Popen", args, kwargs)
            return _Popen(*args, **kwargs)

        def __instancecheck__(cls, instance: Any) -> bool:
            return isinstance(instance, _Popen)

        def __subclasscheck__(cls, subclass: type) -> bool:
            return issubclass(subclass, _Popen)

    return _PopenDispatch(
        "Popen",
        (),
        {
            "__doc__": _Popen.__doc__,
            "__module__": _Popen.__module__,
            "__wrapped__": _Popen,
            "__class_getitem__": classmethod(lambda cls, item: _Popen[item]),
        },
    )


class CommandMock(Interceptor):
    """Command-keyed spies and stubs for process spawning."""

    name = "command"
    operations = COMMAND_OPERATIONS

    def spy(self, command: Any) -> CommandSpy:
        """Record spawns of command while still running it."""
        return self._register(  # type: ignore[return-value]
            CommandSpy(_scope_key(command), self._release)
        )

    def stub(
        self, command: Any, fake: Callable[..., Any] | None = None
    ) -> CommandStub:
        """Replace spawns of command with fake (default: CommandDummy)."""
        return self._register(  # type: ignore[return-value]
            CommandStub(_scope_key(command), self._release, fake)
        )

    def _select(self, args: tuple, kwargs: dict) -> Binding | None:
        command = args[0] if args else kwargs.get("args")
        key = command_key(command, bool(kwargs.get("shell", False)))
        if key is None:
            return None
        binding = self.registry.exact(key)
        if binding is not None:
            logger.debug("Popen %r -> %r", key, binding)
        return binding

    def _dispatcher(self, operation: Operation) -> Callable[..., Any]:
        return _popen_dispatcher(self._select)
