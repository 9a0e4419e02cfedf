"""monkeymock: spies, stubs and sandboxes for processes and the file system."""

from .base import Binding, Installation, Mock
from .command import CommandDummy, CommandMock, CommandSpy, CommandStub
from .config import SandboxConfig, StubOptions, load_config, stub_options
from .context import suspend
from .errors import (
    AlreadyInstalledError,
    MockError,
    ScopeConflictError,
    UnsupportedOperationError,
)
from .filesystem import FileSystemMock, FileSystemSpy, FileSystemStub
from .mocks import MockGroup, all
from .paths import is_under, normalize, relative
from .recorder import CallRecorder, SpyCall, wrap
from .sandbox import Sandbox
from .scoped import run_scoped, try_catch_finally

cmd = CommandMock()
fs = FileSystemMock()

__all__ = [
    "all",
    "AlreadyInstalledError",
    "Binding",
    "CallRecorder",
    "cmd",
    "CommandDummy",
    "CommandMock",
    "CommandSpy",
    "CommandStub",
    "FileSystemMock",
    "FileSystemSpy",
    "FileSystemStub",
    "fs",
    "Installation",
    "is_under",
    "load_config",
    "Mock",
    "MockError",
    "MockGroup",
    "normalize",
    "relative",
    "run_scoped",
    "Sandbox",
    "SandboxConfig",
    "ScopeConflictError",
    "SpyCall",
    "stub_options",
    "StubOptions",
    "suspend",
    "try_catch_finally",
    "UnsupportedOperationError",
    "wrap",
]
