"""Configuration for stubs and sandboxes.

Provides configuration dataclasses, the stub_options factory used by
FileSystemMock.stub(), and load_config() for environment overrides.
"""

import os
from dataclasses import dataclass
from typing import Mapping

ENV_TMPDIR = "MONKEYMOCK_TMPDIR"
ENV_PREFIX = "MONKEYMOCK_PREFIX"
ENV_KEEP_SANDBOX = "MONKEYMOCK_KEEP_SANDBOX"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class StubOptions:
    """Options for a file-system stub.

    Attributes:
        read_through: Fall back to the real file when the sandboxed copy
            does not exist yet (default: True). With False, the sandbox
            starts empty and reads of never-written paths fail.
    """

    read_through: bool = True


@dataclass(frozen=True)
class SandboxConfig:
    """Where and how sandbox directories are created.

    Attributes:
        dir: Parent directory for sandboxes. None means tempfile's default.
        prefix: Name prefix of each sandbox directory.
        keep: Leave sandbox directories on disk after dispose (debugging).
    """

    dir: str | None = None
    prefix: str = "monkeymock-"
    keep: bool = False


def stub_options(**kwargs) -> StubOptions:
    """Build StubOptions, rejecting unknown keys.

    Examples:
        >>> stub_options(read_through=False)
        StubOptions(read_through=False)
    """
    read_through = kwargs.pop("read_through", True)
    if kwargs:
        raise ValueError(f"Unexpected stub options: {list(kwargs.keys())}")
    if not isinstance(read_through, bool):
        raise ValueError(f"read_through must be a bool, got {read_through!r}")
    return StubOptions(read_through=read_through)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def load_config(environ: Mapping[str, str] | None = None) -> SandboxConfig:
    """Read SandboxConfig overrides from the environment.

    Args:
        environ: Mapping to read from (default: os.environ).

    Returns:
        SandboxConfig with MONKEYMOCK_TMPDIR, MONKEYMOCK_PREFIX and
        MONKEYMOCK_KEEP_SANDBOX applied.

    Raises:
        ValueError: If MONKEYMOCK_KEEP_SANDBOX is not a boolean.
    """
    if environ is None:
        environ = os.environ

    defaults = SandboxConfig()
    return SandboxConfig(
        dir=environ.get(ENV_TMPDIR) or None,
        prefix=environ.get(ENV_PREFIX) or defaults.prefix,
        keep=_parse_bool(ENV_KEEP_SANDBOX, environ.get(ENV_KEEP_SANDBOX, "")),
    )
