"""Compose several mock subsystems into one.

Example:
    >>> git = cmd.stub("git")
    >>> fs.stub(".")
    >>> with all(cmd, fs).mock():
    ...     run_release()
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .base import Installation, Mock
from .scoped import run_scoped

logger = logging.getLogger(__name__)


class MockGroup:
    """Mocks that install, restore and dispose as a unit, in order."""

    def __init__(self, mocks: tuple[Mock, ...]):
        self.mocks = mocks

    def install(self) -> Installation:
        """Install every member.

        If a member fails to install, the ones installed before it are
        restored and the error propagates.
        """
        installed: list[Mock] = []
        try:
            for member in self.mocks:
                member.mock()
                installed.append(member)
        except BaseException:
            logger.debug("Unwinding partial install of %d mock(s)", len(installed))
            for member in installed:
                member.restore()
            raise
        return Installation(self.restore)

    def mock(self) -> Installation:
        return self.install()

    def restore(self) -> None:
        self._each("restore")

    def use(self, callback: Callable[[], Any] | None = None) -> Any:
        """Install all members, run callback, restore all on every exit path."""
        handle = self.install()
        if callback is None:
            return handle
        return run_scoped(callback, self.restore)

    def dispose(self) -> None:
        self._each("dispose")

    def _each(self, method: str) -> None:
        """Call method on every member; re-raise the first failure after."""
        errors: list[Exception] = []
        for member in self.mocks:
            try:
                getattr(member, method)()
            except Exception as error:
                logger.error("%s of %r failed: %s", method, member, error)
                errors.append(error)
        if errors:
            raise errors[0]

    def __enter__(self) -> MockGroup:
        self.install()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.restore()

    def __repr__(self) -> str:
        return f"<MockGroup {list(self.mocks)!r}>"


def all(*mocks: Mock) -> MockGroup:  # noqa: A001
    """Group mocks so they share one install/use/restore/dispose surface.

    Raises:
        TypeError: If a member does not implement the Mock protocol.
    """
    for member in mocks:
        if not isinstance(member, Mock):
            raise TypeError(f"Not a mock: {member!r}")
    return MockGroup(tuple(mocks))
