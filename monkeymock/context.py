"""Context variables for interception.

Shared by the dispatchers and the sandbox to prevent recursion loops:
while a binding runs (or while the engine does its own file work), every
intercepted entry point behaves exactly like the real one.
"""

import contextvars
from contextlib import contextmanager
from typing import Iterator

# True while inside a binding or an engine-internal operation
_in_operation: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "monkeymock_in_operation", default=False
)


def intercepting() -> bool:
    """Return whether dispatchers should consult their registry."""
    return not _in_operation.get()


@contextmanager
def suspend() -> Iterator[None]:
    """Temporarily disable interception in the current context.

    Use this from fakes or helpers that need real I/O while mocks are
    installed, e.g. to prepare fixtures on disk:

        with fs.use(), suspend():
            Path("fixture.txt").write_text("real")
    """
    token = _in_operation.set(True)
    try:
        yield
    finally:
        _in_operation.reset(token)
