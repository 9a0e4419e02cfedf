"""Errors raised by the interception engine.

Errors raised by user-supplied fakes are never wrapped in these; they
reach the original call site unchanged.
"""


class MockError(Exception):
    """Base class for errors raised by monkeymock itself."""


class AlreadyInstalledError(MockError):
    """An entry point is already proxied and cannot be installed again."""


class ScopeConflictError(MockError):
    """A dual-path call spans the scopes of two different bindings."""

    def __init__(self, operation: str, first: str, second: str):
        super().__init__(
            f"{operation}() spans two mocked scopes: '{first}' and '{second}'"
        )
        self.operation = operation
        self.scopes = (first, second)


class UnsupportedOperationError(MockError, NotImplementedError):
    """The call cannot be redirected consistently by the matching binding."""
