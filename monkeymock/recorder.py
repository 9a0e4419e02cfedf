"""Call recording shared by command and file-system bindings.

Recorders mirror the assertion surface of ``unittest.mock`` so existing
habits carry over::

    stub["open"].assert_called_once_with("README.md", "w")
    assert stub.call_count == 2
"""

from __future__ import annotations

import functools
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator
from unittest.mock import call as _call

# Process-wide ordinal so calls recorded by different bindings are ordered
_ordinals = itertools.count()


@dataclass(frozen=True)
class SpyCall:
    """One recorded invocation.

    Attributes:
        name: Operation name the call was recorded under.
        args: Positional arguments, as passed by the caller.
        kwargs: Keyword arguments, as passed by the caller.
        result: Return value, or None if the call raised.
        error: Exception raised by the call, if any.
        ordinal: Process-wide sequence number taken when the call started.
    """

    name: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: BaseException | None = None
    ordinal: int = 0

    @property
    def raised(self) -> bool:
        return self.error is not None

    @property
    def call(self) -> Any:
        """The arguments as a unittest.mock.call object."""
        return _call(*self.args, **self.kwargs)


class CallRecorder:
    """Append-only, ordered log of SpyCalls.

    A recorder may forward every call it records to a parent recorder,
    which is how a binding keeps one log across all of its operations.
    """

    def __init__(self, name: str, parent: CallRecorder | None = None):
        self.name = name
        self.parent = parent
        self.calls: list[SpyCall] = []

    def record(self, spy_call: SpyCall) -> None:
        self.calls.append(spy_call)
        if self.parent is not None:
            self.parent.record(spy_call)

    def reset(self) -> None:
        """Forget recorded calls (the parent keeps its copy)."""
        self.calls.clear()

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def called(self) -> bool:
        return bool(self.calls)

    @property
    def call_args(self) -> Any:
        return self.calls[-1].call if self.calls else None

    @property
    def call_args_list(self) -> list[Any]:
        return [c.call for c in self.calls]

    @property
    def results(self) -> list[Any]:
        return [c.result for c in self.calls if not c.raised]

    @property
    def errors(self) -> list[BaseException]:
        return [c.error for c in self.calls if c.error is not None]

    # unittest.mock style assertions

    def assert_called(self) -> None:
        if not self.calls:
            raise AssertionError(f"Expected '{self.name}' to have been called.")

    def assert_not_called(self) -> None:
        if self.calls:
            raise AssertionError(
                f"Expected '{self.name}' to not have been called. "
                f"Called {self.call_count} times.{self._calls_repr()}"
            )

    def assert_called_once(self) -> None:
        if self.call_count != 1:
            raise AssertionError(
                f"Expected '{self.name}' to have been called once. "
                f"Called {self.call_count} times.{self._calls_repr()}"
            )

    def assert_called_with(self, *args: Any, **kwargs: Any) -> None:
        if not self.calls:
            raise AssertionError(
                f"expected call not found.\nExpected: {_call(*args, **kwargs)}\n"
                "  Actual: not called."
            )
        expected = _call(*args, **kwargs)
        if self.call_args != expected:
            raise AssertionError(
                f"expected call not found.\nExpected: {expected}\n"
                f"  Actual: {self.call_args}"
            )

    def assert_called_once_with(self, *args: Any, **kwargs: Any) -> None:
        self.assert_called_once()
        self.assert_called_with(*args, **kwargs)

    def assert_any_call(self, *args: Any, **kwargs: Any) -> None:
        expected = _call(*args, **kwargs)
        if expected not in self.call_args_list:
            raise AssertionError(f"{expected} call not found")

    def _calls_repr(self) -> str:
        if not self.calls:
            return ""
        return "\nCalls: " + repr(self.call_args_list)

    def __len__(self) -> int:
        return len(self.calls)

    def __iter__(self) -> Iterator[SpyCall]:
        return iter(list(self.calls))

    def __getitem__(self, index: int) -> SpyCall:
        return self.calls[index]

    def __repr__(self) -> str:
        return f"<CallRecorder '{self.name}' calls={self.call_count}>"


def wrap(
    name: str,
    target: Callable[..., Any],
    log: CallRecorder | None = None,
) -> tuple[Callable[..., Any], CallRecorder]:
    """Wrap target so every invocation is recorded in log.

    Errors are recorded and then re-raised unchanged. Arguments are
    forwarded as-is.

    Args:
        name: Name to record calls under.
        target: Callable to forward to.
        log: Recorder to append to; a new one is created if omitted.

    Returns:
        The recording wrapper and its log.
    """
    if log is None:
        log = CallRecorder(name)

    @functools.wraps(target, updated=())
    def recorded(*args: Any, **kwargs: Any) -> Any:
        ordinal = next(_ordinals)
        try:
            result = target(*args, **kwargs)
        except BaseException as error:
            log.record(SpyCall(name, args, kwargs, error=error, ordinal=ordinal))
            raise
        log.record(SpyCall(name, args, kwargs, result=result, ordinal=ordinal))
        return result

    return recorded, log
