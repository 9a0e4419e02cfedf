"""Patching infrastructure: capability rows and the original-callable table."""

from __future__ import annotations

import enum
import os
import types
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Union

# Marker for a path argument the caller did not pass
MISSING: Any = object()


class Effect(enum.Enum):
    """How an operation touches one of its path arguments."""

    READ = "read"  # reads; a missing path raises FileNotFoundError
    PROBE = "probe"  # predicate; a missing path answers False
    WRITE = "write"  # creates or modifies the path
    DELETE = "delete"  # removes the path
    LINK = "link"  # source that must live beside the destination


class Family(enum.Enum):
    """Calling convention of an operation."""

    PATHLESS = "pathless"
    SINGLE = "single"
    DUAL = "dual"


EffectRule = Union[Effect, Callable[[tuple, dict], Effect]]


@dataclass(frozen=True)
class PathArg:
    """Where a path argument lives in a call and what the call does to it.

    Attributes:
        position: Positional index of the argument.
        keyword: Keyword name of the argument.
        effect: Effect, or a callable computing it from (args, kwargs).
        default: Returns the implied path when the argument is missing
            or None (e.g. "." for os.listdir()).
    """

    position: int
    keyword: str
    effect: EffectRule = Effect.READ
    default: Callable[[], Any] | None = None

    def get(self, args: tuple, kwargs: dict) -> Any:
        if len(args) > self.position:
            value = args[self.position]
        else:
            value = kwargs.get(self.keyword, MISSING)
        if (value is MISSING or value is None) and self.default is not None:
            return self.default()
        return value

    def effect_for(self, args: tuple, kwargs: dict) -> Effect:
        if isinstance(self.effect, Effect):
            return self.effect
        return self.effect(args, kwargs)

    def replace(self, args: tuple, kwargs: dict, value: Any) -> tuple[tuple, dict]:
        """Return (args, kwargs) with this argument set to value."""
        if len(args) > self.position:
            args = args[: self.position] + (value,) + args[self.position + 1 :]
        else:
            kwargs = {**kwargs, self.keyword: value}
        return args, kwargs


@dataclass(frozen=True)
class Operation:
    """One row of a capability table.

    Attributes:
        name: Name calls are recorded under (e.g. "open", "os_open").
        targets: (owner, attribute) pairs exposing the operation; all of
            them are patched together.
        paths: Path arguments the dispatcher scopes by.
        family: Calling convention; derived from paths when omitted.
        listing: The operation lists a directory (results are merged
            with the real directory under read-through).
    """

    name: str
    targets: tuple[tuple[Any, str], ...]
    paths: tuple[PathArg, ...] = ()
    family: Family | None = None
    listing: bool = False

    def __post_init__(self) -> None:
        if self.family is None:
            derived = {0: Family.PATHLESS, 1: Family.SINGLE}.get(
                len(self.paths), Family.DUAL
            )
            object.__setattr__(self, "family", derived)

    @property
    def original(self) -> Callable[..., Any]:
        return _originals[self.name]


def op(
    name: str,
    owner: Any,
    attr: str | None = None,
    *paths: PathArg,
    also: Iterable[tuple[Any, str]] = (),
    **kwargs: Any,
) -> Operation:
    """Build an Operation whose first target is owner.attr (default: name)."""
    targets = ((owner, attr or name), *also)
    return Operation(name, targets, tuple(paths), **kwargs)


def available(operations: Iterable[Operation]) -> tuple[Operation, ...]:
    """Drop rows whose entry point does not exist on this platform."""
    return tuple(
        operation
        for operation in operations
        if all(hasattr(owner, attr) for owner, attr in operation.targets)
    )


# Original implementations, filled once by capture() at import
_originals: dict[str, Any] = {}

ORIGINALS: Mapping[str, Any] = types.MappingProxyType(_originals)


def capture(operations: Iterable[Operation]) -> None:
    """Record the current implementation of each operation, once.

    Later calls never overwrite an entry, so the table keeps the
    implementations seen when monkeymock was first imported.
    """
    for operation in operations:
        owner, attr = operation.targets[0]
        _originals.setdefault(operation.name, getattr(owner, attr))


# Effect rules for calls whose effect depends on mode/flags


def open_effect(args: tuple, kwargs: dict) -> Effect:
    mode = args[1] if len(args) > 1 else kwargs.get("mode", "r")
    if any(ch in mode for ch in "wax+"):
        return Effect.WRITE
    return Effect.READ


_WRITE_FLAGS = os.O_WRONLY | os.O_RDWR | os.O_CREAT | os.O_TRUNC | os.O_APPEND


def flags_effect(args: tuple, kwargs: dict) -> Effect:
    flags = args[1] if len(args) > 1 else kwargs.get("flags", 0)
    return Effect.WRITE if flags & _WRITE_FLAGS else Effect.READ

