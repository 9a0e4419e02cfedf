"""Scope-keyed registry of bindings.

Each subsystem owns one Registry. Keys are command names (exact lookup) or
normalized absolute paths (most-specific-ancestor lookup).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from .paths import ancestors

if TYPE_CHECKING:
    from .base import Binding

logger = logging.getLogger(__name__)


class Registry:
    """Mapping of scope key to Binding; one binding per key."""

    def __init__(self, name: str):
        self.name = name
        self._bindings: dict[str, Binding] = {}

    def register(self, binding: Binding) -> Binding | None:
        """Register binding under its scope, returning the one it replaces."""
        previous = self._bindings.get(binding.scope)
        self._bindings[binding.scope] = binding
        if previous is not None and previous is not binding:
            logger.warning(
                "%s: '%s' registered again; the earlier binding is superseded",
                self.name,
                binding.scope,
            )
            return previous
        logger.debug("%s: registered %r", self.name, binding)
        return None

    def unregister(self, binding: Binding) -> bool:
        """Remove binding if it is still the one registered for its scope."""
        if self._bindings.get(binding.scope) is binding:
            del self._bindings[binding.scope]
            logger.debug("%s: unregistered %r", self.name, binding)
            return True
        return False

    def exact(self, key: str) -> Binding | None:
        return self._bindings.get(key)

    def closest(self, path: str) -> Binding | None:
        """Binding with the deepest scope containing the normalized path."""
        if not self._bindings:
            return None
        for candidate in ancestors(path):
            binding = self._bindings.get(candidate)
            if binding is not None:
                return binding
        return None

    def clear(self) -> list[Binding]:
        """Remove and return every binding."""
        bindings = list(self._bindings.values())
        self._bindings.clear()
        return bindings

    def __contains__(self, key: object) -> bool:
        return key in self._bindings

    def __iter__(self) -> Iterator[Binding]:
        return iter(list(self._bindings.values()))

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"<Registry '{self.name}' scopes={list(self._bindings)}>"
