"""Tests for the scope registry."""

import logging
import os

from monkeymock.base import Binding
from monkeymock.registry import Registry


def make_binding(scope):
    return Binding(scope, {"op": lambda: None}, lambda binding: None)


class TestRegistryLookup:
    """Test exact and most-specific lookup."""

    def test_exact(self):
        registry = Registry("command")
        git = make_binding("git")
        registry.register(git)

        assert registry.exact("git") is git
        assert registry.exact("gi") is None

    def test_closest_prefers_deepest_scope(self, tmp_path):
        """Test that the deepest registered ancestor wins."""
        registry = Registry("filesystem")
        outer = make_binding(str(tmp_path))
        inner = make_binding(os.path.join(str(tmp_path), "src"))
        # Registration order must not matter
        registry.register(inner)
        registry.register(outer)

        assert registry.closest(os.path.join(str(tmp_path), "src", "a.py")) is inner
        assert registry.closest(os.path.join(str(tmp_path), "README.md")) is outer
        assert registry.closest(os.path.join(str(tmp_path), "srcx")) is outer

    def test_closest_no_match(self, tmp_path):
        registry = Registry("filesystem")
        registry.register(make_binding(os.path.join(str(tmp_path), "a")))

        assert registry.closest(str(tmp_path)) is None


class TestRegistryMutation:
    """Test register/unregister/clear."""

    def test_reregister_replaces(self, caplog):
        """Test that registering the same key returns the superseded binding."""
        registry = Registry("command")
        first = make_binding("git")
        second = make_binding("git")

        assert registry.register(first) is None
        with caplog.at_level(logging.WARNING, logger="monkeymock.registry"):
            assert registry.register(second) is first

        assert registry.exact("git") is second
        assert "superseded" in caplog.text

    def test_unregister_only_current(self):
        registry = Registry("command")
        first = make_binding("git")
        second = make_binding("git")
        registry.register(first)
        registry.register(second)

        assert not registry.unregister(first)
        assert registry.unregister(second)
        assert "git" not in registry

    def test_clear(self):
        registry = Registry("command")
        a, b = make_binding("a"), make_binding("b")
        registry.register(a)
        registry.register(b)

        assert registry.clear() == [a, b]
        assert len(registry) == 0
