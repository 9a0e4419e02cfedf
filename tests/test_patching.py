"""Tests for capability tables and patch installation."""

import builtins
import os
import shutil
import tempfile

import pytest

from monkeymock import AlreadyInstalledError
from monkeymock.patching import (
    COMMAND_OPERATIONS,
    FS_OPERATIONS,
    ORIGINALS,
    Effect,
    Family,
    PathArg,
    apply,
    is_proxied,
    revert,
)
from monkeymock.patching.core import flags_effect, open_effect
from monkeymock.patching.install import patch_internals, restore_internals

OPERATIONS = {operation.name: operation for operation in FS_OPERATIONS}


class TestOperationTable:
    """Test the captured originals."""

    def test_originals_are_immutable(self):
        with pytest.raises(TypeError):
            ORIGINALS["open"] = print  # type: ignore[index]

    def test_every_operation_captured(self):
        for operation in FS_OPERATIONS + COMMAND_OPERATIONS:
            assert operation.name in ORIGINALS

    def test_nothing_patched_at_import(self):
        assert builtins.open is ORIGINALS["open"]
        assert os.rename is ORIGINALS["rename"]
        assert not is_proxied(builtins, "open")

    def test_families(self):
        assert OPERATIONS["open"].family is Family.SINGLE
        assert OPERATIONS["rename"].family is Family.DUAL
        assert OPERATIONS["mkdtemp"].family is Family.PATHLESS
        assert OPERATIONS["listdir"].listing

    def test_open_covers_io_open(self):
        targets = [(owner.__name__, attr) for owner, attr in OPERATIONS["open"].targets]
        assert targets == [("builtins", "open"), ("io", "open")]


class TestEffects:
    """Test effect rules and PathArg helpers."""

    @pytest.mark.parametrize(
        "mode, effect",
        [
            ("r", Effect.READ),
            ("rb", Effect.READ),
            ("w", Effect.WRITE),
            ("ab", Effect.WRITE),
            ("x", Effect.WRITE),
            ("r+", Effect.WRITE),
        ],
    )
    def test_open_effect(self, mode, effect):
        assert open_effect(("f", mode), {}) is effect

    def test_open_effect_default_and_keyword(self):
        assert open_effect(("f",), {}) is Effect.READ
        assert open_effect(("f",), {"mode": "w"}) is Effect.WRITE

    def test_flags_effect(self):
        assert flags_effect(("f", os.O_RDONLY), {}) is Effect.READ
        assert flags_effect(("f", os.O_WRONLY | os.O_CREAT), {}) is Effect.WRITE
        assert flags_effect(("f",), {"flags": os.O_RDWR}) is Effect.WRITE

    def test_path_arg_positional_and_keyword(self):
        arg = PathArg(1, "dst", Effect.WRITE)

        assert arg.get(("a", "b"), {}) == "b"
        assert arg.get(("a",), {"dst": "c"}) == "c"
        assert arg.replace(("a", "b"), {}, "z") == (("a", "z"), {})
        assert arg.replace(("a",), {"dst": "c"}, "z") == (("a",), {"dst": "z"})

    def test_path_arg_default(self):
        arg = PathArg(0, "path", Effect.READ, lambda: ".")

        assert arg.get((), {}) == "."
        assert arg.get((None,), {}) == "."


class TestApplyRevert:
    """Test installing and reverting dispatchers."""

    def test_apply_and_revert(self):
        stat = OPERATIONS["stat"]
        calls = []

        def dispatcher(*args, **kwargs):
            calls.append(args)
            return ORIGINALS["stat"](*args, **kwargs)

        apply([stat], {"stat": dispatcher})
        try:
            assert is_proxied(os, "stat")
            os.stat(".")
        finally:
            revert([stat])

        assert os.stat is ORIGINALS["stat"]
        assert not is_proxied(os, "stat")
        assert calls == [(".",)]

    def test_apply_is_all_or_nothing(self):
        """Test that a conflicting target leaves nothing half-patched."""
        stat, lstat = OPERATIONS["stat"], OPERATIONS["lstat"]
        dispatchers = {"stat": lambda *a, **k: None, "lstat": lambda *a, **k: None}

        apply([stat], dispatchers)
        try:
            with pytest.raises(AlreadyInstalledError, match="os.stat"):
                apply([lstat, stat], dispatchers)
            assert os.lstat is ORIGINALS["lstat"]
        finally:
            revert([stat])

    def test_revert_skips_unpatched(self):
        revert([OPERATIONS["remove"]])
        assert os.remove is ORIGINALS["remove"]


class TestInternals:
    """Test stdlib internals fix-ups."""

    def test_patch_and_restore_internals(self):
        def unlink(path):
            raise AssertionError("not called")

        before_fd = getattr(shutil, "_use_fd_functions", None)
        closer = getattr(tempfile, "_TemporaryFileCloser", None)
        before_defaults = {
            name: getattr(getattr(closer, name, None), "__defaults__", None)
            for name in ("cleanup", "close")
        }

        saved = patch_internals(unlink)
        try:
            if before_fd is not None:
                assert shutil._use_fd_functions is False
            patched = [
                getattr(closer, name).__defaults__
                for name in ("cleanup", "close")
                if f"closer.{name}" in saved
            ]
            assert all(unlink in defaults for defaults in patched)
        finally:
            restore_internals(saved)

        assert getattr(shutil, "_use_fd_functions", None) == before_fd
        for name, defaults in before_defaults.items():
            method = getattr(closer, name, None)
            assert getattr(method, "__defaults__", None) == defaults
