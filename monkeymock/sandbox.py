"""Sandbox directories backing file-system stubs.

A sandbox maps every path under its base onto a private temporary
directory. The real tree stays untouched: files are copied up before they
are first modified, and deletions are remembered as whiteouts so deleted
real files do not reappear through read-through.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import tempfile
from typing import Any, Iterator

from .config import SandboxConfig
from .context import suspend
from .paths import ancestors, within

logger = logging.getLogger(__name__)


class Sandbox:
    """Private temp directory standing in for the tree under base.

    base itself maps to root/<basename of base>, so a scope may name a
    file as well as a directory.

    Attributes:
        root: The temporary directory.
        base: Normalized real path the sandbox stands in for.
    """

    def __init__(self, root: str, base: str, keep: bool = False):
        self.root = root
        self.base = base
        self.keep = keep
        self._anchor = os.path.dirname(base)
        self._whiteouts: set[str] = set()
        self.removed = False

    @classmethod
    def create(cls, base: str, config: SandboxConfig | None = None) -> Sandbox:
        """Allocate a fresh sandbox directory for base."""
        config = config or SandboxConfig()
        with suspend():
            if config.dir is not None:
                os.makedirs(config.dir, exist_ok=True)
            root = tempfile.mkdtemp(prefix=config.prefix, dir=config.dir)
            sandbox = cls(os.path.realpath(root), base, keep=config.keep)
            top = sandbox.locate(base)
            if os.path.isdir(base) and not os.path.lexists(top):
                os.mkdir(top)
        logger.debug("Sandbox %s created for %s", sandbox.root, base)
        return sandbox

    def locate(self, real: str) -> str:
        """Sandbox path standing in for the normalized real path."""
        rel = os.path.relpath(real, self._anchor)
        return self.root if rel == os.curdir else os.path.join(self.root, rel)

    def contains(self, path: str) -> bool:
        """Whether the normalized path lies inside the sandbox directory."""
        return within(path, self.root)

    # Whiteouts

    def hide(self, real: str) -> None:
        """Record that real (and everything under it) was deleted."""
        self._whiteouts.add(real)

    def unhide(self, real: str) -> None:
        """Forget the whiteout of real once it has been written again.

        Entries of a deleted real directory stay hidden below the new one.
        """
        if real not in self._whiteouts:
            return
        self._whiteouts.discard(real)
        with suspend():
            if os.path.isdir(real) and not os.path.islink(real):
                for name in os.listdir(real):
                    self._whiteouts.add(os.path.join(real, name))

    def is_hidden(self, real: str) -> bool:
        if not self._whiteouts:
            return False
        for candidate in ancestors(real):
            if candidate in self._whiteouts:
                return True
            if candidate == self.base:
                break
        return False

    # Copy-up

    def mirror_parents(self, real: str) -> None:
        """Create the sandbox counterparts of real's existing parent dirs."""
        missing = []
        for parent in ancestors(os.path.dirname(real)):
            if not within(parent, self.base):
                break
            target = self.locate(parent)
            if os.path.lexists(target):
                break
            missing.append(parent)

        for parent in reversed(missing):
            if self.is_hidden(parent) or not os.path.isdir(parent):
                return
            os.mkdir(self.locate(parent))

    def copy_up(self, real: str, deep: bool = False) -> None:
        """Copy real into the sandbox.

        Files are copied with their metadata and only if the sandbox has
        no copy yet. Directories are recreated empty; with deep, the real
        entries that are neither hidden nor already sandboxed are filled
        in, so the sandbox directory holds the whole merged view.
        """
        target = self.locate(real)
        with suspend():
            if not os.path.lexists(target):
                self.mirror_parents(real)
                if self.is_hidden(real) or not os.path.lexists(real):
                    return
                if _is_dir(real):
                    os.mkdir(target)
                elif os.path.isdir(os.path.dirname(target)):
                    shutil.copy2(real, target, follow_symlinks=False)
                logger.debug("Copied up %s", real)
            if deep and _is_dir(target):
                self._fill(real, target)

    def _fill(self, real: str, target: str) -> None:
        if self.is_hidden(real) or not _is_dir(real):
            return
        for name in os.listdir(real):
            source = os.path.join(real, name)
            dest = os.path.join(target, name)
            if self.is_hidden(source):
                continue
            if os.path.lexists(dest):
                if _is_dir(source) and _is_dir(dest):
                    self._fill(source, dest)
            elif _is_dir(source):
                shutil.copytree(source, dest, symlinks=True)
            else:
                shutil.copy2(source, dest, follow_symlinks=False)

    # Listing

    def _sources(
        self, real: str, target: Any, read_through: bool
    ) -> tuple[bool, bool]:
        with suspend():
            if os.path.lexists(target):
                if not os.path.isdir(target):
                    raise NotADirectoryError(
                        errno.ENOTDIR, os.strerror(errno.ENOTDIR), real
                    )
                in_sandbox = True
            else:
                in_sandbox = False
            visible = (
                read_through
                and not self.is_hidden(real)
                and os.path.lexists(real)
            )
            if visible and not in_sandbox and not os.path.isdir(real):
                raise NotADirectoryError(
                    errno.ENOTDIR, os.strerror(errno.ENOTDIR), real
                )
            in_real = visible and os.path.isdir(real)
        if not in_sandbox and not in_real:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), real)
        return in_sandbox, in_real

    def _visible(self, real: str, name: str | bytes) -> bool:
        return not self.is_hidden(os.path.join(real, os.fsdecode(name)))

    def listdir(
        self,
        real: str,
        target: Any,
        as_bytes: bool = False,
        read_through: bool = True,
    ) -> list[Any]:
        """Sandbox entries followed by real entries that are not shadowed.

        Args:
            real: Normalized real directory.
            target: Its sandbox counterpart.
            as_bytes: Return bytes names, as os.listdir does for bytes paths.
            read_through: Include the real entries.
        """
        in_sandbox, in_real = self._sources(real, target, read_through)
        convert = os.fsencode if as_bytes else os.fsdecode
        merged: list[Any] = []
        with suspend():
            if in_sandbox:
                merged.extend(os.listdir(convert(target)))
            seen = set(merged)
            if in_real:
                merged.extend(
                    name
                    for name in os.listdir(convert(real))
                    if name not in seen and self._visible(real, name)
                )
        return merged

    def scandir(
        self,
        real: str,
        target: Any,
        as_bytes: bool = False,
        read_through: bool = True,
        top: Any = None,
    ) -> ScandirWrapper:
        """Like listdir() but yields DirEntry objects.

        Args:
            top: The directory as the caller named it; entry paths are
                joined onto it, as os.scandir does. Defaults to real.
        """
        in_sandbox, in_real = self._sources(real, target, read_through)
        convert = os.fsencode if as_bytes else os.fsdecode
        return ScandirWrapper(
            self._scan(
                real,
                convert(target) if in_sandbox else None,
                convert(real) if in_real else None,
                convert(real if top is None else top),
            )
        )

    def _scan(
        self, real: str, target: Any, source: Any, top: Any
    ) -> Iterator[DirEntry]:
        seen = set()
        if target is not None:
            with suspend(), os.scandir(target) as it:
                entries = list(it)
            for entry in entries:
                seen.add(entry.name)
                yield DirEntry(entry, os.path.join(top, entry.name))
        if source is not None:
            with suspend(), os.scandir(source) as it:
                entries = list(it)
            for entry in entries:
                if entry.name not in seen and self._visible(real, entry.name):
                    yield DirEntry(entry, os.path.join(top, entry.name))

    # Teardown

    def remove(self) -> None:
        """Delete the sandbox directory. Failures propagate."""
        if self.removed:
            return
        if self.keep:
            logger.info("Keeping sandbox %s for %s", self.root, self.base)
        else:
            with suspend():
                shutil.rmtree(self.root)
        self.removed = True
        logger.debug("Sandbox %s removed", self.root)

    def __repr__(self) -> str:
        return f"<Sandbox {self.root} for {self.base}>"


def _is_dir(path: str) -> bool:
    return os.path.isdir(path) and not os.path.islink(path)


class DirEntry:
    """os.DirEntry from a merged listing, with path as the caller named it.

    Type and stat queries go to the underlying entry, which may live in
    the sandbox.
    """

    def __init__(self, entry: os.DirEntry, path: Any):
        self._entry = entry
        self.name = entry.name
        self.path = path

    def is_dir(self, *, follow_symlinks: bool = True) -> bool:
        return self._entry.is_dir(follow_symlinks=follow_symlinks)

    def is_file(self, *, follow_symlinks: bool = True) -> bool:
        return self._entry.is_file(follow_symlinks=follow_symlinks)

    def is_symlink(self) -> bool:
        return self._entry.is_symlink()

    def is_junction(self) -> bool:
        return False

    def stat(self, *, follow_symlinks: bool = True) -> os.stat_result:
        return self._entry.stat(follow_symlinks=follow_symlinks)

    def inode(self) -> int:
        return self._entry.inode()

    def __fspath__(self) -> Any:
        return self.path

    def __repr__(self) -> str:
        return f"<DirEntry {self.name!r}>"


class ScandirWrapper:
    """Merged scandir() result supporting the os.scandir context protocol."""

    def __init__(self, iterator: Iterator[DirEntry]):
        self._iterator = iterator

    def __iter__(self) -> ScandirWrapper:
        return self

    def __next__(self) -> DirEntry:
        return next(self._iterator)

    def __enter__(self) -> ScandirWrapper:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        close = getattr(self._iterator, "close", None)
        if close is not None:
            close()
