"""Capability tables: the host entry points monkeymock can intercept.

Each row names an operation, the attributes that expose it and its path
arguments. The engine only relies on the family and effect of each path
argument, so supporting another entry point means adding a row here.
"""

import builtins
import io
import os
import os.path
import shutil
import subprocess
import tempfile

from .core import (
    Effect,
    Family,
    PathArg,
    available,
    capture,
    flags_effect,
    op,
    open_effect,
)

READ, PROBE, WRITE, DELETE, LINK = (
    Effect.READ,
    Effect.PROBE,
    Effect.WRITE,
    Effect.DELETE,
    Effect.LINK,
)


def _cwd() -> str:
    return "."


def _path(effect: Effect, keyword: str = "path") -> PathArg:
    return PathArg(0, keyword, effect)


def _pair(src: Effect, dst: Effect) -> tuple[PathArg, PathArg]:
    return PathArg(0, "src", src), PathArg(1, "dst", dst)


FS_OPERATIONS = available(
    (
        # single-path
        op(
            "open",
            builtins,
            "open",
            PathArg(0, "file", open_effect),
            also=[(io, "open")],
        ),
        op("os_open", os, "open", PathArg(0, "path", flags_effect)),
        op("stat", os, None, _path(READ)),
        op("lstat", os, None, _path(READ)),
        op("listdir", os, None, PathArg(0, "path", READ, _cwd), listing=True),
        op("scandir", os, None, PathArg(0, "path", READ, _cwd), listing=True),
        op("readlink", os, None, _path(READ)),
        op("access", os, None, _path(PROBE)),
        op("mkdir", os, None, _path(WRITE)),
        op("makedirs", os, None, _path(WRITE, "name")),
        op("rmdir", os, None, _path(DELETE)),
        op("remove", os, None, _path(DELETE)),
        op("unlink", os, None, _path(DELETE)),
        op("chmod", os, None, _path(WRITE)),
        op("chown", os, None, _path(WRITE)),
        op("utime", os, None, _path(WRITE)),
        op("truncate", os, None, _path(WRITE)),
        op("symlink", os, None, PathArg(1, "dst", WRITE)),
        op("exists", os.path, None, _path(PROBE)),
        op("lexists", os.path, None, _path(PROBE)),
        op("isfile", os.path, None, _path(PROBE)),
        op("isdir", os.path, None, _path(PROBE, "s")),
        op("islink", os.path, None, _path(PROBE)),
        op("getsize", os.path, None, _path(READ, "filename")),
        op("rmtree", shutil, None, _path(DELETE)),
        # dual-path
        op("rename", os, None, *_pair(DELETE, WRITE)),
        op("replace", os, None, *_pair(DELETE, WRITE)),
        op("link", os, None, *_pair(LINK, WRITE)),
        op("copyfile", shutil, None, *_pair(READ, WRITE)),
        op("copy", shutil, None, *_pair(READ, WRITE)),
        op("copy2", shutil, None, *_pair(READ, WRITE)),
        op("copytree", shutil, None, *_pair(READ, WRITE)),
        op("move", shutil, None, *_pair(DELETE, WRITE)),
        # path-less: scoped by the directory they create in
        op(
            "mkdtemp",
            tempfile,
            None,
            PathArg(2, "dir", WRITE, tempfile.gettempdir),
            family=Family.PATHLESS,
        ),
        op(
            "mkstemp",
            tempfile,
            None,
            PathArg(2, "dir", WRITE, tempfile.gettempdir),
            family=Family.PATHLESS,
        ),
    )
)

COMMAND_OPERATIONS = (op("Popen", subprocess),)

capture(FS_OPERATIONS + COMMAND_OPERATIONS)
