"""Path and scope resolution.

Every scope key goes through normalize(), so a string, a relative path, a
pathlib.Path and a file:// URL naming the same location compare equal.
Path arguments seen by a dispatcher go through absolute(), the same
normalization without URL parsing, since host operations never take URLs.
"""

from __future__ import annotations

import os
from typing import Any
from urllib.parse import ParseResult, urlparse
from urllib.request import url2pathname


def is_path_like(value: Any) -> bool:
    """Whether a call argument names a path (file descriptors do not)."""
    return isinstance(value, (str, bytes, os.PathLike))


def _from_url(url: str | ParseResult) -> str:
    parsed = urlparse(url) if isinstance(url, str) else url
    if parsed.scheme != "file":
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme!r}")
    if parsed.netloc not in ("", "localhost"):
        raise ValueError(f"Remote file URLs are not supported: {parsed.geturl()}")
    return url2pathname(parsed.path)


def normalize(path: Any) -> str:
    """Return the canonical absolute form of a path or file:// URL.

    Relative paths resolve against the current working directory at the
    time of the call. Symlinks are not resolved.

    Raises:
        TypeError: If the value is not path-like.
        ValueError: If the value is a URL with a scheme other than file.
    """
    if isinstance(path, ParseResult):
        text = _from_url(path)
    elif isinstance(path, str) and path.startswith("file:"):
        text = _from_url(path)
    elif is_path_like(path):
        text = os.fsdecode(os.fspath(path))
    else:
        raise TypeError(f"Expected a path or file URL, got {type(path).__name__}")

    return os.path.abspath(text)


def absolute(path: Any) -> str:
    """normalize() for call arguments, which are never URLs.

    A relative name such as "file:notes.txt" stays a file name.
    """
    return os.path.abspath(os.fsdecode(os.fspath(path)))


def is_under(candidate: Any, scope: Any) -> bool:
    """True if candidate is scope itself or lies below it."""
    return within(normalize(candidate), normalize(scope))


def relative(base: Any, target: Any) -> str:
    """Relative path from base to target."""
    return os.path.relpath(normalize(target), normalize(base))


def ancestors(path: str) -> list[str]:
    """The normalized path followed by each of its parents up to the root."""
    chain = [path]
    parent = os.path.dirname(path)
    while parent != chain[-1]:
        chain.append(parent)
        parent = os.path.dirname(parent)
    return chain


def within(candidate: str, scope: str) -> bool:
    """is_under() for paths that are already normalized."""
    if candidate == scope:
        return True
    prefix = scope if scope.endswith(os.sep) else scope + os.sep
    return candidate.startswith(prefix)
