"""Tests for path normalization and scope checks."""

import os
from pathlib import Path
from urllib.parse import urlparse

import pytest

from monkeymock.paths import (
    absolute,
    ancestors,
    is_path_like,
    is_under,
    normalize,
    relative,
)


class TestNormalize:
    """Test normalize() across path representations."""

    def test_relative_resolves_against_cwd(self, tmp_path, monkeypatch):
        """Test that relative paths resolve against the cwd at call time."""
        monkeypatch.chdir(tmp_path)
        assert normalize("a/b") == os.path.join(str(tmp_path), "a", "b")

    def test_trailing_separator_stripped(self, tmp_path):
        """Test that trailing separators do not change the result."""
        assert normalize(str(tmp_path) + os.sep) == str(tmp_path)

    def test_dot_segments_collapsed(self, tmp_path):
        """Test that . and .. segments are collapsed."""
        messy = os.path.join(str(tmp_path), "a", ".", "b", "..", "c")
        assert normalize(messy) == os.path.join(str(tmp_path), "a", "c")

    def test_representations_agree(self, tmp_path):
        """Test that str, bytes, Path and file URLs normalize identically."""
        target = tmp_path / "file.txt"
        expected = str(target)

        assert normalize(str(target)) == expected
        assert normalize(os.fsencode(str(target))) == expected
        assert normalize(target) == expected
        assert normalize(target.as_uri()) == expected
        assert normalize(urlparse(target.as_uri())) == expected

    def test_localhost_url(self, tmp_path):
        """Test that file://localhost URLs are accepted."""
        url = "file://localhost" + (tmp_path / "x").as_uri()[len("file://") :]
        assert normalize(url) == str(tmp_path / "x")

    def test_remote_url_rejected(self):
        """Test that file URLs with a remote host are rejected."""
        with pytest.raises(ValueError):
            normalize("file://server/share/x")

    def test_other_scheme_rejected(self):
        """Test that non-file URLs are rejected."""
        with pytest.raises(ValueError):
            normalize(urlparse("https://example.com/x"))

    def test_non_path_rejected(self):
        """Test that file descriptors and other objects are rejected."""
        with pytest.raises(TypeError):
            normalize(3)
        with pytest.raises(TypeError):
            normalize(None)


class TestAbsolute:
    """Test absolute(), used for call arguments."""

    def test_matches_normalize_for_paths(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        for value in ("a/b", b"a/b", Path("a/b"), str(tmp_path) + os.sep):
            assert absolute(value) == normalize(value)

    def test_file_prefix_is_a_name(self, tmp_path, monkeypatch):
        """Test that a relative name starting with "file:" is not a URL."""
        monkeypatch.chdir(tmp_path)
        assert absolute("file:notes.txt") == os.path.join(
            str(tmp_path), "file:notes.txt"
        )


class TestScopes:
    """Test is_under(), relative() and ancestors()."""

    def test_is_under_self(self, tmp_path):
        assert is_under(tmp_path, tmp_path)

    def test_is_under_child(self, tmp_path):
        assert is_under(tmp_path / "a" / "b", str(tmp_path / "a"))

    def test_sibling_with_common_prefix_not_under(self, tmp_path):
        """Test that /x/ab is not under /x/a."""
        assert not is_under(tmp_path / "ab", tmp_path / "a")

    def test_parent_not_under_child(self, tmp_path):
        assert not is_under(tmp_path, tmp_path / "a")

    def test_root_contains_everything(self, tmp_path):
        assert is_under(tmp_path, os.path.abspath(os.sep))

    def test_relative(self, tmp_path):
        assert relative(tmp_path, tmp_path / "a" / "b.txt") == os.path.join(
            "a", "b.txt"
        )
        assert relative(tmp_path, tmp_path) == "."

    def test_ancestors_end_at_root(self, tmp_path):
        chain = ancestors(normalize(tmp_path / "a"))
        assert chain[0] == str(tmp_path / "a")
        assert chain[1] == str(tmp_path)
        assert chain[-1] == os.path.abspath(os.sep)

    def test_is_path_like(self):
        assert is_path_like("x")
        assert is_path_like(b"x")
        assert is_path_like(Path("x"))
        assert not is_path_like(3)
