"""Shared fixtures: fresh subsystems that are always disposed."""

import pytest

from monkeymock import CommandMock, FileSystemMock, SandboxConfig


@pytest.fixture
def sandbox_dir(tmp_path):
    """Parent directory for sandboxes, outside the project tree."""
    path = tmp_path / "sandboxes"
    path.mkdir()
    return path


@pytest.fixture
def fs(sandbox_dir):
    mock = FileSystemMock(SandboxConfig(dir=str(sandbox_dir)))
    yield mock
    mock.dispose()


@pytest.fixture
def cmd():
    mock = CommandMock()
    yield mock
    mock.dispose()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A small project tree, made the working directory."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "README.md").write_text("original")
    (root / "src" / "main.py").write_text("print('hi')\n")
    monkeypatch.chdir(root)
    return root
