"""Tests for configuration."""

import pytest

from monkeymock.config import (
    ENV_KEEP_SANDBOX,
    ENV_PREFIX,
    ENV_TMPDIR,
    SandboxConfig,
    StubOptions,
    load_config,
    stub_options,
)


class TestStubOptions:
    """Test the stub_options() factory."""

    def test_defaults(self):
        assert stub_options() == StubOptions(read_through=True)

    def test_read_through_false(self):
        assert stub_options(read_through=False).read_through is False

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="readThrough"):
            stub_options(readThrough=False)

    def test_non_bool_rejected(self):
        with pytest.raises(ValueError):
            stub_options(read_through="no")


class TestLoadConfig:
    """Test environment overrides."""

    def test_empty_environment(self):
        assert load_config({}) == SandboxConfig()

    def test_overrides(self, tmp_path):
        config = load_config(
            {
                ENV_TMPDIR: str(tmp_path),
                ENV_PREFIX: "case-",
                ENV_KEEP_SANDBOX: "yes",
            }
        )
        assert config == SandboxConfig(dir=str(tmp_path), prefix="case-", keep=True)

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv(ENV_PREFIX, "env-")
        monkeypatch.delenv(ENV_TMPDIR, raising=False)
        monkeypatch.delenv(ENV_KEEP_SANDBOX, raising=False)
        assert load_config().prefix == "env-"

    def test_invalid_bool(self):
        with pytest.raises(ValueError, match=ENV_KEEP_SANDBOX):
            load_config({ENV_KEEP_SANDBOX: "maybe"})
