"""Tests for configuration helpers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from saathi import config


class TestRequireEnv:
    def test_returns_env_value(self, monkeypatch):
        monkeypatch.setenv("SAATHI_TEST_SECRET", "sk-real")
        assert config._require_env("SAATHI_TEST_SECRET") == "sk-real"

    def test_placeholder_is_treated_as_missing(self, monkeypatch):
        monkeypatch.setenv("SAATHI_TEST_SECRET", "your_key_here")
        monkeypatch.setattr(config, "_ON_AWS", False)
        with pytest.raises(OSError, match="SAATHI_TEST_SECRET"):
            config._require_env("SAATHI_TEST_SECRET")

    def test_falls_back_to_ssm_on_aws(self, monkeypatch):
        monkeypatch.delenv("SAATHI_TEST_SECRET", raising=False)
        monkeypatch.setattr(config, "_ON_AWS", True)
        ssm = MagicMock()
        ssm.get_parameter.return_value = {"Parameter": {"Value": "from-ssm"}}
        with patch.object(config, "_ssm_client", return_value=ssm):
            assert config._require_env("SAATHI_TEST_SECRET") == "from-ssm"
        ssm.get_parameter.assert_called_once_with(
            Name="/digital-saathi/SAATHI_TEST_SECRET", WithDecryption=True,
        )

    def test_ssm_failure_is_missing(self, monkeypatch):
        monkeypatch.delenv("SAATHI_TEST_SECRET", raising=False)
        monkeypatch.setattr(config, "_ON_AWS", True)
        ssm = MagicMock()
        ssm.get_parameter.side_effect = RuntimeError("AccessDenied")
        with patch.object(config, "_ssm_client", return_value=ssm):
            assert config._secret("SAATHI_TEST_SECRET") is None


class TestEnvFlag:
    @pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("no", False)])
    def test_parses_value(self, monkeypatch, raw, expected):
        monkeypatch.setenv("SAATHI_TEST_FLAG", raw)
        assert config._env_flag("SAATHI_TEST_FLAG", not expected) is expected

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("SAATHI_TEST_FLAG", raising=False)
        assert config._env_flag("SAATHI_TEST_FLAG", True) is True


def test_engine_defaults():
    assert config.SIMILARITY_THRESHOLD == 0.4
    assert config.HISTORY_LIMIT == 20
    assert config.MONGO_URI is None
