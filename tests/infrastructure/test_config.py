"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from shopledger.domain.service.ledger import ReleasePolicy
from shopledger.infrastructure.config import ConfigurationError, Settings


class TestSettingsFromEnv:

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.release_policy is ReleasePolicy.CLAMP
        assert settings.max_retries == 3
        assert settings.log_level == "WARNING"

    def test_reads_prefixed_variables(self):
        settings = Settings.from_env({
            "SHOPLEDGER_DATA_DIR": "/srv/ledger",
            "SHOPLEDGER_RELEASE_POLICY": "STRICT",
            "SHOPLEDGER_MAX_RETRIES": "5",
            "SHOPLEDGER_LOCK_TIMEOUT": "0.5",
            "SHOPLEDGER_LOG_LEVEL": "debug",
            "SHOPLEDGER_REORDER_QUANTITY": "24",
        })
        assert settings.data_dir == Path("/srv/ledger")
        assert settings.release_policy is ReleasePolicy.STRICT
        assert settings.max_retries == 5
        assert settings.lock_timeout == 0.5
        assert settings.log_level == "DEBUG"
        assert settings.reorder_quantity == 24

    def test_blank_values_are_ignored(self):
        assert Settings.from_env({"SHOPLEDGER_MAX_RETRIES": "  "}).max_retries == 3

    @pytest.mark.parametrize(
        "name, value, message",
        [
            ("SHOPLEDGER_RELEASE_POLICY", "lenient", "Unknown release policy"),
            ("SHOPLEDGER_LOG_LEVEL", "chatty", "Unknown log level"),
            ("SHOPLEDGER_MAX_RETRIES", "three", "must be a int"),
            ("SHOPLEDGER_RETRY_BACKOFF", "-1", "cannot be negative"),
        ],
    )
    def test_invalid_values(self, name, value, message):
        with pytest.raises(ConfigurationError, match=message):
            Settings.from_env({name: value})

    def test_override_skips_none(self):
        settings = Settings.from_env({}).override(max_retries=None, lock_timeout=1.0)
        assert settings.max_retries == 3
        assert settings.lock_timeout == 1.0
