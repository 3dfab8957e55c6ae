"""Tests for application configuration management."""

import logging
import os
import tempfile
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from fincalc.config import (
    Settings,
    configure_logging,
    get_global_settings,
    get_settings,
    load_domain_rules,
    reset_global_settings,
)
from fincalc.models.rules import DEFAULT_RULES


@pytest.fixture(autouse=True)
def clean_global_settings():
    reset_global_settings()
    yield
    reset_global_settings()


class TestSettings:
    """Test cases for Settings class."""

    def test_settings_loads_from_env_file(self):
        """Test that settings can load from an .env file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("APP_ENV=testing\n")
            f.write("LOG_LEVEL=DEBUG\n")
            f.write("TAX_YEAR=2024-25\n")
            temp_env_file = f.name

        try:
            with patch.dict(os.environ, {}, clear=True):
                settings = Settings(_env_file=temp_env_file)

                assert settings.app_env == "testing"
                assert settings.log_level == "DEBUG"
                assert settings.tax_year == "2024-25"
                assert settings.rules_file is None
        finally:
            os.unlink(temp_env_file)

    def test_default_values(self):
        """Test default values when environment variables are not set."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.app_env == "development"
            assert settings.log_level == "INFO"
            assert settings.tax_year == "2024-25"
            assert settings.rules_file is None

    def test_app_env_validation(self):
        """Test APP_ENV validation."""
        with patch.dict(os.environ, {"APP_ENV": "invalid-env"}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "APP_ENV must be one of" in str(exc_info.value)

    def test_log_level_validation(self):
        """Test LOG_LEVEL validation."""
        with patch.dict(os.environ, {"LOG_LEVEL": "INVALID_LEVEL"}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            assert "LOG_LEVEL must be one of" in str(exc_info.value)

    def test_log_level_case_insensitive(self):
        """Test that LOG_LEVEL is case insensitive."""
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.log_level == "DEBUG"

    def test_blank_rules_file_is_unset(self):
        with patch.dict(os.environ, {"FINCALC_RULES_FILE": ""}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.rules_file is None

    def test_get_settings_function(self):
        """Test the get_settings function."""
        with patch.dict(os.environ, {"APP_ENV": "production"}, clear=True):
            settings = get_settings()
            assert isinstance(settings, Settings)
            assert settings.app_env == "production"

    def test_global_settings_are_cached(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
            first = get_global_settings()
            second = get_global_settings()

            assert first is second
            reset_global_settings()
            assert get_global_settings() is not first


class TestLoadDomainRules:
    """Test cases for resolving domain rules from settings."""

    def test_builtin_rules(self):
        with patch.dict(os.environ, {}, clear=True):
            rules = load_domain_rules(Settings(_env_file=None))

        assert rules == DEFAULT_RULES

    def test_unknown_tax_year(self):
        with patch.dict(os.environ, {"TAX_YEAR": "1999-00"}, clear=True):
            settings = Settings(_env_file=None)

        with pytest.raises(ValueError, match="No built-in rules"):
            load_domain_rules(settings)

    def test_rules_file_override(self, tmp_path):
        custom = DEFAULT_RULES.model_copy(
            update={
                "tax": DEFAULT_RULES.tax.model_copy(update={"tax_year": "2025-26"})
            }
        )
        rules_path = tmp_path / "rules.json"
        rules_path.write_text(custom.model_dump_json())

        with patch.dict(os.environ, {"FINCALC_RULES_FILE": str(rules_path)}, clear=True):
            rules = load_domain_rules(Settings(_env_file=None))

        assert rules.tax.tax_year == "2025-26"
        assert rules.tax.brackets == DEFAULT_RULES.tax.brackets

    def test_missing_rules_file(self, tmp_path):
        missing = tmp_path / "missing.json"
        with patch.dict(os.environ, {"FINCALC_RULES_FILE": str(missing)}, clear=True):
            settings = Settings(_env_file=None)

        with pytest.raises(ValueError, match="Cannot read rules file"):
            load_domain_rules(settings)


class TestConfigureLogging:
    """Test cases for logging setup."""

    def test_sets_package_log_level(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}, clear=True):
            configure_logging(Settings(_env_file=None))

        assert logging.getLogger("fincalc").level == logging.DEBUG

        with patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}, clear=True):
            configure_logging(Settings(_env_file=None))

        assert logging.getLogger("fincalc").level == logging.ERROR
