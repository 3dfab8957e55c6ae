"""Application configuration management using Pydantic Settings."""

import logging
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fincalc.models.rules import BUILTIN_RULES, DomainRules, load_rules_file

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")

    # Domain Rules
    tax_year: str = Field(default="2024-25", alias="TAX_YEAR")
    rules_file: Optional[str] = Field(default=None, alias="FINCALC_RULES_FILE")

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v):
        """Validate application environment."""
        allowed_envs = {"development", "testing", "production"}
        if v not in allowed_envs:
            raise ValueError(f"APP_ENV must be one of {allowed_envs}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator("rules_file")
    @classmethod
    def validate_rules_file(cls, v):
        return v or None


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get application settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured log level to the ``fincalc`` logger hierarchy."""
    settings = settings or get_global_settings()
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("fincalc").setLevel(settings.log_level)


def load_domain_rules(settings: Optional[Settings] = None) -> DomainRules:
    """
    Resolve the domain rules the engines should use.

    A rules file named by ``FINCALC_RULES_FILE`` takes precedence; otherwise the
    built-in rules for ``TAX_YEAR`` are returned.

    Raises:
        ValueError: If the rules file is unreadable or invalid, or no built-in
            rules exist for the tax year
    """
    settings = settings or get_global_settings()

    if settings.rules_file:
        rules = load_rules_file(settings.rules_file)
        logger.warning(
            f"Using domain rules override from {settings.rules_file} "
            f"(tax year {rules.tax.tax_year})"
        )
        return rules

    if settings.tax_year not in BUILTIN_RULES:
        raise ValueError(
            f"No built-in rules for tax year {settings.tax_year}; "
            f"available: {sorted(BUILTIN_RULES)}"
        )
    return BUILTIN_RULES[settings.tax_year]
