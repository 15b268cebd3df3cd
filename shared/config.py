"""
Shared configuration management for the ABE policy engine.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Slots are unsigned 32-bit integers
U32_MAX = 2 ** 32 - 1


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ABE_POLICY_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class PolicySettings(BaseConfig):
    """Policy engine settings."""

    # Capacity used when a caller does not provide one
    default_max_attribute_creations: int = Field(default=U32_MAX, ge=0, le=U32_MAX)

    # Upper bound on untrusted expression text accepted at the boundaries
    max_expression_length: int = Field(default=8192, gt=0)


def get_settings() -> PolicySettings:
    """Get policy engine settings."""
    return PolicySettings()
