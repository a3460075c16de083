from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ROUTING_CONFIG_PATH = Path(__file__).parent / "data" / "routing.yaml"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # true  => ads only
    # false => ads first, normal list when ads is empty
    only_ads_whatsapp: bool = Field(default=True, alias="ONLY_ADS_WHATSAPP")

    support_fallback_enabled: bool = Field(default=False, alias="SUPPORT_FALLBACK_ENABLED")
    support_fallback_number: str = Field(default="", alias="SUPPORT_FALLBACK_NUMBER")

    timeout_ms: int = Field(default=2500, alias="TIMEOUT_MS")
    max_retries: int = Field(
        default=2,
        alias="MAX_RETRIES",
        description="Upstream attempts per request (not retries after the first)",
    )

    routing_config_path: Path = Field(
        default=DEFAULT_ROUTING_CONFIG_PATH,
        alias="ROUTING_CONFIG_PATH",
        description="YAML file holding the provider/agency/allocation tree",
    )
    random_seed: int | None = Field(
        default=None,
        alias="RANDOM_SEED",
        description="Seed for the selector rng; unset means system entropy",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
    )

    @field_validator("max_retries")
    @classmethod
    def clamp_retries(cls, v: int) -> int:
        return max(1, v)

    @field_validator("timeout_ms")
    @classmethod
    def positive_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("TIMEOUT_MS must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()

    @property
    def fallback_number(self) -> str | None:
        """Support number served as last resort, or None when disabled."""
        if self.support_fallback_enabled and self.support_fallback_number.strip():
            return self.support_fallback_number.strip()
        return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
