from pydantic_settings import BaseSettings, SettingsConfigDict
from models import WithdrawalChargebackPolicy
from functools import lru_cache
import os


class Settings(BaseSettings):
    # Application settings
    app_name: str = "txnflow"
    app_version: str = "1.0.0"
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Output settings
    output_precision: int = 4  # fractional digits kept when rendering amounts

    # Processing settings
    queue_max_size: int = 0  # 0 means unbounded
    withdrawal_chargeback_policy: WithdrawalChargebackPolicy = WithdrawalChargebackPolicy.reverse

    model_config = SettingsConfigDict(
        env_prefix="TXNFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance for the environment named by TXNFLOW_ENV."""
    return get_settings_for_environment(os.environ.get("TXNFLOW_ENV", "production"))


# Environment-specific configurations
class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"
    log_format: str = "text"


class ProductionSettings(Settings):
    debug: bool = False
    log_level: str = "WARNING"


class TestingSettings(Settings):
    log_level: str = "WARNING"  # Reduce noise in tests
    log_format: str = "text"


def get_settings_for_environment(env: str = "development") -> Settings:
    """Get settings for specific environment."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.lower(), Settings)
    return settings_class()
