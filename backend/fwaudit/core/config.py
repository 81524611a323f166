from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./fwaudit.db"

    # Uploads larger than this are rejected before parsing
    max_config_bytes: int = 10 * 1024 * 1024

    # Run the extended check catalog (DPI-SSL, botnet filter, PSK-only VPN, ...)
    # in addition to the core catalog
    extended_checks: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
