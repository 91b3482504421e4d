from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DEALFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Dealflow Entitlements"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # Local cache (usage ledger + preference records)
    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "dealflow"  # env: DEALFLOW_KEY_PREFIX

    # Pricing
    default_region: str = "India"

    # Remote relationship service (PostgREST-style REST endpoint)
    relationship_api_url: str = ""
    relationship_api_key: str = ""
    relationship_table: str = "connections"


@lru_cache
def get_settings() -> Settings:
    return Settings()
