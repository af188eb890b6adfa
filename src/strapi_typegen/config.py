"""Runtime settings read from the environment and an optional .env file."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STRAPI_TYPEGEN_", env_file=".env", extra="ignore")

    output_dir: str = "./dist"
    log_level: str = "WARNING"
    package_name: str = "strapi-typed-client"
    version: str = "0.4.0"


@lru_cache
def get_settings() -> Settings:
    return Settings()
