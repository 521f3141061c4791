"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017/?replicaSet=rs0"
    mongodb_db: str = "mentormatch"

    # Document store backend: "mongo" in deployments, "memory" for tests and demos
    store_backend: str = "mongo"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Capacity limits
    admin_capacity_limit: int = 50
    supervisor_capacity_limit: int = 20

    # Logging
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""

    # App
    debug: bool = True
    cors_origins: List[str] = ["*"]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
