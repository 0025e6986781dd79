"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"

    # Client-side field level encryption
    # Local KMS master key file (96 bytes). Auto encryption is off when unset.
    master_key_file: Optional[str] = None
    key_vault_namespace: str = "encryption.__keyVault"
    crypt_shared_lib_path: Optional[str] = None

    # Schemas
    # Extended JSON file mapping "db.collection" to a schema definition.
    # The built-in app.users schema is used when unset.
    schema_file: Optional[str] = None
    apply_schemas_on_startup: bool = True

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
