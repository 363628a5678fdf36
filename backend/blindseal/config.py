from __future__ import annotations

import base64
import logging
import os
import warnings
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# field name -> number of random bytes generated outside production
_SECRET_FIELDS: dict[str, int] = {
    "encryption_master_secret": 32,
    "encryption_key_salt": 16,
    "encryption_search_salt": 16,
}


class ConfigurationError(RuntimeError):
    """Raised when the process is not provisioned to serve encryption requests.

    Deployment misconfiguration, not a per-request failure: nothing in this
    package catches it.
    """


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"

    # Server-wide secrets. Generate with: openssl rand -base64 48
    encryption_master_secret: str = ""
    encryption_key_salt: str = ""  # PBKDF2 salt prefix for per-user keys
    encryption_search_salt: str = ""  # Blind index salt, never reused for AEAD keys

    db_url: str = "sqlite://"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in ("prod", "production")

    @model_validator(mode="after")
    def _check_encryption_secrets(self) -> Settings:
        for name, size in _SECRET_FIELDS.items():
            value = getattr(self, name).strip()
            if not value:
                if self.is_production:
                    raise ValueError(
                        f"{name.upper()} is not set. Encryption secrets are required "
                        "in production; the process cannot encrypt or search without them."
                    )
                # Random per-process value so no static secret leaks into dev/test data.
                value = base64.b64encode(os.urandom(size)).decode("ascii")
                warnings.warn(
                    f"{name.upper()} is empty; using a random value for this process. "
                    "Data encrypted now will be unreadable after restart.",
                    stacklevel=2,
                )
                logger.warning("Generated ephemeral %s for environment %r", name, self.environment)
            setattr(self, name, value)
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
